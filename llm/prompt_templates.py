"""
Prompt Templates for the Ammin insurance relay.

Holds the completion system prompt and every fixed reply the relay sends.
"""

import itertools
from enum import Enum
from typing import Dict, List

from conversation.language import Language
from conversation.special_intents import SpecialIntent


class ReplyType(Enum):
    """Fixed replies."""
    OUT_OF_DOMAIN = "out_of_domain"
    TEXT_ONLY = "text_only"
    COMPLETION_FALLBACK = "completion_fallback"
    EMPTY_COMPLETION = "empty_completion"


class PromptTemplates:
    """
    Manages prompt templates and canned replies.

    Canned replies are bilingual (Arabic first, then English) so they read
    correctly whatever language the user wrote in.
    """

    SYSTEM_PROMPT = """You are {assistant_name}, a friendly WhatsApp insurance assistant for {brand_name}, a Lebanese insurance company owned by Elias Chedid Hanna.

IMPORTANT CONTEXT BEHAVIOR:
- Remember the conversation history and context
- If user asks follow-up questions, refer to previous messages
- Maintain conversation flow naturally
- Don't require users to repeat context every message
- Be helpful with contextual follow-ups like "what about...", "where can I...", "which one..."

FORMATTING for WhatsApp:
- Use emojis to make messages friendly 😊🚗🏥💰
- Keep paragraphs short (2-3 lines max)
- Use bullet points with • symbol
- Add line breaks for readability
- Be conversational and friendly like chatting with a friend

TOPICS you help with:
1. Insurance in Lebanon (auto, health, property)
2. Car market prices in Lebanon
3. Car comparisons and recommendations
4. Lebanese insurance laws
5. {brand_name}'s services and benefits
6. Elias Chedid Hanna (founder)
7. Follow-up questions about any of the above topics

Only answer questions about these topics. Politely decline anything else.
Support both English and Arabic. Keep responses under 1000 characters when possible.
Always end with a helpful question or suggestion."""

    REPLIES: Dict[ReplyType, str] = {
        ReplyType.OUT_OF_DOMAIN: (
            "أنا متخصص في مواضيع التأمين في لبنان فقط، خاصة لشركة أمّن للتأمين. "
            "هل يمكنك سؤالي عن شيء متعلق بالتأمين؟ 🏥🚗\n\n"
            "I'm specialized in Lebanese insurance topics only, particularly for Ammin "
            "insurance company. Could you please ask me something related to insurance? 🏥🚗"
        ),
        ReplyType.TEXT_ONLY: (
            "مرحباً! أنا CorporateAI، مساعد أمّن للتأمين. أرسل لي رسالة نصية وسأساعدك! 🤖\n\n"
            "Hello! I'm CorporateAI, Ammin's insurance assistant. "
            "Send me a text message and I'll help you! 🤖"
        ),
        ReplyType.COMPLETION_FALLBACK: (
            "مرحباً! أنا مساعد أمّن للتأمين. كيف يمكنني مساعدتك اليوم؟\n\n"
            "Hello! I'm Ammin's insurance assistant. How can I help you today? 😊"
        ),
        ReplyType.EMPTY_COMPLETION: (
            "عذراً، حدث خطأ. يرجى المحاولة مرة أخرى.\n"
            "Sorry, there was an error. Please try again."
        ),
    }

    # Rotated when no completion provider is configured
    OFFLINE_REPLIES: List[str] = [
        "مرحباً! أنا CorporateAI مساعد أمّن للتأمين. يمكنني مساعدتك في:\n"
        "🚗 تأمين السيارات\n🏥 التأمين الصحي\n💰 أسعار السوق\n\n"
        "Hello! I'm CorporateAI, Ammin's insurance assistant. I can help you with car "
        "insurance, health insurance, and market prices in Lebanon! 😊",
        "أهلاً بك! لدي معلومات شاملة عن التأمين في لبنان وأسعار السيارات. ما الذي تريد معرفته؟\n\n"
        "Welcome! I have comprehensive information about insurance in Lebanon and car "
        "prices. What would you like to know? 🚗",
        "مرحباً! أمّن هي شركة رائدة في التأمين بلبنان. يمكنني مساعدتك في اختيار أفضل تأمين لاحتياجاتك!\n\n"
        "Hello! Ammin is a leading insurance company in Lebanon. I can help you choose "
        "the best insurance for your needs! 💪",
    ]

    SPECIAL_REPLIES: Dict[SpecialIntent, Dict[Language, str]] = {
        SpecialIntent.FOUNDER: {
            Language.ARABIC: (
                "الياس شديد حنا هو مؤسس ومالك شركة أمّن للتأمين في لبنان. تحت قيادته، "
                "نمت شركة أمّن لتصبح واحدة من أكثر شركات التأمين موثوقية في لبنان 🏆"
            ),
            Language.ENGLISH: (
                "Elias Chedid Hanna is the founder and owner of Ammin Insurance Company in "
                "Lebanon. Under his leadership, Ammin has grown to become one of the most "
                "reliable insurance providers in Lebanon 🏆"
            ),
        },
        SpecialIntent.COMPANY_OVERVIEW: {
            Language.ARABIC: (
                "🏢 أمّن منصة إلكترونية مرخّصة من هيئة التأمين الدولية (ICC)، يقودها السيد "
                "إيلي حنا وفريقه المميز.\n\n"
                "✨ نبسّط تجربة التأمين للأفراد والشركات في لبنان من خلال:\n"
                "• منصة تأمين موحّدة\n• وسطاء محترفون مرخّصون\n"
                "• شراكات مع كبرى شركات التأمين\n• تطبيق سهل الاستخدام\n\n"
                "📱 حمّل تطبيقنا: https://play.google.com/store/apps/details?id=com.ammin.ammin"
            ),
            Language.ENGLISH: (
                "🏢 AMMIN is an online platform licensed by the International Insurance "
                "Commission (ICC), led by Mr. Elie Hanna and his exceptional team.\n\n"
                "✨ We simplify the insurance experience for individuals and businesses in "
                "Lebanon, providing:\n"
                "• Centralized insurance platform\n• Licensed professional brokers\n"
                "• Partnerships with top insurance companies\n• User-friendly mobile app\n\n"
                "📱 Download our app: https://play.google.com/store/apps/details?id=com.ammin.ammin"
            ),
        },
    }

    _offline_cycle = itertools.cycle(range(len(OFFLINE_REPLIES)))

    @classmethod
    def get_system_prompt(cls, brand_name: str = "Ammin", assistant_name: str = "CorporateAI") -> str:
        return cls.SYSTEM_PROMPT.format(brand_name=brand_name, assistant_name=assistant_name)

    @classmethod
    def get_reply(cls, reply_type: ReplyType) -> str:
        return cls.REPLIES[reply_type]

    @classmethod
    def get_special_reply(cls, intent: SpecialIntent, language: Language) -> str:
        return cls.SPECIAL_REPLIES[intent][language]

    @classmethod
    def next_offline_reply(cls) -> str:
        return cls.OFFLINE_REPLIES[next(cls._offline_cycle)]
