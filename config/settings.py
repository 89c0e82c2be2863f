"""
Centralized configuration for the Ammin insurance relay.

All settings are loaded from environment variables via .env file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    # Brand
    brand_name: str = Field(default="Ammin", env="BRAND_NAME")
    assistant_name: str = Field(default="CorporateAI", env="ASSISTANT_NAME")

    # WhatsApp Cloud API
    whatsapp_token: Optional[str] = Field(default=None, env="WHATSAPP_TOKEN")
    phone_number_id: Optional[str] = Field(default=None, env="PHONE_NUMBER_ID")
    verify_token: str = Field(default="corporate_ai_ammin_2025", env="VERIFY_TOKEN")
    whatsapp_api_version: str = Field(default="v18.0", env="WHATSAPP_API_VERSION")
    whatsapp_timeout_seconds: float = Field(default=10.0, env="WHATSAPP_TIMEOUT_SECONDS")

    # LLM provider selection
    llm_provider: str = Field(default="openai", env="LLM_PROVIDER")  # openai | bedrock
    max_tokens: int = Field(default=500, env="MAX_TOKENS")
    temperature: float = Field(default=0.7, env="TEMPERATURE")
    completion_timeout_seconds: float = Field(default=30.0, env="COMPLETION_TIMEOUT_SECONDS")

    # OpenAI
    openai_api_key: Optional[str] = Field(default=None, env="OPENAI_API_KEY")
    openai_llm_model: str = Field(default="gpt-4-turbo", env="OPENAI_LLM_MODEL")

    # AWS / Bedrock
    aws_region: str = Field(default="us-east-1", env="AWS_REGION")
    bedrock_llm_model_id: str = Field(
        default="us.anthropic.claude-sonnet-4-20250514-v1:0", env="BEDROCK_LLM_MODEL_ID"
    )

    # Sessions
    session_idle_minutes: int = Field(default=30, env="SESSION_IDLE_MINUTES")
    session_sweep_probability: float = Field(default=0.1, env="SESSION_SWEEP_PROBABILITY")
    history_max_messages: int = Field(default=10, env="HISTORY_MAX_MESSAGES")

    # Topic admission
    classifier_recent_window: int = Field(default=2, env="CLASSIFIER_RECENT_WINDOW")
    short_message_threshold: int = Field(default=30, env="SHORT_MESSAGE_THRESHOLD")
    completion_context_messages: int = Field(default=6, env="COMPLETION_CONTEXT_MESSAGES")
    debug_history_messages: int = Field(default=3, env="DEBUG_HISTORY_MESSAGES")

    # API
    api_host: str = Field(default="0.0.0.0", env="API_HOST")
    port: int = Field(default=3000, env="PORT")
    api_title: str = Field(default="Ammin Insurance Relay", env="API_TITLE")
    api_version: str = Field(default="1.0.0", env="API_VERSION")
    admin_api_key: Optional[str] = Field(default=None, env="ADMIN_API_KEY")
    cors_origins: str = Field(default="*", env="CORS_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    debug: bool = Field(default=False, env="DEBUG")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def is_bedrock(self) -> bool:
        return self.llm_provider.lower() == "bedrock"

    @property
    def is_openai(self) -> bool:
        return self.llm_provider.lower() == "openai"

    @property
    def llm_model_id(self) -> str:
        if self.is_bedrock:
            return self.bedrock_llm_model_id
        return self.openai_llm_model

    @property
    def whatsapp_enabled(self) -> bool:
        return bool(self.whatsapp_token and self.phone_number_id)

    @property
    def session_idle_seconds(self) -> int:
        return self.session_idle_minutes * 60

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
