"""
WhatsApp Webhook Routes for the Ammin insurance relay.

Handles the Meta verification handshake and inbound message deliveries.
Deliveries are acknowledged immediately and processed in the background.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Query, Request
from fastapi.responses import PlainTextResponse

from ..channels.whatsapp import parse_inbound_messages
from ..middleware.metrics import (
    record_active_sessions,
    record_admission,
    record_evicted_sessions,
    record_llm_latency,
    record_route,
)
from ..services import get_services
from config.settings import get_settings
from llm.orchestrator import InboundMessage

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Endpoints ─────────────────────────────────────────────────────

@router.get("/webhook", response_class=PlainTextResponse)
async def verify_webhook(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
):
    """Meta webhook verification: echo the challenge when the token matches."""
    settings = get_settings()

    if mode == "subscribe" and token == settings.verify_token:
        logger.info("Webhook verified successfully")
        return PlainTextResponse(challenge or "", status_code=200)

    logger.warning("Webhook verification failed")
    return PlainTextResponse("Verification failed", status_code=403)


@router.post("/webhook")
async def receive_webhook(request: Request, background_tasks: BackgroundTasks):
    """
    Receive message deliveries from WhatsApp.

    Always answers 200 so the platform does not redeliver; payloads without
    messages are acknowledged and ignored.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Webhook body is not valid JSON, ignoring")
        return {"status": "ignored"}

    messages = parse_inbound_messages(payload)
    if not messages:
        logger.debug("Webhook delivery without messages, ignoring")
        return {"status": "ignored"}

    for message in messages:
        background_tasks.add_task(_process_inbound, message)

    return {"status": "accepted", "messages": len(messages)}


# ── Helpers ───────────────────────────────────────────────────────

async def _process_inbound(message: InboundMessage):
    """Run one inbound message through the orchestrator (background task)."""
    services = get_services()
    if not services.is_ready:
        logger.error(f"Services not ready, dropping message from {message.user_id}")
        return

    result = await services.orchestrator.process(message)

    if result.rule:
        record_admission(result.rule)
    record_route(result.route.value, result.delivered)
    if result.completion_ms is not None:
        record_llm_latency(result.completion_ms / 1000)
    record_evicted_sessions(result.evicted_sessions)
    record_active_sessions(services.session_store.size())
