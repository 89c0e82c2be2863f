"""
Admin API Routes for the Ammin insurance relay.

Read-only views over live sessions plus on-demand maintenance.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..middleware.auth import api_key_auth
from ..middleware.metrics import record_active_sessions, record_evicted_sessions
from ..services import get_services

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(api_key_auth)])

system_start_time = datetime.now(timezone.utc)


# ── Models ────────────────────────────────────────────

class SessionSummary(BaseModel):
    user_id: str
    first_contact: str
    last_seen: str
    message_count: int
    topics: List[str]
    last_message: Optional[str] = None
    last_domain_message: Optional[str] = None
    is_insurance_context: bool


class HistoryItem(BaseModel):
    role: str
    content: str
    timestamp: str


class SessionDetail(SessionSummary):
    recent_messages: List[HistoryItem]


class RelayStats(BaseModel):
    active_sessions: int
    in_context_sessions: int
    buffered_messages: int
    topic_distribution: Dict[str, int]
    uptime_seconds: float
    timestamp: str


class SweepResult(BaseModel):
    evicted: int
    remaining: int


# ── Endpoints ─────────────────────────────────────────

@router.get("/sessions", response_model=List[SessionSummary])
async def list_sessions():
    """Live sessions, most recently active first."""
    services = get_services()
    if not services.is_ready:
        return []
    return [SessionSummary(**s.to_summary()) for s in services.session_store.snapshot()]


@router.get("/sessions/{user_id}", response_model=SessionDetail)
async def get_session(user_id: str):
    """One session with its full buffered history."""
    services = get_services()
    session = services.session_store.get(user_id) if services.is_ready else None
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return SessionDetail(**session.to_debug(history_length=session.max_messages))


@router.delete("/sessions/{user_id}")
async def delete_session(user_id: str):
    """Forget a user's session. Refused while a message for it is being handled."""
    services = get_services()
    store = services.session_store if services.is_ready else None
    if store is None or store.get(user_id) is None:
        raise HTTPException(status_code=404, detail="Session not found")
    if not store.remove(user_id):
        raise HTTPException(status_code=409, detail="Session is being handled, try again")

    record_active_sessions(store.size())
    return {"message": "Session cleared", "user_id": user_id}


@router.post("/sessions/sweep", response_model=SweepResult)
async def sweep_sessions():
    """Evict idle sessions now instead of waiting for traffic to trigger it."""
    services = get_services()
    if not services.is_ready:
        return SweepResult(evicted=0, remaining=0)

    evicted = services.session_store.sweep_expired()
    remaining = services.session_store.size()
    record_evicted_sessions(evicted)
    record_active_sessions(remaining)
    return SweepResult(evicted=evicted, remaining=remaining)


@router.get("/stats", response_model=RelayStats)
async def get_stats():
    """Aggregate counters over live sessions."""
    services = get_services()
    sessions = services.session_store.snapshot() if services.is_ready else []

    topic_distribution: Dict[str, int] = {}
    for session in sessions:
        for topic in session.topics:
            topic_distribution[topic] = topic_distribution.get(topic, 0) + 1

    now = datetime.now(timezone.utc)
    return RelayStats(
        active_sessions=len(sessions),
        in_context_sessions=sum(1 for s in sessions if s.is_insurance_context),
        buffered_messages=sum(len(s.messages) for s in sessions),
        topic_distribution=topic_distribution,
        uptime_seconds=(now - system_start_time).total_seconds(),
        timestamp=now.isoformat(),
    )


@router.get("/config")
async def get_config() -> Dict[str, Any]:
    """Current runtime configuration (safe subset)."""
    services = get_services()
    s = services.settings
    if s:
        return {
            "llm_provider": s.llm_provider,
            "llm_model_id": s.llm_model_id,
            "max_tokens": s.max_tokens,
            "temperature": s.temperature,
            "session_idle_minutes": s.session_idle_minutes,
            "session_sweep_probability": s.session_sweep_probability,
            "history_max_messages": s.history_max_messages,
            "classifier_recent_window": s.classifier_recent_window,
            "short_message_threshold": s.short_message_threshold,
            "completion_context_messages": s.completion_context_messages,
            "whatsapp_enabled": s.whatsapp_enabled,
        }
    return {}
