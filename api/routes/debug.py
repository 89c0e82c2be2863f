"""
Debug routes: recent history per session for troubleshooting.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from ..middleware.auth import api_key_auth
from ..services import get_services

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(api_key_auth)])


@router.get("/debug/conversations")
async def debug_conversations() -> List[Dict[str, Any]]:
    services = get_services()
    if not services.is_ready:
        return []
    history_length = services.settings.debug_history_messages
    return [s.to_debug(history_length=history_length) for s in services.session_store.snapshot()]
