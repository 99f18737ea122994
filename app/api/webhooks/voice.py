"""Vapi voice webhook endpoints."""
import logging
from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse

from app.core.dependencies import get_call_session_manager
from app.services.call_session.manager import CallSessionManager

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/voice/events")
async def handle_voice_event(
    request: Request,
    session_manager: CallSessionManager = Depends(get_call_session_manager),
):
    """
    Handle server messages from Vapi.

    Always acknowledges, so the platform does not retry.
    """
    try:
        body = await request.json()
    except ValueError:
        logger.warning("[VOICE EVENT] Ignoring request with invalid JSON body")
        return JSONResponse({"received": False})

    message = body.get("message") if isinstance(body, dict) else None
    if not isinstance(message, dict):
        logger.warning("[VOICE EVENT] Ignoring request without a message object")
        return JSONResponse({"received": False})

    message_type = message.get("type")
    logger.info(
        f"[VOICE EVENT] Received '{message_type}' - "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )

    try:
        routed = await session_manager.route_server_message(message)
    except Exception as e:
        logger.error(
            f"[VOICE EVENT] Error handling '{message_type}' - "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True
        )
        routed = False

    return JSONResponse({"received": routed})
