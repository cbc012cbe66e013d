"""Video creation routes: start, confirm, and follow progress."""

import json
import logging
from typing import AsyncIterator

from api.dependencies import get_orchestrator, get_progress_channel
from api.progress_channel import ProgressChannel, ProgressSubscription
from api.schemas import (
    ConfirmVideoRequest,
    CreateVideoRequest,
    ErrorResponse,
    SuccessResponse,
    VideoCreatedResponse,
)
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from models.progress import ProgressStep
from models.session import InvalidRequestError, RequestParams, SessionNotFoundError
from shorts_agent.orchestrator import SessionOrchestrator
from starlette.responses import StreamingResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Videos"])

SESSION_NOT_FOUND = "Session not found or expired"

TERMINAL_STEPS = {ProgressStep.COMPLETE.value, ProgressStep.ERROR.value}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@router.post(
    "/api/create-video",
    response_model=VideoCreatedResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Start a video",
    description="Validates the request, starts a session in the background and returns its id.",
)
async def create_video(
    body: CreateVideoRequest,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """Start a video-creation session."""
    try:
        params = RequestParams.from_payload(body.model_dump(exclude_none=True))
    except InvalidRequestError as e:
        logger.info(f"Rejected create-video request: {e}")
        return _error(400, str(e))

    session_id = await orchestrator.start(params)
    return {"success": True, "sessionId": session_id, "message": "Video creation started"}


@router.post(
    "/api/confirm-video",
    response_model=SuccessResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Approve a previewed script",
    description="Resumes a session that is waiting for preview approval.",
)
async def confirm_video(
    body: ConfirmVideoRequest,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """Resume a preview-waiting session."""
    try:
        await orchestrator.confirm(body.sessionId or "")
    except SessionNotFoundError:
        return _error(404, SESSION_NOT_FOUND)
    return {"success": True, "message": "Resuming video generation"}


async def sse_events(
    channel: ProgressChannel, subscription: ProgressSubscription
) -> AsyncIterator[str]:
    """Render a subscription as server-sent events, ending after the terminal event.

    Args:
        channel: Channel the subscription belongs to
        subscription: Subscription to drain

    Yields:
        ``data: {json}`` frames
    """
    try:
        async for event in subscription:
            yield f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
            if event.get("step") in TERMINAL_STEPS:
                break
    finally:
        channel.unsubscribe(subscription.session_id, subscription)


@router.get(
    "/api/progress/{session_id}",
    summary="Progress stream (SSE)",
    description="Server-sent events for one session. The stream ends after the complete or error event.",
)
async def progress_stream(
    session_id: str,
    channel: ProgressChannel = Depends(get_progress_channel),
) -> StreamingResponse:
    """Subscribe to a session's progress as an event stream."""
    # Subscribe before returning so no event is missed while the response starts
    subscription = channel.subscribe(session_id)
    return StreamingResponse(
        sse_events(channel, subscription),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.websocket("/ws/progress/{session_id}")
async def progress_websocket(websocket: WebSocket, session_id: str) -> None:
    """WebSocket endpoint carrying the same events as the SSE stream.

    Args:
        websocket: WebSocket connection
        session_id: Session to follow
    """
    channel = get_progress_channel()
    await websocket.accept()
    subscription = channel.subscribe(session_id)

    try:
        async for event in subscription:
            await websocket.send_json(event)
            if event.get("step") in TERMINAL_STEPS:
                break
        await websocket.close()
    except WebSocketDisconnect:
        logger.info(f"Progress WebSocket for session {session_id} disconnected")
    except Exception as e:
        logger.error(f"WebSocket error for session {session_id}: {e}")
    finally:
        channel.unsubscribe(session_id, subscription)
