import json
from collections.abc import AsyncIterator
from functools import lru_cache
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from interviewcoach.application.factory import create_practice_service
from interviewcoach.application.practice_service import TopicPracticeService
from interviewcoach.core.domain.errors import PracticeError

router = APIRouter(prefix="/practice")
logger = structlog.get_logger().bind(component="practice_routes")

STATUS_BY_CODE = {"NOT_FOUND": 404, "FORBIDDEN": 403, "BAD_REQUEST": 400}


@lru_cache
def get_practice_service() -> TopicPracticeService:
    """Process-wide service instance (overridable in tests)."""
    return create_practice_service()


class StartSessionRequest(BaseModel):
    """Request to start a practice session."""
    target_position: str = Field(min_length=1)
    resume_text: Optional[str] = None


class SendMessageRequest(BaseModel):
    """A user message for the active topic."""
    message: str


def _http_error(error: PracticeError) -> HTTPException:
    return HTTPException(status_code=STATUS_BY_CODE.get(error.code, 500), detail=error.message)


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, default=str, ensure_ascii=False)}\n\n"


@router.post("/sessions")
async def start_session(
    request: StartSessionRequest,
    x_user_id: str = Header(...),
    service: TopicPracticeService = Depends(get_practice_service),
):
    """Start a session and return the first topic with its opening message."""
    result = await service.start_session(x_user_id, request.target_position, request.resume_text)
    return result.to_dict()


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    x_user_id: str = Header(...),
    service: TopicPracticeService = Depends(get_practice_service),
):
    try:
        session = await service.get_session(session_id, x_user_id)
    except PracticeError as e:
        raise _http_error(e)
    return session.to_dict()


@router.post("/sessions/{session_id}/messages")
async def send_message(
    session_id: str,
    request: SendMessageRequest,
    x_user_id: str = Header(...),
    service: TopicPracticeService = Depends(get_practice_service),
):
    try:
        result = await service.send_message(session_id, x_user_id, request.message)
    except PracticeError as e:
        raise _http_error(e)
    return result.to_dict()


@router.post("/sessions/{session_id}/messages/stream")
async def send_message_stream(
    session_id: str,
    request: SendMessageRequest,
    x_user_id: str = Header(...),
    service: TopicPracticeService = Depends(get_practice_service),
):
    """Send a message and receive the response as SSE ``content`` chunks and a ``done`` frame."""
    try:
        frames = await service.send_message_stream(session_id, x_user_id, request.message)
    except PracticeError as e:
        raise _http_error(e)

    async def event_generator() -> AsyncIterator[str]:
        async for frame in frames:
            yield _sse(frame)

    return StreamingResponse(event_generator(), media_type="text/event-stream")


@router.post("/sessions/{session_id}/end")
async def end_session(
    session_id: str,
    x_user_id: str = Header(...),
    service: TopicPracticeService = Depends(get_practice_service),
):
    """End the session: feedback per topic, company matches and a summary."""
    try:
        result = await service.end_session(session_id, x_user_id)
    except PracticeError as e:
        raise _http_error(e)
    return result.to_dict()


@router.post("/sessions/{session_id}/recommendations/stream")
async def stream_recommendations(
    session_id: str,
    x_user_id: str = Header(...),
    service: TopicPracticeService = Depends(get_practice_service),
):
    """Run the job recommendation agent and stream its events via SSE.

    The stream closes after the ``agent_complete`` event.
    """
    try:
        events = await service.stream_recommendations(session_id, x_user_id)
    except PracticeError as e:
        raise _http_error(e)

    async def event_generator() -> AsyncIterator[str]:
        async for event in events:
            yield _sse(event.to_dict())

    return StreamingResponse(event_generator(), media_type="text/event-stream")
