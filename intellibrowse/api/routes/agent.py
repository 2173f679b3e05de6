"""
Agent endpoints.

Sessions, buffered and streamed instruction processing, and the current
browser screenshot. Streams use Server-Sent Events, one JSON event per
``data:`` line, and end after the terminal ``complete`` or ``error`` event.
"""

import json
import logging
from contextlib import aclosing
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from ...agent.events import StreamEvent
from ...errors import (
    InvalidInputError,
    ProviderError,
    SessionBusyError,
    SessionNotFoundError,
)
from ...service import AgentService, build_agent_service
from ..schemas import (
    ErrorResponse,
    MessageResponse,
    ProcessRequest,
    ProcessResponse,
    SessionInfoResponse,
    SessionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agent")

_agent_service: Optional[AgentService] = None


def get_agent_service() -> AgentService:
    """Return the process-wide agent service, building it on first use."""
    global _agent_service
    if _agent_service is None:
        _agent_service = build_agent_service()
    return _agent_service


async def shutdown_agent_service() -> None:
    global _agent_service
    if _agent_service is not None:
        await _agent_service.cleanup()
        _agent_service = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


@router.post(
    "/session",
    response_model=SessionResponse,
    summary="Create session",
)
def create_session(service: AgentService = Depends(get_agent_service)) -> SessionResponse:
    return SessionResponse(session_id=service.create_session())


@router.get(
    "/session/{session_id}",
    response_model=SessionInfoResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get session history",
)
def get_session(session_id: str, service: AgentService = Depends(get_agent_service)):
    try:
        info = service.get_session_info(session_id)
    except SessionNotFoundError as e:
        return _error(404, str(e))
    return SessionInfoResponse(
        session_id=info["sessionId"],
        message_history=info["messageHistory"],
    )


@router.delete(
    "/session/{session_id}",
    response_model=MessageResponse,
    summary="Delete session",
)
async def delete_session(
    session_id: str, service: AgentService = Depends(get_agent_service)
) -> MessageResponse:
    await service.cleanup_session(session_id)
    return MessageResponse(message=f"Session {session_id} cleaned up successfully")


@router.post(
    "/process",
    response_model=ProcessResponse,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Process an instruction",
)
async def process_instruction(
    body: ProcessRequest, service: AgentService = Depends(get_agent_service)
):
    try:
        result = await service.process_instruction(body.instruction, body.session_id)
    except InvalidInputError as e:
        return _error(400, str(e))
    except SessionBusyError as e:
        return _error(409, str(e))
    except ProviderError as e:
        logger.error(f"Provider failure while processing instruction: {e}")
        return _error(502, str(e))
    except Exception as e:
        logger.exception(f"Error processing instruction: {e}")
        return _error(500, f"Failed to process instruction: {e}")
    return ProcessResponse(session_id=result.session_id, response=result.response)


def _sse(event: StreamEvent) -> str:
    return f"data: {json.dumps(event.to_dict())}\n\n"


@router.post(
    "/process/stream",
    responses={400: {"model": ErrorResponse}},
    summary="Process an instruction as an event stream",
)
async def process_instruction_stream(
    body: ProcessRequest,
    request: Request,
    service: AgentService = Depends(get_agent_service),
):
    try:
        events = service.process_instruction_stream(body.instruction, body.session_id)
    except InvalidInputError as e:
        return _error(400, str(e))

    async def event_source() -> AsyncIterator[str]:
        async with aclosing(events) as stream:
            async for event in stream:
                if await request.is_disconnected():
                    logger.info("Stream client disconnected, abandoning instruction")
                    break
                yield _sse(event)
                if event.is_terminal:
                    break

    return StreamingResponse(
        event_source(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.get(
    "/screenshot",
    responses={200: {"content": {"image/png": {}}}, 500: {"model": ErrorResponse}},
    summary="Current browser screenshot",
)
async def get_screenshot(service: AgentService = Depends(get_agent_service)):
    try:
        image = await service.get_screenshot()
    except Exception as e:
        logger.error(f"Error taking screenshot: {e}")
        return _error(500, f"Failed to take screenshot: {e}")
    return Response(content=image, media_type="image/png")
