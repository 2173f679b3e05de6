"""
Pydantic schemas for the agent API.

Field aliases keep the camelCase wire names used by the browser client.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class _CamelModel(BaseModel):
    model_config = {"populate_by_name": True}


class ProcessRequest(_CamelModel):
    """Request body for /process and /process/stream."""

    instruction: str = Field(default="", description="Natural-language instruction for the agent")
    session_id: Optional[str] = Field(
        default=None,
        alias="sessionId",
        description="Existing session to continue; omitted or unknown starts a new one",
    )


class HistoryMessage(BaseModel):
    """A single transcript entry."""

    role: Literal["system", "user", "assistant"]
    content: str


class SessionResponse(_CamelModel):
    success: bool = True
    session_id: str = Field(..., alias="sessionId")


class SessionInfoResponse(_CamelModel):
    success: bool = True
    session_id: str = Field(..., alias="sessionId")
    message_history: list[HistoryMessage] = Field(default_factory=list, alias="messageHistory")


class ProcessResponse(_CamelModel):
    success: bool = True
    session_id: str = Field(..., alias="sessionId")
    response: str = Field(..., description="The agent's final answer")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Error body returned with every non-2xx status."""

    success: bool = False
    error: str


class HealthResponse(BaseModel):
    """Response body for /health endpoint."""

    status: Literal["ok", "unhealthy"]
    version: str
    timestamp: str
