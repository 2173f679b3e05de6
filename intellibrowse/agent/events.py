"""
Events emitted while an instruction is processed.

Field names in ``to_dict`` are the external wire contract consumed by
stream clients.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional

EventType = Literal["session", "assistant", "toolCall", "observation", "complete", "error"]

TERMINAL_EVENT_TYPES = frozenset({"complete", "error"})


@dataclass
class StreamEvent:
    """One step of the Reason-Act-Observe cycle as seen by a client."""

    type: EventType
    content: Optional[str] = None
    session_id: Optional[str] = None
    tool: Optional[str] = None
    params: dict[str, str] = field(default_factory=dict)
    # Internal only: why an error event ended the instruction
    reason: Optional[str] = field(default=None, compare=False)

    @classmethod
    def session(cls, session_id: str) -> "StreamEvent":
        return cls(type="session", session_id=session_id)

    @classmethod
    def assistant(cls, content: str) -> "StreamEvent":
        return cls(type="assistant", content=content)

    @classmethod
    def tool_call(cls, tool: str, params: dict[str, str]) -> "StreamEvent":
        return cls(type="toolCall", tool=tool, params=dict(params))

    @classmethod
    def observation(cls, content: str) -> "StreamEvent":
        return cls(type="observation", content=content)

    @classmethod
    def complete(cls, content: str) -> "StreamEvent":
        return cls(type="complete", content=content)

    @classmethod
    def error(cls, content: str, reason: Optional[str] = None) -> "StreamEvent":
        return cls(type="error", content=content, reason=reason)

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENT_TYPES

    def to_dict(self) -> dict:
        if self.type == "session":
            return {"type": "session", "sessionId": self.session_id}
        if self.type == "toolCall":
            return {"type": "toolCall", "tool": self.tool, "params": dict(self.params)}
        return {"type": self.type, "content": self.content}
