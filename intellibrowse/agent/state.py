"""
Conversation state for one agent session.

The transcript is append-only: one system message at index 0, then user
instructions, assistant outputs and ``Observation:`` wrappers in order.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional

Role = Literal["system", "user", "assistant"]

OBSERVATION_PREFIX = "Observation: "


@dataclass
class Message:
    """A single transcript entry."""

    role: Role
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class ConversationState:
    """Ordered transcript plus the per-instruction turn counter."""

    system_prompt: str
    max_turns: int = 15
    messages: list[Message] = field(default_factory=list)
    turn_count: int = 0

    def __post_init__(self):
        if not self.messages:
            self.messages.append(Message(role="system", content=self.system_prompt))

    def begin_instruction(self, instruction: str) -> None:
        """Append a new user instruction and reset the turn counter."""
        self.messages.append(Message(role="user", content=instruction))
        self.turn_count = 0

    def add_assistant(self, content: str) -> None:
        self.messages.append(Message(role="assistant", content=content))

    def add_observation(self, observation: str) -> None:
        """Record a tool result and count the completed turn."""
        self.messages.append(
            Message(role="user", content=f"{OBSERVATION_PREFIX}{observation}")
        )
        self.turn_count += 1

    @property
    def budget_exhausted(self) -> bool:
        return self.turn_count >= self.max_turns

    def last_assistant(self, since: int = 0) -> Optional[str]:
        """Content of the most recent assistant message at or after ``since``."""
        for message in reversed(self.messages[since:]):
            if message.role == "assistant":
                return message.content
        return None

    def as_prompt(self) -> list[dict]:
        """Messages in the chat-completions wire format."""
        return [m.to_dict() for m in self.messages]

    def history(self) -> list[dict]:
        """A copy of the transcript safe to hand to callers."""
        return self.as_prompt()

    def __len__(self) -> int:
        return len(self.messages)
