"""
Error types raised across the orchestration boundary.

Tool and parsing faults never appear here: the agent loop folds them into
the conversation as observations so the model can adapt.
"""


class AgentError(Exception):
    """Base class for IntelliBrowse errors."""


class InvalidInputError(AgentError, ValueError):
    """The instruction was missing or empty."""


class SessionNotFoundError(AgentError):
    """No live session exists for the given id."""

    def __init__(self, session_id: str | None):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class SessionBusyError(AgentError):
    """An instruction is already running for this session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(
            f"Session {session_id} is already processing an instruction"
        )


class ProviderError(AgentError):
    """The model provider call failed (network, quota, bad response)."""
