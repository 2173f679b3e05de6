"""
Reason-Act-Observe agent.

A session's transcript is driven by ``AgentLoop``: the model reasons, an
``Action:`` line is parsed into a tool call, the tool's result is fed back
as an observation, until the model answers without an action.
"""

from .action_parser import ToolCall, parse_action, parse_params
from .events import StreamEvent
from .state import ConversationState, Message
from .prompt import build_system_prompt
from .loop import AgentLoop, format_observation

__all__ = [
    "ToolCall",
    "parse_action",
    "parse_params",
    "StreamEvent",
    "ConversationState",
    "Message",
    "build_system_prompt",
    "AgentLoop",
    "format_observation",
]
