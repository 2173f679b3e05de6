"""
Reason-Act-Observe loop for one agent session.

The cycle is implemented once, as an async generator of ``StreamEvent``:

1. REASONING - send the whole transcript to the model (stopping at
   ``Observation:``) and append its text as an assistant message.
2. ACTING - parse an ``Action:`` line; none means the text is the answer.
3. OBSERVING - run the tool, append ``Observation: <result>`` and go again.

Streaming callers consume the generator directly and see model output
fragment by fragment. Buffered callers use ``run()``, which drains the same
generator with whole-message model calls and returns the terminal payload,
so both modes share one state machine.
"""

import asyncio
import json
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Optional, Protocol

from ..errors import InvalidInputError, ProviderError, SessionBusyError
from ..tools.registry import ToolRegistry
from ..tracing import TracingContext
from .action_parser import ToolCall, parse_action
from .events import StreamEvent
from .prompt import build_system_prompt
from .state import ConversationState

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 15
DEFAULT_STOP = ["Observation:"]

# Terminal error reasons carried on StreamEvent.reason
BUDGET_EXHAUSTED = "budget_exhausted"
PROVIDER_FAILURE = "provider_failure"
SESSION_BUSY = "session_busy"
INTERNAL_FAULT = "internal_fault"

BUDGET_EXHAUSTED_MESSAGE = "Maximum conversation turns reached."
BUDGET_EXHAUSTED_NOTE = "\n\n[Note: Maximum conversation turns reached]"
BUDGET_EXHAUSTED_FALLBACK = "Maximum conversation turns reached without a final answer."


class ModelProvider(Protocol):
    """The completion backend the loop reasons with."""

    async def complete(self, messages: list[dict], stop: Optional[list[str]] = None) -> str: ...

    def stream(
        self, messages: list[dict], stop: Optional[list[str]] = None
    ) -> AsyncIterator[str]: ...


def format_observation(result: Any) -> str:
    """Serialize a tool result for the transcript."""
    if isinstance(result, str):
        return result
    if isinstance(result, (bytes, bytearray)):
        return f"<{len(result)} bytes of binary data>"
    try:
        return json.dumps(result, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(result)


class AgentLoop:
    """
    Drives one session's conversation through model calls and tool dispatch.

    The transcript persists across instructions; the turn counter resets at
    the start of each one. Only one instruction may run at a time.
    """

    def __init__(
        self,
        session_id: str,
        model: ModelProvider,
        registry: ToolRegistry,
        system_prompt: Optional[str] = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        stop: Optional[list[str]] = None,
    ):
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.session_id = session_id
        self.model = model
        self.registry = registry
        self.stop = list(stop) if stop else list(DEFAULT_STOP)
        self.state = ConversationState(
            system_prompt=system_prompt or build_system_prompt(registry),
            max_turns=max_turns,
        )
        self._lock = asyncio.Lock()
        self._instruction_start = len(self.state)

    @property
    def busy(self) -> bool:
        """True while an instruction is being processed."""
        return self._lock.locked()

    def get_message_history(self) -> list[dict]:
        return self.state.history()

    async def run(self, instruction: str, tracing: Optional[TracingContext] = None) -> str:
        """
        Process an instruction to completion and return the answer.

        Raises:
            InvalidInputError: if the instruction is empty
            SessionBusyError: if another instruction is running
            ProviderError: if the model call fails
        """
        terminal: Optional[StreamEvent] = None
        async with aclosing(self._cycle(instruction, incremental=False, tracing=tracing)) as events:
            async for event in events:
                if event.is_terminal:
                    terminal = event
        if terminal is not None and terminal.type == "complete":
            return terminal.content or ""
        return self._best_effort_answer()

    async def stream(
        self, instruction: str, tracing: Optional[TracingContext] = None
    ) -> AsyncIterator[StreamEvent]:
        """
        Process an instruction, yielding events as they happen.

        Exactly one terminal event (``complete`` or ``error``) ends the
        sequence. Provider failures and busy sessions surface as ``error``
        events; an empty instruction still raises InvalidInputError.
        """
        try:
            # aclosing releases the session lock as soon as a client walks away
            async with aclosing(self._cycle(instruction, incremental=True, tracing=tracing)) as events:
                async for event in events:
                    yield event
        except ProviderError as e:
            yield StreamEvent.error(str(e), reason=PROVIDER_FAILURE)
        except SessionBusyError as e:
            yield StreamEvent.error(str(e), reason=SESSION_BUSY)
        except InvalidInputError:
            raise
        except Exception as e:
            logger.exception(f"[{self.session_id}] Agent loop failed: {e}")
            yield StreamEvent.error(f"Agent loop failed: {e}", reason=INTERNAL_FAULT)

    async def _cycle(
        self,
        instruction: str,
        incremental: bool,
        tracing: Optional[TracingContext],
    ) -> AsyncIterator[StreamEvent]:
        if not instruction or not instruction.strip():
            raise InvalidInputError("Instruction is required")
        if self._lock.locked():
            raise SessionBusyError(self.session_id)

        tracing = tracing or TracingContext(execution_id=self.session_id)
        async with self._lock:
            self._instruction_start = len(self.state)
            self.state.begin_instruction(instruction)
            logger.info(f"[{self.session_id}] Processing instruction: {instruction[:100]}")

            pending: Optional[ToolCall] = None
            streamed: Optional[list[str]] = None
            try:
                while not self.state.budget_exhausted:
                    step_number = self.state.turn_count + 1
                    with tracing.generation(
                        name="agent_llm",
                        model=getattr(self.model, "model", "unknown"),
                        input={"messages": self.state.as_prompt()},
                        metadata={"step_number": step_number, "streaming": incremental},
                    ) as gen:
                        if incremental:
                            fragments = streamed = []
                            async for fragment in self.model.stream(self.state.as_prompt(), stop=self.stop):
                                fragments.append(fragment)
                                yield StreamEvent.assistant(fragment)
                            text = "".join(fragments)
                        else:
                            text = await self.model.complete(self.state.as_prompt(), stop=self.stop)
                            yield StreamEvent.assistant(text)
                        gen.set_output(text)

                    self.state.add_assistant(text)
                    streamed = None
                    tool_call = parse_action(text)
                    if tool_call is None:
                        logger.info(f"[{self.session_id}] Completed in {step_number} turn(s)")
                        yield StreamEvent.complete(text)
                        return

                    logger.info(
                        f"[{self.session_id}] Step {step_number}: "
                        f"{tool_call.tool_name}({json.dumps(tool_call.params)})"
                    )
                    pending = tool_call
                    yield StreamEvent.tool_call(tool_call.tool_name, tool_call.params)
                    observation = await self._execute_tool(tool_call, step_number, tracing)
                    self.state.add_observation(observation)
                    pending = None
                    yield StreamEvent.observation(observation)

                logger.warning(
                    f"[{self.session_id}] Max turns ({self.state.max_turns}) reached "
                    f"without final answer"
                )
                yield StreamEvent.error(BUDGET_EXHAUSTED_MESSAGE, reason=BUDGET_EXHAUSTED)
            finally:
                if streamed:
                    # abandoned mid-reply: keep what the client already saw
                    self.state.add_assistant("".join(streamed))
                if pending is not None:
                    # abandoned mid-action: keep the transcript ending in an observation
                    self.state.add_observation(
                        f"Error executing tool {pending.tool_name}: cancelled"
                    )

    async def _execute_tool(
        self, tool_call: ToolCall, step_number: int, tracing: TracingContext
    ) -> str:
        """Run a tool and turn its outcome, good or bad, into an observation."""
        tool = self.registry.get(tool_call.tool_name)
        if tool is None:
            logger.warning(f"[{self.session_id}] Unknown tool: {tool_call.tool_name}")
            available = ", ".join(self.registry.names())
            return (
                f'Error: Tool "{tool_call.tool_name}" not found. '
                f"Available tools are: {available}"
            )

        with tracing.span(
            name=f"tool_{tool_call.tool_name}",
            metadata={"step_number": step_number},
            input={"tool_name": tool_call.tool_name, "params": tool_call.params},
        ) as span:
            try:
                result = await tool.invoke(tool_call.params)
            except Exception as e:
                logger.error(f"[{self.session_id}] Tool execution failed: {tool_call.tool_name} - {e}")
                span.set_status("error")
                return f"Error executing tool {tool_call.tool_name}: {e}"

            observation = format_observation(result)
            span.set_output({"result": observation[:500]})
            return observation

    def _best_effort_answer(self) -> str:
        last = self.state.last_assistant(since=self._instruction_start)
        if last is None:
            return BUDGET_EXHAUSTED_FALLBACK
        return last + BUDGET_EXHAUSTED_NOTE
