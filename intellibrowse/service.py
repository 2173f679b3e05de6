"""
Agent Service - the orchestration facade.

Owns the session store and the shared collaborators (model client, tool
registry) and routes each instruction to the right session's agent loop.
The HTTP API and the CLI both talk to this class only.
"""

import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from .agent.events import StreamEvent
from .agent.loop import DEFAULT_MAX_TURNS, AgentLoop, ModelProvider
from .errors import AgentError, InvalidInputError, SessionNotFoundError
from .models import AppConfig
from .sessions import Session, SessionStore
from .tools import (
    BrowserTools,
    DocumentInliner,
    DocumentTools,
    MockBrowser,
    RemoteBrowser,
    ScreenParser,
    ScreenParserTools,
    ToolRegistry,
    build_default_registry,
)
from .tracing import TracingContext

logger = logging.getLogger(__name__)


@dataclass
class InstructionResult:
    session_id: str
    response: str


def _validate_instruction(instruction: Optional[str]) -> str:
    if not instruction or not instruction.strip():
        raise InvalidInputError("Instruction is required")
    return instruction


class AgentService:
    """
    Facade over sessions and their agent loops.

    An unknown or missing ``session_id`` on the process operations starts a
    new session. Expired sessions are evicted lazily on every call.
    """

    def __init__(
        self,
        llm_client: ModelProvider,
        registry: ToolRegistry,
        store: Optional[SessionStore] = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        stop: Optional[list[str]] = None,
        browser: Optional[BrowserTools] = None,
        closeables: Optional[list] = None,
    ):
        self.llm_client = llm_client
        self.registry = registry
        self.store = store if store is not None else SessionStore()
        self.max_turns = max_turns
        self.stop = stop
        self.browser = browser
        self._closeables = list(closeables or [])

    def _new_loop(self, session_id: str) -> AgentLoop:
        return AgentLoop(
            session_id=session_id,
            model=self.llm_client,
            registry=self.registry,
            max_turns=self.max_turns,
            stop=self.stop,
        )

    def _resolve(self, session_id: Optional[str]) -> tuple[Session, bool]:
        self.store.evict_expired()
        session = self.store.get(session_id)
        if session is not None:
            return session, False
        if session_id:
            logger.info(f"Session {session_id} not found, starting a new one")
        return self.store.create(self._new_loop), True

    def create_session(self) -> str:
        """Create an empty session and return its id."""
        self.store.evict_expired()
        return self.store.create(self._new_loop).id

    async def process_instruction(
        self, instruction: str, session_id: Optional[str] = None
    ) -> InstructionResult:
        """
        Run an instruction to completion.

        Raises:
            InvalidInputError: empty instruction (no session is created)
            SessionBusyError: the session is already processing
            ProviderError: the model provider failed
        """
        _validate_instruction(instruction)
        session, _ = self._resolve(session_id)

        tracing = TracingContext(execution_id=session.id, session_id=session.id)
        tracing.start_trace(name="process_instruction", input={"instruction": instruction})
        try:
            response = await session.loop.run(instruction, tracing=tracing)
        except Exception as e:
            tracing.end_trace(output={"error": str(e)}, status="error")
            raise
        tracing.end_trace(output={"response": response})
        return InstructionResult(session_id=session.id, response=response)

    def process_instruction_stream(
        self, instruction: str, session_id: Optional[str] = None
    ) -> AsyncIterator[StreamEvent]:
        """
        Run an instruction, yielding events as they happen.

        Validation happens immediately, so an empty instruction raises
        InvalidInputError here rather than on first iteration.
        """
        _validate_instruction(instruction)
        return self._stream(instruction, session_id)

    async def _stream(
        self, instruction: str, session_id: Optional[str]
    ) -> AsyncIterator[StreamEvent]:
        session, created = self._resolve(session_id)
        if created:
            yield StreamEvent.session(session.id)

        tracing = TracingContext(execution_id=session.id, session_id=session.id)
        tracing.start_trace(
            name="process_instruction_stream", input={"instruction": instruction}
        )
        final: Optional[StreamEvent] = None
        try:
            async with aclosing(session.loop.stream(instruction, tracing=tracing)) as events:
                async for event in events:
                    if event.is_terminal:
                        final = event
                    yield event
        finally:
            if final is None:
                tracing.end_trace(status="cancelled")
            else:
                tracing.end_trace(
                    output={"content": final.content},
                    status="success" if final.type == "complete" else "error",
                )

    def get_session_info(self, session_id: str) -> dict:
        """
        Return ``{"sessionId", "messageHistory"}`` for a live session.

        Raises:
            SessionNotFoundError: no such session
        """
        self.store.evict_expired()
        session = self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return {
            "sessionId": session.id,
            "messageHistory": session.loop.get_message_history(),
        }

    async def cleanup_session(self, session_id: str) -> None:
        """Remove a session. Unknown ids are ignored."""
        self.store.delete(session_id)

    async def get_screenshot(self) -> bytes:
        """Capture the browser's current page."""
        if self.browser is None:
            raise AgentError("No browser configured")
        return await self.browser.capture()

    def tool_names(self) -> list[str]:
        return self.registry.names()

    async def cleanup(self) -> None:
        """Drop all sessions and close collaborator connections."""
        self.store.clear()
        for resource in self._closeables:
            try:
                await resource.close()
            except Exception as e:
                logger.warning(f"Error closing {type(resource).__name__}: {e}")


def build_agent_service(config: Optional[AppConfig] = None) -> AgentService:
    """Wire the default collaborators from configuration."""
    from .llm_call import LLMClient

    if config is None:
        from .config import config as app_config
        config = app_config

    llm_client = LLMClient(
        base_url=config.model.base_url,
        model=config.model.model,
        api_key=config.model.api_key,
        temperature=config.model.temperature,
        max_tokens=config.model.max_tokens,
        reasoning_effort=config.model.reasoning_effort,
        timeout=config.model.timeout,
    )

    if config.browser.use_mock:
        logger.info("No browser service configured, using the mock browser")
        backend = MockBrowser()
    else:
        backend = RemoteBrowser(
            service_url=config.browser.service_url,
            api_key=config.browser.api_key,
            timeout=config.browser.timeout,
        )
    browser = BrowserTools(backend)
    screen_parser = ScreenParserTools(
        ScreenParser(
            endpoint=config.screen_parser.endpoint,
            api_key=config.screen_parser.api_key,
            timeout=config.screen_parser.timeout,
        ),
        browser=browser,
    )
    documents = DocumentTools(DocumentInliner(llm_client))

    registry = build_default_registry(browser, screen_parser, documents)
    logger.info(f"Registered {len(registry)} tools: {', '.join(registry.names())}")

    return AgentService(
        llm_client=llm_client,
        registry=registry,
        store=SessionStore(ttl_seconds=config.sessions.ttl_seconds),
        max_turns=config.agent.max_turns,
        stop=config.agent.stop,
        browser=browser,
        closeables=[browser, screen_parser, llm_client],
    )
