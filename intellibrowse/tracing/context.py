"""
Request-scoped tracing context using Langfuse SDK v3.

One ``TracingContext`` covers one instruction. Observations are created
explicitly from their parent rather than through the OpenTelemetry "current
span", because many sessions interleave on one event loop and an async
generator may resume in a different task context than it started in.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

from .client import get_tracing_client

logger = logging.getLogger(__name__)


@dataclass
class ObservationContext:
    """Handle for an in-flight span or generation."""

    name: str
    _observation: Any = field(default=None, repr=False)
    _start_time: float = field(default_factory=time.time, repr=False)
    _output: Any = field(default=None, repr=False)
    _status: str = field(default="success", repr=False)

    def set_output(self, output: Any) -> None:
        self._output = output

    def set_status(self, status: str) -> None:
        self._status = status

    def end(self) -> None:
        if self._observation is None:
            return
        try:
            update_kwargs: dict[str, Any] = {
                "metadata": {
                    "status": self._status,
                    "duration_ms": round((time.time() - self._start_time) * 1000, 2),
                },
            }
            if self._output is not None:
                update_kwargs["output"] = self._output
            if self._status == "error":
                update_kwargs["level"] = "ERROR"
            self._observation.update(**update_kwargs)
            self._observation.end()
        except Exception as e:
            logger.warning(f"Failed to end observation '{self.name}': {e}")


@dataclass
class TracingContext:
    """
    Tracing state for one instruction.

    All methods degrade to no-ops when the global tracing client is absent
    or disabled.
    """

    execution_id: str
    session_id: Optional[str] = None
    _root: Any = field(default=None, repr=False)
    _enabled: bool = field(default=False, repr=False)
    _start_time: float = field(default_factory=time.time, repr=False)

    def __post_init__(self):
        client = get_tracing_client()
        self._enabled = client is not None and client.enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _parent(self) -> Any:
        if self._root is not None:
            return self._root
        client = get_tracing_client()
        return client.client if client else None

    def start_trace(
        self,
        name: str = "instruction",
        input: Optional[Any] = None,
        metadata: Optional[dict] = None,
    ) -> None:
        """Open the root span for this instruction."""
        if not self._enabled:
            return
        client = get_tracing_client()
        if not client or not client.client:
            return
        try:
            self._root = client.client.start_span(
                name=name,
                input=input,
                metadata={"execution_id": self.execution_id, **(metadata or {})},
            )
            self._root.update_trace(session_id=self.session_id)
            self._start_time = time.time()
        except Exception as e:
            logger.warning(f"[{self.execution_id}] Failed to start trace: {e}")
            self._root = None

    def end_trace(
        self,
        output: Optional[Any] = None,
        status: str = "success",
        metadata: Optional[dict] = None,
    ) -> None:
        """Close the root span."""
        if not self._enabled or self._root is None:
            return
        try:
            self._root.update(
                output=output,
                metadata={
                    "status": status,
                    "duration_ms": round((time.time() - self._start_time) * 1000, 2),
                    **(metadata or {}),
                },
            )
            self._root.end()
        except Exception as e:
            logger.warning(f"[{self.execution_id}] Failed to end trace: {e}")
        finally:
            self._root = None

    @contextmanager
    def span(
        self,
        name: str,
        metadata: Optional[dict] = None,
        input: Optional[Any] = None,
    ) -> Generator[ObservationContext, None, None]:
        """Track a unit of work such as a tool call."""
        ctx = ObservationContext(name=name)
        parent = self._parent() if self._enabled else None
        if parent is not None:
            try:
                ctx._observation = parent.start_span(name=name, input=input, metadata=metadata)
            except Exception as e:
                logger.warning(f"Failed to start span '{name}': {e}")
        try:
            yield ctx
        except Exception:
            ctx.set_status("error")
            raise
        finally:
            ctx.end()

    @contextmanager
    def generation(
        self,
        name: str,
        model: str,
        input: Optional[Any] = None,
        metadata: Optional[dict] = None,
        model_parameters: Optional[dict] = None,
    ) -> Generator[ObservationContext, None, None]:
        """Track one model call."""
        ctx = ObservationContext(name=name)
        parent = self._parent() if self._enabled else None
        if parent is not None:
            try:
                ctx._observation = parent.start_generation(
                    name=name,
                    model=model,
                    input=input,
                    metadata=metadata,
                    model_parameters=model_parameters,
                )
            except Exception as e:
                logger.warning(f"Failed to start generation '{name}': {e}")
        try:
            yield ctx
        except Exception:
            ctx.set_status("error")
            raise
        finally:
            ctx.end()
