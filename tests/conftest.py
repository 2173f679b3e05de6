"""
Pytest configuration and fixtures for IntelliBrowse tests.
"""

import pytest

from intellibrowse.tools.registry import ToolDefinition, ToolRegistry
from intellibrowse.tracing import client as tracing_client_module


class ScriptedModel:
    """Model provider that replays canned responses in order.

    An Exception in the script is raised instead of returned. Streaming
    splits each response into small fragments.
    """

    model = "scripted-model"

    def __init__(self, responses, fragment_size: int = 7):
        self.responses = list(responses)
        self.fragment_size = fragment_size
        self.calls: list[list[dict]] = []
        self.stops: list = []

    async def complete(self, messages, stop=None, **kwargs):
        self.calls.append([dict(m) for m in messages])
        self.stops.append(stop)
        if not self.responses:
            raise AssertionError("ScriptedModel ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def stream(self, messages, stop=None, **kwargs):
        text = await self.complete(messages, stop=stop)
        for i in range(0, len(text), self.fragment_size):
            yield text[i:i + self.fragment_size]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


async def _search(params):
    return {"query": params.get("query", ""), "results": [{"title": "AI weekly", "url": "https://ai.example.com"}]}


async def _fail(params):
    raise RuntimeError("boom")


@pytest.fixture
def registry():
    """Registry with a search tool and a tool that always fails."""
    return ToolRegistry([
        ToolDefinition(
            name="browser.search",
            description="Search the web",
            handler=_search,
            parameters={"query": "Search terms"},
        ),
        ToolDefinition(
            name="browser.fail",
            description="Always fails",
            handler=_fail,
        ),
    ])


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def reset_tracing_client():
    """Keep the global tracing client unset between tests."""
    tracing_client_module._tracing_client = None
    yield
    tracing_client_module._tracing_client = None


@pytest.fixture
def make_model():
    """Factory for ScriptedModel instances."""
    return ScriptedModel
