"""Tests for the /api/agent endpoints."""

import json

import pytest
from fastapi.testclient import TestClient

from intellibrowse.api.main import app
from intellibrowse.api.routes.agent import get_agent_service
from intellibrowse.errors import ProviderError
from intellibrowse.service import AgentService
from intellibrowse.sessions import SessionStore
from intellibrowse.tools import BrowserTools, MockBrowser

client = TestClient(app)

SEARCH_STEP = 'Thought: search first.\nAction: browser.search(query="artificial intelligence news")'


@pytest.fixture
def service_factory(registry, make_model):
    """Install an AgentService driven by a scripted model."""

    def install(responses):
        service = AgentService(
            llm_client=make_model(responses),
            registry=registry,
            store=SessionStore(),
            browser=BrowserTools(MockBrowser()),
        )
        app.dependency_overrides[get_agent_service] = lambda: service
        return service

    yield install
    app.dependency_overrides.pop(get_agent_service, None)


def parse_sse(body: str) -> list[dict]:
    events = []
    for block in body.split("\n\n"):
        if block.startswith("data: "):
            events.append(json.loads(block[len("data: "):]))
    return events


class TestSessionEndpoints:
    """Tests for session routes."""

    def test_create_session(self, service_factory):
        """POST /session returns a new id."""
        service = service_factory([])
        response = client.post("/api/agent/session")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["sessionId"] in service.store

    def test_get_session(self, service_factory):
        """GET /session/{id} returns the transcript."""
        service = service_factory([])
        session_id = service.create_session()

        data = client.get(f"/api/agent/session/{session_id}").json()

        assert data["sessionId"] == session_id
        assert data["messageHistory"][0]["role"] == "system"

    def test_get_unknown_session(self, service_factory):
        """Unknown sessions are 404."""
        service_factory([])
        response = client.get("/api/agent/session/session-0-0000000")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Session session-0-0000000 not found"}

    def test_delete_session(self, service_factory):
        """DELETE removes the session and is idempotent."""
        service = service_factory([])
        session_id = service.create_session()

        first = client.delete(f"/api/agent/session/{session_id}")
        second = client.delete(f"/api/agent/session/{session_id}")

        assert first.status_code == 200
        assert first.json()["success"] is True
        assert second.status_code == 200
        assert session_id not in service.store


class TestProcessEndpoint:
    """Tests for POST /process."""

    def test_process_new_session(self, service_factory):
        """An instruction without a session creates one."""
        service_factory([SEARCH_STEP, "Answer: AI weekly."])
        response = client.post("/api/agent/process", json={"instruction": "Find AI news"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["response"] == "Answer: AI weekly."
        assert data["sessionId"].startswith("session-")

    def test_process_continues_session(self, service_factory):
        """A sessionId continues the same transcript."""
        service = service_factory(["one", "two"])
        first = client.post("/api/agent/process", json={"instruction": "a"}).json()
        second = client.post(
            "/api/agent/process",
            json={"instruction": "b", "sessionId": first["sessionId"]},
        ).json()

        assert second["sessionId"] == first["sessionId"]
        assert len(service.get_session_info(first["sessionId"])["messageHistory"]) == 5

    def test_empty_instruction_is_400(self, service_factory):
        """A blank or missing instruction is rejected."""
        service = service_factory([])
        assert client.post("/api/agent/process", json={"instruction": "  "}).status_code == 400
        assert client.post("/api/agent/process", json={}).status_code == 400
        assert len(service.store) == 0

    def test_invalid_body_is_400(self, service_factory):
        """Malformed bodies are 400, not 422."""
        service_factory([])
        response = client.post("/api/agent/process", json={"instruction": ["not", "a", "string"]})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_provider_failure_is_502(self, service_factory):
        """Provider errors map to 502."""
        service_factory([ProviderError("Fireworks API error: 503")])
        response = client.post("/api/agent/process", json={"instruction": "hi"})
        assert response.status_code == 502
        assert "Fireworks API error" in response.json()["error"]

    async def test_busy_session_is_409(self, service_factory):
        """A session with an instruction in flight is 409."""
        service = service_factory([])
        session_id = service.create_session()
        loop = service.store.get(session_id).loop

        await loop._lock.acquire()
        try:
            response = client.post(
                "/api/agent/process", json={"instruction": "hi", "sessionId": session_id}
            )
        finally:
            loop._lock.release()

        assert response.status_code == 409


class TestProcessStreamEndpoint:
    """Tests for POST /process/stream."""

    def test_stream_event_sequence(self, service_factory):
        """Events arrive as SSE data lines ending with complete."""
        service_factory([SEARCH_STEP, "Answer: AI weekly."])
        response = client.post("/api/agent/process/stream", json={"instruction": "Find AI news"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse(response.text)

        assert events[0]["type"] == "session"
        assert events[-1] == {"type": "complete", "content": "Answer: AI weekly."}
        tool_calls = [e for e in events if e["type"] == "toolCall"]
        assert tool_calls == [{
            "type": "toolCall",
            "tool": "browser.search",
            "params": {"query": "artificial intelligence news"},
        }]
        assert any(e["type"] == "observation" for e in events)

    def test_stream_provider_error(self, service_factory):
        """Provider errors end the stream with an error event."""
        service_factory([ProviderError("Fireworks API error: 503")])
        events = parse_sse(
            client.post("/api/agent/process/stream", json={"instruction": "hi"}).text
        )
        assert [e["type"] for e in events] == ["session", "error"]

    def test_stream_empty_instruction_is_400(self, service_factory):
        """Blank instructions are rejected before streaming starts."""
        service = service_factory([])
        response = client.post("/api/agent/process/stream", json={"instruction": ""})
        assert response.status_code == 400
        assert len(service.store) == 0


class TestScreenshotEndpoint:
    """Tests for GET /screenshot."""

    def test_returns_png(self, service_factory):
        """The current page is returned as a PNG."""
        service_factory([])
        response = client.get("/api/agent/screenshot")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")
