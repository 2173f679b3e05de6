"""Tests for the Fireworks LLM client."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError

from intellibrowse.errors import ProviderError
from intellibrowse.llm_call import LLMClient


def _response(content):
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


def _chunk(content):
    chunk = MagicMock()
    chunk.choices = [MagicMock(delta=MagicMock(content=content))]
    return chunk


def _client(create):
    openai_client = MagicMock()
    openai_client.chat.completions.create = create
    openai_client.close = AsyncMock()
    return LLMClient(
        base_url="https://fireworks.test/v1",
        model="accounts/fireworks/models/deepseek-r1",
        api_key="fw-key",
        temperature=0.2,
        max_tokens=4096,
        reasoning_effort="high",
        client=openai_client,
    )


def _connection_error():
    return APIConnectionError(request=httpx.Request("POST", "https://fireworks.test/v1"))


class TestComplete:
    """Tests for LLMClient.complete."""

    async def test_request_parameters(self):
        """Sampling settings, stop and reasoning effort are sent."""
        create = AsyncMock(return_value=_response("Thought: hi"))
        client = _client(create)

        result = await client.complete([{"role": "user", "content": "hi"}], stop=["Observation:"])

        assert result == "Thought: hi"
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "accounts/fireworks/models/deepseek-r1"
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 4096
        assert kwargs["stop"] == ["Observation:"]
        assert kwargs["extra_body"] == {"reasoning_effort": "high"}
        assert "stream" not in kwargs

    async def test_no_stop_omitted(self):
        """Without stop sequences the parameter is not sent."""
        create = AsyncMock(return_value=_response("x"))
        await _client(create).complete([{"role": "user", "content": "hi"}])
        assert "stop" not in create.call_args.kwargs

    async def test_api_error_wrapped(self):
        """OpenAI errors become ProviderError."""
        client = _client(AsyncMock(side_effect=_connection_error()))
        with pytest.raises(ProviderError, match="Fireworks API error"):
            await client.complete([{"role": "user", "content": "hi"}])

    async def test_empty_choices(self):
        """A response without choices is a provider failure."""
        response = MagicMock()
        response.choices = []
        client = _client(AsyncMock(return_value=response))
        with pytest.raises(ProviderError, match="No response from Fireworks AI"):
            await client.complete([{"role": "user", "content": "hi"}])

    async def test_none_content_is_empty_string(self):
        """A null message content is returned as an empty string."""
        client = _client(AsyncMock(return_value=_response(None)))
        assert await client.complete([{"role": "user", "content": "hi"}]) == ""


class TestStream:
    """Tests for LLMClient.stream."""

    async def test_yields_non_empty_fragments(self):
        """Empty deltas and choice-less chunks are skipped."""
        empty = MagicMock()
        empty.choices = []

        async def chunks():
            for chunk in (_chunk("Thought"), _chunk(None), empty, _chunk(": done")):
                yield chunk

        create = AsyncMock(return_value=chunks())
        client = _client(create)

        fragments = [f async for f in client.stream([{"role": "user", "content": "hi"}])]

        assert fragments == ["Thought", ": done"]
        assert create.call_args.kwargs["stream"] is True

    async def test_mid_stream_error_wrapped(self):
        """Errors while iterating become ProviderError."""

        async def chunks():
            yield _chunk("partial")
            raise _connection_error()

        client = _client(AsyncMock(return_value=chunks()))
        received = []
        with pytest.raises(ProviderError):
            async for fragment in client.stream([{"role": "user", "content": "hi"}]):
                received.append(fragment)
        assert received == ["partial"]

    async def test_close(self):
        """close closes the underlying client."""
        client = _client(AsyncMock())
        await client.close()
        client.client.close.assert_awaited_once()
