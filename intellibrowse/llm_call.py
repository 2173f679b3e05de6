"""
LLM Call Interface for IntelliBrowse

Async client for the Fireworks AI chat completions API (OpenAI-compatible),
serving the DeepSeek R1 reasoning model in buffered and streaming modes.
"""

import logging
from typing import AsyncIterator, Optional

from openai import AsyncOpenAI, OpenAIError

from .config import config
from .errors import ProviderError

logger = logging.getLogger(__name__)


class LLMClient:
    """Fireworks chat client with a fixed sampling configuration."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        reasoning_effort: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.base_url = base_url or config.model.base_url
        self.model = model or config.model.model
        self.temperature = temperature if temperature is not None else config.model.temperature
        self.max_tokens = max_tokens if max_tokens is not None else config.model.max_tokens
        self.reasoning_effort = reasoning_effort or config.model.reasoning_effort
        self.client = client or AsyncOpenAI(
            base_url=self.base_url,
            api_key=api_key or config.model.api_key or "dummy",
            timeout=timeout if timeout is not None else config.model.timeout,
        )

    def _request_kwargs(
        self,
        messages: list[dict],
        stop: Optional[list[str]],
        temperature: Optional[float],
        max_tokens: Optional[int],
    ) -> dict:
        create_kwargs: dict = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature if temperature is not None else self.temperature,
            "max_tokens": max_tokens if max_tokens is not None else self.max_tokens,
        }
        if stop:
            create_kwargs["stop"] = stop
        if self.reasoning_effort:
            create_kwargs["extra_body"] = {"reasoning_effort": self.reasoning_effort}
        return create_kwargs

    async def complete(
        self,
        messages: list[dict],
        stop: Optional[list[str]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Return the full assistant message for ``messages``.

        Raises:
            ProviderError: on any API or transport failure
        """
        create_kwargs = self._request_kwargs(messages, stop, temperature, max_tokens)
        try:
            response = await self.client.chat.completions.create(**create_kwargs)
        except OpenAIError as e:
            logger.error(f"Fireworks completion failed: {e}")
            raise ProviderError(f"Fireworks API error: {e}") from e

        if not response.choices:
            raise ProviderError("No response from Fireworks AI")
        return response.choices[0].message.content or ""

    async def stream(
        self,
        messages: list[dict],
        stop: Optional[list[str]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncIterator[str]:
        """Yield assistant text fragments as the model produces them.

        Raises:
            ProviderError: on any API or transport failure, including mid-stream
        """
        create_kwargs = self._request_kwargs(messages, stop, temperature, max_tokens)
        create_kwargs["stream"] = True
        try:
            response = await self.client.chat.completions.create(**create_kwargs)
            async for chunk in response:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except OpenAIError as e:
            logger.error(f"Fireworks streaming failed: {e}")
            raise ProviderError(f"Fireworks API error: {e}") from e

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
