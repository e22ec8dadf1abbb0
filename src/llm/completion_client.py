"""
Completion Client - the only path from this service to a language model.

Every call declares a CallType; the token ceiling and temperature for that
type are enforced before the request leaves the process. Calls are a single
attempt bounded by llm_timeout_seconds. There are no retries and no second
provider: on any failure the caller takes its deterministic fallback.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any, Awaitable, Callable, Protocol, TypeVar

import httpx
from loguru import logger

from config import Settings, get_settings
from src.core.ai_limits import AI_LIMITS, AI_TEMPERATURES, CallType, validate_token_limit
from src.core.errors import (
    CompletionUnavailable,
    InfrastructureFailure,
    MentorError,
    ModelContractViolation,
)

T = TypeVar("T")

_CODE_FENCE = re.compile(r"```(?:json)?\s*\n?|```\s*\n?", re.IGNORECASE)


class CompletionProvider(Protocol):
    """Black-box chat completion backend."""

    name: str

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        ...


class OpenAIChatProvider:
    """Chat completions over an OpenAI-compatible HTTP API."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        client: httpx.AsyncClient | None = None,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._client = client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }
        url = f"{self.base_url}/chat/completions"

        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=self._headers)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(url, json=payload, headers=self._headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise CompletionUnavailable(f"Completion request failed: {e}") from e
        except ValueError as e:
            raise CompletionUnavailable(f"Completion response was not JSON: {e}") from e

        if not isinstance(data, dict):
            raise CompletionUnavailable(f"Completion response was not an object: {type(data).__name__}")

        usage = data.get("usage") or {}
        if usage:
            logger.info(f"Completion tokens: {usage.get('total_tokens')} (limit: {max_tokens})")

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise CompletionUnavailable(f"Malformed completion response: {e}") from e

        if not isinstance(content, str) or not content.strip():
            raise CompletionUnavailable("Empty completion")
        return content.strip()


class CompletionClient:
    """
    Budgeted, time-bounded access to a completion provider.

    Example:
        >>> client = CompletionClient(OpenAIChatProvider(api_key="...", model="gpt-4o-mini"))
        >>> text = await client.complete(CallType.CHAT, system, user)
    """

    def __init__(
        self,
        provider: CompletionProvider | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.provider = provider
        self.timeout_seconds = settings.llm_timeout_seconds

    @property
    def is_available(self) -> bool:
        return self.provider is not None

    async def complete(
        self,
        call_type: CallType,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
    ) -> str:
        """
        Run one completion.

        Raises:
            ValidationFailure: max_tokens exceeds the call type's limit.
            CompletionUnavailable: no provider, timeout or provider error.
        """
        max_tokens = max_tokens or AI_LIMITS[call_type]
        validate_token_limit(call_type, max_tokens)

        if self.provider is None:
            raise CompletionUnavailable("No completion provider configured")

        try:
            return await asyncio.wait_for(
                self.provider.complete(
                    system_prompt,
                    user_prompt,
                    max_tokens,
                    AI_TEMPERATURES[call_type],
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise CompletionUnavailable(
                f"{call_type.value} completion timed out after {self.timeout_seconds}s"
            ) from e
        except MentorError:
            raise
        except Exception as e:
            logger.error(f"{call_type.value} completion provider fault: {e!r}")
            raise CompletionUnavailable(f"{call_type.value} completion failed: {e}") from e

    def get_provider_info(self) -> dict:
        return {
            "provider": self.provider.name if self.provider else "none",
            "available": self.is_available,
            "timeout_seconds": self.timeout_seconds,
        }


def build_completion_provider(
    settings: Settings | None = None,
    model: str | None = None,
) -> CompletionProvider | None:
    """Create the configured provider, or None to run in mock mode."""
    settings = settings or get_settings()
    if not settings.openai_api_key:
        logger.warning("No OpenAI API key - completions will use mock fallbacks")
        return None
    return OpenAIChatProvider(
        api_key=settings.openai_api_key,
        model=model or settings.chat_model,
        base_url=settings.openai_base_url,
    )


async def with_mock_fallback(
    call: Callable[[], Awaitable[T]],
    fallback: Callable[[], T],
    label: str,
) -> T:
    """
    Run call once; on infrastructure or model-contract failure return fallback().

    This is the single fallback combinator: no retry, no alternative provider.
    """
    try:
        return await call()
    except InfrastructureFailure as e:
        logger.warning(f"{label}: provider unavailable ({e}) - using fallback")
    except ModelContractViolation as e:
        logger.warning(f"{label}: unusable model output ({e}) - using fallback")
    return fallback()


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences that models wrap around JSON."""
    return _CODE_FENCE.sub("", text).strip()


def parse_json_payload(text: str) -> Any:
    """
    Parse a JSON document from model output.

    Raises:
        ModelContractViolation: output is not valid JSON.
    """
    cleaned = strip_code_fences(text or "")
    try:
        return json.loads(cleaned)
    except (json.JSONDecodeError, TypeError) as e:
        raise ModelContractViolation(f"Invalid JSON from model: {e}", raw=text) from e
