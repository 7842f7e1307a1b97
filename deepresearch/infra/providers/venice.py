"""Venice.ai LLM provider using httpx."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from deepresearch.errors import (
    ApiError,
    AuthError,
    ConfigError,
    InvalidArguments,
    InvalidResponse,
    MaxRetriesExceeded,
)
from deepresearch.models.provider import LLMConfig, LLMMessage, LLMResponse, LLMUsage

logger = logging.getLogger(__name__)

VENICE_BASE_URL = "https://api.venice.ai/api/v1"
DEFAULT_MODEL = "llama-3.3-70b"


@dataclass(frozen=True)
class VeniceModel:
    context_tokens: int
    traits: tuple[str, ...] = ()


VENICE_MODELS: dict[str, VeniceModel] = {
    "llama-3.3-70b": VeniceModel(65536, ("function_calling_default", "default")),
    "llama-3.2-3b": VeniceModel(131072, ("fastest",)),
    "dolphin-2.9.2-qwen2-72b": VeniceModel(32768, ("most_uncensored",)),
    "llama-3.1-405b": VeniceModel(63920, ("most_intelligent",)),
    "qwen32b": VeniceModel(131072, ("default_code",)),
    "deepseek-r1-llama-70b": VeniceModel(65536),
    "deepseek-r1-671b": VeniceModel(131072),
}

# Venice "characters" are server-side personas selected per request.
RESEARCH_CHARACTER = "archon-01v"
CLASSIFIER_CHARACTER = "metacore"

RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.ReadError,
    httpx.RemoteProtocolError,
)


def is_valid_model(model: str) -> bool:
    return model in VENICE_MODELS


def model_for_traits(traits: tuple[str, ...] | list[str]) -> str | None:
    """First known model advertising any of ``traits``, checked in order."""
    for trait in traits:
        for name, info in VENICE_MODELS.items():
            if trait in info.traits:
                return name
    return None


class _Retryable(Exception):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class VeniceProvider:
    """LLM provider for the Venice chat completions API (OpenAI-compatible).

    Retries 429, 5xx and transport resets/timeouts with doubling,
    jittered backoff. 401 raises ``AuthError``; other 4xx raise ``ApiError``.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "",
        base_url: str = VENICE_BASE_URL,
        timeout: float = 30.0,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        exponential: bool = True,
        max_delay: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        if not api_key:
            raise ConfigError(
                "Venice API key is required. Set VENICE_API_KEY or providers.venice.api_key."
            )
        self._api_key = api_key
        self._default_model = self.resolve_model(model or DEFAULT_MODEL)
        self._max_attempts = max(1, max_attempts)
        self._initial_delay = max(0.0, initial_delay)
        self._exponential = exponential
        self._max_delay = max_delay
        self._sleep = sleep
        self._rng = rng
        self._client = httpx.AsyncClient(
            base_url=base_url or VENICE_BASE_URL,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @property
    def default_model(self) -> str:
        return self._default_model

    @staticmethod
    def resolve_model(model: str, traits: tuple[str, ...] = ()) -> str:
        """Pick a model by traits first, then by name, else the default."""
        if traits:
            by_trait = model_for_traits(traits)
            if by_trait:
                return by_trait
        if not model:
            return DEFAULT_MODEL
        if is_valid_model(model):
            return model
        logger.warning("Unsupported Venice model %r, falling back to %s", model, DEFAULT_MODEL)
        return DEFAULT_MODEL

    def _backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based), jittered by +/-10%."""
        delay = self._initial_delay
        if self._exponential:
            delay = min(self._initial_delay * (2 ** (attempt - 1)), self._max_delay)
        return delay * (0.9 + self._rng() * 0.2)

    async def complete(
        self,
        system: str,
        prompt: str,
        config: LLMConfig | None = None,
    ) -> LLMResponse:
        """Generate a completion from a system prompt and a user prompt."""
        messages = []
        if system:
            messages.append(LLMMessage(role="system", content=system))
        if prompt:
            messages.append(LLMMessage(role="user", content=prompt))
        if not messages:
            raise InvalidArguments("At least one of system or prompt is required")
        return await self.complete_chat(messages, config)

    async def complete_chat(
        self,
        messages: list[LLMMessage],
        config: LLMConfig | None = None,
    ) -> LLMResponse:
        """Generate a completion from a message history."""
        if not messages:
            raise InvalidArguments("Messages cannot be empty")
        config = config or LLMConfig()
        if config.model or config.model_traits:
            model = self.resolve_model(config.model, config.model_traits)
        else:
            model = self._default_model

        venice_parameters = dict(config.parameters or {})
        venice_parameters["character_slug"] = (
            config.character_slug or venice_parameters.get("character_slug") or RESEARCH_CHARACTER
        )
        payload: dict = {
            "model": model,
            "messages": [m.to_dict() for m in messages],
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
            "venice_parameters": venice_parameters,
        }

        logger.debug("Sending request to Venice with model: %s", model)
        data = await self._post_with_retry(payload)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str) or not content:
            logger.error("Invalid response format from Venice: %s", str(data)[:200])
            raise InvalidResponse("Invalid or empty response format from Venice API")

        resolved_model = data.get("model") or model
        return LLMResponse(
            content=content,
            model=resolved_model,
            usage=LLMUsage.from_api(data.get("usage"), resolved_model),
        )

    async def _post_with_retry(self, payload: dict) -> dict:
        last_error: _Retryable | None = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                return await self._post(payload)
            except _Retryable as e:
                last_error = e
                if attempt >= self._max_attempts:
                    break
                delay = self._backoff_delay(attempt)
                logger.warning(
                    "Venice attempt %d/%d failed (%s), retrying in %.2fs",
                    attempt, self._max_attempts, e, delay,
                )
                await self._sleep(delay)

        raise MaxRetriesExceeded(
            f"Venice request failed after {self._max_attempts} attempts: {last_error}"
        )

    async def _post(self, payload: dict) -> dict:
        try:
            response = await self._client.post("/chat/completions", json=payload)
        except RETRYABLE_EXCEPTIONS as e:
            raise _Retryable(f"{type(e).__name__}: {e}") from e
        except httpx.HTTPError as e:
            raise ApiError(f"Venice request failed: {e}") from e

        status = response.status_code
        logger.debug("Venice response status: %s", status)
        if status == 429 or status >= 500:
            raise _Retryable(f"status {status}", status=status)
        if status == 401:
            raise AuthError("Venice rejected the API key")
        if status >= 400:
            raise ApiError(
                f"Venice request failed with status {status}: {response.text[:200]}",
                status=status,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponse(f"Venice returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise InvalidResponse("Venice returned a non-object response")
        return data

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
