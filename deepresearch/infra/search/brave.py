"""Brave Search provider."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from deepresearch.errors import ApiError, AuthError, ConfigError, RateLimited
from deepresearch.infra.rate_limiter import IntervalRateLimiter
from deepresearch.models.research import SearchResult

logger = logging.getLogger(__name__)

BRAVE_API_URL = "https://api.search.brave.com/res/v1"
BRAVE_SEARCH_PATH = "/web/search"

MIN_QUERY_LENGTH = 3
MAX_QUERY_LENGTH = 1000
DEFAULT_RATE_INTERVAL = 10.0
DEFAULT_RETRY_DELAY = 5.0
DEFAULT_MAX_RETRIES = 3

DEFAULT_TITLE = "Untitled"
DEFAULT_SNIPPET = "No description available"


class BraveSearchProvider:
    """Web search provider using the Brave Search API.

    One outbound request per ``rate_interval`` seconds per instance. A 429
    answer is retried with doubling backoff; everything else fails fast.
    """

    def __init__(
        self,
        api_key: str,
        rate_interval: float = DEFAULT_RATE_INTERVAL,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not api_key:
            raise ConfigError("Brave API key is required")
        self._api_key = api_key
        self._retry_delay = retry_delay
        self._max_retries = max_retries
        self._sleep = sleep
        self._limiter = IntervalRateLimiter(rate_interval, sleep=sleep)
        self._client = httpx.AsyncClient(
            base_url=BRAVE_API_URL,
            headers={
                "Accept": "application/json",
                "Accept-Encoding": "gzip",
                "X-Subscription-Token": api_key,
            },
            timeout=30.0,
            transport=transport,
        )

    @property
    def limiter(self) -> IntervalRateLimiter:
        return self._limiter

    async def search(self, query: str) -> list[SearchResult]:
        """Execute a search, retrying rate-limited requests with backoff."""
        text = (query or "").strip()
        if len("".join(text.split())) < MIN_QUERY_LENGTH:
            logger.debug("Skipping search for short query: %r", text)
            return []
        text = text[:MAX_QUERY_LENGTH]

        attempt = 0
        while True:
            try:
                return await self._execute(text)
            except RateLimited:
                if attempt >= self._max_retries:
                    raise
                delay = self._retry_delay * (2**attempt)
                attempt += 1
                logger.warning(
                    "Brave rate limited, retry %d/%d in %.1fs", attempt, self._max_retries, delay
                )
                await self._sleep(delay)

    async def _execute(self, query: str) -> list[SearchResult]:
        params = {
            "q": query,
            "count": 10,
            "offset": 0,
            "language": "en",
            "country": "US",
            "safesearch": "moderate",
        }

        async with self._limiter.slot():
            try:
                response = await self._client.get(BRAVE_SEARCH_PATH, params=params)
            except httpx.HTTPError as e:
                logger.error("Brave search request failed: %s", e)
                raise ApiError(f"Search request failed: {e}") from e

        status = response.status_code
        if status == 401:
            raise AuthError("Invalid Brave API key")
        if status == 429:
            raise RateLimited("Brave rate limit exceeded")
        if status == 422:
            raise ApiError(f"Brave rejected the query: {response.text[:200]}", status=status)
        if status >= 400:
            raise ApiError(f"Brave search failed with status {status}", status=status)

        try:
            data = response.json()
        except ValueError as e:
            raise ApiError(f"Brave returned invalid JSON: {e}", status=status) from e

        return self._project(data)

    @staticmethod
    def _project(data: object) -> list[SearchResult]:
        if not isinstance(data, dict):
            return []
        web = data.get("web")
        if not isinstance(web, dict) or not isinstance(web.get("results"), list):
            return []

        results = []
        for item in web["results"]:
            if not isinstance(item, dict):
                continue
            snippet = item.get("description") or DEFAULT_SNIPPET
            results.append(SearchResult(
                title=item.get("title") or DEFAULT_TITLE,
                snippet=snippet,
                url=item.get("url") or "",
                content=snippet,
            ))
        return results

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
