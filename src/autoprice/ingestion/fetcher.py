"""Rate-limited async HTTP client for manufacturer price-list feeds."""

from __future__ import annotations

import asyncio
import json
import logging
from xml.parsers.expat import ExpatError

import httpx
import xmltodict
from aiolimiter import AsyncLimiter

from autoprice.core.config import FetchConfig, SourceConfig
from autoprice.core.exceptions import NetworkError, RateLimitError, SchemaError
from autoprice.core.models import RawPayload, ResponseType

logger = logging.getLogger(__name__)

_ACCEPT = "application/json, application/xml, text/xml, text/plain, */*"

# Retry configuration
_DEFAULT_RETRY_AFTER = 5
_MAX_RETRY_AFTER = 60
_RETRYABLE_STATUS = (500, 502, 503, 504)
_MAX_RETRIES_CONNECTION = 2
_CONNECTION_RETRY_DELAY = 2.0


class SourceFetcher:
    """Rate-limited async client shared by all sources of a run.

    Sends browser-like headers because several manufacturer endpoints reject
    obvious bots, and replays a source's ``origin``/``referer`` for feeds
    that check them.

    Use via ``async with SourceFetcher(config) as fetcher:``.
    """

    def __init__(
        self,
        config: FetchConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._limiter = AsyncLimiter(max_rate=config.rate_limit, time_period=1.0)
        self._client = httpx.AsyncClient(
            headers={
                "User-Agent": config.user_agent,
                "Accept": _ACCEPT,
                "Accept-Language": config.accept_language,
            },
            timeout=httpx.Timeout(config.request_timeout),
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> SourceFetcher:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client. Called automatically by __aexit__."""
        await self._client.aclose()

    # --- Payload Retrieval ---

    async def fetch(self, source: SourceConfig) -> RawPayload:
        """Download and decode one source's price list.

        Returns:
            Decoded JSON (dict or list), or the dict xmltodict builds for XML
            sources (attribute names without prefix).

        Raises:
            NetworkError: Connection failure, timeout or non-200 status.
            RateLimitError: HTTP 429 after retry exhaustion.
            SchemaError: The body cannot be decoded as the declared type.
        """
        headers: dict[str, str] = {}
        if source.origin:
            headers["Origin"] = source.origin
        if source.referer:
            headers["Referer"] = source.referer

        logger.info("Fetching %s from %s", source.name, source.url)
        response = await self._rate_limited_request("GET", source.url, headers=headers)
        return self._decode(source, response)

    def _decode(self, source: SourceConfig, response: httpx.Response) -> RawPayload:
        try:
            if source.response_type == ResponseType.XML:
                return xmltodict.parse(response.text, attr_prefix="")
            payload = response.json()
        except (ExpatError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SchemaError(
                f"Undecodable {source.response_type} body from {source.url}: {e}",
                context={"source": source.id, "url": source.url},
            ) from e

        if not isinstance(payload, (dict, list)):
            raise SchemaError(
                f"Expected a JSON object or array from {source.url}, "
                f"got {type(payload).__name__}",
                context={"source": source.id, "url": source.url},
            )
        return payload

    # --- Rate Limiting & Retry ---

    async def _rate_limited_request(
        self,
        method: str,
        url: str,
        **kwargs: object,
    ) -> httpx.Response:
        """Execute an HTTP request with rate limiting and retry logic.

        Rate limiting:
            Uses aiolimiter.AsyncLimiter as a token bucket. Each request
            acquires one token before sending.

        Retry policy (``max_retries`` from config):
            - HTTP 429: Wait for Retry-After (capped), then retry.
            - HTTP 500/502/503/504: Retry with exponential backoff.
            - Other HTTP errors: Raise immediately (no retry).
            - Connection errors and timeouts: Retry up to 2 times.

        Returns:
            httpx.Response with status 200.

        Raises:
            RateLimitError: If retries exhausted on 429 responses.
            NetworkError: On any other failure.
        """
        max_retries = self._config.max_retries
        connection_failures = 0
        attempt = 0

        while True:
            try:
                async with self._limiter:
                    response = await self._client.request(method, url, **kwargs)
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                connection_failures += 1
                if connection_failures <= _MAX_RETRIES_CONNECTION:
                    logger.warning(
                        "Connection error on %s, retrying in %.0fs (attempt %d/%d)",
                        url, _CONNECTION_RETRY_DELAY,
                        connection_failures, _MAX_RETRIES_CONNECTION,
                    )
                    await asyncio.sleep(_CONNECTION_RETRY_DELAY)
                    continue
                raise NetworkError(
                    f"Connection failed after retries: {url}",
                    context={"url": url, "status_code": None, "error": str(e)},
                ) from e
            except httpx.HTTPError as e:
                raise NetworkError(
                    f"Request to {url} failed: {e}",
                    context={"url": url, "status_code": None, "error": str(e)},
                ) from e

            if response.status_code == 200:
                return response

            if response.status_code == 429:
                retry_after = _retry_after(response)
                if attempt < max_retries:
                    attempt += 1
                    logger.warning(
                        "Rate limited (429) on %s, waiting %ds (attempt %d/%d)",
                        url, retry_after, attempt, max_retries,
                    )
                    await asyncio.sleep(retry_after)
                    continue
                raise RateLimitError(
                    f"Rate limit exceeded after {max_retries} retries: {url}",
                    context={"url": url, "status_code": 429, "retry_after": retry_after},
                )

            if response.status_code in _RETRYABLE_STATUS:
                if attempt < max_retries:
                    delay = 2**attempt
                    attempt += 1
                    logger.warning(
                        "Server error %d on %s, retrying in %ds (attempt %d/%d)",
                        response.status_code, url, delay, attempt, max_retries,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(
                    f"Server error {response.status_code} after retries: {url}",
                    context={"url": url, "status_code": response.status_code},
                )

            # Non-retryable HTTP error
            raise NetworkError(
                f"HTTP {response.status_code} from {url}",
                context={"url": url, "status_code": response.status_code},
            )


def _retry_after(response: httpx.Response) -> int:
    """Seconds from a Retry-After header (delta form), capped."""
    value = response.headers.get("Retry-After")
    try:
        seconds = int(value) if value is not None else _DEFAULT_RETRY_AFTER
    except ValueError:
        seconds = _DEFAULT_RETRY_AFTER
    return max(0, min(seconds, _MAX_RETRY_AFTER))
