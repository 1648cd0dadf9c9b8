"""
RequestExecutor - async HTTP execution with timeout, retry and backoff.

Combines:
- Per-attempt cancellation timer
- Exponential backoff for transient failures (5xx, timeouts, transport errors)
- Retry-After handling for 429 responses
- Offline short-circuit before any network access
"""

import asyncio
import json
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from plandata.services.errors import (
    ErrorKind,
    PlanningDataError,
    classify_error,
    make_error,
)
from plandata.settings import Settings

SleepFn = Callable[[float], Awaitable[Any]]

HTML_PREFIXES = ("<!doctype", "<html")


def always_online() -> bool:
    return True


class RequestExecutor:
    """
    Executes single HTTP requests with resilience patterns.

    Usage:
        executor = RequestExecutor(settings)

        response = await executor.execute(
            "https://www.planit.org.uk/api/applics/json",
            params={"lat": 51.5, "lng": -0.12, "krad": 0.5},
            timeout=15.0,
        )
        data = parse_json_response(response, "PlanIt API")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        is_online: Callable[[], bool] = always_online,
        sleep: SleepFn = asyncio.sleep,
    ):
        self._settings = settings or Settings()
        self._http_client = http_client
        self._owns_client = http_client is None
        self._is_online = is_online
        self._sleep = sleep

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(follow_redirects=True)
        return self._http_client

    def is_online(self) -> bool:
        return self._is_online()

    def get_retry_delay(self, attempt: int) -> float:
        """Exponential backoff delay for *attempt*, capped at max_retry_delay."""
        delay = self._settings.initial_retry_delay * (2**attempt)
        return min(delay, self._settings.max_retry_delay)

    async def execute(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        method: str = "GET",
        timeout: float = 10.0,
        max_retries: int | None = None,
    ) -> httpx.Response:
        """
        Make an HTTP request with retries.

        Args:
            url: Full URL to request
            params: Query parameters
            headers: Request headers
            method: HTTP method
            timeout: Seconds allowed for each attempt
            max_retries: Retries after the first attempt (default from settings)

        Returns:
            The 2xx response

        Raises:
            PlanningDataError: classified failure once retries are exhausted
        """
        if max_retries is None:
            max_retries = self._settings.max_retries

        if not self.is_online():
            raise make_error(ErrorKind.OFFLINE, "Device is offline")

        client = await self._get_http_client()
        last_error: PlanningDataError | None = None

        for attempt in range(max_retries + 1):
            has_retries = attempt < max_retries

            try:
                response = await asyncio.wait_for(
                    client.request(
                        method, url, params=params, headers=headers, timeout=timeout
                    ),
                    timeout=timeout,
                )
            except Exception as e:
                details = classify_error(e, online=self.is_online())
                last_error = PlanningDataError(details)
                if details.kind == ErrorKind.TIMEOUT:
                    logger.warning(
                        f"[RequestExecutor] {url} timed out after {timeout}s "
                        f"(attempt {attempt + 1}/{max_retries + 1})"
                    )
                else:
                    logger.warning(
                        f"[RequestExecutor] {url} failed: {e!r} "
                        f"(attempt {attempt + 1}/{max_retries + 1})"
                    )
                if details.retryable and has_retries:
                    await self._sleep(self.get_retry_delay(attempt))
                    continue
                raise last_error from e

            if response.status_code == 429:
                details = classify_error(response=response)
                retry_after = details.retry_after
                if (
                    has_retries
                    and retry_after is not None
                    and retry_after < self._settings.rate_limit_ceiling
                ):
                    logger.info(
                        f"[RequestExecutor] Rate limited by {url}, "
                        f"retrying in {retry_after}s"
                    )
                    await self._sleep(retry_after)
                    continue
                raise PlanningDataError(details)

            if response.is_error:
                details = classify_error(response=response)
                last_error = PlanningDataError(details)
                logger.warning(
                    f"[RequestExecutor] {url} returned {response.status_code} "
                    f"(attempt {attempt + 1}/{max_retries + 1})"
                )
                if details.retryable and has_retries:
                    await self._sleep(self.get_retry_delay(attempt))
                    continue
                raise last_error

            return response

        raise last_error or make_error(ErrorKind.NETWORK, "Network request failed")

    async def close(self) -> None:
        """Close the HTTP client if this executor created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("RequestExecutor closed")

    async def __aenter__(self) -> "RequestExecutor":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


def parse_json_response(response: httpx.Response, api_name: str) -> Any:
    """
    Decode a JSON body, refusing HTML error/login pages.

    Raises:
        PlanningDataError: PARSE for HTML, empty, or malformed bodies
    """
    content_type = response.headers.get("content-type", "")
    if "text/html" in content_type.lower():
        logger.error(f"[{api_name}] returned HTML content-type")
        raise make_error(
            ErrorKind.PARSE,
            f"{api_name} returned HTML instead of JSON",
            user_message=(
                f"The {api_name} service returned an error page. "
                "The service may be temporarily unavailable."
            ),
        )

    text = response.text.strip()
    if text.lower().startswith(HTML_PREFIXES):
        logger.error(f"[{api_name}] returned HTML document")
        raise make_error(
            ErrorKind.PARSE,
            f"{api_name} returned HTML: {text[:100]}...",
            user_message=(
                f"The {api_name} service is unavailable or blocked. "
                "Please try again later."
            ),
        )

    if not text:
        logger.error(f"[{api_name}] returned empty response")
        raise make_error(
            ErrorKind.PARSE,
            "Empty response body",
            user_message=f"The {api_name} service returned no data. Please try again.",
        )

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"[{api_name}] JSON parse failed: {e}")
        if text.startswith("<"):
            raise make_error(
                ErrorKind.PARSE,
                f"{api_name} returned HTML: {text[:100]}...",
                user_message=(
                    f"The {api_name} service is unavailable or blocked. "
                    "Please try again later."
                ),
            ) from e
        raise PlanningDataError(classify_error(e)) from e
