"""
Error taxonomy for the retrieval layer.

Every failure is reduced to a single ErrorDetails value tagged with an
ErrorKind. Callers only ever see PlanningDataError, which carries those
details; there is no per-kind exception hierarchy.
"""

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

import httpx
from dateutil import parser as date_parser
from pydantic import ValidationError

DEFAULT_RATE_LIMIT_RETRY_AFTER = 60.0


class ErrorKind(str, Enum):
    """Error kinds surfaced to callers."""

    OFFLINE = "OFFLINE"
    TIMEOUT = "TIMEOUT"
    RATE_LIMIT = "RATE_LIMIT"
    NETWORK = "NETWORK"
    API_ERROR = "API_ERROR"
    PARSE = "PARSE"
    UNKNOWN = "UNKNOWN"


USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.OFFLINE: "You appear to be offline. Showing cached data if available.",
    ErrorKind.TIMEOUT: (
        "The request took too long. The server might be busy, please try again."
    ),
    ErrorKind.RATE_LIMIT: "Too many requests. Please wait a moment and try again.",
    ErrorKind.NETWORK: (
        "Unable to connect to the server. Please check your internet connection."
    ),
    ErrorKind.API_ERROR: (
        "The planning data service is temporarily unavailable. Please try again later."
    ),
    ErrorKind.PARSE: "Received invalid data from the server. Please try again.",
    ErrorKind.UNKNOWN: "An unexpected error occurred. Please try again.",
}

CLIENT_ERROR_MESSAGE = "Unable to fetch planning data. The request was invalid."


@dataclass(frozen=True)
class ErrorDetails:
    """Classified failure."""

    kind: ErrorKind
    message: str  # diagnostic, never shown to users
    user_message: str
    retryable: bool
    retry_after: float | None = None  # seconds
    status_code: int | None = None


class PlanningDataError(Exception):
    """The only exception raised out of the retrieval layer."""

    def __init__(self, details: ErrorDetails):
        self.details = details
        super().__init__(details.message)

    @property
    def kind(self) -> ErrorKind:
        return self.details.kind

    @property
    def retryable(self) -> bool:
        return self.details.retryable

    @property
    def user_message(self) -> str:
        return self.details.user_message

    @property
    def retry_after(self) -> float | None:
        return self.details.retry_after


def make_error(
    kind: ErrorKind,
    message: str,
    retryable: bool = True,
    retry_after: float | None = None,
    status_code: int | None = None,
    user_message: str | None = None,
) -> PlanningDataError:
    """Build a PlanningDataError with the static user message for *kind*."""
    return PlanningDataError(
        ErrorDetails(
            kind=kind,
            message=message,
            user_message=user_message or USER_MESSAGES[kind],
            retryable=retryable,
            retry_after=retry_after,
            status_code=status_code,
        )
    )


def parse_retry_after(value: str | None) -> float | None:
    """
    Parse a Retry-After header into seconds.

    Accepts delta-seconds ("120") or an HTTP-date. Returns None when the
    header is missing or unparseable.
    """
    if not value:
        return None

    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = date_parser.parse(value)
    except (ValueError, OverflowError):
        return None

    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def _is_html(response: httpx.Response) -> bool:
    return "text/html" in response.headers.get("content-type", "").lower()


def classify_error(
    error: BaseException | None = None,
    *,
    response: httpx.Response | None = None,
    online: bool = True,
) -> ErrorDetails:
    """
    Map any failure to exactly one ErrorDetails.

    Rules are applied in priority order: offline, rate limit, server error,
    client error, timeout, transport failure, parse failure, unknown.
    """
    if isinstance(error, PlanningDataError):
        return error.details

    if not online:
        return make_error(ErrorKind.OFFLINE, "Device is offline").details

    status = response.status_code if response is not None else None

    if status == 429:
        retry_after = parse_retry_after(response.headers.get("retry-after"))
        if retry_after is None:
            retry_after = DEFAULT_RATE_LIMIT_RETRY_AFTER
        return make_error(
            ErrorKind.RATE_LIMIT,
            "Rate limit exceeded",
            retry_after=retry_after,
            status_code=status,
        ).details

    if status is not None and status >= 500:
        return make_error(
            ErrorKind.API_ERROR,
            f"API returned {status}: {response.reason_phrase or 'Unknown error'}",
            status_code=status,
        ).details

    if status is not None and 400 <= status < 500:
        return make_error(
            ErrorKind.API_ERROR,
            f"API returned {status}: {response.reason_phrase or 'Unknown error'}",
            retryable=False,
            status_code=status,
            user_message=CLIENT_ERROR_MESSAGE,
        ).details

    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
        return make_error(ErrorKind.TIMEOUT, f"Request timed out: {error!r}").details

    if isinstance(error, (httpx.TransportError, ConnectionError, OSError)):
        return make_error(
            ErrorKind.NETWORK, str(error) or "Network request failed"
        ).details

    if isinstance(error, (json.JSONDecodeError, ValidationError)) or (
        response is not None and _is_html(response)
    ):
        return make_error(
            ErrorKind.PARSE, str(error) if error else "Unexpected HTML response"
        ).details

    return make_error(
        ErrorKind.UNKNOWN, str(error) if error else "Unknown error"
    ).details


def get_user_error_message(error: BaseException) -> str:
    """Return the display-safe message for any exception."""
    return classify_error(error).user_message
