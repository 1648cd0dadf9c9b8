"""
Service layer - resilient retrieval of planning data.

Provides:
- ErrorKind / ErrorDetails / PlanningDataError: classified failures
- CacheStore: Persistent TTL cache keyed by location fingerprint
- RequestExecutor: Timeouts, retries and backoff for HTTP calls
"""

from plandata.services.errors import (
    ErrorDetails,
    ErrorKind,
    PlanningDataError,
    classify_error,
    get_user_error_message,
)
from plandata.services.cache import CacheStats, CacheStore, generate_cache_key
from plandata.services.client import RequestExecutor, parse_json_response

__all__ = [
    # Errors
    "ErrorDetails",
    "ErrorKind",
    "PlanningDataError",
    "classify_error",
    "get_user_error_message",
    # Cache
    "CacheStats",
    "CacheStore",
    "generate_cache_key",
    # Client
    "RequestExecutor",
    "parse_json_response",
]
