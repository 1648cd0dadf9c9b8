"""
Base data source interface.
"""

from abc import ABC, abstractmethod

from plandata.services.client import RequestExecutor
from plandata.settings import Settings


class BaseDataSource(ABC):
    """
    Abstract base class for all data sources.

    All data sources should:
    - Use RequestExecutor for HTTP requests (timeouts, retries, backoff)
    - Return Pydantic models
    - Decode bodies with parse_json_response
    """

    def __init__(self, executor: RequestExecutor, settings: Settings | None = None):
        self.executor = executor
        self.settings = settings or Settings()

    @property
    @abstractmethod
    def service_id(self) -> str:
        """Unique identifier for this data source."""
        ...

    @property
    @abstractmethod
    def base_url(self) -> str:
        ...
