import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # PlanIt API (primary source for planning applications)
    planit_base_url: str = Field(
        default="https://www.planit.org.uk", alias="PLANIT_BASE_URL"
    )
    planit_timeout: float = Field(default=15.0, alias="PLANIT_TIMEOUT")
    planit_page_size: int = Field(default=50, alias="PLANIT_PAGE_SIZE")
    health_check_timeout: float = Field(default=5.0, alias="HEALTH_CHECK_TIMEOUT")

    # Planning Data Platform (supplementary constraint datasets)
    planning_data_base_url: str = Field(
        default="https://www.planning.data.gov.uk", alias="PLANNING_DATA_BASE_URL"
    )
    planning_data_timeout: float = Field(default=10.0, alias="PLANNING_DATA_TIMEOUT")
    constraint_limit: int = Field(default=10, alias="CONSTRAINT_LIMIT")
    constraint_max_retries: int = Field(default=1, alias="CONSTRAINT_MAX_RETRIES")

    # Retry configuration (seconds)
    max_retries: int = Field(default=3, alias="MAX_RETRIES")
    initial_retry_delay: float = Field(default=1.0, alias="INITIAL_RETRY_DELAY")
    max_retry_delay: float = Field(default=8.0, alias="MAX_RETRY_DELAY")
    rate_limit_ceiling: float = Field(default=30.0, alias="RATE_LIMIT_CEILING")

    # Cache configuration
    use_cache: bool = Field(default=True, alias="USE_CACHE")
    cache_ttl_hours: float = Field(default=24, alias="CACHE_TTL_HOURS")
    cache_database_url: str = Field(
        default="sqlite+aiosqlite:///./plandata_cache.db", alias="CACHE_DATABASE_URL"
    )

    user_agent: str = Field(default="plandata/1.0", alias="USER_AGENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (and .env)."""
        return cls.model_validate(dict(os.environ))
