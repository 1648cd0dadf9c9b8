"""plandata - resilient retrieval of UK planning applications and constraints."""

from plandata.models import (
    ApplicationStatus,
    ConstraintType,
    LocalAuthorityStats,
    PlanningApplication,
    PlanningClimate,
    PlanningConstraint,
    PlanningResult,
)
from plandata.services.errors import ErrorDetails, ErrorKind, PlanningDataError
from plandata.services.planning import PlanningDataService
from plandata.settings import Settings

__all__ = [
    "PlanningDataService",
    "Settings",
    "PlanningResult",
    "PlanningApplication",
    "PlanningConstraint",
    "LocalAuthorityStats",
    "ApplicationStatus",
    "PlanningClimate",
    "ConstraintType",
    "ErrorDetails",
    "ErrorKind",
    "PlanningDataError",
]
