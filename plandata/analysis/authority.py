"""
Local authority statistics derived from nearby planning applications.
"""

from datetime import datetime

from dateutil import parser as date_parser
from loguru import logger

from plandata.models import (
    ApplicationStatus,
    LocalAuthorityStats,
    PlanningApplication,
    PlanningClimate,
)

DEFAULT_AUTHORITY_NAME = "Local Planning Authority"
DEFAULT_APPROVAL_RATE = 0.5
# Statutory 8-week target, used when no decision time can be measured
DEFAULT_DECISION_DAYS = 56

PRO_DEVELOPMENT_THRESHOLD = 0.85
MODERATE_THRESHOLD = 0.65


def classify_climate(approval_rate: float) -> PlanningClimate:
    if approval_rate >= PRO_DEVELOPMENT_THRESHOLD:
        return PlanningClimate.PRO_DEVELOPMENT
    if approval_rate >= MODERATE_THRESHOLD:
        return PlanningClimate.MODERATE
    return PlanningClimate.RESTRICTIVE


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return date_parser.parse(value).replace(tzinfo=None)
    except (ValueError, OverflowError):
        logger.debug(f"Unparseable application date: {value!r}")
        return None


def decision_days(application: PlanningApplication) -> int | None:
    """Days from validation to decision, when both dates are known."""
    started = _parse_date(application.start_date)
    decided = _parse_date(application.decision_date)
    if started is None or decided is None or decided < started:
        return None
    return (decided - started).days


def calculate_local_authority_stats(
    applications: list[PlanningApplication],
    authority_name: str | None = None,
) -> LocalAuthorityStats:
    """
    Derive approval rate, decision speed and planning climate.

    Args:
        applications: Canonical applications for the area
        authority_name: Authority to report (defaults to a generic name)

    Returns:
        LocalAuthorityStats for the applications
    """
    approved = sum(1 for a in applications if a.status == ApplicationStatus.APPROVED)
    decided = sum(1 for a in applications if a.decision_date is not None)

    approval_rate = approved / decided if decided > 0 else DEFAULT_APPROVAL_RATE

    durations = [d for d in map(decision_days, applications) if d is not None]
    avg_decision_days = (
        round(sum(durations) / len(durations)) if durations else DEFAULT_DECISION_DAYS
    )

    return LocalAuthorityStats(
        name=authority_name or DEFAULT_AUTHORITY_NAME,
        approval_rate=approval_rate,
        avg_decision_days=avg_decision_days,
        planning_climate=classify_climate(approval_rate),
    )
