"""
PlanIt API data source for planning applications.

API Documentation: https://www.planit.org.uk/api/
Primary source: every query needs it, so its failures propagate.
"""

import math
from typing import Any

from loguru import logger
from pydantic import ValidationError

from plandata.datasource.base import BaseDataSource
from plandata.models import ApplicationStatus, PlanItRecord, PlanningApplication
from plandata.services.errors import ErrorKind, PlanningDataError, make_error
from plandata.services.client import parse_json_response
from plandata.utils import calculate_distance

API_NAME = "PlanIt API"

APPROVED_STATES = {"permitted", "conditions"}


def map_planit_status(app_state: str | None) -> ApplicationStatus:
    """Map a PlanIt app_state to ApplicationStatus."""
    if not app_state:
        return ApplicationStatus.PENDING

    state = app_state.lower()
    if state in APPROVED_STATES:
        return ApplicationStatus.APPROVED
    if state == "rejected":
        return ApplicationStatus.REFUSED
    if state == "withdrawn":
        return ApplicationStatus.WITHDRAWN
    # Undecided, Referred, Unresolved, Other
    return ApplicationStatus.PENDING


def map_planit_application(
    record: PlanItRecord, search_lat: float, search_lng: float
) -> PlanningApplication | None:
    """Convert a raw record; returns None when it has no usable coordinates."""
    if record.lat is None or record.lng is None:
        return None
    if not (math.isfinite(record.lat) and math.isfinite(record.lng)):
        return None

    distance = calculate_distance(search_lat, search_lng, record.lat, record.lng)

    return PlanningApplication(
        id=record.reference or record.uid or record.name or "",
        address=record.address or "Address not available",
        lat=record.lat,
        lng=record.lng,
        distance_m=round(distance),
        status=map_planit_status(record.app_state),
        decision_date=record.decided_date or None,
        start_date=record.start_date or None,
        type=record.app_type or "Unknown",
        summary=record.description or "No description available",
        url=record.url or record.link,
        authority=record.authority_name or record.area_name,
    )


def transform_records(
    data: Any, search_lat: float, search_lng: float
) -> list[PlanningApplication]:
    """Validate the response body and map it to canonical applications."""
    if isinstance(data, dict) and isinstance(data.get("records"), list):
        records = data["records"]
    elif isinstance(data, list):
        records = data
    else:
        raise make_error(
            ErrorKind.PARSE, f"{API_NAME} response has no records list"
        )

    applications = []
    skipped = 0
    for raw in records:
        try:
            record = PlanItRecord.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"[PlanIt] Skipping malformed record: {e.error_count()} errors")
            skipped += 1
            continue

        application = map_planit_application(record, search_lat, search_lng)
        if application is None:
            skipped += 1
            continue
        applications.append(application)

    if skipped:
        logger.debug(f"[PlanIt] Skipped {skipped} records without usable coordinates")

    applications.sort(key=lambda a: a.distance_m)
    return applications


class PlanItSource(BaseDataSource):
    """
    PlanIt API data source.

    Fetches planning applications around a point. No API key required.
    """

    SERVICE_ID = "planit"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    @property
    def base_url(self) -> str:
        return self.settings.planit_base_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": self.settings.user_agent,
        }

    async def fetch_applications(
        self,
        lat: float,
        lng: float,
        radius_km: float = 0.5,
        from_date: str | None = None,
        to_date: str | None = None,
    ) -> list[PlanningApplication]:
        """
        Fetch planning applications within *radius_km* of (lat, lng).

        Returns:
            Applications with coordinates, nearest first

        Raises:
            PlanningDataError: on any request or parse failure
        """
        params: dict[str, Any] = {
            "lat": lat,
            "lng": lng,
            "krad": radius_km,
            "pg_sz": self.settings.planit_page_size,
            "sort": "start_date.desc.nullslast",
        }
        if from_date:
            params["start_date"] = from_date
        if to_date:
            params["end_date"] = to_date

        url = f"{self.base_url}/api/applics/json"
        logger.info(f"[{self.service_id}] Fetching applications near ({lat}, {lng}), {radius_km}km")

        response = await self.executor.execute(
            url,
            params=params,
            headers=self._headers(),
            timeout=self.settings.planit_timeout,
        )
        data = parse_json_response(response, API_NAME)
        applications = transform_records(data, lat, lng)

        logger.info(f"[{self.service_id}] Fetched {len(applications)} applications")
        return applications

    async def check_health(self) -> bool:
        """Probe the API with a minimal, no-retry request."""
        try:
            response = await self.executor.execute(
                f"{self.base_url}/api/areas/json",
                params={"limit": 1},
                timeout=self.settings.health_check_timeout,
                max_retries=0,
            )
        except PlanningDataError as e:
            logger.warning(f"[{self.service_id}] Health check failed: {e.kind.value}")
            return False
        return response.is_success
