"""
Planning Data Platform source for planning constraints.

API Documentation: https://www.planning.data.gov.uk/docs
Supplementary source: each dataset is fetched independently and a failing
dataset only loses its own constraints.
"""

import asyncio

from loguru import logger

from plandata.datasource.base import BaseDataSource
from plandata.models import ConstraintType, PlanningConstraint, PlanningDataEntity
from plandata.services.client import RequestExecutor, parse_json_response
from plandata.settings import Settings

API_NAME = "Planning Data API"

# Full list at https://www.planning.data.gov.uk/dataset/
CONSTRAINT_DATASETS: tuple[ConstraintType, ...] = (
    ConstraintType.CONSERVATION_AREA,
    ConstraintType.LISTED_BUILDING,
    ConstraintType.ARTICLE_4_DIRECTION_AREA,
    ConstraintType.GREEN_BELT,
    ConstraintType.FLOOD_RISK_ZONE,
    ConstraintType.TREE_PRESERVATION_ZONE,
    ConstraintType.AREA_OF_OUTSTANDING_NATURAL_BEAUTY,
    ConstraintType.SCHEDULED_MONUMENT,
    ConstraintType.WORLD_HERITAGE_SITE,
    ConstraintType.SITE_OF_SPECIAL_SCIENTIFIC_INTEREST,
    ConstraintType.ANCIENT_WOODLAND,
)


def map_planning_data_entity(
    entity: PlanningDataEntity, dataset: ConstraintType
) -> PlanningConstraint:
    return PlanningConstraint(
        type=dataset,
        name=entity.name or "Unknown",
        reference=entity.reference,
        description=entity.description,
        designation_date=entity.designation_date or entity.start_date,
        grade=entity.listed_building_grade,
        document_url=entity.documentation_url or entity.document_url,
    )


class ConstraintAggregator(BaseDataSource):
    """
    Fans out one request per constraint dataset and merges the results.

    fetch_constraints never raises: the worst case is an empty list.
    """

    SERVICE_ID = "planning-data"

    def __init__(
        self,
        executor: RequestExecutor,
        settings: Settings | None = None,
        datasets: tuple[ConstraintType, ...] = CONSTRAINT_DATASETS,
    ):
        super().__init__(executor, settings)
        self.datasets = datasets

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    @property
    def base_url(self) -> str:
        return self.settings.planning_data_base_url.rstrip("/")

    async def fetch_constraints(
        self, lat: float, lng: float
    ) -> list[PlanningConstraint]:
        """Fetch every dataset in parallel and concatenate what succeeded."""
        results = await asyncio.gather(
            *(self._fetch_dataset(dataset, lat, lng) for dataset in self.datasets)
        )

        constraints = [constraint for result in results for constraint in result]
        logger.info(
            f"[{self.service_id}] Fetched {len(constraints)} constraints "
            f"from {len(self.datasets)} datasets"
        )
        return constraints

    async def _fetch_dataset(
        self, dataset: ConstraintType, lat: float, lng: float
    ) -> list[PlanningConstraint]:
        try:
            response = await self.executor.execute(
                f"{self.base_url}/entity.json",
                params={
                    "dataset": dataset.value,
                    "latitude": lat,
                    "longitude": lng,
                    "limit": self.settings.constraint_limit,
                },
                headers={"Accept": "application/json"},
                timeout=self.settings.planning_data_timeout,
                max_retries=self.settings.constraint_max_retries,
            )
            data = parse_json_response(response, API_NAME)

            entities = (data.get("entities") or []) if isinstance(data, dict) else []
            return [
                map_planning_data_entity(
                    PlanningDataEntity.model_validate(entity), dataset
                )
                for entity in entities
            ]

        except Exception as e:
            logger.warning(f"[{self.service_id}] Failed to fetch {dataset.value}: {e}")
            return []
