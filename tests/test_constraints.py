"""Tests for plandata.datasource.constraints module."""

import httpx

from plandata.datasource.constraints import (
    CONSTRAINT_DATASETS,
    ConstraintAggregator,
    map_planning_data_entity,
)
from plandata.models import ConstraintType, PlanningDataEntity

from conftest import CONSERVATION_ENTITY, json_response


def by_dataset(responses: dict):
    """Build a constraints handler answering per dataset query parameter."""

    def handler(request: httpx.Request) -> httpx.Response:
        dataset = request.url.params["dataset"]
        answer = responses.get(dataset)
        if answer is None:
            return json_response({"entities": []})
        if isinstance(answer, Exception):
            raise answer
        return answer

    return handler


class TestMapEntity:
    def test_maps_hyphenated_fields(self):
        entity = PlanningDataEntity.model_validate(
            {
                **CONSERVATION_ENTITY,
                "listed-building-grade": "II",
                "documentation-url": "https://example.com/doc",
            }
        )
        constraint = map_planning_data_entity(entity, ConstraintType.LISTED_BUILDING)

        assert constraint.type == ConstraintType.LISTED_BUILDING
        assert constraint.name == "Test Conservation Area"
        assert constraint.reference == "CA-001"
        assert constraint.designation_date == "1990-01-01"
        assert constraint.grade == "II"
        assert constraint.document_url == "https://example.com/doc"

    def test_unnamed_entity(self):
        entity = PlanningDataEntity.model_validate({"start-date": "2001-05-05"})
        constraint = map_planning_data_entity(entity, ConstraintType.GREEN_BELT)

        assert constraint.name == "Unknown"
        assert constraint.designation_date == "2001-05-05"


class TestConstraintAggregator:
    async def test_queries_every_dataset(self, executor, settings, fake_apis):
        aggregator = ConstraintAggregator(executor, settings)

        assert await aggregator.fetch_constraints(51.5074, -0.1278) == []

        requests = fake_apis.requests_to("/entity.json")
        assert len(CONSTRAINT_DATASETS) == 11
        assert len(requests) == 11
        assert {r.url.params["dataset"] for r in requests} == {
            d.value for d in CONSTRAINT_DATASETS
        }
        first = requests[0]
        assert first.url.host == "www.planning.data.gov.uk"
        assert first.url.params["latitude"] == "51.5074"
        assert first.url.params["longitude"] == "-0.1278"
        assert first.url.params["limit"] == "10"

    async def test_merges_results(self, executor, settings, fake_apis):
        fake_apis.constraints = by_dataset(
            {
                "conservation-area": json_response({"entities": [CONSERVATION_ENTITY]}),
                "flood-risk-zone": json_response(
                    {"entities": [{"name": "Flood Zone 3", "reference": "FZ3"}]}
                ),
            }
        )

        constraints = await ConstraintAggregator(executor, settings).fetch_constraints(
            51.5, -0.1
        )

        assert {(c.type, c.name) for c in constraints} == {
            (ConstraintType.CONSERVATION_AREA, "Test Conservation Area"),
            (ConstraintType.FLOOD_RISK_ZONE, "Flood Zone 3"),
        }

    async def test_partial_failure_keeps_other_datasets(
        self, executor, settings, fake_apis
    ):
        fake_apis.constraints = by_dataset(
            {
                "conservation-area": json_response({"entities": [CONSERVATION_ENTITY]}),
                "listed-building": httpx.Response(404),
                "green-belt": httpx.ConnectError("refused"),
                "ancient-woodland": httpx.Response(200, text="<html>oops</html>"),
            }
        )

        constraints = await ConstraintAggregator(executor, settings).fetch_constraints(
            51.5, -0.1
        )

        assert [c.type for c in constraints] == [ConstraintType.CONSERVATION_AREA]

    async def test_total_failure_returns_empty(
        self, executor, settings, fake_apis, sleep_recorder
    ):
        fake_apis.constraints = lambda request: httpx.Response(500)

        assert await ConstraintAggregator(executor, settings).fetch_constraints(
            51.5, -0.1
        ) == []
        # one retry per dataset
        assert len(fake_apis.requests_to("/entity.json")) == 22
        assert sleep_recorder.delays == [1.0] * 11

    async def test_restricted_dataset_list(self, executor, settings, fake_apis):
        aggregator = ConstraintAggregator(
            executor, settings, datasets=(ConstraintType.GREEN_BELT,)
        )
        await aggregator.fetch_constraints(51.5, -0.1)

        requests = fake_apis.requests_to("/entity.json")
        assert [r.url.params["dataset"] for r in requests] == ["green-belt"]
