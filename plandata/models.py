"""
Planning data types using Pydantic models.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ApplicationStatus(str, Enum):
    """Canonical planning application status."""

    APPROVED = "APPROVED"
    REFUSED = "REFUSED"
    PENDING = "PENDING"
    WITHDRAWN = "WITHDRAWN"


class PlanningClimate(str, Enum):
    """Overall attitude of a local authority towards development."""

    PRO_DEVELOPMENT = "PRO_DEVELOPMENT"
    MODERATE = "MODERATE"
    RESTRICTIVE = "RESTRICTIVE"


class ConstraintType(str, Enum):
    """Planning Data Platform dataset identifiers."""

    CONSERVATION_AREA = "conservation-area"
    LISTED_BUILDING = "listed-building"
    ARTICLE_4_DIRECTION_AREA = "article-4-direction-area"
    GREEN_BELT = "green-belt"
    FLOOD_RISK_ZONE = "flood-risk-zone"
    TREE_PRESERVATION_ZONE = "tree-preservation-zone"
    AREA_OF_OUTSTANDING_NATURAL_BEAUTY = "area-of-outstanding-natural-beauty"
    SCHEDULED_MONUMENT = "scheduled-monument"
    WORLD_HERITAGE_SITE = "world-heritage-site"
    SITE_OF_SPECIAL_SCIENTIFIC_INTEREST = "site-of-special-scientific-interest"
    ANCIENT_WOODLAND = "ancient-woodland"


# Raw upstream shapes


class PlanItRecord(BaseModel):
    """A single application record as returned by the PlanIt API."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    uid: str | None = None
    name: str | None = None
    reference: str | None = None
    address: str | None = None
    postcode: str | None = None
    description: str | None = None
    lat: float | None = None
    lng: float | None = None
    link: str | None = None
    url: str | None = None
    authority_name: str | None = None
    area_name: str | None = None
    start_date: str | None = None
    decided_date: str | None = None
    app_type: str | None = None
    app_state: str | None = None


class PlanningDataEntity(BaseModel):
    """An entity from the Planning Data Platform entity.json endpoint."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    entity: str | None = None
    name: str | None = None
    reference: str | None = None
    description: str | None = None
    designation_date: str | None = Field(default=None, alias="designation-date")
    start_date: str | None = Field(default=None, alias="start-date")
    listed_building_grade: str | None = Field(
        default=None, alias="listed-building-grade"
    )
    documentation_url: str | None = Field(default=None, alias="documentation-url")
    document_url: str | None = Field(default=None, alias="document-url")


# Canonical shapes


class PlanningApplication(BaseModel):
    """Planning application near the queried location."""

    model_config = ConfigDict(frozen=True)

    id: str
    address: str
    lat: float
    lng: float
    distance_m: int = Field(ge=0)
    status: ApplicationStatus
    decision_date: str | None = None
    start_date: str | None = None
    type: str = "Unknown"
    summary: str = ""
    url: str | None = None
    authority: str | None = None


class PlanningConstraint(BaseModel):
    """A designation (conservation area, flood zone, ...) covering the location."""

    model_config = ConfigDict(frozen=True)

    type: ConstraintType
    name: str
    reference: str | None = None
    description: str | None = None
    designation_date: str | None = None
    grade: str | None = None
    document_url: str | None = None


class LocalAuthorityStats(BaseModel):
    """Authority statistics derived from the returned applications."""

    model_config = ConfigDict(frozen=True)

    name: str
    approval_rate: float
    avg_decision_days: int
    planning_climate: PlanningClimate


class PlanningResult(BaseModel):
    """Unified result of a planning data query."""

    model_config = ConfigDict(frozen=True)

    applications: list[PlanningApplication] = Field(default_factory=list)
    local_authority: LocalAuthorityStats
    constraints: list[PlanningConstraint] = Field(default_factory=list)
