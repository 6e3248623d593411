from __future__ import annotations

import math
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..catalog.models import CamelModel, Entity, Rate
from ..catalog.room_types import RoomType, normalize_room_type, normalize_zone
from ..errors import ValidationError
from ..resolution.models import QualitySignal


class Query(CamelModel):
    room_type: RoomType
    raw_room_type: str
    max_budget: float = Field(..., gt=0)
    zone: str


def build_query(room_type: object, max_budget: object, zone: object, zones: tuple[str, ...]) -> Query:
    """Normalise raw search input into a Query or raise ValidationError with per-field details."""
    details: dict[str, str] = {}

    canonical_type = None
    if not isinstance(room_type, str) or not room_type.strip():
        details["roomType"] = "Room type is required"
    else:
        canonical_type = normalize_room_type(room_type)
        if canonical_type is None:
            options = ", ".join(rt.value for rt in RoomType)
            details["roomType"] = f"Unknown room type {room_type!r}; expected one of {options}"

    budget = None
    if max_budget is None or max_budget == "":
        details["maxBudget"] = "Budget is required"
    else:
        try:
            if isinstance(max_budget, bool):
                raise ValueError
            budget = float(max_budget)
        except (TypeError, ValueError):
            budget = None
        if budget is None or not math.isfinite(budget) or budget <= 0:
            details["maxBudget"] = "Budget must be a positive number"

    canonical_zone = None
    if not isinstance(zone, str) or not zone.strip():
        details["location"] = "Location is required"
    else:
        canonical_zone = normalize_zone(zone, zones)
        if canonical_zone is None:
            details["location"] = f"Unknown location {zone!r}; expected one of {', '.join(zones)}"

    if details:
        raise ValidationError(details)

    return Query(
        room_type=canonical_type,
        raw_room_type=room_type.strip(),
        max_budget=budget,
        zone=canonical_zone,
    )


class ScoreBreakdown(CamelModel):
    room_type_score: float
    price_score: float
    zone_score: float
    building_score: float
    quality_score: float
    raw_total: float
    max_points: float
    total: float
    label: str
    quality_resolved: bool


@dataclass(frozen=True)
class RankedItem:
    entity: Entity
    breakdown: ScoreBreakdown
    matched_rates: tuple[Rate, ...]
    quality_signal: QualitySignal | None = None


@dataclass(frozen=True)
class RankingResult:
    items: list[RankedItem] = field(default_factory=list)
    total_candidates: int = 0
    message: str | None = None


# ── API schemas ──────────────────────────────────────────────────────────


class SearchRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    room_type: str = Field(..., min_length=1, description='Requested room type, e.g. "Double" or "2"')
    max_budget: float = Field(..., gt=0, description="Maximum semester rate")
    location: str = Field(..., min_length=1, description="Campus zone")
    limit: int | None = Field(default=None, ge=1, le=50)


class DormOut(Entity):
    quality_signal: QualitySignal | None = None


class RankedDormOut(DormOut):
    score: float
    score_details: ScoreBreakdown
    matched_rates: tuple[Rate, ...] = ()


class SearchResponse(CamelModel):
    dorms: list[RankedDormOut]
    total_candidates: int = 0
    message: str | None = None
