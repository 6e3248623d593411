from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .room_types import RoomType


class CamelModel(BaseModel):
    """Immutable model serialised with the camelCase keys the HTTP API uses."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Coordinates(CamelModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)


class Rate(CamelModel):
    room_type: RoomType
    amount: float = Field(..., ge=0.0)


class RateRange(CamelModel):
    min: float = Field(..., ge=0.0)
    max: float = Field(..., ge=0.0)


class Entity(CamelModel):
    name: str = Field(..., min_length=1)
    zone: str
    room_types: tuple[RoomType, ...] = Field(..., min_length=1)
    rates: tuple[Rate, ...] = ()
    rate_range: RateRange | None = None
    building_year: int | None = Field(default=None, gt=0)
    coordinates: Coordinates | None = None
    amenities: tuple[str, ...] = ()


@dataclass(frozen=True)
class Catalog:
    """A validated snapshot of the catalog, replaced wholesale on refresh."""

    entities: tuple[Entity, ...]
    loaded_at: float

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)

    def get(self, name: str) -> Entity | None:
        for entity in self.entities:
            if entity.name == name:
                return entity
        return None
