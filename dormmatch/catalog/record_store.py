from __future__ import annotations

import json
import logging
import math
import re
import threading
import time
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError as PydanticValidationError

from ..errors import DataLoadError
from .config import DEFAULT_CATALOG_CONFIG, CatalogConfig
from .models import Catalog, Coordinates, Entity, Rate, RateRange
from .room_types import RoomType, normalize_room_type, normalize_zone

logger = logging.getLogger(__name__)

_AMOUNT_STRIP_RE = re.compile(r"[$,\s]|usd", re.IGNORECASE)


def _read_json(path: Path, label: str) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as exc:
        raise DataLoadError(f"{label} not found: {path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise DataLoadError(f"{label} could not be parsed: {path}") from exc


def parse_amount(value: object) -> float | None:
    """Parse 3800, 3800.0 or "$3,800" into a non-negative float."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        amount = float(value)
    elif isinstance(value, str):
        cleaned = _AMOUNT_STRIP_RE.sub("", value)
        try:
            amount = float(cleaned)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(amount) or amount < 0:
        return None
    return amount


def _parse_coordinates(value: object) -> Coordinates | None:
    if not isinstance(value, dict):
        return None
    try:
        return Coordinates(lat=value.get("lat"), lng=value.get("lng"))
    except PydanticValidationError:
        return None


def _parse_building_year(raw: dict[str, Any]) -> int | None:
    value = raw.get("buildingYear", raw.get("building_year"))
    if value is None and isinstance(raw.get("buildingInfo"), dict):
        value = raw["buildingInfo"].get("yearBuilt")
    if value is None or isinstance(value, bool):
        return None
    try:
        year = int(str(value).strip())
    except ValueError:
        return None
    return year if year > 0 else None


def _parse_room_types(name: str, values: list[Any]) -> tuple[RoomType, ...]:
    room_types: list[RoomType] = []
    for value in values:
        room_type = normalize_room_type(value)
        if room_type is None:
            logger.warning("Pruning room type %r from %s", value, name)
            continue
        if room_type not in room_types:
            room_types.append(room_type)
    return tuple(room_types)


def _parse_rate(name: str, entry: object) -> Rate | None:
    if not isinstance(entry, dict):
        logger.warning("Pruning non-object rate %r from %s", entry, name)
        return None
    room_type = normalize_room_type(entry.get("roomType", entry.get("type")))
    amount = parse_amount(entry.get("amount", entry.get("rate")))
    if room_type is None or amount is None:
        logger.warning("Pruning malformed rate %r from %s", entry, name)
        return None
    return Rate(room_type=room_type, amount=amount)


def _parse_rates(
    name: str,
    value: list[Any] | dict[str, Any],
    room_types: tuple[RoomType, ...],
) -> tuple[tuple[Rate, ...], RateRange | None]:
    if isinstance(value, dict):
        low = parse_amount(value.get("min"))
        high = parse_amount(value.get("max"))
        if low is None or high is None or low > high:
            logger.warning("Pruning malformed rate range %r from %s", value, name)
            return (), None
        # A range prices every offered room type; its floor is the cheapest option.
        rates = tuple(Rate(room_type=rt, amount=low) for rt in room_types)
        return rates, RateRange(min=low, max=high)

    rates = [rate for rate in (_parse_rate(name, entry) for entry in value) if rate]
    return tuple(rates), None


def parse_record(raw: object, index: int, zones: tuple[str, ...]) -> Entity | None:
    """
    Build an Entity from one raw catalog record.

    Returns ``None`` (after logging a warning) when a required field is
    missing or unusable; malformed sub-fields are pruned instead.
    """
    if not isinstance(raw, dict):
        logger.warning("Dropping catalog record #%d: not an object", index)
        return None

    name = raw.get("name")
    name = name.strip() if isinstance(name, str) else ""
    label = name or f"record #{index}"

    missing: list[str] = []
    if not name:
        missing.append("name")
    zone = normalize_zone(raw.get("zone", raw.get("location")), zones)
    if zone is None:
        missing.append("zone")
    raw_room_types = raw.get("roomTypes")
    if not isinstance(raw_room_types, list) or not raw_room_types:
        missing.append("roomTypes")
    raw_rates = raw.get("rates")
    if not isinstance(raw_rates, (list, dict)):
        missing.append("rates")
    if missing:
        logger.warning("Dropping catalog %s: missing or invalid %s", label, ", ".join(missing))
        return None

    room_types = _parse_room_types(name, raw_room_types)
    if not room_types:
        logger.warning("Dropping catalog %s: no recognised room types", label)
        return None

    rates, rate_range = _parse_rates(name, raw_rates, room_types)
    if not rates:
        logger.warning("Catalog %s has no usable rates and will never match a query", label)

    raw_amenities = raw.get("amenities")
    if raw_amenities is None:
        raw_amenities = []
    elif not isinstance(raw_amenities, list):
        logger.warning("Pruning non-list amenities %r from %s", raw_amenities, label)
        raw_amenities = []
    amenities = tuple(a for a in raw_amenities if isinstance(a, str))

    return Entity(
        name=name,
        zone=zone,
        room_types=room_types,
        rates=rates,
        rate_range=rate_range,
        building_year=_parse_building_year(raw),
        coordinates=_parse_coordinates(raw.get("coordinates")),
        amenities=amenities,
    )


class RecordStore:
    """
    Loads the catalog and caches it for ``config.ttl_seconds``.

    Refreshing is single-flight: when many callers find the cache stale at
    once, one of them re-reads the files while the others wait and then
    share the new snapshot.
    """

    def __init__(
        self,
        config: CatalogConfig = DEFAULT_CATALOG_CONFIG,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._clock = clock
        self._catalog: Catalog | None = None
        self._lock = threading.Lock()

    @property
    def config(self) -> CatalogConfig:
        return self._config

    def _is_fresh(self, catalog: Catalog | None) -> bool:
        return catalog is not None and self._clock() - catalog.loaded_at < self._config.ttl_seconds

    def load(self) -> Catalog:
        catalog = self._catalog
        if self._is_fresh(catalog):
            return catalog

        with self._lock:
            catalog = self._catalog
            if self._is_fresh(catalog):
                return catalog
            try:
                fresh = self._read()
            except DataLoadError:
                if catalog is None:
                    raise
                logger.warning("Catalog refresh failed, serving stale catalog", exc_info=True)
                return catalog
            self._catalog = fresh
            return fresh

    def invalidate(self) -> None:
        with self._lock:
            self._catalog = None

    def _read_coordinates(self) -> dict[str, Any]:
        path = self._config.coordinates_path
        if path is None:
            return {}
        data = _read_json(path, "Coordinate source")
        if not isinstance(data, dict):
            raise DataLoadError(f"Coordinate source must map names to coordinates: {path}")
        return data

    def _read(self) -> Catalog:
        logger.info("Loading catalog from %s", self._config.catalog_path)
        data = _read_json(self._config.catalog_path, "Catalog")
        records = data.get("dorms") if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise DataLoadError("Catalog must be a list of records")

        coordinates = self._read_coordinates()

        entities: list[Entity] = []
        seen: set[str] = set()
        for index, raw in enumerate(records):
            entity = parse_record(raw, index, self._config.zones)
            if entity is None:
                continue
            if entity.name in seen:
                logger.warning("Dropping duplicate catalog record %s", entity.name)
                continue
            seen.add(entity.name)

            merged = _parse_coordinates(coordinates.get(entity.name))
            if merged is not None:
                entity = entity.model_copy(update={"coordinates": merged})
            entities.append(entity)

        if not entities:
            raise DataLoadError("Catalog contains no valid records")

        logger.info("Loaded %d of %d catalog records", len(entities), len(records))
        return Catalog(entities=tuple(entities), loaded_at=self._clock())
