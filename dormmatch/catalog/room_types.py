from __future__ import annotations

from enum import Enum


class RoomType(str, Enum):
    single = "Single"
    double = "Double"
    suite = "Suite"
    single_suite = "Single Suite"


# Exact spellings; anything else falls through to the token rules below.
ROOM_TYPE_SYNONYMS: dict[str, RoomType] = {
    "single": RoomType.single,
    "1": RoomType.single,
    "one": RoomType.single,
    "single room": RoomType.single,
    "double": RoomType.double,
    "2": RoomType.double,
    "two": RoomType.double,
    "double room": RoomType.double,
    "suite": RoomType.suite,
    "suites": RoomType.suite,
    "single suite": RoomType.single_suite,
}

# Requested type -> rate types that satisfy it.
ROOM_TYPE_MATCHES: dict[RoomType, frozenset[RoomType]] = {
    RoomType.suite: frozenset({RoomType.suite, RoomType.single_suite}),
}

_SINGLE_TOKENS = frozenset({"single", "1", "one"})
_DOUBLE_TOKENS = frozenset({"double", "2", "two"})


def normalize_room_type(raw: object) -> RoomType | None:
    """Map a free-form room type ("2", "two person", "Single-Suite") to its canonical value."""
    if isinstance(raw, RoomType):
        return raw
    if not isinstance(raw, str):
        return None

    key = " ".join(raw.lower().replace("-", " ").replace("_", " ").split())
    if not key:
        return None
    if key in ROOM_TYPE_SYNONYMS:
        return ROOM_TYPE_SYNONYMS[key]

    tokens = set(key.split())
    if "suite" in tokens or "suites" in tokens:
        return RoomType.single_suite if tokens & _SINGLE_TOKENS else RoomType.suite
    if tokens & _DOUBLE_TOKENS:
        return RoomType.double
    if tokens & _SINGLE_TOKENS:
        return RoomType.single
    return None


def accepted_room_types(requested: RoomType) -> frozenset[RoomType]:
    return ROOM_TYPE_MATCHES.get(requested, frozenset({requested}))


def normalize_zone(raw: object, zones: tuple[str, ...]) -> str | None:
    """Return the canonical spelling of *raw* from the closed zone set, or ``None``."""
    if not isinstance(raw, str):
        return None
    key = " ".join(raw.split()).casefold()
    for zone in zones:
        if zone.casefold() == key:
            return zone
    return None
