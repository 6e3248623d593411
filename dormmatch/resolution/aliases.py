from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..errors import DataLoadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AliasEntry:
    queries: tuple[str, ...] = ()
    names: tuple[str, ...] = ()


class AliasTable:
    """
    Per-entity overrides for names that collide with unrelated listings.

    ``queries`` are tried before the generic templates; ``names`` are extra
    spellings accepted when matching candidate and detail names.
    """

    def __init__(self, entries: dict[str, AliasEntry] | None = None) -> None:
        self._entries = dict(entries or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AliasTable:
        entries: dict[str, AliasEntry] = {}
        for name, raw in data.items():
            if not isinstance(raw, dict):
                raise DataLoadError(f"Alias entry for {name!r} must be an object")
            entries[name] = AliasEntry(
                queries=tuple(q for q in raw.get("queries", []) if isinstance(q, str)),
                names=tuple(n for n in raw.get("names", []) if isinstance(n, str)),
            )
        return cls(entries)

    @classmethod
    def load(cls, path: Path | None) -> AliasTable:
        if path is None:
            return cls()
        if not path.exists():
            logger.warning("Alias table %s not found, continuing without aliases", path)
            return cls()
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise DataLoadError(f"Alias table could not be parsed: {path}") from exc
        if not isinstance(data, dict):
            raise DataLoadError(f"Alias table must be an object keyed by name: {path}")
        return cls.from_dict(data)

    def queries_for(self, name: str) -> tuple[str, ...]:
        entry = self._entries.get(name)
        return entry.queries if entry else ()

    def names_for(self, name: str) -> tuple[str, ...]:
        entry = self._entries.get(name)
        return entry.names if entry else ()

    def __len__(self) -> int:
        return len(self._entries)
