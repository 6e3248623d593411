from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"

DEFAULT_ZONES: tuple[str, ...] = (
    "North Campus",
    "South Campus",
    "West Campus",
    "East Campus",
    "Off Campus",
)


def _optional_path(value: str | None) -> Path | None:
    if not value:
        return None
    return Path(value)


@dataclass(frozen=True)
class CatalogConfig:
    """
    Where the catalog lives and how long a loaded copy stays valid.
    """

    catalog_path: Path = Path(os.getenv("DORMS_CATALOG_PATH", str(_DATA_DIR / "dorms.json")))
    coordinates_path: Path | None = _optional_path(
        os.getenv("DORMS_COORDINATES_PATH", str(_DATA_DIR / "dormcords.json"))
    )
    ttl_seconds: float = float(os.getenv("DORMS_CATALOG_TTL", "300"))
    strict: bool = os.getenv("DORMS_STRICT_LOAD", "0").lower() in ("1", "true", "yes")
    zones: tuple[str, ...] = DEFAULT_ZONES


DEFAULT_CATALOG_CONFIG = CatalogConfig()
