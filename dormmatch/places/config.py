from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class PlacesConfig:
    api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    base_url: str = os.getenv("PLACES_BASE_URL", "https://maps.googleapis.com/maps/api/place")
    timeout: float = float(os.getenv("PLACES_TIMEOUT", "5.0"))
    max_retries: int = 2
    backoff_factor: float = 0.3


DEFAULT_PLACES_CONFIG = PlacesConfig()
