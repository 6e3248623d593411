from __future__ import annotations

from pydantic import Field

from ..catalog.models import CamelModel


class Review(CamelModel):
    author: str
    rating: float | None = None
    text: str = ""
    time: int | None = None


class QualitySignal(CamelModel):
    rating: float | None = Field(..., ge=0.0, le=5.0)
    review_count: int = Field(..., ge=0)
    recent_reviews: tuple[Review, ...] = ()
    resolved_at: float
    place_id: str | None = None
    place_name: str | None = None
    formatted_address: str | None = None
