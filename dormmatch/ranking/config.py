from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class MatchWeights:
    """
    Point budgets and tier boundaries used by ``MatchEngine``.

    Tier tuples are ``(threshold, points)`` pairs checked in order; the
    first satisfied threshold wins.
    """

    room_type_points: float = 4.0
    room_type_partial_points: float = 2.0

    price_points: float = 3.0
    # Share of price_points still available once the cheapest rate is over budget.
    # The step at the budget line is intentional: any overage costs at least half
    # the price credit, so an affordable dorm outranks an over-budget one that
    # only wins on building age. The decline past the step is linear.
    over_budget_ceiling: float = 0.5
    # Multiple of the budget at which over-budget credit reaches zero.
    price_zero_multiple: float = 2.0

    zone_points: float = 1.0

    building_points: float = 1.0
    building_age_bands: tuple[tuple[int, float], ...] = ((5, 1.0), (10, 0.75), (20, 0.5))
    building_oldest: float = 0.25
    building_neutral: float = 0.5

    quality_points: float = 2.0
    rating_tiers: tuple[tuple[float, float], ...] = ((4.5, 1.5), (4.0, 1.0), (3.5, 0.5))
    review_count_tiers: tuple[tuple[int, float], ...] = ((100, 0.5), (50, 0.25))
    quality_neutral: float = 1.0

    scale: float = 10.0
    label_tiers: tuple[tuple[float, str], ...] = ((8.0, "strong"), (6.0, "moderate"), (4.0, "fair"))
    lowest_label: str = "weak"

    @property
    def max_points(self) -> float:
        return (
            self.room_type_points
            + self.price_points
            + self.zone_points
            + self.building_points
            + self.quality_points
        )


@dataclass(frozen=True)
class RankingConfig:
    max_concurrency: int = int(os.getenv("RANKING_MAX_CONCURRENCY", "8"))
    request_deadline: float = float(os.getenv("RANKING_DEADLINE", "8.0"))
    profile: str = os.getenv("DORMS_SCORING_PROFILE", "standard")
    empty_message: str = (
        "No dorms found matching your criteria. "
        "Try adjusting your room type, budget, or location."
    )


DEFAULT_RANKING_CONFIG = RankingConfig()
