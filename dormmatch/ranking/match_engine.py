from __future__ import annotations

from datetime import date

from ..catalog.models import Entity, Rate
from ..catalog.room_types import accepted_room_types
from ..resolution.models import QualitySignal
from .config import MatchWeights
from .models import Query, ScoreBreakdown


def _tier(value: float, tiers: tuple[tuple[float, float], ...], default: float = 0.0) -> float:
    for threshold, points in tiers:
        if value >= threshold:
            return points
    return default


class MatchEngine:
    """
    Scores one catalog entity against one query.

    ``passes_hard_filter`` must hold before ``score`` is called; an entity
    without a rate for the requested room type never receives a score.
    """

    def __init__(self, weights: MatchWeights | None = None, reference_year: int | None = None) -> None:
        self.weights = weights or MatchWeights()
        self._reference_year = reference_year

    @property
    def reference_year(self) -> int:
        return self._reference_year or date.today().year

    # ── Hard filter ──────────────────────────────────────────────────────

    def matching_rates(self, entity: Entity, query: Query) -> tuple[Rate, ...]:
        accepted = accepted_room_types(query.room_type)
        return tuple(rate for rate in entity.rates if rate.room_type in accepted)

    def passes_hard_filter(self, entity: Entity, query: Query) -> bool:
        return bool(self.matching_rates(entity, query))

    # ── Sub-scores ───────────────────────────────────────────────────────

    def room_type_score(self, matched: tuple[Rate, ...], query: Query) -> float:
        if any(rate.room_type == query.room_type for rate in matched):
            return self.weights.room_type_points
        return self.weights.room_type_partial_points

    def price_score(self, matched: tuple[Rate, ...], budget: float) -> float:
        w = self.weights
        cheapest = min(rate.amount for rate in matched)
        if cheapest <= budget:
            return w.price_points

        excess = cheapest - budget
        span = budget * (w.price_zero_multiple - 1.0)
        if span <= 0:
            return 0.0
        return max(0.0, w.price_points * w.over_budget_ceiling * (1.0 - excess / span))

    def zone_score(self, entity: Entity, query: Query) -> float:
        return self.weights.zone_points if entity.zone == query.zone else 0.0

    def building_score(self, building_year: int | None) -> float:
        w = self.weights
        if building_year is None:
            return w.building_neutral
        age = max(0, self.reference_year - building_year)
        for max_age, points in w.building_age_bands:
            if age <= max_age:
                return min(points, w.building_points)
        return min(w.building_oldest, w.building_points)

    def quality_score(self, signal: QualitySignal | None) -> float:
        w = self.weights
        # A matched place with no rating carries no quality evidence either way.
        if signal is None or signal.rating is None:
            return w.quality_neutral
        points = _tier(signal.rating, w.rating_tiers) + _tier(signal.review_count, w.review_count_tiers)
        return min(points, w.quality_points)

    def label_for(self, total: float) -> str:
        for threshold, label in self.weights.label_tiers:
            if total >= threshold:
                return label
        return self.weights.lowest_label

    # ── Breakdown ────────────────────────────────────────────────────────

    def score(self, entity: Entity, query: Query, signal: QualitySignal | None) -> ScoreBreakdown:
        matched = self.matching_rates(entity, query)
        if not matched:
            raise ValueError(f"{entity.name} offers no {query.room_type.value} rate")

        room_type = self.room_type_score(matched, query)
        price = self.price_score(matched, query.max_budget)
        zone = self.zone_score(entity, query)
        building = self.building_score(entity.building_year)
        quality = self.quality_score(signal)

        raw_total = room_type + price + zone + building + quality
        max_points = self.weights.max_points
        total = round(raw_total / max_points * self.weights.scale, 2) if max_points else 0.0

        return ScoreBreakdown(
            room_type_score=room_type,
            price_score=price,
            zone_score=zone,
            building_score=building,
            quality_score=quality,
            raw_total=raw_total,
            max_points=max_points,
            total=total,
            label=self.label_for(total),
            quality_resolved=signal is not None,
        )
