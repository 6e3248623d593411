"""
Scoring Profiles
================

Every dorm that passes the room-type filter is scored out of five
factors: **room type**, **price fit**, **zone**, **building age** and
**external quality** (Google rating and review volume).  A profile is a
named ``MatchWeights`` instance: it changes point budgets and tiers, never
the scoring code path.

* **standard** (default)
  ``4 room type + 3 price + 1 zone + 1 building + 2 quality``
  Room-type fit dominates; zone is a tie-breaker.

* **location_weighted**
  ``2 room type + 3 price + 2 zone + 1 building + 2 quality``
  For students who care more about which side of campus they live on.

The active profile comes from ``RankingConfig.profile``
(``DORMS_SCORING_PROFILE``).  Totals are always reported on a 0-10 scale,
so scores from different profiles stay comparable.
"""

from __future__ import annotations

import logging

from .config import MatchWeights

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "standard"

PROFILES: dict[str, dict] = {
    "standard": {
        "label": "Room-type first",
        "weights": MatchWeights(),
    },
    "location_weighted": {
        "label": "Zone-sensitive",
        "weights": MatchWeights(
            room_type_points=2.0,
            room_type_partial_points=1.0,
            zone_points=2.0,
        ),
    },
}


def get_profile_weights(name: str | None) -> MatchWeights:
    """Return the weights for *name*, falling back to the standard profile."""
    profile = PROFILES.get(name or DEFAULT_PROFILE)
    if profile is None:
        logger.warning("Unknown scoring profile %r, using %r", name, DEFAULT_PROFILE)
        profile = PROFILES[DEFAULT_PROFILE]
    return profile["weights"]
