"""
Rating module.

Implements the RPA (Rating Points Algorithm) for doubles matches:
- Pair rating sums with a default for unknown players
- Winner-relative gap bands (underdog bonus, favourite protection)
- Game-differential scaling that never flips the award's sign
- Zero-sum deltas, with an optional competition multiplier
"""

from courtside.rating.calculator import (
    RatingDelta,
    UnknownRatingFallback,
    apply_multiplier,
    calc_match_rating_delta,
    calc_rating_delta,
    team_average_rating,
)
from courtside.rating.constants import FACTOR_BANDS, factor_for_gap

__all__ = [
    "RatingDelta",
    "UnknownRatingFallback",
    "apply_multiplier",
    "calc_match_rating_delta",
    "calc_rating_delta",
    "team_average_rating",
    "FACTOR_BANDS",
    "factor_for_gap",
]
