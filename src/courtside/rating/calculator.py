"""
RPA rating calculator for doubles matches.

Converts one completed match into a zero-sum rating adjustment for the two
pairs. See courtside.rating.constants for the formula and its tunables.

The calculation:
  sum_A, sum_B = sum of each pair's two player ratings
  gap          = sum_B - sum_A            (positive when pair A is the underdog)
  base         = (sum_A + sum_B) / 100
  factor       = band lookup on the gap as seen by the winner
  gd           = winner games - loser games, clamped relative to base
  pts          = round((base + gd) * factor)
  delta_A      = +pts if A won else -pts, delta_B = -delta_A
"""

import logging
from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Optional, Sequence

from courtside.config import settings
from courtside.rating.constants import (
    BASE_DIVISOR,
    GD_MAX_SHARE,
    GD_MIN_SHARE,
    factor_for_gap,
)

if TYPE_CHECKING:
    from courtside.records import MatchRecord, Team

logger = logging.getLogger(__name__)

# Player slots in calc order, used to label rating fallbacks
RATING_SLOTS = ("A1", "A2", "B1", "B2")


@dataclass(frozen=True)
class UnknownRatingFallback:
    """
    Recorded when a player's rating was missing and the default was used.

    Not an error: the calculation goes ahead with default_rating.
    """
    slot: str
    default_rating: Decimal
    raw_value: Any = None


@dataclass(frozen=True)
class RatingDelta:
    """
    Result of an RPA calculation.

    Carries the signed adjustment for each pair plus every intermediate
    term, so the award can be audited and shown to players.
    """
    delta_a: int
    delta_b: int
    winner: str  # 'A' or 'B'

    # Intermediate terms
    sum_a: Decimal
    sum_b: Decimal
    gap: Decimal
    base: Decimal
    gd: int
    gd_applied: Decimal
    factor: Decimal
    pts: int

    # Competition weight applied to the deltas (1 = none)
    multiplier: Decimal = Decimal("1")

    match_id: Optional[str] = None
    team_a_id: Optional[str] = None
    team_b_id: Optional[str] = None

    fallbacks: tuple[UnknownRatingFallback, ...] = field(default_factory=tuple)

    @property
    def was_upset(self) -> bool:
        """Whether the lower-rated pair won."""
        if self.winner == "A":
            return self.sum_a < self.sum_b
        return self.sum_b < self.sum_a

    def delta_for(self, team_id: str) -> int:
        """Signed delta for a team id, 0 if the team did not play."""
        if team_id == self.team_a_id:
            return self.delta_a
        if team_id == self.team_b_id:
            return self.delta_b
        return 0

    def to_dict(self) -> dict:
        """Audit payload for storage alongside the delta."""
        return {
            "matchId": self.match_id,
            "teamAId": self.team_a_id,
            "teamBId": self.team_b_id,
            "deltaA": self.delta_a,
            "deltaB": self.delta_b,
            "winner": self.winner,
            "sumA": str(self.sum_a),
            "sumB": str(self.sum_b),
            "gap": str(self.gap),
            "base": str(self.base),
            "gd": self.gd,
            "gdApplied": str(self.gd_applied),
            "factor": str(self.factor),
            "pts": self.pts,
            "multiplier": str(self.multiplier),
            "fallbacks": [
                {"slot": f.slot, "defaultRating": str(f.default_rating)} for f in self.fallbacks
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RatingDelta":
        """Rebuild a delta from its stored audit payload."""
        return cls(
            delta_a=int(data["deltaA"]),
            delta_b=int(data["deltaB"]),
            winner=data["winner"],
            sum_a=Decimal(data["sumA"]),
            sum_b=Decimal(data["sumB"]),
            gap=Decimal(data["gap"]),
            base=Decimal(data["base"]),
            gd=int(data["gd"]),
            gd_applied=Decimal(data["gdApplied"]),
            factor=Decimal(data["factor"]),
            pts=int(data["pts"]),
            multiplier=Decimal(data.get("multiplier", "1")),
            match_id=data.get("matchId"),
            team_a_id=data.get("teamAId"),
            team_b_id=data.get("teamBId"),
            fallbacks=tuple(
                UnknownRatingFallback(slot=f["slot"], default_rating=Decimal(f["defaultRating"]))
                for f in data.get("fallbacks") or []
            ),
        )

    def __repr__(self) -> str:
        return (
            f"<RatingDelta(A: {self.delta_a:+d}, B: {self.delta_b:+d}, "
            f"winner={self.winner}, factor={self.factor})>"
        )


def resolve_rating(
    value: Any,
    slot: str,
    default_rating: Decimal,
    fallbacks: list[UnknownRatingFallback],
) -> Decimal:
    """
    Return a usable rating, falling back to the default for missing values.

    None, blanks, non-numbers and non-positive numbers all count as
    missing. Each fallback is appended to ``fallbacks``.
    """
    try:
        rating = Decimal(str(value)) if value is not None and value != "" else None
    except (InvalidOperation, ValueError):
        rating = None

    if rating is None or not rating.is_finite() or rating <= 0:
        fallbacks.append(UnknownRatingFallback(slot=slot, default_rating=default_rating, raw_value=value))
        logger.debug("Rating for %s missing (%r); using default %s", slot, value, default_rating)
        return default_rating

    return rating


def calc_rating_delta(
    rating_a1: Any,
    rating_a2: Any,
    rating_b1: Any,
    rating_b2: Any,
    games_a: int,
    games_b: int,
    winner: str,
    default_rating: Optional[float] = None,
) -> RatingDelta:
    """
    Calculate the RPA adjustment for a completed doubles match.

    Args:
        rating_a1, rating_a2: Pair A player ratings (None = unknown)
        rating_b1, rating_b2: Pair B player ratings (None = unknown)
        games_a: Total games won by pair A across all sets
        games_b: Total games won by pair B across all sets
        winner: 'A' if pair A won, 'B' if pair B won
        default_rating: Rating for unknown players (settings default if None)

    Returns:
        RatingDelta with delta_a + delta_b == 0

    Raises:
        ValueError: If winner is not 'A' or 'B'

    Example:
        # Four 1500 players, A wins 6-3 6-4
        result = calc_rating_delta(1500, 1500, 1500, 1500, 12, 7, "A")
        # base 60, gd 5, factor 1.00 -> A +65, B -65
    """
    if winner not in ("A", "B"):
        raise ValueError(f"winner must be 'A' or 'B', got '{winner}'")

    default = Decimal(str(default_rating if default_rating is not None else settings.default_player_rating))

    fallbacks: list[UnknownRatingFallback] = []
    a1, a2, b1, b2 = (
        resolve_rating(value, slot, default, fallbacks)
        for value, slot in zip((rating_a1, rating_a2, rating_b1, rating_b2), RATING_SLOTS)
    )

    sum_a = a1 + a2
    sum_b = b1 + b2
    gap = sum_b - sum_a

    # Gap from the winner's side: positive when the winner was the underdog
    winner_gap = gap if winner == "A" else -gap
    factor = factor_for_gap(winner_gap)

    base = (sum_a + sum_b) / BASE_DIVISOR

    games_won, games_lost = (games_a, games_b) if winner == "A" else (games_b, games_a)
    gd = int(games_won) - int(games_lost)
    gd_applied = max(-GD_MIN_SHARE * base, min(GD_MAX_SHARE * base, Decimal(gd)))

    raw_pts = (base + gd_applied) * factor
    pts = max(0, int(raw_pts.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))

    delta_a = pts if winner == "A" else -pts

    return RatingDelta(
        delta_a=delta_a,
        delta_b=-delta_a,
        winner=winner,
        sum_a=sum_a,
        sum_b=sum_b,
        gap=gap,
        base=base,
        gd=gd,
        gd_applied=gd_applied,
        factor=factor,
        pts=pts,
        fallbacks=tuple(fallbacks),
    )


def apply_multiplier(delta: RatingDelta, multiplier: float) -> RatingDelta:
    """
    Scale both sides of a delta by a competition weight.

    The winner's side is rounded and the loser's side is its exact
    negation, so the result stays zero-sum.

    Raises:
        ValueError: If multiplier is negative
    """
    m = Decimal(str(multiplier))
    if m < 0:
        raise ValueError(f"multiplier must be non-negative, got {multiplier}")

    scaled = int((Decimal(delta.pts) * m).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    delta_a = scaled if delta.winner == "A" else -scaled
    return replace(delta, delta_a=delta_a, delta_b=-delta_a, multiplier=m)


def team_average_rating(ratings: Sequence[Any], default_rating: Optional[float] = None) -> Decimal:
    """
    Average rating of a pair, used as the last standings tie-break.

    Takes up to two player ratings; missing players and missing ratings
    count as the default rating, the same fallback the calculator uses.
    """
    default = Decimal(str(default_rating if default_rating is not None else settings.default_player_rating))
    slots = list(ratings)[:2]
    slots += [None] * (2 - len(slots))
    fallbacks: list[UnknownRatingFallback] = []
    total = sum(resolve_rating(r, "team", default, fallbacks) for r in slots)
    return total / 2


def calc_match_rating_delta(
    match: "MatchRecord",
    team_a: Optional["Team"],
    team_b: Optional["Team"],
    multiplier: Optional[float] = None,
    default_rating: Optional[float] = None,
) -> RatingDelta:
    """
    Calculate the delta for a completed match record and its two teams.

    Team A is the match's team 1. Games come from the match's sets and the
    winner from its winner_id.

    Raises:
        ValueError: If the match has no winner (not completed)
    """
    if match.winner_id is None or match.winner_id not in (match.team1_id, match.team2_id):
        raise ValueError(f"Match {match.id} has no winner; only completed matches can be rated")

    ratings_a = list(team_a.player_ratings) if team_a else []
    ratings_b = list(team_b.player_ratings) if team_b else []
    ratings_a += [None] * (2 - len(ratings_a))
    ratings_b += [None] * (2 - len(ratings_b))

    games_a = sum(s.team1_games for s in match.sets)
    games_b = sum(s.team2_games for s in match.sets)
    winner = "A" if match.winner_id == match.team1_id else "B"

    delta = calc_rating_delta(
        ratings_a[0], ratings_a[1], ratings_b[0], ratings_b[1],
        games_a, games_b, winner,
        default_rating=default_rating,
    )
    delta = replace(delta, match_id=match.id, team_a_id=match.team1_id, team_b_id=match.team2_id)

    weight = multiplier if multiplier is not None else settings.rpa_multiplier
    if Decimal(str(weight)) != 1:
        delta = apply_multiplier(delta, weight)

    return delta
