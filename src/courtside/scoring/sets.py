"""
Set score representation and validation.

A set is two game counts, one per team. Racket-sport rules for a finished
set (when strict rules are on):

- Someone must reach 6 games
- At 6 the margin must be at least 2 (6-0 .. 6-4; 6-5 is unfinished)
- At 7 the opponent must have 5 or 6 (7-5, or 7-6 after a tiebreak)
- Anything above 7 is only a super tiebreak: first to 10, win by 2, and only
  as the deciding set of a best-of-three match

A 0-0 set is an empty slot in the score sheet, not a played set.
"""

from dataclasses import dataclass
from typing import Any, Optional

from courtside.exceptions import InvalidSetScoreError, ScoreValidationError, TiedSetError
from courtside.match_statuses import BEST_OF_THREE

# Games needed to win a regular set
SET_TARGET_GAMES = 6

# Games reached when a set is won 7-5 or 7-6
SET_MAX_GAMES = 7

# Super tiebreak: first to 10 points, win by 2
SUPER_TIEBREAK_TARGET = 10
MIN_WINNING_MARGIN = 2

# Zero-based index of the deciding set in a best-of-three match
DECIDING_SET_INDEX = 2


@dataclass(frozen=True)
class SetScore:
    """
    Games won by each team in one set.

    Attributes:
        team1_games: Games won by team 1
        team2_games: Games won by team 2
    """
    team1_games: int
    team2_games: int

    @property
    def is_entered(self) -> bool:
        """Whether anything has been entered for this set (0-0 is an empty slot)."""
        return bool(self.team1_games) or bool(self.team2_games)

    @property
    def winner_side(self) -> Optional[int]:
        """1 or 2 for the team with more games, None for a level set."""
        if self.team1_games > self.team2_games:
            return 1
        if self.team2_games > self.team1_games:
            return 2
        return None

    @property
    def is_super_tiebreak(self) -> bool:
        return max(self.team1_games, self.team2_games) > SET_MAX_GAMES

    def to_dict(self) -> dict:
        """Record format: {"team1Games": 6, "team2Games": 4}."""
        return {"team1Games": self.team1_games, "team2Games": self.team2_games}

    @classmethod
    def from_dict(cls, data: dict) -> "SetScore":
        """
        Build a set from a record dict.

        Accepts the record keys (team1Games/team2Games) and the short
        team1/team2 keys used by older score sheets. Missing or blank
        values count as 0.
        """
        t1 = data.get("team1Games", data.get("team1"))
        t2 = data.get("team2Games", data.get("team2"))
        return cls(_coerce_games(t1), _coerce_games(t2))

    def __repr__(self) -> str:
        return f"{self.team1_games}-{self.team2_games}"


def _coerce_games(value: Any) -> int:
    if value is None or value == "":
        return 0
    return int(value)


@dataclass(frozen=True)
class SetValidation:
    """
    Result of validating one set.

    Attributes:
        valid: Whether the set is acceptable
        set_index: Zero-based position of the set in the match
        played: False for a 0-0 placeholder
        error: The failure, if any (never raised)
    """
    valid: bool
    set_index: int
    played: bool = True
    error: Optional[ScoreValidationError] = None

    @property
    def reason(self) -> Optional[str]:
        return self.error.reason if self.error else None


def is_deciding_set(set_index: int, match_format: str) -> bool:
    """Whether this set slot is the last possible set of a best-of-three."""
    return match_format == BEST_OF_THREE and set_index == DECIDING_SET_INDEX


def validate_set(
    set_score: SetScore,
    set_index: int,
    match_format: str,
    use_strict_rules: bool = True,
) -> SetValidation:
    """
    Validate one set against the set rules.

    Args:
        set_score: The set to check
        set_index: Zero-based set position (only the deciding set of a
            best-of-three may be a super tiebreak)
        match_format: 'singleSet' or 'bestOfThree'
        use_strict_rules: Apply full racket-sport rules. When False only
            tied and negative scores are rejected.

    Returns:
        SetValidation describing the outcome

    Examples:
        validate_set(SetScore(6, 4), 0, "singleSet").valid          # True
        validate_set(SetScore(6, 5), 0, "singleSet").valid          # False
        validate_set(SetScore(10, 8), 2, "bestOfThree").valid       # True
        validate_set(SetScore(10, 8), 0, "bestOfThree").valid       # False
    """
    a, b = set_score.team1_games, set_score.team2_games

    if not isinstance(a, int) or not isinstance(b, int) or a < 0 or b < 0:
        return _invalid(set_index, f"Set {set_index + 1}: games must be non-negative whole numbers")

    if a == 0 and b == 0:
        return SetValidation(valid=True, set_index=set_index, played=False)

    if a == b:
        return SetValidation(valid=False, set_index=set_index, error=TiedSetError(set_index, a))

    if not use_strict_rules:
        return SetValidation(valid=True, set_index=set_index)

    high, low = max(a, b), min(a, b)
    margin = high - low

    if high > SET_MAX_GAMES:
        if not is_deciding_set(set_index, match_format):
            return _invalid(
                set_index,
                f"Set {set_index + 1} ({a}-{b}): more than {SET_MAX_GAMES} games is only "
                "allowed as a super tiebreak in the deciding set",
            )
        if high < SUPER_TIEBREAK_TARGET or margin < MIN_WINNING_MARGIN:
            return _invalid(
                set_index,
                f"Set {set_index + 1} ({a}-{b}): a super tiebreak is won at "
                f"{SUPER_TIEBREAK_TARGET} or more by {MIN_WINNING_MARGIN} clear points",
            )
        return SetValidation(valid=True, set_index=set_index)

    if high < SET_TARGET_GAMES:
        return _invalid(set_index, f"Set {set_index + 1} ({a}-{b}) is not finished")

    if high == SET_TARGET_GAMES and margin < MIN_WINNING_MARGIN:
        return _invalid(
            set_index,
            f"Set {set_index + 1} ({a}-{b}): at {SET_TARGET_GAMES} games a set needs "
            f"a {MIN_WINNING_MARGIN}-game margin",
        )

    if high == SET_MAX_GAMES and low not in (SET_TARGET_GAMES - 1, SET_TARGET_GAMES):
        return _invalid(
            set_index,
            f"Set {set_index + 1} ({a}-{b}): a set reaches {SET_MAX_GAMES} games only "
            "from 7-5 or 7-6",
        )

    return SetValidation(valid=True, set_index=set_index)


def _invalid(set_index: int, reason: str) -> SetValidation:
    return SetValidation(
        valid=False,
        set_index=set_index,
        error=InvalidSetScoreError(reason, set_index),
    )
