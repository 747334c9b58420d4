"""
Score string parsing utilities.

Results typed in by players and club staff come in a handful of shapes:
- Simple: "6-4 6-3"
- Slashes or commas: "6/4, 3/6, 10/8"
- Tiebreak detail: "7-6(5) 6-4" (the tiebreak points are dropped, only
  games are kept)
- Super tiebreak in brackets: "6-4 4-6 [10-8]"

This module parses those into SetScore lists so they can go through the
same validation as scores entered set by set.
"""

import re

from courtside.exceptions import ScoreParseError
from courtside.scoring.sets import SetScore

# One set: games-games with an optional (tiebreak) suffix
_SET_PATTERN = re.compile(r"^(\d+)[-/](\d+)(?:\(\d+(?:-\d+)?\))?$")


def parse_sets(score_str: str) -> list[SetScore]:
    """
    Parse a score string into set scores, team 1 first.

    Args:
        score_str: Raw score string

    Returns:
        List of SetScore in the order played

    Raises:
        ScoreParseError: If the string is empty or any part is not a set

    Examples:
        >>> parse_sets("6-4 6-3")
        [6-4, 6-3]

        >>> parse_sets("6-4 4-6 [10-8]")
        [6-4, 4-6, 10-8]
    """
    if not score_str or not score_str.strip():
        raise ScoreParseError("Empty score string")

    original = score_str.strip()
    parts = _split_sets(original)

    if not parts:
        raise ScoreParseError(f"Could not parse score: {original}")

    sets = []
    for part in parts:
        match = _SET_PATTERN.match(part)
        if not match:
            raise ScoreParseError(f"Could not parse set '{part}' in '{original}'")
        sets.append(SetScore(int(match.group(1)), int(match.group(2))))

    return sets


def _split_sets(score: str) -> list[str]:
    """Split on whitespace/commas/semicolons after unwrapping [10-8] brackets."""
    score = re.sub(r"\[(\d+[-/]\d+)\]", r"\1", score)
    return [p for p in re.split(r"[\s,;]+", score) if p]


def format_sets(sets: list[SetScore]) -> str:
    """
    Convert set scores back to display form like '6-4 4-6 [10-8]'.

    Super tiebreaks are shown in brackets; 0-0 slots are skipped.
    """
    parts = []
    for s in sets:
        if not s.is_entered:
            continue
        text = f"{s.team1_games}-{s.team2_games}"
        parts.append(f"[{text}]" if s.is_super_tiebreak else text)
    return " ".join(parts)
