"""
Knockout bracket utilities.

Provides the canonical knockout rounds, positional math for brackets and
champion resolution. Draw positions are 1-indexed within each round and
follow standard single-elimination progression:

    Round N, position p  ->  Round N+1, position ceil(p/2)

So positions 1 and 2 in the round of 16 feed into position 1 of the
quarter-finals, positions 3 and 4 feed into position 2, etc.

A bracket may not be fully populated yet: team references can be TBD
(None or "TBD", the slot waits for a feeder match) or BYE (the opponent
advances automatically). These are reported as they are; nothing here
invents teams.

These functions are used by:
- Standings/championship code (ordering rounds, counting knockout wins)
- The results service (moving a winner into the next match)
"""

import logging
import math
from dataclasses import replace
from enum import Enum
from typing import Iterable, Optional

from courtside.exceptions import InvalidTransitionError
from courtside.lifecycle import TransitionResult
from courtside.match_statuses import COMPLETED
from courtside.records import MatchRecord, is_real_team

logger = logging.getLogger(__name__)


class KnockoutRound(Enum):
    """Canonical knockout rounds, in playing order."""

    ROUND_OF_16 = "round_of_16"
    QUARTER_FINALS = "quarter_finals"
    SEMI_FINALS = "semi_finals"
    FINALS = "finals"
    # Played alongside the final; never decides the champion
    THIRD_PLACE = "third_place"

    @property
    def order(self) -> int:
        return ROUND_ORDER.index(self)

    @property
    def counts_for_championship(self) -> bool:
        return self is not KnockoutRound.THIRD_PLACE

    @classmethod
    def from_code(cls, code: Optional[str]) -> Optional["KnockoutRound"]:
        """
        Look up a round from its stored tag.

        Accepts the canonical values and the short codes used on draw
        sheets (R16, QF, SF, F, 3P). Unknown tags return None.

        Examples:
            >>> KnockoutRound.from_code("quarter_finals")
            <KnockoutRound.QUARTER_FINALS: 'quarter_finals'>
            >>> KnockoutRound.from_code("SF")
            <KnockoutRound.SEMI_FINALS: 'semi_finals'>
            >>> KnockoutRound.from_code("R128") is None
            True
        """
        if not code:
            return None
        key = code.strip()
        try:
            return cls(key.lower())
        except ValueError:
            return ROUND_CODE_ALIASES.get(key.upper())


# Total order used for sorting; the third-place match sorts last
ROUND_ORDER: tuple[KnockoutRound, ...] = (
    KnockoutRound.ROUND_OF_16,
    KnockoutRound.QUARTER_FINALS,
    KnockoutRound.SEMI_FINALS,
    KnockoutRound.FINALS,
    KnockoutRound.THIRD_PLACE,
)

# Main-draw progression: each round feeds into the next one in sequence
ROUND_PROGRESSION: tuple[KnockoutRound, ...] = ROUND_ORDER[:4]

ROUND_CODE_ALIASES = {
    "R16": KnockoutRound.ROUND_OF_16,
    "QF": KnockoutRound.QUARTER_FINALS,
    "SF": KnockoutRound.SEMI_FINALS,
    "F": KnockoutRound.FINALS,
    "3P": KnockoutRound.THIRD_PLACE,
}


# ==========================================================================
# Rounds and champion
# ==========================================================================


def _by_draw_position(matches: list[MatchRecord]) -> list[MatchRecord]:
    # Matches without a position keep their input order, after positioned ones
    return sorted(matches, key=lambda m: (m.draw_position is None, m.draw_position or 0))


def group_by_round(matches: Iterable[MatchRecord]) -> list[tuple[KnockoutRound, list[MatchRecord]]]:
    """
    Bucket knockout matches by round, in canonical round order.

    Only rounds with at least one match are returned. Matches without a
    round tag (group matches) and unknown tags are skipped. Within a round,
    matches are ordered by draw position.

    Returns:
        List of (round, matches) pairs
    """
    buckets: dict[KnockoutRound, list[MatchRecord]] = {}

    for match in matches:
        if match.round is None:
            continue
        knockout_round = KnockoutRound.from_code(match.round)
        if knockout_round is None:
            logger.warning("Match %s has unknown round tag '%s'; skipped", match.id, match.round)
            continue
        buckets.setdefault(knockout_round, []).append(match)

    return [(r, _by_draw_position(buckets[r])) for r in ROUND_ORDER if r in buckets]


def champion_of(matches: Iterable[MatchRecord]) -> Optional[str]:
    """
    Winner of the final, or None while there is no champion.

    The champion is the winner of the single finals-tagged match once it
    is completed. The third-place match never counts.

    Returns:
        Champion team id, or None if the final is missing, not completed,
        ambiguous (more than one final) or has no real winner
    """
    finals = [m for m in matches if KnockoutRound.from_code(m.round) is KnockoutRound.FINALS]

    if len(finals) != 1:
        if len(finals) > 1:
            logger.warning("Found %d finals matches; cannot determine a champion", len(finals))
        return None

    final = finals[0]
    if final.status != COMPLETED or not is_real_team(final.winner_id):
        return None
    return final.winner_id


def winners_of_round(matches: Iterable[MatchRecord], knockout_round: KnockoutRound) -> list[str]:
    """Winners of the completed matches in one round, in draw position order."""
    for r, round_matches in group_by_round(matches):
        if r is knockout_round:
            return [
                m.winner_id
                for m in round_matches
                if m.status == COMPLETED and is_real_team(m.winner_id)
            ]
    return []


# ==========================================================================
# Bracket maths
# ==========================================================================


def get_next_round(knockout_round: KnockoutRound) -> Optional[KnockoutRound]:
    """
    Get the next round in bracket progression.

    Returns:
        Next round, or None for the final and the third-place match

    Examples:
        >>> get_next_round(KnockoutRound.SEMI_FINALS)
        <KnockoutRound.FINALS: 'finals'>
        >>> get_next_round(KnockoutRound.FINALS) is None
        True
    """
    if knockout_round not in ROUND_PROGRESSION:
        return None

    idx = ROUND_PROGRESSION.index(knockout_round)
    if idx >= len(ROUND_PROGRESSION) - 1:
        return None
    return ROUND_PROGRESSION[idx + 1]


def get_previous_round(knockout_round: KnockoutRound) -> Optional[KnockoutRound]:
    """
    Get the previous round in bracket progression.

    The third-place match is fed by the semi-finals (their losers).

    Examples:
        >>> get_previous_round(KnockoutRound.QUARTER_FINALS)
        <KnockoutRound.ROUND_OF_16: 'round_of_16'>
        >>> get_previous_round(KnockoutRound.ROUND_OF_16) is None
        True
    """
    if knockout_round is KnockoutRound.THIRD_PLACE:
        return KnockoutRound.SEMI_FINALS

    idx = ROUND_PROGRESSION.index(knockout_round)
    if idx == 0:
        return None
    return ROUND_PROGRESSION[idx - 1]


def get_next_draw_position(position: int) -> int:
    """
    Compute the draw position in the next round.

    Winner of position p feeds into position ceil(p/2) in the next round.

    Examples:
        >>> get_next_draw_position(1)
        1
        >>> get_next_draw_position(2)
        1
        >>> get_next_draw_position(3)
        2
    """
    return math.ceil(position / 2)


def get_next_slot(position: int) -> int:
    """
    Which team slot of the next match a winner fills: 1 (team 1) or 2.

    Odd positions feed the top slot, even positions the bottom slot.
    """
    return 1 if position % 2 == 1 else 2


def get_feeder_positions(position: int) -> tuple[int, int]:
    """
    Get the two feeder positions from the previous round.

    Position p in round N+1 is fed by positions 2p-1 and 2p in round N.

    Examples:
        >>> get_feeder_positions(1)
        (1, 2)
        >>> get_feeder_positions(3)
        (5, 6)
    """
    return (2 * position - 1, 2 * position)


# ==========================================================================
# Winner advancement
# ==========================================================================


def advance_winner(completed_match: MatchRecord, next_match: MatchRecord) -> TransitionResult:
    """
    Put the winner of a completed knockout match into its next match.

    The slot comes from completed_match.next_match_position (1 = team 1,
    2 = team 2), or from its draw position when no slot is stored.

    Returns:
        TransitionResult with the updated next match. Refused with
        InvalidTransitionError when the feeder has no winner, is not wired
        to next_match, or next_match already has a result.
    """
    def refuse(reason: str) -> TransitionResult:
        logger.info("Cannot advance winner of %s into %s: %s", completed_match.id, next_match.id, reason)
        error = InvalidTransitionError(reason, from_status=next_match.status, operation="advance_winner")
        return TransitionResult(ok=False, match=next_match, error=error)

    if completed_match.status != COMPLETED or completed_match.winner_id is None:
        return refuse(f"Match {completed_match.id} has no result yet")

    if completed_match.next_match_id != next_match.id:
        return refuse(f"Match {completed_match.id} does not feed match {next_match.id}")

    if next_match.status == COMPLETED:
        return refuse(f"Match {next_match.id} is already completed; clear its result first")

    slot = completed_match.next_match_position
    if slot is None and completed_match.draw_position is not None:
        slot = get_next_slot(completed_match.draw_position)
    if slot not in (1, 2):
        return refuse(f"Match {completed_match.id} has no valid slot in match {next_match.id}")

    field_name = "team1_id" if slot == 1 else "team2_id"
    if getattr(next_match, field_name) == completed_match.winner_id:
        # Already advanced; nothing to write
        return TransitionResult(ok=True, match=next_match)

    updated = replace(next_match, version=next_match.version + 1, **{field_name: completed_match.winner_id})
    logger.debug(
        "Advanced %s from %s into slot %d of %s",
        completed_match.winner_id, completed_match.id, slot, next_match.id,
    )
    return TransitionResult(ok=True, match=updated)
