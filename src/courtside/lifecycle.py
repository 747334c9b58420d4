"""
Match lifecycle controller.

A match moves through three statuses:

    scheduled -> inProgress -> completed
        ^            |             |
        +------------+             |   revert
        +--------------------------+   clear result (admin undo)

Alongside the status there are two sub-states that only exist while a
match is in progress:

- live_score: an unvalidated running score, freely overwritten and dropped
  when the match completes or is reverted
- pending_confirmation: a provisional final result submitted by a player,
  waiting for an organiser to confirm (which completes the match through
  the normal score validation) or reject it

Every operation takes a MatchRecord and returns a TransitionResult holding
a new record; the input is never mutated. Failures are returned, not
raised, so callers can branch on ``result.reason``.

Usage:
    controller = MatchLifecycleController()
    result = controller.complete_match(match, [SetScore(6, 4)])
    if not result.ok:
        print(result.reason)
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Iterable, Optional

from courtside.config import settings
from courtside.exceptions import CourtsideError, InvalidTransitionError
from courtside.match_statuses import (
    COMPLETED,
    IN_PROGRESS,
    SCHEDULED,
    is_transition_allowed,
)
from courtside.records import LiveScore, MatchRecord, PendingConfirmation, is_real_team
from courtside.scoring.formats import MatchResolution, SetsWon, validate_match_sets
from courtside.scoring.sets import SetScore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of a lifecycle operation.

    Attributes:
        ok: Whether the transition was applied
        match: The new record on success, the unchanged input on failure
        error: Why the transition was refused (never raised)
        rating_delta_invalidated: True when a stored RatingDelta for this
            match must be dropped (the result was cleared)
        resolution: Score resolution for completion attempts
    """
    ok: bool
    match: MatchRecord
    error: Optional[CourtsideError] = None
    rating_delta_invalidated: bool = False
    resolution: Optional[MatchResolution] = None

    @property
    def reason(self) -> Optional[str]:
        return self.error.reason if self.error else None


class MatchLifecycleController:
    """
    Applies lifecycle transitions to match records.

    Stateless apart from the strict-rules switch, so one instance can be
    shared. Persisting the returned record atomically is the caller's job
    (see courtside.services.results).
    """

    def __init__(self, use_strict_rules: Optional[bool] = None):
        self.use_strict_rules = (
            settings.strict_set_rules if use_strict_rules is None else use_strict_rules
        )

    # ==========================================================================
    # Status transitions
    # ==========================================================================

    def start_match(self, match: MatchRecord) -> TransitionResult:
        """scheduled -> inProgress."""
        if match.status != SCHEDULED:
            return self._refuse(match, "start_match", f"Only a scheduled match can be started (match is {match.status})")

        return self._apply(match, "start_match", status=IN_PROGRESS)

    def revert_match(self, match: MatchRecord) -> TransitionResult:
        """
        Move a match back to scheduled.

        From inProgress the live score and any pending provisional result
        are discarded. From completed this is the same as clear_result.
        """
        if match.status == COMPLETED:
            return self.clear_result(match)

        if not is_transition_allowed(match.status, SCHEDULED):
            return self._refuse(match, "revert_match", f"A {match.status} match cannot be reverted")

        return self._apply(
            match,
            "revert_match",
            status=SCHEDULED,
            live_score=None,
            pending_confirmation=None,
        )

    def complete_match(self, match: MatchRecord, sets: Iterable[SetScore]) -> TransitionResult:
        """
        scheduled/inProgress -> completed, gated by score validation.

        Args:
            match: The match to complete
            sets: Final set scores, team 1 first (0-0 slots are ignored)

        Returns:
            TransitionResult. A match with a TBD or BYE slot is refused with
            InvalidTransitionError. On a validation failure ``error`` is the
            resolver's TiedSetError, InvalidSetScoreError or
            FormatMismatchError and the match is unchanged.
        """
        if not is_transition_allowed(match.status, COMPLETED):
            return self._refuse(
                match,
                "complete_match",
                f"Match is already {match.status}; clear the result before entering a new one"
                if match.status == COMPLETED
                else f"A {match.status} match cannot be completed",
            )

        empty_slots = [
            f"team {slot}" for slot, team_id in ((1, match.team1_id), (2, match.team2_id))
            if not is_real_team(team_id)
        ]
        if empty_slots:
            return self._refuse(
                match,
                "complete_match",
                f"A result needs two teams (no team yet in {' and '.join(empty_slots)})",
            )

        resolution = validate_match_sets(
            sets,
            match.format,
            use_strict_rules=self.use_strict_rules,
            team1_id=match.team1_id,
            team2_id=match.team2_id,
        )

        if not resolution.complete:
            logger.info("Result for match %s rejected: %s", match.id, resolution.reason)
            return TransitionResult(ok=False, match=match, error=resolution.error, resolution=resolution)

        result = self._apply(
            match,
            "complete_match",
            status=COMPLETED,
            sets=resolution.entered_sets,
            winner_id=resolution.winner_id,
            score=resolution.sets_won,
            live_score=None,
            pending_confirmation=None,
        )
        return replace(result, resolution=resolution)

    def clear_result(self, match: MatchRecord) -> TransitionResult:
        """
        completed -> scheduled (admin undo).

        Winner, sets and score are cleared. The stored RatingDelta for the
        match is no longer valid, so standings must be recomputed.
        """
        if match.status != COMPLETED:
            return self._refuse(match, "clear_result", f"Only a completed match has a result to clear (match is {match.status})")

        result = self._apply(
            match,
            "clear_result",
            status=SCHEDULED,
            sets=(),
            winner_id=None,
            score=SetsWon(),
        )
        return replace(result, rating_delta_invalidated=True)

    # ==========================================================================
    # In-progress sub-states
    # ==========================================================================

    def update_live_score(self, match: MatchRecord, sets: Iterable[SetScore]) -> TransitionResult:
        """
        Overwrite the live score of an in-progress match.

        Live scores are not validated and never feed ratings or standings.
        They are last-write-wins, so the version is not bumped.
        """
        if match.status != IN_PROGRESS:
            return self._refuse(match, "update_live_score", "Live scores can only be entered while a match is in progress")

        return TransitionResult(ok=True, match=replace(match, live_score=LiveScore(sets=tuple(sets))))

    def submit_provisional(
        self,
        match: MatchRecord,
        sets: Iterable[SetScore],
        submitted_by: str,
        submitted_at: Optional[datetime] = None,
    ) -> TransitionResult:
        """
        Record a provisional final result for an in-progress match.

        The sets are stored as submitted and only validated on confirmation.
        A newer submission replaces any pending one.
        """
        if match.status != IN_PROGRESS:
            return self._refuse(match, "submit_provisional", "A provisional result can only be submitted while a match is in progress")

        if match.pending_confirmation is not None:
            logger.info(
                "Match %s: provisional result from %s replaces the one from %s",
                match.id, submitted_by, match.pending_confirmation.submitted_by,
            )

        pending = PendingConfirmation(
            sets=tuple(sets),
            submitted_by=submitted_by,
            submitted_at=submitted_at or datetime.now(timezone.utc),
        )
        return self._apply(match, "submit_provisional", pending_confirmation=pending)

    def confirm_provisional(self, match: MatchRecord, confirmed_by: Optional[str] = None) -> TransitionResult:
        """
        Promote the pending provisional result to the final result.

        The pending sets go through complete_match. If they fail validation
        the match stays in progress with the submission still pending, so
        it can be corrected or rejected.
        """
        pending = match.pending_confirmation
        if pending is None:
            return self._refuse(match, "confirm_provisional", "No provisional result is pending confirmation")

        result = self.complete_match(match, pending.sets)
        if result.ok:
            logger.info(
                "Match %s: provisional result from %s confirmed by %s",
                match.id, pending.submitted_by, confirmed_by or "unknown",
            )
        return result

    def reject_provisional(self, match: MatchRecord, rejected_by: Optional[str] = None) -> TransitionResult:
        """Discard the pending provisional result; the match stays in progress."""
        pending = match.pending_confirmation
        if pending is None:
            return self._refuse(match, "reject_provisional", "No provisional result is pending confirmation")

        logger.info(
            "Match %s: provisional result from %s rejected by %s",
            match.id, pending.submitted_by, rejected_by or "unknown",
        )
        return self._apply(match, "reject_provisional", pending_confirmation=None)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @staticmethod
    def _apply(match: MatchRecord, operation: str, **changes) -> TransitionResult:
        updated = replace(match, version=match.version + 1, **changes)
        if updated.status != match.status:
            logger.debug("Match %s: %s -> %s (%s)", match.id, match.status, updated.status, operation)
        return TransitionResult(ok=True, match=updated)

    @staticmethod
    def _refuse(match: MatchRecord, operation: str, reason: str) -> TransitionResult:
        logger.info("Match %s: %s refused: %s", match.id, operation, reason)
        error = InvalidTransitionError(reason, from_status=match.status, operation=operation)
        return TransitionResult(ok=False, match=match, error=error)
