"""
Results service: applies lifecycle transitions to stored matches.

This is the only place match rows are written. Every validated transition
is an atomic compare-and-set against the match row:

    1. Read the row (SELECT ... FOR UPDATE where the database supports it)
    2. Let MatchLifecycleController compute the new record
    3. UPDATE matches SET ... WHERE id = :id AND version_id = :read_version

If step 3 matches no row, another writer committed in between. The caller
gets ConcurrentUpdateError and nothing is retried: reload the match and
decide again. Live-score writes skip the version check (last write wins)
and never feed ratings or standings.

After a transition the derived data is kept in step, in the same
transaction:
- completed: the RPA delta is stored, the winner is moved into the next
  knockout match, and the group table is recomputed
- result cleared: the stored delta is dropped, the winner is taken back
  out of the next match if that match has not been played, and the group
  table is recomputed

Usage:
    from courtside.db import get_session
    from courtside.services.results import MatchResultService

    with get_session() as session:
        service = MatchResultService(session)
        outcome = service.complete_match(match_id, [SetScore(6, 4)])
        if not outcome.ok:
            print(outcome.reason)
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from courtside.config import settings
from courtside.db.models import Match, RatingDeltaRecord, StandingRecord, Team
from courtside.draw import advance_winner, get_next_slot
from courtside.exceptions import ConcurrentUpdateError, MatchNotFoundError
from courtside.lifecycle import MatchLifecycleController, TransitionResult
from courtside.match_statuses import COMPLETED, normalize_status_filter
from courtside.rating.calculator import RatingDelta, calc_match_rating_delta
from courtside.records import MatchRecord
from courtside.records import Team as TeamRecord
from courtside.scoring.sets import SetScore
from courtside.standings import PointsSystem, Standing, compute_standings

logger = logging.getLogger(__name__)


@dataclass
class ResultUpdate:
    """
    What a service call changed.

    Attributes:
        transition: The lifecycle outcome for the match itself
        rating_delta: Delta stored for a newly completed match
        advanced_match: Next knockout match after the winner moved in
        standings: Recomputed table of the match's group
        warnings: Follow-up steps that could not be applied
    """
    transition: TransitionResult
    rating_delta: Optional[RatingDelta] = None
    advanced_match: Optional[MatchRecord] = None
    standings: Optional[list[Standing]] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.transition.ok

    @property
    def match(self) -> MatchRecord:
        return self.transition.match

    @property
    def reason(self) -> Optional[str]:
        return self.transition.reason


class MatchResultService:
    """
    Applies lifecycle transitions to match rows and keeps derived data current.

    The service works inside the caller's session and never commits; use
    it inside get_session() or another transaction scope.
    """

    def __init__(
        self,
        session: Session,
        controller: Optional[MatchLifecycleController] = None,
        points_system: Optional[PointsSystem] = None,
        rating_multiplier: Optional[float] = None,
    ):
        self.session = session
        self.controller = controller or MatchLifecycleController()
        self.points_system = points_system or PointsSystem.from_settings()
        self.rating_multiplier = (
            settings.rpa_multiplier if rating_multiplier is None else rating_multiplier
        )

    # ==========================================================================
    # Reads
    # ==========================================================================

    def get_match(self, match_id: str) -> MatchRecord:
        return self._load_row(match_id).to_record()

    def list_matches(
        self,
        group_id: Optional[str] = None,
        round: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        default_group: str = "all",
    ) -> list[MatchRecord]:
        """
        List matches filtered by group, round and status.

        Unknown statuses are ignored; with no usable status the
        ``default_group`` status group is used.
        """
        wanted = normalize_status_filter(statuses, default_group=default_group)
        query = select(Match).where(Match.status.in_(wanted))
        if group_id is not None:
            query = query.where(Match.group_id == group_id)
        if round is not None:
            query = query.where(Match.round == round)
        query = query.order_by(Match.round, Match.draw_position, Match.id)
        return [row.to_record() for row in self.session.scalars(query)]

    def get_rating_delta(self, match_id: str) -> Optional[RatingDelta]:
        row = self.session.scalar(select(RatingDeltaRecord).where(RatingDeltaRecord.match_id == match_id))
        return row.to_delta() if row else None

    def get_team(self, team_id: Optional[str]) -> Optional[TeamRecord]:
        if team_id is None:
            return None
        row = self.session.get(Team, team_id)
        return row.to_record() if row else None

    # ==========================================================================
    # Lifecycle entry points
    # ==========================================================================

    def start_match(self, match_id: str, expected_version: Optional[int] = None) -> ResultUpdate:
        return self._transition(match_id, self.controller.start_match, expected_version)

    def revert_match(self, match_id: str, expected_version: Optional[int] = None) -> ResultUpdate:
        return self._transition(match_id, self.controller.revert_match, expected_version)

    def complete_match(
        self,
        match_id: str,
        sets: Iterable[SetScore],
        expected_version: Optional[int] = None,
    ) -> ResultUpdate:
        sets = list(sets)
        return self._transition(
            match_id, lambda record: self.controller.complete_match(record, sets), expected_version
        )

    def clear_result(self, match_id: str, expected_version: Optional[int] = None) -> ResultUpdate:
        return self._transition(match_id, self.controller.clear_result, expected_version)

    def submit_provisional(
        self,
        match_id: str,
        sets: Iterable[SetScore],
        submitted_by: str,
        expected_version: Optional[int] = None,
    ) -> ResultUpdate:
        sets = list(sets)
        return self._transition(
            match_id,
            lambda record: self.controller.submit_provisional(record, sets, submitted_by),
            expected_version,
        )

    def confirm_provisional(
        self,
        match_id: str,
        confirmed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ResultUpdate:
        return self._transition(
            match_id,
            lambda record: self.controller.confirm_provisional(record, confirmed_by),
            expected_version,
        )

    def reject_provisional(
        self,
        match_id: str,
        rejected_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ResultUpdate:
        return self._transition(
            match_id,
            lambda record: self.controller.reject_provisional(record, rejected_by),
            expected_version,
        )

    def update_live_score(self, match_id: str, sets: Iterable[SetScore]) -> ResultUpdate:
        """
        Overwrite the live score without a version check.

        Live scores are last-write-wins: concurrent writers simply replace
        each other, and the match version is left alone so result
        submissions are not disturbed.
        """
        row = self._load_row(match_id)
        result = self.controller.update_live_score(row.to_record(), sets)
        if not result.ok:
            return ResultUpdate(transition=result)

        self.session.execute(
            update(Match)
            .where(Match.id == match_id)
            .values(live_score=result.match.live_score.to_dict())
            .execution_options(synchronize_session=False)
        )
        self.session.expire(row)
        return ResultUpdate(transition=result)

    # ==========================================================================
    # Standings
    # ==========================================================================

    def recompute_group_standings(self, group_id: str) -> list[Standing]:
        """
        Recompute a group's table from its completed matches and store it.

        Safe to call at any time: the table is a pure fold over the group's
        completed matches and stored deltas, and replaces the stored rows.
        """
        matches = self.list_matches(group_id=group_id, statuses=[COMPLETED])
        team_rows = self.session.scalars(select(Team).where(Team.group_id == group_id)).all()
        teams = {t.id: t.to_record() for t in team_rows}
        for match in matches:
            for team_id in match.team_ids:
                if team_id is not None and team_id not in teams:
                    team = self.get_team(team_id)
                    if team is not None:
                        teams[team_id] = team

        match_ids = [m.id for m in matches]
        deltas = {}
        if match_ids:
            delta_rows = self.session.scalars(
                select(RatingDeltaRecord).where(RatingDeltaRecord.match_id.in_(match_ids))
            )
            deltas = {row.match_id: row.to_delta() for row in delta_rows}

        table = compute_standings(
            matches,
            points_system=self.points_system,
            rating_deltas=deltas,
            teams=teams,
            group_id=group_id,
        )

        self.session.execute(delete(StandingRecord).where(StandingRecord.group_id == group_id))
        self.session.add_all(StandingRecord.from_standing(row, group_id) for row in table)
        self.session.flush()

        logger.debug("Recomputed standings for group %s (%d teams)", group_id, len(table))
        return table

    # ==========================================================================
    # Internals
    # ==========================================================================

    def _load_row(self, match_id: str, for_update: bool = False) -> Match:
        query = select(Match).where(Match.id == match_id).execution_options(populate_existing=True)
        if for_update:
            query = query.with_for_update()
        row = self.session.scalar(query)
        if row is None:
            raise MatchNotFoundError(match_id)
        return row

    def _transition(
        self,
        match_id: str,
        operation: Callable[[MatchRecord], TransitionResult],
        expected_version: Optional[int],
    ) -> ResultUpdate:
        row = self._load_row(match_id, for_update=True)
        before = row.to_record()

        if expected_version is not None and expected_version != before.version:
            logger.warning(
                "Match %s is at version %d, caller expected %d",
                match_id, before.version, expected_version,
            )
            raise ConcurrentUpdateError(match_id, expected_version)

        result = operation(before)
        if not result.ok:
            return ResultUpdate(transition=result)

        self._compare_and_set(row, before.version, result.match)
        outcome = ResultUpdate(transition=result)

        if result.match.status == COMPLETED and before.status != COMPLETED:
            self._after_completion(result.match, outcome)
        if result.rating_delta_invalidated:
            self._after_clear(before, outcome)

        return outcome

    def _compare_and_set(self, row: Match, read_version: int, record: MatchRecord) -> None:
        """Write the record only if the row is still at the version we read."""
        outcome = self.session.execute(
            update(Match)
            .where(Match.id == record.id, Match.version_id == read_version)
            .values(**Match.values_from_record(record))
            .execution_options(synchronize_session=False)
        )
        if outcome.rowcount != 1:
            logger.warning(
                "Concurrent update on match %s (read version %d); write discarded",
                record.id, read_version,
            )
            raise ConcurrentUpdateError(record.id, read_version)

        # The ORM copy is stale after a Core UPDATE
        self.session.expire(row)

    def _after_completion(self, match: MatchRecord, outcome: ResultUpdate) -> None:
        team_a, team_b = self.get_team(match.team1_id), self.get_team(match.team2_id)
        delta = calc_match_rating_delta(match, team_a, team_b, multiplier=self.rating_multiplier)

        self.session.execute(delete(RatingDeltaRecord).where(RatingDeltaRecord.match_id == match.id))
        self.session.add(RatingDeltaRecord.from_delta(delta))
        self.session.flush()
        outcome.rating_delta = delta

        logger.info(
            "Match %s completed: winner %s, rating delta %+d/%+d",
            match.id, match.winner_id, delta.delta_a, delta.delta_b,
        )

        if match.next_match_id:
            next_row = self._load_row(match.next_match_id, for_update=True)
            next_before = next_row.to_record()
            advanced = advance_winner(match, next_before)
            if not advanced.ok:
                outcome.warnings.append(advanced.reason)
            elif advanced.match.version != next_before.version:
                self._compare_and_set(next_row, next_before.version, advanced.match)
                outcome.advanced_match = advanced.match

        if match.group_id:
            outcome.standings = self.recompute_group_standings(match.group_id)

    def _after_clear(self, before: MatchRecord, outcome: ResultUpdate) -> None:
        self.session.execute(delete(RatingDeltaRecord).where(RatingDeltaRecord.match_id == before.id))
        logger.info("Match %s result cleared; rating delta dropped", before.id)

        if before.next_match_id and before.winner_id:
            self._retract_winner(before, outcome)

        if before.group_id:
            outcome.standings = self.recompute_group_standings(before.group_id)

    def _retract_winner(self, before: MatchRecord, outcome: ResultUpdate) -> None:
        """Take a cleared winner back out of the next match, if it is still unplayed."""
        next_row = self._load_row(before.next_match_id, for_update=True)
        next_before = next_row.to_record()
        if next_before.status == COMPLETED:
            outcome.warnings.append(
                f"Match {next_before.id} is already completed; its teams were left unchanged"
            )
            return

        position = before.next_match_position
        if position is None and before.draw_position is not None:
            position = get_next_slot(before.draw_position)
        if position not in (1, 2):
            return

        slot = "team1_id" if position == 1 else "team2_id"
        if getattr(next_before, slot) != before.winner_id:
            return

        retracted = replace(next_before, version=next_before.version + 1, **{slot: None})
        self._compare_and_set(next_row, next_before.version, retracted)
        outcome.advanced_match = retracted
