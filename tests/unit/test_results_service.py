"""
Tests for the results service against an in-memory SQLite record store.

Uses the seeded_group fixture: group 'A' with teams t1 (1600/1600),
t2 (1500/1500) and t3 (1400/unknown) and a scheduled round robin
g1 (t1-t2, singleSet), g2 (t1-t3, singleSet), g3 (t2-t3, bestOfThree).
"""

import pytest
from sqlalchemy import select, update

from courtside.db.models import Match, RatingDeltaRecord, StandingRecord
from courtside.exceptions import ConcurrentUpdateError, InvalidTransitionError, MatchNotFoundError
from courtside.lifecycle import MatchLifecycleController
from courtside.match_statuses import BEST_OF_THREE, COMPLETED, IN_PROGRESS, SCHEDULED
from courtside.scoring.formats import SetsWon
from courtside.scoring.sets import SetScore
from courtside.services.results import MatchResultService


@pytest.fixture
def service(seeded_group):
    return MatchResultService(seeded_group, controller=MatchLifecycleController(use_strict_rules=True), rating_multiplier=1)


class TestReads:

    def test_get_match(self, service):
        match = service.get_match("g3")

        assert match.team1_id == "t2"
        assert match.format == BEST_OF_THREE
        assert match.status == SCHEDULED
        assert match.version == 0

    def test_unknown_match(self, service):
        with pytest.raises(MatchNotFoundError) as exc_info:
            service.get_match("nope")

        assert exc_info.value.reason == "Match nope not found"

    def test_get_team_with_players(self, service):
        team = service.get_team("t3")

        assert team.player_ratings == [1400.0, None]
        assert service.get_team(None) is None

    def test_list_matches_filters(self, service):
        service.complete_match("g1", [SetScore(6, 4)])

        assert [m.id for m in service.list_matches(group_id="A")] == ["g1", "g2", "g3"]
        assert [m.id for m in service.list_matches(statuses=["completed"])] == ["g1"]
        assert [m.id for m in service.list_matches(statuses=["pending"], default_group="pending")] == ["g2", "g3"]


class TestCompletion:

    def test_completion_stores_delta_and_standings(self, service, seeded_group):
        outcome = service.complete_match("g1", [SetScore(6, 4)])

        assert outcome.ok
        assert outcome.match.status == COMPLETED
        assert outcome.match.winner_id == "t1"

        # 3200 vs 3000: base 62, gap -200 (factor 1.00), gd 2
        assert outcome.rating_delta.delta_a == 64
        stored = service.get_rating_delta("g1")
        assert stored.delta_for("t2") == -64

        assert [row.team_id for row in outcome.standings] == ["t1", "t3", "t2"]
        rows = seeded_group.scalars(
            select(StandingRecord).where(StandingRecord.group_id == "A").order_by(StandingRecord.position)
        ).all()
        assert [r.team_id for r in rows] == ["t1", "t3", "t2"]
        assert rows[0].matches_won == 1

        reloaded = service.get_match("g1")
        assert reloaded.sets == (SetScore(6, 4),)
        assert reloaded.score == SetsWon(1, 0)
        assert reloaded.version == 1

    def test_unknown_rating_recorded_as_fallback(self, service):
        outcome = service.complete_match("g2", [SetScore(6, 2)])

        assert [f.slot for f in outcome.rating_delta.fallbacks] == ["B2"]
        assert service.get_rating_delta("g2").fallbacks == outcome.rating_delta.fallbacks

    def test_invalid_score_changes_nothing(self, service, seeded_group):
        outcome = service.complete_match("g1", [SetScore(6, 6)])

        assert not outcome.ok
        assert "tied" in outcome.reason
        assert service.get_match("g1").version == 0
        assert seeded_group.scalars(select(RatingDeltaRecord)).all() == []

    def test_clear_result_drops_delta(self, service):
        service.complete_match("g1", [SetScore(6, 4)])

        outcome = service.clear_result("g1")

        assert outcome.ok
        assert service.get_rating_delta("g1") is None
        assert all(row.matches_played == 0 for row in outcome.standings)
        match = service.get_match("g1")
        assert match.status == SCHEDULED
        assert match.winner_id is None
        assert match.version == 2

    def test_provisional_flow(self, service):
        service.start_match("g3")
        service.submit_provisional("g3", [SetScore(4, 6), SetScore(6, 3), SetScore(8, 10)], "t3-p1")

        pending = service.get_match("g3")
        assert pending.status == IN_PROGRESS
        assert pending.pending_confirmation.submitted_by == "t3-p1"

        outcome = service.confirm_provisional("g3", confirmed_by="organiser")

        assert outcome.ok
        assert outcome.match.winner_id == "t3"
        assert outcome.match.score == SetsWon(1, 2)
        assert service.get_match("g3").pending_confirmation is None
        assert service.get_rating_delta("g3") is not None

    def test_reject_provisional(self, service):
        service.start_match("g3")
        service.submit_provisional("g3", [SetScore(6, 4), SetScore(6, 4)], "t2-p1")

        outcome = service.reject_provisional("g3", rejected_by="organiser")

        assert outcome.ok
        assert service.get_match("g3").status == IN_PROGRESS
        assert service.get_match("g3").pending_confirmation is None


class TestLiveScore:

    def test_live_score_keeps_version(self, service):
        started = service.start_match("g1").match

        outcome = service.update_live_score("g1", [SetScore(3, 2)])

        assert outcome.ok
        match = service.get_match("g1")
        assert match.live_score.sets == (SetScore(3, 2),)
        assert match.version == started.version

    def test_live_score_on_scheduled_match_refused(self, service):
        outcome = service.update_live_score("g1", [SetScore(1, 0)])

        assert not outcome.ok
        assert service.get_match("g1").live_score is None

    def test_completion_drops_live_score(self, service):
        service.start_match("g1")
        service.update_live_score("g1", [SetScore(5, 4)])

        service.complete_match("g1", [SetScore(7, 5)])

        assert service.get_match("g1").live_score is None


class TestConcurrency:

    def test_stale_expected_version(self, service):
        service.start_match("g1")

        with pytest.raises(ConcurrentUpdateError):
            service.complete_match("g1", [SetScore(6, 4)], expected_version=0)

        assert service.get_match("g1").status == IN_PROGRESS

    def test_matching_expected_version(self, service):
        started = service.start_match("g1", expected_version=0)

        assert service.complete_match("g1", [SetScore(6, 4)], expected_version=started.match.version).ok

    def test_concurrent_writer_loses(self, seeded_group):
        class RacingController(MatchLifecycleController):
            """Simulates another writer committing between our read and our write."""

            def start_match(self, match):
                seeded_group.execute(
                    update(Match)
                    .where(Match.id == match.id)
                    .values(version_id=Match.version_id + 1)
                    .execution_options(synchronize_session=False)
                )
                return super().start_match(match)

        service = MatchResultService(seeded_group, controller=RacingController(use_strict_rules=True))

        with pytest.raises(ConcurrentUpdateError) as exc_info:
            service.start_match("g1")

        assert exc_info.value.expected_version == 0
        assert service.get_match("g1").status == SCHEDULED


class TestKnockout:

    @pytest.fixture
    def bracket(self, seeded_group):
        seeded_group.add_all([
            Match(id="f1", format="singleSet", round="finals", draw_position=1),
            Match(
                id="sf1", team1_id="t1", team2_id="t2", format="singleSet",
                round="semi_finals", draw_position=1, next_match_id="f1",
            ),
            Match(
                id="sf2", team1_id="t3", team2_id="t2", format="singleSet",
                round="semi_finals", draw_position=2, next_match_id="f1",
            ),
        ])
        seeded_group.flush()
        return seeded_group

    def test_winner_advances(self, service, bracket):
        outcome = service.complete_match("sf1", [SetScore(6, 3)])

        assert outcome.advanced_match.team1_id == "t1"
        assert outcome.standings is None
        final = service.get_match("f1")
        assert final.team1_id == "t1"
        assert final.team2_id is None
        assert final.version == 1

    def test_final_waiting_for_a_team_cannot_be_completed(self, service, bracket):
        service.complete_match("sf2", [SetScore(6, 3)])

        outcome = service.complete_match("f1", [SetScore(6, 4)])

        assert not outcome.ok
        assert isinstance(outcome.transition.error, InvalidTransitionError)
        final = service.get_match("f1")
        assert final.status == SCHEDULED
        assert final.winner_id is None
        assert final.version == 1
        assert service.get_rating_delta("f1") is None

    def test_even_position_fills_second_slot(self, service, bracket):
        service.complete_match("sf2", [SetScore(6, 3)])

        assert service.get_match("f1").team2_id == "t3"

    def test_clear_retracts_winner(self, service, bracket):
        service.complete_match("sf1", [SetScore(6, 3)])

        outcome = service.clear_result("sf1")

        assert outcome.ok
        assert service.get_match("f1").team1_id is None

    def test_played_final_is_left_alone(self, service, bracket):
        service.complete_match("sf1", [SetScore(6, 3)])
        service.complete_match("sf2", [SetScore(6, 3)])
        service.complete_match("f1", [SetScore(6, 4)])

        outcome = service.clear_result("sf1")

        assert outcome.ok
        assert outcome.warnings
        assert service.get_match("f1").team1_id == "t1"
