"""
Unit tests for knockout bracket utilities.

Tests:
- Canonical round ordering and round tag lookup
- Champion resolution from the final
- Bracket position maths
- Advancing a winner into the next match
"""

import pytest

from courtside.draw import (
    KnockoutRound,
    advance_winner,
    champion_of,
    get_feeder_positions,
    get_next_draw_position,
    get_next_round,
    get_next_slot,
    get_previous_round,
    group_by_round,
    winners_of_round,
)
from courtside.exceptions import InvalidTransitionError
from courtside.match_statuses import COMPLETED, IN_PROGRESS
from courtside.records import MatchRecord
from courtside.scoring.formats import SetsWon
from courtside.scoring.sets import SetScore


def knockout(match_id, round_tag, team1_id="TBD", team2_id="TBD", winner_id=None, **kwargs):
    if winner_id is not None:
        kwargs.setdefault("status", COMPLETED)
        kwargs.setdefault("sets", (SetScore(6, 4),) if winner_id == team1_id else (SetScore(4, 6),))
        kwargs.setdefault("score", SetsWon(1, 0) if winner_id == team1_id else SetsWon(0, 1))
    return MatchRecord(
        id=match_id,
        team1_id=team1_id,
        team2_id=team2_id,
        round=round_tag,
        winner_id=winner_id,
        **kwargs,
    )


class TestKnockoutRound:

    def test_total_order(self):
        rounds = sorted(KnockoutRound, key=lambda r: r.order)

        assert rounds == [
            KnockoutRound.ROUND_OF_16,
            KnockoutRound.QUARTER_FINALS,
            KnockoutRound.SEMI_FINALS,
            KnockoutRound.FINALS,
            KnockoutRound.THIRD_PLACE,
        ]

    @pytest.mark.parametrize("code,expected", [
        ("round_of_16", KnockoutRound.ROUND_OF_16),
        ("Quarter_Finals", KnockoutRound.QUARTER_FINALS),
        ("SF", KnockoutRound.SEMI_FINALS),
        ("f", KnockoutRound.FINALS),
        ("3P", KnockoutRound.THIRD_PLACE),
        (" finals ", KnockoutRound.FINALS),
    ])
    def test_from_code(self, code, expected):
        assert KnockoutRound.from_code(code) is expected

    @pytest.mark.parametrize("code", [None, "", "R128", "group"])
    def test_unknown_codes(self, code):
        assert KnockoutRound.from_code(code) is None

    def test_third_place_does_not_count(self):
        assert not KnockoutRound.THIRD_PLACE.counts_for_championship
        assert KnockoutRound.FINALS.counts_for_championship


class TestChampionOf:

    def test_completed_final(self):
        """Scenario F: a completed final's winner is the champion."""
        matches = [
            knockout("sf1", "semi_finals", "tX", "tZ", winner_id="tX"),
            knockout("f1", "finals", "tX", "tY", winner_id="tY"),
        ]

        assert champion_of(matches) == "tY"

    def test_final_not_completed(self):
        matches = [knockout("f1", "finals", "tX", "tY", status=IN_PROGRESS)]

        assert champion_of(matches) is None

    def test_no_final(self):
        assert champion_of([knockout("sf1", "semi_finals", "tX", "tZ", winner_id="tX")]) is None
        assert champion_of([]) is None

    def test_third_place_never_decides(self):
        matches = [knockout("p3", "third_place", "tA", "tB", winner_id="tA")]

        assert champion_of(matches) is None

    def test_two_finals_is_ambiguous(self):
        matches = [
            knockout("f1", "finals", "tX", "tY", winner_id="tY"),
            knockout("f2", "F", "tA", "tB", winner_id="tA"),
        ]

        assert champion_of(matches) is None

    def test_short_code_final(self):
        assert champion_of([knockout("f1", "F", "tX", "tY", winner_id="tX")]) == "tX"


class TestGroupByRound:

    def test_canonical_order_and_positions(self):
        matches = [
            knockout("f1", "finals"),
            knockout("sf2", "semi_finals", draw_position=2),
            MatchRecord(id="g1", team1_id="t1", team2_id="t2", group_id="A"),
            knockout("x1", "R128"),
            knockout("sf1", "SF", draw_position=1),
        ]

        grouped = group_by_round(matches)

        assert [r for r, _ in grouped] == [KnockoutRound.SEMI_FINALS, KnockoutRound.FINALS]
        assert [m.id for m in grouped[0][1]] == ["sf1", "sf2"]

    def test_winners_of_round(self):
        matches = [
            knockout("qf2", "quarter_finals", "t3", "t4", winner_id="t4", draw_position=2),
            knockout("qf1", "quarter_finals", "t1", "t2", winner_id="t1", draw_position=1),
            knockout("qf3", "quarter_finals", "t5", "t6", draw_position=3),
        ]

        assert winners_of_round(matches, KnockoutRound.QUARTER_FINALS) == ["t1", "t4"]
        assert winners_of_round(matches, KnockoutRound.FINALS) == []


class TestBracketMaths:

    def test_round_progression(self):
        assert get_next_round(KnockoutRound.ROUND_OF_16) is KnockoutRound.QUARTER_FINALS
        assert get_next_round(KnockoutRound.FINALS) is None
        assert get_next_round(KnockoutRound.THIRD_PLACE) is None
        assert get_previous_round(KnockoutRound.FINALS) is KnockoutRound.SEMI_FINALS
        assert get_previous_round(KnockoutRound.THIRD_PLACE) is KnockoutRound.SEMI_FINALS
        assert get_previous_round(KnockoutRound.ROUND_OF_16) is None

    @pytest.mark.parametrize("position,next_position,slot", [
        (1, 1, 1),
        (2, 1, 2),
        (3, 2, 1),
        (8, 4, 2),
    ])
    def test_positions(self, position, next_position, slot):
        assert get_next_draw_position(position) == next_position
        assert get_next_slot(position) == slot
        assert position in get_feeder_positions(next_position)


class TestAdvanceWinner:

    @pytest.fixture
    def semi_final(self):
        return knockout("sf1", "semi_finals")

    def test_odd_position_fills_team1(self, semi_final):
        qf = knockout("qf1", "quarter_finals", "t1", "t2", winner_id="t2", draw_position=1, next_match_id="sf1")

        result = advance_winner(qf, semi_final)

        assert result.ok
        assert result.match.team1_id == "t2"
        assert result.match.team2_id == "TBD"
        assert result.match.version == semi_final.version + 1

    def test_even_position_fills_team2(self, semi_final):
        qf = knockout("qf2", "quarter_finals", "t3", "t4", winner_id="t3", draw_position=2, next_match_id="sf1")

        assert advance_winner(qf, semi_final).match.team2_id == "t3"

    def test_stored_slot_wins_over_position(self, semi_final):
        qf = knockout(
            "qf1", "quarter_finals", "t1", "t2", winner_id="t1",
            draw_position=1, next_match_id="sf1", next_match_position=2,
        )

        assert advance_winner(qf, semi_final).match.team2_id == "t1"

    def test_already_advanced_is_a_no_op(self, semi_final):
        qf = knockout("qf1", "quarter_finals", "t1", "t2", winner_id="t1", draw_position=1, next_match_id="sf1")
        advanced = advance_winner(qf, semi_final).match

        again = advance_winner(qf, advanced)

        assert again.ok
        assert again.match is advanced

    @pytest.mark.parametrize("feeder_kwargs,next_kwargs", [
        # No result yet
        (dict(draw_position=1, next_match_id="sf1"), {}),
        # Wired to another match
        (dict(winner_id="t1", draw_position=1, next_match_id="sf2"), {}),
        # No slot information
        (dict(winner_id="t1", next_match_id="sf1"), {}),
        # Next match already played
        (dict(winner_id="t1", draw_position=1, next_match_id="sf1"), dict(winner_id="t9", team1_id="t9")),
    ])
    def test_refused(self, feeder_kwargs, next_kwargs):
        qf = knockout("qf1", "quarter_finals", "t1", "t2", **feeder_kwargs)
        sf = knockout("sf1", "semi_finals", **next_kwargs)

        result = advance_winner(qf, sf)

        assert not result.ok
        assert isinstance(result.error, InvalidTransitionError)
        assert result.error.operation == "advance_winner"
        assert result.match is sf
