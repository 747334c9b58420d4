"""Unit tests for the plain record types and their dict form."""

from datetime import datetime, timezone

import pytest

from courtside.match_statuses import BEST_OF_THREE, IN_PROGRESS
from courtside.records import (
    LiveScore,
    MatchRecord,
    PendingConfirmation,
    is_bye,
    is_placeholder,
    is_real_team,
)
from courtside.scoring.formats import SetsWon
from courtside.scoring.sets import SetScore


def test_group_and_round_are_exclusive():
    with pytest.raises(ValueError):
        MatchRecord(id="m1", team1_id="t1", team2_id="t2", group_id="A", round="finals")


def test_loser_id(make_match):
    assert make_match("m1", "t1", "t2", winner_id="t2").loser_id == "t1"
    assert make_match("m1", "t1", "t2").loser_id is None
    assert make_match("m1", "t1", "t2", winner_id="t9").loser_id is None


def test_team_player_ratings(make_team):
    team = make_team("t1", 1500, None, 1700)

    assert team.player_ratings == [1500, None]


def test_match_dict_uses_record_keys():
    match = MatchRecord(
        id="m1", team1_id="t1", team2_id="t2", format=BEST_OF_THREE,
        sets=(SetScore(6, 4), SetScore(6, 3)), score=SetsWon(2, 0), group_id="A",
    )

    data = match.to_dict()

    assert data["team1Id"] == "t1"
    assert data["sets"] == [{"team1Games": 6, "team2Games": 4}, {"team1Games": 6, "team2Games": 3}]
    assert data["groupId"] == "A"
    # Optional keys are left out when unset
    assert "round" not in data
    assert "pendingConfirmation" not in data


def test_match_dict_round_trip_with_sub_states():
    submitted_at = datetime(2025, 5, 1, 18, 30, tzinfo=timezone.utc)
    match = MatchRecord(
        id="sf1", team1_id="t1", team2_id="TBD", status=IN_PROGRESS, round="semi_finals",
        live_score=LiveScore(sets=(SetScore(3, 2),)),
        pending_confirmation=PendingConfirmation((SetScore(6, 4),), "player-1", submitted_at),
        draw_position=1, next_match_id="f1", next_match_position=1, version=4,
    )

    assert MatchRecord.from_dict(match.to_dict()) == match


def test_from_dict_tolerates_missing_teams():
    match = MatchRecord.from_dict({"id": "f1", "round": "finals"})

    assert match.team1_id is None
    assert match.is_knockout


def test_live_score_dict():
    live = LiveScore(sets=(SetScore(6, 4), SetScore(2, 3)))

    assert live.to_dict()["games"] == {"team1": 8, "team2": 7}


@pytest.mark.parametrize("team_id", [None, "", "TBD", "tbd"])
def test_placeholder_team_references(team_id):
    assert is_placeholder(team_id)
    assert not is_real_team(team_id)


def test_bye_team_reference():
    assert is_bye("BYE")
    assert is_bye("bye")
    assert not is_placeholder("BYE")
    assert not is_real_team("BYE")


def test_real_team_reference():
    assert is_real_team("t1")
    assert not is_bye("t1")
