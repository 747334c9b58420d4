"""
Championship points for a finished tournament.

Each team's championship total is made of three parts:

- rpa: RPA points from its completed matches, scaled by the competition
  multiplier. In group matches the winner gains and the loser loses the
  award; in knockout matches the loser is not penalised.
- group_placement: bonus for the team's final position in its group
- knockout: bonus for every knockout win, by round

Values are rounded to one decimal. Matches with a BYE or a TBD slot, or
without a winner, never score: only real, completed results count.

Usage:
    entries = compute_championship_points(matches, teams)
    for entry in entries:
        print(entry.team_id, entry.total)
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional

from courtside.config import settings
from courtside.draw import KnockoutRound
from courtside.match_statuses import COMPLETED
from courtside.rating.calculator import RatingDelta, calc_match_rating_delta
from courtside.records import MatchRecord, Team, is_real_team
from courtside.standings import Standing, compute_all_group_standings

logger = logging.getLogger(__name__)

ONE_DECIMAL = Decimal("0.1")


def _round1(value: Decimal) -> Decimal:
    return value.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class ChampionshipContribution:
    """One line of a team's championship breakdown."""
    match_id: str
    kind: str  # 'rpa' or 'knockout'
    points: Decimal
    round: Optional[str] = None
    is_loss: bool = False


@dataclass
class ChampionshipEntry:
    """Championship points for one team."""
    team_id: str
    rpa: Decimal = Decimal("0")
    group_placement: Decimal = Decimal("0")
    knockout: Decimal = Decimal("0")
    group_position: Optional[int] = None
    contributions: list[ChampionshipContribution] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return _round1(self.rpa + self.group_placement + self.knockout)

    @property
    def assigned_total(self) -> Decimal:
        """Points credited to players: a negative total credits nothing."""
        return max(Decimal("0"), self.total)

    def to_dict(self) -> dict:
        return {
            "teamId": self.team_id,
            "rpa": float(self.rpa),
            "groupPlacement": float(self.group_placement),
            "knockout": float(self.knockout),
            "total": float(self.total),
            "totalAssigned": float(self.assigned_total),
            "groupPosition": self.group_position,
        }


def compute_championship_points(
    matches: Iterable[MatchRecord],
    teams: Iterable[Team],
    group_standings: Optional[Mapping[str, list[Standing]]] = None,
    rating_deltas: Optional[Mapping[str, RatingDelta]] = None,
    multiplier: Optional[float] = None,
    group_placement_points: Optional[Mapping[int, float]] = None,
    knockout_progress_points: Optional[Mapping[str, float]] = None,
    default_rating: Optional[float] = None,
) -> list[ChampionshipEntry]:
    """
    Compute championship points for every team of a tournament.

    Args:
        matches: All tournament matches (group and knockout, any status)
        teams: All tournament teams
        group_standings: Standings per group; computed from matches if None
        rating_deltas: Stored deltas by match id. The unscaled award
            (``pts``) is used; matches without one are rated on the fly.
        multiplier: Competition weight for RPA points (settings default if None)
        group_placement_points: Group position -> bonus (settings default if None)
        knockout_progress_points: Round -> bonus per win (settings default if None)
        default_rating: Rating for players with no rating

    Returns:
        Entries sorted by credited total, best first (team id breaks ties)
    """
    matches = list(matches)
    team_index = {t.id: t for t in teams}
    deltas = dict(rating_deltas or {})
    weight = Decimal(str(multiplier if multiplier is not None else settings.rpa_multiplier))
    placement_points = (
        group_placement_points if group_placement_points is not None else settings.group_placement_points
    )
    progress_points = (
        knockout_progress_points if knockout_progress_points is not None else settings.knockout_progress_points
    )

    if group_standings is None:
        group_standings = compute_all_group_standings(
            matches, teams=team_index, rating_deltas=deltas, default_rating=default_rating,
        )

    entries = {team_id: ChampionshipEntry(team_id=team_id) for team_id in team_index}

    for match in matches:
        if match.status != COMPLETED or match.winner_id is None:
            continue
        if match.loser_id is None:
            logger.warning("Match %s winner %s is not one of its teams; skipped", match.id, match.winner_id)
            continue
        if not is_real_team(match.team1_id) or not is_real_team(match.team2_id):
            continue
        if match.team1_id not in team_index or match.team2_id not in team_index:
            logger.warning("Match %s references an unknown team; skipped for championship points", match.id)
            continue

        _add_rpa(entries, match, deltas, team_index, weight, default_rating)

        if match.is_knockout:
            _add_knockout(entries, match, progress_points)

    # Group placement bonus
    for rows in group_standings.values():
        for row in rows:
            entry = entries.get(row.team_id)
            if entry is None:
                continue
            # Config loaded from JSON may key positions as strings
            bonus = placement_points.get(row.position, placement_points.get(str(row.position), 0))
            entry.group_position = row.position
            entry.group_placement = _round1(Decimal(str(bonus)))

    return sorted(entries.values(), key=lambda e: (-e.assigned_total, -e.total, e.team_id))


def _add_rpa(
    entries: dict[str, ChampionshipEntry],
    match: MatchRecord,
    deltas: dict[str, RatingDelta],
    team_index: dict[str, Team],
    weight: Decimal,
    default_rating: Optional[float],
) -> None:
    delta = deltas.get(match.id)
    if delta is None:
        delta = calc_match_rating_delta(
            match,
            team_index[match.team1_id],
            team_index[match.team2_id],
            multiplier=1,
            default_rating=default_rating,
        )

    pts = _round1(Decimal(delta.pts) * weight)
    winner, loser = entries[match.winner_id], entries[match.loser_id]

    winner.rpa = _round1(winner.rpa + pts)
    winner.contributions.append(ChampionshipContribution(match.id, "rpa", pts, round=match.round))

    if match.is_knockout:
        loser.contributions.append(
            ChampionshipContribution(match.id, "rpa", Decimal("0"), round=match.round, is_loss=True)
        )
    else:
        loser.rpa = _round1(loser.rpa - pts)
        loser.contributions.append(ChampionshipContribution(match.id, "rpa", -pts, is_loss=True))


def _add_knockout(
    entries: dict[str, ChampionshipEntry],
    match: MatchRecord,
    progress_points: Mapping[str, float],
) -> None:
    knockout_round = KnockoutRound.from_code(match.round)
    if knockout_round is None:
        logger.warning("Match %s has unknown round tag '%s'; no knockout bonus", match.id, match.round)
        return

    per_win = _round1(Decimal(str(progress_points.get(knockout_round.value, 0))))
    winner, loser = entries[match.winner_id], entries[match.loser_id]

    winner.knockout = _round1(winner.knockout + per_win)
    winner.contributions.append(
        ChampionshipContribution(match.id, "knockout", per_win, round=knockout_round.value)
    )
    loser.contributions.append(
        ChampionshipContribution(match.id, "knockout", Decimal("0"), round=knockout_round.value, is_loss=True)
    )
