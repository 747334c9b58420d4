"""
Group standings.

Folds the completed matches of a group into a ranked table. Only
completed matches count; a scheduled or in-progress match contributes
nothing, not even a played count.

Ranking (descending), each key only breaking ties in the previous one:
    1. points (from the PointsSystem)
    2. gamesDifference
    3. ratingPoints (sum of the team's side of each stored RatingDelta)
    4. average player rating of the team
    5. team id (ascending), so the order is fully deterministic

compute_standings is pure: calling it twice with the same inputs returns
equal tables, positions included.

Usage:
    table = compute_standings(matches, PointsSystem(win=3, draw=1, loss=0))
    leader = table[0].team_id
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from numbers import Number
from typing import Iterable, Mapping, Optional, Union

from courtside.config import settings
from courtside.match_statuses import COMPLETED
from courtside.rating.calculator import RatingDelta, team_average_rating
from courtside.records import MatchRecord, Team
from courtside.scoring.formats import tally_sets

logger = logging.getLogger(__name__)

RatingDeltas = Union[Mapping[str, RatingDelta], Iterable[RatingDelta], None]


@dataclass(frozen=True)
class PointsSystem:
    """Standings points for each match outcome."""
    win: float = 3
    draw: float = 1
    loss: float = 0

    def __post_init__(self):
        for name in ("win", "draw", "loss"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, Number):
                raise ValueError(f"Points for a {name} must be a number, got {value!r}")

    @classmethod
    def from_settings(cls) -> "PointsSystem":
        return cls(win=settings.points_win, draw=settings.points_draw, loss=settings.points_loss)

    @classmethod
    def from_dict(cls, data: Mapping[str, float]) -> "PointsSystem":
        """Build from a {win, draw, loss} mapping; missing keys keep the defaults."""
        defaults = cls()
        return cls(
            win=data.get("win", defaults.win),
            draw=data.get("draw", defaults.draw),
            loss=data.get("loss", defaults.loss),
        )


@dataclass
class Standing:
    """One row of a group table."""
    team_id: str
    group_id: Optional[str] = None
    matches_played: int = 0
    matches_won: int = 0
    matches_lost: int = 0
    matches_drawn: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0
    points: float = 0
    rating_points: int = 0
    average_rating: Decimal = Decimal("0")
    position: int = 0

    @property
    def sets_difference(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def games_difference(self) -> int:
        return self.games_won - self.games_lost

    def to_dict(self) -> dict:
        return {
            "teamId": self.team_id,
            "groupId": self.group_id,
            "matchesPlayed": self.matches_played,
            "matchesWon": self.matches_won,
            "matchesLost": self.matches_lost,
            "matchesDrawn": self.matches_drawn,
            "setsWon": self.sets_won,
            "setsLost": self.sets_lost,
            "setsDifference": self.sets_difference,
            "gamesWon": self.games_won,
            "gamesLost": self.games_lost,
            "gamesDifference": self.games_difference,
            "points": self.points,
            "ratingPoints": self.rating_points,
            "averageRating": float(self.average_rating),
            "position": self.position,
        }


def _index_deltas(rating_deltas: RatingDeltas) -> dict[str, RatingDelta]:
    """Accept either a match_id -> delta mapping or a plain list of deltas."""
    if rating_deltas is None:
        return {}
    if isinstance(rating_deltas, Mapping):
        return dict(rating_deltas)
    return {d.match_id: d for d in rating_deltas if d.match_id is not None}


def _index_teams(teams: Union[Mapping[str, Team], Iterable[Team], None]) -> dict[str, Team]:
    if teams is None:
        return {}
    if isinstance(teams, Mapping):
        return dict(teams)
    return {t.id: t for t in teams}


def compute_standings(
    matches: Iterable[MatchRecord],
    points_system: Optional[PointsSystem] = None,
    rating_deltas: RatingDeltas = None,
    teams: Union[Mapping[str, Team], Iterable[Team], None] = None,
    group_id: Optional[str] = None,
    default_rating: Optional[float] = None,
) -> list[Standing]:
    """
    Build the ranked standings table for one group.

    Args:
        matches: Matches of the group (any status; only completed ones count)
        points_system: Points per outcome (settings default if None)
        rating_deltas: Stored deltas, by match id or as a list. Matches
            without a stored delta contribute 0 rating points.
        teams: Group teams. Teams with no completed match get a zero row;
            teams only seen in matches still get a row.
        group_id: When given, only matches of this group are counted
        default_rating: Rating for players with no rating (tie-break only)

    Returns:
        Standings sorted best first with 1-based positions
    """
    points_system = points_system or PointsSystem.from_settings()
    deltas = _index_deltas(rating_deltas)
    team_index = _index_teams(teams)

    rows: dict[str, Standing] = {}

    def row_for(team_id: str) -> Standing:
        if team_id not in rows:
            rows[team_id] = Standing(team_id=team_id, group_id=group_id)
        return rows[team_id]

    for team_id in team_index:
        row_for(team_id)

    for match in matches:
        if match.status != COMPLETED:
            continue
        if group_id is not None and match.group_id != group_id:
            continue
        if not match.team1_id or not match.team2_id:
            logger.warning("Skipping completed match %s with a missing team", match.id)
            continue

        delta = deltas.get(match.id)
        tally = tally_sets(match.sets)

        for side, team_id in ((1, match.team1_id), (2, match.team2_id)):
            row = row_for(team_id)
            row.matches_played += 1

            if match.winner_id == team_id:
                row.matches_won += 1
                row.points += points_system.win
            elif match.winner_id is None:
                row.matches_drawn += 1
                row.points += points_system.draw
            else:
                row.matches_lost += 1
                row.points += points_system.loss

            won, lost = (
                (tally.team1, tally.team2)
                if side == 1
                else (tally.team2, tally.team1)
            )
            row.sets_won += won
            row.sets_lost += lost

            for s in match.sets:
                own, other = (s.team1_games, s.team2_games) if side == 1 else (s.team2_games, s.team1_games)
                row.games_won += own
                row.games_lost += other

            if delta is not None:
                row.rating_points += delta.delta_for(team_id)

    for team_id, row in rows.items():
        team = team_index.get(team_id)
        ratings = team.player_ratings if team else []
        row.average_rating = team_average_rating(ratings, default_rating=default_rating)

    table = sorted(
        rows.values(),
        key=lambda r: (-r.points, -r.games_difference, -r.rating_points, -r.average_rating, r.team_id),
    )
    for position, row in enumerate(table, start=1):
        row.position = position

    return table


def compute_all_group_standings(
    matches: Iterable[MatchRecord],
    teams: Union[Mapping[str, Team], Iterable[Team], None] = None,
    points_system: Optional[PointsSystem] = None,
    rating_deltas: RatingDeltas = None,
    default_rating: Optional[float] = None,
) -> dict[str, list[Standing]]:
    """
    Compute standings for every group, keyed by group id.

    Groups come from the matches' group ids and the teams' group ids.
    Knockout matches (no group id) are ignored. Each group is computed
    independently.
    """
    matches = list(matches)
    team_index = _index_teams(teams)

    matches_by_group: dict[str, list[MatchRecord]] = defaultdict(list)
    teams_by_group: dict[str, dict[str, Team]] = defaultdict(dict)

    for match in matches:
        if match.group_id is not None:
            matches_by_group[match.group_id].append(match)
    for team in team_index.values():
        if team.group_id is not None:
            teams_by_group[team.group_id][team.id] = team

    group_ids = sorted(set(matches_by_group) | set(teams_by_group))

    # Rating tie-breaks may need teams that are not assigned to the group
    def teams_for(gid: str) -> dict[str, Team]:
        scoped = dict(teams_by_group.get(gid, {}))
        for match in matches_by_group.get(gid, []):
            for team_id in match.team_ids:
                if team_id in team_index:
                    scoped.setdefault(team_id, team_index[team_id])
        return scoped

    return {
        gid: compute_standings(
            matches_by_group.get(gid, []),
            points_system=points_system,
            rating_deltas=rating_deltas,
            teams=teams_for(gid),
            group_id=gid,
            default_rating=default_rating,
        )
        for gid in group_ids
    }


def qualified_teams(
    group_standings: Mapping[str, list[Standing]],
    qualified_per_group: Optional[int] = None,
) -> list[Standing]:
    """
    Top N teams of each group, in group id order then position.

    Args:
        group_standings: Output of compute_all_group_standings
        qualified_per_group: Teams advancing per group (settings default if None)

    Raises:
        ValueError: If qualified_per_group is negative
    """
    count = settings.qualified_per_group if qualified_per_group is None else qualified_per_group
    if count < 0:
        raise ValueError(f"qualified_per_group must be >= 0, got {count}")

    qualified = []
    for gid in sorted(group_standings):
        table = sorted(group_standings[gid], key=lambda r: r.position)
        qualified.extend(table[:count])
    return qualified
