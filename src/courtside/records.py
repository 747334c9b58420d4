"""
Plain record types passed between the engine and its record store.

These are the in-memory shapes of the documents a club application keeps:
players, teams and matches. Every engine function takes and returns these
records; none of them touch a database. The SQLAlchemy models in
courtside.db.models convert to and from them.

The dict form (``to_dict``/``from_dict``) uses the camelCase keys of the
match record contract:

    {id, team1Id, team2Id, format, sets: [{team1Games, team2Games}],
     status, winnerId, groupId?, round?}

plus the optional liveScore, pendingConfirmation, drawPosition,
nextMatchId, nextMatchPosition and version keys.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from courtside.match_statuses import SCHEDULED, SINGLE_SET
from courtside.scoring.formats import SetsWon
from courtside.scoring.sets import SetScore

# Placeholder team references in knockout brackets
TBD = "TBD"
BYE = "BYE"


def is_placeholder(team_id: Optional[str]) -> bool:
    """Whether a team slot is still waiting for a feeder match (TBD)."""
    return team_id is None or team_id == "" or team_id.upper() == TBD


def is_bye(team_id: Optional[str]) -> bool:
    """Whether a team slot is a bye (the opponent advances automatically)."""
    return team_id is not None and team_id.upper() == BYE


def is_real_team(team_id: Optional[str]) -> bool:
    return not is_placeholder(team_id) and not is_bye(team_id)


@dataclass(frozen=True)
class Player:
    """A player and their skill rating (None when unknown)."""
    id: str
    name: str = ""
    rating: Optional[float] = None


@dataclass(frozen=True)
class Team:
    """
    A doubles pair.

    Attributes:
        id: Team identifier
        players: Up to two players, in entry order
        seed: Optional seeding
        name: Optional display name
        group_id: Group the team plays in, if any
    """
    id: str
    players: tuple[Player, ...] = ()
    seed: Optional[int] = None
    name: Optional[str] = None
    group_id: Optional[str] = None

    @property
    def player_ratings(self) -> list[Optional[float]]:
        return [p.rating for p in self.players[:2]]


@dataclass(frozen=True)
class LiveScore:
    """Unvalidated in-play score, freely overwritten while a match is in progress."""
    sets: tuple[SetScore, ...] = ()

    @property
    def games(self) -> tuple[int, int]:
        return (
            sum(s.team1_games for s in self.sets),
            sum(s.team2_games for s in self.sets),
        )

    def to_dict(self) -> dict:
        team1, team2 = self.games
        return {
            "sets": [s.to_dict() for s in self.sets],
            "games": {"team1": team1, "team2": team2},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LiveScore":
        return cls(sets=tuple(SetScore.from_dict(s) for s in data.get("sets") or []))


@dataclass(frozen=True)
class PendingConfirmation:
    """A provisional result waiting for an authorised actor to confirm or reject it."""
    sets: tuple[SetScore, ...]
    submitted_by: str
    submitted_at: datetime

    def to_dict(self) -> dict:
        return {
            "sets": [s.to_dict() for s in self.sets],
            "submittedBy": self.submitted_by,
            "submittedAt": self.submitted_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PendingConfirmation":
        submitted_at = data["submittedAt"]
        if isinstance(submitted_at, str):
            submitted_at = datetime.fromisoformat(submitted_at)
        return cls(
            sets=tuple(SetScore.from_dict(s) for s in data.get("sets") or []),
            submitted_by=data["submittedBy"],
            submitted_at=submitted_at,
        )


@dataclass(frozen=True)
class MatchRecord:
    """
    One match between two teams.

    A match belongs either to a group (group_id) or to a knockout round
    (round), never both. ``score`` is the sets-won tally derived from
    ``sets`` when the match was completed.

    Records are immutable: lifecycle transitions return a new record with
    ``version`` bumped.
    """
    id: str
    team1_id: Optional[str]
    team2_id: Optional[str]
    format: str = SINGLE_SET
    sets: tuple[SetScore, ...] = ()
    status: str = SCHEDULED
    winner_id: Optional[str] = None
    score: SetsWon = field(default_factory=SetsWon)
    group_id: Optional[str] = None
    round: Optional[str] = None
    live_score: Optional[LiveScore] = None
    pending_confirmation: Optional[PendingConfirmation] = None

    # Bracket wiring: where the winner goes next
    draw_position: Optional[int] = None
    next_match_id: Optional[str] = None
    next_match_position: Optional[int] = None

    version: int = 0

    def __post_init__(self):
        if self.group_id is not None and self.round is not None:
            raise ValueError(f"Match {self.id} cannot have both a group and a knockout round")

    @property
    def is_knockout(self) -> bool:
        return self.round is not None

    @property
    def team_ids(self) -> tuple[Optional[str], Optional[str]]:
        return (self.team1_id, self.team2_id)

    @property
    def loser_id(self) -> Optional[str]:
        if self.winner_id is None:
            return None
        if self.winner_id == self.team1_id:
            return self.team2_id
        if self.winner_id == self.team2_id:
            return self.team1_id
        return None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "team1Id": self.team1_id,
            "team2Id": self.team2_id,
            "format": self.format,
            "sets": [s.to_dict() for s in self.sets],
            "score": self.score.to_dict(),
            "status": self.status,
            "winnerId": self.winner_id,
            "version": self.version,
        }
        # Optional keys are only written when set
        optional = {
            "groupId": self.group_id,
            "round": self.round,
            "liveScore": self.live_score.to_dict() if self.live_score else None,
            "pendingConfirmation": (
                self.pending_confirmation.to_dict() if self.pending_confirmation else None
            ),
            "drawPosition": self.draw_position,
            "nextMatchId": self.next_match_id,
            "nextMatchPosition": self.next_match_position,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "MatchRecord":
        score = data.get("score") or {}
        live = data.get("liveScore")
        pending = data.get("pendingConfirmation")
        return cls(
            id=data["id"],
            team1_id=data.get("team1Id"),
            team2_id=data.get("team2Id"),
            format=data.get("format", SINGLE_SET),
            sets=tuple(SetScore.from_dict(s) for s in data.get("sets") or []),
            status=data.get("status", SCHEDULED),
            winner_id=data.get("winnerId"),
            score=SetsWon(score.get("team1", 0), score.get("team2", 0)),
            group_id=data.get("groupId"),
            round=data.get("round"),
            live_score=LiveScore.from_dict(live) if live else None,
            pending_confirmation=PendingConfirmation.from_dict(pending) if pending else None,
            draw_position=data.get("drawPosition"),
            next_match_id=data.get("nextMatchId"),
            next_match_position=data.get("nextMatchPosition"),
            version=data.get("version", 0),
        )
