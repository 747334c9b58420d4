"""
SQLAlchemy ORM models for Courtside.

This is the reference record store for the engine: just the tables needed
to keep match records, the teams and players they reference, and the two
derived views the engine produces (rating deltas and standings).

Key design decisions:
- Ids are strings (UUIDs by default) so they match the record contract
- Sets, live score and provisional results are stored as JSON documents
  in the record-contract shape ({"team1Games": 6, "team2Games": 4})
- A match belongs to a group OR a knockout round, enforced by a check
  constraint
- matches.version_id is the optimistic-concurrency counter; every
  validated write is a compare-and-set on it (see
  courtside.services.results)
- TBD and BYE slots are stored as NULL team ids
- Rating deltas and standings are caches: they can always be rebuilt from
  completed matches

Tables:
- players: Players and their skill rating
- teams: Doubles pairs
- matches: All matches (scheduled, in progress and completed)
- rating_deltas: RPA delta per completed match
- standings: Last computed group tables
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from courtside.match_statuses import SCHEDULED, SINGLE_SET
from courtside.rating.calculator import RatingDelta
from courtside.records import LiveScore, MatchRecord, PendingConfirmation
from courtside.records import Player as PlayerRecord
from courtside.records import Team as TeamRecord
from courtside.scoring.formats import SetsWon
from courtside.scoring.sets import SetScore
from courtside.standings import Standing

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JsonDocument = JSON().with_variant(JSONB, "postgresql")


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Players and Teams
# =============================================================================

class Player(Base):
    """A player. Rating is NULL when unknown (the default rating is used)."""
    __tablename__ = "players"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    rating: Mapped[Optional[Decimal]] = mapped_column(Numeric(8, 2), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def to_record(self) -> PlayerRecord:
        return PlayerRecord(
            id=self.id,
            name=self.name,
            rating=float(self.rating) if self.rating is not None else None,
        )

    def __repr__(self) -> str:
        return f"<Player(id={self.id}, name='{self.name}', rating={self.rating})>"


class Team(Base):
    """
    A doubles pair.

    A team has at most two players; either slot may be empty while the
    pair is being put together.
    """
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    seed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    group_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    player1_id: Mapped[Optional[str]] = mapped_column(ForeignKey("players.id"), nullable=True)
    player2_id: Mapped[Optional[str]] = mapped_column(ForeignKey("players.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    player1: Mapped[Optional["Player"]] = relationship(foreign_keys=[player1_id])
    player2: Mapped[Optional["Player"]] = relationship(foreign_keys=[player2_id])

    __table_args__ = (
        Index("idx_teams_group", "group_id"),
    )

    def to_record(self) -> TeamRecord:
        players = tuple(p.to_record() for p in (self.player1, self.player2) if p is not None)
        return TeamRecord(
            id=self.id,
            players=players,
            seed=self.seed,
            name=self.name,
            group_id=self.group_id,
        )

    def __repr__(self) -> str:
        return f"<Team(id={self.id}, name='{self.name}', group={self.group_id})>"


# =============================================================================
# Matches
# =============================================================================

class Match(Base):
    """
    Unified match table - handles the full lifecycle from scheduled to completed.

    Status lifecycle:
    - 'scheduled': Match created, not started (or reverted / result cleared)
    - 'inProgress': Being played; live_score and pending_confirmation live here
    - 'completed': Validated final result with a winner

    Score formats:
    - sets: [{"team1Games": 6, "team2Games": 4}, ...]
    - score_team1 / score_team2: sets won, derived from sets on completion
    """
    __tablename__ = "matches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    # Teams (NULL while the bracket slot is TBD or a BYE)
    team1_id: Mapped[Optional[str]] = mapped_column(ForeignKey("teams.id"), nullable=True)
    team2_id: Mapped[Optional[str]] = mapped_column(ForeignKey("teams.id"), nullable=True)

    # 'singleSet' or 'bestOfThree'
    format: Mapped[str] = mapped_column(String(20), nullable=False, default=SINGLE_SET)

    # Group stage or knockout round, never both
    group_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    round: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # ==========================================================================
    # Bracket wiring
    # ==========================================================================

    # Draw position within the round (1-indexed)
    draw_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # Where the winner goes next; slot 1 = team1, 2 = team2
    next_match_id: Mapped[Optional[str]] = mapped_column(ForeignKey("matches.id"), nullable=True)
    next_match_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # ==========================================================================
    # Result fields
    # ==========================================================================

    sets: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)
    score_team1: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    score_team2: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    winner_id: Mapped[Optional[str]] = mapped_column(ForeignKey("teams.id"), nullable=True)

    # In-progress sub-states
    live_score: Mapped[Optional[dict]] = mapped_column(JsonDocument, nullable=True)
    pending_confirmation: Mapped[Optional[dict]] = mapped_column(JsonDocument, nullable=True)

    # ==========================================================================
    # Status and metadata
    # ==========================================================================

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SCHEDULED)

    # Optimistic-concurrency counter, bumped by every validated transition
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    team1: Mapped[Optional["Team"]] = relationship(foreign_keys=[team1_id])
    team2: Mapped[Optional["Team"]] = relationship(foreign_keys=[team2_id])

    __table_args__ = (
        CheckConstraint(
            "NOT (group_id IS NOT NULL AND round IS NOT NULL)",
            name="ck_matches_group_xor_round",
        ),
        CheckConstraint(
            "next_match_position IS NULL OR next_match_position IN (1, 2)",
            name="ck_matches_next_position",
        ),
        Index("idx_matches_group", "group_id", "status"),
        Index("idx_matches_round", "round", "draw_position"),
        Index("idx_matches_status", "status"),
    )

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    def to_record(self) -> MatchRecord:
        """Convert the row into the engine's immutable match record."""
        return MatchRecord(
            id=self.id,
            team1_id=self.team1_id,
            team2_id=self.team2_id,
            format=self.format,
            sets=tuple(SetScore.from_dict(s) for s in self.sets or []),
            status=self.status,
            winner_id=self.winner_id,
            score=SetsWon(self.score_team1 or 0, self.score_team2 or 0),
            group_id=self.group_id,
            round=self.round,
            live_score=LiveScore.from_dict(self.live_score) if self.live_score else None,
            pending_confirmation=(
                PendingConfirmation.from_dict(self.pending_confirmation)
                if self.pending_confirmation
                else None
            ),
            draw_position=self.draw_position,
            next_match_id=self.next_match_id,
            next_match_position=self.next_match_position,
            version=self.version_id,
        )

    @staticmethod
    def values_from_record(record: MatchRecord) -> dict:
        """Column values for writing a match record back to its row."""
        return {
            "team1_id": record.team1_id,
            "team2_id": record.team2_id,
            "format": record.format,
            "sets": [s.to_dict() for s in record.sets],
            "score_team1": record.score.team1,
            "score_team2": record.score.team2,
            "winner_id": record.winner_id,
            "status": record.status,
            "live_score": record.live_score.to_dict() if record.live_score else None,
            "pending_confirmation": (
                record.pending_confirmation.to_dict() if record.pending_confirmation else None
            ),
            "version_id": record.version,
            "updated_at": datetime.utcnow(),
        }

    @classmethod
    def from_record(cls, record: MatchRecord) -> "Match":
        """Build a new row from a match record (for inserts)."""
        values = cls.values_from_record(record)
        values.pop("updated_at")
        return cls(
            id=record.id,
            group_id=record.group_id,
            round=record.round,
            draw_position=record.draw_position,
            next_match_id=record.next_match_id,
            next_match_position=record.next_match_position,
            **values,
        )

    def __repr__(self) -> str:
        return (
            f"<Match(id={self.id}, {self.team1_id} vs {self.team2_id}, "
            f"status='{self.status}', v{self.version_id})>"
        )


# =============================================================================
# Derived views
# =============================================================================

class RatingDeltaRecord(Base):
    """
    RPA delta for one completed match.

    Dropped when the match result is cleared. ``details`` holds the full
    audit payload (intermediate terms and rating fallbacks).
    """
    __tablename__ = "rating_deltas"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_id: Mapped[str] = mapped_column(ForeignKey("matches.id"), nullable=False, unique=True)
    team_a_id: Mapped[str] = mapped_column(String(36), nullable=False)
    team_b_id: Mapped[str] = mapped_column(String(36), nullable=False)

    delta_a: Mapped[int] = mapped_column(Integer, nullable=False)
    delta_b: Mapped[int] = mapped_column(Integer, nullable=False)
    pts: Mapped[int] = mapped_column(Integer, nullable=False)
    factor: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False)
    multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 3), nullable=False, default=Decimal("1"))

    details: Mapped[dict] = mapped_column(JsonDocument, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("delta_a + delta_b = 0", name="ck_rating_deltas_zero_sum"),
    )

    @classmethod
    def from_delta(cls, delta: RatingDelta) -> "RatingDeltaRecord":
        return cls(
            match_id=delta.match_id,
            team_a_id=delta.team_a_id,
            team_b_id=delta.team_b_id,
            delta_a=delta.delta_a,
            delta_b=delta.delta_b,
            pts=delta.pts,
            factor=delta.factor,
            multiplier=delta.multiplier,
            details=delta.to_dict(),
        )

    def to_delta(self) -> RatingDelta:
        return RatingDelta.from_dict(self.details)

    def __repr__(self) -> str:
        return f"<RatingDeltaRecord(match={self.match_id}, A: {self.delta_a:+d}, B: {self.delta_b:+d})>"


class StandingRecord(Base):
    """One row of the last computed table for a group."""
    __tablename__ = "standings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    group_id: Mapped[str] = mapped_column(String(50), nullable=False)
    team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    matches_played: Mapped[int] = mapped_column(Integer, default=0)
    matches_won: Mapped[int] = mapped_column(Integer, default=0)
    matches_lost: Mapped[int] = mapped_column(Integer, default=0)
    matches_drawn: Mapped[int] = mapped_column(Integer, default=0)
    sets_won: Mapped[int] = mapped_column(Integer, default=0)
    sets_lost: Mapped[int] = mapped_column(Integer, default=0)
    games_won: Mapped[int] = mapped_column(Integer, default=0)
    games_lost: Mapped[int] = mapped_column(Integer, default=0)
    points: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    rating_points: Mapped[int] = mapped_column(Integer, default=0)

    computed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("group_id", "team_id", name="uq_standings_group_team"),
        Index("idx_standings_group_position", "group_id", "position"),
    )

    @classmethod
    def from_standing(cls, standing: Standing, group_id: str) -> "StandingRecord":
        return cls(
            group_id=group_id,
            team_id=standing.team_id,
            position=standing.position,
            matches_played=standing.matches_played,
            matches_won=standing.matches_won,
            matches_lost=standing.matches_lost,
            matches_drawn=standing.matches_drawn,
            sets_won=standing.sets_won,
            sets_lost=standing.sets_lost,
            games_won=standing.games_won,
            games_lost=standing.games_lost,
            points=Decimal(str(standing.points)),
            rating_points=standing.rating_points,
        )

    @property
    def games_difference(self) -> int:
        return self.games_won - self.games_lost

    def __repr__(self) -> str:
        return f"<StandingRecord(group={self.group_id}, #{self.position} {self.team_id}, pts={self.points})>"
