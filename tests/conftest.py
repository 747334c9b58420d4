"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from courtside.db.models import Base, Match, Player, Team
from courtside.match_statuses import BEST_OF_THREE, SINGLE_SET
from courtside.records import MatchRecord
from courtside.records import Player as PlayerRecord
from courtside.records import Team as TeamRecord


@pytest.fixture(scope="session")
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory for fast tests that don't need
    PostgreSQL-specific features.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
    )
    return engine


@pytest.fixture(scope="session")
def tables(test_engine):
    """
    Create all tables for testing.

    This fixture runs once per test session.
    """
    Base.metadata.create_all(test_engine)
    yield
    Base.metadata.drop_all(test_engine)


@pytest.fixture
def db_session(test_engine, tables):
    """
    Create a database session for a test.

    Each test gets its own session with automatic rollback,
    ensuring tests don't affect each other.
    """
    connection = test_engine.connect()
    transaction = connection.begin()

    Session = sessionmaker(bind=connection)
    session = Session()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# =============================================================================
# Record builders
# =============================================================================


def _build_team(team_id, *ratings, group_id=None):
    players = tuple(
        PlayerRecord(id=f"{team_id}-p{i}", name=f"{team_id} player {i}", rating=r)
        for i, r in enumerate(ratings, start=1)
    )
    return TeamRecord(id=team_id, players=players, group_id=group_id)


def _build_match(match_id, team1_id, team2_id, **kwargs):
    kwargs.setdefault("format", SINGLE_SET)
    return MatchRecord(id=match_id, team1_id=team1_id, team2_id=team2_id, **kwargs)


@pytest.fixture
def make_team():
    """Factory: make_team("t1", 1500, 1600, group_id="A") -> Team record."""
    return _build_team


@pytest.fixture
def make_match():
    """Factory: make_match("m1", "t1", "t2", status=...) -> MatchRecord."""
    return _build_match


@pytest.fixture
def single_set_match():
    return _build_match("m1", "t1", "t2", format=SINGLE_SET, group_id="A")


@pytest.fixture
def best_of_three_match():
    return _build_match("m2", "t1", "t2", format=BEST_OF_THREE, group_id="A")


@pytest.fixture
def seeded_group(db_session):
    """
    Group 'A' with three teams of rated players and a scheduled round robin.

    Team ratings (per player): t1 1600/1600, t2 1500/1500, t3 1400/unknown.
    """
    ratings = {"t1": (1600, 1600), "t2": (1500, 1500), "t3": (1400, None)}
    for team_id, (r1, r2) in ratings.items():
        p1 = Player(id=f"{team_id}-p1", name=f"{team_id} one", rating=r1)
        p2 = Player(id=f"{team_id}-p2", name=f"{team_id} two", rating=r2)
        db_session.add_all([p1, p2])
        db_session.add(Team(id=team_id, name=team_id.upper(), group_id="A", player1=p1, player2=p2))

    db_session.add_all([
        Match(id="g1", team1_id="t1", team2_id="t2", format=SINGLE_SET, group_id="A"),
        Match(id="g2", team1_id="t1", team2_id="t3", format=SINGLE_SET, group_id="A"),
        Match(id="g3", team1_id="t2", team2_id="t3", format=BEST_OF_THREE, group_id="A"),
    ])
    db_session.flush()
    return db_session
