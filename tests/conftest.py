"""
Pytest will auto-discover / import this file called 'conftest.py'. ]
This file defines fixtures/variables required for testing multiple layers.
"""

from datetime import datetime, timezone
from typing import Generator

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from naval_combat.battleship.game import Game
from naval_combat.battleship.ships import ShipPlacement
from naval_combat.db.schema import Base

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)

# A complete, valid fleet on a 10x10 board: one ship per row, all starting in column 0
VALID_FLEET_LAYOUT: list[tuple[str, int, list[tuple[int, int]]]] = [
    ("Carrier", 5, [(x, 0) for x in range(5)]),
    ("Battleship", 4, [(x, 1) for x in range(4)]),
    ("Cruiser", 3, [(x, 2) for x in range(3)]),
    ("Cruiser", 3, [(x, 3) for x in range(3)]),
    ("Submarine", 3, [(x, 4) for x in range(3)]),
    ("Destroyer", 2, [(x, 5) for x in range(2)]),
]

PLAYER_1 = "alice"
PLAYER_2 = "bob"
T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_session_repo() -> Generator[Session, None, None]:
    """Connection to a test database. Tables are removed at teardown to make unit tests of repository independent of each other."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def valid_fleet() -> list[ShipPlacement]:
    return [ShipPlacement.from_pairs(type, size, cells) for type, size, cells in VALID_FLEET_LAYOUT]


@pytest.fixture
def started_game(valid_fleet: list[ShipPlacement]) -> Game:
    """Both players joined and placed the same layout. Player 1 is on turn."""
    game = Game.new_game(player=PLAYER_1, now=T0)
    game.join(PLAYER_2, T0)
    game.place_fleet(PLAYER_1, valid_fleet, T0)
    game.place_fleet(PLAYER_2, valid_fleet, T0)
    return game
