"""Runtime settings, read from the environment with sane defaults."""

import os


def _env_bool(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    DATABASE_URL = os.environ.get("DATABASE_URL") or "sqlite:///battleship.db"
    SQL_ECHO = _env_bool("SQL_ECHO")
    # Seconds a player may hold the turn before the timeout sweep forfeits the game
    TURN_TIMEOUT_SEC = int(os.environ.get("TURN_TIMEOUT_SEC", "60"))
    # Countdown threshold the UI uses to warn the turn holder
    TURN_WARNING_SEC = int(os.environ.get("TURN_WARNING_SEC", "10"))
    BOARD_WIDTH = int(os.environ.get("BOARD_WIDTH", "10"))
    BOARD_HEIGHT = int(os.environ.get("BOARD_HEIGHT", "10"))
    LEADERBOARD_LIMIT = int(os.environ.get("LEADERBOARD_LIMIT", "100"))
    # Rank lookups only consider this many leaderboard entries
    RANKING_WINDOW = int(os.environ.get("RANKING_WINDOW", "1000"))


settings = Config()
