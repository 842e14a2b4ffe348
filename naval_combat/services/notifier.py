"""Notification collaborator: how game events reach the players is not the engine's business"""

import logging
from typing import Protocol

from naval_combat.battleship.events import GameEvent

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def publish(self, event: GameEvent) -> None:
        """Deliver (or queue) a single event."""
        ...


class LoggingNotifier:
    """Default notifier when no push channel is configured: events only end up in the log."""

    def publish(self, event: GameEvent) -> None:
        logger.info("event %s for game %s: %s", event.type.value, event.game_id, event.to_payload())


class RecordingNotifier:
    """Keeps every event in memory. Backs a polling endpoint, and is handy in tests."""

    def __init__(self) -> None:
        self.events: list[GameEvent] = []

    def publish(self, event: GameEvent) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [event.type.value for event in self.events]

    def clear(self) -> None:
        self.events.clear()
