"""Per-game mutual exclusion shared by the service and the timeout sweep"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID


class GameLocks:
    """
    One lock per game ID, created on first use.

    Every state-changing operation (placement, attack, surrender, cancel, timeout forfeit) loads, checks, mutates and stores
    the game while holding its lock. Whoever gets the lock second sees the committed state and gets rejected by the normal guards.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: dict[UUID, threading.Lock] = {}

    def __contains__(self, game_id: object) -> bool:
        with self._registry_lock:
            return game_id in self._locks

    def lock_for(self, game_id: UUID) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(game_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[game_id] = lock
            return lock

    @contextmanager
    def hold(self, game_id: UUID) -> Iterator[None]:
        with self.lock_for(game_id):
            yield

    def discard(self, game_id: UUID) -> None:
        """Forget the lock of a game that ended or was deleted. A later request for it gets a fresh lock."""
        with self._registry_lock:
            self._locks.pop(game_id, None)
