"""
Periodic sweep that forfeits games whose turn holder ran out of time.

The monitor does not own a loop: an external scheduler (cron, a management command) calls `sweep` periodically.
Games are independent, so they are handled one at a time under their own lock, in whatever order the repository returns them.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from naval_combat.battleship import events
from naval_combat.battleship.game import Game
from naval_combat.battleship.timeout import is_turn_expired
from naval_combat.core.clock import Clock, utc_now
from naval_combat.core.config import Config, settings
from naval_combat.core.exceptions import GameError
from naval_combat.core.shared_types import Status
from naval_combat.db.repository import GameRepository, ScoreRepository
from naval_combat.services.battleship_service import atomic, publish_all, record_outcome
from naval_combat.services.locks import GameLocks
from naval_combat.services.notifier import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)


class TimeoutMonitor:
    def __init__(
        self,
        game_repository: GameRepository,
        score_repository: ScoreRepository,
        notifier: Optional[Notifier] = None,
        locks: Optional[GameLocks] = None,
        clock: Clock = utc_now,
        config: Config = settings,
    ) -> None:
        self.repo = game_repository
        self.scores = score_repository
        self.notifier = notifier or LoggingNotifier()
        # must be the same registry the BattleshipService uses, otherwise attacks and sweeps are not serialized
        self.locks = locks or GameLocks()
        self.clock = clock
        self.config = config

    def sweep(self, now: Optional[datetime] = None, timeout_budget: Optional[timedelta] = None) -> list[UUID]:
        """Forfeit every game whose current turn is older than the budget. Returns the IDs of the forfeited games."""
        if now is None:
            now = self.clock()
        if timeout_budget is None:
            timeout_budget = timedelta(seconds=self.config.TURN_TIMEOUT_SEC)

        forfeited: list[UUID] = []
        for game_id in self.repo.list_game_ids(Status.IN_PROGRESS.value):
            try:
                if self._forfeit_if_expired(game_id, now, timeout_budget):
                    forfeited.append(game_id)
            except GameError:
                # storage failure or a game that changed between listing and locking, the next sweep will look again
                logger.exception("Timeout check failed for game %s", game_id)

        if forfeited:
            logger.info("Processed %d timed out game(s)", len(forfeited))
        return forfeited

    def _forfeit_if_expired(self, game_id: UUID, now: datetime, timeout_budget: timedelta) -> bool:
        with self.locks.hold(game_id):
            # re-read under the lock: an attack may have committed since the listing
            model = self.repo.get_game(game_id)
            if model is None:
                return False
            game = Game.from_model(model)
            if not is_turn_expired(game, now, timeout_budget):
                return False

            forfeiter = game.current_turn
            # for the type checker: IN_PROGRESS always has a turn holder
            assert forfeiter is not None
            winner = game.forfeit(forfeiter, now)
            with atomic(self.repo, self.scores):
                self.repo.update_game(game.to_model())
                record_outcome(self.scores, winner, forfeiter, now)

        self.locks.discard(game_id)
        logger.info("Turn of %s in game %s timed out, %s wins", forfeiter, game_id, winner)
        publish_all(
            self.notifier,
            [
                events.turn_timeout(game_id, forfeiter, now),
                events.game_finished(game_id, winner, now),
            ],
        )
        return True
