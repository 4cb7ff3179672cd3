"""Bidding countdown running on the asyncio event loop."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class BiddingTimer:
    """
    One-second countdown task keyed by ``(game_id, round_index)``.

    Every call to :meth:`cancel` (and every restart) bumps ``generation``.
    A running task remembers the generation it was started with and stops
    without touching the game once that no longer matches.

    Parameters
    ----------
    game_id : str
        Game the timer belongs to
    on_tick : Callable[[int], bool]
        Called once per interval with the task's generation; returns False
        when the countdown is finished
    interval : float
        Seconds between ticks
    """

    def __init__(self, game_id: str, on_tick: Callable[[int], bool], interval: float = 1.0):
        self.game_id = game_id
        self.on_tick = on_tick
        self.interval = interval
        self.generation = 0
        self._tasks: Dict[Tuple[str, int], asyncio.Task] = {}

    @property
    def active(self) -> bool:
        return any(not task.done() for task in self._tasks.values())

    def start(self, round_index: int) -> Optional[asyncio.Task]:
        """Schedule the countdown; returns None when no event loop is running."""
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop for game %s; countdown is driven externally", self.game_id)
            return None
        task = loop.create_task(self._run(round_index, self.generation))
        self._tasks[(self.game_id, round_index)] = task
        return task

    def cancel(self) -> None:
        self.generation += 1
        current = _current_task()
        for task in self._tasks.values():
            if task is not current and not task.done():
                task.cancel()
        self._tasks.clear()

    async def _run(self, round_index: int, generation: int) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if generation != self.generation:
                logger.warning("Stale timer for game %s round %d ignored", self.game_id, round_index + 1)
                return
            if not self.on_tick(generation):
                return
