from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from ..common.datetime_utils import next_midnight, now_local
from ..core.exceptions import PersistenceError
from .service import AttendanceSessionController

logger = logging.getLogger(__name__)

DwellCallback = Callable[[AttendanceSessionController], None]


class SessionHousekeeper:
    """Background timers for one controller: day rollover and dwell countdown.

    Both run as asyncio tasks started by ``start()`` and cancelled by
    ``close()``; nothing acts on the controller after ``close()`` returns.
    """

    def __init__(
        self,
        controller: AttendanceSessionController,
        *,
        clock: Callable[[], datetime] = now_local,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_dwell_elapsed: Optional[DwellCallback] = None,
        poll_seconds: float = 60.0,
        retry_seconds: float = 60.0,
    ):
        self._controller = controller
        self._clock = clock
        self._sleep = sleep
        self._on_dwell_elapsed = on_dwell_elapsed
        self._poll = float(poll_seconds)
        self._retry = float(retry_seconds)
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [asyncio.create_task(self._rollover_loop())]
        if self._on_dwell_elapsed is not None:
            self._tasks.append(asyncio.create_task(self._dwell_loop()))

    async def _rollover_loop(self) -> None:
        while True:
            now = self._clock()
            await self._sleep(max(0.0, (next_midnight(now) - now).total_seconds()))
            try:
                await self._controller.roll_over(self._clock())
            except PersistenceError:
                logger.exception("User %s: rollover commit failed", self._controller.user_id)
                await self._sleep(self._retry)
                continue

    async def _dwell_loop(self) -> None:
        notified_for = None
        while True:
            remaining = self._controller.minutes_until_check_out(self._clock())
            state = self._controller.current_state()
            session = getattr(state, "session", None)
            if remaining is None:
                notified_for = None
                await self._sleep(self._poll)
            elif remaining > 0:
                await self._sleep(min(self._poll, remaining * 60.0))
            else:
                if session is not None and notified_for != session.work_date:
                    notified_for = session.work_date
                    self._on_dwell_elapsed(self._controller)
                await self._sleep(self._poll)

    async def close(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._controller.close()
