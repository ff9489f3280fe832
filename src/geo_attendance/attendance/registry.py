from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator

from ..core.constants import USER_LOCK_TIMEOUT_S
from ..core.exceptions import DuplicateRequest
from .service import AttendanceSessionController

logger = logging.getLogger(__name__)

ControllerFactory = Callable[[int], AttendanceSessionController]


class ControllerRegistry:
    """Per-user controllers, created lazily; the only state shared across users.

    Each user also gets a lock. Requests hold it for the whole call so that two
    requests of the same user never interleave inside one controller.
    """

    def __init__(self, factory: ControllerFactory):
        self._factory = factory
        self._controllers: Dict[int, AttendanceSessionController] = {}
        self._user_locks: Dict[int, threading.Lock] = {}
        self._lock = threading.Lock()

    def get(self, user_id: int) -> AttendanceSessionController:
        user_id = int(user_id)
        with self._lock:
            controller = self._controllers.get(user_id)
            if controller is None:
                controller = self._factory(user_id)
                self._controllers[user_id] = controller
                logger.debug("Controller created for user %s", user_id)
            return controller

    def lock_for(self, user_id: int) -> threading.Lock:
        user_id = int(user_id)
        with self._lock:
            return self._user_locks.setdefault(user_id, threading.Lock())

    @contextmanager
    def serialized(self, user_id: int, timeout: float = USER_LOCK_TIMEOUT_S) -> Iterator[AttendanceSessionController]:
        """Hold the user's lock and yield their controller."""
        lock = self.lock_for(user_id)
        if not lock.acquire(timeout=timeout):
            logger.warning("User %s: request still busy after %.0fs", user_id, timeout)
            raise DuplicateRequest("Another request is still in progress", retry_after_s=timeout)
        try:
            yield self.get(user_id)
        finally:
            lock.release()

    def peek(self, user_id: int):
        return self._controllers.get(int(user_id))

    def discard(self, user_id: int) -> None:
        with self._lock:
            controller = self._controllers.pop(int(user_id), None)
        if controller is not None:
            controller.close()

    def close_all(self) -> None:
        with self._lock:
            controllers, self._controllers = list(self._controllers.values()), {}
        for controller in controllers:
            controller.close()

    def __len__(self) -> int:
        return len(self._controllers)
