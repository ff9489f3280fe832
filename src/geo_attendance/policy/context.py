from __future__ import annotations

import logging
import time as _time
from typing import Callable, Optional, Tuple

from ..proximity.tolerance import ToleranceProfile
from .model import AttendancePolicy

logger = logging.getLogger(__name__)

PolicyLoader = Callable[[], Tuple[AttendancePolicy, ToleranceProfile]]


class PolicyContext:
    """Injected holder for the active policy with an explicit refresh lifecycle.

    The loader is called lazily; after ``ttl_seconds`` the next read reloads.
    ``ttl_seconds=None`` keeps the first load until ``refresh()`` is called.
    """

    def __init__(
        self,
        loader: PolicyLoader,
        *,
        ttl_seconds: Optional[float] = None,
        monotonic: Callable[[], float] = _time.monotonic,
    ):
        self._loader = loader
        self._ttl = ttl_seconds
        self._monotonic = monotonic
        self._loaded: Optional[Tuple[AttendancePolicy, ToleranceProfile]] = None
        self._loaded_at = 0.0

    @classmethod
    def fixed(cls, policy: AttendancePolicy, tolerance: ToleranceProfile) -> "PolicyContext":
        return cls(lambda: (policy, tolerance))

    def refresh(self) -> Tuple[AttendancePolicy, ToleranceProfile]:
        loaded = self._loader()
        self._loaded = loaded
        self._loaded_at = self._monotonic()
        logger.debug("Policy reloaded")
        return loaded

    def _current(self) -> Tuple[AttendancePolicy, ToleranceProfile]:
        stale = self._ttl is not None and self._monotonic() - self._loaded_at >= self._ttl
        if self._loaded is None or stale:
            return self.refresh()
        return self._loaded

    @property
    def policy(self) -> AttendancePolicy:
        return self._current()[0]

    @property
    def tolerance(self) -> ToleranceProfile:
        return self._current()[1]
