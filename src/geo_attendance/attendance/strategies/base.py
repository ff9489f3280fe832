from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...facilities.model import Facility
from ...policy.model import AttendancePolicy


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide an attendance status."""

    @abstractmethod
    def decide_checkin(self, *, now: datetime, facility: Optional[Facility], policy: AttendancePolicy) -> StatusDecision:
        raise NotImplementedError

    @abstractmethod
    def decide_checkout(
        self,
        *,
        now: datetime,
        facility: Optional[Facility],
        policy: AttendancePolicy,
        current: AttendanceStatus,
    ) -> StatusDecision:
        raise NotImplementedError
