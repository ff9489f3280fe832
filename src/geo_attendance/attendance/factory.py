from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional

from ..facilities.model import Facility
from ..policy.model import AttendancePolicy
from .strategies.base import AttendanceStrategy
from .strategies.early_leave_strategy import EarlyLeaveStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy


def end_of_day(facility: Optional[Facility], policy: AttendancePolicy) -> time:
    if facility is not None and facility.standard_end_time is not None:
        return facility.standard_end_time
    return policy.standard_end_time


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def is_late(self, *, now: datetime, policy: AttendancePolicy) -> bool:
        cutoff = datetime.combine(now.date(), policy.lateness_cutoff)
        return now > cutoff + timedelta(minutes=policy.late_grace_minutes)

    def is_early(self, *, now: datetime, facility: Optional[Facility], policy: AttendancePolicy) -> bool:
        return now < datetime.combine(now.date(), end_of_day(facility, policy))

    def for_checkin(self, *, now: datetime, facility: Optional[Facility], policy: AttendancePolicy) -> AttendanceStrategy:
        if self.is_late(now=now, policy=policy):
            return LateStrategy()
        return NormalStrategy()

    def for_checkout(self, *, now: datetime, facility: Optional[Facility], policy: AttendancePolicy) -> AttendanceStrategy:
        if self.is_early(now=now, facility=facility, policy=policy):
            return EarlyLeaveStrategy()
        return NormalStrategy()
