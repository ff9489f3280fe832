from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...facilities.model import Facility
from ...policy.model import AttendancePolicy
from .base import AttendanceStrategy, StatusDecision


class EarlyLeaveStrategy(AttendanceStrategy):
    """Check-out before the facility's end of day."""

    def decide_checkin(self, *, now: datetime, facility: Optional[Facility], policy: AttendancePolicy) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.ON_TIME)

    def decide_checkout(
        self,
        *,
        now: datetime,
        facility: Optional[Facility],
        policy: AttendancePolicy,
        current: AttendanceStatus,
    ) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.EARLY_LEAVE)
