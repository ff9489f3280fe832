from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...facilities.model import Facility
from ...policy.model import AttendancePolicy
from .base import AttendanceStrategy, StatusDecision


class NormalStrategy(AttendanceStrategy):
    """On-time check-in, full-day check-out."""

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
        # LATE and REMOTE survive a normal check-out so reports keep them.
        if current == AttendanceStatus.ON_TIME:
            return StatusDecision(status=AttendanceStatus.COMPLETED)
        return StatusDecision(status=current)
