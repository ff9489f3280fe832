from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...facilities.model import Facility
from ...policy.model import AttendancePolicy
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Check-in after the lateness cutoff."""

    def decide_checkin(self, *, now: datetime, facility: Optional[Facility], policy: AttendancePolicy) -> StatusDecision:
        return StatusDecision(
            status=AttendanceStatus.LATE,
            note=f"Checked in after {policy.lateness_cutoff.strftime('%H:%M')}",
        )

    def decide_checkout(
        self,
        *,
        now: datetime,
        facility: Optional[Facility],
        policy: AttendancePolicy,
        current: AttendanceStatus,
    ) -> StatusDecision:
        return StatusDecision(status=current)
