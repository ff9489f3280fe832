from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from typing import FrozenSet, Optional

from ..core import constants as c
from ..core.enums import ClientKind, Role


@dataclass(frozen=True)
class AttendancePolicy:
    """Rule tables consumed by the controller and the strategies."""

    lateness_cutoff: time = c.DEFAULT_LATENESS_CUTOFF
    late_grace_minutes: int = 0
    check_in_deadline: Optional[time] = c.DEFAULT_CHECK_IN_DEADLINE
    check_out_deadline: Optional[time] = None
    standard_end_time: time = c.DEFAULT_STANDARD_END_TIME
    min_dwell_minutes: int = c.DEFAULT_MIN_DWELL_MINUTES
    min_reason_length: int = c.DEFAULT_MIN_REASON_LENGTH
    max_reason_length: int = c.DEFAULT_MAX_REASON_LENGTH
    debounce_seconds: int = c.DEFAULT_DEBOUNCE_SECONDS

    # Departments are matched by code or by a substring of their name.
    time_exempt_departments: FrozenSet[str] = frozenset({"operations", "operational", "security"})
    time_exempt_roles: FrozenSet[Role] = frozenset({Role.ADMIN, Role.DEPARTMENT_HEAD, Role.REGIONAL_MANAGER})
    lateness_exempt_departments: FrozenSet[str] = frozenset({"security", "research"})
    reason_exempt_roles: FrozenSet[Role] = frozenset({Role.DEPARTMENT_HEAD, Role.REGIONAL_MANAGER})
    weekend_reason_exempt: bool = True

    off_premises_enabled: bool = True
    facility_code_radius_m: float = c.DEFAULT_FACILITY_CODE_RADIUS_M
    sampled_clients: FrozenSet[ClientKind] = field(default_factory=lambda: frozenset({ClientKind.OPERA}))
    sample_count: int = c.DEFAULT_SAMPLE_COUNT
