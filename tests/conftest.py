from __future__ import annotations

from datetime import datetime

import pytest

from fakes import FakeClock, InMemoryApprovalStore, InMemoryAttendanceStore


@pytest.fixture
def fixed_now() -> datetime:
    # A Monday, before the lateness cutoff.
    return datetime(2026, 2, 2, 8, 30, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def store() -> InMemoryAttendanceStore:
    return InMemoryAttendanceStore()


@pytest.fixture
def approvals() -> InMemoryApprovalStore:
    return InMemoryApprovalStore()
