import pytest

from geo_attendance.facilities.model import Facility
from geo_attendance.facilities.repository import CachedFacilityDirectory, InMemoryFacilityDirectory

from fakes import ANNEX, HQ


class FlakySource:
    def __init__(self, facilities):
        self.facilities = list(facilities)
        self.fail = False
        self.calls = 0

    def list_active_facilities(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("directory offline")
        return list(self.facilities)


def test_in_memory_directory_hides_inactive_and_sorts_by_id():
    closed = Facility(id="closed", name="Closed", latitude=0, longitude=0, radius_m=10, is_active=False)
    directory = InMemoryFacilityDirectory([HQ, closed, ANNEX])
    assert [f.id for f in directory.list_active_facilities()] == ["annex", "hq"]


def test_cache_refreshes_after_ttl():
    ticks = [0.0]
    source = FlakySource([HQ])
    cached = CachedFacilityDirectory(source, ttl_seconds=60, monotonic=lambda: ticks[0])

    assert [f.id for f in cached.list_active_facilities()] == ["hq"]
    source.facilities = [HQ, ANNEX]
    ticks[0] = 30
    assert len(cached.list_active_facilities()) == 1
    ticks[0] = 61
    assert len(cached.list_active_facilities()) == 2
    assert source.calls == 2


def test_cache_keeps_last_good_list_when_refresh_fails():
    ticks = [0.0]
    source = FlakySource([HQ])
    cached = CachedFacilityDirectory(source, ttl_seconds=60, monotonic=lambda: ticks[0])
    cached.list_active_facilities()

    source.fail = True
    ticks[0] = 120
    assert [f.id for f in cached.list_active_facilities()] == ["hq"]


def test_cache_without_data_propagates_failure():
    source = FlakySource([])
    source.fail = True
    with pytest.raises(RuntimeError):
        CachedFacilityDirectory(source).list_active_facilities()


def test_get_looks_up_by_id():
    cached = CachedFacilityDirectory(InMemoryFacilityDirectory([HQ, ANNEX]))
    assert cached.get("annex") == ANNEX
    assert cached.get("missing") is None


def test_invalidate_forces_reload():
    source = FlakySource([HQ])
    cached = CachedFacilityDirectory(source, ttl_seconds=3600)
    cached.list_active_facilities()

    source.facilities = [HQ, ANNEX]
    cached.invalidate()
    assert len(cached.list_active_facilities()) == 2
    assert source.calls == 2
