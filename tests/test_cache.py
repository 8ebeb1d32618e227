"""Tests for the TTL cache and its sweep job."""

from __future__ import annotations

from apscheduler.triggers.interval import IntervalTrigger

from gateway.cache import TTLCache
from gateway.scheduler import setup_scheduler


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = TTLCache(60, clock=clock)

        cache.set("k", {"v": 1})
        clock.now += 59

        assert cache.get("k") == {"v": 1}

    def test_expired_entry_never_returned(self):
        clock = FakeClock()
        cache = TTLCache(60, clock=clock)

        cache.set("k", "v")
        clock.now += 60

        assert cache.get("k") is None
        assert len(cache) == 0

    def test_set_refreshes_age(self):
        clock = FakeClock()
        cache = TTLCache(60, clock=clock)

        cache.set("k", "old")
        clock.now += 50
        cache.set("k", "new")
        clock.now += 50

        assert cache.get("k") == "new"

    def test_purge_expired(self):
        clock = FakeClock()
        cache = TTLCache(60, clock=clock)

        cache.set("stale", 1)
        clock.now += 30
        cache.set("fresh", 2)
        clock.now += 40

        assert cache.purge_expired() == 1
        assert len(cache) == 1
        assert cache.get("fresh") == 2

    def test_missing_key(self):
        assert TTLCache(60).get("nope") is None


class TestScheduler:
    def test_registers_sweep_job(self):
        cache = TTLCache(60)

        scheduler = setup_scheduler(cache, 600)

        (job,) = scheduler.get_jobs()
        assert job.id == "metadata_cache_sweep"
        assert isinstance(job.trigger, IntervalTrigger)
        assert job.trigger.interval.total_seconds() == 600
        assert job.func == cache.purge_expired
