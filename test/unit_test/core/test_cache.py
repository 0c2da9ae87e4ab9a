import pytest

from backoffice.core.cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> TTLCache:
    return TTLCache(clock=clock)


class TestTTLCache:
    def test_get_before_expiry(self, cache, clock):
        cache.set("personal_performance:u1:2025-03", {"sales": 10}, ttl=300)
        clock.now += 300
        assert cache.get("personal_performance:u1:2025-03") == {"sales": 10}

    def test_expired_entry_is_dropped_on_read(self, cache, clock):
        cache.set("k", 1, ttl=5)
        clock.now += 5.1
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_missing_key(self, cache):
        assert cache.get("nope") is None

    def test_overwrite_resets_ttl(self, cache, clock):
        cache.set("k", 1, ttl=5)
        clock.now += 4
        cache.set("k", 2, ttl=5)
        clock.now += 4
        assert cache.get("k") == 2

    def test_delete_prefix(self, cache):
        cache.set("team_stats:u1:2025-03", 1, ttl=60)
        cache.set("team_stats:u1:2025-04", 2, ttl=60)
        cache.set("team_stats:u2:2025-03", 3, ttl=60)
        assert cache.delete_prefix("team_stats:u1:") == 2
        assert cache.keys() == ["team_stats:u2:2025-03"]

    def test_delete_and_clear(self, cache):
        cache.set("a", 1, ttl=60)
        cache.set("b", 2, ttl=60)
        cache.delete("a")
        cache.delete("a")
        assert cache.keys() == ["b"]
        cache.clear()
        assert len(cache) == 0

    def test_cleanup(self, cache, clock):
        cache.set("short", 1, ttl=1)
        cache.set("long", 2, ttl=100)
        clock.now += 10
        assert cache.cleanup() == 1
        assert cache.keys() == ["long"]
