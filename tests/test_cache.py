# ---------- TESTS FOR TTL CACHE ----------

from talentsonar.utils.cache import TTLCache, content_signature


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_content_signature_is_stable_and_order_sensitive():
    assert content_signature("a", "b") == content_signature("a", "b")
    assert content_signature("a", "b") != content_signature("b", "a")
    assert len(content_signature("x")) == 40


def test_content_signature_treats_none_as_empty():
    assert content_signature(None, "b") == content_signature("", "b")


def test_get_returns_value_until_expiry():
    clock = FakeClock()
    cache = TTLCache(ttl_seconds=60, clock=clock)
    cache.set("k", {"score": 80})

    clock.now += 59
    assert cache.get("k") == {"score": 80}

    clock.now += 2
    assert cache.get("k") is None
    # Expired entries are evicted on read
    assert len(cache) == 0


def test_oldest_entry_evicted_when_full():
    cache = TTLCache(ttl_seconds=60, max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_overwrite_does_not_evict_and_clear_empties():
    cache = TTLCache(ttl_seconds=60, max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    assert cache.get("a") == 10
    assert cache.get("b") == 2

    cache.clear()
    assert len(cache) == 0
