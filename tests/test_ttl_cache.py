from app.services import TTLCache

from conftest import FakeClock


def test_fresh_entry_is_returned():
    clock = FakeClock()
    cache = TTLCache(60, clock=clock)
    cache.set(235, {"results": []})

    clock.advance(59)
    assert cache.contains(235)
    assert cache.get(235) == {"results": []}


def test_entry_expires_at_ttl():
    clock = FakeClock()
    cache = TTLCache(60, clock=clock)
    cache.set(235, "payload")

    clock.advance(60)
    assert not cache.contains(235)
    assert cache.get(235, "missing") == "missing"
    assert len(cache) == 0


def test_none_is_still_a_hit():
    cache = TTLCache(60, clock=FakeClock())
    cache.set(7, None)

    assert cache.contains(7)
    assert cache.get(7, "missing") is None


def test_int_and_str_keys_are_the_same():
    cache = TTLCache(60, clock=FakeClock())
    cache.set(8118, "x")
    assert cache.get("8118") == "x"


def test_set_restarts_ttl():
    clock = FakeClock()
    cache = TTLCache(60, clock=clock)
    cache.set("a", 1)
    clock.advance(50)
    cache.set("a", 2)
    clock.advance(50)
    assert cache.get("a") == 2


def test_clear():
    cache = TTLCache(60, clock=FakeClock())
    cache.set("a", 1)
    cache.clear()
    assert not cache.contains("a")
