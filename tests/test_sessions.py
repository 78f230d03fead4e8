from __future__ import annotations

from fakes import FakeClock
from modbot.services.sessions import SessionStore


def test_create_and_get_with_generated_token() -> None:
    store = SessionStore(ttl_seconds=10, capacity=10, clock=FakeClock())

    token = store.create("help", owner_id=1, data={"prefix": "/"})

    assert isinstance(token, str) and len(token) <= 16
    session = store.get(token)
    assert session.command == "help"
    assert session.data == {"prefix": "/"}
    assert session.allows(1) and not session.allows(2)


def test_sessions_expire_after_ttl() -> None:
    clock = FakeClock()
    store = SessionStore(ttl_seconds=10, capacity=10, clock=clock)
    token = store.create("help", owner_id=None)

    clock.advance(9.9)
    assert token in store
    clock.advance(0.2)
    assert store.get(token) is None
    assert len(store) == 0


def test_touch_extends_lifetime() -> None:
    clock = FakeClock()
    store = SessionStore(ttl_seconds=10, capacity=10, clock=clock)
    token = store.create("help")

    clock.advance(8)
    assert store.touch(token) is True
    clock.advance(8)

    assert store.get(token) is not None


def test_capacity_evicts_oldest_first() -> None:
    store = SessionStore(ttl_seconds=100, capacity=2, clock=FakeClock())
    first = store.create("a")
    second = store.create("b")
    third = store.create("c")

    assert first not in store
    assert second in store and third in store


def test_explicit_keys_and_update() -> None:
    store = SessionStore(ttl_seconds=100, capacity=5, clock=FakeClock())
    key = store.create("quiz", owner_id=7, data={"answer": "b"}, key=(-100, 55))

    assert key == (-100, 55)
    assert store.update((-100, 55), tries=1) is True
    assert store.get((-100, 55)).data == {"answer": "b", "tries": 1}
    assert store.discard((-100, 55)) is not None
    assert store.update((-100, 55), tries=2) is False


def test_open_session_allows_anyone() -> None:
    store = SessionStore(ttl_seconds=100, capacity=5, clock=FakeClock())
    session = store.get(store.create("poll", owner_id=None))

    assert session.allows(1) and session.allows(2)
