from __future__ import annotations
import pytest

from app import create_app
from sessions import MemorySessionStore, ServerSession, ServerSessionInterface

class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

@pytest.fixture()
def clock():
    return FakeClock()

@pytest.fixture()
def store(clock):
    return MemorySessionStore(check_period=100, clock=clock)

def test_get_returns_copy_until_expiry(store, clock):
    store.set("a", {"_user_id": "1"}, ttl=10)

    clock.now = 5
    data = store.get("a")
    assert data == {"_user_id": "1"}
    data["_user_id"] = "2"
    assert store.get("a") == {"_user_id": "1"}

    clock.now = 10
    assert store.get("a") is None
    assert len(store) == 0

def test_missing_sid(store):
    assert store.get("nope") is None
    store.delete("nope")  # без ошибок

def test_periodic_purge_drops_only_expired(store, clock):
    store.set("short", {}, ttl=10)
    store.set("long", {}, ttl=1000)
    clock.now = 50
    store.set("mid", {}, ttl=10)
    assert len(store) == 3  # до очередной проверки ничего не чистится

    clock.now = 150
    store.set("fresh", {}, ttl=10)
    assert len(store) == 2
    assert store.get("long") == {}
    assert store.get("fresh") == {}

def test_delete(store):
    store.set("a", {"k": "v"}, ttl=10)
    store.delete("a")
    assert store.get("a") is None

def test_regenerate_moves_data_to_new_sid(store):
    app = create_app("test")
    iface = ServerSessionInterface(store)
    store.set("old", {"k": "v"}, ttl=60)

    sess = ServerSession({"k": "v"}, sid="old")
    iface.regenerate(sess)
    assert sess.sid != "old"
    assert sess.previous_sid == "old"

    resp = app.response_class()
    with app.test_request_context("/"):
        iface.save_session(app, sess, resp)

    assert store.get("old") is None
    assert store.get(sess.sid) == {"k": "v"}
    assert sess.sid in resp.headers["Set-Cookie"]

def test_new_empty_session_is_not_stored(store):
    app = create_app("test")
    iface = ServerSessionInterface(store)
    sess = ServerSession(sid="brand-new", new=True)
    resp = app.response_class()
    with app.test_request_context("/"):
        iface.save_session(app, sess, resp)
    assert len(store) == 0
    assert "Set-Cookie" not in resp.headers
