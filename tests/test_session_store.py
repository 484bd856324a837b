import time

from billing_app import config, database
from billing_app.session_store import MemorySessionStore, SqliteSessionStore, StoredSession

COOKIE = config.SESSION_COOKIE_NAME


def test_memory_store_round_trip():
    store = MemorySessionStore()
    store.save("abc", {"user_id": 1, "cart": []})
    assert store.load("abc") == {"user_id": 1, "cart": []}

    store.delete("abc")
    assert store.load("abc") is None


def test_sqlite_store_round_trip(db):
    store = SqliteSessionStore()
    store.save("abc", {"csrf_token": "t"})
    assert store.load("abc") == {"csrf_token": "t"}

    store.save("abc", {"csrf_token": "u"})
    assert store.load("abc") == {"csrf_token": "u"}

    store.delete("abc")
    assert store.load("abc") is None


def test_sqlite_store_expires_idle_records(db):
    store = SqliteSessionStore(max_age=60)
    database.save_session_record("old", "{}", time.time() - 120)
    database.save_session_record("new", "{}", time.time())

    assert store.load("old") is None
    assert database.load_session_record("old") is None

    database.save_session_record("stale", "{}", time.time() - 120)
    assert store.purge() == 1
    assert store.load("new") == {}


def test_sqlite_store_discards_unreadable_records(db):
    database.save_session_record("broken", "{not json", time.time())
    assert SqliteSessionStore().load("broken") is None
    assert database.load_session_record("broken") is None


def test_stored_session_tracks_changes():
    sess = StoredSession({"a": 1}, sid="abc")
    assert not sess.modified
    sess["b"] = 2
    assert sess.modified and sess.accessed

    sess.regenerate()
    assert sess.rotate
    assert sess.sid == "abc"


def test_guest_page_view_sets_no_cookie(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Set-Cookie" not in response.headers


def test_login_rotates_the_session_id(app, client, make_user, login, csrf_token):
    make_user()
    csrf_token()
    before = client.get_cookie(COOKIE).value

    login()
    after = client.get_cookie(COOKIE).value

    store = app.session_interface.store
    assert after != before
    assert before not in store.records
    assert store.load(after)["user_id"] is not None


def test_cookie_flags(client, csrf_token):
    csrf_token()
    response = client.get("/auth/login")
    cookie = client.get_cookie(COOKIE)
    assert cookie.http_only
    assert cookie.same_site == "Lax"
    assert response.status_code == 200
