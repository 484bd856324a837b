import os
import secrets
import tempfile
import time

# database used by the import-time bootstrap in billing_app.app
os.environ.setdefault("BILLING_DATABASE_PATH", os.path.join(tempfile.mkdtemp(), "billing.db"))

import pytest

from billing_app import auth, config, database
from billing_app.app import app as flask_app
from billing_app.context import RequestContext
from billing_app.session_store import MemorySessionStore, StoreSessionInterface

PASSWORD = "Secret#123"


class FakeClock:
    def __init__(self, now=1_700_000_000):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ctx(clock):
    return RequestContext({}, clock=clock)


@pytest.fixture
def db(tmp_path, monkeypatch):
    monkeypatch.setattr(database, "DATABASE_PATH", str(tmp_path / "billing.db"))
    database.init_db()
    database.seed_services()
    return database


@pytest.fixture
def app(db, tmp_path, monkeypatch):
    flask_app.config.update(TESTING=True)
    monkeypatch.setattr(flask_app, "session_interface", StoreSessionInterface(MemorySessionStore()))
    monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path / "uploads"))
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def csrf_token(client):
    """Return the session's current CSRF token, creating one if needed."""
    def get():
        with client.session_transaction() as sess:
            token = sess.get("csrf_token")
            if not token:
                token = sess["csrf_token"] = secrets.token_hex(32)
        return token
    return get


@pytest.fixture
def make_user(db):
    def create(email="jane@example.com", role=config.ROLE_CUSTOMER, fullname="Jane Doe",
               password=PASSWORD):
        return database.create_user(fullname, email, auth.hash_password(password), role=role)
    return create


@pytest.fixture
def login(client, csrf_token):
    def post(email="jane@example.com", password=PASSWORD):
        return client.post("/auth/login", data={
            "email": email,
            "password": password,
            "csrf_token": csrf_token(),
        })
    return post


@pytest.fixture
def session_data(client):
    """Read a snapshot of the client's server-side session."""
    def read():
        with client.session_transaction() as sess:
            return dict(sess)
    return read


@pytest.fixture
def age_session(client):
    def set_idle(seconds):
        with client.session_transaction() as sess:
            sess["last_activity"] = int(time.time()) - seconds
    return set_idle
