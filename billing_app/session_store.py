"""
session_store.py
----------------
Server-side session storage. The cookie only carries an opaque session id;
the record itself lives in a pluggable store (in-memory for tests, SQLite
for the running app). Unlike signed-cookie sessions, ids can be rotated on
login so a pre-login id is useless afterwards.
"""

import json
import logging
import secrets
import time
from typing import Optional, Protocol

from flask.sessions import SessionInterface, SessionMixin
from werkzeug.datastructures import CallbackDict

from billing_app import database

logger = logging.getLogger(__name__)


def new_session_id():
    return secrets.token_urlsafe(32)


class SessionStore(Protocol):
    def load(self, sid: str) -> Optional[dict]: ...
    def save(self, sid: str, data: dict) -> None: ...
    def delete(self, sid: str) -> None: ...


class MemorySessionStore:
    """Keeps records in a dict; lost on restart"""

    def __init__(self):
        self.records = {}

    def load(self, sid):
        data = self.records.get(sid)
        return json.loads(data) if data is not None else None

    def save(self, sid, data):
        self.records[sid] = json.dumps(data)

    def delete(self, sid):
        self.records.pop(sid, None)


class SqliteSessionStore:
    """Keeps records in the app database; idle records expire after max_age seconds"""

    def __init__(self, max_age=31 * 24 * 3600):
        self.max_age = max_age

    def load(self, sid):
        row = database.load_session_record(sid)
        if row is None:
            return None
        if time.time() - row["updated_at"] > self.max_age:
            database.delete_session_record(sid)
            return None
        try:
            return json.loads(row["data"])
        except ValueError as e:
            logger.warning(f"Discarding unreadable session record: {e}")
            database.delete_session_record(sid)
            return None

    def save(self, sid, data):
        database.save_session_record(sid, json.dumps(data), time.time())

    def delete(self, sid):
        database.delete_session_record(sid)

    def purge(self):
        return database.purge_session_records(time.time() - self.max_age)


class StoredSession(CallbackDict, SessionMixin):
    """Session dict that remembers its id and whether it changed"""

    def __init__(self, initial=None, sid=None, new=False):
        def on_update(self):
            self.modified = True
            self.accessed = True

        super().__init__(initial, on_update)
        self.sid = sid or new_session_id()
        self.new = new
        self.modified = False
        self.accessed = False
        self.rotate = False

    def regenerate(self):
        self.rotate = True
        self.modified = True


class StoreSessionInterface(SessionInterface):
    session_class = StoredSession

    def __init__(self, store: SessionStore):
        self.store = store

    def open_session(self, app, request):
        sid = request.cookies.get(self.get_cookie_name(app))
        if sid:
            data = self.store.load(sid)
            if data is not None:
                return self.session_class(data, sid=sid)
        return self.session_class(new=True)

    def save_session(self, app, session, response):
        name = self.get_cookie_name(app)
        domain = self.get_cookie_domain(app)
        path = self.get_cookie_path(app)

        if session.accessed:
            response.vary.add("Cookie")

        if not session:
            if session.modified:
                self.store.delete(session.sid)
                response.delete_cookie(name, domain=domain, path=path)
            return

        if session.rotate:
            self.store.delete(session.sid)
            session.sid = new_session_id()
            session.rotate = False

        if not self.should_set_cookie(app, session):
            return

        self.store.save(session.sid, dict(session))
        response.set_cookie(
            name,
            session.sid,
            expires=self.get_expiration_time(app, session),
            httponly=self.get_cookie_httponly(app),
            domain=domain,
            path=path,
            secure=self.get_cookie_secure(app),
            samesite=self.get_cookie_samesite(app),
        )
