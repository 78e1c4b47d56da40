"""
Server-side sessions.

The browser only holds a signed session id; the session body lives in a
``SessionStore``. ``MemorySessionStore`` is used by the test suite,
``SqlSessionStore`` keeps sessions in the ``web_sessions`` table.
"""
import logging
import secrets

from flask.json.tag import TaggedJSONSerializer
from flask.sessions import SessionInterface, SessionMixin
from itsdangerous import BadSignature, Signer
from werkzeug.datastructures import CallbackDict

from models import WebSession, db, utcnow

logger = logging.getLogger(__name__)


def new_sid() -> str:
    return secrets.token_urlsafe(32)


# =========================================================
# BACKENDS
# =========================================================
class SessionStore:
    def load(self, sid):
        raise NotImplementedError

    def save(self, sid, payload, expires_at):
        raise NotImplementedError

    def delete(self, sid):
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    def __init__(self):
        self._items = {}

    def load(self, sid):
        item = self._items.get(sid)
        if item is None:
            return None
        payload, expires_at = item
        if expires_at <= utcnow():
            self._items.pop(sid, None)
            return None
        return payload

    def save(self, sid, payload, expires_at):
        self._items[sid] = (payload, expires_at)

    def delete(self, sid):
        self._items.pop(sid, None)

    def __len__(self):
        return len(self._items)


class SqlSessionStore(SessionStore):
    def load(self, sid):
        row = db.session.get(WebSession, sid)
        if row is None:
            return None
        if row.expires_at <= utcnow():
            db.session.delete(row)
            db.session.commit()
            return None
        return row.data

    def save(self, sid, payload, expires_at):
        # expired rows of cookies that never come back are only removed here
        WebSession.query.filter(WebSession.expires_at <= utcnow(), WebSession.sid != sid).delete()
        row = db.session.get(WebSession, sid)
        if row is None:
            row = WebSession(sid=sid)
            db.session.add(row)
        row.data = payload
        row.expires_at = expires_at
        db.session.commit()

    def delete(self, sid):
        WebSession.query.filter_by(sid=sid).delete()
        db.session.commit()

    def purge_expired(self) -> int:
        count = WebSession.query.filter(WebSession.expires_at <= utcnow()).delete()
        db.session.commit()
        return count


def make_store(backend: str) -> SessionStore:
    if backend == "memory":
        return MemorySessionStore()
    if backend == "sql":
        return SqlSessionStore()
    raise ValueError(f"Unknown session backend: {backend}")


# =========================================================
# FLASK INTEGRATION
# =========================================================
class ServerSession(CallbackDict, SessionMixin):
    def __init__(self, initial=None, sid=None, new=False):
        def on_update(self):
            self.modified = True

        super().__init__(initial, on_update)
        self.sid = sid or new_sid()
        self.new = new
        self.modified = False
        self.stale_sid = None


class StoreSessionInterface(SessionInterface):
    serializer = TaggedJSONSerializer()
    salt = "marketplace-session"

    def __init__(self, store: SessionStore):
        self.store = store

    def _signer(self, app):
        return Signer(app.secret_key, salt=self.salt)

    def open_session(self, app, request):
        if not app.secret_key:
            return None
        cookie = request.cookies.get(self.get_cookie_name(app))
        if cookie:
            try:
                sid = self._signer(app).unsign(cookie).decode("utf-8")
            except BadSignature:
                logger.warning("Rejected session cookie with a bad signature")
                sid = None
            if sid:
                payload = self.store.load(sid)
                if payload is not None:
                    return ServerSession(self.serializer.loads(payload), sid=sid)
        return ServerSession(new=True)

    def regenerate(self, session):
        """Move the session to a fresh id, dropping the old one on save."""
        if not session.new and session.stale_sid is None:
            session.stale_sid = session.sid
        session.sid = new_sid()
        session.modified = True

    def save_session(self, app, session, response):
        name = self.get_cookie_name(app)
        domain = self.get_cookie_domain(app)
        path = self.get_cookie_path(app)

        if session.stale_sid:
            self.store.delete(session.stale_sid)
            session.stale_sid = None

        if not session:
            if session.modified:
                self.store.delete(session.sid)
                response.delete_cookie(name, domain=domain, path=path)
            return

        if not self.should_set_cookie(app, session):
            return

        self.store.save(
            session.sid,
            self.serializer.dumps(dict(session)),
            utcnow() + app.permanent_session_lifetime,
        )
        response.set_cookie(
            name,
            self._signer(app).sign(session.sid).decode("utf-8"),
            expires=self.get_expiration_time(app, session),
            httponly=self.get_cookie_httponly(app),
            domain=domain,
            path=path,
            secure=self.get_cookie_secure(app),
            samesite=self.get_cookie_samesite(app),
        )
