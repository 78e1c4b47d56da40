from datetime import timedelta

import pytest
from itsdangerous import Signer

from app import create_app, purge_sessions
from config import TestingConfig
from models import WebSession, db, utcnow
from sessions import MemorySessionStore, SqlSessionStore, StoreSessionInterface, make_store


def test_memory_store_round_trip():
    store = MemorySessionStore()
    store.save("abc", "payload", utcnow() + timedelta(hours=1))

    assert store.load("abc") == "payload"
    store.delete("abc")
    assert store.load("abc") is None


def test_memory_store_drops_expired():
    store = MemorySessionStore()
    store.save("old", "payload", utcnow() - timedelta(seconds=1))

    assert store.load("old") is None
    assert len(store) == 0


def test_sql_store(app_ctx):
    store = SqlSessionStore()
    store.save("live", "one", utcnow() + timedelta(hours=1))
    store.save("live", "two", utcnow() + timedelta(hours=1))
    store.save("dead", "x", utcnow() - timedelta(hours=1))

    assert store.load("live") == "two"
    assert store.purge_expired() == 1
    assert WebSession.query.count() == 1

    store.delete("live")
    assert store.load("live") is None


def test_make_store():
    assert isinstance(make_store("memory"), MemorySessionStore)
    assert isinstance(make_store("sql"), SqlSessionStore)


def _session_cookie(client):
    return client.get_cookie("marketplace_session")


def _sid(app, cookie_value):
    return Signer(app.secret_key, salt=StoreSessionInterface.salt).unsign(cookie_value).decode()


def test_cookie_holds_only_a_signed_id(app, client):
    with client.session_transaction() as sess:
        sess["role"] = "provider"

    cookie = _session_cookie(client)
    assert cookie is not None
    assert "provider" not in cookie.value

    sid = _sid(app, cookie.value)
    assert app.session_interface.store.load(sid) is not None


def test_tampered_cookie_starts_fresh_session(app, client):
    with client.session_transaction() as sess:
        sess["role"] = "provider"

    client.set_cookie("marketplace_session", "forged.value")
    with client.session_transaction() as sess:
        assert "role" not in sess


def test_login_rotates_session_id(app, client, make_provider, login):
    make_provider(email="rot@example.com")

    login("rot@example.com", "wrong-password")
    before = _sid(app, _session_cookie(client).value)

    login("rot@example.com")
    after = _sid(app, _session_cookie(client).value)

    assert before != after
    assert app.session_interface.store.load(before) is None
    assert app.session_interface.store.load(after) is not None


def test_logout_clears_server_side_session(app, client, make_provider, login):
    make_provider(email="out@example.com")
    login("out@example.com")
    sid = _sid(app, _session_cookie(client).value)

    client.get("/logout")

    with client.session_transaction() as sess:
        assert "_user_id" not in sess
    assert "_user_id" not in (app.session_interface.store.load(sid) or "")


@pytest.fixture
def sql_app(tmp_path):
    class _Config(TestingConfig):
        SESSION_BACKEND = "sql"
        UPLOAD_FOLDER = str(tmp_path / "uploads")

    app = create_app(_Config)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


def _add_expired_rows(app, count):
    with app.app_context():
        for i in range(count):
            db.session.add(WebSession(sid=f"old-{i}", data="{}", expires_at=utcnow() - timedelta(days=1)))
        db.session.commit()


def _row_count(app):
    with app.app_context():
        return WebSession.query.count()


def test_abandoned_sessions_are_purged_on_save(sql_app):
    _add_expired_rows(sql_app, 5)
    assert _row_count(sql_app) == 5

    for _ in range(3):
        sql_app.test_client().post("/forgot-password", data={"email": "who@example.com"})

    assert _row_count(sql_app) == 3
    with sql_app.app_context():
        assert WebSession.query.filter(WebSession.sid.like("old-%")).count() == 0


def test_purge_sessions_command(sql_app):
    _add_expired_rows(sql_app, 4)
    sql_app.test_client().post("/forgot-password", data={"email": "who@example.com"})
    _add_expired_rows(sql_app, 2)

    result = sql_app.test_cli_runner().invoke(args=["purge-sessions"])

    assert "Purged 2 expired sessions." in result.output
    assert _row_count(sql_app) == 1


def test_purge_sessions_with_memory_backend(app):
    assert purge_sessions(app) == 0
