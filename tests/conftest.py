"""
Shared fixtures.

The project root is put on sys.path so the flat modules (app, store, ...)
import the same way whether pytest runs from the root or from tests/.

Route tests must not hold an application context open around client calls:
Flask-Login caches the current user on ``g``, which would leak between
requests. Use ``app_ctx`` for direct calls into the business modules and the
``client`` fixture for HTTP flows.
"""
import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest
from flask import has_app_context

import store
from app import create_app
from auth import hash_password
from config import TestingConfig
from models import ROLE_PROVIDER, db

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def app(tmp_path):
    class _Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / "uploads")

    app = create_app(_Config)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_provider(app):
    """Create a provider account and return its id."""
    counter = {"n": 0}

    def _create(**fields):
        counter["n"] += 1
        password = fields.pop("password", DEFAULT_PASSWORD)
        data = {
            "email": f"provider{counter['n']}@example.com",
            "password_hash": hash_password(password),
            "role": ROLE_PROVIDER,
            "name": "John Doe",
            "category": "Plumbing",
            "contact_info": "555-0100",
            "description": "",
            "is_subscribed": True,
        }
        data.update(fields)
        return store.create(**data).id

    def _make(**fields):
        if has_app_context():
            return _create(**fields)
        with app.app_context():
            return _create(**fields)

    return _make


@pytest.fixture
def login(client):
    def _login(email, password=DEFAULT_PASSWORD):
        return client.post("/login", data={"email": email, "password": password})

    return _login
