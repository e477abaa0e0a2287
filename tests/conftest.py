import os
import sys
from contextlib import nullcontext

import pytest
from flask import has_app_context

# Ensure the project root (containing the `gammon` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from gammon import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    ELO_K_FACTOR = 32
    DEFAULT_RATING = 1500
    DEFAULT_TARGET_SCORE = 5
    STARTING_BALANCE = 0
    DICE_SEED = '7'


class ScriptedDice:
    """Dice source that hands out a fixed sequence of faces."""

    def __init__(self, *faces):
        self._faces = list(faces)

    def randint(self, a, b):
        if not self._faces:
            raise AssertionError('ScriptedDice ran out of faces')
        face = self._faces.pop(0)
        assert a <= face <= b
        return face

    @property
    def remaining(self):
        return len(self._faces)


@pytest.fixture()
def app():
    """Application with tables created; no app context is left pushed.

    HTTP and Socket.IO clients each get their own context per request, so
    per-request state such as the logged-in user never leaks between clients.
    """
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import gammon.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def flask_app(app):
    """Application with a context pushed for the whole test, for service-level tests."""
    with app.app_context():
        yield app
        db.session.remove()


def app_scope(application):
    """Reuse the active app context, or push a short-lived one for setup writes."""
    return nullcontext() if has_app_context() else application.app_context()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def sio_client(app):
    test_client = socketio.test_client(
        app,
        flask_test_client=app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def users(app):
    """alice, bob and carol with default ratings and 100 to wager."""
    from gammon.routes import create_account
    with app_scope(app):
        return {
            name: create_account(name, 'password', balance=100).id
            for name in ('alice', 'bob', 'carol')
        }


@pytest.fixture()
def dice():
    return ScriptedDice


@pytest.fixture()
def make_session(app, users):
    from gammon.models import MatchSession

    def _make(**overrides):
        fields = {
            'player_a_id': users['alice'],
            'player_b_id': users['bob'],
            'status': 'in_progress',
            'turn': 'a',
            'wager': 0,
            'is_rated': True,
        }
        fields.update(overrides)
        with app_scope(app):
            session = MatchSession(**fields)
            db.session.add(session)
            db.session.commit()
            return session.id

    return _make


@pytest.fixture()
def login(app, users):
    """Return a fresh test client logged in as the given user."""
    def _login(username):
        c = app.test_client()
        res = c.post('/login', json={'username': username, 'password': 'password'})
        assert res.status_code == 200
        return c
    return _login
