import os
import sys
from collections import defaultdict

import pytest

# Ensure the backend root (containing the `pong` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from pong import create_app, db, socketio
from pong.gateway import NAMESPACE
from pong.services.session import SessionManager


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    FRONTEND_URL = 'http://localhost:8080'
    RECONNECT_GRACE_PERIOD_SEC = 0.2
    REGISTER_RATE_LIMIT_ATTEMPTS = 3
    REGISTER_RATE_LIMIT_WINDOW_SEC = 10
    ROOM_CODE_MAX_ATTEMPTS = 100
    LEADERBOARD_LIMIT = 100


class FakeGateway:
    """Records everything the session services try to send."""

    def __init__(self):
        self.sent = []
        self.groups = defaultdict(set)
        self.tasks = []
        self.slept = []

    def send(self, connection_id, event, payload=None):
        self.sent.append({'to': connection_id, 'event': event, 'payload': payload, 'skip': None})

    def broadcast(self, group, event, payload=None, skip=None):
        self.sent.append({'to': group, 'event': event, 'payload': payload, 'skip': skip})

    def join(self, connection_id, group):
        self.groups[group].add(connection_id)

    def leave(self, connection_id, group):
        self.groups[group].discard(connection_id)

    def start_background_task(self, target, *args, **kwargs):
        self.tasks.append((target, args, kwargs))

    def sleep(self, seconds):
        self.slept.append(seconds)

    def events(self, name):
        return [s for s in self.sent if s['event'] == name]

    def run_tasks(self):
        tasks, self.tasks = self.tasks, []
        for target, args, kwargs in tasks:
            target(*args, **kwargs)


class ManualClock:

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingRatingEngine:

    def __init__(self):
        self.results = []

    def record_match(self, result):
        self.results.append(result)
        return True


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def clock():
    return ManualClock()


@pytest.fixture()
def ratings():
    return RecordingRatingEngine()


@pytest.fixture()
def sessions(flask_app, gateway, clock, ratings):
    return SessionManager(
        gateway,
        rating_engine=ratings,
        grace_period=30,
        clock=clock,
        monotonic=clock,
    )


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _connect():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace=NAMESPACE,
        )
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected(NAMESPACE):
                test_client.disconnect(namespace=NAMESPACE)
        except RuntimeError:
            pass
