import os
import sys
import random
import pytest

# Ensure the backend root (containing the `blockclaim` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from blockclaim import create_app, db, socketio
from blockclaim.services.grid import GridStore, IdentityRegistry, SessionGateway
from blockclaim.services.grid.errors import DeliveryFailure


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    GRID_SIZE = 50
    MAX_NAME_LENGTH = 20
    LEADERBOARD_SIZE = 10
    PERSIST_CLAIMS = True
    SOCKETIO_NAMESPACE = '/ws'
    CORS_ORIGINS = []
    LOG_LEVEL = 'DEBUG'


class RecordingTransport:
    """Collects deliveries instead of writing to sockets."""

    def __init__(self):
        self.sent = []
        self.dead = set()

    def send(self, connection, event_name, payload):
        if connection in self.dead:
            raise DeliveryFailure(f"{connection} is gone")
        self.sent.append((connection, event_name, payload))

    def received(self, connection, event_name=None):
        return [
            payload for conn, name, payload in self.sent
            if conn == connection and (event_name is None or name == event_name)
        ]

    def names(self, connection):
        return [name for conn, name, _ in self.sent if conn == connection]

    def count(self, event_name):
        return sum(1 for _, name, _ in self.sent if name == event_name)

    def clear(self):
        self.sent.clear()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import blockclaim.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def grid():
    return GridStore(50)


@pytest.fixture()
def registry():
    return IdentityRegistry(rng=random.Random(1234))


@pytest.fixture()
def gateway(grid, registry, transport):
    return SessionGateway(grid, registry, transport)
