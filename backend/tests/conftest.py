import logging
import os
import sys
import pytest

# Ensure the backend root (containing the `mastermind` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from mastermind import create_app, socketio
from mastermind.services.game import RoomRegistry, SessionController
from mastermind.services.game.broadcaster import Broadcaster
from mastermind.services.game.connections import ConnectionDirectory
from mastermind.services.game.scheduler import TurnTimer


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:5173']
    LOG_LEVEL = 'DEBUG'
    SOCKETIO_NAMESPACE = '/ws'


class ManualScheduler:
    """Stands in for socketio.start_background_task/sleep.

    Spawned timer workers are queued and only run when a test asks for it.
    """

    def __init__(self):
        self.tasks = []

    def start_task(self, fn, *args):
        self.tasks.append((fn, args))

    def sleep(self, seconds):
        pass

    def run_pending(self):
        tasks, self.tasks = self.tasks, []
        for fn, args in tasks:
            fn(*args)


class RecordingEmitter:
    """Collects what would have been sent through SocketIO.emit."""

    def __init__(self):
        self.sent = []

    def __call__(self, event, payload, to=None, namespace=None):
        self.sent.append((to, event, payload))

    def events(self, sid, name=None):
        return [(e, p) for to, e, p in self.sent if to == sid and (name is None or e == name)]

    def last(self, sid, name):
        matches = self.events(sid, name)
        return matches[-1][1] if matches else None

    def clear(self):
        self.sent = []


class Services:
    def __init__(self, scheduler, emitter, code_factory=None, timeout=20):
        logger = logging.getLogger('mastermind.tests')
        kwargs = {'logger': logger}
        if code_factory is not None:
            kwargs['code_factory'] = code_factory
        self.scheduler = scheduler
        self.emitter = emitter
        self.registry = RoomRegistry(**kwargs)
        self.connections = ConnectionDirectory()
        self.broadcaster = Broadcaster(emitter, self.registry, self.connections, logger=logger)
        self.timer = TurnTimer(
            self.registry,
            self.broadcaster,
            start_task=scheduler.start_task,
            sleep=scheduler.sleep,
            timeout=timeout,
            logger=logger,
        )
        self.controller = SessionController(
            self.registry, self.broadcaster, self.timer, self.connections, logger=logger,
        )

    def seat(self, sid, name):
        """Create or join a room as a new player; returns (session, player_id)."""
        self.controller.handle(sid, 'createRoom' if not self.registry.codes() else 'joinRoom', {
            'playerId': f"p-{sid}",
            'username': name,
            'roomCode': (self.registry.codes() or [None])[0],
        })
        seat = self.connections.seat_for(sid)
        return self.registry.get(seat.room_code), seat.player_id


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def emitter():
    return RecordingEmitter()


@pytest.fixture()
def services(scheduler, emitter):
    return Services(scheduler, emitter)


@pytest.fixture()
def flask_app(scheduler):
    application = create_app(TestConfig, start_task=scheduler.start_task, sleep=scheduler.sleep)
    yield application
    application.extensions['mastermind'].registry.clear()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def make():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws'
        )
        clients.append(test_client)
        return test_client

    yield make
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def sio_client(sio_factory):
    return sio_factory()
