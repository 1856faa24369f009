import os
import sys
import pytest

# Ensure the project root (containing the `pinquiz` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from pinquiz import create_app, db, socketio
from pinquiz.catalog import Question, QuizCatalog, QuizSnapshot
from pinquiz.services.games import GameRegistry, GameSettings


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = 'http://localhost:3000'
    SOCKETIO_NAMESPACE = '/'
    # Long enough that no timer fires during a test unless it asks for one
    QUESTION_DURATION_SEC = 30
    QUESTION_GRACE_SEC = 0.5
    POINTS_PER_CORRECT_ANSWER = 100
    NICKNAME_MAX_LENGTH = 20
    LOG_LEVEL = 'DEBUG'


class FastTimerConfig(TestConfig):
    QUESTION_DURATION_SEC = 0.2
    QUESTION_GRACE_SEC = 0.05


CAPITALS = {
    'name': 'Capitals',
    'data': [
        {'question': 'Capital of France?', 'options': ['Berlin', 'Paris', 'Rome'], 'correctAnswer': 1},
        {'question': 'Capital of Japan?', 'options': ['Tokyo', 'Osaka'], 'correctAnswer': 0},
        {'question': 'Capital of Canada?', 'options': ['Toronto', 'Ottawa', 'Quebec', 'Halifax'], 'correctAnswer': 1},
    ],
}

SCIENCE = {
    'name': 'Science',
    'data': [
        {'question': 'Symbol for water?', 'options': ['H2O', 'CO2'], 'correctAnswer': 0},
    ],
}


def _build_app(config_class):
    application = create_app(config_class)
    with application.app_context():
        from pinquiz.models import Quiz
        db.create_all()
        for sample in (CAPITALS, SCIENCE):
            quiz = Quiz(name=sample['name'])
            quiz.set_questions(sample['data'])
            db.session.add(quiz)
        db.session.commit()
        application.extensions['pinquiz']['catalog'].load()
    return application


@pytest.fixture()
def flask_app():
    application = _build_app(TestConfig)
    with application.app_context():
        yield application
        application.extensions['pinquiz']['registry'].shutdown()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def fast_app():
    application = _build_app(FastTimerConfig)
    with application.app_context():
        yield application
        application.extensions['pinquiz']['registry'].shutdown()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def quiz_ids(flask_app):
    """Quiz ids by name, as loaded into the catalog."""
    catalog = flask_app.extensions['pinquiz']['catalog']
    return {q['name']: q['id'] for q in catalog.list_available()}


def _socket_clients(application):
    """Factory for Socket.IO test clients; every client is disconnected at teardown."""
    clients = []

    def _connect():
        test_client = socketio.test_client(application, flask_test_client=application.test_client())
        test_client.get_received()  # flush 'connected'
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        if test_client.is_connected():
            test_client.disconnect()


@pytest.fixture()
def connect(flask_app):
    yield from _socket_clients(flask_app)


@pytest.fixture()
def fast_connect(fast_app):
    yield from _socket_clients(fast_app)


# ---- in-process doubles for the game core ----

class RecordingBroadcaster:
    """Stands in for SocketIOBroadcaster and keeps everything it was asked to send."""

    def __init__(self):
        self.sent = []
        self.closed = []

    def to_session(self, pin, event, payload=None):
        self.sent.append((pin, event, payload))

    def close_session(self, pin):
        self.closed.append(pin)

    def events(self, pin=None):
        return [event for p, event, _ in self.sent if pin is None or p == pin]

    def payloads(self, event, pin=None):
        return [payload for p, e, payload in self.sent if e == event and (pin is None or p == pin)]

    def last(self, event, pin=None):
        found = self.payloads(event, pin)
        return found[-1] if found else None

    def clear(self):
        self.sent.clear()


class ManualScheduler:
    """Collects background tasks so a test decides when a timer fires."""

    def __init__(self):
        self.tasks = []
        self.slept = []

    def start_background_task(self, target, *args, **kwargs):
        self.tasks.append((target, args, kwargs))

    def sleep(self, seconds=0):
        self.slept.append(seconds)

    def run_pending(self):
        tasks, self.tasks = self.tasks, []
        for target, args, kwargs in tasks:
            target(*args, **kwargs)
        return len(tasks)


class FixedRandom:
    """Returns queued values from randint, for deterministic PINs."""

    def __init__(self, *values):
        self.values = list(values)

    def randint(self, a, b):
        return self.values.pop(0)


def make_snapshot(quiz_id, data):
    return QuizSnapshot(
        id=quiz_id,
        name=data['name'],
        questions=tuple(Question.from_wire(q) for q in data['data']),
    )


@pytest.fixture()
def catalog():
    cat = QuizCatalog()
    cat.replace([make_snapshot('Q1', CAPITALS), make_snapshot('Q2', SCIENCE)])
    return cat


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def registry(catalog, broadcaster, scheduler):
    reg = GameRegistry(catalog, broadcaster, scheduler, GameSettings(), rng=FixedRandom(123456, 234567, 345678))
    yield reg
    reg.shutdown()
