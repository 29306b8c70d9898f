import os
import random
import sys

import pytest

# Ensure the backend root (containing the `promptbattle` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from promptbattle.game.models import RoomConfig
from promptbattle.game.orchestrator import Broadcaster, RoundOrchestrator
from promptbattle.game.registry import SessionRegistry
from promptbattle.imaging.gateway import OriginalImage
from promptbattle.server import create_app


class TestConfig:
    TESTING = True
    SECRET_KEY = 'test-secret'
    CORS_ORIGINS = '*'
    TRUST_PROXY_HEADERS = False
    SOCKETIO_ASYNC_MODE = 'threading'
    MAX_PLAYERS_PER_ROOM = 3
    OPENAI_API_KEY = ''
    OPENAI_BASE_URL = 'http://images.invalid/v1'
    IMAGE_MODEL = 'test-model'
    IMAGE_SIZE = '256x256'
    IMAGE_GENERATION_TIMEOUT = 1000


class FakeTimer:
    def __init__(self, seconds, callback):
        self.seconds = seconds
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.cancelled:
            return
        self.fired = True
        self.callback()


class FakeClock:
    """Sleeps return at once; timers fire only when told to (or immediately)."""

    def __init__(self, fire_timers=False):
        self.fire_timers = fire_timers
        self.sleeps = []
        self.timers = []

    def sleep(self, seconds):
        self.sleeps.append(seconds)

    def call_later(self, seconds, callback):
        timer = FakeTimer(seconds, callback)
        self.timers.append(timer)
        if self.fire_timers:
            timer.fire()
        return timer


class StubGateway:
    def __init__(self, original_prompt='a cat sat', fail_for=(), on_generate=None):
        self.original_prompt = original_prompt
        self.fail_for = set(fail_for)
        self.on_generate = on_generate
        self.categories = []
        self.prompts = []

    def generate_original(self, category):
        self.categories.append(category)
        return OriginalImage(prompt=self.original_prompt, image='original.png')

    def generate_from_prompt(self, prompt):
        self.prompts.append(prompt)
        if self.on_generate:
            self.on_generate(prompt)
        if prompt in self.fail_for:
            raise RuntimeError('backend exploded')
        return f'image:{prompt}'


class RecordingBroadcaster(Broadcaster):
    def __init__(self):
        self.events = []
        self.hooks = {}

    def on_state(self, state, hook):
        self.hooks[state] = hook

    def names(self):
        return [name for name, _code, _payload in self.events]

    def payloads(self, name):
        return [payload for n, _code, payload in self.events if n == name]

    def state_changed(self, code, state, round_no=None):
        self.events.append(('game-state', code, {'state': state, 'round': round_no}))
        hook = self.hooks.get(state)
        if hook:
            hook()

    def original_ready(self, code, prompt, image, category):
        self.events.append(('original-image', code, {'prompt': prompt, 'image': image, 'category': category}))

    def images_ready(self, code, images):
        self.events.append(('generated-images', code, {'images': images}))

    def round_results(self, code, scores, totals):
        self.events.append(('round-results', code, {'scores': scores, 'totalScores': totals}))

    def game_over(self, code, scores):
        self.events.append(('game-over', code, {'finalScores': scores}))


@pytest.fixture()
def registry():
    return SessionRegistry(max_players=6, rng=random.Random(1234))


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def gateway():
    return StubGateway()


@pytest.fixture()
def make_orchestrator(registry, gateway, broadcaster, clock):
    def _make(**overrides):
        kwargs = dict(
            broadcaster=broadcaster,
            clock=clock,
            rng=random.Random(7),
            write_duration_sec=0.05,
        )
        kwargs.update(overrides)
        return RoundOrchestrator(registry, kwargs.pop('gateway', gateway), **kwargs)

    return _make


@pytest.fixture()
def two_player_room(registry):
    room = registry.create_room(RoomConfig(rounds=1, difficulty='hard'), 'p1', 'Ann')
    registry.join_room(room.code, 'p2', 'Bob')
    return room


@pytest.fixture()
def flask_app():
    app, socketio = create_app(TestConfig)
    yield app, socketio


@pytest.fixture()
def client(flask_app):
    app, _socketio = flask_app
    return app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    app, socketio = flask_app
    clients = []

    def _connect():
        test_client = socketio.test_client(app, flask_test_client=app.test_client())
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass


