import os
import random
import sys

import pytest

# Ensure the backend root (containing the `hunch` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from hunch.config import Config
from hunch.game import turns
from hunch.game.models import GameRules, GameVariant, TurnMode
from hunch.game.store import RoomStore
from hunch.server import create_app


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SOCKETIO_ASYNC_MODE = "threading"
    TRUST_PROXY_HEADERS = False
    SECRET_SEED = "7"
    REQUIRE_ALL_READY = False
    DEFAULT_VARIANT = "per_target"
    DEFAULT_TURN_MODE = "round_robin"
    PAIR_TURN_BUDGET = 6


OPTIONS = ["Cat", "Dog", "Owl", "Fox", "Bee", "Elk"]


@pytest.fixture()
def store():
    return RoomStore(rules=GameRules(), rng=random.Random(1234))


@pytest.fixture()
def make_room(store):
    """Build a lobby with players p1..pN (p1 is the admin)."""

    def _make(players=2, options=OPTIONS, variant=GameVariant.PER_TARGET, turn_mode=TurnMode.ROUND_ROBIN):
        room = store.create_room("p1", "Test room", "P1", list(options), variant=variant, turn_mode=turn_mode)
        for i in range(2, players + 1):
            store.join_room(room.code, f"p{i}", f"P{i}")
        return room

    return _make


@pytest.fixture()
def started_room(store, make_room):
    def _start(players=2, options=OPTIONS, variant=GameVariant.PER_TARGET, turn_mode=TurnMode.ROUND_ROBIN):
        room = make_room(players=players, options=options, variant=variant, turn_mode=turn_mode)
        turns.start_game(room, "p1", store.rng)
        return room

    return _start


@pytest.fixture()
def flask_app():
    application, socketio = create_app(TestConfig)
    application.extensions["test.socketio"] = socketio
    yield application


@pytest.fixture()
def app_store(flask_app):
    return flask_app.extensions["hunch.store"]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def connect(flask_app):
    socketio = flask_app.extensions["test.socketio"]
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _connect

    for c in clients:
        try:
            if c.is_connected():
                c.disconnect()
        except RuntimeError:
            pass
