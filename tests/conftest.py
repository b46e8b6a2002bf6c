import pathlib
import sys

import pytest


PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from mellon import create_app
from mellon.config import TestingConfig
from mellon.coordinator import StoreCoordinator
from mellon.token_store import TokenStore


@pytest.fixture()
def store_path(tmp_path):
    return tmp_path / "mellon" / "tokens"


@pytest.fixture()
def store(store_path):
    return TokenStore(store_path)


@pytest.fixture()
def coordinator(store):
    return StoreCoordinator(store, lock_timeout=0.5, poll_interval=0.01)


@pytest.fixture()
def app(store_path):
    app = create_app(config_class=TestingConfig)
    app.config.update({"TESTING": True, "TOKEN_STORE_PATH": str(store_path)})
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def runner(app):
    return app.test_cli_runner()
