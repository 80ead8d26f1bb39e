import os
os.environ["APP_ENV"] = "test"

# THEN import anything else
from typing import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sitescope.core.config import Settings, get_settings
from sitescope.core.rate_limit import InMemoryCounterStore
from sitescope.db.session import reset_engine_state
# Configures root logging at import; must happen before caplog attaches per test.
from sitescope.main import create_app


@pytest.fixture()
def settings() -> Generator[Settings, None, None]:
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture()
def counter_store() -> InMemoryCounterStore:
    return InMemoryCounterStore()


@pytest.fixture()
def app(settings: Settings, counter_store: InMemoryCounterStore) -> FastAPI:

    return create_app(settings, counter_store=counter_store)


@pytest.fixture()
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    reset_engine_state()


@pytest.fixture()
def make_client(counter_store: InMemoryCounterStore) -> Generator:
    """Build a client for an app with overridden settings fields."""

    opened: list[TestClient] = []

    def _make(**overrides) -> TestClient:
        get_settings.cache_clear()
        app_settings = get_settings().model_copy(update=overrides)
        test_client = TestClient(create_app(app_settings, counter_store=counter_store))
        test_client.__enter__()
        opened.append(test_client)
        return test_client

    yield _make
    for test_client in opened:
        test_client.__exit__(None, None, None)
    get_settings.cache_clear()
    reset_engine_state()
