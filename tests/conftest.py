import logging

import pytest
from fastapi.testclient import TestClient

from marcha.core.config import Settings
from marcha.core.midtrans import MidtransClient
from marcha.main import create_app
from marcha.services.orchestrator import ReconciliationOrchestrator
from tests.factories import CLIENT_KEY, SERVER_KEY, make_notification
from tests.fakes import InMemoryOrderStore


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        MIDTRANS_SERVER_KEY=SERVER_KEY,
        MIDTRANS_CLIENT_KEY=CLIENT_KEY,
        ENVIRONMENT="test",
    )


@pytest.fixture
def store():
    store = InMemoryOrderStore()
    store.add_user("user-1", balance=0)
    store.add_order("doc-1", "ORD-1", customer_id="user-1")
    return store


@pytest.fixture
def orchestrator(store):
    return ReconciliationOrchestrator(store)


@pytest.fixture
def notification():
    return make_notification


@pytest.fixture
def gateway(settings):
    return MidtransClient.from_settings(settings)


@pytest.fixture
def client(settings, store, gateway):
    app = create_app(settings=settings, store=store, gateway=gateway)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def marcha_logs(caplog):
    """caplog that also sees the `marcha` tree, which does not propagate once the app configures logging."""
    logger = logging.getLogger("marcha")
    logger.addHandler(caplog.handler)
    yield caplog
    logger.removeHandler(caplog.handler)
