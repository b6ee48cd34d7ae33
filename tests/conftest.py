import base64
import json
import os

# Must be set before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_KEY"] = "test-key"
os.environ["ORDER_EVENTS_URL"] = ""
os.environ["PUBSUB_REQUIRE_API_KEY"] = "false"

import pytest
from fastapi.testclient import TestClient

from orders_api.infrastructure.db import SessionLocal, drop_models, init_models
from orders_api.infrastructure.store import OrderStore, SqlOrderStore, StoreError
from orders_api.main import app

API_HEADERS = {"x-api-key": "test-key"}

VALID_ORDER = {
    "date": "2024-06-08",
    "productId": "prod123",
    "clientId": "client123",
    "quantity": 2,
    "price": 29.99,
}


def make_envelope(payload) -> dict:
    data = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
    return {"message": {"data": data, "messageId": "msg-1"}, "subscription": "orders-sub"}


class FailingStore(OrderStore):
    """Store whose every call fails like an unreachable backend."""

    def _fail(self, *args, **kwargs):
        raise StoreError("connection refused")

    list_all = get_by_id = insert = update_fields = delete_by_id = query_by_field = delete_many = _fail


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    drop_models()


@pytest.fixture
def db_session():
    init_models()
    session = SessionLocal()
    yield session
    session.close()
    drop_models()


@pytest.fixture
def store(db_session):
    return SqlOrderStore(db_session)


@pytest.fixture
def failing_store():
    return FailingStore()
