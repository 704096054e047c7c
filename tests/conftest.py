import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

os.environ.setdefault("ENV", "test")

from app.core.config import get_settings
from app.core.metrics import MetricsAggregator
from app.main import create_app
from app.services.event_store import InMemoryEventStore


@pytest.fixture
def metrics():
    return MetricsAggregator()


@pytest.fixture
def store():
    return InMemoryEventStore()


@pytest.fixture
def app(metrics, store):
    return create_app(get_settings(), metrics=metrics, store=store)


@pytest.fixture
def client(app):
    return TestClient(app)
