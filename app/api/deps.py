from fastapi import Request

from app.core.config import Settings
from app.core.metrics import MetricsAggregator
from app.services.event_store import EventStore


def get_metrics(request: Request) -> MetricsAggregator:
    return request.app.state.metrics


def get_store(request: Request) -> EventStore:
    return request.app.state.store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
