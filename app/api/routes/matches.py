from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.api import deps
from app.api.responses import STORE_UNAVAILABLE
from app.core.config import Settings
from app.core.metrics import MetricsAggregator
from app.schemas.match import MatchMetrics
from app.services.event_store import EventStore
from app.services.events import match_metrics

router = APIRouter(prefix="/matches", tags=["matches"])


@router.get(
    "/{match_id}/metrics",
    response_model=MatchMetrics,
    responses=STORE_UNAVAILABLE,
)
def get_match_metrics(
    match_id: str,
    store: EventStore = Depends(deps.get_store),
    metrics: MetricsAggregator = Depends(deps.get_metrics),
    settings: Settings = Depends(deps.get_app_settings),
):
    return match_metrics(
        store,
        match_id,
        now=datetime.now(timezone.utc),
        percentiles=metrics.snapshot(),
        lookback_minutes=settings.peak_lookback_minutes,
        top_n=settings.peak_top_n,
    )
