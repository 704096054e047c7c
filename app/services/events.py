import logging
import uuid
from datetime import datetime, timedelta, timezone

from app.schemas.event import KNOWN_EVENT_TYPES, MatchEvent, MatchEventIn
from app.schemas.match import MatchMetrics, PeakPeriod, ResponseTimePercentiles
from app.core.metrics import LatencyPercentiles
from app.services.event_store import EventStore

logger = logging.getLogger("events")


def minute_bucket(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y%m%d%H%M")


def _period_label(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:00Z")


def ingest_event(
    store: EventStore, payload: MatchEventIn, now: datetime, ttl_seconds: int
) -> MatchEvent:
    event = MatchEvent(
        **payload.model_dump(),
        event_id=str(uuid.uuid4()),
        timestamp=now,
    )
    store.save_event(
        event.event_id, event.match_id, event.model_dump_json(by_alias=True)
    )
    store.incr_counters(event.match_id, event.event_type, minute_bucket(now), ttl_seconds)
    logger.info(
        "event ingested",
        extra={
            "event": {
                "event_id": event.event_id,
                "match_id": event.match_id,
                "event_type": event.event_type,
            }
        },
    )
    return event


def load_event(store: EventStore, event_id: str) -> MatchEvent | None:
    raw = store.get_event(event_id)
    if raw is None:
        return None
    return MatchEvent.model_validate_json(raw)


def match_metrics(
    store: EventStore,
    match_id: str,
    now: datetime,
    percentiles: LatencyPercentiles,
    lookback_minutes: int = 60,
    top_n: int = 10,
) -> MatchMetrics:
    total = store.get_total(match_id)

    types = list(KNOWN_EVENT_TYPES)
    counts = store.get_type_counts(match_id, types)
    by_type = {t: c for t, c in zip(types, counts) if c > 0}

    minutes = [now - timedelta(minutes=i) for i in range(lookback_minutes)]
    minute_counts = store.get_minute_counts(match_id, [minute_bucket(m) for m in minutes])
    periods = [
        PeakPeriod(timestamp=_period_label(m), event_count=c)
        for m, c in zip(minutes, minute_counts)
        if c > 0
    ]
    # stable sort keeps the most recent minute first among ties
    periods.sort(key=lambda p: p.event_count, reverse=True)

    return MatchMetrics(
        match_id=match_id,
        total_events=total,
        events_by_type=by_type,
        peak_engagement_periods=periods[:top_n],
        response_time_percentiles=ResponseTimePercentiles(
            p50=percentiles.p50, p95=percentiles.p95, p99=percentiles.p99
        ),
    )
