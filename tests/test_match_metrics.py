from datetime import datetime, timedelta, timezone

from app.core.metrics import LatencyPercentiles
from app.schemas.event import MatchEventIn
from app.services.events import ingest_event, load_event, match_metrics, minute_bucket

NOW = datetime(2024, 5, 1, 18, 30, 45, tzinfo=timezone.utc)
TTL = 24 * 60 * 60


def _ingest(store, event_type: str, minutes_ago: int = 0, match_id: str = "m1"):
    payload = MatchEventIn(match_id=match_id, event_type=event_type)
    return ingest_event(store, payload, NOW - timedelta(minutes=minutes_ago), TTL)


def test_minute_bucket_format():
    assert minute_bucket(NOW) == "202405011830"


def test_ingest_assigns_id_and_timestamp(store):
    event = _ingest(store, "goal")
    assert event.event_id
    assert event.timestamp == NOW
    loaded = load_event(store, event.event_id)
    assert loaded == event


def test_match_metrics_counts_by_type(store):
    for event_type in ("goal", "goal", "yellow_card", "corner"):
        _ingest(store, event_type)
    _ingest(store, "goal", match_id="other")

    result = match_metrics(store, "m1", NOW, LatencyPercentiles())
    assert result.total_events == 4
    # unknown types count toward the total only
    assert result.events_by_type == {"goal": 2, "yellow_card": 1}


def test_peak_periods_sorted_by_count(store):
    _ingest(store, "goal", minutes_ago=0)
    for _ in range(3):
        _ingest(store, "goal", minutes_ago=5)
    for _ in range(2):
        _ingest(store, "substitution", minutes_ago=10)
    _ingest(store, "goal", minutes_ago=20)
    _ingest(store, "goal", minutes_ago=61)

    result = match_metrics(store, "m1", NOW, LatencyPercentiles())
    periods = [(p.timestamp, p.event_count) for p in result.peak_engagement_periods]
    assert periods == [
        ("2024-05-01T18:25:00Z", 3),
        ("2024-05-01T18:20:00Z", 2),
        ("2024-05-01T18:30:00Z", 1),
        ("2024-05-01T18:10:00Z", 1),
    ]
    assert result.total_events == 8


def test_peak_periods_limited_to_top_n(store):
    for minute in range(15):
        _ingest(store, "goal", minutes_ago=minute)
    result = match_metrics(store, "m1", NOW, LatencyPercentiles(), top_n=10)
    assert len(result.peak_engagement_periods) == 10
    assert result.peak_engagement_periods[0].timestamp == "2024-05-01T18:30:00Z"


def test_match_metrics_embeds_percentiles(store):
    result = match_metrics(store, "m1", NOW, LatencyPercentiles(1.0, 2.0, 3.0))
    assert result.total_events == 0
    assert result.events_by_type == {}
    assert result.peak_engagement_periods == []
    assert result.response_time_percentiles.model_dump() == {"p50": 1.0, "p95": 2.0, "p99": 3.0}


def test_match_metrics_endpoint(client, metrics):
    for event_type in ("goal", "red_card"):
        client.post("/api/events", json={"matchId": "m7", "eventType": event_type})
    metrics.record(100, "GET", "/test", 200)

    resp = client.get("/api/matches/m7/metrics")
    assert resp.status_code == 200
    body = resp.json()
    assert body["matchId"] == "m7"
    assert body["totalEvents"] == 2
    assert body["eventsByType"] == {"goal": 1, "red_card": 1}
    assert len(body["peakEngagementPeriods"]) >= 1
    assert body["peakEngagementPeriods"][0]["eventCount"] >= 1
    assert set(body["responseTimePercentiles"]) == {"p50", "p95", "p99"}

    # the lookup itself is recorded once it completes
    assert metrics.total_requests == 4


def test_metrics_endpoint_renders_exposition(client, metrics):
    client.post("/api/events", json={"matchId": "m1", "eventType": "goal"})
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "http_requests_total 1\n" in resp.text
    assert "events_processed_total 1\n" in resp.text
    assert resp.text.count('http_request_duration_ms{quantile=') == 3
    # scrapes are not observed
    client.get("/metrics")
    assert metrics.total_requests == 1


def test_metrics_json(client):
    client.post("/api/events", json={"matchId": "m1", "eventType": "goal"})
    body = client.get("/metrics.json").json()
    assert body["total_requests"] == 1
    assert body["events_processed"] == 1
    assert set(body["latency_ms"]) == {"p50", "p95", "p99"}
