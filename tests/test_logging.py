import json
import logging

from app.core.logging import JsonFormatter, request_id_ctx


def test_json_formatter_includes_context_and_event():
    token = request_id_ctx.set("req-1")
    try:
        record = logging.LogRecord("events", logging.INFO, __file__, 1, "event ingested", None, None)
        record.event = {"match_id": "m1", "event_type": "goal"}
        payload = json.loads(JsonFormatter().format(record))
    finally:
        request_id_ctx.reset(token)
    assert payload["level"] == "INFO"
    assert payload["logger"] == "events"
    assert payload["message"] == "event ingested"
    assert payload["request_id"] == "req-1"
    assert payload["event"] == {"match_id": "m1", "event_type": "goal"}


def test_access_log_emitted_per_request(client, caplog):
    caplog.set_level(logging.INFO, logger="access")
    client.post("/api/events", json={"matchId": "m1", "eventType": "goal"})
    access = [r for r in caplog.records if r.name == "access"]
    assert access
    event = access[-1].event
    assert event["method"] == "POST"
    assert event["path"] == "/api/events"
    assert event["status_code"] == 202
    assert event["duration_ms"] >= 0


def test_ingest_is_logged(client, caplog):
    caplog.set_level(logging.INFO, logger="events")
    client.post("/api/events", json={"matchId": "m1", "eventType": "red_card"})
    records = [r for r in caplog.records if r.name == "events"]
    assert records[-1].event["event_type"] == "red_card"
