from app.services.event_store import InMemoryEventStore


def test_live_health(client):
    resp = client.get("/health/live")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_health_alias(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_ready_health(client):
    resp = client.get("/health/ready")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ready"


def test_ready_reports_unavailable_store(client, store, monkeypatch):
    monkeypatch.setattr(InMemoryEventStore, "ping", lambda self: False)
    resp = client.get("/health/ready")
    assert resp.status_code == 503
    assert resp.json()["status"] == "unavailable"


def test_health_checks_are_not_counted(client, metrics):
    client.get("/health")
    client.get("/health/live")
    assert metrics.total_requests == 0


def test_security_headers_present(client):
    resp = client.get("/health/live")
    assert resp.headers.get("x-content-type-options") == "nosniff"
    assert resp.headers.get("x-frame-options") == "DENY"
    assert resp.headers.get("x-request-id")
