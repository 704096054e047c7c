"""Seed the event store with a sample match."""

from datetime import datetime, timedelta, timezone

from app.core.config import settings
from app.schemas.event import MatchEventIn
from app.services.event_store import get_store
from app.services.events import ingest_event

SAMPLE_MATCH = "demo-match"
SAMPLE_EVENTS = [
    ("match_start", None, None),
    ("goal", "home", "p9"),
    ("yellow_card", "away", "p4"),
    ("substitution", "home", "p11"),
    ("goal", "away", "p10"),
    ("red_card", "away", "p4"),
    ("goal", "home", "p7"),
    ("match_end", None, None),
]


def run():
    store = get_store(settings)
    start = datetime.now(timezone.utc) - timedelta(minutes=len(SAMPLE_EVENTS))
    ttl_seconds = settings.event_ttl_minutes * 60
    for offset, (event_type, team, player) in enumerate(SAMPLE_EVENTS):
        payload = MatchEventIn(
            match_id=SAMPLE_MATCH, event_type=event_type, team_id=team, player_id=player
        )
        ingest_event(store, payload, start + timedelta(minutes=offset), ttl_seconds)
    print(f"seeded {len(SAMPLE_EVENTS)} events for {SAMPLE_MATCH}")


if __name__ == "__main__":
    run()
