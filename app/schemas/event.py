from datetime import datetime
from typing import Any

from app.schemas.common import CamelModel

KNOWN_EVENT_TYPES = (
    "goal",
    "yellow_card",
    "red_card",
    "substitution",
    "match_start",
    "match_end",
)


class MatchEventIn(CamelModel):
    # empty ids are rejected by the route with a 400, not by validation
    match_id: str = ""
    event_type: str = ""
    team_id: str | None = None
    player_id: str | None = None
    metadata: dict[str, Any] | None = None


class MatchEvent(MatchEventIn):
    event_id: str
    timestamp: datetime


class EventAccepted(CamelModel):
    event_id: str
