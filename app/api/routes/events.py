from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.api import deps
from app.api.responses import BAD_REQUEST, NOT_FOUND, RATE_LIMITED, STORE_UNAVAILABLE
from app.core.config import Settings
from app.core.limiter import ingest_limit
from app.schemas.event import EventAccepted, MatchEvent, MatchEventIn
from app.services.event_store import EventStore
from app.services.events import ingest_event, load_event

router = APIRouter(prefix="/events", tags=["events"])


@router.post(
    "",
    response_model=EventAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses={**BAD_REQUEST, **RATE_LIMITED, **STORE_UNAVAILABLE},
)
@ingest_limit
def create_event(
    payload: MatchEventIn,
    request: Request,
    response: Response,
    store: EventStore = Depends(deps.get_store),
    settings: Settings = Depends(deps.get_app_settings),
):
    if not payload.match_id or not payload.event_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="MatchId and EventType are required",
        )
    event = ingest_event(
        store,
        payload,
        now=datetime.now(timezone.utc),
        ttl_seconds=settings.event_ttl_minutes * 60,
    )
    response.headers["Location"] = f"/api/events/{event.event_id}"
    return EventAccepted(event_id=event.event_id)


@router.get(
    "/{event_id}",
    response_model=MatchEvent,
    responses={**NOT_FOUND, **STORE_UNAVAILABLE},
)
def get_event(event_id: str, store: EventStore = Depends(deps.get_store)):
    event = load_event(store, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return event
