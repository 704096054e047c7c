from pydantic import BaseModel

from app.schemas.common import CamelModel


class PeakPeriod(CamelModel):
    timestamp: str
    event_count: int


class ResponseTimePercentiles(BaseModel):
    p50: float
    p95: float
    p99: float


class MatchMetrics(CamelModel):
    match_id: str
    total_events: int
    events_by_type: dict[str, int]
    peak_engagement_periods: list[PeakPeriod]
    response_time_percentiles: ResponseTimePercentiles
