"""In-process request metrics with a bounded latency window."""
from __future__ import annotations

import math
from collections import deque
from dataclasses import asdict, dataclass
from threading import Lock

DEFAULT_WINDOW_SIZE = 10_000
QUANTILES = (0.5, 0.95, 0.99)


@dataclass(frozen=True)
class LatencyPercentiles:
    p50: float = 0.0
    p95: float = 0.0
    p99: float = 0.0


def nearest_rank(sorted_values: list[float], q: float) -> float:
    """Value at rank ceil(q * n) of an ascending sample (no interpolation)."""
    n = len(sorted_values)
    index = math.ceil(q * n) - 1
    index = max(0, min(index, n - 1))
    return sorted_values[index]


def _sort_key(value: float) -> tuple[bool, float]:
    # NaN sorts first so the ordering is total
    return (not math.isnan(value), value)


def _percentiles(window: list[float]) -> LatencyPercentiles:
    if not window:
        return LatencyPercentiles()
    ordered = sorted(window, key=_sort_key)
    p50, p95, p99 = (nearest_rank(ordered, q) for q in QUANTILES)
    return LatencyPercentiles(p50=p50, p95=p95, p99=p99)


def format_sample(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class MetricsAggregator:
    """Request counters plus a FIFO window of the most recent latencies.

    One lock covers the window and all counters, so a reader sees either the
    whole effect of a ``record`` call or none of it.
    """

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        ingest_method: str = "POST",
        ingest_path: str = "/api/events",
        ingest_status: int = 202,
    ) -> None:
        self._lock = Lock()
        self._latencies: deque[float] = deque(maxlen=window_size)
        self._total_requests = 0
        self._total_errors = 0
        self._events_processed = 0
        self._ingest = (ingest_method, ingest_path, ingest_status)

    @property
    def window_size(self) -> int:
        return self._latencies.maxlen or 0

    def record(self, latency_ms: float, method: str, path: str, status_code: int) -> None:
        with self._lock:
            # a full deque drops exactly one oldest sample per append
            self._latencies.append(latency_ms)
            self._total_requests += 1
            if status_code >= 500:
                self._total_errors += 1
            if (method, path, status_code) == self._ingest:
                self._events_processed += 1

    def snapshot(self) -> LatencyPercentiles:
        with self._lock:
            window = list(self._latencies)
        return _percentiles(window)

    def render(self) -> str:
        """Prometheus text exposition of the counters and latency summary."""
        with self._lock:
            total_requests = self._total_requests
            total_errors = self._total_errors
            events_processed = self._events_processed
            window = list(self._latencies)
        pct = _percentiles(window)
        return (
            "# HELP http_requests_total Total number of HTTP requests\n"
            "# TYPE http_requests_total counter\n"
            f"http_requests_total {total_requests}\n"
            "\n"
            "# HELP http_errors_total Total number of HTTP errors\n"
            "# TYPE http_errors_total counter\n"
            f"http_errors_total {total_errors}\n"
            "\n"
            "# HELP events_processed_total Total number of events processed\n"
            "# TYPE events_processed_total counter\n"
            f"events_processed_total {events_processed}\n"
            "\n"
            "# HELP http_request_duration_ms HTTP request latency in milliseconds\n"
            "# TYPE http_request_duration_ms summary\n"
            f'http_request_duration_ms{{quantile="0.5"}} {format_sample(pct.p50)}\n'
            f'http_request_duration_ms{{quantile="0.95"}} {format_sample(pct.p95)}\n'
            f'http_request_duration_ms{{quantile="0.99"}} {format_sample(pct.p99)}\n'
        )

    @property
    def total_requests(self) -> int:
        with self._lock:
            return self._total_requests

    @property
    def total_errors(self) -> int:
        with self._lock:
            return self._total_errors

    @property
    def events_processed(self) -> int:
        with self._lock:
            return self._events_processed

    @property
    def window_length(self) -> int:
        with self._lock:
            return len(self._latencies)

    def as_dict(self) -> dict[str, object]:
        with self._lock:
            counters = {
                "total_requests": self._total_requests,
                "total_errors": self._total_errors,
                "events_processed": self._events_processed,
                "window_length": len(self._latencies),
            }
            window = list(self._latencies)
        counters["latency_ms"] = asdict(_percentiles(window))
        return counters
