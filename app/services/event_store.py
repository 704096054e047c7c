"""Match event storage with Redis and in-memory backends."""
from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Protocol

import redis

from app.core.config import Settings

logger = logging.getLogger("app.store")


class EventStoreError(Exception):
    """Raised when the backing store cannot serve a request."""


class EventStore(Protocol):
    def save_event(self, event_id: str, match_id: str, payload: str) -> None: ...
    def get_event(self, event_id: str) -> str | None: ...
    def list_match_events(self, match_id: str) -> list[str]: ...
    def incr_counters(
        self, match_id: str, event_type: str, bucket: str, ttl_seconds: int
    ) -> None: ...
    def get_total(self, match_id: str) -> int: ...
    def get_type_counts(self, match_id: str, event_types: list[str]) -> list[int]: ...
    def get_minute_counts(self, match_id: str, buckets: list[str]) -> list[int]: ...
    def ping(self) -> bool: ...


def event_key(event_id: str) -> str:
    return f"event:{event_id}"


def match_events_key(match_id: str) -> str:
    return f"match:{match_id}:events"


def total_key(match_id: str) -> str:
    return f"match:{match_id}:total"


def type_key(match_id: str, event_type: str) -> str:
    return f"match:{match_id}:type:{event_type}"


def minute_key(match_id: str, bucket: str) -> str:
    return f"match:{match_id}:minute:{bucket}"


class InMemoryEventStore:
    def __init__(self):
        self._lock = Lock()
        self._values: dict[str, str] = {}
        self._counters: dict[str, int] = {}
        self._expiry: dict[str, float] = {}
        self._lists: dict[str, list[str]] = {}

    def _counter(self, key: str, now: float) -> int:
        expires_at = self._expiry.get(key)
        if expires_at is not None and expires_at <= now:
            self._counters.pop(key, None)
            self._expiry.pop(key, None)
        return self._counters.get(key, 0)

    def save_event(self, event_id: str, match_id: str, payload: str) -> None:
        with self._lock:
            self._values[event_key(event_id)] = payload
            self._lists.setdefault(match_events_key(match_id), []).append(event_id)

    def get_event(self, event_id: str) -> str | None:
        with self._lock:
            return self._values.get(event_key(event_id))

    def list_match_events(self, match_id: str) -> list[str]:
        with self._lock:
            return list(self._lists.get(match_events_key(match_id), []))

    def incr_counters(
        self, match_id: str, event_type: str, bucket: str, ttl_seconds: int
    ) -> None:
        now = time.time()
        with self._lock:
            for key in (total_key(match_id), type_key(match_id, event_type)):
                self._counters[key] = self._counter(key, now) + 1
            key = minute_key(match_id, bucket)
            self._counters[key] = self._counter(key, now) + 1
            self._expiry[key] = now + ttl_seconds

    def get_total(self, match_id: str) -> int:
        with self._lock:
            return self._counter(total_key(match_id), time.time())

    def get_type_counts(self, match_id: str, event_types: list[str]) -> list[int]:
        now = time.time()
        with self._lock:
            return [self._counter(type_key(match_id, t), now) for t in event_types]

    def get_minute_counts(self, match_id: str, buckets: list[str]) -> list[int]:
        now = time.time()
        with self._lock:
            return [self._counter(minute_key(match_id, b), now) for b in buckets]

    def ping(self) -> bool:
        return True


class RedisEventStore:
    def __init__(self, url: str):
        self.client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1,
        )

    def save_event(self, event_id: str, match_id: str, payload: str) -> None:
        try:
            pipe = self.client.pipeline()
            pipe.set(event_key(event_id), payload)
            pipe.rpush(match_events_key(match_id), event_id)
            pipe.execute()
        except redis.RedisError as exc:
            raise EventStoreError(f"failed to store event {event_id}") from exc

    def get_event(self, event_id: str) -> str | None:
        try:
            return self.client.get(event_key(event_id))
        except redis.RedisError as exc:
            raise EventStoreError(f"failed to read event {event_id}") from exc

    def list_match_events(self, match_id: str) -> list[str]:
        try:
            return list(self.client.lrange(match_events_key(match_id), 0, -1))
        except redis.RedisError as exc:
            raise EventStoreError(f"failed to list events for {match_id}") from exc

    def incr_counters(
        self, match_id: str, event_type: str, bucket: str, ttl_seconds: int
    ) -> None:
        key = minute_key(match_id, bucket)
        try:
            pipe = self.client.pipeline()
            pipe.incr(total_key(match_id))
            pipe.incr(type_key(match_id, event_type))
            pipe.incr(key)
            pipe.expire(key, ttl_seconds)
            pipe.execute()
        except redis.RedisError as exc:
            raise EventStoreError(f"failed to update counters for {match_id}") from exc

    def _get_ints(self, keys: list[str]) -> list[int]:
        if not keys:
            return []
        try:
            values = self.client.mget(keys)
        except redis.RedisError as exc:
            raise EventStoreError("failed to read counters") from exc
        return [int(v) if v else 0 for v in values]

    def get_total(self, match_id: str) -> int:
        return self._get_ints([total_key(match_id)])[0]

    def get_type_counts(self, match_id: str, event_types: list[str]) -> list[int]:
        return self._get_ints([type_key(match_id, t) for t in event_types])

    def get_minute_counts(self, match_id: str, buckets: list[str]) -> list[int]:
        return self._get_ints([minute_key(match_id, b) for b in buckets])

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False


def get_store(settings: Settings) -> EventStore:
    if settings.env.lower() == "test":
        return InMemoryEventStore()
    try:
        store = RedisEventStore(settings.redis_url)
        store.client.ping()
        return store
    except redis.RedisError as exc:
        logger.warning(
            "redis unavailable, using in-memory event store",
            extra={"event": {"redis_url": settings.redis_url, "error": str(exc)}},
        )
        return InMemoryEventStore()
