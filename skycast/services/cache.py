import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Tuple

import redis

from skycast.models import LocationQuery, normalize_text

logger = logging.getLogger(__name__)


@dataclass
class CacheResult:
    value: Any
    hit: bool
    age_seconds: Optional[int]
    stale: bool


MISS = CacheResult(value=None, hit=False, age_seconds=None, stale=False)


class RedisCache:
    """
    Stores JSON payload + metadata:
      key -> {"stored_at": <unix>, "payload": <json>}

    Entries are written with a TTL of max_age + stale window; a read older
    than max_age comes back flagged stale. Redis being unreachable is a miss.
    """

    def __init__(self, redis_url: str):
        self.client = redis.from_url(redis_url, decode_responses=True)

    def get_json(self, key: str, max_age_seconds: int) -> CacheResult:
        try:
            raw = self.client.get(key)
        except redis.RedisError:
            logger.warning("cache read failed for %s", key, exc_info=True)
            return MISS
        if not raw:
            return MISS

        try:
            obj = json.loads(raw)
            stored_at = int(obj.get("stored_at", 0))
            payload = obj.get("payload")
        except (ValueError, TypeError, AttributeError):
            logger.warning("discarding unreadable cache entry %s", key)
            return MISS
        age = max(0, int(time.time()) - stored_at)
        return CacheResult(value=payload, hit=True, age_seconds=age, stale=age > max_age_seconds)

    def set_json(self, key: str, payload: Any, ttl_seconds: int) -> None:
        obj = {"stored_at": int(time.time()), "payload": payload}
        try:
            self.client.setex(key, ttl_seconds, json.dumps(obj))
        except redis.RedisError:
            logger.warning("cache write failed for %s", key, exc_info=True)

    def acquire_lock(self, lock_key: str, ttl_ms: int = 10_000) -> bool:
        try:
            return bool(self.client.set(lock_key, "1", nx=True, px=ttl_ms))
        except redis.RedisError:
            logger.warning("cache lock failed for %s", lock_key, exc_info=True)
            return False

    def release_lock(self, lock_key: str) -> None:
        try:
            self.client.delete(lock_key)
        except redis.RedisError:
            logger.warning("cache unlock failed for %s", lock_key, exc_info=True)


def rounded_coords(lat: float, lon: float, decimals: int) -> Tuple[float, float]:
    return (round(lat, decimals), round(lon, decimals))


def forecast_key(query: LocationQuery, decimals: int, units: str = "metric") -> str:
    if query.has_coordinates:
        rlat, rlon = rounded_coords(query.lat, query.lon, decimals)
        return f"forecast:{units}:{rlat}:{rlon}"
    return f"forecast:{units}:city:{normalize_text(query.city)}"


def suggestions_key(text: str) -> str:
    return f"geocoding:{normalize_text(text)}"
