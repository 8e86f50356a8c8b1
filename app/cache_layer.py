import copy
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog

log = structlog.get_logger()

def _utc_now():
    return datetime.now(timezone.utc)

@dataclass(frozen=True)
class CachedPayload:
    key: str
    payload: dict
    expires_at: datetime

class ResultCache:
    """
    Per-process TTL cache for computed dashboard payloads.
    - Entries are replaced wholesale, never mutated in place
    - Expiry is lazy: checked on read, no background eviction
    - No locking; concurrent misses for one key each recompute
    """
    def __init__(self, ttl_seconds: int = 300, clock=None):
        self.ttl_seconds = int(ttl_seconds)
        self.clock = clock or _utc_now
        self._entries: dict[str, CachedPayload] = {}

    def make_key(self, user_id, range_key: str, delta_mode: str) -> str:
        return f"{user_id}|{range_key}|{delta_mode}"

    def __len__(self):
        return len(self._entries)

    def get(self, cache_key: str):
        entry = self._entries.get(cache_key)
        if entry is None:
            return None, None
        now = self.clock()
        if now >= entry.expires_at:
            self._entries.pop(cache_key, None)
            return None, None
        age = self.ttl_seconds - (entry.expires_at - now).total_seconds()
        return copy.deepcopy(entry.payload), age

    def set(self, cache_key: str, payload: dict, ttl_seconds: int | None = None):
        ttl = int(ttl_seconds if ttl_seconds is not None else self.ttl_seconds)
        self._entries[cache_key] = CachedPayload(
            key=cache_key,
            payload=copy.deepcopy(payload),
            expires_at=self.clock() + timedelta(seconds=ttl),
        )

    def fetch(self, cache_key: str, compute_fn, ttl_seconds: int | None = None):
        data, age = self.get(cache_key)
        if data is not None:
            log.debug("result_cache_hit", cache_key=cache_key, age_seconds=round(age, 3))
            return data, True, age
        fresh = compute_fn()
        self.set(cache_key, fresh, ttl_seconds)
        return fresh, False, 0.0

    def invalidate_all(self) -> int:
        cleared = len(self._entries)
        self._entries = {}
        return cleared
