"""Process-wide memo of finished plan parses."""
from __future__ import annotations

from collections import OrderedDict
from threading import Lock
from typing import Optional, Tuple, Union

from planstream.core.config import settings
from planstream.services.plan_models import Plan

CacheKey = Tuple[int, str, Union[int, str], bool]

DEFAULT_CAPACITY = 10


def plan_cache_key(raw_text: str, goal: str, duration_days: Optional[int], streaming: bool = False) -> CacheKey:
    """Composite key of text length, goal, requested duration and parse mode."""
    return (len(raw_text), goal, duration_days if duration_days else "default", streaming)


class PlanCache:
    """Bounded insertion-ordered cache; the oldest entry goes first when full.

    Stored plans are copied on the way in and out so later edits to a
    returned plan (marking tasks complete) never leak into the cache.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: "OrderedDict[CacheKey, Plan]" = OrderedDict()
        self._lock = Lock()

    def get(self, key: CacheKey) -> Optional[Plan]:
        with self._lock:
            plan = self._entries.get(key)
        return plan.model_copy(deep=True) if plan is not None else None

    def put(self, key: CacheKey, plan: Plan) -> None:
        stored = plan.model_copy(deep=True)
        with self._lock:
            if key in self._entries:
                self._entries[key] = stored
                return
            while len(self._entries) >= self.capacity:
                self._entries.popitem(last=False)
            self._entries[key] = stored

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


plan_cache = PlanCache(settings.plan_cache_size)
