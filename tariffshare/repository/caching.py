"""Bounded-TTL caching wrapper around a rule repository.

Stale coverage rules directly cause billing errors, so the TTL is capped
and every entry expires; ``invalidate`` drops everything at once when the
administration tooling changes rules.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from datetime import date

from tariffshare.config import MAX_RULE_CACHE_TTL_SECONDS
from tariffshare.rules.models import BusinessRule, RuleType

from .base import RuleRepository

logger = logging.getLogger(__name__)

CacheKey = tuple[RuleType, "int | None", "int | None", date]


class CachingRuleRepository(RuleRepository):
    def __init__(
        self,
        inner: RuleRepository,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0 or ttl_seconds > MAX_RULE_CACHE_TTL_SECONDS:
            raise ValueError(
                f"ttl_seconds must be in (0, {MAX_RULE_CACHE_TTL_SECONDS}], got {ttl_seconds}"
            )
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[CacheKey, tuple[float, list[BusinessRule]]] = {}

    def invalidate(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Business rule cache invalidated")

    def get_active_rules(
        self,
        rule_type: RuleType,
        plan_id: int | None = None,
        category_id: int | None = None,
        as_of: date | None = None,
    ) -> list[BusinessRule]:
        as_of = as_of or date.today()
        key = (rule_type, plan_id, category_id, as_of)
        now = self._clock()

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None and now - cached[0] < self.ttl_seconds:
                return list(cached[1])

        # Fetch outside the lock; store errors propagate and are never cached
        rules = self.inner.get_active_rules(rule_type, plan_id, category_id, as_of)

        with self._lock:
            self._entries[key] = (now, list(rules))
            expired = [k for k, (stamp, _) in self._entries.items() if now - stamp >= self.ttl_seconds]
            for k in expired:
                del self._entries[k]
        return list(rules)
