"""In-memory rule repository."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from datetime import date

from tariffshare.rules.models import BusinessRule, RuleType

from .base import AsyncRuleRepository, RuleRepository, select_active


class InMemoryRuleRepository(RuleRepository):
    """Holds rules in a list; replacing the list is atomic per call."""

    def __init__(self, rules: Iterable[BusinessRule] = ()) -> None:
        self._lock = threading.Lock()
        self._rules: list[BusinessRule] = list(rules)

    def add(self, rule: BusinessRule) -> None:
        with self._lock:
            self._rules = [*self._rules, rule]

    def replace_all(self, rules: Iterable[BusinessRule]) -> None:
        with self._lock:
            self._rules = list(rules)

    def all_rules(self) -> list[BusinessRule]:
        with self._lock:
            return list(self._rules)

    def get_active_rules(
        self,
        rule_type: RuleType,
        plan_id: int | None = None,
        category_id: int | None = None,
        as_of: date | None = None,
    ) -> list[BusinessRule]:
        return select_active(self.all_rules(), rule_type, plan_id, category_id, as_of)


class AsyncInMemoryRuleRepository(AsyncRuleRepository):
    """Async facade over an InMemoryRuleRepository."""

    def __init__(self, rules: Iterable[BusinessRule] = ()) -> None:
        self.store = InMemoryRuleRepository(rules)

    async def get_active_rules(
        self,
        rule_type: RuleType,
        plan_id: int | None = None,
        category_id: int | None = None,
        as_of: date | None = None,
    ) -> list[BusinessRule]:
        return self.store.get_active_rules(rule_type, plan_id, category_id, as_of)
