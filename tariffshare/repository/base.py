"""Base rule repository abstract classes.

Defines the read-only interface the rule engine uses to fetch business
rules. Administration (create/update/deactivate) lives outside this
package.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date

from tariffshare.rules.models import BusinessRule, RuleType

logger = logging.getLogger(__name__)


class RuleStoreUnavailable(Exception):
    """Raised when the rule store cannot be reached or read.

    Distinct from "no rules configured", which is an empty list.
    """


class RuleRepository(ABC):
    """Synchronous rule store."""

    @abstractmethod
    def get_active_rules(
        self,
        rule_type: RuleType,
        plan_id: int | None = None,
        category_id: int | None = None,
        as_of: date | None = None,
    ) -> list[BusinessRule]:
        """Return active rules of a type within their validity window.

        Rules scoped to another plan or service category are excluded;
        unscoped rules always apply.

        Raises:
            RuleStoreUnavailable: If the store cannot be read
        """


class AsyncRuleRepository(ABC):
    """Asynchronous rule store with the same contract as RuleRepository."""

    @abstractmethod
    async def get_active_rules(
        self,
        rule_type: RuleType,
        plan_id: int | None = None,
        category_id: int | None = None,
        as_of: date | None = None,
    ) -> list[BusinessRule]:
        """Return active rules of a type within their validity window."""


def select_active(
    rules: list[BusinessRule],
    rule_type: RuleType,
    plan_id: int | None,
    category_id: int | None,
    as_of: date | None,
) -> list[BusinessRule]:
    """Filter rules the way every repository must."""
    as_of = as_of or date.today()
    return [
        rule
        for rule in rules
        if rule.rule_type == rule_type
        and rule.is_active
        and rule.in_window(as_of)
        and rule.in_scope(plan_id=plan_id, category_id=category_id)
    ]
