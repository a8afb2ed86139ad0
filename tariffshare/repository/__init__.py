"""Rule store collaborators."""

from .base import AsyncRuleRepository, RuleRepository, RuleStoreUnavailable
from .caching import CachingRuleRepository
from .files import RuleFileError, RuleFileLoader
from .memory import AsyncInMemoryRuleRepository, InMemoryRuleRepository
from .sqlite import SQLiteRuleRepository

__all__ = [
    "AsyncRuleRepository",
    "RuleRepository",
    "RuleStoreUnavailable",
    "CachingRuleRepository",
    "RuleFileError",
    "RuleFileLoader",
    "AsyncInMemoryRuleRepository",
    "InMemoryRuleRepository",
    "SQLiteRuleRepository",
]
