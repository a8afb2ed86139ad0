"""SQLite-backed rule repository.

Conditions and actions are stored as JSON text and parsed by the engine
on every evaluation, so edits made by the administration tooling are
visible on the next call.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date
from pathlib import Path
from typing import Any

from tariffshare.rules.models import BusinessRule, RuleType
from tariffshare.utils import parse_rule_date

from .base import RuleRepository, RuleStoreUnavailable

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, name, rule_type, priority, conditions, actions, is_active, "
    "insurance_plan_id, service_category_id, service_id, start_date, end_date, description"
)


def init_db(db_path: str | Path) -> None:
    """Create the business_rules table if it does not exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS business_rules (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                rule_type TEXT NOT NULL,
                priority INTEGER NOT NULL DEFAULT 50,
                conditions TEXT,
                actions TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                is_deleted INTEGER NOT NULL DEFAULT 0,
                insurance_plan_id INTEGER,
                service_category_id INTEGER,
                service_id INTEGER,
                start_date TEXT,
                end_date TEXT,
                description TEXT
            )
        """)

        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_business_rules_type ON business_rules(rule_type, is_active)"
        )

        conn.commit()


def _encode(payload: Any) -> str | None:
    if payload is None or isinstance(payload, str):
        return payload
    return json.dumps(payload, ensure_ascii=False)


def insert_rule(db_path: str | Path, rule: BusinessRule) -> None:
    """Insert or replace a rule (used for seeding and tests)."""
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            f"INSERT OR REPLACE INTO business_rules ({_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                rule.rule_id,
                rule.name,
                rule.rule_type.value,
                rule.priority,
                _encode(rule.conditions),
                _encode(rule.actions),
                1 if rule.is_active else 0,
                rule.insurance_plan_id,
                rule.service_category_id,
                rule.service_id,
                rule.start_date.isoformat() if rule.start_date else None,
                rule.end_date.isoformat() if rule.end_date else None,
                rule.description,
            ),
        )
        conn.commit()


def _row_to_rule(row: sqlite3.Row) -> BusinessRule:
    return BusinessRule(
        rule_id=row["id"],
        name=row["name"],
        rule_type=RuleType(row["rule_type"]),
        priority=row["priority"],
        conditions=row["conditions"],
        actions=row["actions"],
        is_active=bool(row["is_active"]),
        insurance_plan_id=row["insurance_plan_id"],
        service_category_id=row["service_category_id"],
        service_id=row["service_id"],
        start_date=parse_rule_date(row["start_date"]),
        end_date=parse_rule_date(row["end_date"]),
        description=row["description"],
    )


class SQLiteRuleRepository(RuleRepository):
    """Reads rules from a SQLite database on every call."""

    def __init__(self, db_path: str | Path, timeout: float = 5.0) -> None:
        self.db_path = str(db_path)
        self.timeout = timeout

    def get_active_rules(
        self,
        rule_type: RuleType,
        plan_id: int | None = None,
        category_id: int | None = None,
        as_of: date | None = None,
    ) -> list[BusinessRule]:
        as_of_text = (as_of or date.today()).isoformat()
        query = (
            f"SELECT {_COLUMNS} FROM business_rules "
            "WHERE rule_type = ? AND is_active = 1 AND is_deleted = 0 "
            "AND (start_date IS NULL OR start_date <= ?) "
            "AND (end_date IS NULL OR end_date >= ?)"
        )
        params: list[Any] = [rule_type.value, as_of_text, as_of_text]
        if plan_id is not None:
            query += " AND (insurance_plan_id IS NULL OR insurance_plan_id = ?)"
            params.append(plan_id)
        if category_id is not None:
            query += " AND (service_category_id IS NULL OR service_category_id = ?)"
            params.append(category_id)
        query += " ORDER BY priority ASC, id ASC"

        try:
            with sqlite3.connect(self.db_path, timeout=self.timeout) as conn:
                conn.row_factory = sqlite3.Row
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to read business rules from {self.db_path}: {e}", exc_info=True)
            raise RuleStoreUnavailable(f"Rule store unavailable: {e}") from e

        rules = []
        for row in rows:
            try:
                rules.append(_row_to_rule(row))
            except ValueError as e:
                # Unknown rule type or unparseable window date
                logger.warning(f"Skipping unreadable business rule {row['id']}: {e}")
        logger.debug(f"Found {len(rules)} active {rule_type.value} rules")
        return rules
