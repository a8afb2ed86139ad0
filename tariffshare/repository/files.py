"""Rule definition file loader.

Supports loading business rules from YAML and JSON files so a clinic's
policy overrides can be kept under version control:

    rules:
      - id: 1
        name: Senior coverage
        rule_type: CoveragePercent
        priority: 1
        conditions:
          - {field: patient_age, operator: greater_than_or_equal, value: 65}
        actions:
          - {type: set_coverage_percent, value: 90}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from tariffshare.rules.models import BusinessRule, RuleConfigurationError, RuleType
from tariffshare.rules.parser import parse_rule
from tariffshare.utils import parse_rule_date

from .memory import InMemoryRuleRepository

logger = logging.getLogger(__name__)


class RuleFileError(Exception):
    """Raised when rule file validation fails."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


def _optional_int(value: Any, label: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{label} must be an integer")
    return int(value)


def rule_from_mapping(data: dict[str, Any]) -> BusinessRule:
    """Build a BusinessRule from a decoded definition.

    Raises:
        ValueError: If required fields are missing or malformed
    """
    missing = [key for key in ("id", "name", "rule_type") if data.get(key) in (None, "")]
    if missing:
        raise ValueError(f"missing required fields: {', '.join(missing)}")

    try:
        rule_type = RuleType(data["rule_type"])
    except ValueError as e:
        raise ValueError(f"unknown rule_type: {data['rule_type']}") from e

    priority = int(data.get("priority", 50))
    if priority < 1 or priority > 100:
        raise ValueError(f"priority must be between 1 and 100, got {priority}")

    start_date = parse_rule_date(data.get("start_date"))
    end_date = parse_rule_date(data.get("end_date"))
    if start_date and end_date and end_date < start_date:
        raise ValueError("end_date cannot be before start_date")

    return BusinessRule(
        rule_id=int(data["id"]),
        name=str(data["name"]),
        rule_type=rule_type,
        priority=priority,
        conditions=data.get("conditions"),
        actions=data.get("actions"),
        is_active=bool(data.get("is_active", True)),
        insurance_plan_id=_optional_int(data.get("insurance_plan_id"), "insurance_plan_id"),
        service_category_id=_optional_int(data.get("service_category_id"), "service_category_id"),
        service_id=_optional_int(data.get("service_id"), "service_id"),
        start_date=start_date,
        end_date=end_date,
        description=data.get("description"),
    )


class RuleFileLoader:
    """Loads and validates business rules from files."""

    def __init__(self, strict: bool = False):
        """Initialize the loader.

        Args:
            strict: Reject files whose rules have malformed conditions or
                    actions. When False such rules are kept (the engine
                    treats them as non-matching) and a warning is logged.
        """
        self.strict = strict

    def load_file(self, file_path: str | Path) -> list[BusinessRule]:
        """Load rules from a single YAML or JSON file.

        Raises:
            RuleFileError: If validation fails
            FileNotFoundError: If file doesn't exist
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Rule file not found: {path}")

        suffix = path.suffix.lower()
        with open(path, encoding="utf-8") as f:
            if suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            elif suffix == ".json":
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported rule file format: {suffix}")

        return self._parse(data, str(path))

    def load_repository(self, file_path: str | Path) -> InMemoryRuleRepository:
        rules = self.load_file(file_path)
        logger.info(f"Loaded {len(rules)} business rule(s) from {Path(file_path).name}")
        return InMemoryRuleRepository(rules)

    def _parse(self, data: Any, source: str) -> list[BusinessRule]:
        if isinstance(data, dict):
            items = data.get("rules", [])
        elif isinstance(data, list):
            items = data
        else:
            raise RuleFileError(f"Invalid rule file structure in {source}")

        rules: list[BusinessRule] = []
        errors: list[dict[str, Any]] = []
        seen_ids: set[int] = set()

        for idx, item in enumerate(items):
            if not isinstance(item, dict):
                errors.append({"file": source, "index": idx, "error": "rule must be an object"})
                continue
            try:
                rule = rule_from_mapping(item)
            except (ValueError, TypeError) as e:
                errors.append({"file": source, "index": idx, "error": str(e)})
                continue

            if rule.rule_id in seen_ids:
                errors.append({"file": source, "index": idx, "error": f"duplicate rule id {rule.rule_id}"})
                continue
            seen_ids.add(rule.rule_id)

            try:
                parse_rule(rule)
            except RuleConfigurationError as e:
                if self.strict:
                    errors.append({"file": source, "index": idx, "error": str(e)})
                    continue
                logger.warning(f"Rule {rule.rule_id} in {source} will never match: {e}")

            rules.append(rule)

        if errors:
            raise RuleFileError(f"Validation failed for {len(errors)} rule(s)", errors=errors)

        return rules
