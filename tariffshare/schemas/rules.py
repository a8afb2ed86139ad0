"""Pydantic schemas for the rule catalog and validation endpoints."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, field_validator


class RuleDefinition(BaseModel):
    """A business rule as submitted by the administration tooling."""

    id: int
    name: str
    rule_type: str
    priority: int = 50
    conditions: Any = None
    actions: Any = None
    is_active: bool = True
    insurance_plan_id: int | None = None
    service_category_id: int | None = None
    service_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: int) -> int:
        if v < 1 or v > 100:
            raise ValueError("priority must be between 1 and 100")
        return v


class RuleTypeInfo(BaseModel):
    rule_type: str
    application_mode: str
    description: str
    allowed_actions: list[str]


class RuleValidationResponse(BaseModel):
    valid: bool
    rule_type: str | None = None
    condition_count: int = 0
    actions: list[dict[str, Any]] = []
    errors: list[str] = []
