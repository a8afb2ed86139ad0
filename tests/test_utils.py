"""Tests for date parsing and logging helpers."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime

import pytest

from tariffshare.logging_config import StructuredFormatter
from tariffshare.utils import parse_rule_date


class TestParseRuleDate:
    @pytest.mark.parametrize(
        "value",
        ["2024-01-15", "2024/01/15", "20240115", "2024-01-15T08:30:00", "2024-01-15 08:30:00", " 2024-01-15 "],
    )
    def test_supported_formats(self, value: str):
        assert parse_rule_date(value) == date(2024, 1, 15)

    def test_date_and_datetime_objects(self):
        assert parse_rule_date(date(2024, 1, 15)) == date(2024, 1, 15)
        assert parse_rule_date(datetime(2024, 1, 15, 9, 0)) == date(2024, 1, 15)

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_values(self, value):
        assert parse_rule_date(value) is None

    @pytest.mark.parametrize("value", ["2024-02-30", "15/01/2024", "1850-01-01", "tomorrow"])
    def test_invalid_values(self, value: str):
        with pytest.raises(ValueError):
            parse_rule_date(value)


class TestStructuredFormatter:
    def test_formats_json_with_persian_text(self):
        record = logging.LogRecord(
            name="tariffshare.test",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="سقف پرداخت %s",
            args=("ok",),
            exc_info=None,
        )

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "tariffshare.test"
        assert data["message"] == "سقف پرداخت ok"
