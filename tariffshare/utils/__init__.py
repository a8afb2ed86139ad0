"""Shared utility functions for the tariff share service."""

from .date_parser import parse_rule_date

__all__ = ["parse_rule_date"]
