"""Tariff share calculation package.

This package computes the patient/insurer split for a single billable
clinical service line, including:

- Exact share calculation with a fixed rounding policy
- Business rule engine for coverage, deductible, discount and limit overrides
- Rule store collaborators (in-memory, SQLite, YAML/JSON files)
- FastAPI surface exposing POST /calculate-share

Usage:
    # Development:
    uvicorn tariffshare.app:app --reload --port 8080

    # Production:
    uvicorn tariffshare.app:app --host 0.0.0.0 --port 8080

Modules:
    calculator: Rounding policy and share calculator
    rules: Condition evaluator, rule parser and business rule engine
    repository: Rule store collaborators
    orchestrator: Composes engine output into calculator input
    app: FastAPI application entry point
"""

from .orchestrator import InsuranceTariffOrchestrator

__version__ = "0.1.0"

__all__ = ["InsuranceTariffOrchestrator", "__version__"]
