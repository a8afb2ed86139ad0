"""FastAPI application for the tariff share service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import __version__
from .config import (
    DB_PATH,
    LOG_FORMAT,
    LOG_LEVEL,
    RULE_CACHE_TTL_SECONDS,
    RULE_STORE_FAILURE_POLICY,
    RULES_FILE,
)
from .limiter import limiter
from .logging_config import configure_logging
from .orchestrator import InsuranceTariffOrchestrator
from .repository import CachingRuleRepository, RuleFileLoader, RuleRepository, SQLiteRuleRepository
from .repository.sqlite import init_db
from .routes import calculation_router, rules_router

logger = logging.getLogger(__name__)


def build_repository() -> RuleRepository:
    """Build the rule store from configuration.

    A rule file takes precedence over the SQLite store. Caching wraps
    either when ``RULE_CACHE_TTL_SECONDS`` is positive.
    """
    repository: RuleRepository
    if RULES_FILE:
        repository = RuleFileLoader().load_repository(RULES_FILE)
    else:
        init_db(DB_PATH)
        repository = SQLiteRuleRepository(DB_PATH)
        logger.info(f"Using SQLite rule store at {DB_PATH}")

    if RULE_CACHE_TTL_SECONDS > 0:
        logger.info(f"Caching business rules for {RULE_CACHE_TTL_SECONDS}s")
        repository = CachingRuleRepository(repository, ttl_seconds=RULE_CACHE_TTL_SECONDS)
    return repository


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize resources on startup."""
    configure_logging(LOG_LEVEL, structured=LOG_FORMAT == "json")
    app.state.orchestrator = InsuranceTariffOrchestrator(repository=build_repository())
    logger.info(f"Tariff share service started (rule store failure policy: {RULE_STORE_FAILURE_POLICY})")
    yield


app = FastAPI(
    title="Tariff Share Service",
    description="Patient/insurer share calculation for clinic tariffs",
    version=__version__,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS configuration
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(calculation_router)
app.include_router(rules_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "rule_store_failure_policy": RULE_STORE_FAILURE_POLICY,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
