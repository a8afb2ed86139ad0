"""Shared configuration for the tariff share service.

This module centralizes environment variable access and default values
to prevent drift between modules.
"""

import os

# Rule store configuration
DB_PATH = os.getenv("DB_PATH", "./data/rules.db")
RULES_FILE = os.getenv("RULES_FILE", "")

# Rule cache TTL in seconds (0 disables caching, capped at MAX_RULE_CACHE_TTL_SECONDS)
MAX_RULE_CACHE_TTL_SECONDS = 300
RULE_CACHE_TTL_SECONDS = min(
    int(os.getenv("RULE_CACHE_TTL_SECONDS", "0")), MAX_RULE_CACHE_TTL_SECONDS
)

# "closed" rejects calculations when the rule store is unreachable,
# "open" falls back to the plan's base values.
RULE_STORE_FAILURE_POLICY = os.getenv("RULE_STORE_FAILURE_POLICY", "closed").lower()

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "plain").lower()

# Rate limiting for the calculation endpoint
RATE_LIMIT = os.getenv("RATE_LIMIT", "300/minute")
