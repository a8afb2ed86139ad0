"""API route modules for the tariff share service.

Routers:
- calculation: POST /calculate-share
- rules: rule type catalog and rule definition validation
"""

from .calculation import router as calculation_router
from .rules import router as rules_router

__all__ = ["calculation_router", "rules_router"]
