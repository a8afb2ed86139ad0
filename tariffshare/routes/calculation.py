"""Share calculation route.

Input problems and payment ceiling violations are business outcomes and
come back as 200 with ``is_valid=false``. Only an unreachable rule store
is an HTTP error, and only when the failure policy is ``closed``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from tariffshare import messages
from tariffshare.config import RATE_LIMIT, RULE_STORE_FAILURE_POLICY
from tariffshare.limiter import limiter
from tariffshare.orchestrator import InsuranceTariffOrchestrator
from tariffshare.repository import RuleStoreUnavailable
from tariffshare.schemas import CalculateShareRequest, ShareResultResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["calculation"])


def get_orchestrator(request: Request) -> InsuranceTariffOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail=messages.RULE_STORE_UNAVAILABLE)
    return orchestrator


def get_failure_policy() -> str:
    return RULE_STORE_FAILURE_POLICY


@router.post("/calculate-share", response_model=ShareResultResponse)
@limiter.limit(RATE_LIMIT)
def calculate_share(
    request: Request,
    payload: CalculateShareRequest,
    orchestrator: InsuranceTariffOrchestrator = Depends(get_orchestrator),
    failure_policy: str = Depends(get_failure_policy),
):
    """Calculate the patient and insurer shares for one service line."""
    context = payload.to_context()
    try:
        result = orchestrator.calculate(context)
    except RuleStoreUnavailable as e:
        logger.error(f"Rule store unavailable for service {context.service.service_id}: {e}")
        if failure_policy != "open":
            raise HTTPException(status_code=503, detail=messages.RULE_STORE_UNAVAILABLE) from e
        result = orchestrator.calculate_with_base_parameters(context, warning=messages.RULE_STORE_UNAVAILABLE)

    if not result.is_valid:
        logger.info(
            f"Share calculation rejected for service {context.service.service_id}: "
            f"{result.error_code.value if result.error_code else 'unknown'}"
        )
    return ShareResultResponse.from_result(result)
