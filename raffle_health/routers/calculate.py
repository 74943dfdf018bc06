from fastapi import APIRouter
from fastapi.responses import JSONResponse
import logging

from raffle_health.config import DEFAULT_BASELINES
from raffle_health.errors import InvalidInputError
from raffle_health.models.io import CalculateIn
from raffle_health.services.forecast import CalculatorInput, calculate_raffle_needs

router = APIRouter(prefix="/api", tags=["calculate"])
log = logging.getLogger("raffle.api")


@router.post("/calculate")
def calculate(req: CalculateIn):
    if req.missing_required():
        return JSONResponse(status_code=400, content={"error": "Missing required fields"})

    try:
        result = calculate_raffle_needs(CalculatorInput(
            target_gmv=float(req.target_gmv),
            expected_aov_new=float(req.expected_aov_new),
            expected_aov_ret=float(req.expected_aov_ret) if req.expected_aov_ret else None,
            marketing_budget=float(req.marketing_budget),
            duration_days=int(req.duration_days),
            target_cac=float(req.target_cac) if req.target_cac else None,
            **DEFAULT_BASELINES,
        ))
    except InvalidInputError as e:
        log.warning("Rejected calculation input: %s", e)
        return JSONResponse(status_code=422, content={"error": str(e)})
    except Exception:
        log.exception("Calculation error")
        return JSONResponse(status_code=500, content={"error": "Calculation failed"})
    return result
