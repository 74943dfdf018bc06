from dataclasses import asdict
from fastapi import APIRouter, HTTPException
from typing import Any, Dict, List

from raffle_health.config import CAC_TABLES
from raffle_health.errors import InvalidInputError
from raffle_health.models.io import AllocateIn, CampaignIn, PhaseHealthIn, PhaseHealthOut, TicketPricingIn
from raffle_health.services.allocation import allocate, price_ticket_phase
from raffle_health.services.phases import evaluate_phase_health, plan_campaign

router = APIRouter(prefix="/api/phases", tags=["phases"])


@router.post("/plan")
def plan(req: CampaignIn) -> List[Dict[str, Any]]:
    try:
        campaign = req.to_domain()
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return [p.to_dict() for p in plan_campaign(campaign)]


@router.post("/health", response_model=PhaseHealthOut)
def phase_health(req: PhaseHealthIn) -> Dict[str, Any]:
    try:
        campaign, snap, cum = req.to_domain()
        health = evaluate_phase_health(campaign, snap, cum)
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return health.to_dict()


@router.post("/allocate")
def allocate_budget(req: AllocateIn) -> Dict[str, Any]:
    campaign, phases = req.to_domain()
    try:
        result = allocate(campaign, phases, CAC_TABLES[req.table])
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"table": req.table, **result.to_dict()}


@router.post("/tickets")
def ticket_pricing(req: TicketPricingIn) -> Dict[str, Any]:
    params, phases = req.to_domain()
    priced = [price_ticket_phase(params, p) for p in phases]
    return {
        "phases": [asdict(p) for p in priced],
        "total_tickets": sum(p.tickets_target for p in priced),
        "total_gmv": sum(p.expected_gmv for p in priced),
        "total_budget": sum(p.marketing_budget for p in priced),
    }
