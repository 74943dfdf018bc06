from fastapi import APIRouter, HTTPException
from typing import Any, Dict, List
import logging

from raffle_health.data.loader import get_model, config_meta
from raffle_health.errors import InvalidInputError
from raffle_health.models.io import RaffleHealthOut, SnapshotIn
from raffle_health.services.forecast import forecast_raffle
from raffle_health.services.health import evaluate_health

router = APIRouter(prefix="/api/raffles", tags=["raffles"])
log = logging.getLogger("raffle.api")


def _model():
    try:
        return get_model()
    except (FileNotFoundError, ValueError) as e:
        log.error("Raffle config unavailable: %s", e)
        raise HTTPException(status_code=503, detail="Raffle configuration unavailable")


def _raffle(raffle_id: str):
    model = _model()
    cfg = model.raffles.get(raffle_id)
    if cfg is None:
        raise HTTPException(status_code=404, detail=f"Raffle {raffle_id} not found")
    return model, cfg


@router.get("")
def list_raffles() -> List[Dict[str, Any]]:
    model = _model()
    return [
        {"id": c.id, "name": c.name, "duration_days": c.duration_days, "target_gmv": c.target_gmv}
        for c in sorted(model.raffles.values(), key=lambda c: c.id)
    ]


@router.get("/meta")
def meta() -> Dict[str, Any]:
    return config_meta()


@router.get("/{raffle_id}/forecast")
def forecast(raffle_id: str) -> Dict[str, Any]:
    _, cfg = _raffle(raffle_id)
    return forecast_raffle(cfg).to_dict()


@router.post("/{raffle_id}/health", response_model=RaffleHealthOut)
def raffle_health(raffle_id: str, req: SnapshotIn) -> Dict[str, Any]:
    model, cfg = _raffle(raffle_id)
    fc = forecast_raffle(cfg)
    try:
        health = evaluate_health(cfg, fc, req.to_domain(), model.thresholds)
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "raffle_id": raffle_id,
        "config": cfg.to_dict(),
        "forecast": fc.to_dict(),
        "health": health.to_dict(),
    }
