# raffle_health/services/health.py
from __future__ import annotations

import logging
import math
from typing import List, Optional

from raffle_health.errors import SnapshotRangeError
from raffle_health.models.domain import (
    DEFAULT_THRESHOLDS,
    EvaluationThresholds,
    Forecast,
    HealthStatus,
    RaffleConfig,
    Snapshot,
    TrafficLight,
    worst,
)
from raffle_health.utils.math import div_or_zero, is_finite, money, pct, r2, safe_div

log = logging.getLogger("raffle.health")


def projection_multiplier(day: int, period_days: int) -> float:
    """
    Run-rate multiplier for a snapshot taken on `day` of a `period_days` period.
    Day 0 or a day past the end is a caller error, never clamped.
    """
    if day <= 0 or day > period_days:
        raise SnapshotRangeError(day, period_days)
    return period_days / day


def status_from_progress(progress: float, green: float, amber: float) -> TrafficLight:
    """
    Higher is better.
      - GREEN: progress >= green
      - AMBER: progress >= amber
      - RED:   otherwise, or progress is not finite
    """
    if progress is None or not math.isfinite(progress):
        return "RED"
    if progress >= green:
        return "GREEN"
    if progress >= amber:
        return "AMBER"
    return "RED"


def status_from_overrun(actual: Optional[float], target: float,
                        green_over: float, amber_over: float) -> TrafficLight:
    """
    Lower is better; compares actual/target against overrun ratios.
    Missing actual or a non-positive target is RED.
    """
    if not is_finite(actual) or target is None or target <= 0:
        return "RED"
    ratio = actual / target
    if ratio <= green_over:
        return "GREEN"
    if ratio <= amber_over:
        return "AMBER"
    return "RED"


def evaluate_health(config: RaffleConfig,
                    forecast: Forecast,
                    snapshot: Snapshot,
                    thresholds: EvaluationThresholds = DEFAULT_THRESHOLDS) -> HealthStatus:
    """Project a campaign snapshot to end of raffle and traffic-light each KPI."""
    k = snapshot.day_number
    multiplier = projection_multiplier(k, forecast.duration_days)

    gmv_projected = snapshot.gmv_to_date * multiplier
    spend_projected = snapshot.spend_to_date * multiplier
    new_projected = snapshot.new_customers_to_date * multiplier
    retained_projected = snapshot.retained_customers_to_date * multiplier

    gmv_progress = div_or_zero(gmv_projected, forecast.gmv_total_forecast)
    new_user_progress = div_or_zero(new_projected, forecast.expected_new_customers)
    retained_progress = div_or_zero(retained_projected, forecast.expected_retained_customers)
    spend_utilisation = div_or_zero(spend_projected, config.marketing_budget_total)

    actual_cpa = safe_div(snapshot.spend_to_date, snapshot.orders_to_date) if snapshot.orders_to_date > 0 else None
    actual_cac = (safe_div(snapshot.acquisition_spend, snapshot.new_customers_to_date)
                  if snapshot.new_customers_to_date > 0 else None)

    gmv_status = status_from_progress(gmv_progress, thresholds.gmv_green, thresholds.gmv_amber)
    retention_status = status_from_progress(retained_progress, thresholds.retention_green, thresholds.retention_amber)

    if config.baseline_cpa_new:
        cpa_status = status_from_overrun(actual_cpa, config.baseline_cpa_new,
                                         thresholds.cpa_green_over_target, thresholds.cpa_amber_over_target)
    else:
        # no baseline to judge against
        cpa_status = "AMBER"

    cac_status = status_from_overrun(actual_cac, forecast.target_cac_new,
                                     thresholds.cac_green_over_target, thresholds.cac_amber_over_target)

    # retention is reported but does not drive the overall light
    overall = worst([gmv_status, cpa_status, cac_status])

    notes: List[str] = []
    if gmv_status == "RED":
        notes.append(
            f"GMV is significantly behind target at current run-rate ({pct(gmv_progress)} of forecast). "
            "Consider pushing higher bundles/upsells and reallocating spend into highest-ROAS campaigns."
        )
    elif gmv_status == "AMBER":
        notes.append(
            f"GMV is slightly behind target ({pct(gmv_progress)} of forecast). "
            "Small improvements in CVR/AOV or incremental budget may close the gap."
        )

    if cpa_status == "RED":
        notes.append(
            f"CPA of {money(actual_cpa) if actual_cpa is not None else 'n/a'} is materially above target "
            f"({money(config.baseline_cpa_new)}). Kill underperforming ad sets, refine targeting, or adjust bids."
        )

    if cac_status == "RED":
        notes.append(
            f"CAC of {money(actual_cac) if actual_cac is not None else 'n/a'} is above the "
            f"{money(forecast.target_cac_new)} required for target LTV/CAC. "
            "Revisit acquisition channels or reduce bids to protect unit economics."
        )

    if retention_status == "RED":
        notes.append(
            f"Retention contribution is behind forecast ({pct(retained_progress)}). "
            "Increase CRM intensity (email/SMS, site prompts) towards existing customers."
        )

    notes.append(
        f"Projected GMV {money(gmv_projected)} vs forecast {money(forecast.gmv_total_forecast)} "
        f"(target {money(config.target_gmv)})."
    )

    log.debug("health %s day %s: gmv=%s cpa=%s cac=%s -> %s",
              config.id, k, gmv_status, cpa_status, cac_status, overall)

    return HealthStatus(
        day_number=k,
        gmv_projected=gmv_projected,
        gmv_progress=gmv_progress,
        spend_projected=spend_projected,
        spend_utilisation=spend_utilisation,
        new_customers_projected=new_projected,
        new_user_progress=new_user_progress,
        retained_customers_projected=retained_projected,
        retained_progress=retained_progress,
        actual_cpa=actual_cpa,
        actual_cac_new=actual_cac,
        gmv_status=gmv_status,
        cpa_status=cpa_status,
        cac_status=cac_status,
        retention_status=retention_status,
        overall_status=overall,
        notes=tuple(notes),
    )


def health_summary(health: HealthStatus) -> dict:
    """Compact rounded view for logs and CLI headers."""
    return {
        "day": health.day_number,
        "overall": health.overall_status,
        "gmv_projected": r2(health.gmv_projected),
        "gmv_progress": r2(health.gmv_progress),
    }
