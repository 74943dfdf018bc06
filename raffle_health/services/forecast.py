# raffle_health/services/forecast.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pandas as pd

from raffle_health.config import (
    AOV_RET_UPLIFT,
    CRR_CAP,
    CURRENCY,
    GAP_SHARE_NEW,
    GAP_SHARE_RETURNING,
    ORDERS_PER_NEW_CUSTOMER,
    RETENTION_WINDOW_DAYS,
)
from raffle_health.errors import InvalidInputError
from raffle_health.models.domain import Forecast, RaffleConfig, compute_duration_days
from raffle_health.utils.math import div_or_zero, money, r2, round_half_up

log = logging.getLogger("raffle.forecast")

__all__ = [
    "compute_duration_days",
    "retention_rate_for",
    "window_scale",
    "forecast_raffle",
    "CalculatorInput",
    "calculate_raffle_needs",
]


def window_scale(duration_days: float) -> float:
    return duration_days / RETENTION_WINDOW_DAYS


def retention_rate_for(crr_20d: float, duration_days: float) -> float:
    """Scale the 20-day CRR to the campaign length, capped at CRR_CAP."""
    return min(crr_20d * window_scale(duration_days), CRR_CAP)


def forecast_raffle(config: RaffleConfig) -> Forecast:
    """
    Expected outcome of a raffle from its budget and historical baselines.

    New customers come from the acquisition budget at the target CAC (one
    order each); returning customers from the capped, duration-scaled CRR
    applied to the existing base.
    """
    duration_days = config.duration_days

    budget_new = config.marketing_budget_total * config.budget_split_new
    target_cac_new = config.target_cac_new
    expected_new = budget_new / target_cac_new if target_cac_new > 0 else 0.0
    gmv_new = expected_new * ORDERS_PER_NEW_CUSTOMER * config.expected_aov_new

    crr_window = retention_rate_for(config.baseline_crr_20d, duration_days)
    expected_retained = config.base_existing_customers * crr_window
    gmv_per_retained = config.baseline_gmv_per_retained_user_20d * window_scale(duration_days)
    gmv_retention = expected_retained * gmv_per_retained

    log.debug("forecast %s: days=%s cac=%.2f crr=%.4f", config.id, duration_days, target_cac_new, crr_window)

    return Forecast(
        duration_days=duration_days,
        target_cac_new=target_cac_new,
        expected_new_customers=expected_new,
        expected_retained_customers=expected_retained,
        gmv_new_window=gmv_new,
        gmv_retention_window=gmv_retention,
        gmv_total_forecast=gmv_new + gmv_retention,
    )


@dataclass(frozen=True)
class CalculatorInput:
    target_gmv: float
    expected_aov_new: float
    marketing_budget: float
    duration_days: int
    baseline_ltv_new: float
    target_ltv_to_cac: float
    baseline_crr_20d: float
    baseline_gmv_per_retained_user_20d: float
    base_existing_customers: float
    budget_split_new: float
    expected_aov_ret: Optional[float] = None
    target_cac: Optional[float] = None

    @property
    def aov_ret(self) -> float:
        if self.expected_aov_ret:
            return self.expected_aov_ret
        return self.expected_aov_new * AOV_RET_UPLIFT

    @property
    def target_cac_new(self) -> float:
        if self.target_cac is not None:
            return self.target_cac
        return div_or_zero(self.baseline_ltv_new, self.target_ltv_to_cac)


def _duration_advice(duration_days: int) -> str:
    if duration_days < 14:
        return "14-21 days recommended for retention momentum"
    if duration_days > 30:
        return "Consider splitting into multiple shorter raffles"
    return "Duration looks good for retention window"


def _quarterly_breakdown(inp: CalculatorInput, adjusted_new: float, quarters: int = 4) -> List[Dict[str, Any]]:
    """
    Cumulative and per-quarter users/GMV/orders at four checkpoints.
    New users accrue linearly; returning users follow the capped CRR curve.
    """
    d = inp.duration_days
    aov_new, aov_ret = inp.expected_aov_new, inp.aov_ret

    q = pd.Series(range(1, quarters + 1))
    day = (q * d / quarters).map(round_half_up)
    prev_day = ((q - 1) * d / quarters).map(round_half_up)

    def _cumulative(days: pd.Series, new_frac: pd.Series) -> pd.DataFrame:
        new = adjusted_new * new_frac
        crr = (inp.baseline_crr_20d * days / RETENTION_WINDOW_DAYS).clip(upper=CRR_CAP)
        ret = inp.base_existing_customers * crr
        gmv_per_ret = inp.baseline_gmv_per_retained_user_20d * days / RETENTION_WINDOW_DAYS
        gmv = new * ORDERS_PER_NEW_CUSTOMER * aov_new + ret * gmv_per_ret
        orders = new * ORDERS_PER_NEW_CUSTOMER + ret * (gmv_per_ret / aov_ret)
        return pd.DataFrame({"new": new, "ret": ret, "gmv": gmv, "orders": orders})

    cur = _cumulative(day, day / d)
    # previous checkpoint uses the unrounded quarter fraction for new users
    prev = _cumulative(prev_day, (q - 1) / quarters)

    df = pd.DataFrame({
        "quarter": "Q" + q.astype(str),
        "day": day,
        "cumulativeNewUsers": cur["new"],
        "cumulativeReturningUsers": cur["ret"],
        "cumulativeTotalUsers": cur["new"] + cur["ret"],
        "cumulativeGMV": cur["gmv"],
        "cumulativeOrders": cur["orders"],
        "quarterlyNewUsers": cur["new"] - prev["new"],
        "quarterlyReturningUsers": cur["ret"] - prev["ret"],
        "quarterlyGMV": cur["gmv"] - prev["gmv"],
    })
    num_cols = [c for c in df.columns if c not in ("quarter", "day")]
    df[num_cols] = df[num_cols].apply(lambda s: s.map(round_half_up))
    df["day"] = df["day"].astype(int)
    return df.to_dict("records")


def calculate_raffle_needs(inp: CalculatorInput) -> Dict[str, Any]:
    """What a raffle needs (users, orders, budget split) to reach its GMV target."""
    if inp.duration_days < 1:
        raise InvalidInputError("durationDays must be a positive integer")

    target_cac_new = inp.target_cac_new
    budget_for_new = inp.marketing_budget * inp.budget_split_new
    budget_for_retention = inp.marketing_budget * (1 - inp.budget_split_new)
    expected_new = div_or_zero(budget_for_new, target_cac_new)

    expected_returning = inp.base_existing_customers * retention_rate_for(inp.baseline_crr_20d, inp.duration_days)

    gmv_from_new = expected_new * ORDERS_PER_NEW_CUSTOMER * inp.expected_aov_new
    gmv_per_retained = inp.baseline_gmv_per_retained_user_20d * window_scale(inp.duration_days)
    gmv_from_returning = expected_returning * gmv_per_retained

    projected_gmv = gmv_from_new + gmv_from_returning
    gmv_gap = inp.target_gmv - projected_gmv

    adjusted_new = expected_new
    adjusted_returning = expected_returning
    if gmv_gap > 0:
        adjusted_new += div_or_zero(gmv_gap * GAP_SHARE_NEW, ORDERS_PER_NEW_CUSTOMER * inp.expected_aov_new)
        adjusted_returning += div_or_zero(gmv_gap * GAP_SHARE_RETURNING, gmv_per_retained)

    total_users = adjusted_new + adjusted_returning
    total_orders = (adjusted_new * ORDERS_PER_NEW_CUSTOMER
                    + adjusted_returning * div_or_zero(gmv_per_retained, inp.aov_ret))

    recs: List[str] = []
    if gmv_gap > 0:
        recs.append(
            f"You're projected to be {money(gmv_gap, CURRENCY)} short of your target with current budget and AOV."
        )
        if gmv_gap > inp.target_gmv * 0.2:
            recs.append(
                f"Consider increasing marketing budget by {money(gmv_gap / 5, CURRENCY)} "
                f"or boosting AOV to {money(inp.expected_aov_new * 1.2, CURRENCY)}."
            )
        recs.append(
            f"To close the gap: acquire {round_half_up(adjusted_new - expected_new)} more new users "
            f"or increase CRM for {round_half_up(adjusted_returning - expected_returning)} more returning users."
        )
    elif gmv_gap < 0:
        recs.append(
            f"You're on track to exceed your target by {money(abs(gmv_gap), CURRENCY)}! "
            "Consider reallocating excess budget or setting a higher target."
        )
    else:
        recs.append("Your targets are well-balanced. Monitor daily progress to ensure you stay on track.")

    tickets_needed = div_or_zero(inp.target_gmv, inp.expected_aov_new)
    suggested_ticket_price = inp.expected_aov_new / 2  # ~2 tickets per order
    recs.append(
        f"Estimated {round_half_up(tickets_needed)} tickets needed at {CURRENCY}{inp.expected_aov_new:g} AOV. "
        f"Consider ticket price of {CURRENCY}{suggested_ticket_price:.2f}."
    )
    recs.append(_duration_advice(inp.duration_days))

    return {
        "totalUsersNeeded": round_half_up(total_users),
        "newUsersNeeded": round_half_up(adjusted_new),
        "returningUsersNeeded": round_half_up(adjusted_returning),
        "totalOrdersNeeded": round_half_up(total_orders),
        "gmvFromNew": round_half_up(gmv_from_new),
        "gmvFromReturning": round_half_up(gmv_from_returning),
        "targetCACNew": r2(target_cac_new),
        "budgetForNew": round_half_up(budget_for_new),
        "budgetForRetention": round_half_up(budget_for_retention),
        "projectedGMV": round_half_up(projected_gmv),
        "gmvGap": round_half_up(gmv_gap),
        "recommendations": recs,
        "quarterlyData": _quarterly_breakdown(inp, adjusted_new),
    }
