# raffle_health/services/allocation.py
from __future__ import annotations

import logging
from typing import Mapping, Sequence

import numpy as np
import pandas as pd

from raffle_health.config import LIFECYCLE_CAC_BY_LEVEL, TICKET_CAC_BY_INTENSITY
from raffle_health.errors import InvalidInputError
from raffle_health.models.domain import (
    AllocatedPhase,
    AllocationCampaign,
    AllocationPhase,
    AllocationResult,
    PricedTicketPhase,
    TicketParams,
    TicketPhase,
)

log = logging.getLogger("raffle.allocation")


def _nominal_cac(levels: pd.Series, cac_table: Mapping[str, float]) -> pd.Series:
    unknown = sorted(set(levels) - set(cac_table))
    if unknown:
        raise InvalidInputError(f"Unknown spend level(s) {unknown}; expected one of {sorted(cac_table)}")
    return levels.map(lambda lvl: float(cac_table[lvl]))


def allocate(campaign: AllocationCampaign,
             phases: Sequence[AllocationPhase],
             cac_table: Mapping[str, float] = LIFECYCLE_CAC_BY_LEVEL) -> AllocationResult:
    """
    Split the campaign budget across phases by spend intensity.

    Pass 1 prices each phase at its nominal CAC (raw budget = CAC x orders).
    Pass 2 rescales every raw budget by budget_total / sum(raw) so the final
    budgets always add up to the campaign budget. All-organic plans (raw sum
    <= 0) get zero budgets and zero effective CAC.
    """
    if campaign.gmv_total <= 0 or campaign.aov_total <= 0 or campaign.budget_total <= 0:
        raise InvalidInputError(
            "Campaign inputs must be positive numbers (gmv_total, aov_total, budget_total)"
        )

    df = pd.DataFrame(
        [(p.id, p.label, float(p.tickets_target), float(p.gmv_target), p.level) for p in phases],
        columns=["id", "label", "tickets_target", "gmv_target", "level"],
    )

    # ---- Pass 1: raw metrics per phase ----
    tickets = df["tickets_target"]
    df["ticket_price"] = np.where(tickets > 0, df["gmv_target"] / tickets.where(tickets > 0, 1.0), 0.0)
    df["orders_target"] = df["gmv_target"] / campaign.aov_total
    df["cac_nominal"] = _nominal_cac(df["level"], cac_table) if len(df) else pd.Series(dtype=float)
    df["budget_raw"] = df["cac_nominal"] * df["orders_target"]

    # ---- Pass 2: normalise to the campaign budget ----
    budget_raw_sum = float(df["budget_raw"].sum())
    if budget_raw_sum <= 0:
        df["budget_final"] = 0.0
        df["cac_effective"] = 0.0
    else:
        scale = campaign.budget_total / budget_raw_sum
        df["budget_final"] = df["budget_raw"] * scale
        orders = df["orders_target"]
        df["cac_effective"] = np.where(orders > 0, df["budget_final"] / orders.where(orders > 0, 1.0), 0.0)

    orders_sum = float(df["orders_target"].sum())
    budget_final_sum = float(df["budget_final"].sum())

    log.debug("allocate: %d phases raw_sum=%.2f final_sum=%.2f", len(df), budget_raw_sum, budget_final_sum)

    out = [
        AllocatedPhase(
            id=row.id,
            label=row.label,
            tickets_target=row.tickets_target,
            gmv_target=row.gmv_target,
            ticket_price=float(row.ticket_price),
            orders_target=float(row.orders_target),
            cac_nominal=float(row.cac_nominal),
            budget_raw=float(row.budget_raw),
            budget_final=float(row.budget_final),
            cac_effective=float(row.cac_effective),
        )
        for row in df.itertuples(index=False)
    ]

    return AllocationResult(
        phases=tuple(out),
        gmv_phases_sum=float(df["gmv_target"].sum()),
        tickets_phases_sum=float(df["tickets_target"].sum()),
        orders_phases_sum=orders_sum,
        budget_final_sum=budget_final_sum,
        cac_effective_overall=budget_final_sum / orders_sum if orders_sum > 0 else 0.0,
    )


def price_ticket_phase(params: TicketParams,
                       phase: TicketPhase,
                       cac_table: Mapping[str, float] = TICKET_CAC_BY_INTENSITY) -> PricedTicketPhase:
    """Average ticket price, discount vs base price and a nominal budget for one phase."""
    if phase.spend_intensity not in cac_table:
        raise InvalidInputError(f"Unknown spend intensity {phase.spend_intensity!r}")

    avg_price = phase.expected_gmv / phase.tickets_target if phase.tickets_target > 0 else 0.0
    discount = (1 - avg_price / params.base_ticket_price) * 100 if params.base_ticket_price > 0 else 0.0

    cac = float(cac_table[phase.spend_intensity])
    approx_cac = cac if cac > 0 else None   # organic phases have no CAC
    budget = approx_cac * phase.tickets_target if approx_cac is not None else 0.0

    return PricedTicketPhase(
        id=phase.id,
        label=phase.label,
        days=phase.days,
        tickets_target=phase.tickets_target,
        expected_gmv=phase.expected_gmv,
        avg_ticket_price=avg_price,
        discount_percent=discount,
        approx_cac=approx_cac,
        marketing_budget=budget,
    )
