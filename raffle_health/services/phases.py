# raffle_health/services/phases.py
from __future__ import annotations

import logging
from typing import List, Optional

from raffle_health.config import CAMPAIGN_CAC_ORDER_SHARE
from raffle_health.errors import InvalidInputError
from raffle_health.models.domain import (
    DEFAULT_THRESHOLDS,
    CumulativeStats,
    EvaluationThresholds,
    Issue,
    PhaseCampaign,
    PhaseConfig,
    PhaseHealth,
    PhasePlan,
    PhaseSnapshot,
    TrafficLight,
    worst,
)
from raffle_health.services.health import projection_multiplier, status_from_overrun, status_from_progress
from raffle_health.services.recommendations import PhaseMetrics, generate_recommendations
from raffle_health.utils.math import div_or_zero, round_half_up

log = logging.getLogger("raffle.phases")


def plan_phase(phase: PhaseConfig) -> PhasePlan:
    """
    Expected users/orders for one phase, independent of time.
      - planned_new_users      = budget / target_cac
      - planned_orders         = target_gmv / expected_aov
      - planned_returning      = max(0, orders - new users)  (new users place ~1 order each)
    """
    planned_new = div_or_zero(phase.budget, phase.target_cac)
    planned_orders = div_or_zero(phase.target_gmv, phase.expected_aov)
    planned_returning = max(0.0, planned_orders - planned_new)

    return PhasePlan(
        phase_id=phase.id,
        label=phase.label,
        planned_new_users=round_half_up(planned_new),
        planned_orders=round_half_up(planned_orders),
        planned_returning_orders=round_half_up(planned_returning),
        budget=phase.budget,
        target_gmv=phase.target_gmv,
        target_cac=phase.target_cac,
        expected_aov=phase.expected_aov,
    )


def plan_campaign(campaign: PhaseCampaign) -> List[PhasePlan]:
    return [plan_phase(p) for p in campaign.phases]


def _progress_issue(progress: float, green: float, amber: float,
                    red_tag: Issue, amber_tag: Issue) -> Optional[Issue]:
    light = status_from_progress(progress, green, amber)
    return {"RED": red_tag, "AMBER": amber_tag}.get(light)


def _overrun_issue(actual: float, target: float, green_over: float, amber_over: float,
                   red_tag: Issue, amber_tag: Issue) -> Optional[Issue]:
    light = status_from_overrun(actual, target, green_over, amber_over)
    return {"RED": red_tag, "AMBER": amber_tag}.get(light)


def _status_of(issues: List[Issue]) -> TrafficLight:
    return worst([i.light for i in issues])


def campaign_target_cac(campaign: PhaseCampaign, phase: PhaseConfig) -> float:
    """
    Rough campaign-level CAC target: budget over 70% of the orders implied by
    the campaign GMV at this phase's AOV.
    """
    implied_orders = div_or_zero(campaign.target_gmv, phase.expected_aov) * CAMPAIGN_CAC_ORDER_SHARE
    return div_or_zero(campaign.total_budget, implied_orders)


def evaluate_phase_health(campaign: PhaseCampaign,
                          snapshot: PhaseSnapshot,
                          cumulative: CumulativeStats,
                          thresholds: EvaluationThresholds = DEFAULT_THRESHOLDS) -> PhaseHealth:
    """
    Health of one phase and of the campaign as a whole.

    The phase snapshot is projected to the end of its phase; the cumulative
    stats (all phases so far) are projected to the end of the campaign.
    """
    phase = campaign.phase(snapshot.phase_id)

    factor = projection_multiplier(snapshot.day_in_phase, phase.length_days)
    gmv_phase_projected = snapshot.gmv_to_date * factor

    gmv_phase_progress = div_or_zero(gmv_phase_projected, phase.target_gmv)
    actual_cac_phase = snapshot.spend_to_date / max(snapshot.new_users_to_date, 1)
    cac_ratio = div_or_zero(actual_cac_phase, phase.target_cac)

    phase_issues = [i for i in (
        _progress_issue(gmv_phase_progress, thresholds.gmv_green, thresholds.gmv_amber,
                        Issue.GMV_RED, Issue.GMV_AMBER),
        _overrun_issue(actual_cac_phase, phase.target_cac,
                       thresholds.cac_green_over_target, thresholds.cac_amber_over_target,
                       Issue.CAC_RED, Issue.CAC_AMBER),
    ) if i is not None]

    days_elapsed = phase.start_day - 1 + snapshot.day_in_phase
    campaign_factor = projection_multiplier(days_elapsed, campaign.duration_days)
    gmv_campaign_projected = cumulative.gmv_to_date * campaign_factor

    gmv_campaign_progress = div_or_zero(gmv_campaign_projected, campaign.target_gmv)
    actual_cac_campaign = cumulative.spend_to_date / max(cumulative.new_users_to_date, 1)
    target_cac = campaign_target_cac(campaign, phase)
    campaign_cac_ratio = div_or_zero(actual_cac_campaign, target_cac)

    campaign_issues = [i for i in (
        _progress_issue(gmv_campaign_progress, thresholds.gmv_green, thresholds.gmv_amber,
                        Issue.CAMPAIGN_GMV_RED, Issue.CAMPAIGN_GMV_AMBER),
        _overrun_issue(actual_cac_campaign, target_cac,
                       thresholds.cac_green_over_target, thresholds.cac_amber_over_target,
                       Issue.CAMPAIGN_CAC_RED, Issue.CAMPAIGN_CAC_AMBER),
    ) if i is not None]

    notes = generate_recommendations(
        phase_issues,
        campaign_issues,
        PhaseMetrics(
            gmv_phase_progress=gmv_phase_progress,
            cac_ratio=cac_ratio,
            gmv_campaign_progress=gmv_campaign_progress,
            campaign_cac_ratio=campaign_cac_ratio,
            gmv_phase_projected=gmv_phase_projected,
            phase=phase,
        ),
    )

    log.debug("phase %s day %s: issues=%s campaign_issues=%s",
              phase.id, snapshot.day_in_phase, [i.value for i in phase_issues], [i.value for i in campaign_issues])

    return PhaseHealth(
        phase_id=phase.id,
        phase_status=_status_of(phase_issues),
        campaign_status=_status_of(campaign_issues),
        projected_gmv_phase=round_half_up(gmv_phase_projected),
        projected_gmv_campaign=round_half_up(gmv_campaign_projected),
        notes=tuple(notes),
    )


def create_default_campaign(duration_days: int,
                            target_gmv: float,
                            total_budget: float,
                            default_aov: float = 40,
                            default_cac: float = 18) -> PhaseCampaign:
    """Four-phase launch/mid/push/final split of a campaign."""
    if duration_days < 4:
        raise InvalidInputError("A four-phase campaign needs at least 4 days")
    n = duration_days // 4
    # (id, label, gmv/budget share, cac mult, aov mult)
    split = [
        ("launch", "Phase 1 – Launch",     0.20, 0.90, 1.00),
        ("mid",    "Phase 2 – Mid",        0.25, 1.00, 1.05),
        ("push",   "Phase 3 – Push",       0.30, 1.10, 1.10),
        ("final",  "Phase 4 – Final 48h",  0.25, 1.15, 1.15),
    ]
    phases = []
    for i, (pid, label, share, cac_mult, aov_mult) in enumerate(split):
        start = n * i + 1
        end = duration_days if pid == "final" else n * (i + 1)
        phases.append(PhaseConfig(
            id=pid,
            label=label,
            start_day=start,
            end_day=end,
            target_gmv=target_gmv * share,
            target_cac=default_cac * cac_mult,
            expected_aov=default_aov * aov_mult,
            budget=total_budget * share,
        ))
    return PhaseCampaign(
        duration_days=duration_days,
        target_gmv=target_gmv,
        total_budget=total_budget,
        phases=tuple(phases),
    )
