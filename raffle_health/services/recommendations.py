# raffle_health/services/recommendations.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Tuple

from raffle_health.config import CURRENCY
from raffle_health.models.domain import Issue, PhaseConfig
from raffle_health.utils.math import money, pct, round_half_up


@dataclass(frozen=True)
class PhaseMetrics:
    gmv_phase_progress: float
    cac_ratio: float
    gmv_campaign_progress: float
    campaign_cac_ratio: float
    gmv_phase_projected: float
    phase: PhaseConfig


@dataclass(frozen=True)
class IssueSet:
    phase: FrozenSet[Issue]
    campaign: FrozenSet[Issue]

    @property
    def gmv_red(self) -> bool:
        return Issue.GMV_RED in self.phase

    @property
    def gmv_amber(self) -> bool:
        return Issue.GMV_AMBER in self.phase

    @property
    def cac_flagged(self) -> bool:
        return bool({Issue.CAC_RED, Issue.CAC_AMBER} & self.phase)


Rule = Tuple[str, Callable[[IssueSet], bool], Callable[[PhaseMetrics], List[str]]]


def _raise_aov(m: PhaseMetrics) -> List[str]:
    target_aov = m.phase.expected_aov * 1.2
    return [
        "Phase GMV is low but CAC is healthy. Focus on increasing AOV: bundle higher-value ticket tiers, "
        "offer combo deals, or promote premium entries.",
        f"Consider boosting AOV from {CURRENCY}{m.phase.expected_aov:g} to {money(target_aov)} to close the gap.",
    ]


def _cut_spend(m: PhaseMetrics) -> List[str]:
    return [
        "Phase GMV and CAC both underperforming. Cut underperforming ad sets, refine targeting, "
        "and adjust bids to improve efficiency.",
        f"Phase CAC is running at {pct(m.cac_ratio)} of target. "
        f"Review campaign performance: pause ads with CAC > {money(m.phase.target_cac * 1.3)} "
        "and reallocate budget to top performers.",
    ]


def _monitor(m: PhaseMetrics) -> List[str]:
    return [
        f"Phase GMV tracking {pct(m.gmv_phase_progress)} of target. "
        "Monitor closely and consider small AOV or spend optimizations."
    ]


def _raise_later_targets(m: PhaseMetrics) -> List[str]:
    shortfall = m.phase.target_gmv * (1 - m.gmv_campaign_progress)
    notes = [
        "Phase performance is acceptable, but overall campaign is off track. "
        "Consider increasing targets or budgets for upcoming phases.",
        f"Allocate an additional {money(shortfall)} in GMV across remaining phases to hit campaign target.",
    ]
    if m.campaign_cac_ratio > 1:
        notes.append(f"Campaign CAC is running at {pct(m.campaign_cac_ratio)} of the implied target.")
    return notes


def _all_clear(m: PhaseMetrics) -> List[str]:
    return ["Phase and campaign are both on track! Maintain current strategy and monitor daily performance."]


def _carry_momentum(m: PhaseMetrics) -> List[str]:
    return ["Current phase is performing well. Focus on carrying this momentum into later phases."]


# Evaluated top to bottom. Rules sharing a group are mutually exclusive:
# only the first match in a group fires.
DECISION_TABLE: Tuple[Tuple[str, Rule], ...] = (
    ("phase", ("raise_aov",
               lambda s: s.gmv_red and not s.cac_flagged, _raise_aov)),
    ("phase", ("cut_spend",
               lambda s: s.gmv_red and s.cac_flagged, _cut_spend)),
    ("phase", ("monitor",
               lambda s: s.gmv_amber, _monitor)),
    ("campaign", ("raise_later_targets",
                  lambda s: bool(s.campaign) and not s.gmv_red, _raise_later_targets)),
    ("feedback", ("all_clear",
                  lambda s: not s.phase and not s.campaign, _all_clear)),
    ("feedback", ("carry_momentum",
                  lambda s: not s.phase and bool(s.campaign), _carry_momentum)),
)


def matched_rules(issues: IssueSet) -> List[str]:
    fired: List[str] = []
    seen_groups = set()
    for group, (name, when, _) in DECISION_TABLE:
        if group in seen_groups:
            continue
        if when(issues):
            fired.append(name)
            seen_groups.add(group)
    return fired


def generate_recommendations(phase_issues, campaign_issues, metrics: PhaseMetrics) -> List[str]:
    """
    Recommendation notes for a phase evaluation, keyed on the combination of
    detected issues. Always ends with a projected-vs-target summary line.
    """
    issues = IssueSet(phase=frozenset(phase_issues), campaign=frozenset(campaign_issues))
    by_name = {name: build for _, (name, _, build) in DECISION_TABLE}

    notes: List[str] = []
    for name in matched_rules(issues):
        notes.extend(by_name[name](metrics))

    notes.append(
        f"Phase projected to deliver {money(metrics.gmv_phase_projected)} GMV "
        f"(target: {CURRENCY}{round_half_up(metrics.phase.target_gmv):,})."
    )
    return notes
