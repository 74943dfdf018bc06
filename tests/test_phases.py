# tests/test_phases.py
import pytest

from raffle_health.errors import InvalidInputError, SnapshotRangeError
from raffle_health.models.domain import CumulativeStats, Issue, PhaseCampaign, PhaseConfig, PhaseSnapshot
from raffle_health.services.phases import (
    campaign_target_cac, create_default_campaign, evaluate_phase_health, plan_phase,
)
from raffle_health.services.recommendations import IssueSet, matched_rules


def _phase(**kw):
    base = dict(id="p1", label="Phase 1", start_day=1, end_day=10,
                target_gmv=10000, target_cac=20, expected_aov=50, budget=1000)
    base.update(kw)
    return PhaseConfig(**base)


def _single_phase_campaign():
    return PhaseCampaign(duration_days=10, target_gmv=10000, total_budget=1000, phases=(_phase(),))


def _run(campaign, gmv, spend, new_users, day=5, phase_id="p1", cumulative=None):
    snap = PhaseSnapshot(phase_id=phase_id, day_in_phase=day, gmv_to_date=gmv,
                         spend_to_date=spend, new_users_to_date=new_users, orders_to_date=new_users)
    cum = cumulative or CumulativeStats(gmv_to_date=gmv, spend_to_date=spend,
                                        new_users_to_date=new_users, orders_to_date=new_users)
    return evaluate_phase_health(campaign, snap, cum)


def test_plan_phase_reference_example():
    plan = plan_phase(_phase(budget=20000, target_cac=18, target_gmv=50000, expected_aov=40))
    assert plan.planned_new_users == 1111
    assert plan.planned_orders == 1250
    assert plan.planned_returning_orders == 139


def test_plan_phase_never_negative_returning():
    plan = plan_phase(_phase(budget=50000, target_cac=10, target_gmv=1000, expected_aov=50))
    assert plan.planned_returning_orders == 0


def test_default_campaign_covers_every_day():
    c = create_default_campaign(20, 100000, 15000)
    assert [p.id for p in c.phases] == ["launch", "mid", "push", "final"]
    assert c.phases[0].start_day == 1
    assert c.phases[-1].end_day == 20
    for a, b in zip(c.phases, c.phases[1:]):
        assert b.start_day == a.end_day + 1
    assert sum(p.target_gmv for p in c.phases) == pytest.approx(100000)
    assert sum(p.budget for p in c.phases) == pytest.approx(15000)
    assert c.phases[0].target_cac == pytest.approx(16.2)


def test_default_campaign_needs_four_days():
    with pytest.raises(InvalidInputError):
        create_default_campaign(3, 1000, 100)


def test_all_clear():
    h = _run(_single_phase_campaign(), gmv=5000, spend=500, new_users=100)
    assert h.phase_status == "GREEN"
    assert h.campaign_status == "GREEN"
    assert h.projected_gmv_phase == 10000
    assert h.notes[0].startswith("Phase and campaign are both on track")
    assert h.notes[-1] == "Phase projected to deliver £10,000 GMV (target: £10,000)."


def test_gmv_red_with_healthy_cac_suggests_aov():
    h = _run(_single_phase_campaign(), gmv=2000, spend=500, new_users=100)
    assert h.phase_status == "RED"
    assert "increasing AOV" in h.notes[0]
    assert "from £50 to £60" in h.notes[1]


def test_gmv_red_with_bad_cac_suggests_cutting_spend():
    h = _run(_single_phase_campaign(), gmv=2000, spend=5000, new_users=100)
    assert h.phase_status == "RED"
    assert "Cut underperforming ad sets" in h.notes[0]
    assert "running at 250% of target" in h.notes[1]
    assert "CAC > £26" in h.notes[1]
    # phase GMV red suppresses the later-phase advice
    assert not any("upcoming phases" in n for n in h.notes)


def test_gmv_red_with_amber_cac_suggests_cutting_spend():
    # CAC 22 vs target 20 is 1.1x: amber, not red
    h = _run(_single_phase_campaign(), gmv=2000, spend=2200, new_users=100)
    assert h.phase_status == "RED"
    assert "Cut underperforming ad sets" in h.notes[0]
    assert "running at 110% of target" in h.notes[1]
    assert not any("increasing AOV" in n for n in h.notes)

    issues = IssueSet(phase=frozenset({Issue.GMV_RED, Issue.CAC_AMBER}), campaign=frozenset())
    assert matched_rules(issues) == ["cut_spend"]


def test_gmv_amber_reports_live_progress():
    h = _run(_single_phase_campaign(), gmv=4500, spend=500, new_users=100)
    assert h.phase_status == "AMBER"
    assert "tracking 90% of target" in h.notes[0]


def test_phase_healthy_campaign_behind():
    c = create_default_campaign(20, 100000, 15000, 40, 18)
    h = _run(c, gmv=20000, spend=3000, new_users=200, day=5, phase_id="launch")
    assert h.phase_status == "GREEN"
    # 80% of campaign GMV, CAC 15 vs implied 8.57
    assert h.campaign_status == "RED"
    assert h.projected_gmv_campaign == 80000
    assert any("£4,000 in GMV" in n for n in h.notes)
    assert any("175% of the implied target" in n for n in h.notes)
    assert any("carrying this momentum" in n for n in h.notes)


def test_campaign_target_cac_rough_estimate():
    c = create_default_campaign(20, 100000, 15000, 40, 18)
    assert campaign_target_cac(c, c.phase("launch")) == pytest.approx(15000 / (100000 / 40 * 0.7))


def test_campaign_projection_uses_days_elapsed():
    c = create_default_campaign(20, 100000, 15000, 40, 18)
    cum = CumulativeStats(gmv_to_date=60000, spend_to_date=9000, new_users_to_date=600)
    h = _run(c, gmv=10000, spend=1500, new_users=100, day=2, phase_id="push", cumulative=cum)
    # push starts on day 11 -> 12 days elapsed
    assert h.projected_gmv_campaign == 100000
    assert h.projected_gmv_phase == 25000


def test_phase_day_zero_and_overflow_raise():
    c = _single_phase_campaign()
    with pytest.raises(SnapshotRangeError):
        _run(c, gmv=0, spend=0, new_users=0, day=0)
    with pytest.raises(SnapshotRangeError):
        _run(c, gmv=0, spend=0, new_users=0, day=11)


def test_unknown_phase_raises():
    with pytest.raises(InvalidInputError):
        _run(_single_phase_campaign(), gmv=0, spend=0, new_users=0, phase_id="nope")


def test_phase_config_rejects_inverted_range():
    with pytest.raises(InvalidInputError):
        _phase(start_day=5, end_day=4)
