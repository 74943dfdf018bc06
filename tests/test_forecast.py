# tests/test_forecast.py
import pytest

from raffle_health.config import DEFAULT_BASELINES
from raffle_health.errors import InvalidInputError
from raffle_health.services.forecast import (
    CalculatorInput, calculate_raffle_needs, compute_duration_days, forecast_raffle, retention_rate_for,
)
from conftest import make_config


def test_duration_is_inclusive():
    assert compute_duration_days("2025-12-01", "2025-12-20") == 20
    assert compute_duration_days("2025-12-01", "2025-12-01") == 1


def test_duration_rejects_mixed_timezones():
    with pytest.raises(InvalidInputError, match="Cannot compare dates"):
        compute_duration_days("2025-12-01", "2025-12-20T00:00:00+00:00")


def test_forecast_baseline_numbers(config):
    f = forecast_raffle(config)
    assert f.duration_days == 20
    assert f.target_cac_new == pytest.approx(18.0)
    assert f.expected_new_customers == pytest.approx(625.0)
    assert f.gmv_new_window == pytest.approx(25000.0)
    assert f.expected_retained_customers == pytest.approx(400.0)
    assert f.gmv_retention_window == pytest.approx(14000.0)
    assert f.gmv_total_forecast == pytest.approx(39000.0)


def test_forecast_is_deterministic(config):
    assert forecast_raffle(config) == forecast_raffle(config)


def test_explicit_duration_and_cac_override():
    cfg = make_config(start_date=None, end_date=None, duration=10, target_cac_override=25)
    f = forecast_raffle(cfg)
    assert f.duration_days == 10
    assert f.target_cac_new == 25
    assert f.expected_new_customers == pytest.approx(11250 / 25)
    # half window: 0.04 CRR, 17.5 GMV per retained user
    assert f.expected_retained_customers == pytest.approx(200.0)
    assert f.gmv_retention_window == pytest.approx(200 * 17.5)


def test_retention_rate_never_exceeds_cap():
    for crr in (0.01, 0.08, 0.3, 0.9):
        for days in (1, 20, 60, 175, 365, 10000):
            assert retention_rate_for(crr, days) <= 0.70
    cfg = make_config(start_date=None, end_date=None, duration=400, baseline_crr_20d=0.1)
    assert forecast_raffle(cfg).expected_retained_customers == pytest.approx(5000 * 0.70)


def test_zero_cac_yields_no_new_customers():
    cfg = make_config(target_ltv_to_cac=0)
    f = forecast_raffle(cfg)
    assert f.target_cac_new == 0
    assert f.expected_new_customers == 0
    assert f.gmv_new_window == 0


def test_config_rejects_bad_split_and_duration():
    with pytest.raises(InvalidInputError):
        make_config(budget_split_new=1.5)
    with pytest.raises(InvalidInputError):
        make_config(start_date="2025-12-20", end_date="2025-12-01")
    with pytest.raises(InvalidInputError):
        make_config(marketing_budget_total=-1)


def _calc(**kw):
    base = dict(target_gmv=100000, expected_aov_new=40, marketing_budget=15000,
                duration_days=20, target_cac=18, **DEFAULT_BASELINES)
    base.update(kw)
    return calculate_raffle_needs(CalculatorInput(**base))


def test_calculator_reference_example():
    out = _calc()
    assert out["budgetForNew"] == 11250
    assert out["budgetForRetention"] == 3750
    assert out["targetCACNew"] == 18.0
    assert out["gmvFromNew"] == 25000
    assert out["gmvFromReturning"] == 14000
    assert out["projectedGMV"] == 39000
    assert out["gmvGap"] == 61000
    # 625 + 61000*0.7/40
    assert abs(out["newUsersNeeded"] - 1692.5) <= 0.5
    assert len(out["quarterlyData"]) == 4
    assert out["quarterlyData"][-1]["day"] == 20
    assert out["quarterlyData"][0]["quarter"] == "Q1"


def test_calculator_recommendations_when_short():
    recs = _calc()["recommendations"]
    assert recs[0].startswith("You're projected to be £61,000 short")
    assert "£12,200" in recs[1]
    assert recs[-1] == "Duration looks good for retention window"


def test_calculator_over_target():
    recs = _calc(target_gmv=20000)["recommendations"]
    assert "exceed your target by £19,000" in recs[0]


def test_calculator_uses_ltv_ratio_without_cac():
    out = _calc(target_cac=None)
    assert out["targetCACNew"] == 18.0


def test_calculator_duration_advice():
    assert _calc(duration_days=10)["recommendations"][-1].startswith("14-21 days")
    assert _calc(duration_days=40)["recommendations"][-1].startswith("Consider splitting")
