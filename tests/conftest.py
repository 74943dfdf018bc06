import pytest

from raffle_health.models.domain import RaffleConfig


def make_config(**overrides) -> RaffleConfig:
    base = dict(
        id="XMAS25", name="Christmas Mega Raffle",
        start_date="2025-12-01", end_date="2025-12-20",
        target_gmv=100000, marketing_budget_total=15000,
        budget_split_new=0.75, budget_split_ret=0.25,
        baseline_ltv_new=45, target_ltv_to_cac=2.5,
        baseline_crr_20d=0.08, baseline_gmv_per_retained_user_20d=35,
        base_existing_customers=5000,
        expected_aov_new=40, expected_aov_ret=42,
    )
    base.update(overrides)
    return RaffleConfig(**base)


@pytest.fixture
def config() -> RaffleConfig:
    return make_config()
