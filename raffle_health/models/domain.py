# raffle_health/models/domain.py
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from raffle_health.config import DEFAULT_THRESHOLDS_RAW
from raffle_health.errors import InvalidInputError

TrafficLight = Literal["GREEN", "AMBER", "RED"]

# Higher = worse. Used for "worst of" roll-ups.
SEVERITY: Dict[str, int] = {"GREEN": 0, "AMBER": 1, "RED": 2}

DateLike = Union[str, date, datetime]

_SECONDS_PER_DAY = 24 * 60 * 60


def _to_datetime(d: DateLike) -> datetime:
    if isinstance(d, datetime):
        return d
    if isinstance(d, date):
        return datetime(d.year, d.month, d.day)
    return datetime.fromisoformat(str(d).strip())


def compute_duration_days(start: DateLike, end: DateLike) -> int:
    """Inclusive day count between two calendar dates."""
    try:
        diff = (_to_datetime(end) - _to_datetime(start)).total_seconds()
    except TypeError as e:
        # aware vs naive timestamps
        raise InvalidInputError(f"Cannot compare dates {start!r} and {end!r}: {e}") from e
    return math.floor(diff / _SECONDS_PER_DAY) + 1


def _require_non_negative(obj: Any, names: Tuple[str, ...]) -> None:
    for name in names:
        v = getattr(obj, name)
        if v is None:
            continue
        if not math.isfinite(v) or v < 0:
            raise InvalidInputError(f"{name} must be a non-negative number, got {v!r}")


def _require_fraction(obj: Any, names: Tuple[str, ...]) -> None:
    for name in names:
        v = getattr(obj, name)
        if not (0.0 <= v <= 1.0):
            raise InvalidInputError(f"{name} must be within [0, 1], got {v!r}")


class Issue(Enum):
    """Issue tags detected during phase evaluation."""
    GMV_RED = "gmv_red"
    GMV_AMBER = "gmv_amber"
    CAC_RED = "cac_red"
    CAC_AMBER = "cac_amber"
    CAMPAIGN_GMV_RED = "campaign_gmv_red"
    CAMPAIGN_GMV_AMBER = "campaign_gmv_amber"
    CAMPAIGN_CAC_RED = "campaign_cac_red"
    CAMPAIGN_CAC_AMBER = "campaign_cac_amber"

    @property
    def light(self) -> TrafficLight:
        return "RED" if self.value.endswith("_red") else "AMBER"


@dataclass(frozen=True)
class EvaluationThresholds:
    gmv_green: float
    gmv_amber: float
    retention_green: float
    retention_amber: float
    cac_green_over_target: float
    cac_amber_over_target: float
    cpa_green_over_target: float
    cpa_amber_over_target: float


DEFAULT_THRESHOLDS = EvaluationThresholds(**DEFAULT_THRESHOLDS_RAW)


@dataclass(frozen=True)
class RaffleConfig:
    """
    One raffle campaign plus the historical baselines it is forecast from.

    Either start_date/end_date or duration_days must be supplied; an explicit
    duration wins. target_cac_override, when set, replaces the LTV-derived CAC.
    """
    id: str
    name: str
    target_gmv: float
    marketing_budget_total: float
    budget_split_new: float
    budget_split_ret: float
    baseline_ltv_new: float
    target_ltv_to_cac: float
    baseline_crr_20d: float
    baseline_gmv_per_retained_user_20d: float
    base_existing_customers: float
    expected_aov_new: float
    expected_aov_ret: float
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    duration: Optional[int] = None
    average_ticket_price: float = 0.0
    baseline_cpa_new: Optional[float] = None
    target_cac_override: Optional[float] = None

    def __post_init__(self):
        _require_fraction(self, ("budget_split_new", "budget_split_ret"))
        _require_non_negative(self, (
            "target_gmv", "marketing_budget_total", "baseline_ltv_new", "target_ltv_to_cac",
            "baseline_crr_20d", "baseline_gmv_per_retained_user_20d", "base_existing_customers",
            "expected_aov_new", "expected_aov_ret", "average_ticket_price",
            "baseline_cpa_new", "target_cac_override",
        ))
        if self.duration is None and (self.start_date is None or self.end_date is None):
            raise InvalidInputError(f"Raffle {self.id}: need start/end dates or an explicit duration")
        if self.duration_days < 1:
            raise InvalidInputError(f"Raffle {self.id}: duration must be a positive number of days")

    @property
    def duration_days(self) -> int:
        if self.duration is not None:
            return int(self.duration)
        return compute_duration_days(self.start_date, self.end_date)

    @property
    def target_cac_new(self) -> float:
        if self.target_cac_override is not None:
            return float(self.target_cac_override)
        if self.target_ltv_to_cac <= 0:
            return 0.0
        return self.baseline_ltv_new / self.target_ltv_to_cac

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["duration_days"] = self.duration_days
        return d


@dataclass(frozen=True)
class Forecast:
    duration_days: int
    target_cac_new: float
    expected_new_customers: float
    expected_retained_customers: float
    gmv_new_window: float
    gmv_retention_window: float
    gmv_total_forecast: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Snapshot:
    day_number: int
    gmv_to_date: float = 0.0
    spend_to_date: float = 0.0
    new_customers_to_date: float = 0.0
    retained_customers_to_date: float = 0.0
    orders_to_date: float = 0.0
    acquisition_spend_to_date: Optional[float] = None

    @property
    def acquisition_spend(self) -> float:
        if self.acquisition_spend_to_date is None:
            return self.spend_to_date
        return self.acquisition_spend_to_date


@dataclass(frozen=True)
class HealthStatus:
    day_number: int
    gmv_projected: float
    gmv_progress: float
    spend_projected: float
    spend_utilisation: float
    new_customers_projected: float
    new_user_progress: float
    retained_customers_projected: float
    retained_progress: float
    actual_cpa: Optional[float]
    actual_cac_new: Optional[float]
    gmv_status: TrafficLight
    cpa_status: TrafficLight
    cac_status: TrafficLight
    retention_status: TrafficLight
    overall_status: TrafficLight
    notes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["notes"] = list(self.notes)
        return d


@dataclass(frozen=True)
class PhaseConfig:
    id: str
    label: str
    start_day: int
    end_day: int
    target_gmv: float
    target_cac: float
    expected_aov: float
    budget: float

    def __post_init__(self):
        if self.start_day < 1 or self.start_day > self.end_day:
            raise InvalidInputError(
                f"Phase {self.id}: need 1 <= start_day <= end_day, got {self.start_day}..{self.end_day}"
            )
        _require_non_negative(self, ("target_gmv", "target_cac", "expected_aov", "budget"))

    @property
    def length_days(self) -> int:
        return self.end_day - self.start_day + 1


@dataclass(frozen=True)
class PhaseCampaign:
    duration_days: int
    target_gmv: float
    total_budget: float
    phases: Tuple[PhaseConfig, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.duration_days < 1:
            raise InvalidInputError("Campaign duration must be a positive number of days")
        # accept any sequence, store a tuple
        object.__setattr__(self, "phases", tuple(self.phases))

    def phase(self, phase_id: str) -> PhaseConfig:
        for p in self.phases:
            if p.id == phase_id:
                return p
        raise InvalidInputError(f"Phase {phase_id} not found in campaign")


@dataclass(frozen=True)
class PhasePlan:
    phase_id: str
    label: str
    planned_new_users: int
    planned_orders: int
    planned_returning_orders: int
    budget: float
    target_gmv: float
    target_cac: float
    expected_aov: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PhaseSnapshot:
    phase_id: str
    day_in_phase: int
    gmv_to_date: float = 0.0
    spend_to_date: float = 0.0
    new_users_to_date: float = 0.0
    returning_users_to_date: float = 0.0
    orders_to_date: float = 0.0


@dataclass(frozen=True)
class CumulativeStats:
    """Totals across every phase so far, including the current one."""
    gmv_to_date: float = 0.0
    spend_to_date: float = 0.0
    new_users_to_date: float = 0.0
    orders_to_date: float = 0.0


@dataclass(frozen=True)
class PhaseHealth:
    phase_id: str
    phase_status: TrafficLight
    campaign_status: TrafficLight
    projected_gmv_phase: int
    projected_gmv_campaign: int
    notes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["notes"] = list(self.notes)
        return d


@dataclass(frozen=True)
class AllocationCampaign:
    gmv_total: float
    aov_total: float
    budget_total: float
    cac_target: float = 0.0
    duration_days: int = 0


@dataclass(frozen=True)
class AllocationPhase:
    id: str
    label: str
    tickets_target: float
    gmv_target: float
    level: str   # spend intensity key into a CAC table


@dataclass(frozen=True)
class AllocatedPhase:
    id: str
    label: str
    tickets_target: float
    gmv_target: float
    ticket_price: float
    orders_target: float
    cac_nominal: float
    budget_raw: float
    budget_final: float
    cac_effective: float


@dataclass(frozen=True)
class AllocationResult:
    phases: Tuple[AllocatedPhase, ...]
    gmv_phases_sum: float
    tickets_phases_sum: float
    orders_phases_sum: float
    budget_final_sum: float
    cac_effective_overall: float

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["phases"] = [asdict(p) for p in self.phases]
        return d


@dataclass(frozen=True)
class TicketParams:
    total_tickets: float
    base_ticket_price: float
    expected_aov: float


@dataclass(frozen=True)
class TicketPhase:
    id: str
    label: str
    days: int
    tickets_target: float
    expected_gmv: float
    spend_intensity: str


@dataclass(frozen=True)
class PricedTicketPhase:
    id: str
    label: str
    days: int
    tickets_target: float
    expected_gmv: float
    avg_ticket_price: float
    discount_percent: float
    approx_cac: Optional[float]
    marketing_budget: float


def worst(lights: List[TrafficLight]) -> TrafficLight:
    if not lights:
        return "GREEN"
    return max(lights, key=lambda s: SEVERITY[s])
