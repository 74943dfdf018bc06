from typing import Optional, Dict, Any, List, Literal
from pydantic import BaseModel, ConfigDict, Field, conint, confloat

from raffle_health.models.domain import (
    AllocationCampaign,
    AllocationPhase,
    CumulativeStats,
    PhaseCampaign,
    PhaseConfig,
    PhaseSnapshot,
    Snapshot,
    TicketParams,
    TicketPhase,
)
from raffle_health.services.phases import create_default_campaign

Light = Literal["GREEN", "AMBER", "RED"]
CacTableName = Literal["lifecycle", "ticket"]


class CalculateIn(BaseModel):
    # camelCase body kept for the existing calculator UI; every field is
    # optional so missing values become a 400 instead of a 422
    model_config = ConfigDict(populate_by_name=True)

    target_gmv: Optional[float] = Field(None, alias="targetGMV")
    expected_aov_new: Optional[float] = Field(None, alias="expectedAOVNew")
    expected_aov_ret: Optional[float] = Field(None, alias="expectedAOVRet")
    marketing_budget: Optional[float] = Field(None, alias="marketingBudget")
    duration_days: Optional[int] = Field(None, alias="durationDays")
    target_cac: Optional[float] = Field(None, alias="targetCAC")

    def missing_required(self) -> bool:
        return not all([self.target_gmv, self.expected_aov_new, self.marketing_budget, self.duration_days])


class SnapshotIn(BaseModel):
    day_number: conint(ge=0)
    gmv_to_date: confloat(ge=0) = 0
    spend_to_date: confloat(ge=0) = 0
    new_customers_to_date: confloat(ge=0) = 0
    retained_customers_to_date: confloat(ge=0) = 0
    orders_to_date: confloat(ge=0) = 0
    acquisition_spend_to_date: Optional[confloat(ge=0)] = None  # defaults to spend_to_date

    def to_domain(self) -> Snapshot:
        return Snapshot(**self.model_dump())


class PhaseIn(BaseModel):
    id: str = Field(..., min_length=1)
    label: str
    start_day: conint(ge=1)
    end_day: conint(ge=1)
    target_gmv: confloat(ge=0)
    target_cac: confloat(ge=0)
    expected_aov: confloat(ge=0)
    budget: confloat(ge=0)


class CampaignIn(BaseModel):
    duration_days: conint(ge=1)
    target_gmv: confloat(ge=0)
    total_budget: confloat(ge=0)
    # empty -> four-phase default split
    phases: List[PhaseIn] = []
    default_aov: confloat(gt=0) = 40
    default_cac: confloat(gt=0) = 18

    def to_domain(self) -> PhaseCampaign:
        if not self.phases:
            return create_default_campaign(self.duration_days, self.target_gmv, self.total_budget,
                                           self.default_aov, self.default_cac)
        return PhaseCampaign(
            duration_days=self.duration_days,
            target_gmv=self.target_gmv,
            total_budget=self.total_budget,
            phases=tuple(PhaseConfig(**p.model_dump()) for p in self.phases),
        )


class PhaseSnapshotIn(BaseModel):
    phase_id: str
    day_in_phase: conint(ge=0)
    gmv_to_date: confloat(ge=0) = 0
    spend_to_date: confloat(ge=0) = 0
    new_users_to_date: confloat(ge=0) = 0
    returning_users_to_date: confloat(ge=0) = 0
    orders_to_date: confloat(ge=0) = 0


class CumulativeIn(BaseModel):
    gmv_to_date: confloat(ge=0) = 0
    spend_to_date: confloat(ge=0) = 0
    new_users_to_date: confloat(ge=0) = 0
    orders_to_date: confloat(ge=0) = 0


class PhaseHealthIn(BaseModel):
    campaign: CampaignIn
    snapshot: PhaseSnapshotIn
    # omitted -> the phase snapshot doubles as the cumulative view
    cumulative: Optional[CumulativeIn] = None

    def to_domain(self):
        snap = PhaseSnapshot(**self.snapshot.model_dump())
        if self.cumulative is not None:
            cum = CumulativeStats(**self.cumulative.model_dump())
        else:
            cum = CumulativeStats(
                gmv_to_date=snap.gmv_to_date,
                spend_to_date=snap.spend_to_date,
                new_users_to_date=snap.new_users_to_date,
                orders_to_date=snap.orders_to_date,
            )
        return self.campaign.to_domain(), snap, cum


class PhaseHealthOut(BaseModel):
    phase_id: str
    phase_status: Light
    campaign_status: Light
    projected_gmv_phase: int
    projected_gmv_campaign: int
    notes: List[str]


class AllocationCampaignIn(BaseModel):
    gmv_total: float
    aov_total: float
    budget_total: float
    cac_target: float = 0
    duration_days: int = 0


class AllocationPhaseIn(BaseModel):
    id: str
    label: str
    tickets_target: confloat(ge=0) = 0
    gmv_target: confloat(ge=0) = 0
    level: str = "medium"


class AllocateIn(BaseModel):
    campaign: AllocationCampaignIn
    phases: List[AllocationPhaseIn]
    table: CacTableName = "lifecycle"

    def to_domain(self):
        return (
            AllocationCampaign(**self.campaign.model_dump()),
            [AllocationPhase(**p.model_dump()) for p in self.phases],
        )


class TicketPhaseIn(BaseModel):
    id: str
    label: str
    days: conint(ge=0) = 0
    tickets_target: confloat(ge=0) = 0
    expected_gmv: confloat(ge=0) = 0
    spend_intensity: Literal["none", "low", "normal", "high"] = "normal"


class TicketPricingIn(BaseModel):
    total_tickets: confloat(ge=0)
    base_ticket_price: confloat(ge=0)
    expected_aov: confloat(ge=0)
    phases: List[TicketPhaseIn]

    def to_domain(self):
        params = TicketParams(
            total_tickets=self.total_tickets,
            base_ticket_price=self.base_ticket_price,
            expected_aov=self.expected_aov,
        )
        return params, [TicketPhase(**p.model_dump()) for p in self.phases]


class RaffleHealthOut(BaseModel):
    raffle_id: str
    config: Dict[str, Any]
    forecast: Dict[str, Any]
    health: Dict[str, Any]
