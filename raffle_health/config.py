# raffle_health/config.py
import os
from pathlib import Path
from types import MappingProxyType

from dotenv import load_dotenv

load_dotenv()

# Paths
PACKAGE_ROOT = Path(__file__).resolve().parent          # .../raffle_health
DATA_DIR = PACKAGE_ROOT / "data"
CONFIG_PATH = Path(os.getenv("RAFFLE_CONFIG_PATH", str(DATA_DIR / "raffle_health_config.xml"))).expanduser()

# App
APP_TITLE = "Raffle Health API"
APP_VERSION = "0.3.0"

ALLOW_ORIGINS = [o.strip() for o in os.getenv("RAFFLE_ALLOW_ORIGINS", "*").split(",") if o.strip()]

# Forecast constants
RETENTION_WINDOW_DAYS = 20      # baselines are measured over a 20-day window
CRR_CAP = 0.70                  # retention never extrapolates past 70%
ORDERS_PER_NEW_CUSTOMER = 1     # ~1 order per new customer over the window

# Needs calculator: split of a GMV shortfall between new and returning users
GAP_SHARE_NEW = 0.7
GAP_SHARE_RETURNING = 0.3
AOV_RET_UPLIFT = 1.05           # default returning AOV when none is supplied

# Rough order share used for the campaign-level implied CAC
CAMPAIGN_CAC_ORDER_SHARE = 0.7

DEFAULT_THRESHOLDS_RAW = {
    "gmv_green": 0.95,
    "gmv_amber": 0.8,
    "retention_green": 0.95,
    "retention_amber": 0.8,
    "cac_green_over_target": 1.0,
    "cac_amber_over_target": 1.2,
    "cpa_green_over_target": 1.0,
    "cpa_amber_over_target": 1.2,
}

# Baselines applied by the calculator when the caller sends none
DEFAULT_BASELINES = MappingProxyType({
    "baseline_ltv_new": 45.0,
    "target_ltv_to_cac": 2.5,
    "baseline_crr_20d": 0.08,
    "baseline_gmv_per_retained_user_20d": 35.0,
    "base_existing_customers": 5000.0,
    "budget_split_new": 0.75,
})

# Nominal CAC by spend intensity.
# Lifecycle planner table (launch/mid/push/final phases).
LIFECYCLE_CAC_BY_LEVEL = MappingProxyType({
    "none":   0.0,
    "low":    10.0,
    "medium": 15.0,
    "high":   20.0,
})

# Ticket planner table; "high" is priced at 25 here, not 20.
TICKET_CAC_BY_INTENSITY = MappingProxyType({
    "none":   0.0,
    "low":    10.0,
    "normal": 15.0,
    "high":   25.0,
})

CAC_TABLES = MappingProxyType({
    "lifecycle": LIFECYCLE_CAC_BY_LEVEL,
    "ticket": TICKET_CAC_BY_INTENSITY,
})

CURRENCY = "£"
