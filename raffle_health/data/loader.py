# raffle_health/data/loader.py

import hashlib
import logging
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from raffle_health.config import CONFIG_PATH
from raffle_health.errors import ConfigError
from raffle_health.models.domain import EvaluationThresholds, RaffleConfig

log = logging.getLogger("raffle.config")

# In-memory cache
_MODEL: Optional["LoadedModel"] = None
_CHECKSUM: Optional[str] = None
_LOADED_AT: Optional[float] = None
_PATH: Optional[Path] = None


@dataclass(frozen=True)
class LoadedModel:
    raffles: Dict[str, RaffleConfig]
    thresholds: EvaluationThresholds


def _checksum(txt: str) -> str:
    return hashlib.sha256(txt.encode("utf-8")).hexdigest()[:12]


def _child(node: ET.Element, tag: str, where: str) -> ET.Element:
    found = node.find(tag)
    if found is None:
        raise ConfigError(f"Invalid XML: missing <{tag}> in {where}")
    return found


def _num(node: ET.Element, attr: str, where: str) -> float:
    raw = node.get(attr)
    if raw is None or not raw.strip():
        raise ConfigError(f"Invalid XML: missing {attr} on <{node.tag}> in {where}")
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid XML: {attr}={raw!r} on <{node.tag}> in {where} is not a number") from e


def _opt_num(node: ET.Element, attr: str, where: str) -> Optional[float]:
    if node.get(attr) is None:
        return None
    return _num(node, attr, where)


def _thresholds(node: ET.Element) -> EvaluationThresholds:
    gmv = _child(node, "gmv", "thresholds")
    ret = _child(node, "retentionProgress", "thresholds")
    cac = _child(node, "cacOverTarget", "thresholds")
    cpa = _child(node, "cpaOverTarget", "thresholds")
    return EvaluationThresholds(
        gmv_green=_num(gmv, "green", "thresholds"),
        gmv_amber=_num(gmv, "amber", "thresholds"),
        retention_green=_num(ret, "green", "thresholds"),
        retention_amber=_num(ret, "amber", "thresholds"),
        cac_green_over_target=_num(cac, "green", "thresholds"),
        cac_amber_over_target=_num(cac, "amber", "thresholds"),
        cpa_green_over_target=_num(cpa, "green", "thresholds"),
        cpa_amber_over_target=_num(cpa, "amber", "thresholds"),
    )


def parse_model(xml_text: str) -> LoadedModel:
    """Parse a <raffleHealthModel> document into raffle configs and thresholds."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise ConfigError(f"Invalid XML: {e}") from e

    if root.tag != "raffleHealthModel":
        raise ConfigError("Invalid XML: missing <raffleHealthModel>")

    baselines = root.find("baselines")
    thresholds_node = root.find("thresholds")
    raffle_nodes = root.findall("raffles/raffle")
    if baselines is None or thresholds_node is None or not raffle_nodes:
        raise ConfigError("Invalid XML: missing baselines/thresholds/raffles")

    new_base = _child(baselines, "newCustomers", "baselines")
    ret_base = _child(baselines, "retention", "baselines")
    base_fields: Dict[str, Any] = {
        "baseline_ltv_new": _num(new_base, "ltv", "baselines"),
        "target_ltv_to_cac": _num(new_base, "targetLtvToCac", "baselines"),
        "baseline_cpa_new": _opt_num(new_base, "cpaNew", "baselines"),
        "baseline_crr_20d": _num(ret_base, "crr20d", "baselines"),
        "baseline_gmv_per_retained_user_20d": _num(ret_base, "gmvPerRetainedUser20d", "baselines"),
        "base_existing_customers": _num(ret_base, "baseExistingCustomers", "baselines"),
    }

    raffles: Dict[str, RaffleConfig] = {}
    for r in raffle_nodes:
        rid = r.get("id")
        if not rid:
            raise ConfigError("Invalid XML: <raffle> without id")
        where = f"raffle {rid}"
        meta = _child(r, "meta", where)
        targets = _child(r, "targets", where)
        budget = _child(r, "budget", where)
        try:
            cfg = RaffleConfig(
                id=rid,
                name=meta.get("name", rid),
                start_date=meta.get("startDate"),
                end_date=meta.get("endDate"),
                target_gmv=_num(targets, "targetGmv", where),
                average_ticket_price=_num(targets, "averageTicketPrice", where),
                expected_aov_new=_num(targets, "expectedAovNew", where),
                expected_aov_ret=_num(targets, "expectedAovRet", where),
                marketing_budget_total=_num(budget, "total", where),
                budget_split_new=_num(budget, "newSplit", where),
                budget_split_ret=_num(budget, "retSplit", where),
                **base_fields,
            )
        except ConfigError:
            raise
        except ValueError as e:
            # InvalidInputError from the model, or a bad ISO date
            raise ConfigError(f"Invalid XML: {where}: {e}") from e
        if rid in raffles:
            log.warning("Duplicate raffle id %s; keeping the last definition", rid)
        raffles[rid] = cfg

    return LoadedModel(raffles=raffles, thresholds=_thresholds(thresholds_node))


def load_model_from_xml(path: Union[str, Path]) -> LoadedModel:
    global _CHECKSUM, _LOADED_AT, _PATH
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Missing raffle config file: {p}")
    txt = p.read_text(encoding="utf-8-sig")
    model = parse_model(txt)
    _CHECKSUM = _checksum(txt)
    _LOADED_AT = time.time()
    _PATH = p
    log.info("Loaded %d raffle(s) from %s", len(model.raffles), p)
    return model


def init_model(path: Union[str, Path] = CONFIG_PATH) -> LoadedModel:
    """Load the default configuration into the module cache."""
    global _MODEL
    _MODEL = load_model_from_xml(path)
    return _MODEL


def get_model() -> LoadedModel:
    """Return the cached model, loading it on first use."""
    if _MODEL is None:
        return init_model()
    return _MODEL


def config_meta() -> Dict[str, Any]:
    """Meta info for the /meta endpoint."""
    return {
        "checksum": _CHECKSUM,
        "loaded_at": _LOADED_AT,
        "path": str(_PATH) if _PATH else None,
        "raffles": sorted(_MODEL.raffles) if _MODEL else [],
    }
