"""
check-raffle: evaluate a live raffle snapshot against its forecast.

Usage:
    check-raffle <raffleId> <day> <gmv> <spend> <newUsers> <retUsers> <orders> [acquisitionSpend]

Prints {raffleId, config, forecast, health} as JSON. Exits 1 when the raffle
id is missing or unknown, or the snapshot day is out of range.
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from raffle_health.config import CONFIG_PATH
from raffle_health.data.loader import load_model_from_xml
from raffle_health.errors import ConfigError, InvalidInputError
from raffle_health.models.domain import Snapshot
from raffle_health.services.forecast import forecast_raffle
from raffle_health.services.health import evaluate_health, health_summary

log = logging.getLogger("raffle.cli")

USAGE = ("Usage: check-raffle <raffleId> <day> <gmv> <spend> <newUsers> <retUsers> <orders> "
         "[acquisitionSpend]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="check-raffle", description="Raffle health check", usage=USAGE)
    parser.add_argument("raffle_id", nargs="?")
    parser.add_argument("day", nargs="?", type=int, default=1)
    parser.add_argument("gmv", nargs="?", type=float, default=0.0)
    parser.add_argument("spend", nargs="?", type=float, default=0.0)
    parser.add_argument("new_users", nargs="?", type=float, default=0.0)
    parser.add_argument("ret_users", nargs="?", type=float, default=0.0)
    parser.add_argument("orders", nargs="?", type=float, default=0.0)
    parser.add_argument("acquisition_spend", nargs="?", type=float, default=None)
    parser.add_argument("--config", default=str(CONFIG_PATH), help="raffle health XML config")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.raffle_id:
        print(USAGE, file=sys.stderr)
        return 1

    try:
        model = load_model_from_xml(args.config)
    except (FileNotFoundError, ConfigError) as e:
        print(str(e), file=sys.stderr)
        return 1

    cfg = model.raffles.get(args.raffle_id)
    if cfg is None:
        print(f"Raffle {args.raffle_id} not found in XML", file=sys.stderr)
        return 1

    snapshot = Snapshot(
        day_number=args.day,
        gmv_to_date=args.gmv,
        spend_to_date=args.spend,
        new_customers_to_date=args.new_users,
        retained_customers_to_date=args.ret_users,
        orders_to_date=args.orders,
        acquisition_spend_to_date=args.acquisition_spend,
    )

    forecast = forecast_raffle(cfg)
    try:
        health = evaluate_health(cfg, forecast, snapshot, model.thresholds)
    except InvalidInputError as e:
        print(str(e), file=sys.stderr)
        return 1

    log.info("checked %s: %s", cfg.id, health_summary(health))
    print(json.dumps(
        {
            "raffleId": args.raffle_id,
            "config": cfg.to_dict(),
            "forecast": forecast.to_dict(),
            "health": health.to_dict(),
        },
        indent=2,
    ))
    return 0


if __name__ == "__main__":
    sys.exit(main())
