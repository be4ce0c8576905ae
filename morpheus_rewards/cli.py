"""Command-line entry point.

Subcommands:
  morpheus-rewards power-factor 2 years [--onchain] [--edition v1]
  morpheus-rewards estimate 10 2 years --rate 1234... [--power-factor x3.2] [--table]
  morpheus-rewards curve [--points 13]
  morpheus-rewards emissions [--network testnet]

Reads only; nothing here signs or sends a transaction.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from morpheus_rewards.config import Settings, configure_logging, load_settings
from morpheus_rewards.data.emissions import DailyEmissionsService
from morpheus_rewards.data.interfaces import ContractReadError
from morpheus_rewards.data.networks import NETWORK_ENVIRONMENTS
from morpheus_rewards.data.provider_factory import create_provider
from morpheus_rewards.estimation.power_factor_service import PowerFactorService
from morpheus_rewards.protocol.editions import EDITIONS, get_edition
from morpheus_rewards.protocol.power_factor import (
    TimeUnit,
    calculate_power_factor_from_duration,
    duration_to_seconds,
    format_unlock_date,
    power_factor_curve,
)
from morpheus_rewards.protocol.rewards import (
    calculate_estimated_rewards,
    get_lock_duration_in_years,
    reward_projection_table,
)

logger = logging.getLogger("morpheus_rewards.cli")

_UNITS = [u.value for u in TimeUnit]


def _cmd_power_factor(args: argparse.Namespace, settings: Settings) -> int:
    edition = get_edition(args.edition) if args.edition else settings.edition
    provider = None
    if args.onchain:
        provider = create_provider(
            use_onchain=True,
            rpc_url=settings.rpc_urls.get(args.chain_id) if args.chain_id else None,
            network_env=settings.network_env,
            cache_ttl=settings.cache_ttl_seconds,
            chain_id=args.chain_id,
        )
    service = PowerFactorService(provider, edition=edition)
    result = service.resolve(args.value, args.unit)

    print(f"Edition:        {edition.name} (max x{edition.max_power_factor})")
    print(f"Power factor:   {result.power_factor}")
    print(f"Valid:          {result.is_valid}")
    if result.error:
        print(f"Error:          {result.error}")
    if result.warning:
        print(f"Warning:        {result.warning}")
    if result.unlock_date is not None:
        print(f"Unlocks:        {format_unlock_date(result.unlock_date)}")
    print(f"Lock seconds:   {duration_to_seconds(args.value, args.unit, edition=edition)}")
    return 0 if result.is_valid else 1


def _cmd_estimate(args: argparse.Namespace, settings: Settings) -> int:
    power_factor = args.power_factor or calculate_power_factor_from_duration(
        args.value, args.unit, edition=settings.edition
    )
    years = get_lock_duration_in_years(args.value, args.unit)
    estimate = calculate_estimated_rewards(
        args.amount, args.rate, power_factor, years, args.decimals
    )
    if not estimate.is_valid:
        print(f"Invalid estimate: {estimate.error}", file=sys.stderr)
        return 1

    print(f"Power factor:   {power_factor}")
    print(f"Lock (years):   {years:.4f}")
    print(f"Estimated:      {estimate.formatted_rewards} MOR")
    if args.table:
        table = reward_projection_table(
            args.amount, args.rate, power_factor,
            max_years=settings.edition.max_lock_years, token_decimals=args.decimals,
        )
        print()
        print(table.to_string(index=False))
    return 0


def _cmd_curve(args: argparse.Namespace, settings: Settings) -> int:
    curve = power_factor_curve(args.points, edition=settings.edition)
    print(curve.to_string(index=False, float_format=lambda v: f"{v:.2f}"))
    return 0


def _cmd_emissions(args: argparse.Namespace, settings: Settings) -> int:
    def _provider_for_env(env: str):
        return create_provider(
            use_onchain=not args.static,
            network_env=env,
            cache_ttl=settings.cache_ttl_seconds,
        )

    service = DailyEmissionsService(_provider_for_env)
    try:
        result = service.get_daily_emissions(args.network or settings.network_env)
    except ContractReadError as exc:
        print(f"Could not read emissions: {exc}", file=sys.stderr)
        return 1
    print(f"{result.network_env}: {result.daily_emissions:.4f} MOR / day")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="morpheus-rewards",
        description="Morpheus Capital power factor and reward estimates",
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_pf = sub.add_parser("power-factor", help="validate a lock and show its power factor")
    ap_pf.add_argument("value", help="lock duration value, e.g. 6")
    ap_pf.add_argument("unit", choices=_UNITS)
    ap_pf.add_argument("--edition", choices=sorted(EDITIONS), help="override the configured edition")
    ap_pf.add_argument("--onchain", action="store_true", help="read the multiplier from the contract")
    ap_pf.add_argument("--chain-id", type=int, default=None, help="chain for --onchain reads")
    ap_pf.set_defaults(func=_cmd_power_factor)

    ap_e = sub.add_parser("estimate", help="project rewards for a deposit")
    ap_e.add_argument("amount", help="deposit amount in tokens, e.g. 10.5")
    ap_e.add_argument("value", help="lock duration value")
    ap_e.add_argument("unit", choices=_UNITS)
    ap_e.add_argument("--rate", type=int, required=True, help="pool rate (1e25 fixed point)")
    ap_e.add_argument("--power-factor", default=None, help="e.g. x3.2; defaults to the client estimate")
    ap_e.add_argument("--decimals", type=int, default=18, help="deposit token decimals")
    ap_e.add_argument("--table", action="store_true", help="also print the per-year projection")
    ap_e.set_defaults(func=_cmd_estimate)

    ap_c = sub.add_parser("curve", help="print the client-side power factor curve")
    ap_c.add_argument("--points", type=int, default=13)
    ap_c.set_defaults(func=_cmd_curve)

    ap_m = sub.add_parser("emissions", help="MOR emitted by the capital pool in the last 24h")
    ap_m.add_argument("--network", choices=NETWORK_ENVIRONMENTS, default=None)
    ap_m.add_argument("--static", action="store_true", help="use the offline snapshot")
    ap_m.set_defaults(func=_cmd_emissions)

    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.debug("Running %s on %s", args.cmd, settings.network_env)
    return args.func(args, settings)


if __name__ == "__main__":
    sys.exit(main())
