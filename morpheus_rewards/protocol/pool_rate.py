"""Derive the reward rate and APR from raw distributor / reward pool reads."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from morpheus_rewards.protocol.rewards import REWARD_DECIMAL_SCALE, PoolRateData

logger = logging.getLogger(__name__)

SECONDS_PER_YEAR = 365 * 24 * 3600

_RATE_SCALE = 10**REWARD_DECIMAL_SCALE


@dataclass(frozen=True)
class DepositPoolInfo:
    """One entry of ``DistributorV2.depositPools(rewardPoolIndex, depositPool)``."""

    token: str
    chain_link_path: str
    token_price: int
    deposited: int  # total deposited, token smallest units
    last_underlying_balance: int
    strategy: int
    a_token: str
    is_exist: bool

    @classmethod
    def from_contract(cls, raw: tuple | list) -> "DepositPoolInfo":
        """Parse the raw struct; raises ``ValueError`` on a malformed shape."""
        if len(raw) < 8:
            raise ValueError(f"depositPools returned {len(raw)} fields, expected 8")
        return cls(
            token=str(raw[0]),
            chain_link_path=str(raw[1]),
            token_price=int(raw[2]),
            deposited=int(raw[3]),
            last_underlying_balance=int(raw[4]),
            strategy=int(raw[5]),
            a_token=str(raw[6]),
            is_exist=bool(raw[7]),
        )


def derive_pool_rate(
    yearly_emission: int | None,
    undistributed_rewards: int | None,
    deposit_pool: DepositPoolInfo | None,
    now: int,
) -> PoolRateData | None:
    """Rate for a deposit pool from the emission curve, else undistributed rewards.

    ``rate = yearly_emission * 10**25 // deposited``.  When the emission
    read is unavailable, ``undistributed_rewards`` stands in for it.
    Returns ``None`` when neither source is usable; no rate is invented.
    """
    deposited = deposit_pool.deposited if deposit_pool is not None else 0
    if deposited <= 0:
        logger.debug("No deposits in pool; cannot derive a rate")
        return None

    if yearly_emission:
        rate = int(yearly_emission) * _RATE_SCALE // deposited
        logger.debug("Pool rate from emission curve: %d", rate)
    elif undistributed_rewards and undistributed_rewards > 0:
        rate = int(undistributed_rewards) * _RATE_SCALE // deposited
        logger.debug("Pool rate from undistributed rewards: %d", rate)
    else:
        return None

    return PoolRateData(last_update=int(now), rate=rate, total_virtual_deposited=deposited)


def calculate_pool_apr(
    period_rewards: int,
    total_deposited: int,
    period_seconds: int,
    pool_count: int = 2,
) -> str:
    """Annualised reward rate of one pool as a percentage string.

    ``period_rewards`` is split evenly over ``pool_count`` pools and the
    per-token reward over ``period_seconds`` is scaled to a year.  Both
    amounts must share the same decimals.

    Returns:
        ``"12.34%"``, ``"1,234%"`` above 1000%, or ``"N/A"`` when any
        input is zero.
    """
    if period_rewards <= 0 or total_deposited <= 0 or period_seconds <= 0 or pool_count <= 0:
        return "N/A"

    share = Decimal(int(period_rewards) // pool_count)
    annual = share / Decimal(int(total_deposited)) * SECONDS_PER_YEAR / period_seconds * 100
    if annual > 1000:
        return f"{int(annual.quantize(Decimal(1), rounding=ROUND_HALF_UP)):,}%"
    return f"{annual.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}%"
