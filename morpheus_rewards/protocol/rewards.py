"""Reward projection for a new capital deposit.

The pool rate is a fixed-point integer scaled by ``10**25``: one token unit
deposited earns ``rate / 10**25`` MOR wei per accounting period.  All
arithmetic stays in integers or ``Decimal``; floats appear only in the
display table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

import pandas as pd

from morpheus_rewards.protocol.power_factor import TimeUnit, parse_power_factor
from morpheus_rewards.protocol.units import parse_int_prefix, parse_units, to_decimal

logger = logging.getLogger(__name__)

REWARD_DECIMAL_SCALE = 25
MOR_DECIMALS = 18

# Power factor applied at 3-decimal fixed point
_POWER_FACTOR_SCALE = 1000

_DAYS_PER_JULIAN_YEAR = Decimal("365.25")
_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PoolRateData:
    """Pool accounting snapshot (``poolsData`` shape)."""

    last_update: int
    rate: int  # MOR wei per deposited token unit, scaled by 10**25
    total_virtual_deposited: int


@dataclass(frozen=True)
class UserRateData:
    """Per-user accounting as returned by ``usersData``."""

    last_stake: int
    deposited: int
    rate: int  # pool rate at the user's last interaction
    pending_rewards: int
    claim_lock_start: int
    claim_lock_end: int
    virtual_deposited: int
    last_claim: int
    referrer: str

    @classmethod
    def from_contract(cls, raw: tuple) -> "UserRateData":
        return cls(*(int(v) for v in raw[:8]), referrer=str(raw[8]))


@dataclass(frozen=True)
class RewardEstimate:
    formatted_rewards: str
    base_rewards: int
    final_rewards: int
    is_valid: bool
    error: str | None = None


def _invalid(error: str) -> RewardEstimate:
    return RewardEstimate(
        formatted_rewards="0.00",
        base_rewards=0,
        final_rewards=0,
        is_valid=False,
        error=error,
    )


def calculate_base_rewards(
    deposit_amount: str,
    pool_rate: int,
    user_rate: int = 0,
    token_decimals: int = 18,
) -> int:
    """Rewards accrued by ``deposit_amount`` over the pool rate difference.

    ``deposit_wei * (pool_rate - user_rate) // 10**25``, floored at zero.
    Unparseable amounts yield ``0``.
    """
    try:
        deposit_wei = parse_units(deposit_amount, token_decimals)
    except ValueError:
        logger.debug("Unparseable deposit amount %r", deposit_amount)
        return 0
    rewards = deposit_wei * (int(pool_rate) - int(user_rate)) // 10**REWARD_DECIMAL_SCALE
    return max(rewards, 0)


def apply_power_factor(base_rewards: int, power_factor_string: str) -> int:
    """Multiply by a ``"x2.5"`` factor; unparseable factors leave the base unchanged."""
    factor = parse_power_factor(power_factor_string)
    if factor is None:
        return base_rewards
    scaled = int((factor * _POWER_FACTOR_SCALE).to_integral_value(rounding=ROUND_FLOOR))
    return base_rewards * scaled // _POWER_FACTOR_SCALE


def calculate_estimated_rewards(
    deposit_amount: str,
    pool_rate: int | None,
    power_factor_string: str | None,
    lock_duration_years: Decimal | float | int,
    token_decimals: int = 18,
) -> RewardEstimate:
    """Project MOR rewards for a new deposit held for ``lock_duration_years``.

    Args:
        deposit_amount: Deposit as typed, in whole tokens (``"1.5"``).
        pool_rate: Current pool rate (``10**25`` fixed point); ``None``
            when no rate is available yet.
        power_factor_string: Display multiplier (``"x2.5"``).
        lock_duration_years: Projection horizon.
        token_decimals: Decimals of the deposited asset (8 for wBTC,
            6 for USDC/USDT, 18 otherwise).

    Returns:
        A :class:`RewardEstimate`.  Bad input yields ``is_valid=False``
        with a descriptive error and zero amounts.
    """
    try:
        amount = Decimal(str(deposit_amount).strip())
    except InvalidOperation:
        return _invalid("Invalid deposit amount")
    if not amount.is_finite() or amount <= 0:
        return _invalid("Invalid deposit amount")

    try:
        parse_units(deposit_amount, token_decimals)
    except ValueError:
        return _invalid(f"Deposit amount has more than {token_decimals} decimals")

    if pool_rate is None or pool_rate <= 0:
        return _invalid("Invalid pool rate")

    factor = parse_power_factor(power_factor_string)
    if factor is None:
        return _invalid("Power factor not ready")

    try:
        years = Decimal(str(lock_duration_years))
    except InvalidOperation:
        return _invalid("Invalid lock duration")
    if not years.is_finite() or years <= 0:
        return _invalid("Invalid lock duration")

    base = calculate_base_rewards(deposit_amount, pool_rate, 0, token_decimals)
    boosted = apply_power_factor(base, f"x{factor}")
    with localcontext() as ctx:
        ctx.prec = 80
        projected = int((Decimal(boosted) * years).to_integral_value(rounding=ROUND_FLOOR))

    logger.debug(
        "Estimate: deposit=%s rate=%s factor=%s years=%s base=%d final=%d",
        deposit_amount, pool_rate, factor, years, base, projected,
    )
    return RewardEstimate(
        formatted_rewards=format_rewards_for_display(projected),
        base_rewards=base,
        final_rewards=projected,
        is_valid=True,
    )


def format_rewards_for_display(rewards_wei: int, decimals: int = MOR_DECIMALS) -> str:
    """``"0.00"``, ``"< 0.01"``, ``"12.34"``, ``"1.23K"`` or ``"4.56M"``."""
    try:
        value = to_decimal(rewards_wei, decimals)
        if value <= 0:
            return "0.00"
        if value < _CENTS:
            return "< 0.01"
        if value >= 1_000_000:
            return f"{(value / 1_000_000).quantize(_CENTS, rounding=ROUND_HALF_UP)}M"
        if value >= 1_000:
            return f"{(value / 1_000).quantize(_CENTS, rounding=ROUND_HALF_UP)}K"
        return str(value.quantize(_CENTS, rounding=ROUND_HALF_UP))
    except (ArithmeticError, ValueError, TypeError):
        logger.warning("Could not format rewards %r", rewards_wei, exc_info=True)
        return "0.00"


def get_lock_duration_in_years(value: object, unit: str | TimeUnit) -> Decimal:
    """Lock duration in (Julian) years; ``0`` for invalid input."""
    n = parse_int_prefix(value)
    if n is None or n <= 0:
        return Decimal(0)
    try:
        time_unit = TimeUnit(unit)
    except ValueError:
        return Decimal(0)

    if time_unit is TimeUnit.YEARS:
        return Decimal(n)
    if time_unit is TimeUnit.MONTHS:
        return Decimal(n) / 12
    if time_unit is TimeUnit.DAYS:
        return Decimal(n) / _DAYS_PER_JULIAN_YEAR
    return Decimal(n) / (_DAYS_PER_JULIAN_YEAR * 24 * 60)


def estimate_future_pool_rate(
    current_rate: int,
    projection_years: float,
    annual_growth_rate: float = 0.1,
) -> int:
    """Compound ``current_rate`` forward; the multiplier is floored to 3 decimals."""
    if projection_years <= 0:
        return current_rate
    multiplier = int((1 + annual_growth_rate) ** projection_years * _POWER_FACTOR_SCALE)
    return current_rate * multiplier // _POWER_FACTOR_SCALE


def reward_projection_table(
    deposit_amount: str,
    pool_rate: int | None,
    power_factor_string: str | None,
    max_years: int = 6,
    token_decimals: int = 18,
) -> pd.DataFrame:
    """Projected rewards for each whole year of lock up to ``max_years``.

    Returns:
        DataFrame with columns: years, rewards_mor, formatted
    """
    rows = []
    for years in range(1, max_years + 1):
        estimate = calculate_estimated_rewards(
            deposit_amount, pool_rate, power_factor_string, years, token_decimals
        )
        rows.append(
            {
                "years": years,
                "rewards_mor": float(to_decimal(estimate.final_rewards, MOR_DECIMALS)),
                "formatted": estimate.formatted_rewards,
            }
        )
    return pd.DataFrame(rows, columns=["years", "rewards_mor", "formatted"])
