"""Power factor protocol constants and the editions they belong to."""

from __future__ import annotations

import os
from dataclasses import dataclass

# Contract returns multipliers scaled by 10^21, then by REWARDS_DIVIDER
MULTIPLIER_SCALE = 21
REWARDS_DIVIDER = 10_000

SECONDS_PER_MINUTE = 60
SECONDS_PER_DAY = 86_400

# Protocol (not calendar) unit lengths used for contract arguments
DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 365

# 6 * 365 days; the contract's own value for the maximum lock
SIX_YEAR_LOCK_SECONDS = 189_216_000

# Exponential-approach growth constant for the client-side estimate
POWER_FACTOR_GROWTH_K = 2.5


@dataclass(frozen=True)
class PowerFactorEdition:
    """Constants of one deployed version of the lock-multiplier math.

    Attributes:
        name: Edition identifier (``"v1"``, ``"v2"``).
        max_power_factor: Largest multiplier the contract can return.
        max_lock_years: Longest accepted lock period.
        min_activation_months: Locks shorter than this keep a 1.0x multiplier.
        safety_buffer_seconds: Added to every contract-facing duration to
            absorb block time / submission latency.
        supports_minutes: Whether the ``minutes`` unit is accepted.
        min_deposit_lock_days: Shortest lock the deposit form suggests.
    """

    name: str
    max_power_factor: float
    max_lock_years: int
    min_activation_months: int
    safety_buffer_seconds: int
    supports_minutes: bool
    min_deposit_lock_days: int


EDITION_V1 = PowerFactorEdition(
    name="v1",
    max_power_factor=9.7,
    max_lock_years=6,
    min_activation_months=6,
    safety_buffer_seconds=0,
    supports_minutes=False,
    min_deposit_lock_days=1,
)

EDITION_V2 = PowerFactorEdition(
    name="v2",
    max_power_factor=10.7,
    max_lock_years=6,
    min_activation_months=6,
    safety_buffer_seconds=300,
    supports_minutes=True,
    min_deposit_lock_days=7,
)

EDITIONS: dict[str, PowerFactorEdition] = {
    EDITION_V1.name: EDITION_V1,
    EDITION_V2.name: EDITION_V2,
}


def get_edition(name: str) -> PowerFactorEdition:
    """Look up an edition by name (case-insensitive)."""
    edition = EDITIONS.get(name.strip().lower())
    if edition is None:
        raise ValueError(f"Unknown power factor edition: {name}")
    return edition


def default_edition() -> PowerFactorEdition:
    """Edition selected by ``MORPHEUS_POWER_FACTOR_EDITION`` (default v2)."""
    return get_edition(os.environ.get("MORPHEUS_POWER_FACTOR_EDITION") or EDITION_V2.name)
