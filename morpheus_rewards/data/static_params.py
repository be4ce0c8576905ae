"""Static capital data provider with a fixed, representative snapshot."""

from morpheus_rewards.data.interfaces import CapitalDataProvider
from morpheus_rewards.protocol.editions import (
    DAYS_PER_MONTH,
    MULTIPLIER_SCALE,
    REWARDS_DIVIDER,
    SECONDS_PER_DAY,
    PowerFactorEdition,
    default_edition,
)
from morpheus_rewards.protocol.pool_rate import DepositPoolInfo
from morpheus_rewards.protocol.power_factor import estimate_power_factor

_WEI = 10**18

# --- Snapshot values (MOR / stETH wei) ---

_DAILY_EMISSION = 3_456 * _WEI
_UNDISTRIBUTED_REWARDS = 50_000 * _WEI
_TOTAL_DEPOSITED = 40_000 * _WEI
_STETH_PRICE = 3_000 * _WEI


class StaticCapitalProvider(CapitalDataProvider):
    """Deterministic provider for offline use and tests.

    Period rewards accrue linearly at a constant daily emission; every
    deposit pool reports the same deposited total; multipliers follow the
    client-side power factor estimate.
    """

    def __init__(
        self,
        daily_emission: int = _DAILY_EMISSION,
        undistributed_rewards: int = _UNDISTRIBUTED_REWARDS,
        total_deposited: int = _TOTAL_DEPOSITED,
        edition: PowerFactorEdition | None = None,
    ) -> None:
        self._daily_emission = daily_emission
        self._undistributed_rewards = undistributed_rewards
        self._total_deposited = total_deposited
        self._edition = edition or default_edition()

    def get_period_rewards(self, reward_pool_index: int, start: int, end: int) -> int:
        if end <= start:
            return 0
        return self._daily_emission * (end - start) // SECONDS_PER_DAY

    def get_undistributed_rewards(self) -> int:
        return self._undistributed_rewards

    def get_deposit_pool(self, reward_pool_index: int, deposit_pool: str) -> DepositPoolInfo:
        return DepositPoolInfo(
            token=deposit_pool,
            chain_link_path="",
            token_price=_STETH_PRICE,
            deposited=self._total_deposited,
            last_underlying_balance=self._total_deposited,
            strategy=0,
            a_token="",
            is_exist=True,
        )

    def get_total_deposited(self, deposit_pool: str) -> int:
        return self._total_deposited

    def get_claim_lock_period_multiplier(
        self, pool_id: int, lock_start: int, lock_end: int
    ) -> int:
        months = max(lock_end - lock_start, 0) / (DAYS_PER_MONTH * SECONDS_PER_DAY)
        factor = estimate_power_factor(months, edition=self._edition)
        # Round to 4 decimals before scaling so the raw value stays exact
        return round(factor * REWARDS_DIVIDER) * 10**MULTIPLIER_SCALE
