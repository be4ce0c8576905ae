"""Live pool-rate feed: the three contract reads behind a reward estimate."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

from morpheus_rewards.config import Settings
from morpheus_rewards.data.contracts import CAPITAL_REWARD_POOL_INDEX
from morpheus_rewards.data.interfaces import CapitalDataProvider, ContractReadError
from morpheus_rewards.data.networks import get_l1_chain
from morpheus_rewards.protocol.editions import DAYS_PER_YEAR, SECONDS_PER_DAY
from morpheus_rewards.protocol.pool_rate import DepositPoolInfo, derive_pool_rate
from morpheus_rewards.protocol.rewards import PoolRateData

logger = logging.getLogger(__name__)

ONE_YEAR_SECONDS = DAYS_PER_YEAR * SECONDS_PER_DAY


@dataclass(frozen=True)
class PoolFeedSnapshot:
    """Outcome of one round of reads.  Each read keeps its own error."""

    yearly_emission: int | None
    yearly_emission_error: ContractReadError | None
    undistributed_rewards: int | None
    undistributed_error: ContractReadError | None
    deposit_pool: DepositPoolInfo | None
    deposit_pool_error: ContractReadError | None
    pool_rate: PoolRateData | None
    chain_id: int | None
    network_env: str | None
    fetched_at: float  # feed clock


class PoolRateFeed:
    """Reads emission, undistributed rewards and deposit pool state.

    Reads are repeated only when the last snapshot is older than
    ``refresh_interval`` or :meth:`invalidate` was called (after an
    approve, stake, withdraw or claim).

    Parameters
    ----------
    provider : CapitalDataProvider
        Contract read source.
    deposit_pool : str
        Address of the asset's deposit pool.
    chain_id, network_env :
        Where the reads go; ``None`` when the caller has not resolved them.
    refresh_interval : float
        Seconds after which a snapshot is stale (default 30).
    clock : Callable[[], float]
        Monotonic clock for staleness.
    wall_clock : Callable[[], float]
        Unix time for the contract arguments.
    """

    def __init__(
        self,
        provider: CapitalDataProvider,
        deposit_pool: str,
        *,
        chain_id: int | None = None,
        network_env: str | None = None,
        reward_pool_index: int = CAPITAL_REWARD_POOL_INDEX,
        refresh_interval: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider = provider
        self._deposit_pool = deposit_pool
        self._chain_id = chain_id
        self._network_env = network_env
        self._reward_pool_index = reward_pool_index
        self._refresh_interval = refresh_interval
        self._clock = clock
        self._wall_clock = wall_clock
        self._snapshot: PoolFeedSnapshot | None = None
        self._invalidated = False

    @classmethod
    def from_settings(
        cls,
        provider: CapitalDataProvider,
        deposit_pool: str,
        settings: Settings,
        *,
        chain_id: int | None = None,
        **kwargs,
    ) -> "PoolRateFeed":
        """Feed on the configured network, refreshed every ``pool_refresh_seconds``.

        ``chain_id`` defaults to the environment's L1, where the capital
        pool contracts live.
        """
        if chain_id is None:
            chain_id = get_l1_chain(settings.network_env).chain_id
        return cls(
            provider,
            deposit_pool,
            chain_id=chain_id,
            network_env=settings.network_env,
            refresh_interval=settings.pool_refresh_seconds,
            **kwargs,
        )

    @property
    def snapshot(self) -> PoolFeedSnapshot | None:
        return self._snapshot

    @property
    def refresh_interval(self) -> float:
        return self._refresh_interval

    def is_stale(self, now: float | None = None) -> bool:
        if self._snapshot is None or self._invalidated:
            return True
        now = self._clock() if now is None else now
        return now - self._snapshot.fetched_at >= self._refresh_interval

    def invalidate(self) -> None:
        """Request a refetch on the next :meth:`get`."""
        self._invalidated = True

    def get(self) -> PoolFeedSnapshot:
        """Current snapshot, fetching first if stale."""
        if self.is_stale() or self._snapshot is None:
            return self.fetch()
        return self._snapshot

    def fetch(self) -> PoolFeedSnapshot:
        """Run the three reads.  A refetch bypasses the provider's read cache."""
        if self._snapshot is not None or self._invalidated:
            self._provider.refresh()
        now = int(self._wall_clock())
        index = self._reward_pool_index

        yearly, yearly_error = self._capture(
            lambda: self._provider.get_period_rewards(index, now, now + ONE_YEAR_SECONDS)
        )
        undistributed, undistributed_error = self._capture(self._provider.get_undistributed_rewards)
        pool, pool_error = self._capture(
            lambda: self._provider.get_deposit_pool(index, self._deposit_pool)
        )

        snapshot = PoolFeedSnapshot(
            yearly_emission=yearly,
            yearly_emission_error=yearly_error,
            undistributed_rewards=undistributed,
            undistributed_error=undistributed_error,
            deposit_pool=pool,
            deposit_pool_error=pool_error,
            pool_rate=derive_pool_rate(yearly, undistributed, pool, now),
            chain_id=self._chain_id,
            network_env=self._network_env,
            fetched_at=self._clock(),
        )
        self._snapshot = snapshot
        self._invalidated = False
        logger.info(
            "Pool feed refreshed: rate=%s (emission %s, undistributed %s, deposit pool %s)",
            snapshot.pool_rate.rate if snapshot.pool_rate else None,
            "ok" if yearly_error is None else "failed",
            "ok" if undistributed_error is None else "failed",
            "ok" if pool_error is None else "failed",
        )
        return snapshot

    async def fetch_async(self) -> PoolFeedSnapshot:
        return await asyncio.to_thread(self.fetch)

    @staticmethod
    def _capture(read: Callable[[], object]) -> tuple:
        try:
            return read(), None
        except ContractReadError as exc:
            return None, exc
