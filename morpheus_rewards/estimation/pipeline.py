"""Estimated-rewards pipeline: live pool rate + user inputs → display result.

States run ``disabled → loading → ready``.  ``loading`` covers a read in
flight and a snapshot past its refresh interval.  ``ready`` means the pool
reads resolved; the result inside may still be invalid for the current inputs.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from morpheus_rewards.data.interfaces import ContractNotDeployedError
from morpheus_rewards.estimation.pool_feed import PoolFeedSnapshot, PoolRateFeed
from morpheus_rewards.protocol.power_factor import TimeUnit, parse_power_factor
from morpheus_rewards.protocol.rewards import (
    calculate_estimated_rewards,
    get_lock_duration_in_years,
)
from morpheus_rewards.scheduling import PeriodicTask, Sleep

logger = logging.getLogger(__name__)

PLACEHOLDER = "---"
LOADING = "Loading..."
UNAVAILABLE = "Error"


class PipelineState(str, Enum):
    DISABLED = "disabled"
    LOADING = "loading"
    READY = "ready"


@dataclass(frozen=True)
class EstimationInputs:
    deposit_amount: str
    power_factor: str  # "x2.5", or a placeholder while it resolves
    lock_value: str
    lock_unit: str | TimeUnit
    token_decimals: int = 18


@dataclass(frozen=True)
class EstimatedRewardsResult:
    estimated_rewards: str
    state: PipelineState
    is_loading: bool
    is_valid: bool
    error: str | None = None
    debug: dict[str, Any] | None = None


def _ready(error: str, display: str = PLACEHOLDER) -> EstimatedRewardsResult:
    return EstimatedRewardsResult(
        estimated_rewards=display,
        state=PipelineState.READY,
        is_loading=False,
        is_valid=False,
        error=error,
    )


def describe_unavailable(snapshot: PoolFeedSnapshot) -> str:
    """Name the read that kept the pool rate from being derived."""
    emission_error = snapshot.yearly_emission_error
    undistributed_error = snapshot.undistributed_error
    pool_error = snapshot.deposit_pool_error

    if snapshot.chain_id is None:
        return "Chain ID not provided for contract calls"
    if snapshot.network_env is None:
        return "Network environment not specified for RewardPoolV2 lookup"
    if isinstance(emission_error, ContractNotDeployedError):
        return "RewardPoolV2 contract not configured for this network"
    if emission_error is not None:
        return f"RewardPoolV2.getPeriodRewards() failed: {emission_error.cause_text}"
    if isinstance(undistributed_error, ContractNotDeployedError) and isinstance(
        pool_error, ContractNotDeployedError
    ):
        return "DistributorV2 contract address not provided"
    if undistributed_error is not None and pool_error is not None:
        return "Both DistributorV2 contract calls failed - check network connection"
    if undistributed_error is not None:
        return f"DistributorV2.undistributedRewards() failed: {undistributed_error.cause_text}"
    if pool_error is not None:
        return f"DistributorV2.depositPools() failed: {pool_error.cause_text}"
    return "Contract data unavailable - no fallback estimates provided"


def _is_positive_amount(amount: str) -> bool:
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        return False
    return value.is_finite() and value > 0


def evaluate_estimate(
    inputs: EstimationInputs,
    snapshot: PoolFeedSnapshot | None,
    enabled: bool = True,
) -> EstimatedRewardsResult:
    """Decide the estimate for ``inputs`` given the latest pool reads.

    ``snapshot`` is ``None`` while the first read is in flight.
    """
    if not enabled:
        return EstimatedRewardsResult(
            estimated_rewards=PLACEHOLDER,
            state=PipelineState.DISABLED,
            is_loading=False,
            is_valid=False,
            error="Calculation disabled",
        )

    if snapshot is None:
        return EstimatedRewardsResult(
            estimated_rewards=LOADING,
            state=PipelineState.LOADING,
            is_loading=True,
            is_valid=False,
        )

    if snapshot.pool_rate is None:
        return _ready(describe_unavailable(snapshot), display=UNAVAILABLE)

    if not inputs.deposit_amount or not _is_positive_amount(inputs.deposit_amount):
        return _ready("Invalid deposit amount")

    if parse_power_factor(inputs.power_factor) is None:
        return _ready("Power factor not ready")

    years = get_lock_duration_in_years(inputs.lock_value, inputs.lock_unit)
    estimate = calculate_estimated_rewards(
        inputs.deposit_amount,
        snapshot.pool_rate.rate,
        inputs.power_factor,
        years,
        inputs.token_decimals,
    )
    debug = {
        "deposit_amount": inputs.deposit_amount,
        "current_pool_rate": str(snapshot.pool_rate.rate),
        "user_rate": "0",
        "power_factor": inputs.power_factor,
        "lock_duration_years": str(years),
        "base_rewards": str(estimate.base_rewards),
        "final_rewards": str(estimate.final_rewards),
    }
    logger.debug("Estimate for %s: %s", inputs, debug)
    return EstimatedRewardsResult(
        estimated_rewards=(
            f"{estimate.formatted_rewards} MOR" if estimate.is_valid else PLACEHOLDER
        ),
        state=PipelineState.READY,
        is_loading=False,
        is_valid=estimate.is_valid,
        error=estimate.error,
        debug=debug,
    )


def _unexpected(exc: Exception) -> EstimatedRewardsResult:
    return _ready(f"Pool data unavailable: {str(exc)[:100]}", display=UNAVAILABLE)


class EstimationPipeline:
    """Keeps an estimate current as inputs change and pool data refreshes.

    The most recent input always wins: an :meth:`estimate_latest` call
    overtaken by a newer one returns ``None`` instead of its stale result.

    Parameters
    ----------
    feed : PoolRateFeed
        Pool reads; refreshed every ``feed.refresh_interval`` seconds
        while auto-refresh runs.
    enabled : bool
        Initial enabled flag.
    sleep :
        Injectable sleep for the refresh timer.
    """

    def __init__(
        self,
        feed: PoolRateFeed,
        *,
        enabled: bool = True,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._feed = feed
        self._enabled = enabled
        self._sleep = sleep
        self._generation = 0
        self._in_flight = 0
        self._inputs: EstimationInputs | None = None
        self._latest: EstimatedRewardsResult | None = None
        self._auto_refresh: PeriodicTask | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def latest(self) -> EstimatedRewardsResult | None:
        return self._latest

    @property
    def state(self) -> PipelineState:
        if not self._enabled:
            return PipelineState.DISABLED
        if self._in_flight or self._feed.snapshot is None or self._feed.is_stale():
            return PipelineState.LOADING
        return PipelineState.READY

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
        if not enabled:
            self.stop()
            if self._inputs is not None:
                self._latest = evaluate_estimate(self._inputs, None, enabled=False)

    def estimate(self, inputs: EstimationInputs) -> EstimatedRewardsResult:
        """Synchronous estimate; fetches first when the feed is stale."""
        self._inputs = inputs
        if not self._enabled:
            result = evaluate_estimate(inputs, None, enabled=False)
        else:
            try:
                snapshot = self._feed.get()
            except Exception as exc:
                logger.warning("Pool feed failed unexpectedly", exc_info=True)
                result = _unexpected(exc)
            else:
                result = evaluate_estimate(inputs, snapshot)
        self._latest = result
        return result

    async def estimate_latest(self, inputs: EstimationInputs) -> EstimatedRewardsResult | None:
        """Estimate without blocking the loop; ``None`` if superseded meanwhile."""
        self._generation += 1
        generation = self._generation
        self._inputs = inputs

        if not self._enabled:
            result = evaluate_estimate(inputs, None, enabled=False)
            self._latest = result
            return result

        self._in_flight += 1
        try:
            snapshot = (
                await self._feed.fetch_async() if self._feed.is_stale() else self._feed.snapshot
            )
        except Exception as exc:
            logger.warning("Pool feed failed unexpectedly", exc_info=True)
            snapshot, failure = None, _unexpected(exc)
        else:
            failure = None
        finally:
            self._in_flight -= 1

        if generation != self._generation:
            logger.debug("Discarding estimate for superseded inputs %s", inputs)
            return None

        result = failure or evaluate_estimate(inputs, snapshot)
        self._latest = result
        return result

    def invalidate(self) -> None:
        """Refetch pool data on next use (call after approve/stake/withdraw/claim)."""
        self._feed.invalidate()

    def start_auto_refresh(self) -> None:
        if self._auto_refresh is None:
            self._auto_refresh = PeriodicTask(
                self._refresh,
                self._feed.refresh_interval,
                sleep=self._sleep,
                name="pool-rate-refresh",
            )
        self._auto_refresh.start()

    def stop(self) -> None:
        if self._auto_refresh is not None:
            self._auto_refresh.stop()

    async def aclose(self) -> None:
        if self._auto_refresh is not None:
            await self._auto_refresh.aclose()

    async def _refresh(self) -> None:
        if not self._enabled:
            return
        self._in_flight += 1
        try:
            snapshot = await self._feed.fetch_async()
        finally:
            self._in_flight -= 1
        if self._inputs is not None:
            self._latest = evaluate_estimate(self._inputs, snapshot)
