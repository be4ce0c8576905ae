"""Resolve the power factor for a lock duration, from the contract or the client estimate."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from morpheus_rewards.data.interfaces import CapitalDataProvider, ContractReadError
from morpheus_rewards.protocol.editions import PowerFactorEdition, default_edition
from morpheus_rewards.protocol.power_factor import (
    FALLBACK_POWER_FACTOR,
    TimeUnit,
    calculate_power_factor_from_duration,
    calculate_unlock_date,
    duration_to_seconds,
    format_power_factor,
    validate_lock_duration,
    will_activate_power_factor,
)

logger = logging.getLogger(__name__)

LOADING_POWER_FACTOR = "Loading..."


@dataclass(frozen=True)
class PowerFactorResult:
    power_factor: str
    is_valid: bool
    is_loading: bool = False
    error: str | None = None
    warning: str | None = None
    unlock_date: datetime | None = None
    will_activate: bool = False
    lock_start: int | None = None  # unix seconds; contract mode only
    lock_end: int | None = None

    @classmethod
    def loading(cls) -> "PowerFactorResult":
        return cls(power_factor=LOADING_POWER_FACTOR, is_valid=True, is_loading=True)


class PowerFactorService:
    """Power factor for the lock period a user is typing.

    With a provider the multiplier comes from
    ``getClaimLockPeriodMultiplier(pool_id, now, now + duration)``;
    without one the client-side estimate is used.

    Parameters
    ----------
    provider : CapitalDataProvider | None
        Source of contract multipliers; ``None`` selects client mode.
    pool_id : int
        Reward pool index passed to the contract.
    edition : PowerFactorEdition | None
        Protocol edition; defaults to the configured one.
    clock : Callable[[], float]
        Wall-clock source for the lock start (unix seconds).
    """

    def __init__(
        self,
        provider: CapitalDataProvider | None = None,
        pool_id: int = 0,
        *,
        edition: PowerFactorEdition | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider = provider
        self._pool_id = pool_id
        self._edition = edition or default_edition()
        self._clock = clock

    @property
    def uses_contract(self) -> bool:
        return self._provider is not None

    @property
    def edition(self) -> PowerFactorEdition:
        return self._edition

    def resolve(
        self,
        value: object,
        unit: str | TimeUnit,
        now: float | None = None,
    ) -> PowerFactorResult:
        if value is None or not str(value).strip():
            return PowerFactorResult(power_factor=FALLBACK_POWER_FACTOR, is_valid=True)

        validation = validate_lock_duration(value, unit, edition=self._edition)
        if not validation.is_valid:
            return PowerFactorResult(
                power_factor=FALLBACK_POWER_FACTOR,
                is_valid=False,
                error=validation.error_message,
            )

        start = int(self._clock() if now is None else now)
        common = dict(
            is_valid=True,
            warning=validation.warning_message,
            unlock_date=calculate_unlock_date(
                value, unit, datetime.fromtimestamp(start), edition=self._edition
            ),
            will_activate=will_activate_power_factor(value, unit, edition=self._edition),
        )

        if self._provider is None:
            return PowerFactorResult(
                power_factor=calculate_power_factor_from_duration(value, unit, edition=self._edition),
                **common,
            )

        end = start + duration_to_seconds(value, unit, edition=self._edition)
        try:
            raw = self._provider.get_claim_lock_period_multiplier(self._pool_id, start, end)
        except ContractReadError as exc:
            logger.warning("Power factor read failed: %s", exc)
            return PowerFactorResult(
                power_factor=FALLBACK_POWER_FACTOR,
                error="Failed to calculate power factor",
                lock_start=start,
                lock_end=end,
                **common,
            )

        logger.debug("Raw multiplier %d for lock %d..%d", raw, start, end)
        return PowerFactorResult(
            power_factor=format_power_factor(raw, edition=self._edition),
            lock_start=start,
            lock_end=end,
            **common,
        )

    async def resolve_async(
        self,
        value: object,
        unit: str | TimeUnit,
        now: float | None = None,
    ) -> PowerFactorResult:
        """:meth:`resolve` off the event loop (the contract read blocks)."""
        return await asyncio.to_thread(self.resolve, value, unit, now)
