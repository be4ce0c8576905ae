"""Daily MOR emission of the capital reward pool, cached per network environment."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable

from morpheus_rewards.data.cache import TTLCache
from morpheus_rewards.data.contracts import CAPITAL_REWARD_POOL_INDEX
from morpheus_rewards.data.interfaces import CapitalDataProvider
from morpheus_rewards.data.networks import MAINNET, NETWORK_ENVIRONMENTS
from morpheus_rewards.protocol.editions import SECONDS_PER_DAY
from morpheus_rewards.protocol.rewards import MOR_DECIMALS
from morpheus_rewards.protocol.units import to_decimal

logger = logging.getLogger(__name__)

EMISSIONS_CACHE_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class DailyEmissions:
    daily_emissions: Decimal  # MOR
    network_env: str
    cached: bool
    timestamp: float  # when the value was read (unix seconds)
    expires_at: float


class DailyEmissionsService:
    """MOR emitted by the capital reward pool over the last 24 hours.

    Each network environment's value is read once and then served from
    cache for 24 hours.  Read failures propagate as
    :class:`~morpheus_rewards.data.interfaces.ContractReadError`.
    """

    def __init__(
        self,
        provider_for_env: Callable[[str], CapitalDataProvider],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider_for_env = provider_for_env
        self._clock = clock
        self._cache = TTLCache(EMISSIONS_CACHE_SECONDS, clock=clock)

    def get_daily_emissions(self, network_env: str = MAINNET) -> DailyEmissions:
        if network_env not in NETWORK_ENVIRONMENTS:
            network_env = MAINNET

        cached = self._cache.get(network_env)
        if cached is not None:
            logger.debug("Daily emissions cache hit for %s", network_env)
            return replace(cached, cached=True)

        now = self._clock()
        end = int(now)
        provider = self._provider_for_env(network_env)
        raw = provider.get_period_rewards(CAPITAL_REWARD_POOL_INDEX, end - SECONDS_PER_DAY, end)

        result = DailyEmissions(
            daily_emissions=to_decimal(raw, MOR_DECIMALS),
            network_env=network_env,
            cached=False,
            timestamp=now,
            expires_at=now + EMISSIONS_CACHE_SECONDS,
        )
        self._cache.set(network_env, result, now=now)
        logger.info("Daily emissions for %s: %s MOR", network_env, result.daily_emissions)
        return result

    def clear(self) -> None:
        self._cache.clear()
