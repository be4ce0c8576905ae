"""On-chain readers for the capital pools, MOR balances and bridge quotes via web3.py."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from morpheus_rewards.data.cache import TTLCache
from morpheus_rewards.data.contracts import (
    DEPOSIT_POOL_ABI,
    DEPOSIT_POOL_NAME,
    DISTRIBUTOR_V2_ABI,
    DISTRIBUTOR_V2_NAME,
    ERC20_ABI,
    MOR_TOKEN_NAME,
    OFT_ABI,
    REWARD_POOL_V2_ABI,
    REWARD_POOL_V2_NAME,
)
from morpheus_rewards.data.interfaces import (
    BalanceReader,
    BridgeQuoteProvider,
    CapitalDataProvider,
    ContractNotDeployedError,
    ContractReadError,
    MessagingFee,
    SendParam,
)
from morpheus_rewards.data.networks import (
    DISTRIBUTOR_V2,
    ERC1967_PROXY,
    MOR_TOKEN,
    REWARD_POOL_V2,
    STETH_DEPOSIT_POOL,
    get_contract_address,
    get_rpc_url,
    network_environment_for_chain,
)
from morpheus_rewards.protocol.pool_rate import DepositPoolInfo

logger = logging.getLogger(__name__)


def _read(
    cache: TTLCache | None,
    cache_key: str,
    contract_name: str,
    function: str,
    chain_id: int,
    fetcher: Callable[[], Any],
) -> Any:
    """Cache → RPC pipeline; failures surface as :class:`ContractReadError`."""
    if cache is not None:
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

    try:
        value = fetcher()
    except Exception as exc:
        logger.warning(
            "RPC call %s.%s() failed on chain %s (key=%s)",
            contract_name, function, chain_id, cache_key, exc_info=True,
        )
        raise ContractReadError(contract_name, function, chain_id, exc) from exc

    if cache is not None:
        cache.set(cache_key, value)
    return value


# ---------------------------------------------------------------------------
# Per-chain Web3 clients
# ---------------------------------------------------------------------------

class Web3Clients:
    """Lazily built ``Web3`` instance per chain id.

    Parameters
    ----------
    rpc_urls : dict[int, str] | None
        Explicit RPC endpoints; chains not listed use
        :func:`~morpheus_rewards.data.networks.get_rpc_url`.
    """

    def __init__(self, rpc_urls: dict[int, str] | None = None) -> None:
        from web3 import Web3

        self._web3_cls = Web3
        self._rpc_urls = dict(rpc_urls or {})
        self._clients: dict[int, Any] = {}

    def get(self, chain_id: int) -> Any:
        client = self._clients.get(chain_id)
        if client is not None:
            return client
        url = self._rpc_urls.get(chain_id) or get_rpc_url(chain_id)
        if not url:
            raise ValueError(f"No RPC URL configured for chain {chain_id}")
        client = self._web3_cls(self._web3_cls.HTTPProvider(url))
        self._clients[chain_id] = client
        return client

    def contract(self, chain_id: int, address: str, abi: list[dict]) -> Any:
        w3 = self.get(chain_id)
        return w3.eth.contract(address=w3.to_checksum_address(address), abi=abi)


# ---------------------------------------------------------------------------
# OnChainCapitalProvider
# ---------------------------------------------------------------------------

class OnChainCapitalProvider(CapitalDataProvider):
    """Live capital pool reads from the L1 chain.

    Contract addresses are resolved once at construction; a contract with
    no address raises :class:`ContractNotDeployedError` when read, so the
    other reads keep working.

    Parameters
    ----------
    rpc_url : str
        JSON-RPC endpoint of the L1 chain.
    chain_id : int
        Chain the endpoint serves.
    network_env : str
        ``"mainnet"`` or ``"testnet"`` (address table to use).
    cache_ttl : float
        Seconds before a cached value expires (default 60).
    multiplier_contract : str | None
        Contract answering ``getClaimLockPeriodMultiplier``.  Defaults to
        the stETH deposit pool, then the legacy distribution proxy.
    clock : Callable[[], float]
        Time source for the cache.
    """

    def __init__(
        self,
        rpc_url: str,
        chain_id: int,
        network_env: str,
        cache_ttl: float = 60.0,
        multiplier_contract: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        from web3 import Web3

        self._w3 = Web3(Web3.HTTPProvider(rpc_url))
        self._chain_id = chain_id
        self._network_env = network_env
        self._cache = TTLCache(cache_ttl, clock=clock)

        self.reward_pool_address = get_contract_address(chain_id, REWARD_POOL_V2, network_env)
        self.distributor_address = get_contract_address(chain_id, DISTRIBUTOR_V2, network_env)
        self.multiplier_address = (
            multiplier_contract
            or get_contract_address(chain_id, STETH_DEPOSIT_POOL, network_env)
            or get_contract_address(chain_id, ERC1967_PROXY, network_env)
        )

        # Pre-build contract objects (no RPC calls here)
        self._reward_pool = self._contract_at(self.reward_pool_address, REWARD_POOL_V2_ABI)
        self._distributor = self._contract_at(self.distributor_address, DISTRIBUTOR_V2_ABI)
        self._multiplier = self._contract_at(self.multiplier_address, DEPOSIT_POOL_ABI)
        self._deposit_pools: dict[str, Any] = {}

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def network_env(self) -> str:
        return self._network_env

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _contract_at(self, address: str, abi: list[dict]) -> Any | None:
        if not address:
            return None
        return self._w3.eth.contract(address=self._w3.to_checksum_address(address), abi=abi)

    def _require(self, contract: Any | None, name: str, function: str) -> Any:
        if contract is None:
            raise ContractNotDeployedError(name, function, self._chain_id)
        return contract

    def _deposit_pool_contract(self, deposit_pool: str) -> Any:
        key = deposit_pool.lower()
        if key not in self._deposit_pools:
            self._deposit_pools[key] = self._contract_at(deposit_pool, DEPOSIT_POOL_ABI)
        return self._deposit_pools[key]

    # ------------------------------------------------------------------
    # CapitalDataProvider interface
    # ------------------------------------------------------------------

    def get_period_rewards(self, reward_pool_index: int, start: int, end: int) -> int:
        contract = self._require(self._reward_pool, REWARD_POOL_V2_NAME, "getPeriodRewards")
        return _read(
            self._cache,
            f"period_rewards:{reward_pool_index}:{start}:{end}",
            REWARD_POOL_V2_NAME,
            "getPeriodRewards",
            self._chain_id,
            lambda: int(contract.functions.getPeriodRewards(reward_pool_index, start, end).call()),
        )

    def get_undistributed_rewards(self) -> int:
        contract = self._require(self._distributor, DISTRIBUTOR_V2_NAME, "undistributedRewards")
        return _read(
            self._cache,
            "undistributed_rewards",
            DISTRIBUTOR_V2_NAME,
            "undistributedRewards",
            self._chain_id,
            lambda: int(contract.functions.undistributedRewards().call()),
        )

    def get_deposit_pool(self, reward_pool_index: int, deposit_pool: str) -> DepositPoolInfo:
        contract = self._require(self._distributor, DISTRIBUTOR_V2_NAME, "depositPools")

        def _fetch() -> DepositPoolInfo:
            raw = contract.functions.depositPools(
                reward_pool_index, self._w3.to_checksum_address(deposit_pool)
            ).call()
            return DepositPoolInfo.from_contract(raw)

        return _read(
            self._cache,
            f"deposit_pool:{reward_pool_index}:{deposit_pool.lower()}",
            DISTRIBUTOR_V2_NAME,
            "depositPools",
            self._chain_id,
            _fetch,
        )

    def get_total_deposited(self, deposit_pool: str) -> int:
        contract = self._require(
            self._deposit_pool_contract(deposit_pool),
            DEPOSIT_POOL_NAME,
            "totalDepositedInPublicPools",
        )
        return _read(
            self._cache,
            f"total_deposited:{deposit_pool.lower()}",
            DEPOSIT_POOL_NAME,
            "totalDepositedInPublicPools",
            self._chain_id,
            lambda: int(contract.functions.totalDepositedInPublicPools().call()),
        )

    def get_claim_lock_period_multiplier(
        self, pool_id: int, lock_start: int, lock_end: int
    ) -> int:
        contract = self._require(self._multiplier, DEPOSIT_POOL_NAME, "getClaimLockPeriodMultiplier")
        return _read(
            self._cache,
            f"multiplier:{pool_id}:{lock_start}:{lock_end}",
            DEPOSIT_POOL_NAME,
            "getClaimLockPeriodMultiplier",
            self._chain_id,
            lambda: int(
                contract.functions.getClaimLockPeriodMultiplier(pool_id, lock_start, lock_end).call()
            ),
        )

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Invalidate all cached values, forcing fresh RPC calls."""
        self._cache.clear()

    @property
    def is_connected(self) -> bool:
        """Check if the Web3 provider is connected."""
        try:
            return self._w3.is_connected()
        except Exception:
            logger.debug("Connection probe failed", exc_info=True)
            return False


# ---------------------------------------------------------------------------
# Balances and bridge quotes
# ---------------------------------------------------------------------------

class OnChainBalanceReader(BalanceReader):
    """``balanceOf`` on any supported chain.  Never cached: every call hits RPC."""

    def __init__(self, clients: Web3Clients | None = None) -> None:
        self._clients = clients or Web3Clients()

    def balance_of(self, chain_id: int, token: str, account: str) -> int:
        def _fetch() -> int:
            contract = self._clients.contract(chain_id, token, ERC20_ABI)
            w3 = self._clients.get(chain_id)
            return int(contract.functions.balanceOf(w3.to_checksum_address(account)).call())

        return _read(None, f"balance:{chain_id}:{token}:{account}", "ERC20", "balanceOf", chain_id, _fetch)

    def mor_balance(self, chain_id: int, account: str) -> int:
        """MOR balance of ``account`` on ``chain_id``."""
        token = get_contract_address(chain_id, MOR_TOKEN, network_environment_for_chain(chain_id))
        if not token:
            raise ContractNotDeployedError(MOR_TOKEN_NAME, "balanceOf", chain_id)
        return self.balance_of(chain_id, token, account)


class OnChainBridgeQuoter(BridgeQuoteProvider):
    """LayerZero ``quoteSend`` against the MOR OFT on the source chain."""

    def __init__(self, clients: Web3Clients | None = None) -> None:
        self._clients = clients or Web3Clients()

    def quote_send(self, chain_id: int, send_param: SendParam) -> MessagingFee:
        token = get_contract_address(chain_id, MOR_TOKEN, network_environment_for_chain(chain_id))
        if not token:
            raise ContractNotDeployedError(MOR_TOKEN_NAME, "quoteSend", chain_id)

        def _fetch() -> MessagingFee:
            contract = self._clients.contract(chain_id, token, OFT_ABI)
            raw = contract.functions.quoteSend(send_param.as_tuple(), False).call()
            return MessagingFee.from_contract(raw)

        return _read(None, f"quote:{chain_id}", MOR_TOKEN_NAME, "quoteSend", chain_id, _fetch)
