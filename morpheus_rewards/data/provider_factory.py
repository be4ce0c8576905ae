"""Factory for creating the appropriate CapitalDataProvider."""

from __future__ import annotations

import logging

from morpheus_rewards.data.interfaces import CapitalDataProvider
from morpheus_rewards.data.networks import MAINNET, get_l1_chain, get_rpc_url
from morpheus_rewards.data.onchain_provider import OnChainCapitalProvider
from morpheus_rewards.data.static_params import StaticCapitalProvider

logger = logging.getLogger(__name__)


def create_provider(
    use_onchain: bool = False,
    rpc_url: str | None = None,
    network_env: str = MAINNET,
    cache_ttl: float = 60.0,
    chain_id: int | None = None,
) -> CapitalDataProvider:
    """Create a data provider, selecting static or on-chain.

    Parameters
    ----------
    use_onchain : bool
        If True, attempt to create an ``OnChainCapitalProvider``.
    rpc_url : str | None
        JSON-RPC URL.  Falls back to the chain's RPC environment variable
        (``ETH_RPC_URL`` on mainnet) and then its public default.
    network_env : str
        ``"mainnet"`` or ``"testnet"``.
    cache_ttl : float
        TTL in seconds for the on-chain cache (default 60).
    chain_id : int | None
        Chain to read from; defaults to the environment's L1.

    Returns
    -------
    CapitalDataProvider
        ``OnChainCapitalProvider`` when requested and available, otherwise
        ``StaticCapitalProvider``.
    """
    if not use_onchain:
        return StaticCapitalProvider()

    resolved_chain = chain_id if chain_id is not None else get_l1_chain(network_env).chain_id
    resolved_url = rpc_url or get_rpc_url(resolved_chain)
    if not resolved_url:
        logger.warning("On-chain data requested but no RPC URL provided; using static data")
        return StaticCapitalProvider()

    try:
        return OnChainCapitalProvider(
            rpc_url=resolved_url,
            chain_id=resolved_chain,
            network_env=network_env,
            cache_ttl=cache_ttl,
        )
    except Exception:
        logger.warning("Failed to create OnChainCapitalProvider; using static data", exc_info=True)
        return StaticCapitalProvider()
