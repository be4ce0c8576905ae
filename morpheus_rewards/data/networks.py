"""Supported chains, their Morpheus contract addresses and LayerZero ids."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

MAINNET = "mainnet"
TESTNET = "testnet"
NETWORK_ENVIRONMENTS = (MAINNET, TESTNET)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# ---------------------------------------------------------------------------
# Logical contract names
# ---------------------------------------------------------------------------
ERC1967_PROXY = "erc1967Proxy"
STETH = "stETH"
MOR_TOKEN = "morToken"
LAYER_ZERO_ENDPOINT = "layerZeroEndpoint"
L1_FACTORY = "l1Factory"
L2_FACTORY = "l2Factory"
SUBNET_FACTORY = "subnetFactory"
BUILDERS = "builders"
DISTRIBUTOR_V2 = "distributorV2"
REWARD_POOL_V2 = "rewardPoolV2"
L1_SENDER_V2 = "l1SenderV2"
STETH_DEPOSIT_POOL = "stETHDepositPool"
WETH_DEPOSIT_POOL = "wethDepositPool"
WBTC_DEPOSIT_POOL = "wbtcDepositPool"
USDC_DEPOSIT_POOL = "usdcDepositPool"
USDT_DEPOSIT_POOL = "usdtDepositPool"
LOCK_MULTIPLIER_MATH = "lockMultiplierMath"

# Override prefix: MORPHEUS_ADDRESS_<CHAINID>_<CONTRACTNAME>
ADDRESS_OVERRIDE_PREFIX = "MORPHEUS_ADDRESS_"


@dataclass(frozen=True)
class ChainConfig:
    """One supported chain.

    ``contracts`` maps logical names to addresses; names missing from the
    map are not deployed on this chain.
    """

    chain_id: int
    name: str
    environment: str
    rpc_env_var: str
    default_rpc_urls: tuple[str, ...] = ()
    contracts: dict[str, str] = field(default_factory=dict)
    is_l1: bool = False
    is_l2: bool = False
    layer_zero_endpoint_id: int | None = None


ETHEREUM = ChainConfig(
    chain_id=1,
    name="Ethereum",
    environment=MAINNET,
    rpc_env_var="ETH_RPC_URL",
    default_rpc_urls=(
        "https://rpc.mevblocker.io",
        "https://eth-pokt.nodies.app",
        "https://eth.drpc.org",
        "https://rpc.payload.de",
        "https://eth.merkle.io",
    ),
    contracts={
        ERC1967_PROXY: "0x47176B2Af9885dC6C4575d4eFd63895f7Aaa4790",
        STETH: "0xae7ab96520DE3A18E5e111B5EaAb095312D7fE84",
        LAYER_ZERO_ENDPOINT: "0x66A71Dcef29A0fFBDBE3c6a460a3B5BC225Cd675",
        L1_FACTORY: "0x969C0F87623dc33010b4069Fea48316Ba2e45382",
    },
    is_l1=True,
    layer_zero_endpoint_id=101,
)

ARBITRUM_ONE = ChainConfig(
    chain_id=42161,
    name="Arbitrum One",
    environment=MAINNET,
    rpc_env_var="ARBITRUM_RPC_URL",
    default_rpc_urls=("https://arbitrum-one.publicnode.com",),
    contracts={
        MOR_TOKEN: "0x092baadb7def4c3981454dd9c0a0d7ff07bcfc86",
        L2_FACTORY: "0x890BfA255E6EE8DB5c67aB32dc600B14EBc4546c",
        SUBNET_FACTORY: "0x37B94Bd80b6012FB214bB6790B31A5C40d6Eb7A5",
        BUILDERS: "0xC0eD68f163d44B6e9985F0041fDf6f67c6BCFF3f",
    },
    is_l2=True,
    layer_zero_endpoint_id=110,
)

BASE = ChainConfig(
    chain_id=8453,
    name="Base",
    environment=MAINNET,
    rpc_env_var="BASE_RPC_URL",
    default_rpc_urls=("https://mainnet.base.org",),
    contracts={
        MOR_TOKEN: "0x7431ada8a591c955a994a21710752ef9b882b8e3",
        BUILDERS: "0x42BB446eAE6dca7723a9eBdb81EA88aFe77eF4B9",
    },
)

SEPOLIA = ChainConfig(
    chain_id=11155111,
    name="Sepolia",
    environment=TESTNET,
    rpc_env_var="SEPOLIA_RPC_URL",
    default_rpc_urls=("https://rpc.sepolia.org",),
    contracts={
        ERC1967_PROXY: "0x7c46d6bebf3dcd902eb431054e59908a02aba524",
        STETH: "0xa878Ad6fF38d6fAE81FBb048384cE91979d448DA",
        LAYER_ZERO_ENDPOINT: "0xae92d5aD7583AD66E49A0c67BAd18F6ba52dDDc1",
        L1_FACTORY: "0xB791b1B02A8f7A32f370200c05EeeE12B9Bba10A",
    },
    is_l1=True,
    layer_zero_endpoint_id=10161,
)

ARBITRUM_SEPOLIA = ChainConfig(
    chain_id=421614,
    name="Arbitrum Sepolia",
    environment=TESTNET,
    rpc_env_var="ARBITRUM_SEPOLIA_RPC_URL",
    default_rpc_urls=("https://sepolia-rollup.arbitrum.io/rpc",),
    contracts={
        MOR_TOKEN: "0x34a285A1B1C166420Df5b6630132542923B5b27E",
        L2_FACTORY: "0x3199555a4552848D522cf3D04bb1fE4C512a5d3B",
        SUBNET_FACTORY: "0xa41178368f393a224b990779baa9b5855759d45d",
        BUILDERS: "0x5271B2FE76303ca7DDCB8Fb6fA77906E2B4f03C7",
    },
    is_l2=True,
    layer_zero_endpoint_id=10231,
)

# Mainnet fork; simulates L1 and has no LayerZero endpoint
TENDERLY_VIRTUAL_TESTNET = ChainConfig(
    chain_id=112121212121212,
    name="Tenderly Virtual Testnet",
    environment=TESTNET,
    rpc_env_var="TENDERLY_VIRTUAL_TESTNET_RPC",
    contracts={
        DISTRIBUTOR_V2: "0x417596F7453fB2d07abF0B3afD15e111b6D56A02",
        REWARD_POOL_V2: "0x76410BC3C45f7805103aCD8032894947FcDc8cE6",
        L1_SENDER_V2: "0xFca822Eb89067d44e60538125A850861D791720c",
        STETH_DEPOSIT_POOL: "0x32f3F70Ec63cd1b7b5cc3Db4017f0a831bcFFFA0",
        WETH_DEPOSIT_POOL: "0x9305E8508B8004362282B7D9227b3b4a84D42F06",
        WBTC_DEPOSIT_POOL: "0x91410DF473Ed15Fc66E29FcA0e9c480694DfcEf0",
        USDC_DEPOSIT_POOL: "0x4ebbD77Ab4BBdB94922A705a02FfcDf5E4597889",
        USDT_DEPOSIT_POOL: "0x57EC92E53135D16eBa9d661713Bd7863983ff02C",
        LOCK_MULTIPLIER_MATH: "0x7b82E807A322af106fE4DeFc8a17C5bF6C4d0de4",
    },
    is_l1=True,
)

_CHAINS: dict[str, tuple[ChainConfig, ...]] = {
    MAINNET: (ETHEREUM, ARBITRUM_ONE, BASE),
    TESTNET: (SEPOLIA, ARBITRUM_SEPOLIA, TENDERLY_VIRTUAL_TESTNET),
}


def _check_environment(environment: str) -> str:
    if environment not in NETWORK_ENVIRONMENTS:
        raise ValueError(f"Unknown network environment: {environment}")
    return environment


def get_chains(environment: str) -> list[ChainConfig]:
    return list(_CHAINS[_check_environment(environment)])


def get_chain(chain_id: int, environment: str | None = None) -> ChainConfig | None:
    """Chain with ``chain_id``, optionally restricted to one environment."""
    environments = (
        [_check_environment(environment)] if environment else list(NETWORK_ENVIRONMENTS)
    )
    for env in environments:
        for chain in _CHAINS[env]:
            if chain.chain_id == chain_id:
                return chain
    return None


def network_environment_for_chain(chain_id: int) -> str:
    chain = get_chain(chain_id)
    if chain is None:
        raise ValueError(f"Unsupported chain id: {chain_id}")
    return chain.environment


def get_contract_address(chain_id: int, contract_name: str, environment: str) -> str:
    """Deployed address of ``contract_name`` on a chain, or ``""`` if undeployed.

    ``MORPHEUS_ADDRESS_<CHAINID>_<CONTRACTNAME>`` in the environment takes
    precedence over the built-in table.
    """
    override = os.environ.get(f"{ADDRESS_OVERRIDE_PREFIX}{chain_id}_{contract_name.upper()}")
    if override:
        return override.strip()

    chain = get_chain(chain_id, environment)
    if chain is None:
        return ""
    address = chain.contracts.get(contract_name, "")
    if address.lower() == ZERO_ADDRESS:
        return ""
    return address


def get_layer_zero_endpoint_id(chain_id: int, environment: str) -> int | None:
    chain = get_chain(chain_id, environment)
    return chain.layer_zero_endpoint_id if chain else None


def get_l1_chain(environment: str) -> ChainConfig:
    """The environment's primary L1 (Ethereum or Sepolia)."""
    return next(chain for chain in get_chains(environment) if chain.is_l1)


def get_l2_chains(environment: str) -> list[ChainConfig]:
    return [chain for chain in get_chains(environment) if chain.is_l2]


def get_rpc_url(chain_id: int) -> str | None:
    """RPC endpoint for a chain: its environment variable, else the first default."""
    chain = get_chain(chain_id)
    if chain is None:
        return None
    url = os.environ.get(chain.rpc_env_var)
    if url:
        return url
    if chain.default_rpc_urls:
        return chain.default_rpc_urls[0]
    logger.warning("No RPC URL for %s; set %s", chain.name, chain.rpc_env_var)
    return None
