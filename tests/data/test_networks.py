"""Tests for the chain table and contract address resolution."""

import pytest

from morpheus_rewards.data.networks import (
    ARBITRUM_ONE,
    DISTRIBUTOR_V2,
    ETHEREUM,
    MAINNET,
    MOR_TOKEN,
    REWARD_POOL_V2,
    SEPOLIA,
    TENDERLY_VIRTUAL_TESTNET,
    TESTNET,
    get_chain,
    get_chains,
    get_contract_address,
    get_l1_chain,
    get_l2_chains,
    get_layer_zero_endpoint_id,
    get_rpc_url,
    network_environment_for_chain,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("ETH_RPC_URL", TENDERLY_VIRTUAL_TESTNET.rpc_env_var, "MORPHEUS_ADDRESS_1_REWARDPOOLV2"):
        monkeypatch.delenv(name, raising=False)


class TestChains:
    def test_environment_split(self) -> None:
        assert ETHEREUM in get_chains(MAINNET)
        assert TENDERLY_VIRTUAL_TESTNET in get_chains(TESTNET)
        assert ETHEREUM not in get_chains(TESTNET)

    def test_unknown_environment(self) -> None:
        with pytest.raises(ValueError):
            get_chains("devnet")

    def test_get_chain(self) -> None:
        assert get_chain(42161) is ARBITRUM_ONE
        assert get_chain(42161, TESTNET) is None
        assert get_chain(999) is None

    def test_environment_for_chain(self) -> None:
        assert network_environment_for_chain(421614) == TESTNET
        assert network_environment_for_chain(1) == MAINNET
        with pytest.raises(ValueError):
            network_environment_for_chain(999)

    def test_l1_and_l2(self) -> None:
        assert get_l1_chain(MAINNET) is ETHEREUM
        assert get_l1_chain(TESTNET) is SEPOLIA
        assert ARBITRUM_ONE in get_l2_chains(MAINNET)
        assert ETHEREUM not in get_l2_chains(MAINNET)

    def test_layer_zero_ids(self) -> None:
        assert get_layer_zero_endpoint_id(1, MAINNET) == 101
        assert get_layer_zero_endpoint_id(42161, MAINNET) == 110
        assert get_layer_zero_endpoint_id(TENDERLY_VIRTUAL_TESTNET.chain_id, TESTNET) is None


class TestContractAddress:
    def test_deployed(self) -> None:
        assert get_contract_address(42161, MOR_TOKEN, MAINNET) == ARBITRUM_ONE.contracts[MOR_TOKEN]

    def test_not_deployed_is_empty(self) -> None:
        assert get_contract_address(1, DISTRIBUTOR_V2, MAINNET) == ""
        assert get_contract_address(1, REWARD_POOL_V2, MAINNET) == ""

    def test_wrong_environment_is_empty(self) -> None:
        assert get_contract_address(42161, MOR_TOKEN, TESTNET) == ""

    def test_tenderly_has_v2(self) -> None:
        chain_id = TENDERLY_VIRTUAL_TESTNET.chain_id
        assert get_contract_address(chain_id, REWARD_POOL_V2, TESTNET).startswith("0x")

    def test_override_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MORPHEUS_ADDRESS_1_REWARDPOOLV2", " 0x" + "aa" * 20 + " ")
        assert get_contract_address(1, REWARD_POOL_V2, MAINNET) == "0x" + "aa" * 20


class TestRpcUrl:
    def test_environment_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ETH_RPC_URL", "http://localhost:8545")
        assert get_rpc_url(1) == "http://localhost:8545"

    def test_public_default(self) -> None:
        assert get_rpc_url(1) == ETHEREUM.default_rpc_urls[0]

    def test_no_url(self) -> None:
        assert get_rpc_url(TENDERLY_VIRTUAL_TESTNET.chain_id) is None
        assert get_rpc_url(999) is None
