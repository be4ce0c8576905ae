"""Tests for the web3-backed readers: caching, error wrapping, address resolution."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from morpheus_rewards.data.interfaces import (
    CapitalDataProvider,
    ContractNotDeployedError,
    ContractReadError,
    MessagingFee,
    SendParam,
)
from morpheus_rewards.data.networks import (
    ARBITRUM_ONE,
    ETHEREUM,
    MAINNET,
    MOR_TOKEN,
    TENDERLY_VIRTUAL_TESTNET,
    TESTNET,
)
from morpheus_rewards.data.onchain_provider import (
    OnChainBalanceReader,
    OnChainBridgeQuoter,
    OnChainCapitalProvider,
    Web3Clients,
)
from morpheus_rewards.data.provider_factory import create_provider
from morpheus_rewards.data.static_params import StaticCapitalProvider
from morpheus_rewards.protocol.pool_rate import DepositPoolInfo

TENDERLY = TENDERLY_VIRTUAL_TESTNET.chain_id
ACCOUNT = "0x" + "ab" * 20


def _mock_w3() -> MagicMock:
    mock_w3 = MagicMock()
    mock_w3.is_connected.return_value = True
    mock_w3.to_checksum_address = lambda addr: addr

    def _make_contract(address, abi):
        contract = MagicMock()
        contract.address = address
        return contract

    mock_w3.eth.contract = MagicMock(side_effect=_make_contract)
    return mock_w3


def _make_provider(
    chain_id: int = TENDERLY,
    network_env: str = TESTNET,
    **kwargs,
) -> OnChainCapitalProvider:
    """Build an OnChainCapitalProvider whose Web3 instance is a mock."""
    with patch("web3.Web3") as web3_cls:
        web3_cls.return_value = _mock_w3()
        return OnChainCapitalProvider(
            rpc_url="http://localhost:8545",
            chain_id=chain_id,
            network_env=network_env,
            **kwargs,
        )


class _Clock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


# ======================================================================
# 1. Address resolution
# ======================================================================


class TestAddressResolution:
    def test_tenderly_has_v2_contracts(self):
        provider = _make_provider()
        assert provider.reward_pool_address == TENDERLY_VIRTUAL_TESTNET.contracts["rewardPoolV2"]
        assert provider.distributor_address == TENDERLY_VIRTUAL_TESTNET.contracts["distributorV2"]
        assert provider.multiplier_address == TENDERLY_VIRTUAL_TESTNET.contracts["stETHDepositPool"]

    def test_mainnet_multiplier_falls_back_to_proxy(self):
        provider = _make_provider(chain_id=1, network_env=MAINNET)
        assert provider.reward_pool_address == ""
        assert provider.multiplier_address == ETHEREUM.contracts["erc1967Proxy"]

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MORPHEUS_ADDRESS_1_DISTRIBUTORV2", "0x" + "11" * 20)
        provider = _make_provider(chain_id=1, network_env=MAINNET)
        assert provider.distributor_address == "0x" + "11" * 20

    def test_explicit_multiplier_contract(self):
        provider = _make_provider(multiplier_contract="0x" + "22" * 20)
        assert provider.multiplier_address == "0x" + "22" * 20

    def test_interface_conformance(self):
        assert isinstance(_make_provider(), CapitalDataProvider)


# ======================================================================
# 2. Mock-based reads
# ======================================================================


class TestOnChainProviderMocked:
    def test_get_period_rewards(self):
        provider = _make_provider()
        fn = provider._reward_pool.functions.getPeriodRewards
        fn.return_value.call.return_value = 123 * 10**18

        assert provider.get_period_rewards(0, 10, 20) == 123 * 10**18
        fn.assert_called_once_with(0, 10, 20)

    def test_get_undistributed_rewards(self):
        provider = _make_provider()
        provider._distributor.functions.undistributedRewards.return_value.call.return_value = 7
        assert provider.get_undistributed_rewards() == 7

    def test_get_deposit_pool(self):
        provider = _make_provider()
        raw = ("0xtoken", "", 3_000, 5 * 10**18, 5 * 10**18, 0, "0xatoken", True)
        provider._distributor.functions.depositPools.return_value.call.return_value = raw

        info = provider.get_deposit_pool(0, "0xPool")
        assert isinstance(info, DepositPoolInfo)
        assert info.deposited == 5 * 10**18

    def test_get_total_deposited(self):
        provider = _make_provider()
        contract = provider._deposit_pool_contract("0xPool")
        contract.functions.totalDepositedInPublicPools.return_value.call.return_value = 42
        assert provider.get_total_deposited("0xpool") == 42

    def test_get_claim_lock_period_multiplier(self):
        provider = _make_provider()
        fn = provider._multiplier.functions.getClaimLockPeriodMultiplier
        fn.return_value.call.return_value = 25_000 * 10**21

        assert provider.get_claim_lock_period_multiplier(0, 100, 200) == 25_000 * 10**21
        fn.assert_called_once_with(0, 100, 200)

    def test_is_connected(self):
        assert _make_provider().is_connected is True


class TestCaching:
    def test_second_read_served_from_cache(self):
        provider = _make_provider(clock=_Clock())
        call = provider._distributor.functions.undistributedRewards.return_value.call
        call.return_value = 7

        provider.get_undistributed_rewards()
        provider.get_undistributed_rewards()
        assert call.call_count == 1

    def test_expired_entry_is_refetched(self):
        clock = _Clock()
        provider = _make_provider(cache_ttl=60.0, clock=clock)
        call = provider._distributor.functions.undistributedRewards.return_value.call
        call.return_value = 7

        provider.get_undistributed_rewards()
        clock.now += 60.0
        provider.get_undistributed_rewards()
        assert call.call_count == 2

    def test_refresh_clears_cache(self):
        provider = _make_provider(clock=_Clock())
        call = provider._distributor.functions.undistributedRewards.return_value.call
        call.return_value = 7

        provider.get_undistributed_rewards()
        provider.refresh()
        provider.get_undistributed_rewards()
        assert call.call_count == 2

    def test_cache_key_includes_arguments(self):
        provider = _make_provider(clock=_Clock())
        call = provider._reward_pool.functions.getPeriodRewards.return_value.call
        call.return_value = 1

        provider.get_period_rewards(0, 10, 20)
        provider.get_period_rewards(0, 10, 30)
        assert call.call_count == 2

    def test_timestamp_keys_do_not_accumulate(self):
        clock = _Clock()
        provider = _make_provider(cache_ttl=60.0, clock=clock)
        provider._reward_pool.functions.getPeriodRewards.return_value.call.return_value = 1
        provider._multiplier.functions.getClaimLockPeriodMultiplier.return_value.call.return_value = 1

        for _ in range(100):
            now = int(clock.now)
            provider.get_period_rewards(0, now, now + 365 * 86_400)
            provider.get_claim_lock_period_multiplier(0, now, now + 86_400)
            clock.now += 30.0

        assert len(provider._cache) <= 4


class TestErrors:
    def test_rpc_failure_names_the_call(self):
        provider = _make_provider()
        provider._reward_pool.functions.getPeriodRewards.return_value.call.side_effect = RuntimeError("boom")

        with pytest.raises(ContractReadError) as excinfo:
            provider.get_period_rewards(0, 10, 20)
        err = excinfo.value
        assert err.call_name == "RewardPoolV2.getPeriodRewards()"
        assert str(err) == f"RewardPoolV2.getPeriodRewards() failed on chain {TENDERLY}: boom"
        assert isinstance(err.__cause__, RuntimeError)

    def test_malformed_struct_is_a_read_error(self):
        provider = _make_provider()
        provider._distributor.functions.depositPools.return_value.call.return_value = (1, 2)
        with pytest.raises(ContractReadError):
            provider.get_deposit_pool(0, "0xPool")

    def test_undeployed_contract(self):
        provider = _make_provider(chain_id=1, network_env=MAINNET)
        with pytest.raises(ContractNotDeployedError) as excinfo:
            provider.get_undistributed_rewards()
        assert excinfo.value.contract == "DistributorV2"
        assert excinfo.value.chain_id == 1

    def test_failures_are_not_cached(self):
        provider = _make_provider(clock=_Clock())
        call = provider._distributor.functions.undistributedRewards.return_value.call
        call.side_effect = [RuntimeError("timeout"), 9]

        with pytest.raises(ContractReadError):
            provider.get_undistributed_rewards()
        assert provider.get_undistributed_rewards() == 9


# ======================================================================
# 3. Balances and bridge quotes
# ======================================================================


def _make_clients(mock_w3: MagicMock) -> Web3Clients:
    with patch("web3.Web3") as web3_cls:
        web3_cls.return_value = mock_w3
        clients = Web3Clients(rpc_urls={ARBITRUM_ONE.chain_id: "http://localhost:8547"})
    return clients


class TestBalanceReader:
    def test_balance_of(self):
        mock_w3 = MagicMock()
        mock_w3.to_checksum_address = lambda addr: addr
        mock_w3.eth.contract.return_value.functions.balanceOf.return_value.call.return_value = 77
        reader = OnChainBalanceReader(_make_clients(mock_w3))

        assert reader.balance_of(ARBITRUM_ONE.chain_id, "0xtoken", ACCOUNT) == 77

    def test_mor_balance_uses_chain_token(self):
        mock_w3 = MagicMock()
        mock_w3.to_checksum_address = lambda addr: addr
        mock_w3.eth.contract.return_value.functions.balanceOf.return_value.call.return_value = 5
        reader = OnChainBalanceReader(_make_clients(mock_w3))

        assert reader.mor_balance(ARBITRUM_ONE.chain_id, ACCOUNT) == 5
        _, kwargs = mock_w3.eth.contract.call_args
        assert kwargs["address"] == ARBITRUM_ONE.contracts[MOR_TOKEN]

    def test_mor_not_on_chain(self):
        reader = OnChainBalanceReader(_make_clients(MagicMock()))
        with pytest.raises(ContractNotDeployedError):
            reader.mor_balance(ETHEREUM.chain_id, ACCOUNT)

    def test_rpc_failure_is_wrapped(self):
        mock_w3 = MagicMock()
        mock_w3.to_checksum_address = lambda addr: addr
        mock_w3.eth.contract.return_value.functions.balanceOf.return_value.call.side_effect = OSError("down")
        reader = OnChainBalanceReader(_make_clients(mock_w3))

        with pytest.raises(ContractReadError):
            reader.balance_of(ARBITRUM_ONE.chain_id, "0xtoken", ACCOUNT)


class TestBridgeQuoter:
    def test_quote_send(self):
        mock_w3 = MagicMock()
        mock_w3.to_checksum_address = lambda addr: addr
        quote = mock_w3.eth.contract.return_value.functions.quoteSend
        quote.return_value.call.return_value = ((12_345, 0),)
        quoter = OnChainBridgeQuoter(_make_clients(mock_w3))
        param = SendParam(dst_eid=101, to="0x" + "0" * 64, amount_ld=10**18, min_amount_ld=10**18)

        assert quoter.quote_send(ARBITRUM_ONE.chain_id, param) == MessagingFee(12_345, 0)
        quote.assert_called_once_with(param.as_tuple(), False)

    def test_undeployed_token(self):
        quoter = OnChainBridgeQuoter(_make_clients(MagicMock()))
        param = SendParam(dst_eid=110, to="0x" + "0" * 64, amount_ld=1, min_amount_ld=1)
        with pytest.raises(ContractNotDeployedError):
            quoter.quote_send(ETHEREUM.chain_id, param)


# ======================================================================
# 4. Provider factory
# ======================================================================


class TestProviderFactory:
    def test_default_is_static(self):
        assert isinstance(create_provider(), StaticCapitalProvider)

    def test_onchain_with_url(self):
        with patch("web3.Web3") as web3_cls:
            web3_cls.return_value = _mock_w3()
            provider = create_provider(
                use_onchain=True, rpc_url="http://localhost:8545", network_env=TESTNET, chain_id=TENDERLY
            )
        assert isinstance(provider, OnChainCapitalProvider)
        assert provider.chain_id == TENDERLY

    def test_no_rpc_url_falls_back(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv(TENDERLY_VIRTUAL_TESTNET.rpc_env_var, raising=False)
        provider = create_provider(use_onchain=True, network_env=TESTNET, chain_id=TENDERLY)
        assert isinstance(provider, StaticCapitalProvider)

    def test_construction_failure_falls_back(self):
        with patch("web3.Web3", side_effect=RuntimeError("bad url")):
            provider = create_provider(use_onchain=True, rpc_url="http://localhost:8545")
        assert isinstance(provider, StaticCapitalProvider)
