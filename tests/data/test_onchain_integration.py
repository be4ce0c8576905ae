"""Live on-chain integration tests (require ETH_RPC_URL)."""

from __future__ import annotations

import os
import time

import pytest

pytestmark = pytest.mark.onchain

RPC_URL = os.environ.get("ETH_RPC_URL", "")

if not RPC_URL:
    pytest.skip("ETH_RPC_URL not set", allow_module_level=True)

from morpheus_rewards.data.interfaces import ContractNotDeployedError
from morpheus_rewards.data.networks import ETHEREUM, MAINNET, STETH
from morpheus_rewards.data.onchain_provider import (
    OnChainBalanceReader,
    OnChainCapitalProvider,
    Web3Clients,
)
from morpheus_rewards.data.provider_factory import create_provider
from morpheus_rewards.protocol.editions import EDITION_V2
from morpheus_rewards.protocol.power_factor import duration_to_seconds, format_power_factor


@pytest.fixture(scope="module")
def provider() -> OnChainCapitalProvider:
    return OnChainCapitalProvider(
        rpc_url=RPC_URL, chain_id=ETHEREUM.chain_id, network_env=MAINNET, cache_ttl=300.0
    )


class TestConnection:
    def test_is_connected(self, provider: OnChainCapitalProvider):
        assert provider.is_connected is True


class TestMultiplier:
    def test_six_year_lock_formats(self, provider: OnChainCapitalProvider):
        start = int(time.time())
        end = start + duration_to_seconds("6", "years", edition=EDITION_V2)
        raw = provider.get_claim_lock_period_multiplier(0, start, end)
        text = format_power_factor(raw, edition=EDITION_V2)
        assert text.startswith("x")
        assert float(text[1:]) >= 1.0


class TestUndeployed:
    @pytest.mark.skipif(
        bool(os.environ.get("MORPHEUS_ADDRESS_1_DISTRIBUTORV2")),
        reason="DistributorV2 address overridden",
    )
    def test_distributor_not_in_mainnet_table(self, provider: OnChainCapitalProvider):
        with pytest.raises(ContractNotDeployedError):
            provider.get_undistributed_rewards()


class TestBalances:
    def test_steth_balance_is_non_negative(self):
        reader = OnChainBalanceReader(Web3Clients({ETHEREUM.chain_id: RPC_URL}))
        balance = reader.balance_of(ETHEREUM.chain_id, ETHEREUM.contracts[STETH], "0x" + "00" * 19 + "01")
        assert balance >= 0


class TestFactory:
    def test_create_onchain_provider(self):
        p = create_provider(use_onchain=True, rpc_url=RPC_URL)
        assert isinstance(p, OnChainCapitalProvider)
        assert p.is_connected is True
