"""Abstract interfaces for chain reads, and the errors they raise."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from morpheus_rewards.protocol.pool_rate import DepositPoolInfo

# Cause text in ContractReadError messages is cut to this length
MAX_CAUSE_CHARS = 100


class ContractReadError(RuntimeError):
    """A contract read failed.

    The message names the contract, function and chain so a caller can
    tell which of several independent reads broke.
    """

    def __init__(
        self,
        contract: str,
        function: str,
        chain_id: int | None = None,
        cause: BaseException | str | None = None,
    ) -> None:
        self.contract = contract
        self.function = function
        self.chain_id = chain_id
        self.cause = cause
        super().__init__(self._describe())

    @property
    def call_name(self) -> str:
        return f"{self.contract}.{self.function}()"

    @property
    def cause_text(self) -> str:
        return str(self.cause or "unknown error")[:MAX_CAUSE_CHARS]

    def _describe(self) -> str:
        where = f" on chain {self.chain_id}" if self.chain_id is not None else ""
        return f"{self.call_name} failed{where}: {self.cause_text}"


class ContractNotDeployedError(ContractReadError):
    """The contract has no known address on the requested chain."""

    def __init__(self, contract: str, function: str, chain_id: int | None = None) -> None:
        super().__init__(contract, function, chain_id, cause="contract not deployed")


@dataclass(frozen=True)
class MessagingFee:
    """LayerZero fee for one cross-chain send (wei)."""

    native_fee: int
    lz_token_fee: int = 0

    @classmethod
    def from_contract(cls, raw: Any) -> "MessagingFee":
        """Parse a ``quoteSend`` result.

        Accepts ``{"nativeFee", "lzTokenFee"}``, the same nested under
        ``"msgFee"``, a ``(native, lz)`` pair, or that pair wrapped in a
        one-element sequence.

        Raises:
            ValueError: If ``raw`` has none of those shapes.
        """
        if isinstance(raw, Mapping):
            if "msgFee" in raw:
                return cls.from_contract(raw["msgFee"])
            if "nativeFee" in raw and "lzTokenFee" in raw:
                return cls(int(raw["nativeFee"]), int(raw["lzTokenFee"]))
        elif isinstance(raw, (tuple, list)):
            if len(raw) == 1:
                return cls.from_contract(raw[0])
            if len(raw) == 2 and all(isinstance(v, int) for v in raw):
                return cls(int(raw[0]), int(raw[1]))
        raise ValueError(f"Unrecognised quoteSend result: {raw!r}")


@dataclass(frozen=True)
class SendParam:
    """OFT ``SendParam`` struct."""

    dst_eid: int
    to: str  # bytes32 hex
    amount_ld: int
    min_amount_ld: int
    extra_options: bytes = b""
    compose_msg: bytes = b""
    oft_cmd: bytes = b""

    def as_tuple(self) -> tuple:
        return (
            self.dst_eid,
            self.to,
            self.amount_ld,
            self.min_amount_ld,
            self.extra_options,
            self.compose_msg,
            self.oft_cmd,
        )


class CapitalDataProvider(ABC):
    """Reads backing the capital pool reward estimate."""

    @abstractmethod
    def get_period_rewards(self, reward_pool_index: int, start: int, end: int) -> int:
        """MOR wei emitted by the reward pool between two timestamps."""

    @abstractmethod
    def get_undistributed_rewards(self) -> int:
        """MOR wei held by the distributor and not yet assigned."""

    @abstractmethod
    def get_deposit_pool(self, reward_pool_index: int, deposit_pool: str) -> DepositPoolInfo:
        """Distributor accounting for one deposit pool."""

    @abstractmethod
    def get_total_deposited(self, deposit_pool: str) -> int:
        """Total amount deposited into a deposit pool (token smallest units)."""

    @abstractmethod
    def get_claim_lock_period_multiplier(
        self, pool_id: int, lock_start: int, lock_end: int
    ) -> int:
        """Raw power factor multiplier for a claim lock window.

        Scaled by ``10**21 * 10_000``; see
        :func:`morpheus_rewards.protocol.power_factor.format_power_factor`.
        """

    def refresh(self) -> None:
        """Drop any cached reads so the next call hits the source."""


class BalanceReader(ABC):
    """ERC-20 balance lookups on any supported chain."""

    @abstractmethod
    def balance_of(self, chain_id: int, token: str, account: str) -> int:
        """Token balance of ``account`` in smallest units."""


class BridgeQuoteProvider(ABC):
    """Fee quotes for an OFT cross-chain transfer."""

    @abstractmethod
    def quote_send(self, chain_id: int, send_param: SendParam) -> MessagingFee:
        """Fee to send ``send_param`` from ``chain_id``, paid in native gas."""
