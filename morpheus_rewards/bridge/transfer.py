"""Building and pricing a MOR cross-chain transfer (LayerZero OFT ``send``)."""

from __future__ import annotations

import asyncio
import logging
import re
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation

from morpheus_rewards.data.interfaces import BridgeQuoteProvider, MessagingFee, SendParam
from morpheus_rewards.protocol.units import parse_units, to_decimal
from morpheus_rewards.scheduling import Debouncer, Sleep

logger = logging.getLogger(__name__)

__all__ = [
    "MessagingFee",
    "QuoteDebouncer",
    "SendParam",
    "address_to_bytes32",
    "build_send_args",
    "build_send_param",
    "format_native_fee",
    "format_to_one_decimal",
    "is_valid_recipient",
    "validate_bridge_amount",
]

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

QUOTE_DEBOUNCE_SECONDS = 0.5


def is_valid_recipient(address: str | None) -> bool:
    return bool(address) and _ADDRESS_RE.match(address) is not None


def address_to_bytes32(address: str) -> str:
    """Left-pad a 20-byte address to the bytes32 ``to`` field (lowercased)."""
    if not is_valid_recipient(address):
        raise ValueError(f"Invalid recipient address: {address!r}")
    return "0x" + "0" * 24 + address[2:].lower()


def build_send_param(dst_eid: int, recipient: str, amount: str, decimals: int = 18) -> SendParam:
    """``SendParam`` for bridging ``amount`` tokens with no slippage allowance."""
    amount_ld = parse_units(amount, decimals)
    if amount_ld <= 0:
        raise ValueError(f"Bridge amount must be positive, got {amount!r}")
    return SendParam(
        dst_eid=dst_eid,
        to=address_to_bytes32(recipient),
        amount_ld=amount_ld,
        min_amount_ld=amount_ld,
    )


def build_send_args(send_param: SendParam, fee: MessagingFee, refund_address: str) -> dict:
    """Arguments for the OFT ``send`` transaction; ``value`` carries the native fee."""
    return {
        "function": "send",
        "args": (send_param.as_tuple(), (fee.native_fee, fee.lz_token_fee), refund_address),
        "value": fee.native_fee,
    }


def validate_bridge_amount(amount: str, balance: Decimal | str) -> str | None:
    """``None`` if bridgeable, else the reason it is not."""
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        return "Enter a valid amount"
    if not value.is_finite() or value <= 0:
        return "Enter a valid amount"
    if value > Decimal(str(balance)):
        return "Amount exceeds your balance"
    return None


def format_to_one_decimal(value: Decimal | str) -> str:
    """Truncate (never round up) to one decimal: the Max button amount."""
    truncated = Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_FLOOR)
    if truncated == truncated.to_integral_value():
        return str(int(truncated))
    return str(truncated)


def format_native_fee(fee_wei: int) -> str:
    """``"< 0.001"`` for dust, otherwise four decimals."""
    value = to_decimal(fee_wei, 18)
    if value < Decimal("0.001"):
        return "< 0.001"
    return str(value.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP))


class QuoteDebouncer:
    """Re-quote the bridge fee only after input settles for ``delay`` seconds.

    :meth:`request` returns ``None`` when a newer request superseded it.
    """

    def __init__(
        self,
        quoter: BridgeQuoteProvider,
        delay: float = QUOTE_DEBOUNCE_SECONDS,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._quoter = quoter
        self._debouncer = Debouncer(delay, sleep=sleep)

    async def request(self, chain_id: int, send_param: SendParam) -> MessagingFee | None:
        task = self._debouncer.call(self._quote, chain_id, send_param)
        await asyncio.wait({task})
        if task.cancelled():
            return None
        return task.result()

    def cancel(self) -> None:
        self._debouncer.cancel()

    async def _quote(self, chain_id: int, send_param: SendParam) -> MessagingFee:
        fee = await asyncio.to_thread(self._quoter.quote_send, chain_id, send_param)
        logger.debug("Quoted %s to eid %d: %s", send_param.amount_ld, send_param.dst_eid, fee)
        return fee