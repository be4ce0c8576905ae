"""Tests for bridge transfer helpers and fee quoting."""

import asyncio
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from morpheus_rewards.bridge.transfer import (
    MessagingFee,
    QuoteDebouncer,
    SendParam,
    address_to_bytes32,
    build_send_args,
    build_send_param,
    format_native_fee,
    format_to_one_decimal,
    is_valid_recipient,
    validate_bridge_amount,
)
from morpheus_rewards.data.interfaces import BridgeQuoteProvider

RECIPIENT = "0x" + "Ab" * 20
ARBITRUM_EID = 30110


class TestRecipient:
    @pytest.mark.parametrize(
        "address, valid",
        [
            (RECIPIENT, True),
            ("0x" + "0" * 40, True),
            ("0x" + "0" * 39, False),
            ("ab" * 21, False),
            ("0x" + "zz" * 20, False),
            ("", False),
            (None, False),
        ],
    )
    def test_is_valid_recipient(self, address, valid) -> None:
        assert is_valid_recipient(address) is valid

    def test_bytes32_padding(self) -> None:
        encoded = address_to_bytes32(RECIPIENT)
        assert encoded == "0x" + "0" * 24 + "ab" * 20
        assert len(encoded) == 66

    def test_bytes32_rejects_bad_address(self) -> None:
        with pytest.raises(ValueError):
            address_to_bytes32("0x1234")


class TestSendParam:
    def test_no_slippage(self) -> None:
        param = build_send_param(ARBITRUM_EID, RECIPIENT, "1.5")
        assert param.dst_eid == ARBITRUM_EID
        assert param.amount_ld == 15 * 10**17
        assert param.min_amount_ld == param.amount_ld
        assert param.to == address_to_bytes32(RECIPIENT)
        assert (param.extra_options, param.compose_msg, param.oft_cmd) == (b"", b"", b"")

    @pytest.mark.parametrize("amount", ["0", "-1", "abc"])
    def test_rejects_bad_amount(self, amount) -> None:
        with pytest.raises(ValueError):
            build_send_param(ARBITRUM_EID, RECIPIENT, amount)

    def test_send_args_carry_native_fee(self) -> None:
        param = build_send_param(ARBITRUM_EID, RECIPIENT, "2")
        args = build_send_args(param, MessagingFee(7 * 10**14), RECIPIENT)
        assert args["function"] == "send"
        assert args["value"] == 7 * 10**14
        assert args["args"] == (param.as_tuple(), (7 * 10**14, 0), RECIPIENT)


class TestValidateAmount:
    @pytest.mark.parametrize(
        "amount, balance, error",
        [
            ("5", "10", None),
            ("10", "10", None),
            ("10.01", "10", "Amount exceeds your balance"),
            ("0", "10", "Enter a valid amount"),
            ("-1", "10", "Enter a valid amount"),
            ("abc", "10", "Enter a valid amount"),
            ("1", Decimal("0.5"), "Amount exceeds your balance"),
        ],
    )
    def test_validate(self, amount, balance, error) -> None:
        assert validate_bridge_amount(amount, balance) == error


class TestFormatting:
    @pytest.mark.parametrize(
        "value, expected",
        [("5.99", "5.9"), ("50", "50"), ("5.0", "5"), ("0.05", "0"), (Decimal("123.456"), "123.4")],
    )
    def test_one_decimal_truncates(self, value, expected) -> None:
        assert format_to_one_decimal(value) == expected

    @pytest.mark.parametrize(
        "fee_wei, expected",
        [
            (10**14, "< 0.001"),
            (0, "< 0.001"),
            (10**15, "0.0010"),
            (1_234_567 * 10**12, "1.2346"),
        ],
    )
    def test_native_fee(self, fee_wei, expected) -> None:
        assert format_native_fee(fee_wei) == expected


class TestQuoteDebouncer:
    @pytest.mark.asyncio
    async def test_quotes_after_delay(self) -> None:
        quoter = MagicMock(spec=BridgeQuoteProvider)
        quoter.quote_send.return_value = MessagingFee(5)
        param = build_send_param(ARBITRUM_EID, RECIPIENT, "1")

        fee = await QuoteDebouncer(quoter, delay=0.01).request(42161, param)

        assert fee == MessagingFee(5)
        quoter.quote_send.assert_called_once_with(42161, param)

    @pytest.mark.asyncio
    async def test_last_request_wins(self) -> None:
        quoter = MagicMock(spec=BridgeQuoteProvider)
        quoter.quote_send.return_value = MessagingFee(9)
        debouncer = QuoteDebouncer(quoter, delay=0.01)
        stale = build_send_param(ARBITRUM_EID, RECIPIENT, "1")
        fresh = build_send_param(ARBITRUM_EID, RECIPIENT, "2")

        first = asyncio.create_task(debouncer.request(1, stale))
        await asyncio.sleep(0)
        second = asyncio.create_task(debouncer.request(1, fresh))

        assert await first is None
        assert await second == MessagingFee(9)
        quoter.quote_send.assert_called_once_with(1, fresh)

    @pytest.mark.asyncio
    async def test_cancel_drops_pending_quote(self) -> None:
        quoter = MagicMock(spec=BridgeQuoteProvider)
        debouncer = QuoteDebouncer(quoter, delay=0.01)
        pending = asyncio.create_task(debouncer.request(1, SendParam(1, "0x", 1, 1)))
        await asyncio.sleep(0)
        debouncer.cancel()
        assert await pending is None
        quoter.quote_send.assert_not_called()
