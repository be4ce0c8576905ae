"""Async runner that watches the destination chain until a bridged transfer lands."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable

from morpheus_rewards.bridge.detector import (
    BRIDGE_TIMEOUT_SECONDS,
    BridgeCompletionDetector,
    BridgeMonitorState,
    BridgeStatus,
)
from morpheus_rewards.config import Settings
from morpheus_rewards.data.interfaces import BalanceReader, ContractReadError
from morpheus_rewards.data.networks import get_chain
from morpheus_rewards.notifications import Notifier
from morpheus_rewards.protocol.units import format_units
from morpheus_rewards.scheduling import Sleep, maybe_await

logger = logging.getLogger(__name__)

BRIDGE_POLL_SECONDS = 60.0

SUBMITTED_MESSAGE = "Bridge transaction submitted! Tokens will arrive in 5-15 minutes."


class BridgeMonitor:
    """Polls one account's token balance on the destination chain.

    Call :meth:`start` once the source-chain transaction confirms.  The
    destination balance is read once straight away, before any polling,
    so a transfer that lands quickly is still measured against the
    pre-arrival balance.

    Parameters
    ----------
    balance_reader : BalanceReader
        Used for both the one-shot read and the polled reads.
    chain_id : int
        Destination chain.
    token, account : str
        Token contract and holder on the destination chain.
    notifier : Notifier
        Receives the submitted, completed and timed-out messages.
    on_balance_refresh : Callable, optional
        Invoked (sync or async) on completion so other balance views refetch.
    poll_interval, timeout : float
        Seconds between polls, and until monitoring gives up.
    sleep, clock :
        Injectable for tests; ``clock`` must be monotonic.
    """

    def __init__(
        self,
        balance_reader: BalanceReader,
        chain_id: int,
        token: str,
        account: str,
        notifier: Notifier,
        *,
        on_balance_refresh: Callable[[], Any] | None = None,
        poll_interval: float = BRIDGE_POLL_SECONDS,
        timeout: float = BRIDGE_TIMEOUT_SECONDS,
        token_decimals: int = 18,
        token_symbol: str = "MOR",
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self._reader = balance_reader
        self._chain_id = chain_id
        self._token = token
        self._account = account
        self._notifier = notifier
        self._on_balance_refresh = on_balance_refresh
        self._poll_interval = poll_interval
        self._token_decimals = token_decimals
        self._token_symbol = token_symbol
        self._sleep = sleep
        self._clock = clock
        self._detector = BridgeCompletionDetector(timeout)
        self._task: asyncio.Task | None = None

    @classmethod
    def from_settings(
        cls,
        balance_reader: BalanceReader,
        chain_id: int,
        token: str,
        account: str,
        notifier: Notifier,
        settings: Settings,
        **kwargs,
    ) -> "BridgeMonitor":
        """Monitor using the configured poll interval and timeout."""
        return cls(
            balance_reader,
            chain_id,
            token,
            account,
            notifier,
            poll_interval=settings.bridge_poll_seconds,
            timeout=settings.bridge_timeout_seconds,
            **kwargs,
        )

    @property
    def status(self) -> BridgeStatus:
        return self._detector.status

    @property
    def state(self) -> BridgeMonitorState:
        return self._detector.state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def chain_name(self) -> str:
        chain = get_chain(self._chain_id)
        return chain.name if chain is not None else f"chain {self._chain_id}"

    def submit(self, expected_amount: int) -> None:
        """The user signed a transfer; any session still polling is dropped."""
        self.cancel()
        self._detector.submit(expected_amount)

    def start(self, expected_amount: int | None = None) -> asyncio.Task:
        """Begin monitoring a confirmed transfer.

        ``expected_amount`` submits first; without it the amount from the
        last :meth:`submit` is used.
        """
        if expected_amount is not None:
            self.submit(expected_amount)
        elif self.running:
            raise RuntimeError("Monitor already running; submit a new transfer first")
        if self._detector.status is not BridgeStatus.SUBMITTED:
            raise RuntimeError("No submitted transfer to monitor")
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"bridge-monitor-{self._chain_id}"
        )
        return self._task

    def cancel(self) -> None:
        """Stop polling and the timeout together, and forget the transfer."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.info("Bridge monitor on %s cancelled", self.chain_name)
        self._detector.reset()

    async def aclose(self) -> None:
        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _read_balance(self) -> int:
        return await asyncio.to_thread(
            self._reader.balance_of, self._chain_id, self._token, self._account
        )

    async def _run(self) -> None:
        try:
            await self._watch()
        except Exception:
            logger.error("Bridge monitor on %s failed", self.chain_name, exc_info=True)
            self._detector.reset()
            self._notifier.error(
                f"Bridge tracking on {self.chain_name} stopped unexpectedly. "
                "Please check your balance manually."
            )

    async def _watch(self) -> None:
        try:
            initial = await self._read_balance()
        except ContractReadError as exc:
            logger.warning("Initial destination balance read failed", exc_info=True)
            self._detector.reset()
            self._notifier.error(
                f"Could not read your balance on {self.chain_name} to track the bridge: "
                f"{exc.cause_text}"
            )
            return

        self._detector.confirm(initial, self._clock())
        self._notifier.info(SUBMITTED_MESSAGE)
        expected = self._detector.state.monitored_amount

        while True:
            remaining = self._detector.deadline - self._clock()
            if remaining > 0:
                await self._sleep(min(self._poll_interval, remaining))
            if self._detector.check_timeout(self._clock()) is BridgeStatus.TIMED_OUT:
                self._notify_timed_out()
                return
            try:
                balance = await self._read_balance()
            except ContractReadError:
                logger.warning("Destination balance poll failed; retrying", exc_info=True)
                continue
            if self._detector.observe(balance, self._clock()) is BridgeStatus.COMPLETED:
                await self._complete(expected)
                return
            if self._detector.status is BridgeStatus.TIMED_OUT:
                self._notify_timed_out()
                return

    async def _complete(self, expected: int) -> None:
        if self._on_balance_refresh is not None:
            try:
                await maybe_await(self._on_balance_refresh())
            except Exception:
                logger.warning("Balance refresh callback failed", exc_info=True)
        amount = format_units(expected, self._token_decimals)
        self._notifier.success(
            f"Bridge complete! {amount} {self._token_symbol} arrived on {self.chain_name}."
        )

    def _notify_timed_out(self) -> None:
        minutes = int(self._detector.timeout // 60)
        self._notifier.info(
            f"Bridge not detected on {self.chain_name} within {minutes} minutes. "
            "Delivery can take longer; please check your balance manually."
        )
