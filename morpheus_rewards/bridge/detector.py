"""Bridge completion detection as a pure state machine.

::

    idle ──submit──▶ submitted ──confirm──▶ monitoring ──observe──▶ completed
                                                 └──check_timeout──▶ timed_out

Times are plain floats (seconds) supplied by the caller; nothing here
sleeps or reads a clock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

BRIDGE_TIMEOUT_SECONDS = 600.0
# Completion tolerance, in percent of the expected amount
TOLERANCE_PERCENT = 1


class BridgeStatus(str, Enum):
    IDLE = "idle"
    SUBMITTED = "submitted"
    MONITORING = "monitoring"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class BridgeMonitorState:
    is_monitoring: bool = False
    initial_destination_balance: int | None = None
    monitored_amount: int | None = None


def completion_threshold(expected_amount: int) -> int:
    """Smallest balance increase that counts as arrival (expected minus 1%)."""
    return expected_amount - expected_amount * TOLERANCE_PERCENT // 100


def is_transfer_complete(initial_balance: int, current_balance: int, expected_amount: int) -> bool:
    return current_balance - initial_balance >= completion_threshold(expected_amount)


class BridgeCompletionDetector:
    """Tracks one transfer at a time; a new :meth:`submit` supersedes the old one."""

    def __init__(self, timeout: float = BRIDGE_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout
        self._status = BridgeStatus.IDLE
        self._expected: int | None = None
        self._initial: int | None = None
        self._started_at: float | None = None
        self._last_balance: int | None = None

    @property
    def status(self) -> BridgeStatus:
        return self._status

    @property
    def state(self) -> BridgeMonitorState:
        if self._status is not BridgeStatus.MONITORING:
            return BridgeMonitorState()
        return BridgeMonitorState(
            is_monitoring=True,
            initial_destination_balance=self._initial,
            monitored_amount=self._expected,
        )

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def started_at(self) -> float | None:
        return self._started_at

    @property
    def deadline(self) -> float | None:
        if self._started_at is None:
            return None
        return self._started_at + self._timeout

    @property
    def last_balance(self) -> int | None:
        return self._last_balance

    def submit(self, expected_amount: int) -> None:
        """The user signed a transfer of ``expected_amount`` (smallest units)."""
        if expected_amount <= 0:
            raise ValueError(f"Expected amount must be positive, got {expected_amount}")
        if self._status in (BridgeStatus.SUBMITTED, BridgeStatus.MONITORING):
            logger.info("New bridge transfer supersedes the one in %s", self._status.value)
        self._reset()
        self._status = BridgeStatus.SUBMITTED
        self._expected = expected_amount

    def confirm(self, initial_balance: int, now: float) -> None:
        """Source transaction confirmed; ``initial_balance`` is the one-shot destination read."""
        if self._status is not BridgeStatus.SUBMITTED:
            raise RuntimeError(f"Cannot confirm a transfer in state {self._status.value}")
        self._initial = initial_balance
        self._last_balance = initial_balance
        self._started_at = now
        self._status = BridgeStatus.MONITORING
        logger.info(
            "Monitoring bridge: expecting %d on top of %d", self._expected, initial_balance
        )

    def observe(self, balance: int, now: float) -> BridgeStatus:
        """Feed a polled destination balance; returns the resulting status."""
        if self._status is not BridgeStatus.MONITORING:
            return self._status
        self._last_balance = balance
        if is_transfer_complete(self._initial, balance, self._expected):
            logger.info("Bridge complete: balance %d -> %d", self._initial, balance)
            self._finish(BridgeStatus.COMPLETED)
            return self._status
        return self.check_timeout(now)

    def check_timeout(self, now: float) -> BridgeStatus:
        if self._status is BridgeStatus.MONITORING and now - self._started_at >= self._timeout:
            logger.info("Bridge not detected after %.0f s", now - self._started_at)
            self._finish(BridgeStatus.TIMED_OUT)
        return self._status

    def reset(self) -> None:
        """Back to idle, dropping any transfer in progress."""
        self._reset()

    def _finish(self, status: BridgeStatus) -> None:
        self._reset()
        self._status = status

    def _reset(self) -> None:
        self._status = BridgeStatus.IDLE
        self._expected = None
        self._initial = None
        self._started_at = None
