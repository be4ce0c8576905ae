"""Fire-and-forget user notifications."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class NotificationAction:
    """Optional button attached to a notification."""

    label: str
    on_click: Callable[[], None]


class Notifier(ABC):
    """Toast-style notification sink."""

    @abstractmethod
    def success(self, message: str, action: NotificationAction | None = None) -> None:
        """Report a completed operation."""

    @abstractmethod
    def error(self, message: str, action: NotificationAction | None = None) -> None:
        """Report a failed operation."""

    @abstractmethod
    def info(self, message: str, action: NotificationAction | None = None) -> None:
        """Report something the user should know that is not a failure."""


class LoggingNotifier(Notifier):
    """Writes notifications to the log (CLI and headless use)."""

    def __init__(self, name: str = "morpheus_rewards.notify") -> None:
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, message: str, action: NotificationAction | None) -> None:
        if action is not None:
            self._logger.log(level, "%s [%s]", message, action.label)
        else:
            self._logger.log(level, "%s", message)

    def success(self, message: str, action: NotificationAction | None = None) -> None:
        self._emit(logging.INFO, message, action)

    def error(self, message: str, action: NotificationAction | None = None) -> None:
        self._emit(logging.ERROR, message, action)

    def info(self, message: str, action: NotificationAction | None = None) -> None:
        self._emit(logging.INFO, message, action)
