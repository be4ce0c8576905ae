"""Lock duration conversion, validation and power factor formatting.

Two time systems live side by side here and must not be mixed:

* Contract-facing durations (:func:`duration_to_seconds`) use protocol
  unit lengths (30-day months, 365-day years and the literal
  ``SIX_YEAR_LOCK_SECONDS`` for a 6-year lock) plus the edition's safety
  buffer.
* User-facing dates (:func:`calculate_unlock_date`) use real calendar
  arithmetic, so "3 months" from Jan 31 lands on Apr 30.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

import numpy as np
import pandas as pd

from morpheus_rewards.protocol.editions import (
    DAYS_PER_MONTH,
    DAYS_PER_YEAR,
    MULTIPLIER_SCALE,
    POWER_FACTOR_GROWTH_K,
    REWARDS_DIVIDER,
    SECONDS_PER_DAY,
    SECONDS_PER_MINUTE,
    SIX_YEAR_LOCK_SECONDS,
    PowerFactorEdition,
    default_edition,
)
from morpheus_rewards.protocol.units import parse_int_prefix

logger = logging.getLogger(__name__)

FALLBACK_POWER_FACTOR = "x1.0"

_MINUTES_PER_MONTH = DAYS_PER_MONTH * 24 * 60
_ONE_DECIMAL = Decimal("0.1")


class TimeUnit(str, Enum):
    MINUTES = "minutes"
    DAYS = "days"
    MONTHS = "months"
    YEARS = "years"


@dataclass(frozen=True)
class LockDuration:
    """A user-chosen commitment period (``value > 0``)."""

    value: int
    unit: TimeUnit

    def __post_init__(self) -> None:
        if self.value <= 0:
            raise ValueError(f"Lock duration must be positive, got {self.value}")

    @classmethod
    def parse(cls, value: object, unit: str | TimeUnit) -> "LockDuration | None":
        """Build from raw form input, or ``None`` when either part is unusable."""
        n = parse_int_prefix(value)
        time_unit = _coerce_unit(unit)
        if n is None or n <= 0 or time_unit is None:
            return None
        return cls(value=n, unit=time_unit)

    @property
    def total_months(self) -> Decimal:
        return _total_months(self.value, self.unit)


@dataclass(frozen=True)
class LockValidation:
    """Outcome of validating a lock duration while the user types."""

    is_valid: bool
    error_message: str | None = None
    warning_message: str | None = None


@dataclass(frozen=True)
class RecommendedLockPeriod:
    value: str
    unit: TimeUnit
    description: str
    power_factor_range: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _coerce_unit(unit: str | TimeUnit) -> TimeUnit | None:
    try:
        return TimeUnit(unit)
    except ValueError:
        return None


def _total_months(value: int, unit: TimeUnit) -> Decimal:
    """Unit-independent length in protocol months."""
    if unit is TimeUnit.YEARS:
        return Decimal(value * 12)
    if unit is TimeUnit.MONTHS:
        return Decimal(value)
    if unit is TimeUnit.DAYS:
        return Decimal(value) / DAYS_PER_MONTH
    return Decimal(value) / _MINUTES_PER_MONTH


def _unit_allowed(unit: TimeUnit, edition: PowerFactorEdition) -> bool:
    return unit is not TimeUnit.MINUTES or edition.supports_minutes


# ---------------------------------------------------------------------------
# Contract-facing conversion
# ---------------------------------------------------------------------------

def duration_to_seconds(
    value: object,
    unit: str | TimeUnit,
    *,
    edition: PowerFactorEdition | None = None,
) -> int:
    """Convert a lock duration into the second count the contract expects.

    Args:
        value: Duration value as typed by the user (``"6"``).
        unit: One of :class:`TimeUnit`.
        edition: Protocol edition; defaults to the configured one.

    Returns:
        Seconds including the edition's safety buffer, or ``0`` when the
        input is not a positive integer or the unit is unsupported.  ``0``
        means "no duration" and must be checked by the caller.
    """
    edition = edition or default_edition()
    n = parse_int_prefix(value)
    time_unit = _coerce_unit(unit)
    if n is None or n <= 0 or time_unit is None or not _unit_allowed(time_unit, edition):
        return 0

    if time_unit is TimeUnit.MINUTES:
        seconds = n * SECONDS_PER_MINUTE
    elif time_unit is TimeUnit.DAYS:
        seconds = n * SECONDS_PER_DAY
    elif time_unit is TimeUnit.MONTHS:
        seconds = n * DAYS_PER_MONTH * SECONDS_PER_DAY
    elif n == 6:
        seconds = SIX_YEAR_LOCK_SECONDS
        logger.debug("6-year lock: using fixed %d seconds", SIX_YEAR_LOCK_SECONDS)
    else:
        seconds = n * DAYS_PER_YEAR * SECONDS_PER_DAY

    return seconds + edition.safety_buffer_seconds


# ---------------------------------------------------------------------------
# Display-only calendar arithmetic
# ---------------------------------------------------------------------------

def calculate_unlock_date(
    value: object,
    unit: str | TimeUnit,
    start_date: datetime | None = None,
    *,
    edition: PowerFactorEdition | None = None,
) -> datetime | None:
    """Calendar date on which a lock starting at ``start_date`` ends.

    Month and year steps follow the calendar (end-of-month clamped, leap
    years respected).  Returns ``None`` for invalid input.
    """
    edition = edition or default_edition()
    lock = LockDuration.parse(value, unit)
    if lock is None or not _unit_allowed(lock.unit, edition):
        return None

    start = pd.Timestamp(start_date if start_date is not None else datetime.now())
    unlock = start + pd.DateOffset(**{lock.unit.value: lock.value})
    return unlock.to_pydatetime()


def format_unlock_date(unlock_date: datetime) -> str:
    """``datetime(2025, 3, 15)`` → ``"Mar 15, 2025"``."""
    return f"{unlock_date:%b} {unlock_date.day}, {unlock_date.year}"


# ---------------------------------------------------------------------------
# Multiplier formatting
# ---------------------------------------------------------------------------

def format_power_factor(
    raw_multiplier: int,
    *,
    edition: PowerFactorEdition | None = None,
) -> str:
    """Convert a raw contract multiplier into ``"x<n>.<d>"``.

    ``display = raw / 10**21 / 10_000``, capped at the edition maximum.
    Zero or negative readings surface as ``"x0.0"``.  Any conversion
    failure returns ``"x1.0"``; this value is display-only.
    """
    edition = edition or default_edition()
    try:
        value = Decimal(int(raw_multiplier)) / (Decimal(10) ** MULTIPLIER_SCALE) / REWARDS_DIVIDER
        capped = min(value, Decimal(str(edition.max_power_factor)))
        if capped <= 0:
            capped = Decimal(0)
        return f"x{capped.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)}"
    except (ArithmeticError, ValueError, TypeError):
        logger.warning("Could not format power factor %r", raw_multiplier, exc_info=True)
        return FALLBACK_POWER_FACTOR


def parse_power_factor(text: str | None) -> Decimal | None:
    """Numeric value of a ``"x2.5"`` string.

    ``None`` for placeholders such as ``"Loading..."``, anything containing
    ``"Error"``, and non-positive or non-numeric values.  Callers treat
    ``None`` as "not ready", never as 1.0.
    """
    if text is None:
        return None
    s = str(text).strip()
    if not s or "error" in s.lower() or s.lower().startswith("loading"):
        return None
    if s[0] in "xX":
        s = s[1:]
    try:
        value = Decimal(s)
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_lock_duration(
    value: object,
    unit: str | TimeUnit,
    *,
    edition: PowerFactorEdition | None = None,
) -> LockValidation:
    """Validate a lock duration.

    Rejects non-positive or non-numeric values and anything longer than
    the edition's maximum lock.  Durations shorter than the activation
    threshold are accepted with a warning: they carry a flat 1.0x
    multiplier.
    """
    edition = edition or default_edition()
    n = parse_int_prefix(value)
    if n is None or n <= 0:
        return LockValidation(False, error_message="Please enter a valid positive number")

    time_unit = _coerce_unit(unit)
    if time_unit is None:
        return LockValidation(False, error_message=f"Unsupported time unit: {unit}")
    if not _unit_allowed(time_unit, edition):
        return LockValidation(
            False,
            error_message=f"Minutes are not supported by protocol edition {edition.name}",
        )

    max_message = f"Maximum lock period is {edition.max_lock_years} years"
    if time_unit is TimeUnit.YEARS and n > edition.max_lock_years:
        return LockValidation(False, error_message=max_message)

    months = _total_months(n, time_unit)
    if months > edition.max_lock_years * 12:
        return LockValidation(False, error_message=max_message)

    if months < edition.min_activation_months:
        return LockValidation(
            True,
            warning_message=(
                f"Power factor starts after {edition.min_activation_months} months. "
                "This period will have 1.0x multiplier."
            ),
        )

    return LockValidation(True)


def will_activate_power_factor(
    value: object,
    unit: str | TimeUnit,
    *,
    edition: PowerFactorEdition | None = None,
) -> bool:
    """True when the lock is long enough to earn more than 1.0x."""
    edition = edition or default_edition()
    lock = LockDuration.parse(value, unit)
    if lock is None:
        return False
    return lock.total_months >= edition.min_activation_months


def validate_max_years(value: object, *, edition: PowerFactorEdition | None = None) -> bool:
    """False only for a positive year count above the maximum."""
    edition = edition or default_edition()
    n = parse_int_prefix(value)
    if n is None or n <= 0:
        return True
    return n <= edition.max_lock_years


def get_min_allowed_value(
    unit: str | TimeUnit,
    *,
    edition: PowerFactorEdition | None = None,
) -> int:
    edition = edition or default_edition()
    time_unit = TimeUnit(unit)
    if time_unit is TimeUnit.DAYS:
        return edition.min_deposit_lock_days
    if time_unit is TimeUnit.MINUTES:
        return edition.min_deposit_lock_days * 24 * 60
    return 1


def get_max_allowed_value(
    unit: str | TimeUnit,
    *,
    edition: PowerFactorEdition | None = None,
) -> int:
    """Largest value :func:`validate_lock_duration` accepts for ``unit``."""
    edition = edition or default_edition()
    time_unit = TimeUnit(unit)
    max_months = edition.max_lock_years * 12
    if time_unit is TimeUnit.YEARS:
        return edition.max_lock_years
    if time_unit is TimeUnit.MONTHS:
        return max_months
    if time_unit is TimeUnit.DAYS:
        return max_months * DAYS_PER_MONTH
    return max_months * _MINUTES_PER_MONTH


# ---------------------------------------------------------------------------
# Client-side estimate
# ---------------------------------------------------------------------------

def estimate_power_factor(
    months: float,
    *,
    edition: PowerFactorEdition | None = None,
) -> float:
    """Exponential approach from 1.0 at activation to the max at the max lock."""
    edition = edition or default_edition()
    activation = edition.min_activation_months
    max_months = edition.max_lock_years * 12
    if months < activation:
        return 1.0
    progress = min(1.0, (months - activation) / (max_months - activation))
    k = POWER_FACTOR_GROWTH_K
    growth = (1.0 - math.exp(-k * progress)) / (1.0 - math.exp(-k))
    return min(1.0 + (edition.max_power_factor - 1.0) * growth, edition.max_power_factor)


def calculate_power_factor_from_duration(
    value: object,
    unit: str | TimeUnit,
    *,
    edition: PowerFactorEdition | None = None,
) -> str:
    """Rough client-side power factor used when no contract read is available.

    Not derived from the contract's formula; the two disagree away from
    the endpoints.  Both end at exactly the edition maximum for the
    maximum lock.
    """
    edition = edition or default_edition()
    lock = LockDuration.parse(value, unit)
    if lock is None or not _unit_allowed(lock.unit, edition):
        return FALLBACK_POWER_FACTOR
    estimate = estimate_power_factor(float(lock.total_months), edition=edition)
    return f"x{estimate:.1f}"


def power_factor_curve(
    n_points: int = 200,
    *,
    edition: PowerFactorEdition | None = None,
) -> pd.DataFrame:
    """Client-side power factor over the whole lock range.

    Returns:
        DataFrame with columns: months, power_factor
    """
    edition = edition or default_edition()
    months = np.linspace(0, edition.max_lock_years * 12, n_points)
    factors = [estimate_power_factor(float(m), edition=edition) for m in months]
    return pd.DataFrame({"months": months, "power_factor": factors})


def get_recommended_lock_periods(
    *,
    edition: PowerFactorEdition | None = None,
) -> list[RecommendedLockPeriod]:
    edition = edition or default_edition()
    activation = str(edition.min_activation_months)
    max_years = str(edition.max_lock_years)

    def _range(value: str, unit: TimeUnit) -> str:
        return "~" + calculate_power_factor_from_duration(value, unit, edition=edition)

    return [
        RecommendedLockPeriod(
            activation, TimeUnit.MONTHS, "Minimum for power factor activation",
            _range(activation, TimeUnit.MONTHS),
        ),
        RecommendedLockPeriod(
            "1", TimeUnit.YEARS, "Balanced commitment with good benefits",
            _range("1", TimeUnit.YEARS),
        ),
        RecommendedLockPeriod(
            "2", TimeUnit.YEARS, "High commitment with strong benefits",
            _range("2", TimeUnit.YEARS),
        ),
        RecommendedLockPeriod(
            max_years, TimeUnit.YEARS,
            f"Maximum benefits (contract maximum x{edition.max_power_factor})",
            f"x{edition.max_power_factor}",
        ),
    ]
