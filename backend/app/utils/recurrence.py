"""Recurrence rules for recurring transaction templates.

Pure date arithmetic, no database access:

* ``advance`` steps a date forward by one period of a pattern.
* ``MIN_ELAPSED_DAYS`` is the cheap pre-filter used when selecting due
  templates. It deliberately undershoots the true period; the exact
  next-date comparison made by the generator is authoritative.

Month and year steps can land on a day the target month does not have
(Jan 31 + 1 month, Feb 29 + 1 year). Two policies are supported:

* ``clamp``    -> last day of the target month (Jan 31 -> Feb 29/28,
  Feb 29 -> Feb 28)
* ``overflow`` -> spill the surplus days into the following month
  (Jan 31 -> Mar 2/3, Feb 29 -> Mar 1)

Each step starts from the stored watermark, so a clamped series drifts off
month-end (Jan 31 -> Feb 29 -> Mar 29) and an overflowed one drifts forward
(Jan 31 -> Mar 2 -> Apr 2).
"""

import calendar
import enum
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta


class RecurrencePattern(str, enum.Enum):
    """How often a template produces a transaction."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RolloverPolicy(str, enum.Enum):
    """What a month/year step does when the target day does not exist."""

    CLAMP = "clamp"
    OVERFLOW = "overflow"


class UnknownRecurrencePatternError(ValueError):
    """Raised when a template carries a pattern this module cannot step."""

    def __init__(self, pattern):
        self.pattern = pattern
        super().__init__(f"Unknown recurrence pattern: {pattern!r}")


# Minimum whole days since the watermark before a template is considered
MIN_ELAPSED_DAYS = {
    RecurrencePattern.WEEKLY: 1,
    RecurrencePattern.MONTHLY: 27,
    RecurrencePattern.YEARLY: 364,
}


def parse_pattern(pattern) -> RecurrencePattern:
    """Coerce a stored pattern value, raising UnknownRecurrencePatternError.

    Matching is exact, the same as the due-template query.
    """
    if isinstance(pattern, RecurrencePattern):
        return pattern
    try:
        return RecurrencePattern(pattern)
    except ValueError:
        raise UnknownRecurrencePatternError(pattern) from None


def _add_months(d: date, months: int, policy: RolloverPolicy) -> date:
    if policy == RolloverPolicy.CLAMP:
        # relativedelta clamps to the last valid day of the target month
        return d + relativedelta(months=months)

    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    days_in_month = calendar.monthrange(year, month)[1]
    if d.day <= days_in_month:
        return date(year, month, d.day)
    return date(year, month, 1) + timedelta(days=d.day - 1)


def advance(
    d: date,
    pattern,
    policy: RolloverPolicy = RolloverPolicy.CLAMP,
) -> date:
    """
    Return the occurrence one period after ``d``.

    Args:
        d: Date of the last occurrence (the template watermark)
        pattern: RecurrencePattern or its stored string value
        policy: Rollover policy for month/year steps

    Returns:
        Next occurrence date

    Raises:
        UnknownRecurrencePatternError: If ``pattern`` is not weekly/monthly/yearly
    """
    pattern = parse_pattern(pattern)
    policy = RolloverPolicy(policy)

    if pattern == RecurrencePattern.WEEKLY:
        return d + timedelta(weeks=1)
    if pattern == RecurrencePattern.MONTHLY:
        return _add_months(d, 1, policy)
    # YEARLY
    return _add_months(d, 12, policy)


def gate_cutoff(as_of: date, pattern: RecurrencePattern) -> date:
    """Latest watermark that passes the elapsed-time gate for ``pattern`` on ``as_of``."""
    return as_of - timedelta(days=MIN_ELAPSED_DAYS[pattern])


def passes_gate(last_generated: date, pattern, as_of: date) -> bool:
    """True when enough whole days have elapsed since ``last_generated``."""
    pattern = parse_pattern(pattern)
    return last_generated <= gate_cutoff(as_of, pattern)
