"""DateTime utilities and the injectable clock.

All wall-clock reads go through ``utc_now`` so that code taking a ``clock``
argument can be driven by a fixed timestamp in tests.
"""

from datetime import date, datetime, timezone
from typing import Callable

# A clock returns the current UTC time as an offset-naive datetime
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """
    Get current UTC datetime without timezone info (offset-naive).

    Offset-naive values match the TIMESTAMP WITHOUT TIME ZONE columns used by
    the models.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today(clock: Clock = utc_now) -> date:
    """Calendar date of ``clock()`` in UTC."""
    return clock().date()


def fixed_clock(moment: datetime) -> Clock:
    """
    Clock that always returns ``moment``.

    Example:
        >>> clock = fixed_clock(datetime(2024, 2, 20, 9, 0))
        >>> clock().date()
        datetime.date(2024, 2, 20)
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return lambda: moment


# Lambda version for SQLAlchemy default/onupdate parameters
utc_now_lambda = lambda: datetime.now(timezone.utc).replace(tzinfo=None)
