"""Utility functions for the loan tracker.

This module provides helpers for parsing user input into Python data types and
for calendar arithmetic: adding months to a date and counting the whole months
between two dates. Month arithmetic follows calendar boundaries rather than
30-day buckets, so the day of the month matters.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, getcontext
from typing import Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

DateLike = Union[date, datetime]


def as_date(value: DateLike) -> date:
    """Normalize a ``datetime`` to its calendar ``date``; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_date(text: str) -> date:
    """Parse a ``YYYY-MM-DD`` or ``YYYY-MM`` string into a ``date``.

    Parameters
    ----------
    text: str
        The date string. When the day is omitted the first day of the month
        is used.

    Returns
    -------
    date
        The parsed date.

    Raises
    ------
    ValueError
        If the string is not a valid date.
    """
    try:
        parts = text.strip().split("-")
        if len(parts) not in (2, 3):
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        day = int(parts[2]) if len(parts) == 3 else 1
        return date(year, month, day)
    except ValueError as exc:
        raise ValueError(f"Invalid date string: {text}") from exc


def add_months(dt: DateLike, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    dt = as_date(dt)
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_between(start: DateLike, end: DateLike) -> int:
    """Count the whole calendar months from ``start`` to ``end``.

    A month is complete once ``add_months(start, n)`` no longer lies after
    ``end``: Jan 15 to Feb 14 is 0 months, Jan 15 to Feb 15 is 1. The result
    is negative when ``end`` precedes ``start``; callers clamp as needed.
    """
    start = as_date(start)
    end = as_date(end)
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and add_months(start, months) > end:
        months -= 1
    elif months < 0 and add_months(start, months) < end:
        months += 1
    return months


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails or the value is
    not finite ("nan", "inf").
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse a money amount with optional ``k``/``m`` suffixes.

    Accepts plain numbers ("30000"), thousands separators ("30,000") and
    shorthand such as "30k" meaning 30 000.
    """
    text = str(value).strip().lower().replace(",", "")
    factor = Decimal(1)
    if text.endswith("k"):
        factor = Decimal(1_000)
        text = text[:-1]
    elif text.endswith("m"):
        factor = Decimal(1_000_000)
        text = text[:-1]
    return decimal_from_str(text) * factor
