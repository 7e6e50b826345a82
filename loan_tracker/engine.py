"""Core calculation engine for the loan tracker.

This module implements fixed-rate, monthly-compounding amortization for the
loans in a garage: sizing the monthly payment, replaying the schedule up to a
point in time to recover the balance and the interest paid so far, and
building the full month-by-month schedule. One-off extra payments reduce the
principal in the month their date falls in.

Every function here is pure. Functions that depend on the current date take
``now`` explicitly instead of reading the clock.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, getcontext
from typing import Dict, Iterator, List, Optional, Tuple

from .data_models import BalanceSnapshot, Loan, LoanSummary, ScheduleEntry
from .logging import get_logger
from .utils import DateLike, add_months, as_date, months_between

getcontext().prec = 28  # increase precision for financial calculations

logger = get_logger(__name__)

ZERO = Decimal("0")


def compute_monthly_payment(principal: Decimal, annual_rate_percent: Decimal, term_months: int) -> Decimal:
    """Return the fixed monthly payment that amortizes a loan.

    The formula is:

        payment = P * (r * (1 + r)^n) / ((1 + r)^n - 1)

    where ``P`` is the principal, ``r`` is the monthly rate
    (``annual_rate_percent / 100 / 12``) and ``n`` is the number of payments.
    When the rate is zero the payment is ``P / n``. A loan that is not yet
    configured (principal or term not positive) has a payment of zero.
    """
    if principal <= 0 or term_months <= 0:
        return ZERO
    rate_per_month = Decimal(annual_rate_percent) / Decimal(100) / Decimal(12)
    if rate_per_month == 0:
        return Decimal(principal) / Decimal(term_months)
    factor = (1 + rate_per_month) ** term_months
    return principal * (rate_per_month * factor) / (factor - 1)


def months_elapsed(start_date: DateLike, now: DateLike) -> int:
    """Whole calendar months from ``start_date`` to ``now``, never negative."""
    return max(months_between(start_date, now), 0)


def month_index_of(start_date: DateLike, event_date: DateLike) -> int:
    """Map a date onto a 0-based schedule month index.

    An event in the loan's first payment period maps to 0. Dates before the
    start clamp to 0; dates past the term are returned as is and never match.
    """
    return max(months_between(start_date, event_date), 0)


def months_remaining(term_months: int, elapsed: int) -> int:
    return max(term_months - elapsed, 0)


def payoff_date(start_date: DateLike, term_months: int) -> date:
    """Nominal payoff date: ``term_months`` calendar months after the start."""
    return add_months(start_date, term_months)


def extra_payments_by_month(loan: Loan) -> Dict[int, Decimal]:
    """Total extra payment per schedule month index.

    Several extra payments falling in the same month are summed.
    """
    mapping: Dict[int, Decimal] = {}
    for payment in loan.extra_payments:
        index = month_index_of(loan.start_date, payment.date)
        mapping[index] = mapping.get(index, ZERO) + payment.amount
    return mapping


def _iter_months(loan: Loan, months: int) -> Iterator[Tuple[int, Decimal, Decimal, Decimal, Decimal]]:
    """Step the loan forward month by month.

    Yields ``(month_index, interest, principal_portion, extra, balance)`` for
    each month in ``0 .. months - 1``, where ``balance`` is the unclamped
    balance after the payment. Stops early once the balance reaches zero.
    """
    rate_per_month = loan.monthly_rate
    extras = extra_payments_by_month(loan)
    balance = loan.principal
    for month in range(months):
        if balance <= 0:
            break
        interest = balance * rate_per_month
        extra = extras.get(month, ZERO)
        principal_portion = loan.monthly_payment - interest + extra
        balance -= principal_portion
        yield month, interest, principal_portion, extra, balance


def replay_balance(loan: Loan, through_month: int) -> BalanceSnapshot:
    """Replay the schedule for months ``0 .. through_month - 1``.

    Returns the balance (floored at zero), the interest accumulated along the
    way and the principal retired so far. Replay stops early once the loan is
    paid off, so an already-retired loan accrues nothing further.
    """
    balance = loan.principal
    interest_paid = ZERO
    replayed = 0
    for month, interest, _, _, balance in _iter_months(loan, through_month):
        interest_paid += interest
        replayed = month + 1
    balance = max(balance, ZERO)
    return BalanceSnapshot(
        balance=balance,
        interest_paid=interest_paid,
        principal_paid=loan.principal - balance,
        months_replayed=replayed,
    )


def _replay_to(loan: Loan, now: DateLike) -> BalanceSnapshot:
    return replay_balance(loan, months_elapsed(loan.start_date, now))


def current_balance(loan: Loan, now: DateLike) -> Decimal:
    """Remaining balance after the regular and extra payments made by ``now``."""
    return _replay_to(loan, now).balance


def interest_paid_to_date(loan: Loan, now: DateLike) -> Decimal:
    return _replay_to(loan, now).interest_paid


def principal_paid_to_date(loan: Loan, now: DateLike) -> Decimal:
    return _replay_to(loan, now).principal_paid


def total_interest(loan: Loan) -> Decimal:
    """Nominal interest over the full term.

    Extra payments are not reflected here; the interest they save only shows
    up in :func:`interest_paid_to_date` and the schedule.
    """
    return loan.monthly_payment * loan.term_months - loan.principal


def total_cost(loan: Loan) -> Decimal:
    return loan.principal + total_interest(loan) + loan.down_payment


def amortization_schedule(loan: Loan) -> List[ScheduleEntry]:
    """Build the month-by-month schedule from month 1 to payoff.

    The schedule has at most ``term_months`` entries and ends early in the
    first month the balance reaches zero. Each call recomputes from scratch.
    """
    schedule: List[ScheduleEntry] = []
    for month, interest, principal_portion, extra, balance in _iter_months(loan, loan.term_months):
        schedule.append(
            ScheduleEntry(
                month_number=month + 1,
                date=add_months(loan.start_date, month + 1),
                payment=loan.monthly_payment + extra,
                principal_portion=principal_portion,
                interest_portion=interest,
                extra_payment=extra,
                remaining_balance=max(balance, ZERO),
            )
        )
    logger.debug(
        "Built %d-month schedule for loan %s (term %d)",
        len(schedule),
        loan.loan_id,
        loan.term_months,
    )
    return schedule


def summarize_loan(loan: Loan, now: DateLike, vehicle_value: Optional[Decimal] = None) -> LoanSummary:
    """Collect the derived figures for a loan as of ``now``.

    Parameters
    ----------
    loan: Loan
        The loan snapshot.
    now: date
        Reference date for the to-date figures.
    vehicle_value: Decimal, optional
        Current value of the financed vehicle. When given, ``equity`` is the
        value minus the current balance and may be negative.
    """
    elapsed = months_elapsed(loan.start_date, now)
    snapshot = replay_balance(loan, elapsed)
    nominal_interest = total_interest(loan)
    if loan.principal > 0:
        percent_paid = snapshot.principal_paid / loan.principal * 100
    else:
        percent_paid = ZERO
    return LoanSummary(
        as_of=as_date(now),
        monthly_payment=loan.monthly_payment,
        months_elapsed=elapsed,
        months_remaining=months_remaining(loan.term_months, elapsed),
        payoff_date=payoff_date(loan.start_date, loan.term_months),
        current_balance=snapshot.balance,
        interest_paid_to_date=snapshot.interest_paid,
        principal_paid_to_date=snapshot.principal_paid,
        total_interest=nominal_interest,
        total_cost=total_cost(loan),
        interest_remaining=max(nominal_interest - snapshot.interest_paid, ZERO),
        percent_paid=percent_paid,
        equity=None if vehicle_value is None else vehicle_value - snapshot.balance,
    )
