"""Data models for the loan tracker.

This module defines dataclasses representing the entities the amortization
engine works with: the loan record itself, the one-off extra payments made
against it, and the values the engine derives (schedule entries, balance
snapshots and loan summaries). Loans are frozen snapshots; changing one means
building a new snapshot, so every computation sees a consistent set of fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple
from uuid import uuid4

from .exceptions import InvalidExtraPaymentError, InvalidLoanParametersError


# 100 years of monthly payments
MAX_TERM_MONTHS = 1200


def _new_id() -> str:
    return uuid4().hex


@dataclass(frozen=True)
class ExtraPayment:
    """A one-time additional payment applied to the principal.

    Attributes
    ----------
    date: date
        The date of the payment. It is applied to whichever amortization month
        the date falls in.
    amount: Decimal
        The amount applied to the principal on top of the regular payment.
    notes: str, optional
        Free text such as "Bonus payment".
    """

    date: date
    amount: Decimal
    notes: Optional[str] = None
    payment_id: str = field(default_factory=_new_id)

    def __post_init__(self) -> None:
        if not Decimal(self.amount).is_finite() or self.amount <= 0:
            raise InvalidExtraPaymentError(
                f"Extra payment amount must be positive; got {self.amount}"
            )


@dataclass(frozen=True)
class Loan:
    """A vehicle loan.

    ``monthly_payment`` is computed once when the loan is created (see
    :func:`new_loan`) and is never recomputed, even if other fields are
    replaced later. ``principal`` is the financed amount; ``down_payment`` is
    informational and only enters ``total_cost``.
    """

    principal: Decimal
    annual_rate_percent: Decimal  # annual nominal interest rate in percent
    term_months: int
    monthly_payment: Decimal
    start_date: date
    down_payment: Decimal = Decimal("0")
    extra_payments: Tuple[ExtraPayment, ...] = ()
    loan_id: str = field(default_factory=_new_id)
    vehicle_id: str = ""
    lender_name: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def monthly_rate(self) -> Decimal:
        """Monthly periodic rate as a fraction (5.25 %/yr -> 0.004375)."""
        return self.annual_rate_percent / Decimal(100) / Decimal(12)

    def with_extra_payment(self, payment: ExtraPayment) -> "Loan":
        """Return a copy of the loan with ``payment`` appended."""
        return replace(
            self,
            extra_payments=self.extra_payments + (payment,),
            updated_at=datetime.now(),
        )


@dataclass(frozen=True)
class ScheduleEntry:
    """One month of the amortization schedule.

    ``payment`` is the cash paid that month: the fixed monthly payment plus
    ``extra_payment``. ``principal_portion`` includes the extra payment.
    """

    month_number: int
    date: date
    payment: Decimal
    principal_portion: Decimal
    interest_portion: Decimal
    extra_payment: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class BalanceSnapshot:
    """State of a loan after replaying a number of months."""

    balance: Decimal
    interest_paid: Decimal
    principal_paid: Decimal
    months_replayed: int


@dataclass(frozen=True)
class LoanSummary:
    """Derived figures for a loan as of a given date."""

    as_of: date
    monthly_payment: Decimal
    months_elapsed: int
    months_remaining: int
    payoff_date: date
    current_balance: Decimal
    interest_paid_to_date: Decimal
    principal_paid_to_date: Decimal
    total_interest: Decimal
    total_cost: Decimal
    interest_remaining: Decimal
    percent_paid: Decimal
    equity: Optional[Decimal] = None


def new_loan(
    principal: Decimal,
    annual_rate_percent: Decimal,
    term_months: int,
    start_date: date,
    *,
    down_payment: Decimal = Decimal("0"),
    vehicle_id: str = "",
    lender_name: Optional[str] = None,
    notes: Optional[str] = None,
    extra_payments: Tuple[ExtraPayment, ...] = (),
) -> Loan:
    """Validate loan inputs and build a ``Loan`` with its payment frozen.

    Raises
    ------
    InvalidLoanParametersError
        If an amount is not finite, the principal or term is not positive,
        the term exceeds ``MAX_TERM_MONTHS``, or the rate or down payment is
        negative.
    """
    # imported here to keep the engine free to depend on these models
    from .engine import compute_monthly_payment

    amounts = (("Principal", principal), ("Interest rate", annual_rate_percent), ("Down payment", down_payment))
    for name, value in amounts:
        if not Decimal(value).is_finite():
            raise InvalidLoanParametersError(f"{name} must be a finite number; got {value}")
    if principal <= 0:
        raise InvalidLoanParametersError(f"Principal must be positive; got {principal}")
    if term_months <= 0:
        raise InvalidLoanParametersError(f"Term must be positive; got {term_months}")
    if term_months > MAX_TERM_MONTHS:
        raise InvalidLoanParametersError(
            f"Term must not exceed {MAX_TERM_MONTHS} months; got {term_months}"
        )
    if annual_rate_percent < 0:
        raise InvalidLoanParametersError(
            f"Interest rate must not be negative; got {annual_rate_percent}"
        )
    if down_payment < 0:
        raise InvalidLoanParametersError(
            f"Down payment must not be negative; got {down_payment}"
        )

    now = datetime.now()
    return Loan(
        principal=principal,
        annual_rate_percent=annual_rate_percent,
        term_months=term_months,
        monthly_payment=compute_monthly_payment(principal, annual_rate_percent, term_months),
        start_date=start_date,
        down_payment=down_payment,
        extra_payments=tuple(extra_payments),
        vehicle_id=vehicle_id,
        lender_name=lender_name,
        notes=notes,
        created_at=now,
        updated_at=now,
    )
