"""Output helpers for the loan tracker.

This module renders loan summaries and amortization schedules in a plain
tabular text format for the terminal.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .data_models import Loan, LoanSummary, ScheduleEntry


def print_loan_header(loan: Loan) -> None:
    """Print the identifying details of a stored loan."""
    print(f"Loan {loan.loan_id}" + ("" if loan.is_active else " (inactive)"))
    print(f"Vehicle            : {loan.vehicle_id}")
    if loan.lender_name:
        print(f"Lender             : {loan.lender_name}")
    print(f"Amount financed    : {loan.principal:.2f}")
    print(f"Down payment       : {loan.down_payment:.2f}")
    print(f"Interest rate      : {loan.annual_rate_percent:.2f}%")
    print(f"Term               : {loan.term_months} months")
    print(f"Start date         : {loan.start_date.isoformat()}")
    for payment in loan.extra_payments:
        note = f" ({payment.notes})" if payment.notes else ""
        print(f"Extra payment      : {payment.date.isoformat()} {payment.amount:.2f}{note}")
    if loan.notes:
        print(f"Notes              : {loan.notes}")


def print_summary(summary: LoanSummary) -> None:
    """Print a summary of loan metrics in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"As of              : {summary.as_of.isoformat()}")
    print(f"Monthly payment    : {summary.monthly_payment:.2f}")
    print(f"Current balance    : {summary.current_balance:.2f}")
    print(f"Principal paid     : {summary.principal_paid_to_date:.2f} ({summary.percent_paid:.1f}%)")
    print(f"Interest paid      : {summary.interest_paid_to_date:.2f}")
    print(f"Interest remaining : {summary.interest_remaining:.2f}")
    print(f"Total interest     : {summary.total_interest:.2f}")
    print(f"Total cost         : {summary.total_cost:.2f}")
    print(f"Months elapsed     : {summary.months_elapsed}")
    print(f"Months remaining   : {summary.months_remaining}")
    print(f"Payoff date        : {summary.payoff_date.isoformat()}")
    if summary.equity is not None:
        label = "Equity" if summary.equity >= 0 else "Negative equity"
        print(f"{label:19s}: {abs(summary.equity):.2f}")
    print("-" * 72)


def print_schedule(schedule: Iterable[ScheduleEntry], months_elapsed: Optional[int] = None) -> None:
    """Print the amortization schedule as a simple table.

    Parameters
    ----------
    schedule: Iterable[ScheduleEntry]
        The schedule entries to print.
    months_elapsed: int, optional
        When given, months up to this number are marked as paid.
    """
    headers = ["Month", "Date", "Payment", "Principal", "Interest", "Extra", "Balance"]
    if months_elapsed is not None:
        headers.append("Paid")
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.month_number),
            entry.date.isoformat(),
            f"{entry.payment:.2f}",
            f"{entry.principal_portion:.2f}",
            f"{entry.interest_portion:.2f}",
            f"{entry.extra_payment:.2f}",
            f"{entry.remaining_balance:.2f}",
        ]
        if months_elapsed is not None:
            row.append("Yes" if entry.month_number <= months_elapsed else "No")
        print("\t".join(row))
