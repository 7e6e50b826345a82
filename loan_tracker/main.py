"""Command-line interface for the loan tracker.

This module uses the ``click`` library to implement a multi-command
interface. Users can size a monthly payment, print the summary or the full
amortization schedule of an ad-hoc loan, and keep track of stored loans and
the extra payments made against them. Schedules can be exported to JSON/CSV
files.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

import click

from .config import LoanTrackerConfig
from .data_models import MAX_TERM_MONTHS, ExtraPayment, Loan, new_loan
from .engine import amortization_schedule, compute_monthly_payment, months_elapsed, summarize_loan
from .exceptions import LoanTrackerError
from .formatter import print_loan_header, print_schedule, print_summary
from .logging import get_logger, setup_logging
from .serialization import export_to_csv, export_to_json
from .store import LoanStore
from .utils import decimal_from_str, parse_amount, parse_date

logger = get_logger(__name__)

MAX_ROWS = 120
TERM_TYPE = click.IntRange(max=MAX_TERM_MONTHS)


def _amount(value: str) -> Decimal:
    try:
        return parse_amount(value)
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def _rate(value: float) -> Decimal:
    try:
        return decimal_from_str(str(value))
    except ValueError:
        raise click.BadParameter(f"Invalid interest rate: {value}")


def _date(value: str) -> date:
    try:
        return parse_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def parse_extra_strings(values: Tuple[str, ...]) -> List[ExtraPayment]:
    """Parse ``YYYY-MM-DD:AMOUNT[:NOTE]`` strings into extra payments."""
    payments: List[ExtraPayment] = []
    for item in values:
        parts = item.split(":", 2)
        if len(parts) < 2:
            raise click.BadParameter(
                f"Extra payment must be in YYYY-MM-DD:AMOUNT[:NOTE] format; got {item}"
            )
        note = parts[2] if len(parts) == 3 and parts[2] else None
        try:
            payments.append(ExtraPayment(date=_date(parts[0]), amount=_amount(parts[1]), notes=note))
        except LoanTrackerError as exc:
            raise click.BadParameter(str(exc))
    return payments


def build_loan_from_options(
    principal: str,
    rate: float,
    term: int,
    start_date: str,
    down_payment: Optional[str],
    extra: Tuple[str, ...],
    vehicle_id: str = "",
    lender: Optional[str] = None,
    notes: Optional[str] = None,
) -> Loan:
    try:
        return new_loan(
            _amount(principal),
            _rate(rate),
            term,
            _date(start_date),
            down_payment=_amount(down_payment) if down_payment else decimal_from_str("0"),
            vehicle_id=vehicle_id,
            lender_name=lender,
            notes=notes,
            extra_payments=tuple(parse_extra_strings(extra)),
        )
    except LoanTrackerError as exc:
        raise click.BadParameter(str(exc))


def loan_options(func: Callable) -> Callable:
    """Attach the options describing a loan to a command."""
    decorators = [
        click.option("--principal", "-p", "principal", required=True, help="Amount financed"),
        click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=TERM_TYPE, help="Loan term in months"),
        click.option("--start-date", "-s", "start_date", required=True, help="Loan start date (YYYY-MM-DD)"),
        click.option("--down-payment", "-d", "down_payment", help="Down payment amount"),
        click.option("--extra", "extra", multiple=True, help="Extra payment in YYYY-MM-DD:AMOUNT[:NOTE] format"),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Turn loan tracker errors into click errors with a clean message."""
    try:
        yield
    except LoanTrackerError as exc:
        raise click.ClickException(str(exc))


def _config(ctx: click.Context) -> LoanTrackerConfig:
    return ctx.obj["config"]


def _store(ctx: click.Context) -> LoanStore:
    if "store" not in ctx.obj:
        logger.debug("Opening loan store at %s", _config(ctx).database_url)
        with reporting_errors():
            ctx.obj["store"] = LoanStore(_config(ctx).database_url)
    return ctx.obj["store"]


def _as_of(ctx: click.Context, as_of: Optional[str]) -> date:
    return _date(as_of) if as_of else _config(ctx).today()


@click.group()
@click.option("--database-url", "database_url", help="SQLAlchemy URL of the loan database")
@click.option("--log-level", "log_level", help="Log level (DEBUG, INFO, ...)")
@click.pass_context
def cli(ctx: click.Context, database_url: Optional[str], log_level: Optional[str]) -> None:
    """Track vehicle loans: payments, balances and amortization schedules."""
    with reporting_errors():
        config = LoanTrackerConfig.from_env()
        if database_url:
            config = replace(config, database_url=database_url)
        if log_level:
            config = replace(config, log_level=log_level)
    setup_logging(config.log_level, config.log_format)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Amount financed")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=TERM_TYPE, help="Loan term in months")
def payment(principal: str, rate: float, term: int) -> None:
    """Print the fixed monthly payment for a loan."""
    amount = compute_monthly_payment(_amount(principal), _rate(rate), term)
    click.echo(f"{amount:.2f}")


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.pass_context
def schedule(
    ctx: click.Context,
    principal: str,
    rate: float,
    term: int,
    start_date: str,
    down_payment: Optional[str],
    extra: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    loan = build_loan_from_options(principal, rate, term, start_date, down_payment, extra)
    entries = amortization_schedule(loan)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, entries, summarize_loan(loan, _config(ctx).today()))
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, entries)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    if len(entries) > MAX_ROWS:
        click.echo(f"Schedule has {len(entries)} rows; showing first {MAX_ROWS} rows.")
        entries = entries[:MAX_ROWS]
    print_schedule(entries)


@cli.command()
@loan_options
@click.option("--as-of", "as_of", help="Reference date for balances (YYYY-MM-DD)")
@click.option("--vehicle-value", "vehicle_value", help="Current vehicle value, to show equity")
@click.pass_context
def summary(
    ctx: click.Context,
    principal: str,
    rate: float,
    term: int,
    start_date: str,
    down_payment: Optional[str],
    extra: Tuple[str, ...],
    as_of: Optional[str],
    vehicle_value: Optional[str],
) -> None:
    """Compute and print only the summary metrics for a loan."""
    loan = build_loan_from_options(principal, rate, term, start_date, down_payment, extra)
    value = _amount(vehicle_value) if vehicle_value else None
    print_summary(summarize_loan(loan, _as_of(ctx, as_of), vehicle_value=value))


@cli.command("add-loan")
@click.option("--vehicle-id", "vehicle_id", required=True, help="Vehicle the loan finances")
@loan_options
@click.option("--lender", "lender", help="Lender name")
@click.option("--notes", "notes", help="Free-form notes")
@click.pass_context
def add_loan(
    ctx: click.Context,
    vehicle_id: str,
    principal: str,
    rate: float,
    term: int,
    start_date: str,
    down_payment: Optional[str],
    extra: Tuple[str, ...],
    lender: Optional[str],
    notes: Optional[str],
) -> None:
    """Store a loan as the active loan of a vehicle."""
    loan = build_loan_from_options(
        principal, rate, term, start_date, down_payment, extra, vehicle_id=vehicle_id, lender=lender, notes=notes
    )
    with reporting_errors():
        stored = _store(ctx).add_loan(loan)
    click.echo(f"Added loan {stored.loan_id} (monthly payment {stored.monthly_payment:.2f})")


@cli.command("add-extra")
@click.argument("loan_id")
@click.option("--date", "payment_date", required=True, help="Payment date (YYYY-MM-DD)")
@click.option("--amount", "amount", required=True, help="Amount applied to principal")
@click.option("--notes", "notes", help="Free-form notes")
@click.pass_context
def add_extra(ctx: click.Context, loan_id: str, payment_date: str, amount: str, notes: Optional[str]) -> None:
    """Record an extra principal payment against a stored loan."""
    with reporting_errors():
        extra_payment = ExtraPayment(date=_date(payment_date), amount=_amount(amount), notes=notes)
        loan = _store(ctx).add_extra_payment(loan_id, extra_payment)
        balance = summarize_loan(loan, _config(ctx).today()).current_balance
    click.echo(f"Recorded extra payment of {extra_payment.amount:.2f}; balance now {balance:.2f}")


@cli.command("list-loans")
@click.option("--vehicle-id", "vehicle_id", help="Only list loans for this vehicle")
@click.pass_context
def list_loans(ctx: click.Context, vehicle_id: Optional[str]) -> None:
    """List stored loans."""
    with reporting_errors():
        loans = _store(ctx).list_loans(vehicle_id)
    if not loans:
        click.echo("No loans tracked.")
        return
    for loan in loans:
        status = "active" if loan.is_active else "inactive"
        click.echo(
            f"{loan.loan_id}\t{loan.vehicle_id}\t{loan.principal:.2f}\t"
            f"{loan.annual_rate_percent}%\t{loan.term_months}m\t{loan.start_date.isoformat()}\t{status}"
        )


@cli.command()
@click.argument("loan_id")
@click.option("--as-of", "as_of", help="Reference date for balances (YYYY-MM-DD)")
@click.option("--vehicle-value", "vehicle_value", help="Current vehicle value, to show equity")
@click.option("--schedule", "show_schedule", is_flag=True, help="Also print the amortization schedule")
@click.pass_context
def show(
    ctx: click.Context, loan_id: str, as_of: Optional[str], vehicle_value: Optional[str], show_schedule: bool
) -> None:
    """Show a stored loan with its balances to date."""
    with reporting_errors():
        loan = _store(ctx).get_loan(loan_id)
    now = _as_of(ctx, as_of)
    value = _amount(vehicle_value) if vehicle_value else None
    print_loan_header(loan)
    print_summary(summarize_loan(loan, now, vehicle_value=value))
    if show_schedule:
        print_schedule(amortization_schedule(loan), months_elapsed(loan.start_date, now))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
