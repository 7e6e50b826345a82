"""Pytest configuration and fixtures."""

import logging
from datetime import date
from decimal import Decimal
from typing import Iterator

import pytest

from loan_tracker.data_models import ExtraPayment, Loan, new_loan
from loan_tracker.store import LoanStore


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    """Undo handlers and levels installed by setup_logging during a test."""
    root = logging.getLogger()
    package = logging.getLogger("loan_tracker")
    handlers = root.handlers[:]
    root_level, package_level = root.level, package.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(root_level)
    package.setLevel(package_level)


@pytest.fixture
def start_date() -> date:
    """Loan start date used across tests."""
    return date(2024, 1, 15)


@pytest.fixture
def car_loan(start_date: date) -> Loan:
    """30 000 financed at 6 % over 60 months."""
    return new_loan(
        Decimal("30000"),
        Decimal("6.0"),
        60,
        start_date,
        down_payment=Decimal("2000"),
        vehicle_id="veh-test-001",
        lender_name="Credit Union",
    )


@pytest.fixture
def loan_with_extra(car_loan: Loan) -> Loan:
    """The car loan with a 5 000 extra payment in month index 6 (July 2024)."""
    return car_loan.with_extra_payment(ExtraPayment(date=date(2024, 7, 15), amount=Decimal("5000")))


@pytest.fixture
def database_url(tmp_path) -> str:
    """SQLite database in a temporary directory."""
    return f"sqlite:///{tmp_path / 'loans.sqlite3'}"


@pytest.fixture
def store(database_url: str) -> LoanStore:
    """Empty loan store."""
    return LoanStore(database_url)
