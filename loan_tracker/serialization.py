"""Conversion of loan tracker objects to and from plain data.

Extra payments are stored alongside a loan as a JSON string, so this module
owns that codec. It also turns schedules and summaries into JSON-serialisable
dictionaries and writes them to JSON or CSV files.
"""

from __future__ import annotations

import csv
import json
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .data_models import ExtraPayment, Loan, LoanSummary, ScheduleEntry
from .exceptions import InvalidExtraPaymentError
from .logging import get_logger
from .utils import decimal_from_str, parse_date

logger = get_logger(__name__)

CENTS = Decimal("0.01")

CSV_HEADER = [
    "Month",
    "Date",
    "Payment",
    "Principal",
    "Interest",
    "Extra",
    "Balance",
]


def money(value: Decimal) -> float:
    """Round a decimal amount to cents and return it as a float."""
    return float(value.quantize(CENTS, ROUND_HALF_UP))


def extra_payments_to_json(payments: Iterable[ExtraPayment]) -> str:
    """Encode extra payments as a JSON array string."""
    return json.dumps(
        [
            {
                "id": p.payment_id,
                "date": p.date.isoformat(),
                "amount": str(p.amount),
                "notes": p.notes,
            }
            for p in payments
        ]
    )


def extra_payments_from_json(text: Optional[str]) -> List[ExtraPayment]:
    """Decode extra payments stored as JSON.

    Missing or malformed data decodes to an empty list, so a damaged column
    never prevents the loan itself from loading.
    """
    if not text:
        return []
    try:
        raw = json.loads(text)
        return [
            ExtraPayment(
                date=parse_date(item["date"]),
                amount=decimal_from_str(item["amount"]),
                notes=item.get("notes"),
                payment_id=item["id"],
            )
            for item in raw
        ]
    except (ValueError, KeyError, TypeError, AttributeError, InvalidExtraPaymentError) as exc:
        logger.warning("Ignoring malformed extra payments JSON: %s", exc)
        return []


def schedule_to_dicts(schedule: Iterable[ScheduleEntry], months_elapsed: Optional[int] = None) -> List[Dict[str, Any]]:
    """Convert schedule entries into JSON-serialisable dictionaries.

    When ``months_elapsed`` is given each row also carries a ``paid`` flag for
    months already behind the reference date.
    """
    rows = []
    for entry in schedule:
        row: Dict[str, Any] = {
            "month": entry.month_number,
            "date": entry.date.isoformat(),
            "payment": money(entry.payment),
            "principal": money(entry.principal_portion),
            "interest": money(entry.interest_portion),
            "extra": money(entry.extra_payment),
            "balance": money(entry.remaining_balance),
        }
        if months_elapsed is not None:
            row["paid"] = entry.month_number <= months_elapsed
        rows.append(row)
    return rows


def summary_to_dict(summary: LoanSummary) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "as_of": summary.as_of.isoformat(),
        "monthly_payment": money(summary.monthly_payment),
        "months_elapsed": summary.months_elapsed,
        "months_remaining": summary.months_remaining,
        "payoff_date": summary.payoff_date.isoformat(),
        "current_balance": money(summary.current_balance),
        "interest_paid_to_date": money(summary.interest_paid_to_date),
        "principal_paid_to_date": money(summary.principal_paid_to_date),
        "total_interest": money(summary.total_interest),
        "total_cost": money(summary.total_cost),
        "interest_remaining": money(summary.interest_remaining),
        "percent_paid": money(summary.percent_paid),
    }
    if summary.equity is not None:
        data["equity"] = money(summary.equity)
    return data


def loan_to_dict(loan: Loan) -> Dict[str, Any]:
    return {
        "id": loan.loan_id,
        "vehicle_id": loan.vehicle_id,
        "lender_name": loan.lender_name,
        "principal": money(loan.principal),
        "down_payment": money(loan.down_payment),
        "annual_rate_percent": float(loan.annual_rate_percent),
        "term_months": loan.term_months,
        "monthly_payment": money(loan.monthly_payment),
        "start_date": loan.start_date.isoformat(),
        "extra_payments": [
            {
                "id": p.payment_id,
                "date": p.date.isoformat(),
                "amount": money(p.amount),
                "notes": p.notes,
            }
            for p in loan.extra_payments
        ],
        "notes": loan.notes,
        "is_active": loan.is_active,
        "created_at": loan.created_at.isoformat(),
        "updated_at": loan.updated_at.isoformat(),
    }


def export_to_json(path: Path, schedule: List[ScheduleEntry], summary: LoanSummary) -> None:
    """Export schedule and summary to a JSON file."""
    data = {"summary": summary_to_dict(summary), "schedule": schedule_to_dicts(schedule)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: List[ScheduleEntry]) -> None:
    """Export schedule to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)
        for row in schedule_to_dicts(schedule):
            writer.writerow(
                [
                    row["month"],
                    row["date"],
                    row["payment"],
                    row["principal"],
                    row["interest"],
                    row["extra"],
                    row["balance"],
                ]
            )
