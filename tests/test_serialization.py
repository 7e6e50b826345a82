"""Tests for the extra payment codec and schedule export."""

import csv
import json
from datetime import date
from decimal import Decimal

import pytest

from loan_tracker.data_models import ExtraPayment
from loan_tracker.engine import amortization_schedule, summarize_loan
from loan_tracker.serialization import (
    CSV_HEADER,
    export_to_csv,
    export_to_json,
    extra_payments_from_json,
    extra_payments_to_json,
    loan_to_dict,
    money,
    schedule_to_dicts,
    summary_to_dict,
)


class TestExtraPaymentsJson:
    """Tests for the JSON codec of stored extra payments."""

    def test_round_trip(self) -> None:
        payments = [
            ExtraPayment(date=date(2024, 7, 15), amount=Decimal("5000"), notes="Tax refund"),
            ExtraPayment(date=date(2024, 12, 1), amount=Decimal("123.45")),
        ]
        assert extra_payments_from_json(extra_payments_to_json(payments)) == payments

    def test_encoded_shape(self) -> None:
        payment = ExtraPayment(date=date(2024, 7, 15), amount=Decimal("5000"), notes="Bonus")
        decoded = json.loads(extra_payments_to_json([payment]))
        assert decoded == [
            {"id": payment.payment_id, "date": "2024-07-15", "amount": "5000", "notes": "Bonus"}
        ]

    @pytest.mark.parametrize("text", [None, ""])
    def test_empty(self, text) -> None:
        assert extra_payments_from_json(text) == []

    @pytest.mark.parametrize(
        "text",
        [
            "not json",
            '{"date": "2024-07-15"}',
            '[{"date": "2024-07-15"}]',
            '[{"id": "x", "date": "nope", "amount": "5"}]',
            '[{"id": "x", "date": "2024-07-15", "amount": "-5"}]',
            "[42]",
            '[{"id": "x", "date": "2024-07-15", "amount": "NaN"}]',
            '[{"id": "x", "date": "2024-07-15", "amount": "Infinity"}]',
        ],
    )
    def test_malformed_decodes_to_empty(self, text: str) -> None:
        assert extra_payments_from_json(text) == []


class TestDicts:
    """Tests for JSON-ready conversions."""

    def test_money_rounds_half_up(self) -> None:
        assert money(Decimal("579.985")) == 579.99
        assert money(Decimal("579.98410")) == 579.98

    def test_schedule_rows(self, loan_with_extra) -> None:
        rows = schedule_to_dicts(amortization_schedule(loan_with_extra))
        assert len(rows) <= 60
        assert rows[0]["month"] == 1
        assert rows[0]["date"] == "2024-02-15"
        assert rows[0]["interest"] == 150.0
        assert rows[6]["extra"] == 5000.0
        assert "paid" not in rows[0]

    def test_schedule_paid_flag(self, car_loan) -> None:
        rows = schedule_to_dicts(amortization_schedule(car_loan), months_elapsed=12)
        assert [r["paid"] for r in rows[:13]] == [True] * 12 + [False]

    def test_summary_dict(self, car_loan) -> None:
        data = summary_to_dict(summarize_loan(car_loan, date(2025, 1, 15), vehicle_value=Decimal("24000")))
        assert data["monthly_payment"] == 579.98
        assert data["months_elapsed"] == 12
        assert data["payoff_date"] == "2029-01-15"
        assert "equity" in data

    def test_summary_dict_without_equity(self, car_loan) -> None:
        data = summary_to_dict(summarize_loan(car_loan, date(2025, 1, 15)))
        assert "equity" not in data

    def test_loan_dict(self, loan_with_extra) -> None:
        data = loan_to_dict(loan_with_extra)
        assert data["principal"] == 30000.0
        assert data["annual_rate_percent"] == 6.0
        assert data["lender_name"] == "Credit Union"
        assert data["extra_payments"][0]["amount"] == 5000.0
        json.dumps(data)


class TestExport:
    """Tests for file export."""

    def test_export_json(self, tmp_path, car_loan) -> None:
        path = tmp_path / "schedule.json"
        export_to_json(path, amortization_schedule(car_loan), summarize_loan(car_loan, date(2025, 1, 15)))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert set(data) == {"summary", "schedule"}
        assert len(data["schedule"]) == 60

    def test_export_csv(self, tmp_path, car_loan) -> None:
        path = tmp_path / "schedule.csv"
        export_to_csv(path, amortization_schedule(car_loan))

        with path.open(newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[0] == CSV_HEADER
        assert len(rows) == 61
        assert rows[1][:2] == ["1", "2024-02-15"]
