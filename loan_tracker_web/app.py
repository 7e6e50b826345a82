"""JSON API exposing stored loans and their computed figures.

Run locally with ``flask --app loan_tracker_web.app run`` or by executing
this module. The database URL and reference date come from the environment
(see ``LoanTrackerConfig.from_env``).
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Flask, current_app, jsonify, request

from loan_tracker.config import LoanTrackerConfig
from loan_tracker.data_models import ExtraPayment, new_loan
from loan_tracker.engine import amortization_schedule, months_elapsed, summarize_loan
from loan_tracker.exceptions import InvalidExtraPaymentError, InvalidLoanParametersError, LoanNotFoundError
from loan_tracker.logging import get_logger, setup_logging
from loan_tracker.serialization import loan_to_dict, schedule_to_dicts, summary_to_dict
from loan_tracker.store import LoanStore
from loan_tracker.utils import decimal_from_str, parse_date

logger = get_logger(__name__)


def _store() -> LoanStore:
    return current_app.extensions["loan_store"]


def _config() -> LoanTrackerConfig:
    return current_app.config["LOAN_TRACKER"]


def _as_of():
    raw = request.args.get("as_of")
    return parse_date(raw) if raw else _config().today()


def _vehicle_value():
    raw = request.args.get("vehicle_value")
    return decimal_from_str(raw) if raw else None


def _term_months(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"term_months must be a whole number of months; got {value!r}")
    return value


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


def _loan_payload(loan, now, vehicle_value=None) -> Dict[str, Any]:
    data = loan_to_dict(loan)
    data["summary"] = summary_to_dict(summarize_loan(loan, now, vehicle_value=vehicle_value))
    return data


def create_app(config: Optional[LoanTrackerConfig] = None, store: Optional[LoanStore] = None) -> Flask:
    """Build the Flask application.

    Parameters
    ----------
    config: LoanTrackerConfig, optional
        Defaults to ``LoanTrackerConfig.from_env()``.
    store: LoanStore, optional
        Defaults to a store opened on ``config.database_url``.
    """
    config = config or LoanTrackerConfig.from_env()
    setup_logging(config.log_level, config.log_format)

    app = Flask(__name__)
    app.config["LOAN_TRACKER"] = config
    app.extensions["loan_store"] = store or LoanStore(config.database_url)

    @app.errorhandler(LoanNotFoundError)
    def _not_found(exc):
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(InvalidLoanParametersError)
    @app.errorhandler(InvalidExtraPaymentError)
    @app.errorhandler(ValueError)
    @app.errorhandler(KeyError)
    def _bad_request(exc):
        message = f"Missing field: {exc.args[0]}" if isinstance(exc, KeyError) else str(exc)
        return jsonify({"error": message}), 400

    @app.get("/vehicles/<vehicle_id>/loans")
    def list_vehicle_loans(vehicle_id: str):
        return jsonify([loan_to_dict(loan) for loan in _store().list_loans(vehicle_id)])

    @app.get("/vehicles/<vehicle_id>/loan")
    def active_vehicle_loan(vehicle_id: str):
        loan = _store().active_loan(vehicle_id)
        if loan is None:
            return jsonify({"error": f"No active loan for vehicle {vehicle_id}"}), 404
        return jsonify(_loan_payload(loan, _as_of(), _vehicle_value()))

    @app.post("/vehicles/<vehicle_id>/loans")
    def create_loan(vehicle_id: str):
        body = _json_body()
        loan = new_loan(
            decimal_from_str(str(body["principal"])),
            decimal_from_str(str(body["annual_rate_percent"])),
            _term_months(body["term_months"]),
            parse_date(str(body["start_date"])),
            down_payment=decimal_from_str(str(body.get("down_payment", "0"))),
            vehicle_id=vehicle_id,
            lender_name=body.get("lender_name"),
            notes=body.get("notes"),
        )
        stored = _store().add_loan(loan)
        return jsonify(_loan_payload(stored, _as_of())), 201

    @app.get("/loans/<loan_id>")
    def get_loan(loan_id: str):
        loan = _store().get_loan(loan_id)
        return jsonify(_loan_payload(loan, _as_of(), _vehicle_value()))

    @app.get("/loans/<loan_id>/schedule")
    def get_schedule(loan_id: str):
        loan = _store().get_loan(loan_id)
        elapsed = months_elapsed(loan.start_date, _as_of())
        return jsonify(
            {
                "loan_id": loan.loan_id,
                "months_elapsed": elapsed,
                "schedule": schedule_to_dicts(amortization_schedule(loan), elapsed),
            }
        )

    @app.post("/loans/<loan_id>/extra-payments")
    def add_extra_payment(loan_id: str):
        body = _json_body()
        payment = ExtraPayment(
            date=parse_date(str(body["date"])),
            amount=decimal_from_str(str(body["amount"])),
            notes=body.get("notes"),
        )
        loan = _store().add_extra_payment(loan_id, payment)
        return jsonify(_loan_payload(loan, _as_of())), 201

    @app.delete("/loans/<loan_id>")
    def delete_loan(loan_id: str):
        _store().delete_loan(loan_id)
        return "", 204

    logger.info("Loan tracker API ready (database %s)", config.database_url)
    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=8710, debug=True)
