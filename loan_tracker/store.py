"""Persistence layer for loans.

Loans live in a relational database through SQLAlchemy. It defaults to SQLite
for local use but accepts any SQLAlchemy-compatible URL. The store hands out
immutable ``Loan`` snapshots; the engine never touches the database.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Iterator, List, Optional

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, Text, create_engine, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .data_models import ExtraPayment, Loan
from .exceptions import LoanNotFoundError, StoreError
from .logging import get_logger
from .serialization import extra_payments_from_json, extra_payments_to_json

logger = get_logger(__name__)

Base = declarative_base()


class LoanModel(Base):
    __tablename__ = "loans"

    id = Column(String(64), primary_key=True)
    vehicle_id = Column(String(64), index=True, nullable=False)
    lender_name = Column(String(255), nullable=True)
    # decimals kept as strings so the frozen payment round-trips exactly
    principal = Column(String(64), nullable=False)
    down_payment = Column(String(64), nullable=False)
    annual_rate_percent = Column(String(64), nullable=False)
    term_months = Column(Integer, nullable=False)
    monthly_payment = Column(String(64), nullable=False)
    start_date = Column(Date, nullable=False)
    extra_payments_json = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, nullable=False)


class LoanStore:
    """Database-backed loan store."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            raise StoreError(f"Loan store operation failed: {exc}") from exc

    def add_loan(self, loan: Loan) -> Loan:
        """Store ``loan`` as the active loan of its vehicle.

        Any other active loan for the same vehicle is deactivated.
        """
        with self._session() as session:
            session.execute(
                update(LoanModel)
                .where(LoanModel.vehicle_id == loan.vehicle_id, LoanModel.is_active.is_(True))
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
            row = self._to_row(loan)
            row.is_active = True
            session.add(row)
            session.commit()
            logger.info(
                "Stored loan %s for vehicle %s", loan.loan_id, loan.vehicle_id, extra={"loan_id": loan.loan_id}
            )
            return self._to_loan(row)

    def get_loan(self, loan_id: str) -> Loan:
        with self._session() as session:
            return self._to_loan(self._get_row(session, loan_id))

    def active_loan(self, vehicle_id: str) -> Optional[Loan]:
        with self._session() as session:
            row = session.execute(
                select(LoanModel)
                .where(LoanModel.vehicle_id == vehicle_id, LoanModel.is_active.is_(True))
                .order_by(LoanModel.start_date.desc(), LoanModel.created_at.desc())
            ).scalars().first()
            return self._to_loan(row) if row else None

    def list_loans(self, vehicle_id: Optional[str] = None) -> List[Loan]:
        """List loans, newest start date first, optionally for one vehicle."""
        with self._session() as session:
            query = select(LoanModel).order_by(LoanModel.start_date.desc(), LoanModel.created_at.desc())
            if vehicle_id is not None:
                query = query.where(LoanModel.vehicle_id == vehicle_id)
            return [self._to_loan(row) for row in session.execute(query).scalars()]

    def add_extra_payment(self, loan_id: str, payment: ExtraPayment) -> Loan:
        """Append an extra payment to a stored loan and return the new snapshot."""
        with self._session() as session:
            row = self._get_row(session, loan_id)
            updated = self._to_loan(row).with_extra_payment(payment)
            row.extra_payments_json = extra_payments_to_json(updated.extra_payments)
            row.updated_at = updated.updated_at
            session.commit()
            logger.info(
                "Added extra payment of %s to loan %s", payment.amount, loan_id, extra={"loan_id": loan_id}
            )
            return updated

    def delete_loan(self, loan_id: str) -> None:
        with self._session() as session:
            row = self._get_row(session, loan_id)
            session.delete(row)
            session.commit()
            logger.info("Deleted loan %s", loan_id, extra={"loan_id": loan_id})

    @staticmethod
    def _get_row(session: Session, loan_id: str) -> LoanModel:
        row = session.get(LoanModel, loan_id)
        if row is None:
            raise LoanNotFoundError(f"Loan {loan_id} not found")
        return row

    @staticmethod
    def _to_row(loan: Loan) -> LoanModel:
        return LoanModel(
            id=loan.loan_id,
            vehicle_id=loan.vehicle_id,
            lender_name=loan.lender_name,
            principal=str(loan.principal),
            down_payment=str(loan.down_payment),
            annual_rate_percent=str(loan.annual_rate_percent),
            term_months=loan.term_months,
            monthly_payment=str(loan.monthly_payment),
            start_date=loan.start_date,
            extra_payments_json=extra_payments_to_json(loan.extra_payments),
            notes=loan.notes,
            is_active=loan.is_active,
            created_at=loan.created_at,
            updated_at=loan.updated_at,
        )

    @staticmethod
    def _to_loan(row: LoanModel) -> Loan:
        return Loan(
            principal=Decimal(row.principal),
            annual_rate_percent=Decimal(row.annual_rate_percent),
            term_months=row.term_months,
            monthly_payment=Decimal(row.monthly_payment),
            start_date=row.start_date,
            down_payment=Decimal(row.down_payment),
            extra_payments=tuple(extra_payments_from_json(row.extra_payments_json)),
            loan_id=row.id,
            vehicle_id=row.vehicle_id,
            lender_name=row.lender_name,
            notes=row.notes,
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
