"""Persistence layer for loan and investment scenarios.

Scenarios, their extra payments and their rate comparisons live in a
relational database through SQLAlchemy. It defaults to SQLite for local
development, but accepts any SQLAlchemy-compatible URL (e.g.
PostgreSQL/MySQL). The store only keeps inputs: schedules are recomputed by
the engines on every request.

Records are returned as plain dicts with Python values (``Decimal``,
``date``); turning them into JSON is the web layer's job.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


class RecordNotFound(LookupError):
    """No row matches the requested identifier."""


class DuplicateRecord(ValueError):
    """A unique constraint (scenario name, payment number, rate) was violated."""


class LoanScenarioModel(Base):
    __tablename__ = "loan_scenarios"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    principal = Column(Numeric(15, 2), nullable=False)
    interest_rate = Column(Numeric(7, 4), nullable=False)
    term_months = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    extra_payments = relationship(
        "ExtraPaymentModel",
        back_populates="scenario",
        cascade="all, delete-orphan",
        order_by="ExtraPaymentModel.payment_number",
    )


class ExtraPaymentModel(Base):
    __tablename__ = "loan_extra_payments"
    __table_args__ = (UniqueConstraint("loan_scenario_id", "payment_number"),)

    id = Column(String(36), primary_key=True)
    loan_scenario_id = Column(String(36), ForeignKey("loan_scenarios.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_number = Column(Integer, nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    description = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    scenario = relationship("LoanScenarioModel", back_populates="extra_payments")


class InvestmentScenarioModel(Base):
    __tablename__ = "investment_scenarios"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    initial_amount = Column(Numeric(15, 2), nullable=False)
    monthly_contribution = Column(Numeric(15, 2), nullable=False, default=0)
    term_months = Column(Integer, nullable=False)
    annual_rate = Column(Numeric(7, 4), nullable=False)
    compounding_frequency = Column(String(10), nullable=False, default="monthly")
    currency = Column(String(3), nullable=False, default="COP")
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    rate_comparisons = relationship(
        "RateComparisonModel",
        back_populates="scenario",
        cascade="all, delete-orphan",
        order_by="RateComparisonModel.rate",
    )


class RateComparisonModel(Base):
    __tablename__ = "investment_rate_comparisons"
    __table_args__ = (UniqueConstraint("investment_scenario_id", "rate"),)

    id = Column(String(36), primary_key=True)
    investment_scenario_id = Column(
        String(36), ForeignKey("investment_scenarios.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rate = Column(Numeric(7, 4), nullable=False)
    label = Column(String(100))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    scenario = relationship("InvestmentScenarioModel", back_populates="rate_comparisons")


class InterestRateScenarioModel(Base):
    __tablename__ = "interest_rate_scenarios"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    input_rate = Column(Numeric(12, 6), nullable=False)
    input_rate_type = Column(String(2), nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


LOAN_SORT_FIELDS = {
    "name": LoanScenarioModel.name,
    "created_at": LoanScenarioModel.created_at,
    "updated_at": LoanScenarioModel.updated_at,
    "principal": LoanScenarioModel.principal,
}

INVESTMENT_SORT_FIELDS = {
    "name": InvestmentScenarioModel.name,
    "created_at": InvestmentScenarioModel.created_at,
    "updated_at": InvestmentScenarioModel.updated_at,
    "initial_amount": InvestmentScenarioModel.initial_amount,
}


class ScenarioStore:
    """Database-backed scenario store."""

    def __init__(self, url: str) -> None:
        self.url = url
        engine_kwargs: Dict[str, Any] = {"future": True}
        if url == "sqlite://" or (url.startswith("sqlite") and ":memory:" in url):
            # One shared connection, otherwise every session sees an empty database.
            engine_kwargs.update(connect_args={"check_same_thread": False}, poolclass=StaticPool)
        self._engine = create_engine(url, **engine_kwargs)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    # -- loan scenarios -------------------------------------------------

    def list_loan_scenarios(self, sort: str = "created_at", order: str = "desc") -> List[Dict[str, Any]]:
        column = LOAN_SORT_FIELDS.get(sort, LoanScenarioModel.created_at)
        ordering = column.asc() if order == "asc" else column.desc()
        counts = (
            select(ExtraPaymentModel.loan_scenario_id, func.count(ExtraPaymentModel.id).label("n"))
            .group_by(ExtraPaymentModel.loan_scenario_id)
            .subquery()
        )
        with self._session_factory() as session:
            rows = session.execute(
                select(LoanScenarioModel, func.coalesce(counts.c.n, 0))
                .outerjoin(counts, counts.c.loan_scenario_id == LoanScenarioModel.id)
                .order_by(ordering)
            ).all()
            return [dict(self._loan_to_dict(row), extra_payments_count=count) for row, count in rows]

    def get_loan_scenario(self, scenario_id: str) -> Dict[str, Any]:
        with self._session_factory() as session:
            return self._loan_to_dict(self._get(session, LoanScenarioModel, scenario_id))

    def add_loan_scenario(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        row = LoanScenarioModel(id=str(uuid4()), **fields)
        with self._session_factory() as session:
            session.add(row)
            self._commit(session, f"A loan scenario named {fields.get('name')!r} already exists")
            return self._loan_to_dict(row)

    def update_loan_scenario(self, scenario_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        with self._session_factory() as session:
            row = self._get(session, LoanScenarioModel, scenario_id)
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = datetime.utcnow()
            self._commit(session, f"A loan scenario named {fields.get('name')!r} already exists")
            return self._loan_to_dict(row)

    def delete_loan_scenario(self, scenario_id: str) -> None:
        with self._session_factory() as session:
            session.delete(self._get(session, LoanScenarioModel, scenario_id))
            session.commit()

    # -- extra payments -------------------------------------------------

    def list_extra_payments(self, scenario_id: str) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            scenario = self._get(session, LoanScenarioModel, scenario_id)
            return [self._extra_payment_to_dict(row) for row in scenario.extra_payments]

    def add_extra_payment(self, scenario_id: str, payment_number: int, amount: Decimal,
                          description: Optional[str] = None) -> Dict[str, Any]:
        with self._session_factory() as session:
            self._get(session, LoanScenarioModel, scenario_id)
            row = ExtraPaymentModel(
                id=str(uuid4()),
                loan_scenario_id=scenario_id,
                payment_number=payment_number,
                amount=amount,
                description=description,
            )
            session.add(row)
            self._commit(session, f"An extra payment for payment {payment_number} already exists")
            return self._extra_payment_to_dict(row)

    def delete_extra_payment(self, scenario_id: str, extra_payment_id: str) -> None:
        with self._session_factory() as session:
            row = session.get(ExtraPaymentModel, extra_payment_id)
            if row is None or row.loan_scenario_id != scenario_id:
                raise RecordNotFound(f"Extra payment {extra_payment_id} not found")
            session.delete(row)
            session.commit()

    # -- investment scenarios -------------------------------------------

    def list_investment_scenarios(self, sort: str = "created_at", order: str = "desc") -> List[Dict[str, Any]]:
        column = INVESTMENT_SORT_FIELDS.get(sort, InvestmentScenarioModel.created_at)
        ordering = column.asc() if order == "asc" else column.desc()
        with self._session_factory() as session:
            rows: Iterable[InvestmentScenarioModel] = session.execute(
                select(InvestmentScenarioModel).order_by(ordering)
            ).scalars()
            return [self._investment_to_dict(row) for row in rows]

    def get_investment_scenario(self, scenario_id: str) -> Dict[str, Any]:
        with self._session_factory() as session:
            return self._investment_to_dict(self._get(session, InvestmentScenarioModel, scenario_id))

    def add_investment_scenario(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        row = InvestmentScenarioModel(id=str(uuid4()), **fields)
        with self._session_factory() as session:
            session.add(row)
            self._commit(session, f"An investment scenario named {fields.get('name')!r} already exists")
            return self._investment_to_dict(row)

    def update_investment_scenario(self, scenario_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        with self._session_factory() as session:
            row = self._get(session, InvestmentScenarioModel, scenario_id)
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = datetime.utcnow()
            self._commit(session, f"An investment scenario named {fields.get('name')!r} already exists")
            return self._investment_to_dict(row)

    def delete_investment_scenario(self, scenario_id: str) -> None:
        with self._session_factory() as session:
            session.delete(self._get(session, InvestmentScenarioModel, scenario_id))
            session.commit()

    # -- rate comparisons -----------------------------------------------

    def list_rate_comparisons(self, scenario_id: str) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            scenario = self._get(session, InvestmentScenarioModel, scenario_id)
            return [self._rate_comparison_to_dict(row) for row in scenario.rate_comparisons]

    def add_rate_comparison(self, scenario_id: str, rate: Decimal, label: Optional[str] = None) -> Dict[str, Any]:
        with self._session_factory() as session:
            self._get(session, InvestmentScenarioModel, scenario_id)
            row = RateComparisonModel(
                id=str(uuid4()), investment_scenario_id=scenario_id, rate=rate, label=label
            )
            session.add(row)
            self._commit(session, f"A comparison at {rate}% already exists")
            return self._rate_comparison_to_dict(row)

    def delete_rate_comparison(self, scenario_id: str, comparison_id: str) -> None:
        with self._session_factory() as session:
            row = session.get(RateComparisonModel, comparison_id)
            if row is None or row.investment_scenario_id != scenario_id:
                raise RecordNotFound(f"Rate comparison {comparison_id} not found")
            session.delete(row)
            session.commit()

    # -- interest rate scenarios ----------------------------------------

    def list_interest_rate_scenarios(self) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows = session.execute(
                select(InterestRateScenarioModel).order_by(InterestRateScenarioModel.created_at.desc())
            ).scalars()
            return [self._interest_rate_to_dict(row) for row in rows]

    def get_interest_rate_scenario(self, scenario_id: str) -> Dict[str, Any]:
        with self._session_factory() as session:
            return self._interest_rate_to_dict(self._get(session, InterestRateScenarioModel, scenario_id))

    def add_interest_rate_scenario(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        row = InterestRateScenarioModel(id=str(uuid4()), **fields)
        with self._session_factory() as session:
            session.add(row)
            self._commit(session, f"A rate scenario named {fields.get('name')!r} already exists")
            return self._interest_rate_to_dict(row)

    def update_interest_rate_scenario(self, scenario_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        with self._session_factory() as session:
            row = self._get(session, InterestRateScenarioModel, scenario_id)
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = datetime.utcnow()
            self._commit(session, f"A rate scenario named {fields.get('name')!r} already exists")
            return self._interest_rate_to_dict(row)

    def delete_interest_rate_scenario(self, scenario_id: str) -> None:
        with self._session_factory() as session:
            session.delete(self._get(session, InterestRateScenarioModel, scenario_id))
            session.commit()

    # -- helpers --------------------------------------------------------

    @staticmethod
    def _get(session, model, record_id: str):
        row = session.get(model, record_id)
        if row is None:
            raise RecordNotFound(f"{model.__tablename__} record {record_id} not found")
        return row

    @staticmethod
    def _commit(session, duplicate_message: str) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise DuplicateRecord(duplicate_message) from exc

    @staticmethod
    def _loan_to_dict(row: LoanScenarioModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "principal": Decimal(row.principal),
            "interest_rate": Decimal(row.interest_rate),
            "term_months": row.term_months,
            "start_date": row.start_date,
            "currency": row.currency,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }

    @staticmethod
    def _extra_payment_to_dict(row: ExtraPaymentModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "loan_scenario_id": row.loan_scenario_id,
            "payment_number": row.payment_number,
            "amount": Decimal(row.amount),
            "description": row.description,
            "created_at": row.created_at,
        }

    @staticmethod
    def _investment_to_dict(row: InvestmentScenarioModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "initial_amount": Decimal(row.initial_amount),
            "monthly_contribution": Decimal(row.monthly_contribution),
            "term_months": row.term_months,
            "annual_rate": Decimal(row.annual_rate),
            "compounding_frequency": row.compounding_frequency,
            "currency": row.currency,
            "notes": row.notes,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }

    @staticmethod
    def _rate_comparison_to_dict(row: RateComparisonModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "investment_scenario_id": row.investment_scenario_id,
            "rate": Decimal(row.rate),
            "label": row.label,
            "created_at": row.created_at,
        }

    @staticmethod
    def _interest_rate_to_dict(row: InterestRateScenarioModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "input_rate": Decimal(row.input_rate),
            "input_rate_type": row.input_rate_type,
            "notes": row.notes,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }


def create_store_from_env(url: Optional[str]) -> ScenarioStore:
    return ScenarioStore(url or "sqlite:///finsim.sqlite3")
