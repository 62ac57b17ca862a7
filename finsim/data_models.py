"""Data models for the loan and investment simulators.

This module defines dataclasses representing the entities the engines work
with: loan scenarios and their extra payments, investment scenarios and rate
comparisons, and the schedule rows and summaries the engines produce. Inputs
are frozen so that an engine can never change a scenario handed to it.

Monetary amounts and rates are ``Decimal``. Rates are percentages, so
``Decimal("12")`` means 12 % per year.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

SUPPORTED_CURRENCIES = {
    "USD": {"label": "US dollar", "prefix": "$", "suffix": ""},
    "COP": {"label": "Colombian peso", "prefix": "$", "suffix": " COP"},
    "EUR": {"label": "Euro", "prefix": "€", "suffix": ""},
    "MXN": {"label": "Mexican peso", "prefix": "$", "suffix": " MXN"},
    "ARS": {"label": "Argentine peso", "prefix": "$", "suffix": " ARS"},
    "GBP": {"label": "British pound", "prefix": "£", "suffix": ""},
}


class CompoundingFrequency(str, Enum):
    """How often interest is credited to an investment."""

    DAILY = "daily"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"

    @property
    def periods_per_year(self) -> int:
        return _PERIODS_PER_YEAR[self]


_PERIODS_PER_YEAR = {
    CompoundingFrequency.DAILY: 365,
    CompoundingFrequency.MONTHLY: 12,
    CompoundingFrequency.QUARTERLY: 4,
    CompoundingFrequency.ANNUALLY: 1,
}


@dataclass(frozen=True)
class LoanScenario:
    """A fixed-payment loan.

    Attributes
    ----------
    principal: Decimal
        The amount borrowed.
    annual_rate: Decimal
        Nominal annual interest rate in percent. The monthly rate is
        ``annual_rate / 100 / 12``.
    term_months: int
        Number of monthly payments.
    start_date: date
        Date of the first payment. Later payments fall on the same day of
        the following months.
    """

    principal: Decimal
    annual_rate: Decimal
    term_months: int
    start_date: date
    currency: str = "USD"
    name: Optional[str] = None


@dataclass(frozen=True)
class ExtraPayment:
    """A one-time additional principal payment.

    ``payment_number`` is the 1-based period the money is applied in. A loan
    accepts at most one extra payment per period.
    """

    payment_number: int
    amount: Decimal
    description: Optional[str] = None


@dataclass
class AmortizationEntry:
    """One monthly period of an amortization schedule.

    ``payment`` is the regular installment (interest plus scheduled
    principal). ``principal`` also includes ``extra_payment`` so that the
    principal column of a schedule always adds up to the amount borrowed.
    """

    period: int
    date: date
    payment: Decimal
    interest: Decimal
    principal: Decimal
    extra_payment: Decimal
    remaining_balance: Decimal

    @property
    def total_payment(self) -> Decimal:
        return self.payment + self.extra_payment


@dataclass
class LoanSummary:
    monthly_payment: Decimal
    total_principal: Decimal
    total_interest: Decimal
    total_payment: Decimal
    payoff_date: date
    term_months: int  # periods actually paid


@dataclass
class ExtraPaymentImpact:
    original_summary: LoanSummary
    new_summary: LoanSummary
    months_saved: int
    interest_saved: Decimal


@dataclass
class LoanRateComparison:
    annual_rate: Decimal
    monthly_payment: Decimal
    total_interest: Decimal
    total_payment: Decimal


@dataclass(frozen=True)
class InvestmentScenario:
    """Savings with an initial deposit and a contribution every month.

    Contributions are added at the end of each month of the term whatever the
    compounding frequency. ``start_date`` is optional and only used to put
    dates on schedule rows.
    """

    initial_amount: Decimal
    monthly_contribution: Decimal
    annual_rate: Decimal
    compounding_frequency: CompoundingFrequency
    term_months: int
    currency: str = "COP"
    start_date: Optional[date] = None
    name: Optional[str] = None


@dataclass
class ProjectionEntry:
    """One row of an investment projection.

    A row is either one compounding period or one month, depending on the
    schedule that produced it. ``month`` is the month of the term (1-based)
    in which the row ends.
    """

    period: int
    month: int
    date: Optional[date]
    opening_balance: Decimal
    contribution: Decimal
    interest_earned: Decimal
    closing_balance: Decimal
    cumulative_contributions: Decimal
    cumulative_interest: Decimal


@dataclass
class InvestmentSummary:
    final_balance: Decimal
    initial_amount: Decimal
    total_contributions: Decimal  # monthly contributions only
    total_interest_earned: Decimal
    term_months: int
    annual_rate: Decimal
    compounding_frequency: CompoundingFrequency
    periodic_rate: Decimal  # percent per compounding period
    effective_annual_rate: Decimal  # percent


@dataclass(frozen=True)
class RateComparison:
    rate: Decimal
    label: Optional[str] = None


@dataclass
class RateComparisonResult:
    rate: Decimal
    label: Optional[str]
    final_balance: Decimal
    total_interest_earned: Decimal
    difference_from_base: Decimal
    is_base_rate: bool
