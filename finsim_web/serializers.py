"""Conversions between store records, engine objects and JSON payloads.

JSON keys are camelCase and numbers are plain JSON numbers, as the
browser client expects.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from finsim.data_models import (
    AmortizationEntry,
    ExtraPayment,
    InvestmentScenario,
    InvestmentSummary,
    LoanScenario,
    LoanSummary,
    ProjectionEntry,
    RateComparison,
    RateComparisonResult,
)
from finsim.rates import RateType


def _number(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


def _iso(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


# -- store records -> engine -------------------------------------------


def loan_scenario_from_record(record: Dict[str, Any]) -> LoanScenario:
    return LoanScenario(
        principal=record["principal"],
        annual_rate=record["interest_rate"],
        term_months=record["term_months"],
        start_date=record["start_date"],
        currency=record["currency"],
        name=record["name"],
    )


def extra_payment_from_record(record: Dict[str, Any]) -> ExtraPayment:
    return ExtraPayment(
        payment_number=record["payment_number"],
        amount=record["amount"],
        description=record.get("description"),
    )


def investment_scenario_from_record(record: Dict[str, Any]) -> InvestmentScenario:
    return InvestmentScenario(
        initial_amount=record["initial_amount"],
        monthly_contribution=record["monthly_contribution"],
        annual_rate=record["annual_rate"],
        compounding_frequency=record["compounding_frequency"],
        term_months=record["term_months"],
        currency=record["currency"],
        name=record["name"],
    )


def rate_comparison_from_record(record: Dict[str, Any]) -> RateComparison:
    return RateComparison(rate=record["rate"], label=record.get("label"))


# -- store records -> JSON ---------------------------------------------


def loan_scenario_json(record: Dict[str, Any]) -> Dict[str, Any]:
    payload = {
        "id": record["id"],
        "name": record["name"],
        "principal": _number(record["principal"]),
        "interestRate": _number(record["interest_rate"]),
        "termMonths": record["term_months"],
        "startDate": _iso(record["start_date"]),
        "currency": record["currency"],
        "createdAt": _iso(record["created_at"]),
        "updatedAt": _iso(record["updated_at"]),
    }
    if "extra_payments_count" in record:
        payload["extraPaymentsCount"] = record["extra_payments_count"]
    return payload


def extra_payment_json(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": record["id"],
        "loanScenarioId": record["loan_scenario_id"],
        "paymentNumber": record["payment_number"],
        "amount": _number(record["amount"]),
        "description": record.get("description"),
        "createdAt": _iso(record["created_at"]),
    }


def investment_scenario_json(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": record["id"],
        "name": record["name"],
        "initialAmount": _number(record["initial_amount"]),
        "monthlyContribution": _number(record["monthly_contribution"]),
        "termMonths": record["term_months"],
        "annualRate": _number(record["annual_rate"]),
        "compoundingFrequency": record["compounding_frequency"],
        "currency": record["currency"],
        "notes": record.get("notes"),
        "createdAt": _iso(record["created_at"]),
        "updatedAt": _iso(record["updated_at"]),
    }


def rate_comparison_json(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": record["id"],
        "investmentScenarioId": record["investment_scenario_id"],
        "rate": _number(record["rate"]),
        "label": record.get("label"),
        "createdAt": _iso(record["created_at"]),
    }


def interest_rate_scenario_json(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": record["id"],
        "name": record["name"],
        "inputRate": _number(record["input_rate"]),
        "inputRateType": record["input_rate_type"],
        "notes": record.get("notes"),
        "createdAt": _iso(record["created_at"]),
        "updatedAt": _iso(record["updated_at"]),
    }


# -- engine results -> JSON --------------------------------------------


def loan_summary_json(summary: LoanSummary) -> Dict[str, Any]:
    return {
        "monthlyPayment": _number(summary.monthly_payment),
        "totalPrincipal": _number(summary.total_principal),
        "totalInterest": _number(summary.total_interest),
        "totalPayment": _number(summary.total_payment),
        "payoffDate": _iso(summary.payoff_date),
        "termMonths": summary.term_months,
    }


def amortization_entry_json(entry: AmortizationEntry) -> Dict[str, Any]:
    return {
        "paymentNumber": entry.period,
        "date": _iso(entry.date),
        "paymentAmount": _number(entry.total_payment),
        "principalPortion": _number(entry.principal),
        "interestPortion": _number(entry.interest),
        "remainingBalance": _number(entry.remaining_balance),
        "isExtraPayment": entry.extra_payment > 0,
        "extraAmount": _number(entry.extra_payment) if entry.extra_payment > 0 else None,
    }


def investment_summary_json(summary: InvestmentSummary) -> Dict[str, Any]:
    return {
        "finalBalance": _number(summary.final_balance),
        "initialAmount": _number(summary.initial_amount),
        "totalContributions": _number(summary.total_contributions),
        "totalInterestEarned": _number(summary.total_interest_earned),
        "termMonths": summary.term_months,
        "annualRate": _number(summary.annual_rate),
        "compoundingFrequency": summary.compounding_frequency.value,
        "periodicRate": _number(summary.periodic_rate),
        "effectiveAnnualRate": _number(summary.effective_annual_rate),
    }


def projection_entry_json(entry: ProjectionEntry) -> Dict[str, Any]:
    return {
        "periodNumber": entry.period,
        "month": entry.month,
        "date": _iso(entry.date),
        "openingBalance": _number(entry.opening_balance),
        "contribution": _number(entry.contribution),
        "interestEarned": _number(entry.interest_earned),
        "closingBalance": _number(entry.closing_balance),
        "cumulativeContributions": _number(entry.cumulative_contributions),
        "cumulativeInterest": _number(entry.cumulative_interest),
    }


def rate_comparison_result_json(result: RateComparisonResult) -> Dict[str, Any]:
    return {
        "rate": _number(result.rate),
        "label": result.label,
        "finalBalance": _number(result.final_balance),
        "totalInterestEarned": _number(result.total_interest_earned),
        "differenceFromBase": _number(result.difference_from_base),
        "isBaseRate": result.is_base_rate,
    }


def rate_conversions_json(rates: Dict[RateType, Decimal]) -> Dict[str, float]:
    return {rate_type.value: float(value) for rate_type, value in rates.items()}
