"""Amortization engine for fixed-payment loans.

This module builds month-by-month schedules for annuity loans, optionally
reduced by one-time extra payments, and derives summaries from them. All
amounts are rounded to cents as they are produced; the last period absorbs
the rounding remainder so that every schedule ends at exactly 0.00.

Nothing here is cached: a schedule is recomputed from the scenario on every
call, and the same inputs always give the same rows.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List

from .data_models import (
    AmortizationEntry,
    ExtraPayment,
    ExtraPaymentImpact,
    LoanRateComparison,
    LoanScenario,
    LoanSummary,
)
from .errors import InvalidExtraPayment, InvalidScenario
from .utils import Number, add_months, as_decimal, round_currency

ZERO = Decimal("0")


def monthly_rate(annual_rate: Number) -> Decimal:
    """Return the periodic rate as a fraction for a nominal annual percent."""
    return as_decimal(annual_rate) / Decimal(100) / Decimal(12)


def calculate_monthly_payment(principal: Number, annual_rate: Number, term_months: int) -> Decimal:
    """Return the installment of an annuity loan, rounded to cents.

    The formula is:

        payment = P * r / (1 - (1 + r)^-n)

    where ``P`` is the principal, ``r`` the monthly rate and ``n`` the number
    of payments. When the rate is zero the payment is simply ``P / n``.
    """
    principal = as_decimal(principal)
    if term_months <= 0:
        raise InvalidScenario("Term must be a positive number of months")
    rate = monthly_rate(annual_rate)
    if rate == 0:
        return round_currency(principal / Decimal(term_months))
    return round_currency(principal * rate / (1 - (1 + rate) ** -term_months))


def validate_loan_scenario(scenario: LoanScenario) -> None:
    try:
        principal = as_decimal(scenario.principal)
        rate = as_decimal(scenario.annual_rate)
    except ValueError as exc:
        raise InvalidScenario(str(exc)) from exc
    if principal <= 0:
        raise InvalidScenario("Principal must be positive")
    if rate < 0:
        raise InvalidScenario("Interest rate cannot be negative")
    term = scenario.term_months
    if isinstance(term, bool) or not isinstance(term, int) or term <= 0:
        raise InvalidScenario("Term must be a positive number of months")


def _prepare_extra_payments(extra_payments: Iterable[ExtraPayment], term_months: int) -> Dict[int, Decimal]:
    """Map payment numbers to extra amounts, rejecting anything out of range."""
    mapping: Dict[int, Decimal] = {}
    for ep in extra_payments:
        number = ep.payment_number
        if isinstance(number, bool) or not isinstance(number, int) or not 1 <= number <= term_months:
            raise InvalidExtraPayment(
                f"Payment number {number} is outside the loan term (1-{term_months})"
            )
        try:
            amount = as_decimal(ep.amount)
        except ValueError as exc:
            raise InvalidExtraPayment(str(exc)) from exc
        if amount <= 0:
            raise InvalidExtraPayment(f"Extra payment for period {number} must be positive")
        if number in mapping:
            raise InvalidExtraPayment(f"Duplicate extra payment for period {number}")
        mapping[number] = amount
    return mapping


def iter_amortization_schedule(
    scenario: LoanScenario, extra_payments: Iterable[ExtraPayment] = ()
) -> Iterator[AmortizationEntry]:
    """Yield the schedule of ``scenario`` one period at a time.

    Validation happens before the first row is produced. The generator stops
    after the period that brings the balance to zero, which is the last
    period of the term unless extra payments shortened the loan.

    Raises
    ------
    InvalidScenario
        If the principal is not positive, the rate is negative or the term is
        not a positive integer.
    InvalidExtraPayment
        If an extra payment falls outside the term, is not positive or
        repeats a payment number.
    """
    validate_loan_scenario(scenario)
    extras = _prepare_extra_payments(extra_payments, scenario.term_months)
    return _schedule_rows(scenario, extras)


def _schedule_rows(scenario: LoanScenario, extras: Dict[int, Decimal]) -> Iterator[AmortizationEntry]:
    term = scenario.term_months
    rate = monthly_rate(scenario.annual_rate)
    installment = calculate_monthly_payment(scenario.principal, scenario.annual_rate, term)
    balance = round_currency(as_decimal(scenario.principal))

    for period in range(1, term + 1):
        interest = round_currency(balance * rate)
        scheduled_principal = max(installment - interest, ZERO)
        # Last period (or an overshooting one) clears whatever is left.
        if period == term or scheduled_principal >= balance:
            scheduled_principal = balance
        extra = min(extras.get(period, ZERO), balance - scheduled_principal)
        balance -= scheduled_principal + extra

        yield AmortizationEntry(
            period=period,
            date=add_months(scenario.start_date, period - 1),
            payment=interest + scheduled_principal,
            interest=interest,
            principal=scheduled_principal + extra,
            extra_payment=extra,
            remaining_balance=balance,
        )

        if balance == 0:
            break


def generate_amortization_schedule(
    scenario: LoanScenario, extra_payments: Iterable[ExtraPayment] = ()
) -> List[AmortizationEntry]:
    """Return the full schedule as a list (see ``iter_amortization_schedule``)."""
    return list(iter_amortization_schedule(scenario, extra_payments))


def summarize_schedule(scenario: LoanScenario, schedule: List[AmortizationEntry]) -> LoanSummary:
    """Aggregate a schedule produced for ``scenario`` into a ``LoanSummary``."""
    total_interest = sum((e.interest for e in schedule), ZERO)
    total_payment = sum((e.total_payment for e in schedule), ZERO)
    total_principal = sum((e.principal for e in schedule), ZERO)
    return LoanSummary(
        monthly_payment=calculate_monthly_payment(
            scenario.principal, scenario.annual_rate, scenario.term_months
        ),
        total_principal=total_principal,
        total_interest=total_interest,
        total_payment=total_payment,
        payoff_date=schedule[-1].date if schedule else scenario.start_date,
        term_months=len(schedule),
    )


def calculate_loan_summary(
    scenario: LoanScenario, extra_payments: Iterable[ExtraPayment] = ()
) -> LoanSummary:
    schedule = generate_amortization_schedule(scenario, extra_payments)
    return summarize_schedule(scenario, schedule)


def calculate_extra_payment_impact(
    scenario: LoanScenario, extra_payments: Iterable[ExtraPayment]
) -> ExtraPaymentImpact:
    """Compare the loan with and without ``extra_payments``.

    Returns
    -------
    ExtraPaymentImpact
        The summaries of both schedules, the number of periods the extra
        payments remove and the interest they avoid. Extra payments can only
        shorten a schedule, so both savings are never negative.
    """
    original = calculate_loan_summary(scenario)
    with_extras = calculate_loan_summary(scenario, extra_payments)
    return compare_summaries(original, with_extras)


def compare_summaries(original: LoanSummary, with_extras: LoanSummary) -> ExtraPaymentImpact:
    """Build the ``ExtraPaymentImpact`` of two already computed summaries."""
    return ExtraPaymentImpact(
        original_summary=original,
        new_summary=with_extras,
        months_saved=original.term_months - with_extras.term_months,
        interest_saved=original.total_interest - with_extras.total_interest,
    )


def compare_loan_rates(scenario: LoanScenario, rates: Iterable[Number]) -> List[LoanRateComparison]:
    """Summarize the loan at each rate in ``rates`` plus its own rate.

    Duplicated rates are reported once and results are ordered by rate.
    """
    validate_loan_scenario(scenario)
    unique = {as_decimal(scenario.annual_rate)}
    for rate in rates:
        rate = as_decimal(rate)
        if rate < 0:
            raise InvalidScenario("Interest rate cannot be negative")
        unique.add(rate)

    comparisons: List[LoanRateComparison] = []
    for rate in sorted(unique):
        variant = replace(scenario, annual_rate=rate)
        summary = calculate_loan_summary(variant)
        comparisons.append(
            LoanRateComparison(
                annual_rate=rate,
                monthly_payment=summary.monthly_payment,
                total_interest=summary.total_interest,
                total_payment=summary.total_payment,
            )
        )
    return comparisons
