"""Output helpers for the simulators.

This module renders schedules and summaries in a tabular text format using
built-in printing and string formatting. Amounts are shown with the
prefix/suffix of the scenario currency.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List

from .data_models import (
    SUPPORTED_CURRENCIES,
    AmortizationEntry,
    ExtraPaymentImpact,
    InvestmentSummary,
    LoanRateComparison,
    LoanSummary,
    ProjectionEntry,
    RateComparisonResult,
)


def money(value: Decimal, currency: str = "USD") -> str:
    meta = SUPPORTED_CURRENCIES.get(currency, SUPPORTED_CURRENCIES["USD"])
    return f"{meta['prefix']}{value:,.2f}{meta['suffix']}"


def print_loan_summary(summary: LoanSummary, currency: str = "USD") -> None:
    """Print a summary of loan metrics in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Monthly payment    : {money(summary.monthly_payment, currency)}")
    print(f"Total principal    : {money(summary.total_principal, currency)}")
    print(f"Total interest     : {money(summary.total_interest, currency)}")
    print(f"Total paid         : {money(summary.total_payment, currency)}")
    print(f"Payoff date        : {summary.payoff_date.isoformat()}")
    print(f"Payments made      : {summary.term_months}")
    print("-" * 72)


def print_impact(impact: ExtraPaymentImpact, currency: str = "USD") -> None:
    """Print what the extra payments change compared with the plain loan."""
    if not impact.months_saved and not impact.interest_saved:
        return
    print("Extra payments")
    print("-" * 72)
    print(f"Baseline interest  : {money(impact.original_summary.total_interest, currency)}")
    print(f"Interest saved     : {money(impact.interest_saved, currency)}")
    print(f"Baseline payoff    : {impact.original_summary.payoff_date.isoformat()}")
    print(f"New payoff         : {impact.new_summary.payoff_date.isoformat()}")
    if impact.months_saved:
        print(f"Term reduction     : {impact.months_saved} months")
    print("-" * 72)


def print_schedule(schedule: Iterable[AmortizationEntry]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["Period", "Date", "Payment", "Principal", "Interest", "Extra", "Balance"]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period),
            entry.date.isoformat(),
            f"{entry.payment:.2f}",
            f"{entry.principal:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.extra_payment:.2f}",
            f"{entry.remaining_balance:.2f}",
        ]
        print("\t".join(row))


def print_loan_rate_comparison(comparisons: List[LoanRateComparison]) -> None:
    print("Rate comparison")
    print("=" * 72)
    print(f"{'Rate %':>10s} {'Payment':>15s} {'Interest':>15s} {'Total':>15s}")
    for c in comparisons:
        print(
            f"{c.annual_rate:10.2f} {c.monthly_payment:15.2f} "
            f"{c.total_interest:15.2f} {c.total_payment:15.2f}"
        )


def print_investment_summary(summary: InvestmentSummary, currency: str = "COP") -> None:
    print("Summary")
    print("-" * 72)
    print(f"Initial amount     : {money(summary.initial_amount, currency)}")
    print(f"Contributions      : {money(summary.total_contributions, currency)}")
    print(f"Interest earned    : {money(summary.total_interest_earned, currency)}")
    print(f"Final balance      : {money(summary.final_balance, currency)}")
    print(f"Compounding        : {summary.compounding_frequency.value}")
    print(f"Periodic rate      : {summary.periodic_rate}%")
    print(f"Effective annual   : {summary.effective_annual_rate}%")
    print("-" * 72)


def print_projection(schedule: Iterable[ProjectionEntry]) -> None:
    headers = ["Period", "Month", "Opening", "Contribution", "Interest", "Closing"]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period),
            str(entry.month),
            f"{entry.opening_balance:.2f}",
            f"{entry.contribution:.2f}",
            f"{entry.interest_earned:.2f}",
            f"{entry.closing_balance:.2f}",
        ]
        print("\t".join(row))


def print_rate_comparison(results: List[RateComparisonResult]) -> None:
    """Print investment results per rate.

    The difference column is measured against the scenario's own rate; a
    positive value means the alternate rate ends with more money.
    """
    print("Rate comparison")
    print("=" * 72)
    print(f"{'Label':20s} {'Rate %':>8s} {'Final':>15s} {'Interest':>15s} {'Difference':>12s}")
    for r in results:
        label = r.label or ("base" if r.is_base_rate else "")
        print(
            f"{label:20s} {r.rate:8.2f} {r.final_balance:15.2f} "
            f"{r.total_interest_earned:15.2f} {r.difference_from_base:12.2f}"
        )
