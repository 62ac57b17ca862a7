"""Command-line interface for the simulators.

This module uses the ``click`` library to implement a multi-command
interface. Users can print loan schedules and summaries, compare loan rates,
project investments, solve savings goals and convert interest rates. Results
can be printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .amortization import (
    calculate_extra_payment_impact,
    calculate_loan_summary,
    compare_loan_rates,
    compare_summaries,
    generate_amortization_schedule,
    summarize_schedule,
)
from .data_models import (
    SUPPORTED_CURRENCIES,
    AmortizationEntry,
    CompoundingFrequency,
    ExtraPayment,
    InvestmentScenario,
    LoanScenario,
    ProjectionEntry,
    RateComparison,
)
from .errors import FinsimError
from .formatter import (
    money,
    print_impact,
    print_investment_summary,
    print_loan_rate_comparison,
    print_loan_summary,
    print_projection,
    print_rate_comparison,
    print_schedule,
)
from .investment import (
    calculate_investment_summary,
    calculate_required_contribution,
    calculate_time_to_target,
    compare_rate_range,
    compare_rates,
    generate_monthly_summary_schedule,
    generate_projection_schedule,
)
from .rates import RateType, convert_all
from .utils import decimal_from_str, parse_date

MAX_ROWS = 120


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000).
    """
    value = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_extra_payment_strings(values: Tuple[str, ...]) -> List[ExtraPayment]:
    extra_payments: List[ExtraPayment] = []
    for item in values:
        parts = item.split(":", 2)
        if len(parts) < 2:
            raise click.BadParameter(
                f"Extra payment must be in NUMBER:AMOUNT[:DESCRIPTION] format; got {item}"
            )
        try:
            number = int(parts[0])
        except ValueError:
            raise click.BadParameter(f"Invalid payment number in {item}")
        description = parts[2] if len(parts) == 3 else None
        extra_payments.append(
            ExtraPayment(payment_number=number, amount=parse_amount(parts[1]), description=description)
        )
    return extra_payments


def parse_comparison_strings(values: Tuple[str, ...]) -> List[RateComparison]:
    comparisons: List[RateComparison] = []
    for item in values:
        rate_str, _, label = item.partition(":")
        try:
            rate = decimal_from_str(rate_str)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
        comparisons.append(RateComparison(rate=rate, label=label or None))
    return comparisons


def parse_rate_range(value: str) -> Tuple[Decimal, Decimal, Decimal]:
    """Parse ``MIN:MAX[:STEP]``; the step defaults to 0.5 points."""
    parts = value.split(":")
    if len(parts) not in (2, 3):
        raise click.BadParameter(f"Rate range must be in MIN:MAX[:STEP] format; got {value}")
    try:
        bounds = [decimal_from_str(p) for p in parts]
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    if len(bounds) == 2:
        bounds.append(Decimal("0.5"))
    return bounds[0], bounds[1], bounds[2]


def build_loan_scenario(principal: str, rate: str, term: int, start_date: Optional[str], currency: str) -> LoanScenario:
    try:
        start = parse_date(start_date) if start_date else date.today()
        annual_rate = decimal_from_str(rate)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    return LoanScenario(
        principal=parse_amount(principal),
        annual_rate=annual_rate,
        term_months=term,
        start_date=start,
        currency=currency.upper(),
    )


def build_investment_scenario(
    initial: str, contribution: str, rate: str, term: int, compounding: str, currency: str
) -> InvestmentScenario:
    try:
        annual_rate = decimal_from_str(rate)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    return InvestmentScenario(
        initial_amount=parse_amount(initial),
        monthly_contribution=parse_amount(contribution),
        annual_rate=annual_rate,
        compounding_frequency=CompoundingFrequency(compounding),
        term_months=term,
        currency=currency.upper(),
    )


def _amortization_row(e: AmortizationEntry) -> Dict[str, Any]:
    return {
        "period": e.period,
        "date": e.date.isoformat(),
        "payment": float(e.payment),
        "principal": float(e.principal),
        "interest": float(e.interest),
        "extra_payment": float(e.extra_payment),
        "remaining_balance": float(e.remaining_balance),
    }


def _projection_row(e: ProjectionEntry) -> Dict[str, Any]:
    return {
        "period": e.period,
        "month": e.month,
        "opening_balance": float(e.opening_balance),
        "contribution": float(e.contribution),
        "interest_earned": float(e.interest_earned),
        "closing_balance": float(e.closing_balance),
        "cumulative_contributions": float(e.cumulative_contributions),
        "cumulative_interest": float(e.cumulative_interest),
    }


def _summary_dict(summary) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in vars(summary).items():
        if isinstance(value, Decimal):
            value = float(value)
        elif isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, CompoundingFrequency):
            value = value.value
        result[key] = value
    return result


def export_rows(path: Path, rows: List[Dict[str, Any]], summary: Dict[str, Any]) -> None:
    """Export rows to ``.json`` (with the summary) or ``.csv`` (rows only)."""
    suffix = path.suffix.lower()
    if suffix == ".json":
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary, "schedule": rows}, f, indent=2)
    elif suffix == ".csv":
        with path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()) if rows else [])
            writer.writeheader()
            writer.writerows(rows)
    else:
        raise click.BadParameter("Unsupported output format; use .json or .csv")
    click.echo(f"Schedule exported to {path}")


def _echo_rows(rows: list, printer) -> None:
    # Limit schedule length printed to avoid flooding the terminal
    if len(rows) > MAX_ROWS:
        click.echo(f"Schedule has {len(rows)} rows; showing first {MAX_ROWS} rows.")
        rows = rows[:MAX_ROWS]
    printer(rows)


def loan_options(func):
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount"),
        click.option("--rate", "-r", "rate", required=True, help="Nominal annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months"),
        click.option("--start-date", "-s", "start_date", help="First payment date (YYYY-MM-DD); defaults to today"),
        click.option("--currency", "currency", type=click.Choice(sorted(SUPPORTED_CURRENCIES)), default="USD", show_default=True),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def investment_options(func):
    options = [
        click.option("--initial", "-i", "initial", required=True, help="Initial amount"),
        click.option("--contribution", "-c", "contribution", default="0", show_default=True, help="Monthly contribution"),
        click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=int, help="Term in months"),
        click.option(
            "--compounding",
            "compounding",
            type=click.Choice([f.value for f in CompoundingFrequency]),
            default="monthly",
            show_default=True,
        ),
        click.option("--currency", "currency", type=click.Choice(sorted(SUPPORTED_CURRENCIES)), default="COP", show_default=True),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
def cli() -> None:
    """Loan and investment simulator."""
    pass


@cli.command()
@loan_options
@click.option("--extra", "extra", multiple=True, help="Extra payment in NUMBER:AMOUNT[:DESCRIPTION] format")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(principal, rate, term, start_date, currency, extra, output) -> None:
    """Compute and print the full amortization schedule."""
    scenario = build_loan_scenario(principal, rate, term, start_date, currency)
    extra_payments = parse_extra_payment_strings(extra)
    try:
        entries = generate_amortization_schedule(scenario, extra_payments)
        summary = summarize_schedule(scenario, entries)
        original = calculate_loan_summary(scenario) if extra_payments else summary
    except FinsimError as exc:
        raise click.ClickException(str(exc))
    impact = compare_summaries(original, summary)
    if output:
        export_rows(Path(output), [_amortization_row(e) for e in entries], _summary_dict(summary))
        return
    print_loan_summary(summary, scenario.currency)
    print_impact(impact, scenario.currency)
    _echo_rows(entries, print_schedule)


@cli.command()
@loan_options
@click.option("--extra", "extra", multiple=True, help="Extra payment in NUMBER:AMOUNT[:DESCRIPTION] format")
def summary(principal, rate, term, start_date, currency, extra) -> None:
    """Compute and print only the summary metrics for a loan."""
    scenario = build_loan_scenario(principal, rate, term, start_date, currency)
    try:
        impact = calculate_extra_payment_impact(scenario, parse_extra_payment_strings(extra))
    except FinsimError as exc:
        raise click.ClickException(str(exc))
    print_loan_summary(impact.new_summary, scenario.currency)
    print_impact(impact, scenario.currency)


@cli.command("compare-rates")
@loan_options
@click.option("--alt-rate", "alt_rates", multiple=True, required=True, help="Alternate annual rate (percent)")
def compare_rates_command(principal, rate, term, start_date, currency, alt_rates) -> None:
    """Compare the loan's payment and interest across several rates."""
    scenario = build_loan_scenario(principal, rate, term, start_date, currency)
    rates = [c.rate for c in parse_comparison_strings(alt_rates)]
    try:
        comparisons = compare_loan_rates(scenario, rates)
    except FinsimError as exc:
        raise click.ClickException(str(exc))
    print_loan_rate_comparison(comparisons)


@cli.command()
@investment_options
@click.option("--view", "view", type=click.Choice(["monthly", "detailed"]), default="monthly", show_default=True)
@click.option("--compare", "compare", multiple=True, help="Alternate rate in RATE[:LABEL] format")
@click.option("--rate-range", "rate_range", help="Compare every rate in MIN:MAX[:STEP]")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def project(initial, contribution, rate, term, compounding, currency, view, compare, rate_range, output) -> None:
    """Project an investment and print its schedule."""
    scenario = build_investment_scenario(initial, contribution, rate, term, compounding, currency)
    try:
        summary_data = calculate_investment_summary(scenario)
        if view == "detailed":
            rows = generate_projection_schedule(scenario)
        else:
            rows = generate_monthly_summary_schedule(scenario)
        comparisons = compare_rates(scenario, parse_comparison_strings(compare))
        if rate_range:
            comparisons += compare_rate_range(scenario, *parse_rate_range(rate_range))
    except FinsimError as exc:
        raise click.ClickException(str(exc))
    if output:
        export_rows(Path(output), [_projection_row(e) for e in rows], _summary_dict(summary_data))
        return
    print_investment_summary(summary_data, scenario.currency)
    if comparisons:
        print_rate_comparison(comparisons)
    _echo_rows(rows, print_projection)


@cli.command()
@investment_options
@click.option("--target", "target", required=True, help="Balance to reach")
@click.option("--solve", "solve", type=click.Choice(["term", "contribution"]), default="term", show_default=True)
def target(initial, contribution, rate, term, compounding, currency, target, solve) -> None:
    """Solve for the months or the monthly contribution needed to reach a target."""
    scenario = build_investment_scenario(initial, contribution, rate, term, compounding, currency)
    goal = parse_amount(target)
    try:
        if solve == "term":
            months = calculate_time_to_target(scenario, goal)
        else:
            required = calculate_required_contribution(scenario, goal)
    except FinsimError as exc:
        raise click.ClickException(str(exc))
    if solve == "contribution":
        click.echo(f"Required monthly contribution: {money(required, scenario.currency)}")
    elif months is None:
        click.echo("Target is not reachable within 100 years.")
    else:
        click.echo(f"Months to reach target: {months}")


@cli.command("convert-rate")
@click.argument("value")
@click.option("--from", "source", type=click.Choice([t.value for t in RateType]), default="EA", show_default=True)
def convert_rate_command(value: str, source: str) -> None:
    """Show a rate in every convention (EA, EM, ED, NA)."""
    try:
        converted = convert_all(value, source)
    except FinsimError as exc:
        raise click.ClickException(str(exc))
    for rate_type, rate in converted.items():
        click.echo(f"{rate_type.value}: {rate}%")


if __name__ == "__main__":
    cli()
