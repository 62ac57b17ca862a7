"""Investment projection engine.

Projects an initial deposit plus a contribution at the end of every month,
with interest compounded daily, monthly, quarterly or annually.

Conventions:

* The periodic rate is ``annual_rate / 100 / periods_per_year`` (365, 12, 4
  or 1 periods per year).
* Interest of a compounding period is earned on the balance at the start of
  that period. Contributions land at the end of each month of the term.
* Daily compounding uses months of 30.4375 days on average: the term lasts
  ``round(months * 30.4375)`` days and month ``m`` ends on day
  ``round(m * 30.4375)``.
* When the term does not fill the last quarter or year, that partial period
  earns interest pro rata for the months it covers.

Balances are carried at full precision and rounded to cents only in the rows
and summaries handed back to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Iterator, List, Optional

from .data_models import (
    CompoundingFrequency,
    InvestmentScenario,
    InvestmentSummary,
    ProjectionEntry,
    RateComparison,
    RateComparisonResult,
)
from .errors import InvalidScenario
from .utils import Number, add_months, as_decimal, round_currency, round_rate

ZERO = Decimal("0")
AVERAGE_DAYS_PER_MONTH = Decimal("30.4375")
MONTHS_PER_PERIOD = {
    CompoundingFrequency.MONTHLY: 1,
    CompoundingFrequency.QUARTERLY: 3,
    CompoundingFrequency.ANNUALLY: 12,
}
MAX_TARGET_MONTHS = 1200
MAX_RANGE_RATES = 200


@dataclass
class _Period:
    """A compounding period at full precision."""

    index: int
    first_month: int
    last_month: int
    day: Optional[int]  # day of the term, daily compounding only
    opening: Decimal
    interest: Decimal
    contribution: Decimal
    closing: Decimal


def frequency_of(value) -> CompoundingFrequency:
    try:
        return CompoundingFrequency(value)
    except ValueError as exc:
        allowed = ", ".join(f.value for f in CompoundingFrequency)
        raise InvalidScenario(
            f"Unknown compounding frequency {value!r}; expected one of {allowed}"
        ) from exc


def periodic_rate(annual_rate: Number, frequency: CompoundingFrequency) -> Decimal:
    """Return the rate of one compounding period as a fraction."""
    frequency = frequency_of(frequency)
    return as_decimal(annual_rate) / Decimal(100) / Decimal(frequency.periods_per_year)


def month_end_day(month: int) -> int:
    """Return the day of the term on which ``month`` ends (daily compounding)."""
    return int((AVERAGE_DAYS_PER_MONTH * month).to_integral_value(rounding=ROUND_HALF_UP))


def validate_investment_scenario(scenario: InvestmentScenario) -> None:
    try:
        initial = as_decimal(scenario.initial_amount)
        contribution = as_decimal(scenario.monthly_contribution)
        rate = as_decimal(scenario.annual_rate)
    except ValueError as exc:
        raise InvalidScenario(str(exc)) from exc
    if initial < 0:
        raise InvalidScenario("Initial amount cannot be negative")
    if contribution < 0:
        raise InvalidScenario("Monthly contribution cannot be negative")
    if rate < 0:
        raise InvalidScenario("Interest rate cannot be negative")
    term = scenario.term_months
    if isinstance(term, bool) or not isinstance(term, int) or term <= 0:
        raise InvalidScenario("Term must be a positive number of months")
    frequency_of(scenario.compounding_frequency)


def _iter_periods(scenario: InvestmentScenario) -> Iterator[_Period]:
    validate_investment_scenario(scenario)
    frequency = frequency_of(scenario.compounding_frequency)
    if frequency is CompoundingFrequency.DAILY:
        return _iter_daily(scenario)
    return _iter_coarse(scenario, frequency)


def _iter_daily(scenario: InvestmentScenario) -> Iterator[_Period]:
    rate = periodic_rate(scenario.annual_rate, CompoundingFrequency.DAILY)
    monthly = as_decimal(scenario.monthly_contribution)
    balance = as_decimal(scenario.initial_amount)
    month = 1
    boundary = month_end_day(month)
    for day in range(1, month_end_day(scenario.term_months) + 1):
        opening = balance
        interest = opening * rate
        contribution = ZERO
        if day == boundary:
            contribution = monthly
        balance = opening + interest + contribution
        yield _Period(day, month, month, day, opening, interest, contribution, balance)
        if day == boundary:
            month += 1
            boundary = month_end_day(month)


def _iter_coarse(scenario: InvestmentScenario, frequency: CompoundingFrequency) -> Iterator[_Period]:
    rate = periodic_rate(scenario.annual_rate, frequency)
    span = MONTHS_PER_PERIOD[frequency]
    monthly = as_decimal(scenario.monthly_contribution)
    balance = as_decimal(scenario.initial_amount)
    for index, first in enumerate(range(1, scenario.term_months + 1, span), start=1):
        last = min(first + span - 1, scenario.term_months)
        months = last - first + 1
        opening = balance
        interest = opening * rate
        if months < span:
            interest = interest * months / span
        contribution = monthly * months
        balance = opening + interest + contribution
        yield _Period(index, first, last, None, opening, interest, contribution, balance)


def _row_date(scenario: InvestmentScenario, month: int, day: Optional[int]):
    if scenario.start_date is None:
        return None
    if day is not None:
        return scenario.start_date + timedelta(days=day)
    return add_months(scenario.start_date, month)


class _Accumulator:
    """Turns full-precision rows into rounded ``ProjectionEntry`` objects."""

    def __init__(self, scenario: InvestmentScenario) -> None:
        self.scenario = scenario
        self.contributions = ZERO
        self.interest = ZERO

    def entry(self, period: int, month: int, day: Optional[int], opening: Decimal,
              interest: Decimal, contribution: Decimal, closing: Decimal) -> ProjectionEntry:
        self.contributions += contribution
        self.interest += interest
        return ProjectionEntry(
            period=period,
            month=month,
            date=_row_date(self.scenario, month, day),
            opening_balance=round_currency(opening),
            contribution=round_currency(contribution),
            interest_earned=round_currency(interest),
            closing_balance=round_currency(closing),
            cumulative_contributions=round_currency(self.contributions),
            cumulative_interest=round_currency(self.interest),
        )


def generate_projection_schedule(scenario: InvestmentScenario) -> List[ProjectionEntry]:
    """Return one row per compounding period.

    Daily compounding produces one row per day of the term, which can run to
    several thousand rows for long terms; use
    ``generate_monthly_summary_schedule`` for charts.
    """
    acc = _Accumulator(scenario)
    return [
        acc.entry(p.index, p.last_month, p.day, p.opening, p.interest, p.contribution, p.closing)
        for p in _iter_periods(scenario)
    ]


def generate_monthly_summary_schedule(scenario: InvestmentScenario) -> List[ProjectionEntry]:
    """Return one row per month of the term.

    Daily periods are grouped by month (the row closes with the month's last
    day). Quarterly and annual periods are split into their months: each
    month gets its contribution and the period's interest is credited in the
    period's last month.
    """
    acc = _Accumulator(scenario)
    schedule: List[ProjectionEntry] = []
    pending: List[_Period] = []

    for p in _iter_periods(scenario):
        if p.day is not None:
            pending.append(p)
            if p.day == month_end_day(p.last_month):
                schedule.append(_merge_days(acc, pending))
                pending = []
            continue
        balance = p.opening
        per_month = p.contribution / (p.last_month - p.first_month + 1)
        for month in range(p.first_month, p.last_month + 1):
            opening = balance
            interest = p.interest if month == p.last_month else ZERO
            balance = opening + interest + per_month
            schedule.append(acc.entry(month, month, None, opening, interest, per_month, balance))
    return schedule


def _merge_days(acc: _Accumulator, days: List[_Period]) -> ProjectionEntry:
    month = days[-1].last_month
    return acc.entry(
        month,
        month,
        None,
        days[0].opening,
        sum((d.interest for d in days), ZERO),
        sum((d.contribution for d in days), ZERO),
        days[-1].closing,
    )


def calculate_investment_summary(scenario: InvestmentScenario) -> InvestmentSummary:
    """Compute the final figures of ``scenario`` without building a schedule.

    ``final_balance`` always equals ``initial_amount + total_contributions +
    total_interest_earned``: interest is derived from the rounded balance.

    Raises
    ------
    InvalidScenario
        If an amount or the rate is negative, the term is not positive or
        the compounding frequency is not recognised.
    """
    closing = as_decimal(scenario.initial_amount)
    for p in _iter_periods(scenario):
        closing = p.closing

    frequency = frequency_of(scenario.compounding_frequency)
    rate = periodic_rate(scenario.annual_rate, frequency)
    initial = round_currency(as_decimal(scenario.initial_amount))
    contributions = round_currency(as_decimal(scenario.monthly_contribution) * scenario.term_months)
    final_balance = round_currency(closing)
    return InvestmentSummary(
        final_balance=final_balance,
        initial_amount=initial,
        total_contributions=contributions,
        total_interest_earned=final_balance - initial - contributions,
        term_months=scenario.term_months,
        annual_rate=as_decimal(scenario.annual_rate),
        compounding_frequency=frequency,
        periodic_rate=round_rate(rate * 100),
        effective_annual_rate=round_rate(((1 + rate) ** frequency.periods_per_year - 1) * 100),
    )


def compare_rates(scenario: InvestmentScenario, rates: Iterable[RateComparison]) -> List[RateComparisonResult]:
    """Re-run the summary of ``scenario`` at each alternate rate.

    Term, contributions and compounding stay the same. Results keep the
    order of ``rates``; callers that want them sorted sort the input.
    """
    base = calculate_investment_summary(scenario)
    base_rate = as_decimal(scenario.annual_rate)
    results: List[RateComparisonResult] = []
    for comparison in rates:
        rate = as_decimal(comparison.rate)
        summary = calculate_investment_summary(replace(scenario, annual_rate=rate))
        results.append(
            RateComparisonResult(
                rate=rate,
                label=comparison.label,
                final_balance=summary.final_balance,
                total_interest_earned=summary.total_interest_earned,
                difference_from_base=summary.final_balance - base.final_balance,
                is_base_rate=rate == base_rate,
            )
        )
    return results


def compare_rate_range(
    scenario: InvestmentScenario, min_rate: Number, max_rate: Number, step: Number = Decimal("0.5")
) -> List[RateComparisonResult]:
    """Compare ``scenario`` at every rate from ``min_rate`` to ``max_rate`` by ``step``.

    Rates are rounded to two decimals and the scenario's own rate is
    skipped. Results are in ascending rate order.
    """
    low, high, step = as_decimal(min_rate), as_decimal(max_rate), as_decimal(step)
    if low < 0 or high < low:
        raise InvalidScenario("Rate range must satisfy 0 <= min_rate <= max_rate")
    if step <= 0:
        raise InvalidScenario("Rate step must be positive")
    if (high - low) / step >= MAX_RANGE_RATES:
        raise InvalidScenario(f"Rate range yields more than {MAX_RANGE_RATES} rates")

    base_rate = as_decimal(scenario.annual_rate)
    rates: List[RateComparison] = []
    rate = low
    while rate <= high:
        rounded = round_currency(rate)
        if rounded != base_rate:
            rates.append(RateComparison(rate=rounded))
        rate += step
    return compare_rates(scenario, rates)


def calculate_time_to_target(scenario: InvestmentScenario, target: Number) -> Optional[int]:
    """Return the fewest months after which the balance reaches ``target``.

    The scenario's own term is ignored. Returns 0 when the initial amount
    already covers the target and ``None`` when it is not reached within
    100 years.
    """
    target = as_decimal(target)
    validate_investment_scenario(scenario)
    if target <= as_decimal(scenario.initial_amount):
        return 0

    def reached(months: int) -> bool:
        summary = calculate_investment_summary(replace(scenario, term_months=months))
        return summary.final_balance >= target

    if not reached(MAX_TARGET_MONTHS):
        return None
    low, high = 1, MAX_TARGET_MONTHS
    while low < high:
        mid = (low + high) // 2
        if reached(mid):
            high = mid
        else:
            low = mid + 1
    return low


def calculate_required_contribution(scenario: InvestmentScenario, target: Number) -> Decimal:
    """Return the monthly contribution that reaches ``target`` at the end of the term.

    Monthly compounding uses the closed form

        PMT = (FV - P * (1 + r)^n) * r / ((1 + r)^n - 1)

    other frequencies are solved by bisection to the cent. The scenario's own
    contribution is ignored; the result is never negative.
    """
    target = as_decimal(target)
    if target < 0:
        raise InvalidScenario("Target amount cannot be negative")
    validate_investment_scenario(scenario)
    initial = as_decimal(scenario.initial_amount)
    months = scenario.term_months
    frequency = frequency_of(scenario.compounding_frequency)

    if frequency is CompoundingFrequency.MONTHLY:
        rate = periodic_rate(scenario.annual_rate, frequency)
        if rate == 0:
            required = (target - initial) / months
        else:
            growth = (1 + rate) ** months
            required = (target - initial * growth) * rate / (growth - 1)
        return max(round_currency(required), ZERO)

    def balance_with(contribution: Decimal) -> Decimal:
        return calculate_investment_summary(
            replace(scenario, monthly_contribution=contribution)
        ).final_balance

    if balance_with(ZERO) >= target:
        return ZERO
    low, high = ZERO, round_currency(target / months) + 1
    while high - low > Decimal("0.01"):
        mid = (low + high) / 2
        if balance_with(mid) >= target:
            high = mid
        else:
            low = mid
    return round_currency(high)
