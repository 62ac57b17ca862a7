from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from finsim.data_models import CompoundingFrequency, RateComparison
from finsim.errors import InvalidScenario
from finsim.investment import (
    calculate_investment_summary,
    calculate_required_contribution,
    calculate_time_to_target,
    compare_rate_range,
    compare_rates,
    generate_monthly_summary_schedule,
    generate_projection_schedule,
    month_end_day,
    periodic_rate,
)

ALL_FREQUENCIES = list(CompoundingFrequency)


def test_monthly_compounding_matches_closed_form(savings):
    growth = Decimal("1.005") ** 12
    expected = Decimal("1000") * growth + Decimal("100") * (growth - 1) / Decimal("0.005")
    summary = calculate_investment_summary(savings)
    assert abs(summary.final_balance - expected) <= Decimal("0.01")
    assert summary.final_balance == Decimal("2295.23")
    assert summary.total_contributions == Decimal("1200.00")
    assert summary.periodic_rate == Decimal("0.500000")
    assert summary.effective_annual_rate == Decimal("6.167781")


@pytest.mark.parametrize("frequency", ALL_FREQUENCIES)
def test_final_balance_identity(savings, frequency):
    summary = calculate_investment_summary(replace(savings, compounding_frequency=frequency, term_months=17))
    assert summary.final_balance == (
        summary.initial_amount + summary.total_contributions + summary.total_interest_earned
    )


@pytest.mark.parametrize("frequency", ALL_FREQUENCIES)
def test_balances_never_decrease(savings, frequency):
    scenario = replace(savings, compounding_frequency=frequency)
    for schedule in (generate_projection_schedule(scenario), generate_monthly_summary_schedule(scenario)):
        closings = [e.closing_balance for e in schedule]
        assert closings == sorted(closings)
        assert schedule[0].opening_balance == Decimal("1000.00")


@pytest.mark.parametrize("frequency", ALL_FREQUENCIES)
def test_schedules_end_at_summary_balance(savings, frequency):
    scenario = replace(savings, compounding_frequency=frequency)
    summary = calculate_investment_summary(scenario)
    monthly = generate_monthly_summary_schedule(scenario)
    assert len(monthly) == 12
    assert monthly[-1].closing_balance == summary.final_balance
    assert monthly[-1].cumulative_contributions == summary.total_contributions
    assert generate_projection_schedule(scenario)[-1].closing_balance == summary.final_balance


def test_zero_rate_only_adds_contributions(savings):
    summary = calculate_investment_summary(replace(savings, annual_rate=Decimal("0")))
    assert summary.final_balance == Decimal("2200.00")
    assert summary.total_interest_earned == 0


def test_quarterly_compounding_without_contributions(savings):
    scenario = replace(
        savings,
        monthly_contribution=Decimal("0"),
        annual_rate=Decimal("12"),
        compounding_frequency=CompoundingFrequency.QUARTERLY,
    )
    assert calculate_investment_summary(scenario).final_balance == Decimal("1125.51")
    assert len(generate_projection_schedule(scenario)) == 4


def test_annual_compounding_without_contributions(savings):
    scenario = replace(
        savings,
        monthly_contribution=Decimal("0"),
        annual_rate=Decimal("12"),
        compounding_frequency=CompoundingFrequency.ANNUALLY,
    )
    assert calculate_investment_summary(scenario).final_balance == Decimal("1120.00")


def test_partial_quarter_earns_pro_rata_interest(savings):
    scenario = replace(savings, compounding_frequency=CompoundingFrequency.QUARTERLY, term_months=10)
    detailed = generate_projection_schedule(scenario)
    assert [e.month for e in detailed] == [3, 6, 9, 10]
    assert detailed[-1].contribution == Decimal("100.00")

    monthly = generate_monthly_summary_schedule(scenario)
    assert len(monthly) == 10
    assert [e.month for e in monthly if e.interest_earned > 0] == [3, 6, 9, 10]


def test_daily_schedule_has_one_row_per_day(savings):
    scenario = replace(savings, compounding_frequency=CompoundingFrequency.DAILY)
    detailed = generate_projection_schedule(scenario)
    assert len(detailed) == 365
    assert sum(e.contribution for e in detailed) == Decimal("1200.00")
    assert [e.period for e in detailed if e.contribution > 0] == [month_end_day(m) for m in range(1, 13)]

    monthly = generate_monthly_summary_schedule(scenario)
    assert [e.month for e in monthly] == list(range(1, 13))
    assert monthly[-1].closing_balance == detailed[-1].closing_balance


def test_daily_term_uses_average_month_length():
    assert month_end_day(1) == 30
    assert month_end_day(12) == 365
    assert month_end_day(24) == 731


def test_periodic_rate_per_frequency():
    assert periodic_rate(Decimal("12"), CompoundingFrequency.MONTHLY) == Decimal("0.01")
    assert periodic_rate(Decimal("12"), CompoundingFrequency.QUARTERLY) == Decimal("0.03")
    assert periodic_rate(Decimal("12"), "annually") == Decimal("0.12")


def test_rows_carry_dates_when_start_date_is_set(savings):
    scenario = replace(savings, start_date=date(2024, 1, 15))
    assert generate_projection_schedule(scenario)[0].date == date(2024, 2, 15)
    daily = generate_projection_schedule(replace(scenario, compounding_frequency=CompoundingFrequency.DAILY))
    assert daily[0].date == date(2024, 1, 16)
    assert generate_projection_schedule(savings)[0].date is None


@pytest.mark.parametrize(
    "changes",
    [
        {"initial_amount": Decimal("-1")},
        {"monthly_contribution": Decimal("-1")},
        {"annual_rate": Decimal("-0.5")},
        {"term_months": 0},
        {"term_months": True},
        {"compounding_frequency": "weekly"},
    ],
)
def test_invalid_scenarios_are_rejected(savings, changes):
    with pytest.raises(InvalidScenario):
        calculate_investment_summary(replace(savings, **changes))


def test_compare_rates_keeps_input_order(savings):
    rates = [RateComparison(Decimal("8"), "High"), RateComparison(Decimal("4")), RateComparison(Decimal("6"))]
    results = compare_rates(savings, rates)
    assert [r.rate for r in results] == [Decimal("8"), Decimal("4"), Decimal("6")]
    assert [r.is_base_rate for r in results] == [False, False, True]
    assert results[0].label == "High"
    assert results[0].difference_from_base > 0
    assert results[1].difference_from_base < 0
    assert results[2].difference_from_base == 0
    assert results[2].final_balance == calculate_investment_summary(savings).final_balance


def test_time_to_target(savings):
    flat = replace(savings, annual_rate=Decimal("0"))
    assert calculate_time_to_target(flat, Decimal("2000")) == 10
    assert calculate_time_to_target(flat, Decimal("500")) == 0
    assert calculate_time_to_target(savings, Decimal("2295.23")) == 12


def test_time_to_target_unreachable(savings):
    idle = replace(savings, annual_rate=Decimal("0"), monthly_contribution=Decimal("0"))
    assert calculate_time_to_target(idle, Decimal("2000")) is None


def test_required_contribution_monthly(savings):
    assert calculate_required_contribution(savings, Decimal("2295.23")) == Decimal("100.00")
    assert calculate_required_contribution(replace(savings, annual_rate=Decimal("0")), Decimal("2200")) == Decimal("100.00")
    assert calculate_required_contribution(savings, Decimal("500")) == 0


@pytest.mark.parametrize("frequency", [CompoundingFrequency.DAILY, CompoundingFrequency.QUARTERLY])
def test_required_contribution_by_bisection(savings, frequency):
    scenario = replace(savings, compounding_frequency=frequency)
    target = calculate_investment_summary(scenario).final_balance
    required = calculate_required_contribution(scenario, target)
    assert abs(required - Decimal("100")) <= Decimal("0.02")


def test_required_contribution_rejects_negative_target(savings):
    with pytest.raises(InvalidScenario):
        calculate_required_contribution(savings, Decimal("-1"))


def test_compare_rate_range_skips_base_rate(savings):
    results = compare_rate_range(savings, Decimal("4"), Decimal("8"), Decimal("1"))
    assert [r.rate for r in results] == [Decimal("4"), Decimal("5"), Decimal("7"), Decimal("8")]
    assert not any(r.is_base_rate for r in results)
    balances = [r.final_balance for r in results]
    assert balances == sorted(balances)


def test_compare_rate_range_default_step(savings):
    results = compare_rate_range(savings, Decimal("5"), Decimal("6.5"))
    assert [r.rate for r in results] == [Decimal("5.00"), Decimal("5.50"), Decimal("6.50")]


@pytest.mark.parametrize(
    "low,high,step",
    [("-1", "5", "1"), ("6", "5", "1"), ("1", "5", "0"), ("0", "100", "0.1")],
)
def test_compare_rate_range_rejects_bad_bounds(savings, low, high, step):
    with pytest.raises(InvalidScenario):
        compare_rate_range(savings, Decimal(low), Decimal(high), Decimal(step))
