from decimal import Decimal

import pytest

from finsim.errors import InvalidScenario
from finsim.rates import RateType, convert_all, convert_rate, rate_type_of

TOLERANCE = Decimal("0.00001")


def test_effective_annual_to_monthly():
    assert abs(convert_rate("12", "EA", "EM") - Decimal("0.948879")) <= TOLERANCE


def test_effective_annual_to_nominal():
    assert abs(convert_rate("12", "EA", "NA") - Decimal("11.386552")) <= Decimal("0.0001")


def test_nominal_to_effective_annual():
    # 12 % nominal compounded monthly is 12.6825 % effective
    assert abs(convert_rate("12", "NA", "EA") - Decimal("12.682503")) <= Decimal("0.0001")


@pytest.mark.parametrize("rate_type", list(RateType))
def test_round_trip_through_effective_annual(rate_type):
    converted = convert_rate("12", "EA", rate_type)
    assert abs(convert_rate(converted, rate_type, "EA") - Decimal("12")) <= Decimal("0.001")


def test_same_convention_is_identity():
    assert convert_rate("7.5", "EA", "EA") == Decimal("7.500000")


def test_rate_types_are_case_insensitive():
    assert convert_rate("12", "ea", "em") == convert_rate("12", "EA", "EM")


def test_convert_all_returns_every_convention():
    rates = convert_all("12", "EA")
    assert set(rates) == set(RateType)
    assert rates[RateType.EA] == Decimal("12.000000")
    assert rates[RateType.ED] < rates[RateType.EM] < rates[RateType.NA] < rates[RateType.EA]


def test_zero_rate_stays_zero():
    assert all(value == 0 for value in convert_all("0", "NA").values())


@pytest.mark.parametrize("value,source", [("-1", "EA"), ("abc", "EA"), ("5", "XX")])
def test_invalid_input_is_rejected(value, source):
    with pytest.raises(InvalidScenario):
        convert_rate(value, source, "EM")


def test_rate_type_members_pass_through():
    assert rate_type_of(RateType.EM) is RateType.EM
    assert rate_type_of(" nm ") is RateType.NM


def test_convert_all_accepts_rate_type_members():
    assert convert_all("12", RateType.EA) == convert_all("12", "EA")
    assert convert_rate("12", RateType.EA, RateType.EM) == convert_rate("12", "EA", "EM")


def test_nominal_monthly_is_the_monthly_rate():
    rates = convert_all("12", "EA")
    assert rates[RateType.NM] == rates[RateType.EM]
    # 1 % a month compounds to 12.6825 % a year
    assert abs(convert_rate("1", "NM", "EA") - Decimal("12.682503")) <= Decimal("0.0001")
    assert abs(convert_rate("1", "NM", "NA") - Decimal("12")) <= Decimal("0.0001")
