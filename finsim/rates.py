"""Conversion between the interest rate conventions used by banks.

Every conversion goes through the effective annual rate (EA):

* EA -> EM: ``(1 + EA)^(1/12) - 1``
* EA -> ED: ``(1 + EA)^(1/365) - 1``
* EA -> NM: same as EM; the monthly rate printed on a statement
* EA -> NA: ``12 * EM`` (nominal annual, compounded monthly)

Values are percentages in and out, rounded to six decimals.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Dict

from .errors import InvalidScenario
from .utils import Number, as_decimal, round_rate

DAYS_PER_YEAR = 365
MONTHS_PER_YEAR = 12


class RateType(str, Enum):
    EA = "EA"  # effective annual
    EM = "EM"  # effective monthly
    ED = "ED"  # effective daily
    NM = "NM"  # nominal monthly
    NA = "NA"  # nominal annual, monthly compounding


def rate_type_of(value) -> RateType:
    if isinstance(value, RateType):
        return value
    try:
        return RateType(str(value).strip().upper())
    except ValueError as exc:
        allowed = ", ".join(t.value for t in RateType)
        raise InvalidScenario(f"Unknown rate type {value!r}; expected one of {allowed}") from exc


def _to_effective_annual(rate: Decimal, source: RateType) -> Decimal:
    if source is RateType.EA:
        return rate
    if source in (RateType.EM, RateType.NM):
        return (1 + rate) ** MONTHS_PER_YEAR - 1
    if source is RateType.ED:
        return (1 + rate) ** DAYS_PER_YEAR - 1
    return (1 + rate / MONTHS_PER_YEAR) ** MONTHS_PER_YEAR - 1


def _from_effective_annual(ea: Decimal, target: RateType) -> Decimal:
    if target is RateType.EA:
        return ea
    if target is RateType.ED:
        return (1 + ea) ** (Decimal(1) / DAYS_PER_YEAR) - 1
    monthly = (1 + ea) ** (Decimal(1) / MONTHS_PER_YEAR) - 1
    if target in (RateType.EM, RateType.NM):
        return monthly
    return monthly * MONTHS_PER_YEAR


def convert_rate(value: Number, source, target) -> Decimal:
    """Convert a percentage ``value`` from ``source`` to ``target`` convention.

    Raises
    ------
    InvalidScenario
        If the rate is negative or a rate type is unknown.
    """
    source = rate_type_of(source)
    target = rate_type_of(target)
    try:
        rate = as_decimal(value)
    except ValueError as exc:
        raise InvalidScenario(str(exc)) from exc
    if rate < 0:
        raise InvalidScenario("Interest rate cannot be negative")
    ea = _to_effective_annual(rate / 100, source)
    return round_rate(_from_effective_annual(ea, target) * 100)


def convert_all(value: Number, source) -> Dict[RateType, Decimal]:
    """Return ``value`` expressed in every rate convention."""
    return {target: convert_rate(value, source, target) for target in RateType}
