"""Validation of JSON request bodies.

Each ``parse_*`` function checks a decoded body and returns the keyword
arguments the store expects. Anything malformed raises the engine's
``InvalidScenario`` / ``InvalidExtraPayment`` so the API reports request
errors and calculation errors the same way.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from finsim.data_models import SUPPORTED_CURRENCIES, CompoundingFrequency
from finsim.errors import InvalidExtraPayment, InvalidScenario
from finsim.rates import rate_type_of
from finsim.utils import as_decimal, parse_date, round_currency, round_rate

MAX_AMOUNT = Decimal("999999999.99")
MAX_RATE = Decimal("100")
MAX_LOAN_TERM = 480
MAX_INVESTMENT_TERM = 600
MAX_CONVERTIBLE_RATE = Decimal("1000")
RATE_PLACES = 4


def _require_object(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise InvalidScenario("Request body must be a JSON object")
    return payload


def _decimal(payload: Dict[str, Any], key: str, error=InvalidScenario) -> Decimal:
    value = payload.get(key)
    if value is None or isinstance(value, bool):
        raise error(f"{key} is required")
    try:
        return as_decimal(value)
    except ValueError as exc:
        raise error(f"{key} must be a number") from exc


def _amount(payload: Dict[str, Any], key: str, error=InvalidScenario) -> Decimal:
    """Read a money amount rounded to cents, the precision it is stored with."""
    return round_currency(_decimal(payload, key, error))


def _rate(payload: Dict[str, Any], key: str, high=MAX_RATE, places: int = RATE_PLACES) -> Decimal:
    return _in_range(round_rate(_decimal(payload, key), places), key, 0, high)


def _integer(payload: Dict[str, Any], key: str, error=InvalidScenario) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise error(f"{key} is required")
    try:
        number = as_decimal(value)
    except ValueError as exc:
        raise error(f"{key} must be an integer") from exc
    if number != number.to_integral_value():
        raise error(f"{key} must be an integer")
    return int(number)


def _text(payload: Dict[str, Any], key: str, max_length: int, required: bool = False,
          error=InvalidScenario) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        if required:
            raise error(f"{key} is required")
        return None
    if not isinstance(value, str):
        raise error(f"{key} must be a string")
    value = value.strip()
    if required and not value:
        raise error(f"{key} is required")
    if len(value) > max_length:
        raise error(f"{key} is too long (max {max_length} characters)")
    return value or None


def _in_range(value, key: str, low, high, error=InvalidScenario, low_inclusive: bool = True):
    if value < low or (value == low and not low_inclusive):
        raise error(f"{key} must be {'at least' if low_inclusive else 'greater than'} {low}")
    if value > high:
        raise error(f"{key} cannot exceed {high}")
    return value


def _currency(payload: Dict[str, Any], default: str) -> str:
    code = str(payload.get("currency") or default).upper()
    if code not in SUPPORTED_CURRENCIES:
        raise InvalidScenario(f"Unsupported currency {code}")
    return code


def parse_loan_payload(payload: Any, partial: bool = False) -> Dict[str, Any]:
    """Validate a loan scenario body; with ``partial`` only present keys are checked."""
    payload = _require_object(payload)
    fields: Dict[str, Any] = {}
    if not partial or "name" in payload:
        fields["name"] = _text(payload, "name", 255, required=True)
    if not partial or "principal" in payload:
        fields["principal"] = _in_range(
            _amount(payload, "principal"), "principal", 0, MAX_AMOUNT, low_inclusive=False
        )
    if not partial or "interestRate" in payload:
        fields["interest_rate"] = _rate(payload, "interestRate")
    if not partial or "termMonths" in payload:
        fields["term_months"] = _in_range(_integer(payload, "termMonths"), "termMonths", 1, MAX_LOAN_TERM)
    if not partial or "startDate" in payload:
        try:
            fields["start_date"] = parse_date(str(payload.get("startDate") or ""))
        except ValueError as exc:
            raise InvalidScenario("startDate must be a YYYY-MM-DD date") from exc
    if not partial or "currency" in payload:
        fields["currency"] = _currency(payload, "USD")
    return fields


def parse_extra_payment_payload(payload: Any, term_months: int) -> Dict[str, Any]:
    payload = _require_object(payload)
    number = _integer(payload, "paymentNumber", InvalidExtraPayment)
    if not 1 <= number <= term_months:
        raise InvalidExtraPayment(
            f"paymentNumber cannot exceed the loan term ({term_months} months)"
            if number > term_months
            else "paymentNumber must be positive"
        )
    amount = _in_range(
        _amount(payload, "amount", InvalidExtraPayment), "amount", 0, MAX_AMOUNT,
        InvalidExtraPayment, low_inclusive=False,
    )
    return {
        "payment_number": number,
        "amount": amount,
        "description": _text(payload, "description", 500, error=InvalidExtraPayment),
    }


def parse_investment_payload(payload: Any, partial: bool = False) -> Dict[str, Any]:
    """Validate an investment scenario body; with ``partial`` only present keys are checked."""
    payload = _require_object(payload)
    fields: Dict[str, Any] = {}
    if not partial or "name" in payload:
        fields["name"] = _text(payload, "name", 255, required=True)
    if not partial or "initialAmount" in payload:
        fields["initial_amount"] = _in_range(
            _amount(payload, "initialAmount"), "initialAmount", 0, MAX_AMOUNT
        )
    if "monthlyContribution" in payload:
        fields["monthly_contribution"] = _in_range(
            _amount(payload, "monthlyContribution"), "monthlyContribution", 0, MAX_AMOUNT
        )
    elif not partial:
        fields["monthly_contribution"] = Decimal("0")
    if not partial or "termMonths" in payload:
        fields["term_months"] = _in_range(
            _integer(payload, "termMonths"), "termMonths", 1, MAX_INVESTMENT_TERM
        )
    if not partial or "annualRate" in payload:
        fields["annual_rate"] = _rate(payload, "annualRate")
    if not partial or "compoundingFrequency" in payload:
        value = payload.get("compoundingFrequency") or "monthly"
        try:
            fields["compounding_frequency"] = CompoundingFrequency(value).value
        except ValueError as exc:
            raise InvalidScenario(f"Unknown compounding frequency {value!r}") from exc
    if not partial or "currency" in payload:
        fields["currency"] = _currency(payload, "COP")
    if "notes" in payload:
        fields["notes"] = _text(payload, "notes", 2000)
    return fields


def parse_rate_comparison_payload(payload: Any) -> Dict[str, Any]:
    payload = _require_object(payload)
    return {
        "rate": _rate(payload, "rate"),
        "label": _text(payload, "label", 100),
    }


def parse_interest_rate_payload(payload: Any, partial: bool = False) -> Dict[str, Any]:
    """Validate a saved rate conversion; rates may go up to 1000 %."""
    payload = _require_object(payload)
    fields: Dict[str, Any] = {}
    if not partial or "name" in payload:
        fields["name"] = _text(payload, "name", 255, required=True)
    if not partial or "inputRate" in payload:
        fields["input_rate"] = _rate(payload, "inputRate", MAX_CONVERTIBLE_RATE, places=6)
    if not partial or "inputRateType" in payload:
        fields["input_rate_type"] = rate_type_of(payload.get("inputRateType") or "").value
    if "notes" in payload:
        fields["notes"] = _text(payload, "notes", 2000)
    return fields
