"""Loan amortization and investment projection engines."""

from .amortization import (
    calculate_extra_payment_impact,
    calculate_loan_summary,
    generate_amortization_schedule,
    iter_amortization_schedule,
)
from .errors import FinsimError, InvalidExtraPayment, InvalidScenario
from .investment import (
    calculate_investment_summary,
    compare_rate_range,
    compare_rates,
    generate_monthly_summary_schedule,
    generate_projection_schedule,
)

__all__ = [
    "FinsimError",
    "InvalidExtraPayment",
    "InvalidScenario",
    "calculate_extra_payment_impact",
    "calculate_investment_summary",
    "calculate_loan_summary",
    "compare_rate_range",
    "compare_rates",
    "generate_amortization_schedule",
    "generate_monthly_summary_schedule",
    "generate_projection_schedule",
    "iter_amortization_schedule",
]
