from datetime import date
from decimal import Decimal

import pytest

from finsim.data_models import CompoundingFrequency, InvestmentScenario, LoanScenario
from finsim_web.app import create_app


@pytest.fixture
def loan():
    return LoanScenario(
        principal=Decimal("10000"),
        annual_rate=Decimal("12"),
        term_months=12,
        start_date=date(2024, 1, 15),
    )


@pytest.fixture
def savings():
    return InvestmentScenario(
        initial_amount=Decimal("1000"),
        monthly_contribution=Decimal("100"),
        annual_rate=Decimal("6"),
        compounding_frequency=CompoundingFrequency.MONTHLY,
        term_months=12,
    )


@pytest.fixture
def app():
    return create_app({"DATABASE_URL": "sqlite://", "TESTING": True, "LOG_LEVEL": "WARNING"})


@pytest.fixture
def client(app):
    return app.test_client()
