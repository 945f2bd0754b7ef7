"""
Shared fixtures for Growthline tests.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest


# Small male-only table: weight and height at 0, 6, 12 and 24 months.
# p50 weight at 12 months is 10.2 kg.
SCENARIO_TABLE = {
    "weight": {
        "male": {
            0: [2.5, 2.9, 3.3, 3.9, 4.4],
            6: [6.4, 7.1, 7.9, 8.8, 9.7],
            12: [7.8, 8.9, 10.2, 11.3, 12.0],
            24: [9.8, 11.0, 12.2, 13.6, 15.0],
        },
    },
    "height": {
        "male": {
            0: [46.1, 47.9, 49.9, 51.8, 53.4],
            6: [63.6, 65.4, 67.6, 69.8, 71.6],
            12: [71.0, 73.4, 75.7, 78.1, 80.5],
            24: [81.0, 84.1, 87.1, 90.2, 93.2],
        },
    },
}


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Keep environment settings from leaking between tests."""
    from src.analytics.reference import default_store
    from src.config import get_config

    for name in ("GROWTH_REFERENCE_TABLE", "GROWTH_MAX_AGE_MONTHS", "GROWTH_BMI_SPREAD", "GROWTH_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    get_config.cache_clear()
    default_store.cache_clear()
    yield
    get_config.cache_clear()
    default_store.cache_clear()


@pytest.fixture
def scenario_store():
    from src.analytics import ReferenceCurveStore

    return ReferenceCurveStore.from_mapping(SCENARIO_TABLE)


@pytest.fixture(scope="session")
def who_store():
    from src.analytics import ReferenceCurveStore

    return ReferenceCurveStore.from_lms()


@pytest.fixture
def scenario_calculator(scenario_store):
    from src.analytics import PercentileCalculator

    return PercentileCalculator(scenario_store)


@pytest.fixture
def scenario_engine(scenario_calculator):
    from src.analytics import ComparisonEngine

    return ComparisonEngine(scenario_calculator)


@pytest.fixture
def measurement():
    """Factory for measurements of one patient."""
    from datetime import date

    from src.models import Measurement

    def make(age_months=12, taken_on=None, **values):
        return Measurement(
            patient_id="p-1",
            taken_on=taken_on or date(2024, 1, 1),
            age_months=age_months,
            **values,
        )

    return make
