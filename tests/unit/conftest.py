"""Shared fixtures for payroll engine unit tests.

Rules are built in memory from the same numbers as the bundled 2025 file,
so calculations never depend on the environment.
"""

import copy
from datetime import date, datetime, timezone

import pytest

from payroll_engine.sdk import InMemoryRulesProvider, PayrollCalculator, PayrollCalculationInput


THAI_RULES = {
    "tax_year": 2025,
    "currency": "THB",
    "brackets": [
        {"order": 1, "lower_bound": 0, "upper_bound": 150000, "rate": 0.0},
        {"order": 2, "lower_bound": 150000, "upper_bound": 300000, "rate": 0.05},
        {"order": 3, "lower_bound": 300000, "upper_bound": 500000, "rate": 0.10},
        {"order": 4, "lower_bound": 500000, "upper_bound": 750000, "rate": 0.15},
        {"order": 5, "lower_bound": 750000, "upper_bound": 1000000, "rate": 0.20},
        {"order": 6, "lower_bound": 1000000, "upper_bound": 2000000, "rate": 0.25},
        {"order": 7, "lower_bound": 2000000, "upper_bound": 5000000, "rate": 0.30},
        {"order": 8, "lower_bound": 5000000, "upper_bound": None, "rate": 0.35},
    ],
    "social_security": {
        "rate": 0.05,
        "employer_rate": 0.05,
        "wage_floor": 1650,
        "wage_ceiling": 15000,
    },
    "deductions": {
        "personal_allowance": {"amount": 60000},
        "spouse_allowance": {"amount": 60000},
        "child_allowance": {"amount": 30000, "max_units": 3},
        "parent_allowance": {"amount": 30000, "max_units": 4},
        "personal_expenses": {"rate": 0.5, "cap": 100000},
        "provident_fund": {"cap": 500000},
        "additional_deductions": {},
    },
}

FIXED_NOW = datetime(2025, 1, 31, 9, 30, tzinfo=timezone.utc)


# === FIXTURES ===

@pytest.fixture
def rules_data():
    """Raw 2025 rules mapping (a fresh copy per test, safe to mutate)."""
    return copy.deepcopy(THAI_RULES)


@pytest.fixture
def provider(rules_data):
    return InMemoryRulesProvider({2025: rules_data})


@pytest.fixture
def calculator(provider):
    """Calculator over in-memory 2025 rules with a fixed clock."""
    return PayrollCalculator(provider, clock=lambda: FIXED_NOW)


@pytest.fixture
def make_input():
    """Factory for calculation input; keyword arguments override defaults."""
    def _make(**overrides) -> PayrollCalculationInput:
        fields = {
            "gross_salary": 50000,
            "tax_year": 2025,
            "pay_period_date": date(2025, 1, 31),
        }
        fields.update(overrides)
        return PayrollCalculationInput(**fields)
    return _make


@pytest.fixture
def fixed_now():
    return FIXED_NOW
