"""Unit tests for checking published rules against statutory limits."""

from decimal import Decimal

import pytest

from payroll_engine.sdk import RULES_PATH_ENV, check_compliance, load_tax_rules, parse_tax_rules


STATUTORY = {
    "social_security_rate": 0.05,
    "max_monthly_contribution": 750,
    "top_rate": 0.35,
    "bracket_count": 8,
}


# === FIXTURES ===

@pytest.fixture
def rules_with_limits(rules_data):
    """Raw 2025 rules with matching statutory limits declared."""
    rules_data["statutory"] = dict(STATUTORY)
    return rules_data


class TestCheckCompliance:
    def test_matching_rules(self, rules_with_limits):
        report = check_compliance(parse_tax_rules(rules_with_limits, 2025))
        assert report.is_compliant
        assert report.errors == ()
        assert report.warnings == ()

    def test_no_limits_declared(self, rules_data):
        report = check_compliance(parse_tax_rules(rules_data, 2025))
        assert report.is_compliant
        assert "declares no statutory limits" in report.warnings[0]

    def test_social_security_rate(self, rules_with_limits):
        rules_with_limits["social_security"]["rate"] = 0.055
        report = check_compliance(parse_tax_rules(rules_with_limits, 2025))
        assert not report.is_compliant
        assert any("Social security rate is 0.055" in error for error in report.errors)

    def test_max_contribution(self, rules_with_limits):
        """A 17500 ceiling at 5% allows 875 a month against a 750 maximum."""
        rules_with_limits["social_security"]["wage_ceiling"] = 17500
        report = check_compliance(parse_tax_rules(rules_with_limits, 2025))
        assert report.errors == ("Maximum monthly contribution is 875.00, statutory maximum is 750",)

    def test_top_rate(self, rules_with_limits):
        rules_with_limits["brackets"][-1]["rate"] = 0.4
        report = check_compliance(parse_tax_rules(rules_with_limits, 2025))
        assert any("Top bracket rate" in error for error in report.errors)

    def test_bracket_count_is_a_warning(self, rules_with_limits):
        rules_with_limits["statutory"]["bracket_count"] = 9
        report = check_compliance(parse_tax_rules(rules_with_limits, 2025))
        assert report.is_compliant
        assert report.warnings == ("Expected 9 brackets, found 8",)

    def test_partial_limits(self, rules_with_limits):
        rules_with_limits["statutory"] = {"top_rate": 0.35}
        rules_with_limits["social_security"]["rate"] = 0.06
        assert check_compliance(parse_tax_rules(rules_with_limits, 2025)).is_compliant


class TestBundledRules:
    @pytest.mark.parametrize("year", [2025, 2026])
    def test_bundled_years_compliant(self, monkeypatch, year):
        monkeypatch.delenv(RULES_PATH_ENV, raising=False)
        rules = load_tax_rules(year)
        assert rules.statutory.max_monthly_contribution == Decimal("750")
        report = check_compliance(rules)
        assert report.is_compliant
        assert report.warnings == ()
