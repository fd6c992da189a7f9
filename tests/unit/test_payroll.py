"""Unit tests for PayrollCalculator.

Uses in-memory 2025 rules and a fixed clock - no files, no wall time.
"""

import json
import logging
from datetime import date
from decimal import Decimal

import pytest

from payroll_engine.sdk import (
    ConfigurationNotFoundError,
    InMemoryRulesProvider,
    InvalidInputError,
    PayrollCalculator,
    SymbolCurrencyFormatter,
    UnsupportedDeductionKindError,
    parse_calculation_input,
)
from payroll_engine.sdk.payroll import MAX_AMOUNT


class SpyProvider:
    """Provider that records every year requested."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    def rules_for(self, tax_year):
        self.calls.append(tax_year)
        return self.inner.rules_for(tax_year)


class TestDocumentedScenario:
    """50000 gross + 5000 additional with 258000 annual deductions.

    Deductions: personal 60000 + personal expenses 100000 + provident fund 98000.
    """

    @pytest.fixture
    def result(self, calculator, make_input):
        return calculator.calculate(make_input(
            gross_salary=50000,
            additional_income=5000,
            provident_fund_contribution=98000,
        ))

    def test_taxable_income(self, result):
        assert result.total_income == Decimal("55000")
        assert result.deductions.total_deductions == Decimal("258000")
        assert result.taxable_income == Decimal("402000")

    def test_tax_and_net(self, result):
        assert result.income_tax == Decimal("1475.00")
        assert result.social_security.employee_contribution == Decimal("750.00")
        assert result.net_salary == Decimal("52775.00")

    def test_tax_breakdown_sums_to_annual_tax(self, result):
        assert len(result.tax_breakdown) == 8
        assert sum(row.tax_amount for row in result.tax_breakdown) == Decimal("17700")

    def test_ratios(self, result):
        assert result.ratios.tax_rate == Decimal("2.68")
        assert result.ratios.deduction_rate == Decimal("39.09")
        assert result.ratios.net_rate == Decimal("95.95")
        assert result.ratios.ss_rate == Decimal("1.50")

    def test_summary(self, result):
        summary = result.calculation_summary
        assert summary.total_cost_to_employer == Decimal("55750.00")
        assert summary.total_employee_deductions == Decimal("2225.00")
        assert summary.take_home_percentage == result.ratios.net_rate
        assert summary.effective_tax_rate == result.ratios.tax_rate

    def test_formatted(self, result):
        assert result.formatted == {
            "gross_salary": "฿50,000.00",
            "total_income": "฿55,000.00",
            "net_salary": "฿52,775.00",
            "income_tax": "฿1,475.00",
            "total_deductions": "฿258,000.00",
            "employee_ss_contribution": "฿750.00",
        }

    def test_dates(self, result, fixed_now):
        assert result.calculation_date == fixed_now
        assert result.pay_period_date == date(2025, 1, 31)
        assert result.tax_year == 2025


class TestCalculate:
    """Edge cases and invariants of a single calculation."""

    def test_zero_income(self, calculator, make_input):
        result = calculator.calculate(make_input(gross_salary=0))
        assert result.taxable_income == 0
        assert result.income_tax == 0
        assert all(row.tax_amount == 0 for row in result.tax_breakdown)
        assert result.net_salary == result.total_income - result.social_security.employee_contribution
        assert result.ratios.tax_rate == 0
        assert result.ratios.ss_rate == 0
        assert result.ratios.deduction_rate == 0

    def test_deductions_exceed_income(self, calculator, make_input):
        result = calculator.calculate(make_input(gross_salary=10000, has_spouse=True, child_count=3))
        assert result.taxable_income == 0
        assert result.income_tax == 0

    def test_employee_id_not_in_result(self, calculator, make_input):
        result = calculator.calculate(make_input(employee_id="EMP-001"))
        assert "employee_id" not in result.to_dict()
        assert "EMP-001" not in json.dumps(result.to_dict())

    def test_deterministic(self, calculator, make_input):
        calc_input = make_input(has_spouse=True, child_count=1, additional_income="1234.56")
        first = json.dumps(calculator.calculate(calc_input).to_dict(), sort_keys=True)
        second = json.dumps(calculator.calculate(calc_input).to_dict(), sort_keys=True)
        assert first == second

    def test_to_dict_keeps_decimals_exact(self, calculator, make_input):
        data = calculator.calculate(make_input(gross_salary="33333.33")).to_dict()
        assert Decimal(data["gross_salary"]) == Decimal("33333.33")
        assert isinstance(data["net_salary"], str)

    def test_custom_formatter(self, provider, make_input, fixed_now):
        calculator = PayrollCalculator(provider, formatter=SymbolCurrencyFormatter("THB "), clock=lambda: fixed_now)
        result = calculator.calculate(make_input())
        assert result.formatted["gross_salary"] == "THB 50,000.00"

    def test_missing_year(self, calculator, make_input):
        with pytest.raises(ConfigurationNotFoundError) as exc:
            calculator.calculate(make_input(tax_year=2030))
        assert exc.value.field == "tax_year"

    def test_requested_deduction_not_published(self, rules_data, make_input):
        del rules_data["deductions"]["child_allowance"]
        calculator = PayrollCalculator(InMemoryRulesProvider({2025: rules_data}))
        with pytest.raises(UnsupportedDeductionKindError):
            calculator.calculate(make_input(child_count=1))


class TestInputValidation:
    """Invalid input is rejected before any rules are read."""

    @pytest.mark.parametrize("field,value", [
        ("gross_salary", -1),
        ("additional_income", "-0.01"),
        ("child_count", -1),
        ("eligible_parent_count", -2),
        ("provident_fund_contribution", -100),
        ("tax_year", 1800),
    ])
    def test_rejected_before_rules(self, provider, make_input, field, value):
        spy = SpyProvider(provider)
        calculator = PayrollCalculator(spy)
        with pytest.raises(InvalidInputError) as exc:
            calculator.calculate(make_input(**{field: value}))
        assert exc.value.field == field
        assert spy.calls == []

    @pytest.mark.parametrize("field", ["gross_salary", "additional_income", "provident_fund_contribution"])
    def test_amount_too_large_for_exact_arithmetic(self, calculator, make_input, field):
        with pytest.raises(InvalidInputError) as exc:
            calculator.calculate(make_input(**{field: Decimal("1e28")}))
        assert exc.value.field == field

    def test_ad_hoc_amount_too_large(self, calculator, make_input):
        ad_hoc = [{"description": "ok", "amount": 100}, {"description": "typo", "amount": "-1e28"}]
        with pytest.raises(InvalidInputError) as exc:
            calculator.calculate(make_input(ad_hoc_deductions=ad_hoc))
        assert exc.value.field == "ad_hoc_deductions.1.amount"

    def test_largest_accepted_amount_calculates(self, calculator, make_input):
        result = calculator.calculate(make_input(gross_salary=MAX_AMOUNT, additional_income=MAX_AMOUNT))
        assert result.total_income == MAX_AMOUNT * 2
        assert result.income_tax > 0
        assert result.social_security.employee_contribution == Decimal("750.00")

    def test_parse_names_bad_field(self):
        with pytest.raises(InvalidInputError) as exc:
            parse_calculation_input({"gross_salary": "abc", "tax_year": 2025, "pay_period_date": "2025-01-31"})
        assert exc.value.field == "gross_salary"

    def test_parse_missing_field(self):
        with pytest.raises(InvalidInputError) as exc:
            parse_calculation_input({"gross_salary": 1000, "pay_period_date": "2025-01-31"})
        assert exc.value.field == "tax_year"

    def test_parse_rejects_unknown_field(self):
        with pytest.raises(InvalidInputError):
            parse_calculation_input({
                "gross_salary": 1000, "tax_year": 2025, "pay_period_date": "2025-01-31", "bonus": 5,
            })

    def test_parse_float_is_exact(self):
        calc_input = parse_calculation_input({
            "gross_salary": 1000.1, "tax_year": 2025, "pay_period_date": "2025-01-31",
        })
        assert calc_input.gross_salary == Decimal("1000.1")


class TestAuditLogging:
    def test_success_logged(self, calculator, make_input, caplog):
        with caplog.at_level(logging.INFO, logger="payroll_engine"):
            calculator.calculate(make_input(employee_id="EMP-7"))
        assert "payroll calculated: employee=EMP-7 tax_year=2025" in caplog.text

    def test_failure_logged(self, calculator, make_input, caplog):
        with caplog.at_level(logging.WARNING, logger="payroll_engine"):
            with pytest.raises(ConfigurationNotFoundError):
                calculator.calculate(make_input(employee_id="EMP-8", tax_year=2031))
        assert "payroll calculation failed: employee=EMP-8" in caplog.text
        assert "ConfigurationNotFoundError" in caplog.text


class TestBatch:
    """calculate_batch reports every employee, in input order."""

    def test_mixed_batch(self, calculator, make_input):
        inputs = [
            make_input(employee_id="A"),
            {"employee_id": "B", "gross_salary": -5, "tax_year": 2025, "pay_period_date": "2025-01-31"},
            {"employee_id": "C", "gross_salary": 40000, "tax_year": 1999, "pay_period_date": "1999-01-31"},
            {"employee_id": "D", "gross_salary": "oops", "tax_year": 2025, "pay_period_date": "2025-01-31"},
            {"employee_id": "E", "gross_salary": 20000, "tax_year": 2025, "pay_period_date": "2025-01-31"},
        ]
        batch = calculator.calculate_batch(inputs, max_workers=2)

        assert [item.index for item in batch.items] == [0, 1, 2, 3, 4]
        assert [item.employee_id for item in batch.items] == ["A", "B", "C", "D", "E"]
        assert [item.ok for item in batch.items] == [True, False, False, False, True]

        errors = {item.employee_id: item.error for item in batch.failed}
        assert errors["B"].type == "InvalidInputError"
        assert errors["B"].field == "gross_salary"
        assert errors["C"].type == "ConfigurationNotFoundError"
        assert errors["D"].field == "gross_salary"

    def test_batch_matches_single(self, calculator, make_input):
        calc_input = make_input(has_spouse=True)
        batch = calculator.calculate_batch([calc_input])
        assert batch.items[0].result == calculator.calculate(calc_input)

    def test_to_dict(self, calculator, make_input):
        data = calculator.calculate_batch([make_input()]).to_dict()
        assert data["items"][0]["error"] is None
        assert Decimal(data["items"][0]["result"]["income_tax"]) == calculator.calculate(make_input()).income_tax

    def test_oversized_amount_fails_only_its_item(self, calculator, make_input):
        batch = calculator.calculate_batch([
            make_input(employee_id="A"),
            make_input(employee_id="B", gross_salary=Decimal("1e28")),
            make_input(employee_id="C"),
        ])
        assert [item.ok for item in batch.items] == [True, False, True]
        assert batch.items[1].error.type == "InvalidInputError"
        assert batch.items[1].error.field == "gross_salary"

    def test_empty_batch(self, calculator):
        batch = calculator.calculate_batch([])
        assert batch.items == ()


class TestReconcile:
    """Year-end reconciliation of withheld tax."""

    def _year(self, calculator, make_input, bonus_month=None, bonus=0):
        results = []
        for month in range(1, 13):
            additional = bonus if month == bonus_month else 0
            results.append(calculator.calculate(make_input(
                additional_income=additional,
                pay_period_date=date(2025, month, 28),
            )))
        return results

    def test_steady_salary_settles(self, calculator, make_input):
        """50000 x 12 less 160000 = 440000 -> 21500 tax; withheld 12 x 1791.67."""
        summary = calculator.reconcile_year(self._year(calculator, make_input))
        assert summary.periods == 12
        assert summary.total_income == Decimal("600000")
        assert summary.taxable_income == Decimal("440000")
        assert summary.tax_liability == Decimal("21500.00")
        assert summary.tax_paid == Decimal("21500.04")
        assert summary.refund_due == Decimal("0.04")
        assert summary.additional_tax_due == 0

    def test_bonus_month_overwithholds(self, calculator, make_input):
        """A 120000 bonus is annualized in its month, so withholding overshoots."""
        summary = calculator.reconcile_year(self._year(calculator, make_input, bonus_month=12, bonus=120000))
        assert summary.total_income == Decimal("720000")
        assert summary.taxable_income == Decimal("560000")
        assert summary.tax_liability == Decimal("36500.00")
        assert summary.tax_paid == Decimal("47625.04")
        assert summary.tax_difference == Decimal("-11125.04")
        assert summary.refund_due == Decimal("11125.04")

    def test_uses_latest_deductions(self, calculator, make_input):
        results = [
            calculator.calculate(make_input(pay_period_date=date(2025, 2, 28), has_spouse=True)),
            calculator.calculate(make_input(pay_period_date=date(2025, 1, 31))),
        ]
        summary = calculator.reconcile_year(results)
        assert summary.total_deductions == Decimal("220000")

    def test_empty(self, calculator):
        with pytest.raises(InvalidInputError):
            calculator.reconcile_year([])

    def test_mixed_years(self, rules_data, make_input):
        rules_2026 = dict(rules_data, tax_year=2026)
        calculator = PayrollCalculator(InMemoryRulesProvider({2025: rules_data, 2026: rules_2026}))
        results = [
            calculator.calculate(make_input()),
            calculator.calculate(make_input(tax_year=2026, pay_period_date=date(2026, 1, 31))),
        ]
        with pytest.raises(InvalidInputError) as exc:
            calculator.reconcile_year(results)
        assert exc.value.field == "tax_year"
