"""Payroll calculation aggregator.

Combines the deduction catalog, the bracket table, the progressive tax
calculator and the social security calculator into one monthly result:

    total_income   = gross_salary + additional_income
    taxable_income = max(0, total_income * 12 - total_deductions)   (annual)
    income_tax     = round(annual tax / 12, 2)                       (monthly)
    net_salary     = total_income - income_tax - employee social security

A calculation either returns a complete result or raises a
CalculationError; nothing partial is ever returned. Given the same input,
the same published rules and the same clock, results are identical.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional, Union

from pydantic import ValidationError

from .config import RulesProvider, YamlRulesProvider
from .deductions import DeductionCatalog
from .errors import CalculationError, InvalidInputError
from .formatting import CurrencyFormatter, formatter_for_currency
from .reconcile import reconcile_annual_tax
from .schemas import (
    AnnualTaxReconciliation,
    BatchError,
    BatchItem,
    CalculationSummary,
    PayrollBatchResult,
    PayrollCalculationInput,
    PayrollCalculationResult,
    PayrollRatios,
)
from .taxes import MONTHS_PER_YEAR, TaxBracketTable, apply_brackets, compute_social_security, round_cents

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
MIN_TAX_YEAR = 1900
MAX_TAX_YEAR = 9999
# Keeps annualized amounts well inside the 28-digit decimal context when rounded to cents
MAX_AMOUNT = Decimal("1e15")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_calculation_input(data: dict) -> PayrollCalculationInput:
    """Build a PayrollCalculationInput from a raw mapping (JSON body, YAML row).

    Raises:
        InvalidInputError: naming the first field that failed to parse
    """
    try:
        return PayrollCalculationInput.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise InvalidInputError(f"Invalid {field}: {error['msg']}", field=field) from e


def validate_calculation_input(calc_input: PayrollCalculationInput) -> None:
    """Reject input that cannot describe a real pay period.

    Raises:
        InvalidInputError: naming the offending field
    """
    bounded = [
        ("gross_salary", calc_input.gross_salary),
        ("additional_income", calc_input.additional_income),
        ("child_count", calc_input.child_count),
        ("eligible_parent_count", calc_input.eligible_parent_count),
        ("provident_fund_contribution", calc_input.provident_fund_contribution),
    ]
    for field, value in bounded:
        if value < 0:
            raise InvalidInputError(f"{field} must not be negative, got {value}", field=field)
        if value > MAX_AMOUNT:
            raise InvalidInputError(f"{field} exceeds {MAX_AMOUNT:,f}, got {value}", field=field)

    for index, item in enumerate(calc_input.ad_hoc_deductions):
        if abs(item.amount) > MAX_AMOUNT:
            field = f"ad_hoc_deductions.{index}.amount"
            raise InvalidInputError(f"{field} exceeds {MAX_AMOUNT:,f}, got {item.amount}", field=field)

    if not MIN_TAX_YEAR <= calc_input.tax_year <= MAX_TAX_YEAR:
        raise InvalidInputError(f"tax_year out of range: {calc_input.tax_year}", field="tax_year")


def percentage(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator * 100 to 2 places, 0 when the denominator is 0."""
    if denominator == 0:
        return ZERO
    return round_cents(numerator / denominator * 100)


class PayrollCalculator:
    """Monthly payroll calculation against rules published per tax year.

    Args:
        provider: Source of TaxYearRules (default: bundled YAML rules)
        formatter: Currency formatter for the 'formatted' block (default:
            symbol of the year's currency)
        clock: Returns the calculation timestamp (default: UTC now)
    """

    def __init__(
        self,
        provider: Optional[RulesProvider] = None,
        formatter: Optional[CurrencyFormatter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.provider = provider if provider is not None else YamlRulesProvider()
        self.formatter = formatter
        self.clock = clock or _utcnow
        self.bracket_table = TaxBracketTable(self.provider)

    def calculate(self, calc_input: PayrollCalculationInput) -> PayrollCalculationResult:
        """Calculate one monthly payroll result.

        Raises:
            InvalidInputError: input rejected before any computation
            ConfigurationNotFoundError: no rules published for the tax year
            InvalidBracketTableError: the year's bracket table is malformed
            UnsupportedDeductionKindError: a requested deduction is not published
        """
        try:
            result = self._calculate(calc_input)
        except CalculationError as e:
            logger.warning(
                f"payroll calculation failed: employee={calc_input.employee_id} "
                f"tax_year={calc_input.tax_year} {type(e).__name__}: {e}"
            )
            raise

        logger.info(
            f"payroll calculated: employee={calc_input.employee_id} tax_year={result.tax_year} "
            f"gross={result.gross_salary} taxable={result.taxable_income} "
            f"tax={result.income_tax} net={result.net_salary}"
        )
        return result

    def _calculate(self, calc_input: PayrollCalculationInput) -> PayrollCalculationResult:
        validate_calculation_input(calc_input)

        rules = self.provider.rules_for(calc_input.tax_year)
        brackets = self.bracket_table.brackets_for(calc_input.tax_year)

        gross_salary = calc_input.gross_salary
        total_income = gross_salary + calc_input.additional_income

        deductions = DeductionCatalog.for_rules(rules).resolve(calc_input)
        taxable_income = max(ZERO, total_income * MONTHS_PER_YEAR - deductions.total_deductions)

        tax = apply_brackets(taxable_income, brackets)
        social_security = compute_social_security(gross_salary, rules.social_security)

        income_tax = tax.monthly_tax
        net_salary = total_income - income_tax - social_security.employee_contribution

        ratios = PayrollRatios(
            tax_rate=percentage(income_tax, total_income),
            deduction_rate=percentage(deductions.total_deductions, total_income * MONTHS_PER_YEAR),
            net_rate=percentage(net_salary, total_income),
            ss_rate=percentage(social_security.employee_contribution, gross_salary),
        )
        summary = CalculationSummary(
            total_cost_to_employer=total_income + social_security.employer_contribution,
            total_employee_deductions=income_tax + social_security.employee_contribution,
            take_home_percentage=ratios.net_rate,
            effective_tax_rate=ratios.tax_rate,
        )

        formatter = self.formatter or formatter_for_currency(rules.currency)
        formatted = {
            "gross_salary": formatter.format_money(gross_salary),
            "total_income": formatter.format_money(total_income),
            "net_salary": formatter.format_money(net_salary),
            "income_tax": formatter.format_money(income_tax),
            "total_deductions": formatter.format_money(deductions.total_deductions),
            "employee_ss_contribution": formatter.format_money(social_security.employee_contribution),
        }

        return PayrollCalculationResult(
            gross_salary=gross_salary,
            total_income=total_income,
            net_salary=net_salary,
            taxable_income=taxable_income,
            income_tax=income_tax,
            tax_year=calc_input.tax_year,
            deductions=deductions,
            social_security=social_security,
            tax_breakdown=tax.tax_breakdown,
            formatted=formatted,
            ratios=ratios,
            calculation_date=self.clock(),
            pay_period_date=calc_input.pay_period_date,
            calculation_summary=summary,
        )

    def calculate_batch(
        self,
        inputs: Iterable[Union[PayrollCalculationInput, dict]],
        max_workers: Optional[int] = None,
    ) -> PayrollBatchResult:
        """Calculate many employees, one item per input, in input order.

        Rules are resolved once per tax year before any calculation starts.
        A failing employee is reported in its item and does not stop the
        others. Only CalculationError is captured; anything else propagates.
        """
        inputs = list(inputs)
        years = set()
        for raw in inputs:
            year = raw.tax_year if isinstance(raw, PayrollCalculationInput) else raw.get("tax_year")
            if isinstance(year, int):
                years.add(year)

        year_errors: dict[int, CalculationError] = {}
        for year in sorted(years):
            try:
                self.bracket_table.brackets_for(year)
            except CalculationError as e:
                logger.warning(f"batch: tax year {year} unavailable: {e}")
                year_errors[year] = e

        def run(index: int, raw: Union[PayrollCalculationInput, dict]) -> BatchItem:
            employee_id = raw.employee_id if isinstance(raw, PayrollCalculationInput) else raw.get("employee_id")
            try:
                calc_input = raw if isinstance(raw, PayrollCalculationInput) else parse_calculation_input(raw)
                validate_calculation_input(calc_input)
                error = year_errors.get(calc_input.tax_year)
                if error is None:
                    return BatchItem(index=index, employee_id=employee_id, result=self.calculate(calc_input))
            except CalculationError as e:
                error = e
            return BatchItem(
                index=index,
                employee_id=employee_id,
                error=BatchError(type=type(error).__name__, field=error.field, message=str(error)),
            )

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            items = list(executor.map(run, range(len(inputs)), inputs))

        batch = PayrollBatchResult(items=tuple(items))
        logger.info(f"batch complete: {len(batch.succeeded)} succeeded, {len(batch.failed)} failed")
        return batch

    def reconcile_year(self, results: list[PayrollCalculationResult]) -> AnnualTaxReconciliation:
        """Reconcile a year of monthly results against the annual liability."""
        if not results:
            raise InvalidInputError("No payroll results to reconcile", field="results")
        brackets = self.bracket_table.brackets_for(results[0].tax_year)
        return reconcile_annual_tax(results, brackets)
