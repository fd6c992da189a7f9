"""Year-end reconciliation of withheld income tax.

Monthly withholding rounds each month's tax, and deductions can change
during the year, so the tax actually withheld drifts from the liability on
the year's real income. Reconciliation recomputes the liability from the
monthly results and reports the refund or the amount still due.
"""

from decimal import Decimal
from typing import Sequence

from .errors import InvalidInputError
from .schemas import AnnualTaxReconciliation, PayrollCalculationResult, TaxBracket
from .taxes import apply_brackets

ZERO = Decimal("0")


def reconcile_annual_tax(
    results: Sequence[PayrollCalculationResult],
    brackets: Sequence[TaxBracket],
) -> AnnualTaxReconciliation:
    """Compare tax withheld over a year against the recomputed liability.

    Args:
        results: Monthly calculation results for one tax year
        brackets: Bracket table of that tax year

    Returns:
        AnnualTaxReconciliation. Annual deductions are taken from the most
        recent pay period, since deductions are stated on an annual basis.

    Raises:
        InvalidInputError: no results, or results from several tax years
    """
    if not results:
        raise InvalidInputError("No payroll results to reconcile", field="results")

    years = sorted({r.tax_year for r in results})
    if len(years) != 1:
        raise InvalidInputError(f"Payroll results span several tax years: {years}", field="tax_year")

    latest = max(results, key=lambda r: r.pay_period_date)
    total_income = sum((r.total_income for r in results), ZERO)
    total_deductions = latest.deductions.total_deductions
    taxable_income = max(ZERO, total_income - total_deductions)

    tax_liability = apply_brackets(taxable_income, brackets).total_annual_tax
    tax_paid = sum((r.income_tax for r in results), ZERO)
    difference = tax_liability - tax_paid

    return AnnualTaxReconciliation(
        tax_year=years[0],
        periods=len(results),
        total_income=total_income,
        total_deductions=total_deductions,
        taxable_income=taxable_income,
        tax_liability=tax_liability,
        tax_paid=tax_paid,
        tax_difference=difference,
        refund_due=-difference if difference < 0 else ZERO,
        additional_tax_due=difference if difference > 0 else ZERO,
    )
