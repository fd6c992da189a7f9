"""Progressive income tax over a bracket table.

Per-bracket amounts are kept exact. Rounding happens once on the annual
total and once on the monthly figure derived from it, so the breakdown
always sums to the unrounded total and a direct recomputation agrees with
the reported tax.
"""

from decimal import Decimal
from typing import Sequence

from ..schemas import BracketResult, ProgressiveTaxResult, TaxBracket
from .social_security import round_cents

ZERO = Decimal("0")
MONTHS_PER_YEAR = 12


def taxable_in_bracket(annual_taxable_income: Decimal, bracket: TaxBracket) -> Decimal:
    """Portion of income falling inside a bracket (0 if it does not reach it)."""
    if bracket.upper_bound is None:
        top = annual_taxable_income
    else:
        top = min(annual_taxable_income, bracket.upper_bound)
    return max(ZERO, top - bracket.lower_bound)


def apply_brackets(annual_taxable_income: Decimal, brackets: Sequence[TaxBracket]) -> ProgressiveTaxResult:
    """Calculate annual and monthly tax with a per-bracket breakdown.

    Every bracket appears in the breakdown, including brackets the income
    does not reach, so the sequence length is stable for a tax year.
    Income at or below zero yields an all-zero result.

    Args:
        annual_taxable_income: Annual income after deductions
        brackets: Validated, ordered bracket table

    Returns:
        ProgressiveTaxResult
    """
    income = max(ZERO, annual_taxable_income)

    breakdown = []
    raw_total = ZERO
    for bracket in brackets:
        taxable = taxable_in_bracket(income, bracket)
        tax = taxable * bracket.rate
        raw_total += tax
        breakdown.append(BracketResult(
            order=bracket.order,
            lower_bound=bracket.lower_bound,
            upper_bound=bracket.upper_bound,
            rate=bracket.rate,
            taxable_amount=taxable,
            tax_amount=tax,
        ))

    total_annual_tax = round_cents(raw_total)
    monthly_tax = round_cents(total_annual_tax / MONTHS_PER_YEAR)
    effective_rate = round_cents(total_annual_tax / income * 100) if income > 0 else ZERO

    return ProgressiveTaxResult(
        tax_breakdown=tuple(breakdown),
        total_annual_tax=total_annual_tax,
        monthly_tax=monthly_tax,
        effective_rate=effective_rate,
        brackets_used=sum(1 for row in breakdown if row.taxable_amount > 0),
    )
