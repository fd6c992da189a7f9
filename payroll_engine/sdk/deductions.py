"""Deduction catalog.

Resolves the annual deductions an employee is entitled to under a tax
year's published deduction policy. Kinds are evaluated in a fixed order:

    personal_allowance      unconditional
    spouse_allowance        only when a qualifying spouse is declared
    child_allowance         per child, up to max_units children
    parent_allowance        per eligible parent, up to max_units parents
    personal_expenses       rate x annual gross salary, capped
    provident_fund          declared annual contribution, capped
    additional_deductions   ad-hoc amounts passed through, floored at zero

A deduction the input asks for but the policy does not publish is an error,
never a silent zero: totals must not understate what was requested.
"""

import logging
from decimal import Decimal
from typing import Callable, Optional

from .errors import UnsupportedDeductionKindError
from .schemas import (
    DeductionBreakdown,
    DeductionEntry,
    DeductionKind,
    DeductionRule,
    PayrollCalculationInput,
    TaxYearRules,
)
from .taxes import MONTHS_PER_YEAR

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

Resolver = Callable[[DeductionRule, PayrollCalculationInput], Optional[DeductionEntry]]


def _requested_kinds(calc_input: PayrollCalculationInput) -> list[DeductionKind]:
    """Kinds the input explicitly asks for."""
    requested = []
    if calc_input.has_spouse:
        requested.append(DeductionKind.SPOUSE_ALLOWANCE)
    if calc_input.child_count > 0:
        requested.append(DeductionKind.CHILD_ALLOWANCE)
    if calc_input.eligible_parent_count > 0:
        requested.append(DeductionKind.PARENT_ALLOWANCE)
    if calc_input.provident_fund_contribution > 0:
        requested.append(DeductionKind.PROVIDENT_FUND)
    if calc_input.ad_hoc_deductions:
        requested.append(DeductionKind.ADDITIONAL_DEDUCTIONS)
    return requested


def _units(count: int, max_units: Optional[int]) -> Decimal:
    if max_units is not None:
        count = min(count, max_units)
    return Decimal(max(0, count))


def _personal_allowance(rule: DeductionRule, calc_input: PayrollCalculationInput) -> DeductionEntry:
    return DeductionEntry(kind=DeductionKind.PERSONAL_ALLOWANCE, amount=rule.amount, cap=rule.cap)


def _spouse_allowance(rule: DeductionRule, calc_input: PayrollCalculationInput) -> Optional[DeductionEntry]:
    if not calc_input.has_spouse:
        return None
    return DeductionEntry(kind=DeductionKind.SPOUSE_ALLOWANCE, amount=rule.amount, cap=rule.cap)


def _child_allowance(rule: DeductionRule, calc_input: PayrollCalculationInput) -> Optional[DeductionEntry]:
    if calc_input.child_count <= 0:
        return None
    return DeductionEntry(
        kind=DeductionKind.CHILD_ALLOWANCE,
        amount=rule.amount,
        multiplier=_units(calc_input.child_count, rule.max_units),
        cap=rule.cap,
    )


def _parent_allowance(rule: DeductionRule, calc_input: PayrollCalculationInput) -> Optional[DeductionEntry]:
    if calc_input.eligible_parent_count <= 0:
        return None
    return DeductionEntry(
        kind=DeductionKind.PARENT_ALLOWANCE,
        amount=rule.amount,
        multiplier=_units(calc_input.eligible_parent_count, rule.max_units),
        cap=rule.cap,
    )


def _personal_expenses(rule: DeductionRule, calc_input: PayrollCalculationInput) -> DeductionEntry:
    gross_annual_income = calc_input.gross_salary * MONTHS_PER_YEAR
    return DeductionEntry(
        kind=DeductionKind.PERSONAL_EXPENSES,
        amount=rule.rate * gross_annual_income,
        cap=rule.cap,
    )


def _provident_fund(rule: DeductionRule, calc_input: PayrollCalculationInput) -> Optional[DeductionEntry]:
    if calc_input.provident_fund_contribution <= 0:
        return None
    return DeductionEntry(
        kind=DeductionKind.PROVIDENT_FUND,
        amount=calc_input.provident_fund_contribution,
        cap=rule.cap,
    )


def _additional_deductions(rule: DeductionRule, calc_input: PayrollCalculationInput) -> Optional[DeductionEntry]:
    if not calc_input.ad_hoc_deductions:
        return None
    total = sum((item.amount for item in calc_input.ad_hoc_deductions), ZERO)
    return DeductionEntry(kind=DeductionKind.ADDITIONAL_DEDUCTIONS, amount=total, cap=rule.cap)


# Evaluation order follows the enum declaration order.
RESOLVERS: dict[DeductionKind, Resolver] = {
    DeductionKind.PERSONAL_ALLOWANCE: _personal_allowance,
    DeductionKind.SPOUSE_ALLOWANCE: _spouse_allowance,
    DeductionKind.CHILD_ALLOWANCE: _child_allowance,
    DeductionKind.PARENT_ALLOWANCE: _parent_allowance,
    DeductionKind.PERSONAL_EXPENSES: _personal_expenses,
    DeductionKind.PROVIDENT_FUND: _provident_fund,
    DeductionKind.ADDITIONAL_DEDUCTIONS: _additional_deductions,
}


class DeductionCatalog:
    """Deduction policy for one tax year."""

    def __init__(self, policy: dict[DeductionKind, DeductionRule], tax_year: Optional[int] = None,
                 resolvers: Optional[dict[DeductionKind, Resolver]] = None):
        self.policy = policy
        self.tax_year = tax_year
        self.resolvers = RESOLVERS if resolvers is None else resolvers

    @classmethod
    def for_rules(cls, rules: TaxYearRules) -> "DeductionCatalog":
        return cls(rules.deductions, tax_year=rules.tax_year)

    def resolve(self, calc_input: PayrollCalculationInput) -> DeductionBreakdown:
        """Resolve every applicable deduction into annual effective amounts.

        Raises:
            UnsupportedDeductionKindError: a requested kind is not published
                for the year, or a published kind has no resolver
        """
        for kind in _requested_kinds(calc_input):
            if kind not in self.policy:
                raise UnsupportedDeductionKindError(
                    f"Deduction '{kind.value}' was requested but is not published "
                    f"for tax year {self.tax_year}",
                    field=kind.value,
                )

        entries = []
        for kind in DeductionKind:
            rule = self.policy.get(kind)
            if rule is None:
                continue
            resolver = self.resolvers.get(kind)
            if resolver is None:
                raise UnsupportedDeductionKindError(
                    f"No resolver for deduction kind '{kind.value}'", field=kind.value
                )
            entry = resolver(rule, calc_input)
            if entry is not None:
                entries.append(entry)

        breakdown = DeductionBreakdown.from_entries(entries)
        logger.debug(
            f"deductions {self.tax_year}: "
            + ", ".join(f"{e.kind.value}={e.effective_amount}" for e in entries)
            + f" total={breakdown.total_deductions}"
        )
        return breakdown
