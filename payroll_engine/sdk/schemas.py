"""Pydantic schemas for payroll rules, calculation input and results.

Rules schemas validate the tax_rules/*.yaml files. Input and result schemas
are the value objects passed across the engine boundary. Every monetary
value and rate is a Decimal; floats coming from YAML or JSON are converted
through their string form so 0.05 stays exactly 0.05.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from .errors import InvalidRulesError, UnsupportedDeductionKindError


def _to_decimal(value: Any) -> Any:
    if isinstance(value, float):
        return Decimal(str(value))
    return value


Money = Annotated[Decimal, BeforeValidator(_to_decimal)]
NonNegativeMoney = Annotated[Decimal, BeforeValidator(_to_decimal), Field(ge=0)]
Rate = Annotated[Decimal, BeforeValidator(_to_decimal), Field(ge=0, le=1)]

ZERO = Decimal("0")


class DeductionKind(str, Enum):
    """Closed set of deduction kinds the catalog knows how to resolve."""

    PERSONAL_ALLOWANCE = "personal_allowance"
    SPOUSE_ALLOWANCE = "spouse_allowance"
    CHILD_ALLOWANCE = "child_allowance"
    PARENT_ALLOWANCE = "parent_allowance"
    PERSONAL_EXPENSES = "personal_expenses"
    PROVIDENT_FUND = "provident_fund"
    ADDITIONAL_DEDUCTIONS = "additional_deductions"

    @classmethod
    def parse(cls, value: Any) -> "DeductionKind":
        """Look up a kind by value, failing loudly on anything unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedDeductionKindError(
                f"Unsupported deduction kind: {value!r}", field="deductions"
            ) from None


# === RULES (published per tax year) ===

# Parameters a published rule must carry for its kind to resolve to a real amount
REQUIRED_DEDUCTION_PARAMETERS: dict[DeductionKind, tuple[str, ...]] = {
    DeductionKind.PERSONAL_ALLOWANCE: ("amount",),
    DeductionKind.SPOUSE_ALLOWANCE: ("amount",),
    DeductionKind.CHILD_ALLOWANCE: ("amount",),
    DeductionKind.PARENT_ALLOWANCE: ("amount",),
    DeductionKind.PERSONAL_EXPENSES: ("rate",),
}


class TaxBracket(BaseModel):
    """Single progressive tax bracket."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    order: int = Field(..., ge=1, description="1-based position within the year")
    lower_bound: NonNegativeMoney
    upper_bound: Optional[NonNegativeMoney] = Field(default=None, description="None for the open top bracket")
    rate: Rate


class SocialSecurityRule(BaseModel):
    """Social security contribution schedule."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    rate: Rate = Field(..., description="Employee rate as decimal")
    employer_rate: Rate
    wage_floor: NonNegativeMoney
    wage_ceiling: NonNegativeMoney

    @model_validator(mode="after")
    def floor_below_ceiling(self) -> "SocialSecurityRule":
        if self.wage_floor > self.wage_ceiling:
            raise ValueError(
                f"wage_floor {self.wage_floor} exceeds wage_ceiling {self.wage_ceiling}"
            )
        return self


class DeductionRule(BaseModel):
    """Published parameters for one deduction kind.

    amount: flat amount, or amount per counted unit (child, parent)
    rate: share of annual gross salary (personal expenses)
    cap: maximum effective amount
    max_units: maximum number of children/parents counted
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    amount: Optional[NonNegativeMoney] = None
    rate: Optional[Rate] = None
    cap: Optional[NonNegativeMoney] = None
    max_units: Optional[int] = Field(default=None, ge=0)


class StatutoryLimits(BaseModel):
    """Statutory figures a year's published rules are checked against.

    Every limit is optional; only declared limits are checked.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    social_security_rate: Optional[Rate] = None
    max_monthly_contribution: Optional[NonNegativeMoney] = Field(
        default=None, description="Employee contribution at the wage ceiling"
    )
    top_rate: Optional[Rate] = None
    bracket_count: Optional[int] = Field(default=None, ge=1)


class TaxYearRules(BaseModel):
    """Complete rules for a tax year."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    tax_year: int = Field(..., ge=1900)
    currency: str = "THB"
    brackets: tuple[TaxBracket, ...]
    social_security: SocialSecurityRule
    deductions: dict[DeductionKind, DeductionRule] = Field(default_factory=dict)
    statutory: Optional[StatutoryLimits] = None

    @field_validator("deductions", mode="before")
    @classmethod
    def known_kinds_only(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {DeductionKind.parse(k): (v if v is not None else {}) for k, v in value.items()}
        return value

    @model_validator(mode="after")
    def deduction_parameters_present(self) -> "TaxYearRules":
        for kind, rule in self.deductions.items():
            for parameter in REQUIRED_DEDUCTION_PARAMETERS.get(kind, ()):
                if getattr(rule, parameter) is None:
                    raise InvalidRulesError(
                        f"Tax rules for {self.tax_year}: {kind.value} requires '{parameter}'",
                        field=f"deductions.{kind.value}.{parameter}",
                    )
        return self


# === CALCULATION INPUT ===


class AdHocDeduction(BaseModel):
    """Caller-supplied deduction passed through as-is."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    description: str = ""
    amount: Money


class PayrollCalculationInput(BaseModel):
    """Resolved employee data for one monthly calculation.

    Sign and range checks are done by the calculator so that rejections
    carry an InvalidInputError naming the field.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    gross_salary: Money
    additional_income: Money = ZERO
    has_spouse: bool = False
    child_count: int = 0
    eligible_parent_count: int = 0
    provident_fund_contribution: Money = Field(default=ZERO, description="Declared annual contribution")
    ad_hoc_deductions: tuple[AdHocDeduction, ...] = ()
    tax_year: int
    pay_period_date: date
    employee_id: Optional[str] = Field(default=None, description="Audit reference, never copied to the result")


# === RESULTS ===


class DeductionEntry(BaseModel):
    """One resolved deduction line."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: DeductionKind
    amount: Money
    multiplier: Decimal = Decimal("1")
    cap: Optional[Money] = None

    @property
    def effective_amount(self) -> Decimal:
        """min(amount * multiplier, cap), never negative."""
        value = self.amount * self.multiplier
        if self.cap is not None:
            value = min(value, self.cap)
        return max(ZERO, value)


class DeductionBreakdown(BaseModel):
    """Annual deductions by kind plus their total."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    personal_allowance: Decimal = ZERO
    spouse_allowance: Decimal = ZERO
    child_allowance: Decimal = ZERO
    parent_allowance: Decimal = ZERO
    personal_expenses: Decimal = ZERO
    provident_fund: Decimal = ZERO
    additional_deductions: Decimal = ZERO
    total_deductions: Decimal = ZERO
    entries: tuple[DeductionEntry, ...] = Field(default=(), exclude=True)

    @classmethod
    def from_entries(cls, entries: list[DeductionEntry]) -> "DeductionBreakdown":
        amounts = {entry.kind.value: entry.effective_amount for entry in entries}
        return cls(
            **amounts,
            total_deductions=sum((entry.effective_amount for entry in entries), ZERO),
            entries=tuple(entries),
        )


class SocialSecurityBreakdown(BaseModel):
    """Monthly social security contributions."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    employee_contribution: Decimal
    employer_contribution: Decimal
    total_contribution: Decimal
    base: Decimal = Field(..., description="Gross salary clamped to the wage floor/ceiling")
    rate: Decimal
    employer_rate: Decimal


class BracketResult(BaseModel):
    """Income and tax falling inside one bracket."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    order: int
    lower_bound: Decimal
    upper_bound: Optional[Decimal]
    rate: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal


class ProgressiveTaxResult(BaseModel):
    """Output of the progressive tax calculation."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    tax_breakdown: tuple[BracketResult, ...]
    total_annual_tax: Decimal
    monthly_tax: Decimal
    effective_rate: Decimal = Field(..., description="Annual tax as a percentage of taxable income")
    brackets_used: int


class PayrollRatios(BaseModel):
    """Percentages derived from a calculation (2 decimal places)."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    tax_rate: Decimal
    deduction_rate: Decimal
    net_rate: Decimal
    ss_rate: Decimal


class CalculationSummary(BaseModel):
    """Employer-side totals."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    total_cost_to_employer: Decimal
    total_employee_deductions: Decimal
    take_home_percentage: Decimal
    effective_tax_rate: Decimal


class PayrollCalculationResult(BaseModel):
    """Output of PayrollCalculator.calculate.

    Field names and nesting are the wire contract consumed by API
    resources and exporters.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    gross_salary: Decimal
    total_income: Decimal
    net_salary: Decimal
    taxable_income: Decimal = Field(..., description="Annual")
    income_tax: Decimal = Field(..., description="Monthly")
    tax_year: int
    deductions: DeductionBreakdown
    social_security: SocialSecurityBreakdown
    tax_breakdown: tuple[BracketResult, ...]
    formatted: dict[str, str]
    ratios: PayrollRatios
    calculation_date: datetime
    pay_period_date: date
    calculation_summary: CalculationSummary

    def to_dict(self) -> dict:
        """JSON-ready dict; Decimals are rendered as strings to keep them exact."""
        return self.model_dump(mode="json")


class AnnualTaxReconciliation(BaseModel):
    """Year-end comparison of tax withheld against the recomputed liability."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    tax_year: int
    periods: int
    total_income: Decimal
    total_deductions: Decimal
    taxable_income: Decimal
    tax_liability: Decimal
    tax_paid: Decimal
    tax_difference: Decimal
    refund_due: Decimal
    additional_tax_due: Decimal

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class BatchError(BaseModel):
    """Why one item of a batch run failed."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str = Field(..., description="Error class name, e.g. 'InvalidInputError'")
    field: Optional[str] = None
    message: str


class BatchItem(BaseModel):
    """Outcome for one employee of a batch run: a result or an error, never both."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    index: int
    employee_id: Optional[str] = None
    result: Optional[PayrollCalculationResult] = None
    error: Optional[BatchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PayrollBatchResult(BaseModel):
    """Output of PayrollCalculator.calculate_batch, items in input order."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    items: tuple[BatchItem, ...]

    @property
    def succeeded(self) -> list[BatchItem]:
        return [item for item in self.items if item.ok]

    @property
    def failed(self) -> list[BatchItem]:
        return [item for item in self.items if not item.ok]

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class ComplianceReport(BaseModel):
    """Published rules checked against the year's declared statutory limits."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    tax_year: int
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_compliant(self) -> bool:
        return not self.errors
