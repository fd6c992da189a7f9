"""Payroll Engine SDK - Core functionality for monthly payroll and income tax."""

from .config import (
    RULES_PATH_ENV,
    configure_logging,
    get_rules_dir,
    available_years,
    load_tax_rules,
    parse_tax_rules,
    RulesProvider,
    YamlRulesProvider,
    InMemoryRulesProvider,
)

from .errors import (
    CalculationError,
    ConfigurationNotFoundError,
    InvalidRulesError,
    InvalidBracketTableError,
    UnsupportedDeductionKindError,
    InvalidInputError,
)

from .schemas import (
    TaxBracket,
    SocialSecurityRule,
    DeductionKind,
    DeductionRule,
    StatutoryLimits,
    TaxYearRules,
    AdHocDeduction,
    PayrollCalculationInput,
    DeductionEntry,
    DeductionBreakdown,
    SocialSecurityBreakdown,
    BracketResult,
    ProgressiveTaxResult,
    PayrollRatios,
    CalculationSummary,
    PayrollCalculationResult,
    AnnualTaxReconciliation,
    BatchError,
    BatchItem,
    PayrollBatchResult,
    ComplianceReport,
)

from .deductions import DeductionCatalog

from .taxes import (
    TaxBracketTable,
    validate_brackets,
    apply_brackets,
    compute_social_security,
)

from .formatting import (
    CurrencyFormatter,
    SymbolCurrencyFormatter,
    formatter_for_currency,
    format_percentage,
)

from .payroll import (
    PayrollCalculator,
    parse_calculation_input,
    validate_calculation_input,
)

from .reconcile import reconcile_annual_tax

from .compliance import check_compliance

__all__ = [
    # Config
    "RULES_PATH_ENV",
    "configure_logging",
    "get_rules_dir",
    "available_years",
    "load_tax_rules",
    "parse_tax_rules",
    "RulesProvider",
    "YamlRulesProvider",
    "InMemoryRulesProvider",
    # Errors
    "CalculationError",
    "ConfigurationNotFoundError",
    "InvalidRulesError",
    "InvalidBracketTableError",
    "UnsupportedDeductionKindError",
    "InvalidInputError",
    # Schemas
    "TaxBracket",
    "SocialSecurityRule",
    "DeductionKind",
    "DeductionRule",
    "StatutoryLimits",
    "TaxYearRules",
    "AdHocDeduction",
    "PayrollCalculationInput",
    "DeductionEntry",
    "DeductionBreakdown",
    "SocialSecurityBreakdown",
    "BracketResult",
    "ProgressiveTaxResult",
    "PayrollRatios",
    "CalculationSummary",
    "PayrollCalculationResult",
    "AnnualTaxReconciliation",
    "BatchError",
    "BatchItem",
    "PayrollBatchResult",
    "ComplianceReport",
    # Deductions
    "DeductionCatalog",
    # Taxes
    "TaxBracketTable",
    "validate_brackets",
    "apply_brackets",
    "compute_social_security",
    # Formatting
    "CurrencyFormatter",
    "SymbolCurrencyFormatter",
    "formatter_for_currency",
    "format_percentage",
    # Calculation
    "PayrollCalculator",
    "parse_calculation_input",
    "validate_calculation_input",
    "reconcile_annual_tax",
    # Compliance
    "check_compliance",
]
