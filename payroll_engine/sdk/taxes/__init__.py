"""taxes - Bracket tables, progressive income tax and social security.

Scope:
- Bracket table validation and lookup by tax year
- Progressive tax with a complete per-bracket breakdown
- Social security contributions on a clamped wage base

Constraints:
- Pure calculation - receives rules, returns results
- No file access - rules come from a RulesProvider (see sdk.config)

Usage:
    from payroll_engine.sdk.taxes import apply_brackets, compute_social_security

    tax = apply_brackets(Decimal("402000"), rules.brackets)
    ss = compute_social_security(Decimal("50000"), rules.social_security)
"""

from .brackets import TaxBracketTable, validate_brackets
from .progressive import MONTHS_PER_YEAR, apply_brackets, taxable_in_bracket
from .social_security import clamp, compute_social_security, round_cents

__all__ = [
    # Brackets
    "TaxBracketTable",
    "validate_brackets",
    # Progressive tax
    "MONTHS_PER_YEAR",
    "apply_brackets",
    "taxable_in_bracket",
    # Social security
    "clamp",
    "compute_social_security",
    "round_cents",
]
