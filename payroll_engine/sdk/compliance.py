"""Compliance of published rules with declared statutory limits.

Schema and bracket validation only prove a rules file is well formed. A
well-formed file can still publish the wrong figures, e.g. a 5.5% social
security rate. When a year declares a `statutory` block, the published
rules are compared against it.
"""

import logging

from .schemas import ComplianceReport, TaxYearRules
from .taxes import round_cents

logger = logging.getLogger(__name__)


def check_compliance(rules: TaxYearRules) -> ComplianceReport:
    """Compare a year's rules with its declared statutory limits.

    Mismatched rates and contribution limits are errors; a bracket count
    different from the declared one is a warning.

    Returns:
        ComplianceReport (no statutory block: compliant, with a warning)
    """
    limits = rules.statutory
    if limits is None:
        return ComplianceReport(
            tax_year=rules.tax_year,
            warnings=(f"Tax year {rules.tax_year} declares no statutory limits",),
        )

    errors = []
    warnings = []
    ss = rules.social_security

    if limits.social_security_rate is not None and ss.rate != limits.social_security_rate:
        errors.append(
            f"Social security rate is {ss.rate}, statutory rate is {limits.social_security_rate}"
        )

    if limits.max_monthly_contribution is not None:
        max_contribution = round_cents(ss.wage_ceiling * ss.rate)
        if max_contribution != limits.max_monthly_contribution:
            errors.append(
                f"Maximum monthly contribution is {max_contribution}, "
                f"statutory maximum is {limits.max_monthly_contribution}"
            )

    top = rules.brackets[-1] if rules.brackets else None
    if limits.top_rate is not None and top is not None and top.rate != limits.top_rate:
        errors.append(f"Top bracket rate is {top.rate}, statutory top rate is {limits.top_rate}")

    if limits.bracket_count is not None and len(rules.brackets) != limits.bracket_count:
        warnings.append(f"Expected {limits.bracket_count} brackets, found {len(rules.brackets)}")

    report = ComplianceReport(tax_year=rules.tax_year, errors=tuple(errors), warnings=tuple(warnings))
    if not report.is_compliant:
        logger.warning(f"tax rules {rules.tax_year} not compliant: {'; '.join(report.errors)}")
    return report
