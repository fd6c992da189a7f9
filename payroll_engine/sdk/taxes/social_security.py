"""Social security contribution calculations.

Contributions are a flat rate of the monthly gross, with the gross first
clamped into the [wage_floor, wage_ceiling] band. The employer pays its own
rate on the same base.
"""

from decimal import ROUND_HALF_UP, Decimal

from ..schemas import SocialSecurityBreakdown, SocialSecurityRule

CENT = Decimal("0.01")


def round_cents(amount: Decimal) -> Decimal:
    """Round to 2 decimal places, halves away from zero.

    Example: 82.505 -> 82.51, 82.504 -> 82.50
    """
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return max(low, min(value, high))


def compute_social_security(gross_salary: Decimal, rule: SocialSecurityRule) -> SocialSecurityBreakdown:
    """Calculate monthly social security contributions.

    Args:
        gross_salary: Monthly gross salary
        rule: Social security schedule for the tax year

    Returns:
        SocialSecurityBreakdown with employee, employer and total
        contributions, each rounded once at the contribution level. The
        unrounded clamped base is kept for audit.
    """
    base = clamp(gross_salary, rule.wage_floor, rule.wage_ceiling)

    employee = max(Decimal("0"), round_cents(base * rule.rate))
    employer = max(Decimal("0"), round_cents(base * rule.employer_rate))

    return SocialSecurityBreakdown(
        employee_contribution=employee,
        employer_contribution=employer,
        total_contribution=employee + employer,
        base=base,
        rate=rule.rate,
        employer_rate=rule.employer_rate,
    )
