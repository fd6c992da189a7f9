"""Errors raised by the payroll engine.

All of them are deterministic data or configuration problems, so callers
surface them instead of retrying.
"""

from typing import Optional


class CalculationError(Exception):
    """Base class for every failure of a payroll calculation."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ConfigurationNotFoundError(CalculationError):
    """Raised when no rules are published for the requested tax year."""
    pass


class InvalidRulesError(CalculationError):
    """Raised when a published rules file cannot be parsed or validated."""
    pass


class InvalidBracketTableError(InvalidRulesError):
    """Raised when a bracket table is not contiguous, ordered and capped by one open bracket."""
    pass


class UnsupportedDeductionKindError(CalculationError):
    """Raised when a requested deduction is not recognised or not published."""
    pass


class InvalidInputError(CalculationError):
    """Raised when calculation input is rejected before any computation."""
    pass
