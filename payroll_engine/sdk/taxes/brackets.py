"""Versioned progressive bracket tables.

A table is valid when its brackets, taken in order, start at zero, meet
edge to edge, never lower the rate, and end in exactly one open bracket.
Tables are checked when a year is loaded, so a malformed table fails the
calculation instead of silently mis-taxing.
"""

from typing import Sequence

from ..errors import InvalidBracketTableError
from ..schemas import TaxBracket


def validate_brackets(brackets: Sequence[TaxBracket], tax_year: int) -> None:
    """Check a bracket table for gaps, overlaps and ordering problems.

    Raises:
        InvalidBracketTableError: naming the first offending bracket
    """
    def fail(message: str, index: int = None) -> None:
        field = "brackets" if index is None else f"brackets.{index}"
        raise InvalidBracketTableError(f"Tax year {tax_year}: {message}", field=field)

    if not brackets:
        fail("bracket table is empty")

    for index, bracket in enumerate(brackets):
        if bracket.order != index + 1:
            fail(f"bracket at position {index + 1} has order {bracket.order}", index)

    if brackets[0].lower_bound != 0:
        fail(f"first bracket starts at {brackets[0].lower_bound}, expected 0", 0)

    last = len(brackets) - 1
    for index, bracket in enumerate(brackets):
        if bracket.upper_bound is None:
            if index != last:
                fail(f"bracket {bracket.order} is unbounded but is not the top bracket", index)
            continue

        if bracket.upper_bound <= bracket.lower_bound:
            fail(
                f"bracket {bracket.order} upper bound {bracket.upper_bound} "
                f"is not above lower bound {bracket.lower_bound}",
                index,
            )
        if index == last:
            fail(f"top bracket {bracket.order} must have no upper bound", index)

        following = brackets[index + 1]
        if following.lower_bound != bracket.upper_bound:
            fail(
                f"bracket {following.order} starts at {following.lower_bound} "
                f"but bracket {bracket.order} ends at {bracket.upper_bound}",
                index + 1,
            )
        if following.rate < bracket.rate:
            fail(
                f"bracket {following.order} rate {following.rate} is below "
                f"bracket {bracket.order} rate {bracket.rate}",
                index + 1,
            )


class TaxBracketTable:
    """Bracket tables by tax year, read from a rules provider."""

    def __init__(self, provider):
        self.provider = provider

    def brackets_for(self, tax_year: int) -> tuple[TaxBracket, ...]:
        """Ordered brackets for a tax year.

        Raises:
            ConfigurationNotFoundError: no table published for the year
            InvalidBracketTableError: the published table is malformed
        """
        brackets = self.provider.rules_for(tax_year).brackets
        validate_brackets(brackets, tax_year)
        return brackets
