"""
Errors raised at the tidyeof boundary.

All derive from ValueError so callers that already guard bad input
with `except ValueError` keep working.
"""

from typing import Iterable


class TidyEofError(ValueError):
    """Base class for tidyeof argument and data-shape errors."""


class FillValueError(TidyEofError):
    """fill is not a finite number, NaN or None."""

    def __init__(self, fill):
        self.fill = fill
        super().__init__(f"fill must be numeric, NaN or None, got {fill!r}")


class MissingColumnsError(TidyEofError):
    """Requested columns are not present in the table."""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(f"Columns not found in data: {', '.join(self.missing)}")


class CellMismatchError(TidyEofError):
    """Row/column variables do not map observations one-to-one onto cells."""


class NonUniqueCellError(CellMismatchError):
    """More than one observation falls in the same (row, col) cell."""


class IncompleteMatrixError(CellMismatchError):
    """Dense layout assumed (fill=None) but some (row, col) cells are missing."""
