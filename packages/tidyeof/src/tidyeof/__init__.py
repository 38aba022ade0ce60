"""
tidyeof: Empirical Orthogonal Functions of tidy data.

Computes the singular value decomposition (EOF / PCA) of a matrix built
from a long-format table, and returns the singular vectors and values
back in long format.
Input: polars DataFrame with row variables, column variables, a value.
Output: EofResult with left vectors, right vectors, singular values.

Pipeline: tidy -> matrix -> SVD -> [varimax] -> [bootstrap CI] -> tidy.
"""

__version__ = '0.1.0'

from tidyeof.eof import compute_eof
from tidyeof.result import EofResult
from tidyeof.reshape import TidyMatrix, to_matrix, to_tidy
from tidyeof.decompose import Decomposition, decompose
from tidyeof.rotate import rotate, varimax
from tidyeof.bootstrap import bootstrap_sdev, quantile_names
from tidyeof.errors import (
    TidyEofError,
    FillValueError,
    MissingColumnsError,
    CellMismatchError,
    NonUniqueCellError,
    IncompleteMatrixError,
)

eof = compute_eof

__all__ = [
    'compute_eof',
    'eof',
    'EofResult',
    'TidyMatrix',
    'to_matrix',
    'to_tidy',
    'Decomposition',
    'decompose',
    'rotate',
    'varimax',
    'bootstrap_sdev',
    'quantile_names',
    'TidyEofError',
    'FillValueError',
    'MissingColumnsError',
    'CellMismatchError',
    'NonUniqueCellError',
    'IncompleteMatrixError',
]
