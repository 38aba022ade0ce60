"""
Tidy <-> matrix bridge.

The pivot: long-format rows (one observation per row) become a dense
matrix whose rows are the distinct row-variable tuples and whose columns
are the distinct column-variable tuples. Ids are assigned in order of
first appearance in the input, so the mapping is deterministic and the
axis tables returned alongside the matrix invert it exactly.

Usage:
    from tidyeof.reshape import to_matrix, to_tidy

    tm = to_matrix(arrests, ['state'], ['crime'], 'rate', fill=0)
    back = to_tidy(tm.matrix, tm.row_axis, tm.col_axis, 'rate')
"""

import logging
import math
from numbers import Real
from typing import List, NamedTuple, Optional, Sequence, Union

import numpy as np
import polars as pl

from tidyeof.errors import (
    FillValueError,
    IncompleteMatrixError,
    MissingColumnsError,
    NonUniqueCellError,
)

logger = logging.getLogger(__name__)

ROW_ID = 'row__'
COL_ID = 'col__'
POSITION = 'pos__'

Columns = Union[str, Sequence[str]]


class TidyMatrix(NamedTuple):
    """Dense matrix plus the axis tables that label its rows and columns."""
    matrix: np.ndarray
    row_axis: pl.DataFrame
    col_axis: pl.DataFrame


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def as_columns(columns: Columns) -> List[str]:
    """Accept a single column name or a sequence of names."""
    if isinstance(columns, str):
        return [columns]
    return list(columns)


def validate_fill(fill) -> Optional[float]:
    """Return fill as float (NaN allowed) or None. Anything else is an error."""
    if fill is None:
        return None
    if isinstance(fill, (bool, np.bool_)) or not isinstance(fill, Real):
        raise FillValueError(fill)
    value = float(fill)
    if math.isinf(value):
        raise FillValueError(fill)
    return value


def check_columns(table: pl.DataFrame, columns: Sequence[str]) -> None:
    """Raise MissingColumnsError listing every requested column not in table."""
    missing = [c for c in dict.fromkeys(columns) if c not in table.columns]
    if missing:
        raise MissingColumnsError(missing)


def _check_disjoint(row_vars: List[str], col_vars: List[str], value_var: str) -> None:
    shared = set(row_vars) & set(col_vars)
    if shared:
        raise ValueError(f"Columns used for both rows and columns: {', '.join(sorted(shared))}")
    if value_var in row_vars or value_var in col_vars:
        raise ValueError(f"Value column '{value_var}' is also an axis variable")


def _first_occurrence_id(columns: List[str]) -> pl.Expr:
    """1-based group id, numbered in order of each group's first row."""
    return pl.col(POSITION).min().over(columns).rank('dense').cast(pl.Int64)


# ---------------------------------------------------------------------------
# Tidy -> matrix
# ---------------------------------------------------------------------------

def to_matrix(
    table: pl.DataFrame,
    row_vars: Columns,
    col_vars: Columns,
    value_var: str,
    fill: Optional[float] = None,
) -> TidyMatrix:
    """
    Pivot a long-format table into a dense matrix.

    Parameters
    ----------
    table : pl.DataFrame
        Long-format data. Not modified.
    row_vars, col_vars : str or list of str
        Variables whose value tuples identify matrix rows / columns.
    value_var : str
        Numeric column that populates the cells.
    fill : float, NaN or None
        Value for (row, col) combinations absent from the data. None means
        the data is assumed dense: every combination must be present
        exactly once.

    Returns
    -------
    TidyMatrix
        matrix : (n_rows, n_cols) float64 array
        row_axis : row_vars of each matrix row, in row order
        col_axis : col_vars of each matrix column, in column order

    Raises
    ------
    FillValueError
        fill is not numeric, NaN or None.
    MissingColumnsError
        Any requested column is absent from table.
    NonUniqueCellError, IncompleteMatrixError
        fill is None and the data is not a duplicate-free rectangle.
    """
    row_vars = as_columns(row_vars)
    col_vars = as_columns(col_vars)
    fill = validate_fill(fill)
    check_columns(table, [value_var, *row_vars, *col_vars])
    _check_disjoint(row_vars, col_vars, value_var)

    if table.height == 0:
        raise ValueError("Cannot build a matrix from an empty table")
    dtype = table.schema[value_var]
    if not (dtype.is_numeric() or dtype == pl.Null):
        raise ValueError(f"Value column '{value_var}' must be numeric, got {dtype}")

    data = (
        table.select([*row_vars, *col_vars, value_var])
        .with_row_index(POSITION)
        .with_columns(
            _first_occurrence_id(row_vars).alias(ROW_ID),
            _first_occurrence_id(col_vars).alias(COL_ID),
        )
    )
    n_rows = int(data[ROW_ID].max())
    n_cols = int(data[COL_ID].max())

    if fill is None:
        _check_dense(data, n_rows, n_cols, row_vars, col_vars)
        # Dense layout: read each axis off the slice where the other axis id is 1
        row_axis = data.filter(pl.col(COL_ID) == 1).sort(ROW_ID).select(row_vars)
        col_axis = data.filter(pl.col(ROW_ID) == 1).sort(COL_ID).select(col_vars)
        initial = 0.0
    else:
        row_axis = data.select(row_vars).unique(maintain_order=True)
        col_axis = data.select(col_vars).unique(maintain_order=True)
        initial = fill

    matrix = np.full((n_rows, n_cols), initial, dtype=np.float64)
    rows = data[ROW_ID].to_numpy() - 1
    cols = data[COL_ID].to_numpy() - 1
    matrix[rows, cols] = data[value_var].cast(pl.Float64).to_numpy()

    logger.debug(
        "Pivoted %d rows into a %dx%d matrix (fill=%s)",
        table.height, n_rows, n_cols, fill,
    )
    return TidyMatrix(matrix=matrix, row_axis=row_axis, col_axis=col_axis)


def _check_dense(
    data: pl.DataFrame,
    n_rows: int,
    n_cols: int,
    row_vars: List[str],
    col_vars: List[str],
) -> None:
    """Every (row, col) cell must be observed exactly once."""
    n_obs = data.height
    n_cells = data.select(ROW_ID, COL_ID).n_unique()
    if n_cells != n_obs:
        raise NonUniqueCellError(
            f"{' + '.join(row_vars)} ~ {' + '.join(col_vars)} does not identify "
            f"an unique observation for each cell ({n_obs - n_cells} duplicated)"
        )
    if n_cells != n_rows * n_cols:
        raise IncompleteMatrixError(
            f"{' + '.join(row_vars)} ~ {' + '.join(col_vars)} leaves "
            f"{n_rows * n_cols - n_cells} of {n_rows * n_cols} cells empty; "
            f"pass a fill value to infill them"
        )


# ---------------------------------------------------------------------------
# Matrix -> tidy
# ---------------------------------------------------------------------------

def to_tidy(
    matrix: np.ndarray,
    row_axis: pl.DataFrame,
    col_axis: pl.DataFrame,
    value_var: str,
) -> pl.DataFrame:
    """
    Inverse of to_matrix: one row per (matrix row, matrix column).

    Row axis varies slowest, column axis fastest. Columns are the row axis
    variables, then the column axis variables, then value_var.
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.ndim != 2:
        raise ValueError(f"matrix must be 2-dimensional, got shape {matrix.shape}")
    n_rows, n_cols = matrix.shape
    if row_axis.height != n_rows or col_axis.height != n_cols:
        raise ValueError(
            f"Axis tables ({row_axis.height}, {col_axis.height}) do not match "
            f"matrix shape {matrix.shape}"
        )

    row_idx = pl.Series(np.repeat(np.arange(n_rows), n_cols))
    col_idx = pl.Series(np.tile(np.arange(n_cols), n_rows))
    return pl.concat(
        [
            row_axis.select(pl.all().gather(row_idx)),
            col_axis.select(pl.all().gather(col_idx)),
        ],
        how='horizontal',
    ).with_columns(pl.Series(value_var, matrix.reshape(-1)))


def vectors_to_tidy(
    vectors: np.ndarray,
    axis: pl.DataFrame,
    labels: List[str],
    label_name: str,
    value_var: str,
) -> pl.DataFrame:
    """
    Column-per-component variant of to_tidy.

    vectors is (n_axis, n_components); column j is labelled labels[j].
    Component varies slowest. The label column is an ordered Enum whose
    levels are labels, in order.
    """
    vectors = np.asarray(vectors, dtype=np.float64)
    n_axis, n_comp = vectors.shape
    if n_comp != len(labels) or n_axis != axis.height:
        raise ValueError(
            f"vectors shape {vectors.shape} does not match "
            f"{axis.height} axis entries and {len(labels)} labels"
        )

    axis_idx = pl.Series(np.tile(np.arange(n_axis), n_comp))
    return axis.select(pl.all().gather(axis_idx)).with_columns(
        pl.Series(label_name, np.repeat(labels, n_axis).tolist(), dtype=pl.Enum(labels)),
        pl.Series(value_var, vectors.T.reshape(-1)),
    )
