"""
Empirical Orthogonal Functions over tidy data.

Orchestration only:
    validate -> pivot -> SVD -> [varimax] -> [bootstrap] -> tidy tables

Usage:
    from tidyeof import compute_eof

    result = compute_eof(
        arrests,                      # polars DataFrame, long format
        row_vars=['crime'],
        col_vars=['state'],
        value_var='rate_anomaly',
        n=[1, 2, 3, 4],
        B=500,
    )
    result.left      # crime x PC loadings
    result.sdev      # singular values, r2, bootstrap quantiles
"""

import logging
from typing import Optional

import numpy as np
import polars as pl

from tidyeof.bootstrap import Probs, bootstrap_sdev, quantile_names
from tidyeof.config import CONFIG, TIDYEOF_WORKERS
from tidyeof.decompose import decompose
from tidyeof.errors import NonUniqueCellError
from tidyeof.reshape import (
    Columns,
    as_columns,
    check_columns,
    to_matrix,
    validate_fill,
    vectors_to_tidy,
)
from tidyeof.result import R2, SD, Components, EofResult, as_components, component_labels
from tidyeof.rotate import rotate as varimax_rotate

logger = logging.getLogger(__name__)


def compute_eof(
    data: pl.DataFrame,
    row_vars: Columns,
    col_vars: Columns,
    value_var: str,
    n: Optional[Components] = None,
    B: int = 0,
    probs: Optional[Probs] = None,
    rotate: bool = False,
    suffix: Optional[str] = None,
    fill: Optional[float] = 0,
    seed: Optional[int] = None,
    workers: Optional[int] = None,
) -> EofResult:
    """
    Singular value decomposition (EOF / PCA) of a long-format table.

    Parameters
    ----------
    data : pl.DataFrame
        Long-format data, one observation per row. Not modified.
    row_vars, col_vars : str or list of str
        Variables identifying the rows / columns of the matrix. The left
        vectors are indexed by row_vars, the right vectors by col_vars.
    value_var : str
        Numeric variable that populates the matrix.
    n : int or sequence of int, optional
        Components to return (1-based, any order, may skip). None = all.
        Only max(n) singular triplets are computed.
    B : int
        Bootstrap resamples for singular value quantiles. Ignored if <= 1.
    probs : mapping or sequence of float, optional
        Quantile probabilities. A mapping's keys name the sdev columns;
        otherwise they are named as percentages. Default
        {'lower': 0.025, 'mid': 0.5, 'upper': 0.975}.
    rotate : bool
        Varimax-rotate scores and loadings.
    suffix : str
        Component label prefix and name of the component column ('PC').
    fill : float, NaN or None
        Value for implicit missing cells, or None if the data is dense.
    seed : int, optional
        Seed for the truncated solver and the bootstrap (default 42).
    workers : int, optional
        Bootstrap worker processes (default TIDYEOF_WORKERS).

    Returns
    -------
    EofResult

    Raises
    ------
    FillValueError, MissingColumnsError
        Bad arguments, raised before any computation.
    NonUniqueCellError
        Some (row, col) combination holds more than one observation.
    IncompleteMatrixError
        fill is None but the data is not a complete rectangle.
    """
    row_vars = as_columns(row_vars)
    col_vars = as_columns(col_vars)
    fill = validate_fill(fill)
    check_columns(data, [value_var, *row_vars, *col_vars])

    suffix = CONFIG['output']['suffix'] if suffix is None else suffix
    if suffix in (*row_vars, *col_vars, value_var):
        raise ValueError(f"suffix '{suffix}' clashes with a data column")
    if suffix in (SD, R2):
        raise ValueError(f"suffix '{suffix}' clashes with an sdev column")
    seed = CONFIG['random']['seed'] if seed is None else seed
    workers = TIDYEOF_WORKERS if workers is None else workers
    named_probs = quantile_names(probs) if B > 1 else {}
    clashes = set(named_probs) & {suffix, SD, R2}
    if clashes:
        raise ValueError(f"probs names clash with sdev columns: {', '.join(sorted(clashes))}")

    cells = data.select(*row_vars, *col_vars)
    n_duplicated = cells.height - cells.n_unique()
    if n_duplicated:
        raise NonUniqueCellError(
            f"{' + '.join(row_vars)} ~ {' + '.join(col_vars)} does not identify "
            f"an unique observation for each cell ({n_duplicated} duplicated)"
        )

    tm = to_matrix(data, row_vars, col_vars, value_var, fill=fill)
    rank = min(tm.matrix.shape)
    n = list(range(1, rank + 1)) if n is None else as_components(n)
    if max(n) > rank:
        raise ValueError(f"Requested component {max(n)} but the matrix has rank at most {rank}")

    logger.info(
        "EOF of %dx%d matrix: %d components, rotate=%s, B=%d",
        *tm.matrix.shape, len(n), rotate, B,
    )

    decomposition = decompose(tm.matrix, max(n), rng=np.random.default_rng(seed))
    if rotate and decomposition.k > 1:
        decomposition = varimax_rotate(decomposition)

    labels = component_labels(suffix, n)
    idx = np.asarray(n) - 1

    left = vectors_to_tidy(decomposition.u[:, idx], tm.row_axis, labels, suffix, value_var)
    right = vectors_to_tidy(decomposition.v[:, idx], tm.col_axis, labels, suffix, value_var)
    sdev = pl.DataFrame({
        suffix: pl.Series(labels, dtype=pl.Enum(labels)),
        SD: decomposition.d[idx],
        R2: decomposition.r2[idx],
    })

    if B > 1:
        quantiles = bootstrap_sdev(
            decomposition.loadings(),
            B,
            probs=named_probs,
            rotate=rotate,
            rng=np.random.default_rng(seed),
            workers=workers,
        )
        sdev = sdev.with_columns([
            pl.Series(name, quantiles[idx, j]) for j, name in enumerate(named_probs)
        ])

    return EofResult(left=left, right=right, sdev=sdev, suffix=suffix, value_var=value_var)
