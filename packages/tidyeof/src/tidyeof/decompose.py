"""
Core singular value decomposition.

Takes the dense matrix produced by the tidy bridge and returns the
leading k singular triplets as one normalized (u, d, v) record,
whatever the matrix orientation.

All math delegates to numpy / scipy. This module is dispatch:
truncated ARPACK solver when k is small relative to the matrix,
full LAPACK SVD otherwise.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.sparse.linalg import svds

from tidyeof.config import CONFIG

logger = logging.getLogger(__name__)


@dataclass
class Decomposition:
    """Leading k singular triplets of a matrix M = u diag(d) v^T."""
    u: np.ndarray          # (n_rows, k) left singular vectors
    d: np.ndarray          # (k,) singular values
    v: np.ndarray          # (n_cols, k) right singular vectors
    total_norm: float      # Frobenius norm of abs(M)
    method: str = 'full'   # 'full' or 'truncated'
    rotation: Optional[np.ndarray] = None  # (k, k) varimax rotation, if rotated

    @property
    def k(self) -> int:
        return len(self.d)

    @property
    def rotated(self) -> bool:
        return self.rotation is not None

    @property
    def r2(self) -> np.ndarray:
        """Fraction of ||M||_F^2 carried by each component."""
        if self.total_norm == 0:
            return np.full(self.k, np.nan)
        return self.d ** 2 / self.total_norm ** 2

    def loadings(self) -> np.ndarray:
        """diag(d) v^T, the (k, n_cols) matrix resampled by the bootstrap."""
        return self.d[:, np.newaxis] * self.v.T

    def reconstruct(self) -> np.ndarray:
        """u diag(d) v^T."""
        return (self.u * self.d) @ self.v.T


def use_truncated(shape, k: int) -> bool:
    """True when the truncated solver applies: k < ratio * min(shape)."""
    return k < CONFIG['decompose']['truncated_ratio'] * min(shape)


def decompose(
    matrix: np.ndarray,
    k: int,
    rng: Optional[np.random.Generator] = None,
    truncated: Optional[bool] = None,
) -> Decomposition:
    """
    Leading k singular triplets of a dense matrix.

    Parameters
    ----------
    matrix : np.ndarray
        (n_rows, n_cols) matrix.
    k : int
        Number of triplets, 1 <= k <= min(n_rows, n_cols).
    rng : np.random.Generator, optional
        Seeds the truncated solver's starting vector. Defaults to a
        generator seeded with CONFIG['random']['seed'].
    truncated : bool, optional
        Allow the truncated solver. Defaults to CONFIG['decompose']['use_truncated'].
        Even when allowed it is only used if k < 0.5 * min(n_rows, n_cols).

    Returns
    -------
    Decomposition with d sorted descending.

    Raises
    ------
    ValueError
        k out of range.
    np.linalg.LinAlgError, scipy.sparse.linalg.ArpackError
        The underlying solver failed (e.g. NaN cells, no convergence).
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.ndim != 2:
        raise ValueError(f"matrix must be 2-dimensional, got shape {matrix.shape}")

    rank = min(matrix.shape)
    k = int(k)
    if k < 1 or k > rank:
        raise ValueError(f"k must be between 1 and {rank}, got {k}")

    if truncated is None:
        truncated = CONFIG['decompose']['use_truncated']

    total_norm = float(np.linalg.norm(np.abs(matrix), 'fro'))

    if truncated and use_truncated(matrix.shape, k):
        if rng is None:
            rng = np.random.default_rng(CONFIG['random']['seed'])
        u, d, vt = svds(
            matrix, k=k,
            solver=CONFIG['decompose']['arpack_solver'],
            random_state=rng,
        )
        # svds does not guarantee descending order
        order = np.argsort(d)[::-1]
        u, d, v = u[:, order], d[order], vt[order].T
        method = 'truncated'
    else:
        u, d, vt = np.linalg.svd(matrix, full_matrices=False)
        u, d, v = u[:, :k], d[:k], vt[:k].T
        method = 'full'

    logger.debug("%s SVD of %dx%d matrix, k=%d", method, *matrix.shape, k)

    return Decomposition(
        u=np.ascontiguousarray(u),
        d=np.ascontiguousarray(d),
        v=np.ascontiguousarray(v),
        total_norm=total_norm,
        method=method,
    )
