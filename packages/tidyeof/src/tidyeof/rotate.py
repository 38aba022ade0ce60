"""
Varimax rotation of EOFs.

Orthogonal rotation of the loadings L = v diag(d) that maximizes the
variance of squared loadings within each component (Kaiser 1958).
Scores, singular values and right vectors are updated together so the
rank-k reconstruction u diag(d) v^T is unchanged:

    L' = L R
    u' = u R
    d'_j = ||L'[:, j]||
    v' = L' diag(1 / d')
"""

import logging
from dataclasses import replace
from typing import Optional, Tuple

import numpy as np

from tidyeof.config import CONFIG
from tidyeof.decompose import Decomposition

logger = logging.getLogger(__name__)


def varimax(
    loadings: np.ndarray,
    normalize: Optional[bool] = None,
    eps: Optional[float] = None,
    max_iter: Optional[int] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Varimax rotation by SVD iteration.

    Parameters
    ----------
    loadings : np.ndarray
        (n_variables, n_factors) loading matrix.
    normalize : bool
        Kaiser row normalization before rotating. Default from CONFIG (False).
    eps : float
        Stop when the criterion improves by less than a relative eps.
    max_iter : int
        Iteration cap.

    Returns
    -------
    rotated : np.ndarray
        (n_variables, n_factors) rotated loadings.
    rotation : np.ndarray
        (n_factors, n_factors) orthogonal matrix with rotated = loadings @ rotation.
    """
    cfg = CONFIG['varimax']
    normalize = cfg['normalize'] if normalize is None else normalize
    eps = cfg['eps'] if eps is None else eps
    max_iter = cfg['max_iter'] if max_iter is None else max_iter

    x = np.asarray(loadings, dtype=np.float64)
    if x.ndim != 2:
        raise ValueError(f"Loadings must be 2-dimensional, got shape {x.shape}")

    n_vars, n_factors = x.shape
    if n_factors < 2:
        return x.copy(), np.eye(n_factors)

    if normalize:
        scale = np.sqrt(np.sum(x ** 2, axis=1))
        scale[scale == 0] = 1.0
        x = x / scale[:, np.newaxis]

    rotation = np.eye(n_factors)
    criterion = 0.0
    n_iter = 0
    for n_iter in range(1, max_iter + 1):
        z = x @ rotation
        b = x.T @ (z ** 3 - z * (np.sum(z ** 2, axis=0) / n_vars))
        u, s, vt = np.linalg.svd(b)
        rotation = u @ vt
        previous = criterion
        criterion = float(np.sum(s))
        if criterion < previous * (1 + eps):
            break

    logger.debug("varimax converged after %d iterations", n_iter)

    rotated = x @ rotation
    if normalize:
        rotated = rotated * scale[:, np.newaxis]
    return rotated, rotation


def column_norms(matrix: np.ndarray) -> np.ndarray:
    """Euclidean norm of each column."""
    return np.sqrt(np.sum(np.asarray(matrix) ** 2, axis=0))


def rotate(decomposition: Decomposition) -> Decomposition:
    """
    Varimax-rotate a decomposition, keeping u diag(d) v^T fixed.

    No-op for k <= 1. Rotated components keep their original order;
    d is not re-sorted.
    """
    if decomposition.k <= 1:
        return decomposition

    loadings = decomposition.v * decomposition.d
    rotated, rotation = varimax(loadings)

    d = column_norms(rotated)
    return replace(
        decomposition,
        u=decomposition.u @ rotation,
        d=d,
        v=rotated / d,
        rotation=rotation,
    )
