"""
Bootstrap confidence intervals for singular values.

Follows Fisher et al. (2016): instead of resampling the raw data and
redoing the full SVD, resample the columns of the low-dimensional
loadings diag(d) v^T (k x n_cols) and decompose that k-row matrix.
Each iteration costs O(k^2 n_cols) regardless of how many rows the
original matrix had.

The spread of the resampled singular values, summarized by quantiles,
gives a confidence interval per component.

Reference:
    Fisher, A., Caffo, B., Schwartz, B., & Zipunnikov, V. (2016).
    Fast, Exact Bootstrap Principal Component Analysis for p > 1 million.
    JASA, 111(514), 846-860.
"""

import logging
from concurrent.futures import ProcessPoolExecutor
from typing import Dict, Mapping, Optional, Sequence, Union

import numpy as np

from tidyeof.config import CONFIG
from tidyeof.rotate import column_norms, varimax

logger = logging.getLogger(__name__)

Probs = Union[Mapping[str, float], Sequence[float]]


def quantile_names(probs: Optional[Probs] = None) -> Dict[str, float]:
    """
    Column name for each probability.

    A mapping keeps its keys. A plain sequence is named as percentages:
    [0.025, 0.5] -> {'2.5%': 0.025, '50%': 0.5}.
    """
    if probs is None:
        probs = CONFIG['bootstrap']['probs']
    if isinstance(probs, Mapping):
        named = {str(name): float(p) for name, p in probs.items()}
    else:
        probs = [float(p) for p in probs]
        if len(set(probs)) != len(probs):
            raise ValueError(f"probs must not repeat, got {probs}")
        named = {f"{p * 100:g}%": p for p in probs}

    if not named:
        raise ValueError("probs must contain at least one probability")
    bad = [p for p in named.values() if not 0.0 <= p <= 1.0]
    if bad:
        raise ValueError(f"probs must lie in [0, 1], got {bad}")
    return named


def _resample_sdev(
    loadings: np.ndarray,
    n_iter: int,
    rotate: bool,
    rng: np.random.Generator,
) -> np.ndarray:
    """(n_iter, k) singular values of column-resampled loadings."""
    k, p = loadings.shape
    samples = np.full((n_iter, k), np.nan)
    log_every = CONFIG['bootstrap']['log_every']

    for b in range(n_iter):
        cols = rng.integers(0, p, size=p)
        _, s, vt = np.linalg.svd(loadings[:, cols], full_matrices=False)
        if rotate:
            rotated, _ = varimax(vt.T * s)
            s = column_norms(rotated)
        samples[b, :len(s)] = s

        if log_every and (b + 1) % log_every == 0:
            logger.debug("bootstrap %d/%d", b + 1, n_iter)

    return samples


def _resample_chunk(args) -> np.ndarray:
    """Process-pool entry point. Must stay module-level to pickle."""
    loadings, n_iter, rotate, rng = args
    return _resample_sdev(loadings, n_iter, rotate, rng)


def bootstrap_samples(
    loadings: np.ndarray,
    B: int,
    rotate: bool = False,
    rng: Optional[np.random.Generator] = None,
    workers: int = 1,
) -> np.ndarray:
    """
    Singular values of B column resamples of the loadings.

    Parameters
    ----------
    loadings : np.ndarray
        (k, n_cols) matrix diag(d) v^T from the (possibly rotated)
        decomposition. Read only.
    B : int
        Number of resamples.
    rotate : bool
        Varimax-rotate each resample and use the rotated column norms.
    rng : np.random.Generator, optional
        Defaults to a generator seeded with CONFIG['random']['seed'].
    workers : int
        Worker processes. With workers > 1 the iterations are split into
        one chunk per worker, each driven by a child generator spawned
        from rng, so a given (seed, workers) pair is reproducible.

    Returns
    -------
    (B, k) array. Iterations that yield fewer than k values are NaN-padded.
    """
    loadings = np.asarray(loadings, dtype=np.float64)
    if loadings.ndim != 2:
        raise ValueError(f"loadings must be 2-dimensional, got shape {loadings.shape}")
    B = int(B)
    if B < 1:
        raise ValueError(f"B must be >= 1, got {B}")
    if rng is None:
        rng = np.random.default_rng(CONFIG['random']['seed'])

    workers = max(1, min(int(workers), B))
    logger.info(
        "Bootstrapping %d resamples of %dx%d loadings (rotate=%s, workers=%d)",
        B, *loadings.shape, rotate, workers,
    )

    if workers == 1:
        return _resample_sdev(loadings, B, rotate, rng)

    sizes = [len(chunk) for chunk in np.array_split(np.arange(B), workers)]
    jobs = [
        (loadings, size, rotate, child)
        for size, child in zip(sizes, rng.spawn(workers))
    ]
    with ProcessPoolExecutor(max_workers=workers) as pool:
        chunks = list(pool.map(_resample_chunk, jobs))
    return np.vstack(chunks)


def bootstrap_sdev(
    loadings: np.ndarray,
    B: int,
    probs: Optional[Probs] = None,
    rotate: bool = False,
    rng: Optional[np.random.Generator] = None,
    workers: int = 1,
) -> np.ndarray:
    """
    Quantiles of bootstrapped singular values.

    Returns
    -------
    (k, len(probs)) array: row i holds the requested quantiles of the
    i-th singular value across the B resamples (linear interpolation).
    """
    named = quantile_names(probs)
    samples = bootstrap_samples(loadings, B, rotate=rotate, rng=rng, workers=workers)
    quantiles = np.nanquantile(
        samples,
        list(named.values()),
        axis=0,
        method=CONFIG['bootstrap']['quantile_method'],
    )
    return quantiles.T
