"""
tidyeof Configuration
=====================
Defaults for reshaping, decomposition, rotation and bootstrap.
Single source of truth. Every module reads its defaults from here.

Usage:
    from tidyeof.config import CONFIG
    seed = CONFIG['random']['seed']
"""

import os

CONFIG = {

    # =================================================================
    # Reproducibility
    # =================================================================
    'random': {
        'seed': 42,
    },

    # =================================================================
    # Decomposition strategy
    # =================================================================
    'decompose': {
        # Truncated SVD only when k < ratio * min(rows, cols)
        'truncated_ratio': 0.5,
        'use_truncated': True,
        'arpack_solver': 'arpack',
    },

    # =================================================================
    # Varimax rotation (Kaiser 1958)
    # =================================================================
    'varimax': {
        'normalize': False,
        'eps': 1e-5,
        'max_iter': 1000,
    },

    # =================================================================
    # Bootstrap of singular values (Fisher et al. 2016)
    # =================================================================
    'bootstrap': {
        'probs': {'lower': 0.025, 'mid': 0.5, 'upper': 0.975},
        'quantile_method': 'linear',
        'log_every': 100,
    },

    # =================================================================
    # Tidy output
    # =================================================================
    'output': {
        'suffix': 'PC',
        'sd_column': 'sd',
        'r2_column': 'r2',
        'cumulative_column': 'cumulative_r2',
    },
}

# Bootstrap workers: set TIDYEOF_WORKERS=N to override, default = 1
TIDYEOF_WORKERS = int(os.environ.get("TIDYEOF_WORKERS", "0")) or 1
