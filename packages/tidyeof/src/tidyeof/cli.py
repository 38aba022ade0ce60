"""
EOF from files.

Reads a long-format CSV or Parquet file, runs compute_eof and writes
the three tidy tables next to each other:

    <output>/left.parquet
    <output>/right.parquet
    <output>/sdev.parquet
"""

import logging
from pathlib import Path
from typing import Optional

import polars as pl

from tidyeof.eof import compute_eof
from tidyeof.result import EofResult

logger = logging.getLogger(__name__)

TABLES = ('left', 'right', 'sdev')


def read_table(path: Path) -> pl.DataFrame:
    """Load a long-format table from .parquet, .csv or .tsv."""
    suffix = path.suffix.lower()
    if suffix == '.parquet':
        return pl.read_parquet(path)
    if suffix == '.csv':
        return pl.read_csv(path)
    if suffix == '.tsv':
        return pl.read_csv(path, separator='\t')
    raise ValueError(f"Unsupported file type '{path.suffix}' (expected .parquet, .csv or .tsv)")


def default_output_dir(path: Path) -> Path:
    """data/arrests.csv -> data/arrests_eof/"""
    return path.parent / f"{path.stem}_eof"


def write_result(result: EofResult, output_dir: Path) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    for name in TABLES:
        target = output_dir / f"{name}.parquet"
        getattr(result, name).write_parquet(target)
        logger.info("Wrote %s", target)


def run_eof(path: Path, output_dir: Optional[Path] = None, **kwargs) -> EofResult:
    """
    Read path, compute the EOF and write its tables to output_dir.

    kwargs are passed to compute_eof.
    """
    path = Path(path)
    output_dir = default_output_dir(path) if output_dir is None else Path(output_dir)

    data = read_table(path)
    logger.info("Read %d rows x %d columns from %s", data.height, data.width, path)

    result = compute_eof(data, **kwargs)
    write_result(result, output_dir)
    return result
