"""
tidyeof: EOF / PCA of long-format data.

    tidyeof arrests.csv --value rate --rows crime --cols state
    tidyeof arrests.csv --value rate --rows crime --cols state --n 1 2 3 --rotate
    tidyeof arrests.parquet --value rate --rows crime --cols state --bootstrap 1000
    tidyeof grid.parquet --value t --rows lon lat --cols time --fill none
"""

import argparse
import logging
import math
import sys
from pathlib import Path


def _fill_value(text: str):
    """'none' -> None, 'nan' -> NaN, otherwise a number."""
    if text.lower() in ('none', 'null'):
        return None
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"fill must be a number, 'nan' or 'none', got {text!r}")
    if math.isinf(value):
        raise argparse.ArgumentTypeError(f"fill must be finite, got {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tidyeof',
        description='Empirical Orthogonal Functions (PCA) of a long-format table.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  tidyeof arrests.csv --value rate --rows crime --cols state
  tidyeof arrests.csv --value rate --rows crime --cols state --n 1 2 --rotate
  tidyeof arrests.csv --value rate --rows crime --cols state --bootstrap 500
""",
    )
    parser.add_argument('path', help='Long-format .csv, .tsv or .parquet file')
    parser.add_argument('--value', required=True, help='Column holding the matrix values')
    parser.add_argument('--rows', nargs='+', required=True,
                        help='Columns identifying matrix rows (left vectors)')
    parser.add_argument('--cols', nargs='+', required=True,
                        help='Columns identifying matrix columns (right vectors)')
    parser.add_argument('--n', nargs='+', type=int, default=None,
                        help='Components to keep (default: all)')
    parser.add_argument('--bootstrap', '-B', dest='B', type=int, default=0,
                        help='Bootstrap resamples for singular value quantiles (default: 0, off)')
    parser.add_argument('--probs', nargs='+', type=float, default=None,
                        help='Bootstrap quantile probabilities (default: 0.025 0.5 0.975)')
    parser.add_argument('--rotate', action='store_true', help='Varimax-rotate the components')
    parser.add_argument('--suffix', default=None, help='Component label prefix (default: PC)')
    parser.add_argument('--fill', type=_fill_value, default=0.0,
                        help="Value for missing cells: a number, 'nan', or 'none' for dense data (default: 0)")
    parser.add_argument('--seed', type=int, default=None, help='Random seed (default: 42)')
    parser.add_argument('--workers', type=int, default=None,
                        help='Bootstrap worker processes (default: TIDYEOF_WORKERS env or 1)')
    parser.add_argument('--output', '-o', default=None,
                        help='Output directory (default: <path stem>_eof/ next to the input)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log progress')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    path = Path(args.path).expanduser().resolve()
    if not path.exists():
        print(f"Error: {path} does not exist")
        sys.exit(1)
    output_dir = Path(args.output).expanduser().resolve() if args.output else None

    from tidyeof.cli import TABLES, default_output_dir, run_eof

    try:
        result = run_eof(
            path,
            output_dir=output_dir,
            row_vars=args.rows,
            col_vars=args.cols,
            value_var=args.value,
            n=args.n,
            B=args.B,
            probs=args.probs,
            rotate=args.rotate,
            suffix=args.suffix,
            fill=args.fill,
            seed=args.seed,
            workers=args.workers,
        )
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print("Importance of components:")
    print(result.summary())
    print(f"\nWrote {', '.join(TABLES)} to {output_dir or default_output_dir(path)}")


if __name__ == "__main__":
    main()
