"""
EOF result in tidy form.

Three long-format tables sharing a component column named after the
suffix ('PC' by default), typed as an ordered polars Enum:

    left  : row variables, component, value   (left singular vectors)
    right : column variables, component, value (right singular vectors)
    sdev  : component, sd, r2 [, bootstrap quantiles]
"""

from dataclasses import dataclass, replace
from numbers import Integral
from typing import List, Optional, Sequence, Union

import numpy as np
import polars as pl

from tidyeof.config import CONFIG
from tidyeof.reshape import to_matrix, to_tidy

Components = Union[int, Sequence[int]]

SD = CONFIG['output']['sd_column']
R2 = CONFIG['output']['r2_column']


def as_components(n: Components) -> List[int]:
    """Validate component indices: positive, unique, caller order kept."""
    if isinstance(n, (Integral, np.integer)):
        n = [n]
    n = list(n)
    if not n:
        raise ValueError("At least one component index is required")
    bad = [i for i in n if isinstance(i, bool) or not isinstance(i, (Integral, np.integer)) or i < 1]
    if bad:
        raise ValueError(f"Component indices must be positive integers, got {bad}")
    n = [int(i) for i in n]
    if len(set(n)) != len(n):
        raise ValueError(f"Component indices must be unique, got {n}")
    return n


def component_labels(suffix: str, n: Sequence[int]) -> List[str]:
    """['PC1', 'PC3', ...] in the order given."""
    return [f"{suffix}{i}" for i in n]


@dataclass(frozen=True, eq=False)
class EofResult:
    """Left/right singular vectors and singular values in tidy form."""
    left: pl.DataFrame
    right: pl.DataFrame
    sdev: pl.DataFrame
    suffix: str = 'PC'
    value_var: str = 'value'

    # -----------------------------------------------------------------
    # Components
    # -----------------------------------------------------------------

    def component_number(self) -> pl.Expr:
        """Integer index parsed from the label: 'PC3' -> 3."""
        return (
            pl.col(self.suffix)
            .cast(pl.String)
            .str.strip_prefix(self.suffix)
            .cast(pl.Int64)
        )

    @property
    def components(self) -> List[str]:
        """Component labels present in sdev, in table order."""
        return self.sdev[self.suffix].cast(pl.String).to_list()

    @property
    def left_vars(self) -> List[str]:
        return [c for c in self.left.columns if c not in (self.suffix, self.value_var)]

    @property
    def right_vars(self) -> List[str]:
        return [c for c in self.right.columns if c not in (self.suffix, self.value_var)]

    # -----------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------

    def truncate(self, n: Components) -> 'EofResult':
        """
        Keep only components whose index is in n.

        The component column keeps its Enum dtype and full level set,
        so unused levels survive truncation.
        """
        keep = self.component_number().is_in(as_components(n))
        return replace(
            self,
            left=self.left.filter(keep),
            right=self.right.filter(keep),
            sdev=self.sdev.filter(keep),
        )

    def predict(self, n: Optional[Components] = None) -> pl.DataFrame:
        """
        Reconstruct the data from (a subset of) the components.

        Each right vector is scaled by its singular value, both sides are
        pivoted to component x axis matrices and contracted over the
        components. Returns left variables, right variables and value_var,
        left axis varying slowest.
        """
        eof = self if n is None else self.truncate(n)
        pc, value = self.suffix, self.value_var

        sd = dict(zip(eof.components, eof.sdev[SD].to_list()))
        right = eof.right.with_columns(
            pl.col(value) * pl.col(pc).cast(pl.String).replace_strict(sd, return_dtype=pl.Float64)
        )

        left_m = to_matrix(eof.left.sort(pc, maintain_order=True), pc, self.left_vars, value)
        right_m = to_matrix(right.sort(pc, maintain_order=True), pc, self.right_vars, value)
        if not left_m.row_axis.equals(right_m.row_axis):
            raise ValueError("left and right hold different components")

        fitted = left_m.matrix.T @ right_m.matrix
        return to_tidy(fitted, left_m.col_axis, right_m.col_axis, value)

    def summary(self) -> pl.DataFrame:
        """Importance of components: sd, r2 and cumulative r2."""
        return self.sdev.select(self.suffix, SD, R2).with_columns(
            pl.col(R2).cum_sum().alias(CONFIG['output']['cumulative_column'])
        )

    def equals(self, other: 'EofResult') -> bool:
        return (
            isinstance(other, EofResult)
            and self.suffix == other.suffix
            and self.value_var == other.value_var
            and self.left.equals(other.left)
            and self.right.equals(other.right)
            and self.sdev.equals(other.sdev)
        )

    def __repr__(self) -> str:
        return f"left:\n{self.left}\n\nright:\n{self.right}\n\nsdev:\n{self.sdev}"
