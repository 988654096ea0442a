# src/callcenter_stats/segments.py

"""
Segments of base indices and the aggregate rows/columns they produce.

A segment is a named, user-defined subset of call types, agent groups,
waiting queues or main periods. Matrices of counters only store base
indices; the helpers here append one aggregate row (or column) per
user-defined segment plus one implicit segment regrouping every
non-excluded index. The aggregation function is the one of the measure
type (addition for counts and sums, maximum for peaks).
"""

import logging
from typing import Callable, Iterable, Optional, Sequence

import numpy as np

from .errors import ConfigurationError

log = logging.getLogger(__name__)

# Element-wise binary operator on numpy arrays, e.g. np.add or np.maximum
AggregationFunction = Callable[[np.ndarray, np.ndarray], np.ndarray]


class Segment:
    """
    An immutable set of non-negative base indices.

    Attributes:
        name (str): Optional display name.
        values (tuple): The distinct indices, in increasing order.
    """

    def __init__(self, values: Iterable[int], name: str = ""):
        vals = sorted(set(int(v) for v in values))
        if not vals:
            raise ConfigurationError(f"Segment '{name}' has no values")
        if vals[0] < 0:
            raise ConfigurationError(
                f"The value {vals[0]} of segment '{name}' is negative")
        self.name: str = name
        self.values: tuple = tuple(vals)
        self._value_set = frozenset(vals)

    @property
    def num_values(self) -> int:
        return len(self.values)

    @property
    def min_value(self) -> int:
        return self.values[0]

    @property
    def max_value(self) -> int:
        return self.values[-1]

    def contains_value(self, i: int) -> bool:
        return i in self._value_set

    def __contains__(self, i: int) -> bool:
        return i in self._value_set

    def __repr__(self):
        return f"Segment(name='{self.name}', values={list(self.values)})"


def check_range(lower: int, upper: int, segments: Sequence[Segment]):
    """
    Verifies that every value of every segment is in [lower, upper).

    Raises:
        ConfigurationError: On the first segment out of range.
    """
    for idx, seg in enumerate(segments):
        if seg.min_value < lower:
            raise ConfigurationError(
                f"The segment with index {idx} contains at least one "
                f"value smaller than {lower}")
        if seg.max_value >= upper:
            raise ConfigurationError(
                f"The segment with index {idx} contains at least one "
                f"value greater than or equal to {upper}")


def add_row_segments(mat: np.ndarray,
                     func: AggregationFunction,
                     global_mask: Optional[Sequence[bool]] = None,
                     segments: Sequence[Segment] = ()) -> np.ndarray:
    """
    Appends one aggregate row per segment, plus a last row aggregating
    every row allowed by `global_mask`.

    Args:
        mat: An R x C matrix of base rows.
        func: The aggregation function.
        global_mask: `global_mask[r]` is False for rows excluded from
            the implicit all-rows segment. None includes every row.
        segments: The user-defined segments over row indices.

    Returns:
        np.ndarray: `mat` itself if R <= 1, otherwise a new
        (R + 1 + len(segments)) x C matrix.
    """
    rows = mat.shape[0]
    if rows <= 1:
        return mat
    nseg = len(segments)
    res = np.zeros((rows + 1 + nseg, mat.shape[1]))
    res[:rows] = mat
    for seg in range(nseg + 1):
        sinfo = segments[seg] if seg < nseg else None
        for i in range(rows):
            if sinfo is None and global_mask is not None and not global_mask[i]:
                continue
            if sinfo is not None and not sinfo.contains_value(i):
                continue
            res[rows + seg] = func(res[rows + seg], mat[i])
    return res


def add_row_segments_two_level(mat: np.ndarray,
                               num_groups: int,
                               func: AggregationFunction,
                               global_mask1: Optional[Sequence[bool]],
                               global_mask2: Optional[Sequence[bool]],
                               segments1: Sequence[Segment],
                               segments2: Sequence[Segment]) -> np.ndarray:
    """
    Segment aggregation for matrices whose rows are (type, group) pairs.

    Row `numGroups * k + i` of `mat` holds type `k` and group `i`. The
    result holds row `(numGroups + nseg2 + 1) * kk + ii`, where `kk`
    ranges over types, type segments and all types, and `ii` over
    groups, group segments and all groups.
    """
    rows, columns = mat.shape
    if rows <= 1 or columns == 0:
        return mat
    if num_groups <= 0:
        raise ConfigurationError("num_groups must be positive")
    if num_groups == 1:
        return add_row_segments(mat, func, global_mask1, segments1)
    if rows % num_groups != 0:
        raise ConfigurationError(
            "The number of rows must be a multiple of the number of groups")
    num_types = rows // num_groups
    if num_types == 1:
        return add_row_segments(mat, func, global_mask2, segments2)

    nseg1 = len(segments1)
    nseg2 = len(segments2)
    groups_p = num_groups + nseg2 + 1
    res = np.zeros(((num_types + 1 + nseg1) * groups_p, columns))
    for k in range(num_types):
        for i in range(num_groups):
            src = mat[num_groups * k + i]
            for s1 in range(-1, nseg1 + 1):
                if s1 == -1:
                    kk = k
                elif s1 == nseg1:
                    if global_mask1 is not None and not global_mask1[k]:
                        continue
                    kk = num_types + nseg1
                else:
                    if not segments1[s1].contains_value(k):
                        continue
                    kk = num_types + s1
                for s2 in range(-1, nseg2 + 1):
                    if s2 == -1:
                        ii = i
                    elif s2 == nseg2:
                        if global_mask2 is not None and not global_mask2[i]:
                            continue
                        ii = num_groups + nseg2
                    else:
                        if not segments2[s2].contains_value(i):
                            continue
                        ii = num_groups + s2
                    idx = groups_p * kk + ii
                    res[idx] = func(res[idx], src)
    return res


def add_column_segments(mat: np.ndarray,
                        func: AggregationFunction,
                        segments: Sequence[Segment] = ()) -> np.ndarray:
    """
    Appends one aggregate column per segment of periods, plus a last
    column aggregating every column.

    Returns:
        np.ndarray: `mat` itself if it has at most one column.
    """
    columns = mat.shape[1]
    if columns <= 1:
        return mat
    nseg = len(segments)
    res = np.zeros((mat.shape[0], columns + 1 + nseg))
    res[:, :columns] = mat
    for seg in range(nseg + 1):
        sinfo = segments[seg] if seg < nseg else None
        for mp in range(columns):
            if sinfo is None or sinfo.contains_value(mp):
                res[:, columns + seg] = func(res[:, columns + seg], mat[:, mp])
    return res
