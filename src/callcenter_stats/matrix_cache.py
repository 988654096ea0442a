# src/callcenter_stats/matrix_cache.py

"""
Reshaping of matrices of counters into the row layout of performance
measures.

The statistics of one pass read each matrix of counters under several
row types: a matrix of arrivals per contact type feeds the abandonment
ratio per contact type, the service level per inbound type and AWT
definition, the service time per (type, group) pair, and so on.
`MatrixCache` computes each row type at most once per pass.

The base matrix of a measure type is the output of the measure manager
completed with its aggregate rows. Other row types are reached through
single-step conversions, listed in `_TRANSITIONS`, applied in a fixed
order:

1. narrowing from contact types to inbound or outbound types, which
   recomputes the aggregate rows over the narrower set of types;
2. widening a type matrix to (type, group) pairs by repeating rows, or
   narrowing pairs to types by keeping the all-groups rows;
3. repeating the inbound rows once per AWT definition.

A row type that cannot be reached this way is a configuration error.

The cache must be cleared before each pass; otherwise it returns the
matrices of the previous pass.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from .errors import ConfigurationError
from .measure_types import MeasureType
from .row_types import RowType
from .segments import add_row_segments, add_row_segments_two_level

log = logging.getLogger(__name__)

_INBOUND_FAMILY = frozenset([
    RowType.INBOUND_TYPE, RowType.INBOUND_TYPE_AGENT_GROUP,
    RowType.INBOUND_TYPE_AWT, RowType.INBOUND_TYPE_AWT_AGENT_GROUP,
])
_OUTBOUND_FAMILY = frozenset([
    RowType.OUTBOUND_TYPE, RowType.OUTBOUND_TYPE_AGENT_GROUP,
])
_AWT_FAMILY = frozenset([
    RowType.INBOUND_TYPE_AWT, RowType.INBOUND_TYPE_AWT_AGENT_GROUP,
])


class MatrixCache:
    """
    Memoizes the matrices of counters of one statistics pass, under
    every row type requested.

    Args:
        manager (CallCenterMeasureManager): Source of the raw values.
    """

    def __init__(self, manager):
        self.manager = manager
        self.cc = manager.cc
        self._derived: Dict[MeasureType, Dict[RowType, np.ndarray]] = {}

    def clear(self):
        self._derived.clear()

    def _global_types(self) -> List[bool]:
        return [not self.cc.is_excluded_from_total(k)
                for k in range(self.cc.num_contact_types)]

    def _global_in(self) -> List[bool]:
        return self._global_types()[:self.cc.num_in_contact_types]

    def _global_out(self) -> List[bool]:
        return self._global_types()[self.cc.num_in_contact_types:]

    def base_row_type(self, mt: MeasureType) -> RowType:
        return mt.row_type(self.manager.is_contact_type_agent_group)

    def get_base_matrix(self, mt: MeasureType) -> np.ndarray:
        """
        Returns the normalized values of `mt` with every aggregate row of
        its natural row type.

        Raises:
            ConfigurationError: If the number of rows does not match the
                row type.
        """
        cc = self.cc
        values = self.manager.get_values(mt, True)
        rt = self.base_row_type(mt)
        count = rt.count(cc)
        func = mt.aggregation
        I = cc.num_agent_groups
        if values.shape[0] < count:
            if rt is RowType.CONTACT_TYPE:
                values = add_row_segments(values, func, self._global_types(),
                                          cc.type_segments)
            elif rt is RowType.CONTACT_TYPE_AGENT_GROUP:
                values = add_row_segments_two_level(
                    values, I, func, self._global_types(), None,
                    cc.type_segments, cc.group_segments)
            elif rt is RowType.INBOUND_TYPE:
                values = add_row_segments(values, func, self._global_in(),
                                          cc.in_type_segments)
            elif rt is RowType.INBOUND_TYPE_AGENT_GROUP:
                values = add_row_segments_two_level(
                    values, I, func, self._global_in(), None,
                    cc.in_type_segments, cc.group_segments)
            elif rt is RowType.OUTBOUND_TYPE:
                values = add_row_segments(values, func, self._global_out(),
                                          cc.out_type_segments)
            elif rt is RowType.OUTBOUND_TYPE_AGENT_GROUP:
                values = add_row_segments_two_level(
                    values, I, func, self._global_out(), None,
                    cc.out_type_segments, cc.group_segments)
            elif rt is RowType.AGENT_GROUP:
                values = add_row_segments(values, func, None, cc.group_segments)
            elif rt is RowType.WAITING_QUEUE:
                values = add_row_segments(values, func, None, cc.queue_segments)
        if values.shape[0] != count:
            log.error(f"Matrix of {mt.name} has {values.shape[0]} rows, "
                      f"expected {count} for {rt.name}")
            raise ConfigurationError(
                f"Invalid number of rows {values.shape[0]} for {mt.name}, "
                f"expected {count}")
        return values

    # Single-step conversions. Each takes the matrix under `source` and
    # returns it under the target row type of its table entry.

    def _narrow(self, mt: MeasureType, mat: np.ndarray, source: RowType,
                first: int, n: int, global_mask: List[bool],
                segments) -> np.ndarray:
        cc = self.cc
        func = mt.aggregation
        I = cc.num_agent_groups
        if not source.is_contact_type_agent_group() or I == 1:
            return add_row_segments(mat[first:first + n], func, global_mask, segments)

        Ip = cc.num_agent_groups_with_segments
        nseg = len(segments) if n > 1 else 0
        np_ = n if n <= 1 else n + 1 + nseg
        res = np.zeros((np_ * Ip, mat.shape[1]))
        res[:n * Ip] = mat[first * Ip:(first + n) * Ip]
        if n > 1:
            for i in range(Ip):
                for k in range(n):
                    src = mat[(first + k) * Ip + i]
                    for s in range(nseg + 1):
                        if s == nseg:
                            if not global_mask[k]:
                                continue
                        elif not segments[s].contains_value(k):
                            continue
                        idx = (n + s) * Ip + i
                        res[idx] = func(res[idx], src)
        return res

    def to_inbound(self, mt: MeasureType, mat: np.ndarray,
                   source: RowType) -> np.ndarray:
        cc = self.cc
        return self._narrow(mt, mat, source, 0, cc.num_in_contact_types,
                            self._global_in(), cc.in_type_segments)

    def to_outbound(self, mt: MeasureType, mat: np.ndarray,
                    source: RowType) -> np.ndarray:
        cc = self.cc
        return self._narrow(mt, mat, source, cc.num_in_contact_types,
                            cc.num_out_contact_types, self._global_out(),
                            cc.out_type_segments)

    def extend(self, mt: MeasureType, mat: np.ndarray,
               source: RowType) -> np.ndarray:
        """Repeats each row once per agent-group row."""
        if self.cc.num_agent_groups == 1:
            return mat
        return np.repeat(mat, self.cc.num_agent_groups_with_segments, axis=0)

    def regroup(self, mt: MeasureType, mat: np.ndarray,
                source: RowType) -> np.ndarray:
        """Keeps the all-groups row of each type."""
        if self.cc.num_agent_groups == 1:
            return mat
        ip = self.cc.num_agent_groups_with_segments
        return mat[ip - 1::ip].copy()

    def to_awt(self, mt: MeasureType, mat: np.ndarray,
               source: RowType) -> np.ndarray:
        """Repeats the whole matrix once per AWT definition."""
        m = self.cc.num_matrices_of_awt
        if m == 1:
            return mat
        return np.tile(mat, (m, 1))

    def _next_row_type(self, current: RowType, target: RowType) -> Optional[RowType]:
        if current in (RowType.CONTACT_TYPE, RowType.CONTACT_TYPE_AGENT_GROUP):
            if target in _INBOUND_FAMILY:
                return current.to_inbound_type()
            if target in _OUTBOUND_FAMILY:
                return current.to_outbound_type()
        current_pair = current.is_contact_type_agent_group()
        target_pair = target.is_contact_type_agent_group()
        if current.is_contact_type() and target_pair:
            return current.to_contact_type_agent_group()
        if current_pair and not target_pair and target.is_contact_type():
            return current.to_contact_type()
        if target in _AWT_FAMILY and current not in _AWT_FAMILY:
            return current.to_inbound_type_awt()
        return None

    def get_matrix(self, mt: MeasureType, target: RowType) -> Optional[np.ndarray]:
        """
        Returns the matrix of counters of `mt` under the row type
        `target`, or None if the manager has no matrix for `mt`.

        Raises:
            ConfigurationError: If `target` cannot be reached from the
                base row type of `mt`.
        """
        if not self.manager.has_measure_matrix(mt):
            return None
        derived = self._derived.setdefault(mt, {})
        base_rt = self.base_row_type(mt)
        if base_rt not in derived:
            derived[base_rt] = self.get_base_matrix(mt)
        if target in derived:
            return derived[target]

        current = base_rt
        mat = derived[base_rt]
        while current is not target:
            nxt = self._next_row_type(current, target)
            step = _TRANSITIONS.get((current, nxt)) if nxt is not None else None
            if step is None:
                log.error(f"Cannot convert {mt.name} from {current.name} "
                          f"to {target.name}")
                raise ConfigurationError(
                    f"Invalid target row type {target.name} for measure type "
                    f"{mt.name} with row type {base_rt.name}")
            if nxt in derived:
                mat = derived[nxt]
            else:
                mat = step(self, mt, mat, current)
                derived[nxt] = mat
                log.debug(f"Converted {mt.name} from {current.name} to {nxt.name}")
            current = nxt
        return mat


Transform = Callable[[MatrixCache, MeasureType, np.ndarray, RowType], np.ndarray]

# (source, target) -> single-step conversion
_TRANSITIONS: Dict[Tuple[RowType, RowType], Transform] = {
    (RowType.CONTACT_TYPE, RowType.INBOUND_TYPE): MatrixCache.to_inbound,
    (RowType.CONTACT_TYPE, RowType.OUTBOUND_TYPE): MatrixCache.to_outbound,
    (RowType.CONTACT_TYPE_AGENT_GROUP, RowType.INBOUND_TYPE_AGENT_GROUP): MatrixCache.to_inbound,
    (RowType.CONTACT_TYPE_AGENT_GROUP, RowType.OUTBOUND_TYPE_AGENT_GROUP): MatrixCache.to_outbound,

    (RowType.CONTACT_TYPE, RowType.CONTACT_TYPE_AGENT_GROUP): MatrixCache.extend,
    (RowType.INBOUND_TYPE, RowType.INBOUND_TYPE_AGENT_GROUP): MatrixCache.extend,
    (RowType.OUTBOUND_TYPE, RowType.OUTBOUND_TYPE_AGENT_GROUP): MatrixCache.extend,
    (RowType.INBOUND_TYPE_AWT, RowType.INBOUND_TYPE_AWT_AGENT_GROUP): MatrixCache.extend,

    (RowType.CONTACT_TYPE_AGENT_GROUP, RowType.CONTACT_TYPE): MatrixCache.regroup,
    (RowType.INBOUND_TYPE_AGENT_GROUP, RowType.INBOUND_TYPE): MatrixCache.regroup,
    (RowType.OUTBOUND_TYPE_AGENT_GROUP, RowType.OUTBOUND_TYPE): MatrixCache.regroup,
    (RowType.INBOUND_TYPE_AWT_AGENT_GROUP, RowType.INBOUND_TYPE_AWT): MatrixCache.regroup,

    (RowType.INBOUND_TYPE, RowType.INBOUND_TYPE_AWT): MatrixCache.to_awt,
    (RowType.INBOUND_TYPE_AGENT_GROUP, RowType.INBOUND_TYPE_AWT_AGENT_GROUP): MatrixCache.to_awt,
}
