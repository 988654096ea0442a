# src/callcenter_stats/stat/sim_stat.py

"""
Statistical probes fed from the matrices of counters of a simulation.

After each replication (or for each sliding window), `add_obs` reads
the matrices of counters through a `MatrixCache`, reshaped to the row
layout of each performance measure, and adds one observation to every
probe:

- expectations receive the matrix itself, or a combination of several
  matrices (sum, difference or element-wise maximum);
- ratios of expectations receive the numerator and denominator
  matrices as pairs, the division being done at estimation time;
- expectations of ratios receive the per-cell ratios x / y, with the
  zero-over-zero value of the measure when x = y = 0.

Raw statistics (values at the end of the simulation and service level
indicators) are collected separately by `add_obs_raw_statistics`.
"""

import logging
from typing import Iterable, List, Optional

import numpy as np

from ..config import StatParams
from ..constants import ColumnType, EstimationType
from ..errors import ConfigurationError
from ..matrix_cache import MatrixCache
from ..measure_manager import CallCenterMeasureManager
from ..measure_types import SUM, MeasureType
from ..model import CallCenter
from ..performance_measures import (PerformanceMeasureType, expectation_values,
                                    get_measure_types, ratio_components)
from ..row_types import RowType
from ..segments import add_row_segments
from .base import AbstractCallCenterStatProbes
from .probes import MatrixOfRatioTallies, MatrixOfTallies

log = logging.getLogger(__name__)

PM = PerformanceMeasureType

# Tolerance of the diagnostic checks
TOL = 1e-6


class SimCallCenterStat(AbstractCallCenterStatProbes):
    """
    Collects observations of performance measures from a measure
    manager.

    Args:
        cc (CallCenter): The observed model.
        manager (CallCenterMeasureManager): Owner of the matrices of
            counters; it must have every matrix the measures need.
        keep_obs (bool): Tallies store their observations.
        normalize_to_default_unit (bool): Weight the per-period averages
            by the period durations in `recompute_time_aggregates`.
        pms (Iterable[PerformanceMeasureType]): The estimated measures.
        check_consistency (bool): Run the diagnostic checks after each
            call to `add_obs`; violations are logged as warnings.

    Raises:
        ConfigurationError: If the manager cannot provide the matrices
            of counters needed by one of `pms`.
    """

    def __init__(self, cc: CallCenter, manager: CallCenterMeasureManager,
                 keep_obs: bool = False, normalize_to_default_unit: bool = False,
                 pms: Iterable[PerformanceMeasureType] = (),
                 check_consistency: bool = False):
        super().__init__()
        self.cc: CallCenter = cc
        self.manager: CallCenterMeasureManager = manager
        self.keep_obs: bool = keep_obs
        self.normalize_to_default_unit: bool = normalize_to_default_unit
        self.check_consistency: bool = check_consistency

        np_ = manager.num_periods_for_stat_probes
        for pm in dict.fromkeys(pms):
            if not manager.has_measure_matrices_for(pm):
                log.error(f"The measure manager has no counters for {pm.name}")
                raise ConfigurationError(
                    f"The measure manager cannot be used to estimate "
                    f"performance measures of type {pm.name}")
            rows = pm.row_type.count(cc)
            columns = pm.column_count(np_, cc)
            if pm.estimation_type is EstimationType.FUNCTION_OF_EXPECTATIONS:
                self.ratio_tally_map[pm] = MatrixOfRatioTallies(
                    rows, columns, pm.zero_over_zero)
            else:
                self.tally_map[pm] = MatrixOfTallies(rows, columns, keep_obs)
        self.cache: MatrixCache = MatrixCache(manager)
        log.info(f"Statistical probes created for "
                 f"{len(self.tally_map) + len(self.ratio_tally_map)} "
                 f"performance measures")

    @classmethod
    def from_params(cls, cc: CallCenter, manager: CallCenterMeasureManager,
                    params: StatParams,
                    pms: Iterable[PerformanceMeasureType]) -> "SimCallCenterStat":
        return cls(cc, manager, params.keep_obs, params.normalize_to_default_unit,
                   pms, params.check_consistency)

    # Feeding helpers

    @staticmethod
    def _full_range(columns: int, start: int, end: int) -> bool:
        return start == 0 and end + 1 == columns

    def _add_expectation(self, mta: MatrixOfTallies, mat: np.ndarray,
                         start: int, end: int):
        if self._full_range(mta.columns, start, end):
            mta.add(mat)
            return
        for mp in range(start, end):
            for r in range(mta.rows):
                mta.add_cell(r, mp, mat[r, mp])

    def _add_ratio_pairs(self, mta: MatrixOfRatioTallies, mx: np.ndarray,
                         my: np.ndarray, start: int, end: int):
        if mx.shape[0] == 0 or mx.shape[1] == 0:
            return
        if self._full_range(mta.columns, start, end):
            mta.add(mx, my)
            return
        for mp in range(start, end):
            for r in range(mta.rows):
                mta.add_cell(r, mp, mx[r, mp], my[r, mp])

    def _add_ratio_values(self, mta: MatrixOfTallies, mx: np.ndarray,
                          my: np.ndarray, zero_over_zero: float,
                          start: int, end: int):
        if mx.shape[0] == 0 or mx.shape[1] == 0:
            return
        with np.errstate(divide="ignore", invalid="ignore"):
            ratio = mx / my
        ratio[(mx == 0) & (my == 0)] = zero_over_zero
        self._add_expectation(mta, ratio, start, end)

    def _matrices(self, pm: PerformanceMeasureType) -> Optional[List[np.ndarray]]:
        res = []
        for mt in get_measure_types(pm):
            mat = self.cache.get_matrix(mt, pm.row_type)
            if mat is None:
                log.warning(f"No matrix of counters for {mt.name}, "
                            f"skipping {pm.name}")
                return None
            res.append(mat)
        return res

    # Statistics passes

    def add_obs(self, start: Optional[int] = None, end: Optional[int] = None):
        """
        Adds one observation to every probe, from the current values of
        the matrices of counters.

        Without arguments, every column is fed. Otherwise only the
        columns `start` to `end - 1` are fed, one cell at a time, unless
        `start` is 0 and `end` is the last column, in which case every
        column is fed.
        """
        if start is None:
            start = 0
        if end is None:
            end = self.manager.num_periods_for_stat_probes - 1
        self.cache.clear()

        for pm, mta in self.tally_map.items():
            if pm.estimation_type is not EstimationType.EXPECTATION:
                continue
            if pm is PM.SERVED_RATES:
                continue
            matrices = self._matrices(pm)
            if matrices is None or not matrices:
                continue
            self._add_expectation(mta, expectation_values(pm, matrices), start, end)

        for pm in self.performance_measures:
            if pm.estimation_type not in (EstimationType.FUNCTION_OF_EXPECTATIONS,
                                          EstimationType.EXPECTATION_OF_FUNCTION):
                continue
            matrices = self._matrices(pm)
            if matrices is None:
                continue
            mx, my = ratio_components(pm, matrices)
            if pm.estimation_type is EstimationType.FUNCTION_OF_EXPECTATIONS:
                self._add_ratio_pairs(self.ratio_tally_map[pm], mx, my, start, end)
            else:
                self._add_ratio_values(self.tally_map[pm], mx, my,
                                       pm.zero_over_zero, start, end)

        if PM.SERVED_RATES in self.tally_map:
            self._add_served_rates(self.tally_map[PM.SERVED_RATES])

        if self.check_consistency:
            self.run_consistency_checks()
        log.debug(f"Observations added for columns {start} to {end}")

    def _add_served_rates(self, mta: MatrixOfTallies):
        sr = self.cache.get_matrix(MeasureType.SUM_SERVED,
                                   RowType.CONTACT_TYPE_AGENT_GROUP)
        if sr is None:
            return
        kp = self.cc.num_contact_types_with_segments
        ip = self.cc.num_agent_groups_with_segments
        # Row ip * k + i of the pair matrix becomes cell (k, i)
        mta.add(sr[:kp * ip, 0].reshape(kp, ip))

    def init_raw_statistics(self):
        for pm in self.performance_measures:
            if pm.estimation_type is EstimationType.RAW_STATISTIC:
                self.get_matrix_of_stat_probes(pm).init()

    def add_obs_raw_statistics(self):
        """
        Adds one observation of the raw statistics: the number of busy
        agents and the queue sizes at the current time, and the service
        level indicators.
        """
        cc = self.cc
        if self.has_performance_measure(PM.BUSY_AGENTS_END_SIM):
            busy = np.array([[g.num_busy] for g in cc.agent_groups], dtype=float)
            self.get_matrix_of_tallies(PM.BUSY_AGENTS_END_SIM).add(
                add_row_segments(busy, SUM, None, cc.group_segments))

        if self.has_performance_measure(PM.QUEUE_SIZE_END_SIM):
            sizes = np.array([[q.size] for q in cc.waiting_queues], dtype=float)
            self.get_matrix_of_tallies(PM.QUEUE_SIZE_END_SIM).add(
                add_row_segments(sizes, SUM, None, cc.queue_segments))

        if self.has_performance_measure(PM.SERVICE_LEVEL_IND01):
            self.cache.clear()
            pm = PM.SERVICE_LEVEL_IND01
            matrices = self._matrices(pm)
            if matrices is not None:
                self.get_matrix_of_tallies(pm).add(
                    self.service_level_indicators(*ratio_components(pm, matrices)))

    def service_level_indicators(self, mx: np.ndarray, my: np.ndarray) -> np.ndarray:
        """
        Returns 1 for each cell whose service level x / y reaches the
        target of its AWT definition, inbound type and period, 0
        otherwise. A cell without calls (y <= 0) counts as reaching the
        target.
        """
        nti = self.cc.num_in_contact_types_with_segments
        res = np.ones(mx.shape)
        for si, slp in enumerate(self.cc.service_levels):
            for k in range(nti):
                row = si * nti + k
                for col in range(mx.shape[1]):
                    if my[row, col] > 0:
                        sl = mx[row, col] / my[row, col]
                        res[row, col] = 1.0 if sl >= slp.get_target(k, col) else 0.0
        return res

    def recompute_time_aggregates(self):
        """
        Replaces the last column of each per-period probe by a single
        observation: the sum, over main periods, of the per-period
        averages. With normalization, each average is weighted by the
        duration of its period and the sum is divided by the duration of
        the horizon. Used when the per-period probes received different
        numbers of observations. Columns of main-period segments are
        left untouched and do not enter the sum.
        """
        periods = self.cc.periods
        P = self.cc.num_main_periods
        horizon = periods.period_ending_time(P) - periods.period_ending_time(0)
        weights = np.array([periods.period_duration(mp + 1) for mp in range(P)])

        def _aggregate(averages: np.ndarray, counts: np.ndarray) -> np.ndarray:
            values = np.where(counts[:, :P] > 0, averages[:, :P], 0.0)
            if self.normalize_to_default_unit:
                return (values * weights).sum(axis=1) / horizon
            return values.sum(axis=1)

        for pm, mta in self.tally_map.items():
            if not self._has_time_aggregate(pm, mta.columns):
                continue
            sums = _aggregate(np.nan_to_num(mta.average()), mta.num_obs())
            last = mta.columns - 1
            for r in range(mta.rows):
                mta.init_cell(r, last)
                mta.add_cell(r, last, sums[r])

        for pm, mra in self.ratio_tally_map.items():
            if not self._has_time_aggregate(pm, mra.columns):
                continue
            mx, my = mra.component_averages()
            counts = mra.num_obs()
            sx = _aggregate(mx, counts)
            sy = _aggregate(my, counts)
            last = mra.columns - 1
            for r in range(mra.rows):
                mra.init_cell(r, last)
                mra.add_cell(r, last, sx[r], sy[r])

    def _has_time_aggregate(self, pm: PerformanceMeasureType, columns: int) -> bool:
        return (pm is not PM.SERVED_RATES
                and pm.column_type is ColumnType.MAIN_PERIOD
                and columns > 1)

    # Diagnostics

    def _check_non_negative(self, name: str, m: np.ndarray) -> bool:
        bad = np.argwhere(m < -TOL)
        for r, c in bad:
            log.warning(f"Element ({r}, {c}) of {name}, with value "
                        f"{m[r, c]}, is negative")
        return bad.size == 0

    def run_consistency_checks(self) -> bool:
        """
        Checks that the matrices of counters of the current pass are
        non-negative and, with a single AWT definition and no segment
        of inbound types, that calls served before and after the AWT add
        up to the served calls. Returns False if a check fails.
        """
        ok = True
        for mt in self.manager.measures:
            mat = self.cache.get_matrix(mt, self.cache.base_row_type(mt))
            if mat is not None:
                ok = self._check_non_negative(mt.name, mat) and ok

        cc = self.cc
        if cc.num_matrices_of_awt != 1 or cc.in_type_segments:
            return ok
        needed = (MeasureType.NUM_SERVED_BEFORE_AWT, MeasureType.NUM_SERVED_AFTER_AWT,
                  MeasureType.NUM_SERVED)
        if not all(self.manager.has_measure_matrix(mt) for mt in needed):
            return ok
        before = self.cache.get_matrix(MeasureType.NUM_SERVED_BEFORE_AWT,
                                       RowType.INBOUND_TYPE_AWT)
        after = self.cache.get_matrix(MeasureType.NUM_SERVED_AFTER_AWT,
                                      RowType.INBOUND_TYPE_AWT)
        served = self.cache.get_matrix(MeasureType.NUM_SERVED, RowType.INBOUND_TYPE)
        if before.shape != served.shape:
            log.warning(f"Cannot compare served calls of shape {served.shape} "
                        f"with AWT counters of shape {before.shape}")
            return False
        diff = np.abs(before + after - served)
        for r, c in np.argwhere(diff > TOL):
            log.warning(f"Served before AWT + served after AWT = "
                        f"{before[r, c] + after[r, c]} differs from served = "
                        f"{served[r, c]} at ({r}, {c})")
            ok = False
        return ok
