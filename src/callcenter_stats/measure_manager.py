# src/callcenter_stats/measure_manager.py

"""
Ownership of every matrix of counters used during a simulation.

`CallCenterMeasureManager` creates only the matrices needed by the
requested performance measures:

- call-by-call counters (`counters.CallByCallMeasureManager`);
- dial attempts (`counters.OutboundCallCounter`);
- time integrals of busy, working and scheduled agents per group, and
  of queue sizes per waiting queue (`matrices.IntegralMeasureMatrix`);
- peak trackers (`checkers.BusyAgentsChecker`,
  `checkers.QueueSizeChecker`).

It attaches them to the model (`register_listeners`), resets them
(`init_measure_matrices`), and flushes the time integrals when the
statistical period changes (`update_current_period`,
`finish_current_period`).

Subclasses decide how raw columns become the columns seen by
statistical probes (`get_values`) and how values are normalized by
period durations (`time_normalize`). `RepMeasureManager` implements the
strategy for independent replications over main periods.
"""

import abc
import logging
from typing import Dict, Iterable, List, Optional

import numpy as np

from .checkers import BusyAgentsChecker, QueueSizeChecker
from .constants import TimeNormalizeType
from .counters import CallByCallMeasureManager, OutboundCallCounter
from .errors import ConfigurationError, MeasureNotAvailableError
from .matrices import (GroupVolumeStat, IntegralMeasureMatrix, MeasureMatrix,
                       MeasureSet, QueueSizeStat,
                       SlidingWindowIntegralMeasureMatrix,
                       SlidingWindowSumMatrix)
from .measure_types import MeasureType
from .model import CallCenter
from .performance_measures import (PerformanceMeasureType, get_measure_types,
                                   measure_types_for)
from .periods import RepStatPeriod, StatPeriod
from .segments import AggregationFunction, add_column_segments

log = logging.getLogger(__name__)

_GROUP_VOLUME_ROWS = {
    MeasureType.NUM_BUSY_AGENTS: GroupVolumeStat.BUSY,
    MeasureType.NUM_WORKING_AGENTS: GroupVolumeStat.WORKING,
    MeasureType.NUM_SCHEDULED_AGENTS: GroupVolumeStat.SCHEDULED,
}

# Measure types whose columns are time integrals
VOLUME_MEASURES = frozenset(list(_GROUP_VOLUME_ROWS) + [MeasureType.QUEUE_SIZE])

# Measure types counted per AWT definition and main period
AWT_MEASURES = frozenset([
    MeasureType.NUM_SERVED_BEFORE_AWT, MeasureType.NUM_SERVED_AFTER_AWT,
    MeasureType.NUM_ABANDONED_BEFORE_AWT, MeasureType.NUM_ABANDONED_AFTER_AWT,
    MeasureType.SUM_EXCESS_TIMES_SERVED, MeasureType.SUM_EXCESS_TIMES_ABANDONED,
])


class CallCenterMeasureManager(abc.ABC):
    """
    Creates, resets and updates the matrices of counters.

    Args:
        cc (CallCenter): The observed model.
        stat_period (StatPeriod): Assigns calls and time to columns.
        contact_type_agent_group (bool): Keep counters of served calls
            per (type, group) pair.
        measures (Iterable[MeasureType], optional): The measure types to
            collect; None collects every measure type. Use
            `measure_types_for` to derive them from performance measures.
    """

    def __init__(self, cc: CallCenter, stat_period: StatPeriod,
                 contact_type_agent_group: bool = False,
                 measures: Optional[Iterable[MeasureType]] = None):
        self.cc: CallCenter = cc
        self.stat_period: StatPeriod = stat_period
        wanted = set(MeasureType if measures is None else measures)
        self.measure_map: Dict[MeasureType, MeasureMatrix] = {}

        self.call_by_call: Optional[CallByCallMeasureManager] = CallByCallMeasureManager(
            cc, stat_period, contact_type_agent_group, wanted)
        if self.call_by_call.has_measures:
            self.call_by_call.init_measure_map(self.measure_map)
        else:
            self.call_by_call = None
        self._contact_type_agent_group: bool = contact_type_agent_group

        self.out_counter: Optional[OutboundCallCounter] = None
        if MeasureType.NUM_TRIED_DIAL in wanted:
            self.out_counter = OutboundCallCounter(cc, stat_period)
            self.measure_map[MeasureType.NUM_TRIED_DIAL] = self.out_counter.count

        integral_cls = (SlidingWindowIntegralMeasureMatrix
                        if stat_period.needs_sliding_windows
                        else IntegralMeasureMatrix)
        np_ = stat_period.num_periods_for_counters

        self.group_volumes: List[IntegralMeasureMatrix] = []
        if wanted & set(_GROUP_VOLUME_ROWS):
            self.group_volumes = [
                integral_cls(GroupVolumeStat(cc.clock), np_)
                for _ in range(cc.num_agent_groups)]
            for mt, row in _GROUP_VOLUME_ROWS.items():
                if mt in wanted:
                    self.measure_map[mt] = MeasureSet(self.group_volumes, row)

        self.queue_sizes: List[IntegralMeasureMatrix] = []
        if MeasureType.QUEUE_SIZE in wanted:
            self.queue_sizes = [
                integral_cls(QueueSizeStat(cc.clock), np_)
                for _ in range(cc.num_waiting_queues)]
            self.measure_map[MeasureType.QUEUE_SIZE] = MeasureSet(self.queue_sizes, 0)

        self.size_checker: Optional[QueueSizeChecker] = None
        if MeasureType.MAX_QUEUE_SIZE in wanted:
            self.size_checker = QueueSizeChecker(cc, stat_period)
            self.measure_map[MeasureType.MAX_QUEUE_SIZE] = self.size_checker

        self.busy_checker: Optional[BusyAgentsChecker] = None
        if MeasureType.MAX_BUSY_AGENTS in wanted:
            self.busy_checker = BusyAgentsChecker(cc, stat_period)
            self.measure_map[MeasureType.MAX_BUSY_AGENTS] = self.busy_checker

        log.info(f"{type(self).__name__} created with "
                 f"{len(self.measure_map)} matrices of counters")

    @staticmethod
    def measure_types_for(pms: Iterable[PerformanceMeasureType]) -> List[MeasureType]:
        return measure_types_for(*pms)

    @property
    def is_contact_type_agent_group(self) -> bool:
        return self._contact_type_agent_group

    @property
    def measures(self) -> List[MeasureType]:
        """The measure types with a matrix of counters."""
        return list(self.measure_map)

    def has_measure_matrix(self, mt: MeasureType) -> bool:
        return mt in self.measure_map

    def has_measure_matrices_for(self, pm: PerformanceMeasureType) -> bool:
        """
        Tests whether every matrix of counters needed to estimate `pm`
        exists.

        Raises:
            ConfigurationError: If `pm` is not supported.
        """
        if pm is PerformanceMeasureType.MAX_QUEUE_SIZE:
            return self.size_checker is not None
        if pm is PerformanceMeasureType.MAX_BUSY_AGENTS:
            return self.busy_checker is not None
        return all(mt in self.measure_map for mt in get_measure_types(pm))

    def get_measure_matrix(self, mt: MeasureType) -> MeasureMatrix:
        """
        Raises:
            MeasureNotAvailableError: If no matrix was created for `mt`.
        """
        try:
            return self.measure_map[mt]
        except KeyError:
            raise MeasureNotAvailableError(
                f"No measure matrix for measure type {mt.name}") from None

    def init_measure_matrices(self):
        """Resets every matrix of counters, e.g. for a new replication."""
        for m in self.measure_map.values():
            m.init()
        for m in self.group_volumes:
            m.init()
        for m in self.queue_sizes:
            m.init()
        log.debug("Matrices of counters initialized")

    def _sliding_sum_matrices(self) -> List[SlidingWindowSumMatrix]:
        candidates = list(self.measure_map.values())
        for checker in (self.size_checker, self.busy_checker):
            if checker is not None:
                candidates.append(checker.max_values)
        return [m for m in candidates if isinstance(m, SlidingWindowSumMatrix)]

    def _new_period(self, current_period: int):
        for m in self.group_volumes + self.queue_sizes:
            for _ in range(current_period - m.num_stored_records + 1):
                m.new_record()
        # Windows move even for periods without any event
        for m in self._sliding_sum_matrices():
            m.advance_to(current_period)

    def finish_current_period(self):
        """Stores the time integrals of the current period."""
        self._new_period(self.stat_period.stat_period() + 1)

    def update_current_period(self):
        """
        Called after the statistical period changed: stores the time
        integrals of every elapsed period and seeds the peak trackers
        with the current values.
        """
        cp = self.stat_period.stat_period()
        self._new_period(cp)
        if self.size_checker is not None:
            self.size_checker.init_for_current_period()
        if self.busy_checker is not None:
            self.busy_checker.init_for_current_period()
        log.debug(f"Current statistical period is now {cp}")

    def register_listeners(self):
        """Attaches the counters to the model. Calling it twice is harmless."""
        cc = self.cc
        if self.call_by_call is not None:
            cc.router.add_listener(self.call_by_call)
        if self.out_counter is not None:
            for dialer in cc.dialers:
                dialer.add_listener(self.out_counter)
        for i, m in enumerate(self.group_volumes):
            m.source.set_agent_group(cc.agent_groups[i])
        for q, m in enumerate(self.queue_sizes):
            m.source.set_waiting_queue(cc.waiting_queues[q])
        if self.size_checker is not None:
            self.size_checker.register()
        if self.busy_checker is not None:
            self.busy_checker.register()

    def unregister_listeners(self):
        cc = self.cc
        if self.call_by_call is not None:
            cc.router.remove_listener(self.call_by_call)
        if self.out_counter is not None:
            for dialer in cc.dialers:
                dialer.remove_listener(self.out_counter)
        for m in self.group_volumes:
            m.source.set_agent_group(None)
        for m in self.queue_sizes:
            m.source.set_waiting_queue(None)
        if self.size_checker is not None:
            self.size_checker.unregister()
        if self.busy_checker is not None:
            self.busy_checker.unregister()

    def _should_normalize(self, mt: MeasureType, normalize_to_default_unit: bool) -> bool:
        tnt = mt.time_normalize_type
        if tnt is TimeNormalizeType.ALWAYS:
            return True
        if tnt is TimeNormalizeType.CONDITIONAL:
            return normalize_to_default_unit
        return False

    @property
    @abc.abstractmethod
    def num_periods_for_stat_probes(self) -> int:
        """Number of columns of the matrices of statistical probes."""
        raise NotImplementedError

    @abc.abstractmethod
    def get_values(self, mt: MeasureType, normalize: bool) -> np.ndarray:
        """
        Returns the values of the matrix of counters of `mt`, with one
        column per period of statistical probes, normalized if
        `normalize` is True.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def time_normalize(self, mt: MeasureType, m: np.ndarray):
        """Divides the values of `m`, in place, by the period durations."""
        raise NotImplementedError


def to_main_periods(m: np.ndarray,
                    func: Optional[AggregationFunction] = None) -> np.ndarray:
    """
    Removes the preliminary and wrap-up columns of `m`.

    With `func`, the preliminary column is first combined into the first
    main period and the wrap-up column into the last main period. A
    matrix with a single column is returned unchanged.
    """
    columns = m.shape[1]
    if columns <= 1:
        return m
    if columns <= 2:
        raise ConfigurationError(
            f"A matrix with {columns} columns has no main period")
    res = m[:, 1:columns - 1].copy()
    if func is not None:
        res[:, 0] = func(res[:, 0], m[:, 0])
        res[:, -1] = func(res[:, -1], m[:, columns - 1])
    return res


class RepMeasureManager(CallCenterMeasureManager):
    """
    Measure manager for independent replications.

    Probes have one column per main period, one per segment of main
    periods and one for the whole horizon (a single column if there is
    only one main period). Counts observed during the preliminary and
    wrap-up periods are added to the first and last main periods;
    time integrals of those periods are dropped.

    Args:
        cc (CallCenter): The observed model.
        params (StatParams): Collecting mode, normalization and
            (type, group) granularity.
        measures (Iterable[MeasureType], optional): See
            `CallCenterMeasureManager`.
        stat_period (StatPeriod, optional): Defaults to a
            `RepStatPeriod` built from `cc` and `params`.
    """

    def __init__(self, cc: CallCenter, params,
                 measures: Optional[Iterable[MeasureType]] = None,
                 stat_period: Optional[StatPeriod] = None):
        if stat_period is None:
            stat_period = RepStatPeriod(cc, params)
        super().__init__(cc, stat_period, params.contact_type_agent_group, measures)
        self.params = params

    @property
    def num_periods_for_stat_probes(self) -> int:
        return self.cc.num_main_periods_with_segments

    def get_values(self, mt: MeasureType, normalize: bool) -> np.ndarray:
        mat = self.get_measure_matrix(mt).values()
        agg = mt.aggregation
        segments = self.cc.main_period_segments
        if mt in VOLUME_MEASURES:
            m = to_main_periods(mat)
            if m.shape[1] > 1:
                m = add_column_segments(m, agg, segments)
        elif mt is MeasureType.SUM_SERVED or mt in AWT_MEASURES:
            # AWT counters already have one column per main period and segment
            m = mat
        else:
            m = add_column_segments(to_main_periods(mat, agg), agg, segments)
        if m.shape[1] == 2:
            m = m[:, :1].copy()
        if normalize:
            self.time_normalize(mt, m)
        return m

    def time_normalize(self, mt: MeasureType, m: np.ndarray):
        if not self._should_normalize(mt, self.params.normalize_to_default_unit):
            return
        periods = self.cc.periods
        P = self.cc.num_main_periods
        if mt is MeasureType.SUM_SERVED:
            m /= periods.period_ending_time(P) - periods.period_ending_time(0)
            return
        if m.shape[1] != self.num_periods_for_stat_probes:
            log.error(f"Cannot normalize a matrix with {m.shape[1]} columns "
                      f"for {mt.name}")
            raise ConfigurationError(
                f"Invalid number of columns {m.shape[1]} for {mt.name}, "
                f"expected {self.num_periods_for_stat_probes}")
        dur = periods.duration
        m[:, :P] /= dur
        if P > 1:
            m[:, -1] /= dur * P
            for ps, seg in enumerate(self.cc.main_period_segments):
                m[:, P + ps] /= dur * seg.num_values
