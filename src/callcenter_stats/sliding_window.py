# src/callcenter_stats/sliding_window.py

"""
Statistics over sliding time windows.

Instead of replications of a finite horizon, the simulation runs
continuously and time is cut into consecutive windows of fixed
duration. Only the last `num_periods` complete windows are retained,
plus the window in progress. Every retained window is one observation
for the statistical probes, so the probes describe the recent behavior
of the system.

The simulation driver must call `CallCenterStatWithSlidingWindows.new_period`
every `period_duration` time units while the statistics are started,
e.g. from an event scheduled by the simulator:

    sw = CallCenterStatWithSlidingWindows(cc, 60.0, 10, False,
                                          PM.RATE_OF_ARRIVALS, PM.SERVICE_LEVEL)
    sw.register_listeners()
    sw.init()
    sw.start()
    ...
    stat = sw.get_stat()
    stat.get_average(PM.SERVICE_LEVEL)
"""

import logging
from typing import Optional

import numpy as np

from .constants import TimeNormalizeType
from .measure_manager import CallCenterMeasureManager
from .measure_types import MeasureType
from .model import Call, CallCenter
from .performance_measures import PerformanceMeasureType, measure_types_for
from .periods import StatPeriod
from .stat.sim_stat import SimCallCenterStat

log = logging.getLogger(__name__)


class SlidingWindowStatPeriod(StatPeriod):
    """
    Assigns every observation to the window in progress.

    Windows are numbered from 0 and window `w` covers the simulation
    times in `[w * period_duration, (w + 1) * period_duration)`. Counters
    keep one column per retained window plus the one in progress. The
    AWT of the whole horizon applies to every call.

    Args:
        cc (CallCenter): The observed model, giving the clock.
        period_duration (float): Duration of a window.
        num_periods (int): Number of complete windows retained.
    """

    def __init__(self, cc: CallCenter, period_duration: float, num_periods: int):
        if period_duration <= 0:
            raise ValueError(f"Invalid window duration {period_duration}")
        if num_periods <= 0:
            raise ValueError(f"Invalid number of windows {num_periods}")
        self.cc: CallCenter = cc
        self.period_duration: float = period_duration
        self.num_periods: int = num_periods

    @property
    def num_periods_for_counters(self) -> int:
        return self.num_periods + 1

    @property
    def num_periods_for_counters_awt(self) -> int:
        return self.num_periods + 1

    def stat_period(self, call: Optional[Call] = None) -> int:
        return int(self.cc.clock.time / self.period_duration)

    def stat_period_awt(self, call: Call) -> int:
        return self.stat_period()

    def awt_period(self, call: Call) -> int:
        return self.global_awt_period

    @property
    def global_awt_period(self) -> int:
        return self.cc.num_main_periods_with_segments - 1

    @property
    def needs_sliding_windows(self) -> bool:
        return True

    @property
    def needs_stat_for_period_segments_awt(self) -> bool:
        return False


class SlidingWindowMeasureManager(CallCenterMeasureManager):
    """
    Measure manager exposing one retained window at a time.

    `get_values` returns a single column holding window
    `current_window`, relative to the oldest retained window. Matrices
    with a single column, such as the sums of served calls per pair,
    are not split into windows and always return that column.
    """

    def __init__(self, cc: CallCenter, stat_period: SlidingWindowStatPeriod,
                 contact_type_agent_group: bool = False, measures=None):
        super().__init__(cc, stat_period, contact_type_agent_group, measures)
        self.period_duration: float = stat_period.period_duration
        self.current_window: int = 0

    @property
    def num_periods_for_stat_probes(self) -> int:
        return 1

    def get_values(self, mt: MeasureType, normalize: bool) -> np.ndarray:
        mm = self.get_measure_matrix(mt)
        cp = self.current_window if mm.num_periods > 1 else 0
        mat = np.zeros((mm.num_measures, 1))
        for k in range(mm.num_measures):
            mat[k, 0] = mm.get_measure(k, cp)
        if normalize:
            self.time_normalize(mt, mat)
        return mat

    def time_normalize(self, mt: MeasureType, m: np.ndarray):
        if mt.time_normalize_type is TimeNormalizeType.ALWAYS:
            m /= self.period_duration


class CallCenterStatWithSlidingWindows:
    """
    Collects statistics on the last `num_periods` windows of a
    continuous simulation.

    Args:
        cc (CallCenter): The observed model.
        period_duration (float): Duration of a window.
        num_periods (int): Number of complete windows retained.
        contact_type_agent_group (bool): Keep counters per (type, group)
            pair.
        *pms (PerformanceMeasureType): The estimated performance
            measures.
    """

    def __init__(self, cc: CallCenter, period_duration: float, num_periods: int,
                 contact_type_agent_group: bool, *pms: PerformanceMeasureType):
        self.cc: CallCenter = cc
        self.period_duration: float = period_duration
        self.num_periods: int = num_periods
        self.stat_period = SlidingWindowStatPeriod(cc, period_duration, num_periods)
        self.manager = SlidingWindowMeasureManager(
            cc, self.stat_period, contact_type_agent_group, measure_types_for(*pms))
        self.stat = SimCallCenterStat(cc, self.manager, keep_obs=False,
                                      normalize_to_default_unit=False, pms=pms)
        self._stat_init: bool = False
        self._started: bool = False
        self.next_period_time: Optional[float] = None
        log.info(f"Sliding-window statistics with {num_periods} windows "
                 f"of duration {period_duration}")

    def register_listeners(self):
        self.manager.register_listeners()

    def unregister_listeners(self):
        self.manager.unregister_listeners()

    def init(self):
        """Resets the counters; windows keep their numbering from time 0."""
        self.manager.init_measure_matrices()
        self.manager.update_current_period()
        self._stat_init = False

    def start(self):
        """Starts the window changes; the first one happens after one window."""
        self.next_period_time = self.cc.clock.time + self.period_duration
        self._started = True

    def stop(self):
        self.next_period_time = None
        self._started = False

    @property
    def is_started(self) -> bool:
        return self._started

    def new_period(self) -> bool:
        """
        Moves to the next window. Returns True if the driver should call
        this method again after `period_duration`, i.e. while the
        statistics are started and the model is not in its wrap-up
        period.
        """
        self.manager.update_current_period()
        self._stat_init = False
        periods = self.cc.periods
        if not self._started or periods.is_wrapup_period(periods.current_period):
            self.next_period_time = None
            return False
        self.next_period_time = self.cc.clock.time + self.period_duration
        return True

    def get_stat(self):
        """
        Returns the statistical probes, with one observation per retained
        window. Observations are collected again only if a window changed
        since the last call.
        """
        if not self._stat_init:
            self.stat.init()
            for cp in range(self.num_periods):
                self.manager.current_window = cp
                self.stat.add_obs()
            self._stat_init = True
            log.debug(f"Collected {self.num_periods} windows")
        return self.stat
