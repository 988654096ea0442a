# src/callcenter_stats/matrices.py

"""
Accumulator matrices indexed by (measure, period).

Every raw counter of the pipeline is a `MeasureMatrix`: rows index a
subject (call type, agent group, queue, ...) and columns index
statistical periods. Two families exist:

- `SumMatrix` is updated by events: each update combines a value into
  one cell, by addition or by maximum.
- `IntegralMeasureMatrix` wraps a time-integral source (agent counts,
  queue sizes) and stores a snapshot of the cumulative integrals each
  time a period ends; the value for a period is the difference between
  consecutive snapshots.

The sliding-window variants keep only the most recent periods. They
accept absolute period indices when updated, and are read with indices
relative to the window, 0 being the oldest retained period.
"""

import abc
import logging
from collections import deque
from typing import Any, Deque, List, Optional, Sequence

import numpy as np

from .segments import AggregationFunction

log = logging.getLogger(__name__)


class MeasureMatrix(abc.ABC):
    """
    Abstract matrix of measures, one row per measure and one column
    per period.
    """

    @property
    @abc.abstractmethod
    def num_measures(self) -> int:
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def num_periods(self) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def get_measure(self, i: int, p: int) -> float:
        raise NotImplementedError

    @abc.abstractmethod
    def init(self):
        """Resets every measure to its initial value."""
        raise NotImplementedError

    def values(self) -> np.ndarray:
        """
        Returns a new `num_measures x num_periods` array holding every
        measure of this matrix.
        """
        res = np.zeros((self.num_measures, self.num_periods))
        for i in range(self.num_measures):
            for p in range(self.num_periods):
                res[i, p] = self.get_measure(i, p)
        return res


class SumMatrix(MeasureMatrix):
    """
    A matrix of sums updated one cell at a time.
    """

    def __init__(self, num_measures: int, num_periods: int):
        if num_measures < 0 or num_periods <= 0:
            raise ValueError(
                f"Invalid dimensions {num_measures} x {num_periods}")
        self._data: np.ndarray = np.zeros((num_measures, num_periods))

    @property
    def num_measures(self) -> int:
        return self._data.shape[0]

    @property
    def num_periods(self) -> int:
        return self._data.shape[1]

    def init(self):
        self._data.fill(0.0)

    def add(self, i: int, p: int, x: float,
            aggregation: Optional[AggregationFunction] = None):
        """
        Combines `x` into cell (i, p). Values are added unless another
        aggregation function, e.g. `np.maximum`, is given.
        """
        if aggregation is None:
            self._data[i, p] += x
        else:
            self._data[i, p] = aggregation(self._data[i, p], x)

    def get_measure(self, i: int, p: int) -> float:
        return float(self._data[i, p])

    def values(self) -> np.ndarray:
        return self._data.copy()


class SlidingWindowSumMatrix(SumMatrix):
    """
    A matrix of sums keeping only the last `num_periods` periods.

    Column `p % num_periods` holds absolute period `p`. Moving to a
    newer period clears the columns being reused.
    """

    def __init__(self, num_measures: int, num_periods: int):
        super().__init__(num_measures, num_periods)
        self._current: int = 0

    @property
    def current_period(self) -> int:
        """The newest absolute period of the window."""
        return self._current

    def init(self):
        super().init()
        self._current = 0

    def advance_to(self, p: int):
        """Moves the window so that it ends at absolute period `p`."""
        if p <= self._current:
            return
        n = self.num_periods
        if p - self._current >= n:
            self._data.fill(0.0)
        else:
            for q in range(self._current + 1, p + 1):
                self._data[:, q % n] = 0.0
        self._current = p

    def add(self, i: int, p: int, x: float,
            aggregation: Optional[AggregationFunction] = None):
        if p > self._current:
            self.advance_to(p)
        elif p <= self._current - self.num_periods:
            log.debug(f"Dropping update for period {p}, outside the window "
                      f"ending at {self._current}")
            return
        super().add(i, p % self.num_periods, x, aggregation)

    def get_measure(self, i: int, p: int) -> float:
        n = self.num_periods
        q = self._current - n + 1 + p
        if q < 0:
            return 0.0
        return float(self._data[i, q % n])

    def values(self) -> np.ndarray:
        return MeasureMatrix.values(self)


class GroupVolumeStat:
    """
    Time integrals of the busy, working and scheduled agent counts of
    one agent group.

    While attached to a group, the statistic listens to its changes and
    integrates the previous counts over the elapsed time.
    """

    BUSY = 0
    WORKING = 1
    SCHEDULED = 2

    num_measures = 3

    def __init__(self, clock, group=None):
        self.clock = clock
        self.group = None
        self._integrals: np.ndarray = np.zeros(3)
        self._counts: np.ndarray = np.zeros(3)
        self._last_time: float = clock.time
        self.set_agent_group(group)

    def _capture(self):
        if self.group is None:
            self._counts = np.zeros(3)
        else:
            self._counts = np.array([self.group.num_busy,
                                     self.group.num_working,
                                     self.group.num_scheduled], dtype=float)

    def _integrate(self):
        now = self.clock.time
        if now > self._last_time:
            self._integrals += self._counts * (now - self._last_time)
        self._last_time = now

    def set_agent_group(self, group):
        """
        Attaches this statistic to `group`, or detaches it if `group`
        is None.
        """
        self._integrate()
        if self.group is not None:
            self.group.remove_listener(self)
        self.group = group
        if group is not None:
            group.add_listener(self)
        self._capture()

    def agent_group_change(self, group):
        self._integrate()
        self._capture()

    def init(self):
        self._integrals = np.zeros(3)
        self._last_time = self.clock.time
        self._capture()

    def cumulative(self) -> np.ndarray:
        """The integrals from the last `init` up to the current time."""
        elapsed = max(0.0, self.clock.time - self._last_time)
        return self._integrals + self._counts * elapsed


class QueueSizeStat:
    """Time integral of the size of one waiting queue."""

    num_measures = 1

    def __init__(self, clock, queue=None):
        self.clock = clock
        self.queue = None
        self._integral: float = 0.0
        self._size: int = 0
        self._last_time: float = clock.time
        self.set_waiting_queue(queue)

    def _integrate(self):
        now = self.clock.time
        if now > self._last_time:
            self._integral += self._size * (now - self._last_time)
        self._last_time = now

    def set_waiting_queue(self, queue):
        self._integrate()
        if self.queue is not None:
            self.queue.remove_listener(self)
        self.queue = queue
        if queue is not None:
            queue.add_listener(self)
        self._size = 0 if queue is None else queue.size

    def waiting_queue_change(self, queue):
        self._integrate()
        self._size = queue.size

    def init(self):
        self._integral = 0.0
        self._last_time = self.clock.time
        self._size = 0 if self.queue is None else self.queue.size

    def cumulative(self) -> np.ndarray:
        elapsed = max(0.0, self.clock.time - self._last_time)
        return np.array([self._integral + self._size * elapsed])


class IntegralMeasureMatrix(MeasureMatrix):
    """
    Per-period values of a time-integral source.

    A snapshot of the cumulative integrals is stored by `init` and by
    each call to `new_record`. The value for period `p` is the
    difference between snapshots `p + 1` and `p`; for the last stored
    period, the current value of the source replaces the missing
    snapshot.
    """

    def __init__(self, source: Any, num_periods: int):
        if num_periods <= 0:
            raise ValueError(f"Invalid number of periods {num_periods}")
        self.source = source
        self._num_periods: int = num_periods
        self._records: List[np.ndarray] = []
        self._num_stored: int = 0
        self.init()

    @property
    def num_measures(self) -> int:
        return self.source.num_measures

    @property
    def num_periods(self) -> int:
        return self._num_periods

    @property
    def num_stored_records(self) -> int:
        return self._num_stored

    def init(self):
        self.source.init()
        self._records = []
        self._num_stored = 0
        self.new_record()

    def new_record(self):
        self._records.append(self.source.cumulative().copy())
        self._num_stored += 1

    def _record(self, r: int) -> np.ndarray:
        return self._records[r]

    def _absolute_period(self, p: int) -> int:
        return p

    def get_measure(self, i: int, p: int) -> float:
        q = self._absolute_period(p)
        if q < 0 or q >= self._num_stored:
            return 0.0
        start = self._record(q)
        if q + 1 < self._num_stored:
            end = self._record(q + 1)
        else:
            end = self.source.cumulative()
        return float(end[i] - start[i])


class SlidingWindowIntegralMeasureMatrix(IntegralMeasureMatrix):
    """
    An integral matrix keeping only the snapshots needed for the last
    `num_periods` periods, the newest being the one in progress.
    """

    def init(self):
        self.source.init()
        self._records: Deque[np.ndarray] = deque(maxlen=self._num_periods)
        self._num_stored = 0
        self.new_record()

    def _record(self, r: int) -> np.ndarray:
        return self._records[r - (self._num_stored - len(self._records))]

    def _absolute_period(self, p: int) -> int:
        q = self._num_stored - self._num_periods + p
        if q < self._num_stored - len(self._records):
            return -1
        return q


class MeasureSet(MeasureMatrix):
    """
    Gathers one row of several matrices into a single matrix.

    Row `k` of the set is row `row` of `matrices[k]`. With
    `compute_sum_row`, an extra last row holds the sum of the others.
    """

    def __init__(self, matrices: Sequence[MeasureMatrix], row: int,
                 compute_sum_row: bool = False):
        if not matrices:
            raise ValueError("A measure set needs at least one matrix")
        self.matrices: List[MeasureMatrix] = list(matrices)
        self.row: int = row
        self.compute_sum_row: bool = compute_sum_row

    @property
    def num_measures(self) -> int:
        n = len(self.matrices)
        return n + 1 if self.compute_sum_row and n > 1 else n

    @property
    def num_periods(self) -> int:
        return self.matrices[0].num_periods

    def init(self):
        for m in self.matrices:
            m.init()

    def get_measure(self, i: int, p: int) -> float:
        if i < len(self.matrices):
            return self.matrices[i].get_measure(self.row, p)
        return sum(m.get_measure(self.row, p) for m in self.matrices)


def create_sum_matrix(stat_period, rows: int, columns: int) -> SumMatrix:
    """
    Creates a matrix of sums, using sliding windows if the period
    assignment `stat_period` requires them.
    """
    if stat_period.needs_sliding_windows:
        return SlidingWindowSumMatrix(rows, columns)
    return SumMatrix(rows, columns)
