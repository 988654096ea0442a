# src/callcenter_stats/checkers.py

"""
Peak trackers for the number of busy agents and the queue sizes.

A checker listens to the instantaneous counts of a family of subjects
(agent groups or waiting queues) and keeps, for every subject and
statistical period, the maximum value observed. When more than one
subject exists, the checker also keeps one row per user-defined
segment and a last row for all subjects. Those aggregate rows are
recomputed from the current counts of every subject each time a
notification arrives, so the result does not depend on the order in
which cooperating listeners are notified.

At the beginning of a period, the maximum is seeded with the current
value: a period inherits the load present when it starts.
"""

import abc
import logging
from typing import List, Sequence

import numpy as np

from .matrices import MeasureMatrix, SumMatrix, create_sum_matrix
from .measure_types import MAX
from .model import CallCenter
from .periods import StatPeriod
from .segments import Segment

log = logging.getLogger(__name__)


class _MaxChecker(MeasureMatrix):
    """
    Common logic of the peak trackers.

    Subclasses define the subjects, their current values and how to
    listen to them.
    """

    def __init__(self, cc: CallCenter, stat_period: StatPeriod,
                 segments: Sequence[Segment]):
        self.cc: CallCenter = cc
        self.stat_period: StatPeriod = stat_period
        self.segments: List[Segment] = list(segments)
        n = self.num_subjects
        rows = n if n <= 1 else n + 1 + len(self.segments)
        self.max_values: SumMatrix = create_sum_matrix(
            stat_period, rows, stat_period.num_periods_for_counters)

    @property
    @abc.abstractmethod
    def num_subjects(self) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def current_values(self) -> np.ndarray:
        """The instantaneous value of every subject."""
        raise NotImplementedError

    @abc.abstractmethod
    def register(self):
        raise NotImplementedError

    @abc.abstractmethod
    def unregister(self):
        raise NotImplementedError

    def init(self):
        self.max_values.init()
        self.init_for_current_period()

    def init_for_current_period(self):
        """Seeds the maximum of the current period with the current values."""
        cp = self.stat_period.stat_period()
        if cp < 0:
            return
        values = self.current_values()
        for i, v in enumerate(values):
            self.max_values.add(i, cp, float(v), MAX)
        if self.num_subjects > 1:
            self.adjust_max(cp, values)

    def _check(self, subject_id: int):
        cp = self.stat_period.stat_period()
        if cp < 0:
            return
        values = self.current_values()
        self.max_values.add(subject_id, cp, float(values[subject_id]), MAX)
        if self.num_subjects > 1:
            self.adjust_max(cp, values)

    def adjust_max(self, cp: int, values: np.ndarray):
        """
        Updates the segment rows and the all-subjects row of period `cp`
        from the current values of every subject.
        """
        n = self.num_subjects
        for j, seg in enumerate(self.segments):
            total = sum(values[i] for i in range(n) if seg.contains_value(i))
            self.max_values.add(n + j, cp, float(total), MAX)
        self.max_values.add(self.max_values.num_measures - 1, cp,
                            float(np.sum(values)), MAX)

    @property
    def num_measures(self) -> int:
        return self.max_values.num_measures

    @property
    def num_periods(self) -> int:
        return self.max_values.num_periods

    def get_measure(self, i: int, p: int) -> float:
        return self.max_values.get_measure(i, p)

    def values(self) -> np.ndarray:
        return self.max_values.values()


class BusyAgentsChecker(_MaxChecker):
    """
    Tracks the maximal number of busy agents per agent group and period.
    Rows follow the agent-group row layout.
    """

    def __init__(self, cc: CallCenter, stat_period: StatPeriod):
        super().__init__(cc, stat_period, cc.group_segments)

    @property
    def num_subjects(self) -> int:
        return self.cc.num_agent_groups

    def current_values(self) -> np.ndarray:
        return np.array([g.num_busy for g in self.cc.agent_groups], dtype=float)

    def register(self):
        for group in self.cc.agent_groups:
            group.add_listener(self)

    def unregister(self):
        for group in self.cc.agent_groups:
            group.remove_listener(self)

    def agent_group_change(self, group):
        self._check(group.id)


class QueueSizeChecker(_MaxChecker):
    """
    Tracks the maximal size of each waiting queue per period. Rows
    follow the waiting-queue row layout.
    """

    def __init__(self, cc: CallCenter, stat_period: StatPeriod):
        super().__init__(cc, stat_period, cc.queue_segments)

    @property
    def num_subjects(self) -> int:
        return self.cc.num_waiting_queues

    def current_values(self) -> np.ndarray:
        return np.array([q.size for q in self.cc.waiting_queues], dtype=float)

    def register(self):
        for queue in self.cc.waiting_queues:
            queue.add_listener(self)

    def unregister(self):
        for queue in self.cc.waiting_queues:
            queue.remove_listener(self)

    def waiting_queue_change(self, queue):
        self._check(queue.id)
