# src/callcenter_stats/model.py

"""
Read-only view of the simulated call center.

The statistics pipeline does not simulate anything. It observes a model
owned by an external simulator: call types, agent groups, waiting
queues, the router that reports calls leaving the system, and the
dialers producing outbound calls. This module provides lightweight
versions of those entities. They hold the instantaneous state the
statistics need and forward change notifications to registered
listeners; the simulator (or a test) drives them.

The `CallCenter` class gathers the entities together with the segment
definitions and the acceptable-waiting-time (AWT) tables, and exposes
every derived cardinality used to size matrices.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

import numpy as np

from .errors import ConfigurationError
from .segments import Segment, check_range

log = logging.getLogger(__name__)


class Clock:
    """Holds the current simulation time, set by the simulator."""

    def __init__(self, time: float = 0.0):
        self.time: float = time


class PeriodSchedule:
    """
    Splits the simulation horizon into periods.

    Period 0 is the preliminary period (before `start_time`), periods
    1..P are the main periods of equal duration, and period P+1 is the
    wrap-up period, which lasts until the simulation ends.
    """

    def __init__(self, num_main_periods: int, period_duration: float,
                 start_time: float = 0.0, clock: Optional[Clock] = None):
        if num_main_periods <= 0:
            raise ConfigurationError("num_main_periods must be > 0.")
        if period_duration <= 0:
            raise ConfigurationError("period_duration must be > 0.")
        self.num_main_periods: int = num_main_periods
        self.duration: float = period_duration
        self.start_time: float = start_time
        self.clock: Clock = clock if clock is not None else Clock(start_time)
        self.current_period: int = 0

    @property
    def num_periods(self) -> int:
        """P + 2, counting the preliminary and wrap-up periods."""
        return self.num_main_periods + 2

    def set_current_period(self, period: int):
        if not 0 <= period < self.num_periods:
            raise ValueError(f"Invalid period {period}")
        self.current_period = period

    def period_ending_time(self, p: int) -> float:
        """Ending time of period p; infinite for the wrap-up period."""
        if p > self.num_main_periods:
            return math.inf
        return self.start_time + p * self.duration

    def period_duration(self, p: int) -> float:
        if 1 <= p <= self.num_main_periods:
            return self.duration
        if p == 0:
            return self.start_time
        return max(0.0, self.clock.time - self.period_ending_time(self.num_main_periods))

    def main_period(self, p: int) -> int:
        """
        Converts a period to a main period index in [0, P-1]. The
        preliminary period maps to the first main period and the
        wrap-up period to the last one.
        """
        if p <= 0:
            return 0
        if p > self.num_main_periods:
            return self.num_main_periods - 1
        return p - 1

    def is_wrapup_period(self, p: int) -> bool:
        return p == self.num_main_periods + 1

    def period_at(self, time: float) -> int:
        if time < self.start_time:
            return 0
        p = int((time - self.start_time) / self.duration) + 1
        return min(p, self.num_main_periods + 1)


@dataclass
class CallTypeInfo:
    """
    Static description of a call type.

    Attributes:
        name (str): Display name.
        inbound (bool): True for inbound types. Inbound types must come
            before outbound ones.
        excluded_from_total (bool): If True, the type does not
            contribute to the implicit segment regrouping all types.
    """
    name: str = ""
    inbound: bool = True
    excluded_from_total: bool = False


class ServiceLevelParams:
    """
    One definition of acceptable waiting times (AWT) and service-level
    targets.

    `awt` and `target` may be scalars, one value per inbound type (with
    segments), or full (type, period) tables where the period axis has
    one column per main period and per segment of main periods.
    """

    def __init__(self, awt: Union[float, Sequence, np.ndarray],
                 target: Union[float, Sequence, np.ndarray] = 0.8,
                 name: str = ""):
        self.name: str = name
        self.awt: np.ndarray = np.atleast_1d(np.asarray(awt, dtype=float))
        self.target: np.ndarray = np.atleast_1d(np.asarray(target, dtype=float))
        if np.any(self.awt < 0):
            raise ConfigurationError(f"Negative AWT in '{name}'")

    @staticmethod
    def _lookup(table: np.ndarray, k: int, p: int) -> float:
        if table.ndim == 1:
            return float(table[0] if table.size == 1 else table[k])
        return float(table[k, p])

    def get_awt(self, k: int, p: int) -> float:
        return self._lookup(self.awt, k, p)

    def get_target(self, k: int, p: int) -> float:
        return self._lookup(self.target, k, p)

    def check_shape(self, num_types: int, num_periods: int):
        for label, table in (("awt", self.awt), ("target", self.target)):
            if table.ndim == 1 and table.size not in (1, num_types):
                raise ConfigurationError(
                    f"{label} table of '{self.name}' has {table.size} "
                    f"values, expected 1 or {num_types}")
            if table.ndim == 2 and table.shape != (num_types, num_periods):
                raise ConfigurationError(
                    f"{label} table of '{self.name}' has shape "
                    f"{table.shape}, expected {(num_types, num_periods)}")
            if table.ndim > 2:
                raise ConfigurationError(f"{label} table must be at most 2-D")


@dataclass
class Call:
    """
    A call observed when it leaves the system.

    Periods are indices in the `PeriodSchedule`. A negative
    `begin_service_period` means the call was never served.
    """
    type_id: int
    arrival_period: int = 0
    exit_period: int = 0
    begin_service_period: int = -1
    queue_time: float = 0.0
    waiting_time_vq: float = 0.0
    waiting_time_estimate: Optional[float] = None
    last_agent_group: Optional[int] = None
    right_party_connect: bool = True
    service_time: float = 0.0


class _Observable:
    """Keeps a list of listeners without duplicates."""

    def __init__(self):
        self.listeners: List[Any] = []

    def add_listener(self, listener: Any):
        if listener not in self.listeners:
            self.listeners.append(listener)

    def remove_listener(self, listener: Any):
        if listener in self.listeners:
            self.listeners.remove(listener)


class AgentGroup(_Observable):
    """
    Instantaneous agent counts of one group. Listeners implement
    `agent_group_change(group)`.
    """

    def __init__(self, group_id: int, num_scheduled: int = 0,
                 num_working: Optional[int] = None, name: str = ""):
        super().__init__()
        self.id: int = group_id
        self.name: str = name
        self.num_scheduled: int = num_scheduled
        self.num_working: int = num_scheduled if num_working is None else num_working
        self.num_busy: int = 0

    def _notify(self):
        for listener in list(self.listeners):
            listener.agent_group_change(self)

    def set_counts(self, busy: Optional[int] = None,
                   working: Optional[int] = None,
                   scheduled: Optional[int] = None):
        if busy is not None:
            self.num_busy = busy
        if working is not None:
            self.num_working = working
        if scheduled is not None:
            self.num_scheduled = scheduled
        self._notify()

    def begin_service(self):
        self.num_busy += 1
        self._notify()

    def end_service(self):
        if self.num_busy == 0:
            raise ValueError(f"No busy agent in group {self.id}")
        self.num_busy -= 1
        self._notify()


class WaitingQueue(_Observable):
    """
    Size of one waiting queue. Listeners implement
    `waiting_queue_change(queue)`.
    """

    def __init__(self, queue_id: int, name: str = ""):
        super().__init__()
        self.id: int = queue_id
        self.name: str = name
        self.size: int = 0

    def _notify(self):
        for listener in list(self.listeners):
            listener.waiting_queue_change(self)

    def enqueue(self):
        self.size += 1
        self._notify()

    def dequeue(self):
        if self.size == 0:
            raise ValueError(f"Waiting queue {self.id} is empty")
        self.size -= 1
        self._notify()


class Router(_Observable):
    """
    Reports calls leaving the system. Listeners implement
    `blocked(call)`, `dequeued(call, transfer)` and `served(call)`.
    """

    def notify_blocked(self, call: Call):
        for listener in list(self.listeners):
            listener.blocked(call)

    def notify_dequeued(self, call: Call, transfer: bool = False):
        for listener in list(self.listeners):
            listener.dequeued(call, transfer)

    def notify_served(self, call: Call):
        for listener in list(self.listeners):
            listener.served(call)


class Dialer(_Observable):
    """
    Produces outbound calls. Listeners implement `new_contact(call)`,
    called for every dial attempt, successful or not.
    """

    def notify_new_contact(self, call: Call):
        for listener in list(self.listeners):
            listener.new_contact(call)


class CallCenter:
    """
    The observed model: entities, segments and AWT definitions.

    Cardinalities follow a fixed naming: K call types of which Ki are
    inbound and Ko outbound, I agent groups, Q waiting queues, P main
    periods. "With segments" counts add, when there is more than one
    base index, one row per user-defined segment and one row for the
    implicit segment regrouping everything.
    """

    def __init__(self,
                 call_types: Sequence[CallTypeInfo],
                 num_agent_groups: int,
                 periods: PeriodSchedule,
                 service_levels: Sequence[ServiceLevelParams],
                 num_waiting_queues: int = 1,
                 num_dialers: int = 0,
                 type_segments: Sequence[Segment] = (),
                 in_type_segments: Sequence[Segment] = (),
                 out_type_segments: Sequence[Segment] = (),
                 group_segments: Sequence[Segment] = (),
                 queue_segments: Sequence[Segment] = (),
                 main_period_segments: Sequence[Segment] = ()):
        if not call_types:
            raise ConfigurationError("At least one call type is needed.")
        seen_outbound = False
        for ct in call_types:
            if ct.inbound and seen_outbound:
                raise ConfigurationError(
                    "Inbound call types must precede outbound call types.")
            seen_outbound = seen_outbound or not ct.inbound
        if num_agent_groups <= 0:
            raise ConfigurationError("num_agent_groups must be > 0.")
        if not service_levels:
            raise ConfigurationError("At least one AWT definition is needed.")

        self.call_types: List[CallTypeInfo] = list(call_types)
        self.periods: PeriodSchedule = periods
        self.clock: Clock = periods.clock
        self.agent_groups: List[AgentGroup] = [
            AgentGroup(i) for i in range(num_agent_groups)]
        self.waiting_queues: List[WaitingQueue] = [
            WaitingQueue(q) for q in range(num_waiting_queues)]
        self.router: Router = Router()
        self.dialers: List[Dialer] = [Dialer() for _ in range(num_dialers)]
        self.service_levels: List[ServiceLevelParams] = list(service_levels)

        self.type_segments: List[Segment] = list(type_segments)
        self.in_type_segments: List[Segment] = list(in_type_segments)
        self.out_type_segments: List[Segment] = list(out_type_segments)
        self.group_segments: List[Segment] = list(group_segments)
        self.queue_segments: List[Segment] = list(queue_segments)
        self.main_period_segments: List[Segment] = list(main_period_segments)

        check_range(0, self.num_contact_types, self.type_segments)
        check_range(0, self.num_in_contact_types, self.in_type_segments)
        check_range(0, self.num_out_contact_types, self.out_type_segments)
        check_range(0, self.num_agent_groups, self.group_segments)
        check_range(0, self.num_waiting_queues, self.queue_segments)
        check_range(0, self.num_main_periods, self.main_period_segments)
        for slp in self.service_levels:
            slp.check_shape(self.num_in_contact_types_with_segments,
                            self.num_main_periods_with_segments)

        log.info(f"CallCenter model: K={self.num_contact_types} "
                 f"(Ki={self.num_in_contact_types}), "
                 f"I={self.num_agent_groups}, Q={self.num_waiting_queues}, "
                 f"P={self.num_main_periods}, "
                 f"M={self.num_matrices_of_awt}")

    @staticmethod
    def _with_segments(n: int, nseg: int) -> int:
        return n if n <= 1 else n + 1 + nseg

    @property
    def time(self) -> float:
        return self.clock.time

    @property
    def num_contact_types(self) -> int:
        return len(self.call_types)

    @property
    def num_in_contact_types(self) -> int:
        return sum(1 for ct in self.call_types if ct.inbound)

    @property
    def num_out_contact_types(self) -> int:
        return self.num_contact_types - self.num_in_contact_types

    @property
    def num_agent_groups(self) -> int:
        return len(self.agent_groups)

    @property
    def num_waiting_queues(self) -> int:
        return len(self.waiting_queues)

    @property
    def num_main_periods(self) -> int:
        return self.periods.num_main_periods

    @property
    def num_matrices_of_awt(self) -> int:
        return len(self.service_levels)

    @property
    def num_contact_types_with_segments(self) -> int:
        return self._with_segments(self.num_contact_types, len(self.type_segments))

    @property
    def num_in_contact_types_with_segments(self) -> int:
        return self._with_segments(self.num_in_contact_types,
                                   len(self.in_type_segments))

    @property
    def num_out_contact_types_with_segments(self) -> int:
        return self._with_segments(self.num_out_contact_types,
                                   len(self.out_type_segments))

    @property
    def num_agent_groups_with_segments(self) -> int:
        return self._with_segments(self.num_agent_groups, len(self.group_segments))

    @property
    def num_waiting_queues_with_segments(self) -> int:
        return self._with_segments(self.num_waiting_queues,
                                   len(self.queue_segments))

    @property
    def num_main_periods_with_segments(self) -> int:
        return self._with_segments(self.num_main_periods,
                                   len(self.main_period_segments))

    def is_excluded_from_total(self, k: int) -> bool:
        return self.call_types[k].excluded_from_total
