# src/callcenter_stats/counters.py

"""
Call-by-call counters.

`CallByCallMeasureManager` listens to the router and updates, for each
call leaving the system, the matrices of counters requested by the
performance measures being estimated. Each event costs a bounded number
of matrix updates, independent of the number of performance measures.

Row layouts written here:

- type rows: one row per call type (or per outbound type for wrong
  party connects);
- pair rows: row `k * I + i` for type `k` and agent group `i`, used
  when counters are kept per (type, group) pair; aggregate rows are
  added later by the matrix cache;
- AWT rows: one block per AWT definition. Each block holds every
  inbound type, then one row per segment of inbound types, then the
  row of all inbound types. Per (type, group) pair, each of those rows
  is itself split into `Ip` group rows (groups, group segments, all
  groups), all filled at event time.

`OutboundCallCounter` and `CallCounter` count new contacts produced by
dialers.
"""

import logging
from typing import Dict, Iterable, Optional

from .measure_types import MeasureType
from .matrices import SumMatrix, create_sum_matrix
from .model import Call, CallCenter
from .periods import StatPeriod

log = logging.getLogger(__name__)

# Measure types counted call by call
CALL_BY_CALL_MEASURES = (
    MeasureType.NUM_ARRIVALS,
    MeasureType.NUM_WRONG_PARTY_CONNECTS,
    MeasureType.NUM_SERVED,
    MeasureType.NUM_BLOCKED,
    MeasureType.NUM_ABANDONED,
    MeasureType.NUM_DELAYED,
    MeasureType.SUM_SERVICE_TIMES,
    MeasureType.SUM_WAITING_TIMES_SERVED,
    MeasureType.SUM_SE_WAITING_TIMES_SERVED,
    MeasureType.SUM_WAITING_TIMES_ABANDONED,
    MeasureType.SUM_SE_WAITING_TIMES_ABANDONED,
    MeasureType.MAX_WAITING_TIME_SERVED,
    MeasureType.MAX_WAITING_TIME_ABANDONED,
    MeasureType.SUM_WAITING_TIMES_VQ_SERVED,
    MeasureType.SUM_SE_WAITING_TIMES_VQ_SERVED,
    MeasureType.SUM_WAITING_TIMES_VQ_ABANDONED,
    MeasureType.SUM_SE_WAITING_TIMES_VQ_ABANDONED,
    MeasureType.NUM_SERVED_BEFORE_AWT,
    MeasureType.NUM_SERVED_AFTER_AWT,
    MeasureType.NUM_ABANDONED_BEFORE_AWT,
    MeasureType.NUM_ABANDONED_AFTER_AWT,
    MeasureType.SUM_EXCESS_TIMES_SERVED,
    MeasureType.SUM_EXCESS_TIMES_ABANDONED,
    MeasureType.SUM_SERVED,
)


class CallByCallMeasureManager:
    """
    Updates matrices of counters each time a call leaves the system.

    Register an instance as a router listener; `blocked`, `dequeued`
    and `served` are then called by the router.

    Args:
        cc (CallCenter): The observed model.
        stat_period (StatPeriod): Assigns calls to columns.
        contact_type_agent_group (bool): Keep counters of served calls
            per (type, group) pair.
        measures (Iterable[MeasureType], optional): The measure types to
            count. None counts every call-by-call measure type.
    """

    def __init__(self, cc: CallCenter, stat_period: StatPeriod,
                 contact_type_agent_group: bool = False,
                 measures: Optional[Iterable[MeasureType]] = None):
        self.cc: CallCenter = cc
        self.stat_period: StatPeriod = stat_period
        self.contact_type_agent_group: bool = contact_type_agent_group

        self.K: int = cc.num_contact_types
        self.Ki: int = cc.num_in_contact_types
        self.Ko: int = cc.num_out_contact_types
        self.I: int = cc.num_agent_groups
        self.Kip: int = cc.num_in_contact_types_with_segments
        self.Ip: int = cc.num_agent_groups_with_segments

        wanted = set(CALL_BY_CALL_MEASURES if measures is None else measures)
        cg = self.I if contact_type_agent_group else 1
        cgp = self.Ip if contact_type_agent_group else 1
        nsl = self.Kip * cc.num_matrices_of_awt
        np_ = stat_period.num_periods_for_counters
        np_awt = stat_period.num_periods_for_counters_awt

        sizes = {
            MeasureType.NUM_ARRIVALS: (self.K, np_),
            MeasureType.NUM_WRONG_PARTY_CONNECTS: (self.Ko, np_),
            MeasureType.NUM_SERVED: (self.K * cg, np_),
            MeasureType.NUM_BLOCKED: (self.K, np_),
            MeasureType.NUM_ABANDONED: (self.K, np_),
            MeasureType.NUM_DELAYED: (self.K, np_),
            MeasureType.SUM_SERVICE_TIMES: (self.K * cg, np_),
            MeasureType.SUM_WAITING_TIMES_SERVED: (self.K * cg, np_),
            MeasureType.SUM_SE_WAITING_TIMES_SERVED: (self.K * cg, np_),
            MeasureType.SUM_WAITING_TIMES_ABANDONED: (self.K, np_),
            MeasureType.SUM_SE_WAITING_TIMES_ABANDONED: (self.K, np_),
            MeasureType.MAX_WAITING_TIME_SERVED: (self.K * cg, np_),
            MeasureType.MAX_WAITING_TIME_ABANDONED: (self.K, np_),
            MeasureType.SUM_WAITING_TIMES_VQ_SERVED: (self.K * cg, np_),
            MeasureType.SUM_SE_WAITING_TIMES_VQ_SERVED: (self.K * cg, np_),
            MeasureType.SUM_WAITING_TIMES_VQ_ABANDONED: (self.K, np_),
            MeasureType.SUM_SE_WAITING_TIMES_VQ_ABANDONED: (self.K, np_),
            MeasureType.NUM_SERVED_BEFORE_AWT: (nsl * cgp, np_awt),
            MeasureType.NUM_SERVED_AFTER_AWT: (nsl * cgp, np_awt),
            MeasureType.NUM_ABANDONED_BEFORE_AWT: (nsl, np_awt),
            MeasureType.NUM_ABANDONED_AFTER_AWT: (nsl, np_awt),
            MeasureType.SUM_EXCESS_TIMES_SERVED: (nsl * cgp, np_awt),
            MeasureType.SUM_EXCESS_TIMES_ABANDONED: (nsl, np_awt),
        }

        self.matrices: Dict[MeasureType, SumMatrix] = {}
        for mt in CALL_BY_CALL_MEASURES:
            if mt not in wanted:
                continue
            if mt is MeasureType.SUM_SERVED:
                self.matrices[mt] = SumMatrix(self.K * self.I, 1)
            else:
                rows, columns = sizes[mt]
                self.matrices[mt] = create_sum_matrix(stat_period, rows, columns)
        log.debug(f"Call-by-call counters created for "
                  f"{[mt.label for mt in self.matrices]}")

    def _get(self, mt: MeasureType) -> Optional[SumMatrix]:
        return self.matrices.get(mt)

    @property
    def has_measures(self) -> bool:
        return bool(self.matrices)

    def init_measure_map(self, measure_map: Dict[MeasureType, SumMatrix]):
        """Adds every matrix of counters to `measure_map`."""
        measure_map.update(self.matrices)

    def init(self):
        for m in self.matrices.values():
            m.init()

    # Row helpers

    def _add_k(self, mt: MeasureType, type_id: int, period: int, x: float):
        mat = self._get(mt)
        if mat is not None:
            mat.add(type_id, period, x, mt.aggregation if mt.is_max else None)

    def _add_ki(self, mt: MeasureType, type_id: int, group: int,
                period: int, x: float):
        mat = self._get(mt)
        if mat is None:
            return
        aggregation = mt.aggregation if mt.is_max else None
        if self.contact_type_agent_group:
            mat.add(type_id * self.I + group, period, x, aggregation)
        else:
            mat.add(type_id, period, x, aggregation)

    def _add_i(self, mat: SumMatrix, offset: int, type_index: int,
               group: int, period: int, x: float):
        # group == -1 for matrices without group rows
        if group == -1:
            mat.add(offset + type_index, period, x)
            return
        base = offset + type_index * self.Ip
        mat.add(base + group, period, x)
        if self.I > 1:
            mat.add(base + self.Ip - 1, period, x)
            for s, seg in enumerate(self.cc.group_segments):
                if seg.contains_value(group):
                    mat.add(base + self.I + s, period, x)

    def _awt_traversal(self, call: Call, group: int, awt_period: int,
                       stat_period: int):
        """
        Yields `(offset, type_index, threshold, column)` for every AWT
        counter cell a call of inbound type `call.type_id` contributes to.
        """
        type_id = call.type_id
        cc = self.cc
        Ki, Kip, Ip = self.Ki, self.Kip, self.Ip
        P = cc.num_main_periods
        counted_in_sum = not cc.is_excluded_from_total(type_id)
        nseg_type = len(cc.in_type_segments) if Ki > 1 else 0
        if (self.stat_period.num_periods_for_counters_awt > 1
                and self.stat_period.needs_stat_for_period_segments_awt):
            nseg_period = len(cc.main_period_segments)
        else:
            nseg_period = -1

        offset = 0
        for slp in cc.service_levels:
            for seg_type in range(-1, nseg_type + 1):
                if seg_type == nseg_type and not counted_in_sum:
                    continue
                if (0 <= seg_type < nseg_type
                        and not cc.in_type_segments[seg_type].contains_value(type_id)):
                    continue
                type_index = type_id if seg_type == -1 else Ki + seg_type
                if Ki <= 1 and type_index > 0:
                    continue
                yield offset, type_index, slp.get_awt(type_index, awt_period), stat_period
                for seg_period in range(nseg_period + 1):
                    if (seg_period < nseg_period
                            and not cc.main_period_segments[seg_period].contains_value(stat_period)):
                        continue
                    yield (offset, type_index,
                           slp.get_awt(type_index, P + seg_period), P + seg_period)
            offset += Kip if group == -1 else Kip * Ip

    def _add_good_and_bad(self, call: Call, group: int, qt: float,
                          awt_period: int, stat_period: int,
                          good: Optional[SumMatrix], bad: Optional[SumMatrix]):
        if call.type_id >= self.Ki:
            return
        if good is None and bad is None:
            return
        for offset, type_index, threshold, column in self._awt_traversal(
                call, group, awt_period, stat_period):
            target = bad if qt > threshold else good
            if target is not None:
                self._add_i(target, offset, type_index, group, column, 1)

    def _add_excess_time(self, call: Call, group: int, qt: float,
                         awt_period: int, stat_period: int,
                         mat: Optional[SumMatrix]):
        if call.type_id >= self.Ki or mat is None:
            return
        for offset, type_index, threshold, column in self._awt_traversal(
                call, group, awt_period, stat_period):
            excess = qt - threshold
            if excess > 0:
                self._add_i(mat, offset, type_index, group, column, excess)

    # Single-measure updates

    def new_arrival(self, call: Call, period: int):
        self._add_k(MeasureType.NUM_ARRIVALS, call.type_id, period, 1)

    def new_wrong(self, call: Call, period: int):
        type_id = call.type_id - self.Ki
        if type_id >= 0:
            self._add_k(MeasureType.NUM_WRONG_PARTY_CONNECTS, type_id, period, 1)

    def new_blocked(self, call: Call, period: int):
        self._add_k(MeasureType.NUM_BLOCKED, call.type_id, period, 1)

    def new_delayed(self, call: Call, period: int):
        self._add_k(MeasureType.NUM_DELAYED, call.type_id, period, 1)

    def new_abandoned(self, call: Call, period: int):
        self._add_k(MeasureType.NUM_ABANDONED, call.type_id, period, 1)

    def new_served(self, call: Call, period: int):
        self._add_ki(MeasureType.NUM_SERVED, call.type_id,
                     call.last_agent_group, period, 1)

    def new_service_time(self, call: Call, period: int, time: float):
        self._add_ki(MeasureType.SUM_SERVICE_TIMES, call.type_id,
                     call.last_agent_group, period, time)

    def new_waiting_time_abandoned(self, call: Call, period: int, t: float):
        self._add_k(MeasureType.SUM_WAITING_TIMES_ABANDONED, call.type_id, period, t)
        self._add_k(MeasureType.MAX_WAITING_TIME_ABANDONED, call.type_id, period, t)
        if call.waiting_time_estimate is not None:
            diff = call.waiting_time_estimate - t
            self._add_k(MeasureType.SUM_SE_WAITING_TIMES_ABANDONED,
                        call.type_id, period, diff * diff)

    def new_waiting_time_served(self, call: Call, period: int, t: float):
        group = call.last_agent_group
        self._add_ki(MeasureType.SUM_WAITING_TIMES_SERVED, call.type_id, group, period, t)
        self._add_ki(MeasureType.MAX_WAITING_TIME_SERVED, call.type_id, group, period, t)
        if call.waiting_time_estimate is not None:
            diff = call.waiting_time_estimate - t
            self._add_ki(MeasureType.SUM_SE_WAITING_TIMES_SERVED,
                         call.type_id, group, period, diff * diff)

    def new_waiting_time_vq_abandoned(self, call: Call, period: int, t: float):
        self._add_k(MeasureType.SUM_WAITING_TIMES_VQ_ABANDONED, call.type_id, period, t)
        if call.waiting_time_estimate is not None:
            diff = call.waiting_time_estimate - t
            self._add_k(MeasureType.SUM_SE_WAITING_TIMES_VQ_ABANDONED,
                        call.type_id, period, diff * diff)

    def new_waiting_time_vq_served(self, call: Call, period: int, t: float):
        group = call.last_agent_group
        self._add_ki(MeasureType.SUM_WAITING_TIMES_VQ_SERVED, call.type_id, group, period, t)
        if call.waiting_time_estimate is not None:
            diff = call.waiting_time_estimate - t
            self._add_ki(MeasureType.SUM_SE_WAITING_TIMES_VQ_SERVED,
                         call.type_id, group, period, diff * diff)

    # Router listener

    def blocked(self, call: Call):
        period = self.stat_period.stat_period(call)
        if period < 0:
            return
        self.new_arrival(call, period)
        self.new_blocked(call, period)
        # A blocked call never waits but is counted as delayed
        self.new_delayed(call, period)

    def dequeued(self, call: Call, transfer: bool = False):
        """Counts a call abandoning the queue, unless it is transferred."""
        if transfer:
            return
        period = self.stat_period.stat_period(call)
        if period < 0:
            return
        qt = call.queue_time
        self.new_arrival(call, period)
        self.new_waiting_time_abandoned(call, period, qt)
        self.new_waiting_time_vq_abandoned(call, period, call.waiting_time_vq)
        self.new_delayed(call, period)
        self.new_abandoned(call, period)

        awt_period = self.stat_period.awt_period(call)
        stat_period_awt = self.stat_period.stat_period_awt(call)
        if awt_period < 0 or stat_period_awt < 0:
            return
        self._add_good_and_bad(call, -1, qt, awt_period, stat_period_awt,
                               self._get(MeasureType.NUM_ABANDONED_BEFORE_AWT),
                               self._get(MeasureType.NUM_ABANDONED_AFTER_AWT))
        self._add_excess_time(call, -1, qt, awt_period, stat_period_awt,
                              self._get(MeasureType.SUM_EXCESS_TIMES_ABANDONED))

    def served(self, call: Call):
        period = self.stat_period.stat_period(call)
        if period < 0:
            return
        if not call.right_party_connect:
            self.new_wrong(call, period)
            return
        if call.last_agent_group is None:
            raise ValueError(f"Served call of type {call.type_id} has no agent group")
        qt = call.queue_time
        group = call.last_agent_group
        self.new_arrival(call, period)
        self.new_service_time(call, period, call.service_time)
        self.new_waiting_time_served(call, period, qt)
        self.new_waiting_time_vq_served(call, period, call.waiting_time_vq)
        if qt > 0:
            self.new_delayed(call, period)
        sum_served = self._get(MeasureType.SUM_SERVED)
        if sum_served is not None:
            sum_served.add(call.type_id * self.I + group, 0, 1)
        self.new_served(call, period)

        awt_period = self.stat_period.awt_period(call)
        stat_period_awt = self.stat_period.stat_period_awt(call)
        if awt_period < 0 or stat_period_awt < 0:
            return
        group_index = group if self.contact_type_agent_group else -1
        self._add_good_and_bad(call, group_index, qt, awt_period, stat_period_awt,
                               self._get(MeasureType.NUM_SERVED_BEFORE_AWT),
                               self._get(MeasureType.NUM_SERVED_AFTER_AWT))
        self._add_excess_time(call, group_index, qt, awt_period, stat_period_awt,
                              self._get(MeasureType.SUM_EXCESS_TIMES_SERVED))


class OutboundCallCounter:
    """
    Counts dial attempts per outbound type and statistical period.
    Register an instance as a dialer listener.
    """

    def __init__(self, cc: CallCenter, stat_period: StatPeriod):
        self.ki: int = cc.num_in_contact_types
        self.stat_period: StatPeriod = stat_period
        self.count: SumMatrix = create_sum_matrix(
            stat_period, cc.num_out_contact_types,
            stat_period.num_periods_for_counters)

    def init(self):
        self.count.init()

    def new_contact(self, call: Call):
        period = self.stat_period.stat_period(call)
        if period < 0:
            return
        self.count.add(call.type_id - self.ki, period, 1)


class CallCounter:
    """Counts every new contact per call type and statistical period."""

    def __init__(self, cc: CallCenter, stat_period: StatPeriod):
        self.stat_period: StatPeriod = stat_period
        self.count: SumMatrix = create_sum_matrix(
            stat_period, cc.num_contact_types,
            stat_period.num_periods_for_counters)

    def init(self):
        self.count.init()

    def new_contact(self, call: Call):
        period = self.stat_period.stat_period(call)
        if period < 0:
            return
        self.count.add(call.type_id, period, 1)
