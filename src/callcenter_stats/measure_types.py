# src/callcenter_stats/measure_types.py

"""
Schema of the raw matrices of counters.

Each `MeasureType` binds one kind of counter to its row type, its time
normalization policy and the operator combining two of its values.
Counters, the measure manager and the reshaping cache all read these
descriptors; nothing else decides how a matrix is laid out or
aggregated.

Some measures are collected per (call type, agent group) pair when
`StatParams.contact_type_agent_group` is set. For those, `row_type`
returns the pair row type in that mode and the type-only row type
otherwise.
"""

from enum import Enum

import numpy as np

from .constants import TimeNormalizeType
from .row_types import RowType
from .segments import AggregationFunction

# Aggregation operators
SUM: AggregationFunction = np.add
MAX: AggregationFunction = np.maximum

_CT = RowType.CONTACT_TYPE
_CTAG = RowType.CONTACT_TYPE_AGENT_GROUP
_AG = RowType.AGENT_GROUP
_WQ = RowType.WAITING_QUEUE
_OT = RowType.OUTBOUND_TYPE
_ITAWT = RowType.INBOUND_TYPE_AWT
_ITAWTAG = RowType.INBOUND_TYPE_AWT_AGENT_GROUP

_NEVER = TimeNormalizeType.NEVER
_ALWAYS = TimeNormalizeType.ALWAYS
_COND = TimeNormalizeType.CONDITIONAL


class MeasureType(Enum):
    """
    Kinds of raw counters. The value of each member is
    `(label, row_type, normalization, aggregation, pairs_only)`.
    """

    MAX_BUSY_AGENTS = ("max_busy_agents", _AG, _NEVER, MAX, False)
    MAX_QUEUE_SIZE = ("max_queue_size", _WQ, _NEVER, MAX, False)
    MAX_WAITING_TIME_ABANDONED = ("max_waiting_time_abandoned", _CT, _NEVER, MAX, False)
    MAX_WAITING_TIME_SERVED = ("max_waiting_time_served", _CTAG, _NEVER, MAX, False)

    NUM_ABANDONED = ("num_abandoned", _CT, _COND, SUM, False)
    NUM_ABANDONED_AFTER_AWT = ("num_abandoned_after_awt", _ITAWT, _COND, SUM, False)
    NUM_ABANDONED_BEFORE_AWT = ("num_abandoned_before_awt", _ITAWT, _COND, SUM, False)
    NUM_ARRIVALS = ("num_arrivals", _CT, _COND, SUM, False)
    NUM_BLOCKED = ("num_blocked", _CT, _COND, SUM, False)
    NUM_DELAYED = ("num_delayed", _CT, _COND, SUM, False)
    NUM_SERVED = ("num_served", _CTAG, _COND, SUM, False)
    NUM_SERVED_AFTER_AWT = ("num_served_after_awt", _ITAWTAG, _COND, SUM, False)
    NUM_SERVED_BEFORE_AWT = ("num_served_before_awt", _ITAWTAG, _COND, SUM, False)
    NUM_TRIED_DIAL = ("num_tried_dial", _OT, _COND, SUM, False)
    NUM_WRONG_PARTY_CONNECTS = ("num_wrong_party_connects", _OT, _COND, SUM, False)

    # Time integrals of agent counts and queue sizes
    NUM_BUSY_AGENTS = ("num_busy_agents", _AG, _ALWAYS, SUM, False)
    NUM_SCHEDULED_AGENTS = ("num_scheduled_agents", _AG, _ALWAYS, SUM, False)
    NUM_WORKING_AGENTS = ("num_working_agents", _AG, _ALWAYS, SUM, False)
    QUEUE_SIZE = ("queue_size", _WQ, _ALWAYS, SUM, False)

    SUM_EXCESS_TIMES_ABANDONED = ("sum_excess_times_abandoned", _ITAWT, _COND, SUM, False)
    SUM_EXCESS_TIMES_SERVED = ("sum_excess_times_served", _ITAWTAG, _COND, SUM, False)

    # Always one row per (type, group) pair, with a single column
    SUM_SERVED = ("sum_served", _CTAG, _COND, SUM, True)

    SUM_SERVICE_TIMES = ("sum_service_times", _CTAG, _COND, SUM, False)
    SUM_WAITING_TIMES_ABANDONED = ("sum_waiting_times_abandoned", _CT, _COND, SUM, False)
    SUM_WAITING_TIMES_SERVED = ("sum_waiting_times_served", _CTAG, _COND, SUM, False)
    SUM_WAITING_TIMES_VQ_ABANDONED = ("sum_waiting_times_vq_abandoned", _CT, _COND, SUM, False)
    SUM_WAITING_TIMES_VQ_SERVED = ("sum_waiting_times_vq_served", _CTAG, _COND, SUM, False)

    # Squared errors of waiting-time estimates
    SUM_SE_WAITING_TIMES_SERVED = ("sum_se_waiting_times_served", _CTAG, _COND, SUM, False)
    SUM_SE_WAITING_TIMES_ABANDONED = ("sum_se_waiting_times_abandoned", _CT, _COND, SUM, False)
    SUM_SE_WAITING_TIMES_VQ_ABANDONED = ("sum_se_waiting_times_vq_abandoned", _CT, _COND, SUM, False)
    SUM_SE_WAITING_TIMES_VQ_SERVED = ("sum_se_waiting_times_vq_served", _CTAG, _COND, SUM, False)

    def __init__(self, label: str, row_type: RowType,
                 normalization: TimeNormalizeType,
                 aggregation: AggregationFunction, pairs_only: bool):
        self.label: str = label
        if row_type.is_contact_type_agent_group() and not pairs_only:
            self._row_type: RowType = row_type.to_contact_type()
        else:
            self._row_type = row_type
        self._row_type_group: RowType = row_type
        self.time_normalize_type: TimeNormalizeType = normalization
        self.aggregation: AggregationFunction = aggregation

    def row_type(self, contact_type_agent_group: bool) -> RowType:
        """
        Returns the row type of matrices of this measure type, which
        depends on whether counters are kept per (type, group) pair.
        """
        return self._row_type_group if contact_type_agent_group else self._row_type

    @property
    def is_max(self) -> bool:
        return self.aggregation is MAX
