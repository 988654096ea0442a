# src/callcenter_stats/performance_measures.py

"""
Catalog of the performance measures a simulation can estimate.

A performance measure is a user-visible quantity (service level,
abandonment ratio, occupancy, ...) computed from one or more raw
measure types. This module holds three declarative tables:

1. The descriptor of each measure, stored as the value of its
   `PerformanceMeasureType` member: estimation type, row type, column
   type, whether it is a percentage, whether it is a time, and the
   value used when a ratio is 0/0.
2. `_REQUIREMENTS`: the measure types each performance measure reads.
3. `_RATIO_FORMULAS` and `_EXPECTATION_FORMULAS`: how the matrices of
   the required measure types combine into the numerator and
   denominator of a ratio, or into a single matrix of observations.

The tables are checked when the module is imported. A performance
measure missing from a table, or a ratio over three or more measure
types without a formula, raises `ConfigurationError` immediately.
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Sequence, Tuple

import numpy as np

from .constants import ColumnType, EstimationType
from .errors import ConfigurationError
from .measure_types import MeasureType as MT
from .row_types import RowType

log = logging.getLogger(__name__)

_FOE = EstimationType.FUNCTION_OF_EXPECTATIONS
_EOF = EstimationType.EXPECTATION_OF_FUNCTION
_EXP = EstimationType.EXPECTATION
_RAW = EstimationType.RAW_STATISTIC

_CT = RowType.CONTACT_TYPE
_CTAG = RowType.CONTACT_TYPE_AGENT_GROUP
_AG = RowType.AGENT_GROUP
_WQ = RowType.WAITING_QUEUE
_IT = RowType.INBOUND_TYPE
_OT = RowType.OUTBOUND_TYPE
_ITAWT = RowType.INBOUND_TYPE_AWT
_ITAWTAG = RowType.INBOUND_TYPE_AWT_AGENT_GROUP

_MP = ColumnType.MAIN_PERIOD
_SC = ColumnType.SINGLE_COLUMN
_GRP = ColumnType.AGENT_GROUP


class PerformanceMeasureType(Enum):
    """
    Estimated performance measures. The value of each member is
    `(label, estimation, row_type, column_type, percentage, time,
    zero_over_zero)`.
    """

    ABANDONMENT_RATIO = ("abandonment_ratio", _FOE, _CT, _MP, True, False, 0.0)
    ABANDONMENT_RATIO_AFTER_AWT = ("abandonment_ratio_after_awt", _FOE, _ITAWT, _MP, True, False, 0.0)
    ABANDONMENT_RATIO_BEFORE_AWT = ("abandonment_ratio_before_awt", _FOE, _ITAWT, _MP, True, False, 0.0)
    ABANDONMENT_RATIO_REP = ("abandonment_ratio_rep", _EOF, _CT, _MP, True, False, 0.0)
    AVG_BUSY_AGENTS = ("avg_busy_agents", _EXP, _AG, _MP, False, False, 0.0)
    AVG_QUEUE_SIZE = ("avg_queue_size", _EXP, _WQ, _MP, False, False, 0.0)
    AVG_SCHEDULED_AGENTS = ("avg_scheduled_agents", _EXP, _AG, _MP, False, False, 0.0)
    AVG_WORKING_AGENTS = ("avg_working_agents", _EXP, _AG, _MP, False, False, 0.0)
    BLOCK_RATIO = ("block_ratio", _FOE, _CT, _MP, True, False, 0.0)
    BLOCK_RATIO_REP = ("block_ratio_rep", _EOF, _CT, _MP, True, False, 0.0)
    BUSY_AGENTS_END_SIM = ("busy_agents_end_sim", _RAW, _AG, _SC, False, False, 0.0)
    DELAY_RATIO = ("delay_ratio", _FOE, _CT, _MP, True, False, 0.0)
    DELAY_RATIO_REP = ("delay_ratio_rep", _EOF, _CT, _MP, True, False, 0.0)
    EXCESS_TIME = ("excess_time", _FOE, _ITAWT, _MP, False, True, 0.0)
    EXCESS_TIME_ABANDONED = ("excess_time_abandoned", _FOE, _ITAWT, _MP, False, True, 0.0)
    EXCESS_TIME_ABANDONED_REP = ("excess_time_abandoned_rep", _EOF, _ITAWT, _MP, False, True, 0.0)
    EXCESS_TIME_REP = ("excess_time_rep", _EOF, _ITAWT, _MP, False, True, 0.0)
    EXCESS_TIME_SERVED = ("excess_time_served", _FOE, _ITAWT, _MP, False, True, 0.0)
    EXCESS_TIME_SERVED_REP = ("excess_time_served_rep", _EOF, _ITAWT, _MP, False, True, 0.0)
    MAX_BUSY_AGENTS = ("max_busy_agents", _EXP, _AG, _MP, False, False, 0.0)
    MAX_QUEUE_SIZE = ("max_queue_size", _EXP, _WQ, _MP, False, False, 0.0)
    MAX_WAITING_TIME = ("max_waiting_time", _EXP, _CT, _MP, False, True, 0.0)
    MAX_WAITING_TIME_G = ("max_waiting_time_g", _EXP, _CTAG, _MP, False, True, 0.0)
    MAX_WAITING_TIME_ABANDONED = ("max_waiting_time_abandoned", _EXP, _CT, _MP, False, True, 0.0)
    MAX_WAITING_TIME_SERVED = ("max_waiting_time_served", _EXP, _CT, _MP, False, True, 0.0)
    MAX_WAITING_TIME_SERVED_G = ("max_waiting_time_served_g", _EXP, _CTAG, _MP, False, True, 0.0)
    OCCUPANCY = ("occupancy", _FOE, _AG, _MP, True, False, 0.0)
    OCCUPANCY2 = ("occupancy2", _FOE, _AG, _MP, True, False, 0.0)
    OCCUPANCY2_REP = ("occupancy2_rep", _EOF, _AG, _MP, True, False, 0.0)
    OCCUPANCY_REP = ("occupancy_rep", _EOF, _AG, _MP, True, False, 0.0)
    QUEUE_SIZE_END_SIM = ("queue_size_end_sim", _RAW, _WQ, _SC, False, False, 0.0)
    RATE_OF_ABANDONMENT = ("rate_of_abandonment", _EXP, _CT, _MP, False, False, 0.0)
    RATE_OF_ABANDONMENT_AFTER_AWT = ("rate_of_abandonment_after_awt", _EXP, _ITAWT, _MP, False, False, 0.0)
    RATE_OF_ABANDONMENT_BEFORE_AWT = ("rate_of_abandonment_before_awt", _EXP, _ITAWT, _MP, False, False, 0.0)
    RATE_OF_ARRIVALS = ("rate_of_arrivals", _EXP, _CT, _MP, False, False, 0.0)
    RATE_OF_ARRIVALS_IN = ("rate_of_arrivals_in", _EXP, _IT, _MP, False, False, 0.0)
    RATE_OF_BLOCKING = ("rate_of_blocking", _EXP, _CT, _MP, False, False, 0.0)
    RATE_OF_DELAY = ("rate_of_delay", _EXP, _CT, _MP, False, False, 0.0)
    RATE_OF_IN_TARGET_SL = ("rate_of_in_target_sl", _EXP, _ITAWT, _MP, False, False, 0.0)
    RATE_OF_OFFERED = ("rate_of_offered", _EXP, _CT, _MP, False, False, 0.0)
    RATE_OF_SERVICES = ("rate_of_services", _EXP, _CT, _MP, False, False, 0.0)
    RATE_OF_SERVICES_AFTER_AWT = ("rate_of_services_after_awt", _EXP, _ITAWT, _MP, False, False, 0.0)
    RATE_OF_SERVICES_BEFORE_AWT = ("rate_of_services_before_awt", _EXP, _ITAWT, _MP, False, False, 0.0)
    RATE_OF_SERVICES_G = ("rate_of_services_g", _EXP, _CTAG, _MP, False, False, 0.0)
    RATE_OF_TRIED_OUTBOUND = ("rate_of_tried_outbound", _EXP, _OT, _MP, False, False, 0.0)
    RATE_OF_WRONG_PARTY_CONNECT = ("rate_of_wrong_party_connect", _EXP, _OT, _MP, False, False, 0.0)
    SERVED_RATES = ("served_rates", _EXP, _CT, _GRP, False, False, 0.0)
    SERVICE_LEVEL = ("service_level", _FOE, _ITAWT, _MP, True, False, 1.0)
    SERVICE_LEVEL_REP = ("service_level_rep", _EOF, _ITAWT, _MP, True, False, 1.0)
    SERVICE_LEVEL_IND01 = ("service_level_ind01", _RAW, _ITAWT, _MP, True, False, 1.0)
    SERVICE_LEVEL2 = ("service_level2", _FOE, _ITAWT, _MP, True, False, 1.0)
    SERVICE_LEVEL2_REP = ("service_level2_rep", _EOF, _ITAWT, _MP, True, False, 1.0)
    SERVICE_LEVEL_G = ("service_level_g", _FOE, _ITAWTAG, _MP, True, False, 1.0)
    SERVICE_RATIO = ("service_ratio", _FOE, _CT, _MP, True, False, 1.0)
    SERVICE_RATIO_REP = ("service_ratio_rep", _EOF, _CT, _MP, True, False, 1.0)
    SERVICE_TIME = ("service_time", _FOE, _CT, _MP, False, True, 0.0)
    SERVICE_TIME_G = ("service_time_g", _FOE, _CTAG, _MP, False, True, 0.0)
    SERVICE_TIME_REP = ("service_time_rep", _EOF, _CT, _MP, False, True, 0.0)
    SPEED_OF_ANSWER = ("speed_of_answer", _FOE, _CT, _MP, False, True, 0.0)
    SPEED_OF_ANSWER_G = ("speed_of_answer_g", _FOE, _CTAG, _MP, False, True, 0.0)
    SPEED_OF_ANSWER_REP = ("speed_of_answer_rep", _EOF, _CT, _MP, False, True, 0.0)
    SUM_EXCESS_TIMES = ("sum_excess_times", _EXP, _ITAWT, _MP, False, True, 0.0)
    SUM_EXCESS_TIMES_ABANDONED = ("sum_excess_times_abandoned", _EXP, _ITAWT, _MP, False, True, 0.0)
    SUM_EXCESS_TIMES_SERVED = ("sum_excess_times_served", _EXP, _ITAWT, _MP, False, True, 0.0)
    SUM_SERVICE_TIMES = ("sum_service_times", _EXP, _CT, _MP, False, True, 0.0)
    SUM_WAITING_TIMES = ("sum_waiting_times", _EXP, _CT, _MP, False, True, 0.0)
    SUM_SE_WAITING_TIMES = ("sum_se_waiting_times", _EXP, _CT, _MP, False, True, 0.0)
    SUM_WAITING_TIMES_ABANDONED = ("sum_waiting_times_abandoned", _EXP, _CT, _MP, False, True, 0.0)
    SUM_SE_WAITING_TIMES_ABANDONED = ("sum_se_waiting_times_abandoned", _EXP, _CT, _MP, False, True, 0.0)
    SUM_WAITING_TIMES_SERVED = ("sum_waiting_times_served", _EXP, _CT, _MP, False, True, 0.0)
    SUM_SE_WAITING_TIMES_SERVED = ("sum_se_waiting_times_served", _EXP, _CT, _MP, False, True, 0.0)
    SUM_WAITING_TIMES_VQ = ("sum_waiting_times_vq", _EXP, _CT, _MP, False, True, 0.0)
    SUM_SE_WAITING_TIMES_VQ = ("sum_se_waiting_times_vq", _EXP, _CT, _MP, False, True, 0.0)
    SUM_WAITING_TIMES_VQ_ABANDONED = ("sum_waiting_times_vq_abandoned", _EXP, _CT, _MP, False, True, 0.0)
    SUM_SE_WAITING_TIMES_VQ_ABANDONED = ("sum_se_waiting_times_vq_abandoned", _EXP, _CT, _MP, False, True, 0.0)
    SUM_WAITING_TIMES_VQ_SERVED = ("sum_waiting_times_vq_served", _EXP, _CT, _MP, False, True, 0.0)
    SUM_SE_WAITING_TIMES_VQ_SERVED = ("sum_se_waiting_times_vq_served", _EXP, _CT, _MP, False, True, 0.0)
    TIME_TO_ABANDON = ("time_to_abandon", _FOE, _CT, _MP, False, True, 0.0)
    TIME_TO_ABANDON_REP = ("time_to_abandon_rep", _EOF, _CT, _MP, False, True, 0.0)
    WAITING_TIME = ("waiting_time", _FOE, _CT, _MP, False, True, 0.0)
    MSE_WAITING_TIME = ("mse_waiting_time", _FOE, _CT, _MP, False, True, 0.0)
    MSE_WAITING_TIME_ABANDONED = ("mse_waiting_time_abandoned", _FOE, _CT, _MP, False, True, 0.0)
    MSE_WAITING_TIME_SERVED = ("mse_waiting_time_served", _FOE, _CT, _MP, False, True, 0.0)
    WAITING_TIME_G = ("waiting_time_g", _FOE, _CTAG, _MP, False, True, 0.0)
    WAITING_TIME_REP = ("waiting_time_rep", _EOF, _CT, _MP, False, True, 0.0)
    WAITING_TIME_VQ = ("waiting_time_vq", _FOE, _CT, _MP, False, True, 0.0)
    MSE_WAITING_TIME_VQ = ("mse_waiting_time_vq", _FOE, _CT, _MP, False, True, 0.0)
    WAITING_TIME_VQ_ABANDONED = ("waiting_time_vq_abandoned", _FOE, _CT, _MP, False, True, 0.0)
    MSE_WAITING_TIME_VQ_ABANDONED = ("mse_waiting_time_vq_abandoned", _FOE, _CT, _MP, False, True, 0.0)
    WAITING_TIME_VQ_ABANDONED_REP = ("waiting_time_vq_abandoned_rep", _EOF, _CT, _MP, False, True, 0.0)
    WAITING_TIME_VQ_REP = ("waiting_time_vq_rep", _EOF, _CT, _MP, False, True, 0.0)
    WAITING_TIME_VQ_SERVED = ("waiting_time_vq_served", _FOE, _CT, _MP, False, True, 0.0)
    MSE_WAITING_TIME_VQ_SERVED = ("mse_waiting_time_vq_served", _FOE, _CT, _MP, False, True, 0.0)
    WAITING_TIME_VQ_SERVED_REP = ("waiting_time_vq_served_rep", _EOF, _CT, _MP, False, True, 0.0)
    WAITING_TIME_WAIT = ("waiting_time_wait", _FOE, _CT, _MP, False, True, 0.0)
    WAITING_TIME_WAIT_REP = ("waiting_time_wait_rep", _EOF, _CT, _MP, False, True, 0.0)

    def __init__(self, label: str, estimation_type: EstimationType,
                 row_type: RowType, column_type: ColumnType,
                 percentage: bool, time: bool, zero_over_zero: float):
        self.label: str = label
        self.estimation_type: EstimationType = estimation_type
        self.row_type: RowType = row_type
        self.column_type: ColumnType = column_type
        self.percentage: bool = percentage
        self.time: bool = time
        self.zero_over_zero: float = zero_over_zero

    def column_count(self, num_periods: int, cc) -> int:
        """Number of probe columns, given the periods used by probes."""
        if self.column_type is ColumnType.MAIN_PERIOD:
            return num_periods
        if self.column_type is ColumnType.AGENT_GROUP:
            return RowType.AGENT_GROUP.count(cc)
        return 1


PM = PerformanceMeasureType

_REQUIREMENTS: Dict[PerformanceMeasureType, Tuple[MT, ...]] = {
    PM.SERVICE_LEVEL: (MT.NUM_SERVED_BEFORE_AWT, MT.NUM_ABANDONED_BEFORE_AWT, MT.NUM_ARRIVALS),
    PM.SERVICE_LEVEL_REP: (MT.NUM_SERVED_BEFORE_AWT, MT.NUM_ABANDONED_BEFORE_AWT, MT.NUM_ARRIVALS),
    PM.SERVICE_LEVEL_IND01: (MT.NUM_SERVED_BEFORE_AWT, MT.NUM_ABANDONED_BEFORE_AWT, MT.NUM_ARRIVALS),
    PM.SERVICE_LEVEL2: (MT.NUM_SERVED_BEFORE_AWT, MT.NUM_ABANDONED_BEFORE_AWT, MT.NUM_ARRIVALS),
    PM.SERVICE_LEVEL2_REP: (MT.NUM_SERVED_BEFORE_AWT, MT.NUM_ABANDONED_BEFORE_AWT, MT.NUM_ARRIVALS),
    PM.SERVICE_LEVEL_G: (MT.NUM_SERVED_BEFORE_AWT, MT.NUM_ABANDONED_AFTER_AWT, MT.NUM_SERVED, MT.NUM_BLOCKED),

    PM.ABANDONMENT_RATIO: (MT.NUM_ABANDONED, MT.NUM_ARRIVALS),
    PM.ABANDONMENT_RATIO_REP: (MT.NUM_ABANDONED, MT.NUM_ARRIVALS),
    PM.ABANDONMENT_RATIO_BEFORE_AWT: (MT.NUM_ABANDONED_BEFORE_AWT, MT.NUM_ARRIVALS),
    PM.ABANDONMENT_RATIO_AFTER_AWT: (MT.NUM_ABANDONED_AFTER_AWT, MT.NUM_ARRIVALS),
    PM.SERVICE_RATIO: (MT.NUM_SERVED, MT.NUM_ARRIVALS),
    PM.SERVICE_RATIO_REP: (MT.NUM_SERVED, MT.NUM_ARRIVALS),
    PM.BLOCK_RATIO: (MT.NUM_BLOCKED, MT.NUM_ARRIVALS),
    PM.BLOCK_RATIO_REP: (MT.NUM_BLOCKED, MT.NUM_ARRIVALS),
    PM.DELAY_RATIO: (MT.NUM_DELAYED, MT.NUM_ARRIVALS),
    PM.DELAY_RATIO_REP: (MT.NUM_DELAYED, MT.NUM_ARRIVALS),

    PM.SPEED_OF_ANSWER: (MT.SUM_WAITING_TIMES_SERVED, MT.NUM_SERVED),
    PM.SPEED_OF_ANSWER_REP: (MT.SUM_WAITING_TIMES_SERVED, MT.NUM_SERVED),
    PM.SPEED_OF_ANSWER_G: (MT.SUM_WAITING_TIMES_SERVED, MT.NUM_SERVED),
    PM.TIME_TO_ABANDON: (MT.SUM_WAITING_TIMES_ABANDONED, MT.NUM_ABANDONED),
    PM.TIME_TO_ABANDON_REP: (MT.SUM_WAITING_TIMES_ABANDONED, MT.NUM_ABANDONED),
    PM.WAITING_TIME: (MT.SUM_WAITING_TIMES_SERVED, MT.SUM_WAITING_TIMES_ABANDONED, MT.NUM_ARRIVALS),
    PM.WAITING_TIME_REP: (MT.SUM_WAITING_TIMES_SERVED, MT.SUM_WAITING_TIMES_ABANDONED, MT.NUM_ARRIVALS),
    PM.WAITING_TIME_G: (MT.SUM_WAITING_TIMES_SERVED, MT.SUM_WAITING_TIMES_ABANDONED,
                        MT.NUM_SERVED, MT.NUM_ABANDONED, MT.NUM_BLOCKED),
    PM.WAITING_TIME_WAIT: (MT.SUM_WAITING_TIMES_SERVED, MT.SUM_WAITING_TIMES_ABANDONED, MT.NUM_DELAYED),
    PM.WAITING_TIME_WAIT_REP: (MT.SUM_WAITING_TIMES_SERVED, MT.SUM_WAITING_TIMES_ABANDONED, MT.NUM_DELAYED),
    PM.WAITING_TIME_VQ: (MT.SUM_WAITING_TIMES_VQ_SERVED, MT.SUM_WAITING_TIMES_VQ_ABANDONED, MT.NUM_ARRIVALS),
    PM.WAITING_TIME_VQ_REP: (MT.SUM_WAITING_TIMES_VQ_SERVED, MT.SUM_WAITING_TIMES_VQ_ABANDONED, MT.NUM_ARRIVALS),
    PM.WAITING_TIME_VQ_SERVED: (MT.SUM_WAITING_TIMES_VQ_SERVED, MT.NUM_SERVED),
    PM.WAITING_TIME_VQ_SERVED_REP: (MT.SUM_WAITING_TIMES_VQ_SERVED, MT.NUM_SERVED),
    PM.WAITING_TIME_VQ_ABANDONED: (MT.SUM_WAITING_TIMES_VQ_ABANDONED, MT.NUM_ABANDONED),
    PM.WAITING_TIME_VQ_ABANDONED_REP: (MT.SUM_WAITING_TIMES_VQ_ABANDONED, MT.NUM_ABANDONED),

    PM.MSE_WAITING_TIME: (MT.SUM_SE_WAITING_TIMES_SERVED, MT.SUM_SE_WAITING_TIMES_ABANDONED, MT.NUM_ARRIVALS),
    PM.MSE_WAITING_TIME_SERVED: (MT.SUM_SE_WAITING_TIMES_SERVED, MT.NUM_SERVED),
    PM.MSE_WAITING_TIME_ABANDONED: (MT.SUM_SE_WAITING_TIMES_ABANDONED, MT.NUM_ABANDONED),
    PM.MSE_WAITING_TIME_VQ: (MT.SUM_SE_WAITING_TIMES_VQ_SERVED, MT.SUM_SE_WAITING_TIMES_VQ_ABANDONED,
                             MT.NUM_ARRIVALS),
    PM.MSE_WAITING_TIME_VQ_SERVED: (MT.SUM_SE_WAITING_TIMES_VQ_SERVED, MT.NUM_SERVED),
    PM.MSE_WAITING_TIME_VQ_ABANDONED: (MT.SUM_SE_WAITING_TIMES_VQ_ABANDONED, MT.NUM_ABANDONED),

    PM.SERVICE_TIME: (MT.SUM_SERVICE_TIMES, MT.NUM_SERVED),
    PM.SERVICE_TIME_REP: (MT.SUM_SERVICE_TIMES, MT.NUM_SERVED),
    PM.SERVICE_TIME_G: (MT.SUM_SERVICE_TIMES, MT.NUM_SERVED),
    PM.EXCESS_TIME: (MT.SUM_EXCESS_TIMES_SERVED, MT.SUM_EXCESS_TIMES_ABANDONED, MT.NUM_ARRIVALS),
    PM.EXCESS_TIME_REP: (MT.SUM_EXCESS_TIMES_SERVED, MT.SUM_EXCESS_TIMES_ABANDONED, MT.NUM_ARRIVALS),
    PM.EXCESS_TIME_SERVED: (MT.SUM_EXCESS_TIMES_SERVED, MT.NUM_SERVED),
    PM.EXCESS_TIME_SERVED_REP: (MT.SUM_EXCESS_TIMES_SERVED, MT.NUM_SERVED),
    PM.EXCESS_TIME_ABANDONED: (MT.SUM_EXCESS_TIMES_ABANDONED, MT.NUM_ABANDONED),
    PM.EXCESS_TIME_ABANDONED_REP: (MT.SUM_EXCESS_TIMES_ABANDONED, MT.NUM_ABANDONED),

    PM.OCCUPANCY: (MT.NUM_BUSY_AGENTS, MT.NUM_SCHEDULED_AGENTS),
    PM.OCCUPANCY_REP: (MT.NUM_BUSY_AGENTS, MT.NUM_SCHEDULED_AGENTS),
    PM.OCCUPANCY2: (MT.NUM_BUSY_AGENTS, MT.NUM_WORKING_AGENTS),
    PM.OCCUPANCY2_REP: (MT.NUM_BUSY_AGENTS, MT.NUM_WORKING_AGENTS),

    PM.RATE_OF_ARRIVALS: (MT.NUM_ARRIVALS,),
    PM.RATE_OF_ARRIVALS_IN: (MT.NUM_ARRIVALS,),
    PM.RATE_OF_OFFERED: (MT.NUM_ARRIVALS, MT.NUM_BLOCKED),
    PM.RATE_OF_SERVICES: (MT.NUM_SERVED,),
    PM.RATE_OF_SERVICES_G: (MT.NUM_SERVED,),
    PM.RATE_OF_SERVICES_BEFORE_AWT: (MT.NUM_SERVED_BEFORE_AWT,),
    PM.RATE_OF_SERVICES_AFTER_AWT: (MT.NUM_SERVED_AFTER_AWT,),
    PM.RATE_OF_IN_TARGET_SL: (MT.NUM_SERVED_BEFORE_AWT, MT.NUM_ABANDONED_BEFORE_AWT),
    PM.RATE_OF_BLOCKING: (MT.NUM_BLOCKED,),
    PM.RATE_OF_ABANDONMENT: (MT.NUM_ABANDONED,),
    PM.RATE_OF_ABANDONMENT_BEFORE_AWT: (MT.NUM_ABANDONED_BEFORE_AWT,),
    PM.RATE_OF_ABANDONMENT_AFTER_AWT: (MT.NUM_ABANDONED_AFTER_AWT,),
    PM.RATE_OF_DELAY: (MT.NUM_DELAYED,),
    PM.RATE_OF_TRIED_OUTBOUND: (MT.NUM_TRIED_DIAL,),
    PM.RATE_OF_WRONG_PARTY_CONNECT: (MT.NUM_WRONG_PARTY_CONNECTS,),

    PM.AVG_QUEUE_SIZE: (MT.QUEUE_SIZE,),
    PM.AVG_BUSY_AGENTS: (MT.NUM_BUSY_AGENTS,),
    PM.AVG_WORKING_AGENTS: (MT.NUM_WORKING_AGENTS,),
    PM.AVG_SCHEDULED_AGENTS: (MT.NUM_SCHEDULED_AGENTS,),
    PM.SERVED_RATES: (MT.SUM_SERVED,),
    PM.MAX_QUEUE_SIZE: (MT.MAX_QUEUE_SIZE,),
    PM.MAX_BUSY_AGENTS: (MT.MAX_BUSY_AGENTS,),
    PM.MAX_WAITING_TIME: (MT.MAX_WAITING_TIME_ABANDONED, MT.MAX_WAITING_TIME_SERVED),
    PM.MAX_WAITING_TIME_G: (MT.MAX_WAITING_TIME_ABANDONED, MT.MAX_WAITING_TIME_SERVED),
    PM.MAX_WAITING_TIME_ABANDONED: (MT.MAX_WAITING_TIME_ABANDONED,),
    PM.MAX_WAITING_TIME_SERVED: (MT.MAX_WAITING_TIME_SERVED,),
    PM.MAX_WAITING_TIME_SERVED_G: (MT.MAX_WAITING_TIME_SERVED,),

    # Instantaneous values read from the model
    PM.QUEUE_SIZE_END_SIM: (),
    PM.BUSY_AGENTS_END_SIM: (),

    PM.SUM_EXCESS_TIMES: (MT.SUM_EXCESS_TIMES_SERVED, MT.SUM_EXCESS_TIMES_ABANDONED),
    PM.SUM_EXCESS_TIMES_SERVED: (MT.SUM_EXCESS_TIMES_SERVED,),
    PM.SUM_EXCESS_TIMES_ABANDONED: (MT.SUM_EXCESS_TIMES_ABANDONED,),
    PM.SUM_SERVICE_TIMES: (MT.SUM_SERVICE_TIMES,),
    PM.SUM_WAITING_TIMES: (MT.SUM_WAITING_TIMES_SERVED, MT.SUM_WAITING_TIMES_ABANDONED),
    PM.SUM_WAITING_TIMES_SERVED: (MT.SUM_WAITING_TIMES_SERVED,),
    PM.SUM_WAITING_TIMES_ABANDONED: (MT.SUM_WAITING_TIMES_ABANDONED,),
    PM.SUM_WAITING_TIMES_VQ: (MT.SUM_WAITING_TIMES_VQ_SERVED, MT.SUM_WAITING_TIMES_VQ_ABANDONED),
    PM.SUM_WAITING_TIMES_VQ_SERVED: (MT.SUM_WAITING_TIMES_VQ_SERVED,),
    PM.SUM_WAITING_TIMES_VQ_ABANDONED: (MT.SUM_WAITING_TIMES_VQ_ABANDONED,),
    PM.SUM_SE_WAITING_TIMES: (MT.SUM_SE_WAITING_TIMES_SERVED, MT.SUM_SE_WAITING_TIMES_ABANDONED),
    PM.SUM_SE_WAITING_TIMES_SERVED: (MT.SUM_SE_WAITING_TIMES_SERVED,),
    PM.SUM_SE_WAITING_TIMES_ABANDONED: (MT.SUM_SE_WAITING_TIMES_ABANDONED,),
    PM.SUM_SE_WAITING_TIMES_VQ: (MT.SUM_SE_WAITING_TIMES_VQ_SERVED, MT.SUM_SE_WAITING_TIMES_VQ_ABANDONED),
    PM.SUM_SE_WAITING_TIMES_VQ_SERVED: (MT.SUM_SE_WAITING_TIMES_VQ_SERVED,),
    PM.SUM_SE_WAITING_TIMES_VQ_ABANDONED: (MT.SUM_SE_WAITING_TIMES_VQ_ABANDONED,),
}

RatioFormula = Callable[[Sequence[np.ndarray]], Tuple[np.ndarray, np.ndarray]]
ExpectationFormula = Callable[[Sequence[np.ndarray]], np.ndarray]


def _sum_of_first_two_over_third(m):
    return m[0] + m[1], m[2]


def _service_level(m):
    # served before AWT / (arrivals - abandoned before AWT)
    return m[0], m[2] - m[1]


def _service_level_g(m):
    return m[0], m[2] + m[1] + m[3]


def _waiting_time_g(m):
    return m[0] + m[1], m[2] + m[3] + m[4]


# Ratios over three or more measure types. Ratios over two measure
# types are m[0] / m[1].
_RATIO_FORMULAS: Dict[PerformanceMeasureType, RatioFormula] = {
    PM.SERVICE_LEVEL: _service_level,
    PM.SERVICE_LEVEL_REP: _service_level,
    PM.SERVICE_LEVEL_IND01: _service_level,
    PM.SERVICE_LEVEL_G: _service_level_g,
    PM.SERVICE_LEVEL2: _sum_of_first_two_over_third,
    PM.SERVICE_LEVEL2_REP: _sum_of_first_two_over_third,
    PM.EXCESS_TIME: _sum_of_first_two_over_third,
    PM.EXCESS_TIME_REP: _sum_of_first_two_over_third,
    PM.WAITING_TIME: _sum_of_first_two_over_third,
    PM.WAITING_TIME_REP: _sum_of_first_two_over_third,
    PM.MSE_WAITING_TIME: _sum_of_first_two_over_third,
    PM.WAITING_TIME_G: _waiting_time_g,
    PM.WAITING_TIME_VQ: _sum_of_first_two_over_third,
    PM.WAITING_TIME_VQ_REP: _sum_of_first_two_over_third,
    PM.MSE_WAITING_TIME_VQ: _sum_of_first_two_over_third,
    PM.WAITING_TIME_WAIT: _sum_of_first_two_over_third,
    PM.WAITING_TIME_WAIT_REP: _sum_of_first_two_over_third,
}


def _element_wise_max(m):
    res = m[0].copy()
    for other in m[1:]:
        np.maximum(res, other, out=res)
    return res


# Expectations not obtained by summing the required matrices
_EXPECTATION_FORMULAS: Dict[PerformanceMeasureType, ExpectationFormula] = {
    PM.RATE_OF_OFFERED: lambda m: m[0] - m[1],
    PM.MAX_WAITING_TIME: _element_wise_max,
    PM.MAX_WAITING_TIME_G: _element_wise_max,
}


def _check_tables():
    for pm in PerformanceMeasureType:
        if pm not in _REQUIREMENTS:
            raise ConfigurationError(
                f"No measure types registered for performance measure {pm.name}")
        types = _REQUIREMENTS[pm]
        for mt in types:
            if not isinstance(mt, MT):
                raise ConfigurationError(
                    f"Invalid measure type {mt!r} required by {pm.name}")
        if pm.estimation_type is _EXP:
            continue
        if len(types) >= 3 and pm not in _RATIO_FORMULAS:
            raise ConfigurationError(
                f"No ratio formula for performance measure {pm.name}")
        if pm.estimation_type in (_FOE, _EOF) and len(types) < 2:
            raise ConfigurationError(
                f"The ratio {pm.name} needs at least two measure types")


_check_tables()


def supported_performance_measures() -> List[PerformanceMeasureType]:
    """Every performance measure the pipeline can estimate."""
    return list(PerformanceMeasureType)


def get_measure_types(pm: PerformanceMeasureType) -> Tuple[MT, ...]:
    """
    Returns the measure types needed to estimate `pm`.

    Raises:
        ConfigurationError: If `pm` is not a supported performance measure.
    """
    try:
        return _REQUIREMENTS[pm]
    except (KeyError, TypeError):
        log.error(f"Unsupported performance measure {pm!r}")
        raise ConfigurationError(f"Unsupported performance measure {pm!r}") from None


def measure_types_for(*pms: PerformanceMeasureType) -> List[MT]:
    """
    Returns the measure types needed by every measure in `pms`, each
    listed once, in order of first use.
    """
    res: List[MT] = []
    for pm in pms:
        for mt in get_measure_types(pm):
            if mt not in res:
                res.append(mt)
    return res


def ratio_components(pm: PerformanceMeasureType,
                     matrices: Sequence[np.ndarray]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Combines the matrices of the measure types of `pm`, in the order of
    `get_measure_types(pm)`, into a numerator and a denominator.
    """
    formula = _RATIO_FORMULAS.get(pm)
    if formula is not None:
        return formula(matrices)
    return matrices[0], matrices[1]


def expectation_values(pm: PerformanceMeasureType,
                       matrices: Sequence[np.ndarray]) -> np.ndarray:
    """
    Combines the matrices of the measure types of `pm` into one matrix
    of observations. Unless `pm` has its own formula, matrices are added.
    """
    formula = _EXPECTATION_FORMULAS.get(pm)
    if formula is not None:
        return formula(matrices)
    res = matrices[0].copy()
    for other in matrices[1:]:
        res += other
    return res
