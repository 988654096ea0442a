# src/callcenter_stats/periods.py

"""
Assignment of calls to statistical periods.

Counters never decide on their own which column a call belongs to.
They ask a `StatPeriod`, which also tells how many columns the
matrices of counters need. Two families of counters exist:

- regular counters, indexed by the statistical period of the call;
- AWT counters (calls served or abandoned before or after the
  acceptable waiting time), indexed by the period whose AWT applies
  to the call.

The properties of a `StatPeriod` are read once, when matrices are
created, and must not change afterwards.

`RepStatPeriod` implements the assignment for replications of a
finite horizon split into main periods. The sliding-window assignment
lives in `sliding_window`.
"""

import abc
import logging
from typing import Optional

from .config import StatParams
from .constants import CollectingMode
from .model import Call, CallCenter

log = logging.getLogger(__name__)


class StatPeriod(abc.ABC):
    """
    Maps calls to the columns of the matrices of counters.

    A negative period means that the observation must be ignored.
    """

    @property
    @abc.abstractmethod
    def num_periods_for_counters(self) -> int:
        """Number of columns of the regular matrices of counters."""
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def num_periods_for_counters_awt(self) -> int:
        """Number of columns of the AWT matrices of counters."""
        raise NotImplementedError

    @abc.abstractmethod
    def stat_period(self, call: Optional[Call] = None) -> int:
        """
        Returns the statistical period of `call`, or the current
        statistical period if `call` is None.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def stat_period_awt(self, call: Call) -> int:
        """Returns the column of the AWT counters updated for `call`."""
        raise NotImplementedError

    @abc.abstractmethod
    def awt_period(self, call: Call) -> int:
        """Returns the period whose AWT applies to `call`."""
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def global_awt_period(self) -> int:
        """The period of the AWT used for the whole horizon."""
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def needs_sliding_windows(self) -> bool:
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def needs_stat_for_period_segments_awt(self) -> bool:
        """
        Whether AWT counters also keep one column per segment of main
        periods, compared against the AWT of that segment.
        """
        raise NotImplementedError


class RepStatPeriod(StatPeriod):
    """
    Period assignment for independent replications.

    Regular counters have one column per period of the schedule,
    preliminary and wrap-up periods included. AWT counters have one
    column per main period and per segment of main periods; a call
    arriving in the preliminary or wrap-up period uses the AWT of the
    nearest main period.

    Args:
        cc (CallCenter): The observed model.
        params (StatParams): Selects the collecting mode.
    """

    def __init__(self, cc: CallCenter, params: Optional[StatParams] = None):
        self.cc: CallCenter = cc
        self.params: StatParams = params if params is not None else StatParams()
        self.collecting_mode: CollectingMode = self.params.per_period_collecting_mode

    @property
    def num_periods_for_counters(self) -> int:
        return self.cc.periods.num_periods

    @property
    def num_periods_for_counters_awt(self) -> int:
        return self.cc.num_main_periods_with_segments

    def get_period(self, call: Call) -> int:
        """The period of `call` according to the collecting mode."""
        mode = self.collecting_mode
        if mode is CollectingMode.PERIOD_OF_ENTRY:
            return call.arrival_period
        if mode is CollectingMode.PERIOD_OF_EXIT:
            return call.exit_period
        if call.begin_service_period >= 0:
            return call.begin_service_period
        if mode is CollectingMode.PERIOD_OF_BEGIN_SERVICE_OR_ENTRY:
            return call.arrival_period
        return call.exit_period

    def stat_period(self, call: Optional[Call] = None) -> int:
        if call is None:
            return self.cc.periods.current_period
        return self.get_period(call)

    def stat_period_awt(self, call: Call) -> int:
        return self.awt_period(call)

    def awt_period(self, call: Call) -> int:
        return self.cc.periods.main_period(self.get_period(call))

    @property
    def global_awt_period(self) -> int:
        return self.cc.num_main_periods_with_segments - 1

    @property
    def needs_sliding_windows(self) -> bool:
        return False

    @property
    def needs_stat_for_period_segments_awt(self) -> bool:
        return True
