# src/callcenter_stats/__init__.py

"""
Initializes the 'callcenter_stats' package.

This file sets up the package-level logger and "lifts" the
most important classes and enums to the top-level namespace.
This allows users to import core components directly, e.g.:

from callcenter_stats import RepMeasureManager, SimCallCenterStat, PM
"""

import logging

# Silent unless the application configures logging.
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


# Lift constants, errors and parameters
from .constants import (TimeNormalizeType, EstimationType, ColumnType,
                        StatType, CollectingMode)
from .errors import ConfigurationError, MeasureNotAvailableError
from .config import StatParams

# Lift the model of the observed call center
from .segments import Segment
from .model import (Clock, PeriodSchedule, CallTypeInfo, ServiceLevelParams,
                    Call, AgentGroup, WaitingQueue, Router, Dialer, CallCenter)

# Lift the measure schema
from .row_types import RowType
from .measure_types import MeasureType
from .performance_measures import (PerformanceMeasureType, PM,
                                   supported_performance_measures,
                                   measure_types_for)

# Lift the counters and their manager
from .periods import StatPeriod, RepStatPeriod
from .counters import CallByCallMeasureManager, OutboundCallCounter, CallCounter
from .checkers import BusyAgentsChecker, QueueSizeChecker
from .measure_manager import CallCenterMeasureManager, RepMeasureManager
from .matrix_cache import MatrixCache
from .sliding_window import (SlidingWindowStatPeriod, SlidingWindowMeasureManager,
                             CallCenterStatWithSlidingWindows)

# Lift the statistical probes from the 'stat' sub-package
from .stat import (
    MatrixOfTallies,
    MatrixOfRatioTallies,
    CallCenterStatProbes,
    SimCallCenterStat,
    StatCallCenterStat,
    ChainCallCenterStat,
    CovFMMCallCenterStat
)


# Define Public API with __all__
# This controls what 'from callcenter_stats import *' imports.
__all__ = [
    # Constants and configuration
    "TimeNormalizeType",
    "EstimationType",
    "ColumnType",
    "StatType",
    "CollectingMode",
    "ConfigurationError",
    "MeasureNotAvailableError",
    "StatParams",

    # Model
    "Segment",
    "Clock",
    "PeriodSchedule",
    "CallTypeInfo",
    "ServiceLevelParams",
    "Call",
    "AgentGroup",
    "WaitingQueue",
    "Router",
    "Dialer",
    "CallCenter",

    # Measure schema
    "RowType",
    "MeasureType",
    "PerformanceMeasureType",
    "PM",
    "supported_performance_measures",
    "measure_types_for",

    # Counters
    "StatPeriod",
    "RepStatPeriod",
    "CallByCallMeasureManager",
    "OutboundCallCounter",
    "CallCounter",
    "BusyAgentsChecker",
    "QueueSizeChecker",
    "CallCenterMeasureManager",
    "RepMeasureManager",
    "MatrixCache",
    "SlidingWindowStatPeriod",
    "SlidingWindowMeasureManager",
    "CallCenterStatWithSlidingWindows",

    # Statistical probes
    "MatrixOfTallies",
    "MatrixOfRatioTallies",
    "CallCenterStatProbes",
    "SimCallCenterStat",
    "StatCallCenterStat",
    "ChainCallCenterStat",
    "CovFMMCallCenterStat"
]
