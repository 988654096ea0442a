# src/callcenter_stats/constants.py

"""
Defines core enumerations used across the statistics pipeline.

These enums describe how raw counters are normalized, which kind of
estimator a performance measure needs, how the columns of a matrix of
statistical probes are laid out, and how a completed call is assigned
to a statistical period. They carry no behavior of their own; the
modules that consume them decide what each value means.
"""

from enum import Enum, auto


class TimeNormalizeType(Enum):
    """
    Tells whether the values of a matrix of counters are divided by
    the duration of the period they were collected in.
    """

    # Never normalized (maxima, counts used in indicators).
    NEVER = auto()

    # Always normalized. Used for time integrals, where the
    # normalized value is a time-average.
    ALWAYS = auto()

    # Normalized only if `StatParams.normalize_to_default_unit` is set.
    CONDITIONAL = auto()


class EstimationType(Enum):
    """
    Represents the kind of estimator a performance measure is built on.
    """

    # The expectation of a single random variable, e.g. the number
    # of arrivals during a period.
    EXPECTATION = auto()

    # The expectation of a ratio computed on each replication,
    # E[X/Y].
    EXPECTATION_OF_FUNCTION = auto()

    # A ratio of expectations, E[X]/E[Y], estimated by a function of
    # multiple means.
    FUNCTION_OF_EXPECTATIONS = auto()

    # A raw statistic observed at the end of a run.
    RAW_STATISTIC = auto()


class ColumnType(Enum):
    """
    Represents what the columns of a matrix of statistical probes index.
    """

    # One column per main period, plus segment columns.
    MAIN_PERIOD = auto()

    # A single column.
    SINGLE_COLUMN = auto()

    # One column per agent group, plus segment columns.
    AGENT_GROUP = auto()


class StatType(Enum):
    """
    The statistic extracted from a matrix of probes when collecting
    statistics of statistics.
    """

    AVERAGE = auto()
    VARIANCE = auto()
    STANDARD_DEVIATION = auto()
    VARIANCE_OF_AVERAGE = auto()
    STANDARD_DEVIATION_OF_AVERAGE = auto()


class CollectingMode(Enum):
    """
    Selects which period a completed call is counted in by the
    main-simulation period assignment.
    """

    PERIOD_OF_ENTRY = auto()
    PERIOD_OF_EXIT = auto()

    # The period in which service began, or the period of entry
    # for calls never served.
    PERIOD_OF_BEGIN_SERVICE_OR_ENTRY = auto()

    # The period in which service began, or the period of exit
    # for calls never served.
    PERIOD_OF_BEGIN_SERVICE_OR_EXIT = auto()
