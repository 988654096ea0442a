# src/callcenter_stats/stat/__init__.py

"""
Initializes the 'stat' sub-package.

This file "lifts" the statistical probes and the collections of probes
on performance measures to the sub-package level, e.g.:

from callcenter_stats.stat import SimCallCenterStat, MatrixOfTallies
"""

from .probes import MatrixOfTallies, MatrixOfRatioTallies
from .base import CallCenterStatProbes, AbstractCallCenterStatProbes
from .sim_stat import SimCallCenterStat
from .stat_of_stats import StatCallCenterStat
from .chain import ChainCallCenterStat
from .covariance import CovFMMCallCenterStat

# Define the public API of this sub-package for 'import *'
__all__ = [
    "MatrixOfTallies",
    "MatrixOfRatioTallies",
    "CallCenterStatProbes",
    "AbstractCallCenterStatProbes",
    "SimCallCenterStat",
    "StatCallCenterStat",
    "ChainCallCenterStat",
    "CovFMMCallCenterStat"
]
