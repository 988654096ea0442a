# src/callcenter_stats/stat/stat_of_stats.py

"""
Statistics collected on the estimates of another collection of probes.

A typical use is a two-level experiment: each outer run performs a
batch of replications, then `StatCallCenterStat.add_stat` records one
statistic (average, variance, ...) of the batch, so the spread of the
estimators themselves can be studied.
"""

import logging
from typing import Callable, Dict

import numpy as np

from ..constants import EstimationType, StatType
from ..performance_measures import PerformanceMeasureType
from .base import AbstractCallCenterStatProbes, CallCenterStatProbes
from .probes import MatrixOfTallies

log = logging.getLogger(__name__)

_EXTRACTORS: Dict[StatType, Callable[[CallCenterStatProbes, PerformanceMeasureType], np.ndarray]] = {
    StatType.AVERAGE: lambda s, pm: s.get_average(pm),
    StatType.VARIANCE: lambda s, pm: s.get_variance(pm),
    StatType.STANDARD_DEVIATION: lambda s, pm: np.sqrt(s.get_variance(pm)),
    StatType.VARIANCE_OF_AVERAGE: lambda s, pm: s.get_variance_of_average(pm),
    StatType.STANDARD_DEVIATION_OF_AVERAGE: lambda s, pm: np.sqrt(s.get_variance_of_average(pm)),
}


class StatCallCenterStat(AbstractCallCenterStatProbes):
    """
    One matrix of tallies per performance measure of `stat`, fed with a
    statistic of `stat`.

    Args:
        stat (CallCenterStatProbes): The observed probes.
        stat_type (StatType): The statistic recorded by `add_stat`.
        fmm (bool): Also record the ratios of expectations; they are
            skipped otherwise.
        keep_obs (bool): Tallies store their observations.
    """

    def __init__(self, stat: CallCenterStatProbes, stat_type: StatType,
                 fmm: bool = False, keep_obs: bool = False):
        super().__init__()
        if stat is None or stat_type is None:
            raise ValueError("stat and stat_type must not be None")
        self.stat: CallCenterStatProbes = stat
        self.stat_type: StatType = stat_type
        for pm in stat.performance_measures:
            if pm.estimation_type is EstimationType.FUNCTION_OF_EXPECTATIONS and not fmm:
                continue
            probes = stat.get_matrix_of_stat_probes(pm)
            self.tally_map[pm] = MatrixOfTallies(probes.rows, probes.columns, keep_obs)

    def add_stat(self):
        extract = _EXTRACTORS[self.stat_type]
        for pm, mta in self.tally_map.items():
            mta.add(extract(self.stat, pm))
        log.debug(f"Added {self.stat_type.name} of {len(self.tally_map)} measures")
