# src/callcenter_stats/stat/chain.py

"""
Concatenation of two collections of statistical probes.
"""

from typing import Dict, List, Tuple

import numpy as np

from ..performance_measures import PerformanceMeasureType
from .base import CallCenterStatProbes, MatrixOfStatProbes
from .probes import MatrixOfRatioTallies, MatrixOfTallies


class ChainCallCenterStat(CallCenterStatProbes):
    """
    Presents `stat1` and `stat2` as a single collection. A performance
    measure present in both is read from `stat1`.

    Args:
        stat1 (CallCenterStatProbes): The first collection.
        stat2 (CallCenterStatProbes): The second collection.
    """

    def __init__(self, stat1: CallCenterStatProbes, stat2: CallCenterStatProbes):
        if stat1 is None or stat2 is None:
            raise ValueError("stat1 and stat2 must not be None")
        self.stat1: CallCenterStatProbes = stat1
        self.stat2: CallCenterStatProbes = stat2

    def _source(self, pm: PerformanceMeasureType) -> CallCenterStatProbes:
        return self.stat1 if self.stat1.has_performance_measure(pm) else self.stat2

    def init(self):
        self.stat1.init()
        self.stat2.init()

    @property
    def performance_measures(self) -> List[PerformanceMeasureType]:
        return list(dict.fromkeys(self.stat1.performance_measures
                                  + self.stat2.performance_measures))

    def has_performance_measure(self, pm: PerformanceMeasureType) -> bool:
        return (self.stat1.has_performance_measure(pm)
                or self.stat2.has_performance_measure(pm))

    def get_matrices_of_stat_probes(self) -> Dict[PerformanceMeasureType, MatrixOfStatProbes]:
        res = dict(self.stat2.get_matrices_of_stat_probes())
        res.update(self.stat1.get_matrices_of_stat_probes())
        return res

    def get_matrix_of_stat_probes(self, pm: PerformanceMeasureType) -> MatrixOfStatProbes:
        return self._source(pm).get_matrix_of_stat_probes(pm)

    def get_matrix_of_tallies(self, pm: PerformanceMeasureType) -> MatrixOfTallies:
        return self._source(pm).get_matrix_of_tallies(pm)

    def get_matrix_of_ratio_tallies(self, pm: PerformanceMeasureType) -> MatrixOfRatioTallies:
        return self._source(pm).get_matrix_of_ratio_tallies(pm)

    def get_average(self, pm: PerformanceMeasureType) -> np.ndarray:
        return self._source(pm).get_average(pm)

    def get_variance(self, pm: PerformanceMeasureType) -> np.ndarray:
        return self._source(pm).get_variance(pm)

    def get_variance_of_average(self, pm: PerformanceMeasureType) -> np.ndarray:
        return self._source(pm).get_variance_of_average(pm)

    def get_min(self, pm: PerformanceMeasureType) -> np.ndarray:
        return self._source(pm).get_min(pm)

    def get_max(self, pm: PerformanceMeasureType) -> np.ndarray:
        return self._source(pm).get_max(pm)

    def get_confidence_interval(self, pm: PerformanceMeasureType,
                                level: float) -> Tuple[np.ndarray, np.ndarray]:
        return self._source(pm).get_confidence_interval(pm, level)
