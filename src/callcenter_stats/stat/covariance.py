# src/callcenter_stats/stat/covariance.py

"""
Averages of the covariance matrices of ratio estimators.

For each ratio of expectations collected by a `CallCenterStatProbes`,
`CovFMMCallCenterStat` keeps, per cell, a 2 x 2 matrix of tallies. Each
call to `add_stat` adds the current sample covariance of the (x, y)
components, optionally divided by the number of observations, so that
the covariance of the averages is estimated over several batches of
replications, e.g. for stratified variance estimation.
"""

import logging
from typing import Dict, List

import numpy as np

from ..constants import EstimationType
from ..errors import MeasureNotAvailableError
from ..performance_measures import PerformanceMeasureType
from .base import CallCenterStatProbes
from .probes import MatrixOfTallies

log = logging.getLogger(__name__)


class CovFMMCallCenterStat:
    """
    Args:
        stat (CallCenterStatProbes): The observed probes.
        var_weighted (bool): Divide each covariance matrix by the number
            of observations of its cell, giving the covariance of the
            averages.
    """

    def __init__(self, stat: CallCenterStatProbes, var_weighted: bool = False):
        self.stat: CallCenterStatProbes = stat
        self.var_weighted: bool = var_weighted
        self.stat_map: Dict[PerformanceMeasureType, List[List[MatrixOfTallies]]] = {}
        for pm in stat.performance_measures:
            if pm.estimation_type is not EstimationType.FUNCTION_OF_EXPECTATIONS:
                continue
            probes = stat.get_matrix_of_ratio_tallies(pm)
            self.stat_map[pm] = [[MatrixOfTallies(2, 2) for _ in range(probes.columns)]
                                 for _ in range(probes.rows)]

    def init(self):
        for cells in self.stat_map.values():
            for row in cells:
                for mta in row:
                    mta.init()

    def add_stat(self):
        for pm, cells in self.stat_map.items():
            probes = self.stat.get_matrix_of_ratio_tallies(pm)
            counts = probes.num_obs()
            for r, row in enumerate(cells):
                for c, mta in enumerate(row):
                    cov = probes.covariance(r, c)
                    if self.var_weighted:
                        cov = cov / counts[r, c]
                    mta.add(cov)
        log.debug(f"Added covariance matrices of {len(self.stat_map)} ratios")

    def covariance(self, pm: PerformanceMeasureType, row: int, col: int) -> np.ndarray:
        """
        Returns the average 2 x 2 covariance matrix of cell (row, col)
        of `pm`.

        Raises:
            MeasureNotAvailableError: If `pm` is not a collected ratio of
                expectations.
        """
        try:
            cells = self.stat_map[pm]
        except KeyError:
            raise MeasureNotAvailableError(
                f"No covariance matrix for {pm.name}") from None
        return cells[row][col].average()
