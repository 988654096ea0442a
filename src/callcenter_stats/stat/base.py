# src/callcenter_stats/stat/base.py

"""
Defines the query interface shared by every collection of statistical
probes on performance measures.

`CallCenterStatProbes` is the Abstract Base Class (ABC) used by report
code: it gives, for each collected performance measure, the matrix of
probes and the usual estimates (average, variance, min, max, confidence
interval). `AbstractCallCenterStatProbes` implements it on top of two
dictionaries, one for `MatrixOfTallies` and one for
`MatrixOfRatioTallies`, filled by subclasses.

Querying a performance measure that is not collected raises
`MeasureNotAvailableError`; use `has_performance_measure` to test first.
"""

import abc
import logging
from typing import Dict, List, Tuple, Union

import numpy as np

from ..errors import MeasureNotAvailableError
from ..performance_measures import PerformanceMeasureType
from .probes import MatrixOfRatioTallies, MatrixOfTallies

log = logging.getLogger(__name__)

MatrixOfStatProbes = Union[MatrixOfTallies, MatrixOfRatioTallies]


class CallCenterStatProbes(abc.ABC):
    """
    Abstract Base Class for collections of statistical probes, one matrix
    of probes per performance measure.
    """

    @abc.abstractmethod
    def init(self):
        """Resets every probe."""
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def performance_measures(self) -> List[PerformanceMeasureType]:
        raise NotImplementedError

    @abc.abstractmethod
    def has_performance_measure(self, pm: PerformanceMeasureType) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def get_matrices_of_stat_probes(self) -> Dict[PerformanceMeasureType, MatrixOfStatProbes]:
        raise NotImplementedError

    @abc.abstractmethod
    def get_matrix_of_stat_probes(self, pm: PerformanceMeasureType) -> MatrixOfStatProbes:
        raise NotImplementedError

    @abc.abstractmethod
    def get_matrix_of_tallies(self, pm: PerformanceMeasureType) -> MatrixOfTallies:
        raise NotImplementedError

    @abc.abstractmethod
    def get_matrix_of_ratio_tallies(self, pm: PerformanceMeasureType) -> MatrixOfRatioTallies:
        raise NotImplementedError

    @abc.abstractmethod
    def get_average(self, pm: PerformanceMeasureType) -> np.ndarray:
        raise NotImplementedError

    @abc.abstractmethod
    def get_variance(self, pm: PerformanceMeasureType) -> np.ndarray:
        raise NotImplementedError

    @abc.abstractmethod
    def get_variance_of_average(self, pm: PerformanceMeasureType) -> np.ndarray:
        raise NotImplementedError

    @abc.abstractmethod
    def get_min(self, pm: PerformanceMeasureType) -> np.ndarray:
        """
        Returns the minimum of the observations of each cell. Only
        available for measures estimated by `MatrixOfTallies`.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def get_max(self, pm: PerformanceMeasureType) -> np.ndarray:
        raise NotImplementedError

    @abc.abstractmethod
    def get_confidence_interval(self, pm: PerformanceMeasureType,
                                level: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        Returns the lower and upper bounds of a confidence interval with
        confidence `level` for each cell of the estimate of `pm`.
        """
        raise NotImplementedError


class AbstractCallCenterStatProbes(CallCenterStatProbes):
    """
    Stores the probes in `tally_map` and `ratio_tally_map`. Subclasses
    fill the maps in their constructor.
    """

    def __init__(self):
        self.tally_map: Dict[PerformanceMeasureType, MatrixOfTallies] = {}
        self.ratio_tally_map: Dict[PerformanceMeasureType, MatrixOfRatioTallies] = {}

    def init(self):
        for m in self.tally_map.values():
            m.init()
        for m in self.ratio_tally_map.values():
            m.init()

    @property
    def performance_measures(self) -> List[PerformanceMeasureType]:
        return list(self.tally_map) + list(self.ratio_tally_map)

    def has_performance_measure(self, pm: PerformanceMeasureType) -> bool:
        return pm in self.tally_map or pm in self.ratio_tally_map

    def get_matrices_of_stat_probes(self) -> Dict[PerformanceMeasureType, MatrixOfStatProbes]:
        res: Dict[PerformanceMeasureType, MatrixOfStatProbes] = dict(self.tally_map)
        res.update(self.ratio_tally_map)
        return res

    def get_matrix_of_stat_probes(self, pm: PerformanceMeasureType) -> MatrixOfStatProbes:
        if pm in self.tally_map:
            return self.tally_map[pm]
        if pm in self.ratio_tally_map:
            return self.ratio_tally_map[pm]
        raise MeasureNotAvailableError(f"Performance measure {pm.name} is not collected")

    def get_matrix_of_tallies(self, pm: PerformanceMeasureType) -> MatrixOfTallies:
        try:
            return self.tally_map[pm]
        except KeyError:
            raise MeasureNotAvailableError(
                f"No matrix of tallies for performance measure {pm.name}") from None

    def get_matrix_of_ratio_tallies(self, pm: PerformanceMeasureType) -> MatrixOfRatioTallies:
        try:
            return self.ratio_tally_map[pm]
        except KeyError:
            raise MeasureNotAvailableError(
                f"No matrix of ratio tallies for performance measure {pm.name}") from None

    def get_average(self, pm: PerformanceMeasureType) -> np.ndarray:
        return self.get_matrix_of_stat_probes(pm).average()

    def get_variance(self, pm: PerformanceMeasureType) -> np.ndarray:
        return self.get_matrix_of_stat_probes(pm).variance()

    def get_variance_of_average(self, pm: PerformanceMeasureType) -> np.ndarray:
        return self.get_matrix_of_stat_probes(pm).variance_of_average()

    def get_min(self, pm: PerformanceMeasureType) -> np.ndarray:
        return self.get_matrix_of_tallies(pm).min()

    def get_max(self, pm: PerformanceMeasureType) -> np.ndarray:
        return self.get_matrix_of_tallies(pm).max()

    def get_confidence_interval(self, pm: PerformanceMeasureType,
                                level: float) -> Tuple[np.ndarray, np.ndarray]:
        return self.get_matrix_of_stat_probes(pm).confidence_interval(level)
