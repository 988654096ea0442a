# src/callcenter_stats/stat/probes.py

"""
Matrices of statistical probes fed with one observation per cell.

Each replication (or sliding window) produces one matrix of values per
performance measure; the probes accumulate those matrices cell by cell
and estimate the mean, the variance and confidence intervals across
observations.

- `MatrixOfTallies` estimates the expectation of each cell.
- `MatrixOfRatioTallies` estimates, for each cell, the ratio of two
  expectations E[X] / E[Y] from pairs (X, Y). The variance of the
  estimator is obtained by the delta method from the sample covariance
  of the two components.

Means and (co-)moments use Welford's one-pass update, which stays
accurate for long runs.
"""

import logging
from typing import List, Tuple

import numpy as np
import scipy.stats

log = logging.getLogger(__name__)


def _check_level(level: float):
    if not 0.0 < level < 1.0:
        raise ValueError(f"Confidence level must be in (0, 1), got {level}")


class MatrixOfTallies:
    """
    A matrix of tallies, each collecting scalar observations.

    Args:
        rows (int): Number of rows.
        columns (int): Number of columns.
        keep_obs (bool): Store every observation, to be retrieved with
            `observations`.
    """

    def __init__(self, rows: int, columns: int, keep_obs: bool = False):
        if rows < 0 or columns < 0:
            raise ValueError(f"Invalid dimensions {rows} x {columns}")
        self.keep_obs: bool = keep_obs
        self._n = np.zeros((rows, columns), dtype=int)
        self._mean = np.zeros((rows, columns))
        self._m2 = np.zeros((rows, columns))
        self._min = np.full((rows, columns), np.inf)
        self._max = np.full((rows, columns), -np.inf)
        self._obs: List[List[List[float]]] = [[[] for _ in range(columns)]
                                              for _ in range(rows)]

    @property
    def rows(self) -> int:
        return self._n.shape[0]

    @property
    def columns(self) -> int:
        return self._n.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self._n.shape

    def init(self):
        self._n.fill(0)
        self._mean.fill(0.0)
        self._m2.fill(0.0)
        self._min.fill(np.inf)
        self._max.fill(-np.inf)
        for row in self._obs:
            for cell in row:
                cell.clear()

    def init_cell(self, r: int, c: int):
        self._n[r, c] = 0
        self._mean[r, c] = 0.0
        self._m2[r, c] = 0.0
        self._min[r, c] = np.inf
        self._max[r, c] = -np.inf
        self._obs[r][c].clear()

    def add(self, values):
        """Adds one observation to every cell."""
        x = np.asarray(values, dtype=float)
        if x.shape != self.shape:
            raise ValueError(f"Cannot add a matrix of shape {x.shape} "
                             f"to tallies of shape {self.shape}")
        self._n += 1
        delta = x - self._mean
        self._mean += delta / self._n
        self._m2 += delta * (x - self._mean)
        np.minimum(self._min, x, out=self._min)
        np.maximum(self._max, x, out=self._max)
        if self.keep_obs:
            for r in range(self.rows):
                for c in range(self.columns):
                    self._obs[r][c].append(float(x[r, c]))

    def add_cell(self, r: int, c: int, x: float):
        """Adds one observation to cell (r, c)."""
        self._n[r, c] += 1
        delta = x - self._mean[r, c]
        self._mean[r, c] += delta / self._n[r, c]
        self._m2[r, c] += delta * (x - self._mean[r, c])
        self._min[r, c] = min(self._min[r, c], x)
        self._max[r, c] = max(self._max[r, c], x)
        if self.keep_obs:
            self._obs[r][c].append(float(x))

    def num_obs(self) -> np.ndarray:
        return self._n.copy()

    def average(self) -> np.ndarray:
        """The sample means; NaN for cells without observations."""
        return np.where(self._n > 0, self._mean, np.nan)

    def variance(self) -> np.ndarray:
        """The sample variances; NaN for cells with less than two observations."""
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.where(self._n > 1, self._m2 / (self._n - 1), np.nan)

    def standard_deviation(self) -> np.ndarray:
        return np.sqrt(self.variance())

    def variance_of_average(self) -> np.ndarray:
        with np.errstate(divide="ignore", invalid="ignore"):
            return self.variance() / self._n

    def min(self) -> np.ndarray:
        return self._min.copy()

    def max(self) -> np.ndarray:
        return self._max.copy()

    def observations(self, r: int, c: int) -> List[float]:
        """
        Returns the observations of cell (r, c).

        Raises:
            ValueError: If the observations are not kept.
        """
        if not self.keep_obs:
            raise ValueError("Observations are not kept by these tallies")
        return list(self._obs[r][c])

    def confidence_interval(self, level: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        Computes a confidence interval on the mean of each cell, assuming
        the observations are i.i.d. and normally distributed, using the
        Student-t distribution with n - 1 degrees of freedom.

        Args:
            level (float): The confidence level, in (0, 1).

        Returns:
            Tuple[np.ndarray, np.ndarray]: The lower and upper bounds.
                Cells with less than two observations get NaN bounds.
        """
        _check_level(level)
        with np.errstate(divide="ignore", invalid="ignore"):
            t = scipy.stats.t.ppf((1.0 + level) / 2.0, self._n - 1)
            half = np.where(self._n > 1,
                            t * np.sqrt(self.variance_of_average()), np.nan)
        avg = self.average()
        return avg - half, avg + half


class MatrixOfRatioTallies:
    """
    A matrix of tallies estimating ratios of expectations.

    Each cell receives pairs (x, y) and estimates E[X] / E[Y]. When
    both sample means are 0, the ratio is `zero_over_zero`.

    Args:
        rows (int): Number of rows.
        columns (int): Number of columns.
        zero_over_zero (float): The value of 0/0.
    """

    def __init__(self, rows: int, columns: int, zero_over_zero: float = 0.0):
        if rows < 0 or columns < 0:
            raise ValueError(f"Invalid dimensions {rows} x {columns}")
        self.zero_over_zero: float = zero_over_zero
        self._n = np.zeros((rows, columns), dtype=int)
        self._mx = np.zeros((rows, columns))
        self._my = np.zeros((rows, columns))
        self._cxx = np.zeros((rows, columns))
        self._cyy = np.zeros((rows, columns))
        self._cxy = np.zeros((rows, columns))

    @property
    def rows(self) -> int:
        return self._n.shape[0]

    @property
    def columns(self) -> int:
        return self._n.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self._n.shape

    def init(self):
        for a in (self._n, self._mx, self._my, self._cxx, self._cyy, self._cxy):
            a.fill(0)

    def init_cell(self, r: int, c: int):
        for a in (self._n, self._mx, self._my, self._cxx, self._cyy, self._cxy):
            a[r, c] = 0

    def add(self, x_values, y_values):
        """Adds the pair (x[r, c], y[r, c]) to every cell."""
        x = np.asarray(x_values, dtype=float)
        y = np.asarray(y_values, dtype=float)
        if x.shape != self.shape or y.shape != self.shape:
            raise ValueError(f"Cannot add matrices of shapes {x.shape} and "
                             f"{y.shape} to tallies of shape {self.shape}")
        self._n += 1
        dx = x - self._mx
        dy = y - self._my
        self._mx += dx / self._n
        self._my += dy / self._n
        self._cxx += dx * (x - self._mx)
        self._cyy += dy * (y - self._my)
        self._cxy += dx * (y - self._my)

    def add_cell(self, r: int, c: int, x: float, y: float):
        self._n[r, c] += 1
        n = self._n[r, c]
        dx = x - self._mx[r, c]
        dy = y - self._my[r, c]
        self._mx[r, c] += dx / n
        self._my[r, c] += dy / n
        self._cxx[r, c] += dx * (x - self._mx[r, c])
        self._cyy[r, c] += dy * (y - self._my[r, c])
        self._cxy[r, c] += dx * (y - self._my[r, c])

    def num_obs(self) -> np.ndarray:
        return self._n.copy()

    def component_averages(self) -> Tuple[np.ndarray, np.ndarray]:
        """The sample means of the numerators and denominators."""
        return self._mx.copy(), self._my.copy()

    def average(self) -> np.ndarray:
        with np.errstate(divide="ignore", invalid="ignore"):
            res = self._mx / self._my
        res[(self._mx == 0) & (self._my == 0)] = self.zero_over_zero
        res[self._n == 0] = np.nan
        return res

    def covariance(self, r: int, c: int) -> np.ndarray:
        """
        Returns the 2 x 2 sample covariance matrix of (X, Y) in cell
        (r, c), NaN with less than two observations.
        """
        n = self._n[r, c]
        if n < 2:
            return np.full((2, 2), np.nan)
        cxy = self._cxy[r, c]
        return np.array([[self._cxx[r, c], cxy],
                         [cxy, self._cyy[r, c]]]) / (n - 1)

    def variance(self) -> np.ndarray:
        """
        Estimates the variance of X / Y by the delta method: with
        g = (1 / E[Y], -E[X] / E[Y]^2), the variance is g' S g, S being
        the sample covariance of (X, Y).
        """
        with np.errstate(divide="ignore", invalid="ignore"):
            sxx = self._cxx / (self._n - 1)
            syy = self._cyy / (self._n - 1)
            sxy = self._cxy / (self._n - 1)
            gx = 1.0 / self._my
            gy = -self._mx / self._my ** 2
            var = gx * gx * sxx + 2.0 * gx * gy * sxy + gy * gy * syy
        constant = (self._mx == 0) & (self._my == 0) & (sxx == 0) & (syy == 0)
        var[constant] = 0.0
        var[self._n < 2] = np.nan
        return var

    def standard_deviation(self) -> np.ndarray:
        return np.sqrt(self.variance())

    def variance_of_average(self) -> np.ndarray:
        with np.errstate(divide="ignore", invalid="ignore"):
            return self.variance() / self._n

    def confidence_interval(self, level: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        Computes an asymptotic confidence interval on each ratio, using
        the normal distribution and the delta-method variance.
        """
        _check_level(level)
        z = scipy.stats.norm.ppf((1.0 + level) / 2.0)
        half = z * np.sqrt(self.variance_of_average())
        avg = self.average()
        return avg - half, avg + half
