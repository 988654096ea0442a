# tests/test_stat_combinators.py

"""
Unit tests for the collections built on top of other collections of
probes: StatCallCenterStat, ChainCallCenterStat and CovFMMCallCenterStat
(src/callcenter_stats/stat/).
"""

import math

import numpy as np
import pytest
from pytest import approx

from callcenter_stats import (
    ChainCallCenterStat,
    CovFMMCallCenterStat,
    MatrixOfRatioTallies,
    MatrixOfTallies,
    MeasureNotAvailableError,
    PM,
    StatCallCenterStat,
    StatType
)
from callcenter_stats.stat.base import AbstractCallCenterStatProbes


class FixedStat(AbstractCallCenterStatProbes):
    """A collection of probes fed directly by the tests."""

    def __init__(self, tallies=None, ratios=None):
        super().__init__()
        self.tally_map.update(tallies or {})
        self.ratio_tally_map.update(ratios or {})


@pytest.fixture
def source() -> FixedStat:
    """Arrival rates 2 and 4; service level pairs (1, 2) and (3, 4)."""
    arrivals = MatrixOfTallies(1, 1)
    arrivals.add([[2.0]])
    arrivals.add([[4.0]])
    sl = MatrixOfRatioTallies(1, 1)
    sl.add([[1.0]], [[2.0]])
    sl.add([[3.0]], [[4.0]])
    return FixedStat({PM.RATE_OF_ARRIVALS: arrivals}, {PM.SERVICE_LEVEL: sl})


def test_stat_of_stats_rejects_none(source: FixedStat):
    with pytest.raises(ValueError):
        StatCallCenterStat(None, StatType.AVERAGE)
    with pytest.raises(ValueError):
        StatCallCenterStat(source, None)


def test_ratios_skipped_without_fmm(source: FixedStat):
    assert StatCallCenterStat(source, StatType.AVERAGE).performance_measures == [
        PM.RATE_OF_ARRIVALS]
    with_fmm = StatCallCenterStat(source, StatType.AVERAGE, fmm=True)
    assert with_fmm.performance_measures == [PM.RATE_OF_ARRIVALS, PM.SERVICE_LEVEL]


def test_averages_of_two_batches(source: FixedStat):
    """Batch averages 3 and 7: mean 5, variance 8."""
    outer = StatCallCenterStat(source, StatType.AVERAGE, fmm=True)
    outer.add_stat()

    source.init()
    source.get_matrix_of_tallies(PM.RATE_OF_ARRIVALS).add([[6.0]])
    source.get_matrix_of_tallies(PM.RATE_OF_ARRIVALS).add([[8.0]])
    source.get_matrix_of_ratio_tallies(PM.SERVICE_LEVEL).add([[1.0]], [[1.0]])
    outer.add_stat()

    assert outer.get_average(PM.RATE_OF_ARRIVALS)[0, 0] == approx(5.0)
    assert outer.get_variance(PM.RATE_OF_ARRIVALS)[0, 0] == approx(8.0)
    # Ratio estimates 2/3 then 1
    assert outer.get_average(PM.SERVICE_LEVEL)[0, 0] == approx(5.0 / 6.0)
    assert outer.get_matrix_of_tallies(PM.SERVICE_LEVEL).num_obs()[0, 0] == 2


def test_standard_deviation_of_batch(source: FixedStat):
    outer = StatCallCenterStat(source, StatType.STANDARD_DEVIATION, keep_obs=True)
    outer.add_stat()
    assert outer.get_matrix_of_tallies(PM.RATE_OF_ARRIVALS).observations(0, 0) == [
        approx(math.sqrt(2.0))]


def test_variance_of_average(source: FixedStat):
    outer = StatCallCenterStat(source, StatType.VARIANCE_OF_AVERAGE)
    outer.add_stat()
    assert outer.get_average(PM.RATE_OF_ARRIVALS)[0, 0] == approx(1.0)


def test_chain_rejects_none(source: FixedStat):
    with pytest.raises(ValueError):
        ChainCallCenterStat(source, None)


def test_chain_reads_first_collection_first(source: FixedStat):
    other = MatrixOfTallies(1, 1)
    other.add([[10.0]])
    first = FixedStat({PM.RATE_OF_ARRIVALS: other})
    chain = ChainCallCenterStat(first, source)

    assert chain.performance_measures == [PM.RATE_OF_ARRIVALS, PM.SERVICE_LEVEL]
    assert chain.get_average(PM.RATE_OF_ARRIVALS)[0, 0] == 10.0
    assert chain.get_average(PM.SERVICE_LEVEL)[0, 0] == approx(2.0 / 3.0)
    assert chain.get_matrices_of_stat_probes()[PM.RATE_OF_ARRIVALS] is other
    assert chain.get_matrix_of_ratio_tallies(PM.SERVICE_LEVEL) is \
        source.get_matrix_of_ratio_tallies(PM.SERVICE_LEVEL)


def test_chain_missing_measure(source: FixedStat):
    chain = ChainCallCenterStat(FixedStat(), source)
    assert not chain.has_performance_measure(PM.OCCUPANCY)
    with pytest.raises(MeasureNotAvailableError):
        chain.get_average(PM.OCCUPANCY)


def test_chain_init_resets_both(source: FixedStat):
    other = MatrixOfTallies(1, 1)
    other.add([[10.0]])
    chain = ChainCallCenterStat(FixedStat({PM.AVG_QUEUE_SIZE: other}), source)
    chain.init()
    assert other.num_obs()[0, 0] == 0
    assert source.get_matrix_of_tallies(PM.RATE_OF_ARRIVALS).num_obs()[0, 0] == 0


def test_covariance_of_ratios(source: FixedStat):
    cov = CovFMMCallCenterStat(source)
    assert list(cov.stat_map) == [PM.SERVICE_LEVEL]

    cov.add_stat()
    # Sample variances and covariance of (1, 3) and (2, 4) are all 2
    assert np.allclose(cov.covariance(PM.SERVICE_LEVEL, 0, 0), 2.0)


def test_weighted_covariance(source: FixedStat):
    cov = CovFMMCallCenterStat(source, var_weighted=True)
    cov.add_stat()
    assert np.allclose(cov.covariance(PM.SERVICE_LEVEL, 0, 0), 1.0)

    cov.init()
    assert np.isnan(cov.covariance(PM.SERVICE_LEVEL, 0, 0)).all()


def test_covariance_of_unknown_measure(source: FixedStat):
    cov = CovFMMCallCenterStat(source)
    with pytest.raises(MeasureNotAvailableError):
        cov.covariance(PM.RATE_OF_ARRIVALS, 0, 0)
