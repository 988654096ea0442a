# tests/test_matrices.py

"""
Unit tests for the accumulator matrices (src/callcenter_stats/matrices.py).

Covers event-driven sums (with and without sliding windows), the
per-period values of time integrals and the gathering of several
matrices into a measure set.
"""

import numpy as np
import pytest
from pytest import approx

from callcenter_stats import Clock, WaitingQueue
from callcenter_stats.matrices import (
    IntegralMeasureMatrix,
    MeasureSet,
    QueueSizeStat,
    SlidingWindowIntegralMeasureMatrix,
    SlidingWindowSumMatrix,
    SumMatrix
)


@pytest.fixture
def clock() -> Clock:
    return Clock(0.0)


@pytest.fixture
def window() -> SlidingWindowSumMatrix:
    """One measure, three retained periods."""
    return SlidingWindowSumMatrix(1, 3)


def test_sum_matrix_add_and_init():
    m = SumMatrix(2, 3)
    m.add(0, 1, 2.0)
    m.add(0, 1, 3.0)
    m.add(1, 2, 4.0, np.maximum)
    m.add(1, 2, 1.0, np.maximum)

    assert m.get_measure(0, 1) == approx(5.0)
    assert m.get_measure(1, 2) == approx(4.0)
    assert m.values().shape == (2, 3)

    m.init()
    assert not m.values().any()


def test_sum_matrix_values_is_a_copy():
    m = SumMatrix(1, 1)
    values = m.values()
    values[0, 0] = 9.0
    assert m.get_measure(0, 0) == 0.0


def test_sum_matrix_dimensions():
    with pytest.raises(ValueError):
        SumMatrix(1, 0)


def test_sliding_window_relative_reads(window: SlidingWindowSumMatrix):
    window.add(0, 0, 1.0)
    window.add(0, 1, 2.0)
    window.add(0, 2, 3.0)

    # Index 0 is the oldest retained period
    assert [window.get_measure(0, p) for p in range(3)] == approx([1.0, 2.0, 3.0])


def test_sliding_window_moves_forward(window: SlidingWindowSumMatrix):
    window.add(0, 0, 1.0)
    window.add(0, 1, 2.0)
    window.add(0, 2, 3.0)
    window.add(0, 3, 4.0)

    assert window.current_period == 3
    assert [window.get_measure(0, p) for p in range(3)] == approx([2.0, 3.0, 4.0])

    # Period 0 fell out of the window
    window.add(0, 0, 100.0)
    assert window.values()[0].tolist() == approx([2.0, 3.0, 4.0])


def test_sliding_window_before_first_full_window(window: SlidingWindowSumMatrix):
    window.add(0, 1, 5.0)
    assert window.get_measure(0, 0) == 0.0
    assert window.get_measure(0, 2) == approx(5.0)


def test_sliding_window_large_jump_clears(window: SlidingWindowSumMatrix):
    window.add(0, 0, 1.0)
    window.add(0, 1, 2.0)
    window.advance_to(10)
    assert not window.values().any()

    window.init()
    assert window.current_period == 0


def test_integral_matrix_differences(clock: Clock):
    queue = WaitingQueue(0)
    m = IntegralMeasureMatrix(QueueSizeStat(clock, queue), 3)

    # One call waits from time 0 to time 8
    queue.enqueue()
    clock.time = 5.0
    m.new_record()
    clock.time = 8.0
    queue.dequeue()
    clock.time = 10.0

    assert m.num_stored_records == 2
    assert m.get_measure(0, 0) == approx(5.0)
    # The last stored period runs until the current time
    assert m.get_measure(0, 1) == approx(3.0)
    assert m.get_measure(0, 2) == 0.0


def test_integral_matrix_init_discards_history(clock: Clock):
    queue = WaitingQueue(0)
    m = IntegralMeasureMatrix(QueueSizeStat(clock, queue), 2)
    queue.enqueue()
    clock.time = 4.0
    m.init()
    clock.time = 6.0

    assert m.num_stored_records == 1
    assert m.get_measure(0, 0) == approx(2.0)


def test_sliding_window_integral_matrix(clock: Clock):
    queue = WaitingQueue(0)
    m = SlidingWindowIntegralMeasureMatrix(QueueSizeStat(clock, queue), 2)
    queue.enqueue()
    for t in (10.0, 20.0, 30.0):
        clock.time = t
        m.new_record()
    queue.enqueue()
    clock.time = 35.0

    # Retained periods: [20, 30) and the one in progress, [30, 35)
    assert m.get_measure(0, 0) == approx(10.0)
    assert m.get_measure(0, 1) == approx(10.0)


def test_measure_set():
    a = SumMatrix(2, 1)
    b = SumMatrix(2, 1)
    a.add(1, 0, 2.0)
    b.add(1, 0, 5.0)
    ms = MeasureSet([a, b], row=1, compute_sum_row=True)

    assert ms.num_measures == 3
    assert ms.values()[:, 0].tolist() == approx([2.0, 5.0, 7.0])

    ms.init()
    assert not a.values().any()
