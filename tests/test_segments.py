# tests/test_segments.py

"""
Unit tests for segments and aggregate rows (src/callcenter_stats/segments.py).

These tests check that aggregate rows and columns are appended in
the expected order: user-defined segments first, then the implicit
segment regrouping everything.
"""

import numpy as np
import pytest
from pytest import approx

from callcenter_stats import Segment, ConfigurationError
from callcenter_stats.segments import (
    add_row_segments,
    add_row_segments_two_level,
    add_column_segments,
    check_range
)


def test_segment_values_are_sorted_and_unique():
    seg = Segment([3, 1, 3, 2], name="mixed")
    assert seg.values == (1, 2, 3)
    assert seg.num_values == 3
    assert seg.min_value == 1
    assert seg.max_value == 3
    assert 2 in seg
    assert not seg.contains_value(0)


def test_invalid_segments():
    with pytest.raises(ConfigurationError):
        Segment([])
    with pytest.raises(ConfigurationError):
        Segment([-1, 2])


def test_check_range():
    check_range(0, 3, [Segment([0, 2])])
    with pytest.raises(ConfigurationError):
        check_range(0, 3, [Segment([1, 3])])


def test_add_row_segments():
    """Rows 0..2, then segment {0, 1}, then all rows."""
    mat = np.array([[1.0], [2.0], [3.0]])
    res = add_row_segments(mat, np.add, None, [Segment([0, 1])])

    assert res.shape == (5, 1)
    assert res[:, 0].tolist() == approx([1.0, 2.0, 3.0, 3.0, 6.0])


def test_add_row_segments_with_global_mask():
    """A masked row is left out of the all-rows segment only."""
    mat = np.array([[1.0], [2.0], [3.0]])
    res = add_row_segments(mat, np.add, [True, False, True], [Segment([1])])

    assert res[:, 0].tolist() == approx([1.0, 2.0, 3.0, 2.0, 4.0])


def test_add_row_segments_max():
    mat = np.array([[1.0, 7.0], [5.0, 2.0]])
    res = add_row_segments(mat, np.maximum)
    assert res[2].tolist() == approx([5.0, 7.0])


def test_single_row_is_returned_unchanged():
    mat = np.array([[4.0, 2.0]])
    assert add_row_segments(mat, np.add) is mat


def test_add_row_segments_two_level():
    """
    Two types and two groups. Row 2k+i holds type k, group i.
    The result has 3 type rows of 3 group rows each.
    """
    mat = np.array([[1.0], [2.0], [3.0], [4.0]])
    res = add_row_segments_two_level(mat, 2, np.add, None, None, [], [])

    assert res.shape == (9, 1)
    assert res[:, 0].tolist() == approx([
        1.0, 2.0, 3.0,   # type 0: groups 0, 1, all
        3.0, 4.0, 7.0,   # type 1
        4.0, 6.0, 10.0   # all types
    ])


def test_add_row_segments_two_level_single_type():
    """With a single type, only group rows are aggregated."""
    mat = np.array([[1.0], [2.0]])
    res = add_row_segments_two_level(mat, 2, np.add, None, None, [], [])
    assert res[:, 0].tolist() == approx([1.0, 2.0, 3.0])


def test_add_row_segments_two_level_bad_shape():
    mat = np.zeros((3, 1))
    with pytest.raises(ConfigurationError):
        add_row_segments_two_level(mat, 2, np.add, None, None, [], [])


def test_add_column_segments():
    mat = np.array([[1.0, 2.0, 3.0]])
    res = add_column_segments(mat, np.add, [Segment([0, 1])])
    assert res[0].tolist() == approx([1.0, 2.0, 3.0, 3.0, 6.0])
