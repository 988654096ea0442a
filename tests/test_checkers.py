# tests/test_checkers.py

"""
Unit tests for the peak trackers (src/callcenter_stats/checkers.py).
"""

import pytest

from callcenter_stats import (
    BusyAgentsChecker,
    CallCenter,
    CallTypeInfo,
    PeriodSchedule,
    QueueSizeChecker,
    RepStatPeriod,
    Segment,
    ServiceLevelParams
)


@pytest.fixture
def center() -> CallCenter:
    """Three agent groups with a segment over groups 0 and 1, two queues."""
    return CallCenter([CallTypeInfo("in")], 3, PeriodSchedule(1, 10.0),
                      [ServiceLevelParams(20.0)], num_waiting_queues=2,
                      group_segments=[Segment([0, 1])])


@pytest.fixture
def busy_checker(center: CallCenter) -> BusyAgentsChecker:
    checker = BusyAgentsChecker(center, RepStatPeriod(center))
    checker.register()
    checker.init()
    return checker


def column(checker, p: int) -> list:
    return [checker.get_measure(r, p) for r in range(checker.num_measures)]


def test_rows_follow_agent_group_layout(busy_checker: BusyAgentsChecker):
    # 3 groups, 1 segment, all groups
    assert busy_checker.num_measures == 5
    assert busy_checker.num_periods == 3


def test_maximum_is_kept(center: CallCenter, busy_checker: BusyAgentsChecker):
    groups = center.agent_groups
    groups[0].begin_service()
    groups[1].begin_service()
    groups[0].end_service()
    groups[2].begin_service()

    # At most two agents were busy at the same time
    assert column(busy_checker, 0) == [1.0, 1.0, 1.0, 2.0, 2.0]


def test_aggregate_rows_use_simultaneous_values(center: CallCenter,
                                                busy_checker: BusyAgentsChecker):
    """The segment row holds the peak of the sum, not the sum of peaks."""
    groups = center.agent_groups
    groups[0].begin_service()
    groups[0].end_service()
    groups[1].begin_service()

    assert column(busy_checker, 0)[3] == 1.0


def test_new_period_is_seeded(center: CallCenter, busy_checker: BusyAgentsChecker):
    center.agent_groups[0].set_counts(busy=3)
    center.periods.set_current_period(1)
    busy_checker.init_for_current_period()

    assert column(busy_checker, 1) == [3.0, 0.0, 0.0, 3.0, 3.0]

    center.agent_groups[0].set_counts(busy=1)
    assert column(busy_checker, 1)[0] == 3.0


def test_init_is_idempotent(center: CallCenter, busy_checker: BusyAgentsChecker):
    center.agent_groups[1].set_counts(busy=2)
    busy_checker.init()
    first = busy_checker.values()
    busy_checker.init()
    assert (busy_checker.values() == first).all()
    assert column(busy_checker, 0) == [0.0, 2.0, 0.0, 2.0, 2.0]


def test_unregister_stops_updates(center: CallCenter, busy_checker: BusyAgentsChecker):
    busy_checker.unregister()
    center.agent_groups[0].begin_service()
    assert column(busy_checker, 0)[0] == 0.0


def test_queue_size_checker(center: CallCenter):
    checker = QueueSizeChecker(center, RepStatPeriod(center))
    checker.register()
    checker.init()
    queues = center.waiting_queues
    queues[0].enqueue()
    queues[0].enqueue()
    queues[1].enqueue()
    queues[0].dequeue()

    # Two queues, no segment: queue 0, queue 1, all queues
    assert column(checker, 0) == [2.0, 1.0, 3.0]
