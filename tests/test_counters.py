# tests/test_counters.py

"""
Unit tests for the call-by-call counters (src/callcenter_stats/counters.py).

Calls are pushed through the router of a small model, the same way a
simulator would report them, and the matrices of counters are read
back directly.
"""

import pytest
from pytest import approx

from callcenter_stats import (
    Call,
    CallByCallMeasureManager,
    CallCenter,
    CallCounter,
    CallTypeInfo,
    CollectingMode,
    MeasureType,
    OutboundCallCounter,
    PeriodSchedule,
    RepStatPeriod,
    Segment,
    ServiceLevelParams,
    StatParams
)

MT = MeasureType


def make_center(num_in=1, num_out=0, groups=1, periods=1, awt=2.0,
                in_type_segments=(), num_dialers=0) -> CallCenter:
    types = ([CallTypeInfo(f"in{k}") for k in range(num_in)]
             + [CallTypeInfo(f"out{k}", inbound=False) for k in range(num_out)])
    return CallCenter(types, groups, PeriodSchedule(periods, 10.0),
                      [ServiceLevelParams(awt)],
                      num_dialers=num_dialers,
                      in_type_segments=in_type_segments)


def attach(cc: CallCenter, pairs: bool = False,
           params: StatParams = None) -> CallByCallMeasureManager:
    counters = CallByCallMeasureManager(cc, RepStatPeriod(cc, params), pairs)
    cc.router.add_listener(counters)
    return counters


def served(type_id=0, period=1, wait=0.0, group=0, **kwargs) -> Call:
    return Call(type_id, arrival_period=period, exit_period=period,
                begin_service_period=period, queue_time=wait,
                last_agent_group=group, **kwargs)


def abandoned(type_id=0, period=1, wait=0.0, **kwargs) -> Call:
    return Call(type_id, arrival_period=period, exit_period=period,
                queue_time=wait, **kwargs)


def value(counters: CallByCallMeasureManager, mt: MeasureType, row: int, col: int) -> float:
    return counters.matrices[mt].get_measure(row, col)


@pytest.fixture
def single_center() -> CallCenter:
    """One inbound type, one agent group, one main period, AWT of 2."""
    return make_center()


def test_matrix_sizes(single_center: CallCenter):
    counters = CallByCallMeasureManager(single_center, RepStatPeriod(single_center))
    assert counters.matrices[MT.NUM_ARRIVALS].num_periods == 3
    assert counters.matrices[MT.NUM_SERVED_BEFORE_AWT].num_periods == 1
    assert counters.matrices[MT.SUM_SERVED].num_periods == 1


def test_only_requested_measures_are_created(single_center: CallCenter):
    counters = CallByCallMeasureManager(
        single_center, RepStatPeriod(single_center),
        measures=[MT.NUM_ARRIVALS, MT.NUM_BUSY_AGENTS])
    assert list(counters.matrices) == [MT.NUM_ARRIVALS]
    assert counters.has_measures

    # Updates of absent matrices are ignored
    counters.blocked(abandoned())
    assert value(counters, MT.NUM_ARRIVALS, 0, 1) == 1.0


def test_arrivals_are_conserved(single_center: CallCenter):
    """Every arrival is served, abandoned or blocked."""
    counters = attach(single_center)
    router = single_center.router
    for _ in range(4):
        router.notify_served(served(wait=1.0))
    for _ in range(3):
        router.notify_dequeued(abandoned(wait=3.0))
    router.notify_blocked(abandoned())

    arrivals = value(counters, MT.NUM_ARRIVALS, 0, 1)
    outcomes = (value(counters, MT.NUM_SERVED, 0, 1)
                + value(counters, MT.NUM_ABANDONED, 0, 1)
                + value(counters, MT.NUM_BLOCKED, 0, 1))
    assert arrivals == 8.0
    assert outcomes == arrivals


def test_delayed_calls(single_center: CallCenter):
    counters = attach(single_center)
    router = single_center.router
    router.notify_served(served(wait=0.0))
    router.notify_served(served(wait=0.5))
    router.notify_dequeued(abandoned(wait=0.0))
    router.notify_blocked(abandoned())

    # Served without waiting is the only call not delayed
    assert value(counters, MT.NUM_DELAYED, 0, 1) == 3.0


def test_transferred_calls_are_not_counted(single_center: CallCenter):
    counters = attach(single_center)
    single_center.router.notify_dequeued(abandoned(wait=3.0), transfer=True)
    assert value(counters, MT.NUM_ARRIVALS, 0, 1) == 0.0
    assert value(counters, MT.NUM_ABANDONED, 0, 1) == 0.0


def test_awt_counters_are_complementary(single_center: CallCenter):
    counters = attach(single_center)
    router = single_center.router
    for wait in (0.0, 1.0, 2.0, 2.5, 7.0):
        router.notify_served(served(wait=wait))
    for wait in (1.0, 4.0):
        router.notify_dequeued(abandoned(wait=wait))

    # A wait equal to the AWT is within the AWT
    assert value(counters, MT.NUM_SERVED_BEFORE_AWT, 0, 0) == 3.0
    assert value(counters, MT.NUM_SERVED_AFTER_AWT, 0, 0) == 2.0
    assert (value(counters, MT.NUM_SERVED_BEFORE_AWT, 0, 0)
            + value(counters, MT.NUM_SERVED_AFTER_AWT, 0, 0)
            == value(counters, MT.NUM_SERVED, 0, 1))
    assert value(counters, MT.NUM_ABANDONED_BEFORE_AWT, 0, 0) == 1.0
    assert value(counters, MT.NUM_ABANDONED_AFTER_AWT, 0, 0) == 1.0


def test_waiting_and_excess_times(single_center: CallCenter):
    counters = attach(single_center)
    router = single_center.router
    router.notify_served(served(wait=1.0, service_time=4.0))
    router.notify_served(served(wait=5.0, service_time=6.0))
    router.notify_dequeued(abandoned(wait=3.5))

    assert value(counters, MT.SUM_WAITING_TIMES_SERVED, 0, 1) == approx(6.0)
    assert value(counters, MT.SUM_SERVICE_TIMES, 0, 1) == approx(10.0)
    assert value(counters, MT.MAX_WAITING_TIME_SERVED, 0, 1) == approx(5.0)
    assert value(counters, MT.SUM_WAITING_TIMES_ABANDONED, 0, 1) == approx(3.5)
    assert value(counters, MT.MAX_WAITING_TIME_ABANDONED, 0, 1) == approx(3.5)
    # Only waits above the AWT of 2 contribute
    assert value(counters, MT.SUM_EXCESS_TIMES_SERVED, 0, 0) == approx(3.0)
    assert value(counters, MT.SUM_EXCESS_TIMES_ABANDONED, 0, 0) == approx(1.5)


def test_squared_errors_need_an_estimate(single_center: CallCenter):
    counters = attach(single_center)
    router = single_center.router
    router.notify_served(served(wait=1.0, waiting_time_estimate=3.0))
    router.notify_served(served(wait=2.0))

    assert value(counters, MT.SUM_SE_WAITING_TIMES_SERVED, 0, 1) == approx(4.0)


def test_wrong_party_connects():
    cc = make_center(num_in=1, num_out=1)
    counters = attach(cc)
    cc.router.notify_served(served(type_id=1, right_party_connect=False))

    assert value(counters, MT.NUM_WRONG_PARTY_CONNECTS, 0, 1) == 1.0
    assert value(counters, MT.NUM_ARRIVALS, 1, 1) == 0.0


def test_served_call_needs_a_group(single_center: CallCenter):
    counters = attach(single_center)
    with pytest.raises(ValueError):
        counters.served(served(group=None))


def test_awt_rows_with_type_segments():
    """
    Two inbound types and a segment holding type 0. Rows of the AWT
    counters: type 0, type 1, the segment, all inbound types.
    """
    cc = make_center(num_in=2, in_type_segments=[Segment([0])])
    counters = attach(cc)
    cc.router.notify_served(served(type_id=0, wait=1.0))
    cc.router.notify_served(served(type_id=1, wait=1.0))
    cc.router.notify_served(served(type_id=1, wait=1.0))

    before = counters.matrices[MT.NUM_SERVED_BEFORE_AWT]
    assert before.num_measures == 4
    assert [before.get_measure(r, 0) for r in range(4)] == [1.0, 2.0, 1.0, 3.0]


def test_excluded_type_is_not_in_the_total():
    cc = CallCenter([CallTypeInfo("a"), CallTypeInfo("b", excluded_from_total=True)],
                    1, PeriodSchedule(1, 10.0), [ServiceLevelParams(2.0)])
    counters = attach(cc)
    cc.router.notify_served(served(type_id=0))
    cc.router.notify_served(served(type_id=1))

    before = counters.matrices[MT.NUM_SERVED_BEFORE_AWT]
    assert [before.get_measure(r, 0) for r in range(3)] == [1.0, 1.0, 1.0]


def test_awt_columns_per_main_period():
    """Each call also counts in the column of the whole horizon."""
    cc = make_center(periods=2)
    counters = attach(cc)
    cc.router.notify_served(served(period=1))
    cc.router.notify_served(served(period=2))
    cc.router.notify_served(served(period=3))

    before = counters.matrices[MT.NUM_SERVED_BEFORE_AWT]
    assert before.num_periods == 3
    # The wrap-up call uses the AWT of the last main period
    assert [before.get_measure(0, p) for p in range(3)] == [1.0, 2.0, 3.0]


def test_counters_per_type_and_group():
    cc = make_center(groups=2)
    counters = attach(cc, pairs=True)
    cc.router.notify_served(served(group=1))

    assert counters.matrices[MT.NUM_SERVED].num_measures == 2
    assert value(counters, MT.NUM_SERVED, 1, 1) == 1.0
    assert value(counters, MT.SUM_SERVED, 1, 0) == 1.0
    # Group rows of the AWT counters: group 0, group 1, all groups
    before = counters.matrices[MT.NUM_SERVED_BEFORE_AWT]
    assert [before.get_measure(r, 0) for r in range(3)] == [0.0, 1.0, 1.0]


def test_collecting_mode():
    cc = make_center(periods=2)
    params = StatParams(per_period_collecting_mode=CollectingMode.PERIOD_OF_EXIT)
    counters = attach(cc, params=params)
    cc.router.notify_dequeued(Call(0, arrival_period=1, exit_period=2, queue_time=1.0))

    assert value(counters, MT.NUM_ABANDONED, 0, 1) == 0.0
    assert value(counters, MT.NUM_ABANDONED, 0, 2) == 1.0


def test_reset(single_center: CallCenter):
    counters = attach(single_center)
    single_center.router.notify_served(served(wait=1.0))
    counters.init()
    counters.init()
    assert all(not m.values().any() for m in counters.matrices.values())


def test_dial_counters():
    cc = make_center(num_in=1, num_out=2, num_dialers=1)
    stat_period = RepStatPeriod(cc)
    out_counter = OutboundCallCounter(cc, stat_period)
    all_counter = CallCounter(cc, stat_period)
    cc.dialers[0].add_listener(out_counter)
    cc.dialers[0].add_listener(all_counter)

    cc.dialers[0].notify_new_contact(Call(2, arrival_period=1))
    cc.dialers[0].notify_new_contact(Call(2, arrival_period=1))

    assert out_counter.count.get_measure(1, 1) == 2.0
    assert all_counter.count.get_measure(2, 1) == 2.0
    out_counter.init()
    assert out_counter.count.get_measure(1, 1) == 0.0
