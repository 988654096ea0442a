# tests/test_sim_stat.py

"""
Integration tests for SimCallCenterStat (src/callcenter_stats/stat/sim_stat.py).

Each test drives a small model through one or more replications:
counters are reset, calls are reported by the router, then the
statistical probes receive one observation. The tests then check the
estimates of the performance measures.
"""

import numpy as np
import pytest
from pytest import approx

from callcenter_stats import (
    Call,
    CallCenter,
    CallTypeInfo,
    ConfigurationError,
    MeasureType,
    MeasureNotAvailableError,
    MatrixOfRatioTallies,
    MatrixOfTallies,
    PM,
    PeriodSchedule,
    RepMeasureManager,
    ServiceLevelParams,
    SimCallCenterStat,
    StatParams,
    measure_types_for
)

SCENARIO_MEASURES = (
    PM.SERVICE_LEVEL,
    PM.ABANDONMENT_RATIO,
    PM.ABANDONMENT_RATIO_REP,
    PM.SPEED_OF_ANSWER,
    PM.RATE_OF_ARRIVALS,
    PM.SERVICE_LEVEL_IND01,
    PM.BUSY_AGENTS_END_SIM
)


def make_center(num_in=1, num_out=0, groups=1, periods=1, target=0.8) -> CallCenter:
    types = ([CallTypeInfo(f"in{k}") for k in range(num_in)]
             + [CallTypeInfo(f"out{k}", inbound=False) for k in range(num_out)])
    return CallCenter(types, groups, PeriodSchedule(periods, 10.0),
                      [ServiceLevelParams(2.0, target)])


def make_stat(cc: CallCenter, pms, params: StatParams = None) -> SimCallCenterStat:
    params = params if params is not None else StatParams()
    manager = RepMeasureManager(cc, params, measure_types_for(*pms))
    manager.register_listeners()
    manager.init_measure_matrices()
    return SimCallCenterStat.from_params(cc, manager, params, pms)


def replicate(stat: SimCallCenterStat, served_waits=(), abandoned_waits=(),
              blocked=0, type_id=0, group=0, raw=False):
    """Runs one replication whose calls all arrive in main period 1."""
    cc = stat.cc
    stat.manager.init_measure_matrices()
    for wait in served_waits:
        cc.router.notify_served(Call(type_id, arrival_period=1, exit_period=1,
                                     begin_service_period=1, queue_time=wait,
                                     last_agent_group=group))
    for wait in abandoned_waits:
        cc.router.notify_dequeued(Call(type_id, arrival_period=1, exit_period=1,
                                       queue_time=wait))
    for _ in range(blocked):
        cc.router.notify_blocked(Call(type_id, arrival_period=1, exit_period=1))
    stat.add_obs()
    if raw:
        stat.add_obs_raw_statistics()


@pytest.fixture
def scenario() -> SimCallCenterStat:
    """
    One replication: 10 arrivals, 7 served after waiting 1, 2 abandoned
    after waiting 5, 1 blocked. The AWT is 2 with a target of 0.8.
    """
    stat = make_stat(make_center(), SCENARIO_MEASURES)
    replicate(stat, served_waits=[1.0] * 7, abandoned_waits=[5.0, 5.0],
              blocked=1, raw=True)
    return stat


def test_probe_kinds_and_shapes(scenario: SimCallCenterStat):
    assert isinstance(scenario.get_matrix_of_stat_probes(PM.SERVICE_LEVEL),
                      MatrixOfRatioTallies)
    assert isinstance(scenario.get_matrix_of_stat_probes(PM.ABANDONMENT_RATIO_REP),
                      MatrixOfTallies)
    for pm in SCENARIO_MEASURES:
        assert scenario.get_matrix_of_stat_probes(pm).shape == (1, 1)


def test_scenario_estimates(scenario: SimCallCenterStat):
    assert scenario.get_average(PM.SERVICE_LEVEL)[0, 0] == approx(0.7)
    assert scenario.get_average(PM.ABANDONMENT_RATIO)[0, 0] == approx(0.2)
    assert scenario.get_average(PM.ABANDONMENT_RATIO_REP)[0, 0] == approx(0.2)
    assert scenario.get_average(PM.SPEED_OF_ANSWER)[0, 0] == approx(1.0)
    assert scenario.get_average(PM.RATE_OF_ARRIVALS)[0, 0] == approx(10.0)


def test_scenario_raw_statistics(scenario: SimCallCenterStat):
    # 0.7 is below the target of 0.8
    assert scenario.get_average(PM.SERVICE_LEVEL_IND01)[0, 0] == 0.0
    assert scenario.get_average(PM.BUSY_AGENTS_END_SIM)[0, 0] == 0.0


def test_indicator_reaches_target():
    stat = make_stat(make_center(target=0.5), [PM.SERVICE_LEVEL_IND01])
    replicate(stat, served_waits=[1.0] * 7, abandoned_waits=[5.0] * 3, raw=True)
    assert stat.get_average(PM.SERVICE_LEVEL_IND01)[0, 0] == 1.0


def test_second_replication(scenario: SimCallCenterStat):
    """
    Second replication: 5 served after waiting 3, 5 served without
    waiting. Ratios of expectations pool the sums of both replications.
    """
    replicate(scenario, served_waits=[3.0] * 5 + [0.0] * 5)

    assert scenario.get_average(PM.SERVICE_LEVEL)[0, 0] == approx(12.0 / 20.0)
    assert scenario.get_average(PM.ABANDONMENT_RATIO)[0, 0] == approx(0.1)
    assert scenario.get_average(PM.ABANDONMENT_RATIO_REP)[0, 0] == approx(0.1)
    assert scenario.get_average(PM.SPEED_OF_ANSWER)[0, 0] == approx(22.0 / 17.0)
    assert scenario.get_variance(PM.ABANDONMENT_RATIO_REP)[0, 0] == approx(0.02)
    assert scenario.get_min(PM.ABANDONMENT_RATIO_REP)[0, 0] == 0.0
    assert scenario.get_max(PM.ABANDONMENT_RATIO_REP)[0, 0] == approx(0.2)


def test_zero_over_zero_without_calls():
    stat = make_stat(make_center(), [PM.SERVICE_LEVEL, PM.ABANDONMENT_RATIO,
                                     PM.SERVICE_LEVEL_REP])
    replicate(stat)
    assert stat.get_average(PM.SERVICE_LEVEL)[0, 0] == 1.0
    assert stat.get_average(PM.SERVICE_LEVEL_REP)[0, 0] == 1.0
    assert stat.get_average(PM.ABANDONMENT_RATIO)[0, 0] == 0.0


def test_missing_counters_are_rejected():
    cc = make_center()
    manager = RepMeasureManager(cc, StatParams(), measure_types_for(PM.RATE_OF_ARRIVALS))
    with pytest.raises(ConfigurationError):
        SimCallCenterStat(cc, manager, pms=[PM.SERVICE_LEVEL])


def test_unknown_measure_query(scenario: SimCallCenterStat):
    assert not scenario.has_performance_measure(PM.OCCUPANCY)
    with pytest.raises(MeasureNotAvailableError):
        scenario.get_average(PM.OCCUPANCY)
    with pytest.raises(MeasureNotAvailableError):
        scenario.get_min(PM.SERVICE_LEVEL)


def test_duplicate_measures_get_one_probe():
    stat = make_stat(make_center(), [PM.RATE_OF_ARRIVALS, PM.RATE_OF_ARRIVALS])
    assert stat.performance_measures == [PM.RATE_OF_ARRIVALS]


def test_inbound_arrivals():
    """
    Two inbound types and one outbound type. Inbound rows regroup the
    inbound types only.
    """
    cc = make_center(num_in=2, num_out=1)
    stat = make_stat(cc, [PM.RATE_OF_ARRIVALS, PM.RATE_OF_ARRIVALS_IN])
    stat.manager.init_measure_matrices()
    for type_id in (0, 0, 1, 2):
        cc.router.notify_blocked(Call(type_id, arrival_period=1, exit_period=1))
    stat.add_obs()

    assert stat.get_average(PM.RATE_OF_ARRIVALS)[:, 0].tolist() == [2.0, 1.0, 1.0, 4.0]
    assert stat.get_average(PM.RATE_OF_ARRIVALS_IN)[:, 0].tolist() == [2.0, 1.0, 3.0]


def test_served_rates():
    cc = make_center(groups=2)
    stat = make_stat(cc, [PM.SERVED_RATES])
    for group in (0, 0, 1):
        cc.router.notify_served(Call(0, arrival_period=1, exit_period=1,
                                     begin_service_period=1, last_agent_group=group))
    stat.add_obs()

    # One row per type, one column per group and for all groups
    assert stat.get_average(PM.SERVED_RATES).tolist() == [[2.0, 1.0, 3.0]]


def test_busy_agents_at_end():
    cc = make_center(groups=2)
    stat = make_stat(cc, [PM.BUSY_AGENTS_END_SIM, PM.QUEUE_SIZE_END_SIM])
    cc.agent_groups[0].set_counts(busy=1)
    cc.agent_groups[1].set_counts(busy=2)
    cc.waiting_queues[0].enqueue()
    stat.add_obs_raw_statistics()

    assert stat.get_average(PM.BUSY_AGENTS_END_SIM)[:, 0].tolist() == [1.0, 2.0, 3.0]
    assert stat.get_average(PM.QUEUE_SIZE_END_SIM)[0, 0] == 1.0

    stat.init_raw_statistics()
    assert not stat.get_matrix_of_tallies(PM.BUSY_AGENTS_END_SIM).num_obs().any()


def test_partial_range_feeds_selected_columns():
    cc = make_center(periods=2)
    stat = make_stat(cc, [PM.RATE_OF_ARRIVALS])
    stat.add_obs(0, 1)
    assert stat.get_matrix_of_tallies(PM.RATE_OF_ARRIVALS).num_obs().tolist() == [[1, 0, 0]]

    stat.add_obs()
    assert stat.get_matrix_of_tallies(PM.RATE_OF_ARRIVALS).num_obs().tolist() == [[2, 1, 1]]


def test_recompute_time_aggregates():
    """
    Main period 1 has two observations (2 and 4), main period 2 has
    one (6). The last column becomes 3 + 6.
    """
    cc = make_center(periods=2)
    stat = make_stat(cc, [PM.RATE_OF_ARRIVALS, PM.ABANDONMENT_RATIO])
    arrivals = stat.get_matrix_of_tallies(PM.RATE_OF_ARRIVALS)
    for c, x in ((0, 2.0), (0, 4.0), (1, 6.0), (2, 100.0)):
        arrivals.add_cell(0, c, x)
    ratio = stat.get_matrix_of_ratio_tallies(PM.ABANDONMENT_RATIO)
    ratio.add_cell(0, 0, 1.0, 4.0)
    ratio.add_cell(0, 1, 1.0, 6.0)

    stat.recompute_time_aggregates()

    assert arrivals.average()[0, 2] == approx(9.0)
    assert arrivals.num_obs()[0, 2] == 1
    assert ratio.average()[0, 2] == approx(0.2)


def test_recompute_time_aggregates_normalized():
    cc = make_center(periods=2)
    stat = make_stat(cc, [PM.RATE_OF_ARRIVALS],
                     StatParams(normalize_to_default_unit=True))
    arrivals = stat.get_matrix_of_tallies(PM.RATE_OF_ARRIVALS)
    arrivals.add_cell(0, 0, 0.3)
    arrivals.add_cell(0, 1, 0.6)

    stat.recompute_time_aggregates()

    # Duration-weighted average of the two periods of 10
    assert arrivals.average()[0, 2] == approx(0.45)


def test_consistency_checks():
    pms = [PM.SERVICE_LEVEL, PM.RATE_OF_SERVICES_AFTER_AWT, PM.RATE_OF_SERVICES]
    stat = make_stat(make_center(), pms, StatParams(check_consistency=True))
    replicate(stat, served_waits=[1.0, 3.0])
    assert stat.run_consistency_checks()

    stat.manager.get_measure_matrix(MeasureType.NUM_SERVED).add(0, 1, 1.0)
    stat.cache.clear()
    assert not stat.run_consistency_checks()


def test_confidence_interval_of_ratio(scenario: SimCallCenterStat):
    replicate(scenario, served_waits=[3.0] * 5 + [0.0] * 5)
    low, high = scenario.get_confidence_interval(PM.SERVICE_LEVEL, 0.95)
    avg = scenario.get_average(PM.SERVICE_LEVEL)
    assert low[0, 0] < avg[0, 0] < high[0, 0]
    assert np.isfinite(low).all()


PAIR_MEASURES = (
    PM.SERVICE_LEVEL,
    PM.SERVICE_LEVEL_G,
    PM.WAITING_TIME_G,
    PM.SPEED_OF_ANSWER
)


def blend_replication(params: StatParams) -> SimCallCenterStat:
    """
    Two inbound types, one outbound type, two groups, two main periods,
    AWT 2:

    - period 1: type 0 served by group 1 after waiting 1;
    - period 2: type 1 served by group 0 after waiting 3, the outbound
      type served by group 0 without waiting, type 0 abandoned after 5.
    """
    cc = make_center(num_in=2, num_out=1, groups=2, periods=2)
    stat = make_stat(cc, PAIR_MEASURES, params)
    stat.manager.init_measure_matrices()
    cc.router.notify_served(Call(0, arrival_period=1, exit_period=1,
                                 begin_service_period=1, queue_time=1.0,
                                 last_agent_group=1))
    cc.router.notify_served(Call(1, arrival_period=2, exit_period=2,
                                 begin_service_period=2, queue_time=3.0,
                                 last_agent_group=0))
    cc.router.notify_served(Call(2, arrival_period=2, exit_period=2,
                                 begin_service_period=2, last_agent_group=0))
    cc.router.notify_dequeued(Call(0, arrival_period=2, exit_period=2,
                                   queue_time=5.0))
    stat.add_obs()
    return stat


def test_blend_service_level_per_period():
    stat = blend_replication(StatParams(check_consistency=True))
    sl = stat.get_average(PM.SERVICE_LEVEL)

    # Rows: type 0, type 1, all inbound types; columns: periods 1, 2, total.
    # Period 1 of type 1 has no call and falls back to 1.
    assert sl.shape == (3, 3)
    assert sl[0].tolist() == approx([1.0, 0.0, 0.5])
    assert sl[1].tolist() == approx([1.0, 0.0, 0.0])
    assert sl[2].tolist() == approx([1.0, 0.0, 1.0 / 3.0])
    assert stat.run_consistency_checks()


def test_blend_speed_of_answer_includes_outbound():
    stat = blend_replication(StatParams())
    soa = stat.get_average(PM.SPEED_OF_ANSWER)
    # All types: 1 / 1, then (3 + 0) / 2, then 4 / 3
    assert soa[-1].tolist() == approx([1.0, 1.5, 4.0 / 3.0])


def test_blend_group_measures_repeat_type_rows():
    """Without pair counters, every group row of a type holds the type's value."""
    stat = blend_replication(StatParams())

    wt = stat.get_average(PM.WAITING_TIME_G)
    # Four type rows (3 types and all), each split into groups 0, 1 and all
    assert wt.shape == (12, 3)
    for row in range(3):
        # (1) / 1, then (5) / 1 for the abandoned call, then 6 / 2
        assert wt[row].tolist() == approx([1.0, 5.0, 3.0])

    slg = stat.get_average(PM.SERVICE_LEVEL_G)
    assert slg.shape == (9, 3)
    for row in range(3):
        assert slg[row].tolist() == approx([1.0, 0.0, 0.5])


def test_blend_group_measures_with_pair_counters():
    stat = blend_replication(StatParams(contact_type_agent_group=True))

    wt = stat.get_average(PM.WAITING_TIME_G)
    # Type 0, group 0: no call in period 1 (0 / 0 gives 0), then only
    # the abandoned call, which belongs to every group row
    assert wt[0].tolist() == approx([0.0, 5.0, 5.0])
    # Type 0, group 1: served after waiting 1, then the abandoned call
    assert wt[1].tolist() == approx([1.0, 5.0, 3.0])
    assert wt[2].tolist() == approx([1.0, 5.0, 3.0])

    slg = stat.get_average(PM.SERVICE_LEVEL_G)
    # Type 0: group 0 never serves it, group 1 serves it in period 1
    assert slg[0].tolist() == approx([1.0, 0.0, 0.0])
    assert slg[1].tolist() == approx([1.0, 0.0, 0.5])
    assert slg[2].tolist() == approx([1.0, 0.0, 0.5])
    # Type 1 is served late by group 0; group 1 never sees it
    assert slg[3].tolist() == approx([1.0, 0.0, 0.0])
    assert slg[4].tolist() == approx([1.0, 1.0, 1.0])


def test_occupancy_per_group_and_period():
    """
    Both groups have 2 scheduled agents. Group 0 has 1 busy agent in
    period 1 and 2 in period 2; group 1 has 2 busy agents throughout.
    """
    cc = make_center(num_in=1, groups=2, periods=2)
    stat = make_stat(cc, [PM.OCCUPANCY])
    manager = stat.manager

    cc.periods.set_current_period(1)
    manager.update_current_period()
    cc.agent_groups[0].set_counts(busy=1, working=2, scheduled=2)
    cc.agent_groups[1].set_counts(busy=2, working=2, scheduled=2)
    cc.clock.time = 10.0
    cc.agent_groups[0].set_counts(busy=2)
    cc.periods.set_current_period(2)
    manager.update_current_period()
    cc.clock.time = 20.0
    cc.periods.set_current_period(3)
    manager.update_current_period()
    stat.add_obs()

    occ = stat.get_average(PM.OCCUPANCY)
    # Rows: group 0, group 1, all groups
    assert occ[0].tolist() == approx([0.5, 1.0, 0.75])
    assert occ[1].tolist() == approx([1.0, 1.0, 1.0])
    assert occ[2].tolist() == approx([0.75, 1.0, 0.875])
