import logging
from collections import defaultdict

import pytest

from cpusched.algorithms import (
    ALGORITHMS,
    HoldSet,
    by_priority,
    by_remaining,
    run_algorithm,
    run_all,
    schedule_fcfs,
    schedule_priority,
    schedule_rr,
    schedule_sjf,
)
from cpusched.errors import InvalidArgumentsError
from cpusched.models import Process


def _procs():
    return [
        Process(1, burst_time=4, arrival_time=0),
        Process(2, burst_time=3, arrival_time=2),
        Process(3, burst_time=1, arrival_time=3),
    ]


def _srtf_procs():
    return [
        Process(1, burst_time=8, arrival_time=0),
        Process(2, burst_time=4, arrival_time=1),
        Process(3, burst_time=9, arrival_time=2),
        Process(4, burst_time=5, arrival_time=3),
    ]


def _priority_procs():
    return [
        Process(1, burst_time=10, arrival_time=0, priority=3),
        Process(2, burst_time=1, arrival_time=1, priority=1),
        Process(3, burst_time=2, arrival_time=2, priority=4),
        Process(4, burst_time=1, arrival_time=3, priority=5),
        Process(5, burst_time=5, arrival_time=4, priority=2),
    ]


def _trace(result):
    return [(s.pid, s.start_time, s.end_time) for s in result.timeline]


def _waits(result):
    return {r.pid: r.waiting_time for r in result.rows}


def test_fcfs_metrics():
    res = schedule_fcfs(_procs())
    assert [r.waiting_time for r in res.rows] == [0, 2, 4]
    assert [r.completion_time for r in res.rows] == [4, 7, 8]
    assert [r.turnaround_time for r in res.rows] == [4, 5, 5]
    assert res.summary.avg_waiting == pytest.approx(2.0)
    assert res.summary.avg_turnaround == pytest.approx(4.667, abs=1e-3)
    assert res.summary.throughput == pytest.approx(0.375)


def test_fcfs_order_follows_arrival():
    res = schedule_fcfs(list(reversed(_procs())))
    assert [s.pid for s in res.timeline] == [1, 2, 3]
    assert [r.pid for r in res.rows] == [1, 2, 3]
    assert len(res.timeline) == 3


def test_fcfs_waits_for_late_arrival():
    res = schedule_fcfs([Process(1, burst_time=2, arrival_time=0), Process(2, burst_time=1, arrival_time=5)])
    assert _trace(res) == [(1, 0, 2), (2, 5, 6)]
    assert _waits(res) == {1: 0, 2: 0}


def test_fcfs_zero_arrival_gets_its_own_wait():
    res = schedule_fcfs([Process(1, burst_time=4, arrival_time=0), Process(2, burst_time=3, arrival_time=0)])
    assert _trace(res) == [(1, 0, 4), (2, 4, 7)]
    assert _waits(res) == {1: 0, 2: 4}


def test_sjf_preempts_for_shorter_arrival():
    res = schedule_sjf(_srtf_procs())
    assert _trace(res) == [(1, 0, 1), (2, 1, 5), (4, 5, 10), (1, 10, 17), (3, 17, 26)]
    assert [r.pid for r in res.rows] == [2, 4, 1, 3]
    assert _waits(res) == {1: 9, 2: 0, 3: 15, 4: 2}
    assert res.summary.avg_waiting == pytest.approx(6.5)
    assert res.summary.throughput == pytest.approx(4 / 26)


def test_sjf_arrival_at_completion_does_not_preempt():
    res = schedule_sjf([Process(1, burst_time=3, arrival_time=0), Process(2, burst_time=1, arrival_time=3)])
    assert _trace(res) == [(1, 0, 3), (2, 3, 4)]


def test_sjf_arrival_before_completion_preempts():
    res = schedule_sjf([Process(1, burst_time=3, arrival_time=0), Process(2, burst_time=1, arrival_time=2)])
    assert _trace(res) == [(1, 0, 2), (2, 2, 3), (1, 3, 4)]
    assert _waits(res) == {1: 1, 2: 0}


def test_sjf_equal_burst_does_not_preempt():
    res = schedule_sjf([Process(1, burst_time=3, arrival_time=0), Process(2, burst_time=3, arrival_time=1)])
    assert _trace(res) == [(1, 0, 3), (2, 3, 6)]


def test_sjf_held_ties_break_by_pid():
    res = schedule_sjf(
        [
            Process(1, burst_time=6, arrival_time=0),
            Process(3, burst_time=7, arrival_time=1),
            Process(2, burst_time=7, arrival_time=2),
        ]
    )
    assert _trace(res) == [(1, 0, 6), (2, 6, 13), (3, 13, 20)]


def test_sjf_best_held_runs_before_queued_work():
    res = schedule_sjf(
        [
            Process(1, burst_time=5, arrival_time=0),
            Process(2, burst_time=2, arrival_time=1),
            Process(3, burst_time=4, arrival_time=2),
            Process(4, burst_time=1, arrival_time=10),
        ]
    )
    assert _trace(res) == [(1, 0, 1), (2, 1, 3), (1, 3, 7), (3, 7, 10), (4, 10, 11), (3, 11, 12)]
    assert [r.pid for r in res.rows] == [2, 1, 4, 3]
    assert _waits(res) == {1: 2, 2: 0, 3: 6, 4: 0}


def test_sjf_turnaround_uses_original_burst():
    res = schedule_sjf(_srtf_procs())
    p1 = next(r for r in res.rows if r.pid == 1)
    assert p1.burst_time == 8
    assert p1.turnaround_time == 17


def test_priority_preempts_for_more_urgent_arrival():
    res = schedule_priority(_priority_procs())
    assert _trace(res) == [
        (1, 0, 1),
        (2, 1, 2),
        (1, 2, 4),
        (5, 4, 9),
        (1, 9, 16),
        (3, 16, 18),
        (4, 18, 19),
    ]
    assert [r.pid for r in res.rows] == [2, 5, 1, 3, 4]
    assert _waits(res) == {1: 6, 2: 0, 3: 14, 4: 15, 5: 0}


def test_priority_ignores_burst_length():
    res = schedule_priority(
        [
            Process(1, burst_time=4, arrival_time=0, priority=1),
            Process(2, burst_time=2, arrival_time=1, priority=5),
        ]
    )
    assert _trace(res) == [(1, 0, 4), (2, 4, 6)]


def test_priority_arrival_at_completion_does_not_preempt():
    res = schedule_priority(
        [
            Process(1, burst_time=3, arrival_time=0, priority=5),
            Process(2, burst_time=1, arrival_time=3, priority=1),
        ]
    )
    assert _trace(res) == [(1, 0, 3), (2, 3, 4)]


def test_priority_equal_priority_does_not_preempt():
    res = schedule_priority(
        [
            Process(1, burst_time=3, arrival_time=0, priority=2),
            Process(2, burst_time=3, arrival_time=1, priority=2),
        ]
    )
    assert _trace(res) == [(1, 0, 3), (2, 3, 6)]


@pytest.mark.parametrize("schedule", [schedule_sjf, schedule_priority])
def test_preemptive_schedulers_jump_idle_gap(schedule):
    procs = [
        Process(1, burst_time=2, arrival_time=0, priority=1),
        Process(2, burst_time=4, arrival_time=5, priority=3),
        Process(3, burst_time=1, arrival_time=6, priority=2),
    ]
    res = schedule(procs)
    assert _trace(res) == [(1, 0, 2), (2, 5, 6), (3, 6, 7), (2, 7, 10)]
    assert _waits(res) == {1: 0, 2: 1, 3: 0}


def test_priority_resorts_by_arrival():
    res = schedule_priority(list(reversed(_priority_procs())))
    assert _trace(res) == _trace(schedule_priority(_priority_procs()))


def test_rr_final_slice_ends_at_completion():
    res = schedule_rr([Process(1, burst_time=7, arrival_time=0)], quantum=3)
    assert _trace(res) == [(1, 0, 3), (1, 3, 6), (1, 6, 7)]
    row = res.rows[0]
    assert row.completion_time == 7
    assert row.waiting_time == 0
    assert row.turnaround_time == 7


def test_rr_rotation():
    res = schedule_rr(
        [
            Process(1, burst_time=5, arrival_time=0),
            Process(2, burst_time=3, arrival_time=1),
            Process(3, burst_time=1, arrival_time=2),
        ],
        quantum=3,
    )
    assert _trace(res) == [(1, 0, 3), (2, 3, 6), (3, 6, 7), (1, 7, 9)]
    assert [r.pid for r in res.rows] == [2, 3, 1]
    assert _waits(res) == {1: 4, 2: 2, 3: 4}


def test_rr_runs_requeued_work_before_late_arrival():
    res = schedule_rr([Process(1, burst_time=6, arrival_time=0), Process(2, burst_time=2, arrival_time=10)], quantum=3)
    assert _trace(res) == [(1, 0, 3), (1, 3, 6), (2, 10, 12)]
    assert [(r.pid, r.completion_time) for r in res.rows] == [(1, 6), (2, 12)]
    assert _waits(res) == {1: 0, 2: 0}


def test_rr_idles_only_when_nothing_has_arrived():
    res = schedule_rr([Process(1, burst_time=5, arrival_time=5), Process(2, burst_time=4, arrival_time=11)], quantum=3)
    assert _trace(res) == [(1, 5, 8), (1, 8, 10), (2, 11, 14), (2, 14, 15)]


def test_rr_slice_lengths():
    quantum = 3
    procs = _srtf_procs()
    res = schedule_rr(procs, quantum=quantum)

    by_pid = defaultdict(list)
    for s in res.timeline:
        by_pid[s.pid].append(s.duration)

    for p in procs:
        durations = by_pid[p.pid]
        assert all(d == quantum for d in durations[:-1])
        assert 0 < durations[-1] <= quantum
        assert sum(durations) == p.burst_time


def test_rr_default_quantum():
    res = schedule_rr(_procs())
    assert res.quantum == 3


def test_rr_rejects_non_positive_quantum():
    with pytest.raises(InvalidArgumentsError):
        schedule_rr(_procs(), quantum=0)


@pytest.mark.parametrize("name", list(ALGORITHMS))
@pytest.mark.parametrize("factory", [_procs, _srtf_procs, _priority_procs])
def test_row_invariants_and_trace_shape(name, factory):
    procs = factory()
    res = run_algorithm(name, procs)

    assert sorted(r.pid for r in res.rows) == sorted(p.pid for p in procs)
    for r in res.rows:
        assert r.turnaround_time == r.burst_time + r.waiting_time
        assert r.completion_time == r.arrival_time + r.waiting_time + r.burst_time
        assert r.waiting_time >= 0

    for prev, nxt in zip(res.timeline, res.timeline[1:]):
        assert prev.end_time <= nxt.start_time
    assert all(s.end_time > s.start_time for s in res.timeline)
    assert sum(s.duration for s in res.timeline) == sum(p.burst_time for p in procs)


@pytest.mark.parametrize("name", list(ALGORITHMS))
def test_empty_input_reports_no_data(name):
    res = run_algorithm(name, [])
    assert res.is_empty
    assert res.timeline == []
    assert not res.summary.has_data
    assert res.summary.avg_waiting is None
    assert res.summary.avg_turnaround is None
    assert res.summary.throughput is None


@pytest.mark.parametrize("name", list(ALGORITHMS))
def test_runs_are_deterministic_and_leave_input_alone(name):
    procs = list(reversed(_priority_procs()))
    before = [(p.pid, p.burst_time, p.arrival_time, p.priority, p.remaining_time) for p in procs]

    first = run_algorithm(name, procs)
    second = run_algorithm(name, procs)

    assert first == second
    assert [(p.pid, p.burst_time, p.arrival_time, p.priority, p.remaining_time) for p in procs] == before


def test_zero_burst_process_gets_a_row_but_no_slice():
    res = schedule_fcfs([Process(1, burst_time=0, arrival_time=0), Process(2, burst_time=2, arrival_time=0)])
    assert _trace(res) == [(2, 0, 2)]
    assert [r.completion_time for r in res.rows] == [0, 2]


def test_run_algorithm_unknown_name():
    with pytest.raises(InvalidArgumentsError):
        run_algorithm("mlfq", _procs())


def test_run_algorithm_is_case_insensitive():
    assert run_algorithm("SJF", _srtf_procs()) == schedule_sjf(_srtf_procs())


def test_run_all_report_order():
    results = run_all(_procs())
    assert [r.algorithm for r in results] == [
        "First-come, first-serve",
        "Shortest-job-first",
        "Priority",
        "Round-robin",
    ]


def test_run_all_threaded_matches_sequential():
    procs = _priority_procs()
    assert run_all(procs, quantum=2, max_workers=4) == run_all(procs, quantum=2)


def test_hold_set_orders_by_rank_then_pid():
    hold = HoldSet(by_remaining)
    hold.push(Process(3, burst_time=5, arrival_time=0))
    hold.push(Process(2, burst_time=5, arrival_time=0))
    hold.push(Process(1, burst_time=9, arrival_time=0))
    hold.push(Process(4, burst_time=1, arrival_time=0))

    assert len(hold) == 4
    assert hold.pop().pid == 4
    assert [p.pid for p in hold.drain()] == [2, 3, 1]
    assert not hold


def test_hold_set_priority_rank():
    hold = HoldSet(by_priority)
    hold.push(Process(1, burst_time=1, arrival_time=0, priority=7))
    hold.push(Process(2, burst_time=9, arrival_time=0, priority=2))
    assert hold.pop().pid == 2


def test_preemption_is_logged(caplog):
    with caplog.at_level(logging.DEBUG, logger="cpusched"):
        schedule_sjf(_srtf_procs())
    assert "P2 preempts P1 at t=1" in caplog.text
