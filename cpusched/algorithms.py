from __future__ import annotations

import heapq
import logging
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from enum import Enum
from typing import Callable, Deque, Dict, Iterable, List, Optional, Tuple

from .errors import InvalidArgumentsError
from .metrics import compute_summary, finalize_row
from .models import Process, ScheduleResult, ScheduleRow, TimeSlice

logger = logging.getLogger(__name__)

DEFAULT_QUANTUM = 3

# Order in which `report` prints its sections.
REPORT_ORDER = ("fcfs", "sjf", "priority", "rr")

Rank = Callable[[Process], int]


# ---------------------------------------------------------------------------
# Comparators
# ---------------------------------------------------------------------------


def by_arrival(process: Process) -> int:
    return process.arrival_time


def by_remaining(process: Process) -> int:
    return process.remaining_time


def by_priority(process: Process) -> int:
    # Lower value is more urgent.
    return process.priority


def with_pid_tiebreak(rank: Rank) -> Callable[[Process], Tuple[int, int]]:
    """
    Turn a rank into a total ordering: equal ranks go to the lower pid.
    """

    def key(process: Process) -> Tuple[int, int]:
        return (rank(process), process.pid)

    return key


class HoldSet:
    """
    Work a preemptive scheduler has set aside, kept best-ranked first.

    The rank is taken when a process is pushed; held processes do not run,
    so it cannot go stale while they wait.
    """

    def __init__(self, rank: Rank) -> None:
        self._rank = rank
        self._heap: List[Tuple[int, int, Process]] = []

    def push(self, process: Process) -> None:
        heapq.heappush(self._heap, (self._rank(process), process.pid, process))

    def pop(self) -> Process:
        return heapq.heappop(self._heap)[-1]

    def drain(self) -> List[Process]:
        drained = []
        while self._heap:
            drained.append(self.pop())
        return drained

    def __len__(self) -> int:
        return len(self._heap)


class Phase(Enum):
    PREEMPT = "preempt"
    DRAIN = "drain"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _working_copies(processes: Iterable[Process]) -> List[Process]:
    # replace() re-runs __post_init__, so every copy starts with its full burst.
    copies = [replace(p) for p in processes]
    copies.sort(key=with_pid_tiebreak(by_arrival))
    return copies


def _record(timeline: List[TimeSlice], pid: int, start: int, end: int) -> None:
    if end > start:
        timeline.append(TimeSlice(pid=pid, start_time=start, end_time=end))


def _take_ready(working: Deque[Process], clock: int) -> Process:
    """
    Remove and return the first process in `working` that has arrived by
    `clock`, or the head when none has.
    """
    for index, p in enumerate(working):
        if p.arrival_time <= clock:
            del working[index]
            return p
    # Re-queued work has always arrived, so here the head is the next arrival.
    return working.popleft()


def _build_result(
    algorithm: str,
    quantum: Optional[int],
    rows: List[ScheduleRow],
    timeline: List[TimeSlice],
) -> ScheduleResult:
    if not rows:
        logger.debug(f"{algorithm}: no processes to schedule")
    return ScheduleResult(
        algorithm=algorithm,
        quantum=quantum,
        rows=rows,
        timeline=timeline,
        summary=compute_summary(rows),
    )


# ---------------------------------------------------------------------------
# Schedulers
# ---------------------------------------------------------------------------


def schedule_fcfs(processes: List[Process], quantum: Optional[int] = None) -> ScheduleResult:
    """
    First-Come First-Serve (non-preemptive) scheduling.
    """
    clock = 0
    timeline: List[TimeSlice] = []
    rows: List[ScheduleRow] = []

    for p in _working_copies(processes):
        start = max(clock, p.arrival_time)
        clock = start + p.remaining_time
        _record(timeline, p.pid, start, clock)

        p.remaining_time = 0
        rows.append(finalize_row(p, clock))

    return _build_result("First-come, first-serve", None, rows, timeline)


def _schedule_preemptive(
    processes: List[Process], rank: Rank, label: str
) -> Tuple[List[ScheduleRow], List[TimeSlice]]:
    """
    Shared driver for the arrival-aware preemptive schedulers.

    Never-started processes wait in `run_queue` in arrival order; anything
    preempted or passed over goes to the hold set. While in the PREEMPT
    phase the running process is compared against every queued process
    that arrives before it would finish: a strictly better rank takes the
    CPU, anything else is held. After each completion the best held
    process runs next. Once the run queue is empty the hold set is drained
    into it in rank order and the rest runs first-come first-serve (DRAIN).
    """
    run_queue: Deque[Process] = deque(_working_copies(processes))
    hold = HoldSet(rank)
    phase = Phase.PREEMPT

    clock = 0
    timeline: List[TimeSlice] = []
    rows: List[ScheduleRow] = []

    current = run_queue.popleft() if run_queue else None
    while current is not None:
        start = max(clock, current.arrival_time)

        if phase is Phase.PREEMPT:
            # Equality means the candidate arrives just as current finishes: no contest.
            while run_queue and start + current.remaining_time - run_queue[0].arrival_time > 0:
                candidate = run_queue.popleft()

                if rank(candidate) < rank(current):
                    ran = max(0, candidate.arrival_time - start)
                    _record(timeline, current.pid, start, start + ran)
                    current.remaining_time -= ran
                    clock = start + ran
                    logger.debug(
                        f"{label}: P{candidate.pid} preempts P{current.pid} at t={clock} "
                        f"({current.remaining_time} remaining)"
                    )
                    hold.push(current)
                    current = candidate
                    start = max(clock, current.arrival_time)
                else:
                    logger.debug(f"{label}: P{candidate.pid} held behind P{current.pid}")
                    hold.push(candidate)

        clock = start + current.remaining_time
        _record(timeline, current.pid, start, clock)
        current.remaining_time = 0
        rows.append(finalize_row(current, clock))
        logger.debug(f"{label}: P{current.pid} completes at t={clock}")

        if phase is Phase.PREEMPT and hold and run_queue:
            current = hold.pop()
            continue

        if phase is Phase.PREEMPT and not run_queue:
            run_queue.extend(hold.drain())
            phase = Phase.DRAIN
            if run_queue:
                logger.debug(f"{label}: draining {len(run_queue)} held process(es)")

        current = run_queue.popleft() if run_queue else None

    return rows, timeline


def schedule_sjf(processes: List[Process], quantum: Optional[int] = None) -> ScheduleResult:
    """
    Shortest Job First, preemptive on arrival.

    A newly arriving process takes the CPU when its burst is strictly
    shorter than what the running process has left.
    """
    rows, timeline = _schedule_preemptive(processes, by_remaining, "sjf")
    return _build_result("Shortest-job-first", None, rows, timeline)


def schedule_priority(processes: List[Process], quantum: Optional[int] = None) -> ScheduleResult:
    """
    Priority scheduling, preemptive on arrival.

    Lower numeric priority means more urgent. A newly arriving process takes
    the CPU only when its priority value is strictly lower than the running
    process's.
    """
    rows, timeline = _schedule_preemptive(processes, by_priority, "priority")
    return _build_result("Priority", None, rows, timeline)


def schedule_rr(processes: List[Process], quantum: Optional[int] = None) -> ScheduleResult:
    """
    Round Robin scheduling with a fixed time quantum.

    The arrival-ordered working list is itself the rotation: an unfinished
    process goes back on the end of it. A process that has not arrived yet
    is skipped over in favour of the first one in the list that has, so the
    CPU only idles when nothing queued is ready. A turn lasts the full
    quantum or whatever the process has left, whichever is shorter, so the
    final slice of a process ends exactly at its completion.
    """
    if quantum is None:
        quantum = DEFAULT_QUANTUM
    if quantum <= 0:
        raise InvalidArgumentsError(f"Round Robin requires a positive quantum, got {quantum}")

    working: Deque[Process] = deque(_working_copies(processes))

    clock = 0
    timeline: List[TimeSlice] = []
    rows: List[ScheduleRow] = []

    while working:
        p = _take_ready(working, clock)
        start = max(clock, p.arrival_time)
        run_time = min(quantum, p.remaining_time)
        clock = start + run_time
        _record(timeline, p.pid, start, clock)

        p.remaining_time -= run_time
        if p.remaining_time > 0:
            working.append(p)
        else:
            rows.append(finalize_row(p, clock))
            logger.debug(f"rr: P{p.pid} completes at t={clock}")

    return _build_result("Round-robin", quantum, rows, timeline)


ALGORITHMS: Dict[str, Callable[..., ScheduleResult]] = {
    "fcfs": schedule_fcfs,
    "sjf": schedule_sjf,
    "priority": schedule_priority,
    "rr": schedule_rr,
}


def run_algorithm(name: str, processes: List[Process], quantum: Optional[int] = None) -> ScheduleResult:
    """
    Dispatch to the requested algorithm. Only round-robin uses the quantum.
    """
    name = name.lower()
    if name not in ALGORITHMS:
        choices = ", ".join(ALGORITHMS)
        raise InvalidArgumentsError(f"Unknown algorithm '{name}' (choose from {choices})")

    func = ALGORITHMS[name]
    return func(processes, quantum=quantum)


def run_all(
    processes: List[Process],
    quantum: Optional[int] = None,
    max_workers: Optional[int] = None,
) -> List[ScheduleResult]:
    """
    Run every algorithm in REPORT_ORDER and return the results in that order.

    Each scheduler works on its own copies of the processes, so with
    `max_workers` above one they run side by side on a thread pool.
    """

    def run(name: str) -> ScheduleResult:
        return run_algorithm(name, processes, quantum=quantum)

    if max_workers is not None and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(run, REPORT_ORDER))

    return [run(name) for name in REPORT_ORDER]
