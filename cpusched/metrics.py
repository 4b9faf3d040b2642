from __future__ import annotations

from typing import List

from .models import Process, ScheduleRow, ScheduleSummary


def finalize_row(process: Process, completion_time: int) -> ScheduleRow:
    """
    Build the report row for a process that has just finished.

    Waiting time is whatever part of the arrival-to-completion span the
    process did not spend on the CPU, so preempted and round-robin processes
    are charged for every interval they sat in a queue.
    """
    turnaround_time = completion_time - process.arrival_time
    waiting_time = turnaround_time - process.burst_time

    return ScheduleRow(
        pid=process.pid,
        priority=process.priority,
        burst_time=process.burst_time,
        arrival_time=process.arrival_time,
        waiting_time=waiting_time,
        turnaround_time=turnaround_time,
        completion_time=completion_time,
    )


def compute_summary(rows: List[ScheduleRow]) -> ScheduleSummary:
    """
    Average waiting/turnaround and throughput for a finished run.
    """
    if not rows:
        return ScheduleSummary(process_count=0)

    n = len(rows)
    # Rows are emitted on a monotonic clock, so the last one is also the latest.
    last_completion = max(r.completion_time for r in rows)

    return ScheduleSummary(
        process_count=n,
        avg_waiting=sum(r.waiting_time for r in rows) / n,
        avg_turnaround=sum(r.turnaround_time for r in rows) / n,
        throughput=n / last_completion if last_completion > 0 else 0.0,
    )
