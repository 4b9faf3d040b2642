from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Process:
    pid: int
    burst_time: int
    arrival_time: int
    priority: int = 0
    # CPU time still owed; schedulers decrement this on their own copies.
    remaining_time: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.remaining_time = self.burst_time


@dataclass(frozen=True)
class TimeSlice:
    """
    One contiguous interval during which a process held the CPU.
    """

    pid: int
    start_time: int
    end_time: int

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class ScheduleRow:
    pid: int
    priority: int
    burst_time: int
    arrival_time: int
    waiting_time: int
    turnaround_time: int
    completion_time: int


@dataclass
class ScheduleSummary:
    """
    Aggregates over the rows of one run.

    With zero processes the averages and throughput are None rather than
    the result of a division by zero.
    """

    process_count: int
    avg_waiting: Optional[float] = None
    avg_turnaround: Optional[float] = None
    throughput: Optional[float] = None

    @property
    def has_data(self) -> bool:
        return self.process_count > 0


@dataclass
class ScheduleResult:
    algorithm: str
    quantum: Optional[int]
    rows: List[ScheduleRow] = field(default_factory=list)
    timeline: List[TimeSlice] = field(default_factory=list)
    summary: Optional[ScheduleSummary] = None

    @property
    def is_empty(self) -> bool:
        return not self.rows
