from __future__ import annotations

from typing import Dict, List, Tuple

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import TimeSlice

CELL_WIDTH = 8
IDLE_LABEL = "idle"

_COLORS = ["red", "green", "yellow", "blue", "magenta", "cyan"]


def _in_order(slices: List[TimeSlice]) -> List[TimeSlice]:
    return sorted(slices, key=lambda s: (s.start_time, s.end_time))


def render_gantt(slices: List[TimeSlice]) -> str:
    """
    Plain-text Gantt chart: one fixed-width cell per slice, then the start
    time of every cell and the final stop time, tab separated.

    Gaps where the CPU had nothing to run get their own idle cell.
    """
    if not slices:
        return "(no execution)"

    labels: List[str] = []
    marks: List[int] = []
    last_time = 0

    for sl in _in_order(slices):
        if sl.start_time > last_time:
            labels.append(IDLE_LABEL)
            marks.append(last_time)
        labels.append(str(sl.pid))
        marks.append(sl.start_time)
        last_time = sl.end_time
    marks.append(last_time)

    bar = "|" + "|".join(label.center(CELL_WIDTH) for label in labels) + "|"
    return "\n".join(["Gantt schedule", bar, "\t".join(str(m) for m in marks)])


def build_rich_gantt(slices: List[TimeSlice]) -> Tuple[Panel, str]:
    """
    Build a Rich Panel containing a colored Gantt chart and a string with time marks.
    """
    if not slices:
        panel = Panel("No execution", title="Gantt schedule")
        return panel, ""

    pid_to_color: Dict[int, str] = {}

    def pid_color(pid: int) -> str:
        if pid not in pid_to_color:
            pid_to_color[pid] = _COLORS[len(pid_to_color) % len(_COLORS)]
        return pid_to_color[pid]

    timeline = Text()
    labels = Text()
    time_marks = "0"
    last_time = 0

    for sl in _in_order(slices):
        idle_gap = sl.start_time - last_time
        if idle_gap > 0:
            timeline.append(" " * idle_gap)
            labels.append(" " * idle_gap)
            time_marks += f"{sl.start_time:>3}"

        # At least wide enough to fit the pid label.
        label = str(sl.pid)
        width = max(len(label), sl.duration)
        timeline.append(" " * width, style=f"on {pid_color(sl.pid)}")
        labels.append(label.ljust(width), style="bold")

        last_time = sl.end_time
        time_marks += f"{last_time:>3}"

    grid = Table.grid(padding=(0, 0))
    grid.add_row(timeline)
    grid.add_row(labels)

    return Panel.fit(grid, title="Gantt schedule"), time_marks
