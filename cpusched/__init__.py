"""
cpusched package.

Simulates single-CPU scheduling (FCFS, preemptive SJF, preemptive Priority
and Round-robin) over a fixed batch of processes and reports the Gantt
trace and per-process timing metrics.
"""

__all__ = ["algorithms", "cli", "models"]
