from __future__ import annotations


class SchedulerError(Exception):
    """Base class for errors reported by the loader and the CLI."""


class InvalidArgumentsError(SchedulerError, ValueError):
    """Unknown algorithm name, non-positive quantum or similar misuse."""


class WorkloadFileError(SchedulerError):
    """The workload file could not be opened or read."""


class WorkloadParseError(SchedulerError, ValueError):
    """The workload file was read but its contents are malformed."""
