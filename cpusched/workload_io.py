from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Set

from .algorithms import by_arrival, with_pid_tiebreak
from .errors import WorkloadFileError, WorkloadParseError
from .models import Process

logger = logging.getLogger(__name__)

# Accepted spellings for each field in CSV headers and JSON objects.
_FIELD_ALIASES: Dict[str, Sequence[str]] = {
    "pid": ("pid", "id"),
    "burst_time": ("burst_time", "burst"),
    "arrival_time": ("arrival_time", "arrival"),
    "priority": ("priority",),
}

# Column order of the headerless format: id, burst, arrival[, priority].
_POSITIONAL_FIELDS = ("pid", "burst_time", "arrival_time", "priority")


def load_workload(path: str | Path) -> List[Process]:
    """
    Load a workload from a JSON or CSV file into an arrival-ordered list of
    Process objects.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        loader = _load_json
    elif suffix == ".csv":
        loader = _load_csv
    else:
        raise WorkloadParseError(f"Unsupported workload format: {suffix} (use .json or .csv)")

    try:
        processes = loader(path)
    except OSError as exc:
        raise WorkloadFileError(f"Cannot read workload file {path}: {exc.strerror or exc}") from exc

    _check_unique(processes)
    processes.sort(key=with_pid_tiebreak(by_arrival))
    logger.info(f"Loaded {len(processes)} processes from {path}")
    return processes


def _load_json(path: Path) -> List[Process]:
    with path.open("r", encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise WorkloadParseError(f"{path}: invalid JSON ({exc})") from exc
        except UnicodeDecodeError as exc:
            raise WorkloadParseError(f"{path}: not valid UTF-8 ({exc.reason})") from exc

    if not isinstance(raw, list):
        raise WorkloadParseError("JSON workload must be a list of process objects")

    processes: List[Process] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            raise WorkloadParseError(f"Invalid process entry: {entry!r}")
        processes.append(_process_from_mapping(_normalize_keys(entry)))

    return processes


def _load_csv(path: Path) -> List[Process]:
    with path.open("r", encoding="utf-8", newline="") as f:
        try:
            rows = [row for row in csv.reader(f) if any(cell.strip() for cell in row)]
        except UnicodeDecodeError as exc:
            raise WorkloadParseError(f"{path}: not valid UTF-8 ({exc.reason})") from exc
        except csv.Error as exc:
            raise WorkloadParseError(f"{path}: malformed CSV ({exc})") from exc

    if not rows:
        return []

    if _is_header(rows[0]):
        header = [cell.strip().lower() for cell in rows[0]]
        mappings = [_normalize_keys(dict(zip(header, row))) for row in rows[1:]]
    else:
        mappings = [_positional_mapping(row) for row in rows]

    return [_process_from_mapping(m) for m in mappings]


def _is_header(row: Sequence[str]) -> bool:
    try:
        int(row[0])
    except ValueError:
        return True
    return False


def _positional_mapping(row: Sequence[str]) -> Dict[str, str]:
    if len(row) not in (3, 4):
        raise WorkloadParseError(
            f"Invalid process entry: {row!r} (expected id,burst,arrival[,priority])"
        )
    return dict(zip(_POSITIONAL_FIELDS, row))


def _normalize_keys(mapping: Mapping) -> Dict[str, object]:
    normalized: Dict[str, object] = {}
    for field_name, aliases in _FIELD_ALIASES.items():
        for alias in aliases:
            if alias in mapping:
                normalized[field_name] = mapping[alias]
                break
    return normalized


def _process_from_mapping(mapping: Mapping) -> Process:
    try:
        pid = _to_int(mapping["pid"])
        burst_time = _to_int(mapping["burst_time"])
        arrival_time = _to_int(mapping["arrival_time"])
        priority_val = mapping.get("priority")
        priority = _to_int(priority_val) if priority_val not in (None, "") else 0
    except (KeyError, TypeError, ValueError) as exc:
        raise WorkloadParseError(f"Invalid process entry: {dict(mapping)!r}") from exc

    if burst_time < 0 or arrival_time < 0:
        raise WorkloadParseError(
            f"Process {pid}: burst and arrival must be non-negative "
            f"(burst={burst_time}, arrival={arrival_time})"
        )

    return Process(
        pid=pid,
        burst_time=burst_time,
        arrival_time=arrival_time,
        priority=priority,
    )


def _to_int(value: object) -> int:
    # bool is an int subclass; reject it along with floats like 2.5.
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, str):
        return int(value.strip())
    if isinstance(value, int):
        return value
    raise TypeError(f"not an integer: {value!r}")


def _check_unique(processes: List[Process]) -> None:
    seen: Set[int] = set()
    for p in processes:
        if p.pid in seen:
            raise WorkloadParseError(f"Duplicate process id {p.pid}")
        seen.add(p.pid)
