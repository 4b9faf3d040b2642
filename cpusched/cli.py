from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .algorithms import ALGORITHMS, DEFAULT_QUANTUM, REPORT_ORDER, run_algorithm, run_all
from .errors import SchedulerError
from .gantt import build_rich_gantt, render_gantt
from .models import ScheduleResult
from .workload_io import load_workload

logger = logging.getLogger(__name__)

SCHEDULE_HEADERS = ["ID", "Priority", "Burst", "Arrival", "Wait", "Turnaround", "Exit"]


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cpusched",
        description="Single-CPU scheduling simulator (FCFS, SJF, Priority, Round-robin).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log scheduling decisions to stderr.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--workload",
            "-w",
            required=True,
            help="Path to JSON or CSV workload file.",
        )
        sub.add_argument(
            "--quantum",
            "-q",
            type=_positive_int,
            default=DEFAULT_QUANTUM,
            help=f"Time quantum for round-robin (default: {DEFAULT_QUANTUM}).",
        )

    run_parser = subparsers.add_parser("run", help="Run one scheduling algorithm on a workload file.")
    add_common(run_parser)
    run_parser.add_argument(
        "--algorithm",
        "-a",
        required=True,
        choices=list(ALGORITHMS),
        help="Algorithm to use.",
    )
    run_parser.add_argument(
        "--plain",
        action="store_true",
        help="Print the Gantt chart as plain text.",
    )

    report_parser = subparsers.add_parser(
        "report",
        help="Run every algorithm (FCFS, SJF, Priority, Round-robin) and print each schedule.",
    )
    add_common(report_parser)
    report_parser.add_argument(
        "--plain",
        action="store_true",
        help="Print the Gantt charts as plain text.",
    )
    report_parser.add_argument(
        "--threads",
        action="store_true",
        help="Run the algorithms concurrently; output order is unchanged.",
    )

    compare_parser = subparsers.add_parser(
        "compare",
        help="Run multiple algorithms on the same workload and compare average metrics.",
    )
    add_common(compare_parser)
    compare_parser.add_argument(
        "--algorithms",
        "-a",
        nargs="+",
        choices=list(ALGORITHMS),
        default=list(REPORT_ORDER),
        help="Algorithms to compare (default: %(default)s).",
    )

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _print_title(console: Console, title: str) -> None:
    rule = "-" * (len(title) * 2)
    console.print(rule, highlight=False)
    console.print(f"{' ' * (len(title) // 2)} {title}", highlight=False)
    console.print(rule, highlight=False)


def _fmt(value: Optional[float], spec: str = ".2f") -> str:
    return "-" if value is None else format(value, spec)


def _print_result(console: Console, result: ScheduleResult, plain: bool = False) -> None:
    _print_title(console, result.algorithm)
    if result.quantum is not None:
        console.print(f"[bold]Quantum:[/bold] {result.quantum}")

    if plain:
        console.print(render_gantt(result.timeline), highlight=False)
    else:
        panel, time_marks = build_rich_gantt(result.timeline)
        console.print(panel)
        if time_marks:
            console.print(time_marks, highlight=False)
    console.print()

    if result.is_empty:
        console.print("[yellow]No processes to schedule.[/yellow]")
        console.print()
        return

    summary = result.summary
    footers = [
        "",
        "",
        "",
        "",
        f"Average\n{_fmt(summary.avg_waiting)}",
        f"Average\n{_fmt(summary.avg_turnaround)}",
        f"Throughput\n{_fmt(summary.throughput)}/t",
    ]

    table = Table(title="Schedule table", box=box.SIMPLE_HEAVY, show_footer=True)
    for header, footer in zip(SCHEDULE_HEADERS, footers):
        table.add_column(header, footer=footer, justify="right")

    for r in result.rows:
        table.add_row(
            str(r.pid),
            str(r.priority),
            str(r.burst_time),
            str(r.arrival_time),
            str(r.waiting_time),
            str(r.turnaround_time),
            str(r.completion_time),
        )

    console.print(table)
    console.print()


def _print_comparison(console: Console, results: List[ScheduleResult], workload_path: Path) -> None:
    summary_table = Table(title=f"Algorithm comparison: {workload_path}", box=box.SIMPLE_HEAVY)
    summary_table.add_column("Algorithm")
    summary_table.add_column("Quantum", justify="right")
    summary_table.add_column("Avg waiting", justify="right")
    summary_table.add_column("Avg turnaround", justify="right")
    summary_table.add_column("Throughput", justify="right")

    for result in results:
        summary = result.summary
        summary_table.add_row(
            result.algorithm,
            "" if result.quantum is None else str(result.quantum),
            _fmt(summary.avg_waiting),
            _fmt(summary.avg_turnaround),
            _fmt(summary.throughput, ".3f"),
        )

    console.print(summary_table)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    console = Console()
    err_console = Console(stderr=True)
    workload_path = Path(args.workload)

    # Everything is computed before anything is printed, so a failure
    # never leaves a partial report behind.
    try:
        processes = load_workload(workload_path)
        if args.command == "run":
            results = [run_algorithm(args.algorithm, processes, quantum=args.quantum)]
        elif args.command == "report":
            workers = len(REPORT_ORDER) if args.threads else None
            results = run_all(processes, quantum=args.quantum, max_workers=workers)
        else:
            results = [run_algorithm(alg, processes, quantum=args.quantum) for alg in args.algorithms]
    except SchedulerError as exc:
        logger.debug("aborting", exc_info=True)
        err_console.print(f"Error: {exc}", style="red", markup=False, highlight=False)
        return 1

    if args.command == "compare":
        _print_comparison(console, results, workload_path)
    else:
        for result in results:
            _print_result(console, result, plain=args.plain)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
