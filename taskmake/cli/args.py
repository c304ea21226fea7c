from __future__ import annotations

import argparse


def _positive_seconds(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number of seconds: {value}")

    if not seconds > 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")

    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskmake",
        description="Run named tasks and their dependencies",
    )

    parser.add_argument(
        "-f",
        "--config",
        default="taskmake.yml",
        help="Path to config file",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_seconds,
        default=None,
        help="Kill a task after this many seconds (per-task timeouts win)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr (-vv for debug)",
    )

    # modes other than running
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("-l", "--list", action="store_true", help="List tasks")
    mode.add_argument(
        "-g", "--graph", action="store_true", help="Show dependency graph"
    )
    mode.add_argument(
        "--check",
        action="store_true",
        help="Validate the whole dependency graph without running anything",
    )
    mode.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Print the execution order without running anything",
    )

    parser.add_argument(
        "targets",
        nargs="*",
        help="Task ids to run (default task when omitted)",
    )

    return parser
