from __future__ import annotations

import argparse
import contextlib
import logging
import signal
import sys
from typing import Iterator

from taskmake.config import ConfigError, MissingTaskError, TaskRegistry, load_registry
from taskmake.executor import (
    Cancelled,
    Executor,
    RunResult,
    TaskExecutionError,
    TaskStatus,
    TaskTimeoutError,
)
from taskmake.graph import GraphError, TaskGraph

from .args import build_parser

EXIT_USAGE = 2
EXIT_TIMEOUT = 124
EXIT_CANCELLED = 130


def main() -> None:
    sys.exit(run_cli())


def run_cli(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.list:
            return cmd_list(args)
        if args.graph:
            return cmd_graph(args)
        if args.check:
            return cmd_check(args)
        if args.dry_run:
            return cmd_plan(args)
        return cmd_run(args)

    except (ConfigError, GraphError) as exc:
        print(f"taskmake: {exc}", file=sys.stderr)
        return EXIT_USAGE

    except TaskExecutionError as exc:
        _print_result(exc.result)
        print(f"taskmake: {exc}", file=sys.stderr)
        return exit_code_for_status(exc.status)

    except TaskTimeoutError as exc:
        _print_result(exc.result)
        print(f"taskmake: {exc}", file=sys.stderr)
        return EXIT_TIMEOUT

    except Cancelled as exc:
        _print_result(exc.result)
        print(f"taskmake: {exc}", file=sys.stderr)
        return EXIT_CANCELLED

    except KeyboardInterrupt:
        print("taskmake: interrupted", file=sys.stderr)
        return EXIT_CANCELLED


def cmd_run(args: argparse.Namespace) -> int:
    registry = load_registry(args.config)
    targets = _targets(args, registry)
    graph = TaskGraph.from_registry(registry)
    executor = Executor(registry, graph, timeout=args.timeout)

    # Resolve every request before the first process starts
    for target in targets:
        executor.plan(target)

    with _sigterm_as_interrupt():
        for target in targets:
            rr = executor.run(target)
            _print_result(rr)
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    registry = load_registry(args.config)
    graph = TaskGraph.from_registry(registry)
    for target in _targets(args, registry):
        print(" ".join(graph.subgraph_order(target)))
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    registry = load_registry(args.config)
    order = TaskGraph.from_registry(registry).topo_order()
    print(f"{len(order)} task(s), no cycle")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    registry = load_registry(args.config)
    for tid in registry.tasks_ids():
        print(tid)
    return 0


def cmd_graph(args: argparse.Namespace) -> int:
    registry = load_registry(args.config)
    for task in registry:
        deps = " ".join(task.deps)
        print(f"{task.id}: {deps}".rstrip())
    return 0


def exit_code_for_status(status: int) -> int:
    if status < 0:
        return 128 - status
    return status if status != 0 else 1


def _targets(args: argparse.Namespace, registry: TaskRegistry) -> list[str]:
    targets: list[str] = args.targets
    if targets:
        return targets
    if registry.default is None:
        raise MissingTaskError()
    return [registry.default]


def _print_result(rr: RunResult) -> None:
    for tid in rr.order:
        if tid not in rr.results:
            print(f"SKIP {tid}")
            continue

        result = rr.results[tid]
        match result.status:
            case TaskStatus.SUCCEEDED:
                print(
                    f"OK {tid}, {result.duration_s:.3f}s, exit code = {result.returncode}"
                )
            case TaskStatus.UP_TO_DATE:
                print(f"UP-TO-DATE {tid}")
            case TaskStatus.FAILED:
                print(
                    f"FAIL {tid}, {result.duration_s:.3f}s, exit code = {result.returncode}"
                )
            case TaskStatus.TIMED_OUT:
                print(f"TIMEOUT {tid}, {result.duration_s:.3f}s")
            case TaskStatus.CANCELLED:
                print(f"CANCELLED {tid}")


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logger = logging.getLogger("taskmake")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s | %(name)s | %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)


def _raise_interrupt(signum, frame) -> None:
    raise KeyboardInterrupt


@contextlib.contextmanager
def _sigterm_as_interrupt() -> Iterator[None]:
    installed = True
    try:
        previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    except ValueError:
        # Not the main thread, signals can't be rerouted
        installed = False

    try:
        yield
    finally:
        if installed:
            signal.signal(signal.SIGTERM, previous)
