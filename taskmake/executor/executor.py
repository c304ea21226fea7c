import logging
import os
import subprocess
import time

from taskmake.config import Task, TaskRegistry
from taskmake.graph import TaskGraph

from .types import (
    Cancelled,
    RunResult,
    TaskExecutionError,
    TaskResult,
    TaskStatus,
    TaskTimeoutError,
)

logger = logging.getLogger(__name__)

# Same convention as a POSIX shell for a command that can't be started
COMMAND_NOT_RUNNABLE = 127


class Executor:
    """Runs a task and its dependency closure, one process at a time.

    Child processes inherit the standard streams unless ``capture_output``
    is set, in which case stdout and stderr end up in the ``TaskResult``.
    ``timeout`` applies to tasks that don't set their own.
    """

    def __init__(
        self,
        registry: TaskRegistry,
        graph: TaskGraph | None = None,
        *,
        timeout: float | None = None,
        capture_output: bool = False,
    ):
        self.registry = registry
        self.graph = graph if graph is not None else TaskGraph.from_registry(registry)
        self.timeout = timeout
        self.capture_output = capture_output

    def plan(self, target: str) -> list[str]:
        return self.graph.subgraph_order(target)

    def run(self, target: str) -> RunResult:
        order = self.plan(target)
        results: dict[str, TaskResult] = {}
        logger.info("Running '%s': %s", target, " -> ".join(order))

        for tid in order:
            task = self.registry.get_task(tid)

            if self._is_up_to_date(task):
                logger.info("Task '%s' is up to date", tid)
                results[tid] = TaskResult(tid, TaskStatus.UP_TO_DATE)
                continue

            try:
                result = self._execute(task)
            except KeyboardInterrupt as exc:
                results[tid] = TaskResult(tid, TaskStatus.CANCELLED)
                raise Cancelled(tid, RunResult(target, order, results)) from exc

            results[tid] = result

            match result.status:
                case TaskStatus.FAILED:
                    raise TaskExecutionError(
                        tid, result.returncode, RunResult(target, order, results)
                    )
                case TaskStatus.TIMED_OUT:
                    raise TaskTimeoutError(
                        tid, self._timeout_for(task), RunResult(target, order, results)
                    )

        return RunResult(target, order, results)

    def _timeout_for(self, task: Task) -> float | None:
        return task.timeout if task.timeout is not None else self.timeout

    def _execute(self, task: Task) -> TaskResult:
        timeout = self._timeout_for(task)
        logger.debug("Starting '%s': %s", task.id, " ".join(task.command))

        start = time.monotonic()
        try:
            result = subprocess.run(
                task.command,
                cwd=task.working_dir or None,
                env={**os.environ, **task.env},
                capture_output=self.capture_output,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            duration = time.monotonic() - start
            logger.error("Task '%s' killed after %ss", task.id, timeout)
            return TaskResult(task.id, TaskStatus.TIMED_OUT, duration_s=duration)
        except OSError as exc:
            duration = time.monotonic() - start
            logger.error("Task '%s' could not be started: %s", task.id, exc)
            return TaskResult(
                task.id,
                TaskStatus.FAILED,
                COMMAND_NOT_RUNNABLE,
                stderr=str(exc),
                duration_s=duration,
            )
        duration = time.monotonic() - start

        status = TaskStatus.SUCCEEDED if result.returncode == 0 else TaskStatus.FAILED
        logger.debug(
            "Task '%s' exited with %d in %.3fs", task.id, result.returncode, duration
        )
        return TaskResult(
            task.id, status, result.returncode, result.stdout, result.stderr, duration
        )

    def _is_up_to_date(self, task: Task) -> bool:
        target = task.artifact_path()
        if target is None:
            return False

        try:
            mtime = target.stat().st_mtime_ns
        except FileNotFoundError:
            return False

        for dep_id in task.deps:
            dep_path = self.registry.get_task(dep_id).artifact_path()
            # Phony prerequisites always force a rebuild
            if dep_path is None:
                return False
            try:
                if dep_path.stat().st_mtime_ns > mtime:
                    return False
            except FileNotFoundError:
                return False

        return True
