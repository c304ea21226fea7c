from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TaskStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UP_TO_DATE = "up_to_date"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class TaskResult:
    task_id: str
    status: TaskStatus
    returncode: int | None = None
    stdout: str | None = None
    stderr: str | None = None
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status in (TaskStatus.SUCCEEDED, TaskStatus.UP_TO_DATE)


@dataclass(frozen=True)
class RunResult:
    target: str
    order: list[str]
    results: dict[str, TaskResult]

    @property
    def ok(self) -> bool:
        return len(self.results) == len(self.order) and all(
            r.ok for r in self.results.values()
        )

    @property
    def executed(self) -> list[str]:
        return [
            tid
            for tid, r in self.results.items()
            if r.status is not TaskStatus.UP_TO_DATE
        ]

    @property
    def up_to_date(self) -> list[str]:
        return [
            tid
            for tid, r in self.results.items()
            if r.status is TaskStatus.UP_TO_DATE
        ]

    @property
    def failed(self) -> list[str]:
        return [tid for tid, r in self.results.items() if not r.ok]

    @property
    def skipped(self) -> list[str]:
        return [tid for tid in self.order if tid not in self.results]


class ExecutionError(Exception):
    def __init__(self, msg: str, task_id: str, result: RunResult):
        super().__init__(msg)
        self.task_id = task_id
        self.result = result


class TaskExecutionError(ExecutionError):
    def __init__(self, task_id: str, status: int, result: RunResult):
        super().__init__(
            f"Task '{task_id}' failed with exit status {status}", task_id, result
        )
        self.status = status


class TaskTimeoutError(ExecutionError):
    def __init__(self, task_id: str, timeout: float, result: RunResult):
        super().__init__(
            f"Task '{task_id}' timed out after {timeout:g}s", task_id, result
        )
        self.timeout = timeout


class Cancelled(ExecutionError):
    def __init__(self, task_id: str, result: RunResult):
        super().__init__(f"Task '{task_id}' was cancelled", task_id, result)
