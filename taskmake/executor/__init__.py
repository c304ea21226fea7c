from .executor import Executor
from .types import (
    Cancelled,
    ExecutionError,
    RunResult,
    TaskExecutionError,
    TaskResult,
    TaskStatus,
    TaskTimeoutError,
)

__all__ = [
    "Executor",
    "RunResult",
    "TaskResult",
    "TaskStatus",
    "ExecutionError",
    "TaskExecutionError",
    "TaskTimeoutError",
    "Cancelled",
]
