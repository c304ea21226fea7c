from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Union


@dataclass(frozen=True)
class Phony:
    pass


@dataclass(frozen=True)
class Artifact:
    path: str

    def resolve(self, working_dir: str | None = None) -> Path:
        path = Path(self.path).expanduser()
        if not path.is_absolute() and working_dir:
            path = Path(working_dir).expanduser() / path
        return path


TaskKind = Union[Phony, Artifact]


@dataclass(frozen=True)
class Task:
    id: str
    command: tuple[str, ...]
    deps: tuple[str, ...] = ()
    kind: TaskKind = field(default_factory=Phony)
    env: dict[str, str] = field(default_factory=dict)
    working_dir: str | None = None
    timeout: float | None = None

    @property
    def phony(self) -> bool:
        return isinstance(self.kind, Phony)

    def artifact_path(self) -> Path | None:
        if isinstance(self.kind, Artifact):
            return self.kind.resolve(self.working_dir)
        return None


class TaskRegistry:
    """Tasks by id, kept in declaration order.

    Built once at startup and handed to the graph and the executor,
    which only read from it.
    """

    def __init__(self, default: str | None = None) -> None:
        self._tasks: dict[str, Task] = {}
        self.default = default

    @classmethod
    def from_tasks(cls, tasks, default: str | None = None) -> TaskRegistry:
        registry = cls(default)
        for task in tasks:
            registry.register(task)
        return registry

    def register(self, task: Task) -> None:
        if task.id in self._tasks:
            raise DuplicateTaskError(task.id)
        self._tasks[task.id] = task

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, id: object) -> bool:
        return id in self._tasks

    def has_task(self, id: str) -> bool:
        return id in self._tasks

    def get_task(self, id: str) -> Task:
        if not self.has_task(id):
            raise UnknownTaskError(id)

        return self._tasks[id]

    def tasks_ids(self) -> list[str]:
        return list(self._tasks)


class ConfigError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class UnsupportedConfigFormatError(ConfigError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class DuplicateTaskError(ConfigError):
    def __init__(self, task_id: str):
        super().__init__(f"Duplicate task id: {task_id}")
        self.task_id = task_id


class UnknownTaskError(ConfigError):
    def __init__(self, task_id: str, required_by: str | None = None):
        if required_by is None:
            msg = f"Unknown task: {task_id}"
        else:
            msg = f"Unknown task: {task_id} (required by {required_by})"
        super().__init__(msg)
        self.task_id = task_id
        self.required_by = required_by


class MissingTaskError(ConfigError):
    def __init__(
        self, msg: str = "No task given and no default task configured"
    ) -> None:
        super().__init__(msg)
