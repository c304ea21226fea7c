from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, Iterator

from taskmake.config.types import TaskRegistry, UnknownTaskError

from .types import CyclicDependencyError


class _Visit(Enum):
    UNVISITED = auto()
    VISITING = auto()
    VISITED = auto()


@dataclass(frozen=True)
class TaskGraph:
    """Adjacency of task ids, dependencies kept in declared order.

    Orderings are post-order depth-first walks: roots are taken in
    registry order and each task's deps in the order it lists them, so
    the same registry always yields the same ordering.
    """

    _deps: dict[str, tuple[str, ...]]
    _declared: tuple[str, ...]

    @classmethod
    def from_registry(cls, registry: TaskRegistry) -> TaskGraph:
        deps = {}
        for task in registry:
            deps[task.id] = tuple(task.deps)

        return cls(deps, tuple(registry.tasks_ids()))

    def topo_order(self) -> list[str]:
        return self._toposort(self._declared)

    def subgraph_order(self, target: str) -> list[str]:
        if target not in self._deps:
            raise UnknownTaskError(target)

        return self._toposort([target])

    def _toposort(self, roots: Iterable[str]) -> list[str]:
        state: dict[str, _Visit] = {}
        out: list[str] = []
        stack: list[str] = []
        pos: dict[str, int] = {}
        # One frame per task on the current path, parallel to `stack`
        frames: list[Iterator[str]] = []

        def enter(tid: str, parent: str | None) -> None:
            if tid not in self._deps:
                raise UnknownTaskError(tid, required_by=parent)

            current = state.get(tid, _Visit.UNVISITED)
            if current == _Visit.VISITING:
                start = pos[tid]
                raise CyclicDependencyError(stack[start:] + [tid])
            if current == _Visit.VISITED:
                return

            state[tid] = _Visit.VISITING
            pos[tid] = len(stack)
            stack.append(tid)
            frames.append(iter(self._deps[tid]))

        for root in roots:
            enter(root, None)

            while frames:
                dep = next(frames[-1], None)
                if dep is not None:
                    enter(dep, stack[-1])
                    continue

                frames.pop()
                tid = stack.pop()
                pos.pop(tid)
                state[tid] = _Visit.VISITED
                out.append(tid)

        return out
