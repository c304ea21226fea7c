class GraphError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class CyclicDependencyError(GraphError):
    def __init__(self, cycle: list[str]):
        super().__init__("Dependency cycle detected: " + " -> ".join(cycle))
        self.cycle = cycle
        self.task_id = cycle[0]
