import pytest

from taskmake.config.types import Task, TaskRegistry, UnknownTaskError
from taskmake.graph.dag import TaskGraph
from taskmake.graph.types import CyclicDependencyError


def _registry(spec: dict[str, list[str]]) -> TaskRegistry:
    """
    spec: task_id -> deps list, declared in dict order
    """
    return TaskRegistry.from_tasks(
        Task(id=task_id, command=("echo", task_id), deps=tuple(deps))
        for task_id, deps in spec.items()
    )


def test_topo_linear_chain():
    registry = _registry(
        {
            "A": ["B"],
            "B": ["C"],
            "C": [],
        }
    )
    g = TaskGraph.from_registry(registry)
    assert g.topo_order() == ["C", "B", "A"]


def test_topo_diamond_is_deterministic():
    registry = _registry(
        {
            "A": ["B", "C"],
            "B": ["D"],
            "C": ["D"],
            "D": [],
        }
    )
    g = TaskGraph.from_registry(registry)
    assert g.topo_order() == ["D", "B", "C", "A"]
    assert g.topo_order() == g.topo_order()


def test_topo_independent_tasks_keep_declaration_order():
    registry = _registry(
        {
            "B": [],
            "A": [],
        }
    )
    g = TaskGraph.from_registry(registry)
    assert g.topo_order() == ["B", "A"]


def test_topo_follows_declared_dependency_order():
    registry1 = _registry(
        {
            "A": ["B", "C"],
            "B": [],
            "C": [],
        }
    )
    registry2 = _registry(
        {
            "A": ["C", "B"],  # reversed
            "B": [],
            "C": [],
        }
    )
    assert TaskGraph.from_registry(registry1).subgraph_order("A") == ["B", "C", "A"]
    assert TaskGraph.from_registry(registry2).subgraph_order("A") == ["C", "B", "A"]


def test_cycle_detection_two_node_cycle():
    registry = _registry(
        {
            "A": ["B"],
            "B": ["A"],
        }
    )
    g = TaskGraph.from_registry(registry)
    with pytest.raises(CyclicDependencyError):
        g.topo_order()


def test_cycle_error_includes_closed_loop_path():
    registry = _registry({"A": ["B"], "B": ["A"]})
    g = TaskGraph.from_registry(registry)

    with pytest.raises(CyclicDependencyError) as e:
        g.subgraph_order("A")

    cycle = e.value.cycle
    assert cycle == ["A", "B", "A"]
    assert e.value.task_id == "A"
    assert "A -> B -> A" in str(e.value)


def test_cycle_detected_deep_in_closure():
    registry = _registry(
        {
            "top": ["mid"],
            "mid": ["x"],
            "x": ["y"],
            "y": ["x"],
        }
    )
    g = TaskGraph.from_registry(registry)

    with pytest.raises(CyclicDependencyError) as e:
        g.subgraph_order("top")

    assert e.value.cycle == ["x", "y", "x"]


def test_cycle_outside_closure_is_not_reached():
    registry = _registry({"A": ["B"], "B": ["A"], "C": []})
    g = TaskGraph.from_registry(registry)
    assert g.subgraph_order("C") == ["C"]


def test_subgraph_order_target_includes_only_transitive_deps():
    registry = _registry(
        {
            "A": ["B", "C"],
            "B": ["D"],
            "C": ["D"],
            "D": [],
        }
    )
    g = TaskGraph.from_registry(registry)
    assert g.subgraph_order("B") == ["D", "B"]
    assert g.subgraph_order("C") == ["D", "C"]
    assert g.subgraph_order("A") == ["D", "B", "C", "A"]


def test_subgraph_order_lists_each_task_once():
    registry = _registry(
        {
            "A": ["B", "C", "D"],
            "B": ["D"],
            "C": ["B", "D"],
            "D": [],
        }
    )
    order = TaskGraph.from_registry(registry).subgraph_order("A")
    assert len(order) == len(set(order)) == 4
    for tid, deps in {"A": ["B", "C", "D"], "B": ["D"], "C": ["B", "D"]}.items():
        for dep in deps:
            assert order.index(dep) < order.index(tid)


def test_subgraph_order_leaf_returns_itself():
    registry = _registry({"A": []})
    g = TaskGraph.from_registry(registry)
    assert g.subgraph_order("A") == ["A"]


def test_subgraph_order_unknown_target_raises():
    g = TaskGraph.from_registry(_registry({"A": []}))
    with pytest.raises(UnknownTaskError) as e:
        g.subgraph_order("nope")
    assert e.value.task_id == "nope"


def test_unknown_dependency_names_the_dependent():
    g = TaskGraph.from_registry(_registry({"A": ["ghost"]}))
    with pytest.raises(UnknownTaskError) as e:
        g.subgraph_order("A")
    assert e.value.task_id == "ghost"
    assert e.value.required_by == "A"


def test_long_chain_does_not_exhaust_the_stack():
    depth = 5000
    registry = _registry(
        {f"t{i}": [f"t{i - 1}"] if i else [] for i in range(depth)}
    )
    g = TaskGraph.from_registry(registry)

    expected = [f"t{i}" for i in range(depth)]
    assert g.subgraph_order(f"t{depth - 1}") == expected
    assert g.topo_order() == expected


def test_long_cycle_is_reported_without_exhausting_the_stack():
    depth = 5000
    registry = _registry(
        {f"t{i}": [f"t{(i - 1) % depth}"] for i in range(depth)}
    )
    g = TaskGraph.from_registry(registry)

    with pytest.raises(CyclicDependencyError) as e:
        g.subgraph_order("t0")

    assert len(e.value.cycle) == depth + 1
    assert e.value.cycle[0] == e.value.cycle[-1] == "t0"


def test_self_dependency_is_a_one_task_cycle():
    g = TaskGraph.from_registry(_registry({"A": ["A"]}))
    with pytest.raises(CyclicDependencyError) as e:
        g.subgraph_order("A")
    assert e.value.cycle == ["A", "A"]
