import networkx as nx
import pytest

from conftest import failed_result, make_result
from helm_schema.toposort import CircularDependencyError, DependencySortError, build_graph, topo_sort


def names(results):
    return [r.name for r in results]


def test_dependencies_come_first():
    results = [
        make_result("app", dependencies=[{"name": "db"}, {"name": "cache"}]),
        make_result("db"),
        make_result("cache", dependencies=[{"name": "db"}]),
    ]
    sorted_results = topo_sort(results)
    assert sorted_results.error is None
    assert names(sorted_results.results) == ["db", "cache", "app"]


def test_independent_charts_are_ordered_by_name():
    results = [make_result("zeta"), make_result("alpha"), make_result("mid")]
    assert names(topo_sort(results).results) == ["alpha", "mid", "zeta"]


def test_unknown_dependencies_are_ignored():
    results = [make_result("app", dependencies=[{"name": "external"}])]
    sorted_results = topo_sort(results)
    assert sorted_results.error is None
    assert names(sorted_results.results) == ["app"]


def test_filtered_dependencies_do_not_order():
    results = [
        make_result("a", dependencies=[{"name": "b"}]),
        make_result("b", dependencies=[{"name": "a"}]),
    ]
    sorted_results = topo_sort(results, {"a"})
    assert sorted_results.error is None
    assert names(sorted_results.results) == ["a", "b"]


def test_failed_results_go_last():
    results = [
        failed_result("charts/broken/Chart.yaml"),
        make_result("app", dependencies=[{"name": "db"}]),
        make_result("db"),
    ]
    sorted_results = topo_sort(results)
    assert names(sorted_results.results) == ["db", "app", None]
    assert sorted_results.results[-1].chart_path == "charts/broken/Chart.yaml"


def test_duplicate_names_are_kept():
    results = [
        make_result("app", chart_path="b/Chart.yaml"),
        make_result("app", chart_path="a/Chart.yaml"),
    ]
    sorted_results = topo_sort(results)
    assert [r.chart_path for r in sorted_results.results] == ["a/Chart.yaml", "b/Chart.yaml"]


def test_cycle_returns_input_order():
    results = [
        make_result("a", dependencies=[{"name": "b"}]),
        make_result("b", dependencies=[{"name": "a"}]),
        make_result("c"),
    ]
    sorted_results = topo_sort(results)
    assert isinstance(sorted_results.error, CircularDependencyError)
    assert sorted_results.results == results
    assert sorted(sorted_results.cycle) == ["a", "b"]
    assert "a" in str(sorted_results.error) and "b" in str(sorted_results.error)


def test_self_dependency_is_a_cycle():
    results = [make_result("a", dependencies=[{"name": "a"}])]
    sorted_results = topo_sort(results)
    assert sorted_results.cycle == ["a"]


def test_other_graph_errors_are_fatal(monkeypatch):
    def broken_sort(graph):
        raise nx.NetworkXError("broken graph")

    monkeypatch.setattr(nx, "lexicographical_topological_sort", broken_sort)
    with pytest.raises(DependencySortError):
        topo_sort([make_result("a")])


def test_build_graph_edges_point_to_dependents():
    graph = build_graph([
        make_result("app", dependencies=[{"name": "db"}]),
        make_result("db"),
    ])
    assert set(graph.edges) == {("db", "app")}
