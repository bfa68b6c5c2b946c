"""Order chart results so that every chart comes after its dependencies."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Set

import networkx as nx

from .chart import dependency_allowed
from .common import logger
from .worker import Result


class DependencySortError(Exception):
    """The dependency graph could not be sorted for a reason other than a cycle."""
    pass


class CircularDependencyError(Exception):
    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__("circular dependency between charts: " + " -> ".join(cycle + cycle[:1]))


@dataclass
class SortResult:
    """
    Outcome of topo_sort.

    `error` is set when the charts depend on each other in a cycle. `results`
    is then the input order, unchanged, so the caller can go on in degraded
    mode.
    """
    results: List[Result]
    error: Optional[CircularDependencyError] = None

    @property
    def cycle(self) -> Optional[List[str]]:
        return self.error.cycle if self.error is not None else None


def build_graph(results: List[Result], dependencies_filter: Optional[Set[str]] = None) -> nx.DiGraph:
    """Edges point from a dependency to the chart depending on it."""
    graph = nx.DiGraph()
    names = {r.chart.name for r in results if not r.errors and r.chart is not None}
    graph.add_nodes_from(names)

    for result in results:
        if result.errors or result.chart is None:
            continue
        for dep in result.chart.dependencies:
            if not dependency_allowed(dep, dependencies_filter):
                continue
            # Dependencies without a schema in this run cannot be ordered
            if dep.name in names:
                graph.add_edge(dep.name, result.chart.name)
    return graph


def topo_sort(results: List[Result], dependencies_filter: Optional[Set[str]] = None) -> SortResult:
    """
    Sort `results` so that dependencies come before their dependents.

    Results with errors are left out of the graph and appended at the end in
    their original order. Charts ready at the same time are ordered by name.
    A cycle is reported through SortResult.error; anything else that prevents
    sorting raises DependencySortError.
    """
    by_name: Dict[str, List[Result]] = {}
    failed: List[Result] = []
    for result in results:
        if result.errors or result.chart is None:
            failed.append(result)
            continue
        by_name.setdefault(result.chart.name, []).append(result)

    for name, charts in by_name.items():
        if len(charts) > 1:
            paths = ", ".join(r.chart_path for r in charts)
            logger().warning(f"Chart name {name} is used by more than one chart: {paths}")

    graph = build_graph(results, dependencies_filter)
    try:
        order = list(nx.lexicographical_topological_sort(graph))
    except nx.NetworkXUnfeasible:
        return SortResult(results=list(results), error=CircularDependencyError(_find_cycle(graph)))
    except nx.NetworkXException as ex:
        raise DependencySortError(f"failed to sort charts by dependencies: {ex}") from ex

    ordered: List[Result] = []
    for name in order:
        ordered.extend(sorted(by_name[name], key=lambda r: r.chart_path))
    ordered.extend(failed)
    return SortResult(results=ordered)


def _find_cycle(graph: nx.DiGraph) -> List[str]:
    try:
        edges = nx.find_cycle(graph)
    except nx.NetworkXNoCycle:
        return []
    # find_cycle follows the edges dependency -> dependent, report it the other way round
    return [edge[0] for edge in reversed(edges)]
