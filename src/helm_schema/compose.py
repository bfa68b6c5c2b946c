"""
Dependency-aware schema composition.

Runs after topo_sort, on a single thread:

1. collect_condition_patches / apply_condition_patches make sure that the
   boolean flag named by a dependency's `condition` exists in the schema of
   the chart it points to.
2. compose_dependencies embeds the schema of each dependency into the schema
   of the chart that depends on it, under the dependency's alias or name.
"""

from typing import Dict, List, Optional, Set

from .chart import Dependency, dependency_allowed
from .common import logger
from .schema import Schema
from .worker import Result

CONDITION_DESCRIPTION = "Conditional property used in parent chart"


def condition_paths(dependency: Dependency) -> List[List[str]]:
    """
    Split a dependency condition into key paths.

    A condition may name several comma separated paths. The first key of each
    path names the chart that owns the flag; an alias is resolved to the chart
    name of the dependency that declares it.
    """
    paths = []
    for condition in dependency.condition.split(","):
        keys = [key.strip() for key in condition.strip().split(".")]
        if len(keys) < 2 or not all(keys):
            continue
        if dependency.alias and keys[0] == dependency.alias:
            keys[0] = dependency.name
        paths.append(keys)
    return paths


def collect_condition_patches(
    results: List[Result], dependencies_filter: Optional[Set[str]] = None
) -> Dict[str, List[List[str]]]:
    """Map each chart name to the key paths that have to exist in its schema."""
    patches: Dict[str, List[List[str]]] = {}
    for result in results:
        if result.errors or result.chart is None:
            continue
        for dep in result.chart.dependencies:
            if not dependency_allowed(dep, dependencies_filter):
                continue
            for keys in condition_paths(dep):
                chart_patches = patches.setdefault(keys[0], [])
                if keys[1:] not in chart_patches:
                    chart_patches.append(keys[1:])
    return patches


def patch_condition(schema: Schema, keys: List[str], chart_name: str = ""):
    """Create the missing nodes along `keys`, ending in a boolean. Existing nodes are kept."""
    node = schema
    last_index = len(keys) - 1
    for index, key in enumerate(keys):
        existing = node.properties.get(key)
        if existing is not None:
            node = existing
            continue
        logger().debug(f"Patching conditional field \"{key}\" into schema of chart {chart_name}")
        if index == last_index:
            node.properties[key] = Schema(type=["boolean"], title=key, description=CONDITION_DESCRIPTION)
        else:
            node.properties[key] = Schema(type=["object"], title=key)
            node = node.properties[key]


def apply_condition_patches(results: List[Result], patches: Dict[str, List[List[str]]]):
    for result in results:
        if result.errors or result.chart is None:
            continue
        for keys in patches.get(result.chart.name, []):
            patch_condition(result.schema, keys, result.chart.name)


def dependency_schema(dependency: Dependency, dependency_result: Result) -> Schema:
    """A standalone copy of the dependency's schema, with nothing required."""
    node = Schema(
        type=["object"],
        title=dependency.name,
        description=dependency_result.chart.description,
        properties=dependency_result.schema.deepcopy().properties,
    )
    node.disable_required_properties()
    return node


def compose_dependencies(results: List[Result], dependencies_filter: Optional[Set[str]] = None):
    """
    Embed dependency schemas into their parents.

    `results` must be in dependency order: a dependency is only found if its
    result came earlier in the list.
    """
    chart_name_to_result: Dict[str, Result] = {}
    for result in results:
        if result.errors or result.chart is None:
            continue

        chart = result.chart
        logger().debug(f"Processing result for chart: {result.describe()}")
        chart_name_to_result[chart.name] = result

        for dep in chart.dependencies:
            if not dependency_allowed(dep, dependencies_filter):
                continue

            if not dep.name:
                logger().warning(f"Dependency without name found (checkout {result.chart_path}).")
                continue

            dependency_result = chart_name_to_result.get(dep.name)
            if dependency_result is None:
                logger().warning(
                    f"Dependency ({chart.name}->{dep.name}) specified but no schema found. "
                    "If you want to create jsonschemas for external dependencies, "
                    "you need to run helm dependency build & untar the charts."
                )
                continue

            logger().debug(f"Found chart of dependency {dependency_result.describe()}")
            key = dep.alias or dep.name
            if key in result.schema.properties:
                logger().debug(f"Dependency schema for {dep.name} replaces existing property \"{key}\" of chart {chart.name}")
            result.schema.properties[key] = dependency_schema(dep, dependency_result)


def compose(results: List[Result], dependencies_filter: Optional[Set[str]] = None):
    """Patch conditions, then embed dependencies. `results` must be sorted."""
    apply_condition_patches(results, collect_condition_patches(results, dependencies_filter))
    compose_dependencies(results, dependencies_filter)
