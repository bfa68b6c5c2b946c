from typing import List

from .common import logger
from .compose import compose
from .config import Config
from .output import write_results
from .pipeline import PipelineStats, run_pipeline
from .toposort import topo_sort
from .worker import Result


def resolve(results: List[Result], config: Config) -> List[Result]:
    """Sort by dependencies and compose the schemas, unless dependencies are disabled."""
    if config.no_dependencies:
        return results

    dependencies_filter = config.filter_set()
    sorted_results = topo_sort(results, dependencies_filter)
    if sorted_results.error is not None:
        logger().warning(f"Could not sort results: {sorted_results.error}")
    results = sorted_results.results

    compose(results, dependencies_filter)
    return results


def run(config: Config, stdout=None) -> bool:
    """
    Generate, compose and write the schemas of every chart below the search root.

    Returns True if any chart ended with errors. DependencySortError and
    configuration errors propagate.
    """
    options = config.generator_options()
    stats = PipelineStats()
    results = run_pipeline(
        config.chart_search_root,
        options,
        dependencies_filter=config.filter_set(),
        stats=stats,
    )
    results = resolve(results, config)
    found_errors = write_results(
        results,
        output_file=config.output_file,
        dry_run=config.dry_run,
        append_newline=config.append_newline,
        stdout=stdout,
    )
    if stats.discovery_errors:
        logger().warning(f"{stats.discovery_errors} error(s) occurred while searching for charts")
    return found_errors
