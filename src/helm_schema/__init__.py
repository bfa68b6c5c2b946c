from .chart import ChartFile, ChartParseError, Dependency, load_chart, read_chart
from .compose import compose, compose_dependencies, apply_condition_patches, collect_condition_patches
from .pipeline import run_pipeline
from .schema import Schema, SkipAutoGenerationConfig
from .toposort import CircularDependencyError, DependencySortError, SortResult, topo_sort
from .worker import GeneratorOptions, Result
