"""Shared helpers for building chart trees on disk."""

import textwrap
from pathlib import Path

import pytest
import yaml

from helm_schema.chart import ChartFile, Dependency
from helm_schema.common import logger
from helm_schema.schema import Schema, new_root_schema
from helm_schema.worker import Result


def write_chart(root: Path, rel_dir: str, name: str, values: str = "", dependencies=None, description: str = "") -> Path:
    """Write Chart.yaml (and values.yaml unless values is None) and return the Chart.yaml path."""
    chart_dir = root / rel_dir if rel_dir else root
    chart_dir.mkdir(parents=True, exist_ok=True)
    chart = {"apiVersion": "v2", "name": name, "version": "0.1.0"}
    if description:
        chart["description"] = description
    if dependencies:
        chart["dependencies"] = dependencies
    chart_path = chart_dir / "Chart.yaml"
    chart_path.write_text(yaml.safe_dump(chart, sort_keys=False))
    if values is not None:
        (chart_dir / "values.yaml").write_text(textwrap.dedent(values))
    return chart_path


def make_result(name: str, dependencies=None, properties=None, description: str = "", chart_path: str = None) -> Result:
    """An in-memory Result as a worker would produce it."""
    schema = new_root_schema()
    for key, prop in (properties or {}).items():
        schema.properties[key] = prop
    chart = ChartFile(
        name=name,
        description=description,
        dependencies=[Dependency(**d) for d in (dependencies or [])],
    )
    return Result(chart_path=chart_path or f"charts/{name}/Chart.yaml", chart=chart, schema=schema)


def failed_result(chart_path: str, error: str = "boom") -> Result:
    return Result(chart_path=chart_path, errors=[Exception(error)])


def leaf(*types, **kwargs) -> Schema:
    return Schema(type=list(types), **kwargs)


@pytest.fixture
def chart_tree(tmp_path):
    """tmp_path plus a write_chart bound to it."""
    def _write(rel_dir, name, values="", dependencies=None, description=""):
        return write_chart(tmp_path, rel_dir, name, values, dependencies, description)
    return _write


@pytest.fixture(autouse=True)
def fresh_logger():
    # Handlers hold on to the stderr of the test that created them
    logger(level="INFO", format_type="color", filename="", reset=True)
    yield
