"""
Chart.yaml parsing.

Only the fields the schema pipeline needs are modelled; everything else in the
chart definition is ignored.
"""

from typing import IO, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ChartParseError(Exception):
    """Raised when a chart definition cannot be read or is malformed."""
    pass


def _scalar_as_string(value):
    # Versions like 1.0 are parsed as floats by YAML
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class Dependency(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = ""
    alias: str = ""
    condition: str = ""
    version: str = ""
    repository: str = ""
    tags: List[str] = Field(default_factory=list)

    @field_validator("name", "alias", "condition", "version", "repository", mode="before")
    @classmethod
    def _scalar_fields(cls, value):
        return _scalar_as_string(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _none_as_no_tags(cls, value):
        return [] if value is None else value


class ChartFile(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    api_version: str = Field(default="", alias="apiVersion")
    name: str = ""
    description: str = ""
    version: str = ""
    app_version: str = Field(default="", alias="appVersion")
    type: str = ""
    dependencies: List[Dependency] = Field(default_factory=list)

    @field_validator("api_version", "name", "description", "version", "app_version", "type", mode="before")
    @classmethod
    def _scalar_fields(cls, value):
        return _scalar_as_string(value)

    @field_validator("dependencies", mode="before")
    @classmethod
    def _none_as_no_dependencies(cls, value):
        return [] if value is None else value


def read_chart(source: Union[bytes, str, IO]) -> ChartFile:
    """Parse a chart definition from raw bytes, text or an open stream."""
    if hasattr(source, "read"):
        source = source.read()
    if isinstance(source, bytes):
        source = source.decode("utf-8", errors="replace")

    try:
        data = yaml.safe_load(source)
    except yaml.YAMLError as ex:
        raise ChartParseError(f"invalid YAML: {ex}") from ex

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ChartParseError(f"expected a mapping at the top level, got {type(data).__name__}")

    try:
        return ChartFile.model_validate(data)
    except ValidationError as ex:
        raise ChartParseError(str(ex)) from ex


def load_chart(path: str) -> ChartFile:
    """Read and parse the chart definition at `path`."""
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as ex:
        raise ChartParseError(f"failed to read {path}: {ex}") from ex

    try:
        return read_chart(data)
    except ChartParseError as ex:
        raise ChartParseError(f"failed to parse {path}: {ex}") from ex


def dependency_allowed(dependency: Dependency, dependencies_filter: Optional[set]) -> bool:
    """An empty filter allows every dependency."""
    return not dependencies_filter or dependency.name in dependencies_filter
