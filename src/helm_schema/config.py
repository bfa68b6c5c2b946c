"""
Settings for a helm-schema run.

Settings are merged from, in increasing order of precedence:

- the defaults below
- a config file (`.helm-schema.yaml` in the working directory, or `--config`),
  YAML or JSON with comments, using the long option names as keys
- HELM_SCHEMA_* environment variables (HELM_SCHEMA_DRY_RUN=true, ...)
- command line flags
"""

import os
from typing import Any, Dict, List, Mapping, Optional, Set

import commentjson
import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .common import LOG_FORMATS, ConfigurationError, loadconfig
from .schema import SkipAutoGenerationConfig
from .worker import GeneratorOptions

ENV_PREFIX = "HELM_SCHEMA_"
DEFAULT_CONFIG_FILES = (".helm-schema.yaml", ".helm-schema.yml", ".helm-schema.json")
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


def _kebab(name: str) -> str:
    return name.replace("_", "-")


def _split_list(value):
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        items = []
        for v in value:
            items.extend(_split_list(v) if isinstance(v, str) else [v])
        return items
    return value


class Config(BaseModel):
    model_config = ConfigDict(alias_generator=_kebab, populate_by_name=True, extra="forbid")

    chart_search_root: str = "."
    dry_run: bool = False
    no_dependencies: bool = False
    add_schema_reference: bool = False
    keep_full_comment: bool = False
    helm_docs_compatibility_mode: bool = False
    uncomment: bool = False
    output_file: str = "values.schema.json"
    dont_strip_helm_docs_prefix: bool = False
    append_newline: bool = False
    value_files: List[str] = ["values.yaml"]
    skip_auto_generation: List[str] = []
    dependencies_filter: List[str] = []
    log_level: str = "info"
    log_format: str = "color"
    log_file: Optional[str] = None

    @field_validator("value_files", "skip_auto_generation", "dependencies_filter", mode="before")
    @classmethod
    def _comma_separated(cls, value):
        return _split_list(value)

    @field_validator("value_files")
    @classmethod
    def _at_least_one_values_file(cls, value):
        if not value:
            raise ValueError("at least one values file name is required")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value):
        if value.lower() not in LOG_LEVELS:
            raise ValueError(f"unknown log level '{value}', expected one of {', '.join(LOG_LEVELS)}")
        return value.lower()

    @field_validator("log_format")
    @classmethod
    def _known_log_format(cls, value):
        if value.lower() not in LOG_FORMATS:
            raise ValueError(f"unknown log format '{value}', expected one of {', '.join(LOG_FORMATS)}")
        return value.lower()

    @field_validator("output_file")
    @classmethod
    def _plain_file_name(cls, value):
        if not value or os.path.basename(value) != value:
            raise ValueError(f"output file must be a plain file name, got '{value}'")
        return value

    def filter_set(self) -> Set[str]:
        return set(self.dependencies_filter)

    def generator_options(self) -> GeneratorOptions:
        return GeneratorOptions(
            dry_run=self.dry_run,
            uncomment=self.uncomment,
            add_schema_reference=self.add_schema_reference,
            keep_full_comment=self.keep_full_comment,
            helm_docs_compatibility_mode=self.helm_docs_compatibility_mode,
            dont_strip_helm_docs_prefix=self.dont_strip_helm_docs_prefix,
            value_files=list(self.value_files),
            skip_auto_generation=SkipAutoGenerationConfig(self.skip_auto_generation),
            output_file=self.output_file,
        )


def find_config_file(directory: str = ".") -> Optional[str]:
    for name in DEFAULT_CONFIG_FILES:
        path = os.path.join(directory, name)
        if os.path.isfile(path):
            return path
    return None


def load_config_file(path: str) -> Dict[str, Any]:
    try:
        data = loadconfig(path, expand_env=True)
    except OSError as ex:
        raise ConfigurationError(f"failed to read config file {path}: {ex}") from ex
    except (yaml.YAMLError, commentjson.JSONLibraryException, ValueError) as ex:
        raise ConfigurationError(f"failed to parse config file {path}: {ex}") from ex
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping")
    return data


def env_settings(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    settings: Dict[str, Any] = {}
    for name, field_info in Config.model_fields.items():
        value = environ.get(ENV_PREFIX + name.upper())
        if value is None:
            continue
        if field_info.annotation is bool:
            if value.strip().lower() in _TRUE:
                settings[name] = True
            elif value.strip().lower() in _FALSE:
                settings[name] = False
            else:
                raise ConfigurationError(f"{ENV_PREFIX + name.upper()} must be a boolean, got '{value}'")
        else:
            settings[name] = value
    return settings


def build_config(
    cli_settings: Optional[Dict[str, Any]] = None,
    config_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Merge every settings source into a validated Config.

    `config_file` None looks for a default config file in the working
    directory, an empty string disables config files.
    """
    merged: Dict[str, Any] = {}

    if config_file is None:
        config_file = find_config_file()
    if config_file:
        for key, value in load_config_file(config_file).items():
            merged[str(key).replace("-", "_")] = value

    merged.update(env_settings(environ))
    merged.update({k: v for k, v in (cli_settings or {}).items() if v is not None})

    try:
        return Config.model_validate(merged)
    except ValidationError as ex:
        raise ConfigurationError(f"invalid configuration: {ex}") from ex
