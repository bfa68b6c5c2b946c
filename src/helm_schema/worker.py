import os
import queue as queue_module
from dataclasses import dataclass, field
from typing import List, Optional

import yaml

from .chart import ChartFile, ChartParseError, load_chart
from .common import logger
from .schema import Schema, SkipAutoGenerationConfig, new_root_schema
from .schema_generator import yaml_to_schema
from .utils.yaml_text import fix_newlines, prefix_first_yaml_document, uncomment_yaml

# Closes a path queue: every consumer re-posts it for its siblings
END_OF_STREAM = object()

SCHEMA_REFERENCE_TEMPLATE = "# yaml-language-server: $schema={output_file}"


class ValuesFileError(Exception):
    """Raised when a chart's values document is missing or unreadable."""
    pass


@dataclass
class GeneratorOptions:
    """Read-only settings shared by every worker."""
    dry_run: bool = False
    uncomment: bool = False
    add_schema_reference: bool = False
    keep_full_comment: bool = False
    helm_docs_compatibility_mode: bool = False
    dont_strip_helm_docs_prefix: bool = False
    value_files: List[str] = field(default_factory=lambda: ["values.yaml"])
    skip_auto_generation: SkipAutoGenerationConfig = field(default_factory=SkipAutoGenerationConfig)
    output_file: str = "values.schema.json"


@dataclass
class Result:
    chart_path: str
    chart: Optional[ChartFile] = None
    schema: Schema = field(default_factory=new_root_schema)
    errors: List[Exception] = field(default_factory=list)

    @property
    def name(self) -> Optional[str]:
        return self.chart.name if self.chart is not None else None

    def describe(self) -> str:
        if self.chart is not None:
            return f"{self.chart.name} ({self.chart_path})"
        return self.chart_path


def find_values_file(chart_dir: str, value_files: List[str]) -> str:
    """Return the first of `value_files` present in `chart_dir`."""
    for file_name in value_files:
        values_path = os.path.join(chart_dir, file_name)
        if os.path.isfile(values_path):
            return values_path
    raise ValuesFileError(f"no values file found in {chart_dir} (looked for {', '.join(value_files)})")


def read_values(values_path: str, options: GeneratorOptions) -> str:
    try:
        # newline="" keeps CRLF files as they are when the reference is added
        with open(values_path, encoding="utf-8", newline="") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as ex:
        raise ValuesFileError(f"failed to read {values_path}: {ex}") from ex

    if options.add_schema_reference and not options.dry_run:
        reference = SCHEMA_REFERENCE_TEMPLATE.format(output_file=options.output_file)
        if reference not in content:
            content = prefix_first_yaml_document(reference, content)
            try:
                with open(values_path, "w", encoding="utf-8", newline="") as f:
                    f.write(content)
            except OSError as ex:
                raise ValuesFileError(f"failed to add schema reference to {values_path}: {ex}") from ex
            logger().debug(f"Added schema reference to {values_path}")

    content = fix_newlines(content)
    if options.uncomment:
        content = uncomment_yaml(content)
    return content


def generate_result(chart_path: str, options: GeneratorOptions) -> Result:
    """Produce the Result for one chart. Never raises, failures end up in Result.errors."""
    result = Result(chart_path=chart_path)
    try:
        result.chart = load_chart(chart_path)
    except ChartParseError as ex:
        result.errors.append(ex)
        return result

    try:
        values_path = find_values_file(os.path.dirname(chart_path), options.value_files)
        content = read_values(values_path, options)
    except ValuesFileError as ex:
        result.errors.append(ex)
        return result

    try:
        schema, errors = yaml_to_schema(
            content,
            values_path,
            keep_full_comment=options.keep_full_comment,
            helm_docs_compatibility_mode=options.helm_docs_compatibility_mode,
            dont_strip_helm_docs_prefix=options.dont_strip_helm_docs_prefix,
            skip_config=options.skip_auto_generation,
        )
    except yaml.YAMLError as ex:
        result.errors.append(ValuesFileError(f"failed to parse {values_path}: {ex}"))
        return result

    result.schema = schema
    result.errors.extend(errors)
    return result


def worker(options: GeneratorOptions, queue: queue_module.Queue, results: queue_module.Queue):
    """Turn paths from `queue` into Results on `results` until the queue is closed."""
    while True:
        chart_path = queue.get()
        if chart_path is END_OF_STREAM:
            queue.put(END_OF_STREAM)
            return
        logger().debug(f"Generating schema for {chart_path}")
        try:
            result = generate_result(chart_path, options)
        except Exception as ex:
            logger().error(f"Unexpected failure while generating schema for {chart_path}", exc_info=ex)
            result = Result(chart_path=chart_path, errors=[ex])
        results.put(result)


def worker_count() -> int:
    return (os.cpu_count() or 1) * 2
