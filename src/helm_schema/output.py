import os
import sys
from typing import List

from .common import logger
from .schema import SchemaSerializationError
from .worker import Result


def report_errors(result: Result):
    if result.chart is not None:
        logger().error(
            f"Found {len(result.errors)} errors while processing the chart {result.chart.name} ({result.chart_path})"
        )
    else:
        logger().error(f"Found {len(result.errors)} errors while processing the chart {result.chart_path}")
    for err in result.errors:
        logger().error(str(err))


def schema_path(result: Result, output_file: str) -> str:
    return os.path.join(os.path.dirname(result.chart_path), output_file)


def write_results(
    results: List[Result],
    output_file: str = "values.schema.json",
    dry_run: bool = False,
    append_newline: bool = False,
    stdout=None,
) -> bool:
    """
    Print or write the schema of every result without errors.

    Returns True if any result had errors or could not be written. One
    failing chart never stops the others.
    """
    stdout = stdout or sys.stdout
    found_errors = False

    for result in results:
        if result.errors:
            found_errors = True
            report_errors(result)
            continue

        try:
            json_str = result.schema.to_json()
        except SchemaSerializationError as ex:
            found_errors = True
            logger().error(f"Could not serialize schema of chart {result.describe()}: {ex}")
            continue

        if append_newline:
            json_str += "\n"

        if dry_run:
            logger().info(f"Printing jsonschema for {result.describe()} chart")
            stdout.write(json_str if append_newline else json_str + "\n")
            continue

        path = schema_path(result, output_file)
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(json_str)
        except OSError as ex:
            found_errors = True
            logger().error(f"Could not write schema of chart {result.describe()} to {path}: {ex}")
            continue
        logger().info(f"Wrote jsonschema for {result.describe()} to {path}")

    stdout.flush()
    return found_errors
