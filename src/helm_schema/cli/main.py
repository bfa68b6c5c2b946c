#!/usr/bin/env python3
"""
helm-schema command line interface

Generates values.schema.json files for every Helm chart found below the
chart search root, including the schemas of the chart's dependencies.

Environment Variables:
- HELM_SCHEMA_<OPTION>: default for any long option, e.g. HELM_SCHEMA_DRY_RUN=true
"""

import argparse
import sys

from ..common import ConfigurationError, logger
from ..config import build_config
from ..runner import run
from ..toposort import DependencySortError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="helm-schema",
        description="Create jsonschemas for Helm values files",
    )
    flag = {"action": "store_true", "default": None}

    parser.add_argument("-c", "--chart-search-root", help="directory to search recursively within for charts (default: .)")
    parser.add_argument("-d", "--dry-run", help="don't actually create files just print to stdout", **flag)
    parser.add_argument("-n", "--no-dependencies", help="don't analyze dependencies", **flag)
    parser.add_argument("-r", "--add-schema-reference", help="add reference to schema in values.yaml if not found", **flag)
    parser.add_argument("-s", "--keep-full-comment", help="keep the whole leading comment (default: cut at empty line)", **flag)
    parser.add_argument("-p", "--helm-docs-compatibility-mode", help="parse and use helm-docs comments", **flag)
    parser.add_argument("-u", "--uncomment", help="consider yaml which is commented out", **flag)
    parser.add_argument("-o", "--output-file", help="jsonschema file path relative to each chart directory to which jsonschema will be written (default: values.schema.json)")
    parser.add_argument("-x", "--dont-strip-helm-docs-prefix", help="disable the removal of the helm-docs prefix (--)", **flag)
    parser.add_argument("-a", "--append-newline", help="append newline to generated jsonschema at the end of the file", **flag)
    parser.add_argument("-f", "--value-files", action="append", help="filenames to check for chart values, comma separated or repeated (default: values.yaml)")
    parser.add_argument("-k", "--skip-auto-generation", action="append", help="keywords that should not be generated automatically, comma separated or repeated")
    parser.add_argument("-i", "--dependencies-filter", action="append", help="only generate schema for specified dependencies, comma separated or repeated")
    parser.add_argument("-l", "--log-level", help="level of logs that should be printed, one of (debug, info, warning, error) (default: info)")
    parser.add_argument("--log-format", help="format of console logs, one of (color, simple, structured) (default: color)")
    parser.add_argument("--log-file", help="also append logs as JSON lines to this file")
    parser.add_argument("--config", help="config file (default: .helm-schema.yaml in the working directory, if present)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    cli_settings = vars(args)
    config_file = cli_settings.pop("config")

    try:
        config = build_config(cli_settings, config_file=config_file)
    except ConfigurationError as ex:
        logger().error(str(ex))
        return 1

    try:
        logger(level=config.log_level, format_type=config.log_format, filename=config.log_file or "")
    except OSError as ex:
        logger().error(f"Could not open log file {config.log_file}: {ex}")
        return 1

    try:
        found_errors = run(config)
    except (ConfigurationError, DependencySortError) as ex:
        logger().error(f"Execution error: {ex}")
        return 1

    if found_errors:
        logger().error("Execution error: some errors were found")
        return 1
    return 0


def entrypoint():
    sys.exit(main())


if __name__ == '__main__':
    entrypoint()
