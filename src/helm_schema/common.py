import json
import logging
import os
import re
import sys

import commentjson
import yaml
from python_log_indenter import IndentedLoggerAdapter

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class ColorFormatter(logging.Formatter):
    """Console formatter coloring each record by its level"""

    COLORS = {
        logging.DEBUG: "\x1b[1;30m",
        logging.INFO: "\x1b[38;20m",
        logging.WARNING: "\x1b[33;20m",
        logging.ERROR: "\x1b[31;20m",
        logging.CRITICAL: "\x1b[31;1m",
    }
    RESET = "\x1b[0m"

    def __init__(self, use_colors=True):
        super().__init__(CONSOLE_FORMAT)
        self.use_colors = use_colors

    def format(self, record):
        text = super().format(record)
        if not self.use_colors or record.levelno not in self.COLORS:
            return text
        return self.COLORS[record.levelno] + text + self.RESET


class SimpleFormatter(logging.Formatter):
    """Level and message only"""

    def __init__(self):
        super().__init__("%(levelname)s: %(message)s")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record"""

    def format(self, record):
        log_record = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'thread': record.threadName,
            'line': record.lineno
        }

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_record)


LOG_FORMATS = ("color", "simple", "structured")

_logger = None
_logger_settings = None


def _formatter(format_type: str) -> logging.Formatter:
    if format_type == "simple":
        return SimpleFormatter()
    if format_type == "structured":
        return StructuredFormatter()
    use_colors = hasattr(sys.stderr, 'isatty') and sys.stderr.isatty()
    return ColorFormatter(use_colors=use_colors)


def logger(level: str = None, format_type: str = None, filename: str = None, reset: bool = False):
    """
    Get the helm-schema logger, creating it on first use.

    Records go to stderr so that dry-run schemas printed on stdout stay
    machine readable. With `filename`, every record is also appended to that
    file as a JSON line. Arguments left as None keep the current settings.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive)
        format_type: one of LOG_FORMATS, for the console
        filename: optional log file
        reset: rebuild the handlers even if the settings did not change
    """
    global _logger, _logger_settings

    current = _logger_settings or {'level': 'INFO', 'format_type': 'color', 'filename': None}
    settings = {
        'level': (level or current['level']).upper(),
        'format_type': format_type or current['format_type'],
        'filename': filename if filename is not None else current['filename'],
    }
    if not reset and _logger is not None and settings == _logger_settings:
        return _logger

    log = logging.getLogger("helm-schema")
    log.propagate = False
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()
    log.setLevel(getattr(logging, settings['level'], logging.INFO))

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(_formatter(settings['format_type']))
    log.addHandler(console_handler)

    if settings['filename']:
        file_handler = logging.FileHandler(settings['filename'], encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        log.addHandler(file_handler)

    _logger = IndentedLoggerAdapter(log)
    _logger_settings = settings
    return _logger

def expand_env_vars(text: str) -> str:
    """Expand environment variables with support for ${VAR:-default} syntax."""

    def replacer(match):
        var_expr = match.group(1)
        if ':-' in var_expr:
            var_name, default_value = var_expr.split(':-', 1)
            # Remove quotes from default value if present
            default_value = default_value.strip('\'"')
            return os.environ.get(var_name, default_value)
        else:
            return os.environ.get(var_expr, match.group(0))

    text = re.sub(r'\$\{([^}]+)\}', replacer, text)
    text = os.path.expandvars(text)
    return text

def loadjson(filename, expand_env: bool = False):
    with open(filename, encoding="utf-8") as f:
        data = f.read()
    if expand_env:
        data = expand_env_vars(data)
    return commentjson.loads(data)

def loadyaml(filename, expand_env: bool = False):
    with open(filename, encoding="utf-8") as f:
        data = f.read()
    if expand_env:
        data = expand_env_vars(data)
    return yaml.safe_load(data)

def loadconfig(filename, expand_env: bool = False):
    """Load a JSON (comments allowed) or YAML document based on its extension."""
    if os.path.splitext(filename)[1] == ".json":
        return loadjson(filename, expand_env)
    return loadyaml(filename, expand_env)

class ConfigurationError(Exception):
    pass
