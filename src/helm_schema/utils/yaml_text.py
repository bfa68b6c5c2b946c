import re

import yaml

SCHEMA_ANNOTATION_MARKER = "@schema"

# "#  key: value" or "# - item", but not helm-docs "# --" comments
_COMMENTED_KEY = re.compile(r"^(\s*)#\s?(\s*(?!--)[^\s#][^:#]*:(?:\s.*)?)$")
_COMMENTED_ITEM = re.compile(r"^(\s*)#\s?(\s*- .*)$")


def fix_newlines(text: str) -> str:
    # Normalize CRLF/CR line endings to LF
    return text.replace("\r\n", "\n").replace("\r", "\n")


def is_schema_marker(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("#") and stripped.lstrip("#").strip() == SCHEMA_ANNOTATION_MARKER


def uncomment_yaml(text: str) -> str:
    """
    Turn commented-out YAML back into YAML so that optional values documented
    as comments are part of the generated schema.

    Lines inside @schema blocks and helm-docs descriptions are kept as they
    are. If the result is not valid YAML anymore the input is returned as is.
    """
    lines = []
    in_annotation = False
    for line in fix_newlines(text).split("\n"):
        if is_schema_marker(line):
            in_annotation = not in_annotation
            lines.append(line)
            continue
        if in_annotation:
            lines.append(line)
            continue
        match = _COMMENTED_KEY.match(line) or _COMMENTED_ITEM.match(line)
        if match:
            lines.append(match.group(1) + match.group(2))
        else:
            lines.append(line)

    uncommented = "\n".join(lines)
    try:
        list(yaml.safe_load_all(uncommented))
    except yaml.YAMLError:
        return text
    return uncommented


def prefix_first_yaml_document(prefix: str, text: str) -> str:
    """
    Insert `prefix` as the first line of the first YAML document in `text`.

    The line endings of `text` are kept.
    """
    newline = "\r\n" if "\r\n" in text else "\n"
    lines = text.split(newline)
    for index, line in enumerate(lines):
        stripped = line.strip()
        if stripped == "---":
            lines.insert(index + 1, prefix)
            return newline.join(lines)
        if stripped and not stripped.startswith("#") and not stripped.startswith("%"):
            break
    return prefix + newline + text
