"""
Schema Generator for Helm values documents

This module infers a JSON schema from a chart's values.yaml. Types, titles and
defaults come from the values themselves, descriptions from the comments right
above each key. A comment block enclosed in `# @schema` lines holds a YAML
mapping of JSON-schema keywords that override whatever was inferred:

    # @schema
    # type: [string, "null"]
    # required: true
    # @schema
    # -- The image tag to deploy
    tag: ~

Keys are optional unless annotated with `required: true`.
"""

import base64
import datetime
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .schema import Schema, SkipAutoGenerationConfig, new_root_schema
from .utils.yaml_text import SCHEMA_ANNOTATION_MARKER, is_schema_marker

JSON_TYPES = ("object", "array", "string", "number", "integer", "boolean", "null")

HELM_DOCS_PREFIX = "--"

# helm-docs "(type)" hints understood in compatibility mode
HELM_DOCS_TYPES = {
    "int": "integer",
    "integer": "integer",
    "float": "number",
    "number": "number",
    "bool": "boolean",
    "boolean": "boolean",
    "string": "string",
    "tpl": "string",
    "list": "array",
    "array": "array",
    "dict": "object",
    "object": "object",
}

_HELM_DOCS_TYPE_HINT = re.compile(r"^\((\w+)\)\s*(.*)$")


class SchemaAnnotationError(Exception):
    """Raised for a malformed `# @schema` block."""
    pass


class SchemaAnnotation(BaseModel):
    """The keywords allowed inside a `# @schema` block."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    type: Optional[Union[str, List[str]]] = None
    title: Optional[str] = None
    description: Optional[str] = None
    required: Optional[bool] = None
    default: Any = None
    enum: Optional[List[Any]] = None
    const: Any = None
    examples: Optional[List[Any]] = None
    format: Optional[str] = None
    pattern: Optional[str] = None
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    exclusive_minimum: Optional[Union[int, float]] = Field(default=None, alias="exclusiveMinimum")
    exclusive_maximum: Optional[Union[int, float]] = Field(default=None, alias="exclusiveMaximum")
    multiple_of: Optional[Union[int, float]] = Field(default=None, alias="multipleOf")
    min_length: Optional[int] = Field(default=None, alias="minLength")
    max_length: Optional[int] = Field(default=None, alias="maxLength")
    min_items: Optional[int] = Field(default=None, alias="minItems")
    max_items: Optional[int] = Field(default=None, alias="maxItems")
    unique_items: Optional[bool] = Field(default=None, alias="uniqueItems")
    min_properties: Optional[int] = Field(default=None, alias="minProperties")
    max_properties: Optional[int] = Field(default=None, alias="maxProperties")
    items: Optional[Dict[str, Any]] = None
    properties: Optional[Dict[str, Dict[str, Any]]] = None
    pattern_properties: Optional[Dict[str, Dict[str, Any]]] = Field(default=None, alias="patternProperties")
    additional_properties: Optional[Union[bool, Dict[str, Any]]] = Field(default=None, alias="additionalProperties")
    any_of: Optional[List[Dict[str, Any]]] = Field(default=None, alias="anyOf")
    one_of: Optional[List[Dict[str, Any]]] = Field(default=None, alias="oneOf")
    all_of: Optional[List[Dict[str, Any]]] = Field(default=None, alias="allOf")
    not_: Optional[Dict[str, Any]] = Field(default=None, alias="not")
    ref: Optional[str] = Field(default=None, alias="$ref")
    comment: Optional[str] = Field(default=None, alias="$comment")
    deprecated: Optional[bool] = None
    read_only: Optional[bool] = Field(default=None, alias="readOnly")
    write_only: Optional[bool] = Field(default=None, alias="writeOnly")

    @field_validator("type")
    @classmethod
    def _known_types(cls, value):
        if value is None:
            return value
        types = [value] if isinstance(value, str) else value
        unknown = [t for t in types if t not in JSON_TYPES]
        if unknown:
            raise ValueError(f"unknown type(s) {unknown}, expected one of {list(JSON_TYPES)}")
        return value

    def keywords(self) -> Dict[str, Any]:
        # Only what the author actually wrote, under its JSON-schema name
        return self.model_dump(by_alias=True, exclude_unset=True)


@dataclass
class Comment:
    annotation: Dict[str, Any] = field(default_factory=dict)
    description: str = ""
    helm_docs_type: Optional[str] = None


def _json_safe(value):
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(v) for v in value]
    return value


def infer_type(value) -> str:
    """Map a constructed YAML value to a JSON schema type name."""
    # bool is a subclass of int
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if value is None:
        return "null"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, (list, tuple, set)):
        return "array"
    return "string"


def _is_null(node) -> bool:
    return isinstance(node, yaml.ScalarNode) and node.tag == "tag:yaml.org,2002:null"


def _strip_comment(line: str) -> str:
    text = line.strip()[1:]
    return text[1:] if text.startswith(" ") else text


class ValuesSchemaGenerator:
    """Walks the composed YAML node tree of one values document."""

    def __init__(
        self,
        content: str,
        values_path: str,
        keep_full_comment: bool = False,
        helm_docs_compatibility_mode: bool = False,
        dont_strip_helm_docs_prefix: bool = False,
        skip_config: SkipAutoGenerationConfig = None,
    ):
        self.content = content
        self.lines = content.split("\n")
        self.values_path = values_path
        self.keep_full_comment = keep_full_comment
        self.helm_docs_compatibility_mode = helm_docs_compatibility_mode
        self.dont_strip_helm_docs_prefix = dont_strip_helm_docs_prefix
        self.skip_config = skip_config or SkipAutoGenerationConfig()
        self.errors: List[Exception] = []
        self._loader = None

    def generate(self) -> Schema:
        root = new_root_schema()
        self._loader = yaml.SafeLoader(self.content)
        try:
            # Only the first document counts, like helm does
            node = self._loader.get_node() if self._loader.check_node() else None
            if node is None or _is_null(node):
                return root
            if not isinstance(node, yaml.MappingNode):
                raise yaml.YAMLError(f"{self.values_path}: expected a mapping at the top level")
            # Resolves merge keys in place before the keys are walked
            self._construct(node)
            self._fill_mapping(node, root, "")
        finally:
            self._loader.dispose()
            self._loader = None
        return root

    def _construct(self, node):
        return self._loader.construct_object(node, deep=True)

    def _comment_lines_above(self, line_number: int) -> List[str]:
        collected = []
        index = line_number - 1
        while index >= 0:
            stripped = self.lines[index].strip()
            if stripped and not stripped.startswith("#"):
                break
            collected.append(self.lines[index])
            index -= 1
        collected.reverse()
        # Empty lines only count between comment paragraphs
        while collected and not collected[0].strip():
            collected.pop(0)
        return collected

    def parse_comment(self, lines: List[str], key_path: str) -> Comment:
        comment = Comment()
        annotation_lines = []
        description_lines = []
        in_annotation = False
        for line in lines:
            if is_schema_marker(line):
                in_annotation = not in_annotation
                continue
            if in_annotation:
                annotation_lines.append(_strip_comment(line))
            else:
                description_lines.append(_strip_comment(line))

        if in_annotation:
            raise SchemaAnnotationError(
                f"{self.values_path}: unterminated '# {SCHEMA_ANNOTATION_MARKER}' block above '{key_path}'"
            )

        if annotation_lines:
            comment.annotation = self._parse_annotation("\n".join(annotation_lines), key_path)

        comment.description, comment.helm_docs_type = self._description(description_lines)
        return comment

    def _parse_annotation(self, text: str, key_path: str) -> Dict[str, Any]:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as ex:
            raise SchemaAnnotationError(f"{self.values_path}: invalid @schema YAML above '{key_path}': {ex}") from ex
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise SchemaAnnotationError(f"{self.values_path}: @schema above '{key_path}' must be a mapping")
        try:
            return SchemaAnnotation.model_validate(data).keywords()
        except ValidationError as ex:
            raise SchemaAnnotationError(f"{self.values_path}: invalid @schema above '{key_path}': {ex}") from ex

    def _description(self, lines: List[str]) -> Tuple[str, Optional[str]]:
        helm_docs_start = None
        for index, line in enumerate(lines):
            if line.startswith(HELM_DOCS_PREFIX):
                helm_docs_start = index

        if not self.keep_full_comment:
            if helm_docs_start is not None:
                lines = lines[helm_docs_start:]
                helm_docs_start = 0
            else:
                # Only the paragraph closest to the key
                for index in range(len(lines) - 1, -1, -1):
                    if not lines[index].strip():
                        lines = lines[index + 1:]
                        break

        helm_docs_type = None
        cleaned = []
        for index, line in enumerate(lines):
            if index == helm_docs_start:
                text = line[len(HELM_DOCS_PREFIX):].strip()
                if self.helm_docs_compatibility_mode:
                    match = _HELM_DOCS_TYPE_HINT.match(text)
                    if match and match.group(1).lower() in HELM_DOCS_TYPES:
                        helm_docs_type = HELM_DOCS_TYPES[match.group(1).lower()]
                        text = match.group(2)
                if self.dont_strip_helm_docs_prefix:
                    text = f"{HELM_DOCS_PREFIX} {text}"
                line = text
            cleaned.append(line.rstrip())

        return "\n".join(cleaned).strip(), helm_docs_type

    def _fill_mapping(self, node: yaml.MappingNode, target: Schema, path: str):
        for key_node, value_node in node.value:
            key = str(self._construct(key_node))
            key_path = f"{path}.{key}" if path else key
            try:
                comment = self.parse_comment(self._comment_lines_above(key_node.start_mark.line), key_path)
            except SchemaAnnotationError as ex:
                self.errors.append(ex)
                comment = Comment()

            prop = self._node_to_schema(key, value_node, key_path, comment)
            target.properties[key] = prop
            if comment.annotation.get("required") is True:
                target.add_required(key)

    def _node_to_schema(self, key: str, node, key_path: str, comment: Comment) -> Schema:
        skip = self.skip_config
        schema = Schema()
        value = self._construct(node)

        if not skip.skips("title"):
            schema.title = key
        if not skip.skips("description") and comment.description:
            schema.description = comment.description
        if not skip.skips("type"):
            schema.type = [comment.helm_docs_type or infer_type(value)]

        if isinstance(node, yaml.MappingNode):
            self._fill_mapping(node, schema, key_path)
        elif isinstance(node, yaml.SequenceNode):
            schema.items = self._items_schema(node, key_path)
            if not skip.skips("default"):
                schema.set_default(_json_safe(value))
        elif not skip.skips("default"):
            schema.set_default(_json_safe(value))

        annotation = dict(comment.annotation)
        annotation.pop("required", None)
        if annotation:
            schema.update_from_dict(annotation)
        return schema

    def _items_schema(self, node: yaml.SequenceNode, key_path: str) -> Optional[Schema]:
        if not node.value:
            return None
        first = node.value[0]
        if isinstance(first, yaml.MappingNode):
            if not all(isinstance(item, yaml.MappingNode) for item in node.value):
                return None
            items = Schema()
            if not self.skip_config.skips("type"):
                items.type = ["object"]
            self._fill_mapping(first, items, f"{key_path}[]")
            return items

        types = {infer_type(self._construct(item)) for item in node.value}
        if len(types) != 1 or self.skip_config.skips("type"):
            return None
        return Schema(type=[types.pop()])


def yaml_to_schema(
    content: str,
    values_path: str,
    keep_full_comment: bool = False,
    helm_docs_compatibility_mode: bool = False,
    dont_strip_helm_docs_prefix: bool = False,
    skip_config: SkipAutoGenerationConfig = None,
) -> Tuple[Schema, List[Exception]]:
    """
    Infer the schema of a values document.

    Returns the root schema and the annotation errors found along the way.
    Documents after the first one are ignored. Raises yaml.YAMLError if the
    first document cannot be parsed.
    """
    generator = ValuesSchemaGenerator(
        content,
        values_path,
        keep_full_comment=keep_full_comment,
        helm_docs_compatibility_mode=helm_docs_compatibility_mode,
        dont_strip_helm_docs_prefix=dont_strip_helm_docs_prefix,
        skip_config=skip_config,
    )
    schema = generator.generate()
    return schema, generator.errors
