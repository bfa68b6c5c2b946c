import copy
import fnmatch
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .common import ConfigurationError

JSON_SCHEMA_DRAFT = "http://json-schema.org/draft-07/schema#"

# Keywords the generator fills in on its own (see SkipAutoGenerationConfig)
AUTO_GENERATED_FIELDS = ("type", "title", "description", "default")

# Keywords whose values are nested schemas
SUBSCHEMA_LIST_KEYWORDS = ("anyOf", "oneOf", "allOf")


class SchemaSerializationError(Exception):
    pass


@dataclass
class Schema:
    """
    A node of the generated JSON schema.

    Every node owns its subtree. Nodes are never shared between two parents,
    use deepcopy() when a subtree has to appear in more than one place.
    """
    type: List[str] = field(default_factory=list)
    title: str = ""
    description: str = ""
    properties: Dict[str, "Schema"] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)
    items: Optional["Schema"] = None
    default: Any = None
    has_default: bool = False
    additional_properties: Any = None
    schema: str = ""
    any_of: List["Schema"] = field(default_factory=list)
    one_of: List["Schema"] = field(default_factory=list)
    all_of: List["Schema"] = field(default_factory=list)
    not_: Optional["Schema"] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def set_default(self, value):
        self.default = value
        self.has_default = True

    def add_required(self, name: str):
        if name not in self.required:
            self.required.append(name)

    def children(self) -> Iterable["Schema"]:
        yield from self.properties.values()
        if self.items is not None:
            yield self.items
        if isinstance(self.additional_properties, Schema):
            yield self.additional_properties
        if self.not_ is not None:
            yield self.not_
        for subschemas in (self.any_of, self.one_of, self.all_of):
            yield from subschemas

    def disable_required_properties(self):
        """Clear `required` on this node and every node below it."""
        self.required = []
        for child in self.children():
            child.disable_required_properties()

    def deepcopy(self) -> "Schema":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.schema:
            result["$schema"] = self.schema
        if self.type:
            result["type"] = list(self.type)
        if self.title:
            result["title"] = self.title
        if self.description:
            result["description"] = self.description
        if self.has_default:
            result["default"] = self.default
        if self.properties:
            result["properties"] = {name: prop.to_dict() for name, prop in self.properties.items()}
        if self.required:
            result["required"] = list(self.required)
        if self.items is not None:
            result["items"] = self.items.to_dict()
        if isinstance(self.additional_properties, Schema):
            result["additionalProperties"] = self.additional_properties.to_dict()
        elif self.additional_properties is not None:
            result["additionalProperties"] = self.additional_properties
        for keyword, subschemas in zip(SUBSCHEMA_LIST_KEYWORDS, (self.any_of, self.one_of, self.all_of)):
            if subschemas:
                result[keyword] = [s.to_dict() for s in subschemas]
        if self.not_ is not None:
            result["not"] = self.not_.to_dict()
        for keyword, value in self.extra.items():
            result[keyword] = value
        return result

    def to_json(self, indent: int = 2) -> str:
        try:
            return json.dumps(self.to_dict(), indent=indent, sort_keys=True)
        except (TypeError, ValueError) as ex:
            raise SchemaSerializationError(f"failed to serialize schema '{self.title}': {ex}") from ex

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Schema":
        """Build a node from a plain JSON-schema mapping (used for annotations)."""
        node = Schema()
        node.update_from_dict(data)
        return node

    def update_from_dict(self, data: Dict[str, Any]):
        for keyword, value in data.items():
            if keyword == "type":
                self.type = [value] if isinstance(value, str) else list(value)
            elif keyword == "title":
                self.title = str(value)
            elif keyword == "description":
                self.description = str(value)
            elif keyword == "default":
                self.set_default(value)
            elif keyword == "properties":
                for name, prop in value.items():
                    if name in self.properties:
                        self.properties[name].update_from_dict(prop)
                    else:
                        self.properties[name] = Schema.from_dict(prop)
            elif keyword == "required":
                # Booleans are handled by the generator on the parent node
                if isinstance(value, list):
                    self.required = list(value)
            elif keyword == "items":
                self.items = Schema.from_dict(value)
            elif keyword == "additionalProperties":
                self.additional_properties = Schema.from_dict(value) if isinstance(value, dict) else value
            elif keyword == "$schema":
                self.schema = value
            elif keyword == "anyOf":
                self.any_of = [Schema.from_dict(s) for s in value]
            elif keyword == "oneOf":
                self.one_of = [Schema.from_dict(s) for s in value]
            elif keyword == "allOf":
                self.all_of = [Schema.from_dict(s) for s in value]
            elif keyword == "not":
                self.not_ = Schema.from_dict(value)
            else:
                self.extra[keyword] = value


def new_root_schema() -> Schema:
    return Schema(type=["object"], schema=JSON_SCHEMA_DRAFT)


class SkipAutoGenerationConfig:
    """
    Which keywords the generator must not fill in on its own.

    Entries are glob patterns matched against AUTO_GENERATED_FIELDS, so
    "title" skips titles and "*" skips every auto-generated keyword. A pattern
    that matches nothing is almost always a typo and is rejected.
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None):
        self.patterns = [p.strip() for p in (patterns or []) if p and p.strip()]
        self.fields = set()
        for pattern in self.patterns:
            matched = fnmatch.filter(AUTO_GENERATED_FIELDS, pattern)
            if not matched:
                raise ConfigurationError(
                    f"skip-auto-generation pattern '{pattern}' matches none of: {', '.join(AUTO_GENERATED_FIELDS)}"
                )
            self.fields.update(matched)

    def skips(self, keyword: str) -> bool:
        return keyword in self.fields

    def __repr__(self):
        return f"SkipAutoGenerationConfig({sorted(self.fields)})"
