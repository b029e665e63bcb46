"""Composition contract plus a template-based reference implementation."""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, create_model

from promptise.models import Schema

PLACEHOLDER_RE = re.compile(r"\{\{\s*(?:input\.)?(\w+)\s*\}\}")
COMPONENT_KEY_RE = re.compile(r"^[a-z][a-z0-9\-_]*$", re.IGNORECASE)

WrapperStyle = Literal["none", "xml", "markdown", "brackets"]
TemplateFn = Callable[[dict[str, Any]], str]


@runtime_checkable
class Composition(Protocol):
    """What the build pipeline needs from a composition."""

    @property
    def id(self) -> str: ...

    def get_schema(self) -> Schema: ...

    def build(self, data: Mapping[str, Any]) -> str: ...


def extract_placeholders(template: str) -> list[str]:
    """Return ``{{name}}`` variable names in order of first appearance."""
    names: list[str] = []
    for match in PLACEHOLDER_RE.finditer(template):
        name = match.group(1)
        if name not in names:
            names.append(name)
    return names


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def render_template(template: str, values: Mapping[str, Any]) -> str:
    """Replace ``{{key}}`` and ``{{input.key}}`` placeholders present in ``values``."""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in values:
            return match.group(0)
        return _format_value(values[name])

    return PLACEHOLDER_RE.sub(_replace, template)


def apply_wrapper(content: str, key: str, style: WrapperStyle) -> str:
    if style == "xml":
        return f"<{key}>\n{content}\n</{key}>"
    if style == "markdown":
        return f"## {key[:1].upper()}{key[1:]}\n{content}"
    if style == "brackets":
        upper = key.upper()
        return f"[{upper}]\n{content}\n[/{upper}]"
    return content


class PromptComponent:
    """One keyed section of a prompt with its own field schema.

    When ``schema`` is omitted and the template is a string, every placeholder
    in the template becomes a required ``str`` field.
    """

    def __init__(
        self,
        key: str,
        template: str | TemplateFn,
        schema: type[BaseModel] | None = None,
        description: str | None = None,
    ):
        if not COMPONENT_KEY_RE.match(key):
            raise ValueError(
                f'Invalid component key "{key}". Keys must start with a letter and contain '
                "only letters, numbers, hyphens, or underscores."
            )
        self.key = key
        self.template = template
        self.description = description
        if schema is None:
            names = extract_placeholders(template) if isinstance(template, str) else []
            schema = create_model(
                f"{key.title().replace('-', '').replace('_', '')}Input",
                **{name: (str, ...) for name in names},
            )
        self.schema = schema

    def field_requirements(self) -> list[tuple[str, bool]]:
        """Return ``(field_name, is_required)`` pairs in declaration order."""
        return [(name, info.is_required()) for name, info in self.schema.model_fields.items()]

    def render(self, data: Mapping[str, Any]) -> str:
        """Validate ``data`` against the component schema and render the template.

        Raises:
            pydantic.ValidationError: If ``data`` does not satisfy the schema.
        """
        validated = self.schema.model_validate(dict(data))
        values = validated.model_dump()
        if callable(self.template):
            return self.template(values)
        return render_template(self.template, values)


class PromptComposition:
    """An ordered set of components rendered into a single prompt text."""

    def __init__(
        self,
        id: str,
        components: Sequence[PromptComponent],
        description: str | None = None,
        wrapper: WrapperStyle = "none",
        separator: str = "\n\n",
    ):
        if not id:
            raise ValueError("Composition id must be a non-empty string.")
        keys = [component.key for component in components]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Composition {id} has duplicate component keys: {', '.join(keys)}")
        self._id = id
        self.components = list(components)
        self.description = description
        self.wrapper = wrapper
        self.separator = separator

    @property
    def id(self) -> str:
        return self._id

    def get_schema(self) -> Schema:
        """Merge component schemas; a field required by any component is required."""
        order: list[str] = []
        required: set[str] = set()
        for component in self.components:
            for name, is_required in component.field_requirements():
                if name not in order:
                    order.append(name)
                if is_required:
                    required.add(name)
        return Schema(
            required_fields=[name for name in order if name in required],
            optional_fields=[name for name in order if name not in required],
        )

    def get_field_types(self) -> dict[str, Any]:
        """Return the annotation of each field, taken from the first component declaring it."""
        types: dict[str, Any] = {}
        for component in self.components:
            for name, info in component.schema.model_fields.items():
                types.setdefault(name, info.annotation)
        return types

    def build(self, data: Mapping[str, Any]) -> str:
        parts = [
            apply_wrapper(component.render(data), component.key, self.wrapper)
            for component in self.components
        ]
        return self.separator.join(parts)

    def __repr__(self) -> str:
        return f"PromptComposition(id={self._id!r}, components={[c.key for c in self.components]})"
