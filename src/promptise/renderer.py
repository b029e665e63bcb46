"""Render fixture previews with an optional metadata header."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Literal, get_args, get_origin

from pydantic import BaseModel, PydanticSchemaGenerationError, TypeAdapter, ValidationError

from promptise.errors import CompositionBuildError
from promptise.models import CostConfig, FixtureAnalysis, FixtureStatus, Preview
from promptise.tokens import TokenCounter, count_tokens

HEADER_DELIMITER = "---"
MAX_PLACEHOLDER_DEPTH = 3


def render_preview(
    composition: Any,
    fixture_name: str,
    fixture_data: Mapping[str, Any],
    analysis: FixtureAnalysis,
    token_counter: TokenCounter = count_tokens,
    include_metadata: bool = True,
    cost: CostConfig | None = None,
) -> Preview:
    """Render one fixture through its composition and assemble the artifact text.

    Missing required fields are filled with ``{{field}}`` placeholders, shaped
    to the field type when the composition exposes ``get_field_types()``,
    so incomplete fixtures still produce a readable preview. The
    token count is taken on the rendered body; a failing counter leaves the
    count empty and records a warning instead of failing the preview.

    Args:
        composition: Object exposing ``id`` and ``build(data)``.
        fixture_name: Name of the fixture being rendered.
        fixture_data: Field values of the fixture.
        analysis: Result of ``analyze_fixture`` for this fixture.
        token_counter: Callable returning the token count of a text.
        include_metadata: Prepend the metadata header when true.
        cost: Optional pricing used for the input cost estimate.

    Returns:
        The preview content, the bare body, and the token count if available.

    Raises:
        CompositionBuildError: If the composition fails to render the data.
    """
    try:
        field_types = _field_types(composition)
        data = apply_missing_placeholders(fixture_data, analysis.missing, field_types)
        body = _as_text(composition.build(data))
    except Exception as exc:
        raise CompositionBuildError(composition.id, fixture_name, exc) from exc

    token_count: int | None = None
    token_warning: str | None = None
    try:
        token_count = int(token_counter(body))
    except Exception as exc:
        token_warning = str(exc) or exc.__class__.__name__

    static_token_count: int | None = None
    if cost is not None and token_count is not None and analysis.status is FixtureStatus.COMPLETE:
        static_token_count = _count_static_tokens(
            composition, fixture_data, field_types, token_counter, token_count
        )

    if not include_metadata:
        return Preview(
            content=body,
            body=body,
            token_count=token_count,
            static_token_count=static_token_count,
            token_warning=token_warning,
        )

    header = _render_header(
        composition_id=composition.id,
        fixture_name=fixture_name,
        fixture_data=fixture_data,
        analysis=analysis,
        token_count=token_count,
        static_token_count=static_token_count,
        cost=cost,
    )
    return Preview(
        content=header + body,
        body=body,
        token_count=token_count,
        static_token_count=static_token_count,
        token_warning=token_warning,
    )


def apply_missing_placeholders(
    data: Mapping[str, Any],
    missing: list[str],
    field_types: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Return a copy of ``data`` with a placeholder for each missing field.

    Fields without a known type get ``{{field}}``. Typed fields get the first
    candidate their type accepts, so a ``list[str]`` field becomes
    ``["{{field}}"]`` and an ``int`` field becomes ``0``.
    """
    field_types = field_types or {}
    filled = dict(data)
    for field in missing:
        filled[field] = resolve_placeholder_value(field, field_types.get(field, Any))
    return filled


def resolve_placeholder_value(field: str, annotation: Any = Any, depth: int = 0) -> Any:
    """Pick a stand-in value for a missing field that ``annotation`` accepts."""
    text = f"{{{{{field}}}}}"
    candidates = [
        *_declared_choices(annotation),
        text,
        [text],
        _placeholder_object(field, annotation, depth + 1),
        [],
        0,
        False,
        None,
        {},
    ]
    return _first_accepted(annotation, candidates, default=text)


def resolve_static_value(annotation: Any = Any, depth: int = 0) -> Any:
    """Pick an empty value ``annotation`` accepts, used to measure template-only tokens."""
    candidates = [
        *_declared_choices(annotation),
        "",
        [],
        _static_object(annotation, depth + 1),
        0,
        False,
        None,
        {},
    ]
    return _first_accepted(annotation, candidates, default="")


def _declared_choices(annotation: Any) -> list[Any]:
    if get_origin(annotation) is Literal:
        return list(get_args(annotation)[:1])
    if isinstance(annotation, type) and issubclass(annotation, Enum):
        return [member.value for member in annotation][:1]
    return []


def _nested_required_fields(annotation: Any, depth: int) -> dict[str, Any] | None:
    if depth > MAX_PLACEHOLDER_DEPTH:
        return None
    if not (isinstance(annotation, type) and issubclass(annotation, BaseModel)):
        return None
    return {
        name: info.annotation
        for name, info in annotation.model_fields.items()
        if info.is_required()
    }


def _placeholder_object(field: str, annotation: Any, depth: int) -> dict[str, Any]:
    nested = _nested_required_fields(annotation, depth)
    if nested is None:
        return {field: f"{{{{{field}}}}}"}
    return {
        name: resolve_placeholder_value(f"{field}.{name}", child, depth + 1)
        for name, child in nested.items()
    }


def _static_object(annotation: Any, depth: int) -> dict[str, Any]:
    nested = _nested_required_fields(annotation, depth)
    if nested is None:
        return {}
    return {name: resolve_static_value(child, depth + 1) for name, child in nested.items()}


def _first_accepted(annotation: Any, candidates: list[Any], default: Any) -> Any:
    try:
        adapter = TypeAdapter(annotation)
    except PydanticSchemaGenerationError:
        return default
    for candidate in candidates:
        try:
            adapter.validate_python(candidate)
        except ValidationError:
            continue
        return candidate
    return default


def _field_types(composition: Any) -> dict[str, Any]:
    # Compositions may expose field annotations so placeholders match their types.
    get_field_types = getattr(composition, "get_field_types", None)
    if not callable(get_field_types):
        return {}
    return dict(get_field_types())


def _count_static_tokens(
    composition: Any,
    fixture_data: Mapping[str, Any],
    field_types: Mapping[str, Any],
    token_counter: TokenCounter,
    token_count: int,
) -> int:
    """Count tokens of the composition rendered with empty values for the fixture's keys.

    Capped at ``token_count``; any failure counts as zero static tokens.
    """
    static_data = {key: resolve_static_value(field_types.get(key, Any)) for key in fixture_data}
    try:
        static_body = _as_text(composition.build(static_data))
        return min(int(token_counter(static_body)), token_count)
    except Exception:
        return 0


def strip_metadata(text: str) -> str:
    """Remove a leading metadata header written by ``render_preview``."""
    opening = f"{HEADER_DELIMITER}\n"
    closing = f"\n{HEADER_DELIMITER}\n\n"
    if not text.startswith(opening):
        return text
    end = text.find(closing, len(opening) - 1)
    if end == -1:
        return text
    return text[end + len(closing):]


def _render_header(
    *,
    composition_id: str,
    fixture_name: str,
    fixture_data: Mapping[str, Any],
    analysis: FixtureAnalysis,
    token_count: int | None,
    static_token_count: int | None,
    cost: CostConfig | None,
) -> str:
    lines = [
        HEADER_DELIMITER,
        f"Composition ID: {composition_id}",
        f"Fixture: {fixture_name}",
        f"Status: {analysis.status_label}",
    ]
    if analysis.missing:
        lines.append(f"Missing: {', '.join(analysis.missing)}")

    field_lines = _render_field_lines(analysis, fixture_data)
    if field_lines:
        lines.append("Schema Fields:")
        lines.extend(field_lines)

    if token_count is None:
        lines.append("Estimated Tokens: unavailable")
    else:
        lines.append(f"Estimated Tokens: {token_count:,}")
        if cost is not None and static_token_count is not None:
            lines.extend(_render_cost_lines(token_count, static_token_count, cost))

    lines.extend([HEADER_DELIMITER, "", ""])
    return "\n".join(lines)


def _render_cost_lines(token_count: int, static_token_count: int, cost: CostConfig) -> list[str]:
    price = cost.input_token_price
    dynamic_token_count = token_count - static_token_count
    return [
        "Estimated Input Cost:",
        f"  Input Pricing: ${price * 1_000_000:.2f} / 1M tokens (${price:.6f}/token)",
        f"  Static: {static_token_count:,} tokens / ${static_token_count * price:.6f}",
        f"  Dynamic: {dynamic_token_count:,} tokens / ${dynamic_token_count * price:.6f}",
        f"  Total: {token_count:,} tokens / ${token_count * price:.6f}",
    ]


def _render_field_lines(analysis: FixtureAnalysis, fixture_data: Mapping[str, Any]) -> list[str]:
    lines: list[str] = []
    for field in analysis.required_fields:
        if field in analysis.provided:
            lines.append(f"  ✓ {field} (required)")
        else:
            lines.append(f"  ✗ {field} (required) → placeholder")
    for field in analysis.optional_fields:
        if field in fixture_data:
            lines.append(f"  ✓ {field} (optional)")
        else:
            lines.append(f"  ○ {field} (optional) → not provided")
    return lines


def _as_text(rendered: Any) -> str:
    # Accept prompt objects that expose as_string() as well as plain strings.
    as_string = getattr(rendered, "as_string", None)
    if callable(as_string):
        return as_string()
    return str(rendered)
