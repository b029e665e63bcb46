from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from promptise.errors import SchemaUnavailable
from promptise.models import Schema


def introspect(composition: Any) -> Schema:
    """Return the required and optional fields a composition declares.

    Raises:
        SchemaUnavailable: If the composition has no ``get_schema`` or declares
            a field more than once.
    """
    composition_id = getattr(composition, "id", repr(composition))
    get_schema = getattr(composition, "get_schema", None)
    if not callable(get_schema):
        raise SchemaUnavailable(composition_id, "composition does not expose get_schema()")

    try:
        declared = get_schema()
    except Exception as exc:
        raise SchemaUnavailable(composition_id, str(exc)) from exc
    if declared is None:
        raise SchemaUnavailable(composition_id, "get_schema() returned no schema")
    if isinstance(declared, Schema):
        return declared

    try:
        return Schema.model_validate(declared)
    except ValidationError as exc:
        raise SchemaUnavailable(composition_id, str(exc)) from exc
