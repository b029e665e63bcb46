"""Classify fixture data by how many required schema fields it provides."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from promptise.models import FixtureAnalysis, FixtureStatus, Schema


def analyze_fixture(schema: Schema, fixture_data: Mapping[str, Any]) -> FixtureAnalysis:
    """Analyze fixture data against a schema to determine completeness.

    Only required fields are counted. Optional fields and keys unknown to the
    schema never change the status.

    Args:
        schema: Field requirements of the composition.
        fixture_data: Field values of one fixture.

    Returns:
        The status, a ``"<status> - <provided>/<required> required"`` label, and
        the provided/missing split of the required fields in schema order.

    Example:
        >>> schema = Schema(required_fields=["role", "task"])
        >>> analyze_fixture(schema, {"role": "doctor"}).status_label
        'partial - 1/2 required'
    """
    keys = set(fixture_data)
    required = list(schema.required_fields)

    provided = [field for field in required if field in keys]
    missing = [field for field in required if field not in keys]

    if not missing:
        status = FixtureStatus.COMPLETE
    elif not provided:
        status = FixtureStatus.PLACEHOLDER
    else:
        status = FixtureStatus.PARTIAL

    return FixtureAnalysis(
        status=status,
        status_label=f"{status.value} - {len(provided)}/{len(required)} required",
        provided=provided,
        missing=missing,
        required_fields=required,
        optional_fields=list(schema.optional_fields),
    )


def describe_warning(analysis: FixtureAnalysis) -> str | None:
    """Return the warning line printed for an incomplete fixture, if any."""
    if analysis.status is FixtureStatus.PARTIAL:
        return f"partial fixture (missing: {', '.join(analysis.missing)})"
    if analysis.status is FixtureStatus.PLACEHOLDER:
        return "placeholder fixture (no required inputs provided)"
    return None
