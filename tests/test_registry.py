from __future__ import annotations

import pytest
from pydantic import ValidationError

from conftest import FakeComposition
from promptise.errors import CompositionNotFound, DuplicateCompositionError, SchemaUnavailable
from promptise.models import Schema
from promptise.registry import CompositionEntry, Promptise
from promptise.schema import introspect


def test_resolve_given_no_id_when_resolved_then_all_entries_are_returned_in_order(registry) -> None:
    # When
    entries = registry.resolve()

    # Then
    assert [entry.composition_id for entry in entries] == [
        "security-review",
        "quick-prompt",
        "fragile-prompt",
    ]


def test_resolve_given_known_id_when_resolved_then_single_entry_is_returned(registry) -> None:
    # When
    entries = registry.resolve("fragile-prompt")

    # Then
    assert len(entries) == 1
    assert sorted(entries[0].fixtures) == ["broken", "ok"]


def test_resolve_given_unknown_id_when_resolved_then_composition_not_found_is_raised(registry) -> None:
    # When
    with pytest.raises(CompositionNotFound) as excinfo:
        registry.resolve("missing")

    # Then
    assert excinfo.value.composition_id == "missing"
    assert "security-review" in str(excinfo.value)


def test_registry_given_bare_composition_when_built_then_entry_has_no_fixtures(registry) -> None:
    # When
    entry = registry.get_composition("quick-prompt")

    # Then
    assert isinstance(entry, CompositionEntry)
    assert entry.fixtures == {}
    assert registry.get_composition("nope") is None


def test_registry_given_duplicate_ids_when_built_then_duplicate_error_is_raised() -> None:
    # Given
    compositions = [FakeComposition("a"), FakeComposition("b"), FakeComposition("a")]

    # When
    with pytest.raises(DuplicateCompositionError) as excinfo:
        Promptise(compositions=compositions)

    # Then
    assert excinfo.value.duplicates == ["a"]


def test_composition_entry_given_path_like_fixture_name_when_built_then_validation_fails() -> None:
    # When / Then
    with pytest.raises(ValidationError):
        CompositionEntry(composition=FakeComposition("a"), fixtures={"../escape": {}})


def test_introspect_given_schema_with_duplicate_fields_when_introspected_then_schema_unavailable() -> None:
    # Given
    class Broken:
        id = "broken"

        def get_schema(self) -> dict:
            return {"required_fields": ["role"], "optional_fields": ["role"]}

    # When / Then
    with pytest.raises(SchemaUnavailable, match="duplicate schema fields: role"):
        introspect(Broken())


def test_introspect_given_composition_without_schema_when_introspected_then_schema_unavailable() -> None:
    # Given
    class NoSchema:
        id = "bare"

        def build(self, data: dict) -> str:
            return ""

    # When / Then
    with pytest.raises(SchemaUnavailable, match="bare"):
        introspect(NoSchema())


def test_introspect_given_fake_composition_when_introspected_then_schema_order_is_kept() -> None:
    # When
    schema = introspect(FakeComposition("x", required=["b", "a"], optional=["c"]))

    # Then
    assert schema == Schema(required_fields=["b", "a"], optional_fields=["c"])


def test_introspect_given_get_schema_that_raises_when_introspected_then_schema_unavailable() -> None:
    # Given
    class DuplicateFields:
        id = "dup"

        def get_schema(self) -> Schema:
            return Schema(required_fields=["a"], optional_fields=["a"])

    # When
    with pytest.raises(SchemaUnavailable) as excinfo:
        introspect(DuplicateFields())

    # Then
    assert excinfo.value.composition_id == "dup"
    assert "duplicate schema fields: a" in excinfo.value.reason


def test_introspect_given_mapping_with_unknown_keys_when_introspected_then_schema_unavailable() -> None:
    # Given
    class MistypedKeys:
        id = "mistyped"

        def get_schema(self) -> dict:
            return {"requiredFields": ["role"]}

    # When / Then
    with pytest.raises(SchemaUnavailable, match="requiredFields"):
        introspect(MistypedKeys())
