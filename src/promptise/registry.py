"""Ordered registry of compositions and the fixtures used to preview them."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from promptise.errors import CompositionNotFound, DuplicateCompositionError
from promptise.models import CostConfig

SAFE_NAME_RE = re.compile(r"^[\w.\-]+$")


def _check_path_name(kind: str, name: str) -> None:
    # Ids and fixture names become directory and file names under the outdir.
    if not SAFE_NAME_RE.match(name) or name in (".", ".."):
        raise ValueError(f"{kind} {name!r} must contain only letters, digits, dots, hyphens, or underscores")


class CompositionEntry(BaseModel):
    """A composition paired with its named fixtures."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    composition: Any
    fixtures: dict[str, dict[str, Any]] = Field(default_factory=dict)
    cost: CostConfig | None = None

    @field_validator("composition")
    @classmethod
    def _check_composition(cls, value: Any) -> Any:
        composition_id = getattr(value, "id", None)
        if not isinstance(composition_id, str) or not composition_id:
            raise ValueError("composition must expose a non-empty string `id`")
        _check_path_name("composition id", composition_id)
        if not callable(getattr(value, "build", None)):
            raise ValueError(f"composition {composition_id} must expose a callable `build(data)`")
        return value

    @field_validator("fixtures")
    @classmethod
    def _check_fixture_names(cls, value: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
        for name in value:
            _check_path_name("fixture name", name)
        return value

    @property
    def composition_id(self) -> str:
        return self.composition.id


class RegistryConfig(BaseModel):
    """Registry input: entries, bare compositions, or entry mappings, in order."""

    model_config = ConfigDict(frozen=True)

    compositions: list[CompositionEntry] = Field(default_factory=list)

    @field_validator("compositions", mode="before")
    @classmethod
    def _normalize_entries(cls, value: Any) -> Any:
        if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
            return value
        normalized: list[Any] = []
        for item in value:
            if isinstance(item, (CompositionEntry, Mapping)):
                normalized.append(item)
            else:
                normalized.append(CompositionEntry(composition=item))
        return normalized


class Promptise:
    """Central registry of compositions and their fixtures.

    Example:
        registry = Promptise(
            compositions=[
                {"composition": security_review, "fixtures": {"basic": {"role": "..."}}},
                quick_prompt,
            ]
        )
    """

    def __init__(self, compositions: Sequence[Any] | RegistryConfig = ()):
        config = (
            compositions
            if isinstance(compositions, RegistryConfig)
            else RegistryConfig(compositions=list(compositions))
        )
        _validate_unique_ids(config.compositions)
        self._config = config

    @property
    def config(self) -> RegistryConfig:
        return self._config

    def get_compositions(self) -> list[CompositionEntry]:
        return list(self._config.compositions)

    def get_composition(self, composition_id: str) -> CompositionEntry | None:
        for entry in self._config.compositions:
            if entry.composition_id == composition_id:
                return entry
        return None

    def resolve(self, composition_id: str | None = None) -> list[CompositionEntry]:
        """Return all entries in order, or only the entry matching ``composition_id``.

        Raises:
            CompositionNotFound: If ``composition_id`` is given and not registered.
        """
        if composition_id is None:
            return self.get_compositions()
        entry = self.get_composition(composition_id)
        if entry is None:
            raise CompositionNotFound(
                composition_id,
                available=[item.composition_id for item in self._config.compositions],
            )
        return [entry]

    def __len__(self) -> int:
        return len(self._config.compositions)


def _validate_unique_ids(entries: list[CompositionEntry]) -> None:
    seen: set[str] = set()
    duplicates: list[str] = []
    for entry in entries:
        composition_id = entry.composition_id
        if composition_id in seen and composition_id not in duplicates:
            duplicates.append(composition_id)
        seen.add(composition_id)
    if duplicates:
        raise DuplicateCompositionError(duplicates)
