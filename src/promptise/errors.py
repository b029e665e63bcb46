"""Exception hierarchy for loading registries and building previews."""

from __future__ import annotations


class PromptiseError(Exception):
    """Base exception for all promptise errors."""


class ConfigLoadError(PromptiseError):
    """The configuration module is missing or does not expose a registry."""


class DuplicateCompositionError(ConfigLoadError):
    """Two registry entries declare the same composition id."""

    def __init__(self, duplicates: list[str]):
        self.duplicates = duplicates
        super().__init__(
            "Registry contains duplicate composition IDs: "
            f"{', '.join(duplicates)}. All composition IDs must be unique within the registry."
        )


class CompositionNotFound(PromptiseError):
    """An explicitly requested composition id is not registered."""

    def __init__(self, composition_id: str, available: list[str] | None = None):
        self.composition_id = composition_id
        self.available = available or []
        message = f"Composition not found: {composition_id}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class FixtureNotFound(PromptiseError):
    """An explicit fixture filter matched no fixture."""

    def __init__(self, fixture_name: str, composition_ids: list[str]):
        self.fixture_name = fixture_name
        self.composition_ids = composition_ids
        super().__init__(
            f"Fixture not found: {fixture_name} (searched: {', '.join(composition_ids)})"
        )


class SchemaUnavailable(PromptiseError):
    """A composition exposes no usable field schema."""

    def __init__(self, composition_id: str, reason: str):
        self.composition_id = composition_id
        self.reason = reason
        super().__init__(f"Schema unavailable for {composition_id}: {reason}")


class CompositionBuildError(PromptiseError):
    """Rendering a composition with fixture data failed."""

    def __init__(self, composition_id: str, fixture_name: str, cause: BaseException):
        self.composition_id = composition_id
        self.fixture_name = fixture_name
        self.cause = cause
        super().__init__(f"Failed to render {composition_id}/{fixture_name}: {cause}")


class TokenCountUnavailable(PromptiseError):
    """The token counter could not count a rendered body."""


class FileWriteError(PromptiseError):
    """The output directory cannot be cleaned or written."""

    def __init__(self, path: str, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot write to {path}: {cause}")
