"""Pydantic models shared across analysis, rendering, and the build pipeline."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FixtureStatus(str, Enum):
    """Completeness of a fixture relative to its composition schema."""

    COMPLETE = "complete"
    PARTIAL = "partial"
    PLACEHOLDER = "placeholder"


class BuildPhase(str, Enum):
    """Lifecycle state of a single build run."""

    INIT = "init"
    RESOLVING = "resolving"
    CLEANING = "cleaning"
    GENERATING = "generating"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


class Schema(BaseModel):
    """Required and optional field names declared by a composition, in schema order."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    required_fields: list[str] = Field(default_factory=list)
    optional_fields: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_unique_fields(self) -> Schema:
        seen: set[str] = set()
        duplicates: list[str] = []
        for name in [*self.required_fields, *self.optional_fields]:
            if name in seen and name not in duplicates:
                duplicates.append(name)
            seen.add(name)
        if duplicates:
            raise ValueError(f"duplicate schema fields: {', '.join(duplicates)}")
        return self


class FixtureAnalysis(BaseModel):
    """Classification of one fixture against a schema."""

    model_config = ConfigDict(frozen=True)

    status: FixtureStatus
    status_label: str
    provided: list[str]
    missing: list[str]
    required_fields: list[str]
    optional_fields: list[str]


class CostConfig(BaseModel):
    """Per-token input pricing used for the cost estimate in preview headers."""

    input_token_price: float = Field(ge=0.0)


class BuildOptions(BaseModel):
    """Options for a single build run."""

    fixture: str | None = None
    outdir: Path = Path(".promptise/builds")
    config: Path = Path("promptise.config.py")
    metadata: bool = True
    clean: bool = True
    # Accepted for backward compatibility; output is always verbose.
    verbose: bool = False
    jobs: int = Field(default=1, ge=1)


class BuildStats(BaseModel):
    """Totals accumulated across a build run."""

    total_builds: int = 0
    total_warnings: int = 0


class BuildFailure(BaseModel):
    """A fixture whose preview could not be rendered."""

    composition_id: str
    fixture_name: str
    error: str


class TokenWarning(BaseModel):
    """A preview written without a token count."""

    composition_id: str
    fixture_name: str
    message: str


class BuildReport(BaseModel):
    """Outcome of a build run handed back to the caller."""

    stats: BuildStats = Field(default_factory=BuildStats)
    failures: list[BuildFailure] = Field(default_factory=list)
    token_warnings: list[TokenWarning] = Field(default_factory=list)
    artifacts: list[Path] = Field(default_factory=list)
    removed: list[Path] = Field(default_factory=list)
    phase: BuildPhase = BuildPhase.INIT


class Preview(BaseModel):
    """Rendered text of one preview artifact."""

    content: str
    body: str
    token_count: int | None = None
    static_token_count: int | None = None
    token_warning: str | None = None
