"""Build pipeline that turns registry fixtures into preview files.

A run moves through ``resolving -> cleaning -> generating -> reporting`` and
ends in ``done``. Any fatal error moves it to ``failed`` and propagates.
Rendering failures are isolated per fixture and collected in the report.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from promptise.analyzer import analyze_fixture, describe_warning
from promptise.console import Console, plural
from promptise.errors import CompositionBuildError, FileWriteError, FixtureNotFound
from promptise.models import (
    BuildFailure,
    BuildOptions,
    BuildPhase,
    BuildReport,
    BuildStats,
    FixtureAnalysis,
    FixtureStatus,
    Preview,
    Schema,
    TokenWarning,
)
from promptise.registry import CompositionEntry, Promptise
from promptise.renderer import render_preview
from promptise.schema import introspect
from promptise.tokens import TokenCounter, count_tokens

PREVIEW_SUFFIX = ".txt"


@dataclass(frozen=True)
class BuildTarget:
    """One ``(composition, fixture)`` pair scheduled for rendering."""

    entry: CompositionEntry
    fixture_name: str
    fixture_data: dict[str, Any]
    schema: Schema

    @property
    def composition_id(self) -> str:
        return self.entry.composition_id

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.composition_id, self.fixture_name)


@dataclass
class BuildOutcome:
    """Result of rendering one target: a written file or an isolated failure."""

    target: BuildTarget
    analysis: FixtureAnalysis
    path: Path | None = None
    preview: Preview | None = None
    error: CompositionBuildError | None = None


@dataclass
class BuildPlan:
    targets: list[BuildTarget] = field(default_factory=list)
    composition_ids: list[str] = field(default_factory=list)


def preview_path(outdir: Path, composition_id: str, fixture_name: str) -> Path:
    """Return the artifact path for one composition/fixture pair."""
    return outdir / composition_id / f"{fixture_name}{PREVIEW_SUFFIX}"


class PreviewBuilder:
    """Generate preview files for the compositions in a registry."""

    def __init__(
        self,
        registry: Promptise,
        token_counter: TokenCounter = count_tokens,
        console: Console | None = None,
    ):
        self.registry = registry
        self.token_counter = token_counter
        self.console = console or Console(enabled=False)
        self.phase = BuildPhase.INIT

    def run(self, options: BuildOptions, composition_id: str | None = None) -> BuildReport:
        """Execute one build run.

        Args:
            options: Output directory, fixture filter, and toggles for the run.
            composition_id: Build only this composition when given.

        Returns:
            Statistics, written artifact paths, and isolated per-fixture failures.

        Raises:
            CompositionNotFound: ``composition_id`` is not registered.
            FixtureNotFound: The fixture filter matched no fixture.
            SchemaUnavailable: A composition to build declares no usable schema.
            FileWriteError: The output directory cannot be cleaned or written.
        """
        report = BuildReport()
        self.phase = BuildPhase.INIT
        try:
            self._enter(report, BuildPhase.RESOLVING)
            plan = self._resolve(options, composition_id)

            self._enter(report, BuildPhase.CLEANING)
            report.removed = self._prepare_outdir(options, plan)

            self._enter(report, BuildPhase.GENERATING)
            outcomes = self._generate(plan.targets, options)

            self._enter(report, BuildPhase.REPORTING)
            self._collect(report, outcomes)

            self._enter(report, BuildPhase.DONE)
        except Exception:
            self._enter(report, BuildPhase.FAILED)
            raise
        return report

    def _enter(self, report: BuildReport, phase: BuildPhase) -> None:
        self.phase = phase
        report.phase = phase

    def _resolve(self, options: BuildOptions, composition_id: str | None) -> BuildPlan:
        plan = BuildPlan()
        searched: list[str] = []

        for entry in self.registry.resolve(composition_id):
            plan.composition_ids.append(entry.composition_id)
            if not entry.fixtures:
                self.console.detail(f"{entry.composition_id}: no fixtures, skipped")
                continue

            searched.append(entry.composition_id)
            selected = [
                (name, data)
                for name, data in entry.fixtures.items()
                if options.fixture is None or name == options.fixture
            ]
            if not selected:
                continue

            schema = introspect(entry.composition)
            for name, data in selected:
                plan.targets.append(
                    BuildTarget(entry=entry, fixture_name=name, fixture_data=data, schema=schema)
                )

        if options.fixture is not None and searched and not plan.targets:
            raise FixtureNotFound(options.fixture, searched)
        return plan

    def _prepare_outdir(self, options: BuildOptions, plan: BuildPlan) -> list[Path]:
        outdir = options.outdir
        try:
            outdir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FileWriteError(str(outdir), exc) from exc

        # A filtered build plans a single fixture, so sibling previews are not stale.
        if not options.clean or options.fixture is not None:
            return []

        expected = {preview_path(outdir, t.composition_id, t.fixture_name) for t in plan.targets}
        removed: list[Path] = []
        for composition_id in plan.composition_ids:
            composition_dir = outdir / composition_id
            if not composition_dir.is_dir():
                continue
            try:
                for path in sorted(composition_dir.glob(f"*{PREVIEW_SUFFIX}")):
                    if path.is_file() and path not in expected:
                        path.unlink()
                        removed.append(path)
                if not any(composition_dir.iterdir()):
                    composition_dir.rmdir()
            except OSError as exc:
                raise FileWriteError(str(composition_dir), exc) from exc

        if removed:
            self.console.info(f"Removed {plural(len(removed), 'stale preview')} before build")
        return removed

    def _generate(self, targets: list[BuildTarget], options: BuildOptions) -> list[BuildOutcome]:
        if options.jobs == 1 or len(targets) <= 1:
            return [self._build_one(target, options) for target in targets]

        with ThreadPoolExecutor(max_workers=options.jobs) as executor:
            futures = [executor.submit(self._build_one, target, options) for target in targets]
            return [future.result() for future in futures]

    def _build_one(self, target: BuildTarget, options: BuildOptions) -> BuildOutcome:
        analysis = analyze_fixture(target.schema, target.fixture_data)
        try:
            preview = render_preview(
                target.entry.composition,
                target.fixture_name,
                target.fixture_data,
                analysis,
                token_counter=self.token_counter,
                include_metadata=options.metadata,
                cost=target.entry.cost,
            )
        except CompositionBuildError as exc:
            return BuildOutcome(target=target, analysis=analysis, error=exc)

        path = preview_path(options.outdir, target.composition_id, target.fixture_name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(preview.content, encoding="utf-8")
        except OSError as exc:
            raise FileWriteError(str(path), exc) from exc
        return BuildOutcome(target=target, analysis=analysis, path=path, preview=preview)

    def _collect(self, report: BuildReport, outcomes: list[BuildOutcome]) -> None:
        stats = BuildStats()
        for outcome in sorted(outcomes, key=lambda item: item.target.sort_key):
            target = outcome.target
            label = f"{target.composition_id}/{target.fixture_name}"

            if outcome.error is not None:
                report.failures.append(
                    BuildFailure(
                        composition_id=target.composition_id,
                        fixture_name=target.fixture_name,
                        error=str(outcome.error.cause),
                    )
                )
                self.console.error(f"Failed to generate preview for {label}: {outcome.error.cause}")
                continue

            stats.total_builds += 1
            report.artifacts.append(outcome.path)
            self.console.success(f"Generated: {label}{PREVIEW_SUFFIX}")

            if outcome.analysis.status is not FixtureStatus.COMPLETE:
                stats.total_warnings += 1
                self.console.warn_detail(describe_warning(outcome.analysis))

            if outcome.preview.token_warning is not None:
                report.token_warnings.append(
                    TokenWarning(
                        composition_id=target.composition_id,
                        fixture_name=target.fixture_name,
                        message=outcome.preview.token_warning,
                    )
                )
                self.console.warn_detail(f"token count unavailable ({outcome.preview.token_warning})")

        report.stats = stats


def generate_previews(
    registry: Promptise,
    options: BuildOptions,
    composition_id: str | None = None,
    token_counter: TokenCounter = count_tokens,
    console: Console | None = None,
) -> BuildReport:
    """Build previews for ``registry`` in one call."""
    builder = PreviewBuilder(registry, token_counter=token_counter, console=console)
    return builder.run(options, composition_id=composition_id)
