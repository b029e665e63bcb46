"""Typer-based CLI for building prompt composition previews."""

from __future__ import annotations

import os
from pathlib import Path

import typer

from promptise.analyzer import analyze_fixture
from promptise.builder import PreviewBuilder
from promptise.console import Console, plural
from promptise.errors import PromptiseError
from promptise.loader import DEFAULT_CONFIG_PATH, load_config
from promptise.models import BuildOptions, BuildReport
from promptise.schema import introspect
from promptise.tokens import count_tokens

app = typer.Typer(add_completion=False, help="promptise: generate preview prompts from compositions")

DEFAULT_OUTDIR = Path(".promptise/builds")


def _display_path(path: Path) -> str:
    """Render ``path`` relative to the directory the user invoked the CLI from."""
    start = os.environ.get("INIT_CWD") or os.getcwd()
    try:
        relative = os.path.relpath(path.resolve(), start)
    except ValueError:
        return str(path)
    return "." if relative == "" else relative


def _close_block(console: Console) -> None:
    console.blank()
    console.separator()


def _print_summary(console: Console, report: BuildReport, outdir: Path) -> None:
    stats = report.stats
    console.title("Build Summary")
    console.success(f"Generated {plural(stats.total_builds, 'preview')} in {_display_path(outdir)}")

    if stats.total_warnings:
        console.warn(
            f"{plural(stats.total_warnings, 'file')} with incomplete fixtures - review before using"
        )
    if report.token_warnings:
        console.warn(f"{plural(len(report.token_warnings), 'preview')} without a token count")
    if report.failures:
        console.warn(f"{plural(len(report.failures), 'fixture')} failed to render:")
        for failure in report.failures:
            console.warn_detail(f"{failure.composition_id}/{failure.fixture_name}: {failure.error}")


@app.callback()
def main() -> None:
    """Generate preview files for prompt compositions."""


@app.command("build")
def build(
    composition_id: str | None = typer.Argument(None, help="Build only this composition"),
    fixture: str | None = typer.Option(None, "--fixture", "-f", help="Use specific fixture name"),
    outdir: Path = typer.Option(DEFAULT_OUTDIR, "--outdir", "-o", help="Output directory"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config file"),
    metadata: bool = typer.Option(
        True, "--metadata/--no-metadata", help="Include metadata headers in generated files"
    ),
    clean: bool = typer.Option(
        True, "--clean/--no-clean", help="Remove stale preview files before generating"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Deprecated: output is always verbose", hidden=True
    ),
    jobs: int = typer.Option(1, "--jobs", "-j", min=1, help="Fixtures rendered in parallel"),
) -> None:
    """Load the config and write one preview file per composition fixture."""
    console = Console()
    options = BuildOptions(
        fixture=fixture,
        outdir=outdir,
        config=config,
        metadata=metadata,
        clean=clean,
        verbose=verbose,
        jobs=jobs,
    )

    console.banner()
    console.blank()
    try:
        console.step("Loading config")
        registry = load_config(options.config)
        console.success(f"Config loaded from {options.config}")
        console.blank()

        console.step("Generating previews")
        builder = PreviewBuilder(registry, token_counter=count_tokens, console=console)
        report = builder.run(options, composition_id=composition_id)
    except PromptiseError as exc:
        console.error(f"Build failed: {exc}")
        _close_block(console)
        raise typer.Exit(code=1) from exc

    console.blank()
    if report.stats.total_builds == 0 and not report.failures:
        console.warn("No previews generated. Check your fixtures configuration.")
        _close_block(console)
        return

    _print_summary(console, report, options.outdir)
    _close_block(console)


@app.command("list")
def list_compositions(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config file"),
) -> None:
    """List registered compositions and the status of each fixture."""
    try:
        registry = load_config(config)
        for entry in registry.get_compositions():
            typer.echo(entry.composition_id)
            if not entry.fixtures:
                typer.echo("    (no fixtures)")
                continue
            schema = introspect(entry.composition)
            for name, data in entry.fixtures.items():
                analysis = analyze_fixture(schema, data)
                typer.echo(f"    {name}: {analysis.status_label}")
    except PromptiseError as exc:
        typer.secho(f"✖ {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":
    app()
