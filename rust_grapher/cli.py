"""Typer-based CLI for rust-grapher."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__, config
from .call_graph import build_call_graph_from_source
from .dependency_graph import build_dependency_graph
from .errors import GraphBuildError
from .focus import package_focus, reduce_to_focus
from .graph_export import render_deps, render_functions
from .metadata import load_metadata
from .models import DepsOptions, FnGraphOptions, OutputFormat, RenderOptions, Theme

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)

app = typer.Typer(
    help="Generate dependency and function call graphs for Rust projects.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"rust-grapher v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log debug details to stderr."),
):
    """rust-grapher: Mermaid, DOT and JSON graphs of crates and functions.

    [bold]Examples[/bold]

      rust-grapher deps --depth 2 -o deps.md

      rust-grapher deps --workspace-only

      rust-grapher fn-graph --focus main --depth 3

      rust-grapher fn-graph -f dot | dot -Tpng -o call-graph.png
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _emit(text: str, output: Optional[Path]) -> None:
    if output is None:
        typer.echo(text, nl=False)
        return
    try:
        output.write_text(text, encoding="utf-8")
    except OSError as exc:
        err_console.print(f"[red]Error writing to file:[/red] {escape(str(exc))}", soft_wrap=True)
        raise typer.Exit(code=1)
    err_console.print(f"Graph written to: {escape(str(output))}", soft_wrap=True)


def _fail(exc: GraphBuildError) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {escape(str(exc))}", soft_wrap=True)
    raise typer.Exit(code=1)


@app.command("deps")
def deps(
    manifest_path: Path = typer.Option(Path("Cargo.toml"), "--manifest-path", "-m", help="Path to Cargo.toml."),
    metadata_file: Optional[Path] = typer.Option(
        None, "--metadata-file", help="Read `cargo metadata` JSON from this file instead of running cargo.",
    ),
    package: Optional[str] = typer.Option(None, "--package", "-p", help="Start from this package instead of the workspace members."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path (stdout if omitted)."),
    fmt: OutputFormat = typer.Option(OutputFormat(config.DEFAULT_FORMAT), "--format", "-f", help="Output format."),
    no_fence: bool = typer.Option(False, "--no-fence", help="Omit the ```mermaid fence."),
    direction: str = typer.Option(config.DEFAULT_DIRECTION, "--direction", "-d", help="Graph direction: LR or TB."),
    depth: int = typer.Option(0, "--depth", min=0, help="Maximum dependency depth (0 = unlimited)."),
    no_dev: bool = typer.Option(False, "--no-dev", help="Exclude dev-dependencies."),
    no_build: bool = typer.Option(False, "--no-build", help="Exclude build-dependencies."),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-e", help="Exclude crates matching pattern (* wildcard, repeatable)."),
    include: Optional[List[str]] = typer.Option(None, "--include", "-i", help="Include only crates matching pattern (* wildcard, repeatable)."),
    focus: Optional[str] = typer.Option(None, "--focus", help="Show only crates connected to this crate."),
    workspace_only: bool = typer.Option(False, "--workspace-only", help="Show only workspace members."),
    no_transitive: bool = typer.Option(False, "--no-transitive", help="Show only direct dependencies."),
    show_versions: bool = typer.Option(False, "--show-versions", "-v", help="Show version numbers with crate names."),
    group_by_kind: bool = typer.Option(False, "--group-by-kind", help="Group edges by kind (normal/dev/build) in subgraphs."),
    dedup: bool = typer.Option(False, "--dedup", help="Show each crate only once."),
    theme: Theme = typer.Option(Theme(config.DEFAULT_THEME), "--theme", help="Color theme."),
    highlight: Optional[List[str]] = typer.Option(None, "--highlight", "-H", help="Highlight crates (repeatable)."),
):
    """Analyze the Cargo dependency graph."""
    options = DepsOptions(
        max_depth=depth,
        no_dev=no_dev,
        no_build=no_build,
        exclude=list(exclude or []),
        include=list(include or []),
        workspace_only=workspace_only,
        no_transitive=no_transitive,
        dedup=dedup,
    )
    try:
        metadata = load_metadata(manifest_path, metadata_file)
        graph = build_dependency_graph(metadata, options, package=package)
    except GraphBuildError as exc:
        _fail(exc)

    if focus:
        reduce_to_focus(graph, package_focus(focus))

    render = RenderOptions(
        direction=direction,
        theme=theme,
        fence=not no_fence,
        group_by_kind=group_by_kind,
        highlight=list(highlight or []),
        show_versions=show_versions,
    )
    _emit(render_deps(graph, fmt, render), output)


@app.command("fn-graph")
def fn_graph(
    source_dir: Path = typer.Option(Path("src"), "--source-dir", "-s", help="Source directory to analyze."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path (stdout if omitted)."),
    fmt: OutputFormat = typer.Option(OutputFormat(config.DEFAULT_FORMAT), "--format", "-f", help="Output format."),
    no_fence: bool = typer.Option(False, "--no-fence", help="Omit the ```mermaid fence."),
    direction: str = typer.Option(config.DEFAULT_DIRECTION, "--direction", "-d", help="Graph direction: LR or TB."),
    focus: Optional[str] = typer.Option(None, "--focus", help="Show only functions connected to this function."),
    depth: int = typer.Option(0, "--depth", min=0, help="Maximum call depth around --focus (0 = unlimited)."),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-e", help="Exclude functions matching pattern (* wildcard, repeatable)."),
    public_only: bool = typer.Option(False, "--public-only", help="Include only public functions."),
    show_signatures: bool = typer.Option(False, "--show-signatures", help="Show function signatures."),
    theme: Theme = typer.Option(Theme(config.DEFAULT_THEME), "--theme", help="Color theme."),
    highlight: Optional[List[str]] = typer.Option(None, "--highlight", "-H", help="Highlight functions (repeatable)."),
):
    """Analyze the function call graph of a source tree."""
    options = FnGraphOptions(
        public_only=public_only,
        exclude=list(exclude or []),
        show_signatures=show_signatures,
        focus=focus,
        depth=depth,
    )
    try:
        graph = build_call_graph_from_source(source_dir, options)
    except GraphBuildError as exc:
        _fail(exc)

    render = RenderOptions(
        direction=direction,
        theme=theme,
        fence=not no_fence,
        highlight=list(highlight or []),
        show_signatures=show_signatures,
    )
    _emit(render_functions(graph, fmt, render), output)


if __name__ == "__main__":
    app()
