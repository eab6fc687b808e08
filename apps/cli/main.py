"""CLI application for Locksmith."""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from locksmith.dependencies import ResolvedGraph
from locksmith.errors import LocksmithError
from locksmith.lockfile import is_lock_file_current, load_lock_file, serialize_lock_file
from locksmith.manifest import PROJECT_FILE_NAME, load_project
from locksmith.restore import build_provider_chain, restore as run_restore

console = Console()

DEFAULT_PACKAGES_DIR = Path.home() / ".locksmith" / "packages"


def configure_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def print_raw(text: str) -> None:
    """Print text exactly as given (no markup, highlighting or wrapping)."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def format_graph_table(graph: ResolvedGraph) -> Table:
    """Format the resolved libraries as a table."""
    table = Table(title=f"{graph.root}")
    table.add_column("Library")
    table.add_column("Version")
    table.add_column("Type")
    table.add_column("Dependencies")
    for library in graph:
        table.add_row(
            library.identity.name,
            str(library.identity.version),
            library.provider_kind.value,
            ", ".join(str(d) for d in library.dependencies),
        )
    return table


def _manifest_path(path: Path) -> Path:
    if path.is_dir():
        return path / PROJECT_FILE_NAME
    return path


app = typer.Typer(
    name="locksmith",
    help="Locksmith - Resolve project dependencies into reproducible lock files",
    add_completion=False,
)


@app.command()
def restore(
    manifest: Path = typer.Argument(help="Path to project.json or the directory containing it"),
    packages: Path = typer.Option(
        DEFAULT_PACKAGES_DIR, "--packages", "-p", envvar="LOCKSMITH_PACKAGES", help="Local package cache directory"
    ),
    project_root: list[Path] | None = typer.Option(
        None, "--project-root", help="Directory holding sibling projects (repeatable)"
    ),
    lock_file: Path | None = typer.Option(None, "--lock-file", "-l", help="Lock file to read and write"),
    force: bool = typer.Option(False, "--force", "-f", help="Resolve even if the lock file is current"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the lock file instead of writing it"),
    max_concurrency: int = typer.Option(6, "--max-concurrency", min=1, help="Concurrent provider lookups"),
    timeout: float | None = typer.Option(None, "--timeout", help="Cancel resolution after this many seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Resolve a project's dependencies and write its lock file."""
    configure_logging(verbose)

    try:
        manifest = _manifest_path(manifest)
        if not manifest.exists():
            console.print(f"Error: File {manifest} not found", style="red")
            raise typer.Exit(1)

        search_paths = project_root or [manifest.resolve().parent.parent]
        providers = build_provider_chain(search_paths=search_paths, packages_dir=packages)

        report = asyncio.run(run_restore(
            manifest,
            providers,
            lock_path=lock_file,
            force=force,
            write=not dry_run,
            max_concurrency=max_concurrency,
            timeout=timeout,
        ))

        for warning in report.warnings:
            console.print(f"Warning: {warning}", style="yellow", markup=False)

        if dry_run:
            print_raw(serialize_lock_file(report.graph))
        elif report.reused:
            console.print(f"{report.lock_path} is up to date")
        else:
            console.print(f"Wrote {report.lock_path} ({len(report.graph)} libraries)")

    except typer.Exit:
        raise
    except LocksmithError as e:
        console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(1)


@app.command()
def check(
    lock_file: Path = typer.Argument(help="Path to project.lock.json"),
    manifest: Path | None = typer.Option(
        None, "--manifest", "-m", help="Project to compare against (default: project.json next to the lock file)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Validate a lock file and report whether it is current."""
    configure_logging(verbose)

    if not lock_file.exists():
        console.print(f"Error: File {lock_file} not found", style="red")
        raise typer.Exit(1)

    result = load_lock_file(lock_file.read_text(encoding="utf-8"))
    if not result.is_valid:
        console.print(result.reason, style="red", markup=False)
        raise typer.Exit(1)

    manifest = _manifest_path(manifest) if manifest else lock_file.parent / PROJECT_FILE_NAME
    if manifest.exists():
        try:
            project = load_project(manifest)
        except LocksmithError as e:
            console.print(f"Error: {e}", style="red", markup=False)
            raise typer.Exit(1)
        if not is_lock_file_current(result.graph, project):
            console.print(f"{lock_file} is out of date with {manifest}", style="yellow")
            raise typer.Exit(2)

    console.print(f"{lock_file} is valid ({len(result.graph)} libraries)")


@app.command()
def graph(
    lock_file: Path = typer.Argument(help="Path to project.lock.json"),
) -> None:
    """Show the libraries recorded in a lock file."""
    if not lock_file.exists():
        console.print(f"Error: File {lock_file} not found", style="red")
        raise typer.Exit(1)

    result = load_lock_file(lock_file.read_text(encoding="utf-8"))
    if not result.is_valid:
        console.print(result.reason, style="red", markup=False)
        raise typer.Exit(1)

    console.print(format_graph_table(result.graph))


if __name__ == "__main__":
    app()
