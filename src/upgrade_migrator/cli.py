"""CLI interface using Typer."""

import logging
from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, DownloadColumn, Progress, SpinnerColumn, TextColumn

from upgrade_migrator.applier import ChangeApplier
from upgrade_migrator.backup import BackupManager, relative_path
from upgrade_migrator.binary import BinaryFetcher
from upgrade_migrator.cache import get_cache
from upgrade_migrator.config import get_config
from upgrade_migrator.exceptions import FetchError
from upgrade_migrator.migrator import MigrationAnalyzer
from upgrade_migrator.models import ChangeKind, ComplexChange, RiskLevel
from upgrade_migrator.reporters.json_formats import JSONReporter
from upgrade_migrator.reporters.markdown import MigrationGuideReporter
from upgrade_migrator.reporters.terminal import TerminalReporter
from upgrade_migrator.sources import ReleasesService

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="upgrade-migrator",
    help="Plan and apply React Native release upgrades from rn-diff-purge diffs",
    add_completion=False,
)

console = Console()


class OutputFormat(str, Enum):
    """Output format options."""
    terminal = "terminal"
    json = "json"
    markdown = "markdown"


def _setup(verbose: bool, no_cache: bool) -> None:
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if no_cache:
        get_cache().enabled = False


def _resolve_project(project_path: Path) -> Path:
    project_path = project_path.resolve()
    if not project_path.is_dir():
        console.print(f"[red]Error: Project path not found: {project_path}[/red]")
        raise typer.Exit(1)
    return project_path


def select_changes(
    changes: list[ComplexChange],
    kinds: list[ChangeKind] | None,
    paths: list[str] | None,
) -> list[ComplexChange]:
    """Filter changes by kind and by path (diff path or project path)."""
    root_prefix = get_config().root_prefix
    selected = changes
    
    if kinds:
        selected = [c for c in selected if c.kind in kinds]
    
    if paths:
        wanted = set(paths)
        selected = [
            c for c in selected
            if c.file_path in wanted or relative_path(c.file_path, root_prefix) in wanted
        ]
    
    return selected


@app.command()
def plan(
    from_version: str = typer.Argument(..., help="Current React Native version"),
    to_version: str = typer.Argument(..., help="Target React Native version"),
    project_path: Path = typer.Option(
        ".",
        "--project",
        "-p",
        help="Path to project root directory",
    ),
    output: Path = typer.Option(
        None,
        "--output",
        "-o",
        help="Path to output file (format determined by --format)",
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.terminal,
        "--format",
        "-f",
        help="Output format (terminal, json, markdown)",
    ),
    offline: bool = typer.Option(
        False,
        "--offline",
        help="Use only cached diffs (no network requests)",
    ),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Do not read or write the diff cache",
    ),
    check_only: bool = typer.Option(
        False,
        "--check-only",
        help="Exit with code 1 if the plan is high risk (CI mode)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
) -> None:
    """Analyze the diff between two releases and print a migration plan."""
    _setup(verbose, no_cache)
    project_path = _resolve_project(project_path)
    
    analyzer = MigrationAnalyzer(project_path, offline=offline)
    
    try:
        if output_format == OutputFormat.terminal:
            console.print(f"\n[bold cyan]🔍 Planning {from_version} → {to_version} for {project_path}[/bold cyan]")
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                progress.add_task("[green]Fetching and analyzing diff...", total=None)
                migration_plan = analyzer.analyze(from_version, to_version)
        else:
            migration_plan = analyzer.analyze(from_version, to_version)
    except FetchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        analyzer.close()
    
    if output_format == OutputFormat.terminal:
        TerminalReporter().print_plan(migration_plan)
    
    elif output_format == OutputFormat.json:
        json_output = JSONReporter().plan_report(migration_plan, output)
        if output:
            console.print(f"[green]✅ Report saved to: {output}[/green]")
        else:
            typer.echo(json_output)
    
    elif output_format == OutputFormat.markdown:
        reporter = MigrationGuideReporter()
        if output:
            reporter.generate_report(migration_plan, output)
            console.print(f"[green]✅ Migration guide saved to: {output}[/green]")
        else:
            typer.echo(reporter.render(migration_plan))
    
    fail_on_high = get_config().get("ci.fail_on_high_risk", True)
    if check_only and fail_on_high and migration_plan.estimated_risk is RiskLevel.HIGH:
        if output_format == OutputFormat.terminal:
            console.print("\n[red]❌ HIGH risk migration detected. CI check failed.[/red]")
        raise typer.Exit(1)


@app.command()
def apply(
    from_version: str = typer.Argument(..., help="Current React Native version"),
    to_version: str = typer.Argument(..., help="Target React Native version"),
    project_path: Path = typer.Option(
        ".",
        "--project",
        "-p",
        help="Path to project root directory",
    ),
    only: list[ChangeKind] = typer.Option(
        None,
        "--only",
        help="Apply only changes of this kind (can be repeated)",
    ),
    paths: list[str] = typer.Option(
        None,
        "--path",
        help="Apply only the change to this file (can be repeated)",
    ),
    skip_packages: bool = typer.Option(
        False,
        "--skip-packages",
        help="Do not rewrite package.json",
    ),
    keep_backups: bool = typer.Option(
        False,
        "--keep-backups",
        help="Keep backup files after a successful run",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation of critical manual steps",
    ),
    offline: bool = typer.Option(
        False,
        "--offline",
        help="Use only cached diffs",
    ),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Do not read or write the diff cache",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
) -> None:
    """Apply the selected changes of a migration to a project."""
    _setup(verbose, no_cache)
    project_path = _resolve_project(project_path)
    
    manager = BackupManager(project_path)
    leftover = manager.leftover_backups()
    if leftover:
        console.print(f"[red]Error: {len(leftover)} backup file(s) from an earlier run found.[/red]")
        console.print(
            f"Run `upgrade-migrator restore --project {project_path}` to roll back, "
            f"or `upgrade-migrator cleanup --project {project_path}` to keep the current files."
        )
        raise typer.Exit(1)
    
    analyzer = MigrationAnalyzer(project_path, offline=offline)
    try:
        migration_plan = analyzer.analyze(from_version, to_version)
    except FetchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        analyzer.close()
    
    selected = select_changes(migration_plan.complex_changes, only, paths)
    package_updates = [] if skip_packages else migration_plan.package_updates
    
    if not selected and not package_updates:
        console.print("[yellow]ℹ️  Nothing to apply[/yellow]")
        raise typer.Exit(0)
    
    if migration_plan.requires_confirmation and not yes:
        console.print("[bold red]This migration contains critical changes that need manual follow-up.[/bold red]")
        if not typer.confirm("Apply the selected changes anyway?"):
            raise typer.Exit(1)
    
    backup_set = manager.comprehensive_backup(selected, to_version)
    console.print(f"[dim]Backed up {backup_set.total_files} file(s)[/dim]")
    
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("[green]Applying changes...", total=None)
        
        def on_progress(received: int, total: int | None) -> None:
            progress.update(task, completed=received, total=total)
        
        applier = ChangeApplier(
            project_path,
            backup_manager=manager,
            fetcher=BinaryFetcher(on_progress=on_progress),
        )
        try:
            result = applier.apply(
                selected,
                analyzer.last_diff_text,
                to_version,
                package_updates=package_updates,
                backup_set=backup_set,
            )
        finally:
            applier.close()
    
    TerminalReporter().print_apply_result(result)
    
    if not result.success:
        console.print(
            f"\n[yellow]Backups were kept. Run `upgrade-migrator restore --project {project_path}` to roll back.[/yellow]"
        )
        raise typer.Exit(1)
    
    if not keep_backups:
        cleaned = manager.cleanup_all(backup_set)
        console.print(f"[dim]Removed {len(cleaned.succeeded)} backup file(s)[/dim]")


@app.command()
def restore(
    project_path: Path = typer.Option(
        ".",
        "--project",
        "-p",
        help="Path to project root directory",
    ),
) -> None:
    """Restore every file that has a backup in the project."""
    project_path = _resolve_project(project_path)
    manager = BackupManager(project_path)
    
    records = manager.find_backups()
    if not records:
        console.print("[yellow]ℹ️  No backups found[/yellow]")
        raise typer.Exit(0)
    
    failed = 0
    for record in records:
        if manager.restore(record):
            console.print(f"[green]✓[/green] {record.original_path.relative_to(project_path)}")
        else:
            failed += 1
            console.print(f"[red]✗[/red] {record.original_path.relative_to(project_path)}")
    
    if failed:
        console.print(f"\n[red]{failed} file(s) could not be restored; backups were kept.[/red]")
        raise typer.Exit(1)
    
    for record in manager.find_backups(latest_only=False):
        manager.cleanup(record)
    
    console.print(f"\n[green]✅ Restored {len(records)} file(s)[/green]")


@app.command()
def cleanup(
    project_path: Path = typer.Option(
        ".",
        "--project",
        "-p",
        help="Path to project root directory",
    ),
) -> None:
    """Delete every backup file in the project."""
    project_path = _resolve_project(project_path)
    manager = BackupManager(project_path)
    
    records = manager.find_backups(latest_only=False)
    removed = sum(1 for record in records if manager.cleanup(record))
    
    console.print(f"[green]✅ Removed {removed} backup file(s)[/green]")
    
    if removed != len(records):
        raise typer.Exit(1)


@app.command()
def releases(
    show_all: bool = typer.Option(
        False,
        "--all",
        help="Include release candidates and prereleases",
    ),
    after: str = typer.Option(
        None,
        "--after",
        help="Only releases newer than this version",
    ),
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        help="Maximum number of releases to show",
    ),
) -> None:
    """List releases that have published diffs."""
    service = ReleasesService()
    
    try:
        if after:
            found = service.releases_after(after, include_prereleases=show_all)
        elif show_all:
            found = service.fetch_releases()
        else:
            found = service.stable_releases()
    except FetchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        service.close()
    
    for release in found[:limit]:
        tag = "" if release.is_stable else (" [yellow](rc)[/yellow]" if release.is_release_candidate else " [dim](pre)[/dim]")
        console.print(f"  {release.version}{tag}")
    
    if len(found) > limit:
        console.print(f"[dim]... and {len(found) - limit} more[/dim]")


@app.command()
def clear_cache() -> None:
    """Clear all cached data."""
    console.print("[yellow]Clearing cache...[/yellow]")
    
    removed = get_cache().clear()
    
    console.print(f"[green]✅ Cache cleared successfully! ({removed} file(s))[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    
    from upgrade_migrator import __version__
    
    console.print(f"[bold]Upgrade Migrator[/bold] v{__version__}")
    console.print("\n[dim]Features:[/dim]")
    console.print("  • Release diff parsing and classification")
    console.print("  • Package version deltas against package.json")
    console.print("  • Ordered, risk-scored migration plans")
    console.print("  • Backed-up application of selected changes")


if __name__ == "__main__":
    app()
