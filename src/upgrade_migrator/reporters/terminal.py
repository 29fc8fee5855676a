"""Terminal reporter using Rich library."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from upgrade_migrator.models import (
    ApplyResult,
    MigrationPlan,
    RiskLevel,
    Severity,
    StepMode,
)


class TerminalReporter:
    """Generates terminal output using Rich."""
    
    def __init__(self, color: bool = True, console: Console | None = None) -> None:
        """Initialize terminal reporter.
        
        Args:
            color: If True, use colored output
            console: Console to print to (created if omitted)
        """
        self.console = console or Console(color_system="auto" if color else None)
    
    def print_plan(self, plan: MigrationPlan) -> None:
        """Print a full migration plan."""
        self.print_risk_panel(plan)
        
        if plan.package_updates:
            self.print_package_table(plan)
        
        if plan.complex_changes:
            self.print_change_table(plan)
        else:
            self.console.print("[green]No file changes detected.[/green]")
        
        if plan.migration_steps:
            self.print_steps(plan)
    
    def print_risk_panel(self, plan: MigrationPlan) -> None:
        """Print the overall risk assessment."""
        color = self._get_risk_color(plan.estimated_risk)
        
        lines = [
            f"[{color}]{plan.estimated_risk.value.upper()}[/{color}] (score {plan.risk_score})",
            f"Breaking changes: {plan.breaking_changes_count}",
            f"Manual review: {'required' if plan.requires_manual_review else 'not required'}",
        ]
        if plan.requires_confirmation:
            lines.append("[bold red]Critical manual steps need confirmation before applying[/bold red]")
        
        self.console.print(
            Panel(
                "\n".join(lines),
                title=f"📦 {plan.from_version} → {plan.to_version}",
                border_style=color,
            )
        )
    
    def print_package_table(self, plan: MigrationPlan) -> None:
        """Print package updates."""
        table = Table(title="Package Updates", show_header=True, header_style="bold cyan")
        
        table.add_column("Package", style="bold")
        table.add_column("Section")
        table.add_column("Current", justify="center")
        table.add_column("Target", justify="center")
        
        for update in plan.package_updates:
            target = update.target_version
            if update.is_downgrade:
                target = f"[yellow]{target} (downgrade)[/yellow]"
            table.add_row(
                update.name,
                update.dependency_class.value,
                update.current_version,
                target,
            )
        
        self.console.print(table)
    
    def print_change_table(self, plan: MigrationPlan) -> None:
        """Print complex changes, most severe first."""
        table = Table(title="File Changes", show_header=True, header_style="bold cyan")
        
        table.add_column("Severity", justify="center")
        table.add_column("Kind")
        table.add_column("File", style="bold")
        table.add_column("Description")
        
        order = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]
        changes = sorted(plan.complex_changes, key=lambda c: order.index(c.severity))
        
        for change in changes:
            color = self._get_severity_color(change.severity)
            table.add_row(
                f"[{color}]{self._get_severity_icon(change.severity)} {change.severity.value}[/{color}]",
                change.kind.value,
                change.file_path,
                change.description,
            )
        
        self.console.print(table)
        
        breaking = [(c, note) for c in changes for note in c.breaking_changes]
        if breaking:
            self.console.print("\n[bold red]⚠️  Breaking Changes:[/bold red]")
            for change, note in breaking:
                self.console.print(f"  • {note}", style="yellow")
                self.console.print(f"    {change.file_path}", style="dim")
    
    def print_steps(self, plan: MigrationPlan) -> None:
        """Print ordered migration steps."""
        self.console.print("\n[bold]Migration Steps:[/bold]")
        
        for step in plan.migration_steps:
            mode = {
                StepMode.AUTOMATIC: "[green]auto[/green]",
                StepMode.SEMI_AUTOMATIC: "[yellow]semi[/yellow]",
                StepMode.MANUAL: "[red]manual[/red]",
            }[step.mode]
            self.console.print(f"  {step.order:>3}. [{mode}] {step.description}")
    
    def print_apply_result(self, result: ApplyResult) -> None:
        """Print the outcome of an apply run."""
        table = Table(title="Applied Changes", show_header=True, header_style="bold cyan")
        
        table.add_column("Status", justify="center")
        table.add_column("Kind")
        table.add_column("File", style="bold")
        table.add_column("Details")
        
        for applied in result.applied_changes:
            status = "[green]✓[/green]" if applied.success else "[red]✗[/red]"
            table.add_row(status, applied.kind, applied.file_path, applied.message or applied.error or "")
        
        self.console.print(table)
        
        for warning in result.warnings:
            self.console.print(f"[yellow]Warning:[/yellow] {warning}")
        
        if result.success:
            self.console.print("\n[bold green]All selected changes applied.[/bold green]")
        else:
            self.console.print(f"\n[bold red]{len(result.errors)} change(s) failed:[/bold red]")
            for error in result.errors:
                self.console.print(f"  • {error}", style="red")
    
    @staticmethod
    def _get_risk_color(level: RiskLevel) -> str:
        return {
            RiskLevel.HIGH: "red",
            RiskLevel.MEDIUM: "yellow",
            RiskLevel.LOW: "green",
        }[level]
    
    @staticmethod
    def _get_severity_color(severity: Severity) -> str:
        """Get color for severity level."""
        return {
            Severity.CRITICAL: "bold red",
            Severity.HIGH: "red",
            Severity.MEDIUM: "yellow",
            Severity.LOW: "green",
        }[severity]
    
    @staticmethod
    def _get_severity_icon(severity: Severity) -> str:
        """Get icon for severity level."""
        return {
            Severity.CRITICAL: "🔴",
            Severity.HIGH: "🟠",
            Severity.MEDIUM: "🟡",
            Severity.LOW: "🟢",
        }[severity]
