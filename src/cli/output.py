"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output:
colored status lines, spinners, and tables for diffs, save results and
translation reports. Supports verbosity levels and the --no-color flag.
"""

from contextlib import contextmanager
from typing import Iterator

from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner
from rich.table import Table

from src.page_service.models import SaveResult
from src.translation_status.models import LocaleStatus, TranslationReport
from src.tree_differ.models import OperationType, StructuralDiff

# Status cell styling for the translation report
STATUS_STYLES = {
    LocaleStatus.SOURCE: "bold",
    LocaleStatus.REVIEWED: "green",
    LocaleStatus.AUTO: "yellow",
    LocaleStatus.AVAILABLE: "cyan",
    LocaleStatus.MISSING: "red",
}

OPERATION_MARKERS = {
    OperationType.INSERT: "[green]+[/green]",
    OperationType.DELETE: "[red]-[/red]",
    OperationType.MOVE: "[blue]↔[/blue]",
    OperationType.UPDATE_STRUCTURAL_PROPS: "[yellow]~[/yellow]",
}


class OutputHandler:
    """Handles all terminal output using Rich library.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Page published")
        >>> with handler.spinner("Translating..."):
        ...     pass
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        """Initialize output handler.

        Args:
            verbosity: Verbosity level (0=summary, 1=info, 2=debug)
            no_color: Disable color output if True
        """
        self.verbosity = verbosity
        self.console = Console(
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}", style="red")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(message)

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{message}[/dim]")

    def print(self, message: str) -> None:
        """Display message without formatting."""
        self.console.print(message, markup=False)

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner for single operations.

        Example:
            >>> with handler.spinner("Saving page..."):
            ...     service.save_edit(...)
        """
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10, transient=True):
            yield

    def print_diff(self, diff: StructuralDiff) -> None:
        """Display structural operations, one per line."""
        if diff.is_empty:
            self.console.print("[green]No structural changes[/green]")
            return

        self.console.print(f"[bold]Structural changes ({len(diff)}):[/bold]")
        for op in diff:
            self.console.print(f"  {OPERATION_MARKERS[op.op_type]} {op.describe()}")

    def print_save_summary(self, result: SaveResult) -> None:
        """Display the outcome of a save or sync.

        Args:
            result: SaveResult returned by the page service
        """
        self.console.print(f"\n[bold]Save Summary ({result.strategy.value}):[/bold]")
        self.console.print(f"  Source locale: {result.locale}")
        if len(result.diff):
            self.console.print(f"  Structural changes: {len(result.diff)}")

        for locale in sorted(result.applied):
            line = f"  [blue]→[/blue] {locale}: {result.applied[locale]} applied"
            skipped = result.propagation.skipped.get(locale, 0)
            if skipped:
                line += f", {skipped} skipped"
            if locale in result.seeded_locales:
                line += " (created)"
            self.console.print(line)

        if result.failures:
            self.console.print(
                f"  [yellow]⚠[/yellow] Translation failed for {len(result.failures)} "
                f"value(s), left empty for review:"
            )
            for failure in result.failures:
                self.console.print(
                    f"    • {failure.locale} {failure.node_id}.{failure.prop_name}: "
                    f"{failure.reason}",
                    markup=False,
                )

        self.console.print(f"\n[green]Saved as version {result.version}[/green]")

    def print_translation_report(self, report: TranslationReport) -> None:
        """Display per-node translation status and per-locale coverage."""
        locales = [report.default_locale] + sorted(report.coverage)

        table = Table(title=f"Translation status of {report.page_id}")
        table.add_column("Node")
        table.add_column("Type")
        for locale in locales:
            table.add_column(locale)

        for node in report.nodes:
            cells = []
            for locale in locales:
                status = node.statuses.get(locale, LocaleStatus.MISSING)
                cells.append(f"[{STATUS_STYLES[status]}]{status.value}[/]")
            table.add_row(node.node_id, node.component_type, *cells)
        self.console.print(table)

        self.console.print("\n[bold]Coverage:[/bold]")
        for locale in sorted(report.coverage):
            coverage = report.coverage[locale]
            style = "green" if coverage.percentage == 100 else "yellow"
            self.console.print(
                f"  {locale}: [{style}]{coverage.percentage}%[/] "
                f"({coverage.translated}/{coverage.total}, {coverage.missing} missing)"
            )

        if report.missing_locales:
            self.console.print(
                f"[red]No content yet:[/red] {', '.join(sorted(report.missing_locales))}"
            )
        for locale in sorted(report.needs_review):
            pending = report.needs_review[locale]
            if pending:
                self.console.print(
                    f"[yellow]Needs review in {locale}:[/yellow] {', '.join(pending)}"
                )
