"""Rich-powered console output for Diffuse."""

from __future__ import annotations

from typing import IO

from rich.console import Console as RichConsole
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from diffuse.analysis.models import AggregatedResult, LineStats, RiskLevel
from diffuse.config import ResolvedConfig
from diffuse.graph.builder import GraphNode
from diffuse.report.summary import (
    LEVEL_EMOJI,
    LEVEL_STYLE,
    skipped_line,
    stats_line,
    suggestion_for,
    summarize,
)


def _level(level: RiskLevel) -> str:
    style = LEVEL_STYLE[level]
    return f"[{style}]{LEVEL_EMOJI[level]} {level.value} Risk[/{style}]"


class Console:
    """Terminal output for Diffuse using Rich."""

    def __init__(self, file: IO[str] | None = None, no_color: bool = False) -> None:
        self.console = RichConsole(file=file, no_color=no_color, highlight=False)

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {escape(message)}")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {message}")

    def show_report(
        self,
        result: AggregatedResult,
        config: ResolvedConfig,
        suggestions: bool = True,
        tests: bool = True,
        verbose: bool = False,
    ) -> None:
        """Display the risk report: summary panel, file table, per-file risks."""
        summary = summarize(result, config)
        self.console.print()
        self.console.print("[bold underline]🚨 RISK ANALYSIS REPORT[/bold underline]")
        self.console.print(f"[dim]{skipped_line(result, verbose)}[/dim]")
        self.console.print()

        if not result.per_file:
            self.info("No supported source files were changed.")
            return

        body = (
            f"[bold]Overall Risk Score:[/bold] {summary.total:.2f} {_level(summary.total_level)}\n"
            f"[bold]Average Risk Score:[/bold] {summary.average:.2f} {_level(summary.average_level)}"
        )
        if summary.top_file:
            body += f"\n[bold]Highest risk file to review:[/bold] [cyan]{escape(summary.top_file)}[/cyan]"
        self.console.print(
            Panel(body, title="[bold]Summary[/bold]", border_style=LEVEL_STYLE[summary.total_level])
        )

        if summary.many_low_risk_files:
            self.console.print(
                "[bold red]Note: this change touches many files with individually low-risk "
                "changes.\nThe volume increases review complexity and regression risk.[/bold red]"
            )

        counters = [
            f"{summary.files_analyzed} files changed",
            f"{summary.return_type_changes} with return type changes",
        ]
        if tests:
            counters.append(f"{summary.missing_tests} with no test deltas")
        counters.append(f"{summary.multi_imported} imported by multiple files")
        self.console.print("📊 " + " · ".join(counters))
        self.console.print()

        table = Table(title="Files by risk", border_style="cyan")
        table.add_column("File", style="bold")
        table.add_column("Lines", justify="right")
        table.add_column("Score", justify="right")
        table.add_column("Level")
        for path, report in result.ranked():
            stats = result.line_stats.get(path, LineStats())
            table.add_row(
                escape(path),
                f"[green]+{stats.added}[/green]/[red]-{stats.removed}[/red]",
                f"{report.total:.2f}",
                _level(report.level),
            )
        self.console.print(table)

        for path, report in result.ranked():
            stats = result.line_stats.get(path, LineStats())
            impact = result.graph.get(path)
            self.console.print()
            self.console.print(f"[bold]{escape(path)}[/bold]")
            self.console.print(f"Lines changed: {stats_line(stats)}")
            self.console.print(f"Total Score: [bold]{report.total:.2f}[/bold] {_level(report.level)}")
            for risk in report.risks:
                self.console.print(f"{escape(risk.explanation)} [dim]({risk.points:.2f} pts)[/dim]")
                advice = suggestion_for(risk, config, impact) if suggestions else None
                if advice:
                    self.console.print(f"[blue]  - {escape(advice)}[/blue]")
            if verbose:
                for issue in result.issues.get(path, []):
                    self.console.print(f"  [dim]• {escape(issue)}[/dim]")

    def show_graph_node(
        self,
        rel_path: str,
        node: GraphNode | None,
        radius: int,
        dependents: list[str],
        depth: int = 0,
    ) -> None:
        """Display the usage-graph view of one file."""
        if node is None:
            self.error(f"'{escape(rel_path)}' is not part of the usage graph")
            return

        color = "green" if radius == 0 else "yellow" if radius < 5 else "red"
        self.console.print(
            Panel(
                f"[bold]File:[/bold] {escape(rel_path)}\n"
                f"[bold]Blast Radius:[/bold] [{color}]{radius}[/{color}]\n"
                f"[bold]Direct Dependents:[/bold] {len(node.imported_by)}\n"
                f"[bold]Transitive Dependents:[/bold] {len(dependents)}\n"
                f"[bold]Dependency Depth:[/bold] {depth}\n"
                f"[bold]Subsystems:[/bold] {', '.join(sorted(node.subsystems)) or '-'}\n"
                f"[bold]Exports:[/bold] {', '.join(sorted(node.exports)) or '-'}\n"
                f"[bold]Partial:[/bold] {'yes' if node.partial else 'no'}",
                title="[bold]Usage Graph[/bold]",
                border_style=color,
            )
        )

        if dependents:
            tree = Tree(f"[bold cyan]{escape(rel_path)}[/bold cyan]")
            for dep in dependents:
                tree.add(f"[cyan]{escape(dep)}[/cyan]")
            self.console.print(tree)

    def show_json(self, data: str) -> None:
        self.console.print_json(data)
