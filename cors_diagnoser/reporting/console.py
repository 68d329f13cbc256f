"""Rich console rendering for diagnoses, diffs and captured browser errors."""

from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence
import logging

from rich.console import Console, Group
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from cors_diagnoser.core.models import (
    ConfigurationDiff,
    Diagnosis,
    OriginTestResult,
    SecurityIssue,
    Severity,
)

logger = logging.getLogger(__name__)

PREFIX = "[CORS-DIAGNOSER]"

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}

SEVERITY_ICONS = {
    Severity.CRITICAL: "❌",
    Severity.WARNING: "⚠️ ",
    Severity.INFO: "💡",
}

LEVEL_STYLES = {
    "error": "bold red",
    "warn": "yellow",
    "warning": "yellow",
    "info": "cyan",
}


class DiagnosisPrinter:
    """Render analyzer output on a rich Console."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(stderr=True)

    def log(self, level: str, message: str) -> None:
        """Print a timestamped, prefixed status line."""
        style = LEVEL_STYLES.get(level.lower(), "white")
        timestamp = datetime.now().isoformat(timespec="seconds")
        line = Text(f"{PREFIX} ", style="bold magenta")
        line.append(f"{timestamp} ", style="dim")
        line.append(message, style=style)
        self.console.print(line)

    def print_diagnoses(self, diagnoses: Sequence[Diagnosis], title: Optional[str] = None) -> None:
        if title:
            self.console.print(f"\n[bold]{title}[/bold]")
        if not diagnoses:
            self.console.print("[green]✓ No CORS issues detected.[/green]")
            return

        for index, diagnosis in enumerate(diagnoses, start=1):
            self.console.print(self._diagnosis_panel(index, diagnosis))

    def _diagnosis_panel(self, index: int, diagnosis: Diagnosis) -> Panel:
        style = SEVERITY_STYLES[diagnosis.severity]
        body: List[Any] = [
            Text(diagnosis.description),
            Text(""),
            Text.assemble(("Fix: ", "bold green"), diagnosis.recommendation),
        ]
        if diagnosis.pattern:
            body.append(Text.assemble(("Pattern: ", "bold"), (diagnosis.pattern, "cyan")))
        if diagnosis.code_example:
            body.append(Text(""))
            body.append(
                Syntax(diagnosis.code_example, "python", theme="monokai", word_wrap=True)
            )

        icon = SEVERITY_ICONS[diagnosis.severity]
        return Panel(
            Group(*body),
            title=f"{icon} {index}. {diagnosis.issue} [{diagnosis.severity.value.upper()}]",
            title_align="left",
            border_style=style,
        )

    def print_security_issues(self, issues: Sequence[SecurityIssue]) -> None:
        if not issues:
            self.console.print("[green]✓ No security issues found.[/green]")
            return

        table = Table(title="Security Review")
        table.add_column("Level", style="bold")
        table.add_column("Issue", style="cyan")
        table.add_column("Recommendation", style="white")
        for issue in issues:
            style = SEVERITY_STYLES[issue.level]
            table.add_row(
                f"[{style}]{issue.level.value.upper()}[/{style}]",
                issue.title,
                issue.recommendation,
            )
        self.console.print(table)

    def print_diff(self, diff: ConfigurationDiff) -> None:
        if diff.matches:
            self.console.print(f"[green]✓ {diff.summary}[/green]")
            return

        table = Table(title="Configuration Diff")
        table.add_column("Property", style="cyan")
        table.add_column("Status", style="bold")
        table.add_column("Current", style="white")
        table.add_column("Expected", style="white")
        for name in diff.missing:
            table.add_row(name, "[red]missing[/red]", "-", "")
        for item in diff.incorrect:
            table.add_row(item.property, "[yellow]incorrect[/yellow]", repr(item.current), repr(item.expected))
        for name in diff.extra:
            table.add_row(name, "[blue]extra[/blue]", "", "-")
        self.console.print(table)
        self.console.print(diff.summary)

    def print_origin_test(self, origin: str, result: OriginTestResult) -> None:
        if result.allowed:
            self.console.print(f"[bold green]✅ {origin} is allowed[/bold green]")
        else:
            self.console.print(f"[bold red]❌ {origin} is blocked:[/bold red] {result.reason}")

        if result.headers:
            table = Table(title="Response headers")
            table.add_column("Header", style="cyan")
            table.add_column("Value", style="white")
            for name, value in result.headers.items():
                table.add_row(name, value)
            self.console.print(table)

        preflight = result.preflight
        if preflight.required:
            verdict = "[green]passes[/green]" if preflight.allowed else "[red]fails[/red]"
            self.console.print(f"Preflight required: yes, {verdict}")
        else:
            self.console.print("Preflight required: no")

    def print_browser_error(self, info: Any) -> None:
        """Render a captured browser CORS error (a CorsErrorInfo)."""
        body = Text()
        body.append("Error: ", style="bold")
        body.append(f"{info.message}\n\n")
        body.append("Possible causes:\n", style="bold yellow")
        for cause in info.possible_causes:
            body.append(f"  • {cause}\n")
        body.append("\nRecommendations:\n", style="bold green")
        for recommendation in info.recommendations:
            body.append(f"  • {recommendation}\n")
        self.console.print(
            Panel(
                body,
                title=f"🔍 CORS Error Detected ({info.timestamp.isoformat(timespec='seconds')})",
                title_align="left",
                border_style="red",
            )
        )

    def print_patterns(self, patterns: Iterable[Any]) -> None:
        table = Table(title="Known CORS Error Patterns")
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="white")
        for pattern in patterns:
            table.add_row(pattern.id, pattern.name)
        self.console.print(table)

    def print_pattern(self, pattern: Any) -> None:
        self.console.print(
            Panel(
                Group(
                    Text(pattern.explanation),
                    Text(""),
                    Text.assemble(("Solution: ", "bold green"), pattern.solution),
                    Text(""),
                    Syntax(pattern.code_example, "python", theme="monokai", word_wrap=True),
                ),
                title=f"{pattern.name} ({pattern.id})",
                title_align="left",
                border_style="magenta",
            )
        )

    def print_history(self, entries: Sequence[Any]) -> None:
        if not entries:
            self.console.print("[dim]No CORS errors recorded.[/dim]")
            return

        table = Table(title="CORS Error History")
        table.add_column("Last seen", style="dim")
        table.add_column("Method", style="magenta")
        table.add_column("Route", style="green")
        table.add_column("Origin", style="cyan")
        table.add_column("Count", justify="right")
        table.add_column("Issues", style="white")
        for entry in entries:
            table.add_row(
                entry.timestamp.isoformat(timespec="seconds"),
                entry.method,
                entry.route,
                entry.origin,
                str(entry.count),
                ", ".join(d.issue for d in entry.diagnoses),
            )
        self.console.print(table)
