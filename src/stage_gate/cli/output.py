"""
Rich Terminal Output for Stage Gate CLI

Renders what the stage screens show: stage tables, action buttons with their
disabled reasons, context counters and the audit log.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..core.stage_contract import StageDefinition
from ..core.stage_state import ActionState, AuditEvent, DependencyState, StageContext


class OutputManager:
    """
    Manages rich terminal output for the Stage Gate CLI.

    Provides consistent styling for:
    - Status messages
    - Stage and action tables
    - Context panels
    - The audit log
    """

    # Color scheme
    COLORS = {
        "primary": "blue",
        "success": "green",
        "warning": "yellow",
        "error": "red",
        "muted": "dim",
        "highlight": "cyan",
    }

    # Action icons
    ICONS = {
        "enabled": "[green]v[/green]",
        "disabled": "[red]x[/red]",
        "ok": "[green]OK[/green]",
        "blocked": "[red]BLOCKED[/red]",
    }

    def __init__(self, console: Console | None = None):
        """
        Initialize the output manager.

        Args:
            console: Rich Console instance (creates one if not provided)
        """
        self.console = console or Console()

    # ==================== Basic Output ====================

    def print(self, message: str = "", style: str | None = None) -> None:
        """Print a message with optional styling."""
        self.console.print(message, style=style)

    def print_header(self, title: str, subtitle: str | None = None) -> None:
        """Print a styled header."""
        self.console.print()
        self.console.print(f"[bold blue]{escape(title)}[/bold blue]")
        if subtitle:
            self.console.print(f"[dim]{escape(subtitle)}[/dim]")
        self.console.print()

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]v[/green] {escape(message)}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]x[/red] [red]{escape(message)}[/red]")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]![/yellow] {escape(message)}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[blue]i[/blue] {escape(message)}")

    def print_json(self, data: Any) -> None:
        """Print data as highlighted JSON."""
        self.console.print_json(data=data)

    def _dependency(self, state: DependencyState) -> str:
        return self.ICONS["ok"] if state == DependencyState.OK else self.ICONS["blocked"]

    # ==================== Tables ====================

    def stages_table(self, definitions: Iterable[StageDefinition]) -> None:
        """Display every stage with its status field, seed status and upstream links."""
        table = Table(title="Stages", show_lines=False)
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title")
        table.add_column("Status field", style="dim")
        table.add_column("Seed")
        table.add_column("Cleared by")
        table.add_column("Depends on")

        for definition in definitions:
            links = ", ".join(
                f"{link.upstream_stage} ({name})" for name, link in definition.dependencies.items()
            )
            table.add_row(
                definition.stage_id,
                escape(definition.title),
                definition.status_field,
                definition.initial_status,
                ", ".join(sorted(definition.cleared_states)),
                links or "[dim]-[/dim]",
            )
        self.console.print(table)

    def actions_table(
        self,
        definition: StageDefinition,
        verdicts: Mapping[str, ActionState],
        role_label: str,
    ) -> None:
        """Display the guard verdict for every action of a stage."""
        table = Table(title=f"{definition.stage_id} {definition.title} as {role_label}")
        table.add_column("", no_wrap=True)
        table.add_column("Action", style="bold")
        table.add_column("Next state")
        table.add_column("Reason")

        for action_id, state in verdicts.items():
            rule = definition.get_action(action_id)
            target = rule.to_state if rule and rule.to_state else "[dim]=[/dim]"
            icon = self.ICONS["enabled"] if state.enabled else self.ICONS["disabled"]
            reason = "" if state.enabled else f"[dim]{escape(state.reason or '')}[/dim]"
            table.add_row(icon, action_id, target, reason)
        self.console.print(table)

    def context_panel(self, definition: StageDefinition, context: StageContext) -> None:
        """Display a stage context the way its stage screen shows it."""
        lines = [f"[bold]{definition.status_field}:[/bold] [cyan]{context.status}[/cyan]"]
        for name, value in context.counters.items():
            lines.append(f"[bold]{name}:[/bold] {value}")
        for name, value in context.attributes.items():
            lines.append(f"[bold]{name}:[/bold] {escape(str(value))}")
        for name, state in context.dependencies.items():
            lines.append(f"[bold]{name}:[/bold] {self._dependency(state)}")
        if context.last_event_at:
            lines.append(f"[bold]{context.last_event_field}:[/bold] {context.last_event_at}")

        self.console.print(Panel(
            "\n".join(lines),
            title=f"{definition.stage_id} {escape(definition.title)}",
            border_style="cyan",
        ))

    def audit_table(self, events: list[AuditEvent]) -> None:
        """Display audit events, most recent first."""
        if not events:
            self.print_info("Audit log is empty")
            return

        table = Table(title="Audit Log")
        table.add_column("Time", style="dim", no_wrap=True)
        table.add_column("Stage", style="cyan")
        table.add_column("Action")
        table.add_column("Role")
        table.add_column("Message")
        for event in events:
            table.add_row(
                event.timestamp,
                event.stage_id,
                event.action_id,
                escape(event.actor_role),
                escape(event.message),
            )
        self.console.print(table)

    def summary_table(self, rows: list[Any], role_label: str) -> None:
        """Display Workflow.summary() rows."""
        table = Table(title=f"Workflow as {role_label}")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title")
        table.add_column("Status")
        table.add_column("Dependencies")
        table.add_column("Actions", justify="right")
        for row in rows:
            deps = ", ".join(
                f"{name}={self._dependency(state)}" for name, state in row.dependencies.items()
            )
            table.add_row(
                row.stage_id,
                escape(row.title),
                row.status,
                deps or "[dim]-[/dim]",
                f"{row.enabled_actions}/{row.total_actions}",
            )
        self.console.print(table)

    def settings_panel(self, values: Mapping[str, Any], source: str) -> None:
        """Display settings values."""
        lines = [f"[bold]{key}:[/bold] {escape(str(value))}" for key, value in values.items()]
        self.console.print(Panel("\n".join(lines), title="Settings", subtitle=escape(source),
                                 border_style="blue"))
