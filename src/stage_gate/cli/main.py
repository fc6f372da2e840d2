#!/usr/bin/env python3
"""
Stage Gate CLI

Operator console for the stage lifecycle gating model.

Commands:
- stage-gate stages: List every stage and its upstream links
- stage-gate actions <stage>: Show which actions a role may perform
- stage-gate run <stage> <action>...: Apply actions on a fresh workflow
- stage-gate console: Interactive operator session
- stage-gate config: Configuration management

Exit codes: 0 on success, 1 when an action is denied, 2 on usage errors.
"""

import asyncio
import logging
import shlex
from dataclasses import replace
from typing import List, Optional

import typer
from rich.console import Console
from rich.prompt import Prompt

from .. import __version__
from ..core.guard import StageGuard
from ..core.roles import Role
from ..core.stage_contract import StageDefinition, get_contract_registry
from ..settings import (
    ConfigValidator,
    DependencyMode,
    Settings,
    SettingsStorage,
    SettingsValidationError,
)
from ..state.workflow import Workflow
from .output import OutputManager

EXIT_DENIED = 1
EXIT_USAGE = 2

app = typer.Typer(
    name="stage-gate",
    help="Stage Gate - lifecycle gating for the battery-pack workflow",
    add_completion=False,
    no_args_is_help=True,
)
config_app = typer.Typer(help="Configuration management", no_args_is_help=True)
app.add_typer(config_app, name="config")

console = Console()
output = OutputManager(console)


def _version_callback(value: bool) -> None:
    if value:
        output.print(f"Stage Gate v{__version__}")
        raise typer.Exit()


@app.callback()
def _root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at INFO level"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
):
    """Stage Gate - lifecycle gating for the battery-pack workflow."""
    level = getattr(logging, _load_settings().log_level.upper(), logging.WARNING)
    if verbose:
        level = min(level, logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


# ==================== Helpers ====================


def _load_settings() -> Settings:
    return SettingsStorage().load()


def _fail(message: str, code: int = EXIT_USAGE) -> None:
    output.print_error(message)
    raise typer.Exit(code)


def _parse_role(text: str) -> Role:
    try:
        return Role.parse(text)
    except ValueError as e:
        _fail(str(e))


def _definition(stage: str) -> StageDefinition:
    try:
        return get_contract_registry().get_contract(stage)
    except KeyError:
        _fail(f"Unknown stage: {stage}")


def _check_actions(definition: StageDefinition, actions: List[str]) -> List[str]:
    normalized = [a.strip().upper() for a in actions]
    unknown = [a for a in normalized if definition.get_action(a) is None]
    if unknown:
        _fail(
            f"{definition.stage_id} has no action {', '.join(unknown)}. "
            f"Available: {', '.join(definition.action_ids)}"
        )
    return normalized


# ==================== Commands ====================


@app.command()
def stages(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List every stage with its status field, seed status and upstream links."""
    definitions = list(get_contract_registry().get_all_contracts().values())
    if as_json:
        output.print_json([d.to_dict() for d in definitions])
    else:
        output.stages_table(definitions)


@app.command()
def actions(
    stage: str = typer.Argument(..., help="Stage id (e.g. S10)"),
    role: Optional[str] = typer.Option(None, "--role", "-r", help="Acting role (label or prefix)"),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Force the stage status"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show the guard verdict for every action of a stage.

    Evaluates the stage's seed context, optionally forced into another status.

    Examples:
        stage-gate actions S10 --role engineering
        stage-gate actions S1 --role management --status DRAFT
    """
    definition = _definition(stage)
    acting = _parse_role(role or _load_settings().default_role)

    context = definition.initial_context()
    if status is not None:
        forced = status.strip().upper()
        if forced not in definition.states:
            _fail(f"{definition.stage_id} has no status {status}. "
                  f"Available: {', '.join(definition.states)}")
        context.status = forced

    verdicts = StageGuard(definition).evaluate_all(acting, context)

    if as_json:
        output.print_json({
            "stage_id": definition.stage_id,
            "role": acting.value,
            definition.status_field: context.status,
            "actions": {action_id: v.to_dict() for action_id, v in verdicts.items()},
        })
    else:
        output.actions_table(definition, verdicts, acting.value)


@app.command()
def run(
    stage: str = typer.Argument(..., help="Stage id (e.g. S10)"),
    action_ids: List[str] = typer.Argument(..., help="Actions to apply, in order"),
    role: Optional[str] = typer.Option(None, "--role", "-r", help="Acting role (label or prefix)"),
    mode: Optional[DependencyMode] = typer.Option(
        None, "--mode", "-m", case_sensitive=False, help="Dependency mode (live, asserted)"
    ),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Notes for the audit log"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Apply actions in order on a fresh workflow.

    Stops at the first denied action and exits with code 1.

    Examples:
        stage-gate run S10 START_SESSION FLASH_FIRMWARE --role engineering --mode asserted
        stage-gate run S1 CREATE_SKU EDIT_BLUEPRINT --role engineering
    """
    settings = _load_settings()
    if mode is not None:
        settings = replace(settings, dependency_mode=mode)

    definition = _definition(stage)
    acting = _parse_role(role or settings.default_role)
    action_list = _check_actions(definition, action_ids)

    workflow = Workflow(settings=settings)
    outcomes = []
    denied = None
    for action_id in action_list:
        outcome = workflow.dispatch(definition.stage_id, acting, action_id, notes=notes)
        outcomes.append((action_id, outcome))
        if not outcome.accepted:
            denied = (action_id, outcome.reason)
            break

    context = workflow.context(definition.stage_id)
    events = workflow.audit_log(definition.stage_id)

    if as_json:
        output.print_json({
            "stage_id": definition.stage_id,
            "role": acting.value,
            "mode": workflow.mode.value,
            "outcomes": [{"action_id": a, **o.to_dict()} for a, o in outcomes],
            "context": context.to_dict(),
        })
    else:
        for action_id, outcome in outcomes:
            if outcome.accepted:
                output.print_success(f"{action_id}: {outcome.event.message}")
            else:
                output.print_error(f"{action_id} denied: {outcome.reason}")
        output.context_panel(definition, context)
        output.audit_table(events)

    if denied is not None:
        raise typer.Exit(EXIT_DENIED)


# ==================== Console ====================

CONSOLE_HELP = """[bold cyan]Console Commands[/bold cyan]
  [cyan]role[/cyan] <name>           Switch the acting role
  [cyan]stage[/cyan] <id>            Switch the current stage
  [cyan]show[/cyan]                  Show the current stage context
  [cyan]actions[/cyan]               Show which actions the role may perform
  [cyan]do[/cyan] <ACTION> \\[notes]   Apply an action
  [cyan]log[/cyan] \\[all]             Show the audit log (current stage or all)
  [cyan]summary[/cyan]               Show every stage at a glance
  [cyan]reset[/cyan] \\[all]           Reset the current stage (or every stage)
  [cyan]help[/cyan]                  Show this help
  [cyan]quit[/cyan]                  Leave the console
"""


class ConsoleSession:
    """State and command handlers of one interactive console."""

    def __init__(self, workflow: Workflow, role: Role, stage_id: str):
        self.workflow = workflow
        self.role = role
        self.stage_id = stage_id

    @property
    def prompt(self) -> str:
        return f"[cyan]{self.stage_id}[/cyan] [dim]({self.role.value})[/dim]"

    def handle(self, line: str) -> bool:
        """
        Execute one console line.

        Returns:
            False when the console should exit
        """
        try:
            parts = shlex.split(line)
        except ValueError as e:
            output.print_error(f"Could not parse command: {e}")
            return True
        if not parts:
            return True

        command, args = parts[0].lower(), parts[1:]
        if command in ("quit", "exit", "q"):
            return False

        handler = getattr(self, f"cmd_{command}", None)
        if handler is None:
            output.print_error(f"Unknown command: {command} (type 'help')")
            return True
        handler(args)
        return True

    def cmd_help(self, args: List[str]) -> None:
        output.print(CONSOLE_HELP)

    def cmd_role(self, args: List[str]) -> None:
        if not args:
            output.print_info(f"Current role: {self.role.value}")
            return
        try:
            self.role = Role.parse(" ".join(args))
        except ValueError as e:
            output.print_error(str(e))
            return
        output.print_success(f"Acting as {self.role.value}")

    def cmd_stage(self, args: List[str]) -> None:
        if not args:
            output.print_info(f"Current stage: {self.stage_id}")
            return
        try:
            self.stage_id = self.workflow.session(args[0]).stage_id
        except KeyError:
            output.print_error(f"Unknown stage: {args[0]}")
            return
        self.cmd_show([])

    def cmd_show(self, args: List[str]) -> None:
        session = self.workflow.session(self.stage_id)
        output.context_panel(session.definition, session.context)

    def cmd_actions(self, args: List[str]) -> None:
        session = self.workflow.session(self.stage_id)
        output.actions_table(session.definition, session.evaluate_all(self.role), self.role.value)

    def cmd_do(self, args: List[str]) -> None:
        if not args:
            output.print_error("Usage: do <ACTION> [notes]")
            return
        action_id = args[0].upper()
        notes = " ".join(args[1:]) or None
        with console.status(f"Applying {action_id}..."):
            outcome = asyncio.run(
                self.workflow.submit(self.stage_id, self.role, action_id, notes=notes)
            )
        if outcome.accepted:
            output.print_success(outcome.event.message)
            status = self.workflow.context(self.stage_id).status
            output.print_info(f"{self.stage_id} is now {status}")
        else:
            output.print_error(f"{action_id} denied: {outcome.reason}")

    def cmd_log(self, args: List[str]) -> None:
        scope = None if args and args[0].lower() == "all" else self.stage_id
        output.audit_table(self.workflow.audit_log(scope))

    def cmd_summary(self, args: List[str]) -> None:
        output.summary_table(self.workflow.summary(self.role), self.role.value)

    def cmd_reset(self, args: List[str]) -> None:
        if args and args[0].lower() == "all":
            self.workflow.reset()
            output.print_success("Every stage reset to its seed context")
        else:
            self.workflow.reset(self.stage_id)
            output.print_success(f"{self.stage_id} reset to its seed context")


@app.command("console")
def console_command(
    role: Optional[str] = typer.Option(None, "--role", "-r", help="Starting role"),
    stage: str = typer.Option("S0", "--stage", "-s", help="Starting stage"),
    mode: Optional[DependencyMode] = typer.Option(
        None, "--mode", "-m", case_sensitive=False, help="Dependency mode (live, asserted)"
    ),
):
    """
    Interactive operator session.

    Keeps one workflow alive across commands. Type 'help' for commands.
    """
    settings = _load_settings()
    if mode is not None:
        settings = replace(settings, dependency_mode=mode)
    acting = _parse_role(role or settings.default_role)
    definition = _definition(stage)

    session = ConsoleSession(Workflow(settings=settings), acting, definition.stage_id)
    output.print_header(
        f"Stage Gate v{__version__}",
        f"Dependency mode: {session.workflow.mode.value}. Type 'help' for commands.",
    )

    while True:
        try:
            line = Prompt.ask(session.prompt, console=console)
        except (EOFError, KeyboardInterrupt):
            break
        if not session.handle(line):
            break
    output.print("[dim]Bye[/dim]")


# ==================== Config ====================


@config_app.command("show")
def config_show(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the current configuration."""
    storage = SettingsStorage()
    settings = storage.load()
    values = storage.to_dict(settings)
    if as_json:
        output.print_json(values)
        return

    source = str(storage.config_file) if storage.config_file.exists() else "defaults"
    output.settings_panel(values, source)
    result = ConfigValidator().validate(settings)
    for message in result.errors:
        output.print_error(message)
    for message in result.warnings:
        output.print_warning(message)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Setting name"),
    value: str = typer.Argument(..., help="New value"),
):
    """
    Change one setting.

    Examples:
        stage-gate config set dependency_mode asserted
        stage-gate config set transition_delay_seconds 0.5
    """
    storage = SettingsStorage()
    try:
        settings = storage.set_value(key, value)
    except KeyError:
        _fail(f"Unknown setting: {key}. Available: {', '.join(Settings.field_names())}")
    except SettingsValidationError as e:
        for message in e.result.errors:
            output.print_error(message)
        raise typer.Exit(EXIT_USAGE)
    except ValueError as e:
        _fail(f"Invalid value for {key}: {e}")

    output.print_success(f"{key} = {storage.to_dict(settings)[key]}")
    for message in ConfigValidator().validate(settings).warnings:
        output.print_warning(message)


@config_app.command("path")
def config_path():
    """Print the configuration file path."""
    console.print(str(SettingsStorage().config_file), soft_wrap=True, highlight=False)


def main():
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
