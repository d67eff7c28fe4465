"""trustgate CLI"""

import asyncio
import logging
import os
import uuid
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from trustgate.config import Config, ConfigError, ConfigValidator, load_config

app = typer.Typer(name="trustgate", help="Manage folder trust, workspace directories and lifecycle hooks")
trust_app = typer.Typer(name="trust", help="Manage stored folder trust levels")
dir_app = typer.Typer(name="dir", help="Add and show workspace directories")
hooks_app = typer.Typer(name="hooks", help="Inspect and test lifecycle hooks")
audit_app = typer.Typer(name="audit", help="Show the trust and hook audit log")
app.add_typer(trust_app)
app.add_typer(dir_app)
app.add_typer(hooks_app)
app.add_typer(audit_app)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to config.json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        ctx.obj = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)


def _config(ctx: typer.Context) -> Config:
    return ctx.obj if isinstance(ctx.obj, Config) else Config()


def _store_loader(config: Config):
    from trustgate.trust.store import TrustFileBackend, TrustStore
    backend = TrustFileBackend(config.trust.trusted_folders_path)
    return lambda: TrustStore.load(backend)


def _audit_log(config: Config):
    from trustgate.audit import AuditLog
    return AuditLog(
        log_path=Path(config.audit.file).expanduser() if config.audit.file else None,
        enabled=config.audit.enabled,
    )


@trust_app.command("list")
def list_trust(ctx: typer.Context):
    """List stored folder trust levels"""
    from trustgate.errors import TrustStoreError

    try:
        rules = _store_loader(_config(ctx))().rules
    except TrustStoreError as e:
        console.print(f"[red]{e.reason}[/red]")
        raise typer.Exit(1)

    if not rules:
        console.print("[yellow]No trusted folders defined.[/yellow]")
        return

    styles = {"TRUST_FOLDER": "green", "TRUST_PARENT": "cyan", "DO_NOT_TRUST": "red"}
    table = Table(title="Trusted Folders")
    table.add_column("Path")
    table.add_column("Level")
    for path, level in sorted(rules.items()):
        table.add_row(path, f"[{styles[level.value]}]{level.value}[/]")
    console.print(table)


@trust_app.command("set")
def set_trust(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Folder path"),
    level: str = typer.Argument(..., help="TRUST_FOLDER, TRUST_PARENT or DO_NOT_TRUST"),
):
    """Store a trust level for a folder"""
    from trustgate.errors import TrustStoreError
    from trustgate.paths import normalize_path
    from trustgate.trust.store import TrustLevel

    try:
        trust_level = TrustLevel(level.upper())
    except ValueError:
        console.print(f"[red]Invalid level: {level}. Use TRUST_FOLDER, TRUST_PARENT or DO_NOT_TRUST.[/red]")
        raise typer.Exit(1)

    config = _config(ctx)
    try:
        _store_loader(config)().set_value(path, trust_level)
    except TrustStoreError as e:
        console.print(f"[red]{e.reason}[/red]")
        raise typer.Exit(1)
    _audit_log(config).log_trust_update(normalize_path(path), trust_level.value)
    console.print(f"[green]Set {normalize_path(path)} to {trust_level.value}[/green]")


@trust_app.command("unset")
def unset_trust(ctx: typer.Context, path: str = typer.Argument(..., help="Folder path")):
    """Remove the stored trust level of a folder"""
    from trustgate.errors import TrustStoreError
    from trustgate.paths import normalize_path

    config = _config(ctx)
    try:
        removed = _store_loader(config)().unset(path)
    except TrustStoreError as e:
        console.print(f"[red]{e.reason}[/red]")
        raise typer.Exit(1)

    if removed:
        _audit_log(config).log_trust_update(normalize_path(path), None)
        console.print(f"[green]Removed trust level for {normalize_path(path)}[/green]")
    else:
        console.print(f"[yellow]No trust level stored for {normalize_path(path)}[/yellow]")


@trust_app.command("check")
def check_trust(ctx: typer.Context, paths: list[str] = typer.Argument(..., help="Paths to classify")):
    """Show how paths would be classified inside a trusted workspace"""
    from trustgate.trust.resolver import TrustResolver

    result = TrustResolver(_store_loader(_config(ctx))).classify(paths, True, True)
    for warning in result.warnings:
        console.print(f"[yellow]{warning}[/yellow]")

    table = Table(title="Trust Classification")
    table.add_column("Path")
    table.add_column("Classification")
    for path in result.trusted:
        table.add_row(path, "[green]trusted[/green]")
    for path in result.untrusted:
        table.add_row(path, "[red]untrusted[/red]")
    for path in result.unknown:
        table.add_row(path, "[yellow]unknown[/yellow]")
    console.print(table)


def _print_issues(issues: list[str]):
    for issue in issues:
        style = "yellow" if "Warning:" in issue else "red"
        console.print(f"[{style}]{issue}[/{style}]", highlight=False)


def _coordinator(config: Config, workspace_trusted: Optional[bool]):
    from trustgate.coordinator import LifecycleCoordinator
    from trustgate.hooks.registry import build_channel
    from trustgate.ui.console import ConsoleMessageSink, ConsolePresenter
    from trustgate.workspace.context import WorkspaceContext

    audit = _audit_log(config)
    return LifecycleCoordinator(
        workspace=WorkspaceContext(os.getcwd()),
        channel=build_channel(config.hooks, audit=audit, on_diagnostic=lambda d: console.print(f"[yellow]{d}[/yellow]")),
        presenter=ConsolePresenter(console),
        messages=ConsoleMessageSink(console),
        trust_gating_enabled=config.trust.folder_trust_enabled,
        workspace_is_trusted=workspace_trusted if workspace_trusted is not None else config.workspace_trusted,
        store_loader=_store_loader(config),
        audit=audit,
    )


@dir_app.command("add")
def add_directories(
    ctx: typer.Context,
    paths: str = typer.Argument(..., help="Directories to add, separated by commas"),
    workspace_trusted: Optional[bool] = typer.Option(
        None, "--trusted-workspace/--untrusted-workspace", help="Override the workspace trust state"
    ),
):
    """Add directories to the workspace, asking about folders with no trust level"""
    config = _config(ctx)
    effective_trust = workspace_trusted if workspace_trusted is not None else config.workspace_trusted
    _, issues = ConfigValidator.validate_trust_config(config.trust.model_dump(), workspace_trusted=effective_trust)
    _print_issues(issues)

    coordinator = _coordinator(config, workspace_trusted)
    report = asyncio.run(coordinator.add_directories(paths))
    coordinator.show_directories()
    if report.errors:
        raise typer.Exit(1)


@dir_app.command("show")
def show_directories(ctx: typer.Context):
    """Show all directories in the workspace"""
    _coordinator(_config(ctx), None).show_directories()


@hooks_app.command("list")
def list_hooks(ctx: typer.Context):
    """List configured hooks"""
    hooks = _config(ctx).hooks
    if not hooks.definitions:
        console.print("[yellow]No hooks configured.[/yellow]")
        return

    table = Table(title="Hooks" if hooks.enabled else "Hooks (disabled)")
    table.add_column("Event", style="cyan")
    table.add_column("Type")
    table.add_column("Target", style="blue")
    table.add_column("Timeout")
    table.add_column("Enabled")
    for event, definition in hooks.definitions.items():
        target = definition.command if definition.type == "command" else definition.url
        if target and len(target) > 50:
            target = target[:47] + "..."
        table.add_row(
            event, definition.type, target or "", f"{definition.timeout:g}s",
            "[green]yes[/green]" if definition.enabled else "[red]no[/red]",
        )
    console.print(table)

    _, issues = ConfigValidator.validate_event_names(list(hooks.definitions))
    for event, definition in hooks.definitions.items():
        _, hook_issues = ConfigValidator.validate_hook_definition(definition.model_dump())
        issues.extend(f"{event}: {issue}" for issue in hook_issues)
    _print_issues(issues)


@hooks_app.command("fire")
def fire_hook(
    ctx: typer.Context,
    event: str = typer.Argument(..., help="before-agent or after-agent"),
    payload: str = typer.Option("{}", "--payload", help="Payload passed to the hook"),
    correlation_id: Optional[str] = typer.Option(None, "--correlation-id"),
):
    """Fire a hook once and show its decision"""
    from trustgate.hooks.registry import build_channel

    config = _config(ctx)
    channel = build_channel(config.hooks, audit=_audit_log(config))
    decision = asyncio.run(channel.fire(event, payload, correlation_id or f"cli_{uuid.uuid4().hex[:8]}"))

    for diagnostic in channel.diagnostics:
        console.print(f"[yellow]{diagnostic}[/yellow]")

    if not decision.ran:
        console.print("[dim]No hook ran[/dim]")
    elif decision.blocked:
        console.print(f"[red]BLOCK[/red]: {decision.get_effective_reason()}")
    else:
        console.print("[green]CONTINUE[/green]")
    if decision.additional_context:
        console.print(f"Additional context: {decision.additional_context}")


@audit_app.command("show")
def show_audit(
    ctx: typer.Context,
    count: int = typer.Option(20, "--count", "-n", help="Number of entries"),
    verbose: bool = typer.Option(False, "--details", help="Include entry details"),
):
    """Show recent audit entries"""
    audit = _audit_log(_config(ctx))
    entries = audit.load_recent(count)
    if not entries:
        console.print("[yellow]Audit log is empty.[/yellow]")
        return
    console.print(audit.format_for_display(entries, verbose=verbose), highlight=False)


@audit_app.command("stats")
def audit_stats(ctx: typer.Context, count: int = typer.Option(1000, "--count", "-n")):
    """Summarize recent audit entries"""
    audit = _audit_log(_config(ctx))
    stats = audit.get_stats(audit.load_recent(count))

    table = Table(title=f"Audit ({stats['total_entries']} entries, {stats['failed']} failed)")
    table.add_column("Action", style="cyan")
    table.add_column("Count", justify="right")
    for action, n in sorted(stats["by_action"].items()):
        table.add_row(action, str(n))
    console.print(table)
