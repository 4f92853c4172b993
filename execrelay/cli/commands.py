"""CLI commands for execrelay.

Inspect the approvals forwarding config, preview where a session's approvals
would go, and push a test approval through the real delivery path.
"""

import asyncio
import sys
import time
import uuid
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from execrelay import __logo__, __version__
from execrelay.utils.logging_utils import ensure_rotating_log_file

app = typer.Typer(
    name="execrelay",
    help=f"{__logo__} execrelay - forward exec approvals to chat",
    no_args_is_help=True,
)

console = Console()

# Set by the root callback; None means ~/.execrelay/config.json.
_state: dict[str, Path | None] = {"config_path": None}


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} execrelay v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    config: Path = typer.Option(None, "--config", "-c", help="Config file (default ~/.execrelay/config.json)"),
):
    """execrelay - forward exec approvals to chat."""
    _state["config_path"] = config


def _load():
    from execrelay.config.access import get_config
    from execrelay.utils.exceptions import ConfigError

    try:
        return get_config(config_path=_state["config_path"], force_reload=True)
    except ConfigError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)


def _build_request(command: str, *, timeout: float, session_key: str | None, agent_id: str | None):
    from execrelay.approvals.types import ExecApprovalRequest

    now = int(time.time() * 1000)
    return ExecApprovalRequest.from_payload({
        "id": uuid.uuid4().hex[:12],
        "request": {
            "command": command,
            "cwd": str(Path.cwd()),
            "host": "cli",
            "agentId": agent_id,
            "sessionKey": session_key,
        },
        "createdAtMs": now,
        "expiresAtMs": now + max(1, int(timeout * 1000)),
    })


@app.command()
def status():
    """Show config path and approvals forwarding settings."""
    from execrelay.config.loader import get_config_path

    config_path = _state["config_path"] or get_config_path()
    config = _load()
    exec_cfg = config.exec_approvals

    console.print(f"{__logo__} execrelay Status\n")
    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    if exec_cfg is None or not exec_cfg.enabled:
        console.print("Exec approvals: [dim]disabled[/dim]")
        return
    console.print("Exec approvals: [green]enabled[/green]")
    console.print(f"Mode: {exec_cfg.mode}")
    console.print(f"Agent filter: {', '.join(exec_cfg.agent_filter) if exec_cfg.agent_filter else '[dim]any[/dim]'}")
    console.print(f"Session filter: {', '.join(exec_cfg.session_filter) if exec_cfg.session_filter else '[dim]any[/dim]'}")
    console.print(f"Explicit targets: {len(exec_cfg.targets or [])}")
    for name in ("discord", "telegram", "slack"):
        section = getattr(config.channels, name)
        has_token = bool(getattr(section, "token", "") or getattr(section, "bot_token", "") or section.accounts)
        console.print(f"{name.capitalize()}: {'[green]✓[/green]' if has_token else '[dim]not set[/dim]'}")


@app.command()
def targets(
    session_key: str = typer.Option(None, "--session-key", "-s", help="Session key of the requesting session"),
    agent: str = typer.Option(None, "--agent", "-a", help="Agent id of the requester"),
):
    """Show where an approval from this session would be forwarded."""
    from execrelay.approvals.targets import resolve_forward_targets, should_forward_exec_approval
    from execrelay.session.store import resolve_session_target_from_store

    config = _load()
    exec_cfg = config.exec_approvals
    request = _build_request("(preview)", timeout=60, session_key=session_key, agent_id=agent)
    if not should_forward_exec_approval(config=exec_cfg, request=request):
        console.print("[yellow]Not forwarded[/yellow] (disabled or filtered out)")
        raise typer.Exit(1)
    resolved = resolve_forward_targets(
        config=config,
        exec_config=exec_cfg,
        request=request,
        resolve_session_target=resolve_session_target_from_store,
    )
    if not resolved:
        console.print("[yellow]No targets[/yellow]")
        raise typer.Exit(1)

    table = Table(title="Forward targets")
    table.add_column("Source", style="cyan")
    table.add_column("Channel")
    table.add_column("To")
    table.add_column("Account")
    table.add_column("Thread")
    for t in resolved:
        table.add_row(
            t.source,
            t.channel,
            t.to,
            t.account_id or "",
            "" if t.thread_id is None else str(t.thread_id),
        )
    console.print(table)


@app.command()
def test(
    command: str = typer.Option("echo hello", "--command", "-m", help="Command shown in the test approval"),
    timeout: float = typer.Option(30.0, "--timeout", "-t", help="Seconds until the test approval expires"),
    session_key: str = typer.Option(None, "--session-key", "-s", help="Session key (for session mode)"),
    agent: str = typer.Option(None, "--agent", "-a", help="Agent id of the requester"),
    decision: str = typer.Option(None, "--decision", "-d", help="Resolve right away (allow-once|allow-always|deny) instead of waiting for expiry"),
    verbose: bool = typer.Option(False, "--verbose", help="Print debug logs"),
):
    """Send a test approval request through the forwarder."""
    from loguru import logger

    from execrelay.approvals.forwarder import ExecApprovalForwarder
    from execrelay.approvals.types import EXEC_APPROVAL_DECISIONS
    from execrelay.config.access import config_provider

    if decision and decision not in EXEC_APPROVAL_DECISIONS:
        console.print(f"[red]Unknown decision: {decision}[/red]")
        raise typer.Exit(1)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")
    log_path = ensure_rotating_log_file("test", level="DEBUG" if verbose else "INFO")
    console.print(f"[dim]Logs: {log_path}[/dim]")

    _load()
    request = _build_request(command, timeout=timeout, session_key=session_key, agent_id=agent)
    forwarder = ExecApprovalForwarder(get_config=config_provider(_state["config_path"]))

    async def _run() -> bool:
        sent = await forwarder.handle_requested(request)
        if sent:
            console.print(f"{__logo__} Sent approval [cyan]{request.id}[/cyan]")
            if decision and forwarder.is_pending(request.id):
                await forwarder.handle_resolved({"id": request.id, "decision": decision, "resolvedBy": "execrelay-cli"})
            elif forwarder.is_pending(request.id):
                console.print(f"Waiting {timeout:g}s for expiry (Ctrl+C to stop)...")
                while forwarder.is_pending(request.id):
                    await asyncio.sleep(0.2)
        # An expiry that fired during the initial send may still be updating targets.
        await forwarder.wait_idle()
        return sent

    try:
        sent = asyncio.run(_run())
    except KeyboardInterrupt:
        forwarder.stop()
        console.print("\n[yellow]Stopped[/yellow]")
        raise typer.Exit(130)
    if not sent:
        console.print("[yellow]Nothing sent[/yellow] (disabled, filtered out, or no targets)")
        raise typer.Exit(1)
    console.print("[green]✓[/green] Done")


if __name__ == "__main__":
    app()
