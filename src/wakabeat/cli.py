#!/usr/bin/env python3
"""
wakabeat CLI — report editor activity to WakaTime.

Usage:
    wakabeat                          Show status overview
    wakabeat status                   Show status overview
    wakabeat send [path] [--write]    Send one heartbeat and print the outcome
    wakabeat project [name] [-b br]   Show or rewrite .wakatime-project
    wakabeat watch [path ...]         Watch files and send heartbeats until stopped
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Rich imports
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from wakabeat import __version__
from wakabeat.core.config import WakabeatConfig
from wakabeat.core.dispatcher import HeartbeatDispatcher
from wakabeat.core.interpreter import Outcome, OutcomeKind
from wakabeat.core.project import PROJECT_FILE, read_project_file, resolve_project, write_project_file
from wakabeat.core.transport import HeartbeatTransport
from wakabeat.types import ActivityEvent

console = Console()

OUTCOME_STYLES = {
    OutcomeKind.ACCEPTED: "green",
    OutcomeKind.DUPLICATE: "cyan",
    OutcomeKind.OTHER_API_ERROR: "yellow",
    OutcomeKind.RATE_LIMITED: "yellow",
    OutcomeKind.CLIENT_ERROR: "red",
    OutcomeKind.SERVER_ERROR: "yellow",
    OutcomeKind.NETWORK_UNREACHABLE: "yellow",
    OutcomeKind.MALFORMED_RESPONSE: "red",
    OutcomeKind.UNKNOWN_STATUS: "bold red",
}


def _mask_key(key: str) -> str:
    """Show only the last four characters of an API key."""
    if not key:
        return "[red]not set[/red]"
    if len(key) <= 4:
        return "*" * len(key)
    return "*" * (len(key) - 4) + key[-4:]


def _load_config(args) -> WakabeatConfig:
    try:
        return WakabeatConfig.load(args.config)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)


def cmd_status(args):
    config = _load_config(args)
    snapshot = config.snapshot()

    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("key", style="dim")
    table.add_column("value")
    table.add_row("enabled", "[green]yes[/green]" if snapshot.enabled else "[red]no[/red]")
    table.add_row("debug", "yes" if snapshot.debug else "no")
    table.add_row("api key", _mask_key(snapshot.api_key))
    table.add_row("api url", config.api.api_url)
    table.add_row("project", snapshot.project_name)
    table.add_row("branch", snapshot.branch)
    table.add_row("cooldown", f"{config.dispatch.cooldown_seconds}s")
    table.add_row("rate-limit backoff", f"{config.dispatch.rate_limit_backoff_seconds}s")
    table.add_row("watch paths", ", ".join(config.watch.paths) or config.project.root)

    console.print(Panel(table, title=f"wakabeat v{__version__}", expand=False))


async def _send_one(config: WakabeatConfig, event: ActivityEvent):
    dispatcher = HeartbeatDispatcher(
        config.snapshot(),
        HeartbeatTransport(api_url=config.api.api_url, timeout_seconds=config.api.timeout_seconds),
        cooldown_seconds=config.dispatch.cooldown_seconds,
    )
    try:
        task = dispatcher.dispatch(event)
        return await task if task is not None else None
    finally:
        await dispatcher.close()


def _print_outcome(outcome: Outcome):
    style = OUTCOME_STYLES[outcome.kind]
    line = f"[{style}]{outcome.kind.value}[/{style}]"
    if outcome.status is not None:
        line += f"  status={outcome.status}"
    if outcome.message:
        line += f"  {outcome.message}"
    if outcome.data:
        line += f"  id={outcome.data['id']}"
    console.print(line)


def cmd_send(args):
    config = _load_config(args)
    path = str(Path(args.path).expanduser().resolve()) if args.path else ""
    event = ActivityEvent(source_path=path, is_forced_write=args.write)

    outcome = asyncio.run(_send_one(config, event))
    if outcome is None:
        console.print("[yellow]Nothing sent[/yellow] (disabled or no API key, see `wakabeat status`)")
        sys.exit(1)

    _print_outcome(outcome)
    if outcome.is_error:
        sys.exit(1)


def cmd_project(args):
    config = _load_config(args)
    root = Path(args.root or config.project.root).expanduser()

    if args.name:
        lines = [args.name]
        if args.branch:
            lines.append(args.branch)
        path = write_project_file(lines, root)
        console.print(f"Wrote [bold]{path}[/bold]")

    if read_project_file(root) is None:
        console.print(f"[dim]No {PROJECT_FILE} in {root}, using the directory name[/dim]")
    name, branch = resolve_project(root, default_branch=config.project.branch)
    console.print(f"project: [bold]{name}[/bold]  branch: {branch}")


def cmd_watch(args):
    from wakabeat.__main__ import setup_logging
    from wakabeat.core.daemon import WakabeatDaemon

    config = _load_config(args)
    setup_logging(config)
    WakabeatDaemon(config=config, paths=args.paths or None).run()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wakabeat",
        description="wakabeat — editor activity heartbeats for WakaTime",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to wakabeat.yaml")
    parser.add_argument("--no-color", action="store_true", help="Disable colors")

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Show status overview")

    p = sub.add_parser("send", help="Send one heartbeat")
    p.add_argument("path", nargs="?", default="", help="Active file (empty = no file)")
    p.add_argument("--write", action="store_true", help="Mark as an explicit save")

    p = sub.add_parser("project", help=f"Show or rewrite {PROJECT_FILE}")
    p.add_argument("name", nargs="?", help="New project name")
    p.add_argument("-b", "--branch", help="Branch override (second line)")
    p.add_argument("--root", help="Project root (default: project.root from config)")

    p = sub.add_parser("watch", help="Watch files and send heartbeats")
    p.add_argument("paths", nargs="*", help="Paths to watch (default: watch.paths)")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        console.no_color = True

    cmd = args.command or "status"

    commands = {
        "status": cmd_status,
        "send": cmd_send,
        "project": cmd_project,
        "watch": cmd_watch,
    }

    fn = commands.get(cmd)
    if fn:
        fn(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
