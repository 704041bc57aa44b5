"""
Command-line interface for canvas-chat.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path

import yaml
from rich.console import Console
from rich.table import Table

from canvas_chat.config import CanvasConfig
from canvas_chat.graph.context import build_chat_request, collect_context_texts
from canvas_chat.graph.models import NodeKind
from canvas_chat.graph.persistence import read_snapshot
from canvas_chat.graph.store import GraphStore
from canvas_chat.logging import setup_logging
from canvas_chat.streaming.session import SessionState, StreamSession

console = Console()

DEFAULT_CONFIG_FILE = "canvas-chat.yaml"


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Canvas chat CLI",
        prog="canvas-chat",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (debug logging)",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="YAML config file (defaults to ./canvas-chat.yaml, then the environment)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    show_parser = subparsers.add_parser("show", help="Show the cards and links of a saved canvas")
    show_parser.add_argument("snapshot", help="Canvas snapshot JSON file")

    context_parser = subparsers.add_parser("context", help="Show the context wired into a chat card")
    context_parser.add_argument("snapshot", help="Canvas snapshot JSON file")
    context_parser.add_argument("chat_id", help="Chat node id")

    chat_parser = subparsers.add_parser("chat", help="Send a message from a chat card")
    chat_parser.add_argument("snapshot", help="Canvas snapshot JSON file")
    chat_parser.add_argument("chat_id", help="Chat node id")
    chat_parser.add_argument("message", help="Message to send")
    chat_parser.add_argument("--project-id", required=True, help="Project UUID")
    chat_parser.add_argument("--conversation-id", help="Continue an existing conversation")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")
    config_subparsers.add_parser("show", help="Show current configuration")
    config_init_parser = config_subparsers.add_parser("init", help="Initialize a new config file")
    config_init_parser.add_argument(
        "-o",
        "--output",
        default=DEFAULT_CONFIG_FILE,
        help="Output file path",
    )

    args = parser.parse_args(argv)

    args.canvas_config = _load_config(args.config)
    setup_logging("DEBUG" if args.verbose else args.canvas_config.log_level)

    if args.command == "show":
        cmd_show(args)
    elif args.command == "context":
        cmd_context(args)
    elif args.command == "chat":
        sys.exit(asyncio.run(cmd_chat(args)))
    elif args.command == "config":
        cmd_config(args)
    else:
        parser.print_help()


def _load_config(path: str | None) -> CanvasConfig:
    if path:
        return CanvasConfig.from_yaml(Path(path))
    default = Path.cwd() / DEFAULT_CONFIG_FILE
    if default.exists():
        return CanvasConfig.from_yaml(default)
    return CanvasConfig.from_env()


def _load_store(snapshot: str, config: CanvasConfig | None = None) -> GraphStore:
    path = Path(snapshot)
    if not path.exists():
        console.print(f"[red]Snapshot not found: {path}[/red]")
        sys.exit(1)

    store = GraphStore(config=config)
    dropped = read_snapshot(store, path)
    for edge in dropped:
        console.print(
            f"[yellow]⚠ Dropped invalid link {edge.id} ({edge.source_id} → {edge.target_id})[/yellow]"
        )
    return store


def _require_chat(store: GraphStore, chat_id: str) -> None:
    node = store.get_node(chat_id)
    if node is None or node.kind is not NodeKind.CHAT:
        console.print(f"[red]Chat node not found: {chat_id}[/red]")
        sys.exit(1)


def cmd_show(args: argparse.Namespace) -> None:
    """Show the cards and links of a saved canvas."""
    store = _load_store(args.snapshot)

    nodes_table = Table(title="Cards")
    nodes_table.add_column("Id", style="cyan")
    nodes_table.add_column("Kind")
    nodes_table.add_column("Position", style="dim")
    for node in store.nodes:
        nodes_table.add_row(
            node.id,
            node.kind.value,
            f"({node.position.x:g}, {node.position.y:g})",
        )
    console.print(nodes_table)

    edges_table = Table(title="Links")
    edges_table.add_column("Id", style="cyan")
    edges_table.add_column("Source")
    edges_table.add_column("Target")
    for edge in store.edges:
        edges_table.add_row(edge.id, edge.source_id, edge.target_id)
    console.print(edges_table)

    console.print(f"\n[dim]Total: {len(store)} cards, {len(store.edges)} links[/dim]")


def cmd_context(args: argparse.Namespace) -> None:
    """Show the context wired into a chat card."""
    store = _load_store(args.snapshot)
    _require_chat(store, args.chat_id)

    ids = store.connected_context_ids(args.chat_id)
    if not ids:
        console.print(f"[dim]No context connected to {args.chat_id}[/dim]")
        return

    console.print(f"[bold]Context for {args.chat_id}:[/bold]")
    for node_id in ids:
        console.print(f"  [cyan]{node_id}[/cyan]")
    console.print("\n[bold]Rendered:[/bold]")
    for text in collect_context_texts(store, args.chat_id):
        console.print(f"  • {text}")


async def cmd_chat(args: argparse.Namespace) -> int:
    """Stream a reply for a message sent from a chat card. Returns an exit code."""
    config = getattr(args, "canvas_config", None) or _load_config(getattr(args, "config", None))
    store = _load_store(args.snapshot, config)
    _require_chat(store, args.chat_id)

    request = build_chat_request(
        store,
        args.chat_id,
        args.message,
        project_id=args.project_id,
        conversation_id=args.conversation_id,
    )

    def on_token(token: str, _text: str) -> None:
        console.print(token, end="", markup=False, highlight=False, soft_wrap=True)

    def on_complete(_text: str, conversation_id: str | None, message_id: str | None) -> None:
        console.print(f"\n\n[dim]conversation {conversation_id} · message {message_id}[/dim]")

    def on_error(message: str) -> None:
        console.print(f"\n[red]Error:[/red] {message}")

    session = StreamSession.create(
        config,
        on_token=on_token,
        on_complete=on_complete,
        on_error=on_error,
    )
    loop = asyncio.get_running_loop()
    task = session.start(request)
    try:
        loop.add_signal_handler(signal.SIGINT, session.cancel)
        sigint_installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        # No signal handlers off the main thread or on Windows loops.
        sigint_installed = False
    try:
        state = await task
    finally:
        if sigint_installed:
            loop.remove_signal_handler(signal.SIGINT)

    if state is SessionState.CANCELLED:
        console.print("\n[yellow]Cancelled[/yellow]")
        return 130
    return 1 if state is SessionState.FAILED else 0


def cmd_config(args: argparse.Namespace) -> None:
    """Configuration management commands."""
    if args.config_command == "show":
        _config_show(getattr(args, "config", None))
    elif args.config_command == "init":
        _config_init(args.output)
    else:
        console.print("[yellow]Usage: canvas-chat config <show|init>[/yellow]")


def _config_show(path: str | None = None) -> None:
    config = _load_config(path)
    data = config.to_dict()
    if data.get("auth_token"):
        data["auth_token"] = "***"
    console.print("[bold]Current Configuration:[/bold]\n")
    console.print(yaml.dump(data, default_flow_style=False, sort_keys=False))


def _config_init(output: str) -> None:
    output_path = Path(output)

    if output_path.exists():
        console.print(f"[red]File already exists: {output_path}[/red]")
        sys.exit(1)

    with open(output_path, "w") as f:
        yaml.dump(CanvasConfig().to_dict(), f, default_flow_style=False, sort_keys=False)

    console.print(f"[green]Created config file: {output_path}[/green]")


if __name__ == "__main__":
    main()
