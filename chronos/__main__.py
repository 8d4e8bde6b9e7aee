"""CLI entry point for Chronos."""

import argparse
import asyncio
import json
import logging
import sys
import traceback
from datetime import datetime
from typing import Any

from .config import load_config
from .journal import editing, local_iso_date, mood_label, parse_iso_date
from .storage import create_storage


class JSONFormatter(logging.Formatter):
    """JSON-lines formatter for log shippers.

    Records logged with ``extra={"entry_id": ...}`` carry the journal date
    they concern, so sync failures can be traced per entry.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        entry_id = getattr(record, "entry_id", None)
        if entry_id is not None:
            log_data["entry_id"] = entry_id

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))

        # Safe JSON serialization
        try:
            return json.dumps(log_data)
        except (TypeError, ValueError):
            # Fallback for non-serializable objects
            log_data["message"] = str(log_data["message"])
            if "exception" in log_data:
                log_data["exception"] = str(log_data["exception"])
            return json.dumps(log_data)


def setup_logging(verbose: bool = False, log_level: str | None = None, json_output: bool = False) -> None:
    """Configure logging.

    Args:
        verbose: Enable debug logging (ignored if log_level is set).
        log_level: Explicit log level (warning, info, debug).
        json_output: Output logs as JSON lines for machine parsing.
    """
    if log_level:
        level_map = {
            "warning": logging.WARNING,
            "info": logging.INFO,
            "debug": logging.DEBUG,
        }
        level = level_map.get(log_level, logging.INFO)
    else:
        # WARNING unless -v
        level = logging.DEBUG if verbose else logging.WARNING

    # Configure handler with appropriate formatter
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def _resolve_date(value: str | None) -> str:
    if not value or value == "today":
        return local_iso_date()
    parse_iso_date(value)
    return value


def _parse_value(raw: str) -> Any:
    """Interpret a CLI value as JSON, falling back to the plain string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _print_entry(entry_dict: dict[str, Any], label: str | None) -> None:
    print(json.dumps(entry_dict, indent=2))
    if label:
        print(f"Mood: {label}")


async def cmd_serve(args: argparse.Namespace) -> int:
    """Start the HTTP API."""
    config = load_config(args.config)

    try:
        import uvicorn

        from .server import create_app
    except ImportError as e:
        print(f"Server dependencies not installed: {e}", file=sys.stderr)
        return 1

    host = args.host or config.server.host
    port = args.port or config.server.port

    storage = create_storage(config)
    app = create_app(config, storage)

    print("Starting Chronos")
    print(f"Cache: {config.storage.db_path}")
    print(f"Cloud: {'offline mode' if storage.is_offline_mode else config.cloud.project_id}")
    print(f"URL: http://{host}:{port}")

    try:
        verbose = getattr(args, "verbose", False)
        config_uvicorn = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level="info" if verbose else "warning",
        )
        server = uvicorn.Server(config_uvicorn)
        await server.serve()
    finally:
        await storage.close()

    return 0


async def cmd_status(args: argparse.Namespace) -> int:
    """Check local cache and cloud connectivity."""
    config = load_config(args.config)
    storage = create_storage(config)

    try:
        status_data = {
            "timestamp": datetime.now().isoformat(),
            "app": {"name": config.app.name},
            "cache": {"db_path": config.storage.db_path, **storage.cache.get_stats()},
            "cloud": {
                "configured": not storage.is_offline_mode,
                "project_id": config.cloud.project_id or None,
                "user_id": config.cloud.user_id,
                "reachable": False,
            },
        }

        if storage.cloud is not None:
            status_data["cloud"]["reachable"] = await storage.cloud.health_check()

        if config.cloud.user_id:
            status_data["cloud"]["pending_entries"] = len(
                storage.cache.get_pending(config.cloud.user_id)
            )

        status_data["journal"] = storage.get_stats()["journal"]
    finally:
        await storage.close()

    if args.json:
        print(json.dumps(status_data, indent=2))
        return 0

    cache = status_data["cache"]
    cloud = status_data["cloud"]
    journal = status_data["journal"]

    print("Chronos Status Check")
    print("====================")
    print()
    print(f"Local cache ({cache['db_path']}):")
    print(f"  Keys: {cache['keys_count']}")
    print(f"  Pending cloud writes: {cache['pending_count']}")
    print()
    print("Cloud:")
    if cloud["configured"]:
        print(f"  Project: {cloud['project_id']}")
        print(f"  User: {cloud['user_id'] or 'not signed in'}")
        print(f"  Status: {'Reachable' if cloud['reachable'] else 'Not reachable'}")
    else:
        print("  Status: Offline mode (cloud not configured)")
    print()
    print("Journal:")
    print(f"  Entries: {journal['count']}")
    print(f"  Average mood: {journal['avg_mood']}")
    print(f"  Current streak: {journal['streak']} days")

    return 0


async def cmd_show(args: argparse.Namespace) -> int:
    """Print one day's entry."""
    config = load_config(args.config)
    date_str = _resolve_date(args.date)

    storage = create_storage(config)
    try:
        entry = await storage.get_entry(date_str, config.cloud.user_id)
    finally:
        await storage.close()

    _print_entry(entry.to_dict(), mood_label(entry.state.mood))
    return 0


async def cmd_set(args: argparse.Namespace) -> int:
    """Set one field of an entry and save it."""
    config = load_config(args.config)
    date_str = _resolve_date(args.date)
    user_id = config.cloud.user_id

    storage = create_storage(config)
    try:
        entry = await storage.get_entry(date_str, user_id)
        try:
            updated = editing.update_section(
                entry, args.section, **{args.field: _parse_value(args.value)}
            )
        except (KeyError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        result = await storage.save_entry(updated, user_id)
    finally:
        await storage.close()

    print(f"Saved {date_str} (cloud: {result.remote_status.value})")
    if result.error:
        print(f"  {result.error}", file=sys.stderr)
    return 0 if result.local_saved else 1


async def cmd_toggle(args: argparse.Namespace) -> int:
    """Toggle a habit for a day."""
    config = load_config(args.config)
    date_str = _resolve_date(args.date)
    user_id = config.cloud.user_id

    storage = create_storage(config)
    try:
        entry = await storage.get_entry(date_str, user_id)
        result = await storage.save_entry(
            editing.toggle_checklist_item(entry, args.item_id), user_id
        )
    finally:
        await storage.close()

    state = "done" if result.entry.checklist[args.item_id] else "not done"
    print(f"{args.item_id} on {date_str}: {state}")
    return 0 if result.local_saved else 1


async def cmd_checklist(args: argparse.Namespace) -> int:
    """Show or edit the habit checklist configuration."""
    config = load_config(args.config)
    storage = create_storage(config)

    try:
        items = storage.get_checklist_config()

        if args.checklist_command == "add":
            items = editing.add_checklist_item(items, args.label)
        elif args.checklist_command == "remove":
            items = editing.remove_checklist_item(items, args.item_id)
        elif args.checklist_command == "rename":
            items = editing.rename_checklist_item(items, args.item_id, args.label)

        if args.checklist_command != "list":
            storage.save_checklist_config(items)
    finally:
        await storage.close()

    if not items:
        print("No habits configured.")
    for item in items:
        marker = "x" if item.enabled else " "
        print(f"[{marker}] {item.id}: {item.label}")
    return 0


async def cmd_export(args: argparse.Namespace) -> int:
    """Write the local archive to a JSON file."""
    config = load_config(args.config)
    storage = create_storage(config)
    try:
        path = storage.export_to_file(args.output or config.storage.export_dir)
    finally:
        await storage.close()

    print(f"Exported to {path}")
    return 0


async def cmd_sync(args: argparse.Namespace) -> int:
    """Push entries whose cloud write failed earlier."""
    config = load_config(args.config)
    storage = create_storage(config)
    try:
        result = await storage.push_pending(config.cloud.user_id)
    finally:
        await storage.close()

    print(
        f"Sync: {result.status.value}, "
        f"pushed={result.entries_pushed}, failed={result.entries_failed}"
    )
    if result.error:
        print(f"  {result.error}", file=sys.stderr)
    return 0 if result.status.value == "success" else 1


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="chronos",
        description="Chronos - local-first personal journal",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to config file",
        default=None,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        choices=["warning", "info", "debug"],
        default=None,
        help="Set log level explicitly (overrides -v)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs as JSON lines",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to listen on")
    serve_parser.set_defaults(func=cmd_serve)

    # status
    status_parser = subparsers.add_parser("status", help="Check cache and cloud status")
    status_parser.add_argument(
        "--json",
        action="store_true",
        help="Output status as JSON",
    )
    status_parser.set_defaults(func=cmd_status)

    # show
    show_parser = subparsers.add_parser("show", help="Show an entry")
    show_parser.add_argument("date", nargs="?", help="YYYY-MM-DD (default: today)")
    show_parser.set_defaults(func=cmd_show)

    # set
    set_parser = subparsers.add_parser("set", help="Set a field of an entry")
    set_parser.add_argument("date", help="YYYY-MM-DD or 'today'")
    set_parser.add_argument("section", help="state, effort, achievements, reflections, memory, future")
    set_parser.add_argument("field", help="Field name, e.g. mood or timesLaughed")
    set_parser.add_argument("value", help="Value (parsed as JSON when possible)")
    set_parser.set_defaults(func=cmd_set)

    # toggle
    toggle_parser = subparsers.add_parser("toggle", help="Toggle a habit for a day")
    toggle_parser.add_argument("date", help="YYYY-MM-DD or 'today'")
    toggle_parser.add_argument("item_id", help="Checklist item id")
    toggle_parser.set_defaults(func=cmd_toggle)

    # checklist
    checklist_parser = subparsers.add_parser("checklist", help="Manage the habit checklist")
    checklist_subparsers = checklist_parser.add_subparsers(
        dest="checklist_command", help="Checklist commands"
    )
    checklist_subparsers.add_parser("list", help="List habits")
    checklist_add = checklist_subparsers.add_parser("add", help="Add a habit")
    checklist_add.add_argument("label", nargs="?", default="New Habit")
    checklist_remove = checklist_subparsers.add_parser("remove", help="Remove a habit")
    checklist_remove.add_argument("item_id")
    checklist_rename = checklist_subparsers.add_parser("rename", help="Rename a habit")
    checklist_rename.add_argument("item_id")
    checklist_rename.add_argument("label")
    checklist_parser.set_defaults(func=cmd_checklist)

    # export
    export_parser = subparsers.add_parser("export", help="Export the local archive")
    export_parser.add_argument("-o", "--output", default=None, help="Output directory")
    export_parser.set_defaults(func=cmd_export)

    # sync
    sync_parser = subparsers.add_parser("sync", help="Push pending entries to the cloud")
    sync_parser.set_defaults(func=cmd_sync)

    args = parser.parse_args()

    setup_logging(args.verbose, args.log_level, args.json_logs)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "checklist" and not args.checklist_command:
        args.checklist_command = "list"

    try:
        return asyncio.run(args.func(args))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
