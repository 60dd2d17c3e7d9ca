"""CLI command handlers for project-switcher.

Every command loads the config, opens the project store and returns an exit
status. Errors raised as ``ProjectSwitcherError`` are printed with their
remediation and exit with status 1.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from .. import __version__
from ..config import SwitcherConfig, load_config
from ..core.badge_color import normalize_badge_color
from ..core.groups import GroupChildResolver
from ..core.session_registry import SessionRegistry
from ..core.sections import build_view_state
from ..core.storage import JsonFileStorage
from ..core.store import ProjectStore, now_ms
from ..core.uris import format_full_path, location_basename, location_to_uri
from ..exceptions import (
    GroupNotFoundError,
    InvalidLocationError,
    ProjectNotFoundError,
    ProjectSwitcherError,
)
from ..models.project import ProjectKind
from ..services.presence_sync import PresenceSync
from ..services.switch_service import ProjectSwitchService
from . import formatters as fmt
from .logging_config import log_timing, setup_logging

logger = logging.getLogger(__name__)

WORKSPACE_SUFFIX = ".code-workspace"


def _load_config(args: argparse.Namespace) -> SwitcherConfig:
    config_path = getattr(args, "config", None)
    return load_config(Path(config_path).expanduser() if config_path else None)


def _open_store(config: SwitcherConfig) -> ProjectStore:
    return ProjectStore(JsonFileStorage(config.state_file))


def _peer_registry(config: SwitcherConfig) -> SessionRegistry:
    """Registry that only reads peers: never started, never publishes."""
    return SessionRegistry(
        config.sessions_dir,
        stale_after_ms=config.stale_after_ms,
        write_debounce_ms=config.write_debounce_ms,
        notify_debounce_ms=config.notify_debounce_ms,
        watch=None,
    )


def _location_arg(location: str) -> str:
    if not location or not location.strip():
        raise InvalidLocationError(location or "")
    return location_to_uri(location)


def _optional_location(location: Optional[str]) -> Optional[str]:
    return location_to_uri(location) if location and location.strip() else None


def _detect_kind(uri: str, workspace: bool) -> ProjectKind:
    if workspace or uri.rstrip("/").endswith(WORKSPACE_SUFFIX):
        return "workspace"
    return "folder"


def _print_json(data) -> None:
    print(fmt.format_json(data))


# ============================================================================
# Listing
# ============================================================================


async def cmd_list(args: argparse.Namespace) -> int:
    """List projects in sidebar sections.

    Args:
        args: Parsed arguments

    Returns:
        0 on success
    """
    config = _load_config(args)
    store = _open_store(config)

    with log_timing("Build view state", logger):
        projects = store.get_all_projects()
        sections = GroupChildResolver().resolve(store.get_all_groups(), projects)
        view = build_view_state(
            saved_projects=projects,
            group_sections=sections,
            current_uri=_optional_location(args.current),
            open_elsewhere_uris=frozenset(_peer_registry(config).get_open_elsewhere_uris()),
            visibility=config.section_visibility,
            collapse=config.section_collapse,
            recent_limit=config.recent_limit,
            query=args.query or "",
        )

    if args.json:
        _print_json(view.model_dump(mode="json"))
        return 0

    tables = fmt.format_view_state(view)
    if not tables:
        if view.query:
            fmt.print_info(f"No projects match {view.query!r}")
        else:
            fmt.print_info("No saved projects")
            fmt.print_info("Save one with: project-switcher save <path>")
        return 0

    for table in tables:
        fmt.console.print(table)
    return 0


async def cmd_sessions(args: argparse.Namespace) -> int:
    """List live windows from the shared presence directory."""
    config = _load_config(args)
    records = _peer_registry(config).get_open_elsewhere_snapshots()

    if args.json:
        _print_json([record.to_persisted() for record in records])
        return 0

    if not records:
        fmt.print_info(f"No open windows in {config.sessions_dir}")
        return 0

    fmt.console.print(fmt.format_session_table(records, now_ms()))
    return 0


# ============================================================================
# Project commands
# ============================================================================


async def cmd_save(args: argparse.Namespace) -> int:
    """Save (or update) the project at a location."""
    uri = _location_arg(args.location)
    store = _open_store(_load_config(args))

    name = args.name if args.name else location_basename(uri)
    project = store.save_project(name, _detect_kind(uri, args.workspace), uri)
    if project is None:
        raise InvalidLocationError(args.location)

    if args.json:
        _print_json(project.to_persisted())
    else:
        fmt.print_success(f"Saved {project.name!r} ({project.id})")
    return 0


async def cmd_rename(args: argparse.Namespace) -> int:
    store = _open_store(_load_config(args))
    project = store.rename_project(args.project_id, args.name)
    if project is None:
        raise ProjectNotFoundError(args.project_id)

    if args.json:
        _print_json(project.to_persisted())
    else:
        fmt.print_success(f"Renamed {project.id} to {project.name!r}")
    return 0


async def cmd_remove(args: argparse.Namespace) -> int:
    store = _open_store(_load_config(args))
    if not store.remove_project(args.project_id):
        raise ProjectNotFoundError(args.project_id)

    if args.json:
        _print_json({"status": "success", "removed": args.project_id})
    else:
        fmt.print_success(f"Removed project {args.project_id}")
    return 0


async def cmd_pin(args: argparse.Namespace) -> int:
    store = _open_store(_load_config(args))
    project = store.toggle_pin(args.project_id)
    if project is None:
        raise ProjectNotFoundError(args.project_id)

    if args.json:
        _print_json(project.to_persisted())
    else:
        state = "Pinned" if project.pinned else "Unpinned"
        fmt.print_success(f"{state} {project.name!r}")
    return 0


async def cmd_badge(args: argparse.Namespace) -> int:
    """Set or clear a project's badge color."""
    store = _open_store(_load_config(args))

    color = normalize_badge_color(args.color) if args.color else None
    if args.color and color is None:
        raise ProjectSwitcherError(
            f"Invalid badge color: {args.color}",
            remediation="Use a hex color such as #1e90ff or #abc",
        )

    project = store.set_badge_color(args.project_id, color)
    if project is None:
        raise ProjectNotFoundError(args.project_id)

    if args.json:
        _print_json(project.to_persisted())
    elif project.badge_color:
        fmt.print_success(f"Badge color of {project.name!r} is {project.badge_color}")
    else:
        fmt.print_success(f"Cleared badge color of {project.name!r}")
    return 0


async def cmd_open(args: argparse.Namespace) -> int:
    """Record a switch and print the location to open.

    The printed path lets shells and launchers do the actual opening,
    e.g. ``cd "$(project-switcher open <id>)"``.
    """
    config = _load_config(args)
    store = _open_store(config)
    current_uri = _optional_location(args.current)
    opened: List[dict] = []

    def opener(uri: str, new_window: bool) -> None:
        opened.append({"uri": uri, "path": format_full_path(uri), "newWindow": new_window})

    service = ProjectSwitchService(
        store,
        opener,
        open_in_new_window=config.open_in_new_window,
        current_uri=lambda: current_uri,
    )
    new_window = True if args.new_window else None
    service.open_ref(args.ref, new_window)

    for entry in opened:
        if args.json:
            _print_json(entry)
        else:
            print(entry["path"])
    return 0


# ============================================================================
# Group commands
# ============================================================================


async def cmd_group(args: argparse.Namespace) -> int:
    """Manage project groups (list, add, remove, toggle)."""
    store = _open_store(_load_config(args))
    subcommand = args.group_command

    if subcommand == "list":
        groups = store.get_all_groups()
        if args.json:
            _print_json([group.to_persisted() for group in groups])
        elif not groups:
            fmt.print_info("No project groups")
        else:
            fmt.console.print(fmt.format_group_list(groups))
        return 0

    if subcommand == "add":
        root_uri = _location_arg(args.root)
        name = args.name if args.name else location_basename(root_uri, default="Group")
        group = store.save_group(name, root_uri)
        if group is None:
            raise InvalidLocationError(args.root)
        if args.json:
            _print_json(group.to_persisted())
        else:
            fmt.print_success(f"Saved group {group.name!r} ({group.id})")
        return 0

    if subcommand == "remove":
        if not store.remove_group(args.group_id):
            raise GroupNotFoundError(args.group_id)
        if args.json:
            _print_json({"status": "success", "removed": args.group_id})
        else:
            fmt.print_success(f"Removed group {args.group_id}")
        return 0

    if subcommand == "toggle":
        group = store.toggle_group_collapsed(args.group_id)
        if group is None:
            raise GroupNotFoundError(args.group_id)
        if args.json:
            _print_json(group.to_persisted())
        else:
            state = "Collapsed" if group.collapsed else "Expanded"
            fmt.print_success(f"{state} group {group.name!r}")
        return 0

    fmt.print_error(f"Unknown group subcommand: {subcommand}")
    return 1


# ============================================================================
# Presence
# ============================================================================


async def cmd_watch(args: argparse.Namespace) -> int:
    """Publish a live session for a location and report peers until interrupted."""
    config = _load_config(args)
    store = _open_store(config)
    workspace_uri = _location_arg(args.location)

    registry = SessionRegistry(
        config.sessions_dir,
        stale_after_ms=config.stale_after_ms,
        write_debounce_ms=config.write_debounce_ms,
        notify_debounce_ms=config.notify_debounce_ms,
    )
    presence = PresenceSync(store, registry)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig} unavailable")

    last_reported: Optional[List[str]] = None

    def report() -> None:
        nonlocal last_reported
        uris = sorted(presence.open_elsewhere_uris)
        if uris == last_reported:
            return
        last_reported = uris
        if args.json:
            print(fmt.format_json({"openElsewhere": uris}, pretty=False), flush=True)
        elif uris:
            fmt.print_info(f"Open elsewhere: {', '.join(uris)}")
        else:
            fmt.print_info("No other windows open")

    presence.on_did_change(report)

    with registry:
        if args.badge_color:
            presence.publish_accent_color(args.badge_color)
        registry.set_branch(args.branch)
        registry.start(workspace_uri=workspace_uri, focused=args.focused, heartbeat_ms=config.heartbeat_ms)
        presence.attach()
        presence.sync_current_badge_color(workspace_uri, registry.badge_color)

        if not args.json:
            fmt.print_success(f"Session {registry.session_id} publishing {workspace_uri}")
        await stop.wait()

    presence.detach()
    return 0


# ============================================================================
# Entry point
# ============================================================================


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="project-switcher",
        description="Saved projects, project groups and cross-window presence",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"project-switcher {__version__}"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging (INFO level)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (DEBUG level, includes verbose)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output machine-readable JSON"
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Config file (default: ~/.config/project-switcher/config.json)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # project-switcher list
    parser_list = subparsers.add_parser(
        "list",
        help="List projects by section",
    )
    parser_list.add_argument("--query", "-q", help="Filter by name, path or kind")
    parser_list.add_argument("--current", metavar="LOCATION", help="Location treated as the current window")

    # project-switcher save <location>
    parser_save = subparsers.add_parser(
        "save",
        help="Save the project at a path or URI",
    )
    parser_save.add_argument("location", help="Folder path, .code-workspace file or URI")
    parser_save.add_argument("--name", "-n", help="Display name (default: folder name)")
    parser_save.add_argument("--workspace", action="store_true", help="Save as a workspace file project")

    parser_rename = subparsers.add_parser("rename", help="Rename a saved project")
    parser_rename.add_argument("project_id", help="Project ID")
    parser_rename.add_argument("name", help="New name")

    parser_remove = subparsers.add_parser("remove", help="Remove a saved project")
    parser_remove.add_argument("project_id", help="Project ID")

    parser_pin = subparsers.add_parser("pin", help="Toggle a project's pinned flag")
    parser_pin.add_argument("project_id", help="Project ID")

    parser_badge = subparsers.add_parser("badge", help="Set or clear a project's badge color")
    parser_badge.add_argument("project_id", help="Project ID")
    parser_badge.add_argument("color", nargs="?", help="Hex color (omit to clear)")

    # project-switcher open <ref>
    parser_open = subparsers.add_parser(
        "open",
        help="Record a switch and print the location to open",
    )
    parser_open.add_argument("ref", help="Project ID, group project ID, path or URI")
    parser_open.add_argument("--new-window", action="store_true", help="Open in a new window")
    parser_open.add_argument("--current", metavar="LOCATION", help="Location of the window being left")

    # project-switcher group <subcommand>
    parser_group = subparsers.add_parser("group", help="Manage project groups")
    group_subparsers = parser_group.add_subparsers(dest="group_command", help="Group commands")
    group_subparsers.required = True

    group_subparsers.add_parser("list", help="List project groups")

    parser_group_add = group_subparsers.add_parser("add", help="Add a group rooted at a directory")
    parser_group_add.add_argument("root", help="Root directory path or URI")
    parser_group_add.add_argument("--name", "-n", help="Group title (default: directory name)")

    parser_group_remove = group_subparsers.add_parser("remove", help="Remove a group")
    parser_group_remove.add_argument("group_id", help="Group ID")

    parser_group_toggle = group_subparsers.add_parser("toggle", help="Collapse or expand a group")
    parser_group_toggle.add_argument("group_id", help="Group ID")

    subparsers.add_parser("sessions", help="List live windows")

    # project-switcher watch <location>
    parser_watch = subparsers.add_parser(
        "watch",
        help="Publish a live session and report other windows until interrupted",
    )
    parser_watch.add_argument("location", help="Location this session has open")
    parser_watch.add_argument("--focused", action="store_true", help="Advertise the session as focused")
    parser_watch.add_argument("--badge-color", help="Accent color to advertise")
    parser_watch.add_argument("--branch", help="Branch name to advertise")

    return parser


COMMAND_HANDLERS = {
    "list": cmd_list,
    "save": cmd_save,
    "rename": cmd_rename,
    "remove": cmd_remove,
    "pin": cmd_pin,
    "badge": cmd_badge,
    "open": cmd_open,
    "group": cmd_group,
    "sessions": cmd_sessions,
    "watch": cmd_watch,
}


def cli_main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, debug=args.debug)

    if not args.command:
        parser.print_help()
        return 1

    handler = COMMAND_HANDLERS.get(args.command)
    if handler is None:
        fmt.print_error(f"Unknown command: {args.command}")
        parser.print_help()
        return 1

    try:
        return asyncio.run(handler(args))
    except ProjectSwitcherError as e:
        if args.json:
            _print_json({"status": "error", "message": e.message, "remediation": e.remediation})
        else:
            fmt.print_error(e.message, e.remediation or "")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(cli_main())
