"""Rich formatters for project-switcher CLI output.

Provides formatted, colored output for CLI commands using the Rich library.
"""

import json
from typing import Any, List, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..core.uris import format_display_path
from ..models.project import ProjectGroup
from ..models.session import OpenWindowSessionRecord
from ..models.view import ProjectView, ViewState


# Global console instances
console = Console()
error_console = Console(stderr=True)

# Fallback badge styles when a project has no badge color, indexed by badge tone
BADGE_TONE_STYLES = [
    "red", "green", "yellow", "blue", "magenta",
    "cyan", "bright_red", "bright_green", "bright_blue", "bright_magenta",
]


def format_age(age_ms: float) -> str:
    """Short relative age (``12s ago``, ``4m ago``, ``2h ago``, ``3d ago``)."""
    seconds = max(int(age_ms // 1000), 0)
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def format_badge(project: ProjectView) -> Text:
    """Initials rendered in the project's badge color (or its tone)."""
    style = f"bold {project.badge_color}" if project.badge_color else f"bold {BADGE_TONE_STYLES[project.badge_tone]}"
    return Text(project.initials, style=style)


def _project_table(title: str, projects: Sequence[ProjectView], caption: str = "") -> Table:
    table = Table(title=title, caption=caption or None, show_header=True, header_style="bold cyan")

    table.add_column("", width=2)
    table.add_column("Name", style="bold green")
    table.add_column("Location", style="blue")
    table.add_column("Flags", style="yellow")
    table.add_column("ID", style="dim")

    for project in projects:
        flags = []
        if project.is_current:
            flags.append("current")
        if project.is_open_elsewhere:
            flags.append("open")
        if project.pinned:
            flags.append("pinned")
        if project.kind == "workspace":
            flags.append("workspace")

        table.add_row(
            format_badge(project),
            project.name,
            project.display_path,
            ", ".join(flags),
            project.id,
        )

    return table


def format_view_state(view: ViewState) -> List[Table]:
    """One table per non-empty section, in sidebar order.

    Collapsed sections are listed by title only.
    """
    sections = [
        ("Current", [view.current] if view.current else [], view.collapse.current),
        ("Open Elsewhere", view.open_elsewhere, view.collapse.open_elsewhere),
        ("Recent", view.recent, view.collapse.recent),
        ("Pinned", view.pinned, view.collapse.pinned),
        ("Projects", view.others, view.collapse.projects),
    ]

    tables = []
    for title, projects, collapsed in sections:
        if not projects:
            continue
        if collapsed:
            tables.append(_project_table(title, [], caption=f"{len(projects)} hidden (collapsed)"))
        else:
            tables.append(_project_table(title, projects))

    for group in view.groups:
        if group.collapsed:
            tables.append(_project_table(f"Group: {group.title}", [], caption="collapsed"))
        elif group.projects:
            tables.append(_project_table(f"Group: {group.title}", group.projects))
        else:
            tables.append(_project_table(f"Group: {group.title}", [], caption="no folders"))

    return tables


def format_group_list(groups: Sequence[ProjectGroup]) -> Table:
    """Format project groups as a Rich table."""
    table = Table(title="Project Groups", show_header=True, header_style="bold cyan")

    table.add_column("Name", style="bold green")
    table.add_column("Root", style="blue")
    table.add_column("State", style="yellow")
    table.add_column("ID", style="dim")

    for group in groups:
        table.add_row(
            group.name,
            format_display_path(group.root_uri),
            "collapsed" if group.collapsed else "expanded",
            group.id,
        )

    return table


def format_session_table(records: Sequence[OpenWindowSessionRecord], now: float) -> Table:
    """Format live presence records as a Rich table."""
    table = Table(title="Open Windows", show_header=True, header_style="bold cyan")

    table.add_column("Session", style="dim")
    table.add_column("Workspace", style="blue")
    table.add_column("Focused", justify="center")
    table.add_column("Badge")
    table.add_column("Branch", style="magenta")
    table.add_column("Updated", style="dim")

    for record in records:
        badge = Text("●", style=record.badge_color) if record.badge_color else Text("-", style="dim")
        table.add_row(
            record.session_id,
            format_display_path(record.workspace_uri) if record.workspace_uri else "-",
            "✓" if record.focused else "",
            badge,
            record.branch or "",
            format_age(record.age_ms(now)),
        )

    return table


def format_json(data: Any, pretty: bool = True) -> str:
    """Format data as JSON string."""
    if pretty:
        return json.dumps(data, indent=2, default=str)
    return json.dumps(data, default=str)


def print_success(message: str) -> None:
    console.print(Text.assemble(("✓", "bold green"), " ", message))


def print_info(message: str) -> None:
    console.print(Text.assemble(("ℹ", "bold blue"), " ", message))


def print_error(message: str, remediation: str = "") -> None:
    """Print an error, with remediation steps when known."""
    error_console.print(Text.assemble(("✗ Error:", "bold red"), " ", message))
    if remediation:
        error_console.print(Text.assemble(("  Remediation:", "blue"), " ", remediation))
