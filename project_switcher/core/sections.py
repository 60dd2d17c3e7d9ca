"""
SectionSelector and view-state builder.

Turns store contents, resolved group sections and presence information into
the sections a sidebar renders:

    Current -> Open elsewhere -> Recent -> Pinned -> Projects -> Groups

A project appears in at most one section. Section visibility decides
whether a section is populated at all; collapse state is carried through
for the renderer. A search query filters every section and expands groups.
"""

import math
import re
from typing import AbstractSet, Any, Iterable, List, Optional, Sequence, TypeVar, Union

from ..models.project import ProjectGroupSection, ResolvedGroupProject, StoredProject
from ..models.view import (
    GroupSectionView,
    ProjectView,
    SectionCollapseState,
    SectionVisibility,
    ViewState,
)
from .open_elsewhere import resolve_open_elsewhere
from .uris import format_display_path, format_full_path

T = TypeVar("T")

DEFAULT_RECENT_LIMIT = 5
BADGE_TONE_COUNT = 10
FALLBACK_INITIALS = "PR"

_TOKEN_SEPARATORS = re.compile(r"[\s_-]+")


def normalize_section_visibility(value: Any) -> SectionVisibility:
    return SectionVisibility.from_untrusted(value)


def normalize_section_collapse_state(value: Any) -> SectionCollapseState:
    return SectionCollapseState.from_untrusted(value)


def select_recent(projects: Sequence[T], limit: Any) -> List[T]:
    """Most recently opened projects, excluding pinned and current ones.

    Candidates need a last-opened timestamp. Ordered newest first; ties keep
    their input order. At most ``limit`` entries.
    """
    if isinstance(limit, bool) or not isinstance(limit, (int, float)):
        return []
    if not math.isfinite(limit) or limit <= 0:
        return []

    candidates = [
        project for project in projects
        if not getattr(project, "pinned", False)
        and not getattr(project, "is_current", False)
        and getattr(project, "last_opened_at", None) is not None
    ]
    candidates.sort(key=lambda project: -project.last_opened_at)
    return candidates[: int(limit)]


def get_initials(name: str) -> str:
    """Two-letter badge text for a project name."""
    tokens = [token for token in _TOKEN_SEPARATORS.split(name.strip()) if token]
    if not tokens:
        return FALLBACK_INITIALS
    if len(tokens) == 1:
        return tokens[0][:2].upper()
    return f"{tokens[0][0]}{tokens[1][0]}".upper()


def get_badge_tone(seed: str) -> int:
    """Stable palette index (0-9) derived from a 32-bit string hash."""
    value = 0
    for char in seed:
        code = ord(char)
        if code > 0xFFFF:
            # First UTF-16 code unit, matching hashes computed by other windows
            code = 0xD800 + ((code - 0x10000) >> 10)
        value = ((value << 5) - value + code) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value) % BADGE_TONE_COUNT


def matches_search(project: ProjectView, query: str) -> bool:
    """Case-insensitive substring match over name, full path and kind."""
    needle = query.strip().lower()
    if not needle:
        return True
    haystack = f"{project.name} {project.full_path} {project.kind}".lower()
    return needle in haystack


def to_project_view(
    project: Union[StoredProject, ResolvedGroupProject],
    current_uri: Optional[str] = None,
    current_badge_color: Optional[str] = None,
    open_elsewhere: bool = False,
) -> ProjectView:
    """Annotate a saved or virtual project for display."""
    is_virtual = isinstance(project, ResolvedGroupProject)
    is_current = current_uri is not None and project.uri == current_uri

    stored_color = None if is_virtual else project.badge_color
    badge_color = (current_badge_color or stored_color) if is_current else stored_color

    return ProjectView(
        id=project.id,
        name=project.name,
        kind=project.kind,
        uri=project.uri,
        full_path=format_full_path(project.uri),
        display_path=format_display_path(project.uri),
        pinned=False if is_virtual else project.pinned,
        is_current=is_current,
        is_virtual=is_virtual,
        is_open_elsewhere=open_elsewhere,
        last_opened_at=None if is_virtual else project.last_opened_at,
        initials=get_initials(project.name),
        badge_tone=get_badge_tone(project.id),
        badge_color=badge_color,
    )


def _find_current(
    saved_projects: Iterable[StoredProject],
    group_sections: Iterable[ProjectGroupSection],
    current_uri: Optional[str],
) -> Optional[Union[StoredProject, ResolvedGroupProject]]:
    if current_uri is None:
        return None
    for project in saved_projects:
        if project.uri == current_uri:
            return project
    for section in group_sections:
        for child in section.projects:
            if child.uri == current_uri:
                return child
    return None


def build_view_state(
    saved_projects: Sequence[StoredProject],
    group_sections: Sequence[ProjectGroupSection],
    current_uri: Optional[str] = None,
    open_elsewhere_uris: AbstractSet[str] = frozenset(),
    current_badge_color: Optional[str] = None,
    visibility: Optional[SectionVisibility] = None,
    collapse: Optional[SectionCollapseState] = None,
    recent_limit: int = DEFAULT_RECENT_LIMIT,
    query: str = "",
) -> ViewState:
    """Assemble every section for one render.

    Args:
        saved_projects: Store projects in display order
        group_sections: Resolved group sections in display order
        current_uri: This window's location
        open_elsewhere_uris: Locations open in other windows
        current_badge_color: This window's accent color
        visibility: Which sections to populate (default: all)
        collapse: Section collapse state passed through to the renderer
        recent_limit: Maximum entries in the recent section
        query: Search text; blank means no filtering
    """
    visibility = visibility or SectionVisibility()
    collapse = collapse or SectionCollapseState()

    def view(project, open_elsewhere: bool = False) -> ProjectView:
        return to_project_view(project, current_uri, current_badge_color, open_elsewhere)

    current_project = _find_current(saved_projects, group_sections, current_uri)
    current = view(current_project) if current_project else None

    resolution = resolve_open_elsewhere(
        saved_projects, group_sections, open_elsewhere_uris, current_uri
    )
    open_elsewhere = [view(entry.project, open_elsewhere=True) for entry in resolution.open_elsewhere]

    rest = [view(project) for project in resolution.rest_saved]
    recent = select_recent(rest, recent_limit)
    recent_ids = {project.id for project in recent}
    pinned = [project for project in rest if project.pinned]
    others = [project for project in rest if not project.pinned and project.id not in recent_ids]

    groups = [
        GroupSectionView(
            id=section.id,
            title=section.title,
            collapsed=section.collapsed,
            projects=[view(child) for child in section.projects],
        )
        for section in resolution.rest_groups
    ]

    state = ViewState(
        current=current if visibility.current else None,
        open_elsewhere=open_elsewhere,
        recent=recent if visibility.recent else [],
        pinned=pinned if visibility.pinned else [],
        others=others if visibility.projects else [],
        groups=groups if visibility.groups else [],
        collapse=collapse,
        query=query.strip(),
    )
    return filter_view_state(state, query)


def filter_view_state(state: ViewState, query: str) -> ViewState:
    """Apply a search query to every section.

    While a query is active, groups are shown expanded and groups with no
    matching projects are dropped.
    """
    if not query.strip():
        return state

    def keep(projects: List[ProjectView]) -> List[ProjectView]:
        return [project for project in projects if matches_search(project, query)]

    groups = []
    for group in state.groups:
        matching = keep(group.projects)
        if matching:
            groups.append(group.model_copy(update={"collapsed": False, "projects": matching}))

    current = state.current if state.current and matches_search(state.current, query) else None

    return state.model_copy(
        update={
            "current": current,
            "open_elsewhere": keep(state.open_elsewhere),
            "recent": keep(state.recent),
            "pinned": keep(state.pinned),
            "others": keep(state.others),
            "groups": groups,
        }
    )
