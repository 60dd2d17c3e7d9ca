"""
OpenElsewhereResolver: which known projects are open in other windows.

Pure function, no I/O. Saved projects are considered before virtual group
projects, so a location that is both saved and a group child surfaces once,
as the saved project. Each location contributes at most one entry, and the
current window's own location never counts as "elsewhere".
"""

from dataclasses import dataclass, field
from typing import AbstractSet, Generic, List, Optional, Sequence, TypeVar, Union

from ..models.project import ProjectGroupSection, ResolvedGroupProject, StoredProject

SavedT = TypeVar("SavedT", bound=StoredProject)


@dataclass
class OpenElsewhereEntry:
    """A project open in another window."""

    project: Union[StoredProject, ResolvedGroupProject]
    is_virtual: bool

    @property
    def id(self) -> str:
        return self.project.id

    @property
    def uri(self) -> str:
        return self.project.uri


@dataclass
class OpenElsewhereResolution(Generic[SavedT]):
    """Open-elsewhere entries plus everything left for the other sections."""

    open_elsewhere: List[OpenElsewhereEntry] = field(default_factory=list)
    rest_saved: List[SavedT] = field(default_factory=list)
    rest_groups: List[ProjectGroupSection] = field(default_factory=list)


def resolve_open_elsewhere(
    saved_projects: Sequence[SavedT],
    group_sections: Sequence[ProjectGroupSection],
    open_elsewhere_uris: AbstractSet[str],
    current_uri: Optional[str],
) -> OpenElsewhereResolution[SavedT]:
    """Split projects into "open elsewhere" and the remainder.

    Args:
        saved_projects: Saved projects in display order
        group_sections: Resolved group sections in display order
        open_elsewhere_uris: Locations reported open by other windows
        current_uri: This window's own location, if any

    Returns:
        Resolution whose ``rest_saved``/``rest_groups`` exclude both the
        promoted projects and the current location
    """
    open_elsewhere: List[OpenElsewhereEntry] = []
    promoted_uris = set()

    for project in saved_projects:
        if project.uri == current_uri or project.uri not in open_elsewhere_uris:
            continue
        if project.uri in promoted_uris:
            continue
        open_elsewhere.append(OpenElsewhereEntry(project=project, is_virtual=False))
        promoted_uris.add(project.uri)

    saved_uris = {project.uri for project in saved_projects}

    for section in group_sections:
        for child in section.projects:
            if child.uri == current_uri or child.uri not in open_elsewhere_uris:
                continue
            if child.uri in saved_uris or child.uri in promoted_uris:
                continue
            open_elsewhere.append(OpenElsewhereEntry(project=child, is_virtual=True))
            promoted_uris.add(child.uri)

    promoted_ids = {entry.id for entry in open_elsewhere}
    rest_saved = [
        project for project in saved_projects
        if project.uri != current_uri and project.id not in promoted_ids
    ]
    rest_groups = [
        section.model_copy(
            update={
                "projects": [
                    child for child in section.projects
                    if child.uri != current_uri and child.uri not in promoted_uris
                ]
            }
        )
        for section in group_sections
    ]

    return OpenElsewhereResolution(
        open_elsewhere=open_elsewhere,
        rest_saved=rest_saved,
        rest_groups=rest_groups,
    )
