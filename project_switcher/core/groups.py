"""
GroupChildResolver: virtual projects from a group directory's children.

For every expanded group the direct subdirectories of its root become
virtual projects. Collapsed groups are never scanned. Listing failures
(missing root, permission errors, non-local roots) yield zero children.
"""

import base64
import logging
import os
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..models.project import (
    ProjectGroup,
    ProjectGroupSection,
    ResolvedGroupProject,
    StoredProject,
)
from .store import name_sort_key
from .uris import path_to_uri, uri_to_path

logger = logging.getLogger(__name__)

VIRTUAL_ID_PREFIX = "group:"


@dataclass(frozen=True)
class GroupChildFolder:
    """A direct child directory of a group root."""

    name: str
    uri: str


ChildLister = Callable[[ProjectGroup], Iterable[GroupChildFolder]]


def list_directory_children(group: ProjectGroup) -> List[GroupChildFolder]:
    """List the direct subdirectories of a group's local root.

    Raises:
        OSError: If the root cannot be listed
    """
    root = uri_to_path(group.root_uri)
    if root is None:
        logger.debug(f"Group {group.id} root is not a local location: {group.root_uri}")
        return []

    children = []
    with os.scandir(root) as entries:
        for entry in entries:
            if _is_dir(entry):
                children.append(GroupChildFolder(name=entry.name, uri=path_to_uri(entry.path)))
    return children


def _is_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir()
    except OSError as e:
        logger.debug(f"Skipping unreadable group child {entry.path}: {e}")
        return False


def create_virtual_project_id(group_id: str, uri: str) -> str:
    """Deterministic id for a group child: ``group:<groupId>:<base64url(uri)>``."""
    encoded = base64.urlsafe_b64encode(uri.encode("utf-8")).decode("ascii").rstrip("=")
    return f"{VIRTUAL_ID_PREFIX}{group_id}:{encoded}"


def parse_virtual_project_id(project_id: str) -> Optional[Tuple[str, str]]:
    """Recover ``(group_id, uri)`` from a virtual project id.

    Returns:
        The source group id and location, or None for non-virtual ids
    """
    if not project_id.startswith(VIRTUAL_ID_PREFIX):
        return None

    group_id, sep, encoded = project_id[len(VIRTUAL_ID_PREFIX):].rpartition(":")
    if not sep or not group_id:
        return None

    try:
        padded = encoded + "=" * (-len(encoded) % 4)
        uri = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (ValueError, UnicodeError):
        return None
    if not uri:
        return None
    return group_id, uri


def is_virtual_project_id(project_id: str) -> bool:
    return parse_virtual_project_id(project_id) is not None


@dataclass
class _CacheEntry:
    root_uri: str
    children: List[GroupChildFolder]


class GroupChildResolver:
    """Resolves group sections, caching children per group root.

    The cache is keyed by group id and remembers the root it was filled for;
    a changed root or a removed group drops the entry.
    """

    def __init__(self, list_children: Optional[ChildLister] = None):
        """Initialize resolver.

        Args:
            list_children: Directory lister (default: scan the local filesystem)
        """
        self._list_children = list_children or list_directory_children
        self._cache: Dict[str, _CacheEntry] = {}

    def resolve(
        self,
        groups: Sequence[ProjectGroup],
        manual_projects: Sequence[StoredProject],
    ) -> List[ProjectGroupSection]:
        """Resolve one section per group, in the given group order.

        Collapsed groups produce a section with no projects and are not
        scanned. Children whose location is already a saved project, or that
        repeat a location within the same scan, are skipped.
        """
        self._prune(groups)
        manual_uris = {project.uri for project in manual_projects}

        sections = []
        for group in groups:
            projects: List[ResolvedGroupProject] = []
            if not group.collapsed:
                projects = self._resolve_children(group, manual_uris)

            sections.append(
                ProjectGroupSection(
                    id=group.id,
                    title=group.name,
                    root_uri=group.root_uri,
                    collapsed=group.collapsed,
                    projects=projects,
                )
            )
        return sections

    def _resolve_children(self, group: ProjectGroup, manual_uris: set) -> List[ResolvedGroupProject]:
        seen = set()
        accepted: List[GroupChildFolder] = []

        for child in self._children_of(group):
            name = child.name.strip()
            uri = child.uri.strip()
            if not name or not uri:
                continue
            if uri in manual_uris or uri in seen:
                continue
            seen.add(uri)
            accepted.append(GroupChildFolder(name=name, uri=uri))

        accepted.sort(key=lambda child: name_sort_key(child.name))

        return [
            ResolvedGroupProject(
                id=create_virtual_project_id(group.id, child.uri),
                name=child.name,
                uri=child.uri,
                source_group_id=group.id,
                source_group_name=group.name,
            )
            for child in accepted
        ]

    def _children_of(self, group: ProjectGroup) -> List[GroupChildFolder]:
        cached = self._cache.get(group.id)
        if cached and cached.root_uri == group.root_uri:
            return cached.children

        try:
            children = list(self._list_children(group) or [])
        except Exception as e:
            logger.debug(f"Listing group {group.id} ({group.root_uri}) failed: {e}")
            children = []

        self._cache[group.id] = _CacheEntry(root_uri=group.root_uri, children=children)
        return children

    def _prune(self, groups: Sequence[ProjectGroup]) -> None:
        roots = {group.id: group.root_uri for group in groups}
        for group_id in list(self._cache):
            if roots.get(group_id) != self._cache[group_id].root_uri:
                del self._cache[group_id]
