"""
ProjectSwitchService: opening projects and keeping recency up to date.

The actual "open this location" step belongs to the host (an editor, a
terminal launcher, the CLI printing a path) and is injected as ``opener``.
"""

import logging
from typing import Callable, List, Optional

from ..core.groups import parse_virtual_project_id
from ..core.store import ProjectStore
from ..core.uris import location_to_uri
from ..exceptions import InvalidLocationError, ProjectNotFoundError
from ..models.project import StoredProject

logger = logging.getLogger(__name__)

Opener = Callable[[str, bool], None]


def project_ids_to_mark_opened(
    target_project_id: str,
    current_project_id: Optional[str],
    open_in_new_window: bool,
) -> List[str]:
    """Projects whose last-opened time should be bumped by a switch.

    Switching within the same window leaves the current project, which
    then counts as recently used too; it is bumped first so the target
    ends up most recent.
    """
    ids = []
    if not open_in_new_window and current_project_id and current_project_id != target_project_id:
        ids.append(current_project_id)
    ids.append(target_project_id)
    return ids


class ProjectSwitchService:
    """Opens saved, virtual and ad-hoc locations."""

    def __init__(
        self,
        store: ProjectStore,
        opener: Opener,
        open_in_new_window: bool = False,
        current_uri: Optional[Callable[[], Optional[str]]] = None,
    ):
        """Initialize switch service.

        Args:
            store: Project store
            opener: Host callback ``opener(uri, new_window)``
            open_in_new_window: Default window behavior
            current_uri: Accessor for this window's current location
        """
        self.store = store
        self._opener = opener
        self.open_in_new_window = open_in_new_window
        self._current_uri = current_uri or (lambda: None)

    def open_project(self, project_id: str, new_window: Optional[bool] = None) -> StoredProject:
        """Open a saved project and record the switch.

        Raises:
            ProjectNotFoundError: If no project has this id
        """
        project = self.store.get_project(project_id)
        if not project:
            raise ProjectNotFoundError(project_id)

        use_new_window = self.open_in_new_window if new_window is None else new_window
        self._mark_switch(project.id, use_new_window)

        logger.info(f"Opening project {project.name!r} ({project.uri}, new_window={use_new_window})")
        self._opener(project.uri, use_new_window)
        return self.store.get_project(project.id) or project

    def open_location(self, uri: str, new_window: Optional[bool] = None) -> Optional[StoredProject]:
        """Open any location; saved projects at that location are recorded.

        Returns:
            The saved project at ``uri``, or None for unsaved locations

        Raises:
            InvalidLocationError: If ``uri`` is blank
        """
        if not uri or not uri.strip():
            raise InvalidLocationError(uri or "")

        saved = self.store.get_project_by_uri(uri)
        if saved:
            return self.open_project(saved.id, new_window)

        use_new_window = self.open_in_new_window if new_window is None else new_window
        current = self._current_project()
        if current and not use_new_window:
            self.store.mark_opened(current.id)

        logger.info(f"Opening unsaved location {uri.strip()} (new_window={use_new_window})")
        self._opener(uri.strip(), use_new_window)
        return None

    def open_ref(self, ref: str, new_window: Optional[bool] = None) -> Optional[StoredProject]:
        """Open by project id, virtual group project id, location or local path.

        Raises:
            ProjectNotFoundError: If ``ref`` matches nothing openable
        """
        if self.store.get_project(ref):
            return self.open_project(ref, new_window)

        virtual = parse_virtual_project_id(ref)
        if virtual:
            _, uri = virtual
            return self.open_location(uri, new_window)

        if "://" in ref or ref.startswith(("/", "~", ".")):
            return self.open_location(location_to_uri(ref), new_window)

        raise ProjectNotFoundError(ref)

    def _current_project(self) -> Optional[StoredProject]:
        current_uri = self._current_uri()
        return self.store.get_project_by_uri(current_uri) if current_uri else None

    def _mark_switch(self, target_id: str, new_window: bool) -> None:
        current = self._current_project()
        for project_id in project_ids_to_mark_opened(
            target_id, current.id if current else None, new_window
        ):
            self.store.mark_opened(project_id)
