"""
ProjectStore: the durable list of saved projects and project groups.

Single writer of persisted state. Every mutation persists the whole state
through the storage adapter and then notifies change listeners
synchronously. Lookups that miss return None (or False for removals); the
store never raises for a missing id.

Persisted format:

    {"version": 2, "projects": [...], "groups": [...]}   current
    {"version": 1, "projects": [...]}                    legacy, read-only

Any other version, or a payload that is not a mapping, loads as empty state.
"""

import logging
import math
import time
import uuid
from typing import Any, Callable, List, Optional

from pydantic import ValidationError

from ..models.project import (
    LEGACY_STORE_VERSION,
    PROJECT_KINDS,
    STORE_VERSION,
    ProjectGroup,
    ProjectKind,
    StoredProject,
    StoreState,
    sanitize_location,
    sanitize_name,
)
from .badge_color import normalize_badge_color
from .storage import ProjectStorageAdapter

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


def now_ms() -> int:
    """Default clock: epoch milliseconds."""
    return int(time.time() * 1000)


def create_id() -> str:
    """Default id generator."""
    return str(uuid.uuid4())


def name_sort_key(name: str) -> tuple:
    """Case-insensitive name ordering with a deterministic tiebreak."""
    return (name.casefold(), name)


def _sanitize_records(items: Any, model: type, key: str) -> list:
    """Validate records one by one, keeping the first record per ``key`` location."""
    if not isinstance(items, list):
        return []

    records = []
    seen = set()
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            record = model.model_validate(item)
        except ValidationError as e:
            logger.debug(f"Dropping invalid {model.__name__} record: {e.error_count()} error(s)")
            continue

        location = getattr(record, key)
        if location in seen:
            logger.warning(f"Dropping duplicate {model.__name__} record for {location}")
            continue
        seen.add(location)
        records.append(record)
    return records


def sanitize_state(payload: Any) -> StoreState:
    """Turn an untrusted persisted payload into a valid current state.

    Legacy version 1 keeps its valid projects and gains an empty group list.
    Unknown versions and malformed payloads yield empty state; there is no
    partial recovery.
    """
    if not isinstance(payload, dict):
        return StoreState()

    version = payload.get("version")
    if isinstance(version, bool):
        return StoreState()

    if version == LEGACY_STORE_VERSION:
        logger.info("Migrating legacy project state (version 1) to version 2")
        return StoreState(projects=_sanitize_records(payload.get("projects"), StoredProject, "uri"))

    if version != STORE_VERSION:
        if payload:
            logger.warning(f"Ignoring project state with unsupported version: {version!r}")
        return StoreState()

    return StoreState(
        projects=_sanitize_records(payload.get("projects"), StoredProject, "uri"),
        groups=_sanitize_records(payload.get("groups"), ProjectGroup, "root_uri"),
    )


class ProjectStore:
    """Saved projects and groups with upsert-by-location semantics.

    Collaborators are injected so tests can control time and identity:

    - ``storage``: adapter with ``read()`` / ``write(state)``
    - ``now``: clock returning epoch milliseconds
    - ``id_factory``: generator for new, never-reused record ids
    """

    def __init__(
        self,
        storage: ProjectStorageAdapter,
        now: Optional[Callable[[], float]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._storage = storage
        self._now = now or now_ms
        self._create_id = id_factory or create_id
        self._listeners: List[Listener] = []
        self._state = sanitize_state(storage.read())

        logger.debug(
            f"ProjectStore loaded {len(self._state.projects)} projects, "
            f"{len(self._state.groups)} groups"
        )

    # Queries

    def get_all_projects(self) -> List[StoredProject]:
        """All saved projects, copied, in display order.

        Pinned first, then most recently opened (never opened last), then
        most recently updated, then by name.
        """
        def sort_key(project: StoredProject):
            opened = project.last_opened_at if project.last_opened_at is not None else -math.inf
            return (not project.pinned, -opened, -project.updated_at, name_sort_key(project.name))

        return [project.model_copy() for project in sorted(self._state.projects, key=sort_key)]

    def get_all_groups(self) -> List[ProjectGroup]:
        """All groups, copied, most recently updated first, then by name."""
        ordered = sorted(
            self._state.groups,
            key=lambda group: (-group.updated_at, name_sort_key(group.name)),
        )
        return [group.model_copy() for group in ordered]

    def get_project(self, project_id: str) -> Optional[StoredProject]:
        project = self._find_project(project_id)
        return project.model_copy() if project else None

    def get_project_by_uri(self, uri: str) -> Optional[StoredProject]:
        project = self._find_project_by_uri(uri)
        return project.model_copy() if project else None

    def get_group(self, group_id: str) -> Optional[ProjectGroup]:
        group = self._find_group(group_id)
        return group.model_copy() if group else None

    # Subscriptions

    def on_did_change(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Mutations

    def save_project(self, name: str, kind: ProjectKind, uri: str) -> Optional[StoredProject]:
        """Create or update the project saved at ``uri``.

        An existing project keeps its id, pin state, creation and last-opened
        timestamps; only name, kind and ``updated_at`` change.

        Returns:
            The saved project, or None if ``uri`` is blank or ``kind`` is
            not one of folder or workspace
        """
        if kind not in PROJECT_KINDS:
            logger.warning(f"Refusing to save project with unknown kind: {kind!r}")
            return None

        location = sanitize_location(uri)
        if location is None:
            logger.warning("Refusing to save project with empty location")
            return None

        timestamp = self._now()
        existing = self._find_project_by_uri(location)
        if existing:
            existing.name = sanitize_name(name)
            existing.kind = kind
            existing.updated_at = timestamp
            self._persist()
            return existing.model_copy()

        created = StoredProject(
            id=self._create_id(),
            name=name,
            kind=kind,
            uri=location,
            pinned=False,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._state.projects.append(created)
        logger.info(f"Saved project {created.name!r} ({created.uri})")
        self._persist()
        return created.model_copy()

    def save_group(self, name: str, root_uri: str) -> Optional[ProjectGroup]:
        """Create or update the group rooted at ``root_uri``.

        Returns:
            The saved group, or None if ``root_uri`` is blank
        """
        location = sanitize_location(root_uri)
        if location is None:
            logger.warning("Refusing to save project group with empty root location")
            return None

        timestamp = self._now()
        existing = next((g for g in self._state.groups if g.root_uri == location), None)
        if existing:
            existing.name = sanitize_name(name)
            existing.updated_at = timestamp
            self._persist()
            return existing.model_copy()

        created = ProjectGroup(
            id=self._create_id(),
            name=name,
            root_uri=location,
            collapsed=False,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._state.groups.append(created)
        logger.info(f"Saved project group {created.name!r} ({created.root_uri})")
        self._persist()
        return created.model_copy()

    def rename_project(self, project_id: str, name: str) -> Optional[StoredProject]:
        project = self._find_project(project_id)
        if not project:
            return None

        project.name = sanitize_name(name)
        project.updated_at = self._now()
        self._persist()
        return project.model_copy()

    def remove_project(self, project_id: str) -> bool:
        before = len(self._state.projects)
        self._state.projects = [p for p in self._state.projects if p.id != project_id]
        if len(self._state.projects) == before:
            return False

        self._persist()
        return True

    def remove_group(self, group_id: str) -> bool:
        before = len(self._state.groups)
        self._state.groups = [g for g in self._state.groups if g.id != group_id]
        if len(self._state.groups) == before:
            return False

        self._persist()
        return True

    def toggle_pin(self, project_id: str) -> Optional[StoredProject]:
        project = self._find_project(project_id)
        if not project:
            return None

        project.pinned = not project.pinned
        project.updated_at = self._now()
        self._persist()
        return project.model_copy()

    def toggle_group_collapsed(self, group_id: str) -> Optional[ProjectGroup]:
        group = self._find_group(group_id)
        if not group:
            return None

        group.collapsed = not group.collapsed
        group.updated_at = self._now()
        self._persist()
        return group.model_copy()

    def mark_opened(self, project_id: str) -> Optional[StoredProject]:
        """Record that a project was opened now (sets last-opened and updated)."""
        project = self._find_project(project_id)
        if not project:
            return None

        timestamp = self._now()
        project.last_opened_at = timestamp
        project.updated_at = timestamp
        self._persist()
        return project.model_copy()

    def set_badge_color(self, project_id: str, badge_color: Optional[str]) -> Optional[StoredProject]:
        """Set (or clear, with an unparseable value) a project's badge color.

        Badge color is an annotation, so ``updated_at`` is left alone. Writing
        the value a project already has is a no-op: nothing is persisted and
        listeners are not notified.
        """
        project = self._find_project(project_id)
        if not project:
            return None

        normalized = normalize_badge_color(badge_color)
        if project.badge_color == normalized:
            return project.model_copy()

        project.badge_color = normalized
        self._persist()
        return project.model_copy()

    def set_badge_color_by_uri(self, uri: str, badge_color: Optional[str]) -> Optional[StoredProject]:
        project = self._find_project_by_uri(uri)
        if not project:
            return None
        return self.set_badge_color(project.id, badge_color)

    # Internals

    def _find_project(self, project_id: str) -> Optional[StoredProject]:
        return next((p for p in self._state.projects if p.id == project_id), None)

    def _find_project_by_uri(self, uri: str) -> Optional[StoredProject]:
        location = sanitize_location(uri)
        if location is None:
            return None
        return next((p for p in self._state.projects if p.uri == location), None)

    def _find_group(self, group_id: str) -> Optional[ProjectGroup]:
        return next((g for g in self._state.groups if g.id == group_id), None)

    def _persist(self) -> None:
        self._storage.write(self._state.to_persisted())

        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Project store listener failed: {e}", exc_info=True)
