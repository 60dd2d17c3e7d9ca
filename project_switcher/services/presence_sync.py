"""
PresenceSync: connects the session registry to the project store.

- Peer windows advertise their accent color; saved projects at those
  locations pick it up as their badge color.
- The set of locations open elsewhere is cached so views can be rebuilt
  without touching the sessions directory on every render.
- This window's own accent color is published to peers.
"""

import logging
from typing import Any, Callable, FrozenSet, List, Optional

from ..core.badge_color import resolve_workspace_badge_color
from ..core.session_registry import SessionRegistry
from ..core.store import ProjectStore

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class PresenceSync:
    """Keeps store badge colors and the open-elsewhere set in step with peers."""

    def __init__(self, store: ProjectStore, registry: SessionRegistry):
        self.store = store
        self.registry = registry
        self._open_elsewhere: FrozenSet[str] = frozenset()
        self._listeners: List[Listener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def open_elsewhere_uris(self) -> FrozenSet[str]:
        return self._open_elsewhere

    def on_did_change(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def attach(self) -> None:
        """Follow registry changes and sync once immediately."""
        if self._unsubscribe is None:
            self._unsubscribe = self.registry.on_did_change(self.sync)
        self.sync()

    def detach(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def sync(self) -> None:
        """Re-read peers, copy their badge colors, refresh the open set."""
        snapshots = self.registry.get_open_elsewhere_snapshots()
        for snapshot in snapshots:
            if not snapshot.workspace_uri or not snapshot.badge_color:
                continue
            self.store.set_badge_color_by_uri(snapshot.workspace_uri, snapshot.badge_color)

        previous = self._open_elsewhere
        self._open_elsewhere = frozenset(
            snapshot.workspace_uri for snapshot in snapshots if snapshot.workspace_uri
        )

        if previous != self._open_elsewhere:
            logger.debug(f"Open elsewhere: {sorted(self._open_elsewhere)}")
        self._emit()

    def publish_accent_color(self, accent_color: Any, color_customizations: Any = None) -> Optional[str]:
        """Publish this window's accent color to peers.

        Returns:
            The normalized color that was published (None clears it)
        """
        badge_color = resolve_workspace_badge_color(accent_color, color_customizations)
        self.registry.set_badge_color(badge_color)
        return badge_color

    def sync_current_badge_color(self, current_uri: Optional[str], badge_color: Optional[str]) -> bool:
        """Store this window's accent on the saved project it has open.

        Returns:
            True if the stored badge color changed
        """
        if not current_uri:
            return False
        project = self.store.get_project_by_uri(current_uri)
        if not project or project.badge_color == badge_color:
            return False
        updated = self.store.set_badge_color(project.id, badge_color)
        return bool(updated) and updated.badge_color != project.badge_color

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Presence listener failed: {e}", exc_info=True)
