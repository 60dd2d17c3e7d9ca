"""Services coordinating the store, group resolution and presence."""

from .presence_sync import PresenceSync
from .switch_service import ProjectSwitchService, project_ids_to_mark_opened

__all__ = [
    "PresenceSync",
    "ProjectSwitchService",
    "project_ids_to_mark_opened",
]
