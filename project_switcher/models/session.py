"""
Presence record model: one JSON file per live window.

Wire format (camelCase, optional fields omitted when absent):

    {"sessionId": "...", "workspaceUri": "file:///...", "focused": true,
     "updatedAt": 1732450000000, "badgeColor": "#aabbcc", "branch": "main"}
"""

from typing import Any, Optional

from pydantic import StrictStr, field_validator

from ..core.badge_color import normalize_badge_color
from .project import PersistedModel, Timestamp


def normalize_text(value: Any) -> Optional[str]:
    """Trim a string value; None for non-strings and blank strings."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


class OpenWindowSessionRecord(PersistedModel):
    """A window's published presence: alive, in this state, as of ``updated_at``."""

    session_id: StrictStr
    workspace_uri: Optional[str] = None
    focused: bool = False
    updated_at: Timestamp
    badge_color: Optional[str] = None
    branch: Optional[str] = None

    @field_validator("session_id")
    @classmethod
    def validate_session_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("sessionId must not be blank")
        return v

    @field_validator("workspace_uri", "branch", mode="before")
    @classmethod
    def normalize_optional_text(cls, v: Any) -> Optional[str]:
        return normalize_text(v)

    @field_validator("badge_color", mode="before")
    @classmethod
    def normalize_badge(cls, v: Any) -> Optional[str]:
        return normalize_badge_color(v)

    @field_validator("focused", mode="before")
    @classmethod
    def coerce_focused(cls, v: Any) -> bool:
        return bool(v)

    def age_ms(self, now: float) -> float:
        """Milliseconds elapsed since this record was last published."""
        return now - self.updated_at

    def is_stale(self, now: float, stale_after_ms: float) -> bool:
        return self.age_ms(now) > stale_after_ms
