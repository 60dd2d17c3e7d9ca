"""
StoredProject, ProjectGroup and persisted store state models.

Persisted field names are camelCase (``createdAt``, ``rootUri``...) so the
state blob stays compatible with the versioned on-disk format. Python code
uses the snake_case attribute names.

Validation doubles as load-time sanitization: a record that fails
validation is dropped by the store, a record that passes has trimmed names,
coerced booleans and canonical badge colors.
"""

import math
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    field_validator,
)
from pydantic.alias_generators import to_camel

from ..core.badge_color import normalize_badge_color

# Epoch milliseconds; ints stay ints, finite floats are accepted as-is
Timestamp = Union[StrictInt, Annotated[float, Field(strict=True, allow_inf_nan=False)]]

ProjectKind = Literal["folder", "workspace"]
PROJECT_KINDS = ("folder", "workspace")

STORE_VERSION = 2
LEGACY_STORE_VERSION = 1
FALLBACK_PROJECT_NAME = "Unnamed Project"


def sanitize_name(name: str) -> str:
    """Trim a display name, falling back to a fixed literal when empty."""
    trimmed = name.strip()
    return trimmed if trimmed else FALLBACK_PROJECT_NAME


def sanitize_location(location: str) -> Optional[str]:
    """Trim a location string; None when nothing is left."""
    if not isinstance(location, str):
        return None
    trimmed = location.strip()
    return trimmed or None


def is_timestamp(value: Any) -> bool:
    """True for finite int/float values (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


class PersistedModel(BaseModel):
    """Base for models serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_persisted(self) -> dict:
        """Serialize with camelCase keys, omitting absent optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StoredProject(PersistedModel):
    """A saved project: a folder or workspace location the user keeps around."""

    id: StrictStr
    name: StrictStr
    kind: ProjectKind
    uri: StrictStr
    pinned: bool = False
    created_at: Timestamp
    updated_at: Timestamp
    last_opened_at: Optional[Timestamp] = None
    badge_color: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return sanitize_name(v)

    @field_validator("uri")
    @classmethod
    def validate_uri(cls, v: str) -> str:
        uri = sanitize_location(v)
        if uri is None:
            raise ValueError("project uri must not be empty")
        return uri

    @field_validator("pinned", mode="before")
    @classmethod
    def coerce_pinned(cls, v: Any) -> bool:
        return bool(v)

    @field_validator("last_opened_at", mode="before")
    @classmethod
    def drop_invalid_last_opened(cls, v: Any) -> Any:
        return v if is_timestamp(v) else None

    @field_validator("badge_color", mode="before")
    @classmethod
    def normalize_badge(cls, v: Any) -> Optional[str]:
        return normalize_badge_color(v)


class ProjectGroup(PersistedModel):
    """A directory whose direct subdirectories are listed as virtual projects."""

    id: StrictStr
    name: StrictStr
    root_uri: StrictStr
    collapsed: bool = False
    created_at: Timestamp
    updated_at: Timestamp

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return sanitize_name(v)

    @field_validator("root_uri")
    @classmethod
    def validate_root_uri(cls, v: str) -> str:
        root_uri = sanitize_location(v)
        if root_uri is None:
            raise ValueError("group root uri must not be empty")
        return root_uri

    @field_validator("collapsed", mode="before")
    @classmethod
    def coerce_collapsed(cls, v: Any) -> bool:
        return bool(v)


class StoreState(PersistedModel):
    """Current (version 2) persisted store state."""

    version: Literal[2] = STORE_VERSION
    projects: List[StoredProject] = Field(default_factory=list)
    groups: List[ProjectGroup] = Field(default_factory=list)


class ResolvedGroupProject(BaseModel):
    """Virtual project derived from a group directory child. Never persisted."""

    id: str
    name: str
    kind: ProjectKind = "folder"
    uri: str
    source_group_id: str
    source_group_name: str


class ProjectGroupSection(BaseModel):
    """A group together with its resolved virtual projects."""

    id: str
    title: str
    root_uri: str
    collapsed: bool = False
    projects: List[ResolvedGroupProject] = Field(default_factory=list)
