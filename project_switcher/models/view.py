"""Section view-models.

Recomputed for every render; never a source of truth.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .project import PersistedModel, ProjectKind


class SectionFlags(PersistedModel):
    """Per-section boolean flags merged leniently from untrusted input."""

    @classmethod
    def from_untrusted(cls, value: Any) -> "SectionFlags":
        """Build flags from persisted input.

        Unknown keys are ignored, missing keys and non-boolean values
        fall back to the defaults.
        """
        if not isinstance(value, dict):
            return cls()

        merged: Dict[str, bool] = {}
        for name, field in cls.model_fields.items():
            raw = value.get(field.alias or name, value.get(name))
            if isinstance(raw, bool):
                merged[name] = raw
        return cls(**merged)

    def toggled(self, section: str) -> "SectionFlags":
        """Return a copy with one section flag flipped."""
        if section not in type(self).model_fields:
            raise KeyError(f"Unknown section: {section}")
        return self.model_copy(update={section: not getattr(self, section)})


class SectionVisibility(SectionFlags):
    """Whether each section is shown at all (all visible by default)."""

    current: bool = True
    recent: bool = True
    pinned: bool = True
    projects: bool = True
    groups: bool = True


class SectionCollapseState(SectionFlags):
    """Whether each section is collapsed (all expanded by default)."""

    current: bool = False
    recent: bool = False
    pinned: bool = False
    projects: bool = False
    open_elsewhere: bool = False


class ProjectView(BaseModel):
    """A project annotated for display."""

    id: str
    name: str
    kind: ProjectKind
    uri: str
    full_path: str
    display_path: str
    pinned: bool = False
    is_current: bool = False
    is_virtual: bool = False
    is_open_elsewhere: bool = False
    last_opened_at: Optional[float] = None
    initials: str
    badge_tone: int
    badge_color: Optional[str] = None


class GroupSectionView(BaseModel):
    id: str
    title: str
    collapsed: bool = False
    projects: List[ProjectView] = Field(default_factory=list)


class ViewState(BaseModel):
    """Everything a sidebar needs to render one frame."""

    current: Optional[ProjectView] = None
    open_elsewhere: List[ProjectView] = Field(default_factory=list)
    recent: List[ProjectView] = Field(default_factory=list)
    pinned: List[ProjectView] = Field(default_factory=list)
    others: List[ProjectView] = Field(default_factory=list)
    groups: List[GroupSectionView] = Field(default_factory=list)
    collapse: SectionCollapseState = Field(default_factory=SectionCollapseState)
    query: str = ""

    def project_count(self) -> int:
        return (
            (1 if self.current else 0)
            + len(self.open_elsewhere)
            + len(self.recent)
            + len(self.pinned)
            + len(self.others)
            + sum(len(group.projects) for group in self.groups)
        )
