# Data models for saved projects, groups, presence records and section views

from .project import (
    FALLBACK_PROJECT_NAME,
    ProjectGroup,
    ProjectGroupSection,
    ProjectKind,
    ResolvedGroupProject,
    StoredProject,
    StoreState,
)
from .session import OpenWindowSessionRecord
from .view import (
    GroupSectionView,
    ProjectView,
    SectionCollapseState,
    SectionVisibility,
    ViewState,
)

__all__ = [
    "FALLBACK_PROJECT_NAME",
    "ProjectGroup",
    "ProjectGroupSection",
    "ProjectKind",
    "ResolvedGroupProject",
    "StoredProject",
    "StoreState",
    "OpenWindowSessionRecord",
    "GroupSectionView",
    "ProjectView",
    "SectionCollapseState",
    "SectionVisibility",
    "ViewState",
]
