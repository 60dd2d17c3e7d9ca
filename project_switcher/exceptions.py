"""Exceptions raised by the project-switcher service and CLI layers.

The core components report misses as None/False; these are raised by
callers that decide a miss is an error worth surfacing to the user.
"""

from typing import Optional


class ProjectSwitcherError(Exception):
    """Base class for project-switcher errors."""

    def __init__(self, message: str, remediation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.remediation = remediation


class ProjectNotFoundError(ProjectSwitcherError):
    """An action targeted a project id or location that is not saved."""

    def __init__(self, project_ref: str):
        super().__init__(
            f"Project not found: {project_ref}",
            remediation="Run 'project-switcher list' to see saved projects",
        )
        self.project_ref = project_ref


class GroupNotFoundError(ProjectSwitcherError):
    """An action targeted a project group id that does not exist."""

    def __init__(self, group_id: str):
        super().__init__(
            f"Project group not found: {group_id}",
            remediation="Run 'project-switcher list' to see project groups",
        )
        self.group_id = group_id


class InvalidLocationError(ProjectSwitcherError):
    """A project or group location was blank or could not be used."""

    def __init__(self, location: str, reason: str = "location must not be empty"):
        super().__init__(f"Invalid location {location!r}: {reason}")
        self.location = location
