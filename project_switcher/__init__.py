"""Project Switcher - saved projects, project groups and cross-window presence.

This package provides:
- A persisted store of saved projects and project groups
- Virtual projects derived from the direct children of a group directory
- A file-based presence protocol so each window knows what other windows have open
- Section view-models (current, open elsewhere, recent, pinned, projects, groups)
- A CLI for managing and inspecting all of the above
"""

__version__ = "0.4.0"
__author__ = "project-switcher contributors"
__license__ = "MIT"

__all__ = ["__version__", "__author__", "__license__"]
