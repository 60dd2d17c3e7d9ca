"""Configuration for project-switcher.

Settings live in ``~/.config/project-switcher/config.json``; every field is
optional. Paths can also be overridden from the environment:

- ``PROJECT_SWITCHER_CONFIG``: config file location
- ``PROJECT_SWITCHER_STATE``: saved projects/groups state file
- ``PROJECT_SWITCHER_SESSIONS_DIR``: shared presence directory

Loading never fails: an unreadable file or invalid field falls back to the
defaults (section flags are merged key by key).
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .core.session_registry import (
    DEFAULT_HEARTBEAT_MS,
    DEFAULT_NOTIFY_DEBOUNCE_MS,
    DEFAULT_STALE_AFTER_MS,
    DEFAULT_WRITE_DEBOUNCE_MS,
)
from .core.sections import DEFAULT_RECENT_LIMIT
from .core.storage import atomic_write_json
from .models.view import SectionCollapseState, SectionVisibility

logger = logging.getLogger(__name__)

CONFIG_ENV = "PROJECT_SWITCHER_CONFIG"
STATE_ENV = "PROJECT_SWITCHER_STATE"
SESSIONS_DIR_ENV = "PROJECT_SWITCHER_SESSIONS_DIR"

SESSIONS_DIR_NAME = "project-switcher-sessions"


def get_config_dir() -> Path:
    """Base config directory, honoring XDG_CONFIG_HOME."""
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "project-switcher"


def get_config_file() -> Path:
    override = os.environ.get(CONFIG_ENV)
    return Path(override).expanduser() if override else get_config_dir() / "config.json"


def get_state_file() -> Path:
    override = os.environ.get(STATE_ENV)
    return Path(override).expanduser() if override else get_config_dir() / "projects.json"


def get_sessions_dir() -> Path:
    """Shared presence directory in XDG_RUNTIME_DIR (per user, cleared at logout)."""
    override = os.environ.get(SESSIONS_DIR_ENV)
    if override:
        return Path(override).expanduser()
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR", f"/run/user/{os.getuid()}")
    return Path(runtime_dir) / SESSIONS_DIR_NAME


class SwitcherConfig(BaseModel):
    """User-tunable settings."""

    state_file: Path = Field(default_factory=get_state_file)
    sessions_dir: Path = Field(default_factory=get_sessions_dir)
    heartbeat_ms: int = Field(DEFAULT_HEARTBEAT_MS, gt=0)
    stale_after_ms: int = Field(DEFAULT_STALE_AFTER_MS, gt=0)
    write_debounce_ms: int = Field(DEFAULT_WRITE_DEBOUNCE_MS, ge=0)
    notify_debounce_ms: int = Field(DEFAULT_NOTIFY_DEBOUNCE_MS, ge=0)
    recent_limit: int = Field(DEFAULT_RECENT_LIMIT, ge=0)
    open_in_new_window: bool = False
    section_visibility: SectionVisibility = Field(default_factory=SectionVisibility)
    section_collapse: SectionCollapseState = Field(default_factory=SectionCollapseState)

    @field_validator("section_visibility", mode="before")
    @classmethod
    def merge_visibility(cls, v: Any) -> SectionVisibility:
        if isinstance(v, SectionVisibility):
            return v
        return SectionVisibility.from_untrusted(v)

    @field_validator("section_collapse", mode="before")
    @classmethod
    def merge_collapse(cls, v: Any) -> SectionCollapseState:
        if isinstance(v, SectionCollapseState):
            return v
        return SectionCollapseState.from_untrusted(v)

    def to_json(self) -> dict:
        data = self.model_dump(mode="json", exclude={"section_visibility", "section_collapse"})
        data["section_visibility"] = self.section_visibility.to_persisted()
        data["section_collapse"] = self.section_collapse.to_persisted()
        return data


def load_config(config_file: Optional[Path] = None) -> SwitcherConfig:
    """Load settings, falling back to defaults field by field."""
    config_file = config_file or get_config_file()
    if not config_file.exists():
        return SwitcherConfig()

    try:
        with config_file.open("r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
        logger.warning(f"Ignoring unreadable config {config_file}: {e}")
        return SwitcherConfig()

    if not isinstance(data, dict):
        logger.warning(f"Ignoring config {config_file}: expected a JSON object")
        return SwitcherConfig()

    try:
        return SwitcherConfig.model_validate(data)
    except ValidationError as e:
        invalid = {str(error["loc"][0]) for error in e.errors() if error["loc"]}
        logger.warning(f"Invalid config fields {sorted(invalid)} in {config_file}, using defaults for them")
        valid = {key: value for key, value in data.items() if key not in invalid}
        return SwitcherConfig.model_validate(valid)


def save_config(config: SwitcherConfig, config_file: Optional[Path] = None) -> None:
    """Persist settings atomically.

    Raises:
        OSError: If the config file cannot be written
    """
    atomic_write_json(config_file or get_config_file(), config.to_json(), indent=2)
