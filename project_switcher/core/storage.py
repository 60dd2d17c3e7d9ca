"""Storage adapters for the project store.

The store hands an already-serialized ``dict`` to ``write`` and accepts
anything from ``read`` (the payload is untrusted and sanitized by the store).
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)


class ProjectStorageAdapter(Protocol):
    """Persistence backend for the project store state blob."""

    def read(self) -> Optional[Any]:
        ...

    def write(self, state: dict) -> None:
        ...


class MemoryStorage:
    """In-process storage; keeps the last written state."""

    def __init__(self, initial: Optional[Any] = None):
        self.state = initial
        self.write_count = 0

    def read(self) -> Optional[Any]:
        return self.state

    def write(self, state: dict) -> None:
        self.state = json.loads(json.dumps(state))
        self.write_count += 1


def atomic_write_json(path: Path, data: Any, indent: Optional[int] = None) -> None:
    """Write JSON to ``path`` via temp file + rename.

    Readers never observe a half-written file. The temp file lives in the
    same directory so the rename stays on one filesystem.

    Raises:
        OSError: If the directory cannot be created or the write fails
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.stem}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=indent)
        os.replace(temp_path, path)
    except BaseException:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


class JsonFileStorage:
    """Stores the state blob as a single JSON file."""

    def __init__(self, path: Path):
        """Initialize JSON file storage.

        Args:
            path: State file (e.g. ~/.config/project-switcher/projects.json)
        """
        self.path = Path(path)

    def read(self) -> Optional[Any]:
        """Load the state blob.

        Returns:
            Decoded JSON, or None if the file is missing or unreadable
        """
        if not self.path.exists():
            return None

        try:
            with self.path.open("r") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring unreadable project state {self.path}: {e}")
            return None

    def write(self, state: dict) -> None:
        """Persist the state blob atomically. Failures are logged, not raised."""
        try:
            atomic_write_json(self.path, state, indent=2)
        except OSError as e:
            logger.error(f"Failed to write project state {self.path}: {e}")
