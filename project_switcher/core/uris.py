"""Location helpers.

Projects are keyed by location strings. Local locations are ``file://`` URIs;
anything else (remote schemes) is kept verbatim and never touched on disk.
"""

import os
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse


def uri_to_path(uri: str) -> Optional[Path]:
    """Return the filesystem path of a ``file://`` URI, None for other schemes."""
    try:
        parsed = urlparse(uri.strip())
    except (AttributeError, ValueError):
        return None

    if parsed.scheme != "file":
        return None

    path = unquote(parsed.path)
    if not path:
        return None
    return Path(path)


def path_to_uri(path: Path) -> str:
    """Return the ``file://`` URI for a filesystem path."""
    return Path(path).expanduser().absolute().as_uri()


def location_to_uri(location: str) -> str:
    """Accept either a URI or a plain filesystem path and return a URI.

    Strings with a scheme (``file://``, ``vscode-remote://``...) are returned
    trimmed; everything else is treated as a local path.
    """
    trimmed = location.strip()
    if "://" in trimmed:
        return trimmed
    return path_to_uri(Path(trimmed))


def format_full_path(uri: str) -> str:
    """Filesystem path for local URIs, the URI itself otherwise."""
    path = uri_to_path(uri)
    return str(path) if path else uri


def format_display_path(uri: str) -> str:
    """Like ``format_full_path`` but with the home directory shortened to ``~``."""
    path = uri_to_path(uri)
    if path is None:
        return uri

    full = str(path)
    home = os.environ.get("HOME", "").rstrip(os.sep)
    if home and (full == home or full.startswith(home + os.sep)):
        return "~" + full[len(home):]
    return full


def location_basename(uri: str, default: str = "Folder") -> str:
    """Last path component of a location, used as a default project name."""
    path = uri_to_path(uri)
    if path is not None:
        name = path.name
    else:
        name = uri.rstrip("/").rsplit("/", 1)[-1]
    if name.endswith(".code-workspace"):
        name = name[: -len(".code-workspace")]
    return name or default
