"""Badge color normalization.

Badge colors are stored in one canonical form: ``#rrggbb``, lowercase.
Accepted inputs are ``#``-prefixed hex strings of 3, 4, 6 or 8 digits
(case-insensitive, surrounding whitespace ignored):

- ``#abc`` / ``#abcd`` -> each nibble doubled, alpha dropped -> ``#aabbcc``
- ``#AABBCC``          -> lowercased
- ``#aabbccdd``        -> alpha channel dropped -> ``#aabbcc``

Anything else normalizes to ``None`` (no badge color).
"""

import re
from typing import Any, Mapping, Optional

_HEX_COLOR = re.compile(r"^#([0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")

ACCENT_CUSTOMIZATION_KEY = "activityBar.activeBackground"


def normalize_badge_color(value: Any) -> Optional[str]:
    """Return the canonical ``#rrggbb`` form of ``value`` or None if unparseable.

    Idempotent: normalizing an already canonical value returns it unchanged.
    """
    if not isinstance(value, str):
        return None

    match = _HEX_COLOR.match(value.strip())
    if not match:
        return None

    digits = match.group(1).lower()
    if len(digits) in (3, 4):
        return "#" + "".join(nibble * 2 for nibble in digits[:3])

    return "#" + digits[:6]


def resolve_workspace_badge_color(
    accent_color: Any,
    color_customizations: Any = None,
) -> Optional[str]:
    """Resolve the accent color a window advertises for its workspace.

    An explicit accent color wins; otherwise the activity bar background from
    a color-customization mapping is used.

    Args:
        accent_color: Explicitly configured accent color (any type, untrusted)
        color_customizations: Mapping of color customization keys to colors

    Returns:
        Normalized badge color, or None when neither source yields one
    """
    normalized = normalize_badge_color(accent_color)
    if normalized:
        return normalized

    if not isinstance(color_customizations, Mapping):
        return None

    return normalize_badge_color(color_customizations.get(ACCENT_CUSTOMIZATION_KEY))
