from __future__ import annotations

import os

from .constants import PATH_SEPARATOR


def _segments(p: str) -> list:
    p = p.replace("\\", "/").strip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise ValueError(f"Path may not contain '..': {p}")
    return parts


def to_archive_name(p: str) -> str:
    """Normalize a relative path to the archive's backslash-separated form.

    Rules:
    - Accept either slash style
    - Strip leading/trailing separators
    - Remove empty and '.' segments
    - Reject '..' segments
    """
    return PATH_SEPARATOR.join(_segments(p))


def to_local_path(name: str) -> str:
    """Map an archive name to a relative OS path; same rules as ``to_archive_name``."""
    parts = _segments(name)
    if not parts:
        raise ValueError(f"Entry name has no path components: {name!r}")
    return os.path.join(*parts)
