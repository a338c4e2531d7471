from __future__ import annotations

import zlib
from typing import Optional

from .constants import DEFAULT_COMPRESS_LEVEL, ZLIB_MAGIC
from .errors import CompressionFailure


def looks_compressed(raw: bytes) -> bool:
    """Decide from the stored bytes alone whether an entry is zlib-compressed.

    The tree's ``is_compressed`` flag is frequently wrong in shipped archives,
    so only the two-byte zlib header is consulted.
    """
    if len(raw) < 2:
        return False
    return bytes(raw[:2]) == ZLIB_MAGIC


def inflate(raw: bytes, *, name: Optional[str] = None) -> bytes:
    try:
        return zlib.decompress(raw)
    except zlib.error as exc:
        raise CompressionFailure(name, str(exc)) from exc


def unpack(raw: bytes, *, name: Optional[str] = None) -> bytes:
    """Return the entry's content: inflated when the header says zlib, else as stored."""
    if looks_compressed(raw):
        return inflate(raw, name=name)
    return bytes(raw)


def deflate(data: bytes, level: int = DEFAULT_COMPRESS_LEVEL) -> bytes:
    """Compress ``data`` so that readers of this format recognise it.

    Only levels whose zlib header is ``78 DA`` are accepted; other levels would
    produce streams the reader treats as stored bytes.
    """
    out = zlib.compress(data, level)
    if out[:2] != ZLIB_MAGIC:
        raise ValueError(f"compression level {level} does not produce a 78 DA zlib header")
    return out
