from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from .codec import deflate
from .constants import FLAG_COMPRESSED, FLAG_STORED
from .entry import Entry
from .index import encode_index


log = logging.getLogger(__name__)


class ArchiveWriter:
    """Lays out a DAT2 archive in memory, one member at a time.

    The writer never chooses compression itself: callers hand it bytes that
    are already in their stored form and say whether they are compressed.
    Names are stored exactly as given, duplicates included.
    """

    def __init__(self, *, tree_size_includes_self: bool = True):
        self.tree_size_includes_self = tree_size_includes_self
        self._data = bytearray()
        self._entries: List[Entry] = []

    @property
    def entries(self) -> Tuple[Entry, ...]:
        return tuple(self._entries)

    @property
    def data_size(self) -> int:
        return len(self._data)

    def add(
        self,
        name: str,
        data: bytes,
        *,
        compressed: bool = False,
        decompressed_size: Optional[int] = None,
    ) -> Entry:
        if decompressed_size is None:
            if compressed:
                raise ValueError(f"{name}: decompressed_size is required for pre-compressed data")
            decompressed_size = len(data)
        entry = Entry(
            name=name,
            compressed_flag=FLAG_COMPRESSED if compressed else FLAG_STORED,
            decompressed_size=decompressed_size,
            packed_size=len(data),
            offset=len(self._data),
            index=len(self._entries),
        )
        self._data += data
        self._entries.append(entry)
        log.debug("added %s at %d (%d bytes, compressed=%s)", name, entry.offset, entry.packed_size, compressed)
        return entry

    def add_file(self, name: str, src_path: str, *, compress: bool = False) -> Entry:
        with open(src_path, "rb") as fh:
            raw = fh.read()
        if compress:
            return self.add(name, deflate(raw), compressed=True, decompressed_size=len(raw))
        return self.add(name, raw)

    def finalize(self) -> bytes:
        tail = encode_index(self._entries, len(self._data), tree_size_includes_self=self.tree_size_includes_self)
        return bytes(self._data) + tail

    def write(self, out_path: str) -> int:
        blob = self.finalize()
        with open(out_path, "wb") as fh:
            fh.write(blob)
        return len(blob)


def build_archive(items: Iterable[Sequence], *, tree_size_includes_self: bool = True) -> bytes:
    """Build a complete archive from ``(name, data[, compressed[, decompressed_size]])`` items."""
    w = ArchiveWriter(tree_size_includes_self=tree_size_includes_self)
    for item in items:
        if not 2 <= len(item) <= 4:
            raise ValueError(f"expected (name, data[, compressed[, decompressed_size]]), got {len(item)} fields")
        name, data = item[0], item[1]
        compressed = bool(item[2]) if len(item) > 2 else False
        decompressed_size = item[3] if len(item) > 3 else None
        w.add(name, data, compressed=compressed, decompressed_size=decompressed_size)
    return w.finalize()
