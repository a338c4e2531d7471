from __future__ import annotations

import logging
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

from .codec import looks_compressed, unpack
from .entry import Entry
from .errors import DecodeError, EntryNotFound
from .index import decode_index


log = logging.getLogger(__name__)


class ExtractResult(NamedTuple):
    name: str
    data: Optional[bytes]
    error: Optional[DecodeError]

    @property
    def ok(self) -> bool:
        return self.error is None


class ArchiveReader:
    """Random-access view over a complete DAT2 archive held in memory.

    The buffer and the entry list are never mutated after ``open``, so one
    reader can serve ``extract`` calls from several threads at once.
    """

    def __init__(self, buf: bytes, *, tree_size_includes_self: bool = True):
        self._buf = bytes(buf)
        self.tree_size_includes_self = tree_size_includes_self
        decoded = decode_index(self._buf, tree_size_includes_self=tree_size_includes_self)
        self._data_len = decoded.data_len
        self._tree_size = decoded.tree_size
        self._file_size = decoded.file_size
        self._all_entries: Tuple[Entry, ...] = decoded.entries
        self._entries, self._by_name = self._dedupe(decoded.entries)

    @classmethod
    def open(cls, buf: bytes, *, tree_size_includes_self: bool = True) -> "ArchiveReader":
        return cls(buf, tree_size_includes_self=tree_size_includes_self)

    @classmethod
    def from_path(cls, path: str, *, tree_size_includes_self: bool = True) -> "ArchiveReader":
        with open(path, "rb") as fh:
            buf = fh.read()
        return cls(buf, tree_size_includes_self=tree_size_includes_self)

    @staticmethod
    def _dedupe(entries: Tuple[Entry, ...]) -> Tuple[Tuple[Entry, ...], Dict[str, Entry]]:
        # First occurrence on disk wins; later records with the same name are shadowed.
        by_name: Dict[str, Entry] = {}
        kept: List[Entry] = []
        for e in entries:
            if e.name in by_name:
                log.debug("dropping duplicate entry %s (index %d, first at %d)", e.name, e.index, by_name[e.name].index)
                continue
            by_name[e.name] = e
            kept.append(e)
        return tuple(kept), by_name

    @property
    def data_size(self) -> int:
        return self._data_len

    @property
    def tree_size(self) -> int:
        return self._tree_size

    @property
    def file_size(self) -> int:
        return self._file_size

    @property
    def duplicate_count(self) -> int:
        return len(self._all_entries) - len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def list(self) -> List[Entry]:
        return list(self._entries)

    def all_entries(self) -> List[Entry]:
        """Every tree record, including duplicates hidden from ``list``."""
        return list(self._all_entries)

    def listing(self) -> List[Tuple[str, int, int]]:
        return [(e.name, e.decompressed_size, e.packed_size) for e in self._entries]

    def get(self, name: str) -> Entry:
        try:
            return self._by_name[name]
        except KeyError:
            raise EntryNotFound(name) from None

    def _slice(self, entry: Entry) -> memoryview:
        return memoryview(self._buf)[entry.offset : entry.end]

    def raw(self, name: str) -> bytes:
        return bytes(self._slice(self.get(name)))

    def _extract_entry(self, entry: Entry) -> bytes:
        stored = self._slice(entry)
        out = unpack(stored, name=entry.name)
        if looks_compressed(stored) and len(out) != entry.decompressed_size:
            log.warning(
                "%s: inflated to %d bytes but tree declares %d",
                entry.name,
                len(out),
                entry.decompressed_size,
            )
        return out

    def extract(self, name: str) -> bytes:
        """Return the content of ``name``, inflated when its stored bytes are zlib.

        Raises:
            EntryNotFound: ``name`` is not in the (deduplicated) listing.
            CompressionFailure: the stored zlib stream is corrupt.
        """
        return self._extract_entry(self.get(name))

    def extract_all(self) -> Iterator[ExtractResult]:
        """Yield one result per listed entry; failures are reported, not raised."""
        for entry in self._entries:
            try:
                data = self._extract_entry(entry)
            except DecodeError as exc:
                yield ExtractResult(entry.name, None, exc)
            else:
                yield ExtractResult(entry.name, data, None)
