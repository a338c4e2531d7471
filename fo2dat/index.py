from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Tuple

from .constants import (
    ENTRY_COUNT_LEN,
    ENTRY_FOOTER,
    FILE_SIZE_LEN,
    NAME_LEN_LEN,
    TRAILER_LEN,
    TREE_SIZE_LEN,
    U32,
    U32_MAX,
)
from .entry import Entry, decode_name
from .errors import Overflow, SizeMismatch, TruncatedIndex


log = logging.getLogger(__name__)


# Archive layout:
#   data[data_len]
#   index: entry_count u32, then entry_count tree records
#   tree_size u32
#   file_size u32
#
# Tree record:
#   name_len u32, name[name_len] (ASCII), is_compressed u8,
#   decompressed_size u32, packed_size u32, offset u32
#
# With tree_size_includes_self (the default) tree_size = 4 + len(index).
# The legacy convention stores tree_size = len(index).


@dataclass(frozen=True)
class DecodedIndex:
    data_len: int
    tree_size: int
    file_size: int
    entries: Tuple[Entry, ...]


def _self_len(tree_size_includes_self: bool) -> int:
    return TREE_SIZE_LEN if tree_size_includes_self else 0


def _read_u32(buf: bytes, pos: int, end: int, what: str) -> int:
    if pos + U32.size > end:
        raise TruncatedIndex(f"index ends before {what} at offset {pos}")
    return U32.unpack_from(buf, pos)[0]


def _parse_entry(buf: bytes, pos: int, end: int, idx: int) -> Tuple[Entry, int]:
    name_len = _read_u32(buf, pos, end, f"name length of entry {idx}")
    pos += NAME_LEN_LEN
    if pos + name_len + ENTRY_FOOTER.size > end:
        raise TruncatedIndex(
            f"entry {idx}: name of {name_len} bytes plus footer overruns the index by "
            f"{pos + name_len + ENTRY_FOOTER.size - end} bytes"
        )
    raw_name = bytes(buf[pos : pos + name_len])
    pos += name_len
    name = decode_name(raw_name)
    flag, decompressed_size, packed_size, offset = ENTRY_FOOTER.unpack_from(buf, pos)
    pos += ENTRY_FOOTER.size
    entry = Entry(
        name=name,
        compressed_flag=flag,
        decompressed_size=decompressed_size,
        packed_size=packed_size,
        offset=offset,
        index=idx,
    )
    return entry, pos


def decode_index(buf: bytes, *, tree_size_includes_self: bool = True) -> DecodedIndex:
    """Parse the trailer and the tree of a complete archive buffer.

    Raises:
        SizeMismatch: file_size disagrees with the buffer length, or tree_size
            disagrees with the bytes the records actually occupy.
        TruncatedIndex: the index does not fit, a record runs past the index,
            or an entry's data range runs past the data section.
    """
    total = len(buf)
    if total < TRAILER_LEN:
        raise TruncatedIndex(f"archive is {total} bytes; need at least {TRAILER_LEN} for the trailer")

    file_size = U32.unpack_from(buf, total - FILE_SIZE_LEN)[0]
    if file_size != total:
        raise SizeMismatch("file_size", expected=total, actual=file_size)

    tree_end = total - TRAILER_LEN
    tree_size = U32.unpack_from(buf, tree_end)[0]
    self_len = _self_len(tree_size_includes_self)
    if tree_size < self_len:
        raise TruncatedIndex(f"tree_size {tree_size} is smaller than its own field ({self_len} bytes)")
    index_len = tree_size - self_len
    if index_len > tree_end:
        raise TruncatedIndex(
            f"tree_size {tree_size} claims {index_len} index bytes but only {tree_end} precede the trailer"
        )
    index_start = tree_end - index_len
    data_len = index_start

    count = _read_u32(buf, index_start, tree_end, "entry count")
    pos = index_start + ENTRY_COUNT_LEN
    entries = []
    for idx in range(count):
        entry, pos = _parse_entry(buf, pos, tree_end, idx)
        if entry.end > data_len:
            raise TruncatedIndex(
                f"{entry.name}: data range {entry.offset}-{entry.end} runs past the data section "
                f"({data_len} bytes)"
            )
        entries.append(entry)

    if pos != tree_end:
        consumed = pos - index_start + self_len
        raise SizeMismatch(
            "tree_size",
            expected=consumed,
            actual=tree_size,
            detail=f"{count} entries occupy {pos - index_start} index bytes",
        )

    log.debug("parsed %d tree entries (data=%d, tree_size=%d)", count, data_len, tree_size)
    return DecodedIndex(data_len=data_len, tree_size=tree_size, file_size=file_size, entries=tuple(entries))


def _encode_entry(entry: Entry) -> bytes:
    raw = entry.raw_name
    return (
        U32.pack(len(raw))
        + raw
        + ENTRY_FOOTER.pack(entry.compressed_flag, entry.decompressed_size, entry.packed_size, entry.offset)
    )


def encode_index(entries: Iterable[Entry], data_len: int, *, tree_size_includes_self: bool = True) -> bytes:
    """Serialize the index and trailer for ``entries`` laid out over ``data_len`` data bytes.

    Returns ``index ++ tree_size ++ file_size``; the caller prepends the data.
    """
    entries = list(entries)
    if len(entries) > U32_MAX:
        raise Overflow(f"{len(entries)} entries do not fit in a u32 count")
    for e in entries:
        if e.end > data_len:
            raise TruncatedIndex(f"{e.name}: data range {e.offset}-{e.end} exceeds data length {data_len}")

    index = bytearray(U32.pack(len(entries)))
    for e in entries:
        index += _encode_entry(e)

    tree_size = len(index) + _self_len(tree_size_includes_self)
    file_size = data_len + len(index) + TRAILER_LEN
    if tree_size > U32_MAX:
        raise Overflow(f"tree_size {tree_size} does not fit in u32")
    if file_size > U32_MAX:
        raise Overflow(f"archive size {file_size} does not fit in u32")

    index += U32.pack(tree_size)
    index += U32.pack(file_size)
    return bytes(index)
