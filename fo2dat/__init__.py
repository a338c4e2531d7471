"""
fo2dat: reader and writer for the DAT2 archive container.

A DAT2 file is a data section of concatenated member bytes followed by a tree
of per-member records, a tree_size field and a file_size field. This package
provides:

- Index codec for the trailer and tree (fo2dat.index)
- zlib detection by header bytes rather than the unreliable tree flag (fo2dat.codec)
- An in-memory reader with first-occurrence deduplication (fo2dat.reader)
- A deterministic writer (fo2dat.writer)
- A small CLI for list/info/extract/create (fo2dat.cli)
"""

from .entry import Entry
from .errors import (
    CompressionFailure,
    Dat2Error,
    DecodeError,
    EntryNotFound,
    FormatError,
    InvalidName,
    Overflow,
    SizeMismatch,
    TruncatedIndex,
)
from .reader import ArchiveReader, ExtractResult
from .writer import ArchiveWriter, build_archive

__version__ = "0.1"

__all__ = [
    "Entry",
    "ArchiveReader",
    "ArchiveWriter",
    "ExtractResult",
    "build_archive",
    "Dat2Error",
    "FormatError",
    "SizeMismatch",
    "TruncatedIndex",
    "Overflow",
    "InvalidName",
    "DecodeError",
    "CompressionFailure",
    "EntryNotFound",
]
