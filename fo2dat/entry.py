from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .constants import ENTRY_FOOTER_LEN, NAME_LEN_LEN, PATH_SEPARATOR, U32_MAX
from .errors import InvalidName, Overflow


def decode_name(raw: bytes) -> str:
    """Decode a stored name; non-ASCII bytes survive as surrogates so ``encode_name`` restores them."""
    return bytes(raw).decode("ascii", "surrogateescape")


def encode_name(name: str) -> bytes:
    return name.encode("ascii", "surrogateescape")


def printable_name(name: str) -> str:
    return encode_name(name).decode("ascii", "backslashreplace")


@dataclass(frozen=True)
class Entry:
    """One archive member, as recorded in the tree.

    Entries hold coordinates into the archive's data section, never the bytes
    themselves. ``compressed_flag`` and ``decompressed_size`` are copied from
    the tree verbatim and are known to be unreliable in real archives.
    """

    name: str
    compressed_flag: int
    decompressed_size: int
    packed_size: int
    offset: int
    index: int = 0

    def __post_init__(self):
        if isinstance(self.name, (bytes, bytearray)):
            object.__setattr__(self, "name", decode_name(self.name))
        elif not isinstance(self.name, str):
            raise InvalidName(f"entry name must be str or bytes, not {type(self.name).__name__}")
        try:
            raw = encode_name(self.name)
        except UnicodeEncodeError as exc:
            raise InvalidName(f"entry name is not ASCII: {self.name!r}") from exc
        if len(raw) > U32_MAX:
            raise Overflow("entry name too long for a u32 length prefix")
        if not 0 <= self.compressed_flag <= 0xFF:
            raise Overflow(f"{self.name}: compressed flag {self.compressed_flag} does not fit in a byte")
        for field_name in ("decompressed_size", "packed_size", "offset"):
            value = getattr(self, field_name)
            if not 0 <= value <= U32_MAX:
                raise Overflow(f"{self.name}: {field_name}={value} does not fit in u32")

    @property
    def raw_name(self) -> bytes:
        return encode_name(self.name)

    @property
    def display_name(self) -> str:
        return printable_name(self.name)

    @property
    def end(self) -> int:
        return self.offset + self.packed_size

    def is_declared_compressed(self) -> bool:
        # Informational only; see codec.looks_compressed
        return self.compressed_flag != 0

    def path_parts(self) -> Tuple[str, ...]:
        return tuple(p for p in self.name.split(PATH_SEPARATOR) if p)

    def encoded_size(self) -> int:
        return NAME_LEN_LEN + len(self.raw_name) + ENTRY_FOOTER_LEN
