from typing import Optional


class Dat2Error(Exception):
    """Base class for DAT2 archive errors."""


# Archive structure; fatal for the whole archive
class FormatError(Dat2Error):
    pass


class SizeMismatch(FormatError):
    def __init__(self, field: str, expected: int, actual: int, detail: str = ""):
        self.field = field
        self.expected = expected
        self.actual = actual
        msg = f"{field} mismatch: expected {expected}, found {actual} (off by {actual - expected:+d})"
        if detail:
            msg = f"{msg}; {detail}"
        super().__init__(msg)


class TruncatedIndex(FormatError):
    pass


class Overflow(FormatError):
    pass


class InvalidName(FormatError):
    pass


# Per-entry; never aborts batch extraction
class DecodeError(Dat2Error):
    pass


class CompressionFailure(DecodeError):
    def __init__(self, name: Optional[str], reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"{name or '<entry>'}: decompression failed: {reason}")


class EntryNotFound(Dat2Error, KeyError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"no such entry: {self.name}"
