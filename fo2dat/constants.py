import struct


# Trailer fields (little endian u32 each)
TREE_SIZE_LEN = 4
FILE_SIZE_LEN = 4
TRAILER_LEN = TREE_SIZE_LEN + FILE_SIZE_LEN

# Index layout
ENTRY_COUNT_LEN = 4
NAME_LEN_LEN = 4
# is_compressed u8, decompressed_size u32, packed_size u32, offset u32
ENTRY_FOOTER_LEN = 13

U32 = struct.Struct("<I")
ENTRY_FOOTER = struct.Struct("<BIII")
U32_MAX = 0xFFFFFFFF

# Names use DOS-style separators on disk
PATH_SEPARATOR = "\\"

# zlib header written at compression level 9 (big-endian 0x78DA)
ZLIB_MAGIC = b"\x78\xda"
DEFAULT_COMPRESS_LEVEL = 9

FLAG_STORED = 0
FLAG_COMPRESSED = 1
