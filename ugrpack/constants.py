import struct


# Magic and version
PACK_MAGIC = b"BinUgrPack"  # 10 bytes, no terminator

VERSION_MAJOR = 1
VERSION_MINOR = 0
VERSION_PATCH = 0


# Content header preamble (fixed 32 bytes)
# struct: <10s I 2x Q 8x
#  - magic[10]
#  - version word u32 (major, minor, patch, 0)
#  - padding[2]
#  - header_size u64 (full content header length, preamble included)
#  - reserved[8]
PREAMBLE_STRUCT = struct.Struct("<10sI2xQ8x")
PREAMBLE_SIZE = PREAMBLE_STRUCT.size  # 32

# Per-entry record trailer: start u64, end u64 (inclusive)
RANGE_STRUCT = struct.Struct("<QQ")
RANGE_SIZE = RANGE_STRUCT.size  # 16

TAG_TERMINATOR = b"\x00"
TAG_ENCODING = "utf-8"


def record_size(tag_bytes: bytes) -> int:
    """Bytes one entry record occupies in the content header."""
    return len(tag_bytes) + len(TAG_TERMINATOR) + RANGE_SIZE
