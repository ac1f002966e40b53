from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .constants import (
    PACK_MAGIC,
    PREAMBLE_SIZE,
    PREAMBLE_STRUCT,
    RANGE_SIZE,
    RANGE_STRUCT,
    TAG_ENCODING,
    TAG_TERMINATOR,
    VERSION_MAJOR,
    VERSION_MINOR,
    VERSION_PATCH,
)
from .errors import CorruptHeader
from .stream import RandomAccessStream, read_exact


@dataclass(frozen=True)
class PackVersion:
    major: int
    minor: int
    patch: int

    def __post_init__(self):
        for part in (self.major, self.minor, self.patch):
            if not 0 <= part <= 0xFF:
                raise ValueError("version components must fit in one byte")

    def to_word(self) -> int:
        # Byte order in the file is major, minor, patch, 0
        return self.major | (self.minor << 8) | (self.patch << 16)

    @classmethod
    def from_word(cls, word: int) -> "PackVersion":
        return cls(word & 0xFF, (word >> 8) & 0xFF, (word >> 16) & 0xFF)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def make_version(major: int, minor: int, patch: int) -> PackVersion:
    return PackVersion(major, minor, patch)


def make_version_word(major: int, minor: int, patch: int) -> int:
    return PackVersion(major, minor, patch).to_word()


CURRENT_VERSION = PackVersion(VERSION_MAJOR, VERSION_MINOR, VERSION_PATCH)


@dataclass
class Preamble:
    version: PackVersion
    header_size: int


@dataclass(frozen=True)
class IndexRecord:
    tag: str
    start: int
    end: int  # inclusive; end == start - 1 for an empty payload

    @property
    def length(self) -> int:
        return self.end - self.start + 1


def pack_preamble(version: PackVersion, header_size: int) -> bytes:
    """Fixed 32-byte preamble. ``header_size`` is the full content header length."""
    return PREAMBLE_STRUCT.pack(PACK_MAGIC, version.to_word(), header_size)


def pack_record(tag_bytes: bytes, start: int, end: int) -> bytes:
    return tag_bytes + TAG_TERMINATOR + RANGE_STRUCT.pack(start, end)


def read_preamble(data: bytes) -> Preamble:
    if len(data) < PREAMBLE_SIZE:
        raise CorruptHeader("Content header too short")
    magic, word, header_size = PREAMBLE_STRUCT.unpack(data[:PREAMBLE_SIZE])
    if magic != PACK_MAGIC:
        raise CorruptHeader("Bad pack magic")
    if header_size < PREAMBLE_SIZE:
        raise CorruptHeader(f"Header size field {header_size} is smaller than the preamble")
    return Preamble(version=PackVersion.from_word(word), header_size=header_size)


def read_content_header(stream: RandomAccessStream) -> Tuple[Preamble, bytes]:
    """Read and size-check the content header from the start of ``stream``."""
    stream.seek(0)
    total = stream.get_size()
    if total < PREAMBLE_SIZE:
        raise CorruptHeader("Archive too short for a content header")
    head = read_exact(stream, PREAMBLE_SIZE)
    preamble = read_preamble(head)
    if preamble.header_size > total:
        raise CorruptHeader(
            f"Header size field {preamble.header_size} exceeds archive size {total}"
        )
    rest = read_exact(stream, preamble.header_size - PREAMBLE_SIZE)
    return preamble, head + rest


class ArchiveIndexReader:
    """Reconstructs entry tags (and ranges) from content header bytes only."""

    def list(self, content_header: bytes) -> List[str]:
        tags: List[str] = []
        tmp = bytearray()
        i = PREAMBLE_SIZE
        n = len(content_header)
        while i < n:
            b = content_header[i]
            if b == 0:
                tags.append(self._decode(bytes(tmp)))
                tmp.clear()
                i += 1 + RANGE_SIZE
                continue
            tmp.append(b)
            i += 1
        return tags

    def entries(self, content_header: bytes) -> List[IndexRecord]:
        """Strict parse of every record; the preamble size field must match."""
        preamble = read_preamble(content_header)
        if preamble.header_size != len(content_header):
            raise CorruptHeader(
                f"Header size field {preamble.header_size} != header length {len(content_header)}"
            )
        records: List[IndexRecord] = []
        i = PREAMBLE_SIZE
        n = len(content_header)
        while i < n:
            nul = content_header.find(TAG_TERMINATOR, i)
            if nul == -1:
                raise CorruptHeader("Unterminated tag in content header")
            if nul + 1 + RANGE_SIZE > n:
                raise CorruptHeader("Truncated entry record in content header")
            tag = self._decode(content_header[i:nul])
            start, end = RANGE_STRUCT.unpack_from(content_header, nul + 1)
            records.append(IndexRecord(tag=tag, start=start, end=end))
            i = nul + 1 + RANGE_SIZE
        return records

    @staticmethod
    def _decode(raw: bytes) -> str:
        try:
            return raw.decode(TAG_ENCODING)
        except UnicodeDecodeError as exc:
            raise CorruptHeader(f"Tag is not valid {TAG_ENCODING}: {raw!r}") from exc


def validate_ranges(records: Sequence[IndexRecord], header_size: int, archive_size: Optional[int] = None) -> None:
    """Check that ranges are contiguous, ordered, start right after the header and fit the archive."""
    cursor = header_size
    seen = set()
    for rec in records:
        if not rec.tag:
            raise CorruptHeader("Empty tag in content header")
        if rec.tag in seen:
            raise CorruptHeader(f"Duplicate tag in content header: {rec.tag!r}")
        seen.add(rec.tag)
        if rec.start != cursor:
            raise CorruptHeader(f"Entry {rec.tag!r} starts at {rec.start}, expected {cursor}")
        if rec.end + 1 < rec.start:
            raise CorruptHeader(f"Entry {rec.tag!r} has negative length")
        cursor = rec.end + 1
    if archive_size is not None and cursor > archive_size:
        raise CorruptHeader(f"Entries extend to {cursor} past archive size {archive_size}")
