from __future__ import annotations

import logging
import os
import threading
from typing import Dict, Iterator, List, Optional

from .builder import ArchiveBuilder, Entry
from .constants import TAG_ENCODING
from .errors import BuildError, CorruptHeader, IOFailure, TagNotFound, UgrPackError, UnsupportedOperation
from .index import (
    CURRENT_VERSION,
    ArchiveIndexReader,
    PackVersion,
    pack_preamble,
    pack_record,
    read_content_header,
    validate_ranges,
)
from .loader import FileSourceLoader, SourceLoader
from .log import LoggingConfig, configure_logging
from .manifest import ManifestSource, manifest_base_dir, read_manifest
from .stream import FileStream, MemoryStream, read_exact


log = logging.getLogger(__name__)

__all__ = [
    "Archive",
    "Entry",
    "PackVersion",
    "build_from_manifest",
    "list_tags",
]


class Archive:
    """A packed set of tagged byte blobs.

    An archive is either built in memory from an :class:`ArchiveBuilder`
    (:meth:`build`), wrapped around an existing blob (:meth:`from_bytes`), or
    opened from disk (:meth:`open`), in which case payloads stay in the file
    and are read on demand. Once finalized it never changes.
    """

    def __init__(self, builder: Optional[ArchiveBuilder] = None, *, version: PackVersion = CURRENT_VERSION):
        self.builder: Optional[ArchiveBuilder] = builder
        self.version = version
        self.content_header: bytes = b""
        self.entries: List[Entry] = []
        self._positions: Dict[str, int] = {}
        self._blob: Optional[bytes] = None
        self._stream: Optional[FileStream] = None
        self._lock = threading.Lock()
        self._finalized = False
        self._failed = False

    # construction

    def build(self, manifest: Optional[ManifestSource] = None, *, logging_config: Optional[LoggingConfig] = None) -> "Archive":
        """
        Finalizes the archive into one contiguous blob.

        1.  Runs the builder over ``manifest`` (if given), growing the
            header size counter by one record per entry.
        2.  Serializes the preamble with the final header size.
        3.  Assigns each entry an inclusive byte range, in insertion order,
            starting right after the content header.
        4.  Concatenates header and payloads and drops the payload copies.

        Raises :class:`BuildError` (or a subclass) on any failure. A failed
        build discards the partial entries and the archive can not be built
        again.
        """
        if self._finalized:
            raise BuildError("Archive has already been built")
        if self._failed:
            raise BuildError("A previous build of this archive failed")
        configure_logging(logging_config)
        try:
            return self._finalize(manifest)
        except UgrPackError:
            self._failed = True
            self.builder = None
            raise

    def _finalize(self, manifest: Optional[ManifestSource]) -> "Archive":
        builder = self.builder if self.builder is not None else ArchiveBuilder()
        self.builder = builder
        if manifest is not None:
            builder.convert(read_manifest(manifest))

        header_size = builder.header_size
        header = bytearray(pack_preamble(self.version, header_size))
        cursor = header_size
        for e in builder.entries:
            e.start = cursor
            e.end = cursor + len(e.payload) - 1
            header += pack_record(e.tag.encode(TAG_ENCODING), e.start, e.end)
            cursor = e.end + 1
            log.debug("%s -> [%d, %d] (%d bytes)", e.tag, e.start, e.end, e.length)
        if len(header) != header_size:
            raise BuildError(f"Content header is {len(header)} bytes but {header_size} were accounted for")

        blob = bytearray(header)
        for e in builder.entries:
            blob += e.payload
            e.payload = None

        self.content_header = bytes(header)
        self._blob = bytes(blob)
        self.entries = builder.entries
        self._positions = builder.positions
        self.builder = None
        self._finalized = True
        log.info("built archive: %d entries, %d bytes (header %d bytes)", len(self.entries), len(self._blob), header_size)
        return self

    @classmethod
    def from_bytes(cls, blob: bytes) -> "Archive":
        """Wrap an already built blob; the header is parsed and validated."""
        data = bytes(blob)
        preamble, header = read_content_header(MemoryStream(data))
        arc = cls(version=preamble.version)
        arc._load_index(header, preamble.header_size, len(data))
        arc._blob = data
        return arc

    @classmethod
    def open(cls, path: str) -> "Archive":
        """Open a file-backed archive; only the content header is read up front."""
        stream = FileStream(path)
        try:
            preamble, header = read_content_header(stream)
            arc = cls(version=preamble.version)
            arc._load_index(header, preamble.header_size, stream.get_size())
        except (UgrPackError, OSError):
            # Ensure file handle is closed on failure to avoid leaks
            stream.close()
            raise
        arc._stream = stream
        return arc

    def _load_index(self, header: bytes, header_size: int, archive_size: int) -> None:
        records = ArchiveIndexReader().entries(header)
        validate_ranges(records, header_size, archive_size)
        self.content_header = header
        self.entries = [Entry(tag=r.tag, start=r.start, end=r.end) for r in records]
        self._positions = {e.tag: i for i, e in enumerate(self.entries)}
        self.builder = None
        self._finalized = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self._stream is not None:
            self._stream.close()

    # queries

    @property
    def is_file_backed(self) -> bool:
        return self._stream is not None

    @property
    def binaries(self) -> bytes:
        """The finalized blob (memory-backed archives only)."""
        self._require_built()
        if self._blob is None:
            raise UnsupportedOperation("File-backed archive has no in-memory blob")
        return self._blob

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, tag: object) -> bool:
        return tag in self._positions

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def tags(self) -> List[str]:
        return [e.tag for e in self.entries]

    def entry(self, tag: str) -> Entry:
        self._require_built()
        try:
            return self.entries[self._positions[tag]]
        except KeyError:
            raise TagNotFound(f"Tag not found: {tag!r}") from None

    def get(self, tag: str) -> bytes:
        """Return the payload stored under ``tag``.

        File-backed reads restore the stream position afterwards, also when
        the read fails.
        """
        e = self.entry(tag)
        if e.length == 0:
            return b""
        if self._stream is None:
            mem = MemoryStream(self._blob)
            mem.seek(e.start)
            return read_exact(mem, e.length)
        with self._lock:
            stream = self._stream
            pos = stream.tell()
            try:
                stream.seek(e.start)
                return read_exact(stream, e.length)
            finally:
                stream.seek(pos)

    def get_view(self, tag: str) -> memoryview:
        """Zero-copy, read-only view of ``tag``'s payload inside the blob."""
        e = self.entry(tag)
        if self._blob is None:
            raise UnsupportedOperation("Pointer access is not available for a file-backed archive")
        return memoryview(self._blob)[e.start : e.end + 1]

    def save(self, path: str) -> None:
        """Write the blob to ``path``."""
        data = self.binaries
        try:
            with open(path, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
        except OSError as exc:
            raise IOFailure(f"cannot write {path}: {exc}") from exc
        log.info("wrote %s (%d bytes)", path, len(data))

    def _require_built(self):
        if not self._finalized:
            raise RuntimeError("Archive has not been built")


def build_from_manifest(
    manifest: ManifestSource,
    loader: Optional[SourceLoader] = None,
    *,
    version: PackVersion = CURRENT_VERSION,
    logging_config: Optional[LoggingConfig] = None,
) -> Archive:
    """Build an in-memory archive from a manifest mapping, JSON file, or JSON text.

    Without an explicit ``loader``, locators are file paths resolved next to
    the manifest file (or the working directory for inline manifests).
    """
    if loader is None:
        loader = FileSourceLoader(base_dir=manifest_base_dir(manifest))
    return Archive(ArchiveBuilder(loader), version=version).build(manifest, logging_config=logging_config)


def list_tags(archive: Archive) -> List[str]:
    """Tags in layout order, read from the content header alone."""
    if not archive.content_header:
        raise CorruptHeader("Archive has no content header")
    return ArchiveIndexReader().list(archive.content_header)
