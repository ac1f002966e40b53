"""
ugrpack: pack tagged byte blobs into one contiguous archive.

Features:

- Single-blob layout: a 32-byte preamble (magic ``BinUgrPack``, version word,
  header size), one index record per entry, then every payload back to back.
- O(1) lookup by tag once the content header has been scanned.
- The same query path over an in-memory blob or an archive file on disk
  (payloads are read on demand and the stream position is restored).
- JSON manifests mapping tag -> source path, with pluggable source loaders.
- CLI to pack, list, inspect, and extract archives.
"""

__version__ = "1.0.0"

from .archive import Archive, build_from_manifest, list_tags
from .builder import ArchiveBuilder, Entry
from .errors import (
    BuildError,
    CorruptHeader,
    DuplicateTag,
    IOFailure,
    ManifestError,
    SourceUnavailable,
    TagNotFound,
    UgrPackError,
    UnsupportedOperation,
)
from .index import ArchiveIndexReader, PackVersion, make_version, make_version_word
from .loader import FileSourceLoader, MemorySourceLoader, SourceLoader, make_loader
from .log import LoggingConfig
from .manifest import read_manifest
from .stream import FileStream, MemoryStream, RandomAccessStream

__all__ = [
    "Archive",
    "ArchiveBuilder",
    "ArchiveIndexReader",
    "BuildError",
    "CorruptHeader",
    "DuplicateTag",
    "Entry",
    "FileSourceLoader",
    "FileStream",
    "IOFailure",
    "LoggingConfig",
    "ManifestError",
    "MemorySourceLoader",
    "MemoryStream",
    "PackVersion",
    "RandomAccessStream",
    "SourceLoader",
    "SourceUnavailable",
    "TagNotFound",
    "UgrPackError",
    "UnsupportedOperation",
    "build_from_manifest",
    "list_tags",
    "make_loader",
    "make_version",
    "make_version_word",
    "read_manifest",
]
