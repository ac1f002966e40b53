from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from .constants import PREAMBLE_SIZE, TAG_ENCODING, TAG_TERMINATOR, record_size
from .errors import BuildError, DuplicateTag
from .loader import FileSourceLoader, SourceLoader


log = logging.getLogger(__name__)


@dataclass
class Entry:
    tag: str
    start: int = -1
    end: int = -1  # inclusive; end == start - 1 for an empty payload
    payload: Optional[bytes] = None

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def assigned(self) -> bool:
        return self.start >= 0


class ArchiveBuilder:
    """Accumulates entries from a manifest ahead of :meth:`Archive.build`.

    Entries live in one list in insertion order (the payload layout order)
    with a tag -> position map alongside. ``header_size`` tracks the content
    header length the accumulated entries will need.
    """

    def __init__(self, loader: Optional[SourceLoader] = None):
        self.loader: SourceLoader = loader if loader is not None else FileSourceLoader()
        self.entries: List[Entry] = []
        self.positions: Dict[str, int] = {}
        self.header_size = PREAMBLE_SIZE

    def convert(self, manifest: Mapping[str, str]) -> int:
        """Load every (tag, locator) pair in order; returns the number added.

        A failing locator propagates :class:`SourceUnavailable`. Entries added
        before the failure are kept, so the builder must be discarded.
        """
        added = 0
        for tag, locator in manifest.items():
            payload = self.loader.load(locator)
            self.add_entry(tag, payload)
            added += 1
        return added

    def add_entry(self, tag: str, payload: bytes) -> Entry:
        if not isinstance(tag, str) or not tag:
            raise BuildError("Entry tag must be a non-empty string")
        tag_bytes = tag.encode(TAG_ENCODING)
        if TAG_TERMINATOR in tag_bytes:
            raise BuildError(f"Entry tag may not contain NUL: {tag!r}")
        if tag in self.positions:
            raise DuplicateTag(f"Duplicate tag: {tag!r}")
        entry = Entry(tag=tag, payload=bytes(payload))
        self.positions[tag] = len(self.entries)
        self.entries.append(entry)
        self.header_size += record_size(tag_bytes)
        log.debug("queued %r (%d bytes)", tag, len(entry.payload))
        return entry
