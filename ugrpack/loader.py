from __future__ import annotations

import logging
import os
from typing import Dict, Mapping, Optional, Protocol

from .errors import IOFailure, SourceUnavailable
from .stream import FileStream, read_exact


log = logging.getLogger(__name__)


class SourceLoader(Protocol):
    """Resolves one manifest locator to the raw bytes it names."""

    def load(self, locator: str) -> bytes: ...


class FileSourceLoader:
    """Locators are filesystem paths; relative ones resolve against ``base_dir``."""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = base_dir

    def resolve(self, locator: str) -> str:
        if self.base_dir and not os.path.isabs(locator):
            return os.path.join(self.base_dir, locator)
        return locator

    def load(self, locator: str) -> bytes:
        path = self.resolve(locator)
        try:
            with FileStream(path) as fs:
                size = fs.get_size()
                data = read_exact(fs, size)
        except IOFailure as exc:
            raise SourceUnavailable(f"cannot load {locator!r}: {exc}") from exc
        log.debug("loaded %s (%d bytes)", path, len(data))
        return data


class MemorySourceLoader:
    """Locators are keys into an in-memory mapping of byte strings."""

    def __init__(self, sources: Mapping[str, bytes]):
        self.sources = sources

    def load(self, locator: str) -> bytes:
        try:
            return bytes(self.sources[locator])
        except KeyError:
            raise SourceUnavailable(f"no in-memory source named {locator!r}") from None


_LOADERS: Dict[str, type] = {
    "file": FileSourceLoader,
    "memory": MemorySourceLoader,
}


def make_loader(kind: str = "file", **options) -> SourceLoader:
    """Instantiate the loader registered under ``kind`` with ``options``."""
    try:
        cls = _LOADERS[kind]
    except KeyError:
        raise ValueError(f"unknown loader kind: {kind!r} (expected one of {sorted(_LOADERS)})") from None
    return cls(**options)
