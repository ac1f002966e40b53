from __future__ import annotations

import os
from typing import BinaryIO, Optional, Protocol, Union

from .errors import IOFailure


BufferLike = Union[bytes, bytearray, memoryview]


class RandomAccessStream(Protocol):
    """Uniform read/seek/tell/size access over a backing medium.

    Implementations must agree on observable behaviour for equal content:
    ``seek`` clamps to ``[0, get_size()]`` and returns the new position,
    ``read`` past the end returns ``b""``.
    """

    def read(self, size: int) -> bytes: ...

    def seek(self, offset: int) -> int: ...

    def tell(self) -> int: ...

    def get_size(self) -> int: ...


def _clamp(offset: int, size: int) -> int:
    if offset < 0:
        return 0
    return offset if offset < size else size


class MemoryStream:
    """Read-only cursor over a caller-owned buffer. The buffer is never copied."""

    def __init__(self, data: BufferLike, size: Optional[int] = None):
        view = memoryview(data)
        if view.ndim != 1 or view.itemsize != 1:
            view = view.cast("B")
        if size is None:
            size = len(view)
        if size < 0 or size > len(view):
            raise ValueError("size exceeds buffer length")
        self._view = view[:size]
        self._size = size
        self._offset = 0

    def read(self, size: int) -> bytes:
        if size < 0:
            size = self._size - self._offset
        count = min(size, self._size - self._offset)
        if count <= 0:
            return b""
        out = self._view[self._offset : self._offset + count].tobytes()
        self._offset += count
        return out

    def seek(self, offset: int) -> int:
        self._offset = _clamp(offset, self._size)
        return self._offset

    def tell(self) -> int:
        return self._offset

    def get_size(self) -> int:
        return self._size


class FileStream:
    """Exclusive owner of one open file handle.

    The handle is released exactly once by :meth:`close` (also run by the
    context manager and when construction fails). Size is always taken from
    the OS, never cached.
    """

    def __init__(self, path: str):
        self.path = path
        self.f: Optional[BinaryIO] = None
        try:
            self.f = open(path, "rb")
        except OSError as exc:
            raise IOFailure(f"cannot open {path}: {exc}") from exc

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    @property
    def closed(self) -> bool:
        return self.f is None

    def _handle(self) -> BinaryIO:
        if self.f is None:
            raise IOFailure(f"stream for {self.path} is closed")
        return self.f

    def read(self, size: int) -> bytes:
        f = self._handle()
        try:
            if size < 0:
                return f.read()
            return f.read(size)
        except OSError as exc:
            raise IOFailure(f"read failed on {self.path}: {exc}") from exc

    def seek(self, offset: int) -> int:
        f = self._handle()
        try:
            return f.seek(_clamp(offset, self.get_size()), os.SEEK_SET)
        except OSError as exc:
            raise IOFailure(f"seek failed on {self.path}: {exc}") from exc

    def tell(self) -> int:
        f = self._handle()
        try:
            return f.tell()
        except OSError as exc:
            raise IOFailure(f"tell failed on {self.path}: {exc}") from exc

    def get_size(self) -> int:
        f = self._handle()
        try:
            return os.fstat(f.fileno()).st_size
        except OSError as exc:
            raise IOFailure(f"stat failed on {self.path}: {exc}") from exc


def read_exact(stream: RandomAccessStream, n: int) -> bytes:
    b = stream.read(n)
    if len(b) != n:
        raise IOFailure(f"short read: wanted {n} bytes, got {len(b)}")
    return b
