from __future__ import annotations

import errno
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from ugrpack.errors import IOFailure
from ugrpack.stream import FileStream, MemoryStream, read_exact


class MemoryStreamTests(unittest.TestCase):
    def test_read_advances_and_stops_at_end(self):
        s = MemoryStream(b"abcdef")
        self.assertEqual(s.get_size(), 6)
        self.assertEqual(s.read(4), b"abcd")
        self.assertEqual(s.tell(), 4)
        self.assertEqual(s.read(10), b"ef")
        self.assertEqual(s.tell(), 6)
        self.assertEqual(s.read(1), b"")
        self.assertEqual(s.tell(), 6)

    def test_seek_clamps(self):
        s = MemoryStream(b"abcdef")
        self.assertEqual(s.seek(3), 3)
        self.assertEqual(s.seek(100), 6)
        self.assertEqual(s.read(1), b"")
        self.assertEqual(s.seek(-5), 0)
        self.assertEqual(s.read(2), b"ab")

    def test_explicit_size_limits_view(self):
        s = MemoryStream(b"abcdef", 3)
        self.assertEqual(s.get_size(), 3)
        self.assertEqual(s.read(10), b"abc")
        with self.assertRaises(ValueError):
            MemoryStream(b"abc", 4)

    def test_wraps_without_copying(self):
        buf = bytearray(b"xxxx")
        s = MemoryStream(buf)
        buf[0:2] = b"ab"
        self.assertEqual(s.read(4), b"abxx")


class FileStreamTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.path = Path(self.tmp.name) / "data.bin"
        self.content = os.urandom(300)
        self.path.write_bytes(self.content)

    def test_matches_memory_stream(self):
        ops = [("read", 10), ("seek", 250), ("read", 100), ("read", 5), ("seek", -3), ("read", 1),
               ("seek", 1000), ("read", 4), ("seek", 299), ("read", 2), ("seek", 0), ("read", 300)]
        mem = MemoryStream(self.content)
        with FileStream(str(self.path)) as fs:
            self.assertEqual(fs.get_size(), mem.get_size())
            for op, arg in ops:
                self.assertEqual(getattr(fs, op)(arg), getattr(mem, op)(arg), f"{op}({arg})")
                self.assertEqual(fs.tell(), mem.tell())

    def test_size_comes_from_os(self):
        with FileStream(str(self.path)) as fs:
            self.assertEqual(fs.get_size(), 300)
            with open(self.path, "ab") as fh:
                fh.write(b"more")
            self.assertEqual(fs.get_size(), 304)

    def test_open_missing_file(self):
        with self.assertRaises(IOFailure):
            FileStream(str(Path(self.tmp.name) / "missing.bin"))

    def test_close_is_idempotent(self):
        fs = FileStream(str(self.path))
        fs.close()
        fs.close()
        self.assertTrue(fs.closed)
        with self.assertRaises(IOFailure):
            fs.read(1)
        with self.assertRaises(IOFailure):
            fs.get_size()

    def test_os_read_error_differs_from_eof(self):
        with FileStream(str(self.path)) as fs:
            self.assertEqual(fs.seek(300), 300)
            self.assertEqual(fs.read(16), b"")
            fs.seek(0)
            real = fs.f
            with mock.patch.object(fs, "f", mock.Mock(wraps=real)) as handle:
                handle.read.side_effect = OSError(errno.EIO, "Input/output error")
                with self.assertRaises(IOFailure):
                    fs.read(16)
            self.assertIs(fs.f, real)
            self.assertEqual(fs.read(16), self.content[:16])

    def test_context_manager_releases_handle(self):
        with FileStream(str(self.path)) as fs:
            fh = fs.f
        self.assertTrue(fh.closed)
        self.assertTrue(fs.closed)


class ReadExactTests(unittest.TestCase):
    def test_short_read_raises(self):
        s = MemoryStream(b"abc")
        self.assertEqual(read_exact(s, 2), b"ab")
        with self.assertRaises(IOFailure):
            read_exact(s, 2)


if __name__ == "__main__":
    unittest.main()
