from __future__ import annotations

import json
import os
import tempfile
import unittest
from pathlib import Path

from ugrpack.archive import Archive
from ugrpack.builder import ArchiveBuilder
from ugrpack.constants import PREAMBLE_SIZE
from ugrpack.errors import CorruptHeader, DuplicateTag, ManifestError, SourceUnavailable
from ugrpack.index import (
    CURRENT_VERSION,
    ArchiveIndexReader,
    IndexRecord,
    pack_preamble,
    pack_record,
    read_preamble,
    validate_ranges,
)
from ugrpack.loader import FileSourceLoader, MemorySourceLoader, make_loader
from ugrpack.manifest import manifest_base_dir, read_manifest
from ugrpack.pathutil import tag_to_relpath


def _header(records):
    body = b"".join(pack_record(tag.encode("utf-8"), start, end) for tag, start, end in records)
    return pack_preamble(CURRENT_VERSION, PREAMBLE_SIZE + len(body)) + body


class IndexReaderTests(unittest.TestCase):
    def test_list_reads_header_only(self):
        arc = Archive(ArchiveBuilder(MemorySourceLoader({"1": b"\x00" * 64, "2": b"x"}))).build({"first": "1", "second": "2"})
        # Payload bytes full of NULs must not matter: only the header is scanned
        self.assertEqual(ArchiveIndexReader().list(arc.content_header), ["first", "second"])

    def test_list_skips_offset_fields(self):
        # Offsets chosen so their bytes are all non-zero; they must never leak into tags
        header = _header([("a", 0x4141414141414141, 0x4242424242424242), ("b", 0x0101010101010101, 0x0202020202020202)])
        self.assertEqual(ArchiveIndexReader().list(header), ["a", "b"])

    def test_entries_with_ranges(self):
        header = _header([("a", 60, 64), ("b", 65, 64), ("c", 65, 70)])
        # header size: 32 + 3 * 18
        self.assertEqual(len(header), 86)
        records = ArchiveIndexReader().entries(header)
        self.assertEqual(records[0], IndexRecord("a", 60, 64))
        self.assertEqual([r.length for r in records], [5, 0, 6])

    def test_entries_rejects_truncated_record(self):
        header = _header([("abc", 54, 60)])
        truncated = pack_preamble(CURRENT_VERSION, len(header) - 4) + header[PREAMBLE_SIZE:-4]
        with self.assertRaises(CorruptHeader):
            ArchiveIndexReader().entries(truncated)

    def test_entries_rejects_size_mismatch(self):
        header = _header([("abc", 54, 60)])
        with self.assertRaises(CorruptHeader):
            ArchiveIndexReader().entries(header + b"\x00")

    def test_read_preamble(self):
        pre = read_preamble(pack_preamble(CURRENT_VERSION, 99))
        self.assertEqual(pre.header_size, 99)
        self.assertEqual(pre.version, CURRENT_VERSION)
        with self.assertRaises(CorruptHeader):
            read_preamble(b"NotUgrPack" + bytes(22))
        with self.assertRaises(CorruptHeader):
            read_preamble(pack_preamble(CURRENT_VERSION, 10))
        with self.assertRaises(CorruptHeader):
            read_preamble(b"BinUgrPack")

    def test_validate_ranges(self):
        validate_ranges([IndexRecord("a", 50, 54), IndexRecord("b", 55, 54), IndexRecord("c", 55, 55)], 50, 56)
        with self.assertRaises(CorruptHeader):
            validate_ranges([IndexRecord("a", 51, 54)], 50)
        with self.assertRaises(CorruptHeader):
            validate_ranges([IndexRecord("a", 50, 54), IndexRecord("b", 56, 60)], 50)
        with self.assertRaises(CorruptHeader):
            validate_ranges([IndexRecord("a", 50, 54), IndexRecord("a", 55, 60)], 50)
        with self.assertRaises(CorruptHeader):
            validate_ranges([IndexRecord("a", 50, 47)], 50)
        with self.assertRaises(CorruptHeader):
            validate_ranges([IndexRecord("a", 50, 54)], 50, 54)


class ManifestTests(unittest.TestCase):
    def test_mapping_inline_and_file(self):
        doc = {"z": "z.bin", "a": "a.bin", "m": "m.bin"}
        self.assertEqual(list(read_manifest(doc)), ["z", "a", "m"])
        self.assertEqual(list(read_manifest(json.dumps(doc))), ["z", "a", "m"])
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "res.json"
            path.write_text(json.dumps(doc), encoding="utf-8")
            self.assertEqual(read_manifest(str(path)), doc)
            self.assertEqual(read_manifest(path), doc)
            self.assertEqual(manifest_base_dir(str(path)), os.path.abspath(tmp))
        self.assertIsNone(manifest_base_dir(doc))
        self.assertIsNone(manifest_base_dir(json.dumps(doc)))

    def test_rejects_bad_documents(self):
        with self.assertRaises(ManifestError):
            read_manifest("[1, 2, 3]")
        with self.assertRaises(ManifestError):
            read_manifest('{"a": 5}')
        with self.assertRaises(ManifestError):
            read_manifest("not json at all")
        with self.assertRaises(ManifestError):
            read_manifest("missing.json")
        with self.assertRaises(DuplicateTag):
            read_manifest('{"a": "1", "b": "2", "a": "3"}')


class LoaderTests(unittest.TestCase):
    def test_file_loader_resolves_against_base_dir(self):
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "x.txt").write_bytes(b"payload")
            loader = FileSourceLoader(base_dir=tmp)
            self.assertEqual(loader.load("x.txt"), b"payload")
            self.assertEqual(loader.load(str(Path(tmp) / "x.txt")), b"payload")
            (Path(tmp) / "empty").write_bytes(b"")
            self.assertEqual(loader.load("empty"), b"")
            with self.assertRaises(SourceUnavailable):
                loader.load("nope.txt")

    def test_memory_loader_and_selection(self):
        loader = make_loader("memory", sources={"k": b"v"})
        self.assertIsInstance(loader, MemorySourceLoader)
        self.assertEqual(loader.load("k"), b"v")
        with self.assertRaises(SourceUnavailable):
            loader.load("other")
        self.assertIsInstance(make_loader("file"), FileSourceLoader)
        with self.assertRaises(ValueError):
            make_loader("ftp")


class PathUtilTests(unittest.TestCase):
    def test_tag_to_relpath(self):
        self.assertEqual(tag_to_relpath("a/b/c.txt"), "a/b/c.txt")
        self.assertEqual(tag_to_relpath("\\lead\\./x"), "lead/x")
        with self.assertRaises(ValueError):
            tag_to_relpath("../escape")
        with self.assertRaises(ValueError):
            tag_to_relpath("/./")
        self.assertEqual(tag_to_relpath("textures\\grass.png"), "textures/grass.png")
        self.assertEqual(tag_to_relpath("//root//file"), "root/file")
        with self.assertRaises(ValueError):
            tag_to_relpath("a\\..\\b")


if __name__ == "__main__":
    unittest.main()
