from __future__ import annotations

import hashlib
import io
import json
import os
import tempfile
import unittest
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from unittest import mock

from jwpub.errors import PackagingError
from jwpub.manifest import format_timestamp
from jwpub.packager import ArchivePackager, write_container
from jwpub.reader import PublicationReader
from jwpub.store import SchemaStore


WHEN = datetime(2024, 5, 1, 12, 30, 15, 250000, tzinfo=timezone.utc)


def _db_bytes(*media_names: str) -> bytes:
    store = SchemaStore()
    store.init_schema()
    for i, name in enumerate(media_names):
        store.insert_multimedia_row(i, "image/png", name, name)
    try:
        return store.export()
    finally:
        store.close()


def _packager(**kw) -> ArchivePackager:
    args = dict(title="Manual", symbol="tt", year=2024, language_index=1)
    args.update(kw)
    return ArchivePackager(**args)


def _rewrite_outer(data: bytes, **replacements: bytes) -> bytes:
    src = zipfile.ZipFile(io.BytesIO(data))
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as dst:
        for name in src.namelist():
            dst.writestr(name, replacements.get(name.replace(".", "_"), src.read(name)))
    return buf.getvalue()


class TimestampTests(unittest.TestCase):
    def test_format(self):
        self.assertEqual(format_timestamp(WHEN), "2024-05-01T12:30:15.250Z")
        self.assertEqual(format_timestamp(datetime(2024, 1, 2, 3, 4, 5)), "2024-01-02T03:04:05.000Z")


class ArchivePackagerTests(unittest.TestCase):
    def setUp(self):
        self.db = _db_bytes()

    def test_structure_and_hashes(self):
        media = [("a.png", b"\x89PNG" + os.urandom(64)), ("b.mp3", os.urandom(128))]
        res = _packager().package(self.db, media, timestamp=WHEN)

        with zipfile.ZipFile(io.BytesIO(res.data)) as outer:
            self.assertEqual(sorted(outer.namelist()), ["contents", "manifest.json"])
            contents = outer.read("contents")
            manifest = json.loads(outer.read("manifest.json").decode("utf-8"))
        self.assertEqual(contents, res.contents)
        with zipfile.ZipFile(io.BytesIO(contents)) as inner:
            self.assertEqual(inner.namelist(), ["tt.db", "a.png", "b.mp3"])
            self.assertEqual(inner.read("tt.db"), self.db)
            self.assertEqual(inner.read("b.mp3"), media[1][1])
            self.assertTrue(all(i.compress_type == zipfile.ZIP_DEFLATED for i in inner.infolist()))

        self.assertEqual(manifest["hash"], hashlib.sha256(contents).hexdigest())
        self.assertEqual(manifest["expandedSize"], len(contents))
        self.assertEqual(manifest["publication"]["hash"], hashlib.sha1(self.db).hexdigest())

    def test_manifest_fields(self):
        res = _packager().package(self.db, timestamp=WHEN)
        m = json.loads(zipfile.ZipFile(io.BytesIO(res.data)).read("manifest.json"))
        self.assertEqual(m["name"], "tt.jwpub")
        self.assertEqual(m["timestamp"], "2024-05-01T12:30:15.250Z")
        self.assertEqual(m["version"], 1)
        self.assertEqual(m["contentFormat"], "z-a")
        self.assertIs(m["htmlValidated"], False)
        self.assertEqual(m["mepsPlatformVersion"], 2.1)
        self.assertEqual(m["mepsBuildNumber"], 12345)
        pub = m["publication"]
        self.assertEqual(pub["fileName"], "tt.db")
        self.assertEqual(pub["type"], 1)
        for k in ("title", "shortTitle", "displayTitle"):
            self.assertEqual(pub[k], "Manual")
        for k in ("symbol", "uniqueEnglishSymbol", "rootSymbol"):
            self.assertEqual(pub[k], "tt")
        self.assertEqual(pub["language"], 1)
        self.assertEqual(pub["year"], 2024)
        self.assertEqual(pub["rootYear"], 2024)
        self.assertEqual(pub["timestamp"], m["timestamp"])
        self.assertEqual(pub["publicationType"], "Manual/Guidelines")
        self.assertEqual(pub["categories"], ["manual"])
        self.assertEqual(pub["images"], [])
        self.assertEqual(pub["attributes"], [])
        self.assertEqual(list(m)[:3], ["name", "hash", "timestamp"])

    def test_entry_counts(self):
        for n in (0, 1, 5):
            media = [(f"m{i}.jpg", bytes([i]) * 10) for i in range(n)]
            res = _packager().package(self.db, media, timestamp=WHEN)
            with zipfile.ZipFile(io.BytesIO(res.contents)) as inner:
                self.assertEqual(len(inner.namelist()), 1 + n)
            with zipfile.ZipFile(io.BytesIO(res.data)) as outer:
                self.assertEqual(len(outer.namelist()), 2)

    def test_base_name_override(self):
        res = _packager(base_name="custom").package(self.db, timestamp=WHEN)
        self.assertEqual(res.manifest.name, "custom.jwpub")
        self.assertEqual(res.manifest.publication.fileName, "custom.db")
        self.assertEqual(zipfile.ZipFile(io.BytesIO(res.contents)).namelist(), ["custom.db"])

    def test_bad_media_names(self):
        p = _packager()
        for media in (
            [("dir/a.png", b"x")],
            [("..", b"x")],
            [("", b"x")],
            [("a.png", b"x"), ("a.png", b"y")],
            [("tt.db", b"x")],
        ):
            with self.assertRaises(PackagingError):
                p.package(self.db, media, timestamp=WHEN)

    def test_write_failure_is_packaging_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            missing = Path(tmp) / "nope" / "out.jwpub"
            with self.assertRaises(PackagingError):
                write_container(str(missing), b"data")
            self.assertFalse(missing.exists())
            ok = Path(tmp) / "out.jwpub"
            write_container(str(ok), b"data")
            self.assertEqual(ok.read_bytes(), b"data")
            self.assertEqual(os.listdir(tmp), ["out.jwpub"])

    def test_package_to_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "tt.jwpub"
            res = _packager().package_to_file(str(path), self.db, [("a.png", b"A")], timestamp=WHEN)
            self.assertEqual(path.read_bytes(), res.data)
            self.assertEqual(res.data, _packager().finalize(self.db, [("a.png", b"A")], timestamp=WHEN))

            missing = Path(tmp) / "nope" / "tt.jwpub"
            with self.assertRaises(PackagingError):
                _packager().package_to_file(str(missing), self.db, timestamp=WHEN)

            bad = Path(tmp) / "bad.jwpub"
            with self.assertRaises(PackagingError):
                _packager().package_to_file(str(bad), self.db, [("../a.png", b"A")], timestamp=WHEN)
            self.assertFalse(bad.exists())

    def test_zip_failure_is_packaging_error(self):
        for exc in (OSError("disk gone"), ValueError("bad entry"), zipfile.BadZipFile("broken")):
            with mock.patch("jwpub.packager._write_zip", side_effect=exc):
                with self.assertRaises(PackagingError) as cm:
                    _packager().package(self.db, timestamp=WHEN)
            self.assertIs(cm.exception.__cause__, exc)


class ReaderVerifyTests(unittest.TestCase):
    def setUp(self):
        self.data = _packager().finalize(_db_bytes("a.png"), [("a.png", b"A")], timestamp=WHEN)

    def test_verify_ok(self):
        with PublicationReader(self.data) as r:
            self.assertEqual(r.problems(), [])
            r.check()

    def test_tampered_manifest_hash(self):
        m = json.loads(zipfile.ZipFile(io.BytesIO(self.data)).read("manifest.json"))
        m["hash"] = "0" * 64
        bad = _rewrite_outer(self.data, manifest_json=json.dumps(m).encode("utf-8"))
        with PublicationReader(bad) as r:
            self.assertFalse(r.verify())
            self.assertIn("contents hash mismatch", r.problems())
            with self.assertRaises(PackagingError):
                r.check()

    def test_tampered_db_hash(self):
        m = json.loads(zipfile.ZipFile(io.BytesIO(self.data)).read("manifest.json"))
        m["publication"]["hash"] = "f" * 40
        bad = _rewrite_outer(self.data, manifest_json=json.dumps(m).encode("utf-8"))
        with PublicationReader(bad) as r:
            self.assertEqual(r.problems(), ["database hash mismatch"])

    def test_not_a_container(self):
        with self.assertRaises(PackagingError):
            PublicationReader(b"not a zip").open()


if __name__ == "__main__":
    unittest.main()
