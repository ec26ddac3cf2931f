from __future__ import annotations

import io
import unittest
import zipfile
from datetime import datetime, timezone
from unittest import mock

from jwpub.builder import IdSequences, PublicationBuilder
from jwpub.errors import CodecError, NotInitializedError, PackagingError
from jwpub.keys import PublicationIdentity, derive_key_material
from jwpub.reader import PublicationReader


IDENT = PublicationIdentity(language_index=1, symbol="tt", year=2024)
WHEN = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def _started(title: str = "Manual", identity: PublicationIdentity = IDENT) -> PublicationBuilder:
    b = PublicationBuilder()
    b.initialize(identity)
    b.insert_publication(title)
    return b


def _inner_names(data: bytes):
    with zipfile.ZipFile(io.BytesIO(data)) as outer:
        contents = outer.read("contents")
    with zipfile.ZipFile(io.BytesIO(contents)) as inner:
        return inner.namelist()


class IdSequenceTests(unittest.TestCase):
    def test_sequences_are_values(self):
        s0 = IdSequences()
        i, s1 = s0.next_document()
        self.assertEqual(i, 0)
        self.assertEqual(s0.document, -1)
        j, s2 = s1.next_media()
        self.assertEqual(j, 0)
        self.assertEqual((s2.document, s2.media), (0, 0))


class ScenarioTests(unittest.TestCase):
    def test_single_document_no_media(self):
        b = _started("Manual")
        self.assertEqual(b.insert_document("Article", "<html>Hi</html>"), 0)
        data = b.finalize(timestamp=WHEN)

        self.assertEqual(_inner_names(data), ["tt.db"])
        with PublicationReader(data) as r:
            self.assertTrue(r.verify())
            pub = r.manifest["publication"]
            self.assertEqual(pub["title"], "Manual")
            self.assertEqual(pub["symbol"], "tt")
            docs = r.documents()
            self.assertEqual([(d.document_id, d.meps_document_id, d.title) for d in docs], [(0, 12000001, "Article")])
            self.assertEqual(docs[0].content_length, len("<html>Hi</html>"))
            self.assertEqual(r.document_text(0), "<html>Hi</html>")
            self.assertEqual(r.query("SELECT TextUnitId, Type, Id FROM TextUnit"), [(1, "Document", 0)])
            self.assertEqual(
                r.query("SELECT PublicationViewItemDocumentId, PublicationViewItemId, DocumentId FROM PublicationViewItemDocument"),
                [(1, 2, 0)],
            )
            items = r.view_items()
            self.assertEqual([(v.view_item_id, v.parent_id, v.title) for v in items], [(1, -1, "Manual"), (2, 1, "Article")])
            self.assertEqual(items[0].child_schema_type, 0)
            self.assertEqual(items[0].default_document_id, -1)
            self.assertIsNone(items[1].child_schema_type)
            self.assertEqual(items[1].default_document_id, 0)
            self.assertEqual(
                r.query("SELECT PublicationViewItemFieldId, PublicationViewItemId, Value, Type FROM PublicationViewItemField ORDER BY 1"),
                [(1, 1, "Manual", "name"), (2, 2, "Article", "name")],
            )

    def test_media_before_document_links_to_call_time_document(self):
        # media inserted before its document's id exists captures the previous id
        b = _started()
        with self.assertLogs("jwpub.builder", level="WARNING"):
            m0 = b.insert_media("a.png", "image/png", b"A")
        d0 = b.insert_document("One", "<p>1</p>")
        m1 = b.insert_media("b.png", "image/png", b"B")
        d1 = b.insert_document("Two", "<p>2</p>")
        self.assertEqual((d0, d1), (0, 1))
        self.assertEqual((m0, m1), (0, 1))
        data = b.finalize(timestamp=WHEN)

        with PublicationReader(data) as r:
            self.assertEqual(r.links(), [(-1, 0), (0, 1)])
            self.assertEqual([m.multimedia_id for m in r.media()], [0, 1])
        self.assertEqual(sorted(_inner_names(data)), ["a.png", "b.png", "tt.db"])

    def test_add_document_links_media_to_owner(self):
        b = _started()
        d0 = b.add_document("One", "<p>1</p>", [("a.png", "image/png", b"A")])
        d1 = b.add_document("Two", "<p>2</p>", [("b.png", "image/png", b"B"), ("c.gif", "image/gif", b"C")])
        self.assertEqual((d0, d1), (0, 1))
        data = b.finalize(timestamp=WHEN)

        with PublicationReader(data) as r:
            self.assertEqual(r.links(), [(0, 0), (1, 1), (1, 2)])
            self.assertEqual([d.document_id for d in r.documents()], [0, 1])
            self.assertEqual(r.media_bytes("c.gif"), b"C")
            self.assertTrue(r.verify())

    def test_explicit_document_id(self):
        b = _started()
        doc = b.begin_document()
        self.assertEqual(b.begin_document(), doc)
        b.insert_media("a.png", "image/png", b"A", document_id=doc)
        self.assertEqual(b.insert_document("One", "x"), doc)
        b.insert_media("late.png", "image/png", b"L", document_id=0)
        self.assertEqual([(m.id, m.document_id) for m in b.media], [(0, 0), (1, 0)])
        b.close()

    def test_media_after_document_links_to_it(self):
        b = _started()
        b.insert_document("One", "x")
        b.insert_media("a.png", "image/png", b"A")
        self.assertEqual(b.media[0].document_id, 0)
        b.close()

    def test_zero_documents(self):
        b = _started("Empty")
        data = b.finalize(timestamp=WHEN)
        self.assertEqual(_inner_names(data), ["tt.db"])
        with PublicationReader(data) as r:
            self.assertTrue(r.verify())
            self.assertEqual([(v.view_item_id, v.parent_id) for v in r.view_items()], [(1, -1)])
            self.assertEqual(r.documents(), [])
            self.assertEqual(r.media(), [])
            self.assertEqual(r.links(), [])
            self.assertEqual(r.query("SELECT COUNT(*) FROM Publication")[0][0], 1)
            self.assertEqual(r.query("SELECT COUNT(*) FROM RefPublication")[0][0], 1)


class BuilderBehaviourTests(unittest.TestCase):
    def test_ids_independent_of_interleaving(self):
        b = _started()
        ids = []
        ids.append(("m", b.insert_media("1.png", "image/png", b"1")))
        ids.append(("m", b.insert_media("2.png", "image/png", b"2")))
        ids.append(("d", b.insert_document("A", "a")))
        ids.append(("m", b.insert_media("3.png", "image/png", b"3")))
        ids.append(("d", b.insert_document("B", "b")))
        ids.append(("d", b.insert_document("C", "c")))
        ids.append(("m", b.insert_media("4.png", "image/png", b"4")))
        self.assertEqual([i for k, i in ids if k == "d"], [0, 1, 2])
        self.assertEqual([i for k, i in ids if k == "m"], [0, 1, 2, 3])
        self.assertEqual((b.sequences.document, b.sequences.media), (2, 3))
        b.close()

    def test_key_material_derived_once(self):
        b = _started()
        self.assertEqual(b.key_material, derive_key_material(IDENT))
        b.insert_document("A", "a")
        b.insert_document("B", "b")
        self.assertEqual(b.key_material, derive_key_material(IDENT))
        b.close()

    def test_issue_tag_publication_decrypts(self):
        ident = PublicationIdentity(language_index=0, symbol="w", year=2024, issue_tag=20240100)
        b = _started("Issue", ident)
        b.insert_document("A", "<p>issue body</p>")
        data = b.finalize(timestamp=WHEN)
        with PublicationReader(data) as r:
            self.assertEqual(r.identity(), ident)
            self.assertEqual(r.document_text(0), "<p>issue body</p>")

    def test_calls_before_initialize(self):
        b = PublicationBuilder()
        with self.assertRaises(NotInitializedError):
            b.insert_publication("Manual", IDENT)
        with self.assertRaises(NotInitializedError):
            b.insert_document("A", "a")
        with self.assertRaises(NotInitializedError):
            b.insert_media("a.png", "image/png", b"")
        with self.assertRaises(NotInitializedError):
            b.finalize()

    def test_document_before_publication(self):
        b = PublicationBuilder()
        b.initialize(IDENT)
        with self.assertRaises(NotInitializedError):
            b.insert_document("A", "a")
        b.close()

    def test_calls_after_finalize(self):
        b = _started()
        b.insert_document("A", "a")
        b.finalize(timestamp=WHEN)
        with self.assertRaises(NotInitializedError):
            b.insert_document("B", "b")
        with self.assertRaises(NotInitializedError):
            b.insert_media("a.png", "image/png", b"")
        with self.assertRaises(NotInitializedError):
            b.insert_publication("Again")
        with self.assertRaises(NotInitializedError):
            b.finalize()

    def test_close_releases_store(self):
        with _started() as b:
            store = b.store
            b.insert_document("A", "a")
        self.assertIsNone(b.store)
        self.assertFalse(store.is_open)
        with self.assertRaises(NotInitializedError):
            b.insert_document("B", "b")

    def test_build_number_flows_to_manifest_and_rows(self):
        b = PublicationBuilder(build_number=777)
        b.initialize(IDENT)
        b.insert_publication("Manual")
        data = b.finalize(timestamp=WHEN)
        with PublicationReader(data) as r:
            self.assertEqual(r.manifest["mepsBuildNumber"], 777)
            self.assertEqual(r.query("SELECT MepsBuildNumber FROM Publication"), [(777,)])

    def test_unencodable_body_keeps_id_sequence(self):
        b = _started()
        with self.assertRaises(CodecError):
            b.insert_document("bad", "\ud800")
        self.assertEqual(b.insert_document("ok", "x"), 0)

        doc = b.begin_document()
        b.insert_media("a.png", "image/png", b"A", document_id=doc)
        with self.assertRaises(CodecError):
            b.insert_document("bad", "\udfff")
        self.assertEqual(b.insert_document("owner", "y"), doc)
        data = b.finalize(timestamp=WHEN)
        with PublicationReader(data) as r:
            self.assertEqual([d.document_id for d in r.documents()], [0, 1])
            self.assertEqual(r.links(), [(1, 0)])

    def test_bad_media_names_rejected_before_insert(self):
        b = _started()
        b.add_document("One", "<p>1</p>", [("image001.png", "image/png", b"1")])
        for name in ("image001.png", "tt.db", "dir/x.png", ".."):
            with self.assertRaises(PackagingError):
                b.insert_media(name, "image/png", b"2")
        with self.assertRaises(PackagingError):
            b.add_document("Two", "<p>2</p>", [("image001.png", "image/png", b"2")])
        with self.assertRaises(PackagingError):
            b.add_document("Two", "<p>2</p>", [("x.png", "image/png", b"x"), ("x.png", "image/png", b"y")])
        self.assertEqual([m.id for m in b.media], [0])
        self.assertEqual(b.sequences.media, 0)
        self.assertEqual(b.insert_document("Two", "<p>2</p>"), 1)
        data = b.finalize(timestamp=WHEN)
        with PublicationReader(data) as r:
            self.assertTrue(r.verify())
            self.assertEqual(r.links(), [(0, 0)])

    def test_packaging_failure_closes_store(self):
        b = _started()
        b.insert_document("A", "a")
        with mock.patch("jwpub.packager._write_zip", side_effect=OSError("disk gone")):
            with self.assertRaises(PackagingError):
                b.finalize(timestamp=WHEN)
        self.assertIsNone(b.store)
        self.assertIsNone(b.last_result)
        with self.assertRaises(NotInitializedError):
            b.insert_document("B", "b")

    def test_same_timestamp_same_bytes(self):
        def build():
            b = _started()
            b.add_document("A", "<p>a</p>", [("a.png", "image/png", b"A")])
            return b.finalize(timestamp=WHEN)

        self.assertEqual(build(), build())


if __name__ == "__main__":
    unittest.main()
