from __future__ import annotations

import io
import sqlite3
import zipfile
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .codec import ContentCodec
from .constants import CONTENTS_ENTRY, DB_SUFFIX, MANIFEST_ENTRY, PUBLICATION_ID
from .errors import CodecError, NotInitializedError, PackagingError
from .hashutil import sha1_hex, sha256_hex
from .keys import PublicationIdentity
from .manifest import parse_manifest
from .store import open_exported


@dataclass
class DocumentInfo:
    document_id: int
    meps_document_id: int
    title: str
    content_length: int
    content: bytes


@dataclass
class MediaInfo:
    multimedia_id: int
    mime_type: str
    caption: str
    file_path: str


@dataclass
class ViewItemInfo:
    view_item_id: int
    parent_id: int
    title: str
    child_schema_type: Optional[int]
    default_document_id: Optional[int]


class PublicationReader:
    """Open a ``.jwpub`` container, check its hashes and decode documents."""

    def __init__(self, source: Union[bytes, str]):
        self.source = source
        self.manifest: Dict[str, Any] = {}
        self.outer_names: List[str] = []
        self.contents: bytes = b""
        self.inner_names: List[str] = []
        self.db_bytes: bytes = b""
        self._inner: Optional[zipfile.ZipFile] = None
        self._conn: Optional[sqlite3.Connection] = None
        self._codec: Optional[ContentCodec] = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self._conn is not None:
            return
        try:
            if isinstance(self.source, (bytes, bytearray)):
                outer_src = io.BytesIO(bytes(self.source))
            else:
                outer_src = self.source
            with zipfile.ZipFile(outer_src) as outer:
                self.outer_names = outer.namelist()
                self.manifest = parse_manifest(outer.read(MANIFEST_ENTRY))
                self.contents = outer.read(CONTENTS_ENTRY)
            self._inner = zipfile.ZipFile(io.BytesIO(self.contents))
            self.inner_names = self._inner.namelist()
            self.db_bytes = self._inner.read(self.db_entry)
        except (OSError, KeyError, ValueError, zipfile.BadZipFile) as e:
            self.close()
            raise PackagingError(f"not a readable container: {e}") from e
        self._conn = open_exported(self.db_bytes)

    def close(self):
        if self._inner is not None:
            self._inner.close()
            self._inner = None
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise NotInitializedError("Container not open")
        return self._conn

    @property
    def db_entry(self) -> str:
        file_name = self.manifest.get("publication", {}).get("fileName")
        if file_name:
            return file_name
        return f"{self.manifest['publication']['symbol']}{DB_SUFFIX}"

    def problems(self) -> List[str]:
        """List every mismatch between the manifest and the packaged bytes."""
        self._require()
        out: List[str] = []
        if sorted(self.outer_names) != sorted([CONTENTS_ENTRY, MANIFEST_ENTRY]):
            out.append(f"outer archive entries {self.outer_names}")
        if self.manifest.get("hash") != sha256_hex(self.contents):
            out.append("contents hash mismatch")
        if self.manifest.get("expandedSize") != len(self.contents):
            out.append("contents size mismatch")
        if self.manifest["publication"].get("hash") != sha1_hex(self.db_bytes):
            out.append("database hash mismatch")
        media_count = self.query("SELECT COUNT(*) FROM Multimedia")[0][0]
        if len(self.inner_names) != 1 + media_count:
            out.append(f"contents has {len(self.inner_names)} entries for {media_count} media")
        return out

    def verify(self) -> bool:
        return not self.problems()

    def check(self) -> None:
        issues = self.problems()
        if issues:
            raise PackagingError(issues[0])

    def query(self, sql: str, params=()) -> List[tuple]:
        return list(self._require().execute(sql, tuple(params)))

    def identity(self) -> PublicationIdentity:
        rows = self.query(
            "SELECT MepsLanguageIndex, Symbol, Year, IssueTagNumber FROM Publication WHERE PublicationId = ?",
            (PUBLICATION_ID,),
        )
        if not rows:
            raise PackagingError("publication row missing")
        lang, symbol, year, issue = rows[0]
        return PublicationIdentity(int(lang), symbol, int(year), int(issue or 0))

    def title(self) -> str:
        return self.manifest["publication"].get("title", "")

    def documents(self) -> List[DocumentInfo]:
        return [
            DocumentInfo(*r)
            for r in self.query(
                "SELECT DocumentId, MepsDocumentId, Title, ContentLength, Content FROM Document ORDER BY DocumentId"
            )
        ]

    def media(self) -> List[MediaInfo]:
        return [
            MediaInfo(*r)
            for r in self.query("SELECT MultimediaId, MimeType, Caption, FilePath FROM Multimedia ORDER BY MultimediaId")
        ]

    def links(self) -> List[tuple]:
        """(DocumentId, MultimediaId) pairs in insertion order."""
        return self.query("SELECT DocumentId, MultimediaId FROM DocumentMultimedia ORDER BY DocumentMultimediaId")

    def view_items(self) -> List[ViewItemInfo]:
        return [
            ViewItemInfo(*r)
            for r in self.query(
                "SELECT PublicationViewItemId, ParentPublicationViewItemId, Title, ChildTemplateSchemaType, "
                "DefaultDocumentId FROM PublicationViewItem ORDER BY PublicationViewItemId"
            )
        ]

    def document_text(self, document_id: int) -> str:
        rows = self.query("SELECT Content FROM Document WHERE DocumentId = ?", (document_id,))
        if not rows or rows[0][0] is None:
            raise CodecError(f"document {document_id} has no content")
        if self._codec is None:
            self._codec = ContentCodec.for_identity(self.identity())
        return self._codec.decrypt(bytes(rows[0][0]))

    def media_bytes(self, name: str) -> bytes:
        if self._inner is None:
            raise NotInitializedError("Container not open")
        return self._inner.read(name)
