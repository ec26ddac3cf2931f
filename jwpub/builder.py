from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from .codec import ContentCodec
from .constants import (
    DB_SUFFIX,
    DEFAULT_BUILD_NUMBER,
    DEFAULT_LOCALE,
    MEPS_DOCUMENT_ID_BASE,
    NO_DOCUMENT_ID,
    ROOT_PARENT_ID,
    ROOT_VIEW_ITEM_ID,
)
from .errors import NotInitializedError, PackagingError
from .keys import KeyMaterial, PublicationIdentity, derive_key_material
from .packager import ArchivePackager, PackageResult
from .pathutil import bare_name
from .records import PublicationRow
from .store import PUBLICATION_TABLES, SchemaStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdSequences:
    """Last allocated document/media ids; -1 means nothing allocated yet."""

    document: int = NO_DOCUMENT_ID
    media: int = NO_DOCUMENT_ID
    reserved_document: Optional[int] = None

    def next_document(self) -> Tuple[int, "IdSequences"]:
        i = self.document + 1
        return i, replace(self, document=i)

    def next_media(self) -> Tuple[int, "IdSequences"]:
        i = self.media + 1
        return i, replace(self, media=i)

    @property
    def current_document(self) -> int:
        if self.reserved_document is not None:
            return self.reserved_document
        return self.document


@dataclass
class MediaEntry:
    id: int
    name: str
    mime_type: str
    data: bytes
    document_id: int


@dataclass
class DocumentEntry:
    id: int
    title: str
    encrypted_body: bytes
    plaintext_length: int


class PublicationBuilder:
    """Drive one publication from empty store to container bytes.

    Lifecycle::

        b = PublicationBuilder()
        b.initialize(identity)
        b.insert_publication("Title")
        b.add_document("Chapter", "<html>...</html>", media=[("a.png", "image/png", data)])
        data = b.finalize()

    Calls are order sensitive and must not overlap. After ``finalize()`` or
    ``close()`` every call raises :class:`NotInitializedError`.
    """

    def __init__(
        self,
        build_number: int = DEFAULT_BUILD_NUMBER,
        compress_level: Optional[int] = None,
        locale: str = DEFAULT_LOCALE,
    ):
        self.build_number = build_number
        self.compress_level = compress_level
        self.locale = locale
        self.store: Optional[SchemaStore] = None
        self.identity: Optional[PublicationIdentity] = None
        self.key_material: Optional[KeyMaterial] = None
        self.title: Optional[str] = None
        self.sequences = IdSequences()
        self.documents: List[DocumentEntry] = []
        self.media: List[MediaEntry] = []
        self.last_result: Optional[PackageResult] = None
        self._codec: Optional[ContentCodec] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _require_store(self) -> SchemaStore:
        if self.store is None or not self.store.is_open:
            raise NotInitializedError("Publication builder not initialized")
        return self.store

    def _require_publication(self) -> Tuple[SchemaStore, PublicationIdentity, ContentCodec]:
        store = self._require_store()
        if self.identity is None or self._codec is None:
            raise NotInitializedError("insert_publication() must run before documents are added")
        return store, self.identity, self._codec

    def initialize(self, identity: PublicationIdentity) -> None:
        self.close()
        store = SchemaStore(locale=self.locale)
        store.init_schema()
        self.store = store
        self.identity = identity
        self.sequences = IdSequences()
        self.documents = []
        self.media = []
        logger.info("Initialized publication store for %s", identity.card_string())

    def insert_publication(self, title: str, identity: Optional[PublicationIdentity] = None) -> None:
        store = self._require_store()
        identity = identity or self.identity
        if identity is None:
            raise NotInitializedError("No publication identity")
        self.identity = identity
        self.title = title
        self.key_material = derive_key_material(identity)
        self._codec = ContentCodec(self.key_material, level=self.compress_level)

        row = PublicationRow.for_title(
            title,
            identity.symbol,
            identity.year,
            identity.language_index,
            build_number=self.build_number,
            issue_tag=identity.issue_tag,
        )
        for table in PUBLICATION_TABLES:
            store.insert_publication_row(row, table=table)
        store.insert_fixed_rows(identity.year)
        store.insert_view_item(ROOT_VIEW_ITEM_ID, ROOT_PARENT_ID, title, 0, NO_DOCUMENT_ID)
        store.insert_view_item_field(ROOT_VIEW_ITEM_ID, ROOT_VIEW_ITEM_ID, title)
        logger.info("Inserted publication %r (%s)", title, identity.symbol)

    def begin_document(self) -> int:
        """Reserve the next document id so media can link to it up front."""
        self._require_publication()
        if self.sequences.reserved_document is not None:
            return self.sequences.reserved_document
        doc_id, seq = self.sequences.next_document()
        self.sequences = replace(seq, reserved_document=doc_id)
        return doc_id

    def insert_document(self, title: str, body: str) -> int:
        store, identity, codec = self._require_publication()
        # a body that fails to encode must not consume an id
        content = codec.encrypt(body)
        if self.sequences.reserved_document is not None:
            doc_id = self.sequences.reserved_document
            self.sequences = replace(self.sequences, reserved_document=None)
        else:
            doc_id, self.sequences = self.sequences.next_document()

        store.insert_document_row(
            doc_id,
            MEPS_DOCUMENT_ID_BASE + doc_id + 1,
            identity.language_index,
            title,
            content,
            len(body),
        )
        store.insert_text_unit(doc_id + 1, doc_id)
        view_item_id = doc_id + 2
        store.insert_view_item(view_item_id, ROOT_VIEW_ITEM_ID, title, None, doc_id)
        store.insert_view_item_document(doc_id + 1, view_item_id, doc_id)
        store.insert_view_item_field(view_item_id, view_item_id, title)
        self.documents.append(DocumentEntry(doc_id, title, content, len(body)))
        logger.debug("Inserted document %d: %s", doc_id, title)
        return doc_id

    def _check_media_name(self, name: str) -> str:
        try:
            n = bare_name(name)
        except ValueError as e:
            raise PackagingError(str(e)) from e
        reserved = {m.name for m in self.media}
        if self.identity is not None:
            reserved.add(f"{self.identity.symbol}{DB_SUFFIX}")
        if n in reserved:
            raise PackagingError(f"duplicate entry in contents: {n}")
        return n

    def insert_media(self, name: str, mime_type: str, data: bytes, document_id: Optional[int] = None) -> int:
        """Add one media file and link it to a document.

        Without ``document_id`` the link goes to the document in scope right
        now: the reserved id, else the last inserted one. Media inserted
        before its document's id exists therefore links to the previous
        document (or -1 for the first one).
        """
        store = self._require_store()
        name = self._check_media_name(name)
        media_id, self.sequences = self.sequences.next_media()
        owner = self.sequences.current_document if document_id is None else document_id
        if owner == NO_DOCUMENT_ID:
            logger.warning("Media %s linked before any document id was allocated", name)
        store.insert_multimedia_row(media_id, mime_type, name, name)
        store.insert_document_multimedia_link(owner, media_id)
        self.media.append(MediaEntry(media_id, name, mime_type, bytes(data), owner))
        logger.debug("Inserted media %d: %s -> document %d", media_id, name, owner)
        return media_id

    def add_document(
        self,
        title: str,
        body: str,
        media: Iterable[Tuple[str, str, bytes]] = (),
    ) -> int:
        """Insert a document with its media, linking every item to it."""
        media = list(media)
        names = [self._check_media_name(name) for name, _, _ in media]
        if len(set(names)) != len(names):
            raise PackagingError(f"duplicate media names in document {title!r}")
        doc_id = self.begin_document()
        for name, mime_type, data in media:
            self.insert_media(name, mime_type, data, document_id=doc_id)
        return self.insert_document(title, body)

    def finalize(self, timestamp: Optional[datetime] = None) -> bytes:
        store, identity, _ = self._require_publication()
        if self.sequences.reserved_document is not None:
            logger.warning("Document id %d was reserved but never inserted", self.sequences.reserved_document)
        try:
            db_bytes = store.export()
            packager = ArchivePackager(
                title=self.title or identity.symbol,
                symbol=identity.symbol,
                year=identity.year,
                language_index=identity.language_index,
                base_name=identity.symbol,
                build_number=self.build_number,
            )
            self.last_result = packager.package(
                db_bytes,
                [(m.name, m.data) for m in self.media],
                timestamp=timestamp,
            )
        finally:
            self.close()
        return self.last_result.data

    def close(self) -> None:
        if self.store is not None:
            self.store.close()
            self.store = None
        self._codec = None
