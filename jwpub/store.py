from __future__ import annotations

import logging
import os
import sqlite3
import tempfile
from typing import Any, List, Optional, Sequence

from .constants import DEFAULT_LOCALE
from .errors import InitializationError, NotInitializedError, SchemaError
from .records import (
    DocumentMultimediaRow,
    DocumentRow,
    LocaleRow,
    MultimediaRow,
    PublicationRow,
    Row,
    TextUnitRow,
    ViewItemDocumentRow,
    ViewItemFieldRow,
    ViewItemRow,
    fixed_rows,
)
from .schema import SCHEMA_SQL

logger = logging.getLogger(__name__)

PUBLICATION_TABLES = ("Publication", "RefPublication")


class SchemaStore:
    """In-memory SQLite database holding one publication.

    Row inserts never raise: a failing row is wrapped in :class:`SchemaError`,
    logged, recorded in ``errors`` and skipped. The auxiliary tables are not
    needed for a readable publication, so one bad row must not sink the build.
    """

    def __init__(self, locale: str = DEFAULT_LOCALE):
        self.locale = locale
        self.errors: List[SchemaError] = []
        self._conn: Optional[sqlite3.Connection] = None

    def __enter__(self):
        self.init_schema()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise NotInitializedError("Store not initialized")
        return self._conn

    def init_schema(self) -> None:
        """Drop and recreate every table, then write the locale marker row."""
        try:
            if self._conn is None:
                self._conn = sqlite3.connect(":memory:")
            self._conn.executescript(SCHEMA_SQL)
        except sqlite3.Error as e:
            self.close()
            raise InitializationError(f"could not create publication schema: {e}") from e
        self.errors = []
        self.insert_row(LocaleRow(locale=self.locale))
        logger.debug("Publication schema initialized")

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # inserts
    def insert_row(self, row: Row, table: Optional[str] = None, columns: Optional[Sequence[str]] = None) -> bool:
        conn = self._require()
        target = table or row.TABLE
        cols = list(columns) if columns is not None else row.columns()
        sql = 'INSERT INTO "{}" ({}) VALUES ({})'.format(
            target,
            ", ".join(f'"{c}"' for c in cols),
            ", ".join("?" for _ in cols),
        )
        try:
            with conn:
                conn.execute(sql, row.values())
        except sqlite3.Error as e:
            err = SchemaError(target, str(e))
            self.errors.append(err)
            logger.warning("Could not insert row, skipping: %s", err)
            return False
        logger.debug("Inserted %s row", target)
        return True

    def insert_publication_row(self, row: PublicationRow, table: str = "Publication") -> bool:
        if table not in PUBLICATION_TABLES:
            raise ValueError(f"not a publication table: {table}")
        return self.insert_row(row, table=table, columns=row.columns_for(table))

    def insert_fixed_rows(self, year: int) -> int:
        return sum(1 for row in fixed_rows(year) if self.insert_row(row))

    def insert_document_row(
        self,
        id: int,
        meps_doc_id: int,
        language: int,
        title: str,
        encrypted_content: bytes,
        plaintext_length: int,
    ) -> bool:
        return self.insert_row(
            DocumentRow(
                document_id=id,
                meps_document_id=meps_doc_id,
                meps_language_index=language,
                title=title,
                toc_title=title,
                content=encrypted_content,
                content_length=plaintext_length,
            )
        )

    def insert_text_unit(self, id: int, document_id: int) -> bool:
        return self.insert_row(TextUnitRow(text_unit_id=id, id=document_id))

    def insert_view_item(
        self,
        id: int,
        parent_id: int,
        title: str,
        child_schema_type: Optional[int],
        default_document_id: Optional[int],
    ) -> bool:
        return self.insert_row(
            ViewItemRow(
                publication_view_item_id=id,
                parent_publication_view_item_id=parent_id,
                title=title,
                child_template_schema_type=child_schema_type,
                default_document_id=default_document_id,
            )
        )

    def insert_view_item_document(self, id: int, view_item_id: int, document_id: int) -> bool:
        return self.insert_row(
            ViewItemDocumentRow(
                publication_view_item_document_id=id,
                publication_view_item_id=view_item_id,
                document_id=document_id,
            )
        )

    def insert_view_item_field(self, id: int, view_item_id: int, value: str) -> bool:
        return self.insert_row(
            ViewItemFieldRow(
                publication_view_item_field_id=id,
                publication_view_item_id=view_item_id,
                value=value,
            )
        )

    def insert_multimedia_row(self, id: int, mime_type: str, caption: str, file_path: str) -> bool:
        return self.insert_row(MultimediaRow(multimedia_id=id, mime_type=mime_type, caption=caption, file_path=file_path))

    def insert_document_multimedia_link(self, document_id: int, multimedia_id: int) -> bool:
        return self.insert_row(DocumentMultimediaRow(document_id=document_id, multimedia_id=multimedia_id))

    # reads
    def query(self, sql: str, params: Sequence[Any] = ()) -> List[tuple]:
        return list(self._require().execute(sql, tuple(params)))

    def count(self, table: str) -> int:
        return self.query(f'SELECT COUNT(*) FROM "{table}"')[0][0]

    def export(self) -> bytes:
        """Return the database as the bytes of a standalone SQLite file."""
        conn = self._require()
        if hasattr(conn, "serialize"):
            return conn.serialize()
        # Python < 3.11: copy through a temporary file
        fd, path = tempfile.mkstemp(suffix=".db")
        os.close(fd)
        try:
            dst = sqlite3.connect(path)
            try:
                conn.backup(dst)
            finally:
                dst.close()
            with open(path, "rb") as fh:
                return fh.read()
        finally:
            os.unlink(path)


def open_exported(data: bytes) -> sqlite3.Connection:
    """Open exported database bytes as a read-only in-memory connection."""
    conn = sqlite3.connect(":memory:")
    if hasattr(conn, "deserialize"):
        conn.deserialize(data)
        return conn
    fd, path = tempfile.mkstemp(suffix=".db")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        src = sqlite3.connect(path)
        try:
            src.backup(conn)
        finally:
            src.close()
    finally:
        os.unlink(path)
    return conn
