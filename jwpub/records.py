from __future__ import annotations

"""Typed rows for the publication database.

One frozen dataclass per table. Field names map to column names by
snake_case -> CamelCase conversion unless a ``column`` override is present in
the field metadata, so the INSERT statement and its parameters always come
from the same value.
"""

from dataclasses import dataclass, field, fields
from typing import ClassVar, List, Optional, Tuple

from .constants import (
    BIBLE_VERSION_FOR_CITATIONS,
    DEFAULT_BUILD_NUMBER,
    DEFAULT_LOCALE,
    DOCUMENT_CLASS,
    DOCUMENT_PARAGRAPH_COUNT,
    MEDIA_CATEGORY_TYPE,
    MEDIA_DATA_TYPE,
    MEDIA_MAJOR_TYPE,
    MEDIA_MINOR_TYPE,
    PUBLICATION_ATTRIBUTE,
    PUBLICATION_CATEGORY,
    PUBLICATION_ID,
    PUBLICATION_TYPE,
    PUBLICATION_TYPE_ID,
    PUBLICATION_VERSION_NUMBER,
    PUBLICATION_VIEW_NAME,
    PUBLICATION_VIEW_SYMBOL,
    UNDATED_TEXT_OFFSET,
)


def _col_default(name: str, default):
    return field(default=default, metadata={"column": name})


def column_name(attr: str, metadata) -> str:
    override = metadata.get("column") if metadata else None
    if override:
        return override
    return "".join(part[:1].upper() + part[1:] for part in attr.split("_"))


class Row:
    TABLE: ClassVar[str] = ""

    def columns(self) -> List[str]:
        return [column_name(f.name, f.metadata) for f in fields(self)]

    def values(self) -> Tuple:
        return tuple(getattr(self, f.name) for f in fields(self))


@dataclass(frozen=True)
class PublicationRow(Row):
    """Shared payload of the Publication and RefPublication tables."""

    TABLE: ClassVar[str] = "Publication"

    title: str
    root_symbol: str
    root_year: int
    short_title: str
    display_title: str
    reference_title: str
    undated_reference_title: str
    symbol: str
    undated_symbol: str
    unique_symbol: str
    english_symbol: str
    unique_english_symbol: str
    year: int
    meps_language_index: int
    meps_build_number: int = DEFAULT_BUILD_NUMBER
    publication_id: int = PUBLICATION_ID
    version_number: int = PUBLICATION_VERSION_NUMBER
    type: int = PUBLICATION_TYPE_ID
    title_rich: Optional[str] = None
    root_meps_language_index: int = 0
    short_title_rich: Optional[str] = None
    display_title_rich: Optional[str] = None
    reference_title_rich: Optional[str] = None
    undated_reference_title_rich: Optional[str] = None
    issue_tag_number: str = "0"
    issue_number: int = 0
    variation: str = ""
    volume_number: int = 0
    publication_type: str = PUBLICATION_TYPE
    publication_category_symbol: str = PUBLICATION_CATEGORY
    bible_version_for_citations: str = BIBLE_VERSION_FOR_CITATIONS
    has_publication_chapter_numbers: int = 1
    has_publication_section_numbers: int = 1
    first_dated_text_date_offset: int = UNDATED_TEXT_OFFSET
    last_dated_text_date_offset: int = UNDATED_TEXT_OFFSET

    @classmethod
    def for_title(
        cls,
        title: str,
        symbol: str,
        year: int,
        language_index: int,
        build_number: int = DEFAULT_BUILD_NUMBER,
        issue_tag: int = 0,
    ) -> "PublicationRow":
        return cls(
            title=title,
            root_symbol=symbol,
            root_year=year,
            short_title=title,
            display_title=title,
            reference_title=title,
            undated_reference_title=title,
            symbol=symbol,
            undated_symbol=symbol,
            unique_symbol=symbol,
            english_symbol=symbol,
            unique_english_symbol=symbol,
            year=year,
            meps_language_index=language_index,
            meps_build_number=build_number,
            issue_tag_number=str(issue_tag),
        )

    def columns_for(self, table: str) -> List[str]:
        # RefPublication keys its single row by RefPublicationId
        return [f"{table}Id" if c == "PublicationId" else c for c in self.columns()]


@dataclass(frozen=True)
class PublicationAttributeRow(Row):
    TABLE: ClassVar[str] = "PublicationAttribute"

    publication_attribute_id: int = 1
    publication_id: int = PUBLICATION_ID
    attribute: str = PUBLICATION_ATTRIBUTE


@dataclass(frozen=True)
class PublicationCategoryRow(Row):
    TABLE: ClassVar[str] = "PublicationCategory"

    publication_category_id: int = 1
    publication_id: int = PUBLICATION_ID
    category: str = PUBLICATION_CATEGORY


@dataclass(frozen=True)
class PublicationViewRow(Row):
    TABLE: ClassVar[str] = "PublicationView"

    publication_view_id: int = 1
    name: str = PUBLICATION_VIEW_NAME
    symbol: str = PUBLICATION_VIEW_SYMBOL


@dataclass(frozen=True)
class PublicationViewSchemaRow(Row):
    TABLE: ClassVar[str] = "PublicationViewSchema"

    publication_view_schema_id: int = 1
    schema_type: int = 0
    data_type: str = "name"


@dataclass(frozen=True)
class PublicationYearRow(Row):
    TABLE: ClassVar[str] = "PublicationYear"

    year: int
    publication_year_id: int = 1
    publication_id: int = PUBLICATION_ID


@dataclass(frozen=True)
class DocumentRow(Row):
    TABLE: ClassVar[str] = "Document"

    document_id: int
    meps_document_id: int
    meps_language_index: int
    title: str
    toc_title: str
    content: bytes
    content_length: int
    publication_id: int = PUBLICATION_ID
    doc_class: str = _col_default("Class", DOCUMENT_CLASS)
    type: int = 0
    section_number: int = 1
    context_title: str = ""
    paragraph_count: int = DOCUMENT_PARAGRAPH_COUNT
    has_media_links: int = 0
    has_links: int = 0
    first_page_number: int = 1
    last_page_number: int = 1


@dataclass(frozen=True)
class TextUnitRow(Row):
    TABLE: ClassVar[str] = "TextUnit"

    text_unit_id: int
    id: int
    type: str = "Document"


@dataclass(frozen=True)
class ViewItemRow(Row):
    TABLE: ClassVar[str] = "PublicationViewItem"

    publication_view_item_id: int
    parent_publication_view_item_id: int
    title: str
    child_template_schema_type: Optional[int]
    default_document_id: Optional[int]
    publication_view_id: int = 1
    schema_type: int = 0


@dataclass(frozen=True)
class ViewItemDocumentRow(Row):
    TABLE: ClassVar[str] = "PublicationViewItemDocument"

    publication_view_item_document_id: int
    publication_view_item_id: int
    document_id: int


@dataclass(frozen=True)
class ViewItemFieldRow(Row):
    TABLE: ClassVar[str] = "PublicationViewItemField"

    publication_view_item_field_id: int
    publication_view_item_id: int
    value: str
    type: str = "name"


@dataclass(frozen=True)
class MultimediaRow(Row):
    TABLE: ClassVar[str] = "Multimedia"

    multimedia_id: int
    mime_type: str
    caption: str
    file_path: str
    data_type: int = MEDIA_DATA_TYPE
    major_type: int = MEDIA_MAJOR_TYPE
    minor_type: int = MEDIA_MINOR_TYPE
    category_type: int = MEDIA_CATEGORY_TYPE


@dataclass(frozen=True)
class DocumentMultimediaRow(Row):
    TABLE: ClassVar[str] = "DocumentMultimedia"

    document_id: int
    multimedia_id: int


@dataclass(frozen=True)
class LocaleRow(Row):
    TABLE: ClassVar[str] = "android_metadata"

    locale: str = _col_default("locale", DEFAULT_LOCALE)


def fixed_rows(year: int) -> List[Row]:
    """Single-row auxiliary tables written with every publication."""
    return [
        PublicationAttributeRow(),
        PublicationCategoryRow(),
        PublicationViewRow(),
        PublicationViewSchemaRow(),
        PublicationYearRow(year=year),
    ]
