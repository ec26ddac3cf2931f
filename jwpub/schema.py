from __future__ import annotations

"""DDL for the publication database.

Table and column names are part of the container format and must not change.
"""

from typing import Dict, List


_PUBLICATION_COLUMNS = """
    "{table}Id" INTEGER,
    "VersionNumber" INTEGER,
    "Type" INTEGER,
    "Title" TEXT,
    "TitleRich" TEXT,
    "RootSymbol" TEXT,
    "RootYear" INTEGER,
    "RootMepsLanguageIndex" INTEGER,
    "ShortTitle" TEXT,
    "ShortTitleRich" TEXT,
    "DisplayTitle" TEXT,
    "DisplayTitleRich" TEXT,
    "ReferenceTitle" TEXT,
    "ReferenceTitleRich" TEXT,
    "UndatedReferenceTitle" TEXT,
    "UndatedReferenceTitleRich" TEXT,
    "Symbol" TEXT NOT NULL,
    "UndatedSymbol" TEXT,
    "UniqueSymbol" TEXT,
    "EnglishSymbol" TEXT,
    "UniqueEnglishSymbol" TEXT NOT NULL,
    "IssueTagNumber" TEXT,
    "IssueNumber" INTEGER,
    "Variation" TEXT,
    "Year" INTEGER NOT NULL,
    "VolumeNumber" INTEGER,
    "MepsLanguageIndex" INTEGER NOT NULL,
    "PublicationType" TEXT,
    "PublicationCategorySymbol" TEXT,
    "BibleVersionForCitations" TEXT,
    "HasPublicationChapterNumbers" BOOLEAN,
    "HasPublicationSectionNumbers" BOOLEAN,
    "FirstDatedTextDateOffset" DATE,
    "LastDatedTextDateOffset" DATE,
    "MepsBuildNumber" INTEGER,
    PRIMARY KEY("{table}Id")
"""

TABLES: Dict[str, str] = {
    "Publication": _PUBLICATION_COLUMNS.format(table="Publication"),
    "PublicationCategory": """
    "PublicationCategoryId" INTEGER,
    "PublicationId" ,
    "Category" TEXT,
    FOREIGN KEY("PublicationId") REFERENCES "Publication"("PublicationId"),
    PRIMARY KEY("PublicationCategoryId")
""",
    "PublicationYear": """
    "PublicationYearId" INTEGER,
    "PublicationId" ,
    "Year" INTEGER,
    FOREIGN KEY("PublicationId") REFERENCES "Publication"("PublicationId"),
    PRIMARY KEY("PublicationYearId")
""",
    "PublicationAttribute": """
    "PublicationAttributeId" INTEGER,
    "PublicationId" INTEGER,
    "Attribute" TEXT,
    FOREIGN KEY("PublicationId") REFERENCES "Publication"("PublicationId"),
    PRIMARY KEY("PublicationAttributeId")
""",
    "RefPublication": _PUBLICATION_COLUMNS.format(table="RefPublication"),
    "Document": """
    "DocumentId" INTEGER,
    "PublicationId" INTEGER,
    "MepsDocumentId" INTEGER,
    "MepsLanguageIndex" INTEGER,
    "Class" TEXT,
    "Type" INTEGER,
    "SectionNumber" INTEGER,
    "ChapterNumber" INTEGER,
    "Title" TEXT,
    "TitleRich" TEXT,
    "TocTitle" TEXT,
    "TocTitleRich" TEXT,
    "ContextTitle" TEXT,
    "ContextTitleRich" TEXT,
    "FeatureTitle" TEXT,
    "FeatureTitleRich" TEXT,
    "Subtitle" TEXT,
    "SubtitleRich" TEXT,
    "FeatureSubtitle" TEXT,
    "FeatureSubtitleRich" TEXT,
    "Content" BLOB,
    "FirstFootnoteId" INTEGER,
    "LastFootnoteId" INTEGER,
    "FirstBibleCitationId" INTEGER,
    "LastBibleCitationId" INTEGER,
    "ParagraphCount" INTEGER,
    "HasMediaLinks" BOOLEAN,
    "HasLinks" BOOLEAN,
    "FirstPageNumber" INTEGER,
    "LastPageNumber" INTEGER,
    "ContentLength" INTEGER,
    "PreferredPresentation" TEXT,
    "ContentReworkedDate" TEXT,
    "HasPronunciationGuide" BOOLEAN,
    FOREIGN KEY("PublicationId") REFERENCES "Publication"("PublicationId"),
    PRIMARY KEY("DocumentId")
""",
    "TextUnit": """
    "TextUnitId" INTEGER,
    "Type" TEXT,
    "Id" INTEGER,
    PRIMARY KEY("TextUnitId")
""",
    "PublicationView": """
    "PublicationViewId" INTEGER,
    "Name" TEXT,
    "Symbol" TEXT NOT NULL UNIQUE,
    PRIMARY KEY("PublicationViewId")
""",
    "PublicationViewItemDocument": """
    "PublicationViewItemDocumentId" INTEGER,
    "PublicationViewItemId" INTEGER,
    "DocumentId" INTEGER,
    FOREIGN KEY("PublicationViewItemId") REFERENCES "PublicationViewItem"("PublicationViewItemId"),
    PRIMARY KEY("PublicationViewItemDocumentId")
""",
    "PublicationViewItem": """
    "PublicationViewItemId" INTEGER,
    "PublicationViewId" INTEGER,
    "ParentPublicationViewItemId" INTEGER,
    "Title" TEXT,
    "TitleRich" TEXT,
    "SchemaType" INTEGER,
    "ChildTemplateSchemaType" INTEGER,
    "DefaultDocumentId" INTEGER,
    FOREIGN KEY("PublicationViewId") REFERENCES "PublicationView"("PublicationViewId"),
    PRIMARY KEY("PublicationViewItemId")
""",
    "PublicationViewItemField": """
    "PublicationViewItemFieldId" INTEGER,
    "PublicationViewItemId" INTEGER,
    "Value" TEXT,
    "ValueRich" TEXT,
    "Type" TEXT,
    FOREIGN KEY("PublicationViewItemId") REFERENCES "PublicationViewItem"("PublicationViewItemId"),
    PRIMARY KEY("PublicationViewItemFieldId")
""",
    "PublicationViewSchema": """
    "PublicationViewSchemaId" INTEGER,
    "SchemaType" INTEGER,
    "DataType" TEXT,
    PRIMARY KEY("PublicationViewSchemaId")
""",
    "Multimedia": """
    "MultimediaId" INTEGER,
    "LinkMultimediaId" INTEGER,
    "DataType" INTEGER,
    "MajorType" INTEGER,
    "MinorType" INTEGER,
    "Width" INTEGER,
    "Height" INTEGER,
    "MimeType" TEXT,
    "Label" TEXT,
    "LabelRich" TEXT,
    "Caption" TEXT,
    "CaptionRich" TEXT,
    "CaptionContent" BLOB,
    "CreditLine" TEXT,
    "CreditLineRich" TEXT,
    "CreditLineContent" BLOB,
    "CategoryType" INTEGER,
    "FilePath" TEXT,
    "KeySymbol" STRING,
    "Track" INTEGER,
    "MepsDocumentId" INTEGER,
    "MepsLanguageIndex" INTEGER,
    "IssueTagNumber" INTEGER,
    "SuppressZoom" BOOLEAN,
    "SizeConstraint" TEXT,
    PRIMARY KEY("MultimediaId")
""",
    "DocumentMultimedia": """
    "DocumentMultimediaId" INTEGER,
    "DocumentId" INTEGER,
    "MultimediaId" INTEGER,
    "BeginParagraphOrdinal" INTEGER,
    "EndParagraphOrdinal" INTEGER,
    FOREIGN KEY("DocumentId") REFERENCES "Document"("DocumentId"),
    FOREIGN KEY("MultimediaId") REFERENCES "Multimedia"("MultimediaId"),
    PRIMARY KEY("DocumentMultimediaId")
""",
    "android_metadata": """
    "locale" TEXT DEFAULT 'en_US'
""",
}

LOCALE_TABLE = "android_metadata"

# The fourteen content tables; the locale marker is tracked separately.
CONTENT_TABLES: List[str] = [name for name in TABLES if name != LOCALE_TABLE]


def build_schema_script() -> str:
    parts = ["BEGIN TRANSACTION;"]
    for name, body in TABLES.items():
        parts.append(f'DROP TABLE IF EXISTS "{name}";')
        parts.append(f'CREATE TABLE IF NOT EXISTS "{name}" ({body});')
    parts.append("COMMIT;")
    return "\n".join(parts)


SCHEMA_SQL = build_schema_script()
