from __future__ import annotations

import json as _json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .constants import (
    CONTAINER_SUFFIX,
    CONTENT_FORMAT,
    DB_SUFFIX,
    DEFAULT_BUILD_NUMBER,
    MANIFEST_VERSION,
    MEPS_PLATFORM_VERSION,
    MIN_PLATFORM_VERSION,
    PUBLICATION_CATEGORY,
    PUBLICATION_TYPE,
    PUBLICATION_TYPE_ID,
    SCHEMA_VERSION,
)


def format_timestamp(when: Optional[datetime] = None) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    if when is None:
        when = datetime.now(timezone.utc)
    elif when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    when = when.astimezone(timezone.utc)
    return when.strftime("%Y-%m-%dT%H:%M:%S.") + f"{when.microsecond // 1000:03d}Z"


@dataclass
class ManifestPublication:
    fileName: str
    title: str
    symbol: str
    language: int
    hash: str
    timestamp: str
    year: int
    type: int = PUBLICATION_TYPE_ID
    shortTitle: str = ""
    displayTitle: str = ""
    referenceTitle: str = ""
    undatedReferenceTitle: str = ""
    titleRich: str = ""
    displayTitleRich: str = ""
    referenceTitleRich: str = ""
    undatedReferenceTitleRich: str = ""
    uniqueEnglishSymbol: str = ""
    uniqueSymbol: str = ""
    englishSymbol: str = ""
    minPlatformVersion: int = MIN_PLATFORM_VERSION
    schemaVersion: int = SCHEMA_VERSION
    issueId: int = 0
    issueNumber: int = 0
    publicationType: str = PUBLICATION_TYPE
    rootSymbol: str = ""
    rootYear: int = 0
    rootLanguage: int = 0
    images: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=lambda: [PUBLICATION_CATEGORY])
    attributes: List[str] = field(default_factory=list)


@dataclass
class Manifest:
    name: str
    hash: str
    timestamp: str
    expandedSize: int
    publication: ManifestPublication
    version: int = MANIFEST_VERSION
    contentFormat: str = CONTENT_FORMAT
    htmlValidated: bool = False
    mepsPlatformVersion: float = MEPS_PLATFORM_VERSION
    mepsBuildNumber: int = DEFAULT_BUILD_NUMBER

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        # keep the top-level key order readers are used to
        order = [
            "name",
            "hash",
            "timestamp",
            "version",
            "expandedSize",
            "contentFormat",
            "htmlValidated",
            "mepsPlatformVersion",
            "mepsBuildNumber",
            "publication",
        ]
        return {k: d[k] for k in order}

    def to_json(self) -> str:
        return _json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def build_manifest(
    *,
    base_name: str,
    title: str,
    symbol: str,
    year: int,
    language_index: int,
    db_hash: str,
    contents_hash: str,
    contents_size: int,
    timestamp: str,
    build_number: int = DEFAULT_BUILD_NUMBER,
) -> Manifest:
    pub = ManifestPublication(
        fileName=f"{base_name}{DB_SUFFIX}",
        title=title,
        shortTitle=title,
        displayTitle=title,
        symbol=symbol,
        uniqueEnglishSymbol=symbol,
        language=language_index,
        hash=db_hash,
        timestamp=timestamp,
        year=year,
        rootSymbol=symbol,
        rootYear=year,
    )
    return Manifest(
        name=f"{base_name}{CONTAINER_SUFFIX}",
        hash=contents_hash,
        timestamp=timestamp,
        expandedSize=contents_size,
        mepsBuildNumber=build_number,
        publication=pub,
    )


def parse_manifest(data: bytes) -> Dict[str, Any]:
    obj = _json.loads(data.decode("utf-8"))
    if not isinstance(obj, dict) or not isinstance(obj.get("publication"), dict):
        raise ValueError("manifest.json is missing the publication record")
    return obj
