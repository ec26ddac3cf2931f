from __future__ import annotations

import io
import logging
import os
import zipfile
import zlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from .constants import (
    CONTAINER_SUFFIX,
    CONTENTS_ENTRY,
    DB_SUFFIX,
    DEFAULT_BUILD_NUMBER,
    MANIFEST_ENTRY,
)
from .errors import PackagingError
from .hashutil import sha1_hex, sha256_hex
from .manifest import Manifest, build_manifest, format_timestamp
from .pathutil import bare_name

logger = logging.getLogger(__name__)

# zip cannot store timestamps before 1980
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


@dataclass
class PackageResult:
    data: bytes
    manifest: Manifest
    contents: bytes


def _zip_time(when: datetime) -> Tuple[int, int, int, int, int, int]:
    t = when.timetuple()[:6]
    return t if t >= _ZIP_EPOCH else _ZIP_EPOCH


def _write_zip(entries: Iterable[Tuple[str, bytes]], when: datetime) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries:
            info = zipfile.ZipInfo(name, date_time=_zip_time(when))
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            zf.writestr(info, data)
    return buf.getvalue()


class ArchivePackager:
    """Build the nested ``.jwpub`` container.

    The container is a zip with two entries:
    1.  ``contents``: an inner zip holding ``{base}.db`` and every media file
        at its bare name.
    2.  ``manifest.json``: SHA-256 and size of ``contents`` plus publication
        metadata, including the SHA-1 of the database bytes.
    Nothing is returned unless every step succeeds.
    """

    def __init__(
        self,
        *,
        title: str,
        symbol: str,
        year: int,
        language_index: int,
        base_name: Optional[str] = None,
        build_number: int = DEFAULT_BUILD_NUMBER,
    ):
        self.title = title
        self.symbol = symbol
        self.year = year
        self.language_index = language_index
        self.base_name = base_name or symbol
        self.build_number = build_number

    @property
    def db_entry(self) -> str:
        return f"{self.base_name}{DB_SUFFIX}"

    def _inner_entries(self, db_bytes: bytes, media: Sequence[Tuple[str, bytes]]) -> List[Tuple[str, bytes]]:
        entries = [(self.db_entry, db_bytes)]
        seen = {self.db_entry}
        for name, data in media:
            try:
                n = bare_name(name)
            except ValueError as e:
                raise PackagingError(str(e)) from e
            if n in seen:
                raise PackagingError(f"duplicate entry in contents: {n}")
            seen.add(n)
            entries.append((n, bytes(data)))
        return entries

    def package(
        self,
        db_bytes: bytes,
        media: Sequence[Tuple[str, bytes]] = (),
        *,
        timestamp: Optional[datetime] = None,
    ) -> PackageResult:
        when = timestamp or datetime.now(timezone.utc)
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        when = when.astimezone(timezone.utc)
        stamp = format_timestamp(when)
        try:
            entries = self._inner_entries(db_bytes, media)
            contents = _write_zip(entries, when)
            manifest = build_manifest(
                base_name=self.base_name,
                title=self.title,
                symbol=self.symbol,
                year=self.year,
                language_index=self.language_index,
                db_hash=sha1_hex(db_bytes),
                contents_hash=sha256_hex(contents),
                contents_size=len(contents),
                timestamp=stamp,
                build_number=self.build_number,
            )
            data = _write_zip(
                [
                    (CONTENTS_ENTRY, contents),
                    (MANIFEST_ENTRY, manifest.to_json().encode("utf-8")),
                ],
                when,
            )
        except PackagingError:
            raise
        except (OSError, ValueError, TypeError, zlib.error, zipfile.BadZipFile) as e:
            raise PackagingError(f"could not build container: {e}") from e
        logger.info(
            "Packaged %s: %d media, contents %d bytes, container %d bytes",
            manifest.name,
            len(entries) - 1,
            len(contents),
            len(data),
        )
        return PackageResult(data=data, manifest=manifest, contents=contents)

    def finalize(self, db_bytes: bytes, media: Sequence[Tuple[str, bytes]] = (), *, timestamp: Optional[datetime] = None) -> bytes:
        return self.package(db_bytes, media, timestamp=timestamp).data

    def package_to_file(
        self,
        path: str,
        db_bytes: bytes,
        media: Sequence[Tuple[str, bytes]] = (),
        *,
        timestamp: Optional[datetime] = None,
    ) -> PackageResult:
        result = self.package(db_bytes, media, timestamp=timestamp)
        write_container(path, result.data)
        return result

    def container_name(self) -> str:
        return f"{self.base_name}{CONTAINER_SUFFIX}"


def write_container(path: str, data: bytes) -> None:
    """Write container bytes atomically; a failed write leaves no file behind."""
    tmp = f"{path}.tmp"
    try:
        with open(tmp, "wb") as fh:
            fh.write(data)
        os.replace(tmp, path)
    except OSError as e:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise PackagingError(f"could not write {path}: {e}") from e
