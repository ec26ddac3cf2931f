from __future__ import annotations

import os
import re
import sys
import argparse
import logging
import mimetypes
import json as _json

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from jwpub.builder import PublicationBuilder
from jwpub.errors import JwpubError
from jwpub.keys import PublicationIdentity
from jwpub.packager import write_container
from jwpub.reader import PublicationReader


logger = logging.getLogger(__name__)

_FALLBACK_MIME = "application/octet-stream"
_MEDIA_DIR_SUFFIX = "_files"


@dataclass
class SourceDocument:
    name: str
    body: str
    media: List[Tuple[str, str, bytes]] = field(default_factory=list)


def guess_mime_type(name: str) -> str:
    mime, _enc = mimetypes.guess_type(name)
    return mime or _FALLBACK_MIME


def _media_dir_key(folder: str) -> Optional[str]:
    """Map ``NAME_files`` or ``NAME.html`` folders to the document ``NAME``."""
    if folder.endswith(_MEDIA_DIR_SUFFIX):
        return folder[: -len(_MEDIA_DIR_SUFFIX)]
    if folder.lower().endswith(".html"):
        return folder[:-5]
    return None


def _unique_media_name(doc: str, name: str, used: Set[str]) -> str:
    if name not in used:
        return name
    candidate = f"{doc}_{name}"
    n = 2
    while candidate in used:
        candidate = f"{doc}_{n}_{name}"
        n += 1
    return candidate


def collect_sources(inputs: List[str]) -> List[SourceDocument]:
    """Group ``*.html`` files with media from their sibling ``NAME_files`` folders.

    Documents come back sorted by name. Media outside a matching folder are
    ignored. Media names are unique across the publication: a name already
    taken by an earlier document is renamed to ``{doc}_{name}``. When two
    inputs share a document name the first one wins and a warning is logged.
    """
    html: Dict[str, Path] = {}
    media: Dict[str, List[Path]] = {}

    def _add_html(p: Path) -> bool:
        if p.stem in html and html[p.stem] != p:
            logger.warning("Skipping %s: document %r already comes from %s", p, p.stem, html[p.stem])
            return False
        html[p.stem] = p
        return True

    def _scan_dir(root: Path):
        for p in sorted(root.rglob("*")):
            if not p.is_file():
                continue
            if p.suffix.lower() == ".html" and _media_dir_key(p.parent.name) is None:
                _add_html(p)
                continue
            key = _media_dir_key(p.parent.name)
            owner = html.get(key) if key is not None else None
            if key is not None and (owner is None or owner.parent == p.parent.parent):
                media.setdefault(key, []).append(p)

    for item in inputs:
        p = Path(item)
        if p.is_dir():
            _scan_dir(p)
        elif p.is_file() and p.suffix.lower() == ".html":
            if not _add_html(p):
                continue
            sibling = p.with_name(p.stem + _MEDIA_DIR_SUFFIX)
            if sibling.is_dir():
                media.setdefault(p.stem, []).extend(q for q in sorted(sibling.iterdir()) if q.is_file())
        elif not p.exists():
            raise FileNotFoundError(item)

    docs: List[SourceDocument] = []
    used: Set[str] = set()
    for name in sorted(html):
        doc = SourceDocument(name=name, body=html[name].read_text(encoding="utf-8"))
        for m in media.get(name, []):
            entry = _unique_media_name(name, m.name, used)
            used.add(entry)
            doc.media.append((entry, guess_mime_type(m.name), m.read_bytes()))
        docs.append(doc)
    return docs


def cmd_build(
    output: str,
    inputs: List[str],
    *,
    symbol: str,
    year: int,
    language: int,
    title: str,
    issue: int = 0,
    quiet: bool = False,
) -> int:
    """Build a container from HTML documents and write it to ``output``.

    Returns:
        Number of documents packaged.
    """
    docs = collect_sources(inputs)
    identity = PublicationIdentity(language_index=language, symbol=symbol, year=year, issue_tag=issue)
    with PublicationBuilder() as builder:
        builder.initialize(identity)
        builder.insert_publication(title)
        for i, doc in enumerate(docs, 1):
            if not quiet:
                print(f" [{i}/{len(docs)}] {doc.name} ({len(doc.media)} media)")
            builder.add_document(doc.name, doc.body, doc.media)
        data = builder.finalize()
    write_container(output, data)
    if not quiet:
        print(f"Wrote {output} ({len(data)} bytes, {len(docs)} documents)")
    return len(docs)


def cmd_info(container: str, as_json: bool = False) -> None:
    with PublicationReader(container) as r:
        docs = r.documents()
        media = r.media()
        if as_json:
            print(_json.dumps({
                "manifest": r.manifest,
                "documents": [{"id": d.document_id, "title": d.title, "length": d.content_length} for d in docs],
                "media": [{"id": m.multimedia_id, "name": m.file_path, "mimeType": m.mime_type} for m in media],
            }, indent=2))
            return
        pub = r.manifest["publication"]
        print(f"Name:      {r.manifest.get('name')}")
        print(f"Title:     {pub.get('title')}")
        print(f"Symbol:    {pub.get('symbol')}  Year: {pub.get('year')}  Language: {pub.get('language')}")
        print(f"Timestamp: {r.manifest.get('timestamp')}")
        print(f"Documents: {len(docs)}  Media: {len(media)}")
        for d in docs:
            print(f"{d.document_id}\t{d.content_length}\t{d.title}")
        for m in media:
            print(f"m{m.multimedia_id}\t{m.mime_type}\t{m.file_path}")


def cmd_verify(container: str) -> bool:
    with PublicationReader(container) as r:
        issues = r.problems()
    for msg in issues:
        print(f"FAIL: {msg}")
    if not issues:
        print("OK")
    return not issues


def _safe_filename(title: str) -> str:
    cleaned = re.sub(r"[^\w.-]+", "_", title).strip("._")
    return cleaned or "document"


def cmd_extract(container: str, outdir: str = ".", quiet: bool = False) -> List[str]:
    """Write decrypted documents and raw media under ``outdir``."""
    written: List[str] = []
    os.makedirs(outdir, exist_ok=True)
    with PublicationReader(container) as r:
        for d in r.documents():
            path = os.path.join(outdir, f"{d.document_id:03d}_{_safe_filename(d.title)}.html")
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(r.document_text(d.document_id))
            written.append(path)
        for m in r.media():
            path = os.path.join(outdir, os.path.basename(m.file_path))
            with open(path, "wb") as fh:
                fh.write(r.media_bytes(m.file_path))
            written.append(path)
    if not quiet:
        for p in written:
            print(f"  extracting: {p}")
    return written


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="jwpub",
        description="Build and inspect .jwpub publication containers",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_build = sub.add_parser("build", help="Build a container from HTML files")
    ap_build.add_argument("output", help="Output .jwpub path")
    ap_build.add_argument("inputs", nargs="+", help="HTML files or directories (media in NAME_files/)")
    ap_build.add_argument("--symbol", required=True, help="Publication symbol")
    ap_build.add_argument("--year", type=int, required=True, help="Publication year")
    ap_build.add_argument("--language", type=int, default=0, help="MEPS language index (default 0)")
    ap_build.add_argument("--title", required=True, help="Publication title")
    ap_build.add_argument("--issue", type=int, default=0, help="Issue tag number (default 0)")
    ap_build.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_info = sub.add_parser("info", help="Show container information")
    ap_info.add_argument("container", help="Container path")
    ap_info.add_argument("--json", action="store_true", help="machine-readable output")

    ap_verify = sub.add_parser("verify", help="Check manifest hashes against the packaged bytes")
    ap_verify.add_argument("container", help="Container path")

    ap_extract = sub.add_parser("extract", help="Decrypt documents and copy media out")
    ap_extract.add_argument("container", help="Container path")
    ap_extract.add_argument("--outdir", default=".", help="Output directory")
    ap_extract.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.cmd == "build":
            cmd_build(
                args.output,
                args.inputs,
                symbol=args.symbol,
                year=args.year,
                language=args.language,
                title=args.title,
                issue=args.issue,
                quiet=args.quiet,
            )
        elif args.cmd == "info":
            cmd_info(args.container, as_json=args.json)
        elif args.cmd == "verify":
            if not cmd_verify(args.container):
                sys.exit(1)
        elif args.cmd == "extract":
            cmd_extract(args.container, args.outdir, quiet=args.quiet)
    except (JwpubError, OSError, UnicodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
