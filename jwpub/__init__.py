"""
jwpub: encoder for .jwpub publication containers.

Features:

- Deterministic per-publication key derivation from the publication card
  (language, symbol, year, issue).
- Document bodies compressed with zlib and encrypted with AES-128-CBC.
- Fixed-schema SQLite store linking documents, media and the navigation tree.
- Nested zip container (``contents`` + ``manifest.json``) whose manifest hashes
  match the packaged bytes.
- Reader and CLI helpers to verify, inspect and extract existing containers.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "keys",
    "codec",
    "store",
    "builder",
    "packager",
    "reader",
]

# Importable programmatic API is available via jwpub.builder.PublicationBuilder
# and jwpub.reader.PublicationReader; jwpub.cli exposes cmd_* functions taking
# normal parameters.
