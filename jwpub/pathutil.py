from __future__ import annotations

def bare_name(name: str) -> str:
    """Validate a media entry name for the inner archive.

    Media live at the root of ``contents`` under their bare file name:
    - Backslashes count as separators
    - Any separator, '.' or '..' is rejected
    - Empty names are rejected
    """
    n = name.replace("\\", "/")
    if not n or "/" in n or n in (".", ".."):
        raise ValueError(f"Media name must be a bare file name: {name!r}")
    return n
