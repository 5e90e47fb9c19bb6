# app/services/paths.py
from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path

from app.errors import AccessDeniedError


@dataclass(frozen=True)
class SafePath:
    base: Path
    resolved: Path


def resolve_safe_path(base: Path | str, requested: str) -> SafePath:
    """
    Resolve an untrusted relative path against a trusted base directory.
    Raises AccessDeniedError when the result is not the base or nested under it.
    """
    safe_base = Path(base).resolve()

    # Backslashes count as separators; leading ones must not make the path absolute,
    # so they are stripped before ".." segments get normalized against the base.
    cleaned = requested.replace("\\", "/").lstrip("/")
    normalized = posixpath.normpath(cleaned) if cleaned else "."

    # Resolve symlinks too, so a link pointing outside the root is an escape.
    try:
        resolved = (safe_base / normalized).resolve()
    except ValueError as exc:
        # embedded NUL byte
        raise AccessDeniedError(requested, "Invalid path") from exc
    if resolved != safe_base and safe_base not in resolved.parents:
        raise AccessDeniedError(requested)
    return SafePath(base=safe_base, resolved=resolved)
