# app/services/root.py
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from app.errors import StartupError

logger = logging.getLogger(__name__)

SOURCE_OVERRIDE = "override"
SOURCE_SUPERUSER = "superuser-default"
SOURCE_HOME = "home-default"
SOURCE_FALLBACK = "bundled-fallback"


@dataclass(frozen=True)
class RootCandidate:
    path: Path
    source: str


def is_superuser() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def build_candidates(
    override: Optional[Path],
    fallback: Path,
    *,
    superuser: Optional[bool] = None,
    home: Optional[Path] = None,
) -> List[RootCandidate]:
    """
    Ordered root candidates: explicit override, then the privilege default
    (filesystem root for the superuser, home directory otherwise), then the
    bundled fallback directory.
    """
    if superuser is None:
        superuser = is_superuser()

    candidates: List[RootCandidate] = []
    if override:
        candidates.append(RootCandidate(Path(override).expanduser(), SOURCE_OVERRIDE))

    if superuser:
        candidates.append(RootCandidate(Path(os.path.abspath(os.sep)), SOURCE_SUPERUSER))
    else:
        try:
            home_dir = home if home is not None else Path.home()
        except RuntimeError:
            # No resolvable home (e.g. missing HOME and passwd entry)
            home_dir = None
        if home_dir:
            candidates.append(RootCandidate(Path(home_dir), SOURCE_HOME))

    candidates.append(RootCandidate(Path(fallback), SOURCE_FALLBACK))
    return candidates


def _permission_hint(candidate: RootCandidate) -> None:
    if sys.platform == "darwin" and candidate.source == SOURCE_HOME:
        logger.warning(
            "macOS restricts access to parts of the home directory; grant the terminal "
            "or Python 'Full Disk Access' in System Settings > Privacy & Security, "
            "or set FILES_DIR to a directory you own"
        )


def probe_root(candidate: RootCandidate) -> bool:
    """
    Make a candidate usable: create it if missing, check read/write/traverse
    access and make sure its children can be enumerated. Children that raise
    PermissionError are skipped; only a failure of the enumeration itself
    disqualifies the candidate.
    """
    path = candidate.path
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.info("Root candidate %s (%s) cannot be created: %s", path, candidate.source, exc)
        return False

    if not path.is_dir():
        logger.info("Root candidate %s (%s) is not a directory", path, candidate.source)
        return False

    if not os.access(path, os.R_OK | os.W_OK | os.X_OK):
        logger.info("Root candidate %s (%s) is not readable and writable", path, candidate.source)
        _permission_hint(candidate)
        return False

    try:
        with os.scandir(path) as entries:
            for entry in entries:
                try:
                    entry.is_dir()
                except PermissionError as exc:
                    logger.debug("Skipping inaccessible entry %s: %s", entry.path, exc)
                except OSError:
                    # Dangling or looping links are not directories
                    continue
    except PermissionError as exc:
        logger.info("Root candidate %s (%s) cannot be listed: %s", path, candidate.source, exc)
        _permission_hint(candidate)
        return False
    except OSError as exc:
        logger.info("Root candidate %s (%s) cannot be listed: %s", path, candidate.source, exc)
        return False

    return True


def resolve_root(candidates: Iterable[RootCandidate]) -> Path:
    """
    Return the first usable candidate as the root directory.
    Raises StartupError when none is usable.
    """
    tried = []
    for candidate in candidates:
        tried.append(f"{candidate.path} ({candidate.source})")
        if probe_root(candidate):
            root = candidate.path.resolve()
            logger.info("Serving files from %s (source: %s)", root, candidate.source)
            return root

    raise StartupError(
        "No usable root directory found (tried: "
        + ", ".join(tried)
        + "). Set FILES_DIR to a readable and writable directory."
    )
