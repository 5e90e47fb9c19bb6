# app/services/tree.py
from __future__ import annotations

import errno
import fnmatch
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Pattern, Sequence, Set

from app.errors import AccessDeniedError
from app.services.paths import resolve_safe_path

logger = logging.getLogger(__name__)

DEPTH_CEILING = 20
CACHE_DIR_NAME = ".cache"
DEFAULT_ROOT_LABEL = "Files"

# Errors that just mean "not a directory" (dangling link, link loop, file in path)
_NOT_A_DIR_ERRNOS = {errno.ENOENT, errno.ELOOP, errno.ENOTDIR}


@dataclass(frozen=True)
class DirectoryNode:
    path: str
    has_children: bool

    def to_dict(self) -> dict:
        return {"path": self.path, "hasChildren": self.has_children}


def compile_hide_patterns(patterns: Iterable[str]) -> List[Pattern[str]]:
    """Compile wildcard patterns (`*`, `?`) into case-sensitive matchers; `.cache` is always hidden."""
    compiled = [re.compile(fnmatch.translate(CACHE_DIR_NAME))]
    for pattern in patterns:
        if pattern:
            compiled.append(re.compile(fnmatch.translate(pattern)))
    return compiled


def root_label(root: Path) -> str:
    name = root.name
    if not name or name in (os.sep, "/", "\\"):
        return DEFAULT_ROOT_LABEL
    return name


def _is_hidden(name: str, matchers: Sequence[Pattern[str]]) -> bool:
    return any(m.match(name) for m in matchers)


def _is_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir()
    except PermissionError as exc:
        logger.debug("Skipping inaccessible entry %s: %s", entry.path, exc)
        return False
    except OSError as exc:
        if exc.errno in _NOT_A_DIR_ERRNOS:
            return False
        raise


class DirectoryTreeService:
    """
    Depth-limited, pre-order listing of the directories under the root.

    Listing is best-effort: a bad start path yields an empty list, and
    entries that raise PermissionError are logged and skipped. Any other
    OSError aborts the listing.
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        self.label = root_label(self.root)

    def list_dirs(
        self,
        path: str = "",
        hidden: Iterable[str] = (),
        max_depth: int = DEPTH_CEILING,
    ) -> List[DirectoryNode]:
        depth = max(0, min(int(max_depth), DEPTH_CEILING))
        matchers = compile_hide_patterns(hidden)

        parts = self._split(path)
        if parts and parts[0] == self.label:
            parts = parts[1:]
        if ".." in parts:
            return []

        try:
            start = resolve_safe_path(self.root, "/".join(parts)).resolved
        except AccessDeniedError:
            logger.info("Tree listing outside root rejected: %s", path)
            return []
        # isdir swallows OSError (ENAMETOOLONG, ELOOP) and reports False
        if not os.path.isdir(start):
            return []

        nodes: List[DirectoryNode] = []
        self._visit(
            start,
            self._display_path(parts),
            depth,
            matchers,
            nodes,
            seen=set(),
            visited=set(),
        )
        return nodes

    # ---------- Internals ----------

    @staticmethod
    def _split(path: Optional[str]) -> List[str]:
        if not path:
            return []
        return [p for p in re.split(r"[\\/]+", path) if p and p != "."]

    def _display_path(self, parts: Sequence[str]) -> str:
        return "/".join(["", self.label, *parts])

    def _visit(
        self,
        directory: Path,
        display: str,
        remaining: int,
        matchers: Sequence[Pattern[str]],
        nodes: List[DirectoryNode],
        *,
        seen: Set[str],
        visited: Set[str],
    ) -> None:
        canonical = os.path.realpath(directory)
        if canonical in visited:
            return
        visited.add(canonical)

        if remaining <= 0:
            if display not in seen:
                seen.add(display)
                nodes.append(DirectoryNode(display, self._has_visible_child(directory, matchers, visited)))
            return

        # links back into the visited set would not be listed, so they do not count
        children = [
            name
            for name in self._child_dirs(directory, matchers)
            if os.path.realpath(directory / name) not in visited
        ]
        if display not in seen:
            seen.add(display)
            nodes.append(DirectoryNode(display, bool(children)))

        for name in children:
            self._visit(
                directory / name,
                f"{display}/{name}",
                remaining - 1,
                matchers,
                nodes,
                seen=seen,
                visited=visited,
            )

    def _child_dirs(self, directory: Path, matchers: Sequence[Pattern[str]]) -> List[str]:
        names: List[str] = []
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if _is_hidden(entry.name, matchers):
                        continue
                    if _is_dir(entry):
                        names.append(entry.name)
        except PermissionError as exc:
            logger.info("Skipping unreadable directory %s: %s", directory, exc)
            return []
        return sorted(names)

    def _has_visible_child(
        self, directory: Path, matchers: Sequence[Pattern[str]], visited: Set[str]
    ) -> bool:
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if _is_hidden(entry.name, matchers) or not _is_dir(entry):
                        continue
                    if os.path.realpath(entry.path) not in visited:
                        return True
        except PermissionError as exc:
            logger.info("Skipping unreadable directory %s: %s", directory, exc)
        return False
