# app/di.py
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from app.config import Settings
from app.services.filesystem import FileSystemService
from app.services.root import build_candidates, resolve_root
from app.services.tree import DirectoryTreeService


@dataclass(frozen=True)
class Container:
    settings: Settings
    root: Path
    fs_service: FileSystemService
    tree_service: DirectoryTreeService


def build_container(settings: Optional[Settings] = None, root: Optional[Path] = None) -> Container:
    """
    Resolve the root directory once and wire the services around it.
    Raises StartupError when no root candidate is usable.
    """
    s = settings or Settings()
    if root is None:
        root = resolve_root(build_candidates(s.FILES_DIR, s.FILES_FALLBACK_DIR))

    fs = FileSystemService(root)
    tree = DirectoryTreeService(root)
    return Container(s, fs.root, fs, tree)
