# app/services/filesystem.py
import logging
from pathlib import Path

from app.errors import FileIOError
from app.services.paths import resolve_safe_path

logger = logging.getLogger(__name__)


class FileSystemService:
    """
    Whole-file text read/write confined to the root directory.
    Last writer wins; nothing here coordinates concurrent writers.
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def _resolve_in_root(self, rel: str) -> Path:
        # Raises AccessDeniedError on traversal / symlink escape
        return resolve_safe_path(self.root, rel).resolved

    def write_text(self, rel_path: str, content: str) -> str:
        p = self._resolve_in_root(rel_path)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            # newline="" keeps the content byte-for-byte (no \n <-> \r\n translation)
            with p.open("w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as exc:
            logger.warning("Write failed for %s: %s", p, exc)
            raise FileIOError(rel_path, "Error saving file") from exc
        return "OK"

    def read_text(self, rel_path: str) -> str:
        p = self._resolve_in_root(rel_path)
        try:
            with p.open("r", encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Read failed for %s: %s", p, exc)
            raise FileIOError(rel_path, "Error reading file") from exc
