import asyncio
import re
from pathlib import Path

from ..core.ports import IdSearch
from .fs_source import FsDocumentSource

ID_LINE_RE = re.compile(r"^\s*:ID:\s+(\S+)\s*$", re.IGNORECASE | re.MULTILINE)


class FsIdSearch(IdSearch):
    """Scan every org file under the root scope for an ``:ID:`` property."""

    def __init__(self, pattern: str = "*.org"):
        self.pattern = pattern

    def find_path(self, root: Path, target_id: str) -> Path | None:
        if not root.is_dir():
            return None
        for p in sorted(root.rglob(self.pattern)):
            if any(part.startswith(".") for part in p.relative_to(root).parts):
                continue
            try:
                text = p.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            for m in ID_LINE_RE.finditer(text):
                if m.group(1) == target_id:
                    return p
        return None

    async def find_file_for_id(
        self, root_scope_id: str, target_id: str
    ) -> FsDocumentSource | None:
        root = Path(root_scope_id)
        path = await asyncio.to_thread(self.find_path, root, target_id)
        if path is None:
            return None
        return FsDocumentSource(path, root=root)
