import asyncio
from pathlib import Path

from ..core.ports import DocumentSource


class FsDocumentSource(DocumentSource):
    """An org file on the local filesystem.

    ``root`` is the directory scope searched for ``id:`` links; without it
    the source cannot take part in ID resolution.
    """

    needs_to_resolve_parent = False

    def __init__(self, path: Path, root: Path | None = None):
        self.path = Path(path).expanduser().resolve()
        self.root = Path(root).expanduser().resolve() if root is not None else None

    @property
    def id(self) -> str:
        return str(self.path)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def root_scope_id(self) -> str | None:
        return str(self.root) if self.root is not None else None

    def read_text(self) -> str:
        return self.path.read_text(encoding="utf-8")

    async def content(self) -> str:
        return await asyncio.to_thread(self.read_text)

    def resolve_relative(self, relative_path: str) -> "FsDocumentSource":
        p = (self.path.parent / Path(relative_path).expanduser()).resolve()
        if not p.is_file():
            raise FileNotFoundError(f"No such file: {p}")
        return FsDocumentSource(p, root=self.root)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FsDocumentSource) and other.path == self.path

    def __hash__(self) -> int:
        return hash(self.path)

    def __repr__(self) -> str:
        return f"FsDocumentSource({str(self.path)!r})"
