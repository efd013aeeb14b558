from __future__ import annotations

from typing import Protocol

from .model import OrgDocument, OrgLink


class DocumentSource(Protocol):
    """
    A document-bearing entity (a file, usually). ``id`` is stable for the
    lifetime of the source; ``root_scope_id`` names the directory scope used
    for ``id:`` searches, or None when the source has no such scope.
    """

    id: str
    name: str
    needs_to_resolve_parent: bool
    root_scope_id: str | None

    async def content(self) -> str:
        pass

    def resolve_relative(self, relative_path: str) -> DocumentSource:
        """Resolve a sibling source; raises when it cannot be resolved."""
        pass


class IdSearch(Protocol):
    """
    Locate the document containing a node with a given stable ID.
    """

    async def find_file_for_id(
        self, root_scope_id: str, target_id: str
    ) -> DocumentSource | None:
        pass


class ParserStrategy(Protocol):
    """
    Parse org markup into a typed node tree. Must be safe to call from a
    worker thread.
    """

    def parse(self, text: str) -> OrgDocument:
        pass


class LinkParser(Protocol):
    """
    Split raw link text into scheme/body/extra; raises LinkParseError on
    malformed input.
    """

    def parse_link(self, raw: str) -> OrgLink:
        pass


class LinkParseError(ValueError):
    pass
