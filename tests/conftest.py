"""Shared fixtures: in-memory document sources and an org parser."""

import pytest
import structlog

from orgtransclude.adapters.org_parser import OrgParser
from orgtransclude.core.model import OrgMeta


class MemoryStore:
    """A flat set of named org documents plus a log of content fetches."""

    def __init__(self, files: dict[str, str] | None = None, ids: dict[str, str] | None = None):
        self.files = dict(files or {})
        self.ids = dict(ids or {})  # stable id -> file name
        self.fetches: list[str] = []

    def source(self, name: str, **kwargs) -> "MemorySource":
        return MemorySource(self, name, **kwargs)


class MemorySource:
    def __init__(
        self,
        store: MemoryStore,
        name: str,
        root_scope_id: str | None = "mem",
        needs_to_resolve_parent: bool = False,
    ):
        self.store = store
        self.name = name
        self.id = f"mem:{name}"
        self.root_scope_id = root_scope_id
        self.needs_to_resolve_parent = needs_to_resolve_parent

    async def content(self) -> str:
        self.store.fetches.append(self.name)
        return self.store.files[self.name]

    def resolve_relative(self, relative_path: str) -> "MemorySource":
        name = relative_path.removeprefix("./")
        if name not in self.store.files:
            raise FileNotFoundError(relative_path)
        return MemorySource(self.store, name, root_scope_id=self.root_scope_id)


class MemoryIdSearch:
    def __init__(self, store: MemoryStore):
        self.store = store
        self.calls: list[tuple[str, str]] = []

    async def find_file_for_id(self, root_scope_id: str, target_id: str):
        self.calls.append((root_scope_id, target_id))
        name = self.store.ids.get(target_id)
        if name is None:
            return None
        return MemorySource(self.store, name, root_scope_id=root_scope_id)


def first_meta(text: str) -> OrgMeta:
    """Parse ``text`` and return the first node of the document body."""
    doc = OrgParser().parse(text)
    assert doc.content is not None
    node = doc.content.children[0]
    assert isinstance(node, OrgMeta)
    return node


@pytest.fixture
def parser() -> OrgParser:
    return OrgParser()


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
