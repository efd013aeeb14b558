"""Runtime wiring helper for the CLI and the API server."""

import asyncio
from dataclasses import dataclass
from pathlib import Path

from .adapters.fs_source import FsDocumentSource
from .adapters.id_search import FsIdSearch
from .adapters.link_parser import OrgLinkParser
from .adapters.org_parser import OrgParser
from .config import OrgtxConfig, load_config
from .core.cache import TransclusionCache
from .core.model import OrgDocument
from .core.resolver import TransclusionResolver
from .render import TransclusionRenderer


@dataclass
class Runtime:
    """Shared components; one DocumentSession per open document."""
    parser: OrgParser
    link_parser: OrgLinkParser
    id_search: FsIdSearch
    config: OrgtxConfig

    def open(self, path: Path) -> "DocumentSession":
        source = FsDocumentSource(path, root=self.config.source.root)
        cache = TransclusionCache(max_size=self.config.transclusion.cache_size)
        resolver = TransclusionResolver(
            data_source=source,
            cache=cache,
            parser=self.parser,
            id_search=self.id_search,
            max_depth=self.config.transclusion.max_depth,
        )
        return DocumentSession(source=source, cache=cache, resolver=resolver, runtime=self)


@dataclass
class DocumentSession:
    """An open document: its source, its transclusion cache and resolver."""
    source: FsDocumentSource
    cache: TransclusionCache
    resolver: TransclusionResolver
    runtime: Runtime

    async def load(self) -> OrgDocument:
        text = await self.source.content()
        return await asyncio.to_thread(self.runtime.parser.parse, text)

    def renderer(self, **kwargs) -> TransclusionRenderer:
        return TransclusionRenderer(self.resolver, self.runtime.link_parser, **kwargs)

    async def render(self, **kwargs) -> str:
        return await self.renderer(**kwargs).render(await self.load())

    def close(self) -> None:
        self.cache.clear()


def build_runtime(root: Path | None = None, config_path: Path | None = None) -> Runtime:
    """Build and wire all components."""
    config = load_config(config_path=config_path, root=root)
    if root is not None:
        config.source.root = root

    return Runtime(
        parser=OrgParser(),
        link_parser=OrgLinkParser(),
        id_search=FsIdSearch(pattern=config.source.pattern),
        config=config,
    )
