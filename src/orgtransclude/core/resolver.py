"""Resolution of transclusion directives to content.

``TransclusionResolver.resolve`` never raises: every failure ends in a
``TransclusionError`` result.
"""

from __future__ import annotations

import asyncio
from collections.abc import Set

import structlog

from .cache import TransclusionCache
from .locator import locate, navigation_target
from .model import (
    OrgTree,
    SourceId,
    TransclusionDirective,
    TransclusionError,
    TransclusionResult,
    TransclusionSuccess,
)
from .ports import DocumentSource, IdSearch, ParserStrategy
from .transform import apply_properties

log = structlog.get_logger()

DEFAULT_MAX_DEPTH = 5


def source_id(directive: TransclusionDirective) -> SourceId:
    """Identity of the target location, used for cycle detection."""
    link = directive.link
    return f"{link.scheme or ''}{link.body}"


def source_name(directive: TransclusionDirective) -> str:
    """Display name: the description, else the last path segment of the link."""
    if directive.description:
        return directive.description
    return directive.link.body.rsplit("/", 1)[-1]


class TransclusionResolver:
    def __init__(
        self,
        data_source: DocumentSource,
        cache: TransclusionCache,
        parser: ParserStrategy | None = None,
        id_search: IdSearch | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        if parser is None:
            from ..adapters.org_parser import OrgParser

            parser = OrgParser()
        self.data_source = data_source
        self.cache = cache
        self.parser = parser
        self.id_search = id_search
        self.max_depth = max_depth

    source_id = staticmethod(source_id)
    source_name = staticmethod(source_name)

    async def resolve(
        self,
        directive: TransclusionDirective,
        ancestor_ids: Set[SourceId] = frozenset(),
    ) -> TransclusionResult:
        """
        Resolve ``directive`` against the current document's source.

        ``ancestor_ids`` holds the source ids of every transclusion currently
        being expanded above this one.
        """
        if len(ancestor_ids) >= self.max_depth:
            return TransclusionError.depth_exceeded(self.max_depth)

        sid = source_id(directive)
        if sid in ancestor_ids:
            return TransclusionError.circular()

        cached = self.cache.get(directive)
        if cached is not None:
            return TransclusionSuccess(
                content=cached.content,
                source_id=cached.source_id,
                source_name=source_name(directive),
                source_ref=cached.source_ref,
                target_section=cached.target_section,
            )

        try:
            target_source = await self._resolve_link(directive)
            if target_source is None:
                return TransclusionError.not_found(str(directive.link))

            text = await target_source.content()
            try:
                parsed = await asyncio.to_thread(self.parser.parse, text)
            except Exception as e:
                log.warning("transclusion_parse_failed", source=target_source.id, exc_info=True)
                return TransclusionError.parse(str(e))

            target: OrgTree = parsed
            nav_target = None
            search_option = directive.link.extra
            log.debug(
                "transclusion_search_option",
                scheme=directive.link.scheme,
                body=directive.link.body,
                search_option=search_option,
            )
            if search_option:
                extracted = locate(parsed, search_option)
                if extracted is None:
                    return TransclusionError.invalid_target(search_option)
                target = extracted
                nav_target = navigation_target(extracted)

            content = apply_properties(target, directive)
        except PermissionError:
            log.warning("transclusion_permission_denied", source_id=sid, exc_info=True)
            return TransclusionError.permission()
        except Exception as e:
            log.warning("transclusion_resolution_error", source_id=sid, exc_info=True)
            return TransclusionError.parse(str(e))

        self.cache.put(directive, content, sid, target_source, nav_target)

        return TransclusionSuccess(
            content=content,
            source_id=sid,
            source_name=source_name(directive),
            source_ref=target_source,
            target_section=nav_target,
        )

    async def _resolve_link(self, directive: TransclusionDirective) -> DocumentSource | None:
        link = directive.link
        if link.scheme == "id:":
            return await self._resolve_id_link(link.body)
        if link.is_relative:
            return self._resolve_relative_link(link.body)
        log.info("unsupported_link", scheme=link.scheme, body=link.body)
        return None

    async def _resolve_id_link(self, org_id: str) -> DocumentSource | None:
        root = getattr(self.data_source, "root_scope_id", None)
        if self.id_search is None or root is None:
            log.info("id_search_unavailable", org_id=org_id)
            return None
        try:
            return await self.id_search.find_file_for_id(root, org_id)
        except PermissionError:
            raise
        except Exception:
            log.warning("link_resolution_failed", org_id=org_id, exc_info=True)
            return None

    def _resolve_relative_link(self, relative_path: str) -> DocumentSource | None:
        if self.data_source.needs_to_resolve_parent:
            return None
        try:
            return self.data_source.resolve_relative(relative_path)
        except PermissionError:
            raise
        except Exception:
            log.warning("link_resolution_failed", path=relative_path, exc_info=True)
            return None
