"""Expanding transclusion directives into org text.

Every directive of a document is resolved through the document's resolver.
Sibling directives resolve concurrently; each branch threads its own ancestor
set, so siblings never see each other as cycles.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Set
from typing import Any

from .core.directive import try_parse
from .core.model import (
    OrgContent,
    OrgDocument,
    OrgMeta,
    OrgSection,
    OrgTree,
    SourceId,
    TransclusionDirective,
    TransclusionError,
    TransclusionResult,
    TransclusionSuccess,
)
from .core.ports import LinkParser
from .core.resolver import TransclusionResolver


def header_text(directive: TransclusionDirective) -> str:
    """Short label for a transclusion, e.g. ``ID: 51fe6c3d... -> * Week 5``."""
    if directive.description:
        return directive.description
    link = directive.link
    if link.scheme == "id:":
        out = f"ID: {link.body[:8]}..."
    else:
        out = link.body
    if link.extra is not None:
        out += f" -> {link.extra}"
    return out


def error_text(error: TransclusionError) -> str:
    line = f"# transclusion failed: {error.message}"
    if error.retryable:
        line += " [retry]"
    return line + "\n"


class TransclusionRenderer:
    def __init__(
        self,
        resolver: TransclusionResolver,
        link_parser: LinkParser | None = None,
        keep_directives: bool = False,
        headers: bool = False,
    ):
        self.resolver = resolver
        self.link_parser = link_parser
        self.keep_directives = keep_directives
        self.headers = headers

    def _directives(self, tree: OrgTree) -> list[tuple[OrgMeta, TransclusionDirective]]:
        found: list[tuple[OrgMeta, TransclusionDirective]] = []

        def visit(meta: OrgMeta) -> bool:
            directive = try_parse(meta, self.link_parser)
            if directive is not None:
                found.append((meta, directive))
            return True

        tree.visit_meta(visit)
        return found

    async def expand(
        self, directive: TransclusionDirective, ancestor_ids: Set[SourceId] = frozenset()
    ) -> str:
        """Resolve one directive and render its content, recursively."""
        result = await self.resolver.resolve(directive, ancestor_ids)
        if isinstance(result, TransclusionError):
            return error_text(result)

        assert isinstance(result, TransclusionSuccess)
        body = await self.render(result.content, frozenset(ancestor_ids) | {result.source_id})
        if self.headers:
            body = f"# transcluded: {header_text(directive)}\n" + body
        return body

    async def render(self, tree: OrgTree, ancestor_ids: Set[SourceId] = frozenset()) -> str:
        """Org text of ``tree`` with every directive replaced by its content."""
        directives = self._directives(tree)
        expansions = await asyncio.gather(
            *(self.expand(directive, ancestor_ids) for _meta, directive in directives)
        )
        return self._emit(tree, iter(expansions))

    def _emit_content(self, content: OrgContent | None, expansions: Iterator[str]) -> str:
        if content is None:
            return ""
        out = []
        for child in content.children:
            if isinstance(child, OrgMeta) and try_parse(child, self.link_parser) is not None:
                if self.keep_directives:
                    out.append(child.to_markup())
                out.append(next(expansions))
            else:
                out.append(child.to_markup())
        return "".join(out)

    def _emit(self, tree: OrgTree, expansions: Iterator[str]) -> str:
        if isinstance(tree, OrgDocument):
            out = self._emit_content(tree.content, expansions)
        else:
            assert isinstance(tree, OrgSection)
            out = tree.headline.to_markup() + self._emit_content(tree.content, expansions)
        for section in tree.sections:
            out += self._emit(section, expansions)
        return out


def directive_to_dict(directive: TransclusionDirective) -> dict[str, Any]:
    link = directive.link
    return {
        "scheme": link.scheme,
        "body": link.body,
        "extra": link.extra,
        "description": directive.description,
        "no_first_heading": directive.no_first_heading,
        "only_contents": directive.only_contents,
        "level": directive.level,
        "exclude_elements": list(directive.exclude_elements),
        "header": header_text(directive),
    }


def result_to_dict(result: TransclusionResult) -> dict[str, Any]:
    if isinstance(result, TransclusionError):
        return {
            "ok": False,
            "kind": result.kind.value,
            "message": result.message,
            "retryable": result.retryable,
        }
    return {
        "ok": True,
        "source_id": result.source_id,
        "source_name": result.source_name,
        "source": getattr(result.source_ref, "id", None),
        "target_section": result.target_section,
        "content": result.content.to_markup(),
    }
