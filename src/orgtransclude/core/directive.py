"""Parsing of ``#+transclude:`` directives.

Example::

    #+transclude: [[id:uuid::*heading][desc]] :no-first-heading :level 2
"""

from __future__ import annotations

import re

from .model import OrgMeta, OrgTree, TransclusionDirective
from .ports import LinkParser

TRANSCLUDE_KEY = "#+transclude:"

# [[link][description]] or [[link]]
LINK_RE = re.compile(r"\[\[(?P<link>[^\]]+)\](?:\[(?P<desc>[^\]]*)\])?\]")

NO_FIRST_HEADING_RE = re.compile(r":no-first-heading\b", re.IGNORECASE)
ONLY_CONTENTS_RE = re.compile(r":only-contents\b", re.IGNORECASE)
LEVEL_RE = re.compile(r":level\s+(?P<level>\d+)", re.IGNORECASE)
EXCLUDE_ELEMENTS_RE = re.compile(
    r':exclude-elements\s+"?\((?P<elements>[^)]+)\)"?', re.IGNORECASE
)


def _default_link_parser() -> LinkParser:
    from ..adapters.link_parser import OrgLinkParser

    return OrgLinkParser()


def try_parse(
    meta: OrgMeta, link_parser: LinkParser | None = None
) -> TransclusionDirective | None:
    """
    Parse a metadata node as a transclusion directive.

    Returns None for anything that is not a well-formed directive; such lines
    are meant to be rendered as ordinary metadata.
    """
    if meta.key.lower() != TRANSCLUDE_KEY:
        return None
    if meta.value is None:
        return None

    value = meta.value.strip()
    if not value:
        return None

    m = LINK_RE.match(value)
    if m is None:
        return None

    parser = link_parser or _default_link_parser()
    try:
        link = parser.parse_link(m.group("link"))
    except ValueError:
        return None

    props = value[m.end() :].strip()

    level = None
    lm = LEVEL_RE.search(props)
    if lm:
        level = int(lm.group("level"))

    exclude: tuple[str, ...] = ()
    em = EXCLUDE_ELEMENTS_RE.search(props)
    if em:
        exclude = tuple(em.group("elements").split())

    return TransclusionDirective(
        link=link,
        description=m.group("desc"),
        no_first_heading=bool(NO_FIRST_HEADING_RE.search(props)),
        only_contents=bool(ONLY_CONTENTS_RE.search(props)),
        level=level,
        exclude_elements=exclude,
        meta=meta,
    )


def extract_transclusions(
    tree: OrgTree, link_parser: LinkParser | None = None
) -> list[TransclusionDirective]:
    """All directives in the tree, in document order."""
    parser = link_parser or _default_link_parser()
    results: list[TransclusionDirective] = []

    def visit(meta: OrgMeta) -> bool:
        directive = try_parse(meta, parser)
        if directive is not None:
            results.append(directive)
        return True

    tree.visit_meta(visit)
    return results


def has_transclusions(tree: OrgTree) -> bool:
    found = False

    def visit(meta: OrgMeta) -> bool:
        nonlocal found
        if meta.key.lower() == TRANSCLUDE_KEY:
            found = True
            return False
        return True

    tree.visit_meta(visit)
    return found
