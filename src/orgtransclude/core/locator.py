"""Locating the sub-target of a transclusion inside a parsed document.

Search options follow https://orgmode.org/manual/Search-Options.html:

- ``*Headline``: headline search
- ``#custom-id``: CUSTOM_ID property search
- ``/regex/``: regex search (not supported, never matches)
- anything else: named target, matched against the ID property
"""

from __future__ import annotations

import re

import structlog

from .model import OrgDocument, OrgSection, OrgTree

log = structlog.get_logger()

# Statistics cookies: [/], [0/2], [7/7], [50%]
COOKIE_RE = re.compile(r"\s*\[[\d/%]+\]\s*$")


def _find_first(tree: OrgTree, predicate) -> OrgSection | None:
    result: OrgSection | None = None

    def visit(section: OrgSection) -> bool:
        nonlocal result
        if predicate(section):
            result = section
            return False
        return True

    tree.visit_sections(visit)
    return result


def find_section_by_title(tree: OrgTree, title: str) -> OrgSection | None:
    """
    Find a section by its headline title.

    Three passes, first hit wins:
    1. exact match (case-insensitive)
    2. match after stripping a trailing statistics cookie
    3. headline starts with the search title
    """
    search = title.strip().lower()
    log.debug("headline_search", title=search)

    def exact(section: OrgSection) -> bool:
        raw = section.headline.title
        return raw is not None and raw.strip().lower() == search

    def cookie_stripped(section: OrgSection) -> bool:
        raw = section.headline.title
        if raw is None:
            return False
        return COOKIE_RE.sub("", raw).strip().lower() == search

    def prefix(section: OrgSection) -> bool:
        raw = section.headline.title
        return raw is not None and raw.strip().lower().startswith(search)

    for name, predicate in (
        ("exact", exact),
        ("cookie", cookie_stripped),
        ("prefix", prefix),
    ):
        found = _find_first(tree, predicate)
        if found is not None:
            log.debug("headline_match", title=search, strategy=name)
            return found

    log.debug("headline_not_found", title=search)
    return None


def find_section_by_custom_id(tree: OrgTree, custom_id: str) -> OrgSection | None:
    wanted = custom_id.lower()

    def matches(section: OrgSection) -> bool:
        ids = section.custom_ids
        return bool(ids) and ids[0].lower() == wanted

    return _find_first(tree, matches)


def find_by_target(tree: OrgTree, target: str) -> OrgSection | None:
    return _find_first(tree, lambda section: section.id == target)


def locate(tree: OrgTree, search_option: str) -> OrgTree | None:
    """
    Return the subtree ``search_option`` points at, or None.

    Callers handle the empty option (whole document) themselves.
    """
    if search_option.startswith("*"):
        return find_section_by_title(tree, search_option[1:].strip())
    if search_option.startswith("#"):
        return find_section_by_custom_id(tree, search_option[1:].strip())
    if search_option.startswith("/") and search_option.endswith("/"):
        log.info("regex_search_unsupported", search_option=search_option)
        return None
    return find_by_target(tree, search_option)


def navigation_target(tree: OrgTree) -> str | None:
    """
    A re-enterable target for the located subtree.

    Prefers the ID, then the custom ID, then the headline title.
    """
    if isinstance(tree, OrgDocument):
        return None

    ids = tree.ids
    if ids:
        return f"id:{ids[0]}"

    custom_ids = tree.custom_ids
    if custom_ids:
        return f"#{custom_ids[0]}"

    title = tree.headline.raw_title
    if title:
        return f"*{title}"

    return None
