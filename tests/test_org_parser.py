"""Tests for the org parser and link parser adapters."""

import pytest

from orgtransclude.adapters.link_parser import OrgLinkParser
from orgtransclude.adapters.org_parser import parse_headline
from orgtransclude.core.model import (
    OrgDocument,
    OrgMeta,
    OrgPropertyDrawer,
    OrgSection,
    OrgText,
)
from orgtransclude.core.ports import LinkParseError

SAMPLE = """#+TITLE: Sample
Intro line
* TODO [#A] Week 5 [1/2] :work:review:
:PROPERTIES:
:ID: week-5
:CUSTOM_ID: w5
:END:
Body of week 5
** Details
Nested body
* Week 6
"""


def test_parse_document_structure(parser):
    """Test top-level content and section nesting."""
    doc = parser.parse(SAMPLE)

    assert isinstance(doc, OrgDocument)
    assert doc.content.children == (
        OrgMeta("#+TITLE:", "Sample"),
        OrgText("Intro line\n"),
    )
    assert len(doc.sections) == 2

    week5, week6 = doc.sections
    assert week5.headline.stars == 1
    assert week5.headline.keyword == "TODO"
    assert week5.headline.priority == "A"
    assert week5.headline.title == "Week 5 [1/2]"
    assert week5.headline.tags == ("work", "review")
    assert len(week5.sections) == 1
    assert week5.sections[0].headline.title == "Details"
    assert week6.headline.title == "Week 6"
    assert week6.content is None


def test_parse_property_drawer(parser):
    """Test that drawers expose ID and CUSTOM_ID."""
    week5 = parser.parse(SAMPLE).sections[0]

    assert isinstance(week5.properties, OrgPropertyDrawer)
    assert week5.ids == ["week-5"]
    assert week5.custom_ids == ["w5"]
    assert week5.id == "week-5"
    assert week5.sections[0].id is None


def test_unterminated_drawer_is_text(parser):
    """Test that a drawer without :END: stays plain text."""
    doc = parser.parse("* A\n:PROPERTIES:\n:ID: x\n")
    section = doc.sections[0]

    assert section.properties is None
    assert section.content.to_markup() == ":PROPERTIES:\n:ID: x\n"


def test_blocks_are_opaque(parser):
    """Test that lines inside #+begin/#+end are never headlines or keywords."""
    doc = parser.parse("#+begin_src org\n* not a headline\n#+transclude: [[id:x]]\n#+end_src\n")

    assert doc.sections == ()
    assert len(doc.content.children) == 1
    assert isinstance(doc.content.children[0], OrgText)


def test_round_trip_markup(parser):
    """Test that markup of a parsed document reproduces the text."""
    assert parser.parse(SAMPLE).to_markup() == SAMPLE


def test_missing_trailing_newline(parser):
    """Test input that does not end with a newline."""
    doc = parser.parse("* Only")
    assert doc.sections[0].headline.title == "Only"


def test_parse_headline():
    """Test headline parsing edge cases."""
    assert parse_headline("not a headline") is None
    assert parse_headline("*bold*") is None

    h = parse_headline("*** DONE Closed")
    assert h.stars == 3
    assert h.keyword == "DONE"
    assert h.title == "Closed"

    bare = parse_headline("** ")
    assert bare.stars == 2
    assert bare.title is None


def test_sections_visit_in_pre_order(parser):
    """Test section traversal order and early stop."""
    doc = parser.parse("* A\n** A1\n*** A1a\n* B\n")
    seen: list[str] = []

    def visit(section: OrgSection) -> bool:
        seen.append(section.headline.title)
        return section.headline.title != "A1a"

    assert doc.visit_sections(visit) is False
    assert seen == ["A", "A1", "A1a"]


def test_link_parser_schemes():
    """Test scheme detection and search options."""
    parse = OrgLinkParser().parse_link

    link = parse("id:ABC::* Week 5")
    assert (link.scheme, link.body, link.extra) == ("id:", "ABC", "* Week 5")

    link = parse("FILE:notes.org")
    assert (link.scheme, link.body, link.extra) == ("file:", "notes.org", None)

    link = parse("./notes.org::#custom")
    assert (link.scheme, link.body, link.extra) == (None, "./notes.org", "#custom")

    link = parse("https://orgmode.org")
    assert link.scheme == "https:"
    assert not link.is_relative


def test_bare_path_with_search_option():
    """Test that a dotted file name before "::" is a path, not a scheme."""
    parse = OrgLinkParser().parse_link

    link = parse("notes.org::*Week 5")
    assert (link.scheme, link.body, link.extra) == (None, "notes.org", "*Week 5")
    assert link.is_relative

    link = parse("sub/weekly.v2.org::#tasks")
    assert (link.scheme, link.body, link.extra) == (None, "sub/weekly.v2.org", "#tasks")

    link = parse("file:notes.org::*Week 5")
    assert (link.scheme, link.body, link.extra) == ("file:", "notes.org", "*Week 5")


def test_link_parser_rejects_malformed():
    """Test links that cannot be parsed."""
    parse = OrgLinkParser().parse_link

    for raw in ("", "   ", "id:", "::foo", "a\nb"):
        with pytest.raises(LinkParseError):
            parse(raw)


def test_link_is_relative():
    """Test relative link detection."""
    parse = OrgLinkParser().parse_link

    assert parse("notes.org").is_relative
    assert parse("file:../notes.org").is_relative
    assert not parse("file:/abs/notes.org").is_relative
    assert not parse("~/notes.org").is_relative
    assert not parse("id:ABC").is_relative


def test_link_str():
    """Test that links print as written."""
    link = OrgLinkParser().parse_link("id:ABC::*Week 5")
    assert str(link) == "id:ABC::*Week 5"
