import re
from dataclasses import dataclass, field

from ..core.model import (
    OrgContent,
    OrgDocument,
    OrgElement,
    OrgHeadline,
    OrgMeta,
    OrgPropertyDrawer,
    OrgSection,
    OrgText,
)
from ..core.ports import ParserStrategy

HEADLINE_RE = re.compile(r"^(\*+)[ \t]+(.*?)\s*$")
KEYWORD_RE = re.compile(r"^(TODO|DONE)(?:\s+|$)")
PRIORITY_RE = re.compile(r"^\[#([A-Za-z0-9])\]\s*")
TAGS_RE = re.compile(r"(?:^|\s+)(:(?:[\w@#%]+:)+)$")
META_RE = re.compile(r"^\s*(#\+[^\s:]+:)(?:\s+(.*?))?\s*$")
BLOCK_START_RE = re.compile(r"^\s*#\+begin_(\w+)", re.IGNORECASE)
DRAWER_START_RE = re.compile(r"^\s*:PROPERTIES:\s*$", re.IGNORECASE)
DRAWER_END_RE = re.compile(r"^\s*:END:\s*$", re.IGNORECASE)
PROPERTY_RE = re.compile(r"^\s*:([^\s:]+):(?:\s+(.*?))?\s*$")


@dataclass
class _Builder:
    headline: OrgHeadline | None
    children: list[OrgElement] = field(default_factory=list)
    sections: list["_Builder"] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)

    def flush(self) -> None:
        if self.pending:
            self.children.append(OrgText("".join(self.pending)))
            self.pending = []

    def content(self) -> OrgContent | None:
        self.flush()
        return OrgContent(tuple(self.children)) if self.children else None

    def build_section(self) -> OrgSection:
        assert self.headline is not None
        return OrgSection(
            headline=self.headline,
            content=self.content(),
            sections=tuple(s.build_section() for s in self.sections),
        )


def parse_headline(line: str) -> OrgHeadline | None:
    m = HEADLINE_RE.match(line)
    if not m:
        return None

    stars = len(m.group(1))
    rest = m.group(2)

    keyword = None
    km = KEYWORD_RE.match(rest)
    if km:
        keyword = km.group(1)
        rest = rest[km.end() :]

    priority = None
    pm = PRIORITY_RE.match(rest)
    if pm:
        priority = pm.group(1)
        rest = rest[pm.end() :]

    tags: tuple[str, ...] = ()
    tm = TAGS_RE.search(rest)
    if tm:
        tags = tuple(t for t in tm.group(1).split(":") if t)
        rest = rest[: tm.start()]

    title = rest.strip() or None
    return OrgHeadline(
        stars=stars, title=title, keyword=keyword, priority=priority, tags=tags
    )


class OrgParser(ParserStrategy):
    """Line based org parser: headlines, property drawers, keywords, text."""

    def parse(self, text: str) -> OrgDocument:
        lines = text.splitlines(keepends=True)
        if lines and not lines[-1].endswith("\n"):
            lines[-1] += "\n"

        root = _Builder(headline=None)
        stack: list[_Builder] = [root]
        block_end: re.Pattern[str] | None = None
        drawer: list[tuple[str, str]] | None = None
        drawer_lines: list[str] = []

        for ln in lines:
            current = stack[-1]
            line = ln.rstrip("\r\n")

            # Inside #+begin_x ... #+end_x everything is text
            if block_end is not None:
                current.pending.append(ln)
                if block_end.match(line):
                    block_end = None
                continue

            if drawer is not None:
                if DRAWER_END_RE.match(line):
                    current.flush()
                    current.children.append(OrgPropertyDrawer(tuple(drawer)))
                    drawer = None
                    drawer_lines = []
                    continue
                pm = PROPERTY_RE.match(line)
                if pm:
                    drawer.append((pm.group(1), pm.group(2) or ""))
                    drawer_lines.append(ln)
                    continue
                # Not a drawer after all; keep its lines as text
                current.pending.extend(drawer_lines)
                drawer = None
                drawer_lines = []

            headline = parse_headline(line)
            if headline is not None:
                current.flush()
                while len(stack) > 1 and stack[-1].headline.stars >= headline.stars:
                    stack.pop()
                section = _Builder(headline=headline)
                stack[-1].sections.append(section)
                stack.append(section)
                continue

            bm = BLOCK_START_RE.match(line)
            if bm:
                block_end = re.compile(
                    rf"^\s*#\+end_{re.escape(bm.group(1))}\b", re.IGNORECASE
                )
                current.pending.append(ln)
                continue

            if DRAWER_START_RE.match(line):
                drawer = []
                drawer_lines = [ln]
                continue

            mm = META_RE.match(line)
            if mm:
                current.flush()
                current.children.append(OrgMeta(key=mm.group(1), value=mm.group(2) or None))
                continue

            current.pending.append(ln)

        if drawer is not None:
            stack[-1].pending.extend(drawer_lines)

        return OrgDocument(
            content=root.content(),
            sections=tuple(s.build_section() for s in root.sections),
        )
