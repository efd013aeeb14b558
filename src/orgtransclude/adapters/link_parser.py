import re

from ..core.model import OrgLink
from ..core.ports import LinkParseError, LinkParser

# "id:", "file:", "https:"; single letters ("C:") are drive names, not schemes.
# "notes.org::*Heading" has no scheme: a name followed by "::" is a path.
SCHEME_RE = re.compile(r"^(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]+:)(?!:)")


class OrgLinkParser(LinkParser):
    def parse_link(self, raw: str) -> OrgLink:
        if raw is None:
            raise LinkParseError("empty link")
        text = raw.strip()
        if not text:
            raise LinkParseError("empty link")
        if "\n" in text:
            raise LinkParseError(f"link spans lines: {raw!r}")

        scheme = None
        m = SCHEME_RE.match(text)
        if m:
            scheme = m.group("scheme").lower()
            text = text[m.end() :]

        extra = None
        if "::" in text:
            text, extra = text.split("::", 1)
            extra = extra.strip()

        body = text.strip()
        if not body:
            raise LinkParseError(f"link has no target: {raw!r}")

        return OrgLink(scheme=scheme, body=body, extra=extra)
