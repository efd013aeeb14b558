from __future__ import annotations

import enum
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

SourceId = str


@dataclass(frozen=True)
class OrgMeta:
    key: str  # "#+transclude:" as written, prefix and colon included
    value: str | None = None

    def to_markup(self) -> str:
        if self.value:
            return f"{self.key} {self.value}\n"
        return f"{self.key}\n"


@dataclass(frozen=True)
class OrgPropertyDrawer:
    properties: tuple[tuple[str, str], ...] = ()

    def get(self, name: str) -> str | None:
        name = name.upper()
        for key, value in self.properties:
            if key.upper() == name:
                return value
        return None

    def to_markup(self) -> str:
        lines = [":PROPERTIES:\n"]
        for key, value in self.properties:
            lines.append(f":{key}: {value}\n" if value else f":{key}:\n")
        lines.append(":END:\n")
        return "".join(lines)


@dataclass(frozen=True)
class OrgText:
    text: str  # one or more raw lines, newline terminated

    def to_markup(self) -> str:
        return self.text


OrgElement = Union[OrgMeta, OrgPropertyDrawer, OrgText]


@dataclass(frozen=True)
class OrgContent:
    children: tuple[OrgElement, ...] = ()

    def to_markup(self) -> str:
        return "".join(child.to_markup() for child in self.children)


@dataclass(frozen=True)
class OrgHeadline:
    stars: int
    title: str | None = None  # rendered title, statistics cookies included
    keyword: str | None = None  # "TODO" | "DONE"
    priority: str | None = None  # "A" for [#A]
    tags: tuple[str, ...] = ()

    @property
    def raw_title(self) -> str | None:
        return self.title

    def to_markup(self) -> str:
        parts = ["*" * self.stars]
        if self.keyword:
            parts.append(self.keyword)
        if self.priority:
            parts.append(f"[#{self.priority}]")
        if self.title:
            parts.append(self.title)
        line = " ".join(parts)
        if self.tags:
            line += " :" + ":".join(self.tags) + ":"
        return line + "\n"


def _visit_content_meta(
    content: OrgContent | None, callback: Callable[[OrgMeta], bool]
) -> bool:
    if content is None:
        return True
    for child in content.children:
        if isinstance(child, OrgMeta) and not callback(child):
            return False
    return True


@dataclass(frozen=True)
class OrgSection:
    headline: OrgHeadline
    content: OrgContent | None = None
    sections: tuple[OrgSection, ...] = ()

    @property
    def properties(self) -> OrgPropertyDrawer | None:
        """The first property drawer of the section body, if any."""
        if self.content is None:
            return None
        for child in self.content.children:
            if isinstance(child, OrgPropertyDrawer):
                return child
        return None

    @property
    def ids(self) -> list[str]:
        drawer = self.properties
        value = drawer.get("ID") if drawer else None
        return [value] if value else []

    @property
    def custom_ids(self) -> list[str]:
        drawer = self.properties
        value = drawer.get("CUSTOM_ID") if drawer else None
        return [value] if value else []

    @property
    def id(self) -> str | None:
        ids = self.ids
        return ids[0] if ids else None

    def visit_sections(self, callback: Callable[[OrgSection], bool]) -> bool:
        """Depth-first, pre-order walk starting at this section.

        Returns False once ``callback`` has asked to stop.
        """
        if not callback(self):
            return False
        for child in self.sections:
            if not child.visit_sections(callback):
                return False
        return True

    def visit_meta(self, callback: Callable[[OrgMeta], bool]) -> bool:
        if not _visit_content_meta(self.content, callback):
            return False
        for child in self.sections:
            if not child.visit_meta(callback):
                return False
        return True

    def to_markup(self) -> str:
        out = self.headline.to_markup()
        if self.content is not None:
            out += self.content.to_markup()
        return out + "".join(s.to_markup() for s in self.sections)


@dataclass(frozen=True)
class OrgDocument:
    content: OrgContent | None = None
    sections: tuple[OrgSection, ...] = ()

    def visit_sections(self, callback: Callable[[OrgSection], bool]) -> bool:
        for child in self.sections:
            if not child.visit_sections(callback):
                return False
        return True

    def visit_meta(self, callback: Callable[[OrgMeta], bool]) -> bool:
        if not _visit_content_meta(self.content, callback):
            return False
        for child in self.sections:
            if not child.visit_meta(callback):
                return False
        return True

    def to_markup(self) -> str:
        out = self.content.to_markup() if self.content is not None else ""
        return out + "".join(s.to_markup() for s in self.sections)


OrgTree = Union[OrgDocument, OrgSection]


@dataclass(frozen=True)
class OrgLink:
    scheme: str | None  # "id:", "file:", ... or None for a bare path
    body: str
    extra: str | None = None  # search option after "::"

    @property
    def is_relative(self) -> bool:
        if self.scheme not in (None, "file:"):
            return False
        return not self.body.startswith(("/", "~"))

    def __str__(self) -> str:
        out = f"{self.scheme or ''}{self.body}"
        if self.extra is not None:
            out += f"::{self.extra}"
        return out


@dataclass(frozen=True)
class TransclusionDirective:
    """A parsed ``#+transclude:`` line.

    ``level`` and ``exclude_elements`` are parsed and carried along but do
    not change the transcluded output.
    """

    link: OrgLink
    description: str | None = None
    no_first_heading: bool = False
    only_contents: bool = False
    level: int | None = None
    exclude_elements: tuple[str, ...] = ()
    meta: OrgMeta | None = field(default=None, compare=False, repr=False)

    @property
    def cache_key(self) -> str:
        return json.dumps(
            [
                self.link.scheme,
                self.link.body,
                self.link.extra,
                self.no_first_heading,
                self.only_contents,
                self.level,
            ]
        )


class TransclusionErrorKind(enum.Enum):
    FILE_NOT_FOUND = "file_not_found"
    CIRCULAR_REFERENCE = "circular_reference"
    INVALID_TARGET = "invalid_target"
    PERMISSION_DENIED = "permission_denied"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class TransclusionSuccess:
    content: OrgTree
    source_id: SourceId
    source_name: str
    source_ref: Any  # the DocumentSource the content was loaded from
    target_section: str | None = None  # "id:...", "#..." or "*title"


@dataclass(frozen=True)
class TransclusionError:
    message: str
    kind: TransclusionErrorKind

    @classmethod
    def not_found(cls, target: str) -> TransclusionError:
        return cls(f"File not found: {target}", TransclusionErrorKind.FILE_NOT_FOUND)

    @classmethod
    def circular(cls) -> TransclusionError:
        return cls("Circular transclusion detected", TransclusionErrorKind.CIRCULAR_REFERENCE)

    @classmethod
    def depth_exceeded(cls, max_depth: int) -> TransclusionError:
        return cls(
            f"Maximum transclusion depth ({max_depth}) exceeded",
            TransclusionErrorKind.CIRCULAR_REFERENCE,
        )

    @classmethod
    def invalid_target(cls, target: str) -> TransclusionError:
        return cls(f"Target not found: {target}", TransclusionErrorKind.INVALID_TARGET)

    @classmethod
    def permission(cls) -> TransclusionError:
        return cls("Directory access required", TransclusionErrorKind.PERMISSION_DENIED)

    @classmethod
    def parse(cls, message: str) -> TransclusionError:
        return cls(f"Parse error: {message}", TransclusionErrorKind.PARSE_ERROR)

    @property
    def retryable(self) -> bool:
        return self.kind in (
            TransclusionErrorKind.PARSE_ERROR,
            TransclusionErrorKind.FILE_NOT_FOUND,
        )


TransclusionResult = Union[TransclusionSuccess, TransclusionError]


@dataclass(frozen=True)
class CacheEntry:
    content: OrgTree
    source_id: SourceId
    source_ref: Any
    target_section: str | None
    loaded_at: datetime
