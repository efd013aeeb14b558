from dataclasses import dataclass
from typing import Protocol

from .core.directive import extract_transclusions
from .core.model import (
    OrgTree,
    TransclusionDirective,
    TransclusionError,
    TransclusionErrorKind,
)
from .core.resolver import TransclusionResolver

SEVERITY = {
    TransclusionErrorKind.FILE_NOT_FOUND: "error",
    TransclusionErrorKind.CIRCULAR_REFERENCE: "error",
    TransclusionErrorKind.INVALID_TARGET: "warn",
    TransclusionErrorKind.PERMISSION_DENIED: "warn",
    TransclusionErrorKind.PARSE_ERROR: "error",
}


@dataclass
class Finding:
    severity: str  # "info" | "warn" | "error"
    message: str
    directive: TransclusionDirective | None = None


class LintRule(Protocol):
    id: str

    async def check(self, tree: OrgTree, resolver: TransclusionResolver) -> list[Finding]:
        pass


class DeadTransclusionsRule:
    id = "dead-transclusions"

    async def check(self, tree: OrgTree, resolver: TransclusionResolver) -> list[Finding]:
        out: list[Finding] = []
        for directive in extract_transclusions(tree):
            result = await resolver.resolve(directive)
            if isinstance(result, TransclusionError):
                out.append(
                    Finding(SEVERITY[result.kind], f"{directive.link}: {result.message}", directive)
                )
        return out
