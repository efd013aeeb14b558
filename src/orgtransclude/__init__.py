"""Resolution engine for org-mode ``#+transclude:`` directives."""

from .core.cache import TransclusionCache
from .core.directive import extract_transclusions, has_transclusions, try_parse
from .core.locator import locate
from .core.model import (
    CacheEntry,
    OrgDocument,
    OrgLink,
    OrgSection,
    TransclusionDirective,
    TransclusionError,
    TransclusionErrorKind,
    TransclusionResult,
    TransclusionSuccess,
)
from .core.resolver import TransclusionResolver
from .core.transform import apply_properties

__version__ = "0.1.0"

__all__ = [
    "CacheEntry",
    "OrgDocument",
    "OrgLink",
    "OrgSection",
    "TransclusionCache",
    "TransclusionDirective",
    "TransclusionError",
    "TransclusionErrorKind",
    "TransclusionResolver",
    "TransclusionResult",
    "TransclusionSuccess",
    "apply_properties",
    "extract_transclusions",
    "has_transclusions",
    "locate",
    "try_parse",
]
