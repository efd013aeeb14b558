"""Reshaping located content according to directive properties."""

from .model import OrgDocument, OrgSection, OrgTree, TransclusionDirective


def remove_first_heading(section: OrgSection) -> OrgDocument:
    """Drop the headline, keeping the body and all subsections."""
    return OrgDocument(content=section.content, sections=section.sections)


def keep_only_contents(section: OrgSection) -> OrgSection:
    """Keep headline and body, drop subsections."""
    return OrgSection(headline=section.headline, content=section.content, sections=())


def apply_properties(content: OrgTree, directive: TransclusionDirective) -> OrgTree:
    """
    Apply :no-first-heading, then :only-contents.

    The order matters: once :no-first-heading has turned a section into a
    document, :only-contents no longer applies. :level and
    :exclude-elements are accepted but leave the content unchanged.
    """
    result = content

    if directive.no_first_heading and isinstance(result, OrgSection):
        result = remove_first_heading(result)

    if directive.only_contents and isinstance(result, OrgSection):
        result = keep_only_contents(result)

    return result
