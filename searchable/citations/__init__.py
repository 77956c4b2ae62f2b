"""
Citation extraction from raw AI responses.

Usage:
    from searchable.citations import extract_citations

    citations = extract_citations("See [Acme](https://www.acme.com/Page/)")
    # [ExtractedCitation(url='https://acme.com/page', domain='acme.com')]
"""

from .extractor import (
    ExtractedCitation,
    CitationParseError,
    extract_citations,
    INLINE_LINK_RE,
    REFERENCE_LINE_RE,
    BARE_MENTION_RE,
)

__all__ = [
    "ExtractedCitation",
    "CitationParseError",
    "extract_citations",
    "INLINE_LINK_RE",
    "REFERENCE_LINE_RE",
    "BARE_MENTION_RE",
]
