"""
Citation Extractor

Parses raw AI response text and extracts cited URLs.

Three independent pattern passes run over the same text:
1. Inline links: [Source](https://example.com)
2. Reference lines: "1. https://example.com" or "2) https://example.com"
3. Bare mentions: "According to Example (example.com)" or "see https://example.com"

Every candidate goes through URL normalization. Candidates that fail are
skipped, and the result is deduplicated by canonical URL. Output order is
first-occurrence order in the text, which is what citation positions are
derived from.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from searchable.utils.url_normalizer import (
    UrlNormalizationError,
    normalize_domain,
    normalize_url,
)

logger = logging.getLogger(__name__)


# =============================================================================
# PATTERNS
# =============================================================================

INLINE_LINK_RE = re.compile(r"\[([^\]]*)\]\(\s*(https?://[^\s)]+)\s*\)", re.IGNORECASE)

REFERENCE_LINE_RE = re.compile(r"^\s*\d+[.)]\s*(https?://\S+)", re.IGNORECASE | re.MULTILINE)

BARE_MENTION_RE = re.compile(
    r"(?<![\w@./-])"               # not inside an email, path or longer token
    r"(?:https?://)?"
    r"(?:[\w-]+\.)+[a-z]{2,}(?![\w-])"
    r"(?::\d{1,5})?"
    r"(?:/[^\s)*\]\"'<>]*)?",
    re.IGNORECASE,
)

TRAILING_PUNCTUATION = ".,;:!?'\""

# Pass order breaks ties between candidates starting at the same offset
PASS_INLINE = 0
PASS_REFERENCE = 1
PASS_BARE = 2


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class ExtractedCitation:
    """A single deduplicated citation."""
    url: str
    domain: str


class CitationParseError(Exception):
    """Raised in strict mode when some candidates could not be normalized."""

    def __init__(self, message: str, partial: List[ExtractedCitation], failures: Optional[List[str]] = None):
        super().__init__(message)
        self.partial = partial
        self.failures = failures or []


@dataclass
class _Candidate:
    start: int
    pass_order: int
    raw: str = field(compare=False)


# =============================================================================
# EXTRACTION
# =============================================================================

def extract_citations(
    raw_text: str,
    strict: bool = False,
    keep_params: Optional[Iterable[str]] = None,
) -> List[ExtractedCitation]:
    """
    Extract deduplicated citations from raw AI response text.

    Args:
        raw_text: Unprocessed response text
        strict: Raise CitationParseError if any candidate is malformed
        keep_params: Query parameter names kept during normalization

    Returns:
        Citations in first-occurrence order (empty list if none found)
    """
    if not raw_text:
        return []

    keep = list(keep_params) if keep_params else None
    seen = set()
    results: List[ExtractedCitation] = []
    failures: List[str] = []

    for candidate in _collect_candidates(raw_text):
        raw = candidate.raw.strip().rstrip(TRAILING_PUNCTUATION)
        if not raw:
            continue

        try:
            url = normalize_url(raw, keep_params=keep)
            domain = normalize_domain(url)
        except UrlNormalizationError as e:
            logger.debug(f"Skipping malformed citation candidate {raw!r}: {e}")
            failures.append(raw)
            continue

        if url in seen:
            continue
        seen.add(url)
        results.append(ExtractedCitation(url=url, domain=domain))

    if strict and failures:
        raise CitationParseError(
            f"{len(failures)} citation candidate(s) could not be normalized",
            partial=results,
            failures=failures,
        )

    return results


def _collect_candidates(raw_text: str) -> List[_Candidate]:
    """Run all pattern passes and order candidates by position in the text."""
    candidates: List[_Candidate] = []
    claimed: List[Tuple[int, int]] = []

    for match in INLINE_LINK_RE.finditer(raw_text):
        candidates.append(_Candidate(match.start(2), PASS_INLINE, match.group(2)))
        claimed.append(match.span(2))

    for match in REFERENCE_LINE_RE.finditer(raw_text):
        candidates.append(_Candidate(match.start(1), PASS_REFERENCE, match.group(1)))
        claimed.append(match.span(1))

    # Bare mentions never re-read a URL an earlier pass already matched
    for match in BARE_MENTION_RE.finditer(raw_text):
        start = match.start()
        if any(begin <= start < end for begin, end in claimed):
            continue
        candidates.append(_Candidate(start, PASS_BARE, match.group(0)))

    candidates.sort(key=_sort_key)
    return candidates


def _sort_key(candidate: _Candidate) -> Tuple[int, int]:
    return candidate.start, candidate.pass_order
