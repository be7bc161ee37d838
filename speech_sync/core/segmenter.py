"""Split AI commentary text into exactly three titled sections.

WHY: The narration reads the commentary as three spoken blocks, each
introduced by a header. Highlighting and section markers need the same
split the narrator used, and every caller must agree on it. Two
diverging copies of this logic is how section titles drift apart.

HOW: First try a structured split on the header keywords, in textual
order. If any header is missing, fall back to blank-line paragraphs.
Either way the result is padded or folded to exactly three sections.

RULES:
- Headers: "Key Points", "Impact Analysis", "Future Outlook", matched
  case-insensitively, each searched after the end of the previous one
- Structured content = text between a header's end and the next header's
  start (or end of string), trimmed
- Text before the first header belongs to no section
- Fallback: paragraphs split on blank lines, empty paragraphs dropped,
  paragraphs past the third folded into the third with "\\n\\n"
- Fallback titles are the same canonical headers
- Always exactly three sections; missing ones have empty content
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from speech_sync.config import SECTION_COUNT, SECTION_HEADERS
from speech_sync.core.ir import Section

# A paragraph break: newline, optional blank-ish whitespace, newline.
_PARAGRAPH_BREAK_RE = re.compile(r"\n[ \t\r\f\v]*\n")

_HEADER_PATTERNS = tuple(
    re.compile(re.escape(header), re.IGNORECASE) for header in SECTION_HEADERS
)


def find_headers(text: str) -> Optional[List[Tuple[int, int]]]:
    """Locate every section header in textual order.

    Returns a list of (start, end) match spans, one per header, or None if
    any header is missing after the previous one.
    """
    spans: List[Tuple[int, int]] = []
    position = 0
    for pattern in _HEADER_PATTERNS:
        match = pattern.search(text, position)
        if match is None:
            return None
        spans.append((match.start(), match.end()))
        position = match.end()
    return spans


def split_paragraphs(text: str) -> List[str]:
    """Split on blank lines and drop paragraphs that are only whitespace."""
    return [p.strip() for p in _PARAGRAPH_BREAK_RE.split(text) if p.strip()]


def segment_commentary(raw_text: Optional[str]) -> List[Section]:
    """Split commentary into exactly three sections.

    WHY: The timeline builder weights each section's header and content
    separately, so it needs the same three blocks the narrator reads.

    HOW: Structured split on header keywords when all three are present
    in order; otherwise paragraph fallback. See module RULES.

    Args:
        raw_text: The commentary string, possibly empty or None.

    Returns:
        A list of exactly three Section objects.
    """
    text = raw_text or ""

    spans = find_headers(text)
    if spans is not None:
        sections = []
        for i, (_, header_end) in enumerate(spans):
            next_start = spans[i + 1][0] if i + 1 < len(spans) else len(text)
            sections.append(Section(
                title=SECTION_HEADERS[i],
                content=text[header_end:next_start].strip(),
            ))
        return sections

    paragraphs = split_paragraphs(text)
    if len(paragraphs) > SECTION_COUNT:
        head = paragraphs[:SECTION_COUNT - 1]
        tail = "\n\n".join(paragraphs[SECTION_COUNT - 1:])
        paragraphs = head + [tail]

    return [
        Section(
            title=SECTION_HEADERS[i],
            content=paragraphs[i] if i < len(paragraphs) else "",
        )
        for i in range(SECTION_COUNT)
    ]
