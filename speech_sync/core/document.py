"""SyncDocument construction: segmentation plus timeline in one call.

WHY: The CLI and the exporters all start from the same inputs (raw
commentary, title, audio duration) and need the same derived data. This
is the bridge between raw text and the document every formatter reads.

HOW: segment_commentary() → build_timeline() → SyncDocument. When no
real duration is known, the words-per-minute estimate stands in.

RULES:
- duration=None → estimate_duration(commentary)
- Empty commentary → no sections, empty timeline
- Never raises on degenerate input
"""

from __future__ import annotations

from typing import Optional

from speech_sync.core.ir import SyncDocument
from speech_sync.core.segmenter import segment_commentary
from speech_sync.core.timeline import build_timeline
from speech_sync.core.weights import estimate_duration


def build_document(
    commentary: Optional[str],
    title: str = "",
    duration: Optional[float] = None,
) -> SyncDocument:
    """Segment a commentary and time its sections against a duration.

    Args:
        commentary: Raw AI commentary text.
        title: Article title, spoken before the first section.
        duration: Measured audio duration in seconds, or None to estimate.

    Returns:
        The complete SyncDocument.
    """
    commentary = commentary or ""
    if duration is None:
        duration = estimate_duration(commentary)

    sections = segment_commentary(commentary) if commentary.strip() else []
    return SyncDocument(
        title=title,
        commentary=commentary,
        sections=sections,
        timeline=build_timeline(sections, duration, title),
    )
