"""Section timeline construction from speech weights and audio duration.

WHY: The audio duration is the only real timing fact the player gets.
Knowing the full narration script (title, headers, bodies, fixed outro)
and a weight per fragment, the duration can be spread proportionally to
estimate when each section header and body starts.

HOW: Compute the weight of the spoken intro ("{title}. " plus a title
pause), every header (plus a header pause), every body, and the fixed
outro. Divide the duration by the total weight to get seconds per unit,
then walk the sections accumulating weight.

RULES:
- intro_weight = weight(title + ". ") + 25, or 0 when the title is empty
- header_weight = weight(section.title) + 15
- outro_weight = weight(" That wraps up this report.")
- No sections, duration <= 0 or non-finite, or zero total weight →
  empty timeline (never raises, never divides by zero)
- start_i = intro_duration + cumulative_before_i * time_per_weight
- end_i = intro_duration + cumulative_through_i * time_per_weight
- content_start_i = start_i + header_weight_i * time_per_weight
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from speech_sync.config import (
    HEADER_PAUSE_WEIGHT,
    INTRO_SUFFIX,
    OUTRO_TEXT,
    TITLE_PAUSE_WEIGHT,
)
from speech_sync.core.ir import Section, Timeline, TimelineEntry
from speech_sync.core.progress import split_sentences
from speech_sync.core.weights import speech_weight


@dataclass(frozen=True)
class _SectionWeights:
    header: float
    content: float

    @property
    def total(self) -> float:
        return self.header + self.content


def intro_weight(title: Optional[str]) -> float:
    """Weight of the spoken title line, including the pause after it."""
    if not title:
        return 0.0
    return speech_weight(title + INTRO_SUFFIX) + TITLE_PAUSE_WEIGHT


def outro_weight() -> float:
    return speech_weight(OUTRO_TEXT)


def _section_weights(sections: Sequence[Section]) -> List[_SectionWeights]:
    return [
        _SectionWeights(
            header=speech_weight(s.title) + HEADER_PAUSE_WEIGHT,
            content=speech_weight(s.content),
        )
        for s in sections
    ]


def _usable_duration(duration: Optional[float]) -> bool:
    return duration is not None and math.isfinite(duration) and duration > 0


def build_timeline(
    sections: Sequence[Section],
    duration: Optional[float],
    title: Optional[str],
) -> Timeline:
    """Estimate start, content-start, and end times for each section.

    WHY: Drives section markers, section jumps, and the progress mapper.

    HOW: Proportional allocation of the real duration over the narration
    weights. See module RULES for the exact formula.

    Args:
        sections: The three sections from segment_commentary().
        duration: Measured audio duration in seconds.
        title: Article title spoken before the first section.

    Returns:
        A Timeline. Empty when the inputs cannot produce one.
    """
    if not sections or not _usable_duration(duration):
        return Timeline.empty(duration if _usable_duration(duration) else 0.0)

    weights = _section_weights(sections)
    intro_w = intro_weight(title)
    outro_w = outro_weight()
    total_weight = intro_w + sum(w.total for w in weights) + outro_w
    if total_weight <= 0:
        return Timeline.empty(duration)

    time_per_weight = duration / total_weight
    intro_duration = intro_w * time_per_weight

    entries: List[TimelineEntry] = []
    cumulative = 0.0
    for index, w in enumerate(weights):
        start = intro_duration + cumulative * time_per_weight
        cumulative += w.total
        end = intro_duration + cumulative * time_per_weight
        entries.append(TimelineEntry(
            start=start,
            end=end,
            content_start=start + w.header * time_per_weight,
            index=index,
        ))

    return Timeline(
        entries=tuple(entries),
        duration=duration,
        intro_duration=intro_duration,
        outro_duration=outro_w * time_per_weight,
        time_per_weight=time_per_weight,
    )


def intro_duration(
    sections: Sequence[Section],
    duration: Optional[float],
    title: Optional[str],
) -> float:
    """Seconds spent on the spoken title before the first section header."""
    return build_timeline(sections, duration, title).intro_duration


def sentence_spans(section: Section, entry: TimelineEntry) -> List[Tuple[float, float, str]]:
    """Estimate (start, end, text) for every sentence of a section body.

    WHY: Exporters emit sentence-level cues; the same weighted-proportion
    principle the mapper uses for highlighting applies in reverse.

    HOW: Spread the entry's content span over the sentences by weight.

    RULES:
    - Sentences come from progress.split_sentences()
    - The last sentence ends exactly at entry.end
    - Empty content → []
    """
    sentences = split_sentences(section.content)
    if not sentences:
        return []

    weights = [speech_weight(s) for s in sentences]
    total = sum(weights)
    span = entry.end - entry.content_start

    spans: List[Tuple[float, float, str]] = []
    cumulative = 0.0
    for i, (sentence, w) in enumerate(zip(sentences, weights)):
        start = entry.content_start + (cumulative / total) * span
        cumulative += w
        end = entry.end if i == len(sentences) - 1 else entry.content_start + (cumulative / total) * span
        spans.append((start, end, sentence))
    return spans
