"""Map playback time to section progress and sentence/word highlights.

WHY: On every time update the reading view must know which section is
being spoken, whether the narrator is still on the header, how far into
the body it is, and which sentence and word to highlight. None of this
comes from the TTS service, so it is recovered from the timeline and the
same speech weights that built it.

HOW: Three nested searches by the same weighted-proportion principle:
  section  — linear scan of timeline entries for start <= t < end
  sentence — cumulative sentence weights vs. progress * total weight
  word     — cumulative word weights (space = 1) inside that sentence

RULES:
- t < intro_duration → Intro, whatever the timeline holds
- Empty timeline (past the intro) → Stopped
- Inside a section: t < content_start → ReadingHeader, else
  ReadingContent with clamp((t - content_start) / (end - content_start))
- Past the last entry (outro or float rounding) → ReadingContent of the
  last section at progress 1.0, so progress never moves backwards
- Sentences split on whitespace that follows ".", "!" or "?"
- weight_in_sentence <= 0 → word 0; fall-through clamps to the last
  sentence / word
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from speech_sync.core.ir import (
    HighlightPosition,
    Intro,
    PlaybackProgress,
    ReadingContent,
    ReadingHeader,
    Section,
    Stopped,
    Timeline,
)
from speech_sync.core.weights import speech_weight

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")

# Weight of the single space between two words.
_WORD_GAP_WEIGHT = 1.0


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def map_progress(
    current_time: float,
    timeline: Timeline,
    intro_duration: Optional[float] = None,
) -> PlaybackProgress:
    """Resolve the narration phase at a playback position.

    WHY: The controller calls this on every tick and forwards the result
    to the view, which overwrites its highlight state.

    HOW: Intro check, then a linear scan of the (contiguous,
    non-overlapping) entries. See module RULES.

    Args:
        current_time: Playback position in seconds.
        timeline: Output of build_timeline().
        intro_duration: Overrides timeline.intro_duration when given.

    Returns:
        One of Intro, ReadingHeader, ReadingContent, Stopped.
    """
    duration = timeline.duration
    intro = timeline.intro_duration if intro_duration is None else intro_duration

    if current_time < intro:
        return Intro(current_time=current_time, duration=duration)

    if timeline.is_empty:
        return Stopped(current_time=current_time, duration=duration)

    for entry in timeline:
        if entry.start <= current_time < entry.end:
            if current_time < entry.content_start:
                return ReadingHeader(
                    current_time=current_time,
                    duration=duration,
                    section_index=entry.index,
                )
            span = entry.end - entry.content_start
            progress = _clamp((current_time - entry.content_start) / span) if span > 0 else 0.0
            return ReadingContent(
                current_time=current_time,
                duration=duration,
                section_index=entry.index,
                content_progress=progress,
            )

    last = timeline[len(timeline) - 1]
    return ReadingContent(
        current_time=current_time,
        duration=duration,
        section_index=last.index,
        content_progress=1.0,
    )


def split_sentences(text: Optional[str]) -> List[str]:
    """Split body text into sentences, dropping empty pieces."""
    if not text:
        return []
    return [s for s in _SENTENCE_SPLIT_RE.split(text.strip()) if s.strip()]


def _locate_by_weight(weights: Sequence[float], target: float, gap: float = 0.0) -> Tuple[int, float]:
    """Find the unit whose cumulative weight range contains target.

    Returns (index, weight consumed inside that unit). Units are separated
    by ``gap`` weight that belongs to neither. Falls through to the last
    unit, fully consumed.
    """
    cumulative = 0.0
    for i, w in enumerate(weights):
        if target < cumulative + w:
            return i, target - cumulative
        cumulative += w + gap
    last = len(weights) - 1
    return last, weights[last]


def locate_word(sentence: str, weight_in_sentence: float) -> int:
    """Index of the word being spoken after weight_in_sentence units."""
    words = sentence.split()
    if not words or weight_in_sentence <= 0:
        return 0
    index, _ = _locate_by_weight(
        [speech_weight(w) for w in words], weight_in_sentence, gap=_WORD_GAP_WEIGHT,
    )
    return index


def locate_highlight(content: Optional[str], content_progress: float) -> HighlightPosition:
    """Resolve the sentence and word being read inside a section body.

    WHY: Word-level highlighting is what makes the narration feel synced;
    it has to advance at the rate the voice does, not at a constant
    characters-per-second rate.

    HOW: Target weight = progress * total sentence weight. Find the
    sentence containing it, then the word inside that sentence.

    RULES:
    - No sentences → HighlightPosition(-1, -1)
    - progress is clamped to [0, 1] first
    """
    sentences = split_sentences(content)
    if not sentences:
        return HighlightPosition.none()

    weights = [speech_weight(s) for s in sentences]
    target = _clamp(content_progress) * sum(weights)
    sentence_index, weight_in_sentence = _locate_by_weight(weights, target)
    word_index = locate_word(sentences[sentence_index], weight_in_sentence)
    return HighlightPosition(sentence_index=sentence_index, word_index=word_index)


def locate_highlight_at(
    current_time: float,
    sections: Sequence[Section],
    timeline: Timeline,
) -> Tuple[PlaybackProgress, HighlightPosition]:
    """Chain section → sentence → word resolution for one playback time.

    Only ReadingContent produces a highlight; every other phase returns
    HighlightPosition.none().
    """
    progress = map_progress(current_time, timeline)
    if not isinstance(progress, ReadingContent) or progress.section_index >= len(sections):
        return progress, HighlightPosition.none()
    section = sections[progress.section_index]
    return progress, locate_highlight(section.content, progress.content_progress)
