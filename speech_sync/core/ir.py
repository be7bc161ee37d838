"""Intermediate representation dataclasses for sections, timelines, and progress.

WHY: Segmentation, timing, progress mapping, the playback controller, and
the exporters all pass the same shapes around. A single set of typed,
immutable dataclasses keeps those stages decoupled and stops each caller
from inventing its own dict layout with optional keys.

HOW: The hierarchy, leaf-first:
  Section          — one titled block of commentary text
  TimelineEntry    — start / content_start / end seconds of one section
  Timeline         — all entries plus intro/outro durations
  PlaybackProgress — tagged union: Intro | ReadingHeader | ReadingContent | Stopped
  HighlightPosition— sentence and word index inside a section
  AudioSource      — a synthesized audio payload ready for a media backend
  SyncDocument     — everything an exporter needs for one commentary

RULES:
- All times are float seconds of real audio
- Every dataclass is frozen; rebuild instead of mutating
- A Timeline with no entries means "no highlighting" (degenerate input)
- Every progress variant exposes section_index, is_reading_header and
  content_progress so flat consumers keep working
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional


@dataclass(frozen=True)
class Section:
    """One of the three logical divisions of a commentary.

    RULES:
    - title: canonical header text ("Key Points", ...), spoken before content
    - content: trimmed body text, may be empty when the source had fewer
      paragraphs than sections
    """

    title: str
    content: str


@dataclass(frozen=True)
class TimelineEntry:
    """Estimated timestamps for one section.

    WHY: The player needs to know when each spoken header starts, when the
    body starts, and when the section ends, to drive section markers and
    highlighting.

    RULES:
    - start <= content_start <= end
    - index is the section's position (0-based)
    """

    start: float
    end: float
    content_start: float
    index: int

    @property
    def header_duration(self) -> float:
        return self.content_start - self.start

    @property
    def content_duration(self) -> float:
        return self.end - self.content_start

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "start": self.start,
            "content_start": self.content_start,
            "end": self.end,
        }


@dataclass(frozen=True)
class Timeline:
    """Section timeline derived from one (sections, duration, title) triple.

    WHY: The progress mapper needs the entries and the intro duration
    together; exporters also want the outro share and the time-per-weight
    ratio. Bundling them avoids recomputing the intro separately.

    HOW: Built by core.timeline.build_timeline. Behaves like a read-only
    sequence of TimelineEntry so ``timeline[0].start`` works.

    RULES:
    - intro_duration + sum(entry spans) + outro_duration == duration
    - An empty timeline has no entries, intro_duration 0, outro_duration 0
    """

    entries: tuple[TimelineEntry, ...]
    duration: float
    intro_duration: float
    outro_duration: float
    time_per_weight: float

    @classmethod
    def empty(cls, duration: float = 0.0) -> Timeline:
        return cls(
            entries=(),
            duration=duration,
            intro_duration=0.0,
            outro_duration=0.0,
            time_per_weight=0.0,
        )

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[TimelineEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> TimelineEntry:
        return self.entries[index]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration": self.duration,
            "intro_duration": self.intro_duration,
            "outro_duration": self.outro_duration,
            "entries": [e.to_dict() for e in self.entries],
        }


# ---------------------------------------------------------------------------
# Playback progress (tagged union)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlaybackProgress:
    """Base of the progress union. Never instantiated directly.

    WHY: Consumers used to receive a dict whose keys were present or not
    depending on the phase. Each phase is now its own type, so "in the
    intro" and "past the end" cannot be confused with "section 0 at 0%".

    RULES:
    - current_time and duration are always present
    - Subclasses set kind, section_index, is_reading_header and
      content_progress (as fields or class attributes)
    """

    current_time: float
    duration: float

    kind = "progress"
    section_index = -1
    is_reading_header = False
    content_progress = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "current_time": self.current_time,
            "duration": self.duration,
            "section_index": self.section_index,
            "is_reading_header": self.is_reading_header,
            "content_progress": self.content_progress,
        }


@dataclass(frozen=True)
class Intro(PlaybackProgress):
    """The title is being read; nothing is highlighted."""

    kind = "intro"
    is_reading_header = True


@dataclass(frozen=True)
class ReadingHeader(PlaybackProgress):
    """A section header is being read; the body is not highlighted yet."""

    section_index: int

    kind = "reading_header"
    is_reading_header = True


@dataclass(frozen=True)
class ReadingContent(PlaybackProgress):
    """A section body is being read; content_progress is in [0, 1]."""

    section_index: int
    content_progress: float

    kind = "reading_content"


@dataclass(frozen=True)
class Stopped(PlaybackProgress):
    """Playback ended or there is no timeline to map against."""

    kind = "stopped"


@dataclass(frozen=True)
class HighlightPosition:
    """Sentence and word currently being read inside one section.

    RULES:
    - Both indices are -1 when the section content has no sentences
    - word_index counts whitespace-separated words within the sentence
    """

    sentence_index: int
    word_index: int

    @classmethod
    def none(cls) -> HighlightPosition:
        return cls(sentence_index=-1, word_index=-1)


# ---------------------------------------------------------------------------
# Audio and documents
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AudioSource:
    """Synthesized narration ready to hand to a media backend.

    RULES:
    - data: raw audio bytes as returned by the TTS service
    - duration_hint: estimated seconds, replaced by real metadata once the
      backend has decoded the stream
    - url: set for streamed narration; data is then only the first chunk
    - buffered_percent: share of the full file held in data (0-100)
    """

    data: bytes
    media_type: str = "audio/mpeg"
    duration_hint: Optional[float] = None
    url: Optional[str] = None
    buffered_percent: float = 100.0

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class SyncDocument:
    """Everything an exporter needs for one commentary.

    WHY: Exporters (JSON, plain text, SRT) each need the title, sections,
    and timeline together. This is the stable contract between the core
    pipeline and the formatters.
    """

    title: str
    commentary: str
    sections: List[Section] = field(default_factory=list)
    timeline: Timeline = field(default_factory=Timeline.empty)

    @property
    def duration(self) -> float:
        return self.timeline.duration
