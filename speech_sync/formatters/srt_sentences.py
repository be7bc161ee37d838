"""SRT subtitles estimated from speech weights.

WHY: The TTS service returns no word timings, yet a caption track for
the narration is useful (muted autoplay, accessibility, video exports).
The same weight estimates that drive highlighting give usable cues.

HOW: Walks the narration in spoken order and emits one cue per spoken
unit: the title (during the intro), each section header, then each body
sentence with its weight-estimated span.

RULES:
- Cue numbering starts at 1 and is contiguous
- Timestamps are HH:MM:SS,mmm
- The title cue is emitted only when the intro has a nonzero duration
- Cues with end <= start are skipped (zero-length spans)
- Empty timeline → empty file
- Output suffix: "-sentences.srt"
- Media type: "application/x-subrip"
"""

from typing import List, Tuple

from speech_sync.core.ir import SyncDocument
from speech_sync.core.timeline import sentence_spans
from speech_sync.formatters.base import BaseFormatter, FormatterOutput


def srt_timestamp(seconds: float) -> str:
    """Render seconds as an SRT timestamp, e.g. 61.5 → "00:01:01,500"."""
    total_ms = max(0, int(round(seconds * 1000)))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return "{:02d}:{:02d}:{:02d},{:03d}".format(hours, minutes, secs, millis)


def _collect_cues(document: SyncDocument) -> List[Tuple[float, float, str]]:
    timeline = document.timeline
    if timeline.is_empty:
        return []

    cues: List[Tuple[float, float, str]] = []
    if document.title and timeline.intro_duration > 0:
        cues.append((0.0, timeline.intro_duration, document.title))

    for section, entry in zip(document.sections, timeline):
        cues.append((entry.start, entry.content_start, section.title))
        cues.extend(sentence_spans(section, entry))

    return [(start, end, " ".join(text.split())) for start, end, text in cues if end > start]


class SRTSentenceFormatter(BaseFormatter):
    """Formatter that produces one SRT cue per spoken sentence or header."""

    @property
    def name(self) -> str:
        return "SRT Sentences"

    def format(self, document: SyncDocument) -> List[FormatterOutput]:
        blocks = [
            "{}\n{} --> {}\n{}\n".format(i, srt_timestamp(start), srt_timestamp(end), text)
            for i, (start, end, text) in enumerate(_collect_cues(document), start=1)
        ]
        return [
            FormatterOutput(
                suffix="-sentences.srt",
                content="\n".join(blocks),
                media_type="application/x-subrip",
            )
        ]
