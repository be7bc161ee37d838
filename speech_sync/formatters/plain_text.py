"""Plain text timeline table.

WHY: Editors checking a narration want to eyeball where each section
and sentence is expected to start, in the same M:SS notation the
player's time display uses.

HOW: A header block (title, duration, intro/outro), a section table,
then each section's sentences with their estimated start times.

RULES:
- Times are rendered with format_time() as M:SS (minutes unpadded)
- One table row per section: number, start, body start, end, title
- Sentences are indented two spaces under their section heading
- No trailing whitespace on any line; file ends with a newline
- Output suffix: "-timeline.txt"
"""

from __future__ import annotations

import math
from typing import List, Optional

from speech_sync.core.ir import SyncDocument
from speech_sync.core.timeline import sentence_spans
from speech_sync.formatters.base import BaseFormatter, FormatterOutput


def format_time(seconds: Optional[float]) -> str:
    """Render seconds as M:SS, e.g. 65.4 → "1:05".

    Non-finite, negative, or missing values render as "0:00".
    """
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        return "0:00"
    minutes, secs = divmod(int(seconds), 60)
    return "{}:{:02d}".format(minutes, secs)


class PlainTextFormatter(BaseFormatter):
    """Formatter that renders the timeline as a readable text table."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def format(self, document: SyncDocument) -> List[FormatterOutput]:
        timeline = document.timeline
        lines: List[str] = []

        if document.title:
            lines.append("Title: {}".format(document.title))
        lines.append("Duration: {} (intro {}, outro {})".format(
            format_time(timeline.duration),
            format_time(timeline.intro_duration),
            format_time(timeline.outro_duration),
        ))

        if timeline.is_empty:
            lines.append("")
            lines.append("No sections to time.")
            return [self._output(lines)]

        lines.append("")
        lines.append("#  Start  Body   End    Section")
        for section, entry in zip(document.sections, timeline):
            lines.append("{:<2} {:<6} {:<6} {:<6} {}".format(
                entry.index + 1,
                format_time(entry.start),
                format_time(entry.content_start),
                format_time(entry.end),
                section.title,
            ).rstrip())

        for section, entry in zip(document.sections, timeline):
            lines.append("")
            lines.append("{} [{}]".format(section.title, format_time(entry.start)))
            for start, _, text in sentence_spans(section, entry):
                lines.append("  {}  {}".format(format_time(start), " ".join(text.split())))

        return [self._output(lines)]

    @staticmethod
    def _output(lines: List[str]) -> FormatterOutput:
        return FormatterOutput(
            suffix="-timeline.txt",
            content="\n".join(lines) + "\n",
            media_type="text/plain",
        )
