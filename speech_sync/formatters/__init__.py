"""Exporter registry — pluggable timeline output formats.

WHY: The CLI needs a single lookup to find a formatter by name. A central
dict makes adding a format a one-line change.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["timeline_json"]()``.

RULES:
- Keys are snake_case identifiers (used as CLI --formats values)
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Type

from speech_sync.formatters.plain_text import PlainTextFormatter
from speech_sync.formatters.srt_sentences import SRTSentenceFormatter
from speech_sync.formatters.timeline_json import TimelineJSONFormatter

if TYPE_CHECKING:
    from speech_sync.formatters.base import BaseFormatter

FORMATTERS: Dict[str, Type[BaseFormatter]] = {
    "timeline_json": TimelineJSONFormatter,
    "plain_text": PlainTextFormatter,
    "srt_sentences": SRTSentenceFormatter,
}
