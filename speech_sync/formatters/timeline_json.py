"""Timeline JSON exporter.

WHY: Front ends that render their own highlighting (or precompute
chapter markers) want the estimated section and sentence timings as
data, not as a running player.

HOW: One object per section with its header/content/end times and the
weight-estimated sentence spans, wrapped with the intro/outro durations.
The output is validated against timeline_schema.json with jsonschema
before returning.

RULES:
- Output suffix: "-timeline.json"
- Section titles are the spoken headers; content is the trimmed body
- Sentence spans come from core.timeline.sentence_spans()
- An empty timeline exports "sections": []
- Validate against the bundled schema; raise on failure
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from speech_sync.core.ir import Section, SyncDocument, TimelineEntry
from speech_sync.core.timeline import sentence_spans
from speech_sync.formatters.base import BaseFormatter, FormatterOutput

SCHEMA_VERSION = "1.0.0"

_SCHEMA_PATH = Path(__file__).resolve().parent / "timeline_schema.json"

_CACHED_SCHEMA: Optional[Dict[str, Any]] = None


def get_schema() -> Dict[str, Any]:
    """Load the timeline schema, cached after the first call."""
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


def _section_to_dict(section: Section, entry: TimelineEntry) -> Dict[str, Any]:
    return {
        "index": entry.index,
        "title": section.title,
        "content": section.content,
        "start": entry.start,
        "content_start": entry.content_start,
        "end": entry.end,
        "sentences": [
            {"index": i, "text": text, "start": start, "end": end}
            for i, (start, end, text) in enumerate(sentence_spans(section, entry))
        ],
    }


def document_to_dict(document: SyncDocument) -> Dict[str, Any]:
    """Build the schema-shaped dict for a document (unvalidated)."""
    timeline = document.timeline
    return {
        "version": SCHEMA_VERSION,
        "title": document.title,
        "duration": timeline.duration,
        "intro_duration": timeline.intro_duration,
        "outro_duration": timeline.outro_duration,
        "sections": [
            _section_to_dict(section, entry)
            for section, entry in zip(document.sections, timeline)
        ],
    }


class TimelineJSONFormatter(BaseFormatter):
    """Exports section and sentence timings as schema-validated JSON."""

    @property
    def name(self) -> str:
        return "Timeline JSON"

    def format(self, document: SyncDocument) -> List[FormatterOutput]:
        data = document_to_dict(document)
        jsonschema.validate(instance=data, schema=get_schema())
        return [
            FormatterOutput(
                suffix="-timeline.json",
                content=json.dumps(data, indent=2, ensure_ascii=False),
                media_type="application/json",
            )
        ]
