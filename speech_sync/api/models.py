"""TTS API request and response dataclasses.

WHY: The TTS backend speaks two shapes: a one-shot binary audio response
and a two-step "prepare, then stream" flow whose first step returns JSON
metadata. Typed dataclasses make both explicit and keep camelCase wire
names out of the rest of the package.

HOW: Each dataclass maps 1:1 to a JSON object on the wire. from_dict /
to_dict handle the translation.

RULES:
- SpeakRequest serializes to {"text": ..., "title": ...}
- PreparedAudio.duration is None when the backend did not report one
- Error bodies are JSON objects with "error" or "message"; a short
  text/plain body is shown as-is; anything else has no message
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

MAX_PLAIN_ERROR_CHARS = 200
"""Plain-text error bodies longer than this are not shown to users."""


@dataclass
class SpeakRequest:
    """Body of POST /api/tts/speak and POST /api/tts/prepare."""

    text: str
    title: str = ""

    def to_dict(self) -> dict:
        return {"text": self.text, "title": self.title}


@dataclass
class PreparedAudio:
    """Metadata returned by POST /api/tts/prepare.

    WHY: The streaming flow generates the audio server-side first and
    hands back an id, the byte size, and the real duration, so the player
    can show a duration and start range requests before the full file
    has been downloaded.

    RULES:
    - audio_id is required
    - size is the full byte length (0 when unknown)
    - duration is float seconds, or None when the backend omitted it
    """

    audio_id: str
    size: int = 0
    duration: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> PreparedAudio:
        duration = data.get("duration")
        return cls(
            audio_id=str(data["audioId"]),
            size=int(data.get("size") or 0),
            duration=float(duration) if duration else None,
        )

    def buffer_progress(self, buffered_bytes: int) -> float:
        """Percentage (0-100) of the file covered by buffered_bytes."""
        if self.size <= 0:
            return 0.0
        return min(buffered_bytes / self.size * 100.0, 100.0)


def parse_error_message(body: bytes) -> Optional[str]:
    """Extract a server-provided error message from a response body.

    Returns the "error" or "message" field of a JSON object body, or None
    when the body is not JSON or carries neither field.
    """
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    message = data.get("error") or data.get("message")
    return str(message) if message else None


def response_error_message(body: bytes, content_type: str = "") -> Optional[str]:
    """Best user-facing message for a failed TTS response.

    RULES:
    - A JSON "error" / "message" field wins
    - Otherwise only a short, single-line text/plain body is used
    - HTML pages, long bodies, and binary payloads give None
    """
    message = parse_error_message(body)
    if message:
        return message
    media_type = content_type.split(";")[0].strip().lower()
    if media_type and media_type != "text/plain":
        return None
    try:
        text = body.decode("utf-8").strip()
    except UnicodeDecodeError:
        return None
    if not text or len(text) > MAX_PLAIN_ERROR_CHARS or "\n" in text or "<" in text:
        return None
    return text
