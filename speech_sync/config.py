"""Configuration constants, section headers, and .env loading.

WHY: Centralizes every tunable value of the sync engine (pause weights,
the synthetic outro line, payload thresholds, polling cadence, and the
TTS endpoint) so they are easy to find and override without digging
through the timing logic.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level tuples, numbers, and strings. load_api_base() provides a
clear error when the endpoint is configured empty.

RULES:
- SECTION_HEADERS order is the textual order the segmenter expects
- Fallback paragraphs reuse SECTION_HEADERS as their titles (one
  canonical naming scheme)
- Pause weights are in the same units as speech_weight()
- All endpoint/timing defaults can be overridden via environment variables
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Commentary structure
# ---------------------------------------------------------------------------

SECTION_HEADERS: tuple[str, str, str] = (
    "Key Points",
    "Impact Analysis",
    "Future Outlook",
)
"""Spoken section headers, in the order the narration reads them."""

SECTION_COUNT = len(SECTION_HEADERS)

# ---------------------------------------------------------------------------
# Narration shape (must match what the TTS backend actually speaks)
# ---------------------------------------------------------------------------

TITLE_PAUSE_WEIGHT = 25.0
"""Extra weight for the pause after the spoken title."""

HEADER_PAUSE_WEIGHT = 15.0
"""Extra weight for the pause after each spoken section header."""

INTRO_SUFFIX = ". "
OUTRO_TEXT = " That wraps up this report."

WORDS_PER_MINUTE = 130
"""Speaking rate used for duration estimates before real metadata arrives."""

# ---------------------------------------------------------------------------
# TTS collaborator
# ---------------------------------------------------------------------------

SPEECH_SYNC_API_BASE = os.getenv(
    "SPEECH_SYNC_API_BASE", "https://webstorybackend.onrender.com"
)
HTTP_TIMEOUT_S = float(os.getenv("SPEECH_SYNC_HTTP_TIMEOUT", "300"))
HTTP_CONNECT_TIMEOUT_S = 30.0

MIN_AUDIO_BYTES = 1000
"""Audio bodies smaller than this are error payloads mislabelled as audio."""

INITIAL_CHUNK_BYTES = 20_000

# ---------------------------------------------------------------------------
# Playback controller
# ---------------------------------------------------------------------------

PROGRESS_POLL_INTERVAL_S = 0.1
AUTOPLAY_ENABLED = os.getenv("SPEECH_SYNC_AUTOPLAY", "true").lower() == "true"
AUTOPLAY_DELAY_S = 0.5
PREPARE_READY_TIMEOUT_S = 60.0


def load_api_base() -> str:
    """Return the TTS API base URL without a trailing slash.

    WHY: Every TTS request is built from this base. An empty value would
    produce relative URLs that fail far from the actual misconfiguration.

    HOW: Reads SPEECH_SYNC_API_BASE (populated by python-dotenv), falling
    back to the module default.

    RULES:
    - Raises ValueError if the configured value is blank
    - Trailing slashes are stripped
    """
    base = os.getenv("SPEECH_SYNC_API_BASE", SPEECH_SYNC_API_BASE).strip()
    if not base:
        raise ValueError(
            "TTS API base URL not configured. "
            "Set SPEECH_SYNC_API_BASE in the .env file."
        )
    return base.rstrip("/")
