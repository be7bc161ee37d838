"""Shared test fixtures for the speech_sync test suite.

WHY: Timing, controller, formatter, and CLI tests all need the same
commentary samples, a controllable clock, and a TTS client that never
touches the network.

HOW: Module-level constants hold the sample texts. FakeClock and
FakeTTSClient are small test doubles handed out through fixtures.

RULES:
- SCENARIO_* reproduce the reference end-to-end case (title "Test", 100 s)
- FakeTTSClient returns real-sized audio bytes unless told to fail
- No fixture opens a socket
- shared_preload_cache is emptied around every test
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

import pytest

from speech_sync.core.ir import AudioSource
from speech_sync.core.weights import estimate_duration
from speech_sync.playback.bus import MediaBus
from speech_sync.playback.preload import PreloadCache, shared_preload_cache

SCENARIO_COMMENTARY = (
    "Key Points Point A. Impact Analysis Point B. Future Outlook Point C."
)
SCENARIO_TITLE = "Test"
SCENARIO_DURATION = 100.0

STRUCTURED_COMMENTARY = """Key Points
The central bank held rates at 5.25%. Markets had expected a cut!

Impact Analysis
Borrowing costs stay high for households; mortgage demand may soften.
Exporters benefit from a firmer dollar.

Future Outlook
Analysts now see the first cut in Q3. Will inflation cooperate?
"""

PARAGRAPH_COMMENTARY = """Shares rallied after the earnings beat.

Guidance was raised for the full year.

Investors will watch margins next quarter."""


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTTSClient:
    """Stands in for TTSClient.speak().

    Records every call. ``error`` (an exception instance) is raised
    instead of returning audio. ``gate`` (an asyncio.Event) blocks the
    call until set, to exercise in-flight cancellation.
    """

    def __init__(
        self,
        duration: Optional[float] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.duration = duration
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[Tuple[str, str]] = []

    async def speak(self, text: str, title: str = "", on_status=None) -> AudioSource:  # noqa: ANN001
        self.calls.append((text, title))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return AudioSource(
            data=b"\xff\xfb" * 1024,
            media_type="audio/mpeg",
            duration_hint=self.duration if self.duration is not None else estimate_duration(text),
        )


@pytest.fixture
def scenario_commentary():
    return SCENARIO_COMMENTARY


@pytest.fixture
def scenario_title():
    return SCENARIO_TITLE


@pytest.fixture
def scenario_duration():
    return SCENARIO_DURATION


@pytest.fixture
def structured_commentary():
    return STRUCTURED_COMMENTARY


@pytest.fixture
def paragraph_commentary():
    return PARAGRAPH_COMMENTARY


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_tts():
    return FakeTTSClient(duration=SCENARIO_DURATION)


@pytest.fixture
def make_tts():
    """Factory for FakeTTSClient with a custom duration or error."""
    return FakeTTSClient


@pytest.fixture
def bus():
    """A dedicated bus so tests never share players through shared_bus."""
    return MediaBus()


@pytest.fixture
def commentary_file(tmp_path):
    """The structured sample commentary written to disk."""
    path = tmp_path / "rates-report.txt"
    path.write_text(STRUCTURED_COMMENTARY, encoding="utf-8")
    return path


@pytest.fixture
def preload_cache():
    """A dedicated cache for tests that share narration between players."""
    return PreloadCache()


@pytest.fixture(autouse=True)
def _clear_shared_preload_cache():
    shared_preload_cache.clear()
    yield
    shared_preload_cache.clear()
