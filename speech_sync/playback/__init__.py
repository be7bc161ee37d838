"""Playback package — controller state machine, media seam, and exclusion bus.

WHY: Turns a commentary into a playable, progress-reporting narration
player that cooperates with every other player on the page.

HOW: PlaybackController drives a MediaBackend and listens to it through
MediaListener hooks. MediaBus ensures only one player is active.
PreloadCache lets players showing the same commentary share one fetch.
"""

from speech_sync.playback.bus import MediaBus, shared_bus
from speech_sync.playback.controller import PlaybackController, PlaybackState
from speech_sync.playback.media import (
    ClockMedia,
    MediaBackend,
    MediaError,
    MediaListener,
    PlaybackNotAllowedError,
)
from speech_sync.playback.preload import PreloadCache, shared_preload_cache

__all__ = [
    "ClockMedia",
    "MediaBackend",
    "MediaBus",
    "MediaError",
    "MediaListener",
    "PlaybackController",
    "PlaybackNotAllowedError",
    "PlaybackState",
    "PreloadCache",
    "shared_bus",
    "shared_preload_cache",
]
