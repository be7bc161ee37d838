"""Speech Sync — weight-based timing and highlight sync for TTS narration.

WHY: Text-to-speech services return an audio file but no word timestamps.
A reading view that highlights the current section, sentence, and word
still needs to know roughly where playback is in the text. This package
estimates that from character-level "speech weights" and the one real
timing input available: the total audio duration.

HOW: Three-stage pipeline — segment (commentary text into sections),
time (weights + duration into a section timeline), map (playback time
into a progress value and a sentence/word position). A playback
controller drives the pipeline from a media backend and a TTS client.

RULES:
- Core modules are pure functions over the IR dataclasses in core/ir.py
- Absolute weight values are meaningless; only ratios within one
  computation matter
- The audio duration is the only ground-truth timing input
"""

__version__ = "0.1.0"
