"""Core timing modules and intermediate representation.

WHY: The core package holds the pure, side-effect-free heart of the
sync engine. The playback controller, the CLI, and the exporters all
consume these functions and must never re-derive weights or sections
on their own.

HOW: ir.py defines the data structures, weights.py scores text,
segmenter.py splits commentary into sections, timeline.py turns weights
plus a duration into timestamps, progress.py maps playback time back
into sections, sentences, and words, and document.py bundles
segmentation and timing into the SyncDocument the exporters read.

RULES:
- No I/O, no asyncio, no logging in core modules
- IR dataclasses are frozen — timelines are rebuilt, never mutated
"""
