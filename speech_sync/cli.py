"""Command-line interface for the speech sync engine.

WHY: Editors and developers need to see what the player will do with a
commentary without opening a browser: how it splits, when each section
is expected to start, which word is lit at a given second, and what the
TTS backend returns. The CLI wires the core pipeline, the exporters,
and the TTS client behind one command.

HOW: argparse reads a commentary file, a title, and either a measured
duration or a words-per-minute estimate. The core builds a SyncDocument;
the selected formatters write files next to the input (or to
--output-dir). --at prints the progress and highlight for one instant on
stdout. --speak fetches the narration via TTSClient under asyncio.run().

RULES:
- Positional argument: commentary text file (UTF-8)
- Exactly one of --duration / --estimate-duration
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts (-timeline-2.json)
- Status output goes to stderr; --at output goes to stdout
- Errors print "Error: ..." to stderr and exit 1
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import httpx

from speech_sync.api.client import TTSAPIError, TTSClient
from speech_sync.core.document import build_document
from speech_sync.core.ir import AudioSource, ReadingContent, SyncDocument
from speech_sync.core.progress import locate_highlight_at, split_sentences
from speech_sync.formatters import FORMATTERS
from speech_sync.formatters.base import FormatterOutput
from speech_sync.formatters.plain_text import format_time


def _status(msg: str) -> None:
    """Print a status message to stderr, flushed."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _resolve_output_path(stem: str, suffix: str, output_dir: Path) -> Path:
    """Resolve the output file path, adding a numeric suffix on conflict.

    RULES:
    - First attempt: {stem}{suffix} (e.g. report-timeline.json)
    - Conflict: counter inserted before the extension
      (e.g. report-timeline-2.json), starting at 2
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name, suffix_ext = suffix[:dot_idx], suffix[dot_idx:]
    else:
        suffix_name, suffix_ext = suffix, ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: FormatterOutput, stem: str, output_dir: Path) -> Path:
    """Write one formatter output (text as UTF-8, bytes as-is) and return its path."""
    path = _resolve_output_path(stem, output.suffix, output_dir)
    if isinstance(output.content, bytes):
        path.write_bytes(output.content)
    else:
        path.write_text(output.content, encoding="utf-8")
    return path


def _parse_formats(value: Optional[str]) -> List[str]:
    if not value:
        return list(FORMATTERS.keys())
    keys = [f.strip() for f in value.split(",") if f.strip()]
    for key in keys:
        if key not in FORMATTERS:
            _fail("Unknown format '{}'. Available formats: {}".format(
                key, ", ".join(sorted(FORMATTERS.keys()))
            ))
    return keys


def describe_instant(document: SyncDocument, seconds: float) -> str:
    """One-line description of the narration phase and highlight at seconds.

    Examples:
        "0:03  intro"
        "0:41  reading_content  [2] Future Outlook 35%  sentence 1, word 4: 'rates'"
    """
    progress, position = locate_highlight_at(seconds, document.sections, document.timeline)
    parts = ["{}  {}".format(format_time(seconds), progress.kind)]

    if progress.section_index >= 0 and progress.section_index < len(document.sections):
        section = document.sections[progress.section_index]
        label = "[{}] {}".format(progress.section_index, section.title)
        if isinstance(progress, ReadingContent):
            label += " {:.0f}%".format(progress.content_progress * 100)
        parts.append(label)

        if position.sentence_index >= 0:
            sentence = split_sentences(section.content)[position.sentence_index]
            words = sentence.split()
            word = words[position.word_index] if position.word_index < len(words) else ""
            parts.append("sentence {}, word {}: '{}'".format(
                position.sentence_index, position.word_index, word,
            ))

    return "  ".join(parts)


async def _fetch_speech(commentary: str, title: str) -> AudioSource:
    async with TTSClient() as client:
        return await client.speak(commentary, title, on_status=_status)


def run(args: argparse.Namespace) -> None:
    """Execute the CLI pipeline for parsed arguments.

    RULES:
    - Validate the input file and output directory before any work
    - --speak runs after the exporters, so timing files exist even when
      the TTS backend is down
    """
    input_path = Path(args.input_file).resolve()
    if not input_path.is_file():
        _fail("File not found: {}".format(input_path))

    output_dir = Path(args.output_dir).resolve() if args.output_dir else input_path.parent
    if not output_dir.is_dir():
        _fail("Output directory does not exist: {}".format(output_dir))

    format_keys = _parse_formats(args.formats)

    if args.duration is not None and args.duration <= 0:
        _fail("--duration must be positive, got {}".format(args.duration))

    commentary = input_path.read_text(encoding="utf-8")
    if not commentary.strip():
        _fail("Commentary file is empty: {}".format(input_path))

    document = build_document(commentary, args.title, args.duration)
    timeline = document.timeline
    _status("Segmented into {} sections; duration {} ({})".format(
        len(document.sections),
        format_time(timeline.duration),
        "measured" if args.duration is not None else "estimated",
    ))
    for section, entry in zip(document.sections, timeline):
        _status("  [{}] {} {}-{}".format(
            entry.index, section.title, format_time(entry.start), format_time(entry.end),
        ))

    if args.at is not None:
        print(describe_instant(document, args.at))

    stem = input_path.stem
    saved_files: List[Path] = []
    for key in format_keys:
        formatter = FORMATTERS[key]()
        _status("Running {} formatter...".format(formatter.name))
        for output in formatter.format(document):
            saved_path = _save_output(output, stem, output_dir)
            saved_files.append(saved_path)
            _status("  Saved: {}".format(saved_path.name))

    if args.speak:
        try:
            audio = asyncio.run(_fetch_speech(commentary, args.title))
        except (TTSAPIError, httpx.HTTPError, ValueError) as e:
            _fail(str(e))
        speech = FormatterOutput(suffix="-speech.mp3", content=audio.data, media_type=audio.media_type)
        saved_path = _save_output(speech, stem, output_dir)
        saved_files.append(saved_path)
        _status("  Saved: {} ({:,} bytes)".format(saved_path.name, audio.size))

    _status("")
    _status("Done! Saved {} file(s) to {}".format(len(saved_files), output_dir))


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser (separate from main() for testability)."""
    parser = argparse.ArgumentParser(
        prog="speech_sync",
        description="Estimate narration timing for an AI commentary and export "
                    "section/sentence timelines (JSON, plain text, SRT).",
    )

    parser.add_argument(
        "input_file",
        help="Path to a UTF-8 text file holding the commentary.",
    )

    parser.add_argument(
        "--title",
        default="",
        help="Article title, spoken before the commentary (default: none).",
    )

    duration = parser.add_mutually_exclusive_group(required=True)
    duration.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Measured audio duration in seconds.",
    )
    duration.add_argument(
        "--estimate-duration",
        action="store_true",
        help="Estimate the duration from the word count.",
    )

    parser.add_argument(
        "--at",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Print the narration phase and highlighted word at this time.",
    )

    parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS.keys()))),
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: same as input file).",
    )

    parser.add_argument(
        "--speak",
        action="store_true",
        help="Also fetch the narration from the TTS backend and save it.",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m speech_sync`` and the speech-sync script.

    RULES:
    - argv=None means use sys.argv
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)
    run(args)


if __name__ == "__main__":
    main()
