"""Character-class speech weights and rough duration estimates.

WHY: The TTS service returns audio without timestamps. To guess where in
the text playback currently is, every fragment of text needs a number
proportional to how long it takes to say. Punctuation produces pauses,
capitals and digits tend to be spoken more slowly (acronyms, numbers),
and plain letters and spaces are the baseline.

HOW: speech_weight() walks the string once and sums a per-character
weight picked by first matching class. estimate_duration() is a cruder
words-per-minute guess used only until the real audio duration is known.

RULES:
- Class order (first match wins): uppercase A-Z → 1.5, digit 0-9 → 1.2,
  one of ",;:" → 3, one of ".!?" → 6, anything else → 1
- Only ASCII classes are special; non-ASCII letters weigh 1
- Empty string or None → 0
- Every character weighs at least 1, so weight(s) >= len(s)
"""

from __future__ import annotations

from typing import Optional

from speech_sync.config import WORDS_PER_MINUTE

UPPERCASE_WEIGHT = 1.5
DIGIT_WEIGHT = 1.2
CLAUSE_PAUSE_WEIGHT = 3.0
SENTENCE_PAUSE_WEIGHT = 6.0
DEFAULT_WEIGHT = 1.0

_UPPERCASE = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZ")
_DIGITS = frozenset("0123456789")
_CLAUSE_PUNCTUATION = frozenset(",;:")
_SENTENCE_PUNCTUATION = frozenset(".!?")


def char_weight(char: str) -> float:
    """Weight of a single character."""
    if char in _UPPERCASE:
        return UPPERCASE_WEIGHT
    if char in _DIGITS:
        return DIGIT_WEIGHT
    if char in _CLAUSE_PUNCTUATION:
        return CLAUSE_PAUSE_WEIGHT
    if char in _SENTENCE_PUNCTUATION:
        return SENTENCE_PAUSE_WEIGHT
    return DEFAULT_WEIGHT


def speech_weight(text: Optional[str]) -> float:
    """Estimate the relative spoken duration of a text fragment.

    WHY: Timeline building distributes the real audio duration over the
    text in proportion to these weights.

    HOW: Sums char_weight() over every character.

    RULES:
    - Returns 0.0 for "" and None
    - Deterministic and O(n); no Unicode normalization
    - Only meaningful as a ratio against other weights from the same
      computation

    Args:
        text: Any string, or None.

    Returns:
        The summed weight as a float.
    """
    if not text:
        return 0.0
    return sum(char_weight(c) for c in text)


def estimate_duration(text: Optional[str], words_per_minute: int = WORDS_PER_MINUTE) -> float:
    """Guess the narration length in seconds from the word count.

    Used as a duration hint before the media backend reports the real
    duration. Returns 0.0 for empty text.
    """
    if not text or not text.strip():
        return 0.0
    word_count = len(text.split())
    return word_count / float(words_per_minute) * 60.0
