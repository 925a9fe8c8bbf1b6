"""
Pure transcript deduplication.

Whisper-family recognizers sometimes loop on the tail of an utterance and
emit the same phrase two or more times. This module trims that repetition.

This module contains NO side effects, NO logging and NO I/O.

Two detectors run per pass:

- Trailing repeat: scanning from the middle of the token list toward the
  end, the first split whose tail (2+ tokens) is a prefix of the head, or of
  any sentence in the head, collapses to the head.
- Exact block repeat: the shortest leading block (2+ tokens) that is
  immediately repeated loses its second copy.

The trailing collapse wins when it fires; otherwise the block collapse is
applied. A changed result is deduplicated again, so the output is a fixed
point of this function.
"""

from __future__ import annotations

import math
import re

from spec import DEDUP_MIN_TOKENS, DEDUP_MIN_REPEAT_TOKENS


_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+\s*")


# =============================================================================
# Public API
# =============================================================================

def deduplicate_transcript(text: str) -> str:
    """
    Remove trailing hallucinated repetition from a transcript.

    Returns the input unchanged (same string, original whitespace) when no
    repetition is found or when it has fewer than DEDUP_MIN_TOKENS tokens.
    """
    if not text:
        return text

    words = text.split()
    if len(words) < DEDUP_MIN_TOKENS:
        return text

    collapsed = _collapse_trailing_repeat(words)
    if collapsed is None:
        collapsed = _collapse_block_repeat(words)

    if collapsed is None:
        return text

    return deduplicate_transcript(collapsed)


# =============================================================================
# Detectors
# =============================================================================

def _collapse_trailing_repeat(words: list[str]) -> str | None:
    """
    Return the head if the tail repeats its start, else None.

    The scan stops at the first match; repeats nearer the middle win.
    """
    for split in range(math.ceil(len(words) / 2), len(words) - 1):
        first_half = " ".join(words[:split])
        second_half = words[split:]
        if len(second_half) < DEDUP_MIN_REPEAT_TOKENS:
            continue

        f_lower = first_half.lower()
        s_lower = " ".join(second_half).lower()

        # Plain string prefix, not token aligned
        if f_lower.startswith(s_lower):
            return first_half

        for sentence in _SENTENCE_SPLIT_RE.split(first_half):
            if sentence.lower().startswith(s_lower):
                return first_half

    return None


def _collapse_block_repeat(words: list[str]) -> str | None:
    """Drop the second copy of a doubled leading block, else None."""
    for length in range(DEDUP_MIN_REPEAT_TOKENS, len(words) // 2 + 1):
        block = [w.lower() for w in words[:length]]
        following = [w.lower() for w in words[length:length * 2]]
        if block == following:
            return " ".join(words[:length] + words[length * 2:])

    return None
