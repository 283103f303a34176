"""Split long replies into platform-sized messages on natural boundaries.

Lengths are measured in UTF-16 code units, which is how Telegram counts its
message limit: characters outside the Basic Multilingual Plane (most emoji)
count twice.
"""

import re

_SENTENCE_END = re.compile(r"[.!?](?=\s)")


def utf16_len(text: str) -> int:
    """Length of ``text`` in UTF-16 code units."""
    return len(text.encode("utf-16-le")) // 2


def _fit_index(text: str, limit: int) -> int:
    """Number of leading characters of ``text`` that fit in ``limit`` units.

    Never less than one, so a single wide character cannot stall the split.
    """
    units = 0
    for i, ch in enumerate(text):
        units += 2 if ord(ch) > 0xFFFF else 1
        if units > limit:
            return max(i, 1)
    return len(text)


def _find_cut(text: str, limit: int) -> int:
    """Pick where to cut ``text`` so the head fits in ``limit`` units.

    Paragraph and line breaks only count in the second half of the window,
    otherwise the head would be needlessly short.
    """
    end = _fit_index(text, limit)
    window = text[:end]
    midpoint = end // 2

    for separator in ("\n\n", "\n"):
        idx = window.rfind(separator)
        if idx > 0 and idx >= midpoint:
            return idx

    # The character right after the window decides whether the last
    # punctuation mark or space in it is a boundary.
    lookahead = text[: end + 1]
    sentence_ends = [m.end() for m in _SENTENCE_END.finditer(lookahead)]
    if sentence_ends:
        return sentence_ends[-1]

    idx = lookahead.rfind(" ")
    if idx > 0:
        return idx

    return end


def split_reply(text: str, max_length: int) -> list[str]:
    """Split ``text`` into segments of at most ``max_length`` UTF-16 units.

    Text that already fits is returned unchanged as a single segment, even
    when empty. Otherwise segments are whitespace-trimmed and never empty.
    """
    if max_length < 1:
        msg = "max_length must be positive"
        raise ValueError(msg)
    if utf16_len(text) <= max_length:
        return [text]

    segments: list[str] = []
    remaining = text
    while remaining:
        if utf16_len(remaining) <= max_length:
            cut = len(remaining)
        else:
            cut = _find_cut(remaining, max_length)
        segment = remaining[:cut].strip()
        if segment:
            segments.append(segment)
        remaining = remaining[cut:].lstrip()
    return segments
