"""Character classification for the default-language heuristic.

Counts code points, not bytes: CJK Unified Ideographs (U+4E00–U+9FFF)
and ASCII Latin letters.
"""

from __future__ import annotations

from typing import NamedTuple

_CJK_FIRST = 0x4E00
_CJK_LAST = 0x9FFF


class CharacterCounts(NamedTuple):
    """CJK ideograph and Latin letter counts for one text span."""

    cjk: int
    letters: int


def is_cjk_ideograph(char: str) -> bool:
    return _CJK_FIRST <= ord(char) <= _CJK_LAST


def is_latin_letter(char: str) -> bool:
    return ("a" <= char <= "z") or ("A" <= char <= "Z")


def count_characters(text: str | None) -> CharacterCounts:
    """Count CJK ideographs and Latin letters in a single pass."""
    cjk = 0
    letters = 0
    for char in text or "":
        if is_cjk_ideograph(char):
            cjk += 1
        elif is_latin_letter(char):
            letters += 1
    return CharacterCounts(cjk=cjk, letters=letters)
