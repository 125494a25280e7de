"""Unicode canonicalization for untrusted text.

Applies NFKC (folds full-width, mathematical and other compatibility forms
onto their plain equivalents) and strips codepoints that render as nothing
but can split or reorder words: zero-width characters, bidirectional
controls, other ``Cf`` format characters, private-use and unassigned
codepoints, and control characters other than tab and line breaks.
"""

from __future__ import annotations

import unicodedata

# Listed explicitly so the intent survives Unicode category changes between
# Python releases (U+180E moved from Zs to Cf in Unicode 6.3).
INVISIBLE_CHARS: frozenset[str] = frozenset(
    chr(cp)
    for cp in (
        0x00AD,  # Soft hyphen
        0x034F,  # Combining grapheme joiner
        0x061C,  # Arabic letter mark
        0x115F,  # Hangul choseong filler
        0x1160,  # Hangul jungseong filler
        0x180E,  # Mongolian vowel separator
        0x200B,  # Zero-width space
        0x200C,  # Zero-width non-joiner
        0x200D,  # Zero-width joiner
        0x200E,  # Left-to-right mark
        0x200F,  # Right-to-left mark
        0x202A,  # Left-to-right embedding
        0x202B,  # Right-to-left embedding
        0x202C,  # Pop directional formatting
        0x202D,  # Left-to-right override
        0x202E,  # Right-to-left override
        0x2060,  # Word joiner
        0x2061,  # Function application
        0x2062,  # Invisible times
        0x2063,  # Invisible separator
        0x2064,  # Invisible plus
        0x2066,  # Left-to-right isolate
        0x2067,  # Right-to-left isolate
        0x2068,  # First strong isolate
        0x2069,  # Pop directional isolate
        0x206A,  # Inhibit symmetric swapping
        0x206B,  # Activate symmetric swapping
        0x206C,  # Inhibit Arabic form shaping
        0x206D,  # Activate Arabic form shaping
        0x206E,  # National digit shapes
        0x206F,  # Nominal digit shapes
        0x3164,  # Hangul filler
        0xFEFF,  # Zero-width no-break space / BOM
        0xFFA0,  # Half-width Hangul filler
        0xFFFE,  # Non-character
        0xFFFF,  # Non-character
    )
)

STRIPPED_CATEGORIES: frozenset[str] = frozenset({"Cf", "Co", "Cn", "Cs"})

KEPT_CONTROLS: frozenset[str] = frozenset({"\t", "\n", "\r"})

_MAX_PASSES = 4


def is_invisible(ch: str) -> bool:
    """Return True if *ch* is stripped by :func:`normalize`."""
    if ch in INVISIBLE_CHARS:
        return True
    category = unicodedata.category(ch)
    if category in STRIPPED_CATEGORIES:
        return True
    return category == "Cc" and ch not in KEPT_CONTROLS


def strip_invisible(text: str) -> str:
    return "".join(ch for ch in text if not is_invisible(ch))


def normalize(text: str) -> str:
    """Return the canonical form of *text*.

    Never raises: non-string input yields ``""``.  Stripping an invisible
    character can expose a new composition (a base letter followed by a
    combining mark), so the two steps repeat until the output is stable.
    """
    if not isinstance(text, str):
        return ""
    current = text
    for _ in range(_MAX_PASSES):
        cleaned = strip_invisible(unicodedata.normalize("NFKC", strip_invisible(current)))
        if cleaned == current:
            break
        current = cleaned
    return current
