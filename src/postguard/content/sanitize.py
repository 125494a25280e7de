"""Input sanitization: markup, prompt-injection and character-set defenses.

One sanitization pass applies these steps in a fixed order:

0. Unicode normalization (:func:`postguard.content.normalize.normalize`)
1. markup removal (entities decoded, script/style bodies, comments, tags)
2. instruction-injection removal (role directives, "ignore previous
   instructions" phrasings, code fences, reserved control tokens)
3. character whitelist (letters, numbers, punctuation, ``@ # : /``,
   whitespace, optionally emoji)
4. whitespace collapse
5. trim
6. truncation to ``max_length``

A later step can expose a pattern an earlier step already scanned for (a
deleted symbol joining the two halves of ``sys$tem:``), so passes repeat
until the output no longer changes.  The result is therefore a fixed point:
``sanitize(sanitize(s)) == sanitize(s)``.

Use :func:`sanitize_post_content` for post bodies, :func:`sanitize_topic` for
AI prompts and :func:`sanitize_hashtag` for hashtags.
"""

from __future__ import annotations

import html
import re
import unicodedata
from dataclasses import dataclass
from typing import Mapping

from postguard.content.normalize import normalize
from postguard.content.types import FieldKind

MAX_POST_LENGTH = 3000
MAX_TOPIC_LENGTH = 500
MAX_HASHTAG_LENGTH = 50
MAX_INPUT_LENGTH = 5000


@dataclass(frozen=True)
class SanitizeOptions:
    """Per-field sanitization settings."""

    max_length: int = MAX_INPUT_LENGTH
    allow_emojis: bool = True
    allow_newlines: bool = True

    def __post_init__(self) -> None:
        if self.max_length < 0:
            raise ValueError(f"max_length must be >= 0, got {self.max_length}")


DEFAULT_OPTIONS = SanitizeOptions()
TOPIC_OPTIONS = SanitizeOptions(max_length=MAX_TOPIC_LENGTH, allow_newlines=False)
POST_OPTIONS = SanitizeOptions(max_length=MAX_POST_LENGTH, allow_newlines=True)

# ---------------------------------------------------------------------------
# Step 1: markup
# ---------------------------------------------------------------------------

_SCRIPT_STYLE_RE = re.compile(
    r"<\s*(script|style)\b[^>]*>.*?<\s*/\s*\1\s*>", re.IGNORECASE | re.DOTALL
)
_COMMENT_RE = re.compile(r"<!--.*?(-->|$)", re.DOTALL)
_TAG_RE = re.compile(r"<[^<>]*>")


def strip_markup(text: str) -> str:
    """Remove HTML/XML tags with their attributes.

    Entities are decoded first so ``&lt;script&gt;`` is treated as the tag it
    spells.  Script and style elements are removed with their bodies.
    """
    text = html.unescape(text)
    text = _SCRIPT_STYLE_RE.sub("", text)
    text = _COMMENT_RE.sub("", text)
    return _TAG_RE.sub("", text)


# ---------------------------------------------------------------------------
# Step 2: instruction injection
# ---------------------------------------------------------------------------

# Best-effort denylist.  It does not claim to catch every prompt-injection
# variant; later stages still treat the output as untrusted text.
INJECTION_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Role directives
    re.compile(
        r"\b(system|assistant|user|role|instructions?|prompt|context|developer)\s*:",
        re.IGNORECASE,
    ),
    # Command directives
    re.compile(r"\b(execute|eval|run|perform)\s*:", re.IGNORECASE),
    # Override phrasings
    re.compile(
        r"\b(ignore|disregard|forget|override|bypass)\s+"
        r"((all|any|the|your|my|of|these|those|every)\s+)*"
        r"((previous|prior|above|earlier|preceding|former|original|system)\s+)?"
        r"(instructions?|prompts?|directions?|directives?|rules?|commands?"
        r"|guidelines?|context)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(ignore|disregard|forget)\s+(everything|anything|all)\s+"
        r"(above|before|previously|prior)\b",
        re.IGNORECASE,
    ),
    # Fenced code blocks, then stray fences
    re.compile(r"```.*?```", re.DOTALL),
    re.compile(r"```"),
    # Reserved control tokens
    re.compile(r"<\|[^|]*\|>"),
    re.compile(r"\[\s*/?\s*(INST|SYS|SYSTEM)\s*\]", re.IGNORECASE),
    re.compile(r"<<\s*/?\s*SYS\s*>>", re.IGNORECASE),
)


def find_injection(text: str) -> re.Match[str] | None:
    """Return the first injection-pattern match in *text*, if any."""
    for pattern in INJECTION_PATTERNS:
        match = pattern.search(text)
        if match:
            return match
    return None


def remove_injection_patterns(text: str) -> str:
    """Replace every injection-pattern span with a single space.

    Removal repeats until nothing matches, so the words on either side of a
    removed span cannot recombine into a new directive.
    """
    while True:
        cleaned = text
        for pattern in INJECTION_PATTERNS:
            cleaned = pattern.sub(" ", cleaned)
        if cleaned == text:
            return cleaned
        text = cleaned


# ---------------------------------------------------------------------------
# Step 3: whitelist
# ---------------------------------------------------------------------------

# Mentions, hashtags and URLs.
RESERVED_SYMBOLS: frozenset[str] = frozenset("@#:/")
# ASCII symbols (Unicode category S*) still common in ordinary posts.
EXTRA_SYMBOLS: frozenset[str] = frozenset("$+=")
WHITESPACE: frozenset[str] = frozenset(" \t\n\r")

EMOJI_RANGES: tuple[tuple[int, int], ...] = (
    (0x00A9, 0x00A9),  # copyright
    (0x00AE, 0x00AE),  # registered
    (0x203C, 0x203C),
    (0x2049, 0x2049),
    (0x20E3, 0x20E3),  # combining enclosing keycap
    (0x2122, 0x2122),
    (0x2139, 0x2139),
    (0x2190, 0x21FF),  # arrows
    (0x2300, 0x23FF),  # miscellaneous technical
    (0x25A0, 0x25FF),  # geometric shapes
    (0x2600, 0x27BF),  # miscellaneous symbols, dingbats
    (0x2B00, 0x2BFF),
    (0x3030, 0x3030),
    (0x303D, 0x303D),
    (0x3297, 0x3297),
    (0x3299, 0x3299),
    (0xFE0F, 0xFE0F),  # emoji presentation selector
    (0x1F000, 0x1F02F),
    (0x1F0A0, 0x1F0FF),
    (0x1F100, 0x1F2FF),  # enclosed alphanumerics, regional indicators
    (0x1F300, 0x1F6FF),  # pictographs, emoticons, transport
    (0x1F780, 0x1F7FF),
    (0x1F900, 0x1F9FF),
    (0x1FA70, 0x1FAFF),
)


def is_emoji(ch: str) -> bool:
    cp = ord(ch)
    return any(low <= cp <= high for low, high in EMOJI_RANGES)


def is_allowed_char(ch: str, allow_emojis: bool = True) -> bool:
    """Return True if *ch* survives the whitelist step."""
    if ch in WHITESPACE or ch in RESERVED_SYMBOLS or ch in EXTRA_SYMBOLS:
        return True
    if unicodedata.category(ch)[0] in ("L", "N", "P"):
        return True
    return allow_emojis and is_emoji(ch)


def apply_whitelist(text: str, allow_emojis: bool = True) -> str:
    return "".join(ch for ch in text if is_allowed_char(ch, allow_emojis))


# ---------------------------------------------------------------------------
# Step 4: whitespace
# ---------------------------------------------------------------------------

_HSPACE_RUN_RE = re.compile(r"[ \t]+")
_LINE_BREAK_RUN_RE = re.compile(r" ?\n[\n ]*")
_ANY_SPACE_RUN_RE = re.compile(r"\s+")


def collapse_whitespace(text: str, allow_newlines: bool = True) -> str:
    """Collapse whitespace runs to a single space (or a single newline)."""
    if not allow_newlines:
        return _ANY_SPACE_RUN_RE.sub(" ", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _HSPACE_RUN_RE.sub(" ", text)
    return _LINE_BREAK_RUN_RE.sub("\n", text)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _sanitize_pass(text: str, options: SanitizeOptions) -> str:
    text = normalize(text)
    text = strip_markup(text)
    text = remove_injection_patterns(text)
    text = apply_whitelist(text, options.allow_emojis)
    text = collapse_whitespace(text, options.allow_newlines)
    text = text.strip()
    return text[: options.max_length].strip()


def sanitize(text: str, options: SanitizeOptions = DEFAULT_OPTIONS) -> str:
    """Sanitize untrusted *text* according to *options*.

    Pure and total: garbage or adversarial input degrades to a short (possibly
    empty) safe string.  Non-string input yields ``""``.
    """
    if not isinstance(text, str):
        return ""
    current = text
    # Every pass after the first strictly shortens a changing string, and the
    # first pass already truncates to max_length.
    for _ in range(options.max_length + 8):
        cleaned = _sanitize_pass(current, options)
        if cleaned == current:
            break
        current = cleaned
    return current


def sanitize_user_input(
    text: str,
    max_length: int = MAX_INPUT_LENGTH,
    allow_emojis: bool = True,
    allow_newlines: bool = True,
) -> str:
    """General-purpose sanitization with keyword options."""
    return sanitize(
        text,
        SanitizeOptions(
            max_length=max_length,
            allow_emojis=allow_emojis,
            allow_newlines=allow_newlines,
        ),
    )


def sanitize_post_content(content: str) -> str:
    """Sanitize a post body (multi-line, emoji, up to 3000 characters)."""
    return sanitize(content, POST_OPTIONS)


def sanitize_topic(topic: str) -> str:
    """Sanitize a topic/prompt for AI generation (single line, 500 cap)."""
    return sanitize(topic, TOPIC_OPTIONS)


_HASHTAG_DISALLOWED_RE = re.compile(r"[^A-Za-z0-9_]")


def sanitize_hashtag(hashtag: str) -> str:
    """Return *hashtag* reduced to ``[A-Za-z0-9_]``, without its leading symbol.

    >>> sanitize_hashtag("#JavaScript")
    'JavaScript'
    """
    if not isinstance(hashtag, str):
        return ""
    cleaned = normalize(hashtag).strip().lstrip("#@")
    cleaned = _HASHTAG_DISALLOWED_RE.sub("", cleaned)
    return cleaned[:MAX_HASHTAG_LENGTH]


DANGEROUS_SCHEMES: tuple[str, ...] = ("javascript:", "data:", "vbscript:", "file:")
_SAFE_URL_RE = re.compile(r"^(https?://|mailto:|/)", re.IGNORECASE)


def sanitize_url(url: str) -> str:
    """Return *url* if it uses a safe scheme, else ``""``.

    Only ``http(s)://``, ``mailto:`` and root-relative paths pass.
    """
    if not isinstance(url, str) or not url:
        return ""
    trimmed = normalize(url).strip()
    lowered = trimmed.lower()
    if any(lowered.startswith(scheme) for scheme in DANGEROUS_SCHEMES):
        return ""
    if not _SAFE_URL_RE.match(trimmed):
        return ""
    return trimmed


_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def sanitize_email(email: str) -> str:
    """Return the lower-cased address, or ``""`` if it is not address-shaped."""
    if not isinstance(email, str):
        return ""
    cleaned = normalize(email).strip().lower()
    if not _EMAIL_RE.match(cleaned):
        return ""
    return cleaned


FIELD_OPTIONS: dict[FieldKind, SanitizeOptions] = {
    FieldKind.TOPIC: TOPIC_OPTIONS,
    FieldKind.POST: POST_OPTIONS,
    FieldKind.GITHUB_ACTIVITY: SanitizeOptions(max_length=2000),
    FieldKind.GENERAL: DEFAULT_OPTIONS,
    FieldKind.USERNAME: SanitizeOptions(max_length=31, allow_emojis=False, allow_newlines=False),
    FieldKind.PLATFORM: SanitizeOptions(max_length=32, allow_emojis=False, allow_newlines=False),
    FieldKind.TONE: SanitizeOptions(max_length=32, allow_emojis=False, allow_newlines=False),
}


def sanitize_field(text: str, field: FieldKind | str) -> str:
    """Sanitize *text* with the preset registered for *field*."""
    field = FieldKind(field)
    if field is FieldKind.HASHTAG:
        return sanitize_hashtag(text)
    if field is FieldKind.URL:
        return sanitize_url(text)
    if field is FieldKind.EMAIL:
        return sanitize_email(text)
    return sanitize(text, FIELD_OPTIONS[field])


def sanitize_batch(
    inputs: Mapping[str, str],
    options: SanitizeOptions = DEFAULT_OPTIONS,
) -> dict[str, str]:
    """Sanitize every value of *inputs* with the same *options*."""
    return {key: sanitize(value, options) for key, value in inputs.items()}
