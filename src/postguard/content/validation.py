"""Semantic and structural validation of sanitized content.

Every field kind has a :class:`FieldRules` entry.  Rules are evaluated in a
fixed order and the first failure wins:

1. non-empty after trimming            -> ``empty``
2. minimum length                      -> ``too short``
3. minimum distinct-word count         -> ``needs more words``
4. maximum length                      -> ``too long``
5. closed-set membership               -> ``unrecognized value``
6. format pattern                      -> ``invalid format``

Bounds are inclusive at both ends and measured on the trimmed value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Union

from postguard.content.sanitize import (
    MAX_HASHTAG_LENGTH,
    MAX_INPUT_LENGTH,
    MAX_POST_LENGTH,
    MAX_TOPIC_LENGTH,
)
from postguard.content.types import FieldKind, Tone

MIN_TOPIC_LENGTH = 10
MIN_TOPIC_WORDS = 2

PLATFORM_CHOICES = frozenset({"linkedin", "twitter", "both", "github"})
TONE_CHOICES = frozenset(tone.value for tone in Tone)


class InvalidReason(str, Enum):
    EMPTY = "empty"
    TOO_SHORT = "too short"
    NEEDS_MORE_WORDS = "needs more words"
    TOO_LONG = "too long"
    UNRECOGNIZED_VALUE = "unrecognized value"
    INVALID_FORMAT = "invalid format"


@dataclass(frozen=True)
class Valid:
    field: FieldKind
    content: str

    @property
    def is_valid(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    field: FieldKind
    reason: InvalidReason
    message: str

    @property
    def is_valid(self) -> bool:
        return False


ValidationOutcome = Union[Valid, Invalid]


@dataclass(frozen=True)
class FieldRules:
    label: str
    min_length: int = 1
    max_length: int | None = None
    min_words: int = 0
    choices: frozenset[str] | None = None
    pattern: re.Pattern[str] | None = None
    format_message: str = "has an invalid format"


FIELD_RULES: dict[FieldKind, FieldRules] = {
    FieldKind.TOPIC: FieldRules(
        label="Topic",
        min_length=MIN_TOPIC_LENGTH,
        max_length=MAX_TOPIC_LENGTH,
        min_words=MIN_TOPIC_WORDS,
    ),
    FieldKind.POST: FieldRules(label="Content", max_length=MAX_POST_LENGTH, min_words=1),
    FieldKind.HASHTAG: FieldRules(
        label="Hashtag",
        max_length=MAX_HASHTAG_LENGTH,
        pattern=re.compile(r"#?[A-Za-z0-9_]{2,}"),
        format_message="can only contain letters, numbers, and underscores",
    ),
    FieldKind.USERNAME: FieldRules(
        label="Username",
        max_length=31,
        pattern=re.compile(r"@?[A-Za-z0-9_-]{3,30}"),
        format_message="must be 3-30 letters, numbers, underscores or hyphens",
    ),
    FieldKind.EMAIL: FieldRules(
        label="Email",
        max_length=255,
        pattern=re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+"),
        format_message="is not a valid email address",
    ),
    FieldKind.URL: FieldRules(
        label="URL",
        max_length=2048,
        pattern=re.compile(r"(https?://[^\s/?#]+[^\s]*|mailto:[^\s]+)", re.IGNORECASE),
        format_message="must be an http(s) or mailto URL",
    ),
    FieldKind.GITHUB_ACTIVITY: FieldRules(label="Activity", max_length=2000),
    FieldKind.GENERAL: FieldRules(label="Input", max_length=MAX_INPUT_LENGTH),
    FieldKind.PLATFORM: FieldRules(label="Platform", choices=PLATFORM_CHOICES),
    FieldKind.TONE: FieldRules(label="Tone", choices=TONE_CHOICES),
}


def validate(content: str, field: FieldKind | str) -> ValidationOutcome:
    """Validate *content* against the rules for *field*."""
    field = FieldKind(field)
    rules = FIELD_RULES[field]

    value = content.strip() if isinstance(content, str) else ""
    if not value:
        return Invalid(field, InvalidReason.EMPTY, f"{rules.label} cannot be empty")

    if len(value) < rules.min_length:
        return Invalid(
            field,
            InvalidReason.TOO_SHORT,
            f"{rules.label} must be at least {rules.min_length} characters",
        )

    if rules.min_words and len({word.lower() for word in value.split()}) < rules.min_words:
        return Invalid(
            field,
            InvalidReason.NEEDS_MORE_WORDS,
            f"{rules.label} should contain at least {rules.min_words} different words",
        )

    if rules.max_length is not None and len(value) > rules.max_length:
        return Invalid(
            field,
            InvalidReason.TOO_LONG,
            f"{rules.label} cannot exceed {rules.max_length} characters",
        )

    if rules.choices is not None and value.lower() not in rules.choices:
        return Invalid(
            field,
            InvalidReason.UNRECOGNIZED_VALUE,
            f"{rules.label} must be one of: {', '.join(sorted(rules.choices))}",
        )

    if rules.pattern is not None and not rules.pattern.fullmatch(value):
        return Invalid(
            field,
            InvalidReason.INVALID_FORMAT,
            f"{rules.label} {rules.format_message}",
        )

    if rules.choices is not None:
        value = value.lower()
    return Valid(field, value)


def validate_topic(topic: str) -> ValidationOutcome:
    return validate(topic, FieldKind.TOPIC)


def validate_post_content(content: str) -> ValidationOutcome:
    return validate(content, FieldKind.POST)


def validate_hashtags(hashtags: Iterable[str]) -> list[ValidationOutcome]:
    return [validate(tag, FieldKind.HASHTAG) for tag in hashtags]


def validate_batch(
    inputs: Mapping[str, str],
    fields: Mapping[str, FieldKind | str],
) -> dict[str, ValidationOutcome]:
    """Validate each input that has a field kind in *fields*; others are skipped."""
    return {
        key: validate(value, fields[key])
        for key, value in inputs.items()
        if key in fields
    }


def all_valid(outcomes: Iterable[ValidationOutcome]) -> bool:
    return all(outcome.is_valid for outcome in outcomes)


def validation_errors(outcomes: Iterable[ValidationOutcome]) -> list[str]:
    return [outcome.message for outcome in outcomes if isinstance(outcome, Invalid)]
