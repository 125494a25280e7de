"""postguard content stages -- normalize, sanitize, assess, validate, segment.

Public API re-exports for ``postguard.content``.
"""

from postguard.content.types import (
    FieldKind,
    PatternTag,
    Platform,
    RiskLevel,
    Tone,
)

from postguard.content.normalize import normalize, strip_invisible

from postguard.content.sanitize import (
    SanitizeOptions,
    sanitize,
    sanitize_batch,
    sanitize_email,
    sanitize_field,
    sanitize_hashtag,
    sanitize_post_content,
    sanitize_topic,
    sanitize_url,
    sanitize_user_input,
)

from postguard.content.risk import RiskAssessment, assess, log_assessment

from postguard.content.validation import (
    Invalid,
    InvalidReason,
    Valid,
    ValidationOutcome,
    all_valid,
    validate,
    validate_batch,
    validate_hashtags,
    validation_errors,
)

from postguard.content.segment import Segment, split_content

__all__ = [
    # Types
    "FieldKind",
    "PatternTag",
    "Platform",
    "RiskLevel",
    "Tone",
    # Normalizer
    "normalize",
    "strip_invisible",
    # Sanitizer
    "SanitizeOptions",
    "sanitize",
    "sanitize_batch",
    "sanitize_email",
    "sanitize_field",
    "sanitize_hashtag",
    "sanitize_post_content",
    "sanitize_topic",
    "sanitize_url",
    "sanitize_user_input",
    # Risk detector
    "RiskAssessment",
    "assess",
    "log_assessment",
    # Validator
    "Invalid",
    "InvalidReason",
    "Valid",
    "ValidationOutcome",
    "all_valid",
    "validate",
    "validate_batch",
    "validate_hashtags",
    "validation_errors",
    # Segmenter
    "Segment",
    "split_content",
]
