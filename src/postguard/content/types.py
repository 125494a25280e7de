"""Shared enums for the content stages and the publishing layer."""

from __future__ import annotations

from enum import Enum


class Platform(str, Enum):
    """Publishing targets with an adapter.

    Using ``str, Enum`` so that ``Platform.TWITTER == "twitter"`` is True.
    """

    TWITTER = "twitter"
    LINKEDIN = "linkedin"

    @property
    def display_name(self) -> str:
        return {"twitter": "Twitter", "linkedin": "LinkedIn"}[self.value]


class FieldKind(str, Enum):
    """Input fields with their own sanitization and validation rules."""

    TOPIC = "topic"
    POST = "post"
    HASHTAG = "hashtag"
    USERNAME = "username"
    EMAIL = "email"
    URL = "url"
    GITHUB_ACTIVITY = "github_activity"
    GENERAL = "general"
    PLATFORM = "platform"
    TONE = "tone"


class Tone(str, Enum):
    TECHNICAL = "technical"
    CASUAL = "casual"
    INSPIRING = "inspiring"
    PROFESSIONAL = "professional"
    CREATIVE = "creative"


class PatternTag(str, Enum):
    """Signature families reported by the risk detector."""

    HTML_TAGS = "HTML_TAGS"
    SCRIPT_TAG = "SCRIPT_TAG"
    EVENT_HANDLER = "EVENT_HANDLER"
    AI_INJECTION = "AI_INJECTION"
    DANGEROUS_URL_SCHEME = "DANGEROUS_URL_SCHEME"
    SQL_INJECTION = "SQL_INJECTION"
    SUSPICIOUS_UNICODE = "SUSPICIOUS_UNICODE"
    MIXED_SCRIPT = "MIXED_SCRIPT"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return ("low", "medium", "high").index(self.value)
