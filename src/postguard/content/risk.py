"""Advisory detection of suspicious patterns for audit logging.

The detector never changes content and never blocks a request.  Its
findings feed the ``postguard.audit`` logger so operators can see what the
sanitizer had to remove.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass

from postguard.content.normalize import INVISIBLE_CHARS
from postguard.content.sanitize import INJECTION_PATTERNS
from postguard.content.types import PatternTag, RiskLevel

audit_logger = logging.getLogger("postguard.audit")

SEVERITY: dict[PatternTag, RiskLevel] = {
    PatternTag.HTML_TAGS: RiskLevel.HIGH,
    PatternTag.SCRIPT_TAG: RiskLevel.HIGH,
    PatternTag.DANGEROUS_URL_SCHEME: RiskLevel.HIGH,
    PatternTag.EVENT_HANDLER: RiskLevel.MEDIUM,
    PatternTag.AI_INJECTION: RiskLevel.MEDIUM,
    PatternTag.SQL_INJECTION: RiskLevel.LOW,
    PatternTag.SUSPICIOUS_UNICODE: RiskLevel.LOW,
    PatternTag.MIXED_SCRIPT: RiskLevel.LOW,
}

_HTML_TAG_RE = re.compile(r"<[^<>]*>")
_SCRIPT_TAG_RE = re.compile(r"<\s*script", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"\bon[a-z]+\s*=", re.IGNORECASE)
_DANGEROUS_SCHEME_RE = re.compile(r"\b(javascript|vbscript|data)\s*:", re.IGNORECASE)
_SQL_RE = re.compile(
    r"\bunion\s+(all\s+)?select\b"
    r"|\bselect\s+.+?\s+from\b"
    r"|\binsert\s+into\b"
    r"|\bupdate\s+\w+\s+set\b"
    r"|\bdelete\s+from\b"
    r"|\bdrop\s+(table|database|schema)\b"
    r"|['\"]\s*(or|and)\s+['\"]?\d+['\"]?\s*=\s*['\"]?\d+"
    r"|;\s*--"
    r"|/\*.*?\*/",
    re.IGNORECASE | re.DOTALL,
)
_COMBINING_RUN = 3


@dataclass(frozen=True)
class RiskAssessment:
    """Patterns found in one input and the resulting risk level."""

    found_patterns: frozenset[PatternTag]
    risk_level: RiskLevel

    @property
    def has_malicious_patterns(self) -> bool:
        return bool(self.found_patterns)

    def to_dict(self) -> dict[str, object]:
        return {
            "has_malicious_patterns": self.has_malicious_patterns,
            "found_patterns": sorted(tag.value for tag in self.found_patterns),
            "risk_level": self.risk_level.value,
        }


def _has_suspicious_unicode(text: str) -> bool:
    run = 0
    for ch in text:
        if ch in INVISIBLE_CHARS or unicodedata.category(ch) == "Cf":
            return True
        if unicodedata.combining(ch):
            run += 1
            if run >= _COMBINING_RUN:
                return True
        else:
            run = 0
    return False


def _script_of(ch: str) -> str | None:
    if not ch.isalpha():
        return None
    try:
        name = unicodedata.name(ch)
    except ValueError:
        return None
    for script in ("LATIN", "CYRILLIC", "GREEK"):
        if name.startswith(script):
            return script
    return None


def _has_mixed_script_word(text: str) -> bool:
    """True if one word mixes Latin letters with Cyrillic or Greek ones."""
    for word in text.split():
        scripts = {_script_of(ch) for ch in word} - {None}
        if "LATIN" in scripts and len(scripts) > 1:
            return True
    return False


def _scan(text: str) -> set[PatternTag]:
    found: set[PatternTag] = set()
    if _HTML_TAG_RE.search(text):
        found.add(PatternTag.HTML_TAGS)
    if _SCRIPT_TAG_RE.search(text):
        found.add(PatternTag.SCRIPT_TAG)
    if _EVENT_HANDLER_RE.search(text):
        found.add(PatternTag.EVENT_HANDLER)
    if any(pattern.search(text) for pattern in INJECTION_PATTERNS):
        found.add(PatternTag.AI_INJECTION)
    if _DANGEROUS_SCHEME_RE.search(text):
        found.add(PatternTag.DANGEROUS_URL_SCHEME)
    if _SQL_RE.search(text):
        found.add(PatternTag.SQL_INJECTION)
    if _has_suspicious_unicode(text):
        found.add(PatternTag.SUSPICIOUS_UNICODE)
    if _has_mixed_script_word(text):
        found.add(PatternTag.MIXED_SCRIPT)
    return found


def assess(text: str) -> RiskAssessment:
    """Classify suspicious patterns in *text*.

    Both the text as given and its NFKC form are scanned, so full-width
    look-alikes (``＜script＞``) are reported like their ASCII originals.
    """
    if not isinstance(text, str) or not text:
        return RiskAssessment(frozenset(), RiskLevel.LOW)
    found = _scan(text) | _scan(unicodedata.normalize("NFKC", text))
    level = max(
        (SEVERITY[tag] for tag in found),
        key=lambda lvl: lvl.rank,
        default=RiskLevel.LOW,
    )
    return RiskAssessment(frozenset(found), level)


def log_assessment(assessment: RiskAssessment, source: str = "input") -> None:
    """Write an audit line for *assessment* if anything was found.

    Only tags and the level are logged, never the content itself.
    """
    if not assessment.has_malicious_patterns:
        return
    log = audit_logger.warning if assessment.risk_level is RiskLevel.HIGH else audit_logger.info
    log(
        "Suspicious patterns in %s: %s (risk=%s)",
        source,
        ",".join(sorted(tag.value for tag in assessment.found_patterns)),
        assessment.risk_level.value,
    )
