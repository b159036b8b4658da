"""Keyword triage engine.

Pure functions with no I/O. They back the zero-latency emergency override and
stand in for every language-model call when that call fails.
"""
from typing import Dict, List, NamedTuple, Optional

from app.services.analysis.models import Intent, Priority, Severity, TurnAnalysis
from app.services.triage.constants import (
    EMERGENCY_KEYWORDS,
    HIGH_PRIORITY_KEYWORDS,
    INTENT_KEYWORDS,
    INTENT_PRECEDENCE,
    MEDIUM_PRIORITY_KEYWORDS,
    ZERO_LATENCY_KEYWORDS,
)
from app.services.triage.replies import fallback_reply

DEFAULT_LOCALE = "en-US"


class EmergencyMatch(NamedTuple):
    """Result of an emergency keyword scan."""

    is_emergency: bool
    keywords: List[str]


def normalize(text: Optional[str]) -> str:
    """Lower-case and fold typographic apostrophes so "can’t" matches "can't"."""
    if not text:
        return ""
    return text.lower().replace("’", "'").replace("‘", "'").strip()


def _locale_keywords(table: Dict[str, List[str]], locale: Optional[str]) -> List[str]:
    """Keywords for a locale plus the default locale; all locales when None."""
    if locale is None:
        locales = list(table)
    else:
        locales = [locale, DEFAULT_LOCALE] if locale != DEFAULT_LOCALE else [locale]
    keywords: List[str] = []
    for name in locales:
        for keyword in table.get(name, []):
            if keyword not in keywords:
                keywords.append(keyword)
    return keywords


def _intent_keywords(intent: Intent, locale: Optional[str]) -> List[str]:
    """One intent's keywords for a locale plus the default locale."""
    table = {name: lists.get(intent, []) for name, lists in INTENT_KEYWORDS.items()}
    return _locale_keywords(table, locale or DEFAULT_LOCALE)


def _count_matches(text: str, keywords: List[str]) -> int:
    return sum(1 for keyword in keywords if keyword in text)


def classify_intent(text: str, locale: Optional[str] = None) -> Intent:
    """Classify intent by counting keyword hits per category.

    Any emergency keyword wins outright. Otherwise the highest non-zero count
    wins, ties go to INTENT_PRECEDENCE order, and no hits at all means a
    general inquiry.
    """
    lowered = normalize(text)

    if _count_matches(lowered, _intent_keywords(Intent.EMERGENCY, locale)) > 0:
        return Intent.EMERGENCY

    scores = {intent: _count_matches(lowered, _intent_keywords(intent, locale)) for intent in INTENT_PRECEDENCE}
    best = max(scores.values())
    if best == 0:
        return Intent.GENERAL_INQUIRY

    # max() keeps the first maximum, so list order breaks ties
    return max(INTENT_PRECEDENCE, key=lambda intent: scores[intent])


def detect_emergency_keywords(text: str, locale: Optional[str] = None) -> EmergencyMatch:
    """Return every emergency keyword found in the text."""
    lowered = normalize(text)
    matched = [k for k in _locale_keywords(EMERGENCY_KEYWORDS, locale) if k in lowered]
    return EmergencyMatch(is_emergency=bool(matched), keywords=matched)


def calculate_priority(text: str, is_emergency: bool, locale: Optional[str] = None) -> Priority:
    """Emergencies are critical; otherwise check the high then medium lists."""
    if is_emergency:
        return Priority.CRITICAL

    lowered = normalize(text)
    if _count_matches(lowered, _locale_keywords(HIGH_PRIORITY_KEYWORDS, locale or DEFAULT_LOCALE)):
        return Priority.HIGH
    if _count_matches(lowered, _locale_keywords(MEDIUM_PRIORITY_KEYWORDS, locale or DEFAULT_LOCALE)):
        return Priority.MEDIUM
    return Priority.LOW


def check_zero_latency_override(text: str) -> List[str]:
    """Scan the hand-maintained critical phrase list across every locale.

    Returns the matched phrases; an empty list means no override.
    """
    lowered = normalize(text)
    return [k for k in _locale_keywords(ZERO_LATENCY_KEYWORDS, None) if k in lowered]


def keyword_analysis(text: str, locale: Optional[str] = None) -> TurnAnalysis:
    """Full turn analysis using keywords only.

    Keyword hits alone never reach CRITICAL severity; a transfer needs either
    the language model's detector or the zero-latency override.
    """
    intent = classify_intent(text, locale)
    emergency = detect_emergency_keywords(text, locale)
    return TurnAnalysis(
        intent=intent,
        priority=calculate_priority(text, emergency.is_emergency, locale),
        is_emergency=emergency.is_emergency,
        severity=Severity.HIGH if emergency.is_emergency else Severity.NONE,
        keywords=emergency.keywords,
        reply_text=fallback_reply(intent, emergency.is_emergency, locale or DEFAULT_LOCALE),
    )


def override_analysis(keywords: List[str], reply_text: str) -> TurnAnalysis:
    """Analysis recorded when the zero-latency override fires."""
    return TurnAnalysis(
        intent=Intent.EMERGENCY,
        priority=Priority.CRITICAL,
        is_emergency=True,
        severity=Severity.CRITICAL,
        keywords=keywords,
        reply_text=reply_text,
    )
