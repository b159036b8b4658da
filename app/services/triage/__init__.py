"""Heuristic keyword triage."""
from app.services.triage.engine import (
    calculate_priority,
    check_zero_latency_override,
    classify_intent,
    detect_emergency_keywords,
    keyword_analysis,
)

__all__ = [
    "calculate_priority",
    "check_zero_latency_override",
    "classify_intent",
    "detect_emergency_keywords",
    "keyword_analysis",
]
