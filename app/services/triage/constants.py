"""Keyword lists for heuristic triage.

Every list is keyed by locale so new languages can be added without touching
the matching logic. Entries are lower-case substrings.
"""
from typing import Dict, List

from app.services.analysis.models import Intent

# Checked before anything else. A hit skips the analysis pipeline entirely,
# so only unambiguous, life-threatening phrases belong here.
ZERO_LATENCY_KEYWORDS: Dict[str, List[str]] = {
    "en-US": [
        "can't breathe",
        "cannot breathe",
        "can not breathe",
        "not breathing",
        "stopped breathing",
        "unconscious",
        "heart attack",
        "no pulse",
        "overdosed",
    ],
    "ur-PK": [
        "saans nahi",
        "sans nahi",
        "behosh",
        "dil ka daura",
    ],
}

EMERGENCY_KEYWORDS: Dict[str, List[str]] = {
    "en-US": [
        "emergency",
        "urgent",
        "help me",
        "dying",
        "can't breathe",
        "chest pain",
        "heart attack",
        "stroke",
        "bleeding heavily",
        "severe pain",
        "unconscious",
        "seizure",
        "overdose",
        "suicide",
        "accident",
        "injury",
        "ambulance",
        "911",
        "critical",
    ],
    "ur-PK": [
        "emergency",
        "foran",
        "bachao",
        "saans nahi",
        "seene mein dard",
        "dil ka daura",
        "behosh",
        "khoon beh",
        "hadsa",
        "zakhmi",
        "ambulance",
        "1122",
    ],
}

HIGH_PRIORITY_KEYWORDS: Dict[str, List[str]] = {
    "en-US": [
        "pain",
        "hurt",
        "sick",
        "fever",
        "vomiting",
        "infection",
        "broken",
        "swelling",
        "rash",
        "bleeding",
    ],
    "ur-PK": [
        "dard",
        "bukhar",
        "ulti",
        "beemar",
        "sujan",
        "khoon",
    ],
}

MEDIUM_PRIORITY_KEYWORDS: Dict[str, List[str]] = {
    "en-US": [
        "uncomfortable",
        "concern",
        "worried",
        "anxious",
        "question about",
        "need to know",
    ],
    "ur-PK": [
        "pareshan",
        "fikar",
        "sawal",
    ],
}

INTENT_KEYWORDS: Dict[str, Dict[Intent, List[str]]] = {
    "en-US": {
        Intent.APPOINTMENT: [
            "appointment",
            "schedule",
            "book",
            "visit",
            "meeting",
            "consultation",
            "see doctor",
            "check-up",
            "follow-up",
            "reschedule",
            "cancel appointment",
        ],
        Intent.PRESCRIPTION: [
            "prescription",
            "medication",
            "medicine",
            "refill",
            "drug",
            "pills",
            "pharmacy",
            "dosage",
            "treatment",
            "antibiotics",
        ],
        Intent.GENERAL_INQUIRY: [
            "question",
            "information",
            "inquiry",
            "ask",
            "know",
            "tell me",
            "wondering",
            "curious",
            "hours",
            "location",
            "insurance",
            "billing",
        ],
        Intent.EMERGENCY: [
            "emergency",
            "urgent",
            "help",
            "pain",
            "bleeding",
            "accident",
            "chest pain",
            "can't breathe",
            "unconscious",
            "seizure",
            "overdose",
            "severe",
        ],
    },
    "ur-PK": {
        Intent.APPOINTMENT: ["appointment", "waqt", "milna", "checkup"],
        Intent.PRESCRIPTION: ["dawai", "dawa", "nuskha", "medicine"],
        Intent.GENERAL_INQUIRY: ["maloomat", "sawal", "batayen", "timing"],
        Intent.EMERGENCY: ["emergency", "madad", "bachao", "dard", "khoon", "behosh"],
    },
}

# Ties between non-emergency intents resolve in this order.
INTENT_PRECEDENCE: List[Intent] = [
    Intent.APPOINTMENT,
    Intent.PRESCRIPTION,
    Intent.GENERAL_INQUIRY,
]

# Mentioning any of these asks the pipeline to look for nearby providers.
PROVIDER_LOOKUP_TRIGGERS: List[str] = ["doctor", "hospital", "clinic", "daktar", "aspataal"]
