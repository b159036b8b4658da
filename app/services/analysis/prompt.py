"""Prompt templates for the analysis pipeline."""
from typing import Optional

from app.core.config import settings

INTENT_SYSTEM_PROMPT = (
    "You are an expert medical call analyzer. Classify patient intents accurately and concisely."
)

EMERGENCY_SYSTEM_PROMPT = (
    "You are a medical triage expert. Assess emergency severity accurately to prioritize patient care."
)

REPLY_SYSTEM_PROMPT = (
    "You are a compassionate medical call center voice assistant. Provide helpful, "
    "professional responses that will be read aloud over the phone."
)

LANGUAGE_NAMES = {
    "en-US": "English",
    "ur-PK": "Roman Urdu",
}


def get_intent_prompt(transcript: str) -> str:
    """Prompt asking for the caller's intent as JSON."""
    return f"""Analyze the following medical call transcript and classify the caller's intent.

Transcript: "{transcript}"

Classify into one of these categories:
- appointment: Caller wants to schedule, reschedule, or cancel an appointment
- prescription: Caller needs a prescription refill, medication questions, or pharmacy
- general_inquiry: General questions about the clinic or services
- emergency: Medical emergencies or urgent situations
- find_provider: Request to find a doctor, specialist, or hospital nearby
- unknown: The intent is not clear or doesn't fit other categories

Respond in JSON format with: {{"intent": "category", "confidence": 0-100, "reasoning": "brief explanation"}}"""


def get_emergency_prompt(transcript: str) -> str:
    """Prompt asking for an emergency severity assessment as JSON."""
    return f"""Analyze this medical call transcript for emergency indicators:

Transcript: "{transcript}"

Detect emergency severity based on:
- critical: Life-threatening (chest pain, stroke, severe bleeding, difficulty breathing)
- high: Urgent but not immediately life-threatening (high fever, severe pain, mental health crisis)
- medium: Concerning symptoms requiring prompt attention
- low: Minor concern, could wait
- none: No emergency indicators

Respond in JSON format with: {{"isEmergency": true/false, "severity": "level", "keywords": ["key1", "key2"], "reasoning": "explanation"}}"""


def get_reply_prompt(
    transcript: str,
    intent: str,
    is_emergency: bool,
    locale: str,
    conversation: str = "",
    auxiliary_context: Optional[str] = None,
) -> str:
    """Prompt for the spoken reply."""
    language = LANGUAGE_NAMES.get(locale, "English")
    history = f"\nConversation so far:\n{conversation}\n" if conversation else ""
    grounding = f"\nAdditional context:\n{auxiliary_context}\n" if auxiliary_context else ""
    return f"""Generate a professional, empathetic reply for the voice assistant of {settings.clinic_name}.
{history}
Caller just said: "{transcript}"
Detected intent: {intent}
Emergency: {"Yes" if is_emergency else "No"}
{grounding}
Guidelines:
- Reply in {language}
- Be empathetic and professional
- Keep the reply under 60 words; it will be spoken aloud
- For emergencies: acknowledge urgency and advise calling the local emergency number
- For appointments: offer to schedule or check availability
- For prescriptions: acknowledge the request and mention pharmacy coordination
- For provider searches: use the additional context; if it asks for the caller's area, ask for it
- For inquiries: provide helpful guidance or offer to connect with medical staff

Reply with the spoken text only."""
