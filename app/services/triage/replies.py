"""Template replies used when the reply generator is unavailable."""
from typing import Dict

from app.services.analysis.models import Intent

TEMPLATE_REPLIES: Dict[str, Dict[Intent, str]] = {
    "en-US": {
        Intent.APPOINTMENT: (
            "I can help you with an appointment. Our office hours are Monday through Friday, "
            "9 AM to 5 PM. What type of appointment do you need, and do you have a preferred "
            "date and time?"
        ),
        Intent.PRESCRIPTION: (
            "I understand you're calling about a prescription. Could you tell me the medication "
            "name and the prescribing doctor? I'll help coordinate with the pharmacy."
        ),
        Intent.GENERAL_INQUIRY: (
            "I'm here to help with your questions. Could you tell me a bit more about what "
            "information you're looking for?"
        ),
        Intent.FIND_PROVIDER: (
            "I can help you find a doctor nearby. Which area are you calling from?"
        ),
        Intent.EMERGENCY: (
            "I understand this is urgent. If you are experiencing a life-threatening emergency, "
            "please hang up and call your local emergency number or go to the nearest emergency room."
        ),
        Intent.UNKNOWN: "Thank you for calling. How can I assist you today?",
    },
    "ur-PK": {
        Intent.APPOINTMENT: (
            "Main appointment mein aapki madad kar sakti hoon. Aap kis din aur kis waqt aana "
            "chahenge?"
        ),
        Intent.PRESCRIPTION: (
            "Aap dawai ke baare mein call kar rahe hain. Dawai ka naam aur doctor ka naam batayen."
        ),
        Intent.GENERAL_INQUIRY: "Main aapke sawal mein madad karungi. Thoda tafseel se batayen.",
        Intent.FIND_PROVIDER: "Main qareeb doctor dhoondne mein madad kar sakti hoon. Aap kis ilaqe mein hain?",
        Intent.EMERGENCY: (
            "Yeh emergency lagti hai. Agar jaan ka khatra hai to foran 1122 par call karein ya "
            "qareebi hospital jayen."
        ),
        Intent.UNKNOWN: "Call karne ka shukriya. Main aapki kya madad kar sakti hoon?",
    },
}

EMERGENCY_ALERT: Dict[str, str] = {
    "en-US": (
        "This sounds serious. Please stay on the line. If you are in immediate danger, "
        "call your local emergency number now."
    ),
    "ur-PK": "Yeh sangeen lagta hai. Line par rahen. Agar foran khatra hai to 1122 par call karein.",
}


def fallback_reply(intent: Intent, is_emergency: bool, locale: str = "en-US") -> str:
    """Deterministic reply for an intent in the caller's language."""
    if is_emergency:
        return EMERGENCY_ALERT.get(locale, EMERGENCY_ALERT["en-US"])
    replies = TEMPLATE_REPLIES.get(locale, TEMPLATE_REPLIES["en-US"])
    return replies.get(intent, replies[Intent.UNKNOWN])
