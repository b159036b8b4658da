"""Spoken phrases and voices per locale."""
from typing import Dict, List, Optional

from pydantic import BaseModel


class VoiceProfile(BaseModel):
    """How Twilio should speak and listen in a locale."""

    language: str
    voice: Optional[str] = None  # None lets Twilio pick its default for the language


class Phrasebook(BaseModel):
    """Fixed prompts the assistant speaks in one locale."""

    voice: VoiceProfile
    greeting: str
    reprompts: List[str]
    no_input: str
    goodbye: str
    transfer_notice: str
    apology: str


PHRASEBOOKS: Dict[str, Phrasebook] = {
    "en-US": Phrasebook(
        voice=VoiceProfile(language="en-US", voice="Polly.Joanna-Neural"),
        greeting="Hello, I am the AI medical assistant for {clinic_name}. How can I help you today?",
        reprompts=[
            "Sorry, I didn't catch that. Could you please repeat what you need?",
            "I still couldn't hear you. Please tell me briefly how I can help.",
        ],
        no_input="We did not hear anything. Thank you for calling. Goodbye.",
        goodbye="Thank you for calling. Have a great day. Goodbye.",
        transfer_notice=(
            "I detect this is an emergency. I am immediately connecting you to emergency "
            "services. Please stay on the line."
        ),
        apology=(
            "We apologize, but we are experiencing technical difficulties. "
            "Please try again later. Goodbye."
        ),
    ),
    "ur-PK": Phrasebook(
        voice=VoiceProfile(language="ur-PK"),
        greeting="{clinic_name} ki medical assistance line par call karne ka shukriya. Main aapki kya madad kar sakti hoon?",
        reprompts=[
            "Maaf kijiye, main samajh nahi saki. Dobara batayen.",
            "Mujhe ab bhi aawaz nahi aa rahi. Mukhtasar batayen ke main kya madad karoon.",
        ],
        no_input="Humein koi aawaz nahi aayi. Call karne ka shukriya. Khuda hafiz.",
        goodbye="Call karne ka shukriya. Khuda hafiz.",
        transfer_notice="Yeh emergency hai. Main aapko foran emergency services se mila rahi hoon. Line par rahen.",
        apology="Maaf kijiye, technical masla hai. Baad mein dobara koshish karein. Khuda hafiz.",
    ),
}

LANGUAGE_MENU_PROMPT = "For English, press 1. Urdu ke liye 2 dabayen."
INVALID_SELECTION = "Invalid selection. Please try again."

# DTMF digit to locale for the language menu
LANGUAGE_MENU_OPTIONS: Dict[str, str] = {
    "1": "en-US",
    "2": "ur-PK",
}


def get_phrasebook(locale: Optional[str]) -> Phrasebook:
    return PHRASEBOOKS.get(locale or "en-US", PHRASEBOOKS["en-US"])
