"""IVR response documents rendered as TwiML."""
import logging
from typing import List, Optional

from twilio.twiml.voice_response import VoiceResponse

from app.services.twiml.phrases import (
    INVALID_SELECTION,
    LANGUAGE_MENU_PROMPT,
    VoiceProfile,
    get_phrasebook,
)

logger = logging.getLogger(__name__)

TERMINAL_VERBS = ("Dial", "Hangup", "Redirect")


class ResponsePolicyError(ValueError):
    """A response document breaks the instruction policy."""


class ResponseDocument:
    """A TwiML response that records its top-level verbs for policy checks."""

    def __init__(self, voice: VoiceProfile):
        self.voice = voice
        self.verbs: List[str] = []
        self._response = VoiceResponse()

    def say(self, text: str) -> "ResponseDocument":
        self._response.say(text, voice=self.voice.voice, language=self.voice.language)
        self.verbs.append("Say")
        return self

    def gather(
        self,
        action_url: str,
        prompt: Optional[str] = None,
        input_modes: str = "speech",
        timeout_seconds: int = 5,
        barge_in: bool = True,
        max_digits: Optional[int] = None,
    ) -> "ResponseDocument":
        gather = self._response.gather(
            input=input_modes,
            action=action_url,
            method="POST",
            timeout=timeout_seconds,
            speech_timeout="auto",
            speech_model="phone_call",
            enhanced=True,
            language=self.voice.language,
            barge_in=barge_in,
            action_on_empty_result=True,
            num_digits=max_digits,
        )
        if prompt:
            gather.say(prompt, voice=self.voice.voice, language=self.voice.language)
        self.verbs.append("Gather")
        return self

    def dial(self, number: str) -> "ResponseDocument":
        self._response.dial(number)
        self.verbs.append("Dial")
        return self

    def redirect(self, url: str) -> "ResponseDocument":
        self._response.redirect(url, method="POST")
        self.verbs.append("Redirect")
        return self

    def hangup(self) -> "ResponseDocument":
        self._response.hangup()
        self.verbs.append("Hangup")
        return self

    def validate(self) -> None:
        """Enforce the response policy.

        At most one Gather, never alongside a Dial, always followed by a
        Say and Hangup fallback, and the document ends on a terminal verb.
        """
        if not self.verbs or self.verbs[-1] not in TERMINAL_VERBS:
            raise ResponsePolicyError(f"Response must end with one of {TERMINAL_VERBS}: {self.verbs}")
        gathers = self.verbs.count("Gather")
        if gathers > 1:
            raise ResponsePolicyError(f"Response contains {gathers} Gather verbs")
        if gathers and "Dial" in self.verbs:
            raise ResponsePolicyError("Response contains both Gather and Dial")
        if self.verbs.count("Dial") > 1:
            raise ResponsePolicyError("Response contains more than one Dial")
        if gathers:
            tail = self.verbs[self.verbs.index("Gather") + 1:]
            if "Say" not in tail or tail[-1] != "Hangup":
                raise ResponsePolicyError(f"Gather must be followed by a Say and Hangup fallback: {self.verbs}")

    def render(self) -> str:
        self.validate()
        return str(self._response)


class ResponseDocumentBuilder:
    """Renders the documents the call state machine needs."""

    def __init__(
        self,
        clinic_name: str = "the clinic",
        barge_in: bool = True,
        gather_timeout_seconds: int = 5,
    ):
        self.clinic_name = clinic_name
        self.barge_in = barge_in
        self.gather_timeout_seconds = gather_timeout_seconds

    def _conversation_gather(self, locale: Optional[str], prompt: str, action_url: str) -> str:
        phrases = get_phrasebook(locale)
        return (
            ResponseDocument(phrases.voice)
            .gather(
                action_url,
                prompt=prompt,
                timeout_seconds=self.gather_timeout_seconds,
                barge_in=self.barge_in,
            )
            .say(phrases.no_input)
            .hangup()
            .render()
        )

    def greeting(self, action_url: str, locale: Optional[str] = None) -> str:
        prompt = get_phrasebook(locale).greeting.format(clinic_name=self.clinic_name)
        return self._conversation_gather(locale, prompt, action_url)

    def reply(self, text: str, action_url: str, locale: Optional[str] = None) -> str:
        return self._conversation_gather(locale, text, action_url)

    def reprompt(self, attempt: int, action_url: str, locale: Optional[str] = None) -> str:
        """Retry prompt; each attempt uses different wording where available."""
        reprompts = get_phrasebook(locale).reprompts
        prompt = reprompts[min(max(attempt, 1), len(reprompts)) - 1]
        return self._conversation_gather(locale, prompt, action_url)

    def language_menu(self, action_url: str) -> str:
        phrases = get_phrasebook("en-US")
        return (
            ResponseDocument(phrases.voice)
            .gather(
                action_url,
                prompt=LANGUAGE_MENU_PROMPT,
                input_modes="dtmf",
                timeout_seconds=self.gather_timeout_seconds,
                barge_in=True,
                max_digits=1,
            )
            .say(phrases.no_input)
            .hangup()
            .render()
        )

    def invalid_selection(self, menu_url: str) -> str:
        return ResponseDocument(get_phrasebook("en-US").voice).say(INVALID_SELECTION).redirect(menu_url).render()

    def transfer(self, number: str, locale: Optional[str] = None) -> str:
        phrases = get_phrasebook(locale)
        return ResponseDocument(phrases.voice).say(phrases.transfer_notice).dial(number).render()

    def goodbye(self, locale: Optional[str] = None) -> str:
        phrases = get_phrasebook(locale)
        return ResponseDocument(phrases.voice).say(phrases.goodbye).hangup().render()

    def apology(self, locale: Optional[str] = None) -> str:
        phrases = get_phrasebook(locale)
        return ResponseDocument(phrases.voice).say(phrases.apology).hangup().render()
