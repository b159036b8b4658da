"""Location-aware grounding for provider searches."""
import logging
from typing import Optional

from app.services.analysis.models import Intent
from app.services.directory.gazetteer import Gazetteer
from app.services.directory.providers import ProviderDirectory
from app.services.triage.constants import PROVIDER_LOOKUP_TRIGGERS
from app.services.triage.engine import normalize

logger = logging.getLogger(__name__)

ASK_FOR_LOCATION = (
    "The caller wants a doctor or hospital but has not said where they are. "
    "Ask which area or neighbourhood they are calling from."
)


class LocationService:
    """Builds auxiliary context describing providers near the caller."""

    def __init__(
        self,
        directory: ProviderDirectory,
        gazetteer: Optional[Gazetteer] = None,
        radius_meters: int = 5000,
        limit: int = 3,
    ):
        self.directory = directory
        self.gazetteer = gazetteer or Gazetteer()
        self.radius_meters = radius_meters
        self.limit = limit

    @staticmethod
    def wants_provider(transcript: str, intent: Intent) -> bool:
        if intent == Intent.FIND_PROVIDER:
            return True
        lowered = normalize(transcript)
        return any(trigger in lowered for trigger in PROVIDER_LOOKUP_TRIGGERS)

    async def build_context(self, transcript: str) -> str:
        """Describe nearby providers, or ask the generator to request a location."""
        location = self.gazetteer.extract(transcript)
        if location is None:
            return ASK_FOR_LOCATION

        providers = await self.directory.find_nearby(
            location.latitude, location.longitude, self.radius_meters, self.limit
        )
        radius_km = self.radius_meters / 1000
        if not providers:
            logger.info(f"[LOCATION] No active providers within {radius_km:g} km of {location.name}")
            return (
                f"No active providers were found within {radius_km:g} km of {location.name}. "
                f"Offer to book an appointment at the clinic instead."
            )

        lines = [f"Active providers within {radius_km:g} km of {location.name.title()}:"]
        for provider in providers:
            specialty = f", {provider.specialization}" if provider.specialization else ""
            phone = f", phone {provider.phone}" if provider.phone else ""
            lines.append(f"- {provider.name}{specialty}, {provider.distance_meters / 1000:.1f} km away{phone}")
        logger.info(f"[LOCATION] Found {len(providers)} providers near {location.name}")
        return "\n".join(lines)
