"""Nearby provider lookups."""
import math
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models import Provider

EARTH_RADIUS_METERS = 6_371_000


class NearbyProvider(BaseModel):
    """A provider with its distance from the caller's area."""

    name: str
    specialization: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    distance_meters: float


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


class ProviderDirectory:
    """Read-only queries against the provider directory.

    Each lookup opens its own short-lived session, separate from the
    request session that writes call records.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_nearby(
        self, latitude: float, longitude: float, radius_meters: int, limit: int = 3
    ) -> List[NearbyProvider]:
        """Active providers within the radius, nearest first."""
        # Bounding box prefilter; one degree of latitude is ~111 km
        delta_lat = radius_meters / 111_000
        delta_lon = radius_meters / (111_000 * max(math.cos(math.radians(latitude)), 0.01))
        async with self.session_factory() as session:
            result = await session.execute(
                select(Provider).where(
                    Provider.is_active.is_(True),
                    Provider.latitude.between(latitude - delta_lat, latitude + delta_lat),
                    Provider.longitude.between(longitude - delta_lon, longitude + delta_lon),
                )
            )
            candidates = result.scalars().all()

        nearby = []
        for provider in candidates:
            distance = haversine_meters(latitude, longitude, provider.latitude, provider.longitude)
            if distance <= radius_meters:
                nearby.append(
                    NearbyProvider(
                        name=provider.name,
                        specialization=provider.specialization,
                        phone=provider.phone,
                        address=provider.address,
                        rating=provider.rating,
                        distance_meters=distance,
                    )
                )
        nearby.sort(key=lambda p: p.distance_meters)
        return nearby[:limit]
