"""Area name lookup backed by a YAML file."""
import re
from pathlib import Path
from typing import List, Optional, Pattern, Tuple

import yaml
from pydantic import BaseModel


class KnownLocation(BaseModel):
    """A named area with coordinates."""

    name: str
    latitude: float
    longitude: float


class Gazetteer:
    """In-memory gazetteer using YAML configuration."""

    def __init__(self, locations_file: Optional[str] = None):
        if locations_file is None:
            locations_file = Path(__file__).parent / "data" / "locations.yaml"
        self.locations_file = Path(locations_file)
        self._locations: Optional[List[Tuple[KnownLocation, Pattern[str]]]] = None

    def _load(self) -> List[Tuple[KnownLocation, Pattern[str]]]:
        if self._locations is None:
            if not self.locations_file.exists():
                self._locations = []
            else:
                with open(self.locations_file, "r") as f:
                    data = yaml.safe_load(f) or {}
                locations = [KnownLocation(**item) for item in data.get("locations", [])]
                # Prefer "north nazimabad" over "nazimabad"
                locations.sort(key=lambda loc: len(loc.name), reverse=True)
                # Whole words only: "dha" must not match inside "dhaka"
                self._locations = [
                    (loc, re.compile(rf"\b{re.escape(loc.name.lower())}\b")) for loc in locations
                ]
        return self._locations

    def extract(self, transcript: str) -> Optional[KnownLocation]:
        """Return the first known area mentioned in the transcript."""
        lowered = transcript.lower()
        for location, pattern in self._load():
            if pattern.search(lowered):
                return location
        return None
