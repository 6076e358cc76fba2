"""
Cities offered for manual location selection.
"""
from __future__ import annotations

from typing import List, Optional

from app.config import Coordinate

# Sweden's five biggest cities
CITIES: List[Coordinate] = [
    Coordinate(latitude=59.3293, longitude=18.0686, label="Stockholm"),
    Coordinate(latitude=57.7089, longitude=11.9746, label="Gothenburg"),
    Coordinate(latitude=55.605, longitude=13.0038, label="Malmö"),
    Coordinate(latitude=59.8586, longitude=17.6389, label="Uppsala"),
    Coordinate(latitude=59.6099, longitude=16.5448, label="Västerås"),
]


def find_city(name: str) -> Optional[Coordinate]:
    """Look up a city by name (case-insensitive)."""
    wanted = name.strip().casefold()
    for city in CITIES:
        if city.label and city.label.casefold() == wanted:
            return city
    return None


def city_names() -> List[str]:
    """Names in display order."""
    return [city.label for city in CITIES if city.label]
