"""
The six neighborhoods alerts are bucketed into.

Centroids are plain lat/lon points; "closest" is Euclidean distance in
degrees, which is plenty at city scale.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Neighborhood:
    id: str
    name: str
    lat: float
    lon: float
    description: str = ""
    personas: tuple[str, ...] = ()


NEIGHBORHOODS: tuple[Neighborhood, ...] = (
    Neighborhood(
        id="Downtown",
        name="Downtown",
        lat=47.6062,
        lon=-122.3321,
        description="Commercial core, office commuters, tourist foot traffic",
        personas=("commuters", "tourists"),
    ),
    Neighborhood(
        id="SoDo",
        name="SoDo",
        lat=47.5901,
        lon=-122.3344,
        description="Stadium district + industrial corridor",
        personas=("game-day", "logistics"),
    ),
    Neighborhood(
        id="CapitolHill",
        name="Capitol Hill",
        lat=47.6231,
        lon=-122.3207,
        description="Dense residential + nightlife",
        personas=("residents", "nightlife"),
    ),
    Neighborhood(
        id="Ballard",
        name="Ballard",
        lat=47.6687,
        lon=-122.3847,
        description="Mixed residential + maritime",
        personas=("families", "maritime"),
    ),
    Neighborhood(
        id="QueenAnne",
        name="Queen Anne",
        lat=47.6372,
        lon=-122.3560,
        description="Residential hill + Seattle Center",
        personas=("families", "events"),
    ),
    Neighborhood(
        id="WestSeattle",
        name="West Seattle",
        lat=47.5625,
        lon=-122.3860,
        description="Peninsula neighborhoods reachable via bridge",
        personas=("commuters", "families"),
    ),
)

_BY_ID = {hood.id: hood for hood in NEIGHBORHOODS}

DEFAULT_NEIGHBORHOOD = _BY_ID["Downtown"]


def get_neighborhood(hood_id: str) -> Neighborhood | None:
    return _BY_ID.get(hood_id)


def closest_neighborhood(lat: float, lon: float) -> Neighborhood:
    """Return the neighborhood whose centroid is nearest; ties keep the earlier entry."""
    best = NEIGHBORHOODS[0]
    best_dist = math.inf
    for hood in NEIGHBORHOODS:
        dist = math.hypot(lat - hood.lat, lon - hood.lon)
        if dist < best_dist:
            best = hood
            best_dist = dist
    return best
