"""NOAA active alerts for Washington, kept to King County / Puget Sound areas."""

import re
from datetime import datetime

import httpx

from citypulse.ingest.base import IngestJob, clock_time, slugify
from citypulse.neighborhoods import DEFAULT_NEIGHBORHOOD, closest_neighborhood
from citypulse.relay.models import RelayCreate

NOAA_URL = "https://api.weather.gov/alerts/active"
MAX_INSTRUCTION_CHARS = 180
MAX_NOTES_CHARS = 200

_LOCAL_AREA_RE = re.compile(r"king|puget|seattle", re.I)

_SEVERITY_SCORES = {
    "Extreme": 1.0,
    "Severe": 0.9,
    "Moderate": 0.7,
    "Minor": 0.4,
}

# (event pattern, targets) checked in order
_EVENT_TARGETS = (
    (re.compile(r"wind|storm|thunder", re.I), ["Ballard", "QueenAnne", "WestSeattle"]),
    (re.compile(r"flood|rain", re.I), ["SoDo", "Downtown", "WestSeattle"]),
    (re.compile(r"heat|air quality", re.I), ["Downtown", "CapitolHill", "Ballard"]),
)


def score_from_severity(value: str | None) -> float:
    return _SEVERITY_SCORES.get(value or "", 0.3)


def urgency_from_noaa(value: str | None) -> str:
    if value and re.search(r"immediate|expected", value, re.I):
        return "urgent"
    return "normal"


def targets_for_event(event: str) -> list[str]:
    for pattern, targets in _EVENT_TARGETS:
        if pattern.search(event):
            return list(targets)
    return ["Downtown", "CapitolHill"]


def polygon_centroid(geometry: dict | None) -> tuple[float, float]:
    """Average of the outer ring's vertices as (lat, lon); Downtown when absent."""
    if geometry and geometry.get("type") == "Polygon":
        rings = geometry.get("coordinates") or []
        ring = rings[0] if rings else []
        if ring:
            lat = sum(pt[1] for pt in ring) / len(ring)
            lon = sum(pt[0] for pt in ring) / len(ring)
            return lat, lon
    return DEFAULT_NEIGHBORHOOD.lat, DEFAULT_NEIGHBORHOOD.lon


def actions_for(event: str, instruction: str | None) -> list[str]:
    if instruction:
        return [instruction[:MAX_INSTRUCTION_CHARS]]
    if re.search(r"wind", event, re.I):
        return ["Secure outdoor items and avoid parking under trees"]
    if re.search(r"rain|flood", event, re.I):
        return ["Watch for standing water on low roads and allow transit delays"]
    return ["Monitor local news and check on neighbors"]


def alert_relay_id(feature: dict, now: datetime) -> str:
    """`noaa-<urn>`; the feature id is a URL, the last path segment is the alert urn."""
    urn = (feature.get("properties") or {}).get("id")
    if not urn:
        urn = (feature.get("id") or "").rstrip("/").rsplit("/", 1)[-1]
    return f"noaa-{urn or int(now.timestamp() * 1000)}"


class WeatherAlertsJob(IngestJob):
    name = "weather_alerts"
    description = "NOAA weather alerts for the Seattle area"

    async def fetch(self, http: httpx.AsyncClient, now: datetime) -> dict:
        resp = await http.get(
            NOAA_URL,
            params={"area": "WA"},
            headers={"Accept": "application/geo+json"},
        )
        resp.raise_for_status()
        return resp.json()

    def transform(self, raw: dict, now: datetime) -> list[RelayCreate]:
        payloads = []
        for feature in raw.get("features") or []:
            props = feature.get("properties") or {}
            if not _LOCAL_AREA_RE.search(props.get("areaDesc") or ""):
                continue

            event = props.get("event") or "Weather Alert"
            lat, lon = polygon_centroid(feature.get("geometry"))
            onset = clock_time(props.get("onset"), "now")
            ends = clock_time(props.get("ends"), "later today")
            packet_id = alert_relay_id(feature, now)
            notes = props.get("headline") or (props.get("description") or "")[:MAX_NOTES_CHARS] or None

            payloads.append(
                RelayCreate(
                    id=packet_id,
                    origin=closest_neighborhood(lat, lon).id,
                    targets=targets_for_event(event),
                    category=f"weather:{slugify(event)}",
                    impact_score=score_from_severity(props.get("severity")),
                    urgency=urgency_from_noaa(props.get("urgency")),
                    window=f"{onset} → {ends}",
                    requested_actions=actions_for(event, props.get("instruction")),
                    notes=notes,
                )
            )
        return payloads
