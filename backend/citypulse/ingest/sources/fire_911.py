"""Seattle Fire 911 dispatches (Socrata kzjm-xkqj), last 30 minutes."""

from datetime import datetime, timedelta

import httpx

from citypulse.ingest.base import IngestJob, clock_time, parse_timestamp, slugify, to_float
from citypulse.neighborhoods import closest_neighborhood
from citypulse.relay.models import RelayCreate

DATASET_URL = "https://data.seattle.gov/resource/kzjm-xkqj.json"
RECENT_WINDOW = timedelta(minutes=30)


def impact_from_type(incident_type: str | None) -> float:
    t = (incident_type or "").lower()
    if not t:
        return 0.4
    if "rescue" in t or "fire" in t:
        return 0.85
    if "motor vehicle" in t or "aid" in t:
        return 0.6
    if "hazard" in t:
        return 0.7
    return 0.45


def actions_from_type(incident_type: str | None) -> list[str]:
    t = (incident_type or "").lower()
    if "fire" in t:
        return ["Avoid the block and keep windows closed if smoke is visible."]
    if "rescue" in t:
        return ["Expect emergency vehicles; yield space on surrounding streets."]
    if "motor vehicle" in t:
        return ["Anticipate traffic delays near the incident while crews respond."]
    if "hazard" in t:
        return ["Stay clear of the area until crews clear the hazard; monitor SDOT alerts."]
    return ["Monitor Seattle Fire updates; yield to responding units."]


class Fire911Job(IngestJob):
    name = "fire_911"
    description = "Seattle Fire 911 incidents from the last 30 minutes"

    async def fetch(self, http: httpx.AsyncClient, now: datetime) -> list[dict]:
        headers = {}
        if self.settings.socrata_app_token:
            headers["X-App-Token"] = self.settings.socrata_app_token
        resp = await http.get(
            DATASET_URL,
            params={"$limit": "200", "$order": "datetime DESC"},
            headers=headers,
        )
        resp.raise_for_status()
        return resp.json()

    def transform(self, raw: list[dict], now: datetime) -> list[RelayCreate]:
        since = now - RECENT_WINDOW
        payloads = []
        for incident in raw:
            ts = parse_timestamp(incident.get("datetime"))
            if ts is None or ts < since:
                continue
            lat = to_float(incident.get("latitude"))
            lon = to_float(incident.get("longitude"))
            if lat is None or lon is None:
                continue

            origin = closest_neighborhood(lat, lon).id
            incident_type = incident.get("type") or "Fire Incident"
            impact = impact_from_type(incident_type)
            payloads.append(
                RelayCreate(
                    id=f"fire-{incident.get('incident_number')}",
                    origin=origin,
                    targets=[origin, "Downtown"] if origin == "SoDo" else [origin],
                    category=f"fire:{slugify(incident_type)}",
                    impact_score=impact,
                    urgency="urgent" if impact >= 0.8 else "normal",
                    window=f"{clock_time(incident.get('datetime'), 'now')} → +30m",
                    requested_actions=actions_from_type(incident_type),
                    notes=f"{incident_type} at {incident.get('address') or 'unknown location'}",
                )
            )
        return payloads
