"""Eventbrite events within 15 km of Seattle over the next week."""

from datetime import datetime, timedelta

import httpx

from citypulse.ingest.base import IngestConfigError, IngestJob, parse_timestamp, to_float
from citypulse.neighborhoods import closest_neighborhood
from citypulse.relay.models import RelayCreate

SEARCH_URL = "https://www.eventbriteapi.com/v3/events/search/"
LOOKAHEAD = timedelta(days=7)
MAX_EVENTS = 10


class EventbriteJob(IngestJob):
    name = "eventbrite"
    description = "Eventbrite events near Seattle"

    def check_config(self) -> None:
        if not self.settings.eventbrite_token:
            raise IngestConfigError("EVENTBRITE_TOKEN is required for the eventbrite job")

    async def fetch(self, http: httpx.AsyncClient, now: datetime) -> dict:
        resp = await http.get(
            SEARCH_URL,
            params={
                "location.address": "Seattle, WA",
                "location.within": "15km",
                "expand": "venue",
                "sort_by": "date",
                "start_date.range_start": now.isoformat(),
                "start_date.range_end": (now + LOOKAHEAD).isoformat(),
            },
            headers={"Authorization": f"Bearer {self.settings.eventbrite_token}"},
        )
        resp.raise_for_status()
        return resp.json()

    def transform(self, raw: dict, now: datetime) -> list[RelayCreate]:
        payloads = []
        for event in (raw.get("events") or [])[:MAX_EVENTS]:
            venue = event.get("venue") or {}
            lat = to_float(venue.get("latitude"))
            lon = to_float(venue.get("longitude"))
            if lat is None or lon is None:
                continue

            hood = closest_neighborhood(lat, lon)
            name = (event.get("name") or {}).get("text") or "Event"
            start = (event.get("start") or {}).get("local") or (event.get("start") or {}).get("utc")
            starts = parse_timestamp(start)
            address = (venue.get("address") or {}).get("localized_address_display") or hood.name
            payloads.append(
                RelayCreate(
                    id=f"eventbrite-{event.get('id')}",
                    origin=hood.id,
                    targets=[hood.id, "Downtown"] if hood.id == "SoDo" else [hood.id],
                    category="event:eventbrite",
                    impact_score=0.55,
                    urgency="normal",
                    window=start or "upcoming",
                    requested_actions=[f"Expect crowds near {address}."],
                    notes=f"{name}, {starts.strftime('%a %b %d %H:%M') if starts else 'TBD'}",
                )
            )
        return payloads
