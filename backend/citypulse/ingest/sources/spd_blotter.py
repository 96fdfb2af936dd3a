"""SPD Blotter RSS. The five newest posts, skipping anything older than a week."""

import calendar
import re
from datetime import datetime, timedelta, timezone

import feedparser
import httpx

from citypulse.ingest.base import IngestJob
from citypulse.relay.models import RelayCreate

RSS_URL = "https://spdblotter.seattle.gov/feed/"
MAX_ITEMS = 5
MAX_AGE = timedelta(days=7)

_LOCATION_RE = re.compile(r"(?:near|at) ([A-Za-z ]+,? [A-Za-z ]+)", re.I)

# (substring, neighborhood) checked in order; anything else is Downtown
_PLACE_HINTS = (
    ("ballard", "Ballard"),
    ("sodo", "SoDo"),
    ("queen anne", "QueenAnne"),
    ("capitol hill", "CapitolHill"),
    ("first hill", "CapitolHill"),
    ("west seattle", "WestSeattle"),
)


def condition_from_title(title: str) -> str:
    lower = title.lower()
    if "shots" in lower or "shooting" in lower:
        return "shots-fired"
    if "robbery" in lower or "carjacking" in lower:
        return "robbery"
    if "assault" in lower:
        return "assault"
    if "burglary" in lower or "prowler" in lower:
        return "burglary"
    return "incident"


def neighborhood_from_description(description: str) -> str:
    match = _LOCATION_RE.search(description or "")
    location = (match.group(1) if match else "Seattle").lower()
    for hint, hood_id in _PLACE_HINTS:
        if hint in location:
            return hood_id
    return "Downtown"


def _published(entry) -> datetime | None:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)


class SpdBlotterJob(IngestJob):
    name = "spd_blotter"
    description = "Seattle Police blotter posts"

    async def fetch(self, http: httpx.AsyncClient, now: datetime):
        resp = await http.get(RSS_URL)
        resp.raise_for_status()
        return feedparser.parse(resp.text)

    def transform(self, raw, now: datetime) -> list[RelayCreate]:
        payloads = []
        for entry in raw.entries[:MAX_ITEMS]:
            title = entry.get("title") or "SPD Incident"
            published = _published(entry)
            if published and now - published > MAX_AGE:
                continue

            hood_id = neighborhood_from_description(entry.get("summary", ""))
            condition = condition_from_title(title)
            shots = condition == "shots-fired"
            link = entry.get("link")
            payloads.append(
                RelayCreate(
                    id="spd-" + re.sub(r"[^a-z0-9]+", "-", title.lower()),
                    origin=hood_id,
                    targets=[hood_id],
                    category=f"crime:{condition}",
                    impact_score=0.9 if shots else 0.65,
                    urgency="urgent" if shots else "normal",
                    window=entry.get("published") or "today",
                    requested_actions=[
                        "Stay indoors until SPD clears the area and expect police activity."
                        if shots
                        else "Expect police presence; report suspicious activity to SPD."
                    ],
                    notes=f"{title} ({link})" if link else title,
                )
            )
        return payloads
