"""WSDOT travel times: routes running well over their average in the last two hours."""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal

import httpx

from citypulse.ingest.base import IngestConfigError, IngestJob, parse_timestamp
from citypulse.neighborhoods import DEFAULT_NEIGHBORHOOD
from citypulse.relay.models import RelayCreate, utc_timestamp

API_URL = "https://wsdot.wa.gov/traffic/api/TravelTimes/TravelTimesREST.svc/GetTravelTimesAsJson"
MAX_AGE = timedelta(hours=2)
MAX_ALERTS = 8

_WCF_DATE_RE = re.compile(r"/Date\((\d+)")


@dataclass
class Severity:
    score: float
    urgency: Literal["normal", "urgent"]


def decode_wsdot_date(value: str | None) -> datetime | None:
    """WSDOT sends WCF dates like `/Date(1700000000000-0800)/`."""
    if not value:
        return None
    match = _WCF_DATE_RE.search(value)
    if match:
        return datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
    return parse_timestamp(value)


def severity(current, average) -> Severity | None:
    if not isinstance(current, (int, float)) or not isinstance(average, (int, float)):
        return None
    ratio = current / max(average, 1)
    if current >= average + 10 or ratio >= 1.4:
        return Severity(0.85, "urgent")
    if current >= average + 5 or ratio >= 1.2:
        return Severity(0.65, "normal")
    return None


def neighborhood_for_route(name: str | None) -> str:
    lower = (name or "").lower()
    if "i-5" in lower and "downtown" in lower:
        return "Downtown"
    if "sr 99" in lower or "alaskan" in lower:
        return "SoDo"
    if "ballard" in lower or "fremont" in lower:
        return "Ballard"
    if "queen anne" in lower or "mercer" in lower:
        return "QueenAnne"
    if "west seattle" in lower:
        return "WestSeattle"
    if "capitol" in lower or "madison" in lower:
        return "CapitolHill"
    return DEFAULT_NEIGHBORHOOD.id


class TrafficJob(IngestJob):
    name = "traffic"
    description = "WSDOT travel-time slowdowns"

    def check_config(self) -> None:
        if not self.settings.wsdot_access_code:
            raise IngestConfigError("WSDOT_ACCESS_CODE is required for the traffic job")

    async def fetch(self, http: httpx.AsyncClient, now: datetime) -> list[dict]:
        resp = await http.get(API_URL, params={"AccessCode": self.settings.wsdot_access_code})
        resp.raise_for_status()
        payload = resp.json()
        return payload if isinstance(payload, list) else []

    def transform(self, raw: list[dict], now: datetime) -> list[RelayCreate]:
        alerts = []
        for route in raw:
            info = severity(route.get("CurrentTime"), route.get("AverageTime"))
            if info is None:
                continue
            updated_at = decode_wsdot_date(route.get("TimeUpdated"))
            if updated_at is None or now - updated_at > MAX_AGE:
                continue
            delta = (route.get("CurrentTime") or 0) - (route.get("AverageTime") or 0)
            alerts.append((route, info, updated_at, delta))

        alerts.sort(key=lambda a: (a[1].score, a[3]), reverse=True)

        payloads = []
        for route, info, updated_at, _delta in alerts[:MAX_ALERTS]:
            hood_id = neighborhood_for_route(route.get("Name"))
            description = route.get("Description") or route.get("Name") or "WSDOT route"
            payloads.append(
                RelayCreate(
                    id=f"traffic-{route.get('TravelTimeID')}",
                    origin=hood_id,
                    targets=[hood_id, "Downtown"] if hood_id == "SoDo" else [hood_id],
                    category="traffic:travel-time",
                    impact_score=info.score,
                    urgency=info.urgency,
                    window=utc_timestamp(updated_at),
                    requested_actions=[
                        f"{description}: {route.get('CurrentTime')} min (avg {route.get('AverageTime')})"
                    ],
                    notes=description,
                )
            )
        return payloads
