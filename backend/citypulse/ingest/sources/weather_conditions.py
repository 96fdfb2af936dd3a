"""Open-Meteo current conditions, checked per neighborhood centroid."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

import httpx

from citypulse.core.logging import get_logger
from citypulse.ingest.base import IngestJob
from citypulse.neighborhoods import NEIGHBORHOODS, Neighborhood
from citypulse.relay.models import RelayCreate

log = get_logger(__name__)

API_BASE = "https://api.open-meteo.com/v1/forecast"
CURRENT_FIELDS = "temperature_2m,relative_humidity_2m,wind_speed_10m"


@dataclass
class Condition:
    condition: str
    notes: str
    requested_actions: list[str]
    impact_score: float
    urgency: Literal["normal", "urgent"]


def evaluate_conditions(hood_id: str, weather: dict) -> list[Condition]:
    """Thresholds: wind in km/h, temperature in °C, humidity in %."""
    current = weather.get("current") or {}
    temp = current.get("temperature_2m")
    humidity = current.get("relative_humidity_2m")
    wind = current.get("wind_speed_10m")
    out = []

    if wind is not None and wind >= 45:
        out.append(
            Condition(
                condition="high-wind",
                notes=f"Winds around {wind} km/h near {hood_id}",
                requested_actions=[
                    "Secure outdoor items, expect tree debris, and use extra caution on bridges."
                ],
                impact_score=0.75 if wind >= 60 else 0.6,
                urgency="urgent" if wind >= 60 else "normal",
            )
        )

    if temp is not None and humidity is not None and humidity >= 90 and temp <= 2:
        out.append(
            Condition(
                condition="slick-roads",
                notes=f"Cold + high humidity ({temp}°C / {humidity}%) may create slick streets in {hood_id}.",
                requested_actions=[
                    "Leave extra stopping distance and watch for black ice near shaded blocks."
                ],
                impact_score=0.55,
                urgency="normal",
            )
        )

    if temp is not None and temp >= 32:
        out.append(
            Condition(
                condition="heat",
                notes=f"Temperature around {temp}°C in {hood_id}.",
                requested_actions=[
                    "Stay hydrated, limit strenuous activity, and check on neighbors/pets."
                ],
                impact_score=0.8 if temp >= 35 else 0.65,
                urgency="urgent" if temp >= 35 else "normal",
            )
        )

    return out


class WeatherConditionsJob(IngestJob):
    name = "weather_conditions"
    description = "Open-Meteo wind / ice / heat checks per neighborhood"

    async def fetch(self, http: httpx.AsyncClient, now: datetime) -> list[tuple[Neighborhood, dict]]:
        results = []
        for hood in NEIGHBORHOODS:
            try:
                resp = await http.get(
                    API_BASE,
                    params={
                        "latitude": hood.lat,
                        "longitude": hood.lon,
                        "current": CURRENT_FIELDS,
                        "timezone": "auto",
                    },
                )
                resp.raise_for_status()
                weather = resp.json()
            except (httpx.HTTPError, ValueError) as exc:
                log.error("weather_fetch_failed", neighborhood=hood.id, error=str(exc))
                continue
            results.append((hood, weather))
        return results

    def transform(self, raw: list[tuple[Neighborhood, dict]], now: datetime) -> list[RelayCreate]:
        payloads = []
        for hood, weather in raw:
            observed = (weather.get("current") or {}).get("time") or "now"
            for cond in evaluate_conditions(hood.id, weather):
                payloads.append(
                    RelayCreate(
                        id=f"wx-{hood.id}-{cond.condition}",
                        origin=hood.id,
                        targets=[hood.id],
                        category=f"weather:{cond.condition}",
                        impact_score=cond.impact_score,
                        urgency=cond.urgency,
                        window=f"{observed} → +1h",
                        requested_actions=cond.requested_actions,
                        notes=cond.notes,
                    )
                )
        return payloads
