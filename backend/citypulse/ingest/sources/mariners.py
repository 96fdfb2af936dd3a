"""Mariners home games for the coming week (MLB stats API)."""

import re
from datetime import datetime, timedelta

import httpx

from citypulse.ingest.base import IngestJob, parse_timestamp
from citypulse.relay.models import RelayCreate

SCHEDULE_URL = "https://statsapi.mlb.com/api/v1/schedule"
TEAM_ID = 136
LOOKAHEAD = timedelta(days=7)


def targets_for_venue(name: str) -> list[str]:
    if re.search(r"t-mobile park|lumen field", name, re.I):
        return ["SoDo", "Downtown"]
    if re.search(r"climate pledge|seattle center", name, re.I):
        return ["QueenAnne", "Downtown"]
    return ["Downtown"]


class MarinersJob(IngestJob):
    name = "mariners"
    description = "Seattle Mariners home games"

    async def fetch(self, http: httpx.AsyncClient, now: datetime) -> dict:
        resp = await http.get(
            SCHEDULE_URL,
            params={
                "sportId": 1,
                "teamId": TEAM_ID,
                "startDate": now.date().isoformat(),
                "endDate": (now + LOOKAHEAD).date().isoformat(),
            },
        )
        resp.raise_for_status()
        return resp.json()

    def transform(self, raw: dict, now: datetime) -> list[RelayCreate]:
        payloads = []
        for date in raw.get("dates") or []:
            for game in date.get("games") or []:
                if game.get("seriesDescription") == "Spring Training":
                    continue
                teams = game.get("teams") or {}
                home_id = ((teams.get("home") or {}).get("team") or {}).get("id")
                if home_id != TEAM_ID:
                    continue

                venue = (game.get("venue") or {}).get("name") or "Seattle"
                opponent = ((teams.get("away") or {}).get("team") or {}).get("name") or "Opponent"
                game_time = game.get("gameDate") or ""
                starts = parse_timestamp(game_time)
                when = starts.strftime("%a %b %d %H:%M") if starts else "TBD"
                targets = targets_for_venue(venue)
                payloads.append(
                    RelayCreate(
                        id=f"event-{game.get('gamePk')}",
                        origin=targets[0],
                        targets=targets,
                        category="event:mariners-game",
                        impact_score=0.6,
                        urgency="normal",
                        window=game_time,
                        requested_actions=[
                            f"Expect heavy traffic around {venue}. Transit recommended."
                        ],
                        notes=f"{opponent} at Mariners, {when}",
                    )
                )
        return payloads
