import asyncio
import json

import httpx
import pytest

from citypulse.core.config import Settings
from citypulse.ingest.base import IngestConfigError
from citypulse.ingest.sources.fire_911 import Fire911Job
from citypulse.ingest.sources.traffic import TrafficJob
from citypulse.ingest.sources.weather_conditions import WeatherConditionsJob
from citypulse.relay.client import RelayClient
from citypulse.workers import tasks


def relay_recorder(posted: list, fail_ids=()):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body.get("id") in fail_ids:
            return httpx.Response(500, text="relay down")
        posted.append(body)
        return httpx.Response(
            201,
            json={
                **body,
                "status": "detected",
                "createdAt": "2024-05-01T17:00:00.000Z",
                "updatedAt": "2024-05-01T17:00:00.000Z",
            },
        )

    return handler


def test_weather_conditions_run_skips_failed_hoods_and_counts_failed_posts():
    def weather(request: httpx.Request) -> httpx.Response:
        if request.url.params["latitude"] == "47.6687":  # Ballard
            return httpx.Response(503)
        if request.url.params["latitude"] == "47.6372":  # Queen Anne
            return httpx.Response(200, text="<html>maintenance</html>")
        return httpx.Response(
            200,
            json={"current": {"time": "2024-05-01T10:00", "temperature_2m": 12, "wind_speed_10m": 50}},
        )

    posted: list = []

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(weather)) as http, RelayClient(
            "http://relay.test",
            transport=httpx.MockTransport(relay_recorder(posted, fail_ids={"wx-SoDo-high-wind"})),
        ) as relay:
            return await WeatherConditionsJob(Settings()).run(relay=relay, http=http)

    result = asyncio.run(go())
    assert result.job == "weather_conditions"
    assert (result.fetched, result.posted, result.failed) == (4, 3, 1)
    ids = {p["id"] for p in posted}
    assert "wx-Ballard-high-wind" not in ids
    assert "wx-QueenAnne-high-wind" not in ids
    assert "wx-Downtown-high-wind" in ids
    assert all(p["window"] == "2024-05-01T10:00 → +1h" for p in posted)


def test_feed_failure_propagates():
    def broken(request):
        return httpx.Response(500)

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(broken)) as http, RelayClient(
            "http://relay.test", transport=httpx.MockTransport(relay_recorder([]))
        ) as relay:
            await Fire911Job(Settings()).run(relay=relay, http=http)

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(go())


def test_fire_run_sends_app_token():
    seen = {}

    def socrata(request: httpx.Request) -> httpx.Response:
        seen["token"] = request.headers.get("X-App-Token")
        seen["order"] = request.url.params["$order"]
        return httpx.Response(200, json=[])

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(socrata)) as http, RelayClient(
            "http://relay.test", transport=httpx.MockTransport(relay_recorder([]))
        ) as relay:
            return await Fire911Job(Settings(socrata_app_token="abc")).run(relay=relay, http=http)

    result = asyncio.run(go())
    assert seen == {"token": "abc", "order": "datetime DESC"}
    assert result.fetched == 0


def test_run_checks_config_before_fetching():
    with pytest.raises(IngestConfigError):
        asyncio.run(TrafficJob(Settings(wsdot_access_code="")).run())


def test_celery_task_reports_skipped_and_ok(monkeypatch):
    class FakeJob:
        def __init__(self, error=None):
            self.error = error

        async def run(self):
            if self.error:
                raise self.error
            from citypulse.ingest.base import IngestResult
            return IngestResult(job="fake", fetched=2, posted=2, failed=0)

    monkeypatch.setattr(tasks, "get_job", lambda name: FakeJob())
    assert tasks.run_ingest_job("fake") == {"status": "ok", "job": "fake", "fetched": 2, "posted": 2, "failed": 0}

    monkeypatch.setattr(tasks, "get_job", lambda name: FakeJob(IngestConfigError("token missing")))
    assert tasks.run_ingest_job("fake") == {"status": "skipped", "job": "fake", "reason": "token missing"}


def test_beat_schedule_has_every_job():
    from citypulse.ingest.registry import JOBS
    from citypulse.workers.celery_app import celery

    schedule = celery.conf.beat_schedule
    assert set(schedule) == {f"ingest-{name}" for name in JOBS}
    assert schedule["ingest-traffic"]["args"] == ("traffic",)
