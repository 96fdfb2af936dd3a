"""Name → job class for every ingest source."""

from citypulse.core.config import Settings
from citypulse.ingest.base import IngestJob
from citypulse.ingest.sources.eventbrite import EventbriteJob
from citypulse.ingest.sources.fire_911 import Fire911Job
from citypulse.ingest.sources.mariners import MarinersJob
from citypulse.ingest.sources.spd_blotter import SpdBlotterJob
from citypulse.ingest.sources.traffic import TrafficJob
from citypulse.ingest.sources.weather_alerts import WeatherAlertsJob
from citypulse.ingest.sources.weather_conditions import WeatherConditionsJob

JOBS: dict[str, type[IngestJob]] = {
    job.name: job
    for job in (
        Fire911Job,
        SpdBlotterJob,
        TrafficJob,
        WeatherAlertsJob,
        WeatherConditionsJob,
        MarinersJob,
        EventbriteJob,
    )
}


def get_job(name: str, settings: Settings | None = None) -> IngestJob:
    try:
        job_cls = JOBS[name]
    except KeyError:
        raise KeyError(f"Unknown ingest job {name!r}; expected one of {sorted(JOBS)}") from None
    return job_cls(settings)
