from datetime import datetime, timezone

import feedparser
import pytest

from citypulse.core.config import Settings
from citypulse.ingest.base import IngestConfigError, clock_time, parse_timestamp, slugify, to_float
from citypulse.ingest.registry import JOBS, get_job
from citypulse.ingest.sources.eventbrite import EventbriteJob
from citypulse.ingest.sources.fire_911 import Fire911Job, actions_from_type, impact_from_type
from citypulse.ingest.sources.mariners import MarinersJob, targets_for_venue
from citypulse.ingest.sources.spd_blotter import (
    SpdBlotterJob,
    condition_from_title,
    neighborhood_from_description,
)
from citypulse.ingest.sources.traffic import (
    TrafficJob,
    decode_wsdot_date,
    neighborhood_for_route,
    severity,
)
from citypulse.ingest.sources.weather_alerts import (
    WeatherAlertsJob,
    alert_relay_id,
    polygon_centroid,
    score_from_severity,
    targets_for_event,
    urgency_from_noaa,
)
from citypulse.ingest.sources.weather_conditions import evaluate_conditions

NOW = datetime(2024, 5, 1, 17, 30, tzinfo=timezone.utc)  # 10:30 in Seattle


@pytest.fixture
def settings():
    return Settings(wsdot_access_code="code", eventbrite_token="token")


# ── helpers ───────────────────────────────────────────────────────────────────

def test_helpers():
    assert slugify("  Aid Response  Yellow ") == "aid-response-yellow"
    assert to_float("47.6") == 47.6
    assert to_float(None) is None
    assert to_float("nan") is None
    assert parse_timestamp("2024-05-01T10:15:00.000").utcoffset().total_seconds() == -7 * 3600
    assert parse_timestamp("2024-05-01T17:15:00Z") == datetime(2024, 5, 1, 17, 15, tzinfo=timezone.utc)
    assert parse_timestamp("not a date") is None
    assert clock_time("2024-05-01T10:00:00-07:00", "now") == "10:00"
    assert clock_time(None, "later today") == "later today"


def test_registry_knows_every_job():
    assert set(JOBS) == {
        "fire_911", "spd_blotter", "traffic", "weather_alerts",
        "weather_conditions", "mariners", "eventbrite",
    }
    assert isinstance(get_job("mariners"), MarinersJob)
    with pytest.raises(KeyError):
        get_job("nope")


# ── fire 911 ──────────────────────────────────────────────────────────────────

def test_fire_impact_and_actions():
    assert impact_from_type(None) == 0.4
    assert impact_from_type("Rescue Extrication") == 0.85
    assert impact_from_type("Aid Response") == 0.6
    assert impact_from_type("Hazardous Materials") == 0.7
    assert impact_from_type("Alarm Bell") == 0.45
    assert "smoke" in actions_from_type("Fire in Building")[0]


def test_fire_transform(settings):
    raw = [
        {
            "incident_number": "F240001",
            "type": "Aid Response",
            "datetime": "2024-05-01T10:15:00.000",
            "latitude": "47.5901",
            "longitude": "-122.3344",
            "address": "1st Ave S / S Royal Brougham Way",
        },
        {
            "incident_number": "F240002",
            "type": "Fire in Building",
            "datetime": "2024-05-01T10:20:00.000",
            "latitude": "47.6687",
            "longitude": "-122.3847",
        },
        # too old
        {"incident_number": "F1", "datetime": "2024-05-01T09:00:00.000", "latitude": "47.6", "longitude": "-122.3"},
        # no coordinates
        {"incident_number": "F2", "datetime": "2024-05-01T10:25:00.000"},
    ]
    aid, fire = Fire911Job(settings).transform(raw, NOW)

    assert aid.id == "fire-F240001"
    assert aid.origin == "SoDo"
    assert aid.targets == ["SoDo", "Downtown"]
    assert aid.category == "fire:aid-response"
    assert aid.impact_score == 0.6
    assert aid.urgency == "normal"
    assert aid.window == "10:15 → +30m"
    assert aid.notes == "Aid Response at 1st Ave S / S Royal Brougham Way"

    assert fire.origin == "Ballard"
    assert fire.targets == ["Ballard"]
    assert fire.urgency == "urgent"
    assert fire.notes == "Fire in Building at unknown location"


# ── SPD blotter ───────────────────────────────────────────────────────────────

BLOTTER_RSS = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>SPD Blotter</title>
<item>
  <title>Shots Fired Near Ballard Bar</title>
  <link>https://spdblotter.seattle.gov/2024/05/01/shots/</link>
  <description>Officers responded to reports of gunfire near Ballard Ave, Seattle.</description>
  <pubDate>Wed, 01 May 2024 09:00:00 +0000</pubDate>
</item>
<item>
  <title>Burglary Suspect Arrested</title>
  <description>Police arrested a man downtown.</description>
  <pubDate>Tue, 30 Apr 2024 09:00:00 +0000</pubDate>
</item>
<item>
  <title>Old Robbery</title>
  <description>at Queen Anne Ave, Seattle</description>
  <pubDate>Mon, 01 Apr 2024 09:00:00 +0000</pubDate>
</item>
</channel></rss>"""


def test_spd_classifiers():
    assert condition_from_title("Man Arrested After Carjacking") == "robbery"
    assert condition_from_title("Assault on Bus") == "assault"
    assert condition_from_title("Prowler Caught") == "burglary"
    assert condition_from_title("Traffic Collision") == "incident"
    assert neighborhood_from_description("Shooting near Capitol Hill, Seattle") == "CapitolHill"
    assert neighborhood_from_description("at First Hill, Seattle") == "CapitolHill"
    assert neighborhood_from_description("somewhere else") == "Downtown"


def test_spd_transform(settings):
    shots, burglary = SpdBlotterJob(settings).transform(feedparser.parse(BLOTTER_RSS), NOW)

    assert shots.id == "spd-shots-fired-near-ballard-bar"
    assert shots.origin == "Ballard"
    assert shots.category == "crime:shots-fired"
    assert shots.impact_score == 0.9
    assert shots.urgency == "urgent"
    assert shots.notes == "Shots Fired Near Ballard Bar (https://spdblotter.seattle.gov/2024/05/01/shots/)"

    assert burglary.origin == "Downtown"
    assert burglary.category == "crime:burglary"
    assert burglary.impact_score == 0.65
    assert burglary.notes == "Burglary Suspect Arrested"


# ── traffic ───────────────────────────────────────────────────────────────────

def test_traffic_severity():
    assert severity(30, 20).urgency == "urgent"
    assert severity(14, 10).score == 0.85  # ratio 1.4
    assert severity(24, 20).score == 0.65
    assert severity(21, 20) is None
    assert severity(None, 20) is None


def test_traffic_helpers():
    assert decode_wsdot_date("/Date(1714582800000-0700)/") == datetime(2024, 5, 1, 17, 0, tzinfo=timezone.utc)
    assert decode_wsdot_date(None) is None
    assert neighborhood_for_route("I-5 Downtown NB") == "Downtown"
    assert neighborhood_for_route("SR 99 Alaskan Way Viaduct") == "SoDo"
    assert neighborhood_for_route("Mercer St to I-5") == "QueenAnne"
    assert neighborhood_for_route("I-405 Bellevue") == "Downtown"


def test_traffic_requires_access_code():
    with pytest.raises(IngestConfigError):
        TrafficJob(Settings(wsdot_access_code="")).check_config()


def test_traffic_transform_sorts_and_filters(settings):
    fresh = "/Date(1714582800000-0700)/"
    raw = [
        {"TravelTimeID": 1, "Name": "I-5 Downtown NB", "CurrentTime": 24, "AverageTime": 20, "TimeUpdated": fresh},
        {"TravelTimeID": 2, "Name": "SR 99 Alaskan Way", "Description": "SR 99 SB", "CurrentTime": 40,
         "AverageTime": 20, "TimeUpdated": fresh},
        {"TravelTimeID": 3, "Name": "Ballard Bridge", "CurrentTime": 21, "AverageTime": 20, "TimeUpdated": fresh},
        {"TravelTimeID": 4, "Name": "West Seattle Bridge", "CurrentTime": 50, "AverageTime": 20,
         "TimeUpdated": "/Date(1714500000000-0700)/"},
    ]
    now = datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)
    first, second = TrafficJob(settings).transform(raw, now)

    assert first.id == "traffic-2"
    assert first.origin == "SoDo"
    assert first.targets == ["SoDo", "Downtown"]
    assert first.urgency == "urgent"
    assert first.requested_actions == ["SR 99 SB: 40 min (avg 20)"]
    assert first.window == "2024-05-01T17:00:00.000Z"
    assert second.id == "traffic-1"
    assert second.impact_score == 0.65
    assert second.category == "traffic:travel-time"


# ── weather alerts ────────────────────────────────────────────────────────────

def test_weather_alert_helpers():
    assert score_from_severity("Extreme") == 1.0
    assert score_from_severity("Unknown") == 0.3
    assert urgency_from_noaa("Immediate") == "urgent"
    assert urgency_from_noaa("Future") == "normal"
    assert targets_for_event("Flood Watch") == ["SoDo", "Downtown", "WestSeattle"]
    assert targets_for_event("Dense Fog Advisory") == ["Downtown", "CapitolHill"]
    ring = [[-122.39, 47.67], [-122.38, 47.67], [-122.38, 47.66], [-122.39, 47.66]]
    lat, lon = polygon_centroid({"type": "Polygon", "coordinates": [ring]})
    assert lat == pytest.approx(47.665)
    assert lon == pytest.approx(-122.385)
    assert polygon_centroid(None) == (47.6062, -122.3321)


def test_weather_alerts_transform(settings):
    raw = {
        "features": [
            {
                "id": "https://api.weather.gov/alerts/urn:1",
                "geometry": None,
                "properties": {
                    "areaDesc": "Seattle and Vicinity; King County",
                    "event": "High Wind Warning",
                    "severity": "Severe",
                    "urgency": "Expected",
                    "onset": "2024-05-01T10:00:00-07:00",
                    "headline": "High Wind Warning until 6 PM",
                },
            },
            {"id": "x", "properties": {"areaDesc": "Spokane", "event": "Heat Advisory"}},
        ]
    }
    (alert,) = WeatherAlertsJob(settings).transform(raw, NOW)
    assert alert.id == "noaa-urn:1"
    assert alert.origin == "Downtown"
    assert alert.targets == ["Ballard", "QueenAnne", "WestSeattle"]
    assert alert.category == "weather:high-wind-warning"
    assert alert.impact_score == 0.9
    assert alert.urgency == "urgent"
    assert alert.window == "10:00 → later today"
    assert alert.requested_actions == ["Secure outdoor items and avoid parking under trees"]
    assert alert.notes == "High Wind Warning until 6 PM"



def test_alert_relay_id_uses_the_urn():
    urn = "urn:oid:2.49.0.1.840.0.abc.001.1"
    url = f"https://api.weather.gov/alerts/{urn}"
    assert alert_relay_id({"id": url, "properties": {"id": urn}}, NOW) == f"noaa-{urn}"
    assert alert_relay_id({"id": url}, NOW) == f"noaa-{urn}"
    assert alert_relay_id({}, NOW) == f"noaa-{int(NOW.timestamp() * 1000)}"


# ── weather conditions ────────────────────────────────────────────────────────

def test_evaluate_conditions_thresholds():
    cold_windy = {"current": {"temperature_2m": 1, "relative_humidity_2m": 95, "wind_speed_10m": 62}}
    wind, slick = evaluate_conditions("Ballard", cold_windy)
    assert (wind.condition, wind.impact_score, wind.urgency) == ("high-wind", 0.75, "urgent")
    assert slick.condition == "slick-roads"

    (heat,) = evaluate_conditions("SoDo", {"current": {"temperature_2m": 33, "relative_humidity_2m": 30}})
    assert (heat.condition, heat.impact_score, heat.urgency) == ("heat", 0.65, "normal")

    assert evaluate_conditions("SoDo", {"current": {"temperature_2m": 15, "wind_speed_10m": 10}}) == []
    assert evaluate_conditions("SoDo", {}) == []


# ── mariners ──────────────────────────────────────────────────────────────────

def test_mariners_transform(settings):
    def game(pk, home_id, series="Regular Season"):
        return {
            "gamePk": pk,
            "gameDate": "2024-05-03T02:10:00Z",
            "seriesDescription": series,
            "venue": {"name": "T-Mobile Park"},
            "teams": {
                "home": {"team": {"id": home_id, "name": "Seattle Mariners"}},
                "away": {"team": {"id": 117, "name": "Houston Astros"}},
            },
        }

    raw = {"dates": [{"games": [game(745000, 136), game(745001, 117), game(745002, 136, "Spring Training")]}]}
    (home,) = MarinersJob(settings).transform(raw, NOW)
    assert home.id == "event-745000"
    assert home.origin == "SoDo"
    assert home.targets == ["SoDo", "Downtown"]
    assert home.category == "event:mariners-game"
    assert home.window == "2024-05-03T02:10:00Z"
    assert home.notes == "Houston Astros at Mariners, Fri May 03 02:10"
    assert targets_for_venue("Climate Pledge Arena") == ["QueenAnne", "Downtown"]
    assert targets_for_venue("Husky Stadium") == ["Downtown"]


# ── eventbrite ────────────────────────────────────────────────────────────────

def test_eventbrite_requires_token():
    with pytest.raises(IngestConfigError):
        EventbriteJob(Settings(eventbrite_token="")).check_config()


def test_eventbrite_transform(settings):
    raw = {
        "events": [
            {
                "id": "99",
                "name": {"text": "Block Party"},
                "start": {"local": "2024-05-04T18:00:00"},
                "venue": {
                    "latitude": "47.6231",
                    "longitude": "-122.3207",
                    "address": {"localized_address_display": "123 Pike St"},
                },
            },
            {"id": "100", "name": {"text": "Online"}, "venue": {}},
        ]
    }
    (event,) = EventbriteJob(settings).transform(raw, NOW)
    assert event.id == "eventbrite-99"
    assert event.origin == "CapitolHill"
    assert event.targets == ["CapitolHill"]
    assert event.window == "2024-05-04T18:00:00"
    assert event.requested_actions == ["Expect crowds near 123 Pike St."]
    assert event.notes == "Block Party, Sat May 04 18:00"
