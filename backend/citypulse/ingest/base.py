"""
Ingest job plumbing.

Every source follows the same one-shot shape:

    fetch()      → one HTTP call (or one per neighborhood) against the public feed
    transform()  → pure mapping of raw records to RelayCreate payloads
    run()        → fetch + transform + one relay POST per payload

POST failures are logged per item and skipped; nothing is retried. Feed
failures propagate so the scheduler records the job as failed.
"""

import re
from contextlib import AsyncExitStack
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

import httpx

from citypulse.core.config import Settings, get_settings
from citypulse.core.logging import get_logger, log_context
from citypulse.relay.client import RelayClient, RelayPostError
from citypulse.relay.models import RelayCreate

log = get_logger(__name__)

LOCAL_TZ = ZoneInfo("America/Los_Angeles")


class IngestConfigError(RuntimeError):
    """A job is missing a credential it cannot run without."""


@dataclass
class IngestResult:
    job: str
    fetched: int = 0
    posted: int = 0
    failed: int = 0


def slugify(value: str) -> str:
    return re.sub(r"\s+", "-", value.strip().lower())


def parse_timestamp(value: Any, *, naive_tz=LOCAL_TZ) -> datetime | None:
    """Parse an ISO-8601 string; naive values are read in `naive_tz`."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=naive_tz)
    return parsed


def clock_time(value: Any, default: str) -> str:
    """HH:MM in the timestamp's own offset, or `default` when unparseable."""
    parsed = parse_timestamp(value)
    return parsed.strftime("%H:%M") if parsed else default


def to_float(value: Any) -> float | None:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if result != result or result in (float("inf"), float("-inf")):
        return None
    return result


class IngestJob:
    name: str = ""
    description: str = ""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def check_config(self) -> None:
        """Raise IngestConfigError when a required credential is absent."""

    async def fetch(self, http: httpx.AsyncClient, now: datetime) -> Any:
        raise NotImplementedError

    def transform(self, raw: Any, now: datetime) -> list[RelayCreate]:
        raise NotImplementedError

    async def run(
        self,
        *,
        relay: RelayClient | None = None,
        http: httpx.AsyncClient | None = None,
        now: datetime | None = None,
    ) -> IngestResult:
        self.check_config()
        now = now or datetime.now(timezone.utc)

        async with AsyncExitStack() as stack:
            stack.enter_context(log_context(job=self.name))
            if http is None:
                http = await stack.enter_async_context(
                    httpx.AsyncClient(
                        timeout=self.settings.ingest_http_timeout,
                        headers={"User-Agent": self.settings.ingest_user_agent},
                    )
                )
            if relay is None:
                relay = await stack.enter_async_context(RelayClient(self.settings.relay_base_url))

            log.info("ingest_fetch")
            raw = await self.fetch(http, now)
            payloads = self.transform(raw, now)
            result = IngestResult(job=self.name, fetched=len(payloads))

            for payload in payloads:
                try:
                    await relay.post_relay(payload)
                    result.posted += 1
                except (RelayPostError, httpx.HTTPError) as exc:
                    result.failed += 1
                    log.error("ingest_post_failed", relay_id=payload.id, error=str(exc))

        log.info(
            "ingest_complete",
            job=self.name,
            fetched=result.fetched,
            posted=result.posted,
            failed=result.failed,
        )
        return result
