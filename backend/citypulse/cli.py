"""
`citypulse` command line.

    citypulse serve
    citypulse ingest list | run <job>... [--all]
    citypulse pairing list | approve <code> | reject <code>
    citypulse devices list | revoke <device-id>
    citypulse dashboard watch

Pairing and device commands work on the JSON pairing store named by
PAIRING_STORE_PATH, the same file the server reads.
"""

import asyncio
from datetime import datetime, timezone
from typing import NoReturn

import httpx
import structlog
import typer

from citypulse.agui.pairing import PairingError, PairingStore
from citypulse.core.config import get_settings
from citypulse.core.logging import configure_logging
from citypulse.dashboard.feed import render_tiles, watch
from citypulse.ingest.base import IngestConfigError
from citypulse.ingest.registry import JOBS, get_job
from citypulse.relay.client import relay_ws_url

app = typer.Typer(
    add_completion=False,
    help="City Pulse: relay service, ingest jobs, AG-UI pairing and dashboard",
    no_args_is_help=True,
)


def _die(msg: str, code: int = 2) -> NoReturn:
    typer.echo(f"ERROR: {msg}", err=True)
    raise typer.Exit(code=code)


@app.callback()
def _root() -> None:
    if not structlog.is_configured():
        configure_logging()


# ---- serve ----

@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address (default RELAY_HOST)"),
    port: int | None = typer.Option(None, "--port", help="Port (default RELAY_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
) -> None:
    """Run the API server (relay service, dashboard, AG-UI bridge)."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "citypulse.main:app",
        host=host or settings.relay_host,
        port=port or settings.relay_port,
        reload=reload,
    )


# ---- ingest ----

ingest_app = typer.Typer(help="Ingest jobs")
app.add_typer(ingest_app, name="ingest")


@ingest_app.command("list")
def ingest_list() -> None:
    for name, job_cls in JOBS.items():
        typer.echo(f"{name:<20} {job_cls.description}")


@ingest_app.command("run")
def ingest_run(
    names: list[str] = typer.Argument(None, help="Job names, or `all`; see `citypulse ingest list`"),
    all_jobs: bool = typer.Option(False, "--all", help="Run every job"),
) -> None:
    """Run ingest jobs once against the configured relay service."""
    selected = list(names or [])
    if all_jobs or selected == ["all"]:
        selected = list(JOBS)
    if not selected:
        _die("name at least one job or pass --all")

    failed = False
    for name in selected:
        try:
            job = get_job(name)
        except KeyError as exc:
            _die(str(exc.args[0]))
        try:
            result = asyncio.run(job.run())
        except IngestConfigError as exc:
            typer.echo(f"{name}: skipped ({exc})")
            continue
        except (httpx.HTTPError, ValueError) as exc:
            typer.echo(f"{name}: failed ({exc})")
            failed = True
            continue
        typer.echo(f"{name}: posted {result.posted}/{result.fetched}, failed {result.failed}")
        failed = failed or result.failed > 0
    if failed:
        raise typer.Exit(code=1)


# ---- pairing / devices ----

def _pairing_store() -> PairingStore:
    settings = get_settings()
    if not settings.pairing_store_path:
        _die("PAIRING_STORE_PATH is not set; the CLI needs the store file the server uses")
    return PairingStore(
        settings.pairing_store_path,
        max_pending=settings.pairing_max_pending,
        ttl_seconds=settings.pairing_ttl_seconds,
    )


pairing_app = typer.Typer(help="Pending device pairing requests")
app.add_typer(pairing_app, name="pairing")


@pairing_app.command("list")
def pairing_list() -> None:
    try:
        pending = _pairing_store().list_pending()
    except PairingError as exc:
        _die(str(exc))
    if not pending:
        typer.echo("No pending pairing requests.")
        return
    for req in pending:
        created = datetime.fromtimestamp(req.created_at, tz=timezone.utc).isoformat(timespec="seconds")
        typer.echo(f"{req.code}  {req.device_id}  {created}")


@pairing_app.command("approve")
def pairing_approve(code: str) -> None:
    device_id = _pairing_store().approve(code)
    if device_id is None:
        _die(f"unknown or expired pairing code {code}", code=1)
    typer.echo(f"Approved device {device_id}")


@pairing_app.command("reject")
def pairing_reject(code: str) -> None:
    device_id = _pairing_store().reject(code)
    if device_id is None:
        _die(f"unknown or expired pairing code {code}", code=1)
    typer.echo(f"Rejected device {device_id}")


devices_app = typer.Typer(help="Approved devices")
app.add_typer(devices_app, name="devices")


@devices_app.command("list")
def devices_list() -> None:
    devices = _pairing_store().read_allow_from()
    if not devices:
        typer.echo("No approved devices.")
    for device_id in devices:
        typer.echo(device_id)


@devices_app.command("revoke")
def devices_revoke(device_id: str) -> None:
    if not _pairing_store().revoke(device_id):
        _die(f"device {device_id} is not approved", code=1)
    typer.echo(f"Revoked device {device_id}")


# ---- dashboard ----

dashboard_app = typer.Typer(help="Neighborhood dashboard")
app.add_typer(dashboard_app, name="dashboard")


@dashboard_app.command("watch")
def dashboard_watch(
    url: str | None = typer.Option(None, "--url", help="Relay push channel (default RELAY_BASE_URL + /ws)"),
) -> None:
    """Follow the relay push channel and redraw the tiles on every change."""
    ws_url = url or relay_ws_url(get_settings().relay_base_url)

    def redraw(tiles) -> None:
        typer.clear()
        typer.echo(f"City Pulse · {ws_url}\n")
        typer.echo(render_tiles(tiles))

    try:
        asyncio.run(watch(ws_url, redraw))
    except KeyboardInterrupt:
        raise typer.Exit(code=0)
