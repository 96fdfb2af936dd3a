from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Relay service ─────────────────────────────────────────────────────────
    relay_host: str = "0.0.0.0"
    relay_port: int = 4001
    # base URL the ingest jobs, dashboard watcher and agent tools talk to
    relay_base_url: str = "http://localhost:4001"

    # ── Redis (Celery broker for the ingest schedule) ─────────────────────────
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_password: str = ""

    # ── Ingest ────────────────────────────────────────────────────────────────
    ingest_interval_minutes: int = 10
    ingest_user_agent: str = "CityPulseIngester/1.0 (ops@citypulse.local)"
    ingest_http_timeout: float = 20.0
    socrata_app_token: str = ""
    wsdot_access_code: str = ""
    eventbrite_token: str = ""

    # ── LiteLLM ───────────────────────────────────────────────────────────────
    # mode: "proxy" = external LiteLLM container (dev default)
    #       "library" = litellm imported directly (production, no network hop)
    litellm_mode: str = "proxy"
    litellm_base_url: str = "http://litellm:4000/v1"
    litellm_master_key: str = ""
    primary_model: str = "gpt-4o-mini"

    # ── AG-UI bridge ──────────────────────────────────────────────────────────
    # HMAC secret for device tokens; the bridge answers 500 until it is set
    gateway_secret: str = ""
    pairing_max_pending: int = 3
    pairing_ttl_seconds: int = 600
    pairing_store_path: str = ""             # empty = in-memory only
    agui_max_body_bytes: int = 1024 * 1024

    # ── App ───────────────────────────────────────────────────────────────────
    environment: str = "development"
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env"}

    @property
    def redis_url(self) -> str:
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/0"
        return f"redis://{self.redis_host}:{self.redis_port}/0"


@lru_cache
def get_settings() -> Settings:
    return Settings()
