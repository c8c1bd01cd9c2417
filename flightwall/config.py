"""Configuration settings for the FlightWall gateway."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from flightwall import __version__

logger = logging.getLogger("flightwall.config")

# Secrets that may live in SSM Parameter Store instead of the environment.
SSM_SECRETS = {
    "opensky_client_secret": "opensky/client_secret",
    "opensky_pass": "opensky/password",
    "aerodata_key": "aerodata/key",
}

DEFAULT_BLOCKED_PREFIXES = (
    "UPS,FDX,GTI,ABX,ATN,CKS,PAC,KAL,CLX,BOX,GEC,MPH,NCA,ABW,AJT,WGN,"
    "SRR,KFS,CPZ,EJA,LXJ,XOJ,JTL,VJA,EJM,TWY,GAJ"
)


def _get_bool(env_var: str, default: bool = False) -> bool:
    """Parse an environment variable into a boolean with a default."""

    value = os.getenv(env_var)
    if value is None:
        return default

    return value.lower() in {"1", "true", "yes", "on"}


def _get_int(env_var: str, default: int) -> int:
    value = os.getenv(env_var)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %s", env_var, value, default)
        return default


def _get_float(env_var: str, default: float) -> float:
    value = os.getenv(env_var)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", env_var, value, default)
        return default


@lru_cache(maxsize=1)
def _ssm_client():
    # Default to a region so the client can be built without AWS configuration.
    return boto3.client(
        "ssm",
        region_name=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "us-east-1",
    )


@lru_cache(maxsize=None)
def get_ssm_secret(prefix: str, name: str) -> str:
    """Fetch a secret from AWS SSM Parameter Store.

    The value is cached in-memory to avoid repeated SSM calls. Failures raise
    a runtime error so the caller can decide whether to fall back.
    """

    parameter = f"{prefix.rstrip('/')}/{name}"
    try:
        response = _ssm_client().get_parameter(Name=parameter, WithDecryption=True)
        value = response.get("Parameter", {}).get("Value")
    except (ClientError, BotoCoreError) as exc:  # pragma: no cover - AWS error passthrough
        logger.error("Failed to load %s from SSM: %s", parameter, exc)
        raise RuntimeError(f"Unable to load {parameter} from SSM") from exc

    if not value:
        logger.error("Received empty value for %s from SSM", parameter)
        raise RuntimeError(f"{parameter} not configured in SSM")

    return value


@dataclass
class Settings:
    """Application configuration loaded from environment variables."""

    flightwall_env: str = os.getenv("FLIGHTWALL_ENV", "local")
    log_level: str = os.getenv("FLIGHTWALL_LOG_LEVEL", "INFO")
    version: str = os.getenv("FLIGHTWALL_VERSION", __version__)
    cache_name: str = os.getenv("FLIGHTWALL_CACHE_NAME", "fw-v1")
    redis_url: str | None = os.getenv("FLIGHTWALL_REDIS_URL")
    timezone: str = os.getenv("FLIGHTWALL_TIMEZONE", "America/Denver")
    ssm_prefix: str | None = os.getenv("FLIGHTWALL_SSM_PREFIX")

    # OpenSky (primary provider)
    opensky_client_id: str | None = os.getenv("OPENSKY_CLIENT_ID")
    opensky_client_secret: str | None = os.getenv("OPENSKY_CLIENT_SECRET")
    opensky_user: str | None = os.getenv("OPENSKY_USER")
    opensky_pass: str | None = os.getenv("OPENSKY_PASS")
    opensky_auth_mode: str = os.getenv("OPENSKY_AUTH_MODE", "auto").lower()
    opensky_states_url: str = os.getenv(
        "OPENSKY_STATES_URL", "https://opensky-network.org/api/states/all"
    )
    opensky_token_url: str = os.getenv(
        "OPENSKY_TOKEN_URL",
        "https://auth.opensky-network.org/auth/realms/opensky-network/protocol/openid-connect/token",
    )
    opensky_token_timeout: float = _get_float("OPENSKY_TOKEN_TIMEOUT", 6.0)
    opensky_states_timeout: float = _get_float("OPENSKY_STATES_TIMEOUT", 10.0)

    # adsb.lol (secondary provider)
    adsblol_base_url: str = os.getenv("ADSBLOL_BASE_URL", "https://api.adsb.lol")
    adsblol_timeout: float = _get_float("ADSBLOL_TIMEOUT", 8.0)

    # AeroDataBox (metered enrichment provider)
    aerodata_key: str | None = os.getenv("AERODATA_KEY")
    aerodata_host: str | None = os.getenv("AERODATA_HOST")
    aerodata_timeout: float = _get_float("AERODATA_TIMEOUT", 8.0)

    # State cache
    states_ttl: int = _get_int("STATES_TTL", 5)
    states_swr_grace: int = _get_int("STATES_SWR_GRACE", 25)
    states_stale_ttl: int = _get_int("STATES_STALE_TTL", 300)
    refresh_lock_ttl: int = _get_int("REFRESH_LOCK_TTL", 5)
    health_sample_bbox: str = os.getenv("HEALTH_SAMPLE_BBOX", "39.7,-104.99,39.9,-104.7")

    # Enrichment TTLs (seconds)
    flight_ttl: int = _get_int("FLIGHT_TTL", 6 * 3600)
    flight_verified_ttl: int = _get_int("FLIGHT_VERIFIED_TTL", 24 * 3600)
    aircraft_ttl: int = _get_int("AIRCRAFT_TTL", 7 * 86400)
    aircraft_verified_ttl: int = _get_int("AIRCRAFT_VERIFIED_TTL", 30 * 86400)
    negative_ttl: int = _get_int("NEGATIVE_TTL", 2 * 3600)
    rate_limited_ttl: int = _get_int("RATE_LIMITED_TTL", 60)
    cooldown_429_ttl: int = _get_int("COOLDOWN_429_TTL", 300)

    # Budget / throttle gate
    enrich_enabled: bool = _get_bool("ENRICH_ENABLED", True)
    enrich_lock_ttl: int = _get_int("ENRICH_LOCK_TTL", 12)
    enrich_global_spacing_day: int = _get_int("ENRICH_GLOBAL_SPACING_DAY", 8)
    enrich_global_spacing_night: int = _get_int("ENRICH_GLOBAL_SPACING_NIGHT", 3)
    flight_cooldown_day: int = _get_int("FLIGHT_COOLDOWN_DAY", 600)
    flight_cooldown_night: int = _get_int("FLIGHT_COOLDOWN_NIGHT", 300)
    aircraft_cooldown_day: int = _get_int("AIRCRAFT_COOLDOWN_DAY", 3600)
    aircraft_cooldown_night: int = _get_int("AIRCRAFT_COOLDOWN_NIGHT", 1800)
    enrich_day_limit_day: int = _get_int("ENRICH_DAY_LIMIT_DAY", 300)
    enrich_day_limit_night: int = _get_int("ENRICH_DAY_LIMIT_NIGHT", 450)
    enrich_hour_limit_day: int = _get_int("ENRICH_HOUR_LIMIT_DAY", 30)
    enrich_hour_limit_night: int = _get_int("ENRICH_HOUR_LIMIT_NIGHT", 60)
    aerodata_hard_daily_budget: int = _get_int("AERODATA_HARD_DAILY_BUDGET", 0)

    # Enrichment pre-filters
    callsign_pattern_gate: bool = _get_bool("CALLSIGN_PATTERN_GATE", True)
    block_cargo_callsigns: bool = _get_bool("BLOCK_CARGO_CALLSIGNS", True)
    blocked_callsign_prefixes: tuple[str, ...] = field(
        default_factory=lambda: tuple(
            prefix.strip().upper()
            for prefix in os.getenv("BLOCKED_CALLSIGN_PREFIXES", DEFAULT_BLOCKED_PREFIXES).split(",")
            if prefix.strip()
        )
    )
    enrich_max_distance_km: float = _get_float("ENRICH_MAX_DISTANCE_KM", 0.0)

    ads_txt: str = os.getenv(
        "ADS_TXT", "google.com, pub-0000000000000000, DIRECT, f08c47fec0942fa0"
    )

    def load_secrets(self) -> None:
        """Fill unset secrets from SSM when an SSM prefix is configured."""

        if not self.ssm_prefix:
            return
        for attribute, name in SSM_SECRETS.items():
            if getattr(self, attribute):
                continue
            try:
                setattr(self, attribute, get_ssm_secret(self.ssm_prefix, name))
            except RuntimeError:
                logger.warning("%s not available from SSM", name)


settings = Settings()

__all__ = ["settings", "Settings", "get_ssm_secret"]
