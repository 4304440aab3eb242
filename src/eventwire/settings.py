"""Typed settings for eventwire components."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from eventwire.config import get_config_value
from eventwire.core.correlator import DEFAULT_REPLY_EVENT, DEFAULT_REQUEST_TIMEOUT
from eventwire.core.errors import ValidationError, require_event_name, require_timeout

TRANSPORTS = ("memory", "nats")


def _parse_float(key: str, raw: str | None, fallback: float) -> float:
    if raw is None or not raw.strip():
        return fallback
    try:
        return float(raw)
    except ValueError as exc:
        raise ValidationError(f"{key} must be a number, got {raw!r}") from exc


def _parse_int(key: str, raw: str | None, fallback: int) -> int:
    if raw is None or not raw.strip():
        return fallback
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(f"{key} must be an integer, got {raw!r}") from exc


@dataclass(slots=True)
class Settings:
    transport: str = "memory"
    peer_id: str = "local"
    nats_url: str = "nats://localhost:4222"
    subject_prefix: str = "eventwire"
    reply_event: str = DEFAULT_REPLY_EVENT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    poll_interval: float = 0.2
    log_level: str = "INFO"
    metrics_port: int = 8005

    def __post_init__(self) -> None:
        if self.transport not in TRANSPORTS:
            raise ValidationError(
                f"EVENTWIRE_TRANSPORT must be one of {', '.join(TRANSPORTS)}, got {self.transport!r}"
            )
        require_event_name(self.reply_event)
        require_timeout(self.request_timeout)
        require_timeout(self.poll_interval)


@lru_cache
def get_settings() -> Settings:
    defaults = Settings()
    return Settings(
        transport=(get_config_value("EVENTWIRE_TRANSPORT", defaults.transport) or "").lower(),
        peer_id=get_config_value("EVENTWIRE_PEER_ID", defaults.peer_id) or defaults.peer_id,
        nats_url=get_config_value("EVENTWIRE_NATS_URL", defaults.nats_url) or defaults.nats_url,
        subject_prefix=get_config_value("EVENTWIRE_SUBJECT_PREFIX", defaults.subject_prefix)
        or defaults.subject_prefix,
        reply_event=get_config_value("EVENTWIRE_REPLY_EVENT", defaults.reply_event)
        or defaults.reply_event,
        request_timeout=_parse_float(
            "EVENTWIRE_REQUEST_TIMEOUT_SECONDS",
            get_config_value("EVENTWIRE_REQUEST_TIMEOUT_SECONDS"),
            defaults.request_timeout,
        ),
        poll_interval=_parse_float(
            "EVENTWIRE_POLL_INTERVAL_SECONDS",
            get_config_value("EVENTWIRE_POLL_INTERVAL_SECONDS"),
            defaults.poll_interval,
        ),
        log_level=get_config_value("EVENTWIRE_LOG_LEVEL", defaults.log_level) or defaults.log_level,
        metrics_port=_parse_int(
            "EVENTWIRE_METRICS_PORT",
            get_config_value("EVENTWIRE_METRICS_PORT"),
            defaults.metrics_port,
        ),
    )
