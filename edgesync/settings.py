from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    poll_interval_s: int = _env_int("EDGESYNC_POLL_INTERVAL_S", 15)
    config_path: str = os.getenv("EDGESYNC_CONFIG_PATH", "/nginx.conf")
    nginx_binary: str = os.getenv("EDGESYNC_NGINX_BINARY", "nginx")
    nginx_args: tuple[str, ...] = ()

    # Discovery
    label_prefix: str = os.getenv("EDGESYNC_LABEL_PREFIX", "nginx")
    docker_api_version: str = os.getenv("EDGESYNC_DOCKER_API_VERSION", "1.24")

    # Rendering
    template_dir: str | None = os.getenv("EDGESYNC_TEMPLATE_DIR")

    # Logging. The legacy DEBUG=true switch is still honoured.
    debug: bool = _env_bool("EDGESYNC_DEBUG", _env_bool("DEBUG", False))
    log_json: bool = _env_bool("EDGESYNC_LOG_JSON", False)

    # Failure policies
    isolate_resolution_failures: bool = _env_bool("EDGESYNC_ISOLATE_RESOLUTION_FAILURES", False)
    advance_digest_on_reload_failure: bool = _env_bool("EDGESYNC_ADVANCE_DIGEST_ON_RELOAD_FAILURE", True)

    # Status API (port 0 disables it)
    api_host: str = os.getenv("EDGESYNC_API_HOST", "127.0.0.1")
    api_port: int = _env_int("EDGESYNC_API_PORT", 0)

    # Email alerting (optional)
    enable_email: bool = _env_bool("EDGESYNC_ENABLE_EMAIL", False)
    smtp_host: str = os.getenv("EDGESYNC_SMTP_HOST", "smtp.gmail.com")
    smtp_port: int = _env_int("EDGESYNC_SMTP_PORT", 587)
    smtp_user: str | None = os.getenv("EDGESYNC_SMTP_USER")
    smtp_password: str | None = os.getenv("EDGESYNC_SMTP_PASSWORD")
    email_from: str | None = os.getenv("EDGESYNC_EMAIL_FROM")
    email_to: str | None = os.getenv("EDGESYNC_EMAIL_TO")


settings = Settings()
