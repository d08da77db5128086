from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Probe definitions (absolute or relative to CWD)
    probes_file: str = "probes.yaml"

    # Scheduling
    jitter_max_ms: int = 500  # uniform delay in [0, jitter_max_ms) before each run

    # Network timeouts
    probe_timeout_seconds: float = 10.0  # HTTP + TLS default when a probe sets none
    dns_resolver_timeout_ms: int = 3000  # only used with an explicit resolver

    # Logging
    log_level: str = "INFO"

    # Notifications (optional — Slack / Telegram)
    slack_webhook_url: str = ""
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""


settings = Settings()
