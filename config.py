"""
CoinCap client — Configuration
Endpoints, socket timeouts and logging in one place.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ApiConfig:
    rest_url: str = "https://api.coincap.io/v2"
    ws_url: str = "wss://ws.coincap.io"
    request_timeout: float = 10.0       # Seconds, whole REST request
    ping_interval: float = 20.0         # Seconds between socket keepalive pings
    ping_timeout: float = 10.0          # Socket read fails if a ping goes unanswered
    close_timeout: float = 5.0


@dataclass
class AppConfig:
    api: ApiConfig = field(default_factory=ApiConfig)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load config with environment variable overrides."""
        config = cls()
        config.api.rest_url = os.getenv("COINCAP_REST_URL", config.api.rest_url)
        config.api.ws_url = os.getenv("COINCAP_WS_URL", config.api.ws_url)
        config.api.request_timeout = float(os.getenv("COINCAP_TIMEOUT", config.api.request_timeout))
        config.log_level = os.getenv("LOG_LEVEL", "INFO")
        config.log_file = os.getenv("LOG_FILE") or None
        return config
