"""
Client configuration.

Values are read from environment variables so scripts and containers can
configure the client without code changes:

- REPLICATE_API_TOKEN: API token sent as a bearer token
- REPLICATE_BASE_URL: Base URL of the versioned REST API
- REPLICATE_TIMEOUT: Request timeout in seconds
- REPLICATE_MAX_RETRIES: Attempts for requests that fail to connect
- REPLICATE_RETRY_DELAY: Base delay between attempts in seconds
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "https://api.replicate.com/v1"


def get_env_int(name: str, default: int) -> int:
    """Get integer from environment variable."""
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


def get_env_float(name: str, default: float) -> float:
    """Get float from environment variable."""
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


@dataclass
class ClientConfig:
    """Connection settings shared by Client and AsyncClient."""
    api_token: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 0.5

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build a config from REPLICATE_* environment variables."""
        return cls(
            api_token=os.environ.get("REPLICATE_API_TOKEN") or None,
            base_url=os.environ.get("REPLICATE_BASE_URL", DEFAULT_BASE_URL),
            timeout=get_env_float("REPLICATE_TIMEOUT", 30.0),
            max_retries=get_env_int("REPLICATE_MAX_RETRIES", 3),
            retry_delay=get_env_float("REPLICATE_RETRY_DELAY", 0.5),
        )
