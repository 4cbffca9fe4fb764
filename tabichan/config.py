"""
Configuration constants for the Tabichan client.
"""

import os

from . import __version__
from .errors import ConfigError

# Environment variable names
API_KEY_ENV_VAR = "TABICHAN_API_KEY"
BASE_URL_ENV_VAR = "TABICHAN_BASE_URL"
WS_BASE_URL_ENV_VAR = "TABICHAN_WS_BASE_URL"

DEFAULT_BASE_URL = "https://tourism-api.podtech-ai.com/v1"
ALTERNATIVE_BASE_URL = "https://tabichan.podtech-ai.com/v1"
DEFAULT_WS_BASE_URL = "wss://tabichan.podtech-ai.com/v1"

USER_AGENT = f"tabichan-python-sdk/{__version__}"

COUNTRIES = ("japan", "france")
DEFAULT_COUNTRY = "japan"

# Per-endpoint request timeouts, in seconds
START_TIMEOUT_SECONDS = 3
POLL_TIMEOUT_SECONDS = 5
IMAGE_TIMEOUT_SECONDS = 30
REQUEST_TIMEOUT_SECONDS = 30

# 30 attempts x 10 seconds caps wait_for_chat at five minutes.
MAX_POLL_ATTEMPTS = 30
POLL_INTERVAL_SECONDS = 10

CONNECT_TIMEOUT_SECONDS = 10

NORMAL_CLOSE_CODE = 1000
AUTH_FAILURE_CLOSE_CODE = 1008


def resolve_api_key(explicit_key: str | None = None) -> str:
    """Get the Tabichan API key.

    Priority:
        1. ``explicit_key`` if provided (e.g. from CLI ``--api-key``).
        2. The ``TABICHAN_API_KEY`` environment variable.

    Raises ConfigError if no key is found.
    """
    if explicit_key:
        return explicit_key

    key = os.environ.get(API_KEY_ENV_VAR, "").strip()
    if key:
        return key

    raise ConfigError(
        "API key is not set. "
        f"Pass api_key or set the {API_KEY_ENV_VAR} environment variable."
    )


def resolve_base_url(explicit_url: str | None = None) -> str:
    """Return the REST base URL: explicit, then environment, then default."""
    url = explicit_url or os.environ.get(BASE_URL_ENV_VAR, "").strip() or DEFAULT_BASE_URL
    return url.rstrip("/")


def resolve_ws_base_url(explicit_url: str | None = None) -> str:
    """Return the WebSocket base URL: explicit, then environment, then default."""
    url = explicit_url or os.environ.get(WS_BASE_URL_ENV_VAR, "").strip() or DEFAULT_WS_BASE_URL
    return url.rstrip("/")
