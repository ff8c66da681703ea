from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional

from .exceptions import ConfigurationError

DEFAULT_LOGIN_URL = "https://login.salesforce.com"
DEFAULT_API_VERSION = "35.0"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_number(name: str, default, cast=float):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError as err:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from err


# ----------------------------------------------------------------------
# Session context
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class SessionContext:
    """Bearer credential + instance URL + API version for one connection.

    Produced once by the login step and only ever read by queries.
    """

    credential: str
    base_url: str
    api_version: str = DEFAULT_API_VERSION

    def __repr__(self) -> str:
        masked = f"{self.credential[:6]}..." if self.credential else ""
        return (
            f"SessionContext(credential={masked!r}, base_url={self.base_url!r}, "
            f"api_version={self.api_version!r})"
        )

    @property
    def api_path_version(self) -> str:
        """Version segment used in REST paths, e.g. 'v35.0'."""
        return "v" + self.api_version.lstrip("vV")

    def url_for(self, path: str) -> str:
        """Join a server path onto base_url.

        The server issues paths such as '/services/data/v35.0/query/01g...';
        one leading separator is dropped so the join never doubles it.
        """
        if path.startswith("/"):
            path = path[1:]
        return f"{self.base_url.rstrip('/')}/{path}"

    def auth_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.credential}",
            "Accept": "application/xml",
        }


# ----------------------------------------------------------------------
# Configuration dataclass
# ----------------------------------------------------------------------
@dataclass
class ForceConfig:
    """Connection settings for Salesforce (login and query behaviour)."""

    login_url: str = DEFAULT_LOGIN_URL
    grant_type: str = "password"

    username: Optional[str] = None
    # Include the security token suffix when the org requires one.
    password: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    # Optional: pre-issued token / instance URL, skips the OAuth call
    access_token: Optional[str] = None
    instance_url: Optional[str] = None

    api_version: str = DEFAULT_API_VERSION

    verify_ssl: bool = True
    timeout: float = 30.0
    debug: bool = False
    max_retries: int = 0

    @classmethod
    def from_env(cls) -> ForceConfig:
        """Load configuration from SF_* environment variables."""
        return cls(
            login_url=os.getenv("SF_LOGIN_URL", DEFAULT_LOGIN_URL),
            grant_type=os.getenv("SF_GRANT_TYPE", "password"),
            username=os.getenv("SF_USERNAME"),
            password=os.getenv("SF_PASSWORD"),
            client_id=os.getenv("SF_CLIENT_ID"),
            client_secret=os.getenv("SF_CLIENT_SECRET"),
            access_token=os.getenv("SF_ACCESS_TOKEN"),
            instance_url=os.getenv("SF_INSTANCE_URL"),
            api_version=os.getenv("SF_API_VERSION", DEFAULT_API_VERSION),
            verify_ssl=_env_flag("SF_VERIFY_SSL", True),
            timeout=_env_number("SF_TIMEOUT", 30.0),
            debug=_env_flag("SF_DEBUG", False),
            max_retries=_env_number("SF_MAX_RETRIES", 0, int),
        )
