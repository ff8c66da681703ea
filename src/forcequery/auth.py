from __future__ import annotations

import logging
from typing import Optional

import requests

from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    DecodeError,
    MissingCredentialsError,
    TransportError,
)
from .session import ForceConfig, SessionContext

_logger = logging.getLogger(__name__)

MIN_API_VERSION = 20.0


def _check_api_version(api_version: str) -> None:
    try:
        number = float(api_version.lstrip("vV"))
    except ValueError as err:
        raise ConfigurationError(f"Invalid API version: {api_version!r}") from err
    if number < MIN_API_VERSION:
        raise ConfigurationError("The earliest supported API version is 20.0")


def oauth_login(cfg: ForceConfig, http: Optional[requests.Session] = None) -> SessionContext:
    """Exchange username/password for a bearer token (OAuth password grant)."""
    _check_api_version(cfg.api_version)

    missing = [
        k
        for k, v in {
            "SF_USERNAME": cfg.username,
            "SF_PASSWORD": cfg.password,
            "SF_CLIENT_ID": cfg.client_id,
            "SF_CLIENT_SECRET": cfg.client_secret,
            "SF_LOGIN_URL": cfg.login_url,
        }.items()
        if not v
    ]
    if missing:
        raise MissingCredentialsError(missing)

    token_url = f"{cfg.login_url.rstrip('/')}/services/oauth2/token"
    data = {
        "grant_type": cfg.grant_type,
        "client_id": cfg.client_id,
        "client_secret": cfg.client_secret,
        "username": cfg.username,
        "password": cfg.password,
    }

    _logger.debug("Requesting access token from %s", token_url)
    http = http or requests.Session()
    try:
        r = http.post(token_url, data=data, timeout=cfg.timeout, verify=cfg.verify_ssl)
    except requests.RequestException as e:
        raise TransportError(f"Token request failed: {e}", url=token_url) from e

    if cfg.debug:
        _logger.info("POST %s", token_url)
        _logger.info("%s", r.text)

    try:
        payload = r.json()
    except ValueError as e:
        raise DecodeError(f"Token endpoint returned non-JSON body (HTTP {r.status_code})") from e

    # Salesforce reports login failures as {"error": ..., "error_description": ...}
    if "error_description" in payload:
        raise AuthenticationError(payload["error_description"])
    if r.status_code >= 400 or "access_token" not in payload:
        raise AuthenticationError(f"Token request failed ({r.status_code}): {payload}")

    session = SessionContext(
        credential=payload["access_token"],
        base_url=payload["instance_url"].rstrip("/") + "/",
        api_version=cfg.api_version,
    )
    _logger.info("Authenticated against %s (api %s)", session.base_url, session.api_version)
    return session


def session_from_config(cfg: ForceConfig, http: Optional[requests.Session] = None) -> SessionContext:
    """Return a SessionContext, reusing a pre-issued token when one is configured."""
    if cfg.access_token and cfg.instance_url:
        _logger.debug("Using existing access token from configuration.")
        _check_api_version(cfg.api_version)
        return SessionContext(
            credential=cfg.access_token,
            base_url=cfg.instance_url.rstrip("/") + "/",
            api_version=cfg.api_version,
        )
    return oauth_login(cfg, http=http)
