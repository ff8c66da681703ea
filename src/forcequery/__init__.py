from __future__ import annotations

import logging

try:  # prefer importlib.metadata, fall back on dev installs
    from importlib.metadata import PackageNotFoundError, version
except Exception:  # pragma: no cover
    version = None
    PackageNotFoundError = Exception  # type: ignore[misc]

try:
    __version__ = version("forcequery") if version else "0.0.0"
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

from .api import ForceClient, QueryEngine, fetch_page, query_more
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    DecodeError,
    ForceError,
    MissingCredentialsError,
    ServiceError,
    TransportError,
)
from .session import ForceConfig, SessionContext

# Keep library modules quiet unless the app configures logging:
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "DecodeError",
    "ForceClient",
    "ForceConfig",
    "ForceError",
    "MissingCredentialsError",
    "QueryEngine",
    "ServiceError",
    "SessionContext",
    "TransportError",
    "fetch_page",
    "query_more",
]
