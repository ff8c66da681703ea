from __future__ import annotations

from typing import Optional


class ForceError(RuntimeError):
    """Base class for every error raised by forcequery."""


class TransportError(ForceError):
    """Network or HTTP-level failure talking to Salesforce."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ):
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class DecodeError(ForceError):
    """Response body could not be decoded."""


class ServiceError(ForceError):
    """Salesforce rejected the request with an errorCode/message payload."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class AuthenticationError(ForceError):
    """The OAuth token endpoint refused the login."""


class ConfigurationError(ForceError):
    """Invalid connection settings."""


class MissingCredentialsError(ConfigurationError):
    """Raised when the required Salesforce env vars are not present."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__("Missing required environment variables: " + ", ".join(missing))
