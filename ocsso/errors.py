"""Exceptions raised by the authentication stages."""

from typing import Optional


class OcssoError(Exception):
    """Base exception for ocsso-login errors."""
    pass


class GatewayError(OcssoError):
    """Request to the VPN gateway could not be completed."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class ProtocolError(OcssoError):
    """Gateway reply could not be parsed or lacks a required field."""

    def __init__(self, message: str, body: bytes = b""):
        super().__init__(message)
        self.body = body


class BrowserError(OcssoError):
    """Browser could not be launched or driven."""
    pass


class LoginTimeout(BrowserError):
    """Token cookie did not appear before the deadline."""
    pass


class LoginCancelled(BrowserError):
    """Login wait was cancelled by the caller."""
    pass


class ConfigWriteError(OcssoError):
    """Credential file could not be written."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
