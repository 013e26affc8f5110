"""
Error taxonomy shared by record stores and route handlers.

Each error carries the HTTP status the envelope is emitted with.
"""

from __future__ import annotations


class PortalError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PortalError):
    """A required request field is missing or malformed."""

    status_code = 400


class NotFound(PortalError):
    """The target record does not exist."""

    status_code = 404


class ConfigurationError(PortalError):
    """A backend client is unavailable (missing or invalid credentials)."""

    status_code = 500


class BackendError(PortalError):
    """The storage call itself failed."""

    status_code = 500
