"""Store error hierarchy."""

from typing import Optional


class StoreError(Exception):
    """Base exception for store failures; also raised for store-reported errors."""

    def __init__(self, message: str, command: Optional[str] = None):
        self.command = command
        super().__init__(message)


class ConfigurationError(StoreError):
    """Store endpoint URL or token is missing."""


class TransportError(StoreError):
    """Store could not be reached or answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 command: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message, command=command)
