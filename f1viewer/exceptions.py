"""
Exception types shared across the viewer.
"""
from enum import Enum


class ErrorKind(str, Enum):
    """Why a remote fetch did not produce a record."""
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    HTTP_STATUS = "http_status"
    DECODE = "decode"


class F1ViewerError(Exception):
    """Base class for errors raised by the viewer"""
    pass


class CatalogFetchError(F1ViewerError):
    """Raised when a catalog entity could not be retrieved"""

    def __init__(self, identifier: str, kind: ErrorKind, message: str = "") -> None:
        self.identifier = identifier
        self.kind = kind
        super().__init__(message or f"Failed to fetch {identifier} ({kind.value})")


class ConfigurationError(F1ViewerError):
    """Raised when the configuration file cannot be used"""
    pass
