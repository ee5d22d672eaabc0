"""
Error definitions for ds-client.

Every failure the client can hit while talking to ds-server derives from
DsClientError so the CLI can report it and exit with a non-zero status.
"""

from __future__ import annotations

from typing import Any, Optional


class DsClientError(Exception):
    """Base exception for all ds-client errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class TransportError(DsClientError):
    """Raised when the connection fails, closes mid-line, or times out."""


class ProtocolError(DsClientError):
    """Raised when a line from ds-server cannot be safely interpreted."""

    def __init__(self, message: str, line: Optional[str] = None, **details):
        if line is not None:
            details["line"] = repr(line)
        super().__init__(message, details)
        self.line = line


class HandshakeError(ProtocolError):
    """Raised when HELO or AUTH is not acknowledged."""


class LockstepError(ProtocolError):
    """Raised when a send or receive would break strict turn-taking."""


class ConfigError(DsClientError):
    """Raised when a configuration or topology file cannot be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot load {path}: {reason}", {"path": path})
        self.path = path
        self.reason = reason
