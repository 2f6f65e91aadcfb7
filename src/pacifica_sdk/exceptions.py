"""
exceptions.py – Error taxonomy for the Pacifica SDK.

Every failure surfaces to the caller as one of these types; nothing is
retried internally.

  KeyFormatError          secret did not decode to an accepted key shape
  TransportError          non-2xx status, network failure or unreadable body
  VenueError              2xx response whose envelope says success=false
  RequestValidationError  caller-level input problem (batch size, payload shape)
  DomainNotFoundError     symbol / position / order absent from a good response
"""

from __future__ import annotations

from typing import Optional


class PacificaError(Exception):
    """Base class for all SDK errors."""


class KeyFormatError(PacificaError, ValueError):
    """Raised when secret key material cannot be decoded or has the wrong shape."""


class TransportError(PacificaError):
    """Raised when an HTTP call fails or returns a non-2xx status."""

    def __init__(self, status_code: int, body: str, method: str = "", path: str = "") -> None:
        self.status_code = status_code
        self.body        = body
        self.method      = method.upper()
        self.path        = path
        location = f" {self.method} {self.path}" if path else ""
        super().__init__(f"Pacifica request failed [{status_code}]{location}: {body}")


class VenueError(PacificaError):
    """Raised when the venue answers 2xx but reports ``success: false``."""

    def __init__(self, error: Optional[str], code: Optional[int] = None, path: str = "") -> None:
        self.error = error or "unknown error"
        self.code  = code
        self.path  = path
        label = f" (code {code})" if code is not None else ""
        where = f" {path}" if path else ""
        super().__init__(f"Pacifica rejected request{where}{label}: {self.error}")


class RequestValidationError(PacificaError, ValueError):
    """Raised for caller-level input errors detected before signing or sending."""


class DomainNotFoundError(PacificaError, LookupError):
    """Raised when a requested symbol, order or position is missing from a successful response."""
