"""
Error taxonomy for snapshim.

Every failure the interception layer can produce maps to one of these
exceptions. Load failures (fetch/format) propagate to callers of the
lifecycle; the rest are terminal for a single request or message and are
turned into structured JSON responses (or dropped, for protocol errors).
"""

from __future__ import annotations


class SnapshimError(Exception):
    """Base exception for all snapshim errors."""


# =============================================================================
# Load Errors
# =============================================================================


class DbFetchError(SnapshimError):
    """
    Raised when the snapshot resource cannot be fetched.

    Carries the HTTP status and reason phrase of the failed response.
    Transport-level failures (no response at all) use status 0.
    """

    def __init__(self, status_code: int, reason: str):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"DB fetch failed: {status_code} {reason}".rstrip())


class DbFormatError(SnapshimError):
    """Raised when snapshot bytes cannot be turned into a database."""


# =============================================================================
# Request Errors
# =============================================================================


class ValidationError(SnapshimError):
    """Raised when a query request is malformed (maps to 400)."""


class PolicyError(SnapshimError):
    """Raised for forbidden endpoints or denylisted queries (maps to 403)."""


class ExecutionError(SnapshimError):
    """Raised when the engine fails during prepare, bind or step (maps to 500)."""


# =============================================================================
# Messaging Errors
# =============================================================================


class ProtocolError(SnapshimError):
    """
    Raised when an inbound message cannot be decoded.

    Protocol errors are logged and dropped; they never produce a reply.
    """

    def __init__(self, message: str, raw: object = None):
        self.raw = raw
        super().__init__(message)
