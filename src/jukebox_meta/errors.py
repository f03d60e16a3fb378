"""
Error taxonomy for metadata resolution.

Hard failures (transport, broken protocol, unusable match) are exceptions.
Missing metadata is never an exception: it shows up as sentinel values on
SongMetadata instead.
"""

from __future__ import annotations


class ResolutionError(Exception):
    """Base class for every error raised while resolving song metadata."""


class TransportError(ResolutionError):
    """Remote service unreachable, timed out, or answered with a non-2xx status."""

    def __init__(self, service: str, message: str, status_code: int | None = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class ServiceError(TransportError):
    """Service answered but reported a failure status in its payload."""


class ProtocolViolation(ResolutionError):
    """Service reported success but the payload breaks its own contract."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")


class NoCandidatesError(ResolutionError):
    """There was nothing to pick a best candidate from."""


class NoRecordingsError(ResolutionError):
    """A match was found but it lacks a linked canonical recording."""

    def __init__(self, candidate_id: str):
        self.candidate_id = candidate_id
        super().__init__(
            f"AcoustID result {candidate_id} contained no recording information "
            "(was meta=recordings included in the fingerprint query?)"
        )


class FingerprintError(ResolutionError):
    """Error during fingerprint calculation."""
