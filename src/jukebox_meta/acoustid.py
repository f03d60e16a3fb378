"""
AcoustID API client for fingerprint-based music identification.

Looks up a Chromaprint fingerprint and returns every candidate track the
service reports, in response order, together with the MusicBrainz
recordings (and their release groups) linked to each candidate.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

import httpx

from jukebox_meta.errors import ProtocolViolation, ServiceError
from jukebox_meta.fingerprint import FingerprintData
from jukebox_meta.http_client import fetch_json
from jukebox_meta.release import ReleaseGroupRef, parse_release_type

logger = logging.getLogger(__name__)

SERVICE = "AcoustID"

# Facets requested on every lookup
LOOKUP_META = ("recordings", "releasegroups", "compress")


@dataclass(frozen=True)
class ArtistRef:
    """Artist reference inlined in an AcoustID recording."""

    id: str
    name: str


@dataclass(frozen=True)
class RecordingRef:
    """
    Lightweight MusicBrainz recording reference returned inline by AcoustID.

    Not to be confused with the full recording fetched from MusicBrainz later.
    """

    id: str
    duration: int | None = None
    release_groups: tuple[ReleaseGroupRef, ...] | None = None
    artists: tuple[ArtistRef, ...] | None = None


@dataclass(frozen=True)
class IdentityCandidate:
    """One track matching the fingerprint, with a 0.0 - 1.0 match score."""

    id: str
    score: float
    recordings: tuple[RecordingRef, ...] | None = None


def _require_str(data: dict[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ProtocolViolation(SERVICE, f"{what} is missing '{key}': {data!r}")
    return value


def _parse_release_group(data: dict[str, Any]) -> ReleaseGroupRef:
    return ReleaseGroupRef(
        id=_require_str(data, "id", "release group"),
        title=data.get("title", ""),
        primary_type=parse_release_type(data.get("type")),
    )


def _parse_recording(data: dict[str, Any]) -> RecordingRef:
    duration = data.get("duration")
    release_groups = [_parse_release_group(rg) for rg in data.get("releasegroups") or []]
    artists = [
        ArtistRef(id=_require_str(a, "id", "artist"), name=a.get("name", ""))
        for a in data.get("artists") or []
    ]
    return RecordingRef(
        id=_require_str(data, "id", "recording"),
        duration=int(duration) if isinstance(duration, int | float) else None,
        release_groups=tuple(release_groups) or None,
        artists=tuple(artists) or None,
    )


def _parse_candidate(data: Any) -> IdentityCandidate:
    if not isinstance(data, dict):
        raise ProtocolViolation(SERVICE, f"result is not an object: {data!r}")

    score = data.get("score")
    if not isinstance(score, int | float) or isinstance(score, bool) or not math.isfinite(score):
        raise ProtocolViolation(SERVICE, f"result has an invalid score: {data!r}")

    recordings = [_parse_recording(rec) for rec in data.get("recordings") or []]
    return IdentityCandidate(
        id=_require_str(data, "id", "result"),
        score=float(score),
        recordings=tuple(recordings) or None,
    )


def parse_lookup_response(data: Any) -> list[IdentityCandidate]:
    """
    Parse an AcoustID lookup response.

    Raises:
        ServiceError: If the response status is not "ok"
        ProtocolViolation: If an "ok" response has no results or is malformed
    """
    if not isinstance(data, dict):
        raise ProtocolViolation(SERVICE, f"unexpected response: {data!r}")

    status = data.get("status")
    if status != "ok":
        error = data.get("error") or {}
        message = error.get("message", "Unknown error") if isinstance(error, dict) else error
        raise ServiceError(SERVICE, f"lookup failed with status {status!r}: {message}")

    results = data.get("results")
    if not isinstance(results, list):
        raise ProtocolViolation(SERVICE, "'ok' response without a results list")
    if not results:
        raise ProtocolViolation(
            SERVICE, "lookup was successful but contained no results (should never happen)"
        )

    return [_parse_candidate(result) for result in results]


class AcoustIDClient:
    """
    AcoustID lookup client.

    Holds no per-lookup state, so one instance serves concurrent lookups.
    """

    BASE_URL = "https://api.acoustid.org/v2"

    def __init__(
        self,
        client_id: str,
        http_client: httpx.AsyncClient,
        base_url: str = BASE_URL,
    ):
        """
        Initialize AcoustID client.

        Args:
            client_id: Pre-validated AcoustID application client key
            http_client: Shared async HTTP client
            base_url: API root (overridable for tests and mirrors)
        """
        if not client_id:
            raise ValueError("AcoustID client id required (set ACOUSTID_CLIENT_ID env var)")

        self.client_id = client_id
        self.base_url = base_url.rstrip("/")
        self._client = http_client

    def build_params(self, fp: FingerprintData) -> dict[str, str]:
        """Query parameters for a lookup; duration is truncated to whole seconds."""
        return {
            "format": "json",
            "client": self.client_id,
            "meta": " ".join(LOOKUP_META),
            "duration": str(int(fp.duration)),
            "fingerprint": fp.fingerprint,
        }

    async def lookup(self, fp: FingerprintData) -> list[IdentityCandidate]:
        """
        Look up candidate tracks for a fingerprint.

        Returns:
            Candidates in the order the service returned them (not re-sorted)

        Raises:
            TransportError: Network failure or non-2xx status
            ServiceError: Service reported a non-"ok" status
            ProtocolViolation: "ok" with zero results, or malformed payload
        """
        data = await fetch_json(
            self._client, SERVICE, f"{self.base_url}/lookup", params=self.build_params(fp)
        )
        candidates = parse_lookup_response(data)

        logger.debug("Found %d AcoustID results", len(candidates))
        for candidate in candidates:
            logger.debug("id: %s | score: %s", candidate.id, candidate.score)

        return candidates


## Tests


def test_parse_lookup_response_keeps_order():
    data = {
        "status": "ok",
        "results": [
            {"id": "aid-low", "score": 0.4},
            {
                "id": "aid-high",
                "score": 0.97,
                "recordings": [
                    {
                        "id": "rec-1",
                        "duration": 212,
                        "releasegroups": [{"id": "rg-1", "title": "Album A", "type": "Album"}],
                        "artists": [{"id": "art-1", "name": "Artist A"}],
                    }
                ],
            },
        ],
    }
    candidates = parse_lookup_response(data)

    assert [c.id for c in candidates] == ["aid-low", "aid-high"]
    assert candidates[0].recordings is None
    rec = candidates[1].recordings[0]  # pyright: ignore[reportOptionalSubscript]
    assert rec.duration == 212
    assert rec.release_groups == (ReleaseGroupRef("rg-1", "Album A", "Album"),)
    assert rec.artists == (ArtistRef("art-1", "Artist A"),)


def test_parse_lookup_response_empty_lists_are_absent():
    data = {"status": "ok", "results": [{"id": "aid", "score": 0.5, "recordings": []}]}
    assert parse_lookup_response(data)[0].recordings is None


def test_parse_lookup_response_error_status():
    import pytest

    data = {"status": "error", "error": {"code": 4, "message": "invalid API key"}}
    with pytest.raises(ServiceError, match="invalid API key"):
        parse_lookup_response(data)


def test_parse_lookup_response_ok_without_results():
    import pytest

    with pytest.raises(ProtocolViolation):
        parse_lookup_response({"status": "ok", "results": []})


def test_build_params():
    client = AcoustIDClient("test_key", httpx.AsyncClient())
    params = client.build_params(FingerprintData(duration=212.9, fingerprint="AQAD"))
    assert params["duration"] == "212"
    assert params["client"] == "test_key"
    assert params["meta"] == "recordings releasegroups compress"
    assert params["format"] == "json"
