"""
MusicBrainz API client for canonical recording lookups.

Fetches a recording by MBID together with its artist credits and the
releases (and release groups) it appears on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from jukebox_meta.errors import ProtocolViolation
from jukebox_meta.http_client import fetch_json
from jukebox_meta.release import NOT_FOUND, ReleaseGroupRef, parse_release_type

logger = logging.getLogger(__name__)

SERVICE = "MusicBrainz"


@dataclass(frozen=True)
class ArtistCredit:
    """One credited artist, in credit order."""

    name: str
    artist_id: str | None = None


@dataclass(frozen=True)
class Release:
    """A published edition of a recording. Malformed data may lack a release group."""

    id: str
    title: str = ""
    release_group: ReleaseGroupRef | None = None


@dataclass(frozen=True)
class CanonicalRecording:
    """Authoritative recording metadata from MusicBrainz."""

    id: str
    title: str
    artist_credits: tuple[ArtistCredit, ...] | None = None
    releases: tuple[Release, ...] | None = None

    @property
    def primary_artist(self) -> str:
        """First credited artist; credit order is as returned by MusicBrainz."""
        if not self.artist_credits:
            return NOT_FOUND
        return self.artist_credits[0].name


def _parse_artist_credit(data: dict[str, Any]) -> ArtistCredit:
    artist = data.get("artist") or {}
    # The credited name can differ from the artist's canonical name
    name = data.get("name") or artist.get("name") or NOT_FOUND
    return ArtistCredit(name=name, artist_id=artist.get("id"))


def _parse_release(data: dict[str, Any]) -> Release:
    release_group = None
    rg = data.get("release-group")
    if isinstance(rg, dict) and rg.get("id"):
        release_group = ReleaseGroupRef(
            id=rg["id"],
            title=rg.get("title", ""),
            primary_type=parse_release_type(rg.get("primary-type")),
        )
    return Release(id=data.get("id", ""), title=data.get("title", ""), release_group=release_group)


def parse_recording(data: Any) -> CanonicalRecording:
    """
    Parse a MusicBrainz recording document.

    Raises:
        ProtocolViolation: If the document is not a recording
    """
    if not isinstance(data, dict) or not data.get("id"):
        raise ProtocolViolation(SERVICE, f"response is not a recording: {data!r}")

    artist_credits = [_parse_artist_credit(c) for c in data.get("artist-credit") or []]

    releases: tuple[Release, ...] | None = None
    if "releases" in data:
        releases = tuple(_parse_release(rel) for rel in data["releases"] or [])

    return CanonicalRecording(
        id=data["id"],
        title=data.get("title") or NOT_FOUND,
        artist_credits=tuple(artist_credits) or None,
        releases=releases,
    )


class MusicBrainzClient:
    """
    MusicBrainz API client for recording lookups.

    MusicBrainz requires a meaningful User-Agent; it is sent on every request.
    """

    BASE_URL = "https://musicbrainz.org/ws/2"
    USER_AGENT = "jukebox-meta/0.1.0 ( https://github.com/jukebox-meta/jukebox-meta )"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = BASE_URL,
        user_agent: str = USER_AGENT,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self._client = http_client

    async def _request(self, endpoint: str, params: dict[str, str]) -> Any:
        params["fmt"] = "json"
        return await fetch_json(
            self._client,
            SERVICE,
            f"{self.base_url}/{endpoint}",
            params=params,
            headers={"User-Agent": self.user_agent},
        )

    async def get_recording(self, mbid: str) -> CanonicalRecording:
        """
        Get recording by MBID with artist credits and releases expanded.

        Args:
            mbid: MusicBrainz recording ID

        Returns:
            CanonicalRecording

        Raises:
            TransportError: Network failure or non-2xx status
            ProtocolViolation: Malformed response
        """
        params = {"inc": "+".join(["artists", "releases", "release-groups"])}
        data = await self._request(f"recording/{mbid}", params)

        recording = parse_recording(data)
        logger.debug("MusicBrainz recording from id %s: %s", mbid, recording)
        return recording


## Tests


def test_parse_recording():
    data = {
        "id": "rec-1",
        "title": "Song A",
        "artist-credit": [
            {
                "name": "Artist A",
                "joinphrase": " & ",
                "artist": {"id": "art-1", "name": "Artist A"},
            },
            {"name": "Artist B", "artist": {"id": "art-2", "name": "Artist B"}},
        ],
        "releases": [
            {"id": "rel-1", "title": "Album A"},
            {
                "id": "rel-2",
                "title": "Album A (Deluxe)",
                "release-group": {"id": "rg-1", "title": "Album A", "primary-type": "Album"},
            },
        ],
    }
    rec = parse_recording(data)

    assert rec.title == "Song A"
    assert rec.primary_artist == "Artist A"
    assert rec.artist_credits is not None and len(rec.artist_credits) == 2
    assert rec.releases is not None
    assert rec.releases[0].release_group is None
    assert rec.releases[1].release_group == ReleaseGroupRef("rg-1", "Album A", "Album")


def test_parse_recording_without_credits_or_releases():
    rec = parse_recording({"id": "rec-1", "title": "Song A"})
    assert rec.primary_artist == "Not Found"
    assert rec.releases is None


def test_parse_recording_rejects_non_recording():
    import pytest

    with pytest.raises(ProtocolViolation):
        parse_recording({"error": "Not Found"})
