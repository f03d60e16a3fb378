"""Cover Art Archive client: album artwork URL for a release group."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from jukebox_meta.errors import ProtocolViolation
from jukebox_meta.http_client import fetch_json

logger = logging.getLogger(__name__)

SERVICE = "CoverArtArchive"


def first_image_url(data: Any) -> str | None:
    """
    Extract the first image URL from a Cover Art Archive listing.

    Raises:
        ProtocolViolation: If the listing has no usable images array
    """
    if not isinstance(data, dict) or not isinstance(data.get("images"), list):
        raise ProtocolViolation(SERVICE, f"response has no images list: {data!r}")

    images = data["images"]
    if not images:
        return None

    first = images[0]
    url = first.get("image") if isinstance(first, dict) else None
    if not isinstance(url, str) or not url:
        raise ProtocolViolation(SERVICE, f"image entry has no URL: {first!r}")
    return url


class CoverArtClient:
    """Looks up artwork by MusicBrainz release group MBID."""

    BASE_URL = "https://coverartarchive.org"

    def __init__(self, http_client: httpx.AsyncClient, base_url: str = BASE_URL):
        self.base_url = base_url.rstrip("/")
        self._client = http_client

    async def resolve_art(self, release_group_id: str | None) -> str | None:
        """
        Get the URL of the first image for a release group.

        No request is made when there is no release group id.

        Raises:
            TransportError: Network failure or non-2xx status (including 404 for no art)
            ProtocolViolation: Malformed listing
        """
        if release_group_id is None:
            return None

        url = f"{self.base_url}/release-group/{release_group_id}"
        data = await fetch_json(self._client, SERVICE, url)
        art_url = first_image_url(data)
        logger.debug("Album art for release group %s: %s", release_group_id, art_url)
        return art_url


## Tests


def test_first_image_url():
    data = {
        "images": [
            {"image": "http://coverartarchive.org/release/r1/1.jpg", "front": True},
            {"image": "http://coverartarchive.org/release/r1/2.jpg", "front": False},
        ],
        "release": "https://musicbrainz.org/release/r1",
    }
    assert first_image_url(data) == "http://coverartarchive.org/release/r1/1.jpg"


def test_first_image_url_empty_listing():
    assert first_image_url({"images": [], "release": "https://musicbrainz.org/release/r1"}) is None


def test_first_image_url_malformed():
    import pytest

    with pytest.raises(ProtocolViolation):
        first_image_url({"release": "https://musicbrainz.org/release/r1"})
