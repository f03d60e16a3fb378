"""Canned payloads and fake remote services for pipeline tests."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

import httpx

T = TypeVar("T")

ACOUSTID_HOST = "api.acoustid.org"
MUSICBRAINZ_HOST = "musicbrainz.org"
COVERART_HOST = "coverartarchive.org"


# =============================================================================
# Canned service payloads
# =============================================================================


def acoustid_response(*results: dict[str, Any]) -> dict[str, Any]:
    """AcoustID lookup body with the given results."""
    return {"status": "ok", "results": list(results)}


def acoustid_result(aid: str, score: float, *recording_ids: str) -> dict[str, Any]:
    """One AcoustID result; recordings omitted entirely when none are given."""
    result: dict[str, Any] = {"id": aid, "score": score}
    if recording_ids:
        result["recordings"] = [{"id": rid} for rid in recording_ids]
    return result


def mb_recording(
    title: str = "Song A",
    artists: tuple[str, ...] = ("Artist A",),
    release_groups: tuple[tuple[str, str | None, str], ...] = (("g1", "Album", "Album A"),),
    rec_id: str = "rec-1",
) -> dict[str, Any]:
    """MusicBrainz recording body; release groups are (id, primary type, title)."""
    return {
        "id": rec_id,
        "title": title,
        "artist-credit": [
            {"name": name, "joinphrase": "", "artist": {"id": f"art-{i}", "name": name}}
            for i, name in enumerate(artists)
        ],
        "releases": [
            {
                "id": f"rel-{rg_id}",
                "title": rg_title,
                "release-group": {"id": rg_id, "title": rg_title, "primary-type": rg_type},
            }
            for rg_id, rg_type, rg_title in release_groups
        ],
    }


def coverart_listing(*urls: str) -> dict[str, Any]:
    """Cover Art Archive listing with one image per URL."""
    return {
        "images": [
            {"image": url, "front": i == 0, "types": ["Front"]} for i, url in enumerate(urls)
        ],
        "release": "https://musicbrainz.org/release/rel-1",
    }


# =============================================================================
# Fake remote services
# =============================================================================

Reply = dict[str, Any] | int | str | Exception


class FakeServices:
    """
    Answers requests per host.

    A reply is a JSON body (dict), an HTTP status (int), a raw text body
    (str), or an exception raised as a transport failure.
    """

    def __init__(self) -> None:
        self.replies: dict[str, Reply] = {
            ACOUSTID_HOST: acoustid_response(acoustid_result("aid-1", 0.9, "rec-1")),
            MUSICBRAINZ_HOST: mb_recording(),
            COVERART_HOST: coverart_listing("http://x/1.jpg"),
        }
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies[request.url.host]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, int):
            return httpx.Response(reply, json={"error": "fake"})
        if isinstance(reply, str):
            return httpx.Response(200, text=reply)
        return httpx.Response(200, json=reply)

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Drive a coroutine to completion from a sync test."""
    return asyncio.run(coro)
