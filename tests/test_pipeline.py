"""End-to-end tests for the metadata resolution pipeline.

Covers the happy path, graceful degradation to sentinel values, and abort
behavior on hard failures.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from service_fakes import (
    ACOUSTID_HOST,
    COVERART_HOST,
    MUSICBRAINZ_HOST,
    FakeServices,
    acoustid_response,
    acoustid_result,
    coverart_listing,
    mb_recording,
    run,
)

from jukebox_meta.config import Config
from jukebox_meta.errors import (
    FingerprintError,
    NoRecordingsError,
    ProtocolViolation,
    ServiceError,
    TransportError,
)
from jukebox_meta.fingerprint import FingerprintData
from jukebox_meta.pipeline import MetadataPipeline, SongMetadata

PipelineFactory = Callable[..., MetadataPipeline]


def test_resolve_happy_path(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    meta = run(make_pipeline().resolve(fingerprint))

    assert meta == SongMetadata(
        title="Song A",
        artist="Artist A",
        album="Album A",
        album_art="http://x/1.jpg",
        duration=212.45,
    )
    assert [r.url.host for r in services.requests] == [
        ACOUSTID_HOST,
        MUSICBRAINZ_HOST,
        COVERART_HOST,
    ]


def test_resolve_enriches_best_scoring_recording(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    services.replies[ACOUSTID_HOST] = acoustid_response(
        acoustid_result("aid-1", 0.4, "rec-low"),
        acoustid_result("aid-2", 0.95, "rec-best", "rec-other"),
        acoustid_result("aid-3", 0.95, "rec-tie"),
    )

    run(make_pipeline().resolve(fingerprint))

    (mb_request,) = services.requests_to(MUSICBRAINZ_HOST)
    assert mb_request.url.path == "/ws/2/recording/rec-best"


def test_resolve_zero_candidates_aborts_before_catalog(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    services.replies[ACOUSTID_HOST] = acoustid_response()

    with pytest.raises(ProtocolViolation):
        run(make_pipeline().resolve(fingerprint))

    assert services.requests_to(MUSICBRAINZ_HOST) == []
    assert services.requests_to(COVERART_HOST) == []


def test_resolve_match_without_recordings(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    services.replies[ACOUSTID_HOST] = acoustid_response(
        acoustid_result("aid-linked", 0.3, "rec-1"),
        acoustid_result("aid-unlinked", 0.8),
    )

    with pytest.raises(NoRecordingsError):
        run(make_pipeline().resolve(fingerprint))

    assert services.requests_to(MUSICBRAINZ_HOST) == []


def test_resolve_acoustid_service_error(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    services.replies[ACOUSTID_HOST] = {"status": "error", "error": {"message": "rate limited"}}

    with pytest.raises(ServiceError):
        run(make_pipeline().resolve(fingerprint))

    assert len(services.requests) == 1


def test_resolve_musicbrainz_failure_aborts(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    services.replies[MUSICBRAINZ_HOST] = 503

    with pytest.raises(TransportError):
        run(make_pipeline().resolve(fingerprint))

    assert services.requests_to(COVERART_HOST) == []


def test_resolve_missing_artist_does_not_block_album(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    services.replies[MUSICBRAINZ_HOST] = mb_recording(artists=())

    meta = run(make_pipeline().resolve(fingerprint))

    assert meta.artist == "Not Found"
    assert meta.album == "Album A"
    assert meta.album_art == "http://x/1.jpg"


def test_resolve_first_credit_is_artist(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    services.replies[MUSICBRAINZ_HOST] = mb_recording(artists=("Main Artist", "Featured"))

    assert run(make_pipeline().resolve(fingerprint)).artist == "Main Artist"


def test_resolve_single_release(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    services.replies[MUSICBRAINZ_HOST] = mb_recording(release_groups=(("s1", "Single", "Song A"),))

    meta = run(make_pipeline().resolve(fingerprint))

    assert meta.album == "Single"
    (art_request,) = services.requests_to(COVERART_HOST)
    assert art_request.url.path == "/release-group/s1"


def test_resolve_no_album_skips_artwork(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    services.replies[MUSICBRAINZ_HOST] = mb_recording(release_groups=())

    meta = run(make_pipeline().resolve(fingerprint))

    assert meta == SongMetadata(
        title="Song A", artist="Artist A", album="None", album_art=None, duration=212.45
    )
    assert services.requests_to(COVERART_HOST) == []


def test_resolve_unrecognized_release_skips_artwork(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    services.replies[MUSICBRAINZ_HOST] = mb_recording(
        release_groups=(("b1", "Broadcast", "Radio Session"),)
    )

    meta = run(make_pipeline().resolve(fingerprint))

    assert meta.album == "Unrecognized Release Type"
    assert meta.album_art is None
    assert services.requests_to(COVERART_HOST) == []


def test_resolve_empty_artwork_listing(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    services.replies[COVERART_HOST] = coverart_listing()

    meta = run(make_pipeline().resolve(fingerprint))

    assert meta.album == "Album A"
    assert meta.album_art is None


def test_resolve_artwork_failure_is_fatal_by_default(
    make_pipeline: PipelineFactory, services: FakeServices, fingerprint: FingerprintData
):
    services.replies[COVERART_HOST] = 404

    with pytest.raises(TransportError) as exc_info:
        run(make_pipeline().resolve(fingerprint))

    assert exc_info.value.service == "CoverArtArchive"


def test_resolve_artwork_failure_degrades_when_configured(
    make_pipeline: PipelineFactory,
    services: FakeServices,
    config: Config,
    fingerprint: FingerprintData,
    caplog: pytest.LogCaptureFixture,
):
    services.replies[COVERART_HOST] = httpx.ConnectError("unreachable")
    config.pipeline.artwork_errors_fatal = False

    with caplog.at_level("WARNING"):
        meta = run(make_pipeline(config).resolve(fingerprint))

    assert meta.album == "Album A"
    assert meta.album_art is None
    assert "Album art lookup failed" in caplog.text


def test_resolve_artwork_protocol_violation_always_fatal(
    make_pipeline: PipelineFactory,
    services: FakeServices,
    config: Config,
    fingerprint: FingerprintData,
):
    services.replies[COVERART_HOST] = {"release": "https://musicbrainz.org/release/rel-1"}
    config.pipeline.artwork_errors_fatal = False

    with pytest.raises(ProtocolViolation):
        run(make_pipeline(config).resolve(fingerprint))


def test_lookup_song_uses_fingerprinter(services: FakeServices, config: Config):
    seen: list[Path] = []

    def fingerprinter(path: Path) -> FingerprintData:
        seen.append(path)
        return FingerprintData(duration=99.9, fingerprint="XYZ")

    pipeline = MetadataPipeline(config, http_client=services.client(), fingerprinter=fingerprinter)

    meta = run(pipeline.lookup_song(Path("/music/song.flac")))

    assert seen == [Path("/music/song.flac")]
    assert meta.duration == 99.9
    (request,) = services.requests_to(ACOUSTID_HOST)
    assert request.url.params["duration"] == "99"
    assert request.url.params["fingerprint"] == "XYZ"


def test_lookup_song_fingerprint_failure(services: FakeServices, config: Config):
    def fingerprinter(path: Path) -> FingerprintData:
        raise FingerprintError(f"fpcalc failed for {path}")

    pipeline = MetadataPipeline(config, http_client=services.client(), fingerprinter=fingerprinter)

    with pytest.raises(FingerprintError):
        run(pipeline.lookup_song(Path("broken.mp3")))

    assert services.requests == []


def test_concurrent_resolutions_are_independent(services: FakeServices, config: Config):
    def handler(request: httpx.Request) -> httpx.Response:
        services.requests.append(request)
        if request.url.host == ACOUSTID_HOST:
            fp = request.url.params["fingerprint"]
            body = acoustid_response(acoustid_result(f"aid-{fp}", 0.9, f"rec-{fp}"))
            return httpx.Response(200, json=body)
        if request.url.host == MUSICBRAINZ_HOST:
            rec_id = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(200, json=mb_recording(title=f"Title {rec_id}", rec_id=rec_id))
        return httpx.Response(200, json=coverart_listing("http://x/1.jpg"))

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    pipeline = MetadataPipeline(config, http_client=client)

    async def resolve_all() -> list[SongMetadata]:
        return await asyncio.gather(
            *(
                pipeline.resolve(FingerprintData(duration=float(i), fingerprint=f"fp{i}"))
                for i in range(5)
            )
        )

    results = run(resolve_all())

    assert [m.title for m in results] == [f"Title rec-fp{i}" for i in range(5)]
    assert [m.duration for m in results] == [float(i) for i in range(5)]


def test_pipeline_requires_client_id(services: FakeServices):
    with pytest.raises(ValueError, match="AcoustID client id"):
        MetadataPipeline(Config(), http_client=services.client())


def test_pipeline_closes_only_owned_client(services: FakeServices, config: Config):
    shared = services.client()

    async def use_and_close() -> None:
        async with MetadataPipeline(config, http_client=shared):
            pass

    run(use_and_close())
    assert not shared.is_closed

    owned = MetadataPipeline(config)
    run(owned.aclose())
    assert owned._client.is_closed  # pyright: ignore[reportPrivateUsage]


def test_song_metadata_defaults():
    meta = SongMetadata()
    assert meta.to_dict() == {
        "title": "Not Found",
        "artist": "Not Found",
        "album": "Not Found",
        "album_art": None,
        "duration": 0.0,
    }
