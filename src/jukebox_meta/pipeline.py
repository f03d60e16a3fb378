"""
Song metadata resolution pipeline.

Fingerprint -> AcoustID candidates -> best candidate -> MusicBrainz recording
-> album disambiguation -> Cover Art Archive.

Every stage consumes only the previous stage's output. Any hard failure
(transport, broken protocol, unusable match) aborts the whole resolution;
missing metadata never does and is reported through sentinel values.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from functools import partial
from pathlib import Path
from typing import Any

import httpx

from jukebox_meta.acoustid import AcoustIDClient
from jukebox_meta.config import Config
from jukebox_meta.coverart import CoverArtClient
from jukebox_meta.errors import TransportError
from jukebox_meta.fingerprint import FingerprintData, FingerprintProvider, calculate_fingerprint
from jukebox_meta.http_client import build_http_client
from jukebox_meta.musicbrainz import MusicBrainzClient
from jukebox_meta.release import NOT_FOUND, disambiguate
from jukebox_meta.safe_logging import safe_path
from jukebox_meta.selection import select_best, select_recording

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SongMetadata:
    """Resolved, display-ready metadata. Fields never resolved keep their sentinel."""

    title: str = NOT_FOUND
    artist: str = NOT_FOUND
    album: str = NOT_FOUND
    album_art: str | None = None
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class MetadataPipeline:
    """
    Resolves fingerprints (or audio files) into SongMetadata.

    The pipeline owns no per-call state; one instance can serve many
    concurrent resolutions over its shared HTTP client.

    Example:
        async with MetadataPipeline(Config.load()) as pipeline:
            meta = await pipeline.lookup_song(Path("song.flac"))
    """

    def __init__(
        self,
        config: Config,
        http_client: httpx.AsyncClient | None = None,
        fingerprinter: FingerprintProvider | None = None,
    ):
        """
        Initialize pipeline.

        Args:
            config: Configuration; must carry an AcoustID client id
            http_client: Shared client (created from config and owned if omitted)
            fingerprinter: Fingerprint provider (defaults to fpcalc per config)

        Raises:
            ValueError: If no AcoustID client id is configured
        """
        self.config = config
        sources = config.live_sources
        client_id = config.require_client_id()

        self._owns_client = http_client is None
        self._client = http_client or build_http_client(sources.timeout_s, sources.user_agent)

        self.acoustid = AcoustIDClient(client_id, self._client, sources.acoustid_url)
        self.musicbrainz = MusicBrainzClient(
            self._client, sources.musicbrainz_url, sources.user_agent
        )
        self.coverart = CoverArtClient(self._client, sources.coverart_url)

        if fingerprinter is None:
            fingerprinter = partial(
                calculate_fingerprint,
                fpcalc_path=config.fingerprint.fpcalc_path,
                timeout_sec=config.fingerprint.timeout_s,
            )
        self.fingerprinter = fingerprinter

    async def resolve(self, fp: FingerprintData) -> SongMetadata:
        """
        Resolve a fingerprint into song metadata.

        Raises:
            TransportError: A remote service failed (artwork failures only when
                pipeline.artwork_errors_fatal is set)
            ProtocolViolation: A service broke its response contract
            NoCandidatesError: Nothing to choose from
            NoRecordingsError: Best match has no linked MusicBrainz recording
        """
        candidates = await self.acoustid.lookup(fp)
        best = select_best(candidates)
        recording_ref = select_recording(best)

        recording = await self.musicbrainz.get_recording(recording_ref.id)
        album = disambiguate(recording)
        album_art = await self._resolve_art(album.release_group_id)

        return SongMetadata(
            title=recording.title,
            artist=recording.primary_artist,
            album=album.title,
            album_art=album_art,
            duration=fp.duration,
        )

    async def _resolve_art(self, release_group_id: str | None) -> str | None:
        try:
            return await self.coverart.resolve_art(release_group_id)
        except TransportError as e:
            if self.config.pipeline.artwork_errors_fatal:
                raise
            logger.warning(
                "Album art lookup failed for %s, continuing without: %s", release_group_id, e
            )
            return None

    async def lookup_song(self, path: Path) -> SongMetadata:
        """
        Fingerprint an audio file and resolve its metadata.

        fpcalc runs in a worker thread so concurrent lookups don't block the loop.

        Raises:
            FingerprintError: If the file could not be fingerprinted
            ResolutionError: Any failure from resolve()
        """
        fp = await asyncio.to_thread(self.fingerprinter, path)
        hash_paths = self.config.logging.hash_paths
        logger.info("Resolving metadata for %s", safe_path(path, use_hash=hash_paths))
        meta = await self.resolve(fp)
        logger.info("Resolved %s - %s (%s)", meta.artist, meta.title, meta.album)
        return meta

    async def aclose(self) -> None:
        """Close the HTTP client if this pipeline created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> MetadataPipeline:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
