__all__ = (
    "main",
    "Config",
    "MetadataPipeline",
    "SongMetadata",
    "FingerprintData",
    "calculate_fingerprint",
    "AcoustIDClient",
    "IdentityCandidate",
    "RecordingRef",
    "MusicBrainzClient",
    "CanonicalRecording",
    "CoverArtClient",
    "ReleaseType",
    "AlbumChoice",
    "disambiguate",
    "select_best",
    "select_recording",
    # Errors
    "ResolutionError",
    "TransportError",
    "ServiceError",
    "ProtocolViolation",
    "NoCandidatesError",
    "NoRecordingsError",
    "FingerprintError",
    # Queue
    "GlobalQueue",
    "UserQueue",
    "Song",
    "SongOrigin",
    "OriginKind",
)

from jukebox_meta.acoustid import AcoustIDClient, IdentityCandidate, RecordingRef
from jukebox_meta.cli import main
from jukebox_meta.config import Config
from jukebox_meta.coverart import CoverArtClient
from jukebox_meta.errors import (
    FingerprintError,
    NoCandidatesError,
    NoRecordingsError,
    ProtocolViolation,
    ResolutionError,
    ServiceError,
    TransportError,
)
from jukebox_meta.fingerprint import FingerprintData, calculate_fingerprint
from jukebox_meta.musicbrainz import CanonicalRecording, MusicBrainzClient
from jukebox_meta.pipeline import MetadataPipeline, SongMetadata
from jukebox_meta.release import AlbumChoice, ReleaseType, disambiguate
from jukebox_meta.selection import select_best, select_recording
from jukebox_meta.song_queue import GlobalQueue, OriginKind, Song, SongOrigin, UserQueue
