"""
Round-robin song queue.

Each submitter has their own queue. The global queue pulls one song at a
time from each submitter in turn, so nobody can monopolize playback by
submitting many songs at once.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jukebox_meta.pipeline import MetadataPipeline, SongMetadata

logger = logging.getLogger(__name__)


class OriginKind(StrEnum):
    """Where a song's audio comes from."""

    YOUTUBE = "youtube"
    SPOTIFY = "spotify"
    SOUNDCLOUD = "soundcloud"
    FILE_UPLOAD = "file_upload"


@dataclass(frozen=True)
class SongOrigin:
    """Origin of a song: a URL for remote sources, a local path for uploads."""

    kind: OriginKind
    location: str


@dataclass
class Song:
    """A queued song plus whatever metadata has been resolved for it."""

    origin: SongOrigin
    submitter: str
    metadata: SongMetadata | None = None
    path: Path | None = None

    def __post_init__(self) -> None:
        if self.path is None and self.origin.kind == OriginKind.FILE_UPLOAD:
            self.path = Path(self.origin.location)

    async def fetch_metadata(self, pipeline: MetadataPipeline) -> SongMetadata:
        """
        Return the song's metadata, resolving it on first use.

        Raises:
            ValueError: If the song has no local audio file yet
            ResolutionError: If resolution fails
        """
        if self.metadata is not None:
            return self.metadata
        if self.path is None:
            raise ValueError("Song has not been fetched yet")

        self.metadata = await pipeline.lookup_song(self.path)
        return self.metadata


@dataclass
class UserQueue:
    """One submitter's pending songs."""

    user_id: str
    songs: deque[Song] = field(default_factory=deque)
    shuffle: bool = False

    def get_next(self, rng: random.Random | None = None) -> Song | None:
        """Take the next song (a random one when shuffling), or None if empty."""
        if not self.songs:
            return None
        if self.shuffle and len(self.songs) > 1:
            index = (rng or random).randrange(len(self.songs))
            song = self.songs[index]
            del self.songs[index]
            return song
        return self.songs.popleft()

    def has_songs(self) -> bool:
        return bool(self.songs)


class GlobalQueue:
    """Playback queue fed round-robin from per-user queues."""

    def __init__(self, rng: random.Random | None = None):
        self.queue: deque[Song] = deque()
        self.users: deque[UserQueue] = deque()
        self._rng = rng

    def register_user(self, user_id: str, shuffle: bool = False) -> UserQueue:
        """Register a submitter (or return their existing queue)."""
        for user in self.users:
            if user.user_id == user_id:
                return user
        user = UserQueue(user_id, shuffle=shuffle)
        self.users.append(user)
        return user

    def submit(self, song: Song) -> None:
        """Add a song to its submitter's queue, registering them if needed."""
        self.register_user(song.submitter).songs.append(song)

    def _pull_from_users(self) -> Song | None:
        # Users with no songs are dropped when their turn comes
        while self.users:
            user = self.users.popleft()
            song = user.get_next(self._rng)
            if song is not None:
                self.users.append(user)
                return song
            logger.debug("Dropping user %s with empty queue", user.user_id)
        return None

    def next(self, target_count: int) -> Song | None:
        """
        Pop the next song to play.

        Before popping, one more song is pulled from the next user in turn as
        long as the global queue holds at most ``target_count`` songs.
        """
        if len(self.queue) <= target_count:
            song = self._pull_from_users()
            if song is not None:
                self.queue.append(song)
        return self.queue.popleft() if self.queue else None

    def flush_songs(self, count: int) -> None:
        """Pull songs round-robin until at least ``count`` are queued or users run dry."""
        while len(self.queue) < count:
            song = self._pull_from_users()
            if song is None:
                break
            self.queue.append(song)

    def preview(self, count: int) -> list[Song]:
        """Up to ``count`` songs from the front of the global queue."""
        return list(self.queue)[:count]
