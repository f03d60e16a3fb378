"""Best-candidate selection over AcoustID results."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from jukebox_meta.acoustid import IdentityCandidate, RecordingRef
from jukebox_meta.errors import NoCandidatesError, NoRecordingsError

logger = logging.getLogger(__name__)


def select_best(candidates: Sequence[IdentityCandidate]) -> IdentityCandidate:
    """
    Pick the candidate with the highest score.

    Ties go to the candidate that appears first; the list is never re-sorted.

    Raises:
        NoCandidatesError: If there are no candidates
    """
    if not candidates:
        raise NoCandidatesError("No AcoustID candidates to choose from")

    best = candidates[0]
    for candidate in candidates[1:]:
        if candidate.score > best.score:
            best = candidate

    logger.debug("Found best result with AcoustID %s and score %s", best.id, best.score)
    return best


def select_recording(candidate: IdentityCandidate) -> RecordingRef:
    """
    Pick the recording to enrich: the first one linked to the candidate.

    Raises:
        NoRecordingsError: If the candidate has no linked recordings
    """
    if not candidate.recordings:
        raise NoRecordingsError(candidate.id)

    logger.debug("Found %d recordings for AcoustID %s", len(candidate.recordings), candidate.id)
    return candidate.recordings[0]
