"""
Release group disambiguation.

A recording usually appears on several releases (the album, a single, a
compilation...). Picking the one to show as "album" is a fixed priority
policy over release group primary types, expressed as an ordered rule table
so the policy stays auditable:

    Album > EP > Single > "Unrecognized Release Type"

Album and EP matches report the group's own title; a Single match reports
the literal title "Single". The fallback produces no release group id, so
no artwork is looked up for it.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jukebox_meta.musicbrainz import CanonicalRecording

NOT_FOUND = "Not Found"
NO_RELEASE = "None"
SINGLE_TITLE = "Single"
UNRECOGNIZED_RELEASE = "Unrecognized Release Type"


class ReleaseType(StrEnum):
    """Release group primary types used by MusicBrainz and AcoustID."""

    ALBUM = "Album"
    SINGLE = "Single"
    EP = "EP"
    BROADCAST = "Broadcast"
    OTHER = "Other"


_TYPES_BY_NAME = {t.value.lower(): t for t in ReleaseType}


def parse_release_type(raw: str | None) -> ReleaseType | str | None:
    """
    Map a primary type string onto ReleaseType.

    Unknown types are kept as the raw string: they are present (so the group
    takes part in disambiguation) but never match a rule.
    """
    if not raw:
        return None
    return _TYPES_BY_NAME.get(raw.lower(), raw)


@dataclass(frozen=True)
class ReleaseGroupRef:
    """Album/EP/Single grouping of releases."""

    id: str
    title: str
    primary_type: ReleaseType | str | None = None


@dataclass(frozen=True)
class AlbumChoice:
    """Outcome of disambiguation: the album title to show and the group to fetch art for."""

    title: str
    release_group_id: str | None = None


@dataclass(frozen=True)
class ReleaseRule:
    """One priority level: which groups it matches and how it reports them."""

    name: str
    matches: Callable[[ReleaseGroupRef], bool]
    extract: Callable[[ReleaseGroupRef], AlbumChoice]


def _is_type(release_type: ReleaseType) -> Callable[[ReleaseGroupRef], bool]:
    return lambda rg: rg.primary_type == release_type


def _own_title(rg: ReleaseGroupRef) -> AlbumChoice:
    return AlbumChoice(title=rg.title, release_group_id=rg.id)


def _single_title(rg: ReleaseGroupRef) -> AlbumChoice:
    return AlbumChoice(title=SINGLE_TITLE, release_group_id=rg.id)


# Highest priority first
RELEASE_RULES: tuple[ReleaseRule, ...] = (
    ReleaseRule("album", _is_type(ReleaseType.ALBUM), _own_title),
    ReleaseRule("ep", _is_type(ReleaseType.EP), _own_title),
    ReleaseRule("single", _is_type(ReleaseType.SINGLE), _single_title),
)


def choose_release_group(
    groups: Iterable[ReleaseGroupRef],
    rules: tuple[ReleaseRule, ...] = RELEASE_RULES,
) -> AlbumChoice:
    """
    Apply the rule table to typed release groups.

    For each rule in priority order, the first group (in input order) it
    matches wins. Groups without a primary type are ignored.

    Returns:
        AlbumChoice; title "None" when no typed group exists,
        "Unrecognized Release Type" when none matches a rule
    """
    typed = [rg for rg in groups if rg.primary_type is not None]
    if not typed:
        return AlbumChoice(title=NO_RELEASE)

    for rule in rules:
        for rg in typed:
            if rule.matches(rg):
                return rule.extract(rg)

    return AlbumChoice(title=UNRECOGNIZED_RELEASE)


def disambiguate(recording: CanonicalRecording) -> AlbumChoice:
    """
    Pick the album to report for a canonical recording.

    Never raises: missing data degrades to sentinel titles. When the catalog
    did not return a release list at all the album stays "Not Found".
    """
    if recording.releases is None:
        return AlbumChoice(title=NOT_FOUND)

    groups = [rel.release_group for rel in recording.releases if rel.release_group is not None]
    return choose_release_group(groups)


## Tests


def test_parse_release_type():
    assert parse_release_type("Album") is ReleaseType.ALBUM
    assert parse_release_type("ep") is ReleaseType.EP
    assert parse_release_type("Audiobook") == "Audiobook"
    assert parse_release_type(None) is None
    assert parse_release_type("") is None


def test_rule_table_order():
    assert [rule.name for rule in RELEASE_RULES] == ["album", "ep", "single"]
