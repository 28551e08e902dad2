"""Metadata request addresses, country restrictions and cover art requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence

from respot.spotify_id import FileId, SpotifyId

COVER_REQUEST_CMD = 0x19
PREMIUM_CATALOGUE = "premium"

_BASE16_KINDS = frozenset({"track", "album", "artist", "episode", "show"})
_PLAYLIST_KIND = "playlist"


@dataclass(frozen=True)
class Restriction:
    """Which countries may or may not play an item in the listed catalogues."""

    catalogue_str: Sequence[str] = ()
    countries_forbidden: Optional[str] = None
    countries_allowed: Optional[str] = None


def _chunks(text: str, size: int) -> Iterator[str]:
    for start in range(0, len(text), size):
        yield text[start : start + size]


def countrylist_contains(countries: str, country: str) -> bool:
    """Whether a concatenated list of two-letter country codes holds ``country``."""
    return any(code == country for code in _chunks(countries, 2))


def parse_restrictions(
    restrictions: Iterable[Restriction], country: str, catalogue: str
) -> bool:
    """Whether an item is available in ``country`` for ``catalogue``.

    An item with no matching restrictions at all is not available.
    """
    forbidden = ""
    has_forbidden = False
    allowed = ""
    has_allowed = False

    for restriction in restrictions:
        if catalogue not in restriction.catalogue_str:
            continue
        if restriction.countries_forbidden is not None:
            forbidden += restriction.countries_forbidden
            has_forbidden = True
        if restriction.countries_allowed is not None:
            allowed += restriction.countries_allowed
            has_allowed = True

    return (
        (has_forbidden or has_allowed)
        and (not has_forbidden or not countrylist_contains(forbidden, country))
        and (not has_allowed or countrylist_contains(allowed, country))
    )


def metadata_url(kind: str, id: SpotifyId) -> str:
    """Return the request address for an item of the given kind.

    ``kind`` is one of track, album, artist, episode, show or playlist.
    """
    if kind in _BASE16_KINDS:
        return f"hm://metadata/3/{kind}/{id.to_base16()}"
    if kind == _PLAYLIST_KIND:
        return f"hm://playlist/v2/playlist/{id.to_base62()}"
    raise ValueError(f"unknown metadata kind {kind!r}")


def build_cover_request(channel_id: int, file: FileId) -> bytes:
    """Build the payload of a cover image request sent on a data channel."""
    if not 0 <= channel_id <= 0xFFFF:
        raise ValueError(f"channel id {channel_id} does not fit in 16 bits")
    return channel_id.to_bytes(2, "big") + (0).to_bytes(2, "big") + file.raw