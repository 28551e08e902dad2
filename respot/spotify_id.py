"""Identifiers for tracks, episodes and files, and their textual encodings."""

from __future__ import annotations

import enum
from dataclasses import dataclass

BASE62_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE16_DIGITS = "0123456789abcdef"

_BASE62_VALUES = {c: i for i, c in enumerate(BASE62_DIGITS)}
_BASE16_VALUES = {c: i for i, c in enumerate(BASE16_DIGITS)}

SIZE = 16
SIZE_BASE16 = 32
SIZE_BASE62 = 22
_ID_MASK = (1 << 128) - 1


class SpotifyIdError(ValueError):
    """Raised when an identifier cannot be parsed."""


class SpotifyAudioType(enum.Enum):
    TRACK = "track"
    PODCAST = "episode"
    NON_PLAYABLE = "unknown"

    @classmethod
    def parse(cls, value: str) -> "SpotifyAudioType":
        """Map a URI type component to an audio type; anything unknown is non-playable."""
        if value == "track":
            return cls.TRACK
        if value == "episode":
            return cls.PODCAST
        return cls.NON_PLAYABLE

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SpotifyId:
    """A 128-bit identifier together with the kind of item it names."""

    id: int
    audio_type: SpotifyAudioType = SpotifyAudioType.TRACK

    def __post_init__(self) -> None:
        if not 0 <= self.id <= _ID_MASK:
            raise ValueError("id must fit in 128 bits")

    @classmethod
    def from_base16(cls, src: str) -> "SpotifyId":
        """Parse a lower-case hexadecimal identifier."""
        dst = 0
        for c in src:
            try:
                digit = _BASE16_VALUES[c]
            except KeyError:
                raise SpotifyIdError(f"invalid base16 character {c!r}") from None
            dst = ((dst << 4) & _ID_MASK) + digit
            if dst > _ID_MASK:
                raise SpotifyIdError("base16 identifier out of range")
        return cls(dst)

    @classmethod
    def from_base62(cls, src: str) -> "SpotifyId":
        """Parse a base62 identifier."""
        dst = 0
        for c in src:
            try:
                digit = _BASE62_VALUES[c]
            except KeyError:
                raise SpotifyIdError(f"invalid base62 character {c!r}") from None
            dst = dst * 62 + digit
            if dst > _ID_MASK:
                raise SpotifyIdError("base62 identifier out of range")
        return cls(dst)

    @classmethod
    def from_raw(cls, src: bytes) -> "SpotifyId":
        """Build an identifier from exactly 16 big-endian bytes."""
        if len(src) != SIZE:
            raise SpotifyIdError(f"raw identifier must be {SIZE} bytes, got {len(src)}")
        return cls(int.from_bytes(bytes(src), "big"))

    @classmethod
    def from_uri(cls, src: str) -> "SpotifyId":
        """Parse a URI of the form ``spotify:{type}:{base62 id}``."""
        prefix = "spotify:"
        if not src.startswith(prefix):
            raise SpotifyIdError("URI must start with 'spotify:'")
        rest = src[len(prefix):].encode("utf-8")
        if len(rest) <= SIZE_BASE62:
            raise SpotifyIdError("URI too short")
        colon_index = len(rest) - SIZE_BASE62 - 1
        if rest[colon_index : colon_index + 1] != b":":
            raise SpotifyIdError("missing ':' before identifier")
        try:
            encoded = rest[colon_index + 1 :].decode("utf-8")
            kind = rest[:colon_index].decode("utf-8")
        except UnicodeDecodeError:
            raise SpotifyIdError("invalid URI encoding") from None
        parsed = cls.from_base62(encoded)
        return cls(parsed.id, SpotifyAudioType.parse(kind))

    def to_base16(self) -> str:
        """Return the 32-character hexadecimal form."""
        return _to_base16(self.to_raw())

    def to_base62(self) -> str:
        """Return the 22-character base62 form, zero-padded."""
        digits = []
        n = self.id
        for _ in range(SIZE_BASE62):
            n, rem = divmod(n, 62)
            digits.append(BASE62_DIGITS[rem])
        return "".join(reversed(digits))

    def to_raw(self) -> bytes:
        """Return the identifier as 16 big-endian bytes."""
        return self.id.to_bytes(SIZE, "big")

    def to_uri(self) -> str:
        """Return the canonical ``spotify:{type}:{id}`` URI."""
        return f"spotify:{self.audio_type.value}:{self.to_base62()}"


@dataclass(frozen=True, order=True)
class FileId:
    """A 20-byte identifier of an audio or image file."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != 20:
            raise ValueError(f"file id must be 20 bytes, got {len(self.raw)}")
        object.__setattr__(self, "raw", bytes(self.raw))

    def to_base16(self) -> str:
        """Return the 40-character hexadecimal form."""
        return _to_base16(self.raw)

    def __str__(self) -> str:
        return self.to_base16()

    def __repr__(self) -> str:
        return f"FileId({self.to_base16()!r})"


def _to_base16(src: bytes) -> str:
    return "".join(BASE16_DIGITS[b >> 4] + BASE16_DIGITS[b & 0x0F] for b in src)