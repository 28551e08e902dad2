"""Login credentials and the decoding of encrypted credential blobs."""

from __future__ import annotations

import base64
import binascii
import enum
import hashlib
import io
import json
from dataclasses import dataclass
from typing import Union

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

_AES_BLOCK_SIZE = 16
_KEY_DERIVATION_ROUNDS = 0x100


class AuthenticationType(enum.IntEnum):
    AUTHENTICATION_USER_PASS = 0
    AUTHENTICATION_STORED_SPOTIFY_CREDENTIALS = 1
    AUTHENTICATION_STORED_FACEBOOK_CREDENTIALS = 2
    AUTHENTICATION_SPOTIFY_TOKEN = 3
    AUTHENTICATION_FACEBOOK_TOKEN = 4


class _BlobReader:
    """Reads the length-prefixed fields of a decrypted credentials blob."""

    def __init__(self, data: bytes) -> None:
        self._stream = io.BytesIO(data)

    def _read_exact(self, size: int) -> bytes:
        chunk = self._stream.read(size)
        if len(chunk) != size:
            raise ValueError("credentials blob ended unexpectedly")
        return chunk

    def read_u8(self) -> int:
        return self._read_exact(1)[0]

    def read_int(self) -> int:
        lo = self.read_u8()
        if lo & 0x80 == 0:
            return lo
        hi = self.read_u8()
        return (lo & 0x7F) | (hi << 7)

    def read_bytes(self) -> bytes:
        return self._read_exact(self.read_int())


def _as_bytes(value: Union[str, bytes, bytearray]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def _blob_key(username: str, device_id: bytes) -> bytes:
    secret = hashlib.sha1(device_id).digest()
    derived = hashlib.pbkdf2_hmac(
        "sha1", secret, username.encode("utf-8"), _KEY_DERIVATION_ROUNDS, dklen=20
    )
    return hashlib.sha1(derived).digest() + (20).to_bytes(4, "big")


@dataclass
class Credentials:
    """The credentials used to log in."""

    username: str
    auth_type: AuthenticationType
    auth_data: bytes

    @classmethod
    def with_password(cls, username: str, password: str) -> "Credentials":
        """Create credentials from a username and a password."""
        return cls(
            username=username,
            auth_type=AuthenticationType.AUTHENTICATION_USER_PASS,
            auth_data=password.encode("utf-8"),
        )

    @classmethod
    def with_blob(
        cls,
        username: str,
        encrypted_blob: Union[str, bytes, bytearray],
        device_id: Union[str, bytes, bytearray],
    ) -> "Credentials":
        """Decode a base64, AES-192-ECB encrypted credentials blob."""
        key = _blob_key(username, _as_bytes(device_id))

        try:
            data = bytearray(base64.b64decode(_as_bytes(encrypted_blob), validate=True))
        except binascii.Error as exc:
            raise ValueError(f"invalid base64 in credentials blob: {exc}") from None

        if not data or len(data) % _AES_BLOCK_SIZE:
            raise ValueError("credentials blob length is not a positive multiple of 16")

        decryptor = Cipher(algorithms.AES(key), modes.ECB()).decryptor()
        data = bytearray(decryptor.update(bytes(data)) + decryptor.finalize())

        length = len(data)
        for index in range(length - 1, _AES_BLOCK_SIZE - 1, -1):
            data[index] ^= data[index - _AES_BLOCK_SIZE]

        reader = _BlobReader(bytes(data))
        reader.read_u8()
        reader.read_bytes()
        reader.read_u8()
        raw_type = reader.read_int()
        try:
            auth_type = AuthenticationType(raw_type)
        except ValueError:
            raise ValueError(f"unknown authentication type {raw_type}") from None
        reader.read_u8()
        auth_data = reader.read_bytes()

        return cls(username=username, auth_type=auth_type, auth_data=auth_data)

    def to_json(self) -> str:
        """Serialise to compact JSON with base64-encoded authentication data."""
        return json.dumps(
            {
                "username": self.username,
                "auth_type": int(self.auth_type),
                "auth_data": base64.b64encode(self.auth_data).decode("ascii"),
            },
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "Credentials":
        """Parse credentials written by :meth:`to_json`."""
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("credentials must be a JSON object")

        username = data.get("username")
        if not isinstance(username, str):
            raise ValueError("missing or invalid field 'username'")

        raw_type = data.get("auth_type")
        if not isinstance(raw_type, int) or isinstance(raw_type, bool):
            raise ValueError("missing or invalid field 'auth_type'")
        try:
            auth_type = AuthenticationType(raw_type)
        except ValueError:
            raise ValueError("Invalid enum value") from None

        encoded = data.get("auth_data", data.get("encoded_auth_blob"))
        if not isinstance(encoded, str):
            raise ValueError("missing or invalid field 'auth_data'")
        try:
            auth_data = base64.b64decode(encoded, validate=True)
        except binascii.Error as exc:
            raise ValueError(str(exc)) from None

        return cls(username=username, auth_type=auth_type, auth_data=auth_data)