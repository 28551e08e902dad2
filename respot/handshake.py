"""Key derivation for the access-point handshake."""

from __future__ import annotations

import hashlib
import hmac
from typing import Tuple


def compute_keys(shared_secret: bytes, packets: bytes) -> Tuple[bytes, bytes, bytes]:
    """Derive ``(challenge, send_key, recv_key)`` from the shared secret and the exchanged packets."""
    secret = bytes(shared_secret)
    packets = bytes(packets)
    data = b"".join(
        hmac.new(secret, packets + bytes([i]), hashlib.sha1).digest() for i in range(1, 6)
    )
    challenge = hmac.new(data[:0x14], packets, hashlib.sha1).digest()
    return challenge, data[0x14:0x34], data[0x34:0x54]