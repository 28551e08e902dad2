"""Requests for the decryption keys of audio files."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable

from respot.spotify_id import FileId, SpotifyId
from respot.util import SeqGenerator

log = logging.getLogger(__name__)

KEY_REQUEST_CMD = 0xC
KEY_CMD = 0xD
KEY_ERROR_CMD = 0xE
AUDIO_KEY_SIZE = 16


class AudioKeyError(Exception):
    """Raised when the server refuses or fails to deliver an audio key."""


def build_key_request(seq: int, track: SpotifyId, file: FileId) -> bytes:
    """Build the payload of a key request packet."""
    return file.raw + track.to_raw() + seq.to_bytes(4, "big") + (0).to_bytes(2, "big")


class AudioKeyManager:
    """Sends key requests and resolves them as the answers arrive."""

    def __init__(self, send_packet: Callable[[int, bytes], None]) -> None:
        self._send_packet = send_packet
        self._lock = threading.Lock()
        self._sequence = SeqGenerator(0, bits=32)
        self._pending: dict[int, asyncio.Future] = {}

    def dispatch(self, cmd: int, data: bytes) -> None:
        """Handle a key or key-error packet from the server."""
        data = bytes(data)
        if len(data) < 4:
            raise ValueError("audio key packet too short")
        seq = int.from_bytes(data[:4], "big")
        payload = data[4:]

        with self._lock:
            future = self._pending.pop(seq, None)
        if future is None or future.done():
            return

        if cmd == KEY_CMD:
            if len(payload) != AUDIO_KEY_SIZE:
                future.set_exception(AudioKeyError(f"audio key has {len(payload)} bytes"))
            else:
                future.set_result(payload)
        elif cmd == KEY_ERROR_CMD:
            code = payload[:2].hex()
            log.warning("error audio key %s", code)
            future.set_exception(AudioKeyError(f"error audio key {code}"))
        else:
            future.set_exception(AudioKeyError(f"unexpected command {cmd:#x}"))

    async def request(self, track: SpotifyId, file: FileId) -> bytes:
        """Request the 16-byte key of a file belonging to a track."""
        future = asyncio.get_running_loop().create_future()
        with self._lock:
            seq = self._sequence.get()
            self._pending[seq] = future
        try:
            self._send_packet(KEY_REQUEST_CMD, build_key_request(seq, track, file))
            return await future
        finally:
            with self._lock:
                if self._pending.get(seq) is future:
                    del self._pending[seq]