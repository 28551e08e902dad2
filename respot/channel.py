"""Multiplexed data channels carried over the access-point connection."""

from __future__ import annotations

import asyncio
import enum
import logging
import threading
from dataclasses import dataclass
from time import monotonic
from typing import AsyncIterator, Optional, Tuple, Union

from respot.util import SeqGenerator

log = logging.getLogger(__name__)

ONE_SECOND_IN_MS = 1000
CHANNEL_ERROR_CMD = 0xA

_CLOSED = object()


class ChannelError(Exception):
    """Raised when a channel fails or is closed before it finished."""


@dataclass(frozen=True)
class HeaderEvent:
    header_id: int
    data: bytes


@dataclass(frozen=True)
class DataEvent:
    data: bytes


ChannelEvent = Union[HeaderEvent, DataEvent]


class _State(enum.Enum):
    HEADER = enum.auto()
    DATA = enum.auto()
    CLOSED = enum.auto()


class Channel:
    """An asynchronous stream of header events followed by data events."""

    def __init__(self, queue: "asyncio.Queue[object]") -> None:
        self._queue = queue
        self._state = _State.HEADER
        self._header_buffer = b""
        self._pushback: Optional[DataEvent] = None
        self._failed = False
        self._lock = asyncio.Lock()

    async def _recv_packet(self) -> bytes:
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise ChannelError("channel closed")
        cmd, packet = item
        if cmd == CHANNEL_ERROR_CMD:
            code = int.from_bytes(packet[:2], "big")
            log.error("channel error: %d %d", len(packet), code)
            self._state = _State.CLOSED
            self._failed = True
            raise ChannelError(f"channel error {code}")
        return packet

    async def _next_event(self) -> ChannelEvent:
        while True:
            if self._state is _State.CLOSED:
                if self._failed:
                    raise ChannelError("channel already failed")
                raise StopAsyncIteration

            if self._state is _State.HEADER:
                data = self._header_buffer or await self._recv_packet()
                if len(data) < 2:
                    raise ChannelError("truncated channel header")
                length = int.from_bytes(data[:2], "big")
                data = data[2:]
                if length == 0:
                    if data:
                        raise ChannelError("unexpected data after header terminator")
                    self._header_buffer = b""
                    self._state = _State.DATA
                    continue
                if len(data) < length:
                    raise ChannelError("truncated channel header")
                self._header_buffer = data[length:]
                return HeaderEvent(data[0], data[1:length])

            data = await self._recv_packet()
            if not data:
                self._state = _State.CLOSED
                raise StopAsyncIteration
            return DataEvent(data)

    def __aiter__(self) -> "Channel":
        return self

    async def __anext__(self) -> ChannelEvent:
        async with self._lock:
            if self._pushback is not None:
                event, self._pushback = self._pushback, None
                return event
            return await self._next_event()

    async def headers(self) -> AsyncIterator[Tuple[int, bytes]]:
        """Yield ``(header_id, data)`` pairs until the headers are finished."""
        while True:
            async with self._lock:
                if self._pushback is not None or self._state is not _State.HEADER:
                    return
                try:
                    event = await self._next_event()
                except StopAsyncIteration:
                    return
                if isinstance(event, DataEvent):
                    self._pushback = event
                    return
            yield event.header_id, event.data

    async def data(self) -> AsyncIterator[bytes]:
        """Yield the data chunks, skipping any headers not yet consumed."""
        while True:
            try:
                event = await self.__anext__()
            except StopAsyncIteration:
                return
            if isinstance(event, DataEvent):
                yield event.data


class ChannelManager:
    """Allocates channel ids and routes incoming packets to their channels."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sequence = SeqGenerator(0, bits=16)
        self._channels: dict[int, "asyncio.Queue[object]"] = {}
        self._download_rate_estimate = 0
        self._measurement_start: Optional[float] = None
        self._measurement_bytes = 0
        self._invalid = False

    def allocate(self) -> Tuple[int, Channel]:
        """Reserve a new channel id and return it with its channel."""
        queue: "asyncio.Queue[object]" = asyncio.Queue()
        with self._lock:
            seq = self._sequence.get()
            if self._invalid:
                queue.put_nowait(_CLOSED)
            else:
                self._channels[seq] = queue
        return seq, Channel(queue)

    def dispatch(self, cmd: int, data: bytes) -> None:
        """Route a packet whose first two bytes name the channel."""
        data = bytes(data)
        if len(data) < 2:
            raise ValueError("channel packet too short")
        channel_id = int.from_bytes(data[:2], "big")
        payload = data[2:]

        with self._lock:
            now = monotonic()
            if self._measurement_start is None:
                self._measurement_start = now
            else:
                elapsed_ms = int((now - self._measurement_start) * 1000)
                if elapsed_ms > ONE_SECOND_IN_MS:
                    self._download_rate_estimate = (
                        ONE_SECOND_IN_MS * self._measurement_bytes // elapsed_ms
                    )
                    self._measurement_start = now
                    self._measurement_bytes = 0
            self._measurement_bytes += len(payload)

            queue = self._channels.get(channel_id)
            if queue is not None:
                queue.put_nowait((cmd, payload))

    def get_download_rate_estimate(self) -> int:
        """Return the last measured download rate in bytes per second."""
        with self._lock:
            return self._download_rate_estimate

    def shutdown(self) -> None:
        """Close every channel and refuse new ones."""
        with self._lock:
            self._invalid = True
            for queue in self._channels.values():
                queue.put_nowait(_CLOSED)
            self._channels.clear()