from unittest import mock

import pytest

from respot.channel import ChannelError, ChannelManager, DataEvent, HeaderEvent

CHANNEL_DATA = 0x9
CHANNEL_ERROR = 0xA
TERMINATOR = b"\x00\x00"


def _packet(channel_id, payload=b""):
    return channel_id.to_bytes(2, "big") + payload


def _header(header_id, body):
    return (len(body) + 1).to_bytes(2, "big") + bytes([header_id]) + body


async def _collect(channel):
    return [event async for event in channel]


def test_allocate_hands_out_sequential_ids():
    manager = ChannelManager()
    ids = [manager.allocate()[0] for _ in range(3)]
    assert ids == [0, 1, 2]


@pytest.mark.asyncio
async def test_channel_yields_headers_then_data():
    manager = ChannelManager()
    cid, channel = manager.allocate()
    manager.dispatch(CHANNEL_DATA, _packet(cid, _header(7, b"ab") + _header(1, b"") + TERMINATOR))
    manager.dispatch(CHANNEL_DATA, _packet(cid, b"hello"))
    manager.dispatch(CHANNEL_DATA, _packet(cid, b""))
    events = await _collect(channel)
    assert events == [HeaderEvent(7, b"ab"), HeaderEvent(1, b""), DataEvent(b"hello")]


@pytest.mark.asyncio
async def test_headers_across_packets():
    manager = ChannelManager()
    cid, channel = manager.allocate()
    manager.dispatch(CHANNEL_DATA, _packet(cid, _header(3, b"xyz")))
    manager.dispatch(CHANNEL_DATA, _packet(cid, TERMINATOR))
    manager.dispatch(CHANNEL_DATA, _packet(cid, b"payload"))
    manager.dispatch(CHANNEL_DATA, _packet(cid, b""))
    events = await _collect(channel)
    assert events == [HeaderEvent(3, b"xyz"), DataEvent(b"payload")]


@pytest.mark.asyncio
async def test_finished_channel_keeps_stopping():
    manager = ChannelManager()
    cid, channel = manager.allocate()
    manager.dispatch(CHANNEL_DATA, _packet(cid, TERMINATOR))
    manager.dispatch(CHANNEL_DATA, _packet(cid, b""))
    assert await _collect(channel) == []
    with pytest.raises(StopAsyncIteration):
        await channel.__anext__()


@pytest.mark.asyncio
async def test_error_command_fails_channel():
    manager = ChannelManager()
    cid, channel = manager.allocate()
    manager.dispatch(CHANNEL_ERROR, _packet(cid, b"\x00\x02"))
    with pytest.raises(ChannelError):
        await channel.__anext__()
    with pytest.raises(ChannelError):
        await channel.__anext__()


@pytest.mark.asyncio
async def test_shutdown_fails_pending_and_new_channels():
    manager = ChannelManager()
    _, channel = manager.allocate()
    manager.shutdown()
    with pytest.raises(ChannelError):
        await channel.__anext__()
    _, late = manager.allocate()
    with pytest.raises(ChannelError):
        await late.__anext__()


@pytest.mark.asyncio
async def test_headers_then_data_streams():
    manager = ChannelManager()
    cid, channel = manager.allocate()
    manager.dispatch(CHANNEL_DATA, _packet(cid, _header(7, b"ab") + TERMINATOR))
    manager.dispatch(CHANNEL_DATA, _packet(cid, b"abc"))
    manager.dispatch(CHANNEL_DATA, _packet(cid, b"def"))
    manager.dispatch(CHANNEL_DATA, _packet(cid, b""))
    headers = [h async for h in channel.headers()]
    data = [d async for d in channel.data()]
    assert headers == [(7, b"ab")]
    assert data == [b"abc", b"def"]


@pytest.mark.asyncio
async def test_data_stream_skips_headers():
    manager = ChannelManager()
    cid, channel = manager.allocate()
    manager.dispatch(CHANNEL_DATA, _packet(cid, _header(1, b"q") + TERMINATOR))
    manager.dispatch(CHANNEL_DATA, _packet(cid, b"chunk"))
    manager.dispatch(CHANNEL_DATA, _packet(cid, b""))
    assert [d async for d in channel.data()] == [b"chunk"]


@pytest.mark.asyncio
async def test_packets_for_unknown_channel_are_dropped():
    manager = ChannelManager()
    cid, channel = manager.allocate()
    manager.dispatch(CHANNEL_DATA, _packet(cid + 40, b"stray"))
    manager.dispatch(CHANNEL_DATA, _packet(cid, TERMINATOR))
    manager.dispatch(CHANNEL_DATA, _packet(cid, b"mine"))
    manager.dispatch(CHANNEL_DATA, _packet(cid, b""))
    assert await _collect(channel) == [DataEvent(b"mine")]


def test_dispatch_rejects_short_packet():
    with pytest.raises(ValueError):
        ChannelManager().dispatch(CHANNEL_DATA, b"\x00")


def test_download_rate_estimate():
    manager = ChannelManager()
    with mock.patch("respot.channel.monotonic", side_effect=[0.0, 0.5, 2.0]):
        manager.dispatch(CHANNEL_DATA, _packet(5, b"x" * 100))
        manager.dispatch(CHANNEL_DATA, _packet(5, b"x" * 300))
        assert manager.get_download_rate_estimate() == 0
        manager.dispatch(CHANNEL_DATA, _packet(5, b"x" * 10))
    assert manager.get_download_rate_estimate() == 200