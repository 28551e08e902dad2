"""Opening a tunnel through an HTTP proxy with the CONNECT method."""

from __future__ import annotations

import asyncio
from typing import Tuple, Union

_MAX_HEADERS = 16
_READ_SIZE = 4096


def _parse_response_head(head: bytes) -> Tuple[int, str]:
    lines = head.split(b"\r\n")
    try:
        status_line = lines[0].decode("ascii")
    except UnicodeDecodeError:
        raise OSError("Malformed response from proxy") from None

    parts = status_line.split(" ", 2)
    if len(parts) < 2 or parts[0] not in ("HTTP/1.0", "HTTP/1.1"):
        raise OSError("Malformed response from proxy")
    code_text = parts[1]
    if len(code_text) != 3 or not code_text.isdigit():
        raise OSError("Malformed response from proxy")
    reason = parts[2] if len(parts) == 3 else "no reason"

    headers = lines[1:]
    if len(headers) > _MAX_HEADERS:
        raise OSError("Too many headers in response from proxy")
    if any(b":" not in line for line in headers):
        raise OSError("Malformed header in response from proxy")

    return int(code_text), reason


async def proxy_connect(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    connect_host: str,
    connect_port: Union[str, int],
) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Ask the proxy behind the streams to connect to the host; return the streams."""
    request = f"CONNECT {connect_host}:{connect_port} HTTP/1.1\r\n\r\n".encode("utf-8")
    writer.write(request)
    await writer.drain()

    buffer = bytearray()
    while True:
        chunk = await reader.read(_READ_SIZE)
        if not chunk:
            raise OSError("Early EOF from proxy")
        buffer += chunk
        end = buffer.find(b"\r\n\r\n")
        if end < 0:
            continue
        code, reason = _parse_response_head(bytes(buffer[:end]))
        if code == 200:
            return reader, writer
        raise OSError(f"Proxy responded with {code}: {reason}")