import json
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from respot.apresolve import (
    AP_FALLBACK,
    ApResolveError,
    apresolve,
    select_access_point,
    try_apresolve,
)

AP_LIST = ["ap-a.example.com:4070", "ap-b.example.com:443", "ap-c.example.com:80"]


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        self.server.paths.append(self.path)
        body = self.server.body
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, *args):
        return None


@pytest.fixture
def fake_proxy():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    server.body = json.dumps({"ap_list": AP_LIST}).encode()
    server.paths = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    server.url = f"http://127.0.0.1:{server.server_address[1]}"
    yield server
    server.shutdown()
    server.server_close()
    thread.join()


def _closed_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_select_first_without_port_or_proxy():
    assert select_access_point(AP_LIST) == AP_LIST[0]


def test_select_by_port():
    assert select_access_point(AP_LIST, ap_port=80) == "ap-c.example.com:80"


def test_select_with_proxy_defaults_to_443():
    assert select_access_point(AP_LIST, proxy="http://proxy.example.com:3128") == AP_LIST[1]


def test_select_no_match_raises():
    with pytest.raises(ApResolveError, match="empty AP List"):
        select_access_point(AP_LIST, ap_port=8080)


def test_select_empty_list_raises():
    with pytest.raises(ApResolveError):
        select_access_point([])


@pytest.mark.asyncio
async def test_try_apresolve_through_proxy(fake_proxy):
    ap = await try_apresolve(fake_proxy.url, None)
    assert ap == "ap-b.example.com:443"
    assert fake_proxy.paths[0].startswith("http://apresolve.spotify.com")


@pytest.mark.asyncio
async def test_try_apresolve_with_port(fake_proxy):
    assert await try_apresolve(fake_proxy.url, 4070) == "ap-a.example.com:4070"


@pytest.mark.asyncio
async def test_invalid_body_raises_and_falls_back(fake_proxy):
    fake_proxy.body = b"not json"
    with pytest.raises(ApResolveError):
        await try_apresolve(fake_proxy.url, None)
    assert await apresolve(fake_proxy.url, None) == AP_FALLBACK


@pytest.mark.asyncio
async def test_missing_ap_list_raises(fake_proxy):
    fake_proxy.body = json.dumps({"other": []}).encode()
    with pytest.raises(ApResolveError):
        await try_apresolve(fake_proxy.url, None)


@pytest.mark.asyncio
async def test_unreachable_proxy_uses_fallback():
    proxy = f"http://127.0.0.1:{_closed_port()}"
    with pytest.raises(ApResolveError):
        await try_apresolve(proxy, None)
    assert await apresolve(proxy, None) == "ap.spotify.com:443"