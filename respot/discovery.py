"""Answering local-network discovery requests and receiving credentials from clients."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import queue
import threading
from dataclasses import dataclass
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from respot.authentication import Credentials
from respot.config import SEMVER, DeviceType
from respot.diffie_hellman import DhLocalKeys

log = logging.getLogger(__name__)

_IV_SIZE = 16
_CHECKSUM_SIZE = 20

Response = Tuple[int, str]


def _json(obj: Mapping[str, Any]) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _b64decode(text: str, name: str) -> bytes:
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"invalid base64 in parameter {name!r}: {exc}") from None


def _hmac_sha1(key: bytes, data: bytes) -> bytes:
    return hmac.new(key, data, hashlib.sha1).digest()


@dataclass
class DiscoveryConfig:
    """How this device presents itself to clients."""

    device_id: str
    name: str = "Librespot"
    device_type: DeviceType = DeviceType.SPEAKER


class RequestHandler:
    """Answers discovery requests; received credentials are put on ``received``."""

    def __init__(self, config: DiscoveryConfig, keys: Optional[DhLocalKeys] = None) -> None:
        self.config = config
        self.keys = keys if keys is not None else DhLocalKeys.random()
        self.received: "queue.Queue[Credentials]" = queue.Queue()

    def handle_get_info(self) -> Response:
        """Describe this device."""
        body = {
            "status": 101,
            "statusString": "ERROR-OK",
            "spotifyError": 0,
            "version": "2.7.1",
            "deviceID": self.config.device_id,
            "remoteName": self.config.name,
            "activeUser": "",
            "publicKey": base64.b64encode(self.keys.public_key()).decode("ascii"),
            "deviceType": str(self.config.device_type),
            "libraryVersion": SEMVER,
            "accountReq": "PREMIUM",
            "brandDisplayName": "librespot",
            "modelDisplayName": "librespot",
            "resolverVersion": "0",
            "groupStatus": "NONE",
            "voiceSupport": "NO",
        }
        return HTTPStatus.OK, _json(body)

    def handle_add_user(self, params: Mapping[str, str]) -> Response:
        """Decrypt the credentials a client sent and queue them."""
        try:
            username = params["userName"]
            blob_text = params["blob"]
            client_key_text = params["clientKey"]
        except KeyError as exc:
            raise ValueError(f"missing parameter {exc.args[0]!r}") from None

        encrypted_blob = _b64decode(blob_text, "blob")
        client_key = _b64decode(client_key_text, "clientKey")
        if len(encrypted_blob) < _IV_SIZE + _CHECKSUM_SIZE:
            raise ValueError("blob is too short")

        shared_key = self.keys.shared_secret(client_key)

        iv = encrypted_blob[:_IV_SIZE]
        encrypted = encrypted_blob[_IV_SIZE:-_CHECKSUM_SIZE]
        checksum = encrypted_blob[-_CHECKSUM_SIZE:]

        base_key = hashlib.sha1(shared_key).digest()[:16]
        checksum_key = _hmac_sha1(base_key, b"checksum")
        encryption_key = _hmac_sha1(base_key, b"encryption")

        if not hmac.compare_digest(_hmac_sha1(checksum_key, encrypted), checksum):
            log.warning("Login error for user %r: MAC mismatch", username)
            return HTTPStatus.OK, _json(
                {"status": 102, "spotifyError": 1, "statusString": "ERROR-MAC"}
            )

        decryptor = Cipher(algorithms.AES(encryption_key[:16]), modes.CTR(iv)).decryptor()
        decrypted = decryptor.update(encrypted) + decryptor.finalize()

        credentials = Credentials.with_blob(username, decrypted, self.config.device_id)
        self.received.put(credentials)

        return HTTPStatus.OK, _json({"status": 101, "spotifyError": 0, "statusString": "ERROR-OK"})

    def handle(self, method: str, query: str, body: Union[bytes, str]) -> Response:
        """Route a request by method and ``action`` parameter from query and form body."""
        params: dict[str, str] = {}
        if query:
            params.update(parse_qsl(query, keep_blank_values=True))

        method = method.upper()
        if method != "GET":
            log.debug("%s %r", method, params)

        if isinstance(body, (bytes, bytearray)):
            body = bytes(body).decode("utf-8", "replace")
        if body:
            params.update(parse_qsl(body, keep_blank_values=True))

        action = params.get("action")
        if method == "GET" and action == "getInfo":
            return self.handle_get_info()
        if method == "POST" and action == "addUser":
            return self.handle_add_user(params)
        return HTTPStatus.NOT_FOUND, ""


class _HttpServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: Tuple[str, int], request_handler: RequestHandler) -> None:
        self.request_handler = request_handler
        super().__init__(address, _HttpHandler)


class _HttpHandler(BaseHTTPRequestHandler):
    server: _HttpServer
    protocol_version = "HTTP/1.1"

    def _respond(self) -> None:
        _, _, query = self.path.partition("?")
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
        body = self.rfile.read(length) if length > 0 else b""

        try:
            status, text = self.server.request_handler.handle(self.command, query, body)
        except ValueError as exc:
            log.warning("Bad discovery request: %s", exc)
            status, text = HTTPStatus.BAD_REQUEST, ""

        payload = text.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    do_GET = _respond
    do_POST = _respond
    do_PUT = _respond
    do_DELETE = _respond
    do_PATCH = _respond

    def log_message(self, format: str, *args: Any) -> None:
        log.debug("%s - %s", self.address_string(), format % args)


class DiscoveryServer:
    """An HTTP server in a background thread that yields received credentials."""

    def __init__(self, config: DiscoveryConfig, port: int = 0) -> None:
        self.handler = RequestHandler(config)
        self._httpd = _HttpServer(("", port), self.handler)
        self.port: int = self._httpd.server_address[1]
        log.debug("Zeroconf server listening on 0.0.0.0:%d", self.port)
        self._closed = False
        self._thread = threading.Thread(
            target=self._httpd.serve_forever, name="discovery-server", daemon=True
        )
        self._thread.start()

    def next_credentials(self, timeout: Optional[float] = None) -> Credentials:
        """Wait for the next credentials a client sends; raise TimeoutError on timeout."""
        try:
            return self.handler.received.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError("no credentials received") from None

    def close(self) -> None:
        """Stop the server; calling it again does nothing."""
        if self._closed:
            return
        self._closed = True
        log.debug("Shutting down discovery server")
        self._httpd.shutdown()
        self._httpd.server_close()
        self._thread.join()

    def __enter__(self) -> "DiscoveryServer":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()