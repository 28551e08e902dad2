"""Looking up an access point to connect to."""

from __future__ import annotations

import asyncio
import http.client
import json
import logging
from typing import Iterable, Optional
from urllib.parse import urlsplit
from urllib.request import ProxyHandler, build_opener

log = logging.getLogger(__name__)

APRESOLVE_ENDPOINT = "http://apresolve.spotify.com:80"
AP_FALLBACK = "ap.spotify.com:443"
DEFAULT_AP_PORT = 443
_TIMEOUT = 10.0


class ApResolveError(Exception):
    """Raised when no access point could be resolved."""


def _port_of(ap: str) -> Optional[int]:
    try:
        return urlsplit("//" + ap).port
    except ValueError:
        return None


def select_access_point(
    ap_list: Iterable[str], ap_port: Optional[int] = None, proxy: Optional[str] = None
) -> str:
    """Choose an access point; with a port or a proxy, only one on the wanted port."""
    if ap_port is not None or proxy is not None:
        port = ap_port if ap_port is not None else DEFAULT_AP_PORT
        for ap in ap_list:
            if _port_of(ap) == port:
                return ap
    else:
        for ap in ap_list:
            return ap
    raise ApResolveError("empty AP List")


def _fetch(proxy: Optional[str]) -> bytes:
    proxies = {"http": proxy, "https": proxy} if proxy else {}
    opener = build_opener(ProxyHandler(proxies))
    with opener.open(APRESOLVE_ENDPOINT, timeout=_TIMEOUT) as response:
        return response.read()


async def try_apresolve(proxy: Optional[str] = None, ap_port: Optional[int] = None) -> str:
    """Ask the resolver service for an access point."""
    try:
        body = await asyncio.to_thread(_fetch, proxy)
    except (OSError, http.client.HTTPException) as exc:
        raise ApResolveError(f"request failed: {exc}") from exc

    try:
        data = json.loads(body)
    except ValueError as exc:
        raise ApResolveError(f"invalid response: {exc}") from exc

    ap_list = data.get("ap_list") if isinstance(data, dict) else None
    if not isinstance(ap_list, list) or not all(isinstance(ap, str) for ap in ap_list):
        raise ApResolveError("invalid response: missing field 'ap_list'")

    return select_access_point(ap_list, ap_port, proxy)


async def apresolve(proxy: Optional[str] = None, ap_port: Optional[int] = None) -> str:
    """Resolve an access point, falling back to a fixed one on any failure."""
    try:
        return await try_apresolve(proxy, ap_port)
    except ApResolveError as exc:
        log.warning("Failed to resolve Access Point: %s", exc)
        log.warning('Using fallback "%s"', AP_FALLBACK)
        return AP_FALLBACK