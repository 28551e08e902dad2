"""Session and connect configuration, device types and build information."""

from __future__ import annotations

import enum
import os
import secrets
import string
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

SEMVER = "0.3.1"
SHA_SHORT = os.environ.get("RESPOT_SHA_SHORT", "unknown")
VERSION_STRING = f"librespot-{SHA_SHORT}"


def _build_id() -> str:
    epoch = os.environ.get("SOURCE_DATE_EPOCH")
    if epoch is not None:
        return epoch
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(8))


def _build_date() -> str:
    epoch = os.environ.get("SOURCE_DATE_EPOCH")
    stamp = float(epoch) if epoch and epoch.isdigit() else time.time()
    return time.strftime("%Y-%m-%d", time.gmtime(stamp))


BUILD_ID = _build_id()
BUILD_DATE = _build_date()
COMMIT_DATE = BUILD_DATE


class DeviceType(enum.IntEnum):
    UNKNOWN = 0
    COMPUTER = 1
    TABLET = 2
    SMARTPHONE = 3
    SPEAKER = 4
    TV = 5
    AVR = 6
    STB = 7
    AUDIO_DONGLE = 8
    GAME_CONSOLE = 9
    CAST_AUDIO = 10
    CAST_VIDEO = 11
    AUTOMOBILE = 12
    SMARTWATCH = 13
    CHROMEBOOK = 14
    UNKNOWN_SPOTIFY = 100
    CAR_THING = 101
    OBSERVER = 102
    HOME_THING = 103

    @classmethod
    def from_str(cls, s: str) -> "DeviceType":
        """Parse a device type name, case-insensitively."""
        try:
            return _PARSEABLE[s.lower()]
        except KeyError:
            raise ValueError(f"unknown device type {s!r}") from None

    def __str__(self) -> str:
        return _DISPLAY_NAMES[self]


_PARSEABLE = {
    "computer": DeviceType.COMPUTER,
    "tablet": DeviceType.TABLET,
    "smartphone": DeviceType.SMARTPHONE,
    "speaker": DeviceType.SPEAKER,
    "tv": DeviceType.TV,
    "avr": DeviceType.AVR,
    "stb": DeviceType.STB,
    "audiodongle": DeviceType.AUDIO_DONGLE,
    "gameconsole": DeviceType.GAME_CONSOLE,
    "castaudio": DeviceType.CAST_AUDIO,
    "castvideo": DeviceType.CAST_VIDEO,
    "automobile": DeviceType.AUTOMOBILE,
    "smartwatch": DeviceType.SMARTWATCH,
    "chromebook": DeviceType.CHROMEBOOK,
    "carthing": DeviceType.CAR_THING,
    "homething": DeviceType.HOME_THING,
}

_DISPLAY_NAMES = {
    DeviceType.UNKNOWN: "Unknown",
    DeviceType.COMPUTER: "Computer",
    DeviceType.TABLET: "Tablet",
    DeviceType.SMARTPHONE: "Smartphone",
    DeviceType.SPEAKER: "Speaker",
    DeviceType.TV: "TV",
    DeviceType.AVR: "AVR",
    DeviceType.STB: "STB",
    DeviceType.AUDIO_DONGLE: "AudioDongle",
    DeviceType.GAME_CONSOLE: "GameConsole",
    DeviceType.CAST_AUDIO: "CastAudio",
    DeviceType.CAST_VIDEO: "CastVideo",
    DeviceType.AUTOMOBILE: "Automobile",
    DeviceType.SMARTWATCH: "Smartwatch",
    DeviceType.CHROMEBOOK: "Chromebook",
    DeviceType.UNKNOWN_SPOTIFY: "UnknownSpotify",
    DeviceType.CAR_THING: "CarThing",
    DeviceType.OBSERVER: "Observer",
    DeviceType.HOME_THING: "HomeThing",
}


@dataclass
class SessionConfig:
    user_agent: str = VERSION_STRING
    device_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    proxy: Optional[str] = None
    ap_port: Optional[int] = None


@dataclass
class ConnectConfig:
    name: str = "Librespot"
    device_type: DeviceType = DeviceType.SPEAKER
    initial_volume: Optional[int] = 50
    has_volume_ctrl: bool = True
    autoplay: bool = False