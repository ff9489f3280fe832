from __future__ import annotations

import hashlib
from typing import Optional, Protocol

from user_agents import parse

from ..core.enums import ClientKind, DeviceClass, HostPlatform
from .model import DeviceProfile

_LAPTOP_OS_FAMILIES = {"Windows", "Mac OS X"}
_LINUX_OS_FAMILIES = {"Linux", "Ubuntu", "Debian", "Fedora", "Chrome OS"}

# Checked in order: Opera and Edge agents also carry a Chrome token.
_CLIENT_PREFIXES = (
    ("Opera", ClientKind.OPERA),
    ("Edge", ClientKind.EDGE),
    ("Chrom", ClientKind.CHROME),
    ("Firefox", ClientKind.FIREFOX),
    ("Mobile Safari", ClientKind.SAFARI),
    ("Safari", ClientKind.SAFARI),
)


class DeviceIdentity(Protocol):
    @property
    def device_id(self) -> str:
        raise NotImplementedError

    def current_device_class(self) -> DeviceClass:
        raise NotImplementedError


def detect_platform(user_agent: str) -> HostPlatform:
    family = parse(user_agent or "").os.family
    if family == "Windows":
        return HostPlatform.WINDOWS
    if family == "iOS":
        return HostPlatform.IOS
    if family == "Android":
        return HostPlatform.ANDROID
    if family == "Mac OS X":
        return HostPlatform.MACOS
    if family in _LINUX_OS_FAMILIES:
        return HostPlatform.LINUX
    return HostPlatform.UNKNOWN


def detect_client(user_agent: str) -> ClientKind:
    family = parse(user_agent or "").browser.family
    for prefix, client in _CLIENT_PREFIXES:
        if family.startswith(prefix):
            return client
    return ClientKind.OTHER


def detect_device_class(user_agent: str) -> DeviceClass:
    agent = parse(user_agent or "")
    if agent.is_tablet:
        return DeviceClass.TABLET
    if agent.is_mobile:
        return DeviceClass.MOBILE
    if agent.os.family in _LAPTOP_OS_FAMILIES:
        return DeviceClass.LAPTOP
    return DeviceClass.DESKTOP


def fingerprint(user_agent: str, extra: str = "") -> str:
    digest = hashlib.sha256(f"{user_agent}|{extra}".encode("utf-8")).hexdigest()
    return f"device_{digest[:16]}"


class UserAgentDeviceIdentity:
    """Device identity derived from an HTTP User-Agent header.

    The stable identifier is taken from the client when it sends one
    (``X-Device-Id``), otherwise it falls back to a fingerprint of the agent.
    """

    def __init__(self, user_agent: str, *, device_id: Optional[str] = None):
        self._user_agent = user_agent or ""
        self._device_id = (device_id or "").strip() or fingerprint(self._user_agent)

    @property
    def device_id(self) -> str:
        return self._device_id

    def current_device_class(self) -> DeviceClass:
        return detect_device_class(self._user_agent)

    def profile(self) -> DeviceProfile:
        return DeviceProfile(
            device_id=self._device_id,
            device_class=self.current_device_class(),
            client=detect_client(self._user_agent),
            platform=detect_platform(self._user_agent),
        )
