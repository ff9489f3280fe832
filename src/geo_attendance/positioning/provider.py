from __future__ import annotations

from typing import Protocol

from ..core.enums import PositionErrorKind
from .model import AcquireOptions, RawFix

# W3C Geolocation error codes reported by browser hosts.
_W3C_CODES = {
    1: PositionErrorKind.PERMISSION_DENIED,
    2: PositionErrorKind.POSITION_UNAVAILABLE,
    3: PositionErrorKind.TIMED_OUT,
}


class PlatformPositionError(Exception):
    """Raised by providers; carries the platform's numeric error code."""

    def __init__(self, code: int, message: str = ""):
        super().__init__(message or f"positioning error code {code}")
        self.code = int(code)

    @property
    def kind(self) -> PositionErrorKind:
        return _W3C_CODES.get(self.code, PositionErrorKind.POSITION_UNAVAILABLE)


class PositionProvider(Protocol):
    async def current_position(self, options: AcquireOptions) -> RawFix:
        raise NotImplementedError


class ReportedPositionProvider:
    """Provider backed by a fix the client already measured.

    The HTTP surface receives latitude/longitude/accuracy in the request body;
    this adapter lets the acquirer treat that payload like a platform call.
    A client-side error code (``error_code``) is replayed as a platform error.
    """

    def __init__(self, *, latitude=None, longitude=None, accuracy_m=None, error_code=None):
        self._fix = None
        if latitude is not None and longitude is not None:
            self._fix = RawFix(
                latitude=float(latitude),
                longitude=float(longitude),
                accuracy_m=float(accuracy_m if accuracy_m is not None else 0.0),
            )
        self._error_code = error_code

    async def current_position(self, options: AcquireOptions) -> RawFix:
        if self._error_code is not None:
            raise PlatformPositionError(int(self._error_code), "client reported a positioning error")
        if self._fix is None:
            raise PlatformPositionError(2, "no position in request")
        return self._fix
