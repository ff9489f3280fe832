from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..common.datetime_utils import now_local
from ..core.constants import (
    HIGH_ACCURACY_TIMEOUT_S,
    RELAXED_MAXIMUM_AGE_S,
    RELAXED_RETRY_ACCURACY_M,
    RELAXED_TIMEOUT_S,
    SAMPLE_SPACING_S,
    WINDOWS_HIGH_ACCURACY_TIMEOUT_S,
)
from ..core.enums import HostPlatform, PositionErrorKind, PositionSource
from ..core.exceptions import PermissionDenied, PositionError
from .hints import position_error
from .model import AcquireMode, AcquireOptions, PositionSample, RawFix, Sampled, Single
from .provider import PlatformPositionError, PositionProvider

logger = logging.getLogger(__name__)


class PositionAcquirer:
    """Obtain a best-effort PositionSample from a positioning provider.

    Single mode makes one high-accuracy request and retries once with relaxed
    settings when the request fails or the reported accuracy is worse than
    2 km. Sampled mode averages several Single readings taken 2 s apart.

    The only automatic retry in the engine lives here.
    """

    def __init__(
        self,
        provider: PositionProvider,
        *,
        platform: HostPlatform = HostPlatform.UNKNOWN,
        clock: Callable = now_local,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        sample_spacing_s: float = SAMPLE_SPACING_S,
    ):
        self._provider = provider
        self._platform = platform
        self._clock = clock
        self._sleep = sleep
        self._spacing = float(sample_spacing_s)

    @property
    def platform(self) -> HostPlatform:
        return self._platform

    def high_accuracy_options(self) -> AcquireOptions:
        timeout = WINDOWS_HIGH_ACCURACY_TIMEOUT_S if self._platform == HostPlatform.WINDOWS else HIGH_ACCURACY_TIMEOUT_S
        return AcquireOptions(high_accuracy=True, timeout_s=timeout, maximum_age_s=0.0)

    @staticmethod
    def relaxed_options() -> AcquireOptions:
        return AcquireOptions(high_accuracy=False, timeout_s=RELAXED_TIMEOUT_S, maximum_age_s=RELAXED_MAXIMUM_AGE_S)

    async def acquire(self, mode: Optional[AcquireMode] = None) -> PositionSample:
        mode = mode or Single()
        if isinstance(mode, Sampled):
            return await self._sampled(mode.count)
        return await self._single()

    async def _request(self, options: AcquireOptions) -> RawFix:
        try:
            return await asyncio.wait_for(self._provider.current_position(options), timeout=options.timeout_s)
        except asyncio.TimeoutError:
            raise position_error(PositionErrorKind.TIMED_OUT, self._platform, timeout_s=options.timeout_s)
        except PlatformPositionError as exc:
            raise position_error(exc.kind, self._platform, platform_code=exc.code) from exc

    def _to_sample(self, fix: RawFix, source: PositionSource) -> PositionSample:
        return PositionSample(
            latitude=fix.latitude,
            longitude=fix.longitude,
            accuracy_m=fix.accuracy_m,
            captured_at=self._clock(),
            source=source,
        )

    async def _single(self) -> PositionSample:
        try:
            fix = await self._request(self.high_accuracy_options())
        except PermissionDenied:
            raise
        except PositionError as err:
            logger.warning("High-accuracy position failed (%s), retrying with relaxed settings", err.code)
            fix = await self._request(self.relaxed_options())
            return self._to_sample(fix, PositionSource.NETWORK)

        if fix.accuracy_m <= RELAXED_RETRY_ACCURACY_M:
            return self._to_sample(fix, PositionSource.HIGH_ACCURACY)

        logger.info("Position accuracy %.0fm is too coarse, retrying with relaxed settings", fix.accuracy_m)
        best, source = fix, PositionSource.HIGH_ACCURACY
        try:
            retry = await self._request(self.relaxed_options())
            if retry.accuracy_m < best.accuracy_m:
                best, source = retry, PositionSource.NETWORK
        except PermissionDenied:
            raise
        except PositionError as err:
            logger.warning("Relaxed retry failed (%s)", err.code)

        if best.accuracy_m > RELAXED_RETRY_ACCURACY_M:
            raise position_error(
                PositionErrorKind.POSITION_UNAVAILABLE,
                self._platform,
                accuracy_m=best.accuracy_m,
            )
        return self._to_sample(best, source)

    async def _sampled(self, count: int) -> PositionSample:
        readings: list[PositionSample] = []
        errors: list[PositionError] = []

        for i in range(count):
            if i:
                await self._sleep(self._spacing)
            try:
                readings.append(await self._single())
            except PermissionDenied as err:
                errors.append(err)
                break
            except PositionError as err:
                logger.warning("Sample %d/%d failed: %s", i + 1, count, err.code)
                errors.append(err)

        if not readings:
            raise errors[0]

        n = len(readings)
        averaged = PositionSample(
            latitude=sum(r.latitude for r in readings) / n,
            longitude=sum(r.longitude for r in readings) / n,
            accuracy_m=sum(r.accuracy_m for r in readings) / n,
            captured_at=self._clock(),
            source=PositionSource.AVERAGED,
        )
        logger.debug("Averaged %d/%d samples, accuracy %.1fm", n, count, averaged.accuracy_m)
        return averaged
