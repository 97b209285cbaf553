"""Two-cadence position sampling.

While a walk is in progress the source is polled continuously in
high-accuracy mode; at home it is polled every two minutes in low-power mode.
Only one cadence is active at a time, chosen from the tracker before every
request, so the detector never sees concurrent samples.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol

from walk_tracker.errors import SensorUnavailable
from walk_tracker.models import LOW_POWER_INTERVAL_SECONDS, AccuracyMode, PositionSample

if TYPE_CHECKING:
    from walk_tracker.tracker import WalkTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SamplingOptions:
    """How to request the next position.

    Attributes:
        mode: Accuracy mode to request.
        interval_seconds: Pause after each sample (0 means continuous).
        timeout_seconds: How long the source may take to deliver a fix.
        maximum_age_seconds: Oldest cached fix the source may return.
    """

    mode: AccuracyMode
    interval_seconds: float
    timeout_seconds: float
    maximum_age_seconds: float


HIGH_ACCURACY_OPTIONS = SamplingOptions(
    mode=AccuracyMode.HIGH_ACCURACY,
    interval_seconds=0.0,
    timeout_seconds=10.0,
    maximum_age_seconds=0.0,
)
LOW_POWER_OPTIONS = SamplingOptions(
    mode=AccuracyMode.LOW_POWER,
    interval_seconds=LOW_POWER_INTERVAL_SECONDS,
    timeout_seconds=20.0,
    maximum_age_seconds=60.0,
)


def options_for(is_walking: bool) -> SamplingOptions:
    return HIGH_ACCURACY_OPTIONS if is_walking else LOW_POWER_OPTIONS


class PositionSource(Protocol):
    """The device location side.

    Implementations raise SensorUnavailable when no fix can be delivered in
    time and PermissionDenied when location access is refused.
    """

    def current_position(self, options: SamplingOptions) -> PositionSample: ...


class SamplingLoop:
    """Feed a tracker from a position source at the cadence it asks for."""

    def __init__(
        self,
        tracker: WalkTracker,
        source: PositionSource,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._tracker = tracker
        self._source = source
        self._sleep = sleep
        self._stopped = False

    def stop(self) -> None:
        """Stop after the current sample. The in-progress walk is kept."""

        self._stopped = True

    def run(self, max_samples: int | None = None) -> int:
        """Sample until stopped (or max_samples attempts were made).

        Returns:
            Number of samples handed to the tracker.

        Raises:
            PermissionDenied: Propagated from the source; ends the loop.
        """

        self._stopped = False
        attempts = 0
        handled = 0
        while not self._stopped:
            if max_samples is not None and attempts >= max_samples:
                break
            attempts += 1
            options = self._tracker.sampling_options()
            try:
                sample = self._source.current_position(options)
            except SensorUnavailable as exc:
                logger.warning("定位失败（%s）：%s", options.mode.value, exc)
            else:
                self._tracker.handle_sample(sample)
                handled += 1
                # 采样后重新取一次：本次样本可能切换了遛狗状态
                options = self._tracker.sampling_options()
            if options.interval_seconds > 0 and not self._stopped:
                self._sleep(options.interval_seconds)
        return handled
