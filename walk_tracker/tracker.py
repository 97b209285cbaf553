"""Application session: wires the walk detector to the store and the sampler."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from time import time

from walk_tracker.engine import DetectorConfig, WalkCompleted, WalkDetector, WalkEvent, WalkStarted
from walk_tracker.errors import PersistenceError, PreconditionViolation
from walk_tracker.models import (
    DEFAULT_END_CONFIRMATION_COUNT,
    DEFAULT_START_CONFIRMATION_COUNT,
    DEFAULT_ZONE_RADIUS_M,
    HOME_RADIUS_KM,
    HOME_ZONE_COLOR,
    HOME_ZONE_ID,
    HOME_ZONE_NAME,
    ZONE_COLORS,
    Coordinate,
    NotificationSettings,
    PositionSample,
    Walk,
    Zone,
)
from walk_tracker.sampling import SamplingOptions, options_for
from walk_tracker.store import WalkStore

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time() * 1000)


@dataclass(frozen=True, slots=True)
class WalkReminder:
    """It has been too long since the last walk."""

    walk_id: str
    hours: float
    message: str


class WalkTracker:
    """Owns one WalkDetector and persists what it produces.

    Not thread-safe: samples must be handled one at a time.
    """

    def __init__(
        self,
        store: WalkStore,
        *,
        start_confirmation_count: int = DEFAULT_START_CONFIRMATION_COUNT,
        end_confirmation_count: int = DEFAULT_END_CONFIRMATION_COUNT,
    ) -> None:
        self._store = store
        self._start_count = start_confirmation_count
        self._end_count = end_confirmation_count
        self._detector = WalkDetector(self._build_config())
        self._last_position: Coordinate | None = None
        self._reminded: set[str] = set()

    @property
    def store(self) -> WalkStore:
        return self._store

    @property
    def detector(self) -> WalkDetector:
        return self._detector

    @property
    def is_walking(self) -> bool:
        return self._detector.is_walking

    @property
    def current_walk(self) -> Walk | None:
        return self._detector.current_walk

    @property
    def last_position(self) -> Coordinate | None:
        return self._last_position

    def _build_config(self) -> DetectorConfig:
        data = self._store.data
        return DetectorConfig(
            home=data.home_zone,
            zones=data.custom_zones,
            start_confirmation_count=self._start_count,
            end_confirmation_count=self._end_count,
        )

    def _reconfigure(self) -> None:
        self._detector.configure(self._build_config())

    def sampling_options(self) -> SamplingOptions:
        return options_for(self.is_walking)

    def handle_sample(self, sample: PositionSample) -> WalkEvent | None:
        """Feed one sample to the detector and persist a completed walk.

        Raises:
            PreconditionViolation: If no home zone is set.
            PersistenceError: If a completed walk could not be saved. The
                detector has already moved on; the walk is in the store's
                in-memory copy only.
        """

        position = sample.coordinate
        self._last_position = position
        event = self._detector.ingest(position, sample.timestamp_ms)
        if isinstance(event, WalkCompleted):
            self._save_walk(event.walk)
        return event

    def _save_walk(self, walk: Walk) -> None:
        try:
            self._store.add_walk(walk)
        except PersistenceError:
            logger.error("遛狗记录保存失败：%s", walk.id)
            raise

    def start_walk(self, position: Coordinate | None = None, now_ms: int | None = None) -> WalkStarted:
        """Start a walk manually at the given (or last known) position.

        Raises:
            PreconditionViolation: If a walk is in progress or no position is known.
        """

        if position is None:
            position = self._last_position
        if position is None:
            raise PreconditionViolation("正在等待定位，暂时无法开始遛狗")
        return self._detector.start_manual(position, _now_ms() if now_ms is None else now_ms)

    def stop_walk(self, now_ms: int | None = None) -> WalkCompleted:
        """Finish the in-progress walk manually and save it."""

        event = self._detector.stop_manual(_now_ms() if now_ms is None else now_ms)
        self._save_walk(event.walk)
        return event

    def set_home(self, position: Coordinate) -> Zone:
        zone = Zone(
            id=HOME_ZONE_ID,
            name=HOME_ZONE_NAME,
            center=position,
            radius_km=HOME_RADIUS_KM,
            color=HOME_ZONE_COLOR,
        )
        self._store.set_home(zone)
        self._reconfigure()
        return zone

    def add_zone(
        self,
        name: str,
        position: Coordinate,
        radius_m: float = DEFAULT_ZONE_RADIUS_M,
        color: str | None = None,
        now_ms: int | None = None,
    ) -> Zone:
        """Add a named zone centered at position.

        Raises:
            ValueError: If the name is blank or the radius is not positive.
        """

        name = name.strip()
        if not name:
            raise ValueError("区域名称不能为空")
        if radius_m <= 0:
            raise ValueError(f"区域半径必须大于 0 米，当前为 {radius_m}")
        if color is None:
            color = ZONE_COLORS[len(self._store.data.custom_zones) % len(ZONE_COLORS)]
        zone = Zone(
            id=f"zone_{_now_ms() if now_ms is None else now_ms}",
            name=name,
            center=position,
            radius_km=radius_m / 1000.0,
            color=color,
        )
        self._store.add_zone(zone)
        self._reconfigure()
        return zone

    def delete_zone(self, zone_id: str) -> bool:
        deleted = self._store.delete_zone(zone_id)
        if deleted:
            self._reconfigure()
        return deleted

    def delete_walk(self, walk_id: str) -> bool:
        return self._store.delete_walk(walk_id)

    def update_settings(self, settings: NotificationSettings) -> None:
        self._store.update_settings(settings)

    def last_walk(self) -> Walk | None:
        """The completed walk that ended most recently."""

        done = [w for w in self._store.data.walks if w.end_time is not None]
        if not done:
            return None
        return max(done, key=lambda w: w.end_time or 0)

    def due_reminder(self, now_ms: int | None = None) -> WalkReminder | None:
        """Return a reminder if the last walk ended too long ago.

        Each completed walk triggers at most one reminder per tracker.
        """

        settings = self._store.data.settings
        if not settings.enabled or self.is_walking:
            return None
        last = self.last_walk()
        if last is None or last.end_time is None or last.id in self._reminded:
            return None
        now = _now_ms() if now_ms is None else now_ms
        if now - last.end_time < settings.hours * 3600 * 1000:
            return None
        self._reminded.add(last.id)
        hours = settings.hours
        return WalkReminder(
            walk_id=last.id,
            hours=hours,
            message=f"该遛狗了！距离上次遛狗已超过 {hours:g} 小时",
        )
