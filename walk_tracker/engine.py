"""Walk detection: a debounced home-geofence state machine.

The detector consumes one position sample at a time and decides, with
confirmation counters against GPS jitter near the home boundary, when a walk
starts and when it ends. Events are returned from ``ingest`` rather than sent
through callbacks, so the detector has no side effects outside itself.

States:
    AT_HOME   -> LEAVING    first sample beyond the home radius
    LEAVING   -> WALKING    start_confirmation_count consecutive samples beyond
    LEAVING   -> AT_HOME    a sample back inside
    WALKING   -> RETURNING  a sample inside the home radius
    RETURNING -> AT_HOME    end_confirmation_count consecutive samples inside
    RETURNING -> WALKING    a sample beyond the home radius again
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from walk_tracker.errors import PreconditionViolation
from walk_tracker.geo import distance_km, is_inside_zone
from walk_tracker.models import (
    DEFAULT_END_CONFIRMATION_COUNT,
    DEFAULT_START_CONFIRMATION_COUNT,
    Coordinate,
    Walk,
    Zone,
)

logger = logging.getLogger(__name__)


class DetectionState(str, Enum):
    AT_HOME = "at_home"
    LEAVING = "leaving"
    WALKING = "walking"
    RETURNING = "returning"


@dataclass(frozen=True, slots=True)
class Confirmation:
    """Pending transition evidence.

    Attributes:
        pending_confirmations: Consecutive qualifying samples seen so far.
        candidate_start_time: Epoch ms of the first qualifying sample.
        candidate_start_position: Position of the first qualifying sample
            (only kept while leaving home).
    """

    pending_confirmations: int = 0
    candidate_start_time: int = 0
    candidate_start_position: Coordinate | None = None


@dataclass(frozen=True, slots=True)
class DetectorConfig:
    """Parameters controlling walk detection.

    Zones are read-only for the detector; replace the whole config (see
    WalkDetector.configure) to change them between samples.
    """

    home: Zone | None
    zones: tuple[Zone, ...] = field(default_factory=tuple)
    start_confirmation_count: int = DEFAULT_START_CONFIRMATION_COUNT
    end_confirmation_count: int = DEFAULT_END_CONFIRMATION_COUNT

    def __post_init__(self) -> None:
        if self.start_confirmation_count < 1:
            raise ValueError(f"start_confirmation_count 必须 >= 1，当前为 {self.start_confirmation_count}")
        if self.end_confirmation_count < 1:
            raise ValueError(f"end_confirmation_count 必须 >= 1，当前为 {self.end_confirmation_count}")


@dataclass(frozen=True, slots=True)
class WalkStarted:
    """A walk was confirmed; sampling should switch to high accuracy."""

    start_time: int
    start_position: Coordinate


@dataclass(frozen=True, slots=True)
class WalkCompleted:
    """A walk was finalized; the detector no longer references it."""

    walk: Walk


WalkEvent = Union[WalkStarted, WalkCompleted]


def _new_walk(start_time: int, start_position: Coordinate) -> Walk:
    return Walk(id=f"walk_{start_time}", start_time=start_time, path=[start_position])


class WalkDetector:
    """Stateful walk detector. Not thread-safe: feed it one sample at a time."""

    def __init__(self, config: DetectorConfig) -> None:
        self._config = config
        self._state = DetectionState.AT_HOME
        self._confirmation = Confirmation()
        self._walk: Walk | None = None

    @property
    def config(self) -> DetectorConfig:
        return self._config

    @property
    def state(self) -> DetectionState:
        return self._state

    @property
    def confirmation(self) -> Confirmation:
        return self._confirmation

    @property
    def current_walk(self) -> Walk | None:
        """The in-progress walk, if any."""

        return self._walk

    @property
    def is_walking(self) -> bool:
        return self._walk is not None

    def configure(self, config: DetectorConfig) -> None:
        """Replace home/zones/thresholds. State and the in-progress walk are kept."""

        self._config = config

    def ingest(self, sample: Coordinate, timestamp_ms: int) -> WalkEvent | None:
        """Process one position sample.

        Args:
            sample: Sampled position. Not validated.
            timestamp_ms: Sample time, Unix epoch milliseconds.

        Returns:
            WalkStarted or WalkCompleted when this sample commits a transition,
            otherwise None.

        Raises:
            PreconditionViolation: If no home zone is configured.
        """

        home = self._config.home
        if home is None:
            raise PreconditionViolation("尚未设置 home 围栏，无法检测遛狗")

        away = distance_km(sample, home.center) > home.radius_km

        if self._state is DetectionState.AT_HOME:
            if away:
                self._confirmation = Confirmation(1, timestamp_ms, sample)
                self._set_state(DetectionState.LEAVING)
            return None

        if self._state is DetectionState.LEAVING:
            if not away:
                self._confirmation = Confirmation()
                self._set_state(DetectionState.AT_HOME)
                return None
            pending = self._confirmation.pending_confirmations + 1
            self._confirmation = Confirmation(
                pending,
                self._confirmation.candidate_start_time,
                self._confirmation.candidate_start_position,
            )
            if pending < self._config.start_confirmation_count:
                return None
            # AT_HOME -> LEAVING always records the first outside position
            leaving = self._confirmation
            return self._begin_walk(leaving.candidate_start_time, leaving.candidate_start_position)

        if self._state is DetectionState.WALKING:
            self._extend_walk(sample)
            if not away:
                self._confirmation = Confirmation(1, timestamp_ms, None)
                self._set_state(DetectionState.RETURNING)
            return None

        # RETURNING
        if away:
            # 只是在边界附近抖动，继续这次遛狗
            self._confirmation = Confirmation()
            self._set_state(DetectionState.WALKING)
            return None
        pending = self._confirmation.pending_confirmations + 1
        self._confirmation = Confirmation(pending, self._confirmation.candidate_start_time, None)
        if pending < self._config.end_confirmation_count:
            return None
        return self._finish_walk(self._confirmation.candidate_start_time)

    def start_manual(self, position: Coordinate, timestamp_ms: int) -> WalkStarted:
        """Start a walk right now, bypassing the leaving confirmation.

        Raises:
            PreconditionViolation: If a walk is already in progress.
        """

        if self._walk is not None:
            raise PreconditionViolation(f"已有进行中的遛狗：{self._walk.id}")
        logger.info("手动开始遛狗 at %s", timestamp_ms)
        return self._begin_walk(timestamp_ms, position)

    def stop_manual(self, timestamp_ms: int) -> WalkCompleted:
        """Finish the in-progress walk without waiting for return confirmation.

        While returning, the walk ends at the first inside-home sample, as it
        would on a confirmed return.

        Raises:
            PreconditionViolation: If no walk is in progress.
        """

        walk = self._require_walk()
        if self._state is DetectionState.RETURNING:
            end_time = self._confirmation.candidate_start_time
        else:
            end_time = timestamp_ms
        logger.info("手动结束遛狗 %s", walk.id)
        return self._finish_walk(end_time)

    def _require_walk(self) -> Walk:
        if self._walk is None:
            raise PreconditionViolation("当前没有进行中的遛狗")
        return self._walk

    def _begin_walk(self, start_time: int, start_position: Coordinate) -> WalkStarted:
        self._walk = _new_walk(start_time, start_position)
        self._confirmation = Confirmation()
        self._set_state(DetectionState.WALKING)
        logger.info("遛狗开始：%s", self._walk.id)
        return WalkStarted(start_time=start_time, start_position=start_position)

    def _extend_walk(self, sample: Coordinate) -> None:
        walk = self._require_walk()
        walk.distance_km += distance_km(walk.path[-1], sample)
        walk.path.append(sample)
        for zone in self._config.zones:
            if zone.name not in walk.zones_visited and is_inside_zone(sample, zone):
                walk.zones_visited.add(zone.name)
                logger.debug("经过区域：%s", zone.name)

    def _finish_walk(self, end_time: int) -> WalkCompleted:
        walk = self._require_walk()
        walk.end_time = end_time
        walk.duration_seconds = int((end_time - walk.start_time) // 1000)
        self._walk = None
        self._confirmation = Confirmation()
        self._set_state(DetectionState.AT_HOME)
        logger.info(
            "遛狗结束：%s distance=%.3fkm duration=%ss zones=%s",
            walk.id,
            walk.distance_km,
            walk.duration_seconds,
            sorted(walk.zones_visited),
        )
        return WalkCompleted(walk=walk)

    def _set_state(self, state: DetectionState) -> None:
        if state is not self._state:
            logger.debug("状态切换：%s -> %s", self._state.value, state.value)
        self._state = state
