"""Data models for positions, zones and walks."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Final


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float


class AccuracyMode(str, Enum):
    """How the sensing side produced a sample."""

    HIGH_ACCURACY = "high_accuracy"
    LOW_POWER = "low_power"


@dataclass(frozen=True, slots=True)
class PositionSample:
    """A single location sample delivered by the sensing side.

    Attributes:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        timestamp_ms: Unix epoch milliseconds.
        accuracy_mode: Sampling mode that produced this sample.
    """

    latitude: float
    longitude: float
    timestamp_ms: int
    accuracy_mode: AccuracyMode = AccuracyMode.LOW_POWER

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class Zone:
    """A circle geofence.

    Attributes:
        id: Stable identifier ("home" for the home zone).
        name: Display name, recorded in Walk.zones_visited.
        center: Circle center.
        radius_km: Circle radius in kilometers (> 0).
        color: Display color, hex string.
    """

    id: str
    name: str
    center: Coordinate
    radius_km: float
    color: str


@dataclass(slots=True)
class Walk:
    """A walk, in progress (end_time is None) or completed.

    While in progress the detector owns it and mutates it in place: path is
    append-only and chronological, distance_km is the sum of the distances
    between consecutive path points.
    """

    id: str
    start_time: int
    end_time: int | None = None
    duration_seconds: int = 0
    distance_km: float = 0.0
    path: list[Coordinate] = field(default_factory=list)
    zones_visited: set[str] = field(default_factory=set)

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None


@dataclass(frozen=True, slots=True)
class NotificationSettings:
    """Walk reminder settings."""

    enabled: bool = False
    hours: float = 8.0


HOME_ZONE_ID: Final[str] = "home"
HOME_ZONE_NAME: Final[str] = "Home"
HOME_ZONE_COLOR: Final[str] = "#A8A5A3"
HOME_RADIUS_KM: Final[float] = 0.05  # 50 meters

DEFAULT_START_CONFIRMATION_COUNT: Final[int] = 3
DEFAULT_END_CONFIRMATION_COUNT: Final[int] = 2

LOW_POWER_INTERVAL_SECONDS: Final[float] = 2 * 60.0
DEFAULT_ZONE_RADIUS_M: Final[float] = 100.0
ZONE_COLORS: Final[tuple[str, ...]] = ("#F87171", "#60A5FA", "#34D399", "#FBBF24", "#A78BFA", "#F472B6")

DEFAULT_TZ: Final[str] = "UTC"
