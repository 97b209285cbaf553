"""Persisted application data: home zone, named zones, walk history, settings.

The whole blob is loaded once and rewritten in full on every change
(last writer wins, no merge).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from walk_tracker.errors import PersistenceError
from walk_tracker.models import Coordinate, NotificationSettings, Walk, Zone

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoredData:
    """Everything the application keeps between runs."""

    home_zone: Zone | None = None
    custom_zones: tuple[Zone, ...] = ()
    walks: tuple[Walk, ...] = ()
    settings: NotificationSettings = field(default_factory=NotificationSettings)


def _coord_to_dict(c: Coordinate) -> dict[str, float]:
    return {"lat": c.latitude, "lng": c.longitude}


def _coord_from_dict(d: dict[str, Any]) -> Coordinate:
    return Coordinate(latitude=float(d["lat"]), longitude=float(d["lng"]))


def zone_to_dict(zone: Zone) -> dict[str, Any]:
    return {
        "id": zone.id,
        "name": zone.name,
        "latitude": zone.center.latitude,
        "longitude": zone.center.longitude,
        "radius_km": zone.radius_km,
        "color": zone.color,
    }


def zone_from_dict(d: dict[str, Any]) -> Zone:
    return Zone(
        id=str(d["id"]),
        name=str(d["name"]),
        center=Coordinate(latitude=float(d["latitude"]), longitude=float(d["longitude"])),
        radius_km=float(d["radius_km"]),
        color=str(d.get("color", "") or ""),
    )


def walk_to_dict(walk: Walk) -> dict[str, Any]:
    return {
        "id": walk.id,
        "start_time": walk.start_time,
        "end_time": walk.end_time,
        "duration_seconds": walk.duration_seconds,
        "distance_km": walk.distance_km,
        "path": [_coord_to_dict(c) for c in walk.path],
        "zones_visited": sorted(walk.zones_visited),
    }


def walk_from_dict(d: dict[str, Any]) -> Walk:
    end_time = d.get("end_time")
    return Walk(
        id=str(d["id"]),
        start_time=int(d["start_time"]),
        end_time=None if end_time is None else int(end_time),
        duration_seconds=int(d.get("duration_seconds", 0) or 0),
        distance_km=float(d.get("distance_km", 0.0) or 0.0),
        path=[_coord_from_dict(c) for c in d.get("path", [])],
        zones_visited=set(d.get("zones_visited", [])),
    )


def data_to_dict(data: StoredData) -> dict[str, Any]:
    return {
        "home_zone": zone_to_dict(data.home_zone) if data.home_zone is not None else None,
        "custom_zones": [zone_to_dict(z) for z in data.custom_zones],
        "walks": [walk_to_dict(w) for w in data.walks],
        "settings": {"enabled": data.settings.enabled, "hours": data.settings.hours},
    }


def data_from_dict(d: dict[str, Any]) -> StoredData:
    if not isinstance(d, dict):
        raise ValueError(f"数据文件顶层必须是 JSON 对象，实际为 {type(d).__name__}")
    home = d.get("home_zone")
    settings = d.get("settings") or {}
    if not isinstance(settings, dict):
        raise ValueError(f"settings 必须是 JSON 对象，实际为 {type(settings).__name__}")
    return StoredData(
        home_zone=zone_from_dict(home) if home else None,
        custom_zones=tuple(zone_from_dict(z) for z in d.get("custom_zones", [])),
        walks=tuple(walk_from_dict(w) for w in d.get("walks", [])),
        settings=NotificationSettings(
            enabled=bool(settings.get("enabled", False)),
            hours=float(settings.get("hours", 8.0)),
        ),
    )


class WalkStore:
    """A JSON file holding StoredData."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data = StoredData()
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def data(self) -> StoredData:
        self.load()
        return self._data

    def load(self) -> None:
        """Load data from disk (no-op if already loaded or file not exists).

        Raises:
            PersistenceError: If the file exists but cannot be read.
        """

        if self._loaded:
            return
        if not self._path.exists():
            self._data = StoredData()
            self._loaded = True
            return
        try:
            text = self._path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise PersistenceError(f"无法读取数据文件：{self._path}") from exc
        if not text:
            self._data = StoredData()
            self._loaded = True
            return
        try:
            self._data = data_from_dict(json.loads(text))
        except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError):
            # 数据文件损坏：保留备份，从空数据开始
            backup = self._path.with_suffix(self._path.suffix + ".broken")
            try:
                backup.write_text(text, encoding="utf-8")
            except OSError as exc:
                raise PersistenceError(f"数据文件损坏且无法备份：{backup}") from exc
            logger.warning("数据文件损坏，已备份到 %s 并重置", backup)
            self._data = StoredData()
        self._loaded = True

    def save(self, data: StoredData) -> None:
        """Replace the stored data and rewrite the whole file (atomic-ish).

        The in-memory copy is updated even if writing fails.

        Raises:
            PersistenceError: If the file cannot be written.
        """

        self._data = data
        self._loaded = True
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data_to_dict(data), ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as exc:
            raise PersistenceError(f"无法写入数据文件：{self._path}") from exc

    def set_home(self, zone: Zone) -> None:
        self.save(replace(self.data, home_zone=zone))

    def add_zone(self, zone: Zone) -> None:
        self.save(replace(self.data, custom_zones=(*self.data.custom_zones, zone)))

    def delete_zone(self, zone_id: str) -> bool:
        """Delete a named zone. Returns False if no such zone."""

        zones = self.data.custom_zones
        kept = tuple(z for z in zones if z.id != zone_id)
        if len(kept) == len(zones):
            return False
        self.save(replace(self.data, custom_zones=kept))
        return True

    def add_walk(self, walk: Walk) -> None:
        self.save(replace(self.data, walks=(*self.data.walks, walk)))

    def delete_walk(self, walk_id: str) -> bool:
        """Delete a walk from history. Returns False if no such walk."""

        walks = self.data.walks
        kept = tuple(w for w in walks if w.id != walk_id)
        if len(kept) == len(walks):
            return False
        self.save(replace(self.data, walks=kept))
        return True

    def update_settings(self, settings: NotificationSettings) -> None:
        self.save(replace(self.data, settings=settings))
