"""Walk history reporting."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from walk_tracker.models import Walk
from walk_tracker.timeutils import dt_from_epoch_ms, format_hhmmss


def write_walks_csv(walks: Sequence[Walk], out_path: str | Path, tz_name: str) -> None:
    """Write completed walks to CSV (one row per walk, no path)."""

    p = Path(out_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(
            f,
            fieldnames=[
                "walk_id",
                "start_time",
                "end_time",
                "duration_seconds",
                "duration_hhmmss",
                "distance_km",
                "points",
                "zones_visited",
                "start_epoch_ms",
                "end_epoch_ms",
            ],
        )
        w.writeheader()
        for walk in walks:
            end_time = ""
            if walk.end_time is not None:
                end_time = dt_from_epoch_ms(walk.end_time, tz_name).isoformat(sep=" ")
            w.writerow(
                {
                    "walk_id": walk.id,
                    "start_time": dt_from_epoch_ms(walk.start_time, tz_name).isoformat(sep=" "),
                    "end_time": end_time,
                    "duration_seconds": walk.duration_seconds,
                    "duration_hhmmss": format_hhmmss(walk.duration_seconds),
                    "distance_km": f"{walk.distance_km:.3f}",
                    "points": len(walk.path),
                    "zones_visited": ";".join(sorted(walk.zones_visited)),
                    "start_epoch_ms": walk.start_time,
                    "end_epoch_ms": "" if walk.end_time is None else walk.end_time,
                }
            )


@dataclass(frozen=True, slots=True)
class WalksTotal:
    """Total duration/distance summary."""

    walks: int
    total_seconds: float
    total_distance_km: float

    @property
    def total_hhmmss(self) -> str:
        return format_hhmmss(self.total_seconds)


def sum_walks(walks: Iterable[Walk]) -> WalksTotal:
    """Sum durations and distances of completed walks."""

    total_s = 0.0
    total_km = 0.0
    count = 0
    for walk in walks:
        if walk.end_time is None:
            continue
        total_s += walk.duration_seconds
        total_km += walk.distance_km
        count += 1
    return WalksTotal(walks=count, total_seconds=total_s, total_distance_km=total_km)


def filter_walks(walks: Iterable[Walk], start_ms: int | None = None, end_ms: int | None = None) -> list[Walk]:
    """Keep walks that started within [start_ms, end_ms]."""

    out: list[Walk] = []
    for walk in walks:
        if start_ms is not None and walk.start_time < start_ms:
            continue
        if end_ms is not None and walk.start_time > end_ms:
            continue
        out.append(walk)
    return out
