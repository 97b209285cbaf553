from __future__ import annotations

import argparse
import csv
import math
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Final

from zoneinfo import ZoneInfo


TZ: Final[str] = "UTC"
# ~1 m in degrees of latitude
DEG_PER_M: Final[float] = 1.0 / 111_195.0


@dataclass(frozen=True, slots=True)
class Place:
    name: str
    lat: float
    lon: float


def _epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def _jitter(rng: random.Random, place: Place, meters: float) -> tuple[float, float]:
    d_lat = rng.uniform(-meters, meters) * DEG_PER_M
    d_lon = rng.uniform(-meters, meters) * DEG_PER_M / max(0.01, math.cos(math.radians(place.lat)))
    return place.lat + d_lat, place.lon + d_lon


def _row(ts: datetime, lat: float, lon: float, mode: str, hacc: float) -> dict[str, str]:
    return {
        "geoTime": str(_epoch_ms(ts)),
        "latitude": f"{lat:.7f}",
        "longitude": f"{lon:.7f}",
        "horizontalAccuracy": f"{hacc:.1f}",
        "accuracyMode": mode,
    }


def generate_points(
    *,
    walks: int,
    seed: int,
    start_local: datetime,
    home: Place,
    stops: list[Place],
) -> list[dict[str, str]]:
    """Generate fake track rows: low-power polls at home, dense samples on walks."""

    rng = random.Random(seed)
    cur = start_local.replace(tzinfo=ZoneInfo(TZ))
    out: list[dict[str, str]] = []

    for _ in range(walks):
        # At home: one poll every 2 minutes, GPS jitter well inside 50 m
        for _ in range(rng.randint(10, 40)):
            lat, lon = _jitter(rng, home, 15.0)
            out.append(_row(cur, lat, lon, "low_power", rng.choice([12.0, 20.0, 35.0])))
            cur += timedelta(minutes=2)

        # Walk: out to a few stops and back, one sample every ~10 s
        route = [home, *rng.sample(stops, k=rng.randint(1, len(stops))), home]
        for a, b in zip(route, route[1:]):
            steps = rng.randint(20, 60)
            for i in range(1, steps + 1):
                t = i / steps
                p = Place("", a.lat + (b.lat - a.lat) * t, a.lon + (b.lon - a.lon) * t)
                lat, lon = _jitter(rng, p, 5.0)
                out.append(_row(cur, lat, lon, "high_accuracy", rng.choice([3.0, 5.0, 8.0])))
                cur += timedelta(seconds=rng.uniform(5, 15))

        # Settle at home so the return is confirmed
        for _ in range(3):
            lat, lon = _jitter(rng, home, 10.0)
            out.append(_row(cur, lat, lon, "high_accuracy", 5.0))
            cur += timedelta(seconds=10)

    return out


def main() -> int:
    p = argparse.ArgumentParser(description="Generate a fake walk track CSV for demo/testing (privacy-safe).")
    p.add_argument("--out", type=str, default="sample_data/Path.csv", help="Output CSV path")
    p.add_argument("--walks", type=int, default=3, help="Number of walks")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument(
        "--start",
        type=str,
        default="2025-01-01 08:00:00",
        help="Start time in UTC, e.g. '2025-01-01 08:00:00'",
    )
    args = p.parse_args()

    home = Place("home", 31.2222000, 121.4588000)
    stops = [
        Place("park_entrance", 31.2251000, 121.4612000),
        Place("river_bench", 31.2238000, 121.4650000),
        Place("dog_run", 31.2199000, 121.4630000),
    ]

    rows = generate_points(
        walks=args.walks,
        seed=args.seed,
        start_local=datetime.fromisoformat(args.start),
        home=home,
        stops=stops,
    )
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    with out_path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=["geoTime", "latitude", "longitude", "horizontalAccuracy", "accuracyMode"])
        w.writeheader()
        w.writerows(rows)

    print(f"Generated: {out_path} (rows={len(rows)}, walks={args.walks}, seed={args.seed})")
    print(f"Try: python -m walk_tracker replay --csv {out_path} --home-lat {home.lat} --home-lon {home.lon}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
