"""CSV input utilities for exported track files (replay input)."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from walk_tracker.models import AccuracyMode, PositionSample

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


def _parse_int(value: str) -> int:
    return int(value.strip())


def _parse_float(value: str) -> float:
    return float(value.strip())


def _parse_row(row: dict[str, str]) -> PositionSample:
    mode = (row.get("accuracyMode") or AccuracyMode.LOW_POWER.value).strip()
    return PositionSample(
        latitude=_parse_float(row["latitude"]),
        longitude=_parse_float(row["longitude"]),
        timestamp_ms=_parse_int(row["geoTime"]),
        accuracy_mode=AccuracyMode(mode),
    )


def load_position_samples(csv_path: str | Path) -> tuple[list[PositionSample], CsvSummary]:
    """Load all samples into memory, sorted by time.

    Args:
        csv_path: Path to the exported CSV.

    Returns:
        (samples, summary)

    Notes:
        Required columns: geoTime (epoch milliseconds), latitude, longitude.
        Optional: accuracyMode ("high_accuracy" / "low_power", default low_power).
        Other columns (e.g. horizontalAccuracy) are ignored. Rows that fail
        to parse, including rows missing a required column, are skipped.
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[PositionSample] = []
    fieldnames: Sequence[str] = ()

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        for row in reader:
            rows_total += 1
            try:
                parsed.append(_parse_row(row))
            except (KeyError, ValueError, TypeError):
                continue

    parsed.sort(key=lambda s: s.timestamp_ms)
    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("CSV中有 %s 行解析失败已跳过", summary.rows_skipped)
    return parsed, summary
