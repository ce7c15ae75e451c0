"""Mapping of raw provider rows onto the canonical restroom record.

Both providers describe restrooms with different field names and shapes.
Rows that cannot be placed on a map (missing or non-finite coordinates) are
dropped here, so nothing downstream ever sees them.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from restroom_api.schemas.restroom import RestroomRecord

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 120
NOTES_MAX_LENGTH = 280
ELLIPSIS = "..."
UNKNOWN_AREA = "Unknown area"
UK_DEFAULT_NAME = "Public toilet"
US_DEFAULT_NAME = "Public restroom"
NOTES_DELIMITER = " | "


@dataclass(frozen=True)
class ProximityCandidate:
    record: RestroomRecord
    country: str | None


def clamp_text(value: Any, max_length: int = NOTES_MAX_LENGTH) -> str | None:
    if not value:
        return None
    text = " ".join(str(value).split())
    if not text:
        return None
    if len(text) > max_length:
        return f"{text[: max_length - len(ELLIPSIS)]}{ELLIPSIS}"
    return text


def _finite_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _tri_state(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _opening_times_text(value: Any) -> str | None:
    if isinstance(value, str):
        return clamp_text(value)
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=True, separators=(",", ":"))
    return None


def normalize_uk_row(row: Any) -> RestroomRecord | None:
    if not isinstance(row, dict) or row.get("active") is False:
        return None
    if row.get("id") is None:
        return None

    location = row.get("location")
    coordinates = location.get("coordinates") if isinstance(location, dict) else None
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) < 2:
        return None
    # GeoJSON order
    longitude = _finite_float(coordinates[0])
    latitude = _finite_float(coordinates[1])
    if latitude is None or longitude is None:
        return None

    areas = row.get("areas")
    area_name = areas.get("name") if isinstance(areas, dict) else None

    return RestroomRecord(
        id=str(row["id"]),
        name=clamp_text(row.get("name"), NAME_MAX_LENGTH) or UK_DEFAULT_NAME,
        latitude=latitude,
        longitude=longitude,
        area_name=clamp_text(area_name, NAME_MAX_LENGTH) or UNKNOWN_AREA,
        accessible=_tri_state(row.get("accessible")),
        baby_change=_tri_state(row.get("baby_change")),
        no_payment=_tri_state(row.get("no_payment")),
        all_gender=_tri_state(row.get("all_gender")),
        radar_key=_tri_state(row.get("radar")),
        notes=clamp_text(row.get("notes")),
        opening_times=_opening_times_text(row.get("opening_times")),
        updated_at=_optional_str(row.get("updated_at")),
    )


def normalize_uk_rows(rows: Iterable[Any]) -> list[RestroomRecord]:
    records: list[RestroomRecord] = []
    skipped = 0
    for row in rows:
        record = normalize_uk_row(row)
        if record is None:
            skipped += 1
            continue
        records.append(record)
    if skipped:
        logger.debug("uk_rows_skipped", extra={"provider": "uk", "skipped_count": skipped})
    return records


def normalize_us_row(row: Any) -> ProximityCandidate | None:
    if not isinstance(row, dict) or row.get("approved") is not True:
        return None
    if row.get("id") is None:
        return None
    latitude = _finite_float(row.get("latitude"))
    longitude = _finite_float(row.get("longitude"))
    if latitude is None or longitude is None:
        return None

    area_parts = [part for part in (clamp_text(row.get("city")), clamp_text(row.get("state"))) if part]
    note_parts = [part for part in (clamp_text(row.get("directions")), clamp_text(row.get("comment"))) if part]

    record = RestroomRecord(
        id=str(row["id"]),
        name=clamp_text(row.get("name"), NAME_MAX_LENGTH) or US_DEFAULT_NAME,
        latitude=latitude,
        longitude=longitude,
        area_name=", ".join(area_parts) if area_parts else UNKNOWN_AREA,
        accessible=_tri_state(row.get("accessible")),
        baby_change=_tri_state(row.get("changing_table")),
        all_gender=_tri_state(row.get("unisex")),
        notes=NOTES_DELIMITER.join(note_parts) or None,
        updated_at=_optional_str(row.get("updated_at") or row.get("created_at")),
    )
    return ProximityCandidate(record=record, country=_optional_str(row.get("country")))
