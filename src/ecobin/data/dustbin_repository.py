"""Collection-point loader: database first, then seed workbook, then built-in samples."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from openpyxl import load_workbook

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import CollectionPoint

# Sample dustbins around Jaipur, used when neither the database nor a seed file is available.
DEFAULT_DUSTBINS: tuple[CollectionPoint, ...] = (
    CollectionPoint("hawa_mahal", (75.8267, 26.9239), "Hawa Mahal", 80),
    CollectionPoint("city_palace", (75.8236, 26.9258), "City Palace", 70),
    CollectionPoint("jantar_mantar", (75.8246, 26.9248), "Jantar Mantar", 65),
    CollectionPoint("amer_fort", (75.8513, 26.9855), "Amer Fort", 85),
    CollectionPoint("raja_park", (75.8281, 26.8997), "Raja Park", 75),
    CollectionPoint("mansarovar", (75.7500, 26.8430), "Mansarovar", 60),
    CollectionPoint("vaishali_nagar", (75.7350, 26.9470), "Vaishali Nagar", 70),
    CollectionPoint("malviya_nagar", (75.8130, 26.8540), "Malviya Nagar", 68),
    CollectionPoint("c_scheme", (75.8050, 26.9100), "C-Scheme", 72),
    CollectionPoint("bapu_bazaar", (75.8220, 26.9200), "Bapu Bazaar", 90),
)


def _row_to_dustbin(row: dict) -> CollectionPoint:
    dustbin_id = row.get("dustbin_id") or row.get("id")
    if dustbin_id is None:
        raise KeyError("dustbin_id")
    location = row.get("location")
    if location is not None:
        lon, lat = float(location[0]), float(location[1])
    else:
        lon, lat = float(row["longitude"]), float(row["latitude"])
    return CollectionPoint(
        dustbin_id=str(dustbin_id),
        location=(lon, lat),
        name=str(row.get("name") or dustbin_id),
        fill_percentage=float(row.get("fill_percentage") or 0.0),
    )


def _load_dustbins_from_database() -> tuple[CollectionPoint, ...] | None:
    """Load dustbins from Supabase. Returns None if database not available or empty."""
    supabase = get_supabase_client()
    if not supabase:
        return None

    try:
        response = supabase.table("dustbins").select("*").order("id").execute()
    except Exception as e:
        logging.warning(f"Dustbin query failed, falling back to local data: {e}")
        return None
    if not response.data:
        return None

    dustbins: list[CollectionPoint] = []
    for row in response.data:
        try:
            dustbins.append(_row_to_dustbin(row))
        except (KeyError, ValueError, TypeError, IndexError) as e:
            logging.warning(f"Skipping invalid dustbin row: {e}")
    return tuple(dustbins) if dustbins else None


def _load_dustbins_from_file(source: Path | None = None) -> tuple[CollectionPoint, ...] | None:
    """Load dustbins from the seed workbook, or None when there is no workbook."""
    workbook_path = source or settings.dustbin_file
    if not workbook_path.exists():
        return None

    wb = load_workbook(workbook_path, data_only=True, read_only=True)
    try:
        rows = wb.active.iter_rows(min_row=1, values_only=True)
        header = next(rows, None)
        if header is None:
            raise ValueError(f"Dustbin workbook '{workbook_path}' is empty.")

        header_map = {name: idx for idx, name in enumerate(header)}
        missing_columns = {"DustbinId", "Longitude", "Latitude"} - set(header_map)
        if missing_columns:
            raise ValueError(f"Dustbin workbook missing columns: {', '.join(sorted(missing_columns))}")

        def cell(row, column):
            idx = header_map.get(column)
            return row[idx] if idx is not None and idx < len(row) else None

        dustbins: list[CollectionPoint] = []
        for row in rows:
            dustbin_id = cell(row, "DustbinId")
            if not dustbin_id:
                continue
            name = cell(row, "Name")
            fill = cell(row, "FillPercentage")
            dustbins.append(
                CollectionPoint(
                    dustbin_id=str(dustbin_id).strip(),
                    location=(float(cell(row, "Longitude")), float(cell(row, "Latitude"))),
                    name=str(name or dustbin_id).strip(),
                    fill_percentage=float(fill or 0.0),
                )
            )
        return tuple(dustbins)
    finally:
        wb.close()


def get_dustbins(source: Path | None = None) -> tuple[CollectionPoint, ...]:
    """Get dustbins from the database first, then the seed workbook, then the samples."""
    db_dustbins = _load_dustbins_from_database()
    if db_dustbins:
        return db_dustbins

    file_dustbins = _load_dustbins_from_file(source)
    if file_dustbins:
        return file_dustbins

    return DEFAULT_DUSTBINS


def get_dustbin(dustbin_id: str) -> Optional[CollectionPoint]:
    return next((dustbin for dustbin in get_dustbins() if dustbin.dustbin_id == dustbin_id), None)
