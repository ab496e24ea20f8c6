"""Excel export of saved rides and their recorded tracks."""

from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path
from typing import Sequence

import pandas as pd
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from .geo import leg_distances_m
from .models import SavedRoute
from .utils import iso_from_ms

ROUTES_SHEET = "Routes"
MAX_SHEET_NAME_LEN = 31
AUTOSIZE_MIN_WIDTH = 8
AUTOSIZE_MAX_WIDTH = 60
AUTOSIZE_PADDING = 2
AUTOSIZE_MAX_ROWS = 5000

ROUTE_COLUMNS = [
    "Name",
    "Description",
    "Distance (km)",
    "Duration (min)",
    "Max Speed (km/h)",
    "Avg Speed (km/h)",
    "Points",
    "Start",
    "End",
    "ID",
]

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(patternType="solid", fgColor="FFDDEBF7")
HEADER_BORDER = Border(
    left=Side(style="thin", color="000000"),
    right=Side(style="thin", color="000000"),
    top=Side(style="thin", color="000000"),
    bottom=Side(style="thin", color="000000"),
)

PathInput = str | Path | PathLike[str]

_LOGGER = logging.getLogger(__name__)

__all__ = ["routes_to_frame", "track_to_frame", "write_ride_workbook"]


def routes_to_frame(routes: Sequence[SavedRoute]) -> pd.DataFrame:
    """One summary row per saved ride."""

    rows = [
        {
            "Name": route.name,
            "Description": route.description,
            "Distance (km)": round(route.distance / 1000.0, 3),
            "Duration (min)": round(route.duration / 60.0, 1),
            "Max Speed (km/h)": round(route.max_speed, 1),
            "Avg Speed (km/h)": round(route.average_speed, 1),
            "Points": len(route.coordinates),
            "Start": iso_from_ms(route.start_time),
            "End": iso_from_ms(route.end_time),
            "ID": route.id,
        }
        for route in routes
    ]
    return pd.DataFrame(rows, columns=ROUTE_COLUMNS)


def track_to_frame(route: SavedRoute) -> pd.DataFrame:
    """Recorded coordinates with per-leg and cumulative distance."""

    coords = list(route.coordinates)
    frame = pd.DataFrame(coords, columns=["Latitude", "Longitude"])
    legs = leg_distances_m(coords) if coords else []
    frame["Leg (m)"] = legs
    frame["Cumulative (m)"] = frame["Leg (m)"].cumsum()
    return frame


def _unique_sheet_name(base: str, used: set[str]) -> str:
    # Excel forbids these in sheet titles.
    for char in "[]:*?/\\":
        base = base.replace(char, "_")
    base = (base or "Track")[:MAX_SHEET_NAME_LEN]
    name = base
    i = 1
    while name in used:
        suffix = f"_{i}"
        name = base[: MAX_SHEET_NAME_LEN - len(suffix)] + suffix
        i += 1
    used.add(name)
    return name


def _style_header_row(ws: Worksheet, max_col: int) -> None:
    for col_idx in range(1, max_col + 1):
        cell = ws.cell(row=1, column=col_idx)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER


def _autosize(ws: Worksheet) -> None:
    if ws.max_row > AUTOSIZE_MAX_ROWS:
        return
    for col_cells in ws.columns:
        col_letter = getattr(col_cells[0], "column_letter", None)
        if not col_letter:
            continue
        max_len = max((len(str(c.value)) for c in col_cells if c.value is not None), default=0)
        ws.column_dimensions[col_letter].width = min(
            AUTOSIZE_MAX_WIDTH, max(AUTOSIZE_MIN_WIDTH, max_len + AUTOSIZE_PADDING)
        )


def _write_sheet(writer: pd.ExcelWriter, frame: pd.DataFrame, sheet_name: str) -> None:
    frame.to_excel(writer, sheet_name=sheet_name, index=False)
    ws = writer.sheets[sheet_name]
    _style_header_row(ws, len(frame.columns))
    _autosize(ws)


def write_ride_workbook(
    filepath: PathInput,
    routes: Sequence[SavedRoute],
    include_tracks: bool = True,
) -> Path:
    """Write a summary sheet plus, optionally, one track sheet per ride."""

    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        used: set[str] = {ROUTES_SHEET}
        if routes:
            _write_sheet(writer, routes_to_frame(routes), ROUTES_SHEET)
        else:
            _write_sheet(
                writer, pd.DataFrame({"Message": ["No saved rides."]}), ROUTES_SHEET
            )
        if include_tracks:
            for route in routes:
                sheet_name = _unique_sheet_name(route.name, used)
                _write_sheet(writer, track_to_frame(route), sheet_name)
    _LOGGER.info("Wrote %d ride(s) to %s", len(routes), path)
    return path
