"""Excel export of saved rides."""

from __future__ import annotations

import pandas as pd
import pytest

from ride_companion.export import routes_to_frame, track_to_frame, write_ride_workbook

from helpers import make_route


def test_routes_frame_units() -> None:
    frame = routes_to_frame([make_route("r1")])
    row = frame.iloc[0]
    assert row["Distance (km)"] == pytest.approx(1.2)
    assert row["Duration (min)"] == pytest.approx(5.0)
    assert row["Points"] == 2
    assert row["Start"].startswith("2025-05-01T07:00:00")
    assert row["ID"] == "r1"


def test_track_frame_cumulative_distance() -> None:
    frame = track_to_frame(make_route("r1"))
    assert list(frame.columns) == ["Latitude", "Longitude", "Leg (m)", "Cumulative (m)"]
    assert frame["Leg (m)"].iloc[0] == 0.0
    assert frame["Cumulative (m)"].iloc[-1] == pytest.approx(frame["Leg (m)"].sum())


def test_write_workbook_with_tracks(tmp_path) -> None:
    routes = [make_route("r1", name="Ride 2025-05-01 07:00"), make_route("r2", name="Ride 2025-05-01 07:00")]
    out = write_ride_workbook(tmp_path / "out" / "rides.xlsx", routes)
    assert out.exists()
    with pd.ExcelFile(out) as xf:
        assert xf.sheet_names[0] == "Routes"
        assert len(xf.sheet_names) == 3
        assert all(":" not in name for name in xf.sheet_names)
        summary = pd.read_excel(xf, sheet_name="Routes")
    assert list(summary["ID"]) == ["r1", "r2"]


def test_write_workbook_without_routes(tmp_path) -> None:
    out = write_ride_workbook(tmp_path / "empty.xlsx", [])
    with pd.ExcelFile(out) as xf:
        assert xf.sheet_names == ["Routes"]
        assert "Message" in pd.read_excel(xf, sheet_name="Routes").columns
