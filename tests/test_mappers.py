"""Tests for DataFrame mapping and the weekday breakdown."""

from __future__ import annotations

from datetime import datetime

import pandas as pd
import pytest

from perfboard.mappers import (
    EXPORT_COLUMNS,
    WEEKDAY_ORDER,
    daily_heatmap,
    efficiency_frame,
    heat_level,
    period_averages,
    records_to_dataframe,
    trend_frame,
    weekday_breakdown,
)
from perfboard.parsers import weekday_name
from perfboard.schema import build_daily_metric


def _rec(day: int, spend: float, purchases: int):
    dt = datetime(2024, 3, day, 12)
    return build_daily_metric(
        date=dt, date_str=dt.strftime("%d/%m/%Y"), original_date_str=dt.strftime("%d/%m/%Y"),
        weekday=weekday_name(dt), spend=spend, purchases=purchases,
    )


def test_weekday_order_starts_on_sunday():
    assert WEEKDAY_ORDER[0] == "domingo"
    assert WEEKDAY_ORDER[1] == "segunda-feira"
    assert len(WEEKDAY_ORDER) == 7


def test_records_to_dataframe():
    df = records_to_dataframe([_rec(1, 10.0, 1), _rec(2, 20.0, 2)])
    assert len(df) == 2
    assert set(EXPORT_COLUMNS) <= set(df.columns)
    assert df["spend"].sum() == pytest.approx(30.0)


def test_records_to_dataframe_empty():
    df = records_to_dataframe([])
    assert df.empty
    assert list(df.columns) == EXPORT_COLUMNS


def test_weekday_breakdown_groups_and_fills():
    # 2024-03-01 and 2024-03-08 are Fridays, 2024-03-03 is a Sunday
    records = [_rec(1, 100.0, 2), _rec(8, 50.0, 3), _rec(3, 40.0, 0)]
    out = weekday_breakdown(records)
    assert list(out["weekday"]) == WEEKDAY_ORDER

    friday = out.set_index("weekday").loc["sexta-feira"]
    assert friday["spend"] == pytest.approx(150.0)
    assert friday["purchases"] == pytest.approx(5.0)
    assert friday["cpa"] == pytest.approx(30.0)

    sunday = out.set_index("weekday").loc["domingo"]
    assert sunday["spend"] == pytest.approx(40.0)
    assert sunday["cpa"] == 0

    monday = out.set_index("weekday").loc["segunda-feira"]
    assert (monday["spend"], monday["purchases"], monday["cpa"]) == (0, 0, 0)


def test_weekday_breakdown_empty():
    out = weekday_breakdown([])
    assert list(out["weekday"]) == WEEKDAY_ORDER
    assert out["spend"].sum() == 0


# ─────────────────────────────────────────────────────────────────────────────
# Heat map
# ─────────────────────────────────────────────────────────────────────────────


class TestHeatLevel:
    def test_neutral_band_is_five_percent(self):
        assert heat_level(104.0, 100.0) == "neutral"
        assert heat_level(96.0, 100.0) == "neutral"
        assert heat_level(106.0, 100.0) == "good"
        assert heat_level(94.0, 100.0) == "bad"

    def test_cost_metrics_are_inverse(self):
        assert heat_level(80.0, 100.0, lower_is_better=True) == "good"
        assert heat_level(120.0, 100.0, lower_is_better=True) == "bad"

    def test_volume_uses_wider_band(self):
        assert heat_level(115.0, 100.0, volume=True) == "neutral"
        assert heat_level(125.0, 100.0, volume=True) == "high"
        assert heat_level(75.0, 100.0, volume=True) == "low"

    def test_zero_value_and_zero_average(self):
        assert heat_level(0, 100.0) == "none"
        assert heat_level(5.0, 0.0) == "neutral"


def test_period_averages_weighted_cpa():
    records = [_rec(1, 100.0, 1), _rec(2, 300.0, 3)]
    avg = period_averages(records)
    assert avg["cpa"] == pytest.approx(100.0)
    assert avg["spend"] == pytest.approx(200.0)
    assert avg["purchases"] == pytest.approx(2.0)


def test_daily_heatmap_newest_first_with_levels():
    # CPAs 50, 100, 150 against a weighted average of 350 / 4 = 87.5
    records = [_rec(1, 100.0, 2), _rec(2, 100.0, 1), _rec(3, 150.0, 1)]
    table, levels = daily_heatmap(records)
    assert list(table["Data"]) == ["03/03", "02/03", "01/03"]
    assert list(table["Dia"]) == ["domingo", "sábado", "sexta"]
    assert list(levels["CPA"]) == ["bad", "bad", "good"]
    assert list(levels["Data"]) == ["", "", ""]
    assert levels.shape == table.shape


def test_daily_heatmap_empty():
    table, levels = daily_heatmap([])
    assert table.empty and levels.empty


# ─────────────────────────────────────────────────────────────────────────────
# Charts
# ─────────────────────────────────────────────────────────────────────────────


def test_trend_frame_overlays_previous_by_position():
    current = [_rec(8, 100.0, 2), _rec(9, 100.0, 4), _rec(10, 100.0, 5)]
    previous = [_rec(1, 90.0, 3), _rec(2, 80.0, 1)]
    out = trend_frame(current, previous, "cpa")
    assert list(out.columns) == ["CPA", "CPA (Anterior)"]
    assert list(out.index) == ["08/03", "09/03", "10/03"]
    assert list(out["CPA"]) == [50.0, 25.0, 20.0]
    assert out["CPA (Anterior)"].iloc[0] == pytest.approx(30.0)
    assert out["CPA (Anterior)"].iloc[1] == pytest.approx(80.0)
    assert pd.isna(out["CPA (Anterior)"].iloc[2])


def test_trend_frame_without_previous():
    out = trend_frame([_rec(1, 100.0, 2)], [], "spend")
    assert list(out.columns) == ["Investimento"]


def test_efficiency_frame():
    out = efficiency_frame([_rec(1, 100.0, 2)])
    assert list(out.columns) == ["CTR", "CPM"]
    assert list(out.index) == ["01/03"]
