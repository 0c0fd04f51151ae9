"""Tests for current / comparison window resolution."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from perfboard.periods import (
    Manual,
    NoComparison,
    PreviousMonth,
    PreviousPeriod,
    PreviousWeek,
    Promotion,
    ViewState,
    comparison_from_name,
    filter_by_date_range,
    initial_state,
    parse_input_date,
    previous_window,
    resolve_windows,
    shift_months,
    unique_promotions,
)
from perfboard.schema import NO_PROMO, build_daily_metric


def _rec(d: date, promo: str = NO_PROMO, spend: float = 10.0):
    dt = datetime(d.year, d.month, d.day, 12)
    return build_daily_metric(
        date=dt, date_str=dt.strftime("%d/%m/%Y"), original_date_str=dt.strftime("%d/%m/%Y"),
        weekday="", spend=spend, purchases=1, promo=promo,
    )


def _daily(start: date, days: int, promo: str = NO_PROMO):
    return [_rec(start + timedelta(days=i), promo) for i in range(days)]


def _dates(records):
    return [r.date.date() for r in records]


# 2024-01-01 .. 2024-04-30, one record per day
ALL = _daily(date(2024, 1, 1), 121)


# ─────────────────────────────────────────────────────────────────────────────
# Shift arithmetic
# ─────────────────────────────────────────────────────────────────────────────


class TestPreviousWindow:
    def test_previous_period_14_days(self):
        start, end = previous_window(PreviousPeriod(), date(2024, 3, 1), date(2024, 3, 14))
        assert (start.date(), end.date()) == (date(2024, 2, 16), date(2024, 2, 29))

    def test_previous_period_7_days(self):
        start, end = previous_window(PreviousPeriod(), date(2024, 3, 8), date(2024, 3, 14))
        assert (start.date(), end.date()) == (date(2024, 3, 1), date(2024, 3, 7))

    def test_previous_period_single_day(self):
        start, end = previous_window(PreviousPeriod(), date(2024, 3, 8), date(2024, 3, 8))
        assert (start.date(), end.date()) == (date(2024, 3, 7), date(2024, 3, 7))

    def test_partial_day_duration_rounds_up(self):
        start, end = previous_window(
            PreviousPeriod(), datetime(2024, 3, 1, 12), datetime(2024, 3, 3, 18)
        )
        # ceil(2.25) + 1 = 4 days
        assert start == datetime(2024, 2, 26, 12)
        assert end == datetime(2024, 2, 28, 18)

    def test_previous_week(self):
        start, end = previous_window(PreviousWeek(), date(2024, 3, 1), date(2024, 3, 14))
        assert (start.date(), end.date()) == (date(2024, 2, 23), date(2024, 3, 7))

    def test_previous_month(self):
        start, end = previous_window(PreviousMonth(), date(2024, 3, 1), date(2024, 3, 14))
        assert (start.date(), end.date()) == (date(2024, 2, 1), date(2024, 2, 14))

    def test_previous_month_day_overflow_rolls_forward(self):
        start, end = previous_window(PreviousMonth(), date(2024, 3, 31), date(2024, 3, 31))
        assert start.date() == date(2024, 3, 2)

    def test_shift_months_across_year(self):
        assert shift_months(datetime(2024, 1, 15, 12), -1) == datetime(2023, 12, 15, 12)


# ─────────────────────────────────────────────────────────────────────────────
# Window resolution
# ─────────────────────────────────────────────────────────────────────────────


class TestResolveWindows:
    view = ViewState(start=date(2024, 3, 1), end=date(2024, 3, 14))

    def test_current_is_inclusive_range(self):
        current, _ = resolve_windows(ALL, self.view, NoComparison())
        assert _dates(current)[0] == date(2024, 3, 1)
        assert _dates(current)[-1] == date(2024, 3, 14)
        assert len(current) == 14

    def test_none_gives_empty_previous(self):
        assert resolve_windows(ALL, self.view, NoComparison()).previous == []

    def test_previous_period(self):
        _, previous = resolve_windows(ALL, self.view, PreviousPeriod())
        assert _dates(previous)[0] == date(2024, 2, 16)
        assert _dates(previous)[-1] == date(2024, 2, 29)
        assert len(previous) == 14

    def test_previous_month(self):
        _, previous = resolve_windows(ALL, self.view, PreviousMonth())
        assert len(previous) == 14
        assert _dates(previous)[0] == date(2024, 2, 1)

    def test_manual(self):
        _, previous = resolve_windows(
            ALL, self.view, Manual(date(2024, 1, 10), date(2024, 1, 12))
        )
        assert _dates(previous) == [date(2024, 1, 10), date(2024, 1, 11), date(2024, 1, 12)]

    def test_manual_without_dates_is_empty(self):
        assert resolve_windows(ALL, self.view, Manual(date(2024, 1, 10), None)).previous == []

    def test_blank_view_dates_give_empty_current(self):
        windows = resolve_windows(ALL, ViewState(), PreviousPeriod())
        assert windows.current == []
        assert windows.previous == []

    def test_empty_dataset(self):
        assert resolve_windows([], self.view, PreviousPeriod()) == ([], [])

    def test_datetime_view_bounds_anchor_on_calendar_days(self):
        view = ViewState(start=datetime(2024, 3, 1, 0, 0), end=datetime(2024, 3, 14, 23, 59, 59))
        current, previous = resolve_windows(ALL, view, PreviousPeriod())
        assert len(current) == 14
        assert _dates(previous)[0] == date(2024, 2, 16)
        assert _dates(previous)[-1] == date(2024, 2, 29)

    def test_unknown_mode_raises(self):
        with pytest.raises(TypeError):
            resolve_windows(ALL, self.view, object())

    def test_results_are_fresh_lists(self):
        a = resolve_windows(ALL, self.view, PreviousPeriod())
        b = resolve_windows(ALL, self.view, PreviousPeriod())
        assert a == b
        assert a.current is not b.current


class TestPromotions:
    records = (
        _daily(date(2024, 1, 1), 10)
        + _daily(date(2024, 1, 11), 3, "BlackFriday")
        + _daily(date(2024, 1, 14), 10)
        + _daily(date(2024, 2, 1), 2, "Carnaval")
    )

    def test_promo_isolation_ignores_dates(self):
        view = ViewState(start=date(2024, 2, 1), end=date(2024, 2, 2), promo="BlackFriday")
        current, _ = resolve_windows(self.records, view, NoComparison())
        assert {r.promo for r in current} == {"BlackFriday"}
        assert _dates(current) == [date(2024, 1, 11), date(2024, 1, 12), date(2024, 1, 13)]

    def test_promo_vs_promo(self):
        view = ViewState(promo="BlackFriday")
        _, previous = resolve_windows(self.records, view, Promotion("Carnaval"))
        assert _dates(previous) == [date(2024, 2, 1), date(2024, 2, 2)]

    def test_promotion_without_label_is_empty(self):
        view = ViewState(promo="BlackFriday")
        assert resolve_windows(self.records, view, Promotion(None)).previous == []

    def test_relative_mode_anchors_on_promo_span(self):
        view = ViewState(promo="BlackFriday")
        _, previous = resolve_windows(self.records, view, PreviousPeriod())
        # promo spans 11..13 Jan (3 days) -> 8..10 Jan
        assert _dates(previous) == [date(2024, 1, 8), date(2024, 1, 9), date(2024, 1, 10)]

    def test_unknown_promo_gives_empty_current_and_previous(self):
        windows = resolve_windows(self.records, ViewState(promo="Nope"), PreviousPeriod())
        assert windows == ([], [])

    def test_unique_promotions_sorted_without_sentinel(self):
        assert unique_promotions(self.records) == ["BlackFriday", "Carnaval"]


# ─────────────────────────────────────────────────────────────────────────────
# Helpers and initial state
# ─────────────────────────────────────────────────────────────────────────────


def test_filter_bounds_cover_whole_days():
    late = build_daily_metric(
        date=datetime(2024, 3, 14, 23, 59, 0), date_str="", original_date_str="", weekday="",
        spend=1.0,
    )
    early = build_daily_metric(
        date=datetime(2024, 3, 1, 0, 0, 0), date_str="", original_date_str="", weekday="",
        spend=1.0,
    )
    assert filter_by_date_range([early, late], date(2024, 3, 1), date(2024, 3, 14)) == [early, late]


def test_initial_state():
    records = _daily(date(2024, 1, 1), 60) + _daily(date(2024, 3, 1), 2, "Zeta") + _daily(date(2024, 3, 3), 1, "Alpha")
    state = initial_state(records, window_days=14)
    assert state.view == ViewState(start=date(2024, 2, 19), end=date(2024, 3, 3))
    assert state.manual == Manual(start=date(2024, 2, 5), end=date(2024, 2, 18))
    assert state.benchmark_promo == "Alpha"


def test_initial_state_empty():
    state = initial_state([])
    assert state.view == ViewState()
    assert state.benchmark_promo is None


def test_comparison_from_name():
    manual = Manual(date(2024, 1, 1), date(2024, 1, 2))
    assert comparison_from_name("previous_week") == PreviousWeek()
    assert comparison_from_name("manual", manual) == manual
    assert comparison_from_name("promotion", benchmark_promo="X") == Promotion("X")
    assert comparison_from_name("none") == NoComparison()
    with pytest.raises(ValueError):
        comparison_from_name("yesterday")


def test_parse_input_date():
    assert parse_input_date("2024-03-01") == date(2024, 3, 1)
    assert parse_input_date("") is None
    assert parse_input_date(None) is None
