"""Current / comparison window resolution over a date-ordered record set.

The comparison mode is a tagged variant; :func:`resolve_windows` dispatches on
its type so each mode's date arithmetic stays independently testable.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

from perfboard.schema import ALL_PROMOS, NO_PROMO, DailyMetric

DateLike = Union[date, datetime]


# ─────────────────────────────────────────────────────────────────────────────
# View state and comparison modes
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ViewState:
    """Primary selection: a promotion, or an inclusive date range."""

    start: Optional[DateLike] = None
    end: Optional[DateLike] = None
    promo: str = ALL_PROMOS

    @property
    def promo_selected(self) -> bool:
        return self.promo != ALL_PROMOS


@dataclass(frozen=True)
class PreviousPeriod:
    pass


@dataclass(frozen=True)
class PreviousWeek:
    pass


@dataclass(frozen=True)
class PreviousMonth:
    pass


@dataclass(frozen=True)
class Manual:
    start: Optional[DateLike] = None
    end: Optional[DateLike] = None


@dataclass(frozen=True)
class Promotion:
    label: Optional[str] = None


@dataclass(frozen=True)
class NoComparison:
    pass


ComparisonMode = Union[PreviousPeriod, PreviousWeek, PreviousMonth, Manual, Promotion, NoComparison]
RelativeMode = Union[PreviousPeriod, PreviousWeek, PreviousMonth]


class Windows(NamedTuple):
    current: List[DailyMetric]
    previous: List[DailyMetric]


# ─────────────────────────────────────────────────────────────────────────────
# Date helpers
# ─────────────────────────────────────────────────────────────────────────────


def _day(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def _at_noon(value: DateLike) -> datetime:
    """Calendar day of *value* at 12:00, whatever its time of day."""
    return datetime.combine(_day(value), time(12))


def _as_datetime(value: DateLike) -> datetime:
    return value if isinstance(value, datetime) else _at_noon(value)


def parse_input_date(text: Optional[str]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` date-picker value; blank gives ``None``."""
    if not text or not text.strip():
        return None
    return datetime.strptime(text.strip(), "%Y-%m-%d").date()


def shift_months(dt: datetime, months: int) -> datetime:
    """Move *dt* by whole months keeping the day number.

    Days past the end of the target month roll into the following month, so
    31 March minus one month is 2 March (leap year) or 3 March.
    """
    total = dt.year * 12 + (dt.month - 1) + months
    year, month0 = divmod(total, 12)
    first = dt.replace(year=year, month=month0 + 1, day=1)
    return first + timedelta(days=dt.day - 1)


def filter_by_date_range(
    records: Sequence[DailyMetric],
    start: DateLike,
    end: DateLike,
) -> List[DailyMetric]:
    """Records dated from start-of-day *start* to end-of-day *end*, inclusive."""
    s = datetime.combine(_day(start), time(0, 0, 0))
    e = datetime.combine(_day(end), time(23, 59, 59))
    return [r for r in records if s <= r.date <= e]


def filter_by_promo(records: Sequence[DailyMetric], promo: str) -> List[DailyMetric]:
    return [r for r in records if r.promo == promo]


def unique_promotions(
    records: Sequence[DailyMetric], no_promo_label: str = NO_PROMO
) -> List[str]:
    """Sorted distinct promotion labels, excluding the no-promotion sentinel."""
    return sorted({r.promo for r in records if r.promo and r.promo != no_promo_label})


# ─────────────────────────────────────────────────────────────────────────────
# Current window
# ─────────────────────────────────────────────────────────────────────────────


def select_current(records: Sequence[DailyMetric], view: ViewState) -> List[DailyMetric]:
    """A selected promotion spans the whole dataset and ignores the dates."""
    if not records:
        return []
    if view.promo_selected:
        return filter_by_promo(records, view.promo)
    if view.start is None or view.end is None:
        return []
    return filter_by_date_range(records, view.start, view.end)


def anchor_span(
    view: ViewState, current: Sequence[DailyMetric]
) -> Optional[Tuple[datetime, datetime]]:
    """Span whose duration drives the relative comparison shift.

    View bounds are anchored at noon so the span is a whole number of days.
    """
    if view.promo_selected and current:
        dates = [r.date for r in current]
        return min(dates), max(dates)
    if view.start is None or view.end is None:
        return None
    return _at_noon(view.start), _at_noon(view.end)


# ─────────────────────────────────────────────────────────────────────────────
# Relative shifts
# ─────────────────────────────────────────────────────────────────────────────


def _shift_previous_period(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    days = math.ceil((end - start).total_seconds() / 86400) + 1
    offset = timedelta(days=days)
    return start - offset, end - offset


def _shift_previous_week(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    offset = timedelta(days=7)
    return start - offset, end - offset


def _shift_previous_month(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    return shift_months(start, -1), shift_months(end, -1)


_RELATIVE_SHIFTS: Dict[type, Callable[[datetime, datetime], Tuple[datetime, datetime]]] = {
    PreviousPeriod: _shift_previous_period,
    PreviousWeek: _shift_previous_week,
    PreviousMonth: _shift_previous_month,
}


def previous_window(
    mode: RelativeMode, start: DateLike, end: DateLike
) -> Tuple[datetime, datetime]:
    """Shift the anchor span ``[start, end]`` back according to *mode*."""
    return _RELATIVE_SHIFTS[type(mode)](_as_datetime(start), _as_datetime(end))


# ─────────────────────────────────────────────────────────────────────────────
# Previous window per mode
# ─────────────────────────────────────────────────────────────────────────────


def _previous_none(records, view, current, mode: NoComparison) -> List[DailyMetric]:
    return []


def _previous_promotion(records, view, current, mode: Promotion) -> List[DailyMetric]:
    if not mode.label:
        return []
    return filter_by_promo(records, mode.label)


def _previous_manual(records, view, current, mode: Manual) -> List[DailyMetric]:
    if mode.start is None or mode.end is None:
        return []
    return filter_by_date_range(records, mode.start, mode.end)


def _previous_relative(records, view, current, mode: RelativeMode) -> List[DailyMetric]:
    span = anchor_span(view, current)
    if span is None:
        return []
    prev_start, prev_end = previous_window(mode, *span)
    return filter_by_date_range(records, prev_start, prev_end)


_PREVIOUS_RESOLVERS = {
    NoComparison: _previous_none,
    Promotion: _previous_promotion,
    Manual: _previous_manual,
    PreviousPeriod: _previous_relative,
    PreviousWeek: _previous_relative,
    PreviousMonth: _previous_relative,
}


def resolve_windows(
    records: Sequence[DailyMetric],
    view: ViewState,
    comparison: ComparisonMode,
) -> Windows:
    """Return fresh ``(current, previous)`` lists for the given selection."""
    current = select_current(records, view)
    if not records:
        return Windows(current, [])
    try:
        resolver = _PREVIOUS_RESOLVERS[type(comparison)]
    except KeyError:
        raise TypeError(f"Unknown comparison mode: {comparison!r}") from None
    return Windows(current, resolver(records, view, current, comparison))


# ─────────────────────────────────────────────────────────────────────────────
# Initial dashboard state
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DashboardState:
    view: ViewState
    manual: Manual
    benchmark_promo: Optional[str] = None


def initial_state(
    records: Sequence[DailyMetric],
    window_days: int = 14,
    no_promo_label: str = NO_PROMO,
) -> DashboardState:
    """Default selection for a freshly loaded record set.

    The view covers the last *window_days* days of data, the manual benchmark
    the *window_days* days before it, and the benchmark promotion is the
    first promotion label in sort order.
    """
    if not records:
        return DashboardState(view=ViewState(), manual=Manual())
    end = max(r.date for r in records).date()
    start = end - timedelta(days=window_days - 1)
    prev_end = start - timedelta(days=1)
    prev_start = prev_end - timedelta(days=window_days - 1)
    promos = unique_promotions(records, no_promo_label)
    return DashboardState(
        view=ViewState(start=start, end=end),
        manual=Manual(start=prev_start, end=prev_end),
        benchmark_promo=promos[0] if promos else None,
    )


def comparison_from_name(
    name: str,
    manual: Optional[Manual] = None,
    benchmark_promo: Optional[str] = None,
) -> ComparisonMode:
    """Build the comparison variant for a mode name such as ``previous_week``."""
    if name == "previous_period":
        return PreviousPeriod()
    if name == "previous_week":
        return PreviousWeek()
    if name == "previous_month":
        return PreviousMonth()
    if name == "manual":
        return manual or Manual()
    if name == "promotion":
        return Promotion(benchmark_promo)
    if name == "none":
        return NoComparison()
    raise ValueError(f"Unknown comparison mode: {name!r}")
