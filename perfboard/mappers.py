"""Mapping utilities between DailyMetric records and pandas DataFrames."""
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

import pandas as pd

from perfboard.parsers import WEEKDAYS_PT_BR
from perfboard.schema import DailyMetric, safe_ratio

# Sunday first, as the weekly breakdown is displayed.
WEEKDAY_ORDER: List[str] = [WEEKDAYS_PT_BR[6]] + WEEKDAYS_PT_BR[:6]

EXPORT_COLUMNS = [
    "date", "weekday", "promo", "spend", "impressions", "clicks", "installs",
    "purchases", "title_cost", "revenue", "clients", "ctr", "cpm", "cpc", "cpi",
    "cpa", "install_rate", "conversion_rate", "roas", "titles_per_client",
]


def records_to_dataframe(records: Iterable[DailyMetric]) -> pd.DataFrame:
    data = [r.to_dict() for r in records]
    if not data:
        return pd.DataFrame(columns=EXPORT_COLUMNS)
    return pd.DataFrame(data)


def weekday_breakdown(records: Iterable[DailyMetric]) -> pd.DataFrame:
    """Spend, purchases and weighted CPA per weekday, Sunday first.

    Every weekday is present; weekdays without data show zeros.
    """
    df = records_to_dataframe(records)
    grouped = (
        df.groupby("weekday")[["spend", "purchases"]].sum()
        if not df.empty
        else pd.DataFrame(columns=["spend", "purchases"])
    )
    out = grouped.reindex(WEEKDAY_ORDER, fill_value=0).astype(float)
    out["cpa"] = (out["spend"] / out["purchases"]).where(out["purchases"] > 0, 0.0)
    out.index.name = "weekday"
    return out.reset_index()


# ─────────────────────────────────────────────────────────────────────────────
# Daily heat map
# ─────────────────────────────────────────────────────────────────────────────

NEUTRAL_BAND_PCT = 5.0
VOLUME_BAND_PCT = 20.0

# column -> (record attribute, lower_is_better, volume_only)
HEATMAP_COLUMNS = {
    "CPA": ("cpa", True, False),
    "Compras": ("purchases", False, False),
    "Investimento": ("spend", False, True),
    "CTR %": ("ctr", False, False),
}


def period_averages(records: Sequence[DailyMetric]) -> Dict[str, float]:
    """Reference values each day is compared against.

    CPA is the period's weighted CPA; the rest are plain per-day means.
    """
    records = list(records)
    if not records:
        return {"cpa": 0.0, "purchases": 0.0, "spend": 0.0, "ctr": 0.0}
    n = len(records)
    spend = sum(r.spend for r in records)
    purchases = sum(r.purchases for r in records)
    return {
        "cpa": safe_ratio(spend, purchases),
        "purchases": purchases / n,
        "spend": spend / n,
        "ctr": sum(r.ctr for r in records) / n,
    }


def heat_level(value: float, average: float, lower_is_better: bool = False, volume: bool = False) -> str:
    """Classify *value* against *average*.

    Performance metrics give ``good``, ``bad`` or ``neutral`` (within 5%);
    volume metrics give ``high``, ``low`` or ``neutral`` (20% band). A zero
    value is always ``none``.
    """
    if value == 0:
        return "none"
    if not average > 0:
        return "neutral"
    diff = (value - average) / average * 100
    if volume:
        if diff > VOLUME_BAND_PCT:
            return "high"
        if diff < -VOLUME_BAND_PCT:
            return "low"
        return "neutral"
    if abs(diff) < NEUTRAL_BAND_PCT:
        return "neutral"
    better = diff < 0 if lower_is_better else diff > 0
    return "good" if better else "bad"


def daily_heatmap(records: Sequence[DailyMetric]) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Newest-first daily table plus a same-shaped frame of heat levels."""
    days = sorted(records, key=lambda r: r.date, reverse=True)
    avg = period_averages(days)
    table = pd.DataFrame(
        {
            "Data": [r.original_date_str[:5] for r in days],
            "Dia": [r.weekday.split("-")[0] for r in days],
            **{col: [getattr(r, attr) for r in days] for col, (attr, _, _) in HEATMAP_COLUMNS.items()},
        }
    )
    levels = pd.DataFrame("", index=table.index, columns=table.columns)
    for col, (attr, inverse, volume) in HEATMAP_COLUMNS.items():
        levels[col] = [heat_level(getattr(r, attr), avg[attr], inverse, volume) for r in days]
    return table, levels


# ─────────────────────────────────────────────────────────────────────────────
# Charts
# ─────────────────────────────────────────────────────────────────────────────

TREND_METRICS = {"cpa": "CPA", "spend": "Investimento", "purchases": "Compras"}


def trend_frame(
    current: Sequence[DailyMetric],
    previous: Sequence[DailyMetric],
    metric: str = "cpa",
) -> pd.DataFrame:
    """One metric per day, with the comparison window overlaid by position.

    Day *i* of the previous window sits next to day *i* of the current one;
    positions past the end of the shorter window are empty.
    """
    label = TREND_METRICS[metric]
    out = pd.DataFrame(
        {label: [getattr(r, metric) for r in current]},
        index=[r.original_date_str[:5] for r in current],
    )
    if previous and not out.empty:
        prev = [getattr(r, metric) for r in previous][: len(out)]
        out[f"{label} (Anterior)"] = prev + [None] * (len(out) - len(prev))
    return out


def efficiency_frame(records: Sequence[DailyMetric]) -> pd.DataFrame:
    """Daily CTR and CPM."""
    return pd.DataFrame(
        {"CTR": [r.ctr for r in records], "CPM": [r.cpm for r in records]},
        index=[r.original_date_str[:5] for r in records],
    )
