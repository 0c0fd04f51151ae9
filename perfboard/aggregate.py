"""Reduce DailyMetric sequences into totals and weighted averages."""

from __future__ import annotations

from typing import Sequence

from perfboard.schema import AggregateResult, Averages, DailyMetric, Totals, safe_ratio


def sum_totals(records: Sequence[DailyMetric]) -> Totals:
    return Totals(
        spend=sum((r.spend for r in records), 0.0),
        impressions=sum(r.impressions for r in records),
        clicks=sum(r.clicks for r in records),
        installs=sum(r.installs for r in records),
        purchases=sum(r.purchases for r in records),
        title_cost=sum((r.title_cost for r in records), 0.0),
        revenue=sum((r.revenue for r in records), 0.0),
        clients=sum(r.clients for r in records),
    )


def aggregate(records: Sequence[DailyMetric]) -> AggregateResult:
    """Sum *records* and derive ratio averages from the sums.

    Ratios come from summed numerators and denominators, never from the mean
    of per-day ratios, so low-volume days do not skew them. Empty input gives
    all zeros.
    """
    t = sum_totals(records)
    averages = Averages(
        cpm=safe_ratio(t.spend, t.impressions, 1000),
        ctr=safe_ratio(t.clicks, t.impressions, 100),
        cpc=safe_ratio(t.spend, t.clicks),
        cpi=safe_ratio(t.spend, t.installs),
        cpa=safe_ratio(t.spend, t.purchases),
        conversion_rate=safe_ratio(t.purchases, t.clicks, 100),
        install_rate=safe_ratio(t.installs, t.clicks, 100),
        roas=safe_ratio(t.revenue, t.spend),
        avg_title_cost=safe_ratio(t.title_cost, len(records)),
        titles_per_client=safe_ratio(t.purchases, t.clients),
    )
    return AggregateResult(totals=t, averages=averages)
