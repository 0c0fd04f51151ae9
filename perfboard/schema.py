"""Internal record types: daily metrics, aggregates and AI summaries."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List

NO_PROMO = "Sem Promo"
ALL_PROMOS = "all"


def safe_ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    """numerator / denominator * scale; 0 for a non-positive denominator or a NaN numerator."""
    if not denominator > 0 or math.isnan(numerator):
        return 0.0
    return (numerator / denominator) * scale


@dataclass(frozen=True)
class DailyMetric:
    date: datetime
    date_str: str
    original_date_str: str
    weekday: str

    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    installs: int = 0
    purchases: int = 0
    title_cost: float = 0.0
    revenue: float = 0.0
    clients: int = 0

    ctr: float = 0.0
    cpm: float = 0.0
    cpc: float = 0.0
    cpi: float = 0.0
    cpa: float = 0.0
    install_rate: float = 0.0
    conversion_rate: float = 0.0
    roas: float = 0.0
    titles_per_client: float = 0.0

    promo: str = NO_PROMO

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_daily_metric(
    *,
    date: datetime,
    date_str: str,
    original_date_str: str,
    weekday: str,
    spend: float = 0.0,
    impressions: int = 0,
    clicks: int = 0,
    installs: int = 0,
    purchases: int = 0,
    title_cost: float = 0.0,
    revenue: float = 0.0,
    clients: int = 0,
    promo: str = NO_PROMO,
) -> DailyMetric:
    """Build a record and derive every ratio from its raw quantities.

    A zero (or missing) sheet revenue falls back to ``purchases * title_cost``.
    """
    revenue = revenue or (purchases * title_cost)
    return DailyMetric(
        date=date,
        date_str=date_str,
        original_date_str=original_date_str,
        weekday=weekday,
        spend=spend,
        impressions=impressions,
        clicks=clicks,
        installs=installs,
        purchases=purchases,
        title_cost=title_cost,
        revenue=revenue,
        clients=clients,
        ctr=safe_ratio(clicks, impressions, 100),
        cpm=safe_ratio(spend, impressions, 1000),
        cpc=safe_ratio(spend, clicks),
        cpi=safe_ratio(spend, installs),
        cpa=safe_ratio(spend, purchases),
        install_rate=safe_ratio(installs, clicks, 100),
        conversion_rate=safe_ratio(purchases, clicks, 100),
        roas=safe_ratio(revenue, spend),
        titles_per_client=safe_ratio(purchases, clients),
        promo=promo,
    )


@dataclass(frozen=True)
class Totals:
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    installs: int = 0
    purchases: int = 0
    title_cost: float = 0.0
    revenue: float = 0.0
    clients: int = 0


@dataclass(frozen=True)
class Averages:
    cpm: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    cpi: float = 0.0
    cpa: float = 0.0
    conversion_rate: float = 0.0
    install_rate: float = 0.0
    roas: float = 0.0
    avg_title_cost: float = 0.0
    titles_per_client: float = 0.0


@dataclass(frozen=True)
class AggregateResult:
    totals: Totals = field(default_factory=Totals)
    averages: Averages = field(default_factory=Averages)

    def to_dict(self) -> Dict[str, Any]:
        return {"totals": asdict(self.totals), "averages": asdict(self.averages)}


@dataclass
class SummaryResponse:
    executive_summary: List[str] = field(default_factory=list)
    action_plan: List[str] = field(default_factory=list)
    risks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "executive_summary": list(self.executive_summary),
            "action_plan": list(self.action_plan),
            "risks": list(self.risks),
        }
