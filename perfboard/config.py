"""Load and validate config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import yaml

from perfboard.parsers import InvalidNumber, UnparseableDate
from perfboard.schema import NO_PROMO


class ConfigError(ValueError):
    """Raised when config.yaml holds an unknown policy or mode name."""


@dataclass
class TabConfig:
    id: str
    label: str
    sheet_name: str


def _default_tabs() -> List[TabConfig]:
    return [
        TabConfig("geral", "Visão Geral", "Geral Tráfego"),
        TabConfig("tp-site", "TP-Site", "TP-Site"),
        TabConfig("tp-app", "TP-APP", "TP-APP"),
        TabConfig("meta", "Meta Ads", "Meta Ads"),
        TabConfig("google", "Google Ads", "Google Ads"),
        TabConfig("tiktok", "Tiktok Ads", "Tiktok Ads"),
    ]


@dataclass
class SheetConfig:
    sheet_id: str = "1PzalyjV_OJZAhkk5L7Dk7lpScjDT3jxnnzQ8_mBCqcQ"
    base_url: str = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq?tqx=out:csv"
    request_timeout_seconds: float = 30.0
    tabs: List[TabConfig] = field(default_factory=_default_tabs)

    def tab(self, tab_id: str) -> TabConfig:
        """Return the tab with *tab_id*, falling back to the first tab."""
        for t in self.tabs:
            if t.id == tab_id:
                return t
        return self.tabs[0]


@dataclass
class IngestConfig:
    header_scan_lines: int = 5
    no_promo_label: str = NO_PROMO
    on_unparseable_date: UnparseableDate = UnparseableDate.USE_CURRENT_INSTANT
    on_invalid_integer: InvalidNumber = InvalidNumber.ZERO


@dataclass
class ViewConfig:
    default_window_days: int = 14
    default_comparison: str = "previous_period"


@dataclass
class ProviderConfig:
    name: str = "anthropic"
    model: str = "claude-sonnet-4-5-20250929"
    temperature: float = 0.3
    max_tokens: int = 1024


@dataclass
class RetryConfig:
    """Exponential-backoff settings for live API calls."""

    max_api_retries: int = 3
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 60.0


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class AppConfig:
    sheet: SheetConfig = field(default_factory=SheetConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    view: ViewConfig = field(default_factory=ViewConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    retry_api: RetryConfig = field(default_factory=RetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


COMPARISON_MODES = (
    "previous_period",
    "previous_week",
    "previous_month",
    "manual",
    "promotion",
    "none",
)


def _sheet_config(raw: Dict) -> SheetConfig:
    raw = dict(raw)
    tabs = raw.pop("tabs", None)
    cfg = SheetConfig(**raw)
    if tabs:
        cfg.tabs = [TabConfig(**t) for t in tabs]
    return cfg


def _ingest_config(raw: Dict) -> IngestConfig:
    raw = dict(raw)
    try:
        if "on_unparseable_date" in raw:
            raw["on_unparseable_date"] = UnparseableDate(raw["on_unparseable_date"])
        if "on_invalid_integer" in raw:
            raw["on_invalid_integer"] = InvalidNumber(raw["on_invalid_integer"])
    except ValueError as exc:
        raise ConfigError(f"ingest: {exc}") from exc
    return IngestConfig(**raw)


def _view_config(raw: Dict) -> ViewConfig:
    cfg = ViewConfig(**raw)
    if cfg.default_comparison not in COMPARISON_MODES:
        raise ConfigError(
            f"view.default_comparison must be one of {', '.join(COMPARISON_MODES)}; "
            f"got {cfg.default_comparison!r}"
        )
    return cfg


def load_config(path: str | Path = "config.yaml") -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    p = Path(path)
    raw: dict = {}
    if p.exists():
        with open(p, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    def section(name: str) -> Dict:
        # a bare `name:` key loads as None
        return raw.get(name) or {}

    return AppConfig(
        sheet=_sheet_config(section("sheet")),
        ingest=_ingest_config(section("ingest")),
        view=_view_config(section("view")),
        provider=ProviderConfig(**section("provider")),
        retry_api=RetryConfig(**section("retry_api")),
        logging=LoggingConfig(**section("logging")),
    )
