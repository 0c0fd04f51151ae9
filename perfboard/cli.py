"""CLI entry point for Performance Board."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Optional, Tuple

import click

from perfboard import __version__
from perfboard.aggregate import aggregate
from perfboard.config import COMPARISON_MODES, AppConfig, load_config
from perfboard.connectors.google_sheets import SheetFetchError, load_sheet
from perfboard.ingest import IngestResult, parse_sheet
from perfboard.logging_utils import configure_logging
from perfboard.mappers import records_to_dataframe
from perfboard.periods import (
    Manual,
    ViewState,
    Windows,
    comparison_from_name,
    initial_state,
    parse_input_date,
    resolve_windows,
)
from perfboard.schema import ALL_PROMOS, AggregateResult
from perfboard.summary import generate_summary

# (label, section, attribute, is_currency)
KPI_ROWS = [
    ("Investimento", "totals", "spend", True),
    ("Impressões", "totals", "impressions", False),
    ("Cliques", "totals", "clicks", False),
    ("CPM", "averages", "cpm", True),
    ("CTR %", "averages", "ctr", False),
    ("CPC", "averages", "cpc", True),
    ("Instalações", "totals", "installs", False),
    ("CPI", "averages", "cpi", True),
    ("Compras", "totals", "purchases", False),
    ("Taxa Conv. %", "averages", "conversion_rate", False),
    ("CPA", "averages", "cpa", True),
    ("Receita", "totals", "revenue", True),
    ("ROAS", "averages", "roas", False),
    ("Clientes", "totals", "clients", False),
    ("Títulos/Cliente", "averages", "titles_per_client", False),
]


def _get_provider(cfg: AppConfig, mode: str):
    """Return the appropriate provider based on mode."""
    if mode == "dry":
        from perfboard.providers.mock_provider import MockProvider

        return MockProvider()
    else:
        from perfboard.providers.anthropic_provider import AnthropicProvider

        pcfg = cfg.provider
        return AnthropicProvider(
            model=pcfg.model,
            temperature=pcfg.temperature,
            max_tokens=pcfg.max_tokens,
            retry_cfg=cfg.retry_api,
        )


def _load(cfg: AppConfig, tab: str, input_path: Optional[str]) -> IngestResult:
    if input_path:
        p = Path(input_path)
        return parse_sheet(p.read_text(encoding="utf-8"), p.name, cfg.ingest)
    sheet_name = cfg.sheet.tab(tab).sheet_name
    try:
        return load_sheet(sheet_name, cfg)
    except SheetFetchError as exc:
        raise click.ClickException(str(exc))


def _date_option(ctx, param, value: Optional[str]) -> Optional[date]:
    try:
        return parse_input_date(value)
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {value!r}")


def _select(
    result: IngestResult,
    cfg: AppConfig,
    start: Optional[date],
    end: Optional[date],
    promo: str,
    compare: Optional[str],
    compare_start: Optional[date],
    compare_end: Optional[date],
    compare_promo: Optional[str],
) -> Tuple[ViewState, Windows]:
    init = initial_state(
        result.records, cfg.view.default_window_days, cfg.ingest.no_promo_label
    )
    view = ViewState(
        start=start or init.view.start,
        end=end or init.view.end,
        promo=promo,
    )
    manual = init.manual
    if compare_start or compare_end:
        manual = Manual(compare_start, compare_end)
    comparison = comparison_from_name(
        compare or cfg.view.default_comparison,
        manual,
        compare_promo or init.benchmark_promo,
    )
    return view, resolve_windows(result.records, view, comparison)


def _fmt(value: float, currency: bool) -> str:
    return f"R$ {value:,.2f}" if currency else f"{value:,.2f}"


def _echo_kpis(current: AggregateResult, previous: AggregateResult) -> None:
    click.echo(f"   {'Métrica':<18}{'Atual':>18}{'Anterior':>18}{'Var.':>10}")
    for label, section, attr, currency in KPI_ROWS:
        cur = getattr(getattr(current, section), attr)
        prev = getattr(getattr(previous, section), attr)
        delta = f"{(cur - prev) / prev * 100:+.1f}%" if prev else "—"
        click.echo(
            f"   {label:<18}{_fmt(cur, currency):>18}{_fmt(prev, currency):>18}{delta:>10}"
        )


_source_options = [
    click.option("--tab", default="geral", show_default=True, help="Dashboard tab id"),
    click.option("--input", "input_path", default=None, help="Read a local CSV instead of the sheet"),
    click.option("--config", "config_path", default="config.yaml", help="Config file path"),
]

_selection_options = [
    click.option("--start", default=None, callback=_date_option, help="View start (YYYY-MM-DD)"),
    click.option("--end", default=None, callback=_date_option, help="View end (YYYY-MM-DD)"),
    click.option("--promo", default=ALL_PROMOS, show_default=True, help="Promotion to isolate"),
    click.option("--compare", type=click.Choice(COMPARISON_MODES), default=None, help="Comparison mode"),
    click.option("--compare-start", default=None, callback=_date_option, help="Manual benchmark start"),
    click.option("--compare-end", default=None, callback=_date_option, help="Manual benchmark end"),
    click.option("--compare-promo", default=None, help="Benchmark promotion"),
]


def _apply(options):
    def decorator(f):
        for opt in reversed(options):
            f = opt(f)
        return f

    return decorator


@click.group()
@click.version_option(version=__version__, prog_name="perfboard")
def cli():
    """Performance Board: ads performance from a published spreadsheet."""
    pass


@cli.command()
@click.option("--config", "config_path", default="config.yaml", help="Config file path")
def tabs(config_path: str):
    """List configured dashboard tabs."""
    cfg = load_config(config_path)
    for t in cfg.sheet.tabs:
        click.echo(f"{t.id:<10} {t.label:<14} → sheet '{t.sheet_name}'")


@cli.command()
@_apply(_source_options)
@click.option("--out", "out_path", default=None, help="Write ingested records to CSV")
def fetch(tab: str, input_path: Optional[str], config_path: str, out_path: Optional[str]):
    """Fetch and ingest one tab, then report what was parsed."""
    cfg = load_config(config_path)
    configure_logging(cfg.logging.level)
    result = _load(cfg, tab, input_path)

    click.echo(f"📂 Sheet: {result.sheet_name}")
    click.echo(f"   Header row:   {result.header_row_index}")
    click.echo(f"   Columns:      {', '.join(result.headers)}")
    if result.missing_critical_fields:
        click.echo(
            f"   ⚠️ Missing critical columns: {', '.join(result.missing_critical_fields)}",
            err=True,
        )
    click.echo(f"   Records:      {len(result.records)}")
    click.echo(f"   Rows skipped: {result.rejected}")
    if result.records:
        click.echo(
            f"   Span:         {result.records[0].original_date_str} → "
            f"{result.records[-1].original_date_str}"
        )

    if out_path:
        p = Path(out_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        records_to_dataframe(result.records).to_csv(p, index=False, encoding="utf-8")
        click.echo(f"✅ Wrote {len(result.records)} records to {out_path}")


@cli.command()
@_apply(_source_options)
@_apply(_selection_options)
def compare(tab, input_path, config_path, start, end, promo, compare, compare_start, compare_end, compare_promo):
    """Aggregate the selected window and its comparison window."""
    cfg = load_config(config_path)
    configure_logging(cfg.logging.level)
    result = _load(cfg, tab, input_path)
    view, windows = _select(
        result, cfg, start, end, promo, compare, compare_start, compare_end, compare_promo
    )

    click.echo(f"📊 {result.sheet_name}")
    if view.promo_selected:
        click.echo(f"   Análise: Promoção {view.promo}")
    else:
        click.echo(f"   Análise: {view.start} → {view.end}")
    click.echo(
        f"   Amostra: {len(windows.current)} dias | Benchmark: {len(windows.previous)} dias"
    )
    click.echo("")
    _echo_kpis(aggregate(windows.current), aggregate(windows.previous))


@cli.command()
@_apply(_source_options)
@_apply(_selection_options)
@click.option(
    "--mode",
    type=click.Choice(["live", "dry"]),
    default="dry",
    help="live = call API; dry = mock",
)
def summary(tab, input_path, config_path, start, end, promo, compare, compare_start, compare_end, compare_promo, mode):
    """Generate the AI executive summary for the selection (JSON)."""
    cfg = load_config(config_path)
    configure_logging(cfg.logging.level)
    result = _load(cfg, tab, input_path)
    _, windows = _select(
        result, cfg, start, end, promo, compare, compare_start, compare_end, compare_promo
    )
    if not windows.current:
        raise click.ClickException("No records in the selected window.")

    if mode == "dry":
        click.echo("🏃 DRY-RUN mode — using MockProvider (no API calls)", err=True)
    try:
        provider = _get_provider(cfg, mode)
    except EnvironmentError as exc:
        raise click.ClickException(str(exc))

    response = generate_summary(provider, windows.current, windows.previous)
    click.echo(json.dumps(response.to_dict(), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    cli()
