"""Streamlit app: Performance Board.

One tab per spreadsheet sheet. The sidebar chooses the viewing window (a
date range or a promotion) and the comparison window; the main area shows
KPI cards, the trend and efficiency charts, the conversion funnel, the
weekday breakdown, the heat-mapped daily table, the AI summary and a metric
glossary.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import pandas as pd
import streamlit as st

from perfboard.aggregate import aggregate
from perfboard.config import AppConfig, load_config
from perfboard.connectors.google_sheets import RecordStore
from perfboard.logging_utils import configure_logging
from perfboard.mappers import (
    TREND_METRICS,
    daily_heatmap,
    efficiency_frame,
    trend_frame,
    weekday_breakdown,
)
from perfboard.periods import (
    DashboardState,
    Manual,
    ViewState,
    comparison_from_name,
    initial_state,
    resolve_windows,
    unique_promotions,
)
from perfboard.providers.mock_provider import MockProvider
from perfboard.schema import ALL_PROMOS, AggregateResult, SummaryResponse
from perfboard.summary import generate_summary

# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────

COMPARISON_LABELS: Dict[str, str] = {
    "previous_period": "Período Anterior",
    "previous_week": "Semana Anterior",
    "previous_month": "Mês Anterior",
    "manual": "Personalizado (Manual)",
    "promotion": "Comparar Promoções",
    "none": "Sem Comparação",
}

SITE_TAB = "tp-site"

# (label, section, attribute, is_currency, lower_is_better)
KPI_ROW_1 = [
    ("Investimento", "totals", "spend", True, False),
    ("CPM", "averages", "cpm", True, True),
    ("CTR", "averages", "ctr", False, False),
    ("CPC", "averages", "cpc", True, True),
    ("CPI", "averages", "cpi", True, True),
    ("CPA", "averages", "cpa", True, True),
    ("Clientes", "totals", "clients", False, False),
]
KPI_ROW_2 = [
    ("Instalações", "totals", "installs", False, False),
    ("Compras", "totals", "purchases", False, False),
    ("Taxa Conv.", "averages", "conversion_rate", False, False),
    ("Custo Título", "averages", "avg_title_cost", True, True),
    ("Receita", "totals", "revenue", True, False),
    ("ROAS", "averages", "roas", False, False),
    ("Média Títulos/Cli.", "averages", "titles_per_client", False, False),
]

HEAT_CSS: Dict[str, str] = {
    "good": "color: #16a34a; background-color: rgba(22, 163, 74, 0.12); font-weight: bold",
    "bad": "color: #dc2626; background-color: rgba(220, 38, 38, 0.12); font-weight: bold",
    "high": "font-weight: bold",
    "low": "color: #94a3b8",
    "neutral": "",
    "none": "color: #94a3b8",
    "": "",
}

GLOSSARY = [
    ("CPM", "Custo por Mil Impressões",
     "Quanto custa para o anúncio aparecer 1.000 vezes. Indica se o leilão está caro."),
    ("CTR", "Taxa de Cliques",
     "Porcentagem de pessoas que viram o anúncio e clicaram. Mede o interesse no criativo."),
    ("CPI", "Custo por Instalação", "Quanto você gasta para conseguir 1 nova instalação do app."),
    ("CPA", "Custo por Ação/Aquisição",
     "Quanto custa para realizar uma venda. É a métrica mais importante de eficiência."),
    ("Tx de Conversão", "Taxa de Conversão", "De cada 100 cliques, quantos viraram compras reais."),
]

# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def _resolve_provider(cfg: AppConfig):
    """Live provider when ANTHROPIC_API_KEY is configured, else the mock."""
    try:
        from perfboard.providers.anthropic_provider import AnthropicProvider

        pcfg = cfg.provider
        return AnthropicProvider(
            model=pcfg.model,
            temperature=pcfg.temperature,
            max_tokens=pcfg.max_tokens,
            retry_cfg=cfg.retry_api,
        )
    except EnvironmentError:
        st.info("ANTHROPIC_API_KEY não configurada; usando resumo de demonstração.")
        return MockProvider()


def _store() -> RecordStore:
    if "store" not in st.session_state:
        st.session_state["store"] = RecordStore()
    return st.session_state["store"]


def _load_tab(cfg: AppConfig, tab_id: str, force: bool = False) -> RecordStore:
    store = _store()
    sheet_name = cfg.sheet.tab(tab_id).sheet_name
    if force or store.sheet_name != sheet_name:
        with st.spinner("Sincronizando dados..."):
            if store.refresh(sheet_name, cfg) and "dash" not in st.session_state:
                st.session_state["dash"] = initial_state(
                    store.records,
                    cfg.view.default_window_days,
                    cfg.ingest.no_promo_label,
                )
        st.session_state.pop("ai_summary", None)
    return store


def _fmt(value: float, currency: bool, percent: bool = False) -> str:
    text = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    if currency:
        return f"R$ {text}"
    return f"{text}%" if percent else text


def _render_kpi_row(rows, current: AggregateResult, previous: AggregateResult, compare: bool) -> None:
    cols = st.columns(len(rows))
    for col, (label, section, attr, currency, inverse) in zip(cols, rows):
        cur = getattr(getattr(current, section), attr)
        prev = getattr(getattr(previous, section), attr)
        delta: Optional[str] = None
        if compare and prev:
            delta = f"{(cur - prev) / prev * 100:+.1f}%"
        col.metric(
            label,
            _fmt(cur, currency, percent=attr in ("ctr", "conversion_rate")),
            delta=delta,
            delta_color="inverse" if inverse else "normal",
        )


def _render_summary(summary: SummaryResponse) -> None:
    st.subheader("✨ IA Insights")
    c1, c2, c3 = st.columns(3)
    with c1:
        st.markdown("**Resumo executivo**")
        for item in summary.executive_summary:
            st.markdown(f"- {item}")
    with c2:
        st.markdown("**Plano de ação**")
        for item in summary.action_plan:
            st.markdown(f"- {item}")
    with c3:
        st.markdown("**Riscos**")
        for item in summary.risks or ["Métricas estáveis"]:
            st.markdown(f"- {item}")


def _styled_heatmap(records):
    table, levels = daily_heatmap(records)
    return table.style.apply(lambda _: levels.apply(lambda col: col.map(HEAT_CSS)), axis=None).format(
        {"CPA": "R$ {:.2f}", "Investimento": "R$ {:,.2f}", "CTR %": "{:.2f}%", "Compras": "{:.0f}"}
    )


def _render_funnel(agg: AggregateResult) -> None:
    t = agg.totals
    if not t.impressions and not t.clicks:
        return
    st.subheader("Jornada de Conversão")
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Impressões", f"{t.impressions:,}".replace(",", "."))
    c2.metric("CTR", _fmt(agg.averages.ctr, False, percent=True))
    c3.metric("Cliques", f"{t.clicks:,}".replace(",", "."))
    c4.metric("Taxa de Conv.", _fmt(agg.averages.conversion_rate, False, percent=True))
    c5.metric("Compras", f"{t.purchases:,}".replace(",", "."))


def _render_glossary() -> None:
    with st.expander("📖 Dicionário de Métricas"):
        for term, full, definition in GLOSSARY:
            st.markdown(f"**{term}** ({full}): {definition}")


# ─────────────────────────────────────────────────────────────────────────────
# Main
# ─────────────────────────────────────────────────────────────────────────────


def main() -> None:
    st.set_page_config(page_title="Relatório Performance", page_icon="📈", layout="wide")
    cfg = load_config()
    configure_logging(cfg.logging.level)

    st.title("📈 Relatório Performance")

    tab_labels = {t.id: t.label for t in cfg.sheet.tabs}
    with st.sidebar:
        tab_id = st.radio("Aba", list(tab_labels), format_func=tab_labels.get)
        refresh = st.button("🔄 Atualizar dados")

    store = _load_tab(cfg, tab_id, force=refresh)
    if store.error:
        st.error(f"❌ {store.error}")
    if store.last_updated:
        st.caption(f"Última sinc: {pd.Timestamp(store.last_updated, unit='s'):%H:%M:%S} UTC")

    records = store.records
    dash: DashboardState = st.session_state.get("dash") or initial_state(records)
    promos: List[str] = unique_promotions(records, cfg.ingest.no_promo_label)

    with st.sidebar:
        st.markdown("### Visualização")
        promo = st.selectbox(
            "Filtro",
            [ALL_PROMOS] + promos,
            format_func=lambda p: "Todos os Períodos" if p == ALL_PROMOS else f"Promo: {p}",
        )
        start, end = dash.view.start, dash.view.end
        if promo == ALL_PROMOS:
            start = st.date_input("Início", value=start)
            end = st.date_input("Fim", value=end)

        st.markdown("### Comparação")
        modes = list(COMPARISON_LABELS)
        mode = st.selectbox(
            "Modo",
            modes,
            index=modes.index(cfg.view.default_comparison),
            format_func=COMPARISON_LABELS.get,
        )
        manual, benchmark = dash.manual, dash.benchmark_promo
        if mode == "manual":
            manual = Manual(
                st.date_input("Benchmark início", value=manual.start),
                st.date_input("Benchmark fim", value=manual.end),
            )
        elif mode == "promotion" and promos:
            benchmark = st.selectbox(
                "Benchmark",
                promos,
                index=promos.index(benchmark) if benchmark in promos else 0,
            )

    view = ViewState(start=start, end=end, promo=promo)
    comparison = comparison_from_name(mode, manual, benchmark)
    st.session_state["dash"] = DashboardState(view=view, manual=manual, benchmark_promo=benchmark)

    windows = resolve_windows(records, view, comparison)
    current_agg = aggregate(windows.current)
    previous_agg = aggregate(windows.previous)
    compare = mode != "none"

    analysis = "Período Cronológico" if promo == ALL_PROMOS else f"Promoção: {promo}"
    versus = f"Benchmark: {benchmark}" if mode == "promotion" else COMPARISON_LABELS[mode]
    st.info(
        f"Análise: **{analysis}** · VS: **{versus}** · "
        f"Amostra: **{len(windows.current)}** dias | Benchmark: **{len(windows.previous)}** dias"
    )

    if st.button("✨ IA Insights", disabled=not windows.current):
        with st.spinner("Analisando..."):
            st.session_state["ai_summary"] = generate_summary(
                _resolve_provider(cfg), windows.current, windows.previous
            )
    if "ai_summary" in st.session_state:
        _render_summary(st.session_state["ai_summary"])

    row_1 = [r for r in KPI_ROW_1 if not (tab_id == SITE_TAB and r[2] == "cpi")]
    row_2 = [r for r in KPI_ROW_2 if not (tab_id == SITE_TAB and r[2] == "installs")]
    _render_kpi_row(row_1, current_agg, previous_agg, compare)
    _render_kpi_row(row_2, current_agg, previous_agg, compare)

    if not windows.current:
        st.warning("Nenhum dado encontrado para o período selecionado.")
        _render_glossary()
        return

    st.subheader("Tendência Principal")
    metric = st.radio(
        "Métrica", list(TREND_METRICS), format_func=TREND_METRICS.get, horizontal=True
    )
    st.line_chart(trend_frame(windows.current, windows.previous if compare else [], metric))

    st.subheader("Eficiência (CTR x CPM)")
    st.line_chart(efficiency_frame(windows.current))

    _render_funnel(current_agg)

    c1, c2 = st.columns(2)
    with c1:
        st.subheader("Performance Semanal")
        weekly = weekday_breakdown(windows.current).set_index("weekday")
        st.bar_chart(weekly[["purchases"]])
        st.dataframe(weekly, use_container_width=True)
    with c2:
        st.subheader("Detalhamento Diário & Mapa de Calor")
        st.caption("Cada dia comparado com a média do período: verde melhor, vermelho pior.")
        st.dataframe(_styled_heatmap(windows.current), use_container_width=True, height=420)

    _render_glossary()


if __name__ == "__main__":
    main()
