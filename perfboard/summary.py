"""AI summary of the selected windows: digest, prompt, strict JSON parsing."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Sequence

from jinja2 import Template

from perfboard.aggregate import aggregate
from perfboard.providers.base import BaseProvider
from perfboard.schema import DailyMetric, SummaryResponse

logger = logging.getLogger(__name__)

_PROMPT_PATH = Path(__file__).parent / "prompts" / "summary_prompt.txt"

SUMMARY_SYSTEM = (
    "Você é um Head de Performance reportando para um CEO. "
    "Responda SOMENTE com JSON válido."
)

FALLBACK_SUMMARY = SummaryResponse(
    executive_summary=["Sistema indisponível momentaneamente."],
    action_plan=["Verifique a conexão ou a chave de API."],
    risks=[],
)

OUTLIER_COUNT = 2


def format_number(value: float) -> str:
    """pt-BR number with at most two decimals: ``1234.5`` -> ``1.234,5``."""
    text = f"{value:,.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def _period_stats(records: Sequence[DailyMetric]) -> Dict[str, float]:
    agg = aggregate(records)
    return {
        "spend": agg.totals.spend,
        "purchases": agg.totals.purchases,
        "cpa": agg.averages.cpa,
        "ctr": agg.averages.ctr,
        "cpm": agg.averages.cpm,
    }


def worst_cpa_days(records: Sequence[DailyMetric], n: int = OUTLIER_COUNT) -> List[DailyMetric]:
    """The *n* days with the highest CPA among days that had purchases."""
    with_sales = [r for r in records if r.purchases > 0]
    return sorted(with_sales, key=lambda r: r.cpa, reverse=True)[:n]


def build_digest(
    current: Sequence[DailyMetric], previous: Sequence[DailyMetric]
) -> Dict:
    """Compact statistics sent to the model instead of the raw rows."""
    return {
        "current": _period_stats(current),
        "previous": _period_stats(previous),
        "outliers": [
            f"{r.date_str}: CPA R${format_number(r.cpa)}" for r in worst_cpa_days(current)
        ],
    }


def render_summary_prompt(digest: Dict) -> str:
    def fmt(stats: Dict[str, float]) -> Dict[str, str]:
        out = {k: format_number(v) for k, v in stats.items()}
        out["purchases"] = str(stats["purchases"])
        return out

    tmpl = Template(_PROMPT_PATH.read_text(encoding="utf-8"))
    return tmpl.render(
        current=fmt(digest["current"]),
        previous=fmt(digest["previous"]),
        outliers="; ".join(digest["outliers"]),
    )


def parse_summary_json(raw: str) -> SummaryResponse:
    """Parse the model reply into a SummaryResponse.

    Markdown fences are stripped. Raises ``ValueError`` when the reply is not
    a JSON object.
    """
    text = raw.strip()
    text = re.sub(r"^```(?:json)?\s*", "", text, flags=re.MULTILINE)
    text = re.sub(r"\s*```\s*$", "", text, flags=re.MULTILINE)
    data = json.loads(text.strip() or "{}")
    if not isinstance(data, dict):
        raise ValueError("Summary response is not a JSON object")

    def items(key: str) -> List[str]:
        value = data.get(key) or []
        if isinstance(value, str):
            value = [value]
        return [str(s).strip() for s in value if str(s).strip()]

    return SummaryResponse(
        executive_summary=items("executive_summary"),
        action_plan=items("action_plan"),
        risks=items("risks"),
    )


def fallback_summary() -> SummaryResponse:
    return SummaryResponse(**FALLBACK_SUMMARY.to_dict())


def generate_summary(
    provider: BaseProvider,
    current: Sequence[DailyMetric],
    previous: Sequence[DailyMetric],
) -> SummaryResponse:
    """Ask the model for an executive summary of *current* vs *previous*.

    Never raises: provider errors and malformed replies both return the
    fixed fallback summary.
    """
    try:
        prompt = render_summary_prompt(build_digest(current, previous))
        raw = provider.generate(prompt, system=SUMMARY_SYSTEM)
        return parse_summary_json(raw)
    except Exception as exc:
        logger.warning("AI summary unavailable, using fallback: %s", exc)
        return fallback_summary()
