"""Resolve logical metric fields to column indices in an unordered header row."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Callable, Dict, List, Sequence

NOT_FOUND = -1

KEYWORDS: Dict[str, List[str]] = {
    "date": ["data", "date", "dia"],
    "spend": ["investimento", "valor gasto", "spend"],
    "impressions": ["impressoes", "impressões", "impressions"],
    "clicks": ["cliques", "clicks"],
    "installs": ["instalações", "instalacoes", "installs"],
    "purchases": ["compras", "purchases", "vendas"],
    "cpm": ["cpm"],
    "ctr": ["ctr"],
    "cpa": ["cpa"],
    "cpi": ["cpi"],
    "conversion_rate": [
        "tx de conversão",
        "tx de conversao",
        "taxa de conversao",
        "conv rate",
    ],
    "install_rate": [
        "tx de instalações",
        "tx de instalacoes",
        "taxa de instalacoes",
        "install rate",
    ],
    "title_cost": ["custo título", "custo titulo", "custo do titulo", "titulo cost"],
    "revenue": ["receita", "revenue", "faturamento"],
    "promo": ["promo", "promoção", "promocao"],
    "clients": ["clientes", "clientes únicos", "unique users", "usuarios"],
}

# A matcher decides whether one normalized header cell matches one keyword.
Matcher = Callable[[str, str], bool]


def normalize_header(cell: str) -> str:
    return (cell or "").lower().strip()


def exact_match(header: str, keyword: str) -> bool:
    return header == keyword


def substring_match(header: str, keyword: str) -> bool:
    return keyword in header


DEFAULT_MATCHERS: List[Matcher] = [exact_match, substring_match]


def resolve_column(
    headers: Sequence[str],
    field_name: str,
    keywords: Dict[str, List[str]] = KEYWORDS,
    matchers: Sequence[Matcher] = DEFAULT_MATCHERS,
) -> int:
    """Return the index of the header matching *field_name*, or ``NOT_FOUND``.

    Matchers are tried in order; the first one that accepts any header wins
    and the leftmost accepted header is returned.
    """
    normalized = [normalize_header(h) for h in headers]
    terms = [normalize_header(k) for k in keywords.get(field_name, [])]
    for matcher in matchers:
        for idx, header in enumerate(normalized):
            if any(matcher(header, term) for term in terms):
                return idx
    return NOT_FOUND


@dataclass(frozen=True)
class ColumnMap:
    date: int = NOT_FOUND
    spend: int = NOT_FOUND
    impressions: int = NOT_FOUND
    clicks: int = NOT_FOUND
    installs: int = NOT_FOUND
    purchases: int = NOT_FOUND
    cpm: int = NOT_FOUND
    ctr: int = NOT_FOUND
    cpa: int = NOT_FOUND
    cpi: int = NOT_FOUND
    conversion_rate: int = NOT_FOUND
    install_rate: int = NOT_FOUND
    title_cost: int = NOT_FOUND
    revenue: int = NOT_FOUND
    promo: int = NOT_FOUND
    clients: int = NOT_FOUND

    def missing(self) -> List[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) == NOT_FOUND]


def resolve_columns(
    headers: Sequence[str],
    keywords: Dict[str, List[str]] = KEYWORDS,
    matchers: Sequence[Matcher] = DEFAULT_MATCHERS,
) -> ColumnMap:
    """Resolve every logical field of :class:`ColumnMap` against *headers*."""
    return ColumnMap(
        **{
            f.name: resolve_column(headers, f.name, keywords, matchers)
            for f in fields(ColumnMap)
        }
    )
