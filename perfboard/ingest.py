"""Ingestion pipeline: raw sheet CSV text -> date-ordered DailyMetric list.

Steps:
  1. split into non-blank lines
  2. detect the header row within the first few lines
  3. resolve logical columns against the header
  4. reject blank / summary rows, build records for the rest
  5. sort ascending by date
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from perfboard.columns import NOT_FOUND, ColumnMap, normalize_header, resolve_columns
from perfboard.config import IngestConfig
from perfboard.csv_tokenizer import split_lines, tokenize_line
from perfboard.parsers import (
    format_display_date,
    parse_currency,
    parse_date,
    parse_int_like,
    weekday_name,
)
from perfboard.schema import DailyMetric, build_daily_metric

logger = logging.getLogger(__name__)

HEADER_MARKERS = ("data", "date")
SUMMARY_ROW = re.compile(r"total|resumo", re.IGNORECASE)
CRITICAL_FIELDS = ("date", "spend")


@dataclass
class IngestResult:
    sheet_name: str
    records: List[DailyMetric] = field(default_factory=list)
    headers: List[str] = field(default_factory=list)
    header_row_index: int = 0
    columns: ColumnMap = field(default_factory=ColumnMap)
    rejected: int = 0

    @property
    def missing_critical_fields(self) -> List[str]:
        missing = set(self.columns.missing())
        return [f for f in CRITICAL_FIELDS if f in missing]


def _cell(cols: Sequence[str], idx: int) -> Optional[str]:
    if idx == NOT_FOUND or idx >= len(cols):
        return None
    return cols[idx]


def find_header_row(lines: Sequence[str], scan_lines: int = 5) -> Tuple[int, List[str]]:
    """Return ``(index, cells)`` of the first line naming a date column.

    Only the first *scan_lines* lines are inspected; line 0 is the default.
    """
    for i, line in enumerate(lines[:scan_lines]):
        cells = tokenize_line(line)
        normalized = [normalize_header(c) for c in cells]
        if any(marker in c for c in normalized for marker in HEADER_MARKERS):
            return i, cells
    if not lines:
        return 0, []
    return 0, tokenize_line(lines[0])


def is_rejected_row(cols: Sequence[str], columns: ColumnMap) -> bool:
    """True for rows that must not produce a record.

    Rejected: no date column, empty date cell, a "total"/"resumo" summary
    marker, or zero spend with both purchases and clicks cells empty.
    """
    date_cell = _cell(cols, columns.date)
    if not date_cell or SUMMARY_ROW.search(date_cell):
        return True
    spend = parse_currency(_cell(cols, columns.spend))
    return spend == 0 and not _cell(cols, columns.purchases) and not _cell(cols, columns.clicks)


def build_record(cols: Sequence[str], columns: ColumnMap, cfg: IngestConfig) -> DailyMetric:
    """Parse one accepted row; absent columns default to zero."""
    date_cell = _cell(cols, columns.date) or ""
    parsed_date = parse_date(date_cell, cfg.on_unparseable_date)

    def count(idx: int):
        if idx == NOT_FOUND:
            return 0
        return parse_int_like(_cell(cols, idx), cfg.on_invalid_integer)

    def money(idx: int) -> float:
        if idx == NOT_FOUND:
            return 0.0
        return parse_currency(_cell(cols, idx))

    promo = _cell(cols, columns.promo) or cfg.no_promo_label

    return build_daily_metric(
        date=parsed_date,
        date_str=date_cell,
        original_date_str=format_display_date(parsed_date),
        weekday=weekday_name(parsed_date),
        spend=money(columns.spend),
        impressions=count(columns.impressions),
        clicks=count(columns.clicks),
        installs=count(columns.installs),
        purchases=count(columns.purchases),
        title_cost=money(columns.title_cost),
        revenue=money(columns.revenue),
        clients=count(columns.clients),
        promo=promo,
    )


def parse_sheet(
    raw_text: str,
    sheet_name: str,
    cfg: Optional[IngestConfig] = None,
) -> IngestResult:
    """Run the full pipeline and report what was found along the way."""
    cfg = cfg or IngestConfig()
    lines = split_lines(raw_text)
    header_idx, headers = find_header_row(lines, cfg.header_scan_lines)
    columns = resolve_columns(headers)
    result = IngestResult(
        sheet_name=sheet_name,
        headers=headers,
        header_row_index=header_idx,
        columns=columns,
    )
    logger.debug(
        "Sheet %r: header at line %d, columns=%s", sheet_name, header_idx, headers
    )
    if result.missing_critical_fields:
        logger.warning(
            "Sheet %r is missing critical column(s): %s",
            sheet_name,
            ", ".join(result.missing_critical_fields),
        )

    records: List[DailyMetric] = []
    for line in lines[header_idx + 1:]:
        cols = tokenize_line(line)
        if is_rejected_row(cols, columns):
            result.rejected += 1
            continue
        records.append(build_record(cols, columns, cfg))

    records.sort(key=lambda r: r.date)
    result.records = records
    logger.info(
        "Sheet %r: %d record(s) ingested, %d row(s) skipped",
        sheet_name,
        len(records),
        result.rejected,
    )
    return result


def ingest(
    raw_text: str,
    sheet_name: str,
    cfg: Optional[IngestConfig] = None,
) -> List[DailyMetric]:
    """Parse sheet CSV text into DailyMetric records sorted by date."""
    return parse_sheet(raw_text, sheet_name, cfg).records
