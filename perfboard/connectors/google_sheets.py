"""Google Sheets connector: pulls a published tab as CSV (no credentials).

The sheet must be shared as "anyone with the link"; the gviz CSV export is
read over plain HTTPS.
"""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional
from urllib.parse import quote

import requests

from perfboard.config import AppConfig, SheetConfig
from perfboard.ingest import IngestResult, parse_sheet
from perfboard.schema import DailyMetric

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Erro ao carregar dados."


class SheetFetchError(RuntimeError):
    pass


def build_export_url(sheet_name: str, cfg: SheetConfig, timestamp_ms: Optional[int] = None) -> str:
    """CSV export URL for *sheet_name* with a cache-busting timestamp."""
    ts = int(time.time() * 1000) if timestamp_ms is None else timestamp_ms
    base = cfg.base_url.format(sheet_id=cfg.sheet_id)
    return f"{base}&sheet={quote(sheet_name, safe='')}&t={ts}"


def fetch_sheet_csv(sheet_name: str, cfg: SheetConfig) -> str:
    """Download the raw CSV text of one tab.

    Raises
    ------
    SheetFetchError
        On any transport failure or non-2xx response. Not retried.
    """
    url = build_export_url(sheet_name, cfg)
    logger.info("Fetching sheet %r", sheet_name)
    try:
        resp = requests.get(url, timeout=cfg.request_timeout_seconds)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise SheetFetchError(f"Failed to fetch sheet {sheet_name!r}: {exc}") from exc
    resp.encoding = "utf-8"
    return resp.text


def load_sheet(sheet_name: str, cfg: AppConfig) -> IngestResult:
    """Fetch and ingest one tab."""
    raw = fetch_sheet_csv(sheet_name, cfg.sheet)
    return parse_sheet(raw, sheet_name, cfg.ingest)


# ─────────────────────────────────────────────────────────────────────────────
# Record store
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class RecordStore:
    """Holds the current record set and guards it against stale fetches.

    Every refresh takes a new request token; a completion carrying an older
    token is discarded, so a slow earlier fetch never overwrites a newer one.
    The record list is swapped in a single assignment and a failed fetch
    leaves the previous records in place.
    """

    records: List[DailyMetric] = field(default_factory=list)
    sheet_name: Optional[str] = None
    error: Optional[str] = None
    last_updated: Optional[float] = None
    _tokens: itertools.count = field(default_factory=lambda: itertools.count(1), repr=False)
    _latest: int = field(default=0, repr=False)

    def begin(self) -> int:
        self._latest = next(self._tokens)
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    def commit(self, token: int, result: IngestResult) -> bool:
        """Apply *result* if *token* is still the latest request."""
        if not self.is_current(token):
            logger.info("Discarding stale result for sheet %r", result.sheet_name)
            return False
        self.records = list(result.records)
        self.sheet_name = result.sheet_name
        self.error = None
        self.last_updated = time.time()
        return True

    def fail(self, token: int, exc: BaseException) -> bool:
        """Record a load failure if *token* is still the latest request."""
        if not self.is_current(token):
            return False
        logger.error("Sheet load failed: %s: %s", type(exc).__name__, exc)
        self.error = LOAD_ERROR_MESSAGE
        return True

    def refresh(
        self,
        sheet_name: str,
        cfg: AppConfig,
        loader: Callable[[str, AppConfig], IngestResult] = load_sheet,
    ) -> bool:
        """Load *sheet_name* and apply it; returns False on failure or staleness.

        Errors never escape: they are logged and surface as :attr:`error`.
        """
        token = self.begin()
        try:
            result = loader(sheet_name, cfg)
        except Exception as exc:
            # parse errors too, e.g. DateParseError under the strict date policy
            self.fail(token, exc)
            return False
        return self.commit(token, result)
