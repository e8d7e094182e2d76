"""
ccscraper.ccsextractor
=================================

Read the rendered "top products" results table into keyed records.

The table's column order, labels and language are not known in advance.
Data rows are recognized by their "Details"/"Detalhes" action cell, the
table is the one that contains those rows, and headers are read from its
``thead`` when present. Without any header text a fixed positional schema
is used instead.

The public contract:

- ``await extract_table(root, cfg=None) -> ExtractionResult``

``root`` is a Playwright ``Page``, ``Frame`` or ``Locator``. Only
``locator``/``filter``, ``wait_for``, ``count`` and inner-text reads are
used, so the extractor works the same on the main page or inside an
iframe.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pandas as pd
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .ccsconfig import ExtractorConfig
from .ccsheaders import header_to_key
from .ccsstrategy import first_success
from .ccstext import clean_text

if TYPE_CHECKING:
    from playwright.async_api import Frame, Locator, Page

logger = logging.getLogger(__name__)

# Column order the dashboard renders when no header could be read.
POSITIONAL_SCHEMA = (
    "product",
    "popularity",
    "popularity_change",
    "ctr",
    "cvr",
    "cpa",
)


class TableNotFoundError(RuntimeError):
    """No data row appeared within the configured wait ceiling."""


@dataclass
class ExtractionResult:
    """
    Headers as rendered, their keys (parallel lists) and accepted rows.

    ``items`` keeps source row order minus discarded rows.
    """

    headers: list[str] = field(default_factory=list)
    header_keys: list[str] = field(default_factory=list)
    items: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "headers": list(self.headers),
            "header_keys": list(self.header_keys),
            "items": [dict(i) for i in self.items],
        }

    def to_dataframe(self) -> pd.DataFrame:
        """
        Return the items as a DataFrame.

        Columns follow ``header_keys`` (or the positional schema), with any
        extra keys appended in first-seen order.
        """
        cols: list[str] = []
        for key in self.header_keys or POSITIONAL_SCHEMA:
            if key not in cols:
                cols.append(key)
        for item in self.items:
            for key in item:
                if key not in cols:
                    cols.append(key)
        if not self.items:
            return pd.DataFrame(columns=cols)
        return pd.DataFrame(self.items, columns=cols).fillna("")


def row_marker_pattern(cfg: ExtractorConfig) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(t) for t in cfg.row_marker_tokens)
    return re.compile(alternatives, re.IGNORECASE)


def keys_for_headers(headers: list[str]) -> list[str]:
    """Map headers to keys; unusable slugs get their positional placeholder."""
    return [header_to_key(h) or f"col_{i + 1}" for i, h in enumerate(headers)]


def build_record(
    cells: list[str],
    header_keys: list[str],
    cfg: ExtractorConfig | None = None,
) -> dict[str, str] | None:
    """
    Build one record from a row's cell texts, or None to discard the row.

    Rows shorter than ``cfg.min_cells`` and rows whose product value is
    shorter than ``cfg.min_product_length`` are discarded. A trailing
    "Details" action cell is dropped before keys are assigned. When two
    columns share a key the later column's value is kept.
    """
    cfg = cfg or ExtractorConfig()
    if len(cells) < cfg.min_cells:
        return None

    texts = [clean_text(c) for c in cells]
    markers = {t.lower() for t in cfg.row_marker_tokens}
    if texts and texts[-1].lower() in markers:
        texts.pop()

    record: dict[str, str] = {}
    if header_keys:
        for idx, text in enumerate(texts):
            key = header_keys[idx] if idx < len(header_keys) else f"col_{idx + 1}"
            record[key] = text
    else:
        for idx, key in enumerate(POSITIONAL_SCHEMA):
            record[key] = texts[idx] if idx < len(texts) else ""
        for idx in range(len(POSITIONAL_SCHEMA), len(texts)):
            record[f"col_{idx + 1}"] = texts[idx]

    product = record.get(cfg.product_key, "")
    if len(product) < cfg.min_product_length:
        return None
    return record


async def _cleaned_texts(loc: Locator) -> list[str]:
    if await loc.count() == 0:
        return []
    return [t for t in (clean_text(s) for s in await loc.all_inner_texts()) if t]


async def resolve_headers(root: Page | Frame | Locator, table: Locator) -> list[str]:
    """
    Read header labels, preferring the selected table's ``thead``.

    Falls back to every ``th`` under ``root`` (sticky headers are often a
    separate table), and to an empty list when neither yields text.
    """
    headers = await first_success(
        [
            lambda: _cleaned_texts(table.locator("thead tr th")),
            lambda: _cleaned_texts(root.locator("th")),
        ],
        what="resolve_headers",
    )
    return headers or []


async def extract_table(
    root: Page | Frame | Locator,
    cfg: ExtractorConfig | None = None,
) -> ExtractionResult:
    """
    Extract the results table under ``root``.

    Raises :class:`TableNotFoundError` when no data row renders within
    ``cfg.wait_timeout_ms``; every other irregularity is absorbed.
    """
    cfg = cfg or ExtractorConfig()

    rows = root.locator("tr").filter(has_text=row_marker_pattern(cfg))
    try:
        await rows.first.wait_for(timeout=cfg.wait_timeout_ms)
    except PlaywrightTimeoutError as exc:
        msg = (
            f"No table row with {'/'.join(cfg.row_marker_tokens)} appeared "
            f"within {cfg.wait_timeout_ms}ms"
        )
        raise TableNotFoundError(msg) from exc

    # Pages may hold several tables; anchor on the one holding the data rows.
    table = root.locator("table").filter(has=rows.first).first

    headers = await resolve_headers(root, table)
    header_keys = keys_for_headers(headers)
    if not headers:
        logger.info("extract_table: no headers found, using positional schema")

    items: list[dict[str, str]] = []
    row_count = await rows.count()
    for i in range(row_count):
        cells = rows.nth(i).locator("td")
        if await cells.count() < cfg.min_cells:
            logger.debug("extract_table: row %d skipped, too few cells", i)
            continue
        record = build_record(await cells.all_inner_texts(), header_keys, cfg)
        if record is None:
            logger.debug("extract_table: row %d discarded, no product", i)
            continue
        items.append(record)

    logger.info(
        "extract_table: %d of %d rows accepted (%d headers)",
        len(items),
        row_count,
        len(headers),
    )
    return ExtractionResult(headers=headers, header_keys=header_keys, items=items)
