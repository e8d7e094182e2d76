"""HTTP client for a running ccscraper API (used by ``ccscraper fetch``)."""

from typing import Any

import pandas as pd
import requests

SCRAPE_PATH = "/scrape/creative-center/top-products"


def post_scrape(
    base_url: str,
    region: str | None = None,
    time_range: str | None = None,
    include_screenshot: bool = False,
    timeout: float = 600,
) -> dict[str, Any]:
    url = f"{base_url.rstrip('/')}{SCRAPE_PATH}"
    body: dict[str, Any] = {"includeScreenshot": include_screenshot}
    if region:
        body["region"] = region
    if time_range:
        body["timeRangeLabel"] = time_range
    resp = requests.post(url, json=body, timeout=timeout)
    resp.raise_for_status()
    return resp.json()


def items_frame(payload: dict[str, Any]) -> pd.DataFrame:
    """Return the payload's items as a DataFrame, columns in header-key order."""
    items: list[dict[str, Any]] = payload.get("items", []) if isinstance(payload, dict) else payload
    keys = list(dict.fromkeys(payload.get("header_keys") or [])) if isinstance(payload, dict) else []
    dframe = pd.DataFrame(items)
    if keys and not dframe.empty:
        ordered = [k for k in keys if k in dframe.columns]
        rest = [c for c in dframe.columns if c not in ordered]
        dframe = dframe[ordered + rest]
    return dframe
