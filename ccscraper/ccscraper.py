from __future__ import annotations

"""ccscraper.ccscraper.

Browser runtime: open the Creative Center page, prepare the UI and hand the
right frame to the table extractor.
"""

import argparse
import asyncio
import base64
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from time import monotonic
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .ccsconfig import Config, config_from_env, load_config
from .ccsextractor import ExtractionResult, extract_table
from .ccsstrategy import clicking, first_success

if TYPE_CHECKING:
    from playwright.async_api import (
        Browser,
        BrowserContext,
        Frame,
        Locator,
        Page,
        Playwright,
    )

"""
Full module description:

- browser lifecycle (one driver, browser and context per scraper instance);
- frame choice by content, then by URL score;
- consent overlay dismissal;
- region and time-range filter selection;
- table extraction via :func:`ccscraper.ccsextractor.extract_table`;
- debug reports (frames, page snapshot).

Every UI lookup is an ordered list of candidate locators tried through
:func:`ccscraper.ccsstrategy.first_success`; a missing control never fails a
run except for the region filter, which the results depend on.

The public contract:

- ``async with TopProductsScraper(cfg) as s: await s.scrape(...)``
- ``await scrape_top_products(cfg, region, time_range)``
"""

logger = logging.getLogger(__name__)

COUNTRY_NAMES = re.compile(
    r"brasil|brazil|portugal|mexico|united states|canada|japan", re.IGNORECASE,
)
TIME_RANGE_NAMES = re.compile(
    r"[úu]ltimos\s+(7|30)\s+dias|last\s+(7|30)\s+days", re.IGNORECASE,
)

# Options render after their dropdown opens, so they get a short wait;
# every other control is checked once.
OPTION_WAIT_MS = 1500


def ms_since(started: float) -> int:
    return int((monotonic() - started) * 1000)


def score_frame_by_url(url: str) -> int:
    """Rank a frame URL by how likely it hosts the dashboard."""
    if not url:
        return -999
    score = 0
    if "ads.tiktok.com" in url:
        score += 5
    if "creativecenter" in url:
        score += 5
    if "top-products" in url:
        score += 4
    if url.startswith("about:blank"):
        score -= 5
    return score


@dataclass
class ScrapeResult:
    """An :class:`ExtractionResult` plus the request metadata around it."""

    source: str
    page_url: str
    region: str
    time_range: str
    extraction: ExtractionResult
    collected_at: str = field(
        default_factory=lambda: datetime.now(tz=UTC).isoformat(),
    )
    ms: int = 0
    screenshot_b64: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "ok": True,
            "source": self.source,
            "page_url": self.page_url,
            "region": self.region,
            "time_range": self.time_range,
            "collected_at": self.collected_at,
            "headers": self.extraction.headers,
            "header_keys": self.extraction.header_keys,
            "count": len(self.extraction.items),
            "ms": self.ms,
            "items": self.extraction.items,
        }
        if self.screenshot_b64 is not None:
            payload["screenshotBase64"] = self.screenshot_b64
        return payload


# ----------------------------
# UI controls
# ----------------------------


async def pick_best_frame(page: Page) -> Frame:
    """
    Return the frame that renders the results table.

    Prefers a frame with a visible Details/Detalhes label, then the frame
    with the best URL score, then the main frame.
    """

    def by_content(frame: Frame):
        async def run() -> Frame | None:
            marker = frame.get_by_text(re.compile(r"Details|Detalhes")).first
            return frame if await marker.is_visible() else None

        return run

    found = await first_success(
        [by_content(f) for f in page.frames], what="pick_best_frame",
    )
    if found is not None:
        return found

    ranked = sorted(page.frames, key=lambda f: score_frame_by_url(f.url), reverse=True)
    return ranked[0] if ranked else page.main_frame


async def dismiss_overlays(root: Page | Frame) -> int:
    """Click every visible consent/cookie button; return how many were clicked."""
    candidates = [
        root.get_by_role("button", name=re.compile(r"accept|agree|allow all|ok", re.I)),
        root.get_by_role(
            "button",
            name=re.compile(r"aceitar|concordo|permitir tudo|permitir|ok", re.I),
        ),
        root.locator("button:has-text('Accept')"),
        root.locator("button:has-text('Agree')"),
        root.locator("button:has-text('Allow all')"),
        root.locator("button:has-text('Aceitar')"),
        root.locator("button:has-text('Concordo')"),
        root.locator("button:has-text('Permitir tudo')"),
    ]
    clicked = 0
    # Overlays stack, so every candidate gets its own chance.
    for strategy in clicking(candidates, click_ms=5000, pause_ms=400):
        if await first_success([strategy], what="dismiss_overlays"):
            clicked += 1
    return clicked


async def open_filters_panel(root: Page | Frame) -> bool:
    candidates = [
        root.get_by_role("button", name=re.compile(r"filter|filtro", re.I)),
        root.locator("button:has-text('Filter')"),
        root.locator("button:has-text('Filtro')"),
        root.locator("button[aria-label*='filter' i]"),
        root.locator("[aria-label*='filter' i]"),
    ]
    return bool(
        await first_success(
            clicking(candidates, pause_ms=800),
            what="open_filters_panel",
        ),
    )


def _option_candidates(root: Page | Frame, label: str) -> list[Locator]:
    return [
        root.get_by_role("option", name=re.compile(f"^{re.escape(label)}$", re.I)),
        root.locator(f'[role="option"]:has-text("{label}")').first,
        root.locator(f'li:has-text("{label}")').first,
        root.get_by_text(label, exact=True).first,
    ]


async def _find_visible(candidates: list[Locator]) -> Locator | None:
    def check(loc: Locator):
        async def run() -> Locator | None:
            return loc if await loc.is_visible() else None

        return run

    return await first_success([check(c) for c in candidates], what="find_visible")


async def select_region(root: Page | Frame, region: str = "Brasil") -> None:
    """
    Pick ``region`` in the dashboard's country filter.

    Raises RuntimeError when neither a country dropdown nor a text/combobox
    field can be found.
    """
    await open_filters_panel(root)

    opened = await first_success(
        clicking(
            [
                root.get_by_role("button", name=COUNTRY_NAMES),
                root.locator("button").filter(has_text=COUNTRY_NAMES),
            ],
        ),
        what="region_dropdown",
    )

    if not opened:
        field_loc = await _find_visible(
            [
                root.get_by_role("combobox").first,
                root.locator('input[placeholder*="Reg" i]').first,
                root.locator('input[placeholder*="Region" i]').first,
                root.locator('input[placeholder*="Pa" i]').first,
                root.locator('input[placeholder*="Country" i]').first,
                root.locator('input[placeholder*="Pesq" i]').first,
                root.locator('input[placeholder*="Search" i]').first,
                root.locator('input[type="text"]').first,
            ],
        )
        if field_loc is None:
            msg = "Region/country control (dropdown, combobox or input) not found in the selected frame"
            raise RuntimeError(msg)
        await field_loc.click(timeout=15000)
        await field_loc.fill(region, timeout=15000)
        await field_loc.page.wait_for_timeout(600)

    picked = await first_success(
        clicking(_option_candidates(root, region), visible_ms=OPTION_WAIT_MS, pause_ms=800),
        what="region_option",
    )
    if not picked:
        logger.info("select_region: option %r not found; continuing", region)

    await first_success(
        clicking(
            [
                root.get_by_role(
                    "button",
                    name=re.compile(
                        r"apply|confirm|ok|done|aplicar|confirmar|concluir", re.I,
                    ),
                ),
                root.locator("button:has-text('Apply')"),
                root.locator("button:has-text('Confirm')"),
                root.locator("button:has-text('Done')"),
                root.locator("button:has-text('Aplicar')"),
                root.locator("button:has-text('Confirmar')"),
                root.locator("button:has-text('Concluir')"),
            ],
            click_ms=8000,
            pause_ms=800,
        ),
        what="region_apply",
    )


async def select_time_range(root: Page | Frame, label: str = "Últimos 7 dias") -> bool:
    """
    Pick the time-range option ``label``.

    Returns False (keeping the UI default) when the control or the option
    cannot be found.
    """
    opened = await first_success(
        clicking(
            [
                root.get_by_role("button", name=TIME_RANGE_NAMES),
                root.locator("button").filter(has_text=TIME_RANGE_NAMES),
            ],
        ),
        what="time_range_dropdown",
    )
    if not opened:
        logger.info("select_time_range: control not found; keeping default UI state")
        return False

    picked = await first_success(
        clicking(_option_candidates(root, label), visible_ms=OPTION_WAIT_MS, pause_ms=800),
        what="time_range_option",
    )
    if not picked:
        logger.info("select_time_range: option %r not found; continuing", label)
        return False
    return True


async def visible_button_texts(frame: Frame, limit: int = 150) -> list[str]:
    return await frame.evaluate(
        """(limit) => {
            const visible = (el) => {
                const s = window.getComputedStyle(el);
                const r = el.getBoundingClientRect();
                return s.visibility !== "hidden" && s.display !== "none"
                    && r.width > 0 && r.height > 0;
            };
            return Array.from(document.querySelectorAll("button"))
                .filter(visible)
                .map((b) => (b.innerText || "").replace(/\\s+/g, " ").trim())
                .filter((t) => t.length > 0)
                .slice(0, limit);
        }""",
        limit,
    )


# ----------------------------
# Scraper runtime
# ----------------------------


class TopProductsScraper:
    """
    Owns one Playwright driver, browser and context for a single request.

    Use as an async context manager; the browser is always closed on exit.
    Concurrent requests each create their own instance and share nothing.
    """

    def __init__(self, cfg: Config | None = None) -> None:
        self.cfg = cfg or Config()
        self._play: Playwright | None = None
        self.browser: Browser | None = None
        self.context: BrowserContext | None = None

    async def __aenter__(self) -> TopProductsScraper:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def start(self) -> None:
        bc = self.cfg.browser
        logger.info("launching browser...")
        self._play = await async_playwright().start()
        try:
            browser_type = getattr(self._play, bc.browser)
            self.browser = await browser_type.launch(headless=bc.headless, args=bc.args)
            self.context = await self.browser.new_context(
                viewport={"width": bc.viewport_width, "height": bc.viewport_height},
                locale=bc.locale,
                user_agent=bc.user_agent,
            )
        except BaseException:
            await self.close()
            raise

    async def close(self) -> None:
        """Shut down the browser and stop the driver."""
        try:
            if self.browser is not None:
                await self.browser.close()
        finally:
            self.browser = None
            self.context = None
            if self._play is not None:
                await self._play.stop()
                self._play = None

    async def open_page(self) -> Page:
        if self.context is None:
            msg = "TopProductsScraper.start() must be called before open_page()"
            raise RuntimeError(msg)
        bc = self.cfg.browser
        page = await self.context.new_page()
        await page.set_extra_http_headers({"accept-language": bc.accept_language})
        logger.info("goto %s", self.cfg.page_url)
        await page.goto(
            self.cfg.page_url,
            wait_until="networkidle",
            timeout=bc.navigation_timeout_ms,
        )
        await page.wait_for_timeout(bc.settle_ms)
        return page

    async def scrape(
        self,
        region: str | None = None,
        time_range: str | None = None,
        include_screenshot: bool = False,
    ) -> ScrapeResult:
        started = monotonic()
        region = region or self.cfg.default_region
        time_range = time_range or self.cfg.default_time_range

        page = await self.open_page()
        root = await pick_best_frame(page)
        logger.info("picked frame: %s", root.url)

        await dismiss_overlays(root)

        logger.info("selecting region: %s", region)
        await select_region(root, region)

        logger.info("selecting time range: %s", time_range)
        await select_time_range(root, time_range)

        logger.info("extracting table...")
        extraction = await extract_table(root, self.cfg.extractor)

        screenshot = None
        if include_screenshot:
            screenshot = await self._screenshot_b64(page)

        return ScrapeResult(
            source=self.cfg.source,
            page_url=self.cfg.page_url,
            region=region,
            time_range=time_range,
            extraction=extraction,
            ms=ms_since(started),
            screenshot_b64=screenshot,
        )

    # ---- Debug reports

    async def page_info(self) -> dict[str, Any]:
        started = monotonic()
        page = await self.open_page()
        return {"title": await page.title(), "finalUrl": page.url, "ms": ms_since(started)}

    async def frames_report(self) -> list[dict[str, Any]]:
        page = await self.open_page()
        out = []
        for frame in page.frames:
            try:
                buttons = await visible_button_texts(frame)
            except PlaywrightError:
                logger.debug("frames_report: cannot read buttons in %s", frame.url)
                buttons = []
            out.append(
                {
                    "frame_url": frame.url,
                    "score": score_frame_by_url(frame.url),
                    "buttons_sample": buttons[:50],
                    "buttons_count": len(buttons),
                },
            )
        return out

    async def page_snapshot(self) -> dict[str, Any]:
        page = await self.open_page()
        await page.wait_for_timeout(500)
        html_len = await page.evaluate("() => document.documentElement.outerHTML.length")
        text_sample = await page.evaluate(
            "() => (document.body?.innerText || '').replace(/\\s+/g, ' ').trim().slice(0, 800)",
        )
        counts = await page.evaluate(
            """() => ({
                buttons: document.querySelectorAll("button").length,
                links: document.querySelectorAll("a").length,
                inputs: document.querySelectorAll("input").length,
                selects: document.querySelectorAll("select").length,
                tables: document.querySelectorAll("table").length,
                trs: document.querySelectorAll("tr").length,
            })""",
        )
        return {
            "title": await page.title(),
            "finalUrl": page.url,
            "htmlLen": html_len,
            "textSample": text_sample,
            "counts": counts,
            "screenshotBase64": await self._screenshot_b64(page),
        }

    @staticmethod
    async def _screenshot_b64(page: Page) -> str:
        png = await page.screenshot(type="png", full_page=True)
        return base64.b64encode(png).decode("ascii")


async def scrape_top_products(
    cfg: Config | None = None,
    region: str | None = None,
    time_range: str | None = None,
    include_screenshot: bool = False,
) -> ScrapeResult:
    """Run one complete scrape in a fresh browser."""
    async with TopProductsScraper(cfg) as scraper:
        return await scraper.scrape(region, time_range, include_screenshot)


# ----------------------------
# CLI
# ----------------------------


def _write_csv(df, path: str) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False, encoding="utf-8")
    logger.info("Saved CSV to: %s", out)


def main(argv: list[str] | None = None) -> None:
    """
    CLI entrypoint.

    Example:
    ccscraper scrape --region Brasil --csv out/top-products.csv
    ccscraper serve --port 8080
    ccscraper fetch --url http://127.0.0.1:8080 --csv out.csv

    """
    logging.basicConfig(level=logging.INFO)

    ap = argparse.ArgumentParser(prog="ccscraper")
    ap.add_argument("--cfg", type=str, default="", help="Path to config JSON")
    sub = ap.add_subparsers(dest="command", required=True)

    p_scrape = sub.add_parser("scrape", help="Run one scrape in a local browser")
    p_scrape.add_argument("--region")
    p_scrape.add_argument("--time-range")
    p_scrape.add_argument("--csv", type=str, default="", help="Optional path to export CSV")
    p_scrape.add_argument("--json", type=str, default="", help="Optional path to export JSON")
    p_scrape.add_argument("--headed", action="store_true", help="Show the browser window")

    p_serve = sub.add_parser("serve", help="Start the HTTP API")
    p_serve.add_argument("--host")
    p_serve.add_argument("--port", type=int)

    p_fetch = sub.add_parser("fetch", help="Ask a running API to scrape")
    p_fetch.add_argument("--url", required=True, help="Base URL of the API")
    p_fetch.add_argument("--region")
    p_fetch.add_argument("--time-range")
    p_fetch.add_argument("--csv", type=str, default="", help="Optional path to export CSV")

    args = ap.parse_args(argv)

    cfg = config_from_env(load_config(args.cfg) if args.cfg else Config())

    if args.command == "serve":
        from .web import serve

        if args.host:
            cfg.server.host = args.host
        if args.port:
            cfg.server.port = args.port
        serve(cfg)
        return

    if args.command == "fetch":
        from .web.ccscraper_client import items_frame, post_scrape

        payload = post_scrape(args.url, region=args.region, time_range=args.time_range)
        dframe = items_frame(payload)
        logger.info("Rows: %s | Cols: %s", len(dframe), len(dframe.columns))
        if args.csv:
            _write_csv(dframe, args.csv)
        return

    if args.headed:
        cfg.browser.headless = False
    result = asyncio.run(scrape_top_products(cfg, args.region, args.time_range))
    dframe = result.extraction.to_dataframe()
    logger.info(
        "Rows: %s | Cols: %s | ms: %s", len(dframe), len(dframe.columns), result.ms,
    )
    logger.info("\n%s", dframe.head(10).to_string(index=False))

    if args.csv:
        _write_csv(dframe, args.csv)
    if args.json:
        out = Path(args.json)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(
            json.dumps(result.to_payload(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        logger.info("Saved JSON to: %s", out)


if __name__ == "__main__":
    main()
