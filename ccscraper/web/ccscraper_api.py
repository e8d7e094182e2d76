import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from time import monotonic
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ccscraper.ccsconfig import Config
from ccscraper.ccscraper import TopProductsScraper, ms_since, scrape_top_products

from .ccscraper_log import install_broker_handler
from .ccscraper_wsr import router as logs_router

logger = logging.getLogger(__name__)


class ScrapeRequest(BaseModel):
    """Body of the scrape endpoint; every field is optional."""

    model_config = ConfigDict(populate_by_name=True)

    region: str | None = None
    time_range_label: str | None = Field(default=None, alias="timeRangeLabel")
    include_screenshot: bool = Field(default=False, alias="includeScreenshot")


def _cfg(request: Request) -> Config:
    return request.app.state.cfg


def _failure(exc: Exception, started: float | None = None) -> JSONResponse:
    body: dict[str, Any] = {"ok": False, "message": str(exc)}
    if started is not None:
        body["ms"] = ms_since(started)
    return JSONResponse(status_code=500, content=body)


async def _debug_report(
    cfg: Config,
    report: Callable[[TopProductsScraper], Awaitable[Any]],
    key: str | None = None,
) -> JSONResponse | dict[str, Any]:
    try:
        async with TopProductsScraper(cfg) as scraper:
            data = await report(scraper)
    except Exception as exc:  # noqa: BLE001 - reported to the caller as a 500
        logger.exception("debug report failed")
        return _failure(exc)
    if key:
        return {"ok": True, key: data}
    return {"ok": True, **data}


def create_app(cfg: Config | None = None) -> FastAPI:
    """Build the HTTP API around an explicit :class:`Config`."""
    server = FastAPI(title="ccscraper")
    server.state.cfg = cfg or Config()
    server.include_router(logs_router)
    install_broker_handler()

    @server.get("/health")
    def health():
        return {"ok": True, "service": "scraper", "ts": datetime.now(tz=UTC).isoformat()}

    @server.post("/scrape/creative-center/top-products")
    async def scrape(request: Request, body: ScrapeRequest | None = None):
        cfg = _cfg(request)
        body = body or ScrapeRequest()
        started = monotonic()
        try:
            result = await scrape_top_products(
                cfg,
                region=body.region,
                time_range=body.time_range_label,
                include_screenshot=body.include_screenshot,
            )
        except Exception as exc:  # noqa: BLE001 - reported to the caller as a 500
            logger.exception("scrape failed")
            return _failure(exc, started)
        logger.info("scrape: %d items in %dms", len(result.extraction.items), result.ms)
        return result.to_payload()

    @server.post("/debug/open")
    async def debug_open(request: Request):
        return await _debug_report(_cfg(request), lambda s: s.page_info())

    @server.post("/debug/frames")
    async def debug_frames(request: Request):
        return await _debug_report(_cfg(request), lambda s: s.frames_report(), key="frames")

    @server.post("/debug/page-snapshot")
    async def debug_snapshot(request: Request):
        return await _debug_report(_cfg(request), lambda s: s.page_snapshot())

    return server
