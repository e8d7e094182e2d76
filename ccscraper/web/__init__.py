import logging

import uvicorn

from ccscraper.ccsconfig import Config

from .ccscraper_api import ScrapeRequest as ScrapeRequest
from .ccscraper_api import create_app as create_app
from .ccscraper_log import LogBroker as LogBroker
from .ccscraper_log import broker as broker

logger = logging.getLogger(__name__)


def serve(cfg: Config | None = None) -> None:
    """Start the API with the bind address taken from ``cfg.server``."""
    cfg = cfg or Config()
    logger.info("scraper listening on %s:%s", cfg.server.host, cfg.server.port)
    uvicorn.run(
        create_app(cfg),
        host=cfg.server.host,
        port=cfg.server.port,
        log_level=cfg.server.log_level,
        proxy_headers=True,
    )
