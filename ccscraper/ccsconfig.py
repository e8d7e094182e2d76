"""
ccscraper.ccsconfig
=================================

Configuration dataclasses and helpers used to coerce a JSON configuration
into Python objects consumed by the scraper runtime, the table extractor
and the HTTP server.

The primary public surface is :class:`Config`, which mirrors the JSON
structure users author. The module also exposes :func:`load_config`, which
reads a JSON file and returns a typed :class:`Config` instance, and
:func:`config_from_env`, which applies the container-style ``HOST``/``PORT``
overrides.
"""

import json
import os
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Literal, Union, get_args, get_origin

TOP_PRODUCTS_URL = "https://ads.tiktok.com/business/creativecenter/top-products/pc/en"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class BrowserConfig:
    """
    Browser launch and page-load settings.

    Fields
    ------
    browser: Playwright browser type to launch.
    headless: run without a visible window.
    args: extra command-line switches passed to the browser.
    viewport_width / viewport_height: page viewport in CSS pixels.
    locale: browser locale; the dashboard renders PT-BR labels by default.
    user_agent: desktop user agent string sent with every request.
    accept_language: ``accept-language`` header added to every request.
    navigation_timeout_ms: ceiling for the initial ``goto``.
    settle_ms: fixed pause after navigation so client-side widgets mount.
    """

    browser: Literal["chromium", "firefox", "webkit"] = "chromium"
    headless: bool = True
    args: list[str] = field(
        default_factory=lambda: ["--no-sandbox", "--disable-dev-shm-usage"],
    )
    viewport_width: int = 1365
    viewport_height: int = 768
    locale: str = "pt-BR"
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7"
    navigation_timeout_ms: int = 120000
    settle_ms: int = 1500


@dataclass
class ExtractorConfig:
    """
    Table extraction thresholds.

    ``row_marker_tokens`` are the localized labels of the per-row "details"
    action; a table row is a data row only when its text contains one of
    them. ``min_product_length`` is the shortest product value accepted
    (2 means "longer than one character").
    """

    row_marker_tokens: list[str] = field(
        default_factory=lambda: ["Details", "Detalhes"],
    )
    wait_timeout_ms: int = 60000
    min_cells: int = 3
    product_key: str = "product"
    min_product_length: int = 2


@dataclass
class ServerConfig:
    """Bind address and log level handed to :func:`ccscraper.web.serve`."""

    host: str = "0.0.0.0"  # noqa: S104 - containers need the wildcard bind
    port: int = 8080
    log_level: str = "info"


@dataclass
class Config:
    """
    Top-level runtime configuration.

    This dataclass mirrors the keys accepted by the JSON configuration
    files. Users typically author JSON objects that are read with
    :func:`load_config`; every key is optional.
    """

    page_url: str = TOP_PRODUCTS_URL
    source: str = "creative_center"
    default_region: str = "Brasil"
    default_time_range: str = "Últimos 7 dias"

    browser: BrowserConfig = field(default_factory=BrowserConfig)
    extractor: ExtractorConfig = field(default_factory=ExtractorConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def _unwrap_optional(t: Any) -> Any:
    """
    Return the inner type if ``t`` is Optional[...] else ``t``.

    This helper is used when coercing JSON values into typed dataclass
    fields so Optional[...] annotations are handled correctly.
    """
    if get_origin(t) is Union:
        non_none = [a for a in get_args(t) if a is not type(None)]
        if len(non_none) == 1:
            return non_none[0]
    return t


def coerce_value(val: Any, target_type: type[Any]) -> Any:
    # Handle Optional[...]
    inner_type = _unwrap_optional(target_type)

    # Dataclass instance from dict
    if is_dataclass(inner_type) and isinstance(val, dict):
        return coerce_nested(val, inner_type)

    origin = get_origin(inner_type)
    args = get_args(inner_type)

    # List[...] of dataclasses or scalars
    if origin in (list, tuple) and args and isinstance(val, (list, tuple)):
        inner_arg = args[0]
        return type(val)(coerce_value(v, inner_arg) for v in val)

    # Dict[..., SomeDataclass]
    if origin is dict and len(args) == 2 and isinstance(val, dict):
        key_type, value_type = args
        return {
            coerce_value(k, key_type): coerce_value(v, value_type)
            for k, v in val.items()
        }

    # Numbers arriving as strings (env vars, form posts)
    if inner_type is int and isinstance(val, str):
        return int(val)
    if inner_type is bool and isinstance(val, str):
        return val.strip().lower() in ("1", "true", "yes", "on")

    # Pass through untouched
    return val


def coerce_nested(obj: dict, cls: type[Any]) -> Any:
    if not is_dataclass(cls):
        return obj

    kwargs = {}
    for f in fields(cls):
        if f.name not in obj:
            continue
        val = obj[f.name]
        if val is MISSING:
            continue
        kwargs[f.name] = coerce_value(val, f.type)

    return cls(**kwargs)


def load_config(path: str | Path) -> Config:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return coerce_nested(raw, Config)


def config_from_env(cfg: Config | None = None) -> Config:
    """
    Apply process environment overrides to ``cfg`` (or a default Config).

    Recognized variables: ``HOST``, ``PORT`` and ``CCSCRAPER_HEADLESS``.
    The same object is returned so calls can be chained.
    """
    cfg = cfg or Config()
    if host := os.environ.get("HOST"):
        cfg.server.host = host
    if port := os.environ.get("PORT"):
        cfg.server.port = coerce_value(port, int)
    if headless := os.environ.get("CCSCRAPER_HEADLESS"):
        cfg.browser.headless = coerce_value(headless, bool)
    return cfg
