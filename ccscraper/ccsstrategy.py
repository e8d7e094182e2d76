"""
ccscraper.ccsstrategy
=================================

Ordered fallback chains for best-effort UI lookups.

Dashboards move their controls around between releases, so every lookup
is expressed as a list of candidate strategies tried in order: the first
one that produces a truthy result wins, and a Playwright error or timeout
from one candidate only moves the chain on to the next.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Strategy = Callable[[], Awaitable[T]]

# Errors that mean "this candidate did not work", never a programming bug.
CANDIDATE_ERRORS = (PlaywrightError, PlaywrightTimeoutError)


async def first_success(strategies: Iterable[Strategy[T]], *, what: str) -> T | None:
    """
    Run ``strategies`` in order and return the first truthy result.

    Returns None when every strategy failed or came back empty.
    """
    for i, strategy in enumerate(strategies):
        try:
            result = await strategy()
        except CANDIDATE_ERRORS as exc:
            logger.debug("%s: strategy %d failed: %s", what, i, exc)
            continue
        if result:
            return result
    logger.debug("%s: no strategy succeeded", what)
    return None


async def click_when_visible(
    loc: Locator,
    *,
    visible_ms: int = 0,
    click_ms: int = 15000,
    pause_ms: int = 0,
) -> bool:
    """
    Click the first element of ``loc`` if it is visible.

    With ``visible_ms == 0`` visibility is checked once and a hidden element
    returns False at once. A positive ``visible_ms`` waits for the element
    instead (options that render after a dropdown opens); the Playwright
    timeout then propagates, which :func:`first_success` treats as a
    failed candidate.
    """
    target = loc.first
    if visible_ms:
        await target.wait_for(state="visible", timeout=visible_ms)
    elif not await target.is_visible():
        return False
    await target.click(timeout=click_ms)
    if pause_ms:
        await target.page.wait_for_timeout(pause_ms)
    return True


def clicking(
    candidates: Iterable[Locator],
    *,
    visible_ms: int = 0,
    click_ms: int = 15000,
    pause_ms: int = 0,
) -> list[Strategy[bool]]:
    """Wrap each locator in a strategy that clicks it once visible."""

    def make(loc: Locator) -> Strategy[bool]:
        async def run() -> bool:
            return await click_when_visible(
                loc, visible_ms=visible_ms, click_ms=click_ms, pause_ms=pause_ms,
            )

        return run

    return [make(c) for c in candidates]
