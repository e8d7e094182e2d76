import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ccscraper.ccscraper import score_frame_by_url
from ccscraper.ccsstrategy import click_when_visible, clicking, first_success


def test_first_success_stops_at_first_truthy_result():
    calls = []

    def strategy(name, result=None, exc=None):
        async def run():
            calls.append(name)
            if exc:
                raise exc
            return result

        return run

    result = asyncio.run(
        first_success(
            [
                strategy("a", exc=PlaywrightTimeoutError("Timeout 10ms exceeded.")),
                strategy("b", result=[]),
                strategy("c", result=["Product"]),
                strategy("d", result=["never"]),
            ],
            what="test",
        ),
    )

    assert result == ["Product"]
    assert calls == ["a", "b", "c"]


def test_first_success_returns_none_when_all_fail():
    async def boom():
        raise PlaywrightError("detached")

    assert asyncio.run(first_success([boom, boom], what="test")) is None


def test_click_when_visible_waits_then_clicks():
    loc = Mock()
    loc.first.wait_for = AsyncMock()
    loc.first.click = AsyncMock()

    assert asyncio.run(click_when_visible(loc, visible_ms=100, click_ms=200)) is True
    loc.first.wait_for.assert_awaited_once_with(state="visible", timeout=100)
    loc.first.click.assert_awaited_once_with(timeout=200)


def test_clicking_chain_skips_hidden_candidates():
    hidden = Mock()
    hidden.first.is_visible = AsyncMock(return_value=False)
    hidden.first.wait_for = AsyncMock()
    hidden.first.click = AsyncMock()
    shown = Mock()
    shown.first.is_visible = AsyncMock(return_value=True)
    shown.first.click = AsyncMock()

    assert asyncio.run(first_success(clicking([hidden, shown]), what="test")) is True
    hidden.first.click.assert_not_awaited()
    hidden.first.wait_for.assert_not_awaited()
    shown.first.click.assert_awaited_once()


def test_click_when_visible_does_not_wait_for_hidden_element():
    loc = Mock()
    loc.first.is_visible = AsyncMock(return_value=False)
    loc.first.wait_for = AsyncMock()
    loc.first.click = AsyncMock()

    assert asyncio.run(click_when_visible(loc)) is False
    loc.first.wait_for.assert_not_awaited()
    loc.first.click.assert_not_awaited()


def test_first_success_propagates_programming_errors():
    calls = []

    async def broken():
        calls.append("broken")
        raise ValueError("bad selector argument")

    async def never():
        calls.append("never")
        return True

    with pytest.raises(ValueError, match="bad selector"):
        asyncio.run(first_success([broken, never], what="test"))
    assert calls == ["broken"]


def test_score_frame_by_url():
    top = "https://ads.tiktok.com/business/creativecenter/top-products/pc/en"
    assert score_frame_by_url(top) == 14
    assert score_frame_by_url("about:blank") == -5
    assert score_frame_by_url("") == -999
    assert score_frame_by_url("https://example.com/") == 0
