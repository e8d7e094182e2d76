"""Shared fixtures: an in-memory stand-in for the Playwright Locator API."""

import asyncio
import re
from types import SimpleNamespace

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class FakeNode:
    def __init__(self, tag: str, text: str = "", children=None) -> None:
        self.tag = tag
        self.text = text
        self.children = list(children or [])

    def descendants(self):
        for child in self.children:
            yield child
            yield from child.descendants()

    def contains(self, other: "FakeNode") -> bool:
        return any(d is other for d in self.descendants())

    def inner_text(self) -> str:
        if not self.children:
            return self.text
        sep = "\t" if self.tag == "tr" else "\n"
        return sep.join(c.inner_text() for c in self.children)


class FakeLocator:
    """
    Implements the Locator subset the extractor uses.

    ``locator()`` understands descendant tag selectors such as ``"tr"`` or
    ``"thead tr th"``; ``wait_for()`` sleeps for the full timeout before
    raising, like a browser that never renders the element.
    """

    def __init__(self, nodes) -> None:
        self._nodes = list(nodes)

    def locator(self, selector: str) -> "FakeLocator":
        current = self._nodes
        for tag in selector.split():
            found: list[FakeNode] = []
            for node in current:
                for d in node.descendants():
                    if d.tag == tag and not any(d is f for f in found):
                        found.append(d)
            current = found
        return FakeLocator(current)

    def filter(self, has_text=None, has=None) -> "FakeLocator":
        nodes = self._nodes
        if isinstance(has_text, str):
            nodes = [n for n in nodes if has_text.lower() in n.inner_text().lower()]
        elif isinstance(has_text, re.Pattern):
            nodes = [n for n in nodes if has_text.search(n.inner_text())]
        if has is not None:
            nodes = [n for n in nodes if any(n.contains(o) for o in has._nodes)]
        return FakeLocator(nodes)

    @property
    def first(self) -> "FakeLocator":
        return FakeLocator(self._nodes[:1])

    def nth(self, index: int) -> "FakeLocator":
        return FakeLocator(self._nodes[index : index + 1])

    async def count(self) -> int:
        return len(self._nodes)

    async def all_inner_texts(self) -> list[str]:
        return [n.inner_text() for n in self._nodes]

    async def inner_text(self) -> str:
        if not self._nodes:
            raise PlaywrightTimeoutError("Locator.inner_text: no element")
        return self._nodes[0].inner_text()

    async def wait_for(self, state: str = "visible", timeout: float = 30000) -> None:
        if self._nodes:
            return
        await asyncio.sleep(timeout / 1000)
        raise PlaywrightTimeoutError(f"Locator.wait_for: Timeout {timeout}ms exceeded.")


def _row(cells, cell_tag="td") -> FakeNode:
    return FakeNode("tr", children=[FakeNode(cell_tag, c) for c in cells])


def make_table(rows, headers=None) -> FakeNode:
    children = []
    if headers is not None:
        children.append(FakeNode("thead", children=[_row(headers, "th")]))
    children.append(FakeNode("tbody", children=[_row(r) for r in rows]))
    return FakeNode("table", children=children)


def make_page(*nodes) -> FakeLocator:
    return FakeLocator([FakeNode("html", children=[FakeNode("body", children=nodes)])])


@pytest.fixture
def fake_dom():
    return SimpleNamespace(node=FakeNode, table=make_table, page=make_page)
