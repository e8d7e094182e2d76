"""ccscraper.ccstext: whitespace cleanup shared by headers and cells."""

import re

_WS = re.compile(r"\s+")


def clean_text(s: str | None) -> str:
    """
    Collapse whitespace runs to one space and trim both ends.

    ``None`` and empty input give ``""``. The function is idempotent.
    """
    return _WS.sub(" ", s or "").strip()
