"""
ccscraper.ccsheaders
=================================

Map rendered column headers (English or Brazilian Portuguese) to canonical
record keys.

The mapping is an ordered rule table: each :class:`HeaderRule` lists
substrings that identify one canonical key and the first rule with a
matching substring wins. Headers that match no rule are slugified so the
mapper never fails.
"""

import re
import unicodedata
from dataclasses import dataclass

from .ccstext import clean_text

MAX_SLUG_LENGTH = 40

_NON_SLUG = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class HeaderRule:
    key: str
    patterns: tuple[str, ...]

    def matches(self, header: str) -> bool:
        return any(p in header for p in self.patterns)


# Order is precedence: "custo cpa" must stay cpa, "6s view rate" stays view_rate.
HEADER_RULES: tuple[HeaderRule, ...] = (
    HeaderRule("product", ("produto",)),
    HeaderRule("popularity", ("popularidade",)),
    HeaderRule("popularity_change", ("mud", "varia", "change")),
    HeaderRule(
        "ctr",
        ("ctr", "click through rate", "click-through rate", "taxa de cliques"),
    ),
    HeaderRule("cvr", ("cvr", "conversion rate", "taxa de convers")),
    HeaderRule("cpa", ("cpa", "cost per acquisition", "custo por aquisi")),
    HeaderRule("cost", ("custo", "cost")),
    HeaderRule("impressions", ("impress",)),
    HeaderRule("likes", ("curt", "like")),
    HeaderRule("comments", ("coment", "comment")),
    HeaderRule("shares", ("compart", "share")),
    HeaderRule("view_rate", ("view rate", "taxa de visual")),
    HeaderRule("view_rate_6s", ("6s",)),
    HeaderRule("product", ("product",)),
    HeaderRule("popularity", ("popularity",)),
)

CANONICAL_KEYS = frozenset(rule.key for rule in HEADER_RULES)


def slugify_header(header: str) -> str:
    """
    Turn arbitrary header text into an identifier-safe key.

    Accents are stripped to their base letters, every other run of
    characters outside ``[a-z0-9]`` becomes one underscore and the result
    is capped at :data:`MAX_SLUG_LENGTH` characters without leading or
    trailing underscores. May return ``""`` for text with no usable
    characters.
    """
    decomposed = unicodedata.normalize("NFD", header.lower())
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    slug = _NON_SLUG.sub("_", ascii_only).strip("_")
    return slug[:MAX_SLUG_LENGTH].strip("_")


def header_to_key(raw_header: str | None, rules: tuple[HeaderRule, ...] = HEADER_RULES) -> str:
    header = clean_text(raw_header).lower()
    for rule in rules:
        if rule.matches(header):
            return rule.key
    return slugify_header(header)
