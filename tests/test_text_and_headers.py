import re

import pytest

from ccscraper.ccsheaders import (
    CANONICAL_KEYS,
    HEADER_RULES,
    MAX_SLUG_LENGTH,
    header_to_key,
    slugify_header,
)
from ccscraper.ccstext import clean_text

SLUG_RE = re.compile(r"[a-z0-9_]*")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("  Widget \n\t Pro  ", "Widget Pro"),
        ("a b", "a b"),
        ("", ""),
        (None, ""),
        ("\n\t ", ""),
    ],
)
def test_clean_text(raw, expected):
    assert clean_text(raw) == expected


@pytest.mark.parametrize("raw", ["  x  y ", "Details\n", "a\tb\nc", "", None])
def test_clean_text_idempotent(raw):
    once = clean_text(raw)
    assert clean_text(once) == once


@pytest.mark.parametrize(
    ("header", "key"),
    [
        ("Product", "product"),
        ("Produto", "product"),
        ("Popularity", "popularity"),
        ("Popularidade", "popularity"),
        ("Popularity change", "popularity_change"),
        ("Mudança", "popularity_change"),
        ("Variação", "popularity_change"),
        ("CTR", "ctr"),
        ("Click Through Rate", "ctr"),
        ("CVR", "cvr"),
        ("Conversion rate", "cvr"),
        ("CPA", "cpa"),
        ("Cost", "cost"),
        ("Custo", "cost"),
        ("Impressions", "impressions"),
        ("Impressões", "impressions"),
        ("Curtidas", "likes"),
        ("Likes", "likes"),
        ("Comentários", "comments"),
        ("Comments", "comments"),
        ("Compartilhamentos", "shares"),
        ("Shares", "shares"),
        ("View rate", "view_rate"),
        ("Taxa de visualização", "view_rate"),
        ("Taxa 6s", "view_rate_6s"),
    ],
)
def test_known_headers(header, key):
    assert header_to_key(header) == key


def test_header_whitespace_and_case_ignored():
    assert header_to_key("  \n PRODUTO\t ") == "product"


def test_first_rule_wins_for_ambiguous_labels():
    keys = [r.key for r in HEADER_RULES]
    assert keys.index("cpa") < keys.index("cost")
    # both "custo" and "cpa" tokens present
    assert header_to_key("Custo (CPA)") == "cpa"
    assert header_to_key("Cost / CPA") == "cpa"
    # popularity is listed before the change rule
    assert header_to_key("Mudança de popularidade") == "popularity"
    # view rate is listed before the 6s variant
    assert header_to_key("6s view rate") == "view_rate"


def test_unknown_header_slugified():
    assert header_to_key("Preço médio (R$)") == "preco_medio_r"
    assert header_to_key("Ação   Única") == "acao_unica"
    assert header_to_key("--Rank #--") == "rank"


def test_slug_truncated_without_trailing_underscore():
    slug = header_to_key("x" * 39 + " yyyy")
    assert slug == "x" * 39
    assert len(header_to_key("z" * 100)) == MAX_SLUG_LENGTH


def test_slug_may_be_empty_for_symbol_only_header():
    assert slugify_header("★ ✓") == ""
    assert header_to_key("") == ""
    assert header_to_key(None) == ""


@pytest.mark.parametrize(
    "header",
    [
        "Product",
        "Ranking__Position__",
        "日本語",
        "  Écarts -- Δ%  ",
        "!!!",
        "a" * 80,
        "Nível de engajamento (média 30d)",
    ],
)
def test_mapper_is_total_and_bounded(header):
    key = header_to_key(header)
    assert key == header_to_key(header)
    if key not in CANONICAL_KEYS:
        assert len(key) <= MAX_SLUG_LENGTH
        assert SLUG_RE.fullmatch(key)
        assert not key.startswith("_")
        assert not key.endswith("_")
