"""Tests for query preparation and ranking boosts."""

from __future__ import annotations

import pytest

from palace_index.retrieval.boosts import (
    DEFAULT_BOOSTS,
    BoostContext,
    apply_boosts,
    code_file_factor,
    entry_point_factor,
    explain_boosts,
    path_match_factor,
)
from palace_index.retrieval.query import is_code_like, prepare_query, quote


@pytest.mark.parametrize("query", ["user.login", "parse_config", "Config::load", "a->b", "call()", "items[0]"])
def test_code_like_queries_become_phrases(query: str) -> None:
    prepared = prepare_query(query)
    assert prepared.kind == "code"
    assert prepared.expression == f'"{query}"'


def test_text_query_ors_prefix_terms() -> None:
    prepared = prepare_query("  password validation a ")
    assert prepared.kind == "text"
    assert prepared.expression == '"password"* OR "validation"*'


def test_short_words_fall_back_to_phrase() -> None:
    prepared = prepare_query("a b")
    assert prepared.kind == "phrase"
    assert prepared.expression == '"a b"'


def test_blank_query_is_empty() -> None:
    assert prepare_query("   ").is_empty
    assert prepare_query("").expression == ""


def test_quote_doubles_embedded_quotes() -> None:
    assert quote('say "hi"') == '"say ""hi"""'
    assert not is_code_like("plain words")


def test_boost_factors() -> None:
    entry = BoostContext(path="auth/login.go", query="login", is_entry=True)
    assert entry_point_factor(entry) == 3.0
    assert path_match_factor(entry) == 2.5
    assert code_file_factor(entry) == 1.2
    assert explain_boosts(entry) == {"entry_point": 3.0, "path_match": 2.5, "code_file": 1.2}

    partial = BoostContext(path="docs/login-flow.md", query="the login page", is_entry=False)
    assert path_match_factor(partial) == 1.5
    assert code_file_factor(partial) == 1.0

    unrelated = BoostContext(path="README.md", query="go to it", is_entry=False)
    assert path_match_factor(unrelated) == 1.0


def test_boosts_multiply_in_order() -> None:
    ctx = BoostContext(path="auth/login.go", query="login", is_entry=True)
    assert apply_boosts(2.0, ctx) == pytest.approx(2.0 * 3.0 * 2.5 * 1.2)
    assert apply_boosts(2.0, ctx, ()) == 2.0
    assert [boost.name for boost in DEFAULT_BOOSTS] == ["entry_point", "path_match", "code_file"]


@pytest.mark.parametrize("base", [0.5, 1.0, 7.25])
def test_boosts_never_lower_a_positive_score(base: float) -> None:
    for path in ("a.go", "README.md", "login/handler.py"):
        for is_entry in (True, False):
            ctx = BoostContext(path=path, query="login handler", is_entry=is_entry)
            assert apply_boosts(base, ctx) >= base
    plain = BoostContext(path="x.txt", query="login", is_entry=False)
    entry = BoostContext(path="x.txt", query="login", is_entry=True)
    assert apply_boosts(base, entry) > apply_boosts(base, plain)
