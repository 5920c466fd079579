"""Tests for fuzzy matching."""

from __future__ import annotations

from palace_index.retrieval.fuzzy import (
    edit_distance,
    expand_with_fuzzy_variants,
    fuzzy_match,
    fuzzy_score,
    max_fuzzy_distance,
    normalize_for_fuzzy,
    suggest_matches,
)


def test_edit_distance_is_case_insensitive() -> None:
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("Config", "config") == 0
    assert edit_distance("", "abc") == 3


def test_fuzzy_score_bounds() -> None:
    assert fuzzy_score("", "") == 1.0
    assert fuzzy_score("same", "SAME") == 1.0
    assert fuzzy_score("abc", "xyz") == 0.0
    assert 0.0 < fuzzy_score("handler", "handle") < 1.0


def test_max_fuzzy_distance_grows_with_length() -> None:
    assert [max_fuzzy_distance(n) for n in (1, 3, 4, 5, 6, 8, 9, 20)] == [0, 0, 1, 1, 2, 2, 3, 3]


def test_fuzzy_match_respects_threshold() -> None:
    assert fuzzy_match("servce", "service", 1)
    assert not fuzzy_match("srvc", "service", 1)


def test_suggest_matches_orders_by_distance_then_score() -> None:
    results = suggest_matches("handlr", ["handler", "handle", "candle", "zzz"], 2)
    assert [r.term for r in results] == ["handler", "handle", "candle"]
    assert [r.distance for r in results] == [1, 1, 2]


def test_suggest_matches_keeps_input_order_on_ties() -> None:
    results = suggest_matches("cat", ["bat", "hat", "rat"], 1)
    assert [r.term for r in results] == ["bat", "hat", "rat"]


def test_expand_with_fuzzy_variants() -> None:
    variants = expand_with_fuzzy_variants("fucntion")
    assert variants[0] == "fucntion"
    assert "function" in variants
    assert expand_with_fuzzy_variants("db") == ["db"]


def test_normalize_for_fuzzy() -> None:
    assert normalize_for_fuzzy("Get_User-ID!") == "getuserid"
