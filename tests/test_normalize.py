"""Tests for list normalization and JSON repair helpers."""

from rabbit.utils.normalize import normalize_string_list, repair_llm_list


def test_normalize_strings_are_stripped():
    assert normalize_string_list(["  a? ", "", "b?"]) == ["a?", "b?"]


def test_normalize_objects_use_known_keys():
    items = [{"question": "Why?"}, {"idea": "Try it."}, {"other": "Fallback"}, {"n": 1}]
    assert normalize_string_list(items) == ["Why?", "Try it.", "Fallback"]


def test_normalize_numbers_but_not_booleans():
    assert normalize_string_list([1, 2.5, True, None]) == ["1", "2.5"]


def test_normalize_non_list():
    assert normalize_string_list("just a string") == []
    assert normalize_string_list(None) == []


def test_repair_trailing_comma():
    assert repair_llm_list('["a", "b",]') == ["a", "b"]


def test_repair_rejects_objects_and_empty():
    assert repair_llm_list('{"a": 1}') is None
    assert repair_llm_list("   ") is None
