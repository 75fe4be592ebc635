"""Tests for keytutor.core.characters – key classification and comparison."""

from __future__ import annotations

import pytest

from keytutor.core.characters import (
    character_category,
    compare_characters,
    is_control_key,
    is_printable_key,
    normalize_text,
    validate_character,
)


class TestKeys:
    @pytest.mark.parametrize("key", ["Shift", "Enter", "Tab", "F1", "F12", "ArrowDown"])
    def test_control_keys(self, key):
        assert is_control_key(key)
        assert not is_printable_key(key)

    @pytest.mark.parametrize("key", ["a", "Z", " ", "1", ";", "F", "ß"])
    def test_printable(self, key):
        assert is_printable_key(key)

    @pytest.mark.parametrize("key", ["", "ab", "F13"])
    def test_not_printable(self, key):
        assert not is_printable_key(key)


class TestCompare:
    def test_case_insensitive(self):
        assert compare_characters("A", "a")

    def test_case_sensitive(self):
        assert not compare_characters("A", "a", case_sensitive=True)
        assert compare_characters("a", "a", case_sensitive=True)

    def test_empty(self):
        assert not compare_characters("", "a")
        assert not compare_characters("a", "")

    def test_normalize_text(self):
        assert normalize_text("Hello  World ") == "hello  world "
        assert normalize_text("Hello  World ", trim_spaces=True) == "hello world"
        assert normalize_text("Hi", case_sensitive=True) == "Hi"


class TestCategory:
    @pytest.mark.parametrize(
        "key,category",
        [
            ("a", "letter"),
            ("7", "number"),
            (" ", "space"),
            ("'", "punctuation"),
            ("@", "special"),
            ("Shift", "control"),
            ("", "unknown"),
        ],
    )
    def test_category(self, key, category):
        assert character_category(key) == category


class TestValidate:
    def test_letters_always_valid(self):
        result = validate_character("Q")
        assert result.is_valid
        assert result.normalized_char == "q"

    def test_case_sensitive_keeps_case(self):
        assert validate_character("Q", case_sensitive=True).normalized_char == "Q"

    def test_spaces(self):
        assert validate_character(" ").is_valid
        result = validate_character(" ", allow_spaces=False)
        assert not result.is_valid
        assert result.reason == "Spaces not allowed"

    def test_numbers(self):
        assert not validate_character("4", allow_numbers=False).is_valid

    def test_punctuation(self):
        assert validate_character(",").is_valid
        assert not validate_character(",", allow_punctuation=False).is_valid

    def test_special_rejected_by_default(self):
        result = validate_character("#")
        assert not result.is_valid
        assert result.reason == "Special characters not allowed"
        assert validate_character("#", allow_special=True).is_valid

    def test_allowed_list_overrides(self):
        assert validate_character("x", allowed="asdf").is_valid is False
        assert validate_character("A", allowed="asdf").is_valid is True
        assert validate_character("A", allowed="asdf", case_sensitive=True).is_valid is False

    def test_empty(self):
        result = validate_character("")
        assert not result.is_valid
        assert result.reason == "Empty character"
